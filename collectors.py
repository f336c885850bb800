"""
MedAssist: Intake Collectors
Patient identity, vitals/symptoms and image editors. Each one owns its own
state and forwards a full snapshot to its listener after every mutation.
"""

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from models import (
    ImageType,
    MedicalImage,
    PatientRecord,
    Symptom,
    SymptomSeverity,
    VitalSigns,
)

logger = logging.getLogger(__name__)

PatientListener = Callable[[PatientRecord], None]
SymptomListener = Callable[[List[Symptom], VitalSigns], None]
ImageListener = Callable[[List[MedicalImage]], None]


# ============================================================================
# PATIENT IDENTITY
# ============================================================================

class PatientCollector:
    """Flat patient record, edited one field at a time"""

    FIELDS = tuple(PatientRecord.model_fields)

    def __init__(self, on_update: Optional[PatientListener] = None):
        self.patient = PatientRecord()
        self.on_update = on_update

    def update_field(self, field: str, value: str) -> PatientRecord:
        if field not in self.FIELDS:
            raise ValueError(f"Unknown patient field: {field}")

        # model_validate runs the Gender enum check; age stays free text
        data = self.patient.model_dump()
        data[field] = value
        self.patient = PatientRecord.model_validate(data)

        self._emit()
        return self.patient

    def _emit(self) -> None:
        if self.on_update:
            self.on_update(self.patient.model_copy())


# ============================================================================
# VITALS & SYMPTOMS
# ============================================================================

class SymptomCollector:
    """Ordered symptom list plus a single vitals record"""

    EDITABLE_FIELDS = ("severity", "duration")
    VITAL_FIELDS = tuple(VitalSigns.model_fields)

    def __init__(self, on_update: Optional[SymptomListener] = None):
        self.symptoms: List[Symptom] = []
        self.vitals = VitalSigns()
        self.on_update = on_update

    def add_symptom(self, name: str) -> Optional[Symptom]:
        """Append a symptom; blank names and exact duplicates are ignored"""
        name = (name or "").strip()
        if not name or self.has_symptom(name):
            return None

        symptom = Symptom(name=name)
        self.symptoms.append(symptom)
        self._emit()
        return symptom

    def has_symptom(self, name: str) -> bool:
        return any(s.name == name for s in self.symptoms)

    def update_symptom(self, symptom_id: str, field: str, value: str) -> Optional[Symptom]:
        if field not in self.EDITABLE_FIELDS:
            raise ValueError(f"Symptom field not editable: {field}")

        for i, symptom in enumerate(self.symptoms):
            if symptom.id == symptom_id:
                if field == "severity":
                    value = SymptomSeverity(value)
                updated = symptom.model_copy(update={field: value})
                self.symptoms[i] = updated
                self._emit()
                return updated
        return None

    def remove_symptom(self, symptom_id: str) -> Optional[Symptom]:
        for i, symptom in enumerate(self.symptoms):
            if symptom.id == symptom_id:
                removed = self.symptoms.pop(i)
                self._emit()
                return removed
        return None

    def update_vital(self, field: str, value: str) -> VitalSigns:
        """No range checking: temperature "hot" is stored as-is"""
        if field not in self.VITAL_FIELDS:
            raise ValueError(f"Unknown vital sign: {field}")

        self.vitals = self.vitals.model_copy(update={field: value})
        self._emit()
        return self.vitals

    def _emit(self) -> None:
        if self.on_update:
            self.on_update([s.model_copy() for s in self.symptoms], self.vitals.model_copy())


# ============================================================================
# MEDICAL IMAGES
# ============================================================================

@dataclass
class IncomingFile:
    """A file handed over by the file picker"""
    filename: str
    content_type: str
    payload: bytes


def is_image(incoming: IncomingFile) -> bool:
    return (incoming.content_type or "").startswith("image/")


def encode_preview(content_type: str, payload: bytes) -> str:
    encoded = base64.b64encode(payload).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


class ImageCollector:
    """Uploaded images with type tag, notes and a single preview slot"""

    EDITABLE_FIELDS = ("image_type", "description")

    def __init__(self, on_update: Optional[ImageListener] = None):
        self.images: List[MedicalImage] = []
        self.preview_id: Optional[str] = None
        self.on_update = on_update

    async def add_files(self, files: Iterable[IncomingFile]) -> List[MedicalImage]:
        """
        Decode every image file concurrently and append each one as soon as
        its own decode finishes. Order follows decode completion, not the
        order of the batch. Non-image files are skipped without error.
        """
        accepted = []
        for incoming in files:
            if is_image(incoming):
                accepted.append(incoming)
            else:
                logger.debug(f"Skipping non-image upload {incoming.filename!r} ({incoming.content_type})")

        added = []
        tasks = [asyncio.create_task(self._decode(incoming)) for incoming in accepted]
        for finished in asyncio.as_completed(tasks):
            image = await finished
            self.images.append(image)
            added.append(image)
            self._emit()
        return added

    async def _decode(self, incoming: IncomingFile) -> MedicalImage:
        preview_url = await asyncio.to_thread(encode_preview, incoming.content_type, incoming.payload)
        return MedicalImage(
            filename=incoming.filename,
            content_type=incoming.content_type,
            size=len(incoming.payload),
            payload=incoming.payload,
            preview_url=preview_url,
        )

    def get_image(self, image_id: str) -> Optional[MedicalImage]:
        for image in self.images:
            if image.id == image_id:
                return image
        return None

    def update_image(self, image_id: str, field: str, value: str) -> Optional[MedicalImage]:
        if field not in self.EDITABLE_FIELDS:
            raise ValueError(f"Image field not editable: {field}")

        for i, image in enumerate(self.images):
            if image.id == image_id:
                if field == "image_type":
                    value = ImageType(value)
                updated = image.model_copy(update={field: value})
                self.images[i] = updated
                self._emit()
                return updated
        return None

    def remove_image(self, image_id: str) -> Optional[MedicalImage]:
        for i, image in enumerate(self.images):
            if image.id == image_id:
                removed = self.images.pop(i)
                if self.preview_id == image_id:
                    self.preview_id = None
                self._emit()
                return removed
        return None

    def set_preview(self, image_id: str) -> Optional[MedicalImage]:
        image = self.get_image(image_id)
        if image is not None:
            self.preview_id = image_id
        return image

    def clear_preview(self) -> None:
        self.preview_id = None

    @property
    def preview(self) -> Optional[MedicalImage]:
        return self.get_image(self.preview_id) if self.preview_id else None

    def _emit(self) -> None:
        if self.on_update:
            self.on_update(list(self.images))
