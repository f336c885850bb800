"""
MedAssist: Core Data Models
Pydantic models for patient identity, symptoms, vital signs, images and diagnoses
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from enum import Enum
from uuid import uuid4


def new_id() -> str:
    """Random per-entry key (safe under rapid successive inserts)"""
    return uuid4().hex


# ============================================================================
# ENUMS
# ============================================================================

class Gender(str, Enum):
    """Patient gender as captured on the intake form"""
    UNSET = ""
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class SymptomSeverity(str, Enum):
    """Reported symptom severity"""
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class ImageType(str, Enum):
    """Clinical tag for an uploaded image"""
    PHOTO = "photo"
    XRAY = "xray"
    ULTRASOUND = "ultrasound"
    SCAN = "scan"


class DiagnosisSeverity(str, Enum):
    """Priority attached to a candidate diagnosis"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AnalysisState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


COMMON_SYMPTOMS = [
    "Fever", "Headache", "Cough", "Sore throat", "Nausea", "Vomiting",
    "Diarrhea", "Abdominal pain", "Chest pain", "Shortness of breath",
    "Dizziness", "Fatigue", "Joint pain", "Rash", "Loss of appetite",
]


# ============================================================================
# PATIENT RECORD: IDENTITY & HISTORY
# ============================================================================

class PatientRecord(BaseModel):
    """Flat patient record edited field by field"""
    name: str = Field(default="", description="Patient full name")
    age: str = Field(default="", description="Age in years, kept as entered")
    gender: Gender = Field(default=Gender.UNSET)
    phone: str = Field(default="", description="Contact number")
    village: str = Field(default="", description="Village / district / state")
    medical_history: str = Field(default="", description="Previous illnesses, surgeries, chronic conditions")
    current_medications: str = Field(default="", description="Medications and dosages")
    allergies: str = Field(default="", description="Drug, food or other allergies")

    def is_complete(self) -> bool:
        """Name, age and gender are the fields marked required on the form"""
        return bool(
            self.name.strip()
            and self.age.strip()
            and self.gender != Gender.UNSET
        )


# ============================================================================
# SYMPTOMS & VITAL SIGNS
# ============================================================================

class Symptom(BaseModel):
    """Single reported symptom"""
    id: str = Field(default_factory=new_id)
    name: str = Field(..., description="Symptom name (e.g., 'Cough')")
    severity: SymptomSeverity = Field(default=SymptomSeverity.MILD)
    duration: str = Field(default="", description="Free text, e.g. '3 days'")


class VitalSigns(BaseModel):
    """Vital signs exactly as typed; no unit conversion or range checks"""
    temperature: str = Field(default="", description="Fahrenheit")
    blood_pressure: str = Field(default="", description="systolic/diastolic")
    heart_rate: str = Field(default="", description="beats per minute")
    respiratory_rate: str = Field(default="", description="breaths per minute")
    oxygen_saturation: str = Field(default="", description="%")


# ============================================================================
# MEDICAL IMAGES
# ============================================================================

class MedicalImage(BaseModel):
    """Uploaded image with its decoded preview"""
    id: str = Field(default_factory=new_id)
    filename: str = ""
    content_type: str = ""
    size: int = Field(default=0, ge=0)
    payload: bytes = Field(default=b"", exclude=True, repr=False)
    image_type: ImageType = Field(default=ImageType.PHOTO)
    description: str = ""
    preview_url: str = Field(default="", repr=False, description="data: URL for display")


# ============================================================================
# DIAGNOSIS: ANALYSIS OUTPUT
# ============================================================================

class DiagnosisRecord(BaseModel):
    """Candidate diagnosis shown to the health worker"""
    condition: str
    probability: int = Field(..., ge=0, le=100, description="Likelihood in percent")
    severity: DiagnosisSeverity
    reasoning: str = ""
    recommended_tests: List[str] = Field(default_factory=list)
    referral_needed: bool = False
    treatment_options: List[str] = Field(default_factory=list)


# ============================================================================
# INTAKE RECORD: AGGREGATE OWNED BY THE ORCHESTRATOR
# ============================================================================

class IntakeRecord(BaseModel):
    """Everything collected for one patient visit"""
    patient: Optional[PatientRecord] = None
    symptoms: List[Symptom] = Field(default_factory=list)
    vitals: VitalSigns = Field(default_factory=VitalSigns)
    images: List[MedicalImage] = Field(default_factory=list)
