"""
MedAssist: Analysis Orchestrator
Owns the aggregate intake record and runs the Idle -> Running -> Idle
analysis cycle behind the required-data guard.
"""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from analysis_engine import MockDiagnosticEngine, get_analysis_engine, requires_emergency_alert
from config import settings
from models import (
    AnalysisState,
    DiagnosisRecord,
    IntakeRecord,
    MedicalImage,
    PatientRecord,
    Symptom,
    VitalSigns,
)

logger = logging.getLogger(__name__)

MISSING_DATA_NOTICE = "Please fill in patient information and symptoms before analyzing."


class AnalysisRefused(Exception):
    """Required patient data or symptoms are missing"""


class AnalysisInProgress(Exception):
    """An analysis is already running for this intake"""


class AnalysisOrchestrator:
    """
    Aggregates what the collectors report and decides when an analysis
    may run.

    Collectors feed the orchestrator through three update messages:
    on_patient_update, on_symptoms_update and on_images_update. The
    completion of an analysis is an asyncio task owned by the orchestrator;
    cancel() must be called when the owning session goes away.
    """

    def __init__(
        self,
        engine: Optional[MockDiagnosticEngine] = None,
        delay_seconds: Optional[float] = None,
    ):
        self.engine = engine or get_analysis_engine()
        self.delay_seconds = delay_seconds
        self.record = IntakeRecord()
        self.state = AnalysisState.IDLE
        self.emergency_alerts = 0
        self.diagnoses: List[DiagnosisRecord] = []
        self.completed_at: Optional[datetime] = None
        self._pending: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Update messages
    # ------------------------------------------------------------------

    def on_patient_update(self, patient: PatientRecord) -> None:
        self.record.patient = patient

    def on_symptoms_update(self, symptoms: List[Symptom], vitals: VitalSigns) -> None:
        self.record.symptoms = symptoms
        self.record.vitals = vitals

    def on_images_update(self, images: List[MedicalImage]) -> None:
        self.record.images = images

    # ------------------------------------------------------------------
    # Analysis cycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self.state == AnalysisState.RUNNING

    def has_required_data(self) -> bool:
        patient = self.record.patient
        return patient is not None and patient.is_complete() and len(self.record.symptoms) > 0

    def start_analysis(self) -> asyncio.Task:
        """
        Enter Running and schedule the delayed completion.

        Must be called from inside a running event loop. Raises
        AnalysisRefused (nothing changes) when the guard fails and
        AnalysisInProgress when a run is already pending.
        """
        if not self.has_required_data():
            raise AnalysisRefused(MISSING_DATA_NOTICE)
        if self.is_running:
            raise AnalysisInProgress("Analysis already in progress")

        loop = asyncio.get_running_loop()
        self.state = AnalysisState.RUNNING

        if requires_emergency_alert(self.record.symptoms, self.record.vitals):
            # At most one outstanding critical alert
            self.emergency_alerts = 1
            logger.warning("🚨 Emergency criteria met (severe symptom or temperature > 104°F)")

        self._pending = loop.create_task(self._complete_after_delay())
        logger.info(f"🧠 Analysis started ({len(self.record.symptoms)} symptom(s))")
        return self._pending

    async def _complete_after_delay(self) -> List[DiagnosisRecord]:
        delay = self.delay_seconds if self.delay_seconds is not None else settings.analysis_delay_seconds
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            # cancel() already reset state; a newer run may own it by now
            logger.info("⏹️ Analysis cancelled before completion")
            raise

        if self._pending is not asyncio.current_task():
            return []

        self.diagnoses = self.engine.analyze(self.record)
        self.completed_at = datetime.now()
        self.state = AnalysisState.IDLE
        self._pending = None
        logger.info(f"✅ Analysis complete: {len(self.diagnoses)} candidate diagnoses")
        return self.diagnoses

    def cancel(self) -> bool:
        """Cancel a pending completion; returns True if one was pending"""
        pending = self._pending
        if pending is None or pending.done():
            return False
        pending.cancel()
        self._pending = None
        self.state = AnalysisState.IDLE
        return True

    async def wait(self) -> None:
        """Block until the pending completion (if any) has finished or been cancelled"""
        pending = self._pending
        if pending is None:
            return
        try:
            await pending
        except asyncio.CancelledError:
            if not pending.cancelled():
                raise
