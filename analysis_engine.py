"""
MedAssist: Diagnostic Engine
Emergency screening rule plus the pre-authored differential used until a
real inference backend is plugged in. Works fully offline.
"""

import logging
import re
from typing import List, Optional

from models import (
    DiagnosisRecord,
    DiagnosisSeverity,
    IntakeRecord,
    Symptom,
    SymptomSeverity,
    VitalSigns,
)

logger = logging.getLogger(__name__)

# Fahrenheit, as entered on the vitals form
EMERGENCY_TEMPERATURE_F = 104.0

_LEADING_NUMBER = re.compile(r"[-+]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)", re.ASCII)

DIAGNOSIS_LIBRARY = [
    DiagnosisRecord(
        condition="Acute Respiratory Infection",
        probability=85,
        severity=DiagnosisSeverity.MEDIUM,
        reasoning=(
            "Patient presents with fever (101.2°F), productive cough, and elevated "
            "respiratory rate. Combination of symptoms and vital signs strongly "
            "suggest respiratory tract infection, possibly bacterial given the severity."
        ),
        recommended_tests=[
            "Complete Blood Count (CBC)",
            "Chest X-ray",
            "Sputum culture if available",
            "Pulse oximetry monitoring",
        ],
        referral_needed=False,
        treatment_options=[
            "Empirical antibiotic therapy (Amoxicillin 500mg TID)",
            "Supportive care with adequate hydration",
            "Paracetamol for fever management",
            "Monitor for complications",
        ],
    ),
    DiagnosisRecord(
        condition="Viral Upper Respiratory Tract Infection",
        probability=65,
        severity=DiagnosisSeverity.LOW,
        reasoning=(
            "Symptoms could also indicate viral URTI. The fever pattern and lack of "
            "severe systemic symptoms make this a reasonable differential diagnosis."
        ),
        recommended_tests=[
            "Rapid strep test if available",
            "Monitor temperature trend",
            "Symptom monitoring for 48-72 hours",
        ],
        referral_needed=False,
        treatment_options=[
            "Symptomatic treatment with rest",
            "Adequate fluid intake",
            "Paracetamol for fever and discomfort",
            "Steam inhalation for congestion",
        ],
    ),
    DiagnosisRecord(
        condition="Pneumonia",
        probability=45,
        severity=DiagnosisSeverity.HIGH,
        reasoning=(
            "Given the respiratory symptoms and fever, pneumonia remains in the "
            "differential. Would require chest imaging for confirmation."
        ),
        recommended_tests=[
            "Chest X-ray (mandatory)",
            "Complete Blood Count",
            "Blood culture if severe",
            "Arterial blood gas if respiratory distress",
        ],
        referral_needed=True,
        treatment_options=[
            "IV antibiotics if confirmed",
            "Oxygen therapy if needed",
            "Hospital admission consideration",
            "Close monitoring of vital signs",
        ],
    ),
]


def parse_temperature(value: str) -> Optional[float]:
    """
    Read the leading number of a free-text temperature.
    "104.5", " 105F" and "101.2 axillary" all parse; "" and "hot" give None.
    """
    if not value:
        return None
    match = _LEADING_NUMBER.match(value.lstrip())
    if match is None:
        return None
    return float(match.group(0))


def requires_emergency_alert(symptoms: List[Symptom], vitals: Optional[VitalSigns]) -> bool:
    """
    Safety screen run when an analysis starts.
    """

    # ---------------------------------------------------------
    # 1️⃣ Any symptom reported as severe
    # ---------------------------------------------------------
    if any(s.severity == SymptomSeverity.SEVERE for s in symptoms):
        return True

    # ---------------------------------------------------------
    # 2️⃣ Hyperpyrexia; unparseable temperatures never trigger
    # ---------------------------------------------------------
    if vitals is not None:
        temperature = parse_temperature(vitals.temperature)
        if temperature is not None and temperature > EMERGENCY_TEMPERATURE_F:
            return True

    return False


class MockDiagnosticEngine:
    """Returns the authored differential regardless of the intake content"""

    def __init__(self, library: Optional[List[DiagnosisRecord]] = None):
        self.library = library if library is not None else DIAGNOSIS_LIBRARY
        logger.info(f"🔧 Diagnostic engine ready ({len(self.library)} authored diagnoses)")

    def analyze(self, record: IntakeRecord) -> List[DiagnosisRecord]:
        """Fresh copies so callers can never mutate the library"""
        logger.debug(
            f"Analyzing intake: {len(record.symptoms)} symptom(s), {len(record.images)} image(s)"
        )
        return [d.model_copy(deep=True) for d in self.library]


# Global engine instance
_engine = None


def get_analysis_engine() -> MockDiagnosticEngine:
    """Get or initialize the diagnostic engine"""
    global _engine
    if _engine is None:
        _engine = MockDiagnosticEngine()
    return _engine
