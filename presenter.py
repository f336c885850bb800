"""
MedAssist: Result Presenter & Status Banner
Pure view builders; nothing here mutates session state.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from models import DiagnosisRecord, DiagnosisSeverity

# ============================================================================
# STATIC PRODUCT TEXT
# ============================================================================

PRODUCT_NAME = "MedAssist AI"
PRODUCT_TAGLINE = "Rural Healthcare Diagnostic System"
VERSION_LINE = "MedAssist AI v2.1"
COMPLIANCE_LINE = "Compliant with Indian Medical Council Guidelines"
DATA_HANDLING_LINE = "Data processed locally with end-to-end encryption"
SUPPORT_PHONE = "1800-XXX-XXXX"
EMERGENCY_PHONE = "108"
COMPLIANCE_BADGE = "HIPAA Compliant"

DISCLAIMER_TITLE = "Important Medical Disclaimer"
DISCLAIMER = (
    "These AI-generated suggestions are for clinical decision support only and should "
    "not replace professional medical judgment. Always consider patient's complete "
    "clinical picture and local medical protocols before making treatment decisions."
)
CRITICAL_ACTION = "Contact emergency services or refer to nearest hospital immediately."
REQUIRED_DATA_HINT = "Complete patient information and symptoms to enable analysis"


class ResultPhase(str, Enum):
    ANALYZING = "analyzing"
    EMPTY = "empty"
    POPULATED = "populated"


class ResultView(BaseModel):
    """Everything the results panel needs to draw itself"""
    phase: ResultPhase
    headline: str
    message: str = ""
    diagnoses: List[DiagnosisRecord] = Field(default_factory=list)
    critical_alerts: List[str] = Field(default_factory=list)
    critical_action: str = ""
    disclaimer_title: str = DISCLAIMER_TITLE
    disclaimer: str = DISCLAIMER
    generated_at: Optional[datetime] = None


class StatusBanner(BaseModel):
    """Header badges; connectivity values are display-only"""
    product_name: str = PRODUCT_NAME
    tagline: str = PRODUCT_TAGLINE
    is_online: bool = True
    pending_sync: int = Field(default=0, ge=0)
    emergency_alerts: int = Field(default=0, ge=0)
    badges: List[str] = Field(default_factory=list)


def present_results(
    diagnoses: List[DiagnosisRecord],
    is_analyzing: bool,
    generated_at: Optional[datetime] = None,
) -> ResultView:
    """
    Decide how the results panel looks.

    Analyzing wins over everything else; an empty list asks the user for
    input; otherwise every diagnosis is listed and the critical ones are
    pulled out into a separate alert block.
    """
    if is_analyzing:
        return ResultView(
            phase=ResultPhase.ANALYZING,
            headline="AI Analysis in Progress",
            message="Processing medical data and generating diagnostic suggestions...",
        )

    if not diagnoses:
        return ResultView(
            phase=ResultPhase.EMPTY,
            headline="No analysis yet",
            message="Enter patient information and symptoms to generate diagnostic suggestions",
        )

    critical = [d.condition for d in diagnoses if d.severity == DiagnosisSeverity.CRITICAL]
    return ResultView(
        phase=ResultPhase.POPULATED,
        headline="AI Diagnostic Analysis",
        diagnoses=list(diagnoses),
        critical_alerts=critical,
        critical_action=CRITICAL_ACTION if critical else "",
        generated_at=generated_at or datetime.now(),
    )


SEVERITY_STYLES = {
    DiagnosisSeverity.LOW: "green",
    DiagnosisSeverity.MEDIUM: "yellow",
    DiagnosisSeverity.HIGH: "orange",
    DiagnosisSeverity.CRITICAL: "red",
}


def severity_style(severity) -> str:
    try:
        return SEVERITY_STYLES[DiagnosisSeverity(severity)]
    except ValueError:
        return "gray"


def probability_style(probability: int) -> str:
    if probability >= 80:
        return "red"
    if probability >= 60:
        return "orange"
    if probability >= 40:
        return "yellow"
    return "green"


def severity_label(severity) -> str:
    """'medium' -> 'Medium Priority'"""
    value = severity.value if isinstance(severity, DiagnosisSeverity) else str(severity)
    return f"{value.capitalize()} Priority"


def build_status_banner(is_online: bool, pending_sync: int, emergency_alerts: int) -> StatusBanner:
    badges = []
    if emergency_alerts > 0:
        badges.append(f"{emergency_alerts} Critical")

    if is_online:
        badges.append("Online")
    else:
        badges.append("Offline")
        if pending_sync > 0:
            badges.append(f"{pending_sync} pending sync")

    badges.append(COMPLIANCE_BADGE)

    return StatusBanner(
        is_online=is_online,
        pending_sync=pending_sync,
        emergency_alerts=emergency_alerts,
        badges=badges,
    )


def footer_lines() -> List[str]:
    return [
        f"{VERSION_LINE} | {COMPLIANCE_LINE} | {DATA_HANDLING_LINE}",
        f"For technical support: {SUPPORT_PHONE} | Emergency: {EMERGENCY_PHONE}",
    ]
