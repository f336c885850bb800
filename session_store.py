"""
MedAssist: In-Memory Intake Sessions
One session per open intake form; nothing is persisted.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from collectors import ImageCollector, PatientCollector, SymptomCollector
from models import new_id
from orchestrator import AnalysisOrchestrator

logger = logging.getLogger(__name__)


class IntakeSession:
    """
    The three collectors of one intake form wired into one orchestrator.
    """

    def __init__(self, session_id: Optional[str] = None, orchestrator: Optional[AnalysisOrchestrator] = None):
        self.session_id = session_id or new_id()
        self.created_at = datetime.now()
        self.orchestrator = orchestrator or AnalysisOrchestrator()

        self.patient_collector = PatientCollector(on_update=self.orchestrator.on_patient_update)
        self.symptom_collector = SymptomCollector(on_update=self.orchestrator.on_symptoms_update)
        self.image_collector = ImageCollector(on_update=self.orchestrator.on_images_update)

        # Display-only; there is no sync transport behind these
        self.is_online = True
        self.pending_sync = 0

    def close(self) -> None:
        if self.orchestrator.cancel():
            logger.info(f"Cancelled pending analysis for session {self.session_id[:8]}...")

    def snapshot(self) -> Dict:
        """JSON-ready view of the whole form"""
        orchestrator = self.orchestrator
        patient = self.patient_collector.patient
        return {
            "session_id": self.session_id,
            "created_at": self.created_at.isoformat(),
            "patient": patient.model_dump(mode="json"),
            "symptoms": [s.model_dump(mode="json") for s in self.symptom_collector.symptoms],
            "vitals": self.symptom_collector.vitals.model_dump(mode="json"),
            "images": [i.model_dump(mode="json") for i in self.image_collector.images],
            "preview_image_id": self.image_collector.preview_id,
            "analysis": {
                "state": orchestrator.state.value,
                "has_required_data": orchestrator.has_required_data(),
                "emergency_alerts": orchestrator.emergency_alerts,
                "completed_at": orchestrator.completed_at.isoformat() if orchestrator.completed_at else None,
            },
        }


class IntakeSessionStore:
    """Session registry keyed by session id"""

    def __init__(self):
        self.sessions: Dict[str, IntakeSession] = {}

    def create_session(self) -> IntakeSession:
        session = IntakeSession()
        self.sessions[session.session_id] = session
        logger.info(f"📋 Session opened: {session.session_id[:8]}...")
        return session

    def get_session(self, session_id: str) -> Optional[IntakeSession]:
        return self.sessions.get(session_id)

    def close_session(self, session_id: str) -> Optional[IntakeSession]:
        session = self.sessions.pop(session_id, None)
        if session is None:
            return None
        session.close()
        logger.info(f"🗑️ Session closed: {session_id[:8]}...")
        return session

    def close_all(self) -> int:
        ids: List[str] = list(self.sessions)
        for session_id in ids:
            self.close_session(session_id)
        return len(ids)

    def health_check(self) -> Dict:
        running = sum(1 for s in self.sessions.values() if s.orchestrator.is_running)
        alerts = sum(s.orchestrator.emergency_alerts for s in self.sessions.values())
        return {
            "active_sessions": len(self.sessions),
            "running_analyses": running,
            "emergency_alerts": alerts,
            "timestamp": datetime.now().isoformat(),
        }


_store = None


def get_store() -> IntakeSessionStore:
    """Get or initialize the session store"""
    global _store
    if _store is None:
        _store = IntakeSessionStore()
    return _store
