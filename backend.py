"""
MedAssist: FastAPI Backend
In-memory intake sessions, collectors and the simulated analysis
"""

from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, File, HTTPException, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import logging

from collectors import IncomingFile
from config import settings
from models import COMMON_SYMPTOMS
from orchestrator import AnalysisInProgress, AnalysisRefused
from presenter import build_status_banner, present_results
from session_store import IntakeSession, get_store

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 MedAssist API Starting")
    yield
    closed = get_store().close_all()
    logger.info(f"Shutting down, discarded {closed} session(s)")


app = FastAPI(title="MedAssist API", version="2.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# REQUEST BODIES
# ============================================================================

class FieldValue(BaseModel):
    value: str = ""


class SymptomCreate(BaseModel):
    name: str


class FieldUpdate(BaseModel):
    field: str
    value: str = ""


class PreviewRequest(BaseModel):
    image_id: str

# ============================================================================
# HELPERS
# ============================================================================

def require_session(session_id: str) -> IntakeSession:
    session = get_store().get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def server_error(context: str, e: Exception) -> HTTPException:
    logger.error(f"❌ {context} error: {e}")
    return HTTPException(status_code=500, detail=str(e))

# ============================================================================
# SESSIONS
# ============================================================================

@app.post("/sessions")
async def create_session():
    """Open a blank intake form"""
    session = get_store().create_session()
    return session.snapshot()


@app.get("/sessions/{session_id}")
async def get_session(session_id: str):
    return require_session(session_id).snapshot()


@app.delete("/sessions/{session_id}")
async def close_session(session_id: str):
    """Discard everything entered; cancels a pending analysis"""
    session = get_store().close_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"session_id": session_id, "closed": True}

# ============================================================================
# PATIENT
# ============================================================================

@app.put("/sessions/{session_id}/patient/{field}")
async def update_patient(session_id: str, field: str, body: FieldValue):
    session = require_session(session_id)
    try:
        session.patient_collector.update_field(field, body.value)
        return session.snapshot()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise server_error("Patient update", e)

# ============================================================================
# SYMPTOMS & VITALS
# ============================================================================

@app.post("/sessions/{session_id}/symptoms")
async def add_symptom(session_id: str, body: SymptomCreate):
    """Add a symptom; a duplicate name leaves the list unchanged"""
    session = require_session(session_id)
    symptom = session.symptom_collector.add_symptom(body.name)
    if symptom is None:
        logger.info(f"Symptom {body.name!r} ignored (blank or already listed)")
    return session.snapshot()


@app.patch("/sessions/{session_id}/symptoms/{symptom_id}")
async def update_symptom(session_id: str, symptom_id: str, body: FieldUpdate):
    session = require_session(session_id)
    try:
        symptom = session.symptom_collector.update_symptom(symptom_id, body.field, body.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if symptom is None:
        raise HTTPException(status_code=404, detail="Symptom not found")
    return session.snapshot()


@app.delete("/sessions/{session_id}/symptoms/{symptom_id}")
async def remove_symptom(session_id: str, symptom_id: str):
    session = require_session(session_id)
    if session.symptom_collector.remove_symptom(symptom_id) is None:
        raise HTTPException(status_code=404, detail="Symptom not found")
    return session.snapshot()


@app.put("/sessions/{session_id}/vitals/{field}")
async def update_vital(session_id: str, field: str, body: FieldValue):
    session = require_session(session_id)
    try:
        session.symptom_collector.update_vital(field, body.value)
        return session.snapshot()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/symptoms/common")
async def common_symptoms():
    return COMMON_SYMPTOMS

# ============================================================================
# IMAGES
# ============================================================================

@app.post("/sessions/{session_id}/images")
async def upload_images(session_id: str, files: List[UploadFile] = File(...)):
    """Accept a batch from the file picker; non-image files are skipped"""
    session = require_session(session_id)
    try:
        incoming = []
        for upload in files:
            payload = await upload.read()
            incoming.append(IncomingFile(
                filename=upload.filename or "",
                content_type=upload.content_type or "",
                payload=payload,
            ))

        added = await session.image_collector.add_files(incoming)
        logger.info(f"🖼️ {len(added)} of {len(incoming)} upload(s) accepted for {session_id[:8]}...")
        return session.snapshot()
    except Exception as e:
        raise server_error("Image upload", e)


@app.patch("/sessions/{session_id}/images/{image_id}")
async def update_image(session_id: str, image_id: str, body: FieldUpdate):
    session = require_session(session_id)
    try:
        image = session.image_collector.update_image(image_id, body.field, body.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if image is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return session.snapshot()


@app.delete("/sessions/{session_id}/images/{image_id}")
async def remove_image(session_id: str, image_id: str):
    session = require_session(session_id)
    if session.image_collector.remove_image(image_id) is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return session.snapshot()


@app.get("/sessions/{session_id}/images/{image_id}/content")
async def image_content(session_id: str, image_id: str):
    """Original bytes, for full-size display"""
    session = require_session(session_id)
    image = session.image_collector.get_image(image_id)
    if image is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return Response(content=image.payload, media_type=image.content_type)


@app.put("/sessions/{session_id}/preview")
async def set_preview(session_id: str, body: PreviewRequest):
    session = require_session(session_id)
    if session.image_collector.set_preview(body.image_id) is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return session.snapshot()


@app.delete("/sessions/{session_id}/preview")
async def clear_preview(session_id: str):
    session = require_session(session_id)
    session.image_collector.clear_preview()
    return session.snapshot()

# ============================================================================
# ANALYSIS
# ============================================================================

@app.post("/sessions/{session_id}/analyze")
async def analyze(session_id: str):
    """Start the simulated analysis; results appear after the configured delay"""
    session = require_session(session_id)
    try:
        session.orchestrator.start_analysis()
        return session.snapshot()
    except AnalysisRefused as e:
        logger.info(f"Analysis refused for {session_id[:8]}...: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except AnalysisInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        raise server_error("Analysis", e)


@app.get("/sessions/{session_id}/results")
async def results(session_id: str):
    orchestrator = require_session(session_id).orchestrator
    view = present_results(
        orchestrator.diagnoses,
        is_analyzing=orchestrator.is_running,
        generated_at=orchestrator.completed_at,
    )
    return view.model_dump(mode="json")


@app.get("/sessions/{session_id}/status")
async def status(session_id: str):
    session = require_session(session_id)
    banner = build_status_banner(
        is_online=session.is_online,
        pending_sync=session.pending_sync,
        emergency_alerts=session.orchestrator.emergency_alerts,
    )
    return banner.model_dump(mode="json")

# ============================================================================
# HEALTH
# ============================================================================

@app.get("/health")
async def api_health():
    """API health"""
    return {"status": "healthy", **get_store().health_check()}

# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    logger.info(f"🚀 Starting on http://{settings.backend_host}:{settings.backend_port}")
    uvicorn.run(app, host=settings.backend_host, port=settings.backend_port, workers=1)
