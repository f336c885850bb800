"""
Pytest Configuration and Shared Fixtures

Keeps analysis delays short and gives every test a fresh session store.
"""

import pytest

import session_store
from config import settings
from models import PatientRecord, Gender


FAST_DELAY = 0.2


@pytest.fixture(autouse=True)
def fast_analysis(monkeypatch):
    """Shrink the simulated analysis latency for every test."""
    monkeypatch.setattr(settings, "analysis_delay_seconds", FAST_DELAY)
    return FAST_DELAY


@pytest.fixture(autouse=True)
def fresh_store(monkeypatch):
    """Reset the process-wide session store."""
    monkeypatch.setattr(session_store, "_store", None)
    return session_store.get_store()


@pytest.fixture
def complete_patient():
    return PatientRecord(name="Asha Devi", age="42", gender=Gender.FEMALE, village="Rampur")


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from backend import app

    with TestClient(app) as test_client:
        yield test_client
