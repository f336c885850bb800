"""Tests for the analysis state machine and the session wiring around it."""

import asyncio

import pytest

from models import AnalysisState, Gender, PatientRecord, Symptom, SymptomSeverity, VitalSigns
from orchestrator import AnalysisInProgress, AnalysisOrchestrator, AnalysisRefused, MISSING_DATA_NOTICE
from session_store import IntakeSession, IntakeSessionStore


def _ready(orchestrator, patient, symptoms=None, vitals=None):
    orchestrator.on_patient_update(patient)
    orchestrator.on_symptoms_update(symptoms or [Symptom(name="Cough")], vitals or VitalSigns())
    return orchestrator


# ===================================================================
# Guard
# ===================================================================

class TestGuard:
    def test_refused_without_patient(self):
        orchestrator = AnalysisOrchestrator()
        orchestrator.on_symptoms_update([Symptom(name="Cough")], VitalSigns())

        with pytest.raises(AnalysisRefused, match="patient information"):
            orchestrator.start_analysis()

        assert orchestrator.state == AnalysisState.IDLE

    def test_refused_with_empty_patient(self):
        orchestrator = _ready(AnalysisOrchestrator(), PatientRecord())
        with pytest.raises(AnalysisRefused):
            orchestrator.start_analysis()
        assert orchestrator.state == AnalysisState.IDLE

    def test_refused_without_symptoms(self, complete_patient):
        orchestrator = AnalysisOrchestrator()
        orchestrator.on_patient_update(complete_patient)
        orchestrator.on_symptoms_update([], VitalSigns(temperature="105"))

        with pytest.raises(AnalysisRefused) as exc_info:
            orchestrator.start_analysis()

        assert str(exc_info.value) == MISSING_DATA_NOTICE
        assert orchestrator.state == AnalysisState.IDLE
        assert orchestrator.emergency_alerts == 0
        assert orchestrator.diagnoses == []

    def test_required_data(self, complete_patient):
        orchestrator = AnalysisOrchestrator()
        assert orchestrator.has_required_data() is False
        _ready(orchestrator, complete_patient)
        assert orchestrator.has_required_data() is True


# ===================================================================
# Running
# ===================================================================

class TestAnalysisCycle:
    def test_completed_run_publishes_three_diagnoses(self, complete_patient):
        async def scenario():
            orchestrator = _ready(AnalysisOrchestrator(delay_seconds=0.01), complete_patient)
            orchestrator.start_analysis()
            assert orchestrator.state == AnalysisState.RUNNING
            assert orchestrator.diagnoses == []
            await orchestrator.wait()
            return orchestrator

        orchestrator = asyncio.run(scenario())

        assert orchestrator.state == AnalysisState.IDLE
        assert [d.condition for d in orchestrator.diagnoses] == [
            "Acute Respiratory Infection",
            "Viral Upper Respiratory Tract Infection",
            "Pneumonia",
        ]
        assert [d.probability for d in orchestrator.diagnoses] == [85, 65, 45]
        assert orchestrator.completed_at is not None

    def test_output_same_for_different_inputs(self, complete_patient):
        async def run(symptoms, vitals):
            orchestrator = _ready(AnalysisOrchestrator(delay_seconds=0), complete_patient, symptoms, vitals)
            orchestrator.start_analysis()
            await orchestrator.wait()
            return orchestrator.diagnoses

        first = asyncio.run(run([Symptom(name="Rash")], VitalSigns()))
        second = asyncio.run(run(
            [Symptom(name="Vomiting", severity="moderate"), Symptom(name="Dizziness")],
            VitalSigns(temperature="99", heart_rate="120"),
        ))
        assert first == second

    def test_uses_configured_delay(self, complete_patient, fast_analysis):
        async def scenario():
            orchestrator = _ready(AnalysisOrchestrator(), complete_patient)
            orchestrator.start_analysis()
            await asyncio.sleep(fast_analysis / 2)
            assert orchestrator.is_running
            await orchestrator.wait()
            assert not orchestrator.is_running

        asyncio.run(scenario())

    def test_second_trigger_while_running_refused(self, complete_patient):
        async def scenario():
            orchestrator = _ready(AnalysisOrchestrator(delay_seconds=0.05), complete_patient)
            orchestrator.start_analysis()
            with pytest.raises(AnalysisInProgress):
                orchestrator.start_analysis()
            await orchestrator.wait()
            # allowed again once idle
            orchestrator.start_analysis()
            await orchestrator.wait()
            return orchestrator

        assert len(asyncio.run(scenario()).diagnoses) == 3

    def test_cancel_returns_to_idle_without_results(self, complete_patient):
        async def scenario():
            orchestrator = _ready(AnalysisOrchestrator(delay_seconds=10), complete_patient)
            orchestrator.start_analysis()
            await asyncio.sleep(0)
            assert orchestrator.cancel() is True
            await orchestrator.wait()
            return orchestrator

        orchestrator = asyncio.run(scenario())
        assert orchestrator.state == AnalysisState.IDLE
        assert orchestrator.diagnoses == []
        assert orchestrator.cancel() is False

    def test_cancel_before_task_starts(self, complete_patient):
        async def scenario():
            orchestrator = _ready(AnalysisOrchestrator(delay_seconds=10), complete_patient)
            orchestrator.start_analysis()
            orchestrator.cancel()
            assert orchestrator.state == AnalysisState.IDLE
            await orchestrator.wait()
            return orchestrator

        assert asyncio.run(scenario()).diagnoses == []

    def test_restart_after_cancel_stays_running(self, complete_patient):
        async def scenario():
            orchestrator = _ready(AnalysisOrchestrator(delay_seconds=10), complete_patient)
            orchestrator.start_analysis()
            await asyncio.sleep(0)
            assert orchestrator.cancel() is True

            orchestrator.start_analysis()
            # let the cancelled run unwind
            await asyncio.sleep(0.01)

            assert orchestrator.state == AnalysisState.RUNNING
            assert orchestrator.is_running
            with pytest.raises(AnalysisInProgress):
                orchestrator.start_analysis()
            assert orchestrator.cancel() is True
            assert orchestrator.state == AnalysisState.IDLE

        asyncio.run(scenario())

    def test_restart_after_cancel_completes(self, complete_patient):
        async def scenario():
            orchestrator = _ready(AnalysisOrchestrator(delay_seconds=10), complete_patient)
            orchestrator.start_analysis()
            orchestrator.cancel()

            orchestrator.delay_seconds = 0.01
            orchestrator.start_analysis()
            await orchestrator.wait()
            return orchestrator

        orchestrator = asyncio.run(scenario())
        assert orchestrator.state == AnalysisState.IDLE
        assert len(orchestrator.diagnoses) == 3


# ===================================================================
# Emergency alert counter
# ===================================================================

class TestEmergencyAlerts:
    def _run(self, patient, symptoms, vitals=None, runs=1):
        async def scenario():
            orchestrator = _ready(AnalysisOrchestrator(delay_seconds=0), patient, symptoms, vitals)
            for _ in range(runs):
                orchestrator.start_analysis()
                await orchestrator.wait()
            return orchestrator

        return asyncio.run(scenario())

    def test_several_severe_symptoms_set_exactly_one(self, complete_patient):
        symptoms = [
            Symptom(name="Chest pain", severity=SymptomSeverity.SEVERE),
            Symptom(name="Shortness of breath", severity=SymptomSeverity.SEVERE),
            Symptom(name="Dizziness", severity=SymptomSeverity.SEVERE),
        ]
        assert self._run(complete_patient, symptoms).emergency_alerts == 1

    def test_high_temperature_alone(self, complete_patient):
        orchestrator = self._run(complete_patient, [Symptom(name="Fever")], VitalSigns(temperature="104.5"))
        assert orchestrator.emergency_alerts == 1

    def test_alert_set_when_run_starts(self, complete_patient):
        async def scenario():
            orchestrator = _ready(
                AnalysisOrchestrator(delay_seconds=0.05),
                complete_patient,
                [Symptom(name="Seizure", severity="severe")],
            )
            orchestrator.start_analysis()
            assert orchestrator.emergency_alerts == 1
            await orchestrator.wait()

        asyncio.run(scenario())

    def test_calm_case_has_no_alert(self, complete_patient):
        orchestrator = self._run(complete_patient, [Symptom(name="Cough")], VitalSigns(temperature="99.1"))
        assert orchestrator.emergency_alerts == 0

    def test_repeat_runs_do_not_accumulate(self, complete_patient):
        symptoms = [Symptom(name="Chest pain", severity=SymptomSeverity.SEVERE)]
        assert self._run(complete_patient, symptoms, runs=3).emergency_alerts == 1


# ===================================================================
# Sessions
# ===================================================================

class TestIntakeSession:
    def test_collectors_feed_the_orchestrator(self):
        session = IntakeSession()
        session.patient_collector.update_field("name", "Kiran")
        session.patient_collector.update_field("age", "55")
        session.patient_collector.update_field("gender", "male")
        session.symptom_collector.add_symptom("Cough")
        session.symptom_collector.update_vital("temperature", "101")

        record = session.orchestrator.record
        assert record.patient.name == "Kiran"
        assert record.patient.gender == Gender.MALE
        assert [s.name for s in record.symptoms] == ["Cough"]
        assert record.vitals.temperature == "101"
        assert session.orchestrator.has_required_data()

    def test_snapshot_shape(self):
        session = IntakeSession()
        session.symptom_collector.add_symptom("Rash")
        snapshot = session.snapshot()

        assert snapshot["session_id"] == session.session_id
        assert snapshot["symptoms"][0]["name"] == "Rash"
        assert snapshot["analysis"] == {
            "state": "idle",
            "has_required_data": False,
            "emergency_alerts": 0,
            "completed_at": None,
        }

    def test_closing_session_cancels_pending_analysis(self):
        async def scenario():
            store = IntakeSessionStore()
            session = store.create_session()
            session.orchestrator.delay_seconds = 10
            session.patient_collector.update_field("name", "Kiran")
            session.patient_collector.update_field("age", "55")
            session.patient_collector.update_field("gender", "male")
            session.symptom_collector.add_symptom("Cough")
            session.orchestrator.start_analysis()

            store.close_session(session.session_id)
            await session.orchestrator.wait()
            return store, session

        store, session = asyncio.run(scenario())
        assert store.get_session(session.session_id) is None
        assert session.orchestrator.state == AnalysisState.IDLE
        assert session.orchestrator.diagnoses == []

    def test_store_health(self):
        store = IntakeSessionStore()
        store.create_session()
        store.create_session()

        health = store.health_check()
        assert health["active_sessions"] == 2
        assert health["running_analyses"] == 0

        assert store.close_all() == 2
        assert store.sessions == {}
