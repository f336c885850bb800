"""Tests for the emergency screen and the authored differential."""

import pytest

from analysis_engine import (
    DIAGNOSIS_LIBRARY,
    MockDiagnosticEngine,
    get_analysis_engine,
    parse_temperature,
    requires_emergency_alert,
)
from models import IntakeRecord, Symptom, SymptomSeverity, VitalSigns


@pytest.mark.parametrize("text,expected", [
    ("104.5", 104.5),
    ("98.6", 98.6),
    (" 105F", 105.0),
    ("101.2 axillary", 101.2),
    (".5", 0.5),
    ("-2", -2.0),
    ("1e3", 1000.0),
    ("Infinity", float("inf")),
    ("-Infinity", float("-inf")),
    ("\u00a0102", 102.0),
])
def test_parse_temperature_reads_leading_number(text, expected):
    assert parse_temperature(text) == pytest.approx(expected)


# Arabic-Indic and fullwidth digits are not read as numbers
@pytest.mark.parametrize("text", ["", "hot", "F104", "   ", "inf", "nan", "١٠٥", "１０５"])
def test_parse_temperature_unparseable(text):
    assert parse_temperature(text) is None


class TestEmergencyScreen:
    def test_no_symptoms_no_vitals(self):
        assert requires_emergency_alert([], None) is False

    def test_severe_symptom(self):
        symptoms = [Symptom(name="Chest pain", severity=SymptomSeverity.SEVERE)]
        assert requires_emergency_alert(symptoms, VitalSigns()) is True

    def test_moderate_symptoms_only(self):
        symptoms = [Symptom(name="Cough", severity=SymptomSeverity.MODERATE)]
        assert requires_emergency_alert(symptoms, VitalSigns(temperature="100.4")) is False

    def test_hyperpyrexia(self):
        assert requires_emergency_alert([Symptom(name="Fever")], VitalSigns(temperature="104.1")) is True

    def test_threshold_is_strict(self):
        assert requires_emergency_alert([Symptom(name="Fever")], VitalSigns(temperature="104")) is False

    def test_infinite_temperature_triggers(self):
        assert requires_emergency_alert([Symptom(name="Fever")], VitalSigns(temperature="Infinity")) is True

    def test_unparseable_temperature_does_not_trigger(self):
        assert requires_emergency_alert([Symptom(name="Fever")], VitalSigns(temperature="burning")) is False


class TestMockDiagnosticEngine:
    def test_constant_differential(self):
        diagnoses = MockDiagnosticEngine().analyze(IntakeRecord())

        assert [(d.condition, d.probability, d.severity.value) for d in diagnoses] == [
            ("Acute Respiratory Infection", 85, "medium"),
            ("Viral Upper Respiratory Tract Infection", 65, "low"),
            ("Pneumonia", 45, "high"),
        ]
        assert [d.referral_needed for d in diagnoses] == [False, False, True]

    def test_output_ignores_input(self):
        engine = MockDiagnosticEngine()
        calm = engine.analyze(IntakeRecord(symptoms=[Symptom(name="Rash")]))
        busy = engine.analyze(IntakeRecord(
            symptoms=[Symptom(name="Chest pain", severity="severe"), Symptom(name="Fever")],
            vitals=VitalSigns(temperature="105"),
        ))
        assert calm == busy

    def test_results_are_copies(self):
        engine = MockDiagnosticEngine()
        diagnoses = engine.analyze(IntakeRecord())
        diagnoses[0].recommended_tests.append("Tampered")

        assert "Tampered" not in DIAGNOSIS_LIBRARY[0].recommended_tests
        assert "Tampered" not in engine.analyze(IntakeRecord())[0].recommended_tests

    def test_engine_is_shared(self):
        assert get_analysis_engine() is get_analysis_engine()
