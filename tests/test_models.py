import os
import sys

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from core.models.domain import (
    Diagnosis,
    GroundReading,
    Issue,
    Measurement,
    PhaseReading,
    Project,
    Recommendation,
    Severity,
    SystemType,
    new_document_id,
    utc_now_iso,
)


def test_absent_readings_are_omitted_not_zeroed():
    measurement = Measurement(
        project_id="p1",
        phase_a=PhaseReading(voltage=230, current=12.5),
        ground=GroundReading(resistance=1.8),
    )

    doc = measurement.to_dict()

    assert doc == {
        "projectId": "p1",
        "phaseA": {"voltage": 230, "current": 12.5},
        "ground": {"resistance": 1.8},
    }


def test_measurement_from_mongo_document():
    doc = {
        "_id": "abc123",
        "projectId": "p1",
        "timestamp": "2024-05-01T10:00:00+00:00",
        "phaseA": {"voltage": "231.5", "current": 10, "temperature": 41},
        "neutral": {"current": 1.2},
        "powerFactor": 0.91,
    }

    measurement = Measurement.from_dict(doc)

    assert measurement.id == "abc123"
    assert measurement.phase_a.voltage == 231.5
    assert measurement.phase_a.power is None
    assert measurement.phase_b is None
    assert measurement.neutral.voltage is None
    assert measurement.frequency is None
    assert measurement.power_factor == 0.91


def test_phases_lists_present_phases_in_order():
    measurement = Measurement(
        project_id="p1",
        phase_c=PhaseReading(voltage=400, current=3),
        phase_a=PhaseReading(voltage=400, current=1),
    )

    assert [name for name, _ in measurement.phases()] == ["A", "C"]


def test_project_wire_format():
    project = Project.from_dict({
        "_id": "p9",
        "name": "Workshop",
        "systemType": "dc-system",
        "voltageRating": 48,
        "clientName": "ACME",
    })

    assert project.system_type == SystemType.DC
    assert project.to_dict() == {
        "id": "p9",
        "name": "Workshop",
        "systemType": "dc-system",
        "voltageRating": 48.0,
        "status": "active",
        "clientName": "ACME",
    }


def test_diagnosis_document():
    diagnosis = Diagnosis(
        project_id="p1",
        timestamp="2024-05-01T10:00:00+00:00",
        issues=(Issue("LOW_POWER_FACTOR", "Power factor 0.60 is below optimal range", Severity.WARNING,
                      "Power system efficiency", ("Harmonics",)),),
        recommendations=(Recommendation(3, "Consider power factor correction", "1 day"),),
        severity=Severity.WARNING,
    )

    doc = diagnosis.to_dict()

    assert "safetyAlert" not in doc
    assert "id" not in doc
    assert doc["issues"][0]["affectedComponent"] == "Power system efficiency"
    assert doc["recommendations"][0] == {
        "priority": 3,
        "action": "Consider power factor correction",
        "estimatedTime": "1 day",
    }
    assert Diagnosis.from_dict(dict(doc, _id="d1")) == Diagnosis(
        project_id="p1",
        timestamp=diagnosis.timestamp,
        issues=diagnosis.issues,
        recommendations=diagnosis.recommendations,
        severity=Severity.WARNING,
        id="d1",
    )


def test_severity_rank():
    assert Severity.INFO.rank < Severity.WARNING.rank < Severity.CRITICAL.rank


def test_ids_and_timestamps():
    doc_id = new_document_id()
    assert len(doc_id) == 24
    int(doc_id, 16)

    assert utc_now_iso().endswith("+00:00")
