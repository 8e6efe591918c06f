import os
import sys
from unittest.mock import MagicMock

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from core.exceptions import ProjectNotFoundError, StorageError
from core.models.domain import GroundReading, Measurement, Project, Severity, SystemType
from core.pipelines.diagnosis_pipeline import run_project_diagnosis
from database.memory_store import InMemoryStore


@pytest.fixture
def store():
    store = InMemoryStore()
    store.create_project(Project(id="p1", name="Plant room", system_type=SystemType.THREE_PHASE, voltage_rating=400))
    return store


def test_unknown_project(store):
    with pytest.raises(ProjectNotFoundError):
        run_project_diagnosis(store, "missing")


def test_no_measurements(store):
    diagnosis = run_project_diagnosis(store, "p1")

    assert [i.code for i in diagnosis.issues] == ["NO_DATA"]
    assert store.list_diagnoses("p1") == []


def test_uses_latest_measurement_and_saves(store):
    store.create_measurement(Measurement(project_id="p1", timestamp="2024-05-01T00:00:00+00:00",
                                         ground=GroundReading(resistance=30)))
    store.create_measurement(Measurement(project_id="p1", timestamp="2024-05-02T00:00:00+00:00",
                                         ground=GroundReading(resistance=8)))

    diagnosis = run_project_diagnosis(store, "p1", save=True)

    assert diagnosis.severity == Severity.WARNING
    assert diagnosis.id is not None
    assert [d.id for d in store.list_diagnoses("p1")] == [diagnosis.id]


def test_window_limit_is_passed_to_store():
    store = MagicMock()
    store.get_project.return_value = Project(id="p1", name="x", system_type=SystemType.DC, voltage_rating=48)
    store.list_measurements.return_value = []

    run_project_diagnosis(store, "p1", limit=5)

    store.list_measurements.assert_called_once_with("p1", 5)
    store.save_diagnosis.assert_not_called()


def test_save_failure_propagates():
    store = MagicMock()
    store.get_project.return_value = Project(id="p1", name="x", system_type=SystemType.DC, voltage_rating=48)
    store.list_measurements.return_value = []
    store.save_diagnosis.side_effect = StorageError("Failed to save diagnosis")

    with pytest.raises(StorageError):
        run_project_diagnosis(store, "p1", save=True)
