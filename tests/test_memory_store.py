import os
import sys

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from core.models.domain import Diagnosis, Measurement, Project, SystemType
from database.memory_store import InMemoryStore


def make_project(name="Plant room"):
    return Project(name=name, system_type=SystemType.THREE_PHASE, voltage_rating=400)


def test_create_and_get_project():
    store = InMemoryStore()

    project = store.create_project(make_project())

    assert len(project.id) == 24
    assert project.created_at is not None
    assert store.get_project(project.id) == project
    assert store.get_project("missing") is None


def test_projects_listed_newest_first():
    store = InMemoryStore()
    old = store.create_project(Project(name="old", system_type=SystemType.DC, voltage_rating=48,
                                       created_at="2024-01-01T00:00:00+00:00"))
    new = store.create_project(Project(name="new", system_type=SystemType.DC, voltage_rating=48,
                                       created_at="2024-02-01T00:00:00+00:00"))

    assert [p.id for p in store.list_projects()] == [new.id, old.id]


def test_measurements_newest_first_with_limit():
    store = InMemoryStore()
    for day in (3, 1, 2, 5, 4):
        store.create_measurement(Measurement(project_id="p1", timestamp=f"2024-05-0{day}T00:00:00+00:00",
                                             temperature=float(day)))
    store.create_measurement(Measurement(project_id="other", timestamp="2024-05-09T00:00:00+00:00"))

    measurements = store.list_measurements("p1", limit=3)

    assert [m.temperature for m in measurements] == [5.0, 4.0, 3.0]
    assert all(m.id for m in measurements)


def test_measurement_gets_a_timestamp():
    store = InMemoryStore()

    stored = store.create_measurement(Measurement(project_id="p1"))

    assert stored.timestamp.endswith("+00:00")


def test_same_timestamp_keeps_insertion_order_newest_first():
    store = InMemoryStore()
    first = store.create_measurement(Measurement(project_id="p1", timestamp="2024-05-01T00:00:00+00:00"))
    second = store.create_measurement(Measurement(project_id="p1", timestamp="2024-05-01T00:00:00+00:00"))

    assert [m.id for m in store.list_measurements("p1")] == [second.id, first.id]


def test_diagnosis_history():
    store = InMemoryStore()
    store.save_diagnosis(Diagnosis(project_id="p1", timestamp="2024-05-01T00:00:00+00:00"))
    latest = store.save_diagnosis(Diagnosis(project_id="p1", timestamp="2024-05-02T00:00:00+00:00"))
    store.save_diagnosis(Diagnosis(project_id="p2", timestamp="2024-05-03T00:00:00+00:00"))

    history = store.list_diagnoses("p1")

    assert len(history) == 2
    assert history[0].id == latest.id
    assert store.ping() is True
