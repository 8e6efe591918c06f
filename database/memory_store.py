"""
In-process store with the same interface as ``MongoStore``.

Used when no MONGODB_URI is configured and throughout the tests.
"""

import dataclasses
import itertools
import threading
from typing import List, Optional

from core.models.domain import Diagnosis, Measurement, Project, new_document_id, utc_now_iso


class InMemoryStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._seq = itertools.count()
        self._projects = {}
        self._measurements = []   # (timestamp, seq, Measurement)
        self._diagnoses = []      # (timestamp, seq, Diagnosis)

    def ping(self) -> bool:
        return True

    # --- projects ---

    def create_project(self, project: Project) -> Project:
        stored = dataclasses.replace(
            project,
            id=project.id or new_document_id(),
            created_at=project.created_at or utc_now_iso(),
        )
        with self._lock:
            self._projects[stored.id] = stored
        return stored

    def list_projects(self) -> List[Project]:
        with self._lock:
            return sorted(self._projects.values(), key=lambda p: p.created_at or "", reverse=True)

    def get_project(self, project_id: str) -> Optional[Project]:
        with self._lock:
            return self._projects.get(project_id)

    # --- measurements ---

    def create_measurement(self, measurement: Measurement) -> Measurement:
        stored = dataclasses.replace(
            measurement,
            id=measurement.id or new_document_id(),
            timestamp=measurement.timestamp or utc_now_iso(),
        )
        with self._lock:
            self._measurements.append((stored.timestamp, next(self._seq), stored))
        return stored

    def list_measurements(self, project_id: str, limit: int = 20) -> List[Measurement]:
        """Newest first, at most ``limit`` items."""
        with self._lock:
            rows = [row for row in self._measurements if row[2].project_id == project_id]
        rows.sort(key=lambda row: (row[0], row[1]), reverse=True)
        return [row[2] for row in rows[:limit]]

    # --- diagnoses ---

    def save_diagnosis(self, diagnosis: Diagnosis) -> Diagnosis:
        stored = dataclasses.replace(diagnosis, id=diagnosis.id or new_document_id())
        with self._lock:
            self._diagnoses.append((stored.timestamp, next(self._seq), stored))
        return stored

    def list_diagnoses(self, project_id: str, limit: int = 20) -> List[Diagnosis]:
        with self._lock:
            rows = [row for row in self._diagnoses if row[2].project_id == project_id]
        rows.sort(key=lambda row: (row[0], row[1]), reverse=True)
        return [row[2] for row in rows[:limit]]
