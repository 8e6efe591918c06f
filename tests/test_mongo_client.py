import unittest
import os
import sys
from unittest.mock import MagicMock

from pymongo import DESCENDING
from pymongo.errors import ServerSelectionTimeoutError

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from core.exceptions import StorageError
from core.models.domain import Diagnosis, Measurement, PhaseReading, Project, Severity, SystemType
from database.mongo_client import MongoStore


class TestMongoStore(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.db = MagicMock()
        self.collections = {"projects": MagicMock(), "measurements": MagicMock(), "diagnoses": MagicMock()}
        self.client.__getitem__.return_value = self.db
        self.db.__getitem__.side_effect = lambda name: self.collections[name]
        self.store = MongoStore(db_name="wirescope_test", client=self.client)

    def test_uses_configured_database(self):
        self.client.__getitem__.assert_called_with("wirescope_test")

    def test_create_project_assigns_id(self):
        project = self.store.create_project(
            Project(name="Plant room", system_type=SystemType.THREE_PHASE, voltage_rating=400)
        )

        doc = self.collections["projects"].insert_one.call_args[0][0]
        self.assertEqual(doc["_id"], project.id)
        self.assertEqual(len(project.id), 24)
        self.assertEqual(doc["systemType"], "three-phase")
        self.assertNotIn("id", doc)
        self.assertIn("createdAt", doc)

    def test_get_project(self):
        self.collections["projects"].find_one.return_value = {
            "_id": "p1", "name": "Plant room", "systemType": "single-phase", "voltageRating": 230,
        }

        project = self.store.get_project("p1")

        self.collections["projects"].find_one.assert_called_once_with({"_id": "p1"})
        self.assertEqual(project.id, "p1")

        self.collections["projects"].find_one.return_value = None
        self.assertIsNone(self.store.get_project("missing"))

    def test_list_measurements_sorts_and_limits(self):
        cursor = self.collections["measurements"].find.return_value
        cursor.sort.return_value.limit.return_value = [
            {"_id": "m2", "projectId": "p1", "timestamp": "2024-05-02T00:00:00+00:00",
             "phaseA": {"voltage": 230, "current": 10}},
            {"_id": "m1", "projectId": "p1", "timestamp": "2024-05-01T00:00:00+00:00"},
        ]

        measurements = self.store.list_measurements("p1", limit=2)

        self.collections["measurements"].find.assert_called_once_with({"projectId": "p1"})
        cursor.sort.assert_called_once_with("timestamp", DESCENDING)
        cursor.sort.return_value.limit.assert_called_once_with(2)
        self.assertEqual([m.id for m in measurements], ["m2", "m1"])
        self.assertEqual(measurements[0].phase_a, PhaseReading(voltage=230, current=10))
        self.assertIsNone(measurements[1].phase_a)

    def test_create_measurement_keeps_given_timestamp(self):
        stored = self.store.create_measurement(
            Measurement(project_id="p1", timestamp="2024-05-01T00:00:00+00:00", temperature=31.5)
        )

        doc = self.collections["measurements"].insert_one.call_args[0][0]
        self.assertEqual(doc["timestamp"], "2024-05-01T00:00:00+00:00")
        self.assertEqual(stored.temperature, 31.5)
        self.assertNotIn("phaseA", doc)

    def test_save_diagnosis(self):
        stored = self.store.save_diagnosis(
            Diagnosis(project_id="p1", timestamp="2024-05-01T00:00:00+00:00", severity=Severity.WARNING)
        )

        doc = self.collections["diagnoses"].insert_one.call_args[0][0]
        self.assertEqual(doc["_id"], stored.id)
        self.assertEqual(doc["severity"], "warning")

    def test_driver_errors_become_storage_errors(self):
        self.collections["diagnoses"].insert_one.side_effect = ServerSelectionTimeoutError("no servers")

        with self.assertRaises(StorageError) as ctx:
            self.store.save_diagnosis(Diagnosis(project_id="p1", timestamp="2024-05-01T00:00:00+00:00"))

        self.assertEqual(ctx.exception.status_code, 503)

    def test_ensure_indexes(self):
        self.store.ensure_indexes()

        self.collections["measurements"].create_index.assert_called_once_with(
            [("projectId", 1), ("timestamp", DESCENDING)]
        )
        self.collections["diagnoses"].create_index.assert_called_once()

    def test_ping(self):
        self.assertTrue(self.store.ping())
        self.client.admin.command.assert_called_once_with('ping')


if __name__ == '__main__':
    unittest.main()
