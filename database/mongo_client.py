# MongoDB persistence for projects, measurements and diagnoses.
import logging
from contextlib import contextmanager
from typing import List, Optional

from pymongo import DESCENDING
from pymongo.errors import PyMongoError
from pymongo.mongo_client import MongoClient
from pymongo.server_api import ServerApi

from core.exceptions import StorageError
from core.models.domain import Diagnosis, Measurement, Project, new_document_id, utc_now_iso

logger = logging.getLogger(__name__)

PROJECTS = "projects"
MEASUREMENTS = "measurements"
DIAGNOSES = "diagnoses"


def _to_document(record) -> dict:
    doc = record.to_dict()
    doc.pop("id", None)
    return doc


@contextmanager
def _storage_errors(action):
    try:
        yield
    except PyMongoError as e:
        logger.error(f"[MONGO] {action} failed: {e}")
        raise StorageError(f"Failed to {action}: {e}") from e


class MongoStore:
    """
    Document store backed by MongoDB.

    Documents keep the camelCase wire layout and use a generated 24-hex string
    as ``_id``. Any driver error is re-raised as ``StorageError``.
    """

    def __init__(self, uri: Optional[str] = None, db_name: str = "wirescope", client=None):
        if client is None:
            # Create a new client; the driver connects lazily on first use
            client = MongoClient(uri, server_api=ServerApi('1'))
        self.client = client
        self.db = client[db_name]
        self.projects = self.db[PROJECTS]
        self.measurements = self.db[MEASUREMENTS]
        self.diagnoses = self.db[DIAGNOSES]

    def ping(self) -> bool:
        # Send a ping to confirm a successful connection
        with _storage_errors("ping MongoDB"):
            self.client.admin.command('ping')
        return True

    def ensure_indexes(self):
        with _storage_errors("create indexes"):
            self.measurements.create_index([("projectId", 1), ("timestamp", DESCENDING)])
            self.diagnoses.create_index([("projectId", 1), ("timestamp", DESCENDING)])

    # --- projects ---

    def create_project(self, project: Project) -> Project:
        doc = _to_document(project)
        doc["_id"] = project.id or new_document_id()
        doc.setdefault("createdAt", utc_now_iso())
        with _storage_errors("create project"):
            self.projects.insert_one(doc)
        return Project.from_dict(doc)

    def list_projects(self) -> List[Project]:
        with _storage_errors("list projects"):
            docs = list(self.projects.find().sort("createdAt", DESCENDING))
        return [Project.from_dict(doc) for doc in docs]

    def get_project(self, project_id: str) -> Optional[Project]:
        with _storage_errors("fetch project"):
            doc = self.projects.find_one({"_id": project_id})
        return Project.from_dict(doc) if doc else None

    # --- measurements ---

    def create_measurement(self, measurement: Measurement) -> Measurement:
        doc = _to_document(measurement)
        doc["_id"] = measurement.id or new_document_id()
        doc.setdefault("timestamp", utc_now_iso())
        with _storage_errors("create measurement"):
            self.measurements.insert_one(doc)
        return Measurement.from_dict(doc)

    def list_measurements(self, project_id: str, limit: int = 20) -> List[Measurement]:
        """Newest first, at most ``limit`` items."""
        with _storage_errors("fetch measurements"):
            cursor = self.measurements.find({"projectId": project_id}).sort("timestamp", DESCENDING).limit(limit)
            docs = list(cursor)
        return [Measurement.from_dict(doc) for doc in docs]

    # --- diagnoses ---

    def save_diagnosis(self, diagnosis: Diagnosis) -> Diagnosis:
        doc = _to_document(diagnosis)
        doc["_id"] = diagnosis.id or new_document_id()
        with _storage_errors("save diagnosis"):
            self.diagnoses.insert_one(doc)
        logger.info(f"[MONGO] Saved diagnosis {doc['_id']} for project {diagnosis.project_id}")
        return Diagnosis.from_dict(doc)

    def list_diagnoses(self, project_id: str, limit: int = 20) -> List[Diagnosis]:
        with _storage_errors("fetch diagnoses"):
            cursor = self.diagnoses.find({"projectId": project_id}).sort("timestamp", DESCENDING).limit(limit)
            docs = list(cursor)
        return [Diagnosis.from_dict(doc) for doc in docs]
