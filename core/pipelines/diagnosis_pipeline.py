import logging
from typing import Optional

from core.engines.diagnostics import evaluate
from core.engines.rules import Thresholds
from core.exceptions import ProjectNotFoundError
from core.models.domain import Diagnosis

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 20


def run_project_diagnosis(
    store,
    project_id: str,
    limit: int = DEFAULT_WINDOW,
    save: bool = False,
    thresholds: Optional[Thresholds] = None,
) -> Diagnosis:
    """
    Looks up the project, evaluates its recent measurement window and,
    when ``save`` is set, persists the result.

    Raises:
        ProjectNotFoundError: the project id is unknown.
        StorageError: the store failed to read or persist.
    """
    project = store.get_project(project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)

    measurements = store.list_measurements(project_id, limit)
    diagnosis = evaluate(project, measurements, thresholds=thresholds)

    logger.info(
        f"[DIAGNOSE] Project {project_id}: {len(measurements)} measurements, "
        f"{len(diagnosis.issues)} issues, severity={diagnosis.severity.value}"
    )

    if save:
        diagnosis = store.save_diagnosis(diagnosis)

    return diagnosis
