import os
import sys

import pytest
from pydantic import ValidationError

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from core.models.domain import ProjectStatus, SystemType
from core.models.schemas import (
    DiagnoseRequest,
    MeasurementCreate,
    ProjectCreate,
    SimulatorConfigIn,
    ThresholdOverrides,
    format_validation_errors,
)


def test_project_create_from_camel_case():
    payload = ProjectCreate.model_validate({
        "name": "Plant room",
        "systemType": "three-phase",
        "voltageRating": 400,
        "clientName": "ACME",
    })

    project = payload.to_project()

    assert project.system_type == SystemType.THREE_PHASE
    assert project.status == ProjectStatus.ACTIVE
    assert project.client_name == "ACME"
    assert project.id is None


@pytest.mark.parametrize("body", [
    {"name": "", "systemType": "three-phase", "voltageRating": 400},
    {"name": "x", "systemType": "two-phase", "voltageRating": 400},
    {"name": "x", "systemType": "dc-system", "voltageRating": 0},
    {"name": "x", "systemType": "dc-system", "voltageRating": 48, "colour": "red"},
])
def test_project_create_rejects_bad_input(body):
    with pytest.raises(ValidationError):
        ProjectCreate.model_validate(body)


def test_measurement_timestamp_normalized_to_utc():
    payload = MeasurementCreate.model_validate({
        "projectId": "p1",
        "timestamp": "2024-05-01T12:00:00+02:00",
        "phaseA": {"voltage": 230, "current": 10},
    })

    measurement = payload.to_measurement()

    assert measurement.timestamp == "2024-05-01T10:00:00+00:00"
    assert measurement.phase_a.current == 10
    assert measurement.phase_b is None


def test_measurement_without_timestamp_leaves_it_to_the_store():
    measurement = MeasurementCreate.model_validate({"projectId": "p1"}).to_measurement()

    assert measurement.timestamp is None


def test_validation_errors_name_the_field():
    with pytest.raises(ValidationError) as excinfo:
        MeasurementCreate.model_validate({"projectId": "p1", "powerFactor": 1.4, "phaseA": {"voltage": 230}})

    fields = {err["field"] for err in format_validation_errors(excinfo.value)}
    assert fields == {"powerFactor", "phaseA.current"}


def test_threshold_overrides_only_include_given_values():
    overrides = ThresholdOverrides.model_validate({"maxPhaseCurrent": 63, "powerFactorLimit": 0.9})

    assert overrides.overrides() == {"max_phase_current": 63, "power_factor_limit": 0.9}


def test_diagnose_request_defaults():
    request = DiagnoseRequest.model_validate({
        "project": {"name": "Adhoc", "systemType": "single-phase", "voltageRating": 230},
    })

    assert request.project_id == "adhoc"
    assert request.measurements == []
    assert request.thresholds.overrides() == {}


def test_simulator_config_limits():
    assert SimulatorConfigIn.model_validate({"intervalMs": 1000, "enableFaults": True}).overrides() == {
        "interval_ms": 1000,
        "enable_faults": True,
    }
    with pytest.raises(ValidationError):
        SimulatorConfigIn.model_validate({"intervalMs": 10})
