"""Request validation schemas for both APIs (camelCase on the wire)."""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from core.models.domain import Measurement, Project, ProjectStatus, SystemType


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ProjectCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    system_type: SystemType
    voltage_rating: float = Field(gt=0)
    status: ProjectStatus = ProjectStatus.ACTIVE
    location: Optional[str] = None
    client_name: Optional[str] = None
    electrician_id: Optional[str] = None

    def to_project(self) -> Project:
        return Project.from_dict(self.to_document())


class PhaseReadingIn(CamelModel):
    voltage: float
    current: float
    power: Optional[float] = None
    temperature: Optional[float] = None


class NeutralReadingIn(CamelModel):
    current: float
    voltage: Optional[float] = None


class GroundReadingIn(CamelModel):
    resistance: float
    leakage_current: Optional[float] = None


class MeasurementCreate(CamelModel):
    project_id: str = Field(min_length=1)
    timestamp: Optional[datetime] = None
    phase_a: Optional[PhaseReadingIn] = None
    phase_b: Optional[PhaseReadingIn] = None
    phase_c: Optional[PhaseReadingIn] = None
    neutral: Optional[NeutralReadingIn] = None
    ground: Optional[GroundReadingIn] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    power_factor: Optional[float] = Field(default=None, ge=0, le=1)
    frequency: Optional[float] = None
    notes: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, value):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def to_measurement(self) -> Measurement:
        doc = self.to_document()
        if self.timestamp is not None:
            # Same ISO layout as utc_now_iso() so stored timestamps sort as text
            doc["timestamp"] = self.timestamp.isoformat()
        return Measurement.from_dict(doc)


class ThresholdOverrides(CamelModel):
    """Subset of rule limits a caller may override for a manual diagnosis."""
    voltage_tolerance_pct: Optional[float] = Field(default=None, gt=0)
    voltage_critical_pct: Optional[float] = Field(default=None, gt=0)
    max_phase_current: Optional[float] = Field(default=None, gt=0)
    neutral_current_limit: Optional[float] = Field(default=None, ge=0)
    temp_warning: Optional[float] = None
    temp_critical: Optional[float] = None
    ground_resistance_limit: Optional[float] = Field(default=None, ge=0)
    leakage_current_limit: Optional[float] = Field(default=None, ge=0)
    power_factor_limit: Optional[float] = Field(default=None, ge=0, le=1)
    nominal_frequency: Optional[float] = Field(default=None, gt=0)

    def overrides(self) -> dict:
        return self.model_dump(exclude_none=True)


class ManualDiagnosisRequest(CamelModel):
    thresholds: ThresholdOverrides = Field(default_factory=ThresholdOverrides)


class DiagnoseRequest(CamelModel):
    """Stateless diagnosis: the caller supplies project and history."""
    project: ProjectCreate
    project_id: str = "adhoc"
    measurements: List[MeasurementCreate] = Field(default_factory=list)
    thresholds: ThresholdOverrides = Field(default_factory=ThresholdOverrides)


class SimulatorConfigIn(CamelModel):
    interval_ms: Optional[int] = Field(default=None, ge=100)
    system_type: Optional[SystemType] = None
    nominal_voltage: Optional[float] = Field(default=None, gt=0)
    max_current: Optional[float] = Field(default=None, gt=0)
    enable_faults: Optional[bool] = None
    variability_percent: Optional[float] = Field(default=None, ge=0)

    def overrides(self) -> dict:
        return self.model_dump(exclude_none=True)


def format_validation_errors(error: ValidationError) -> list:
    return [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in error.errors()
    ]
