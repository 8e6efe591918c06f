"""
Domain Records
==============
Immutable records shared by the evaluator, the stores and both APIs.

Every record converts to and from the camelCase document used on the wire and
in MongoDB. Optional readings that were not sampled are ``None`` in Python and
simply missing from the document; they are never written as zero.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_document_id() -> str:
    return str(uuid.uuid4()).replace("-", "")[:24]


def _compact(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Drops keys whose value is None."""
    return {k: v for k, v in doc.items() if v is not None}


def _float_or_none(value) -> Optional[float]:
    return None if value is None else float(value)


# === Enums ===

class SystemType(str, Enum):
    SINGLE_PHASE = "single-phase"
    THREE_PHASE = "three-phase"
    DC = "dc-system"


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PENDING = "pending"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.INFO: 0, Severity.WARNING: 1, Severity.CRITICAL: 2}


# === Project ===

@dataclass(frozen=True)
class Project:
    name: str
    system_type: SystemType
    voltage_rating: float
    status: ProjectStatus = ProjectStatus.ACTIVE
    id: Optional[str] = None
    location: Optional[str] = None
    client_name: Optional[str] = None
    electrician_id: Optional[str] = None
    created_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "id": self.id,
            "name": self.name,
            "systemType": self.system_type.value,
            "voltageRating": self.voltage_rating,
            "status": self.status.value,
            "location": self.location,
            "clientName": self.client_name,
            "electricianId": self.electrician_id,
            "createdAt": self.created_at,
        })

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "Project":
        return cls(
            id=doc.get("id", doc.get("_id")),
            name=doc["name"],
            system_type=SystemType(doc["systemType"]),
            voltage_rating=float(doc["voltageRating"]),
            status=ProjectStatus(doc.get("status", ProjectStatus.ACTIVE.value)),
            location=doc.get("location"),
            client_name=doc.get("clientName"),
            electrician_id=doc.get("electricianId"),
            created_at=doc.get("createdAt"),
        )


# === Measurement sub-records ===

@dataclass(frozen=True)
class PhaseReading:
    voltage: float
    current: float
    power: Optional[float] = None
    temperature: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "voltage": self.voltage,
            "current": self.current,
            "power": self.power,
            "temperature": self.temperature,
        })

    @classmethod
    def from_dict(cls, doc: Optional[Dict[str, Any]]) -> Optional["PhaseReading"]:
        if doc is None:
            return None
        return cls(
            voltage=float(doc["voltage"]),
            current=float(doc["current"]),
            power=_float_or_none(doc.get("power")),
            temperature=_float_or_none(doc.get("temperature")),
        )


@dataclass(frozen=True)
class NeutralReading:
    current: float
    voltage: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"current": self.current, "voltage": self.voltage})

    @classmethod
    def from_dict(cls, doc: Optional[Dict[str, Any]]) -> Optional["NeutralReading"]:
        if doc is None:
            return None
        return cls(current=float(doc["current"]), voltage=_float_or_none(doc.get("voltage")))


@dataclass(frozen=True)
class GroundReading:
    resistance: float
    leakage_current: Optional[float] = None  # mA

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"resistance": self.resistance, "leakageCurrent": self.leakage_current})

    @classmethod
    def from_dict(cls, doc: Optional[Dict[str, Any]]) -> Optional["GroundReading"]:
        if doc is None:
            return None
        return cls(
            resistance=float(doc["resistance"]),
            leakage_current=_float_or_none(doc.get("leakageCurrent")),
        )


# === Measurement ===

@dataclass(frozen=True)
class Measurement:
    project_id: str
    id: Optional[str] = None
    timestamp: Optional[str] = None
    phase_a: Optional[PhaseReading] = None
    phase_b: Optional[PhaseReading] = None
    phase_c: Optional[PhaseReading] = None
    neutral: Optional[NeutralReading] = None
    ground: Optional[GroundReading] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    power_factor: Optional[float] = None
    frequency: Optional[float] = None
    notes: Optional[str] = None

    def phases(self) -> List[Tuple[str, PhaseReading]]:
        """Present phases as (letter, reading) pairs, in A, B, C order."""
        candidates = (("A", self.phase_a), ("B", self.phase_b), ("C", self.phase_c))
        return [(name, reading) for name, reading in candidates if reading is not None]

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "id": self.id,
            "projectId": self.project_id,
            "timestamp": self.timestamp,
            "phaseA": self.phase_a.to_dict() if self.phase_a else None,
            "phaseB": self.phase_b.to_dict() if self.phase_b else None,
            "phaseC": self.phase_c.to_dict() if self.phase_c else None,
            "neutral": self.neutral.to_dict() if self.neutral else None,
            "ground": self.ground.to_dict() if self.ground else None,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "powerFactor": self.power_factor,
            "frequency": self.frequency,
            "notes": self.notes,
        })

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "Measurement":
        return cls(
            id=doc.get("id", doc.get("_id")),
            project_id=doc["projectId"],
            timestamp=doc.get("timestamp"),
            phase_a=PhaseReading.from_dict(doc.get("phaseA")),
            phase_b=PhaseReading.from_dict(doc.get("phaseB")),
            phase_c=PhaseReading.from_dict(doc.get("phaseC")),
            neutral=NeutralReading.from_dict(doc.get("neutral")),
            ground=GroundReading.from_dict(doc.get("ground")),
            temperature=_float_or_none(doc.get("temperature")),
            humidity=_float_or_none(doc.get("humidity")),
            power_factor=_float_or_none(doc.get("powerFactor")),
            frequency=_float_or_none(doc.get("frequency")),
            notes=doc.get("notes"),
        )


# === Diagnostic output ===

@dataclass(frozen=True)
class Issue:
    code: str
    description: str
    severity: Severity
    affected_component: str
    possible_causes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "description": self.description,
            "severity": self.severity.value,
            "affectedComponent": self.affected_component,
            "possibleCauses": list(self.possible_causes),
        }

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "Issue":
        return cls(
            code=doc["code"],
            description=doc["description"],
            severity=Severity(doc["severity"]),
            affected_component=doc["affectedComponent"],
            possible_causes=tuple(doc.get("possibleCauses", ())),
        )


@dataclass(frozen=True)
class Recommendation:
    priority: int
    action: str
    estimated_time: Optional[str] = None
    tools_required: Tuple[str, ...] = ()
    safety_precautions: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        doc = {"priority": self.priority, "action": self.action}
        if self.estimated_time is not None:
            doc["estimatedTime"] = self.estimated_time
        if self.tools_required:
            doc["toolsRequired"] = list(self.tools_required)
        if self.safety_precautions:
            doc["safetyPrecautions"] = list(self.safety_precautions)
        return doc

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "Recommendation":
        return cls(
            priority=int(doc["priority"]),
            action=doc["action"],
            estimated_time=doc.get("estimatedTime"),
            tools_required=tuple(doc.get("toolsRequired", ())),
            safety_precautions=tuple(doc.get("safetyPrecautions", ())),
        )


class Finding(NamedTuple):
    """One issue raised by a check, with the recommendation it forces (if any)."""
    issue: Issue
    recommendation: Optional[Recommendation] = None


@dataclass(frozen=True)
class Diagnosis:
    project_id: str
    timestamp: str
    issues: Tuple[Issue, ...] = ()
    recommendations: Tuple[Recommendation, ...] = ()
    severity: Severity = Severity.INFO
    safety_alert: Optional[str] = None
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "id": self.id,
            "projectId": self.project_id,
            "timestamp": self.timestamp,
            "issues": [issue.to_dict() for issue in self.issues],
            "recommendations": [rec.to_dict() for rec in self.recommendations],
            "severity": self.severity.value,
            "safetyAlert": self.safety_alert,
        })

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "Diagnosis":
        return cls(
            id=doc.get("id", doc.get("_id")),
            project_id=doc["projectId"],
            timestamp=doc["timestamp"],
            issues=tuple(Issue.from_dict(i) for i in doc.get("issues", [])),
            recommendations=tuple(Recommendation.from_dict(r) for r in doc.get("recommendations", [])),
            severity=Severity(doc.get("severity", Severity.INFO.value)),
            safety_alert=doc.get("safetyAlert"),
        )
