"""
Diagnostics Evaluator
=====================
Turns a project profile and its newest-first measurement history into a
Diagnosis.

The evaluation is pure: no I/O, no shared state, so it can run for several
projects concurrently without locking. Each rule in ``core.engines.rules``
returns its own findings and this module only concatenates them, ranks the
overall severity and orders the recommendations.
"""

from typing import Optional, Sequence

from core.engines.rules import CHECKS, DEFAULT_THRESHOLDS, Thresholds
from core.models.domain import (
    Diagnosis,
    Issue,
    Measurement,
    Project,
    Recommendation,
    Severity,
    utc_now_iso,
)

SAFETY_ALERT = (
    "⚠️ CRITICAL SAFETY ISSUE DETECTED: Immediate action required. "
    "Ensure area is safe and consider disconnecting power if necessary."
)

NO_DATA_ISSUE = Issue(
    code="NO_DATA",
    description="No measurements available for analysis",
    severity=Severity.INFO,
    affected_component="System",
    possible_causes=("No measurements have been recorded",),
)

NO_DATA_RECOMMENDATION = Recommendation(
    priority=1,
    action="Take initial measurements of the system",
    estimated_time="15 minutes",
    tools_required=("Multimeter", "Clamp meter"),
    safety_precautions=("Ensure proper PPE", "Follow lockout/tagout procedures"),
)


def overall_severity(issues: Sequence[Issue]) -> Severity:
    """Highest severity among the issues; info when there are none."""
    return max((issue.severity for issue in issues), key=lambda s: s.rank, default=Severity.INFO)


def evaluate(
    project: Project,
    measurements: Sequence[Measurement],
    thresholds: Optional[Thresholds] = None,
    timestamp: Optional[str] = None,
) -> Diagnosis:
    """
    Runs every check against the measurement window.

    Args:
        project: Project profile (system type and nominal voltage).
        measurements: Measurement history ordered newest first. The first item
            drives the instantaneous checks, the whole window the trends.
        thresholds: Rule limits; defaults to the fixed engineering limits.
        timestamp: Evaluation time (ISO-8601); defaults to now in UTC.

    Returns:
        A new Diagnosis with recommendations sorted by ascending priority.
    """
    thresholds = thresholds or DEFAULT_THRESHOLDS
    timestamp = timestamp or utc_now_iso()

    if not measurements:
        return Diagnosis(
            project_id=project.id,
            timestamp=timestamp,
            issues=(NO_DATA_ISSUE,),
            recommendations=(NO_DATA_RECOMMENDATION,),
            severity=Severity.INFO,
        )

    findings = []
    for check in CHECKS:
        findings.extend(check(project, measurements, thresholds))

    issues = tuple(finding.issue for finding in findings)
    # sorted() is stable, so equal priorities keep check order
    recommendations = tuple(sorted(
        (finding.recommendation for finding in findings if finding.recommendation is not None),
        key=lambda rec: rec.priority,
    ))

    severity = overall_severity(issues)

    return Diagnosis(
        project_id=project.id,
        timestamp=timestamp,
        issues=issues,
        recommendations=recommendations,
        severity=severity,
        safety_alert=SAFETY_ALERT if severity == Severity.CRITICAL else None,
    )
