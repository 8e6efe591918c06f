# Rule set for field measurements of low-voltage installations.
from dataclasses import dataclass
from typing import List, Optional, Sequence

import pandas as pd

from core.calculators.electrical import calculate_phase_imbalance, calculate_voltage_drop
from core.models.domain import (
    Finding,
    Issue,
    Measurement,
    Project,
    Recommendation,
    Severity,
    SystemType,
)

# ============================================================================
# ENGINEERING THRESHOLDS
# ============================================================================

# Supply voltage (percent from nominal)
VOLTAGE_TOLERANCE_PCT = 10.0      # |drop| > 10% = out of range
VOLTAGE_CRITICAL_PCT = 15.0       # |drop| > 15% = critical

# Load current
MAX_PHASE_CURRENT = 100.0         # A, until project specs carry a rating
OVERCURRENT_CRITICAL_FACTOR = 1.25
NEUTRAL_CURRENT_LIMIT = 10.0      # A
NEUTRAL_CURRENT_WARNING = 20.0    # A

# Three-phase balance (percent deviation from mean)
VOLTAGE_IMBALANCE_LIMIT = 2.0
VOLTAGE_IMBALANCE_WARNING = 5.0
CURRENT_IMBALANCE_LIMIT = 10.0
CURRENT_IMBALANCE_WARNING = 25.0

# Conductor / enclosure temperature (°C)
TEMP_WARNING = 60.0
TEMP_CRITICAL = 80.0

# Earthing
GROUND_RESISTANCE_LIMIT = 5.0     # Ω
GROUND_RESISTANCE_CRITICAL = 25.0 # Ω
LEAKAGE_CURRENT_LIMIT = 30.0      # mA
LEAKAGE_CURRENT_CRITICAL = 100.0  # mA

# Power quality
POWER_FACTOR_LIMIT = 0.85
POWER_FACTOR_WARNING = 0.7
NOMINAL_FREQUENCY = 50.0          # Hz
FREQUENCY_TOLERANCE = 0.5         # Hz
FREQUENCY_CRITICAL = 2.0          # Hz

# Trends over the measurement window
TREND_MIN_HISTORY = 5             # trends need more than 5 measurements
TREND_MIN_SAMPLES = 3             # ...and more than 3 sampled values
TEMPERATURE_TREND_LIMIT = 10.0    # °C
CURRENT_TREND_LIMIT_PCT = 20.0


@dataclass(frozen=True)
class Thresholds:
    voltage_tolerance_pct: float = VOLTAGE_TOLERANCE_PCT
    voltage_critical_pct: float = VOLTAGE_CRITICAL_PCT
    max_phase_current: float = MAX_PHASE_CURRENT
    overcurrent_critical_factor: float = OVERCURRENT_CRITICAL_FACTOR
    neutral_current_limit: float = NEUTRAL_CURRENT_LIMIT
    neutral_current_warning: float = NEUTRAL_CURRENT_WARNING
    voltage_imbalance_limit: float = VOLTAGE_IMBALANCE_LIMIT
    voltage_imbalance_warning: float = VOLTAGE_IMBALANCE_WARNING
    current_imbalance_limit: float = CURRENT_IMBALANCE_LIMIT
    current_imbalance_warning: float = CURRENT_IMBALANCE_WARNING
    temp_warning: float = TEMP_WARNING
    temp_critical: float = TEMP_CRITICAL
    ground_resistance_limit: float = GROUND_RESISTANCE_LIMIT
    ground_resistance_critical: float = GROUND_RESISTANCE_CRITICAL
    leakage_current_limit: float = LEAKAGE_CURRENT_LIMIT
    leakage_current_critical: float = LEAKAGE_CURRENT_CRITICAL
    power_factor_limit: float = POWER_FACTOR_LIMIT
    power_factor_warning: float = POWER_FACTOR_WARNING
    nominal_frequency: float = NOMINAL_FREQUENCY
    frequency_tolerance: float = FREQUENCY_TOLERANCE
    frequency_critical: float = FREQUENCY_CRITICAL
    trend_min_history: int = TREND_MIN_HISTORY
    trend_min_samples: int = TREND_MIN_SAMPLES
    temperature_trend_limit: float = TEMPERATURE_TREND_LIMIT
    current_trend_limit_pct: float = CURRENT_TREND_LIMIT_PCT


DEFAULT_THRESHOLDS = Thresholds()


def _issue(code, description, severity, component, causes) -> Issue:
    return Issue(
        code=code,
        description=description,
        severity=severity,
        affected_component=component,
        possible_causes=tuple(causes),
    )


def _recommendation(priority, action, estimated_time, tools, precautions) -> Recommendation:
    return Recommendation(
        priority=priority,
        action=action,
        estimated_time=estimated_time,
        tools_required=tuple(tools),
        safety_precautions=tuple(precautions),
    )


# ============================================================================
# CHECKS
# Each check reads the newest-first history and returns its findings; none of
# them mutate anything, so the evaluator only has to concatenate.
# ============================================================================

def check_voltage(project: Project, history: Sequence[Measurement], t: Thresholds) -> List[Finding]:
    latest = history[0]
    nominal = project.voltage_rating
    findings = []

    for phase, reading in latest.phases():
        drop = calculate_voltage_drop(nominal, reading.voltage)
        if abs(drop) <= t.voltage_tolerance_pct:
            continue

        critical = abs(drop) > t.voltage_critical_pct
        issue = _issue(
            f"VOLTAGE_OUT_OF_RANGE_{phase}",
            f"Phase {phase} voltage {reading.voltage:g}V is {drop:.1f}% from nominal {nominal:g}V",
            Severity.CRITICAL if critical else Severity.WARNING,
            f"Phase {phase}",
            [
                "Loose connection at main panel",
                "Undersized conductors",
                "Utility supply issue",
                "Excessive load on circuit",
                "Faulty transformer tap setting",
            ],
        )
        rec = _recommendation(
            1 if critical else 2,
            f"Investigate voltage issue on Phase {phase}",
            "30-60 minutes",
            ["Digital multimeter", "Infrared camera"],
            [
                "Work on de-energized circuits when possible",
                "Use appropriate PPE",
                "Test before touch",
            ],
        )
        findings.append(Finding(issue, rec))

    return findings


def check_current(project: Project, history: Sequence[Measurement], t: Thresholds) -> List[Finding]:
    latest = history[0]
    max_current = t.max_phase_current
    findings = []

    for phase, reading in latest.phases():
        if reading.current <= max_current:
            continue

        critical = reading.current > max_current * t.overcurrent_critical_factor
        issue = _issue(
            f"OVERCURRENT_{phase}",
            f"Phase {phase} current {reading.current:g}A exceeds safe operating limit of {max_current:g}A",
            Severity.CRITICAL if critical else Severity.WARNING,
            f"Phase {phase}",
            [
                "Circuit overload",
                "Short circuit condition",
                "Ground fault",
                "Motor starting current",
                "Harmonic distortion",
            ],
        )
        rec = _recommendation(
            1 if critical else 2,
            f"Reduce load on Phase {phase} or investigate fault condition",
            "1-2 hours",
            ["Clamp meter", "Power quality analyzer"],
            [
                "Circuit may trip unexpectedly",
                "Check breaker ratings",
                "Monitor temperature of conductors",
            ],
        )
        findings.append(Finding(issue, rec))

    neutral = latest.neutral
    if neutral is not None and neutral.current > t.neutral_current_limit:
        issue = _issue(
            "HIGH_NEUTRAL_CURRENT",
            f"Neutral current {neutral.current:g}A indicates unbalanced load",
            Severity.WARNING if neutral.current > t.neutral_current_warning else Severity.INFO,
            "Neutral conductor",
            [
                "Unbalanced phase loads",
                "Harmonics (especially 3rd harmonic)",
                "Loose neutral connection",
                "Single-phase loads on three-phase system",
            ],
        )
        rec = _recommendation(
            3,
            "Balance loads across phases",
            "1-3 hours",
            ["Clamp meter", "Load schedule"],
            ["Monitor neutral conductor temperature"],
        )
        findings.append(Finding(issue, rec))

    return findings


def check_phase_imbalance(project: Project, history: Sequence[Measurement], t: Thresholds) -> List[Finding]:
    if project.system_type != SystemType.THREE_PHASE:
        return []

    latest = history[0]
    a, b, c = latest.phase_a, latest.phase_b, latest.phase_c
    if a is None or b is None or c is None:
        return []

    findings = []

    voltage_imbalance = calculate_phase_imbalance(a.voltage, b.voltage, c.voltage)
    if voltage_imbalance > t.voltage_imbalance_limit:
        severe = voltage_imbalance > t.voltage_imbalance_warning
        issue = _issue(
            "VOLTAGE_IMBALANCE",
            f"Voltage imbalance of {voltage_imbalance:.1f}% exceeds recommended limit",
            Severity.WARNING if severe else Severity.INFO,
            "Three-phase system",
            [
                "Unequal loading of phases",
                "Loose connection on one phase",
                "Utility supply imbalance",
                "Failed capacitor in power factor correction",
                "Single-phasing condition developing",
            ],
        )
        rec = _recommendation(
            2 if severe else 4,
            "Investigate and correct phase imbalance",
            "2-4 hours",
            ["Three-phase power analyzer", "Infrared camera"],
            ["Check motor temperatures", "Monitor for unusual vibration"],
        )
        findings.append(Finding(issue, rec))

    current_imbalance = calculate_phase_imbalance(a.current, b.current, c.current)
    if current_imbalance > t.current_imbalance_limit:
        issue = _issue(
            "CURRENT_IMBALANCE",
            f"Current imbalance of {current_imbalance:.1f}% indicates uneven loading",
            Severity.WARNING if current_imbalance > t.current_imbalance_warning else Severity.INFO,
            "Load distribution",
            [
                "Unbalanced single-phase loads",
                "Failed motor winding",
                "Loose connection causing high resistance",
            ],
        )
        findings.append(Finding(issue))

    return findings


def _check_component_temperature(temp: Optional[float], component: str, t: Thresholds) -> Optional[Finding]:
    if temp is None:
        return None

    if temp > t.temp_critical:
        issue = _issue(
            "CRITICAL_TEMPERATURE",
            f"{component} temperature {temp:g}°C exceeds critical limit",
            Severity.CRITICAL,
            component,
            [
                "Severe overload condition",
                "Loose connection causing resistance heating",
                "Inadequate ventilation",
                "Undersized conductor",
                "Ambient temperature too high",
            ],
        )
        rec = _recommendation(
            1,
            f"IMMEDIATE ACTION: Reduce load or disconnect {component}",
            "Immediate",
            ["Infrared camera", "Temperature probe"],
            [
                "Risk of fire",
                "Allow cooling before handling",
                "Check insulation integrity",
            ],
        )
        return Finding(issue, rec)

    if temp > t.temp_warning:
        issue = _issue(
            "HIGH_TEMPERATURE",
            f"{component} temperature {temp:g}°C approaching limit",
            Severity.WARNING,
            component,
            ["Overload condition", "Poor connection", "Insufficient cable size"],
        )
        return Finding(issue)

    return None


def check_temperature(project: Project, history: Sequence[Measurement], t: Thresholds) -> List[Finding]:
    latest = history[0]
    readings = [(latest.temperature, "System")]
    readings += [(reading.temperature, f"Phase {phase}") for phase, reading in latest.phases()]

    findings = []
    for temp, component in readings:
        finding = _check_component_temperature(temp, component, t)
        if finding is not None:
            findings.append(finding)
    return findings


def check_grounding(project: Project, history: Sequence[Measurement], t: Thresholds) -> List[Finding]:
    ground = history[0].ground
    if ground is None:
        return []

    findings = []

    if ground.resistance > t.ground_resistance_limit:
        critical = ground.resistance > t.ground_resistance_critical
        issue = _issue(
            "HIGH_GROUND_RESISTANCE",
            f"Ground resistance {ground.resistance:g}Ω exceeds safe limit of {t.ground_resistance_limit:g}Ω",
            Severity.CRITICAL if critical else Severity.WARNING,
            "Grounding system",
            [
                "Corroded ground rod",
                "Dry soil conditions",
                "Inadequate ground rod depth",
                "Broken ground conductor",
                "Poor connection at ground bus",
            ],
        )
        rec = _recommendation(
            1 if critical else 2,
            "Improve grounding system resistance",
            "2-4 hours",
            ["Ground resistance tester", "Ground rod driver"],
            [
                "System vulnerable to voltage surges",
                "Risk of electric shock",
                "Test with circuit de-energized",
            ],
        )
        findings.append(Finding(issue, rec))

    leakage = ground.leakage_current
    if leakage is not None and leakage > t.leakage_current_limit:
        issue = _issue(
            "GROUND_FAULT",
            f"Ground leakage current {leakage:g}mA detected",
            Severity.CRITICAL if leakage > t.leakage_current_critical else Severity.WARNING,
            "Insulation system",
            [
                "Deteriorated insulation",
                "Moisture ingress",
                "Damaged equipment",
                "Capacitive coupling",
            ],
        )
        rec = _recommendation(
            1,
            "Locate and repair ground fault",
            "2-6 hours",
            ["Insulation tester", "Ground fault locator"],
            ["Risk of electric shock", "Use GFCI protection"],
        )
        findings.append(Finding(issue, rec))

    return findings


def check_power_quality(project: Project, history: Sequence[Measurement], t: Thresholds) -> List[Finding]:
    latest = history[0]
    findings = []

    pf = latest.power_factor
    if pf is not None and pf < t.power_factor_limit:
        issue = _issue(
            "LOW_POWER_FACTOR",
            f"Power factor {pf:.2f} is below optimal range",
            Severity.WARNING if pf < t.power_factor_warning else Severity.INFO,
            "Power system efficiency",
            [
                "Inductive loads (motors, transformers)",
                "Under-loaded motors",
                "Lack of power factor correction",
                "Harmonics",
            ],
        )
        rec = _recommendation(
            3,
            "Consider power factor correction",
            "1 day",
            ["Power quality analyzer", "Capacitor bank sizing calculator"],
            ["Capacitors store energy", "Discharge before handling"],
        )
        findings.append(Finding(issue, rec))

    freq = latest.frequency
    if freq is not None:
        deviation = abs(freq - t.nominal_frequency)
        if deviation > t.frequency_tolerance:
            issue = _issue(
                "FREQUENCY_DEVIATION",
                f"Frequency {freq:g}Hz deviates from nominal {t.nominal_frequency:g}Hz",
                Severity.CRITICAL if deviation > t.frequency_critical else Severity.WARNING,
                "Supply frequency",
                [
                    "Generator governor issues",
                    "Grid instability",
                    "Local generation problems",
                ],
            )
            findings.append(Finding(issue))

    return findings


def check_trends(project: Project, history: Sequence[Measurement], t: Thresholds) -> List[Finding]:
    if len(history) <= t.trend_min_history:
        return []

    # NaN marks readings that were not sampled; dropna keeps newest-first order
    frame = pd.DataFrame({
        "temperature": [m.temperature for m in history],
        "phase_a_current": [m.phase_a.current if m.phase_a is not None else None for m in history],
    }, dtype=float)

    findings = []

    temps = frame["temperature"].dropna().tolist()
    if len(temps) > t.trend_min_samples:
        # First minus last of the newest-first list
        delta = temps[0] - temps[-1]
        if delta > t.temperature_trend_limit:
            issue = _issue(
                "TEMPERATURE_TREND",
                f"Temperature has increased by {delta:.1f}°C over recent measurements",
                Severity.WARNING,
                "System temperature",
                [
                    "Developing connection problem",
                    "Increasing load",
                    "Deteriorating insulation",
                ],
            )
            rec = _recommendation(
                2,
                "Monitor temperature trend closely",
                "Ongoing",
                ["Temperature logger", "Trend analysis software"],
                ["Set up temperature alarms"],
            )
            findings.append(Finding(issue, rec))

    if history[0].phase_a is not None:
        currents = frame["phase_a_current"].dropna().tolist()
        if len(currents) > t.trend_min_samples:
            first, last = currents[0], currents[-1]
            change_pct = 0.0 if last == 0 else (first - last) / last * 100
            if change_pct > t.current_trend_limit_pct:
                issue = _issue(
                    "CURRENT_TREND",
                    f"Current draw has increased by {change_pct:.1f}% over time",
                    Severity.INFO,
                    "Load current",
                    [
                        "Additional loads added",
                        "Motor bearing wear",
                        "Deteriorating equipment efficiency",
                    ],
                )
                findings.append(Finding(issue))

    return findings


# Execution order; recommendation priority ties keep this order.
CHECKS = (
    check_voltage,
    check_current,
    check_phase_imbalance,
    check_temperature,
    check_grounding,
    check_power_quality,
    check_trends,
)
