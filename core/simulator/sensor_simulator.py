"""
Synthetic Sensor Data
=====================
Generates plausible measurements for demos and tests, optionally drifting into
one of the named fault scenarios.

Each ``SensorSimulator`` owns its configuration, random source and current
fault scenario, so several can run side by side. Pass a seeded
``random.Random`` for reproducible output.
"""

import dataclasses
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.calculators.electrical import calculate_apparent_power, calculate_real_power
from core.exceptions import UnsupportedSystemTypeError
from core.models.domain import (
    GroundReading,
    Measurement,
    NeutralReading,
    PhaseReading,
    SystemType,
)

logger = logging.getLogger(__name__)

FAULT_START_PROBABILITY = 0.05    # chance per sample of entering a fault
FAULT_CLEAR_PROBABILITY = 0.2     # chance per sample of clearing it again


class FaultScenario(str, Enum):
    VOLTAGE_DROP = "voltage_drop"
    OVERCURRENT = "overcurrent"
    PHASE_IMBALANCE = "phase_imbalance"
    OVERHEATING = "overheating"
    GROUND_FAULT = "ground_fault"
    POOR_POWER_FACTOR = "poor_power_factor"


@dataclass(frozen=True)
class SimulatorConfig:
    interval_ms: int = 5000
    system_type: SystemType = SystemType.THREE_PHASE
    nominal_voltage: float = 400.0
    max_current: float = 100.0
    enable_faults: bool = False
    variability_percent: float = 2.0

    def merged(self, **overrides) -> "SimulatorConfig":
        if "system_type" in overrides:
            overrides["system_type"] = SystemType(overrides["system_type"])
        return dataclasses.replace(self, **overrides)

    def to_dict(self) -> dict:
        return {
            "intervalMs": self.interval_ms,
            "systemType": self.system_type.value,
            "nominalVoltage": self.nominal_voltage,
            "maxCurrent": self.max_current,
            "enableFaults": self.enable_faults,
            "variabilityPercent": self.variability_percent,
        }


@dataclass
class SensorData:
    """Working values for one sample, before rounding."""
    voltage: float
    current: float
    temperature: float
    power_factor: float
    frequency: Optional[float]
    ground_resistance: float


class SensorSimulator:
    def __init__(self, project_id: str, config: Optional[SimulatorConfig] = None, rng: Optional[random.Random] = None):
        self.project_id = project_id
        self.config = config or SimulatorConfig()
        self.rng = rng or random.Random()
        self.fault_scenario: Optional[FaultScenario] = None
        self._forced = False
        # Drawn once; each sample only varies around it
        self.baseline = self._baseline()

    # --- fault handling ---

    def force_fault(self, scenario):
        """Pins a scenario (or clears it with None) regardless of enable_faults."""
        self.fault_scenario = FaultScenario(scenario) if scenario is not None else None
        self._forced = self.fault_scenario is not None

    def _step_fault_state(self):
        if self._forced or not self.config.enable_faults:
            return

        if self.rng.random() < FAULT_START_PROBABILITY:
            self.fault_scenario = self.rng.choice(list(FaultScenario))
            logger.info(f"[SIMULATOR] Introducing fault: {self.fault_scenario.value}")

        if self.fault_scenario is not None and self.rng.random() < FAULT_CLEAR_PROBABILITY:
            logger.info(f"[SIMULATOR] Clearing fault: {self.fault_scenario.value}")
            self.fault_scenario = None

    def _apply_fault(self, data: SensorData) -> SensorData:
        scenario = self.fault_scenario
        if scenario == FaultScenario.VOLTAGE_DROP:
            data.voltage *= 0.85
        elif scenario == FaultScenario.OVERCURRENT:
            data.current *= 1.3
            data.temperature += 15
        elif scenario == FaultScenario.OVERHEATING:
            data.temperature += self.random_between(20, 40)
        elif scenario == FaultScenario.GROUND_FAULT:
            data.ground_resistance *= 3
        elif scenario == FaultScenario.POOR_POWER_FACTOR:
            data.power_factor *= 0.7
        return data

    # --- sampling helpers ---

    def random_between(self, low: float, high: float) -> float:
        return self.rng.uniform(low, high)

    def add_variability(self, base: float, percent: float) -> float:
        variation = base * (percent / 100)
        return base + self.random_between(-variation, variation)

    def _baseline(self) -> SensorData:
        max_current = self.config.max_current
        return SensorData(
            voltage=self.config.nominal_voltage,
            current=self.random_between(max_current * 0.6, max_current * 0.8),
            temperature=self.random_between(25, 35),
            power_factor=self.random_between(0.85, 0.95),
            frequency=50.0,
            ground_resistance=self.random_between(1, 3),
        )

    def _varied_sample(self, alternating: bool) -> SensorData:
        pct = self.config.variability_percent
        data = dataclasses.replace(self.baseline)
        data.voltage = self.add_variability(data.voltage, pct)
        data.current = self.add_variability(data.current, pct)
        data.temperature = self.add_variability(data.temperature, 5)
        data.power_factor = max(0.1, min(1.0, self.add_variability(data.power_factor, 2)))
        if alternating:
            data.frequency = self.add_variability(data.frequency, 0.5)
        else:
            data.frequency = None
        data.ground_resistance = self.add_variability(data.ground_resistance, 10)
        return data

    def _notes(self, normal: str) -> str:
        if self.fault_scenario is not None:
            return f"Fault detected: {self.fault_scenario.value}"
        return normal

    # --- per system type ---

    def _single_phase(self) -> Measurement:
        self._step_fault_state()
        data = self._apply_fault(self._varied_sample(alternating=True))

        return Measurement(
            project_id=self.project_id,
            phase_a=PhaseReading(
                voltage=round(data.voltage, 2),
                current=round(data.current, 2),
                power=round(calculate_real_power(data.voltage, data.current, data.power_factor), 2),
                temperature=round(data.temperature, 1),
            ),
            neutral=NeutralReading(
                current=round(data.current * 0.1, 2),
                voltage=round(self.random_between(0, 2), 2),
            ),
            ground=GroundReading(
                resistance=round(data.ground_resistance, 2),
                leakage_current=round(self.random_between(5, 15), 2),
            ),
            temperature=round(data.temperature, 1),
            humidity=round(self.random_between(40, 70), 1),
            power_factor=round(data.power_factor, 3),
            frequency=round(data.frequency, 2),
            notes=self._notes("Normal operation"),
        )

    def _three_phase(self) -> Measurement:
        self._step_fault_state()
        data_a, data_b, data_c = (self._apply_fault(self._varied_sample(alternating=True)) for _ in range(3))

        if self.fault_scenario == FaultScenario.PHASE_IMBALANCE:
            data_a.current *= 1.2
            data_c.current *= 0.8

        # Shared readings come from phase A's sample
        temperature = data_a.temperature
        power_factor = data_a.power_factor

        def phase(data: SensorData, temp: float) -> PhaseReading:
            return PhaseReading(
                voltage=round(data.voltage, 2),
                current=round(data.current, 2),
                power=round(calculate_real_power(data.voltage, data.current, power_factor), 2),
                temperature=round(temp, 1),
            )

        neutral_current = abs(data_a.current - data_b.current + data_c.current) / 3

        return Measurement(
            project_id=self.project_id,
            phase_a=phase(data_a, temperature),
            phase_b=phase(data_b, temperature + self.random_between(-2, 2)),
            phase_c=phase(data_c, temperature + self.random_between(-2, 2)),
            neutral=NeutralReading(
                current=round(neutral_current, 2),
                voltage=round(self.random_between(0, 5), 2),
            ),
            ground=GroundReading(
                resistance=round(data_a.ground_resistance, 2),
                leakage_current=round(self.random_between(5, 20), 2),
            ),
            temperature=round(temperature, 1),
            humidity=round(self.random_between(40, 70), 1),
            power_factor=round(power_factor, 3),
            frequency=round(data_a.frequency, 2),
            notes=self._notes("Normal three-phase operation"),
        )

    def _dc(self) -> Measurement:
        self._step_fault_state()
        data = self._apply_fault(self._varied_sample(alternating=False))

        # Phase A carries the positive DC rail; frequency is not sampled
        return Measurement(
            project_id=self.project_id,
            phase_a=PhaseReading(
                voltage=round(data.voltage, 2),
                current=round(data.current, 2),
                power=round(calculate_apparent_power(data.voltage, data.current), 2),
                temperature=round(data.temperature, 1),
            ),
            ground=GroundReading(
                resistance=round(data.ground_resistance, 2),
                leakage_current=round(self.random_between(1, 10), 2),
            ),
            temperature=round(data.temperature, 1),
            humidity=round(self.random_between(40, 70), 1),
            notes=self._notes("Normal DC operation"),
        )

    def generate_measurement(self) -> Measurement:
        try:
            system_type = SystemType(self.config.system_type)
        except ValueError:
            raise UnsupportedSystemTypeError(self.config.system_type) from None

        if system_type == SystemType.SINGLE_PHASE:
            return self._single_phase()
        if system_type == SystemType.THREE_PHASE:
            return self._three_phase()
        return self._dc()
