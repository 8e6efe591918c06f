import numpy as np


def calculate_power_factor(real_power: float, apparent_power: float) -> float:
    if apparent_power == 0:
        return 0.0
    return abs(real_power / apparent_power)


def calculate_phase_imbalance(phase_a: float, phase_b: float, phase_c: float) -> float:
    """
    Percentage deviation of the most-off phase from the three-phase average.
    A zero average yields 0.0. Rounded to 6 places like the voltage drop.
    """
    values = np.array([phase_a, phase_b, phase_c], dtype=float)
    avg = float(np.mean(values))
    if avg == 0:
        return 0.0
    max_deviation = float(np.max(np.abs(values - avg)))
    return round((max_deviation / avg) * 100, 6)


def calculate_voltage_drop(nominal_voltage: float, actual_voltage: float) -> float:
    """
    Drop relative to nominal, in percent. Negative when above nominal.
    Rounded to 6 places so band edges such as 10% compare exactly.
    """
    if nominal_voltage == 0:
        return 0.0
    return round(((nominal_voltage - actual_voltage) / nominal_voltage) * 100, 6)


def calculate_apparent_power(voltage: float, current: float) -> float:
    return voltage * current


def calculate_real_power(voltage: float, current: float, power_factor: float) -> float:
    return voltage * current * power_factor


# Cable ampacity derating by ambient temperature (°C upper bound, factor)
DERATING_TABLE = [
    (30, 1.0),
    (35, 0.94),
    (40, 0.87),
    (45, 0.79),
    (50, 0.71),
]
DERATING_FLOOR = 0.61


def get_temperature_derating_factor(ambient_temp: float) -> float:
    for upper_bound, factor in DERATING_TABLE:
        if ambient_temp <= upper_bound:
            return factor
    return DERATING_FLOOR
