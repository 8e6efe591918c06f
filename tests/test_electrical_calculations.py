import unittest
import os
import sys

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from core.calculators.electrical import (
    calculate_apparent_power,
    calculate_phase_imbalance,
    calculate_power_factor,
    calculate_real_power,
    calculate_voltage_drop,
    get_temperature_derating_factor,
)


class TestElectricalCalculations(unittest.TestCase):
    def test_power_factor(self):
        self.assertAlmostEqual(calculate_power_factor(8000, 10000), 0.8)
        self.assertAlmostEqual(calculate_power_factor(-8000, 10000), 0.8)
        self.assertEqual(calculate_power_factor(500, 0), 0.0)

    def test_phase_imbalance(self):
        self.assertEqual(calculate_phase_imbalance(230, 230, 230), 0.0)
        # mean 220, worst phase 20 away
        self.assertAlmostEqual(calculate_phase_imbalance(240, 220, 200), 20 / 220 * 100, places=5)
        self.assertEqual(calculate_phase_imbalance(0, 0, 0), 0.0)

    def test_voltage_drop(self):
        self.assertAlmostEqual(calculate_voltage_drop(400, 300), 25.0)
        self.assertAlmostEqual(calculate_voltage_drop(230, 253), -10.0)
        self.assertEqual(calculate_voltage_drop(0, 230), 0.0)
        self.assertEqual(calculate_voltage_drop(208, 228.8), -10.0)
        self.assertEqual(calculate_voltage_drop(48, 40.8), 15.0)

    def test_power(self):
        self.assertEqual(calculate_apparent_power(230, 10), 2300)
        self.assertAlmostEqual(calculate_real_power(230, 10, 0.9), 2070)

    def test_temperature_derating(self):
        expected = [(25, 1.0), (30, 1.0), (33, 0.94), (40, 0.87), (44, 0.79), (50, 0.71), (65, 0.61)]
        for ambient, factor in expected:
            with self.subTest(ambient=ambient):
                self.assertEqual(get_temperature_derating_factor(ambient), factor)


if __name__ == '__main__':
    unittest.main()
