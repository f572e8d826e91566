import unittest

from agroflow.engine.coefficients import crop_water_need, irrigation_efficiency
from agroflow.engine.water_budget import (
    build_recommendation,
    calculate_pump_duration,
    classify_groundwater,
    compute_budget,
)
from agroflow.schemas.models import CropType, FarmSettings, GroundwaterStatus, IrrigationMethod, SensorData


def make_settings(**overrides):
    data = {
        "location": "Nashik, Maharashtra",
        "farm_size": 2.5,
        "crop": CropType.FRUITS,
        "irrigation_method": IrrigationMethod.DRIP,
        "number_of_pumps": 1,
        "pump_flow_rate": 10.0,
    }
    data.update(overrides)
    return FarmSettings(**data)


def make_sample(**overrides):
    data = {
        "timestamp": "10:00",
        "soil_moisture": 50.0,
        "rainfall": 0.0,
        "groundwater_level": 25.0,
        "temperature": 28.0,
        "humidity": 60.0,
    }
    data.update(overrides)
    return SensorData(**data)


class TestWaterBudget(unittest.TestCase):

    # --- End-to-end Examples ---

    def test_surplus_example(self):
        budget = compute_budget(make_settings(), make_sample())

        self.assertAlmostEqual(budget.crop_demand, 194.444, places=2)
        self.assertEqual(budget.rainfall_contribution, 0.0)
        self.assertAlmostEqual(budget.available_water, 625.0)
        self.assertAlmostEqual(budget.balance, 430.556, places=2)
        self.assertEqual(budget.pump_duration, 0.0)
        self.assertEqual(budget.groundwater_status, GroundwaterStatus.STABLE)
        self.assertEqual(budget.recommendation, "Soil moisture optimal. No irrigation required today.")

    def test_deficit_example(self):
        budget = compute_budget(make_settings(), make_sample(soil_moisture=5.0))

        self.assertAlmostEqual(budget.available_water, 62.5)
        self.assertAlmostEqual(budget.balance, -131.944, places=2)
        self.assertAlmostEqual(budget.pump_duration, 13.194, places=2)
        self.assertEqual(
            budget.recommendation,
            "Urgent: Irrigate 131.9 m³ immediately. Run pumps for 13.2 hours.",
        )

    def test_moisture_20_is_still_surplus(self):
        budget = compute_budget(make_settings(), make_sample(soil_moisture=20.0))
        self.assertAlmostEqual(budget.balance, 55.556, places=2)
        self.assertEqual(budget.pump_duration, 0.0)

    def test_available_water_includes_rainfall(self):
        budget = compute_budget(make_settings(), make_sample(soil_moisture=40.0, rainfall=12.0))

        self.assertAlmostEqual(budget.rainfall_contribution, 300.0)
        self.assertAlmostEqual(budget.available_water, 500.0 + 300.0)
        self.assertAlmostEqual(budget.balance, budget.available_water - budget.crop_demand)
        self.assertEqual(budget.recommendation, "No irrigation needed. Significant rainfall detected.")

    def test_scheduled_deficit_recommendation(self):
        # Rice on flood: 120 * 2.5 / 0.5 = 600 m³ demand vs 40% soil water = 500 m³
        settings = make_settings(crop=CropType.RICE, irrigation_method=IrrigationMethod.FLOOD, number_of_pumps=2)
        budget = compute_budget(settings, make_sample(soil_moisture=40.0))

        self.assertAlmostEqual(budget.balance, -100.0)
        self.assertAlmostEqual(budget.pump_duration, 5.0)
        self.assertEqual(budget.recommendation, "Scheduled: Apply 100.0 m³ water today. Run pumps for 5.0 hours.")

    def test_determinism(self):
        settings, sample = make_settings(), make_sample(soil_moisture=33.3, rainfall=1.7)
        self.assertEqual(compute_budget(settings, sample), compute_budget(settings, sample))

    def test_negative_rainfall_flows_through(self):
        budget = compute_budget(make_settings(), make_sample(rainfall=-1.0))
        self.assertAlmostEqual(budget.rainfall_contribution, -25.0)

    # --- Pumping ---

    def test_zero_flow_rate_yields_zero_duration(self):
        budget = compute_budget(make_settings(number_of_pumps=0), make_sample(soil_moisture=5.0))
        self.assertLess(budget.balance, 0)
        self.assertEqual(budget.pump_duration, 0.0)

        budget = compute_budget(make_settings(pump_flow_rate=0), make_sample(soil_moisture=5.0))
        self.assertEqual(budget.pump_duration, 0.0)

    def test_calculate_pump_duration(self):
        self.assertEqual(calculate_pump_duration(10.0, 20.0), 0.0)
        self.assertEqual(calculate_pump_duration(0.0, 20.0), 0.0)
        self.assertEqual(calculate_pump_duration(-40.0, 20.0), 2.0)
        self.assertEqual(calculate_pump_duration(-40.0, 0.0), 0.0)

    # --- Groundwater ---

    def test_groundwater_boundaries(self):
        self.assertEqual(classify_groundwater(50.01), GroundwaterStatus.CRITICAL)
        self.assertEqual(classify_groundwater(50.0), GroundwaterStatus.STABLE)
        self.assertEqual(classify_groundwater(15.0), GroundwaterStatus.STABLE)
        self.assertEqual(classify_groundwater(14.99), GroundwaterStatus.ABUNDANT)

    # --- Recommendation Priority ---

    def test_low_moisture_wins_over_surplus(self):
        message = build_recommendation(soil_moisture=25.0, rainfall=0.0, balance=10.0, pump_duration=0.0)
        self.assertTrue(message.startswith("Urgent: Irrigate 10.0 m³ immediately."))

    def test_deficit_wins_over_rainfall(self):
        message = build_recommendation(soil_moisture=50.0, rainfall=20.0, balance=-5.0, pump_duration=0.5)
        self.assertTrue(message.startswith("Scheduled:"))

    def test_rainfall_threshold_is_exclusive(self):
        self.assertEqual(
            build_recommendation(soil_moisture=50.0, rainfall=10.0, balance=5.0, pump_duration=0.0),
            "Soil moisture optimal. No irrigation required today.",
        )

    # --- Coefficients ---

    def test_coefficient_tables(self):
        self.assertEqual(crop_water_need(CropType.RICE), 120.0)
        self.assertEqual(irrigation_efficiency(IrrigationMethod.SMART_DRIP), 0.95)

    def test_unknown_crop_raises(self):
        with self.assertRaises(ValueError):
            crop_water_need("Barley")
        with self.assertRaises(ValueError):
            irrigation_efficiency("Drip", {})

    def test_custom_table_override(self):
        budget = compute_budget(make_settings(), make_sample(), crop_table={CropType.FRUITS: 90.0})
        self.assertAlmostEqual(budget.crop_demand, 90.0 * 2.5 / 0.9)

    # --- Settings Validation ---

    def test_farm_size_must_be_positive(self):
        with self.assertRaises(ValueError):
            make_settings(farm_size=0)

    def test_settings_accept_camel_case(self):
        settings = FarmSettings(
            location="18.5,73.8",
            farmSize=1.0,
            crop="Wheat",
            irrigationMethod="Sprinkler Irrigation",
            numberOfPumps=3,
            pumpFlowRate=4.0,
        )
        self.assertEqual(settings.total_flow_rate, 12.0)
        self.assertEqual(settings.irrigation_method, IrrigationMethod.SPRINKLER)


if __name__ == "__main__":
    unittest.main()
