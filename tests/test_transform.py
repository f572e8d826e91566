import unittest

import pandas as pd

from agroflow.schemas.models import SensorData
from agroflow.sync.cache import TTLCache
from agroflow.transform.aggregations import history_to_frame, moisture_trend, summarize_history


def make_samples(moistures, rainfall=None):
    rainfall = rainfall or [0.0] * len(moistures)
    return [
        SensorData(
            timestamp=f"{i:02d}:00", soil_moisture=m, rainfall=r,
            groundwater_level=20.0, temperature=30.0, humidity=50.0,
        )
        for i, (m, r) in enumerate(zip(moistures, rainfall))
    ]


class TestAggregations(unittest.TestCase):

    def test_history_to_frame(self):
        df = history_to_frame(make_samples([40.0, 42.0]))
        self.assertEqual(list(df.columns)[0], "timestamp")
        self.assertEqual(len(df), 2)
        self.assertTrue(history_to_frame([]).empty)

    def test_moisture_trend(self):
        self.assertEqual(moisture_trend(pd.Series([50.0, 48.0, 46.0, 44.0])), -2.0)
        self.assertEqual(moisture_trend(pd.Series([50.0])), 0.0)

    def test_summarize_history(self):
        samples = make_samples([40.0, 50.0, 60.0], rainfall=[0.0, 2.5, 1.5])

        summary = summarize_history(samples)

        self.assertEqual(summary["sample_count"], 3)
        self.assertEqual(summary["first_timestamp"], "00:00")
        self.assertEqual(summary["last_timestamp"], "02:00")
        self.assertEqual(summary["avg_soil_moisture"], 50.0)
        self.assertEqual(summary["min_soil_moisture"], 40.0)
        self.assertEqual(summary["max_soil_moisture"], 60.0)
        self.assertEqual(summary["total_rainfall_mm"], 4.0)
        self.assertEqual(summary["rain_event_count"], 2)
        self.assertEqual(summary["moisture_trend_per_sample"], 10.0)

    def test_summarize_empty_history(self):
        self.assertEqual(summarize_history([]), {"sample_count": 0})


class TestTTLCache(unittest.TestCase):

    def setUp(self):
        self.now = 0.0
        self.cache = TTLCache(900, clock=lambda: self.now)

    def test_hit_before_expiry(self):
        self.cache.set("Nashik", {"temperature": 30})
        self.now = 899.0
        self.assertEqual(self.cache.get("Nashik"), {"temperature": 30})
        self.assertIn("Nashik", self.cache)

    def test_expires_after_ttl(self):
        self.cache.set("Nashik", {"temperature": 30})
        self.now = 900.0
        self.assertIsNone(self.cache.get("Nashik"))
        self.assertEqual(len(self.cache), 0)

    def test_clear(self):
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        self.cache.clear()
        self.assertNotIn("a", self.cache)


if __name__ == "__main__":
    unittest.main()
