import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from pymongo import DESCENDING

from agroflow.config.database import Database
from agroflow.engine.water_budget import compute_budget
from agroflow.load.budget_loader import BudgetSnapshotLoader
from agroflow.schemas.models import CropType, FarmSettings, IrrigationMethod, SensorData
from agroflow.sync.orchestrator import BudgetSnapshot


class TestBudgetSnapshotLoader(unittest.TestCase):

    def setUp(self):
        self.collection = MagicMock()
        self.database = MagicMock(spec=Database)
        self.database.get_snapshot_collection.return_value = self.collection
        self.loader = BudgetSnapshotLoader(self.database)

        settings = FarmSettings(
            location="Nashik, Maharashtra", farm_size=2.5, crop=CropType.FRUITS,
            irrigation_method=IrrigationMethod.DRIP, feed_url="https://farm.firebaseio.com", feed_api_key="secret",
        )
        sample = SensorData(
            timestamp="10:00", soil_moisture=50.0, rainfall=0.0,
            groundwater_level=25.0, temperature=28.0, humidity=60.0,
        )
        self.snapshot = BudgetSnapshot(
            settings=settings,
            sample=sample,
            budget=compute_budget(settings, sample),
            version=7,
            manual_mode=False,
            recorded_at=datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc),
        )

    def test_load_inserts_document(self):
        self.assertTrue(self.loader.load(self.snapshot))

        self.collection.insert_one.assert_called_once()
        doc = self.collection.insert_one.call_args[0][0]

        self.assertEqual(doc["location"], "Nashik, Maharashtra")
        self.assertEqual(doc["version"], 7)
        self.assertEqual(doc["budget"]["groundwater_status"], "Stable")
        self.assertEqual(doc["sample"]["soil_moisture"], 50.0)
        # Credentials never reach storage
        self.assertNotIn("feed_api_key", doc["settings"])

    def test_storage_failure_is_logged_not_raised(self):
        self.collection.insert_one.side_effect = RuntimeError("connection reset")

        with self.assertLogs("agroflow.load.budget_loader", level="ERROR"):
            self.assertFalse(self.loader(self.snapshot))

    def test_recent_sorts_newest_first(self):
        cursor = self.collection.find.return_value.sort.return_value.limit.return_value
        cursor.__iter__.return_value = iter([{"_id": 123, "version": 2}])

        results = self.loader.recent("Nashik, Maharashtra", limit=10)

        self.collection.find.assert_called_once_with({"location": "Nashik, Maharashtra"})
        self.collection.find.return_value.sort.assert_called_once_with("recorded_at", DESCENDING)
        self.collection.find.return_value.sort.return_value.limit.assert_called_once_with(10)
        self.assertEqual(results, [{"_id": "123", "version": 2}])


class TestDatabase(unittest.TestCase):

    @patch("agroflow.config.database.MONGO_URI", None)
    def test_connect_requires_uri(self):
        database = Database()
        self.assertFalse(database.is_configured)
        with self.assertRaises(ValueError):
            database.get_snapshot_collection()

    @patch("agroflow.config.database.MongoClient")
    @patch("agroflow.config.database.MONGO_URI", "mongodb://localhost:27017")
    def test_collection_connects_lazily(self, mock_client):
        database = Database()

        database.get_snapshot_collection()
        database.get_snapshot_collection()

        mock_client.assert_called_once()
        mock_client.return_value.admin.command.assert_called_once_with("ping")

        database.close()
        mock_client.return_value.close.assert_called_once()


if __name__ == "__main__":
    unittest.main()
