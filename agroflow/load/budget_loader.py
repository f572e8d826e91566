import logging
from typing import Any, Dict, List

from pymongo import DESCENDING

from agroflow.config.database import Database
from agroflow.sync.orchestrator import BudgetSnapshot

logger = logging.getLogger(__name__)


class BudgetSnapshotLoader:
    """
    Records every recomputed budget into 'water_budget_snapshots'.

    Registered as an orchestrator subscriber. Storage failures are logged and
    never interrupt the sensor update that produced the snapshot.
    """

    def __init__(self, database: Database):
        self.database = database

    def __call__(self, snapshot: BudgetSnapshot) -> None:
        self.load(snapshot)

    def load(self, snapshot: BudgetSnapshot) -> bool:
        try:
            collection = self.database.get_snapshot_collection()
            collection.insert_one(snapshot.to_document())
            return True
        except Exception as e:
            logger.error(f"❌ Failed to store budget snapshot v{snapshot.version}: {e}")
            return False

    def recent(self, location: str, limit: int = 25) -> List[Dict[str, Any]]:
        """Latest stored snapshots for a location, newest first."""
        collection = self.database.get_snapshot_collection()
        cursor = collection.find({"location": location}).sort("recorded_at", DESCENDING).limit(limit)

        results = []
        for doc in cursor:
            doc["_id"] = str(doc["_id"])
            results.append(doc)
        return results
