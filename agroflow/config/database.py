import logging
from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from agroflow.config.settings import MONGO_URI, DB_NAME

logger = logging.getLogger(__name__)


class Database:
    client: MongoClient = None
    db = None

    @property
    def is_configured(self) -> bool:
        return bool(MONGO_URI)

    def connect(self):
        """Establishes connection to MongoDB."""
        if not MONGO_URI:
            raise ValueError("MONGO_URI environment variable is not set.")

        try:
            # Connect with a timeout to fail fast if DB is unreachable
            self.client = MongoClient(
                MONGO_URI,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=5000
            )
            self.client.admin.command('ping')
            self.db = self.client[DB_NAME]
            logger.info(f"✅ Connected to MongoDB: {DB_NAME}")
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.critical(f"❌ Failed to connect to MongoDB: {e}")
            raise e

    def get_snapshot_collection(self):
        """Returns the collection holding recomputed water budgets."""
        if self.db is None:
            self.connect()
        return self.db["water_budget_snapshots"]

    def close(self):
        """Closes the connection."""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB connection closed.")


# Singleton Instance
db = Database()
