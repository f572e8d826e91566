import os
from dotenv import load_dotenv

# Load .env variables
load_dotenv()

# --- Storage ---
MONGO_URI = os.getenv("MONGO_URI")
DB_NAME = os.getenv("DB_NAME", "agroflow")

# --- Sensor History ---
HISTORY_CAPACITY = int(os.getenv("HISTORY_CAPACITY", "25"))

# --- Synchronization ---
DRIFT_INTERVAL_SECONDS = float(os.getenv("DRIFT_INTERVAL_SECONDS", "60"))
CACHE_TTL_SECONDS = float(os.getenv("CACHE_TTL_SECONDS", str(15 * 60)))
FEED_POLL_INTERVAL_SECONDS = float(os.getenv("FEED_POLL_INTERVAL_SECONDS", "5"))

# --- External APIs ---
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))
OPEN_METEO_FORECAST_URL = os.getenv("OPEN_METEO_FORECAST_URL", "https://api.open-meteo.com/v1/forecast")
OPEN_METEO_GEOCODING_URL = os.getenv("OPEN_METEO_GEOCODING_URL", "https://geocoding-api.open-meteo.com/v1/search")

# --- Default Farm (used until the first explicit save) ---
DEFAULT_LOCATION = os.getenv("DEFAULT_LOCATION", "Nashik, Maharashtra")
DEFAULT_FARM_SIZE_HA = float(os.getenv("DEFAULT_FARM_SIZE_HA", "2.5"))
DEFAULT_NUMBER_OF_PUMPS = int(os.getenv("DEFAULT_NUMBER_OF_PUMPS", "1"))
DEFAULT_PUMP_FLOW_RATE = float(os.getenv("DEFAULT_PUMP_FLOW_RATE", "10"))
FEED_URL = os.getenv("FEED_URL")
FEED_API_KEY = os.getenv("FEED_API_KEY")
FEED_PATH = os.getenv("FEED_PATH")

# --- Service ---
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
API_PORT = int(os.getenv("API_PORT", "8300"))
