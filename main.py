import asyncio
import json
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from agroflow.api.budget import router as budget_router
from agroflow.api.sensors import router as sensors_router
from agroflow.api.settings import router as settings_router
from agroflow.config.database import db
from agroflow.config.settings import (
    API_PORT,
    DEFAULT_FARM_SIZE_HA,
    DEFAULT_LOCATION,
    DEFAULT_NUMBER_OF_PUMPS,
    DEFAULT_PUMP_FLOW_RATE,
    FEED_API_KEY,
    FEED_PATH,
    FEED_POLL_INTERVAL_SECONDS,
    FEED_URL,
    HTTP_TIMEOUT_SECONDS,
    OPEN_METEO_FORECAST_URL,
    OPEN_METEO_GEOCODING_URL,
)
from agroflow.extract.advisory import RuleBasedScheduleGenerator
from agroflow.extract.firebase_feed import FirebaseRestFeed
from agroflow.extract.open_meteo_adapter import OpenMeteoEnvironmentalSource
from agroflow.load.budget_loader import BudgetSnapshotLoader
from agroflow.schemas.models import CropType, FarmSettings, IrrigationMethod
from agroflow.sync.orchestrator import SyncOrchestrator
from agroflow.utils.logger import setup_logger

logger = setup_logger()


def default_settings(location: Optional[str] = None) -> FarmSettings:
    return FarmSettings(
        location=location or DEFAULT_LOCATION,
        farm_size=DEFAULT_FARM_SIZE_HA,
        crop=CropType.WHEAT,
        irrigation_method=IrrigationMethod.DRIP,
        number_of_pumps=DEFAULT_NUMBER_OF_PUMPS,
        pump_flow_rate=DEFAULT_PUMP_FLOW_RATE,
        feed_url=FEED_URL,
        feed_api_key=FEED_API_KEY,
        feed_path=FEED_PATH,
    )


def build_orchestrator(settings: Optional[FarmSettings] = None, with_feed: bool = True) -> SyncOrchestrator:
    """Wires the production adapters into a SyncOrchestrator."""
    environment = OpenMeteoEnvironmentalSource(
        forecast_url=OPEN_METEO_FORECAST_URL,
        geocoding_url=OPEN_METEO_GEOCODING_URL,
        timeout=HTTP_TIMEOUT_SECONDS,
    )
    feed = FirebaseRestFeed(poll_interval=FEED_POLL_INTERVAL_SECONDS, timeout=HTTP_TIMEOUT_SECONDS) if with_feed else None
    return SyncOrchestrator(
        settings or default_settings(),
        environment=environment,
        feed=feed,
        scheduler=RuleBasedScheduleGenerator(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup logic
    logger.info("Starting AgroFlow Water Budget API...")
    orchestrator = build_orchestrator()

    app.state.snapshot_loader = None
    if db.is_configured:
        loader = BudgetSnapshotLoader(db)
        orchestrator.subscribe(loader)
        app.state.snapshot_loader = loader
    else:
        logger.warning("⚠️ MONGO_URI not set. Budget snapshots will not be stored.")

    app.state.orchestrator = orchestrator
    await orchestrator.start()
    yield
    # Shutdown logic
    logger.info("Shutting down AgroFlow...")
    await orchestrator.stop()
    db.close()


app = FastAPI(title="AgroFlow Water Budget Engine", version="1.0.0", lifespan=lifespan)

app.include_router(budget_router)
app.include_router(sensors_router)
app.include_router(settings_router)


@app.get("/health")
def health_check():
    """Health check for the water budget service"""
    orchestrator = getattr(app.state, "orchestrator", None)
    return {
        "status": "active",
        "service": "AgroFlow Water Budget",
        "sync_running": bool(orchestrator and orchestrator.is_running),
        "feed_status": orchestrator.feed_status.value if orchestrator else "idle",
    }


async def run_snapshot(location: Optional[str] = None) -> dict:
    """One-off sync: fetch environment, compute the budget, and build the schedule."""
    orchestrator = build_orchestrator(default_settings(location), with_feed=False)
    budget = await orchestrator.initial_sync()
    schedule = await orchestrator.refresh_schedule()
    return {
        "location": orchestrator.settings.location,
        "sample": orchestrator.store.current_sample().model_dump(mode="json"),
        "budget": budget.model_dump(mode="json"),
        "schedule": [item.model_dump(mode="json") for item in schedule],
    }


# --- CLI JOB RUNNER ---
def main():
    """
    Main Entry Point.
    Usage: python main.py serve
           python main.py snapshot [location]
    """
    if len(sys.argv) < 2:
        logger.error("No job specified. Usage: python main.py <serve|snapshot> [location]")
        sys.exit(1)

    job_name = sys.argv[1]
    logger.info(f"Starting AgroFlow. Job: {job_name}")

    try:
        if job_name == "serve":
            import uvicorn
            uvicorn.run(app, host="0.0.0.0", port=API_PORT)
        elif job_name == "snapshot":
            location = sys.argv[2] if len(sys.argv) > 2 else None
            result = asyncio.run(run_snapshot(location))
            print(json.dumps(result, indent=2, ensure_ascii=False))
        else:
            logger.warning(f"Job {job_name} not recognized.")

    except Exception:
        logger.exception("Critical Job Failure")
        sys.exit(1)


if __name__ == "__main__":
    main()
