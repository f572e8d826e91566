from fastapi import HTTPException, Request

from agroflow.history.store import EmptyHistoryError
from agroflow.schemas.models import SensorData, WaterBudget
from agroflow.sync.orchestrator import SyncOrchestrator


def get_orchestrator(request: Request) -> SyncOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Sync orchestrator is not running.")
    return orchestrator


def require_current(orchestrator: SyncOrchestrator) -> tuple[SensorData, WaterBudget]:
    """Current (sample, budget) or 503 while the history is still unseeded."""
    try:
        sample = orchestrator.store.current_sample()
    except EmptyHistoryError:
        raise HTTPException(status_code=503, detail="Sensor history is not available yet.")
    if orchestrator.budget is None:
        raise HTTPException(status_code=503, detail="Water budget is not available yet.")
    return sample, orchestrator.budget
