from fastapi import APIRouter, Depends

from agroflow.api.deps import get_orchestrator
from agroflow.schemas.models import FarmSettings
from agroflow.sync.orchestrator import SyncOrchestrator

router = APIRouter(prefix="/api/v1/settings", tags=["Farm Settings"])


@router.get("")
def get_settings(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    return orchestrator.settings.model_dump(mode="json", exclude={"feed_api_key"})


@router.put("")
async def save_settings(settings: FarmSettings, orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """
    Saves the farm settings and recomputes the budget immediately.
    """
    budget = await orchestrator.save_settings(settings)
    return {
        "message": "Settings saved successfully",
        "settings": settings.model_dump(mode="json", exclude={"feed_api_key"}),
        "budget": budget.model_dump(mode="json") if budget else None,
    }
