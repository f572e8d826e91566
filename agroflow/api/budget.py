from fastapi import APIRouter, Depends, HTTPException, Query, Request

from agroflow.api.deps import get_orchestrator, require_current
from agroflow.engine.insights import build_insights, classify_moisture_alert
from agroflow.extract.advisory import DEFAULT_COMMAND, TemplateCommandGenerator, build_advisory_context
from agroflow.sync.orchestrator import SyncOrchestrator

router = APIRouter(prefix="/api/v1", tags=["Water Budget"])

command_generator = TemplateCommandGenerator()


@router.get("/budget")
def get_budget(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """
    Current water budget with the sample it was computed from.
    """
    sample, budget = require_current(orchestrator)
    return {
        "budget": budget.model_dump(mode="json"),
        "sample": sample.model_dump(mode="json"),
        "version": orchestrator.store.version,
        "manual_mode": orchestrator.store.manual_mode,
        "feed_status": orchestrator.feed_status.value,
        "is_syncing": orchestrator.is_syncing,
    }


@router.get("/budget/insights")
def get_insights(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """
    Efficiency, savings, and impact metrics plus any critical moisture alert.
    """
    sample, budget = require_current(orchestrator)
    alert = classify_moisture_alert(sample)
    return {
        "insights": build_insights(orchestrator.settings, budget).to_dict(),
        "alert": alert.to_dict() if alert else None,
    }


@router.get("/budget/snapshots")
def get_snapshots(
    request: Request,
    limit: int = Query(25, ge=1, le=500),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    """
    Stored budget snapshots for the current location (requires MongoDB).
    """
    loader = getattr(request.app.state, "snapshot_loader", None)
    if loader is None:
        raise HTTPException(status_code=404, detail="Snapshot storage is not configured.")
    data = loader.recent(orchestrator.settings.location, limit=limit)
    return {"count": len(data), "data": data}


@router.get("/schedule")
async def get_schedule(
    refresh: bool = Query(False, description="Regenerate instead of returning the latest plan"),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    sample, budget = require_current(orchestrator)
    schedule = orchestrator.schedule
    if refresh or not schedule:
        schedule = await orchestrator.refresh_schedule(sample, budget)
    return {"count": len(schedule), "data": [item.model_dump(mode="json") for item in schedule]}


@router.get("/command")
async def get_command(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """
    One-sentence smart irrigation command for the current state.
    """
    if orchestrator.budget is None or orchestrator.store.is_empty:
        return {"command": DEFAULT_COMMAND}
    sample, budget = require_current(orchestrator)
    return {"command": await command_generator.command(orchestrator.settings, sample, budget)}


@router.get("/advisory/context")
def get_advisory_context(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    sample, budget = require_current(orchestrator)
    return {"context": build_advisory_context(orchestrator.settings, sample, budget)}
