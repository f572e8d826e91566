from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from agroflow.api.deps import get_orchestrator
from agroflow.sync.commands import ClearOverride
from agroflow.sync.orchestrator import SyncOrchestrator
from agroflow.transform.aggregations import summarize_history

router = APIRouter(prefix="/api/v1/sensors", tags=["Sensors"])


class SensorOverride(BaseModel):
    """
    Manual values from the dashboard sliders. Omitted fields keep their
    current value; an empty body switches back to live mode.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    soil_moisture: Optional[float] = Field(None, ge=0, le=100)
    rainfall: Optional[float] = Field(None, ge=0)
    groundwater_level: Optional[float] = Field(None)
    temperature: Optional[float] = Field(None)
    humidity: Optional[float] = Field(None, ge=0, le=100)


def _state(orchestrator: SyncOrchestrator):
    store, budget = orchestrator.store, orchestrator.budget
    return {
        "manual_mode": store.manual_mode,
        "version": store.version,
        "sample": None if store.is_empty else store.current_sample().model_dump(mode="json"),
        "budget": budget.model_dump(mode="json") if budget else None,
    }


@router.get("/history")
def get_history(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """
    Sensor history window (oldest first) with summary statistics.
    """
    samples = orchestrator.store.samples
    return {
        "count": len(samples),
        "capacity": orchestrator.store.capacity,
        "manual_mode": orchestrator.store.manual_mode,
        "summary": summarize_history(samples),
        "data": [s.model_dump(mode="json") for s in samples],
    }


@router.post("/override")
def override_sensors(
    payload: Optional[SensorOverride] = None,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    update = payload.model_dump(exclude_none=True) if payload is not None else {}
    try:
        orchestrator.manual_override(update)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _state(orchestrator)


@router.post("/live")
def resume_live(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    orchestrator.dispatch(ClearOverride())
    return _state(orchestrator)
