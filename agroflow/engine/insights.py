"""
Derived metrics over a computed water budget.

These are scoring heuristics for reporting, layered on top of the budget; they
never feed back into the budget itself.
"""
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from agroflow.engine.coefficients import crop_water_need, irrigation_efficiency
from agroflow.schemas.models import FarmSettings, IrrigationMethod, SensorData, WaterBudget

# Baseline water-use efficiency score (%) per method
EFFICIENCY_SCORE_BASE = {
    IrrigationMethod.FLOOD: 62.0,
    IrrigationMethod.SPRINKLER: 78.0,
    IrrigationMethod.DRIP: 91.0,
    IrrigationMethod.SMART_DRIP: 96.0,
}
EFFICIENCY_SCORE_DEFAULT = 75.0

PUMPING_COST_PER_M3 = 0.45   # currency units saved per m³ of rain
CARBON_KG_PER_COST_UNIT = 0.12

LOW_MOISTURE_ALERT_PCT = 30.0
HIGH_MOISTURE_ALERT_PCT = 80.0


@dataclass
class MoistureAlert:
    """Critical soil moisture condition with a prompt for the advisory chat."""
    level: str
    message: str
    assistant_prompt: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BudgetInsights:
    water_use_efficiency: float
    pumping_savings: float
    yield_impact_pct: float
    carbon_reduction_kg: float
    soil_storage_m3: float
    rainfall_m3: float
    groundwater_used_m3: float
    smart_drip_savings_m3: float
    pump_duration_label: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def water_use_efficiency(method: IrrigationMethod, balance: float) -> float:
    base = EFFICIENCY_SCORE_BASE.get(method, EFFICIENCY_SCORE_DEFAULT)
    return base + (2.5 if balance >= 0 else -5.2)


def yield_impact(balance: float) -> float:
    """Expected yield change (%) for the current balance."""
    if balance < -50:
        return -8.0
    if balance < 0:
        return 4.0
    return 14.0


def smart_drip_savings(settings: FarmSettings) -> float:
    """Daily m³ saved by switching the current method to smart drip."""
    base = crop_water_need(settings.crop) * settings.farm_size
    current = base / irrigation_efficiency(settings.irrigation_method)
    smart = base / irrigation_efficiency(IrrigationMethod.SMART_DRIP)
    return max(0.0, current - smart)


def format_pump_duration(hours: float) -> str:
    """Renders hours as '2h 5m' above one hour, otherwise as '45 mins'."""
    # Halves round up, not to even
    minutes = math.floor((hours or 0) * 60 + 0.5)
    if minutes > 60:
        return f"{minutes // 60}h {minutes % 60}m"
    return f"{minutes} mins"


def classify_moisture_alert(sample: SensorData) -> Optional[MoistureAlert]:
    if sample.soil_moisture < LOW_MOISTURE_ALERT_PCT:
        return MoistureAlert(
            level="critical_low",
            message="Critical: Soil moisture is too low!",
            assistant_prompt="The soil moisture is critically low. What should I do to solve this immediately?",
        )
    if sample.soil_moisture > HIGH_MOISTURE_ALERT_PCT:
        return MoistureAlert(
            level="critical_high",
            message="Critical: Soil moisture is too high!",
            assistant_prompt="The soil moisture is critically high. What should I do to solve this immediately?",
        )
    return None


def build_insights(settings: FarmSettings, budget: WaterBudget) -> BudgetInsights:
    savings = float(round(budget.rainfall_contribution * PUMPING_COST_PER_M3))
    return BudgetInsights(
        water_use_efficiency=water_use_efficiency(settings.irrigation_method, budget.balance),
        pumping_savings=savings,
        yield_impact_pct=yield_impact(budget.balance),
        carbon_reduction_kg=round(savings * CARBON_KG_PER_COST_UNIT, 1),
        soil_storage_m3=budget.available_water - budget.rainfall_contribution,
        rainfall_m3=budget.rainfall_contribution,
        groundwater_used_m3=abs(budget.balance) if budget.balance < 0 else 0.0,
        smart_drip_savings_m3=smart_drip_savings(settings),
        pump_duration_label=format_pump_duration(budget.pump_duration),
    )
