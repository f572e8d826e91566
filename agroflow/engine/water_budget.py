from typing import Dict, Optional

from agroflow.engine.coefficients import (
    GROUNDWATER_ABUNDANT_DEPTH_M,
    GROUNDWATER_CRITICAL_DEPTH_M,
    RAINFALL_M3_PER_MM_HA,
    SIGNIFICANT_RAINFALL_MM,
    SOIL_CAPACITY_M3_PER_HA,
    URGENT_MOISTURE_PCT,
    crop_water_need,
    irrigation_efficiency,
)
from agroflow.schemas.models import (
    CropType,
    FarmSettings,
    GroundwaterStatus,
    IrrigationMethod,
    SensorData,
    WaterBudget,
)


def classify_groundwater(depth_m: float) -> GroundwaterStatus:
    """
    Maps the water table depth to a risk class.

    Depth is meters below surface, so a deep table (> 50 m) is Critical and a
    shallow one (< 15 m) is Abundant. Both boundaries are Stable.
    """
    if depth_m > GROUNDWATER_CRITICAL_DEPTH_M:
        return GroundwaterStatus.CRITICAL
    if depth_m < GROUNDWATER_ABUNDANT_DEPTH_M:
        return GroundwaterStatus.ABUNDANT
    return GroundwaterStatus.STABLE


def calculate_pump_duration(balance: float, total_flow_rate: float) -> float:
    """
    Hours of pumping needed to cover a deficit.
    Zero when there is no deficit or when no pump capacity is configured.
    """
    if balance >= 0 or total_flow_rate <= 0:
        return 0.0
    return abs(balance) / total_flow_rate


def build_recommendation(soil_moisture: float, rainfall: float, balance: float, pump_duration: float) -> str:
    # Priority order matters: low moisture wins even when in surplus
    if soil_moisture < URGENT_MOISTURE_PCT:
        return (
            f"Urgent: Irrigate {abs(balance):.1f} m³ immediately. "
            f"Run pumps for {pump_duration:.1f} hours."
        )
    if balance < 0:
        return (
            f"Scheduled: Apply {abs(balance):.1f} m³ water today. "
            f"Run pumps for {pump_duration:.1f} hours."
        )
    if rainfall > SIGNIFICANT_RAINFALL_MM:
        return "No irrigation needed. Significant rainfall detected."
    return "Soil moisture optimal. No irrigation required today."


def compute_budget(
    settings: FarmSettings,
    sample: SensorData,
    crop_table: Optional[Dict[CropType, float]] = None,
    efficiency_table: Optional[Dict[IrrigationMethod, float]] = None,
) -> WaterBudget:
    """
    Computes the daily water budget for a farm from one sensor sample.

    Pure and deterministic. Malformed numbers (e.g. negative rainfall) are not
    rejected and flow through to the result.

    Args:
        settings: Farm configuration (size, crop, method, pumps).
        sample: The current (tail) sensor observation.
        crop_table: Optional override of the crop water need table.
        efficiency_table: Optional override of the irrigation efficiency table.

    Returns:
        WaterBudget: A freshly built, immutable budget.

    Raises:
        ValueError: If the crop or irrigation method has no coefficient.
    """
    farm_size = settings.farm_size

    # 1. Crop Demand (m³): base demand scaled up by method losses
    crop_demand = (
        crop_water_need(settings.crop, crop_table) * farm_size
        / irrigation_efficiency(settings.irrigation_method, efficiency_table)
    )

    # 2. Rainfall Contribution (m³)
    rainfall_contribution = sample.rainfall * farm_size * RAINFALL_M3_PER_MM_HA

    # 3. Soil Water (m³)
    soil_water_available = (sample.soil_moisture / 100) * SOIL_CAPACITY_M3_PER_HA * farm_size

    # 4. Available Water
    available_water = soil_water_available + rainfall_contribution

    # 5. Groundwater
    groundwater_status = classify_groundwater(sample.groundwater_level)

    # 6. Balance
    balance = available_water - crop_demand

    # 7. Pumping
    pump_duration = calculate_pump_duration(balance, settings.number_of_pumps * settings.pump_flow_rate)

    # 8. Recommendation
    recommendation = build_recommendation(sample.soil_moisture, sample.rainfall, balance, pump_duration)

    return WaterBudget(
        available_water=available_water,
        crop_demand=crop_demand,
        rainfall_contribution=rainfall_contribution,
        groundwater_status=groundwater_status,
        balance=balance,
        recommendation=recommendation,
        pump_duration=pump_duration,
    )
