from typing import Dict

from agroflow.schemas.models import CropType, IrrigationMethod

# Base crop water requirement (m³ per hectare per day, simplified)
CROP_WATER_NEED: Dict[CropType, float] = {
    CropType.WHEAT: 40.0,
    CropType.RICE: 120.0,
    CropType.MAIZE: 60.0,
    CropType.COTTON: 80.0,
    CropType.VEGETABLES: 50.0,
    CropType.FRUITS: 70.0,
}

# Fraction of applied water that reaches the root zone
IRRIGATION_EFFICIENCY: Dict[IrrigationMethod, float] = {
    IrrigationMethod.FLOOD: 0.50,
    IrrigationMethod.SPRINKLER: 0.75,
    IrrigationMethod.DRIP: 0.90,
    IrrigationMethod.SMART_DRIP: 0.95,
}

# 1 mm of rain over 1 ha = 10 m³
RAINFALL_M3_PER_MM_HA = 10.0

# Water held by the root zone at 100% soil moisture (m³/ha)
SOIL_CAPACITY_M3_PER_HA = 500.0

# Groundwater depth thresholds (meters below surface)
GROUNDWATER_CRITICAL_DEPTH_M = 50.0
GROUNDWATER_ABUNDANT_DEPTH_M = 15.0

# Recommendation thresholds
URGENT_MOISTURE_PCT = 30.0
SIGNIFICANT_RAINFALL_MM = 10.0


def crop_water_need(crop: CropType, table: Dict[CropType, float] = None) -> float:
    """Looks up the daily need per hectare. Unknown crops are a programming error."""
    table = CROP_WATER_NEED if table is None else table
    try:
        return table[crop]
    except KeyError:
        raise ValueError(f"Unknown crop type: {crop!r}") from None


def irrigation_efficiency(method: IrrigationMethod, table: Dict[IrrigationMethod, float] = None) -> float:
    """Looks up the efficiency fraction. Unknown methods are a programming error."""
    table = IRRIGATION_EFFICIENCY if table is None else table
    try:
        return table[method]
    except KeyError:
        raise ValueError(f"Unknown irrigation method: {method!r}") from None
