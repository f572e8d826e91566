"""
Domain Schemas for the AgroFlow Water Budget Engine

FarmSettings is the farm configuration, SensorData a single observation,
WaterBudget the derived irrigation decision. Sensor samples and budgets are
immutable; a new one is always built instead of mutating an old one.
"""
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CropType(str, Enum):
    WHEAT = "Wheat"
    RICE = "Rice"
    MAIZE = "Maize"
    COTTON = "Cotton"
    VEGETABLES = "Vegetables"
    FRUITS = "Fruits"


class IrrigationMethod(str, Enum):
    DRIP = "Drip Irrigation"
    SPRINKLER = "Sprinkler Irrigation"
    FLOOD = "Flood Irrigation"
    SMART_DRIP = "Smart Drip (AI Controlled)"


class Season(str, Enum):
    KHARIF = "Kharif (Monsoon)"
    RABI = "Rabi (Winter)"
    ZAID = "Zaid (Summer)"


class GroundwaterStatus(str, Enum):
    CRITICAL = "Critical"
    STABLE = "Stable"
    ABUNDANT = "Abundant"


class ConnectionStatus(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class CamelModel(BaseModel):
    """Accepts both snake_case field names and camelCase aliases on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(CamelModel):
    """Base configuration for immutable records."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class FarmSettings(CamelModel):
    """
    Farm configuration. One instance per farm, replaced only by an explicit save.
    """
    location: str = Field(..., description="Free text place name or 'lat,long'")
    farm_size: float = Field(..., gt=0, description="Farm size in hectares")
    crop: CropType
    irrigation_method: IrrigationMethod
    season: Season = Field(default=Season.ZAID, description="Advisory only, not used by the budget formula")
    number_of_pumps: int = Field(default=1, ge=0)
    pump_flow_rate: float = Field(default=10.0, ge=0, description="m³ per hour per pump")

    # Push feed connection (optional)
    feed_url: Optional[str] = Field(None, description="Realtime database URL")
    feed_api_key: Optional[str] = Field(None, description="Realtime database auth key")
    feed_path: Optional[str] = Field(None, description="Path of the sensor node, defaults to 'soilMoisture'")

    @property
    def total_flow_rate(self) -> float:
        return self.number_of_pumps * self.pump_flow_rate

    def feed_key(self) -> tuple:
        """Fields whose change requires a fresh sync and feed subscription."""
        return (self.location, self.feed_url, self.feed_api_key, self.feed_path)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "location": "Nashik, Maharashtra",
                "farm_size": 2.5,
                "crop": "Fruits",
                "irrigation_method": "Drip Irrigation",
                "season": "Zaid (Summer)",
                "number_of_pumps": 1,
                "pump_flow_rate": 10.0
            }
        },
    )


class SensorData(FrozenCamelModel):
    """
    One time-stamped observation. Every field is always defined.
    """
    timestamp: str = Field(..., description="Display time, HH:MM")
    soil_moisture: float = Field(..., description="Soil moisture percentage")
    rainfall: float = Field(..., description="Rainfall in mm")
    groundwater_level: float = Field(..., description="Meters below surface")
    temperature: float = Field(..., description="Air temperature in Celsius")
    humidity: float = Field(..., description="Relative humidity percentage")


class WaterBudget(FrozenCamelModel):
    """
    Irrigation decision derived from (FarmSettings, latest SensorData).
    """
    available_water: float = Field(..., description="m³")
    crop_demand: float = Field(..., description="m³")
    rainfall_contribution: float = Field(..., description="m³, part of available_water")
    groundwater_status: GroundwaterStatus
    balance: float = Field(..., description="available_water - crop_demand, m³")
    recommendation: str
    pump_duration: float = Field(0.0, description="Hours, 0 when balance >= 0")


class ScheduleItem(FrozenCamelModel):
    time: str = Field(..., description="e.g. '06:00 AM'")
    action: str
    status: Literal["Completed", "Pending", "Scheduled"]
    type: Literal["check", "irrigate", "monitor", "update"]
