from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional

from agroflow.schemas.models import ConnectionStatus, FarmSettings, ScheduleItem, SensorData, WaterBudget

# Used whenever the environmental lookup fails
FALLBACK_ENVIRONMENT: Dict[str, float] = {
    "temperature": 25.0,
    "rainfall": 0.0,
    "groundwater_level": 10.0,
    "humidity": 50.0,
}

# Used whenever schedule generation fails
DEFAULT_SCHEDULE: List[ScheduleItem] = [
    ScheduleItem(time="06:00 AM", action="Morning Moisture Check", status="Completed", type="check"),
    ScheduleItem(time="08:00 AM", action="Start Irrigation Cycle", status="Pending", type="irrigate"),
    ScheduleItem(time="12:00 PM", action="Midday System Monitor", status="Scheduled", type="monitor"),
    ScheduleItem(time="05:00 PM", action="Evening Moisture Update", status="Scheduled", type="update"),
]

DataCallback = Callable[[Dict[str, Any]], None]
StatusCallback = Callable[[ConnectionStatus], None]
# May return the task still shutting down so callers can await it
Unsubscribe = Callable[[], Optional[Awaitable[Any]]]


class EnvironmentalDataError(RuntimeError):
    """Raised by an environmental source when a lookup cannot be completed."""


class EnvironmentalDataSource(ABC):
    """
    Abstract source of current environmental conditions for a location.
    """

    @abstractmethod
    async def fetch(self, location: str) -> Dict[str, Any]:
        """
        Returns a partial sensor sample (any of temperature, rainfall,
        groundwater_level, humidity, soil_moisture).

        Raises:
            EnvironmentalDataError: If the lookup fails or times out.
        """
        pass


class PushFeed(ABC):
    """
    Abstract real-time telemetry subscription.
    """

    @abstractmethod
    def subscribe(
        self,
        settings: FarmSettings,
        on_data: DataCallback,
        on_status: StatusCallback,
    ) -> Unsubscribe:
        """
        Starts delivering partial samples to `on_data`. The returned callable
        stops delivery and may return the cancelled task; calling it more than
        once is a no-op.
        """
        pass


class ScheduleGenerator(ABC):
    """
    Abstract advisory generator of a daily irrigation plan.
    """

    @abstractmethod
    async def generate(
        self,
        settings: FarmSettings,
        sample: SensorData,
        budget: WaterBudget,
    ) -> List[ScheduleItem]:
        pass


class CommandGenerator(ABC):
    """
    Abstract one-sentence irrigation command producer.
    """

    @abstractmethod
    async def command(self, settings: FarmSettings, sample: SensorData, budget: WaterBudget) -> str:
        pass
