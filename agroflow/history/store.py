import logging
import random
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional, Tuple

from agroflow.config.settings import HISTORY_CAPACITY
from agroflow.history.merge import merge_sample
from agroflow.schemas.models import SensorData

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%H:%M"

ChangeListener = Callable[[SensorData], None]


class EmptyHistoryError(RuntimeError):
    """Raised when the history is read or updated before it was seeded."""


class MergePolicy(str, Enum):
    SLIDE = "slide"        # advance time: drop the oldest sample, append
    IN_PLACE = "in_place"  # enrich the current snapshot: replace the tail
    AUTO = "auto"          # IN_PLACE for the first update after seeding, SLIDE afterwards


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


class SensorHistoryStore:
    """
    Fixed-capacity, chronologically ordered window of sensor samples.

    The tail is the current sample. Once seeded the window is never empty and
    is only appended to or tail-updated. Every tail change bumps `version` and
    synchronously notifies the registered listeners.
    """

    def __init__(
        self,
        capacity: int = HISTORY_CAPACITY,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
    ):
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self.capacity = capacity
        self._clock = clock or datetime.now
        self._rng = rng or random.Random()
        self._samples: List[SensorData] = []
        self._listeners: List[ChangeListener] = []
        self._manual_mode = False
        self._window_established = False
        self._version = 0

    # --- State ---

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def samples(self) -> Tuple[SensorData, ...]:
        return tuple(self._samples)

    @property
    def is_empty(self) -> bool:
        return not self._samples

    @property
    def manual_mode(self) -> bool:
        return self._manual_mode

    @property
    def version(self) -> int:
        """Sequence number of the tail, incremented on every tail change."""
        return self._version

    @property
    def window_established(self) -> bool:
        return self._window_established

    def current_sample(self) -> SensorData:
        if not self._samples:
            raise EmptyHistoryError("Sensor history has not been seeded")
        return self._samples[-1]

    # --- Listeners ---

    def add_listener(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self):
        self._version += 1
        tail = self._samples[-1]
        for listener in list(self._listeners):
            listener(tail)

    # --- Operations ---

    def seed(self) -> bool:
        """
        Fills an empty history with a synthetic run of hourly samples ending now.

        Returns:
            bool: True if the history was seeded by this call.
        """
        if self._samples:
            return False

        now = self._clock()
        rng = self._rng
        for i in range(self.capacity - 1, -1, -1):
            moment = now - timedelta(hours=i)
            self._samples.append(SensorData(
                timestamp=format_timestamp(moment),
                soil_moisture=45 + rng.uniform(-10, 10),
                rainfall=rng.uniform(0, 5) if rng.random() > 0.8 else 0.0,
                groundwater_level=25 + rng.uniform(0, 2),
                temperature=28 + rng.uniform(-5, 5),
                humidity=60 + rng.uniform(-10, 10),
            ))

        self._window_established = False
        logger.info(f"🌱 Seeded sensor history with {len(self._samples)} synthetic samples")
        self._notify()
        return True

    def apply_partial(self, update: Mapping[str, Any], policy: MergePolicy = MergePolicy.AUTO) -> SensorData:
        """
        Merges `update` over the current tail and stores the result.

        Args:
            update: Partial sensor fields (snake_case or camelCase keys).
            policy: SLIDE, IN_PLACE, or AUTO (see MergePolicy).

        Returns:
            SensorData: The new tail.

        Raises:
            EmptyHistoryError: If the history was never seeded.
        """
        previous = self.current_sample()
        sample = merge_sample(previous, update, format_timestamp(self._clock()))

        if policy == MergePolicy.AUTO:
            policy = MergePolicy.SLIDE if self._window_established else MergePolicy.IN_PLACE

        if policy == MergePolicy.SLIDE:
            self._samples.append(sample)
            # Drop the oldest samples so the window keeps its length
            while len(self._samples) > self.capacity:
                self._samples.pop(0)
        else:
            self._samples[-1] = sample

        self._window_established = True
        self._notify()
        return sample

    def override(self, update: Mapping[str, Any]) -> SensorData:
        """Enters manual mode and replaces the tail with the merged sample."""
        self.current_sample()
        self._manual_mode = True
        return self.apply_partial(update, MergePolicy.IN_PLACE)

    def clear_override(self) -> None:
        """Returns to live mode. Does not touch the samples."""
        self._manual_mode = False
