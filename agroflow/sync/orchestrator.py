import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

from pydantic import ValidationError

from agroflow.config.settings import CACHE_TTL_SECONDS, DRIFT_INTERVAL_SECONDS, HTTP_TIMEOUT_SECONDS
from agroflow.engine.water_budget import compute_budget
from agroflow.extract.base import (
    DEFAULT_SCHEDULE,
    FALLBACK_ENVIRONMENT,
    EnvironmentalDataSource,
    PushFeed,
    ScheduleGenerator,
    Unsubscribe,
)
from agroflow.history.merge import validate_update
from agroflow.history.store import MergePolicy, SensorHistoryStore
from agroflow.schemas.models import ConnectionStatus, FarmSettings, ScheduleItem, SensorData, WaterBudget
from agroflow.sync.cache import TTLCache
from agroflow.sync.commands import (
    ClearOverride,
    LiveUpdate,
    Override,
    SensorCommand,
    command_from_manual_payload,
)

logger = logging.getLogger(__name__)

# Soil moisture random walk applied by the drift timer (percentage points)
DRIFT_STEP_MIN = -2.5
DRIFT_STEP_MAX = 1.5


@dataclass(frozen=True)
class BudgetSnapshot:
    """A recomputed budget together with the inputs it was computed from."""
    settings: FarmSettings
    sample: SensorData
    budget: WaterBudget
    version: int
    manual_mode: bool
    recorded_at: datetime

    def to_document(self) -> Dict[str, Any]:
        return {
            "location": self.settings.location,
            "settings": self.settings.model_dump(mode="json", exclude={"feed_api_key"}),
            "sample": self.sample.model_dump(mode="json"),
            "budget": self.budget.model_dump(mode="json"),
            "version": self.version,
            "manual_mode": self.manual_mode,
            "recorded_at": self.recorded_at,
        }


BudgetSubscriber = Callable[[BudgetSnapshot], None]


class SyncOrchestrator:
    """
    Coordinates every source that updates the sensor history and keeps a
    single current water budget.

    Sources:
    1. Initial sync: environmental lookup merged into the tail (start / location change).
    2. Push feed: live samples, which also end a manual override.
    3. Drift timer: small soil moisture random walk while nothing else arrives.
    4. Manual commands: Override / ClearOverride / LiveUpdate.

    Whichever source updates the tail last wins. Every tail change recomputes
    the budget synchronously and notifies subscribers.
    """

    def __init__(
        self,
        settings: FarmSettings,
        store: Optional[SensorHistoryStore] = None,
        environment: Optional[EnvironmentalDataSource] = None,
        feed: Optional[PushFeed] = None,
        scheduler: Optional[ScheduleGenerator] = None,
        env_cache: Optional[TTLCache] = None,
        schedule_cache: Optional[TTLCache] = None,
        drift_interval: float = DRIFT_INTERVAL_SECONDS,
        fetch_timeout: float = HTTP_TIMEOUT_SECONDS * 2,
        discard_stale_sync: bool = False,
        rng: Optional[random.Random] = None,
    ):
        self._settings = settings
        self.store = store or SensorHistoryStore()
        self.environment = environment
        self.feed = feed
        self.scheduler = scheduler
        self.env_cache = env_cache if env_cache is not None else TTLCache(CACHE_TTL_SECONDS)
        self.schedule_cache = schedule_cache if schedule_cache is not None else TTLCache(CACHE_TTL_SECONDS)
        self.drift_interval = drift_interval
        self.fetch_timeout = fetch_timeout
        self.discard_stale_sync = discard_stale_sync
        self._rng = rng or random.Random()

        self.schedule: List[ScheduleItem] = []
        self.feed_status = ConnectionStatus.IDLE
        self.is_syncing = False

        self._budget: Optional[WaterBudget] = None
        self._snapshot: Optional[BudgetSnapshot] = None
        self._subscribers: List[BudgetSubscriber] = []
        self._pending: Set[asyncio.Task] = set()
        self._drift_task: Optional[asyncio.Task] = None
        self._unsubscribe_feed: Optional[Unsubscribe] = None
        self._running = False
        self._zero_flow_warned = False

        self.store.add_listener(self._on_tail_changed)

    # --- State ---

    @property
    def settings(self) -> FarmSettings:
        return self._settings

    @property
    def budget(self) -> Optional[WaterBudget]:
        return self._budget

    @property
    def snapshot(self) -> Optional[BudgetSnapshot]:
        return self._snapshot

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(self, subscriber: BudgetSubscriber) -> Callable[[], None]:
        """Registers a consumer of recomputed budgets. Returns the remover."""
        self._subscribers.append(subscriber)

        def remove():
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return remove

    # --- Recompute ---

    def _on_tail_changed(self, sample: SensorData):
        self._recompute(sample)

    def _recompute(self, sample: SensorData) -> WaterBudget:
        budget = compute_budget(self._settings, sample)

        if budget.balance < 0 and self._settings.total_flow_rate <= 0 and not self._zero_flow_warned:
            logger.warning("⚠️ Water deficit detected but total pump flow rate is zero; check pump settings.")
            self._zero_flow_warned = True

        self._budget = budget
        self._snapshot = BudgetSnapshot(
            settings=self._settings,
            sample=sample,
            budget=budget,
            version=self.store.version,
            manual_mode=self.store.manual_mode,
            recorded_at=datetime.now(timezone.utc),
        )
        for subscriber in list(self._subscribers):
            try:
                subscriber(self._snapshot)
            except Exception:
                logger.exception("Budget subscriber failed")
        return budget

    # --- Lifecycle ---

    async def start(self):
        """Subscribes to the feed, starts the drift timer, and runs the initial sync."""
        if self._running:
            return
        self._running = True
        logger.info(f"🚀 Starting sync for {self._settings.location}")

        self._subscribe_feed()
        self._drift_task = asyncio.create_task(self._drift_loop())
        await self.initial_sync()

    async def stop(self):
        """Cancels the drift timer and unsubscribes the feed. Safe to call twice."""
        if not self._running:
            return
        self._running = False

        if self._drift_task is not None:
            self._drift_task.cancel()
            await asyncio.gather(self._drift_task, return_exceptions=True)
            self._drift_task = None

        await self._unsubscribe()

        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

        logger.info("🏁 Sync stopped.")

    def _subscribe_feed(self):
        if self.feed is None:
            self._on_feed_status(ConnectionStatus.IDLE)
            return
        self._unsubscribe_feed = self.feed.subscribe(self._settings, self.handle_feed_data, self._on_feed_status)

    async def _unsubscribe(self):
        if self._unsubscribe_feed is not None:
            unsubscribe, self._unsubscribe_feed = self._unsubscribe_feed, None
            closing = unsubscribe()
            # Wait for the feed's poll task to wind down
            if isinstance(closing, asyncio.Future):
                await asyncio.gather(closing, return_exceptions=True)

    def _on_feed_status(self, status: ConnectionStatus):
        if status != self.feed_status:
            logger.info(f"Feed status: {self.feed_status.value} -> {status.value}")
        self.feed_status = status

    # --- Source 1: Initial Sync ---

    async def initial_sync(self) -> Optional[WaterBudget]:
        """
        Fetches environmental data and merges it into the current sample.
        Schedule generation is started afterwards and not awaited.
        """
        self.is_syncing = True
        version_before = self.store.version
        try:
            env = await self._fetch_environment(self._settings.location)
        finally:
            self.is_syncing = False

        if self.discard_stale_sync and self.store.version != version_before:
            logger.warning("⚠️ History changed while syncing; discarding stale environmental data.")
            return self._budget

        self.store.seed()
        sample = self.store.apply_partial(env, MergePolicy.IN_PLACE)
        self._request_schedule(sample, self._budget)
        return self._budget

    async def _fetch_environment(self, location: str) -> Dict[str, Any]:
        cached = self.env_cache.get(location)
        if cached is not None:
            return dict(cached)

        if self.environment is None:
            return dict(FALLBACK_ENVIRONMENT)

        try:
            data = await asyncio.wait_for(self.environment.fetch(location), timeout=self.fetch_timeout)
            # Malformed payloads are never cached
            validate_update(data)
        except Exception as e:
            logger.error(f"❌ Environmental lookup failed for '{location}': {e}. Using fallback data.")
            return dict(FALLBACK_ENVIRONMENT)

        self.env_cache.set(location, dict(data))
        return dict(data)

    def _request_schedule(self, sample: SensorData, budget: WaterBudget):
        task = asyncio.create_task(self.refresh_schedule(sample, budget))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def refresh_schedule(
        self,
        sample: Optional[SensorData] = None,
        budget: Optional[WaterBudget] = None,
    ) -> List[ScheduleItem]:
        """Regenerates the advisory schedule, falling back to the default plan."""
        settings = self._settings
        sample = sample or self.store.current_sample()
        budget = budget or self._budget
        key = f"{settings.location}-{settings.crop.value}-{settings.irrigation_method.value}"

        cached = self.schedule_cache.get(key)
        if cached is not None:
            self.schedule = list(cached)
            return self.schedule

        items: List[ScheduleItem] = []
        if self.scheduler is not None:
            try:
                items = list(await self.scheduler.generate(settings, sample, budget))
            except Exception as e:
                logger.error(f"❌ Schedule generation failed: {e}. Using default schedule.")
                items = []

        if items:
            self.schedule_cache.set(key, items)
            self.schedule = items
        else:
            self.schedule = list(DEFAULT_SCHEDULE)
        return self.schedule

    # --- Source 2: Push Feed ---

    def handle_feed_data(self, update: Mapping[str, Any]) -> Optional[SensorData]:
        """Live data always wins over a stale manual override."""
        try:
            return self.dispatch(LiveUpdate(dict(update)))
        except ValidationError as e:
            logger.error(f"❌ Rejected malformed feed payload {dict(update)}: {e}")
            return None

    # --- Source 3: Drift Timer ---

    def drift_tick(self) -> Optional[SensorData]:
        """Advances the window with a slightly drifted soil moisture reading."""
        if self.store.is_empty:
            return None
        last = self.store.current_sample()
        step = self._rng.uniform(DRIFT_STEP_MIN, DRIFT_STEP_MAX)
        moisture = max(0.0, min(100.0, last.soil_moisture + step))
        return self.store.apply_partial({"soil_moisture": moisture}, MergePolicy.SLIDE)

    async def _drift_loop(self):
        while True:
            await asyncio.sleep(self.drift_interval)
            try:
                self.drift_tick()
            except Exception:
                logger.exception("Drift update failed")

    # --- Source 4: Manual Commands ---

    def dispatch(self, command: SensorCommand) -> Optional[SensorData]:
        """
        Applies a sensor command to the history.

        Returns:
            SensorData: The new tail, or None for ClearOverride.
        """
        if isinstance(command, ClearOverride):
            self.store.clear_override()
            logger.info("🟢 Manual override cleared, live mode resumed.")
            return None

        if isinstance(command, Override):
            self.store.seed()
            logger.info(f"✋ Manual override: {command.update}")
            return self.store.override(command.update)

        if isinstance(command, LiveUpdate):
            if self.store.manual_mode:
                self.store.clear_override()
                logger.info("📡 Live data received, leaving manual override.")
            self.store.seed()
            return self.store.apply_partial(command.update, MergePolicy.AUTO)

        raise TypeError(f"Unknown sensor command: {command!r}")

    def manual_override(self, update: Mapping[str, Any]) -> Optional[SensorData]:
        """Manual edit entry point: an empty edit clears the override."""
        return self.dispatch(command_from_manual_payload(update))

    # --- Settings ---

    async def save_settings(self, settings: FarmSettings) -> Optional[WaterBudget]:
        """
        Replaces the farm settings and recomputes immediately. A changed
        location or feed connection restarts the feed and re-syncs.
        """
        previous = self._settings
        self._settings = settings
        self._zero_flow_warned = False
        logger.info(f"💾 Settings saved for {settings.location}")

        if not self.store.is_empty:
            self._recompute(self.store.current_sample())

        if self._running and previous.feed_key() != settings.feed_key():
            await self._unsubscribe()
            self._subscribe_feed()
            await self.initial_sync()

        return self._budget
