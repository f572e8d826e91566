import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from agroflow.config.settings import FEED_POLL_INTERVAL_SECONDS, HTTP_TIMEOUT_SECONDS
from agroflow.extract.base import DataCallback, PushFeed, StatusCallback, Unsubscribe
from agroflow.schemas.models import ConnectionStatus, FarmSettings

logger = logging.getLogger(__name__)

DEFAULT_FEED_PATH = "soilMoisture"

_UNSET = object()


def normalize_feed_payload(data: Any) -> Optional[Dict[str, Any]]:
    """
    Converts a raw node value into a partial sample.
    A bare number is the soil moisture reading; an object is passed through.
    """
    if data is None or isinstance(data, bool):
        return None
    if isinstance(data, (int, float)):
        return {"soil_moisture": float(data)}
    if isinstance(data, dict):
        return dict(data)
    return None


class FirebaseRestFeed(PushFeed):
    """
    Polls a Firebase Realtime Database node over its REST API and forwards
    every changed value. Without a configured URL and key it stays idle.
    """

    def __init__(
        self,
        poll_interval: float = FEED_POLL_INTERVAL_SECONDS,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._transport = transport

    def subscribe(self, settings: FarmSettings, on_data: DataCallback, on_status: StatusCallback) -> Unsubscribe:
        if not settings.feed_url or not settings.feed_api_key:
            logger.info("Push feed not configured, staying idle.")
            on_status(ConnectionStatus.IDLE)
            return lambda: None

        on_status(ConnectionStatus.CONNECTING)
        task = asyncio.get_running_loop().create_task(self._poll(settings, on_data, on_status))
        active = [True]

        def unsubscribe():
            if not active[0]:
                return None
            active[0] = False
            task.cancel()
            logger.info("🔌 Push feed unsubscribed.")
            return task

        return unsubscribe

    async def _poll(self, settings: FarmSettings, on_data: DataCallback, on_status: StatusCallback):
        path = (settings.feed_path or DEFAULT_FEED_PATH).strip("/")
        url = f"{settings.feed_url.rstrip('/')}/{path}.json"
        status = ConnectionStatus.CONNECTING
        last_value = _UNSET

        def report(new_status: ConnectionStatus):
            nonlocal status
            if new_status != status:
                status = new_status
                on_status(new_status)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            while True:
                try:
                    response = await client.get(url, params={"auth": settings.feed_api_key})
                    response.raise_for_status()
                    value = response.json()
                except httpx.TransportError as e:
                    logger.warning(f"⚠️ Feed unreachable at {url}: {e}")
                    report(ConnectionStatus.DISCONNECTED)
                except (httpx.HTTPStatusError, ValueError) as e:
                    logger.error(f"❌ Feed read error at {url}: {e}")
                    report(ConnectionStatus.ERROR)
                else:
                    report(ConnectionStatus.CONNECTED)
                    if value != last_value:
                        last_value = value
                        payload = normalize_feed_payload(value)
                        if payload:
                            logger.info(f"📡 Feed data received from {path}: {payload}")
                            try:
                                on_data(payload)
                            except Exception:
                                logger.exception("Feed data handler failed")

                await asyncio.sleep(self.poll_interval)
