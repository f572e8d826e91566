import logging
from typing import Any, Dict, Mapping

from agroflow.schemas.models import SensorData

logger = logging.getLogger(__name__)

# Accepted update keys (snake_case and camelCase) -> SensorData field.
# 'timestamp' is intentionally absent: it is always regenerated on merge.
MERGEABLE_FIELDS: Dict[str, str] = {}
for _name, _field in SensorData.model_fields.items():
    if _name == "timestamp":
        continue
    MERGEABLE_FIELDS[_name] = _name
    if _field.alias:
        MERGEABLE_FIELDS[_field.alias] = _name


def normalize_update(update: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Maps a partial sensor payload onto SensorData field names.

    Unknown keys and None values are dropped, so a payload can never erase a
    field that the previous sample defined.
    """
    changes: Dict[str, Any] = {}
    for key, value in (update or {}).items():
        field = MERGEABLE_FIELDS.get(key)
        if field is None:
            if key != "timestamp":
                logger.debug(f"Ignoring unknown sensor field '{key}'")
            continue
        if value is None:
            continue
        changes[field] = value
    return changes


def validate_update(update: Any) -> Dict[str, Any]:
    """
    Checks a partial payload on its own, before any sample exists to merge it into.

    Returns:
        dict: The normalized changes.

    Raises:
        TypeError: If the payload is not a mapping.
        pydantic.ValidationError: If a value is not numeric.
    """
    if not isinstance(update, Mapping):
        raise TypeError(f"Sensor update must be a mapping, got {type(update).__name__}")
    changes = normalize_update(update)
    placeholder = {name: 0.0 for name in MERGEABLE_FIELDS.values()}
    placeholder.update(changes)
    SensorData(timestamp="00:00", **placeholder)
    return changes


def merge_sample(previous: SensorData, update: Mapping[str, Any], timestamp: str) -> SensorData:
    """
    Builds the next sample from the previous one.

    Precedence: fields in `update` override `previous`; `timestamp` is always
    replaced by the given value.

    Raises:
        pydantic.ValidationError: If an update value is not numeric.
    """
    data = previous.model_dump()
    data.update(normalize_update(update))
    data["timestamp"] = timestamp
    return SensorData(**data)
