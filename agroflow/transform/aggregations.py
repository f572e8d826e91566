from typing import Any, Dict, Sequence

import numpy as np
import pandas as pd

from agroflow.schemas.models import SensorData

SENSOR_COLUMNS = ["timestamp", "soil_moisture", "rainfall", "groundwater_level", "temperature", "humidity"]


def history_to_frame(samples: Sequence[SensorData]) -> pd.DataFrame:
    """Converts the history window into a DataFrame (oldest first)."""
    if not samples:
        return pd.DataFrame(columns=SENSOR_COLUMNS)
    return pd.DataFrame([s.model_dump() for s in samples], columns=SENSOR_COLUMNS)


def moisture_trend(moisture: pd.Series) -> float:
    """
    Least-squares slope of soil moisture in percentage points per sample.
    Positive = wetting, Negative = drying.
    """
    values = moisture.dropna().to_numpy(dtype=float)
    if len(values) < 2:
        return 0.0
    slope, _ = np.polyfit(np.arange(len(values)), values, 1)
    return round(float(slope), 3)


def summarize_history(samples: Sequence[SensorData]) -> Dict[str, Any]:
    """
    Aggregates the sensor window into summary statistics.
    """
    df = history_to_frame(samples)
    if df.empty:
        return {"sample_count": 0}

    return {
        "sample_count": int(len(df)),
        "first_timestamp": df["timestamp"].iloc[0],
        "last_timestamp": df["timestamp"].iloc[-1],
        "avg_soil_moisture": round(float(df["soil_moisture"].mean()), 2),
        "min_soil_moisture": round(float(df["soil_moisture"].min()), 2),
        "max_soil_moisture": round(float(df["soil_moisture"].max()), 2),
        "total_rainfall_mm": round(float(df["rainfall"].sum()), 2),
        "rain_event_count": int((df["rainfall"] > 0).sum()),
        "avg_groundwater_level": round(float(df["groundwater_level"].mean()), 2),
        "avg_temperature": round(float(df["temperature"].mean()), 2),
        "avg_humidity": round(float(df["humidity"].mean()), 2),
        "moisture_trend_per_sample": moisture_trend(df["soil_moisture"]),
    }
