"""
Deterministic advisory collaborators: a rule-based schedule generator, a
template command generator, and the context block handed to chat assistants.
"""
from typing import List

from agroflow.engine.insights import format_pump_duration
from agroflow.extract.base import CommandGenerator, ScheduleGenerator
from agroflow.schemas.models import FarmSettings, GroundwaterStatus, ScheduleItem, SensorData, WaterBudget

DEFAULT_COMMAND = "System ready. Awaiting sensor stabilization."


class RuleBasedScheduleGenerator(ScheduleGenerator):
    """Builds a 4-6 step plan for the day from the current budget."""

    async def generate(self, settings: FarmSettings, sample: SensorData, budget: WaterBudget) -> List[ScheduleItem]:
        items = [ScheduleItem(time="06:00 AM", action="Pre-dawn Moisture Check", status="Completed", type="check")]

        if budget.balance < 0:
            items.append(ScheduleItem(
                time="07:00 AM",
                action=(
                    f"Irrigate {abs(budget.balance):.1f} m³ "
                    f"({format_pump_duration(budget.pump_duration)} pump run)"
                ),
                status="Pending",
                type="irrigate",
            ))
        else:
            items.append(ScheduleItem(
                time="08:00 AM",
                action=f"Skip Irrigation Cycle (surplus {budget.balance:.1f} m³)",
                status="Pending",
                type="check",
            ))

        if sample.rainfall > 10:
            items.append(ScheduleItem(time="10:00 AM", action="Rainfall Drainage Inspection", status="Scheduled", type="monitor"))

        items.append(ScheduleItem(time="12:00 PM", action="Midday System Monitor", status="Scheduled", type="monitor"))

        if budget.groundwater_status == GroundwaterStatus.CRITICAL:
            items.append(ScheduleItem(time="03:00 PM", action="Groundwater Extraction Review", status="Scheduled", type="monitor"))

        items.append(ScheduleItem(time="05:00 PM", action="Evening Moisture Update", status="Scheduled", type="update"))
        return items


class TemplateCommandGenerator(CommandGenerator):
    async def command(self, settings: FarmSettings, sample: SensorData, budget: WaterBudget) -> str:
        crop = settings.crop.value
        if budget.pump_duration > 0:
            return (
                f"Run {settings.number_of_pumps} pump(s) at {settings.pump_flow_rate:.1f} m³/h for "
                f"{format_pump_duration(budget.pump_duration)} to apply {abs(budget.balance):.1f} m³ to the {crop} field."
            )
        if budget.balance < 0:
            return (
                f"Irrigation of {abs(budget.balance):.1f} m³ is required but no pump capacity is configured; "
                f"check the pump settings."
            )
        return f"Hold irrigation: available water exceeds {crop} demand by {budget.balance:.1f} m³."


def build_advisory_context(settings: FarmSettings, sample: SensorData, budget: WaterBudget) -> str:
    """Renders the farm, sensor, and budget state as a plain text block."""
    return "\n".join([
        "Current Farm Context:",
        f"- Location: {settings.location}",
        f"- Farm Size: {settings.farm_size} hectares",
        f"- Crop: {settings.crop.value}",
        f"- Irrigation Method: {settings.irrigation_method.value}",
        f"- Season: {settings.season.value}",
        f"- Pumps: {settings.number_of_pumps} pumps at {settings.pump_flow_rate} m³/h each",
        "",
        "Current Sensor Data:",
        f"- Soil Moisture: {sample.soil_moisture:.1f}%",
        f"- Rainfall: {sample.rainfall:.1f} mm",
        f"- Groundwater Level: {sample.groundwater_level:.1f} m below surface",
        f"- Temperature: {sample.temperature:.1f}°C",
        f"- Humidity: {sample.humidity:.1f}%",
        "",
        "Current Water Budget:",
        f"- Available Water: {budget.available_water:.2f} m³",
        f"- Crop Demand: {budget.crop_demand:.2f} m³",
        f"- Water Balance: {budget.balance:.2f} m³",
        f"- Groundwater Status: {budget.groundwater_status.value}",
        f"- Recommendation: {budget.recommendation}",
    ])
