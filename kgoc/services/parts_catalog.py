"""
Static catalog of well components shown on the maintenance blueprint.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class PartPosition(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: int
    y: int


class WellPart(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str
    description: str
    position: PartPosition


def _part(part_id: str, name: str, category: str, description: str, x: int, y: int) -> WellPart:
    return WellPart(
        id=part_id,
        name=name,
        category=category,
        description=description,
        position=PartPosition(x=x, y=y),
    )


# Keyed by catalog key; positions are percentages of the blueprint canvas
WELL_PARTS: Dict[str, WellPart] = {
    # Surface equipment
    "WELLHEAD": _part("wellhead", "Wellhead", "Surface Equipment", "Main wellhead assembly", 50, 20),
    "CHRISTMAS_TREE": _part("christmas_tree", "Christmas Tree", "Surface Equipment", "Valve assembly on wellhead", 50, 35),
    "CHOKE": _part("choke", "Choke", "Flow Control", "Flow control device", 70, 35),
    "FLOWLINE": _part("flowline", "Flowline", "Surface Equipment", "Production flowline", 85, 35),
    # Downhole equipment
    "TUBING": _part("tubing", "Production Tubing", "Downhole Equipment", "Production tubing string", 45, 50),
    "PACKER": _part("packer", "Packer", "Downhole Equipment", "Isolation packer", 45, 65),
    "PERFORATIONS": _part("perforations", "Perforations", "Completion", "Well perforations", 45, 80),
    # Artificial lift
    "SUCKER_ROD": _part("sucker_rod", "Sucker Rod", "Artificial Lift", "Sucker rod string", 30, 50),
    "PUMP": _part("pump", "Downhole Pump", "Artificial Lift", "Downhole pump assembly", 30, 75),
    "MOTOR": _part("motor", "Surface Motor", "Artificial Lift", "Surface driving motor", 15, 20),
    # Instrumentation
    "PRESSURE_GAUGE": _part("pressure_gauge", "Pressure Gauge", "Instrumentation", "Wellhead pressure monitoring", 65, 20),
    "TEMPERATURE_SENSOR": _part("temperature_sensor", "Temperature Sensor", "Instrumentation", "Temperature monitoring", 80, 20),
}

_BY_ID: Dict[str, WellPart] = {p.id: p for p in WELL_PARTS.values()}


def get_part(part_id: Optional[str]) -> Optional[WellPart]:
    """Look a part up by its id (``wellhead``) or catalog key (``WELLHEAD``)."""
    if not part_id:
        return None
    return _BY_ID.get(part_id) or WELL_PARTS.get(part_id) or _BY_ID.get(part_id.lower())


def list_parts() -> List[WellPart]:
    return list(WELL_PARTS.values())


def parts_by_category() -> Dict[str, List[WellPart]]:
    grouped: Dict[str, List[WellPart]] = {}
    for part in WELL_PARTS.values():
        grouped.setdefault(part.category, []).append(part)
    return grouped
