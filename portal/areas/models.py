"""
Area records for the EA Area -> PSO Area -> RMA hierarchy.
"""

from enum import Enum
from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError, field_validator


class AreaType(str, Enum):
    EA_AREA = "EA Area"
    PSO_AREA = "PSO Area"
    RMA = "RMA"


# Child type -> type its parent must have
PARENT_TYPE: dict[str, str] = {
    AreaType.PSO_AREA.value: AreaType.EA_AREA.value,
    AreaType.RMA.value: AreaType.PSO_AREA.value,
}


def normalize_id(value: Any) -> int | None:
    """
    Normalize an id that may arrive as a number or a string.

    Strings must be an optional sign followed by ASCII digits; anything that
    cannot be read that way becomes None and never matches another id.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text.startswith(("+", "-")) else text
        if not (digits.isascii() and digits.isdigit()):
            return None
        return int(text, 10)
    return None


class Area(BaseModel):
    """A node in the area tree."""

    id: int
    name: str = ""
    area_type: str
    parent_id: int | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> int:
        normalized = normalize_id(value)
        if normalized is None:
            raise ValueError(f"invalid area id: {value!r}")
        return normalized

    @field_validator("parent_id", mode="before")
    @classmethod
    def _normalize_parent_id(cls, value: Any) -> int | None:
        if value is None or value == "":
            return None
        return normalize_id(value)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


def parse_areas(raw: Any) -> list[Area]:
    """Parse upstream area dicts, skipping malformed entries."""
    if not isinstance(raw, list):
        return []

    areas = []
    for item in raw:
        if isinstance(item, Area):
            areas.append(item)
            continue
        try:
            areas.append(Area.model_validate(item))
        except ValidationError as e:
            logger.warning(
                f"Skipping malformed area {item!r}: {e.error_count()} error(s)"
            )
    return areas
