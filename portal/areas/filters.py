"""
Filtering and lookup over a flat list of areas.

All functions are pure and never raise: malformed input (a non-list, a missing
type, an id that is not a number) yields an empty list or None.
"""

from typing import Any, Iterable

from portal.areas.models import Area, normalize_id


def _areas(areas: Any) -> list[Area] | None:
    if not isinstance(areas, (list, tuple)):
        return None
    return [area for area in areas if isinstance(area, Area)]


def _id_set(ids: Iterable[Any]) -> set[int]:
    normalized = (normalize_id(value) for value in ids)
    return {value for value in normalized if value is not None}


def filter_areas_by_type(areas: list[Area], area_type: str) -> list[Area]:
    """Areas of the given type ("EA Area", "PSO Area", "RMA")."""
    items = _areas(areas)
    if items is None or not area_type:
        return []
    return [area for area in items if area.area_type == area_type]


def filter_areas_by_parent_id(areas: list[Area], parent_id: Any) -> list[Area]:
    """Areas whose parent is parent_id (number or numeric string)."""
    items = _areas(areas)
    parent = normalize_id(parent_id)
    if items is None or parent is None:
        return []
    return [area for area in items if area.parent_id == parent]


def filter_areas_by_parent_ids(areas: list[Area], parent_ids: Any) -> list[Area]:
    """
    Areas whose parent is any of parent_ids.

    Used to collect the children of several selected parents at once, e.g.
    all PSO teams under the selected EA Areas. Unparsable ids are ignored.
    """
    items = _areas(areas)
    if items is None or not isinstance(parent_ids, (list, tuple)):
        return []
    if not parent_ids:
        return []
    parents = _id_set(parent_ids)
    return [area for area in items if area.parent_id in parents]


def filter_areas_excluding_ids(areas: list[Area], exclude_ids: Any) -> list[Area]:
    """Areas whose id is not in exclude_ids."""
    items = _areas(areas)
    if items is None or not isinstance(exclude_ids, (list, tuple, set, frozenset)):
        return []
    excluded = _id_set(exclude_ids)
    return [area for area in items if area.id not in excluded]


def get_area_by_id(areas: list[Area], area_id: Any) -> Area | None:
    """First area with the given id, or None."""
    items = _areas(areas)
    wanted = normalize_id(area_id)
    if items is None or wanted is None:
        return None
    return next((area for area in items if area.id == wanted), None)


def filter_areas_by_type_excluding_ids(
    areas: list[Area], area_type: str, exclude_ids: Any
) -> list[Area]:
    by_type = filter_areas_by_type(areas, area_type)
    return filter_areas_excluding_ids(by_type, exclude_ids)


def filter_areas_by_type_and_parent(
    areas: list[Area], area_type: str, parent_id: Any
) -> list[Area]:
    by_type = filter_areas_by_type(areas, area_type)
    return filter_areas_by_parent_id(by_type, parent_id)
