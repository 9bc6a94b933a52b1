"""
Area hierarchy helpers built on the flat filters.

Area Hierarchy:
- EA (Environment Agency) Areas, the roots
- PSO (Partnership and Strategic Overview) Areas, children of EA Areas
- RMA (Risk Management Authority) Areas, children of PSO Areas
"""

from typing import Any

from loguru import logger
from pydantic import BaseModel, Field

from portal.areas.filters import (
    filter_areas_by_parent_id,
    filter_areas_by_parent_ids,
    filter_areas_by_type,
    filter_areas_excluding_ids,
    get_area_by_id,
)
from portal.areas.models import PARENT_TYPE, Area, AreaType


class AreaRef(BaseModel):
    """Minimal parent reference carried by a group."""

    id: int
    name: str


class AreaGroup(BaseModel):
    """Children of one selected parent."""

    parent: AreaRef
    children: list[Area]


class AreaNode(BaseModel):
    """Area with its nested children."""

    area: Area
    children: list["AreaNode"] = Field(default_factory=list)


def group_areas_by_parent(
    areas: list[Area] | None,
    parent_ids: list[Any],
    children: list[Area] | None = None,
) -> list[AreaGroup]:
    """
    Group children under each selected parent.

    Groups follow the order of parent_ids, not the order of the area list.
    Parents that are unknown or have no matching children are omitted.

    Args:
        areas: Full area list, used to look up parents
        parent_ids: Selected parent ids (numbers or numeric strings)
        children: Candidate children (defaults to the full area list)
    """
    if not isinstance(parent_ids, (list, tuple)):
        return []

    candidates = areas if children is None else children
    groups = []
    for parent_id in parent_ids:
        parent = get_area_by_id(areas, parent_id)
        if parent is None:
            continue

        matched = filter_areas_by_parent_id(candidates, parent.id)
        if matched:
            groups.append(
                AreaGroup(
                    parent=AreaRef(id=parent.id, name=parent.name),
                    children=matched,
                )
            )
    return groups


def select_child_groups(
    areas: list[Area] | None,
    child_type: str,
    parent_ids: list[Any],
    exclude_ids: list[Any] | None = None,
) -> list[AreaGroup]:
    """
    Children of child_type under the selected parents, grouped by parent.

    e.g. additional PSO teams under the selected EA Areas, minus the main
    team. Missing data degrades to an empty selection with a warning.
    """
    if not areas or not parent_ids:
        logger.warning(
            f"No {child_type} options: "
            f"{'areas unavailable' if not areas else 'no parent selected'} "
            f"(parent_ids={parent_ids})"
        )
        return []

    candidates = filter_areas_by_parent_ids(
        filter_areas_by_type(areas, child_type), parent_ids
    )
    if exclude_ids:
        candidates = filter_areas_excluding_ids(candidates, exclude_ids)

    groups = group_areas_by_parent(areas, parent_ids, children=candidates)
    logger.info(
        f"Loaded {len(candidates)} {child_type} option(s) "
        f"in {len(groups)} group(s) for {len(parent_ids)} parent(s)"
    )
    return groups


def get_child_areas(areas: list[Area], parent_id: Any) -> list[Area]:
    return filter_areas_by_parent_id(areas, parent_id)


def has_children(areas: list[Area], area_id: Any) -> bool:
    return bool(get_child_areas(areas, area_id))


def get_parent_area(areas: list[Area], area_id: Any) -> Area | None:
    area = get_area_by_id(areas, area_id)
    if area is None or area.parent_id is None:
        return None
    return get_area_by_id(areas, area.parent_id)


def get_ancestors(
    areas: list[Area], area_id: Any, area_type: str | None = None
) -> list[Area]:
    """Ancestors of area_id, nearest first, optionally of one type only."""
    result = []
    start = get_area_by_id(areas, area_id)
    if start is None:
        return result

    seen = {start.id}
    current = get_parent_area(areas, start.id)
    while current is not None and current.id not in seen:
        seen.add(current.id)
        if area_type is None or current.area_type == area_type:
            result.append(current)
        current = get_parent_area(areas, current.id)
    return result


def get_area_path(areas: list[Area], area_id: Any, separator: str = " > ") -> str:
    """Names from the root down to area_id, e.g. "Wessex > PSO West > Bristol"."""
    area = get_area_by_id(areas, area_id)
    if area is None:
        return ""
    chain = [area] + get_ancestors(areas, area.id)
    return separator.join(a.name for a in reversed(chain))


def _cyclic_ids(by_id: dict[int, Area]) -> set[int]:
    """Ids whose parent chain loops instead of ending at a root."""
    cyclic = set()
    for area_id in by_id:
        seen = set()
        current = area_id
        while current is not None and current in by_id:
            if current in seen:
                cyclic.add(area_id)
                break
            seen.add(current)
            current = by_id[current].parent_id
    return cyclic


def build_area_tree(
    areas: list[Area],
    root_types: tuple[str, ...] = (AreaType.EA_AREA.value,),
) -> list[AreaNode]:
    """
    Nest areas under their parents, returning the roots of root_types.

    Areas whose parent chain loops back on itself are left out.
    """
    if not isinstance(areas, (list, tuple)):
        return []

    nodes = {area.id: AreaNode(area=area) for area in areas if isinstance(area, Area)}
    cyclic = _cyclic_ids({area_id: node.area for area_id, node in nodes.items()})
    roots = []
    for area_id, node in nodes.items():
        if area_id in cyclic:
            continue
        parent_id = node.area.parent_id
        if parent_id is not None:
            parent = nodes.get(parent_id)
            if parent is not None:
                parent.children.append(node)
        elif node.area.area_type in root_types:
            roots.append(node)
    return roots


def find_hierarchy_violations(areas: list[Area]) -> list[str]:
    """Describe every area whose parent is missing or of the wrong type."""
    if not isinstance(areas, (list, tuple)):
        return []

    by_id = {area.id: area for area in areas if isinstance(area, Area)}
    problems = []
    for area in by_id.values():
        expected = PARENT_TYPE.get(area.area_type)
        if area.parent_id is None:
            if expected is not None:
                problems.append(f"{area.area_type} {area.id} has no parent")
            continue

        parent = by_id.get(area.parent_id)
        if parent is None:
            problems.append(
                f"{area.area_type} {area.id} references missing parent "
                f"{area.parent_id}"
            )
        elif expected is not None and parent.area_type != expected:
            problems.append(
                f"{area.area_type} {area.id} has parent of type "
                f"{parent.area_type}, expected {expected}"
            )
        elif area.area_type == AreaType.EA_AREA.value:
            problems.append(f"EA Area {area.id} should not have a parent")

    for area_id in sorted(_cyclic_ids(by_id)):
        problems.append(
            f"{by_id[area_id].area_type} {area_id} has a parent chain that loops"
        )
    return problems
