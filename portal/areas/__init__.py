"""
Area reference data: typed records, filters and hierarchy helpers.
"""

from portal.areas.models import PARENT_TYPE, Area, AreaType, normalize_id, parse_areas
from portal.areas.filters import (
    filter_areas_by_parent_id,
    filter_areas_by_parent_ids,
    filter_areas_by_type,
    filter_areas_by_type_and_parent,
    filter_areas_by_type_excluding_ids,
    filter_areas_excluding_ids,
    get_area_by_id,
)
from portal.areas.hierarchy import (
    AreaGroup,
    AreaNode,
    AreaRef,
    build_area_tree,
    find_hierarchy_violations,
    get_ancestors,
    get_area_path,
    get_child_areas,
    get_parent_area,
    group_areas_by_parent,
    has_children,
    select_child_groups,
)

__all__ = [
    # Models
    "Area",
    "AreaType",
    "PARENT_TYPE",
    "normalize_id",
    "parse_areas",
    # Filters
    "filter_areas_by_type",
    "filter_areas_by_parent_id",
    "filter_areas_by_parent_ids",
    "filter_areas_excluding_ids",
    "get_area_by_id",
    "filter_areas_by_type_excluding_ids",
    "filter_areas_by_type_and_parent",
    # Hierarchy
    "AreaGroup",
    "AreaNode",
    "AreaRef",
    "group_areas_by_parent",
    "select_child_groups",
    "get_child_areas",
    "has_children",
    "get_parent_area",
    "get_ancestors",
    "get_area_path",
    "build_area_tree",
    "find_hierarchy_violations",
]
