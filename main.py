"""
Portal data entry point.
Warms the areas cache against the backend and prints the area hierarchy.
"""

import asyncio
import sys

from loguru import logger

from portal.areas import (
    AreaNode,
    AreaType,
    build_area_tree,
    filter_areas_by_type,
    find_hierarchy_violations,
)
from portal.context import create_app_context
from portal.services.areas import get_cached_areas, preload_areas
from portal.settings import global_settings


def _log_tree(nodes: list[AreaNode], depth: int = 0) -> None:
    for node in nodes:
        logger.info(f"{'  ' * depth}- {node.area.name} ({node.area.area_type})")
        _log_tree(node.children, depth + 1)


async def main() -> None:
    """Main entry point."""
    logger.remove()
    logger.add(sys.stderr, level=global_settings.log_level.upper())

    logger.info(
        f"Starting portal data check against {global_settings.backend_api_url}"
    )
    context = create_app_context(global_settings)

    try:
        if not await preload_areas(context):
            logger.error("Backend areas unavailable")
            return

        areas = await get_cached_areas(context) or []
        for area_type in AreaType:
            count = len(filter_areas_by_type(areas, area_type.value))
            logger.info(f"{area_type.value}: {count}")

        for problem in find_hierarchy_violations(areas):
            logger.warning(f"Hierarchy problem: {problem}")

        _log_tree(build_area_tree(areas))

        logger.info(f"Cache stats: {context.cache_engine.get_stats().to_dict()}")

    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
    finally:
        await context.close()
        logger.info("Portal data check finished")


if __name__ == "__main__":
    asyncio.run(main())
