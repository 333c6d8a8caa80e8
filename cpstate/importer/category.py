"""Apply a change to every object of a category.

A category such as `managed` or `claim` spans many concrete kinds; the kinds
are resolved through discovery of the live control plane at call time.
"""

from collections.abc import Callable
import copy
import logging
from typing import Any

from cpstate.exceptions import CategoryException, MigrationException
from cpstate.live import LiveClient
from cpstate.manifest import NamedResource

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "CategoryModifier",
]

ModifyFunc = Callable[[dict[str, Any]], None]


class CategoryModifier:
    """Modifies all objects belonging to a category."""

    def __init__(self, client: LiveClient) -> None:
        """Initialize the CategoryModifier."""
        self._client = client

    async def modify_resources(self, category: str, modify: ModifyFunc) -> int:
        """Apply the change to every object of the category and persist it.

        Objects the change leaves as they were are not written back. Returns
        the number of objects updated.

        Raises:
            CategoryException: If the category cannot be resolved or an
                object cannot be listed or updated.
        """
        count = 0
        try:
            mappings = await self._client.resolve_category(category)
            _LOGGER.debug(
                "Category %s resolved to %s", category, [str(m) for m in mappings]
            )
            for mapping in mappings:
                for obj in await self._client.list_objects(mapping):
                    original = copy.deepcopy(obj)
                    modify(obj)
                    if obj == original:
                        continue
                    _LOGGER.debug("Updating %s", NamedResource.from_object(obj))
                    await self._client.update_object(mapping, obj)
                    count += 1
        except MigrationException as err:
            _LOGGER.error("Failed to modify category %s: %s", category, err)
            raise CategoryException(category, str(err)) from err
        _LOGGER.info("Modified %d objects of category %s", count, category)
        return count
