"""Wait for the objects of a kind to report a set of status conditions.

The waiter lists every object of the kind on a fixed interval and succeeds
as soon as all of them report every requested condition as `True`. A kind
without any objects is satisfied immediately. Errors while listing are
logged and retried on the next tick; they neither end the wait early nor
extend the overall timeout.
"""

import asyncio
import logging

from cpstate.exceptions import ConditionTimeoutError, MigrationException
from cpstate.live import LiveClient, ResourceMapping
from cpstate.manifest import ConditionSpec, conditions_met
from cpstate.progress import Step

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "ConditionWaiter",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_INTERVAL_SECONDS",
]

DEFAULT_TIMEOUT_SECONDS = 600.0
DEFAULT_INTERVAL_SECONDS = 5.0


class ConditionWaiter:
    """Bounded polling readiness gate over all objects of a kind."""

    def __init__(
        self,
        client: LiveClient,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        interval: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        """Initialize the ConditionWaiter."""
        self._client = client
        self._timeout = timeout
        self._interval = interval

    async def wait_for_conditions(
        self, spec: ConditionSpec, step: Step | None = None
    ) -> None:
        """Block until all objects of the kind satisfy the conditions.

        Raises:
            MappingException: If the kind is not served by the control plane.
            ConditionTimeoutError: If the conditions are not met in time.
            asyncio.CancelledError: If the wait is cancelled.
        """
        mapping = await self._client.resolve_kind(spec.group_kind)
        _LOGGER.info(
            "Waiting up to %ss for %s to be %s",
            self._timeout,
            mapping,
            spec.describe(),
        )
        try:
            async with asyncio.timeout(self._timeout):
                while not await self._poll(mapping, spec, step):
                    await asyncio.sleep(self._interval)
        except TimeoutError as err:
            raise ConditionTimeoutError(str(spec.group_kind), spec.describe()) from err
        _LOGGER.info("All %s are %s", mapping, spec.describe())

    async def _poll(
        self, mapping: ResourceMapping, spec: ConditionSpec, step: Step | None
    ) -> bool:
        """Return True when no listed object has an unmet condition."""
        try:
            objects = await self._client.list_objects(mapping)
        except (MigrationException, OSError) as err:
            _LOGGER.warning("cannot list %s with error: %s", mapping, err)
            return False

        total = len(objects)
        unmet = sum(1 for obj in objects if not conditions_met(obj, spec.conditions))
        if unmet:
            text = (
                f"({total - unmet} / {total}) Waiting for {mapping} "
                f"to be {spec.describe()}..."
            )
            _LOGGER.debug(text)
            if step is not None:
                step.update(text)
            return False
        return True
