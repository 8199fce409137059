"""Assembly of the reference groups that apply to a remote."""

import asyncio
import inspect
import time
from typing import Callable, Optional

from .app_logging import get_logger
from .integrations import (
    SUPPORTED_AUTOLINK_INTEGRATIONS,
    GitRemote,
    Integration,
    IntegrationService,
)
from .references import ReferenceGroup, StaticReferenceDefinition
from .schema import ReferenceType

logger = get_logger("sources")

DEFAULT_TTL_SECONDS = 60 * 60


async def _list_autolinks(integration: Integration) -> list:
    refs = integration.autolinks()
    if inspect.isawaitable(refs):
        refs = await refs
    return list(refs or [])


class ReferenceSources:
    """Collects reference groups in precedence order and caches them per remote.

    Order: connected integrations, then the remote's provider, then custom
    definitions. Cached entries expire ``ttl_seconds`` after their last access.
    """

    def __init__(
        self,
        integrations: IntegrationService,
        custom_definitions: Callable[[], list[StaticReferenceDefinition]],
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.integrations = integrations
        self._custom_definitions = custom_definitions
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: dict[str, tuple[list[ReferenceGroup], float]] = {}

    def clear(self) -> None:
        """Drop every cached entry."""
        self._cache.clear()

    @staticmethod
    def cache_key(remote: Optional[GitRemote], for_branch: bool, exclude_custom: bool = False) -> str:
        return f"{remote.remote_key if remote is not None else None}|{for_branch}|{exclude_custom}"

    async def get_groups(
        self,
        remote: Optional[GitRemote] = None,
        for_branch: bool = False,
        exclude_custom: bool = False,
    ) -> list[ReferenceGroup]:
        """Get the ordered reference groups for a remote.

        With ``exclude_custom`` the configured group is left out, but only when the
        remote resolves to a provider.
        """
        key = self.cache_key(remote, for_branch, exclude_custom)
        now = self._clock()

        cached = self._cache.get(key)
        if cached is not None:
            groups, accessed = cached
            if now - accessed < self.ttl_seconds:
                self._cache[key] = (groups, now)
                return groups
            del self._cache[key]

        groups: list[ReferenceGroup] = []
        await self.collect_integration_autolinks(None if for_branch else remote, groups)
        self.collect_remote_autolinks(remote, groups, for_branch)
        self.collect_custom_autolinks(remote, groups, exclude_custom)

        logger.debug(f"Assembled {len(groups)} reference group(s) for {key}")
        self._cache[key] = (groups, now)
        return groups

    async def collect_integration_autolinks(
        self,
        remote: Optional[GitRemote],
        groups: list[ReferenceGroup],
    ) -> None:
        """Append groups for connected integrations, in lookup order."""
        lookups = [self.integrations.get(integration_id) for integration_id in SUPPORTED_AUTOLINK_INTEGRATIONS]
        if remote is not None and remote.provider is not None:
            lookups.append(remote.get_integration())

        results = await asyncio.gather(*lookups, return_exceptions=True)

        integrations: list[Integration] = []
        seen: set[int] = set()
        for result in results:
            if isinstance(result, BaseException):
                logger.warning(f"Integration lookup failed: {result}")
                continue
            # Skip missing, known-disconnected and duplicate integrations
            if result is None or result.maybe_connected is False or id(result) in seen:
                continue
            seen.add(id(result))
            integrations.append(result)

        if not integrations:
            return

        listings = await asyncio.gather(
            *(_list_autolinks(integration) for integration in integrations),
            return_exceptions=True,
        )
        for integration, refs in zip(integrations, listings):
            if isinstance(refs, BaseException):
                logger.error(
                    f"Failed to get autolinks from integration {getattr(integration, 'id', integration)}: {refs}"
                )
                continue
            if refs:
                groups.append(ReferenceGroup(integration, refs))

    def collect_remote_autolinks(
        self,
        remote: Optional[GitRemote],
        groups: list[ReferenceGroup],
        for_branch: bool = False,
    ) -> None:
        """Append the remote provider's group."""
        if remote is None or remote.provider is None:
            return

        refs = list(remote.provider.autolinks)
        if for_branch:
            refs = [
                ref for ref in refs
                if isinstance(ref, StaticReferenceDefinition) and ref.reference_type == ReferenceType.BRANCH
            ]
        if refs:
            groups.append(ReferenceGroup(remote.provider, refs))

    def collect_custom_autolinks(
        self,
        remote: Optional[GitRemote],
        groups: list[ReferenceGroup],
        exclude_custom: bool = False,
    ) -> None:
        """Append the user-configured group."""
        if exclude_custom and remote is not None and remote.provider is not None:
            return
        refs = self._custom_definitions()
        if refs:
            groups.append(ReferenceGroup(None, list(refs)))
