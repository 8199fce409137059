"""Enrichment of extracted autolinks with live issue and pull request data."""

import asyncio
from typing import Any, Awaitable, Optional

from .app_logging import get_logger
from .integrations import (
    GitRemote,
    Integration,
    IntegrationId,
    IntegrationService,
    convert_remote_provider_id_to_integration_id,
    get_integration_id_for_remote,
    normalize_id,
)
from .references import Autolink, MaybePausedResult
from .schema import IssueOrPullRequest

logger = get_logger("enrichment")

# (pending fetch or None, autolink)
EnrichedAutolink = tuple[Optional["asyncio.Future[Optional[IssueOrPullRequest]]"], Autolink]
# (settled or paused result or None, autolink)
MaybeEnrichedAutolink = tuple[Optional[MaybePausedResult], Autolink]


def get_autolink_enrichable_id(autolink: Autolink) -> str:
    """Id an integration expects when fetching the autolink's issue."""
    provider_id = getattr(autolink.provider, 'id', None)
    if provider_id == IntegrationId.JIRA:
        return f"{autolink.prefix}{autolink.id}"
    return autolink.id


def resolve_integration_id(provider: Any) -> Optional[str]:
    """Map an autolink's provider to the id of the integration that serves it."""
    if provider is None:
        return None

    if isinstance(provider, Integration):
        integration_id = provider.id
    else:
        integration_id = (
            get_integration_id_for_remote(provider)
            or convert_remote_provider_id_to_integration_id(provider.id)
        )

    # Older autolinks carry the integration id as their provider id
    if integration_id is None:
        integration_id = provider.id
    return normalize_id(integration_id)


async def is_integration_usable(integration: Optional[Integration]) -> bool:
    """Connected and entitled; failures count as unusable."""
    if integration is None:
        return False

    try:
        connected = integration.maybe_connected
        if connected is None:
            connected = await integration.is_connected()
        return bool(connected) and bool(await integration.access())
    except Exception as e:
        logger.error(f"Failed to check integration {getattr(integration, 'id', integration)}: {e}")
        return False


async def _guarded_fetch(
    fetch: Awaitable[Optional[IssueOrPullRequest]],
    autolink: Autolink,
) -> Optional[IssueOrPullRequest]:
    try:
        return await fetch
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.error(
            f"Failed to enrich autolink: prefix={autolink.prefix}, url={autolink.url}, "
            f"title={autolink.title}: {e}"
        )
        return None


async def enrich_autolinks(
    autolinks: dict[str, Autolink],
    remote: Optional[GitRemote],
    integrations: IntegrationService,
) -> Optional[dict[str, EnrichedAutolink]]:
    """Start an issue/pull request fetch for each autolink that has a servicing integration.

    Fetches run concurrently as tasks and are not awaited here; every entry is a
    ``(task or None, autolink)`` tuple. Returns None when there is nothing to enrich.
    """
    if not autolinks:
        return None

    integration: Optional[Integration] = None
    if remote is not None:
        try:
            integration = await remote.get_integration()
        except Exception as e:
            logger.error(f"Failed to get integration for remote {remote.remote_key}: {e}")
    if integration is not None and not await is_integration_usable(integration):
        integration = None

    usable: dict[int, bool] = {}
    enriched: dict[str, EnrichedAutolink] = {}
    for key, link in autolinks.items():
        integration_id: Optional[str] = None
        link_integration: Optional[Integration] = None

        if link.provider is not None:
            integration_id = resolve_integration_id(link.provider)
            try:
                link_integration = await integrations.get(integration_id)
            except Exception as e:
                logger.error(f"Failed to get integration for {link.provider.id}: {e}")
                link_integration = None

        if link_integration is not None:
            checked = id(link_integration)
            if checked not in usable:
                usable[checked] = await is_integration_usable(link_integration)
            if not usable[checked]:
                link_integration = None

        fetch = None
        if (
            remote is not None
            and remote.provider is not None
            and integration is not None
            and integration_id == normalize_id(integration.id)
            and getattr(link.provider, 'domain', None) == integration.domain
        ):
            fetch = integration.get_issue_or_pull_request(
                link.descriptor or remote.provider.repo_desc,
                get_autolink_enrichable_id(link),
                type=link.type,
            )
        elif link.descriptor is not None and link_integration is not None:
            fetch = link_integration.get_issue_or_pull_request(
                link.descriptor,
                get_autolink_enrichable_id(link),
                type=link.type,
            )

        task = asyncio.ensure_future(_guarded_fetch(fetch, link)) if fetch is not None else None
        enriched[key] = (task, link)

    logger.debug(
        f"Enriching {sum(1 for task, _ in enriched.values() if task is not None)}/{len(enriched)} autolink(s)"
        f" for remote={remote.remote_key if remote is not None else None}"
    )
    return enriched


def _settled_value(future: "asyncio.Future") -> Optional[IssueOrPullRequest]:
    if future.cancelled() or future.exception() is not None:
        return None
    return future.result()


def snapshot_fetch(task: Optional["asyncio.Future"]) -> Optional[MaybePausedResult]:
    """Current state of a fetch: paused while pending, otherwise its settled value."""
    if task is None:
        return None
    if not task.done():
        return MaybePausedResult(task, paused=True)
    return MaybePausedResult(_settled_value(task), paused=False)


async def get_maybe_paused_autolinks(
    enriched: Optional[dict[str, EnrichedAutolink]],
    timeout: float,
) -> Optional[dict[str, MaybeEnrichedAutolink]]:
    """Wait up to ``timeout`` seconds, then snapshot each fetch as settled or paused."""
    if enriched is None:
        return None

    pending = [task for task, _ in enriched.values() if task is not None and not task.done()]
    if pending and timeout > 0:
        await asyncio.wait(pending, timeout=timeout)

    result: dict[str, MaybeEnrichedAutolink] = {}
    for id, (task, link) in enriched.items():
        result[id] = (snapshot_fetch(task), link)
    return result
