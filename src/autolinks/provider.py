"""Public entry point of the autolinks engine."""

from typing import Optional, Union

from . import config as config_module
from .app_logging import get_logger
from .config import AutolinksConfig
from .enrichment import (
    EnrichedAutolink,
    MaybeEnrichedAutolink,
    enrich_autolinks,
    get_autolink_enrichable_id,
    get_maybe_paused_autolinks,
)
from .extractor import get_autolinks, get_branch_autolinks
from .integrations import GitRemote, IntegrationRegistry, IntegrationService
from .references import Autolink, StaticReferenceDefinition
from .renderer import linkify
from .schema import OutputFormat
from .sources import ReferenceSources

logger = get_logger("provider")


def build_custom_definitions(config: AutolinksConfig) -> list[StaticReferenceDefinition]:
    """Copy the configured autolinks into fresh definitions, dropping incomplete ones."""
    definitions = []
    for entry in config.autolinks:
        if not entry.prefix or not entry.url:
            logger.debug(f"Ignoring custom autolink without prefix or url: prefix={entry.prefix!r}")
            continue
        definitions.append(
            StaticReferenceDefinition(
                prefix=entry.prefix,
                url=entry.url,
                alphanumeric=entry.alphanumeric,
                ignore_case=entry.ignore_case,
                title=entry.title,
            )
        )
    return definitions


class AutolinksProvider:
    """Finds, enriches and renders autolinks for commit messages and branch names.

    Custom definitions come from the active configuration and are rebuilt whenever
    it changes; the reference group cache is cleared on configuration and
    integration changes.

    Example:
        provider = AutolinksProvider(IntegrationRegistry([jira]))
        links = await provider.get_autolinks("Fixes JIRA-12", remote)
        html = provider.linkify(text, OutputFormat.HTML, [remote])
    """

    def __init__(
        self,
        integrations: Optional[IntegrationService] = None,
        config: Optional[AutolinksConfig] = None,
    ):
        self.integrations = integrations if integrations is not None else IntegrationRegistry()
        self._config = config if config is not None else config_module.get_config()
        self._custom_definitions = build_custom_definitions(self._config)
        self.sources = ReferenceSources(
            self.integrations,
            lambda: self._custom_definitions,
            ttl_seconds=self._config.cache.refset_ttl_seconds,
        )

        config_module.add_change_listener(self._on_config_changed)
        self.integrations.add_change_listener(self._on_integrations_changed)

    @property
    def config(self) -> AutolinksConfig:
        return self._config

    @property
    def custom_definitions(self) -> list[StaticReferenceDefinition]:
        return list(self._custom_definitions)

    def dispose(self) -> None:
        """Stop listening for configuration and integration changes."""
        config_module.remove_change_listener(self._on_config_changed)
        self.integrations.remove_change_listener(self._on_integrations_changed)
        self.sources.clear()

    def update_config(self, config: AutolinksConfig) -> None:
        """Apply a new configuration, rebuilding custom definitions if they changed."""
        autolinks_changed = config.autolinks != self._config.autolinks
        self._config = config
        self.sources.ttl_seconds = config.cache.refset_ttl_seconds
        if autolinks_changed:
            self._custom_definitions = build_custom_definitions(config)
            self.sources.clear()
            logger.debug(f"Custom autolinks changed; {len(self._custom_definitions)} definition(s) active")

    def _on_config_changed(self, config: AutolinksConfig) -> None:
        self.update_config(config)

    def _on_integrations_changed(self) -> None:
        logger.debug("Integrations changed; clearing reference group cache")
        self.sources.clear()

    async def get_autolinks(
        self,
        text: str,
        remote: Optional[GitRemote] = None,
        exclude_custom: bool = False,
    ) -> dict[str, Autolink]:
        """Autolinks in a commit message, keyed by id."""
        groups = await self.sources.get_groups(remote, exclude_custom=exclude_custom)
        return await get_autolinks(text, groups)

    async def get_branch_autolinks(
        self,
        branch_name: str,
        remote: Optional[GitRemote] = None,
        exclude_custom: bool = False,
    ) -> dict[str, Autolink]:
        """The most relevant autolink in a branch name, keyed by url."""
        groups = await self.sources.get_groups(remote, for_branch=True, exclude_custom=exclude_custom)
        return get_branch_autolinks(branch_name, groups)

    async def get_enriched_autolinks(
        self,
        text_or_autolinks: Union[str, dict[str, Autolink]],
        remote: Optional[GitRemote] = None,
    ) -> Optional[dict[str, EnrichedAutolink]]:
        """Start enrichment for the autolinks in a message or an extracted map."""
        if isinstance(text_or_autolinks, str):
            autolinks = await self.get_autolinks(text_or_autolinks, remote)
        else:
            autolinks = text_or_autolinks
        return await enrich_autolinks(autolinks, remote, self.integrations)

    async def get_maybe_paused_autolinks(
        self,
        enriched: Optional[dict[str, EnrichedAutolink]],
        timeout: Optional[float] = None,
    ) -> Optional[dict[str, MaybeEnrichedAutolink]]:
        """Snapshot enrichment for rendering; the timeout defaults to the configured pause."""
        if timeout is None:
            timeout = self._config.enrichment.pause_timeout_seconds
        return await get_maybe_paused_autolinks(enriched, timeout)

    def linkify(
        self,
        text: str,
        output_format: OutputFormat,
        remotes: Optional[list[GitRemote]] = None,
        enriched_autolinks: Optional[dict] = None,
        prs: Optional[set[str]] = None,
        footnotes: Optional[dict[int, str]] = None,
    ) -> str:
        return linkify(
            text,
            output_format,
            self._custom_definitions,
            remotes=remotes,
            enriched_autolinks=enriched_autolinks,
            prs=prs,
            footnotes=footnotes,
        )

    @staticmethod
    def get_autolink_enrichable_id(autolink: Autolink) -> str:
        return get_autolink_enrichable_id(autolink)
