"""Interfaces to the integrations and remotes the engine consumes.

Concrete network clients live outside this package; they implement
:class:`Integration` and are handed to the engine through an
:class:`IntegrationService`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from .exceptions import IntegrationLookupError
from .schema import AutolinkType, IssueOrPullRequest


class IntegrationId(str, Enum):
    """Known integration ids."""
    GITHUB = "github"
    GITHUB_ENTERPRISE = "github-enterprise"
    GITLAB = "gitlab"
    GITLAB_SELF_HOSTED = "gitlab-self-hosted"
    BITBUCKET = "bitbucket"
    AZURE_DEVOPS = "azure-devops"
    JIRA = "jira"
    LINEAR = "linear"


class RemoteProviderId(str, Enum):
    """Ids of the remote providers a git remote can resolve to."""
    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"
    AZURE_DEVOPS = "azure-devops"


# Cloud issue trackers whose autolinks are always collected
SUPPORTED_AUTOLINK_INTEGRATIONS = (IntegrationId.JIRA, IntegrationId.LINEAR)

_REMOTE_TO_INTEGRATION = {
    RemoteProviderId.GITHUB: IntegrationId.GITHUB,
    RemoteProviderId.GITLAB: IntegrationId.GITLAB,
    RemoteProviderId.BITBUCKET: IntegrationId.BITBUCKET,
    RemoteProviderId.AZURE_DEVOPS: IntegrationId.AZURE_DEVOPS,
}


class Integration(ABC):
    """A connected (or connectable) issue tracker or git host."""

    id: str
    name: str
    domain: str

    @property
    def maybe_connected(self) -> Optional[bool]:
        """Cheap connectivity hint; ``None`` when unknown."""
        return None

    @abstractmethod
    async def is_connected(self) -> bool:
        ...

    async def access(self) -> bool:
        """Whether the current account is entitled to use this integration."""
        return True

    def autolinks(self) -> Union[list, Awaitable[list]]:
        """Reference definitions this integration contributes."""
        return []

    @abstractmethod
    async def get_issue_or_pull_request(
        self,
        descriptor: dict[str, Any],
        id: str,
        *,
        type: Optional[AutolinkType] = None,
    ) -> Optional[IssueOrPullRequest]:
        ...


class RemoteProvider(ABC):
    """Hosting provider behind a git remote."""

    id: str
    name: str
    domain: str
    icon: str = 'remote'
    # Set when the provider maps to an integration other than its id suggests
    integration_id: Optional[str] = None

    @property
    def autolinks(self) -> list:
        return []

    @property
    @abstractmethod
    def repo_desc(self) -> dict[str, Any]:
        """Descriptor of the remote's repository, used when fetching issues."""
        ...


@dataclass(eq=False)
class GitRemote:
    """A git remote, resolved to a provider where possible."""
    name: str
    remote_key: str
    provider: Optional[RemoteProvider] = None
    maybe_integration_connected: Optional[bool] = None
    integration_getter: Optional[Callable[[], Awaitable[Optional[Integration]]]] = field(
        default=None, repr=False
    )

    async def get_integration(self) -> Optional[Integration]:
        if self.provider is None or self.integration_getter is None:
            return None
        return await self.integration_getter()


class IntegrationService(ABC):
    """Lookup of integrations by id."""

    @abstractmethod
    async def get(self, integration_id: str) -> Optional[Integration]:
        ...

    def add_change_listener(self, listener: Callable[[], None]) -> None:
        pass

    def remove_change_listener(self, listener: Callable[[], None]) -> None:
        pass


def normalize_id(value: Any) -> Optional[str]:
    """Plain string form of an enum or string id."""
    if value is None:
        return None
    return value.value if isinstance(value, Enum) else str(value)


def get_integration_id_for_remote(provider: RemoteProvider) -> Optional[str]:
    return normalize_id(getattr(provider, 'integration_id', None))


def convert_remote_provider_id_to_integration_id(provider_id: str) -> Optional[str]:
    try:
        return _REMOTE_TO_INTEGRATION[RemoteProviderId(provider_id)].value
    except (KeyError, ValueError):
        return None


class IntegrationRegistry(IntegrationService):
    """In-memory integration service."""

    def __init__(self, integrations: Optional[list[Integration]] = None):
        self._integrations: dict[str, Integration] = {}
        self._listeners: list[Callable[[], None]] = []
        for integration in integrations or []:
            self._integrations[normalize_id(integration.id)] = integration

    async def get(self, integration_id: str) -> Optional[Integration]:
        try:
            key = IntegrationId(integration_id).value
        except ValueError:
            raise IntegrationLookupError(integration_id)
        return self._integrations.get(key)

    def register(self, integration: Integration) -> None:
        self._integrations[normalize_id(integration.id)] = integration
        self._fire()

    def unregister(self, integration_id: str) -> None:
        if self._integrations.pop(normalize_id(integration_id), None) is not None:
            self._fire()

    def add_change_listener(self, listener: Callable[[], None]) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_change_listener(self, listener: Callable[[], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _fire(self) -> None:
        for listener in list(self._listeners):
            listener()
