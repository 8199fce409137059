"""Shared fixtures and fakes for the autolinks tests."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from autolinks.config import reset_config
from autolinks.integrations import GitRemote, Integration, IntegrationId, IntegrationRegistry
from autolinks.references import StaticReferenceDefinition
from autolinks.remotes import GitHubRemoteProvider
from autolinks.schema import AutolinkType, IssueOrPullRequest, IssueState, ReferenceType


class FakeIntegration(Integration):
    """In-memory integration with scripted connectivity, definitions and issues."""

    def __init__(
        self,
        id: str,
        domain: str = 'example.com',
        name: Optional[str] = None,
        definitions: Optional[list] = None,
        issues: Optional[dict] = None,
        maybe_connected: Optional[bool] = None,
        connected: bool = True,
        access: bool = True,
        fail_autolinks: bool = False,
        async_autolinks: bool = False,
        gate: Optional[asyncio.Event] = None,
    ):
        self.id = id
        self.domain = domain
        self.name = name or str(getattr(id, 'value', id)).title()
        self.definitions = definitions or []
        self.issues = issues or {}
        self._maybe_connected = maybe_connected
        self._connected = connected
        self._access = access
        self.fail_autolinks = fail_autolinks
        self.async_autolinks = async_autolinks
        self.gate = gate
        self.calls: list[tuple] = []

    @property
    def maybe_connected(self) -> Optional[bool]:
        return self._maybe_connected

    async def is_connected(self) -> bool:
        return self._connected

    async def access(self) -> bool:
        return self._access

    def autolinks(self):
        if self.fail_autolinks:
            raise RuntimeError("listing failed")
        if self.async_autolinks:
            return self._autolinks_later()
        return self.definitions

    async def _autolinks_later(self):
        await asyncio.sleep(0)
        return self.definitions

    async def get_issue_or_pull_request(self, descriptor, id, *, type=None):
        self.calls.append((descriptor, id, type))
        if self.gate is not None:
            await self.gate.wait()
        result = self.issues.get(id)
        if isinstance(result, Exception):
            raise result
        return result


def make_issue(
    id: str = '9',
    title: str = 'Crash on start',
    state: IssueState = IssueState.OPENED,
    type: AutolinkType = AutolinkType.ISSUE,
    days_ago: int = 3,
) -> IssueOrPullRequest:
    created = datetime.now(timezone.utc) - timedelta(days=days_ago)
    return IssueOrPullRequest(
        id=id,
        title=title,
        url=f"https://example.com/issues/{id}",
        state=state,
        type=type,
        created_date=created,
        closed_date=created if state != IssueState.OPENED else None,
    )


def jira_definition() -> StaticReferenceDefinition:
    return StaticReferenceDefinition(
        prefix='JIRA-',
        url='https://jira.example.com/browse/JIRA-<num>',
        title='Open JIRA-<num>',
        description='Jira Issue JIRA-<num>',
        type=AutolinkType.ISSUE,
        descriptor={'key': 'JIRA'},
    )


def make_remote(
    path: str = 'owner/repo',
    integration: Optional[Integration] = None,
    maybe_integration_connected: Optional[bool] = None,
) -> GitRemote:
    provider = GitHubRemoteProvider('github.com', path)

    async def getter():
        return integration

    return GitRemote(
        name='origin',
        remote_key=f"github.com/{path}",
        provider=provider,
        maybe_integration_connected=maybe_integration_connected,
        integration_getter=getter,
    )


@pytest.fixture(autouse=True)
def default_config():
    """Start and end every test with the default configuration."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def jira():
    return FakeIntegration(IntegrationId.JIRA, domain='jira.example.com', definitions=[jira_definition()])


@pytest.fixture
def linear():
    return FakeIntegration(
        IntegrationId.LINEAR,
        domain='linear.app',
        definitions=[
            StaticReferenceDefinition(
                prefix='LIN-',
                url='https://linear.app/team/issue/LIN-<num>',
                title='Open LIN-<num>',
                reference_type=ReferenceType.COMMIT,
            )
        ],
    )


@pytest.fixture
def github():
    return FakeIntegration(IntegrationId.GITHUB, domain='github.com', name='GitHub')


@pytest.fixture
def registry(jira, linear):
    return IntegrationRegistry([jira, linear])
