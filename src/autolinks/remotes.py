"""Remote providers for GitHub and GitLab and their reference syntaxes."""

import re
from typing import Any, Optional
from urllib.parse import urlparse

from .integrations import GitRemote, IntegrationId, RemoteProvider, RemoteProviderId
from .references import (
    DynamicReferenceDefinition,
    StaticReferenceDefinition,
    build_autolink,
)
from .schema import AutolinkType, ReferenceType

# owner/repo#123 cross-repository references
CROSS_REPO_PATTERN = re.compile(r'(?:^|\s|\(|\[|\{)(?P<owner>[\w-]+)/(?P<repo>[\w.-]+)#(?P<num>\d+)\b')

# git@host:owner/repo.git and https://host/owner/repo(.git)
SSH_REMOTE_PATTERN = re.compile(r'^(?:[\w.-]+@)?(?P<host>[\w.-]+):(?P<path>[^/].*?)(?:\.git)?/?$')


class HostedRemoteProvider(RemoteProvider):
    """Remote provider for a repository at ``https://<domain>/<path>``."""

    def __init__(self, domain: str, path: str, custom: bool = False):
        self.domain = domain
        self.path = path.strip('/')
        self.custom = custom
        self._autolinks: Optional[list] = None

    @property
    def base_url(self) -> str:
        return f"https://{self.domain}/{self.path}"

    @property
    def owner(self) -> str:
        return self.path.rsplit('/', 1)[0] if '/' in self.path else ''

    @property
    def repo_name(self) -> str:
        return self.path.rsplit('/', 1)[-1]

    @property
    def repo_desc(self) -> dict[str, Any]:
        return {'key': self.path, 'owner': self.owner, 'name': self.repo_name}

    @property
    def autolinks(self) -> list:
        # Built once so compiled matchers stay memoized on the same instances
        if self._autolinks is None:
            self._autolinks = self._build_autolinks()
        return self._autolinks

    def _build_autolinks(self) -> list:
        return []


class GitHubRemoteProvider(HostedRemoteProvider):
    id = RemoteProviderId.GITHUB.value
    name = 'GitHub'
    icon = 'github'

    def __init__(self, domain: str, path: str, custom: bool = False):
        super().__init__(domain, path, custom)
        if custom:
            self.integration_id = IntegrationId.GITHUB_ENTERPRISE.value

    def _build_autolinks(self) -> list:
        title = f"Open Issue or Pull Request #<num> on {self.name}"
        description = f"{self.name} Issue or Pull Request #<num>"
        return [
            StaticReferenceDefinition(
                prefix='#',
                url=f"{self.base_url}/issues/<num>",
                title=title,
                description=description,
                reference_type=ReferenceType.COMMIT,
                descriptor=self.repo_desc,
            ),
            StaticReferenceDefinition(
                prefix='gh-',
                url=f"{self.base_url}/issues/<num>",
                ignore_case=True,
                title=title,
                description=description,
                reference_type=ReferenceType.COMMIT,
                descriptor=self.repo_desc,
            ),
            StaticReferenceDefinition(
                prefix='',
                url=f"{self.base_url}/issues/<num>",
                title=f"Open Issue #<num> on {self.name}",
                description=f"{self.name} Issue #<num>",
                type=AutolinkType.ISSUE,
                reference_type=ReferenceType.BRANCH,
                descriptor=self.repo_desc,
            ),
            DynamicReferenceDefinition(parse=self._parse_cross_repo, name='github-cross-repo'),
        ]

    def _parse_cross_repo(self, text: str, autolinks: dict) -> None:
        for match in CROSS_REPO_PATTERN.finditer(text):
            owner, repo, num = match.group('owner', 'repo', 'num')
            key = f"{owner}/{repo}"
            ref = StaticReferenceDefinition(
                prefix=f"{key}#",
                url=f"https://{self.domain}/{key}/issues/<num>",
                title=f"Open Issue or Pull Request {key}#<num> on {self.name}",
                description=f"{self.name} Issue or Pull Request {key}#<num>",
                descriptor={'key': key, 'owner': owner, 'name': repo},
            )
            autolinks[num] = build_autolink(ref, num, provider=self, index=match.start('owner'))


class GitLabRemoteProvider(HostedRemoteProvider):
    id = RemoteProviderId.GITLAB.value
    name = 'GitLab'
    icon = 'gitlab'

    def __init__(self, domain: str, path: str, custom: bool = False):
        super().__init__(domain, path, custom)
        if custom:
            self.integration_id = IntegrationId.GITLAB_SELF_HOSTED.value

    def _build_autolinks(self) -> list:
        return [
            StaticReferenceDefinition(
                prefix='#',
                url=f"{self.base_url}/-/issues/<num>",
                title=f"Open Issue #<num> on {self.name}",
                description=f"{self.name} Issue #<num>",
                type=AutolinkType.ISSUE,
                reference_type=ReferenceType.COMMIT,
                descriptor=self.repo_desc,
            ),
            StaticReferenceDefinition(
                prefix='!',
                url=f"{self.base_url}/-/merge_requests/<num>",
                title=f"Open Merge Request !<num> on {self.name}",
                description=f"{self.name} Merge Request !<num>",
                type=AutolinkType.PULL_REQUEST,
                reference_type=ReferenceType.COMMIT,
                descriptor=self.repo_desc,
            ),
            StaticReferenceDefinition(
                prefix='',
                url=f"{self.base_url}/-/issues/<num>",
                title=f"Open Issue #<num> on {self.name}",
                description=f"{self.name} Issue #<num>",
                type=AutolinkType.ISSUE,
                reference_type=ReferenceType.BRANCH,
                descriptor=self.repo_desc,
            ),
        ]


_PROVIDERS_BY_DOMAIN = {
    'github.com': GitHubRemoteProvider,
    'gitlab.com': GitLabRemoteProvider,
}


def _split_remote_url(url: str) -> Optional[tuple[str, str]]:
    if '://' in url:
        parsed = urlparse(url)
        if not parsed.hostname:
            return None
        path = parsed.path
    else:
        match = SSH_REMOTE_PATTERN.match(url)
        if not match:
            return None
        return match.group('host').lower(), match.group('path')

    if path.endswith('.git'):
        path = path[:-4]
    return parsed.hostname.lower(), path.strip('/')


def get_provider_for_url(url: str) -> Optional[HostedRemoteProvider]:
    """Resolve a remote URL to a provider, or None for unknown hosts."""
    parts = _split_remote_url(url)
    if parts is None:
        return None

    domain, path = parts
    if not path or '/' not in path:
        return None

    provider_cls = _PROVIDERS_BY_DOMAIN.get(domain)
    if provider_cls is not None:
        return provider_cls(domain, path)

    # Self-hosted instances usually keep the product name in the host
    if 'github' in domain:
        return GitHubRemoteProvider(domain, path, custom=True)
    if 'gitlab' in domain:
        return GitLabRemoteProvider(domain, path, custom=True)
    return None


def parse_remote_url(url: str, name: str = 'origin') -> GitRemote:
    """Build a GitRemote for a remote URL."""
    provider = get_provider_for_url(url)
    remote_key = f"{provider.domain}/{provider.path}" if provider is not None else url
    return GitRemote(name=name, remote_key=remote_key, provider=provider)
