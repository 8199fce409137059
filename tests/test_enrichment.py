"""Tests for enrichment of autolinks with issue details."""

import asyncio

import pytest

from autolinks.enrichment import (
    enrich_autolinks,
    get_autolink_enrichable_id,
    get_maybe_paused_autolinks,
    resolve_integration_id,
)
from autolinks.extractor import get_autolinks
from autolinks.integrations import IntegrationId, IntegrationRegistry
from autolinks.references import ReferenceGroup, StaticReferenceDefinition, build_autolink
from autolinks.remotes import GitHubRemoteProvider
from autolinks.schema import ProviderReference

from conftest import FakeIntegration, jira_definition, make_issue, make_remote


async def _remote_autolinks(remote, text="fixes #42"):
    return await get_autolinks(text, [ReferenceGroup(remote.provider, remote.provider.autolinks)])


class TestEnrichableId:
    """Tests for the id passed to integrations."""

    def test_jira_uses_full_key(self, jira):
        """Test that Jira ids include the project prefix."""
        autolink = build_autolink(jira_definition(), '12', provider=jira)
        assert get_autolink_enrichable_id(autolink) == 'JIRA-12'

    def test_other_providers_use_id(self):
        """Test that other providers get the bare id."""
        provider = GitHubRemoteProvider('github.com', 'owner/repo')
        autolink = build_autolink(provider.autolinks[0], '42', provider=provider)
        assert get_autolink_enrichable_id(autolink) == '42'


class TestResolveIntegrationId:
    """Tests for provider to integration id mapping."""

    def test_integration_provider(self, jira):
        assert resolve_integration_id(jira) == 'jira'

    def test_remote_provider(self):
        assert resolve_integration_id(GitHubRemoteProvider('github.com', 'o/r')) == 'github'

    def test_self_hosted_remote_provider(self):
        provider = GitHubRemoteProvider('github.corp.com', 'o/r', custom=True)
        assert resolve_integration_id(provider) == 'github-enterprise'

    def test_falls_back_to_provider_id(self):
        provider = ProviderReference(id='jira', name='Jira', domain='jira.example.com')
        assert resolve_integration_id(provider) == 'jira'


class TestEnrichAutolinks:
    """Tests for starting enrichment fetches."""

    @pytest.mark.asyncio
    async def test_empty_input(self, registry):
        """Test that nothing to enrich yields None."""
        assert await enrich_autolinks({}, None, registry) is None

    @pytest.mark.asyncio
    async def test_remote_integration_fetch(self, registry):
        """Test that the remote's integration serves its own autolinks."""
        github = FakeIntegration(IntegrationId.GITHUB, domain='github.com', issues={'42': make_issue('42')})
        remote = make_remote(integration=github)
        autolinks = await _remote_autolinks(remote)

        enriched = await enrich_autolinks(autolinks, remote, registry)
        task, link = enriched['42']
        issue = await task

        assert link is autolinks['42']
        assert issue.id == '42'
        assert github.calls == [(remote.provider.repo_desc, '42', None)]

    @pytest.mark.asyncio
    async def test_linked_integration_fetch(self, registry, jira):
        """Test that autolinks with a descriptor use their own integration."""
        jira.issues['JIRA-12'] = make_issue('JIRA-12')
        autolinks = {'12': build_autolink(jira_definition(), '12', provider=jira)}

        enriched = await enrich_autolinks(autolinks, None, registry)
        issue = await enriched['12'][0]

        assert issue.id == 'JIRA-12'
        assert jira.calls == [({'key': 'JIRA'}, 'JIRA-12', jira_definition().type)]

    @pytest.mark.asyncio
    async def test_no_fetch_without_descriptor(self, registry, jira):
        """Test that autolinks without a descriptor or matching remote are not fetched."""
        ref = StaticReferenceDefinition(prefix='JIRA-', url='https://jira/<num>')
        autolinks = {'12': build_autolink(ref, '12', provider=jira)}

        enriched = await enrich_autolinks(autolinks, None, registry)

        assert enriched['12'][0] is None
        assert jira.calls == []

    @pytest.mark.asyncio
    async def test_custom_autolinks_not_fetched(self, registry):
        """Test that custom autolinks have no integration to ask."""
        ref = StaticReferenceDefinition(prefix='CUS-', url='https://c/<num>')
        autolinks = {'5': build_autolink(ref, '5')}

        enriched = await enrich_autolinks(autolinks, None, registry)

        assert enriched['5'][0] is None

    @pytest.mark.asyncio
    async def test_disconnected_remote_integration(self, registry):
        """Test that a disconnected remote integration is not used."""
        github = FakeIntegration(IntegrationId.GITHUB, domain='github.com', connected=False)
        remote = make_remote(integration=github)
        autolinks = await _remote_autolinks(remote)

        enriched = await enrich_autolinks(autolinks, remote, registry)

        assert enriched['42'][0] is None
        assert github.calls == []

    @pytest.mark.asyncio
    async def test_no_access(self):
        """Test that an integration without access is not used."""
        jira = FakeIntegration(IntegrationId.JIRA, access=False)
        autolinks = {'12': build_autolink(jira_definition(), '12', provider=jira)}

        enriched = await enrich_autolinks(autolinks, None, IntegrationRegistry([jira]))

        assert enriched['12'][0] is None

    @pytest.mark.asyncio
    async def test_lookup_failure(self, registry):
        """Test that an unknown integration id leaves the autolink unenriched."""
        provider = ProviderReference(id='bogus', name='Bogus', domain='bogus.example.com')
        ref = StaticReferenceDefinition(prefix='B-', url='https://b/<num>', descriptor={'key': 'b'})
        autolinks = {'1': build_autolink(ref, '1', provider=provider)}

        enriched = await enrich_autolinks(autolinks, None, registry)

        assert enriched['1'][0] is None

    @pytest.mark.asyncio
    async def test_remote_integration_failure(self, registry):
        """Test that a failing remote integration lookup is logged and ignored."""
        remote = make_remote()

        async def failing_getter():
            raise RuntimeError("session store unavailable")

        remote.integration_getter = failing_getter
        autolinks = await _remote_autolinks(remote)

        enriched = await enrich_autolinks(autolinks, remote, registry)

        assert list(enriched) == ['42']
        assert enriched['42'][0] is None

    @pytest.mark.asyncio
    async def test_fetch_failure_resolves_to_none(self, registry, jira):
        """Test that a failing fetch is logged and resolves to None."""
        jira.issues['JIRA-12'] = RuntimeError("boom")
        autolinks = {'12': build_autolink(jira_definition(), '12', provider=jira)}

        enriched = await enrich_autolinks(autolinks, None, registry)

        assert await enriched['12'][0] is None


class TestMaybePaused:
    """Tests for snapshotting enrichment at render time."""

    @pytest.mark.asyncio
    async def test_settled_and_paused(self, jira):
        """Test that finished fetches carry values and pending ones are paused."""
        gate = asyncio.Event()
        slow = FakeIntegration(IntegrationId.LINEAR, gate=gate, issues={'7': make_issue('7')})
        jira.issues['JIRA-12'] = make_issue('JIRA-12')
        lin_ref = StaticReferenceDefinition(prefix='LIN-', url='https://lin/<num>', descriptor={'key': 'L'})
        autolinks = {
            '12': build_autolink(jira_definition(), '12', provider=jira),
            '7': build_autolink(lin_ref, '7', provider=slow),
            '3': build_autolink(StaticReferenceDefinition(prefix='C-', url='https://c/<num>'), '3'),
        }

        enriched = await enrich_autolinks(autolinks, None, IntegrationRegistry([jira, slow]))
        result = await get_maybe_paused_autolinks(enriched, timeout=0.05)

        settled, _ = result['12']
        assert settled.paused is False
        assert settled.value.id == 'JIRA-12'

        paused, _ = result['7']
        assert paused.paused is True
        assert paused.value is enriched['7'][0]

        assert result['3'][0] is None

        gate.set()
        assert (await paused.value).id == '7'

    @pytest.mark.asyncio
    async def test_none_passes_through(self):
        assert await get_maybe_paused_autolinks(None, timeout=0.1) is None
