"""Tests for the AutolinksProvider facade."""

import pytest

from autolinks.config import AutolinksConfig, CustomAutolinkConfig, set_config
from autolinks.integrations import IntegrationId
from autolinks.provider import AutolinksProvider, build_custom_definitions
from autolinks.references import StaticReferenceDefinition, build_autolink, serialize_autolink
from autolinks.schema import OutputFormat

from conftest import FakeIntegration, jira_definition, make_issue, make_remote


def _config(*entries):
    return AutolinksConfig(autolinks=[CustomAutolinkConfig(**entry) for entry in entries])


@pytest.fixture
def provider(registry):
    provider = AutolinksProvider(registry, _config({'prefix': 'CUS-', 'url': 'https://custom/<num>'}))
    yield provider
    provider.dispose()


class TestCustomDefinitions:
    """Tests for definitions built from configuration."""

    def test_incomplete_entries_dropped(self):
        """Test that entries without prefix or url are ignored."""
        definitions = build_custom_definitions(_config(
            {'prefix': 'A-', 'url': 'https://a/<num>', 'ignoreCase': True},
            {'prefix': '', 'url': 'https://b/<num>'},
            {'prefix': 'C-', 'url': ''},
        ))

        assert [d.prefix for d in definitions] == ['A-']
        assert definitions[0].ignore_case is True

    def test_config_change_rebuilds_definitions(self, provider):
        """Test that a new configuration replaces the custom definitions."""
        before = provider.custom_definitions

        set_config(_config({'prefix': 'NEW-', 'url': 'https://new/<num>'}))

        assert [d.prefix for d in provider.custom_definitions] == ['NEW-']
        assert provider.custom_definitions[0] is not before[0]

    def test_dispose_stops_listening(self, registry):
        """Test that a disposed provider ignores configuration changes."""
        provider = AutolinksProvider(registry, _config({'prefix': 'CUS-', 'url': 'https://custom/<num>'}))
        provider.dispose()

        set_config(_config({'prefix': 'NEW-', 'url': 'https://new/<num>'}))

        assert [d.prefix for d in provider.custom_definitions] == ['CUS-']


class TestProviderOperations:
    """Tests for the public operations."""

    @pytest.mark.asyncio
    async def test_get_autolinks(self, provider):
        """Test extraction across integrations, the remote and custom definitions."""
        autolinks = await provider.get_autolinks("JIRA-1, #42 and CUS-7", make_remote())

        assert autolinks['1'].url == 'https://jira.example.com/browse/JIRA-1'
        assert autolinks['42'].url == 'https://github.com/owner/repo/issues/42'
        assert autolinks['7'].url == 'https://custom/7'

    @pytest.mark.asyncio
    async def test_get_branch_autolinks(self, provider):
        """Test scenario: an issue tracker key in a feature branch."""
        autolinks = await provider.get_branch_autolinks('feature/JIRA-1234-login', make_remote())

        assert list(autolinks) == ['https://jira.example.com/browse/JIRA-1234']

    @pytest.mark.asyncio
    async def test_exclude_custom(self, provider):
        """Test that custom definitions can be left out for a hosted remote."""
        remote = make_remote()

        autolinks = await provider.get_autolinks("#42 and CUS-7", remote, exclude_custom=True)
        assert '42' in autolinks
        assert '7' not in autolinks

        assert list(await provider.get_branch_autolinks('CUS-88-fix', remote)) == ['https://custom/88']
        assert await provider.get_branch_autolinks('CUS-88-fix', remote, exclude_custom=True) == {}

    @pytest.mark.asyncio
    async def test_get_enriched_autolinks(self, provider, jira):
        """Test that enrichment starts for autolinks found in a message."""
        jira.issues['JIRA-5'] = make_issue('JIRA-5')

        enriched = await provider.get_enriched_autolinks("Fixes JIRA-5")

        assert (await enriched['5'][0]).id == 'JIRA-5'

    @pytest.mark.asyncio
    async def test_maybe_paused_uses_configured_timeout(self, registry, jira):
        """Test that the configured pause timeout bounds the wait."""
        jira.issues['JIRA-5'] = make_issue('JIRA-5')
        config = _config()
        config.enrichment.pause_timeout_seconds = 1.0
        provider = AutolinksProvider(registry, config)
        try:
            enriched = await provider.get_enriched_autolinks("Fixes JIRA-5")
            result = await provider.get_maybe_paused_autolinks(enriched)
        finally:
            provider.dispose()

        assert result['5'][0].paused is False
        assert result['5'][0].value.id == 'JIRA-5'

    @pytest.mark.asyncio
    async def test_get_enriched_autolinks_from_map(self, provider):
        """Test that an already extracted map is enriched as is."""
        assert await provider.get_enriched_autolinks({}) is None

    @pytest.mark.asyncio
    async def test_integration_change_clears_cache(self, provider, registry):
        """Test that registering an integration invalidates cached groups."""
        before = await provider.get_autolinks("GH-9")
        assert before == {}

        registry.register(FakeIntegration(
            IntegrationId.LINEAR,
            definitions=[StaticReferenceDefinition(prefix='GH-', url='https://gh/<num>')],
        ))

        after = await provider.get_autolinks("GH-9")
        assert after['9'].url == 'https://gh/9'

    def test_linkify_uses_custom_definitions(self, provider):
        result = provider.linkify("see CUS-7", OutputFormat.HTML)

        assert result == 'see <a href="https://custom/7">CUS-7</a>'

    def test_enrichable_id(self, provider, jira):
        autolink = build_autolink(jira_definition(), '3', provider=jira)

        assert provider.get_autolink_enrichable_id(autolink) == 'JIRA-3'


class TestSerializeAutolink:
    """Tests for autolink records."""

    @pytest.mark.asyncio
    async def test_record(self, provider):
        """Test that provider identity and descriptor are carried over."""
        autolinks = await provider.get_autolinks("#42", make_remote())

        record = serialize_autolink(autolinks['42'])

        assert record.id == '42'
        assert record.prefix == '#'
        assert record.provider.id == 'github'
        assert record.provider.domain == 'github.com'
        assert record.descriptor['key'] == 'owner/repo'
        assert record.model_dump(mode='json')['url'] == 'https://github.com/owner/repo/issues/42'

    @pytest.mark.asyncio
    async def test_custom_record_has_no_provider(self, provider):
        autolinks = await provider.get_autolinks("CUS-7")

        assert serialize_autolink(autolinks['7']).provider is None
