"""Reference definitions and the autolinks extracted from them.

A reference definition is either static (a prefix plus URL template, matched by
regexes built in :mod:`autolinks.patterns`) or dynamic (a provider-supplied parser).
Static definitions and extracted autolinks memoize their compiled regexes and their
tokenizer on the instance, so a configuration change must build new instances
rather than mutate existing ones.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from .schema import AutolinkRecord, AutolinkType, ProviderReference, ReferenceType

# Placeholder for the id inside url/title/description templates
NUM_PLACEHOLDER = '<num>'


class CompileState(Enum):
    """Marker stored in a compiled-forms slot whose construction failed."""
    FAILED = "failed"


class TokenizerState(Enum):
    """Tokenizer slot states other than a usable tokenize callable."""
    NOT_ATTEMPTED = "not_attempted"
    UNTOKENIZABLE = "untokenizable"


def fill_template(template: Optional[str], num: str) -> Optional[str]:
    """Substitute an id into a url/title/description template."""
    if template is None:
        return None
    return template.replace(NUM_PLACEHOLDER, num)


@dataclass(eq=False)
class StaticReferenceDefinition:
    """Declarative reference pattern: a prefix and a URL template."""
    prefix: Optional[str]
    url: Optional[str]
    alphanumeric: bool = False
    ignore_case: bool = False
    title: Optional[str] = None
    type: Optional[AutolinkType] = None
    reference_type: Optional[ReferenceType] = None
    description: Optional[str] = None
    descriptor: Optional[dict[str, Any]] = None

    # Memoized compiled regexes, keyed by (output format, literal id) or 'branch'
    compiled: dict = field(default_factory=dict, init=False, repr=False)
    tokenizer: Any = field(default=TokenizerState.NOT_ATTEMPTED, init=False, repr=False)

    @property
    def is_cacheable(self) -> bool:
        """Has the minimum a regex-backed definition needs."""
        return self.prefix is not None and self.url is not None

    @property
    def literal_id(self) -> Optional[str]:
        return None


@dataclass(eq=False)
class DynamicReferenceDefinition:
    """Provider-supplied reference parser that bypasses the pattern compiler.

    ``parse(text, autolinks)`` inserts discovered autolinks into the shared map and
    may return an awaitable. ``tokenize`` has the signature of the tokenizers built
    by :func:`autolinks.renderer.ensure_tokenizer`.
    """
    parse: Callable[[str, dict], Union[None, Awaitable[None]]]
    tokenize: Optional[Callable[..., str]] = None
    name: Optional[str] = None


ReferenceDefinition = Union[StaticReferenceDefinition, DynamicReferenceDefinition]


@dataclass(eq=False)
class Autolink(StaticReferenceDefinition):
    """A reference occurrence found in text, with its templates filled in."""
    id: str = ''
    index: Optional[int] = None
    # Integration, remote provider or None (custom) that contributed the definition
    provider: Any = None

    @property
    def literal_id(self) -> Optional[str]:
        # Rendering an extracted autolink must only ever match its own id
        return self.id


@dataclass(eq=False)
class ReferenceGroup:
    """Definitions contributed by one owner, in precedence order."""
    owner: Any
    definitions: list[ReferenceDefinition]


@dataclass
class MaybePausedResult:
    """Enrichment outcome as seen at render time.

    While ``paused`` the value is the still-pending task; once settled it is the
    issue or pull request, or ``None``.
    """
    value: Any
    paused: bool = False


def build_autolink(
    ref: StaticReferenceDefinition,
    num: str,
    provider: Any = None,
    index: Optional[int] = None,
) -> Autolink:
    """Create an autolink for ``num`` from a static definition."""
    return Autolink(
        prefix=ref.prefix,
        url=fill_template(ref.url, num),
        alphanumeric=ref.alphanumeric,
        ignore_case=ref.ignore_case,
        title=fill_template(ref.title, num),
        type=ref.type,
        reference_type=ref.reference_type,
        description=fill_template(ref.description, num),
        descriptor=ref.descriptor,
        id=num,
        index=index,
        provider=provider,
    )


def _provider_reference(provider: Any) -> Optional[ProviderReference]:
    if provider is None:
        return None
    if isinstance(provider, ProviderReference):
        return provider

    values = {name: getattr(provider, name, None) for name in ('id', 'name', 'domain')}
    if any(value is None for value in values.values()):
        return None
    values = {name: getattr(value, 'value', value) for name, value in values.items()}
    return ProviderReference(**values, icon=getattr(provider, 'icon', None))


def serialize_autolink(autolink: Autolink) -> AutolinkRecord:
    """Convert an autolink into its JSON-ready record."""
    return AutolinkRecord(
        id=autolink.id,
        prefix=autolink.prefix or '',
        url=autolink.url or '',
        alphanumeric=autolink.alphanumeric,
        ignore_case=autolink.ignore_case,
        title=autolink.title,
        description=autolink.description,
        type=autolink.type,
        index=autolink.index,
        provider=_provider_reference(autolink.provider),
        descriptor=autolink.descriptor,
    )
