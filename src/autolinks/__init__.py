"""Autolinks engine: find, enrich and render issue references in commit messages and branch names."""

from .provider import AutolinksProvider
from .references import (
    Autolink,
    DynamicReferenceDefinition,
    MaybePausedResult,
    ReferenceGroup,
    StaticReferenceDefinition,
    serialize_autolink,
)
from .schema import AutolinkType, IssueOrPullRequest, IssueState, OutputFormat, ReferenceType

__version__ = "0.1.0"

__all__ = [
    'AutolinksProvider',
    'Autolink',
    'AutolinkType',
    'DynamicReferenceDefinition',
    'IssueOrPullRequest',
    'IssueState',
    'MaybePausedResult',
    'OutputFormat',
    'ReferenceGroup',
    'ReferenceType',
    'StaticReferenceDefinition',
    'serialize_autolink',
]
