"""Text formatting helpers shared by the matcher and the renderer."""

import html
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote

from .schema import AutolinkType, IssueOrPullRequest, IssueState


class GlyphChars:
    """Glyphs used when composing titles and footnotes."""
    DASH = '\u2014'
    DOT = '\u2022'
    SPACE = '\u00a0'


SUPERSCRIPTS = {
    '0': '⁰',
    '1': '¹',
    '2': '²',
    '3': '³',
    '4': '⁴',
    '5': '⁵',
    '6': '⁶',
    '7': '⁷',
    '8': '⁸',
    '9': '⁹',
    '+': '⁺',
    '-': '⁻',
}

# Characters escaped by `escape_markdown`
MARKDOWN_ESCAPE_PATTERN = re.compile(r'([\\`*_{}\[\]()#+\-.!])')
MARKDOWN_HEADER_PATTERN = re.compile(r'^===', re.MULTILINE)

# encodeURI keeps these unescaped; `#` is deliberately absent so it is encoded
URL_SAFE_CHARS = ";,/?:@&=+$-_.!~*'()"

_TIME_UNITS = [
    ('year', 365 * 24 * 60 * 60),
    ('month', 30 * 24 * 60 * 60),
    ('week', 7 * 24 * 60 * 60),
    ('day', 24 * 60 * 60),
    ('hour', 60 * 60),
    ('minute', 60),
    ('second', 1),
]


def get_superscript(num: int) -> str:
    """Render an integer with Unicode superscript glyphs."""
    return ''.join(SUPERSCRIPTS.get(c, c) for c in str(num))


def capitalize(s: str) -> str:
    return s[:1].upper() + s[1:]


def escape_markdown(s: str) -> str:
    """Escape Markdown control characters so text renders literally."""
    s = MARKDOWN_ESCAPE_PATTERN.sub(r'\\\1', s)
    # A setext header underline is not caught by the character class
    return MARKDOWN_HEADER_PATTERN.sub('\u200b===', s)


def encode_html_weak(s: Optional[str]) -> Optional[str]:
    """Entity-encode the characters that would break HTML markup."""
    if s is None:
        return None
    return html.escape(s, quote=True)


def encode_url(url: str) -> str:
    return quote(url, safe=URL_SAFE_CHARS)


def from_now(date: datetime, now: Optional[datetime] = None) -> str:
    """Describe a timestamp relative to now, e.g. '3 days ago'."""
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    seconds = int((now - date).total_seconds())
    future = seconds < 0
    seconds = abs(seconds)
    if seconds < 5:
        return 'just now'

    for unit, size in _TIME_UNITS:
        if seconds >= size:
            count = seconds // size
            label = unit if count == 1 else f"{unit}s"
            return f"in {count} {label}" if future else f"{count} {label} ago"

    return 'just now'


def get_issue_or_pull_request_markdown_icon(issue: Optional[IssueOrPullRequest] = None) -> str:
    """Codicon markup for an issue or pull request, chosen by type and state."""
    if issue is None:
        return '$(link)'

    if issue.type == AutolinkType.PULL_REQUEST:
        if issue.state == IssueState.MERGED:
            return '$(git-merge)'
        if issue.state == IssueState.CLOSED:
            return '$(git-pull-request-closed)'
        return '$(git-pull-request)'

    if issue.state == IssueState.CLOSED:
        return '$(pass)'
    return '$(issues)'


def get_issue_or_pull_request_html_icon(issue: Optional[IssueOrPullRequest] = None) -> str:
    icon = get_issue_or_pull_request_markdown_icon(issue)
    # `$(git-merge)` -> `codicon-git-merge`
    name = icon[2:-1]
    return f'<span class="codicon codicon-{name}"></span>'
