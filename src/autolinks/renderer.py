"""Rewriting of reference occurrences into links.

Rendering is two-phase: every tokenizer replaces its matches with an opaque
``\\x00<n>\\x00`` token and records the final markup in a per-render token table,
then all tokens are substituted at once. Later definitions therefore never see
(or rewrite) markup produced by earlier ones.
"""

import asyncio
import re
from typing import Any, Callable, Optional

from .app_logging import get_logger
from .enrichment import snapshot_fetch
from .exceptions import PatternCompileError
from .formatting import (
    GlyphChars,
    capitalize,
    encode_html_weak,
    encode_url,
    escape_markdown,
    from_now,
    get_issue_or_pull_request_html_icon,
    get_issue_or_pull_request_markdown_icon,
    get_superscript,
)
from .integrations import GitRemote
from .patterns import get_message_regex
from .references import (
    DynamicReferenceDefinition,
    MaybePausedResult,
    StaticReferenceDefinition,
    TokenizerState,
    fill_template,
)
from .schema import IssueOrPullRequest, OutputFormat

logger = get_logger("renderer")

TOKEN_PATTERN = re.compile(r'(\x00\d+\x00)')

LOADING = 'Loading...'

# tokenize(text, output_format, token_table, enriched_autolinks, prs, footnotes) -> text
Tokenizer = Callable[..., str]


def _separator() -> str:
    return f"\n{GlyphChars.DASH * 2}\n"


def _add_token(token_table: dict[str, str], markup: str) -> str:
    token = f"\x00{len(token_table)}\x00"
    token_table[token] = markup
    return token


def _get_issue_result(enriched_autolinks: Optional[dict], num: str) -> Optional[MaybePausedResult]:
    if not enriched_autolinks:
        return None
    entry = enriched_autolinks.get(num)
    if entry is None:
        return None
    # Fetch tasks straight from enrichment are read as they stand right now
    if isinstance(entry[0], asyncio.Future):
        return snapshot_fetch(entry[0])
    return entry[0]


def _wants_footnote(footnotes: Optional[dict], prs: Optional[set], num: str) -> bool:
    return footnotes is not None and not (prs and num in prs)


def _add_footnote(footnotes: dict[int, str], footnote: str) -> int:
    index = len(footnotes) + 1
    footnotes[index] = footnote
    return index


def _issue_age(issue: IssueOrPullRequest) -> str:
    return from_now(issue.closed_date or issue.created_date)


def _issue_state(issue: IssueOrPullRequest) -> str:
    return getattr(issue.state, 'value', issue.state)


def _footnote_name(ref: StaticReferenceDefinition, num: str) -> str:
    return fill_template(ref.description, num) or f"Custom Autolink {ref.prefix}{num}"


def _inside_tag(text: str, pos: int) -> bool:
    return text.rfind('<', 0, pos) > text.rfind('>', 0, pos)


def _markdown_tokenizer(ref: StaticReferenceDefinition, regex: re.Pattern) -> Tokenizer:
    def tokenize(text, token_table, enriched_autolinks=None, prs=None, footnotes=None):
        def replace(match: re.Match) -> str:
            boundary, link_text, num = match.group(1, 2, 3)
            # Already the text of a Markdown link
            if boundary == '[' and match.string.startswith('](', match.end()):
                return match.group(0)

            url = encode_url(fill_template(ref.url, num))

            title = ''
            if ref.title:
                title = f' "{fill_template(ref.title, num)}'

                issue_result = _get_issue_result(enriched_autolinks, num)
                if issue_result is not None and issue_result.value is not None:
                    if issue_result.paused:
                        if _wants_footnote(footnotes, prs, num):
                            _add_footnote(
                                footnotes,
                                f"[{get_issue_or_pull_request_markdown_icon()} {_footnote_name(ref, num)}"
                                f" $(loading~spin)]({url}{title}\")",
                            )
                        title += f"{_separator()}{LOADING}"
                    else:
                        issue = issue_result.value
                        issue_title = escape_markdown(issue.title.strip())
                        quoted_title = issue_title.replace('"', '\\"')
                        state = _issue_state(issue)
                        if _wants_footnote(footnotes, prs, num):
                            _add_footnote(
                                footnotes,
                                f"[{get_issue_or_pull_request_markdown_icon(issue)} **{issue_title}**]"
                                f"({url}{title}\")\\\n{GlyphChars.SPACE * 5}{link_text} {state} {_issue_age(issue)}",
                            )
                        title += (
                            f"{_separator()}{quoted_title}"
                            f"\n{capitalize(state)}, {_issue_age(issue)}"
                        )
                elif _wants_footnote(footnotes, prs, num):
                    _add_footnote(
                        footnotes,
                        f"[{get_issue_or_pull_request_markdown_icon()} {_footnote_name(ref, num)}]({url}{title}\")",
                    )
                title += '"'

            return boundary + _add_token(token_table, f"[{link_text}]({url}{title})")

        return regex.sub(replace, text)

    return tokenize


def _html_tokenizer(ref: StaticReferenceDefinition, regex: re.Pattern) -> Tokenizer:
    def tokenize(text, token_table, enriched_autolinks=None, prs=None, footnotes=None):
        def replace(match: re.Match) -> str:
            boundary, link_text, num = match.group(1, 2, 3)
            # Inside the attributes of an existing tag
            if _inside_tag(match.string, match.start()):
                return match.group(0)

            url = encode_url(fill_template(ref.url, num))

            title = ''
            if ref.title:
                title = f'"{encode_html_weak(fill_template(ref.title, num))}'

                issue_result = _get_issue_result(enriched_autolinks, num)
                if issue_result is not None and issue_result.value is not None:
                    if issue_result.paused:
                        if _wants_footnote(footnotes, prs, num):
                            _add_footnote(
                                footnotes,
                                f'<a href="{url}" title={title}">{get_issue_or_pull_request_html_icon()} '
                                f'{_footnote_name(ref, num)}</a>',
                            )
                        title += f"{_separator()}{LOADING}"
                    else:
                        issue = issue_result.value
                        issue_title = encode_html_weak(issue.title.strip())
                        state = _issue_state(issue)
                        if _wants_footnote(footnotes, prs, num):
                            _add_footnote(
                                footnotes,
                                f'<a href="{url}" title={title}">{get_issue_or_pull_request_html_icon(issue)} '
                                f'<b>{issue_title}</b></a><br /><span>{GlyphChars.SPACE * 5}'
                                f'{link_text} {state} {_issue_age(issue)}</span>',
                            )
                        title += f"{_separator()}{issue_title}\n{capitalize(state)}, {_issue_age(issue)}"
                elif _wants_footnote(footnotes, prs, num):
                    _add_footnote(
                        footnotes,
                        f'<a href="{url}" title={title}">{get_issue_or_pull_request_html_icon()} '
                        f'{_footnote_name(ref, num)}</a>',
                    )
                title += '"'

            title_attr = f' title={title}' if title else ''
            return boundary + _add_token(token_table, f'<a href="{url}"{title_attr}>{link_text}</a>')

        return regex.sub(replace, text)

    return tokenize


def _plaintext_tokenizer(ref: StaticReferenceDefinition, regex: re.Pattern) -> Tokenizer:
    def tokenize(text, token_table, enriched_autolinks=None, prs=None, footnotes=None):
        def replace(match: re.Match) -> str:
            boundary, link_text, num = match.group(1, 2, 3)

            issue_result = _get_issue_result(enriched_autolinks, num)
            if issue_result is None or issue_result.value is None:
                return f"{boundary}{link_text}"

            marker = ''
            if _wants_footnote(footnotes, prs, num):
                if issue_result.paused:
                    detail = LOADING
                else:
                    issue = issue_result.value
                    detail = (
                        f"{issue.title}  {GlyphChars.DOT}  "
                        f"{capitalize(_issue_state(issue))}, {_issue_age(issue)}"
                    )
                marker = get_superscript(_add_footnote(footnotes, f"{link_text}: {detail}"))

            return boundary + _add_token(token_table, f"{link_text}{marker}")

        return regex.sub(replace, text)

    return tokenize


_TOKENIZER_FACTORIES = {
    OutputFormat.MARKDOWN: _markdown_tokenizer,
    OutputFormat.HTML: _html_tokenizer,
    OutputFormat.PLAINTEXT: _plaintext_tokenizer,
}


def _build_tokenizer(ref: StaticReferenceDefinition) -> Tokenizer:
    # All formats are compiled up front so a bad definition fails here, once
    by_format = {
        output_format: factory(ref, get_message_regex(ref, output_format, ref.literal_id))
        for output_format, factory in _TOKENIZER_FACTORIES.items()
    }

    def tokenize(text, output_format, token_table, enriched_autolinks=None, prs=None, footnotes=None):
        return by_format[OutputFormat(output_format)](text, token_table, enriched_autolinks, prs, footnotes)

    return tokenize


def ensure_tokenizer(ref: Any) -> Optional[Tokenizer]:
    """Return the reference's tokenize callable, building it on first use.

    Returns None for references that cannot be tokenized. A static definition
    without a prefix or url, or one whose regexes fail to compile, is marked
    untokenizable and never retried.
    """
    if isinstance(ref, DynamicReferenceDefinition):
        return ref.tokenize

    if ref.tokenizer is TokenizerState.UNTOKENIZABLE:
        return None
    if ref.tokenizer is not TokenizerState.NOT_ATTEMPTED:
        return ref.tokenizer

    if not ref.prefix or not ref.url:
        ref.tokenizer = TokenizerState.UNTOKENIZABLE
        return None

    try:
        ref.tokenizer = _build_tokenizer(ref)
    except (PatternCompileError, re.error, TypeError, ValueError) as e:
        logger.error(
            f"Failed to create autolink generator: prefix={ref.prefix}, url={ref.url}, title={ref.title}: {e}"
        )
        ref.tokenizer = TokenizerState.UNTOKENIZABLE
        return None

    return ref.tokenizer


def _sort_remotes(remotes: list[GitRemote]) -> list[GitRemote]:
    return sorted(remotes, key=lambda r: 0 if r.maybe_integration_connected is True else 1)


def linkify(
    text: str,
    output_format: OutputFormat,
    custom_definitions: list[StaticReferenceDefinition],
    remotes: Optional[list[GitRemote]] = None,
    enriched_autolinks: Optional[dict] = None,
    prs: Optional[set[str]] = None,
    footnotes: Optional[dict[int, str]] = None,
) -> str:
    """Rewrite every reference in ``text`` into a link for ``output_format``.

    Markdown and HTML input is expected to be escaped already. With enriched
    autolinks only those autolinks are rendered; otherwise the custom definitions
    and then each remote's definitions are applied, remotes with a connected
    integration first. Footnotes go to ``footnotes`` when given; plaintext output
    without a sink gets its footnotes appended to the text.

    Enriched entries may hold snapshots from ``get_maybe_paused_autolinks`` or the
    fetch tasks from ``enrich_autolinks``; a pending task renders as loading.
    """
    output_format = OutputFormat(output_format)

    include_footnotes_in_text = output_format == OutputFormat.PLAINTEXT and footnotes is None
    if include_footnotes_in_text:
        footnotes = {}

    token_table: dict[str, str] = {}

    def apply(ref) -> None:
        nonlocal text
        tokenize = ensure_tokenizer(ref)
        if tokenize is not None:
            text = tokenize(text, output_format, token_table, enriched_autolinks, prs, footnotes)

    if enriched_autolinks:
        for _, link in enriched_autolinks.values():
            apply(link)
    else:
        for ref in custom_definitions:
            apply(ref)

        for remote in _sort_remotes(remotes or []):
            if remote.provider is None:
                continue
            for ref in remote.provider.autolinks:
                apply(ref)

    if token_table:
        text = TOKEN_PATTERN.sub(lambda m: token_table.get(m.group(1), m.group(1)), text)

    if include_footnotes_in_text and footnotes:
        lines = '\n'.join(f"{get_superscript(i)} {footnote}" for i, footnote in footnotes.items())
        text += f"{_separator()}{lines}"

    logger.debug(f"Rendered <message> as {output_format.value} with {len(token_table)} link(s)")
    return text
