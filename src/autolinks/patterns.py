"""Regex construction for reference definitions.

Message regexes capture three groups: the leading boundary, the full link text
(prefix plus id) and the id. They are built per output format because Markdown
and HTML text arrive already escaped. Branch-name rules are format independent
and expose the id as the named group ``issueKeyNumber``.
"""

import re
from typing import Optional

from .exceptions import PatternCompileError
from .formatting import encode_html_weak, escape_markdown
from .references import CompileState, StaticReferenceDefinition
from .schema import OutputFormat

BOUNDARY = r'(^|\s|\(|\[|\{)'
BRANCH_SEPARATOR = r'[/\-_.]'
BRANCH_ID_GROUP = 'issueKeyNumber'
BRANCH_KEYWORDS = ('feature', 'feat', 'fix', 'bug', 'bugfix', 'hotfix', 'issue', 'ticket')

_BRANCH_CACHE_KEY = 'branch'

# Rules for definitions without a prefix, tried in order
GENERIC_BRANCH_RULES = [
    # keyword, connector and an optional project key, e.g. feature/JIRA-1234-login
    re.compile(
        rf'(?:^|{BRANCH_SEPARATOR})(?:{"|".join(BRANCH_KEYWORDS)})[/\-_.#]+'
        rf'(?:[a-z][a-z0-9]*[\-_])?(?P<{BRANCH_ID_GROUP}>\d{{2,}})(?=$|{BRANCH_SEPARATOR})',
        re.IGNORECASE,
    ),
    # a description before the number, e.g. login-fix-1234
    re.compile(rf'[^\d/]{{2,}}(?P<{BRANCH_ID_GROUP}>\d{{3,}})(?!\d)', re.IGNORECASE),
    # a description after the number, e.g. 1234-login
    re.compile(rf'(?<!\d)(?P<{BRANCH_ID_GROUP}>\d{{3,}})[^\d/]{{2,}}', re.IGNORECASE),
    # nothing but the number
    re.compile(rf'^(?P<{BRANCH_ID_GROUP}>\d{{3,}})$', re.IGNORECASE),
]


def _escape_prefix(prefix: str, output_format: OutputFormat) -> str:
    if output_format == OutputFormat.MARKDOWN:
        return re.escape(encode_html_weak(escape_markdown(prefix)))
    if output_format == OutputFormat.HTML:
        return re.escape(encode_html_weak(prefix))
    return re.escape(prefix)


def compile_message_regex(
    ref: StaticReferenceDefinition,
    output_format: OutputFormat,
    literal_id: Optional[str] = None,
) -> re.Pattern:
    """Build the regex that finds a definition's references in message text.

    With ``literal_id`` the id class is replaced by that exact id and the match is
    case sensitive, so an already extracted reference is only re-identified, never
    matched anew.
    """
    if literal_id is not None:
        id_pattern = re.escape(literal_id)
        flags = 0
    else:
        id_pattern = r'\w+' if ref.alphanumeric else r'\d+'
        flags = re.IGNORECASE if ref.ignore_case else 0

    prefix = _escape_prefix(ref.prefix, output_format)
    return re.compile(rf'{BOUNDARY}({prefix}({id_pattern}))\b', flags)


def get_message_regex(
    ref: StaticReferenceDefinition,
    output_format: OutputFormat,
    literal_id: Optional[str] = None,
) -> re.Pattern:
    """Return the memoized message regex, compiling it on first use."""
    key = (OutputFormat(output_format), literal_id)
    cached = ref.compiled.get(key)
    if cached is CompileState.FAILED:
        raise PatternCompileError(f"Pattern for prefix {ref.prefix!r} previously failed to compile")
    if cached is not None:
        return cached

    try:
        regex = compile_message_regex(ref, key[0], literal_id)
    except (re.error, TypeError) as e:
        ref.compiled[key] = CompileState.FAILED
        raise PatternCompileError(f"Invalid pattern for prefix {ref.prefix!r}: {e}") from e

    ref.compiled[key] = regex
    return regex


def compile_branch_rules(ref: StaticReferenceDefinition) -> list[re.Pattern]:
    """Build the ordered branch-name rules for a definition."""
    if not ref.prefix:
        return GENERIC_BRANCH_RULES

    id_class = r'\w' if ref.alphanumeric else r'\d'
    return [
        re.compile(
            rf'(?:^|{BRANCH_SEPARATOR}){re.escape(ref.prefix)}'
            rf'(?P<{BRANCH_ID_GROUP}>{id_class}{{2,}})(?=$|{BRANCH_SEPARATOR})',
            re.IGNORECASE,
        )
    ]


def get_branch_rules(ref: StaticReferenceDefinition) -> list[re.Pattern]:
    """Return the memoized branch-name rules, compiling them on first use."""
    cached = ref.compiled.get(_BRANCH_CACHE_KEY)
    if cached is CompileState.FAILED:
        raise PatternCompileError(f"Branch rules for prefix {ref.prefix!r} previously failed to compile")
    if cached is not None:
        return cached

    try:
        rules = compile_branch_rules(ref)
    except (re.error, TypeError) as e:
        ref.compiled[_BRANCH_CACHE_KEY] = CompileState.FAILED
        raise PatternCompileError(f"Invalid branch rules for prefix {ref.prefix!r}: {e}") from e

    ref.compiled[_BRANCH_CACHE_KEY] = rules
    return rules
