"""Extraction of autolinks from commit messages and branch names."""

import inspect

from .app_logging import get_logger
from .exceptions import PatternCompileError
from .integrations import SUPPORTED_AUTOLINK_INTEGRATIONS, Integration, normalize_id
from .patterns import BRANCH_ID_GROUP, get_branch_rules, get_message_regex
from .references import (
    Autolink,
    DynamicReferenceDefinition,
    ReferenceGroup,
    StaticReferenceDefinition,
    build_autolink,
)
from .schema import AutolinkType, OutputFormat, ReferenceType

logger = get_logger("extractor")

_SUPPORTED_IDS = {integration_id.value for integration_id in SUPPORTED_AUTOLINK_INTEGRATIONS}


async def get_autolinks(message: str, groups: list[ReferenceGroup]) -> dict[str, Autolink]:
    """Find every reference in a commit message, keyed by id.

    Groups and their definitions are visited in order and each match overwrites
    any earlier entry for the same id, so the *last* definition to claim an id
    wins. Dynamic definitions write into the same map through their parser.
    """
    autolinks: dict[str, Autolink] = {}

    for group in groups:
        for ref in group.definitions:
            if isinstance(ref, DynamicReferenceDefinition):
                result = ref.parse(message, autolinks)
                if inspect.isawaitable(result):
                    await result
                continue

            if not ref.is_cacheable:
                continue
            if ref.reference_type is not None and ref.reference_type != ReferenceType.COMMIT:
                continue

            try:
                regex = get_message_regex(ref, OutputFormat.PLAINTEXT)
            except PatternCompileError as e:
                logger.error(f"Skipping autolink definition: prefix={ref.prefix}, url={ref.url}: {e}")
                continue

            for match in regex.finditer(message):
                num = match.group(3)
                autolinks[num] = build_autolink(ref, num, provider=group.owner, index=match.start())

    logger.debug(f"Found {len(autolinks)} autolink(s) in <message>")
    return autolinks


def _is_issue_integration_group(group: ReferenceGroup) -> bool:
    return isinstance(group.owner, Integration) and normalize_id(getattr(group.owner, 'id', None)) in _SUPPORTED_IDS


def get_branch_autolinks(branch_name: str, groups: list[ReferenceGroup]) -> dict[str, Autolink]:
    """Find the single most relevant reference in a branch name, keyed by URL.

    Issue-tracker integration groups are tried first; the first rule that matches
    ends the scan.
    """
    ordered = sorted(groups, key=lambda g: 0 if _is_issue_integration_group(g) else 1)

    for group in ordered:
        for ref in group.definitions:
            if not isinstance(ref, StaticReferenceDefinition) or ref.url is None:
                continue
            if ref.type == AutolinkType.PULL_REQUEST:
                continue
            if ref.reference_type is not None and ref.reference_type != ReferenceType.BRANCH:
                continue

            try:
                rules = get_branch_rules(ref)
            except PatternCompileError as e:
                logger.error(f"Skipping branch autolink definition: prefix={ref.prefix}, url={ref.url}: {e}")
                continue

            for rule in rules:
                match = rule.search(branch_name)
                if match is None:
                    continue

                autolink = build_autolink(
                    ref,
                    match.group(BRANCH_ID_GROUP),
                    provider=group.owner,
                    index=match.start(BRANCH_ID_GROUP),
                )
                logger.debug(f"Branch autolink {autolink.url} found in <branch>")
                return {autolink.url: autolink}

    return {}
