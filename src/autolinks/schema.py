"""Pydantic models and enums for autolink data."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class OutputFormat(str, Enum):
    """Target format of a rendered text."""
    HTML = "html"
    MARKDOWN = "markdown"
    PLAINTEXT = "plaintext"


class AutolinkType(str, Enum):
    """Kind of resource a reference points at."""
    ISSUE = "issue"
    PULL_REQUEST = "pullrequest"


class ReferenceType(str, Enum):
    """Where a reference definition applies."""
    COMMIT = "commit"
    BRANCH = "branch"


class IssueState(str, Enum):
    """Live state reported by a provider."""
    OPENED = "opened"
    CLOSED = "closed"
    MERGED = "merged"


class ProviderReference(BaseModel):
    """Lightweight, serializable identity of a provider."""
    id: str
    name: str
    domain: str
    icon: Optional[str] = None


class IssueOrPullRequest(BaseModel):
    """Issue or pull request as returned by an integration."""
    id: str
    title: str
    url: str
    state: IssueState = IssueState.OPENED
    type: AutolinkType = AutolinkType.ISSUE
    created_date: datetime
    closed_date: Optional[datetime] = None
    provider: Optional[ProviderReference] = None


class AutolinkRecord(BaseModel):
    """Serialized form of an extracted autolink."""
    id: str
    prefix: str
    url: str
    alphanumeric: bool = False
    ignore_case: bool = False
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[AutolinkType] = None
    index: Optional[int] = None
    provider: Optional[ProviderReference] = None
    descriptor: Optional[dict[str, Any]] = Field(
        None,
        description="Provider-specific resource locator"
    )
