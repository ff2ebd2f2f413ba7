"""Pydantic data models used across the application.

Objective:
    Centralize all strongly-typed data structures representing:
    - Messages pulled from the mail provider
    - Category templates that drive rule-based clustering
    - Categorization outputs returned by the categorizer
    - Persisted clusters and the results of sync/archive operations

Design notes:
    - :class:`ClusterTemplate` is frozen so a configured template table cannot
      be mutated after startup. Keywords and sender patterns are lower-cased
      on validation; whitespace inside a term is significant.
    - ``model_config = ConfigDict(populate_by_name=True)`` is used to allow
      constructing models with either alias names (e.g. ``senderPatterns``)
      or pythonic field names.

High-level structure:
    - Categorization primitives:
        - :class:`ClusterTemplate`
        - :class:`Message`
        - :class:`CategorizationResult`
    - Persistence primitives:
        - :class:`Cluster`
        - :class:`ClusterWithMessages`
    - Operation results:
        - :class:`SyncResult`
        - :class:`ArchiveResult`
        - :class:`MailboxStats`

Call tree usage:
    - :mod:`src.inbox_clusters.templates` validates JSON into :class:`ClusterTemplate`
    - :class:`src.inbox_clusters.email_client.GmailClient` returns :class:`Message`
    - :class:`src.inbox_clusters.categorizer.EmailCategorizer` returns
      :class:`CategorizationResult`
    - :class:`src.inbox_clusters.orchestrator.ClusterOrchestrator` returns
      :class:`SyncResult`, :class:`ArchiveResult` and :class:`MailboxStats`
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _new_id() -> str:
    return uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClusterTemplate(BaseModel):
    """
    Static rule descriptor defining one classification bucket.

    Attributes:
        name: Human-readable category label, unique within a template set.
        description: What the category contains.
        color: Display tag, passed through untouched.
        keywords: Lower-case substrings checked against message text.
        sender_patterns: Lower-case substrings checked against the sender.
    """

    name: str
    description: str = ""
    color: str = ""
    keywords: tuple[str, ...] = ()
    sender_patterns: tuple[str, ...] = Field(default=(), alias="senderPatterns")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("keywords", "sender_patterns", mode="before")
    @classmethod
    def _normalize_terms(cls, value: object) -> object:
        """Lower-case terms.

        Whitespace is significant: ``" hr"`` must not match ``"three"``. An
        empty term is kept and matches every message.
        """
        if isinstance(value, str):
            value = [value]
        if isinstance(value, (list, tuple)):
            return tuple(str(term).lower() for term in value)
        return value


class Message(BaseModel):
    """
    A mail message reduced to the fields needed for clustering.

    ``subject``, ``sender`` and ``snippet`` may be absent; the categorizer
    treats absent text as an empty string.

    Attributes:
        id: Provider message ID.
        subject: Subject line.
        sender: Raw sender (usually the ``From`` header).
        snippet: Short preview of the body.
        received_date_time: When the message arrived.
        user_id: Owning user, set by the store.
        cluster_id: Assigned cluster, set after a sync.
        is_archived: Whether the message was archived through a cluster.
    """

    id: str = Field(default_factory=_new_id)
    subject: Optional[str] = None
    sender: Optional[str] = None
    snippet: Optional[str] = None
    received_date_time: Optional[datetime] = Field(default=None, alias="receivedDateTime")
    user_id: Optional[str] = Field(default=None, alias="userId")
    cluster_id: Optional[str] = Field(default=None, alias="clusterId")
    is_archived: bool = Field(default=False, alias="isArchived")

    model_config = ConfigDict(populate_by_name=True)


class CategorizationResult(BaseModel):
    """
    Result of categorizing one message.

    Attributes:
        message_id: Original message ID.
        subject: Message subject.
        category: Name of the template the message landed in.
        score: Best score achieved. 0 when the fallback template was used.
        fallback: True when no template matched and the default was used.
    """

    message_id: str
    subject: Optional[str] = None
    sender: Optional[str] = None
    category: str
    score: int = 0
    fallback: bool = False


class Cluster(BaseModel):
    """
    A persisted group of messages created from one template during a sync.

    Attributes:
        id: Cluster ID.
        user_id: Owning user.
        name: Template name.
        description: Template description.
        color: Template display tag.
        email_count: Number of messages assigned during the sync.
        created_at: Creation timestamp.
        is_demo: True when built from the sample mailbox; archiving it never
            reaches the provider.
    """

    id: str = Field(default_factory=_new_id)
    user_id: str
    name: str
    description: str = ""
    color: str = ""
    email_count: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    is_demo: bool = False


class ClusterWithMessages(Cluster):
    """Cluster plus (a preview of) its messages."""

    messages: list[Message] = Field(default_factory=list)


class SyncResult(BaseModel):
    """Outcome of a sync or demo load."""

    email_count: int
    cluster_count: int
    clusters: list[Cluster] = Field(default_factory=list)


class ArchiveResult(BaseModel):
    """Outcome of archiving one cluster."""

    cluster_id: str
    archived_count: int


class MailboxStats(BaseModel):
    """Per-user counters shown on the dashboard."""

    total_emails: int
    cluster_count: int
    last_updated: datetime = Field(default_factory=_utcnow)
