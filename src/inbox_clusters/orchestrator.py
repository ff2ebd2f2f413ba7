"""Workflow orchestrator.

Objective:
    Coordinate the end-to-end workflow:
    1) Fetch recent Inbox messages from Gmail
    2) Replace the user's previously synced messages and clusters
    3) Categorize every message against the template table
    4) Record one cluster per non-empty category and stamp each message
    5) Serve cluster listings, stats and bulk archiving afterwards

Responsibilities:
    - Compose the core components (Gmail client, categorizer, store).
    - Provide an imperative API that can be called from the CLI, the FastAPI
      webapp, or other scripts.

High-level call tree:
    - :class:`ClusterOrchestrator`
        - :meth:`ClusterOrchestrator.sync`
            - :meth:`GmailClient.get_recent_emails`
            - :meth:`ClusterOrchestrator._store_and_cluster`
                - :meth:`EmailCategorizer.categorize_batch`
        - :meth:`ClusterOrchestrator.load_demo`
            - :meth:`ClusterOrchestrator._store_and_cluster`
        - :meth:`ClusterOrchestrator.list_clusters`
        - :meth:`ClusterOrchestrator.archive_cluster`
            - :meth:`GmailClient.archive_emails`
        - :meth:`ClusterOrchestrator.stats`

Operational notes:
    - Categorization is a synchronous CPU-bound step between the network
      fetch and the store writes. It never blocks on I/O.
    - Demo users have no real mailbox; archiving their clusters only updates
      the store.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

from .categorizer import EmailCategorizer
from .config import Settings, get_settings
from .email_client import GmailClient
from .models import (
    ArchiveResult,
    Cluster,
    ClusterTemplate,
    ClusterWithMessages,
    MailboxStats,
    Message,
    SyncResult,
)
from .storage import MemoryStore
from .templates import get_templates

logger = logging.getLogger(__name__)


class ClusterNotFound(LookupError):
    """Raised when a cluster ID does not exist in the store."""


def demo_messages(now: Optional[datetime] = None) -> list[Message]:
    """Build the sample mailbox used by demo mode.

    Args:
        now: Reference time for received timestamps.

    Returns:
        list[Message]: Eleven messages covering every built-in category.
    """
    now = now or datetime.now(timezone.utc)
    samples = [
        ("Q4 Planning Meeting Tomorrow", "manager@company.com", "Please prepare your quarterly reports...", 2),
        ("RE: Project Update", "team@company.com", "Thanks for the update on the new feature...", 4),
        ("Sprint Review Notes", "scrum@company.com", "Action items from today's sprint review...", 8),
        ("TechCrunch Daily: AI Breakthrough", "newsletters@techcrunch.com", "Today's top tech stories including...", 12),
        ("Morning Brew: Market Updates", "crew@morningbrew.com", "Stock futures are up this morning...", 24),
        ("Your Credit Card Statement is Ready", "statements@bank.com", "Your December statement is now available...", 16),
        ("Payment Confirmation - $89.99", "billing@service.com", "Thank you for your payment of $89.99...", 20),
        ("John shared a photo with you", "notifications@instagram.com", "John posted a new photo from vacation...", 6),
        ("You have 3 new connections", "invitations@linkedin.com", "Connect with professionals in your network...", 10),
        ("Your Amazon order has shipped", "shipment-tracking@amazon.com", "Your order #123-4567890 has been shipped...", 14),
        ("Flash Sale: 50% Off Everything", "deals@retailer.com", "Limited time offer - save big on your favorites...", 18),
    ]
    return [
        Message(
            id=f"demo-{index}",
            subject=subject,
            sender=sender,
            snippet=snippet,
            received_date_time=now - timedelta(hours=hours_ago),
        )
        for index, (subject, sender, snippet, hours_ago) in enumerate(samples, start=1)
    ]


class ClusterOrchestrator:
    """
    Orchestrates the fetch -> categorize -> persist workflow.

    This class is intentionally "glue" code: it connects the Gmail client,
    categorizer and store without embedding categorization rules.

    Attributes:
        settings: Application settings.
        store: Message and cluster persistence.
        mail_client: Gmail client for fetching and archiving.
        categorizer: Rule-based categorizer bound to the template table.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[MemoryStore] = None,
        mail_client: Optional[GmailClient] = None,
        templates: Optional[Iterable[ClusterTemplate]] = None,
    ) -> None:
        """
        Initialize orchestrator with all components.

        Args:
            settings: Application settings (loads from env if None).
            store: Store to use (a fresh in-memory store if None).
            mail_client: Gmail client (built from settings if None).
            templates: Template table (from settings or built-ins if None).

        Raises:
            InvalidConfiguration: If the template table is unusable.
        """
        self.settings = settings or get_settings()
        self.store = store or MemoryStore()
        self.mail_client = mail_client or GmailClient(self.settings)
        self.categorizer = EmailCategorizer(
            templates if templates is not None else get_templates(self.settings)
        )

    def _store_and_cluster(
        self, user_id: str, emails: Sequence[Message], demo: bool = False
    ) -> SyncResult:
        """Replace a user's data with ``emails`` and cluster them.

        Only non-empty categories become clusters. Template metadata is
        recorded once per cluster, not per message.
        """
        self.store.delete_emails_by_user(user_id)
        self.store.delete_clusters_by_user(user_id)

        stored = [self.store.create_email(email, user_id) for email in emails]
        assignment = self.categorizer.categorize_batch(stored)

        clusters = []
        for name, members in assignment.items():
            if not members:
                continue

            template = self.categorizer.get_template(name)
            cluster = self.store.create_cluster(
                Cluster(
                    user_id=user_id,
                    name=template.name,
                    description=template.description,
                    color=template.color,
                    email_count=len(members),
                    is_demo=demo,
                )
            )
            for email in members:
                self.store.update_email(user_id, email.id, cluster_id=cluster.id)
            clusters.append(cluster)

        return SyncResult(
            email_count=len(stored),
            cluster_count=len(clusters),
            clusters=clusters,
        )

    def sync(self, user_id: str, limit: Optional[int] = None) -> SyncResult:
        """
        Pull recent Inbox messages for a user and cluster them.

        Previously synced messages and clusters of the user are discarded.

        Args:
            user_id: User to sync.
            limit: Maximum messages to fetch (``settings.sync_limit`` if None).

        Returns:
            SyncResult: Counts and created clusters.

        Raises:
            MailboxNotConnected: If no access token is configured.
            GmailApiNotEnabled: If the Gmail API is disabled.
            requests.HTTPError: If listing messages fails.
        """
        limit = limit or self.settings.sync_limit
        logger.info("Syncing up to %s emails for user %s", limit, user_id)

        emails = self.mail_client.get_recent_emails(limit)

        result = self._store_and_cluster(user_id, emails)
        logger.info(
            "Synced %s emails into %s clusters for user %s",
            result.email_count,
            result.cluster_count,
            user_id,
        )
        return result

    def load_demo(self, user_id: str) -> SyncResult:
        """
        Replace a user's data with the sample mailbox and cluster it.

        Args:
            user_id: User to load demo data for.

        Returns:
            SyncResult: Counts and created clusters.
        """
        result = self._store_and_cluster(user_id, demo_messages(), demo=True)
        logger.info("Loaded demo mailbox for user %s", user_id)
        return result

    def list_clusters(
        self, user_id: str, preview: Optional[int] = None
    ) -> list[ClusterWithMessages]:
        """
        List a user's clusters with a preview of unarchived messages.

        Args:
            user_id: User whose clusters to list.
            preview: Messages per cluster (``settings.preview_count`` if None).

        Returns:
            list[ClusterWithMessages]: Clusters in creation order.
        """
        count = self.settings.preview_count if preview is None else preview

        listed = []
        for cluster in self.store.get_clusters_by_user(user_id):
            active = [
                e for e in self.store.get_emails_by_cluster(cluster.id) if not e.is_archived
            ]
            listed.append(
                ClusterWithMessages(**cluster.model_dump(), messages=active[:count])
            )
        return listed

    def archive_cluster(self, cluster_id: str) -> ArchiveResult:
        """
        Archive every unarchived message of a cluster.

        Messages are archived at the provider first; the store is only
        updated once that succeeds.

        Args:
            cluster_id: Cluster to archive.

        Returns:
            ArchiveResult: Number of messages archived.

        Raises:
            ClusterNotFound: If the cluster does not exist.
            requests.HTTPError: If the provider rejects the archive request.
        """
        cluster = self.store.get_cluster_with_emails(cluster_id)
        if cluster is None:
            raise ClusterNotFound(cluster_id)

        pending = [e.id for e in cluster.messages if not e.is_archived]

        if pending and not cluster.is_demo:
            self.mail_client.archive_emails(pending)

        self.store.archive_emails_by_cluster(cluster_id)
        logger.info("Archived %s emails from cluster %r", len(pending), cluster.name)
        return ArchiveResult(cluster_id=cluster_id, archived_count=len(pending))

    def stats(self, user_id: str) -> MailboxStats:
        """
        Summarize a user's mailbox.

        Args:
            user_id: User to summarize.

        Returns:
            MailboxStats: Unarchived message count and cluster count.
        """
        emails = self.store.get_emails_by_user(user_id)
        return MailboxStats(
            total_emails=sum(1 for e in emails if not e.is_archived),
            cluster_count=len(self.store.get_clusters_by_user(user_id)),
        )
