"""In-memory persistence for messages and clusters.

Objective:
    Durably-enough record, per user, which messages were synced, which cluster
    each landed in, and each cluster's metadata. The store keeps everything in
    process memory; it is reset on restart.

Responsibilities:
    - CRUD for :class:`src.inbox_clusters.models.Message` and
      :class:`src.inbox_clusters.models.Cluster`, scoped by user.
    - Bulk archive of all messages in one cluster.

Operational notes:
    - FastAPI runs sync routes in a thread pool, so every public method holds
      the store lock.
    - Stored models are never mutated in place; updates store a copy.
"""

import logging
import threading
from typing import Any, Optional

from .models import Cluster, ClusterWithMessages, Message

logger = logging.getLogger(__name__)


class MemoryStore:
    """
    Thread-safe in-memory store.

    Messages are keyed by ``(user_id, message_id)`` because provider IDs are
    only unique within one mailbox.

    Attributes:
        emails: ``(user_id, message_id)`` -> message.
        clusters: Cluster ID -> cluster.
    """

    def __init__(self) -> None:
        self.emails: dict[tuple[str, str], Message] = {}
        self.clusters: dict[str, Cluster] = {}
        self._lock = threading.Lock()

    # Messages

    def create_email(self, email: Message, user_id: str) -> Message:
        """Store a message for a user, replacing any previous copy."""
        stored = email.model_copy(update={"user_id": user_id})
        with self._lock:
            self.emails[(user_id, stored.id)] = stored
        return stored

    def update_email(self, user_id: str, email_id: str, **updates: Any) -> Optional[Message]:
        """Apply field updates to a stored message.

        Returns:
            Optional[Message]: The updated message, or None if unknown.
        """
        key = (user_id, email_id)
        with self._lock:
            email = self.emails.get(key)
            if email is None:
                return None
            updated = email.model_copy(update=updates)
            self.emails[key] = updated
            return updated

    def get_emails_by_user(self, user_id: str) -> list[Message]:
        with self._lock:
            return [e for e in self.emails.values() if e.user_id == user_id]

    def get_emails_by_cluster(self, cluster_id: str) -> list[Message]:
        with self._lock:
            return [e for e in self.emails.values() if e.cluster_id == cluster_id]

    def delete_emails_by_user(self, user_id: str) -> int:
        """Remove all messages of a user.

        Returns:
            int: Number of messages removed.
        """
        with self._lock:
            doomed = [k for k, e in self.emails.items() if e.user_id == user_id]
            for key in doomed:
                del self.emails[key]
        return len(doomed)

    def archive_emails_by_cluster(self, cluster_id: str) -> int:
        """Mark every unarchived message of a cluster as archived.

        Returns:
            int: Number of messages newly archived.
        """
        archived = 0
        with self._lock:
            for key, email in list(self.emails.items()):
                if email.cluster_id == cluster_id and not email.is_archived:
                    self.emails[key] = email.model_copy(update={"is_archived": True})
                    archived += 1
        return archived

    # Clusters

    def create_cluster(self, cluster: Cluster) -> Cluster:
        with self._lock:
            self.clusters[cluster.id] = cluster
        return cluster

    def get_cluster(self, cluster_id: str) -> Optional[Cluster]:
        with self._lock:
            return self.clusters.get(cluster_id)

    def get_clusters_by_user(self, user_id: str) -> list[Cluster]:
        with self._lock:
            return [c for c in self.clusters.values() if c.user_id == user_id]

    def get_cluster_with_emails(self, cluster_id: str) -> Optional[ClusterWithMessages]:
        """Return a cluster together with all of its messages."""
        cluster = self.get_cluster(cluster_id)
        if cluster is None:
            return None
        return ClusterWithMessages(
            **cluster.model_dump(),
            messages=self.get_emails_by_cluster(cluster_id),
        )

    def delete_clusters_by_user(self, user_id: str) -> int:
        with self._lock:
            doomed = [k for k, c in self.clusters.items() if c.user_id == user_id]
            for key in doomed:
                del self.clusters[key]
        return len(doomed)
