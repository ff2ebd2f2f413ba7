"""Inbox Clusters package.

Objective:
    Group a mailbox into a handful of human-labelled clusters and let the user
    archive a whole cluster at once:
    - Fetch recent Inbox messages from Gmail.
    - Categorize them with a deterministic keyword / sender-pattern scorer
      against an ordered table of category templates.
    - Persist clusters and archive them in bulk.

Key modules:
    - :mod:`src.inbox_clusters.categorizer`:
        Scoring, best-template selection, batch partitioning.
    - :mod:`src.inbox_clusters.templates`:
        Built-in template table and JSON template loader.
    - :mod:`src.inbox_clusters.email_client`:
        Gmail REST wrapper for listing and archiving messages.
    - :mod:`src.inbox_clusters.storage`:
        In-memory message and cluster store.
    - :mod:`src.inbox_clusters.orchestrator`:
        End-to-end workflow coordination.
    - :mod:`src.inbox_clusters.cli` / :mod:`src.inbox_clusters.webapp`:
        User-facing entrypoints.
"""

__version__ = "0.1.0"
