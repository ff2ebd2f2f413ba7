from unittest.mock import MagicMock

import pytest
import requests

from src.inbox_clusters.categorizer import InvalidConfiguration
from src.inbox_clusters.config import Settings
from src.inbox_clusters.models import ClusterTemplate, Message
from src.inbox_clusters.orchestrator import (
    ClusterNotFound,
    ClusterOrchestrator,
    demo_messages,
)


@pytest.fixture
def mail_client():
    """Gmail client stub returning a small inbox."""
    client = MagicMock()
    client.get_recent_emails.return_value = [
        Message(id="g1", subject="Q4 Planning Meeting Tomorrow", sender="manager@company.com"),
        Message(id="g2", subject="Your Credit Card Statement is Ready", sender="statements@bank.com"),
        Message(id="g3", subject="Hello", sender="x@y.z", snippet=""),
    ]
    client.archive_emails.side_effect = lambda ids: len(ids)
    return client


@pytest.fixture
def orchestrator(mail_client):
    """Orchestrator wired to the stub client and built-in templates."""
    return ClusterOrchestrator(
        settings=Settings(gmail_access_token="t", sync_limit=50, preview_count=3),
        mail_client=mail_client,
    )


def test_sync_creates_one_cluster_per_non_empty_category(orchestrator, mail_client) -> None:
    """Sync stores messages and creates clusters only for used categories."""

    result = orchestrator.sync("u1")

    mail_client.get_recent_emails.assert_called_once_with(50)
    assert result.email_count == 3
    assert result.cluster_count == 2
    counts = {c.name: c.email_count for c in result.clusters}
    assert counts == {"Work Communications": 2, "Financial & Bills": 1}
    work = next(c for c in result.clusters if c.name == "Work Communications")
    assert work.color == "blue-500"
    assert work.description

    stored = {e.id: e.cluster_id for e in orchestrator.store.get_emails_by_user("u1")}
    assert stored["g1"] == work.id
    assert stored["g3"] == work.id
    assert all(cluster_id for cluster_id in stored.values())


def test_sync_replaces_previous_data(orchestrator, mail_client) -> None:
    """A second sync discards the first sync's messages and clusters."""

    orchestrator.sync("u1")
    mail_client.get_recent_emails.return_value = [Message(id="g9", subject="order shipped")]

    result = orchestrator.sync("u1", limit=5)

    mail_client.get_recent_emails.assert_called_with(5)
    assert result.email_count == 1
    assert [e.id for e in orchestrator.store.get_emails_by_user("u1")] == ["g9"]
    assert len(orchestrator.store.get_clusters_by_user("u1")) == 1


def test_load_demo_clusters_every_sample(mail_client) -> None:
    """Demo mode clusters all sample messages without calling Gmail."""

    orchestrator = ClusterOrchestrator(settings=Settings(), mail_client=mail_client)

    result = orchestrator.load_demo("demo-user")

    assert result.email_count == len(demo_messages()) == 11
    assert sum(c.email_count for c in result.clusters) == 11
    mail_client.get_recent_emails.assert_not_called()


def test_list_clusters_previews_unarchived_messages(orchestrator) -> None:
    """Cluster listings include at most preview_count unarchived messages."""

    orchestrator.sync("u1")

    listed = {c.name: c for c in orchestrator.list_clusters("u1", preview=1)}

    assert len(listed["Work Communications"].messages) == 1
    assert listed["Work Communications"].email_count == 2


def test_archive_cluster_archives_at_provider_and_in_store(orchestrator, mail_client) -> None:
    """Archiving sends pending IDs to Gmail and marks them archived."""

    result = orchestrator.sync("u1")
    work = next(c for c in result.clusters if c.name == "Work Communications")

    archived = orchestrator.archive_cluster(work.id)

    assert archived.archived_count == 2
    mail_client.archive_emails.assert_called_once()
    assert sorted(mail_client.archive_emails.call_args.args[0]) == ["g1", "g3"]
    assert orchestrator.stats("u1").total_emails == 1
    listed = {c.name: c for c in orchestrator.list_clusters("u1")}
    assert listed["Work Communications"].messages == []
    assert len(listed["Financial & Bills"].messages) == 1


def test_archive_cluster_twice_skips_provider(orchestrator, mail_client) -> None:
    """An already archived cluster makes no provider call."""

    result = orchestrator.sync("u1")
    cluster_id = result.clusters[0].id
    orchestrator.archive_cluster(cluster_id)
    mail_client.archive_emails.reset_mock()

    again = orchestrator.archive_cluster(cluster_id)

    assert again.archived_count == 0
    mail_client.archive_emails.assert_not_called()


def test_archive_demo_cluster_does_not_call_provider(orchestrator, mail_client) -> None:
    """Demo mailboxes are archived only in the store."""

    result = orchestrator.load_demo("u1")

    archived = orchestrator.archive_cluster(result.clusters[0].id)

    assert archived.archived_count == result.clusters[0].email_count
    mail_client.archive_emails.assert_not_called()


def test_archive_unknown_cluster_raises(orchestrator) -> None:
    """Unknown cluster IDs raise ClusterNotFound."""

    with pytest.raises(ClusterNotFound):
        orchestrator.archive_cluster("missing")


def test_stats_counts_unarchived_messages(orchestrator) -> None:
    """Stats report unarchived messages and cluster count."""

    orchestrator.sync("u1")

    stats = orchestrator.stats("u1")

    assert stats.total_emails == 3
    assert stats.cluster_count == 2


def test_custom_templates_are_injected(mail_client) -> None:
    """An injected template table replaces the built-in one."""

    orchestrator = ClusterOrchestrator(
        settings=Settings(),
        mail_client=mail_client,
        templates=[
            ClusterTemplate(name="Everything"),
            ClusterTemplate(name="Banking", sender_patterns=["bank"]),
        ],
    )

    result = orchestrator.sync("u1")

    assert {c.name: c.email_count for c in result.clusters} == {"Everything": 2, "Banking": 1}


def test_empty_template_table_is_rejected(mail_client) -> None:
    """An empty table fails at construction."""

    with pytest.raises(InvalidConfiguration):
        ClusterOrchestrator(settings=Settings(), mail_client=mail_client, templates=[])


def test_archive_cluster_provider_failure_leaves_store_untouched(orchestrator, mail_client) -> None:
    """A provider error propagates and no message is marked archived."""

    result = orchestrator.sync("u1")
    work = next(c for c in result.clusters if c.name == "Work Communications")
    mail_client.archive_emails.side_effect = requests.HTTPError("500 Server Error")

    with pytest.raises(requests.HTTPError):
        orchestrator.archive_cluster(work.id)

    assert orchestrator.stats("u1").total_emails == 3
    listed = {c.name: c for c in orchestrator.list_clusters("u1")}
    assert sorted(m.id for m in listed["Work Communications"].messages) == ["g1", "g3"]


def test_demo_flag_lives_with_clusters(orchestrator, mail_client) -> None:
    """Demo state is replaced with the user's clusters on the next sync."""

    demo = orchestrator.load_demo("u1")
    assert all(c.is_demo for c in demo.clusters)

    synced = orchestrator.sync("u1")
    assert not any(c.is_demo for c in synced.clusters)

    work = next(c for c in synced.clusters if c.name == "Work Communications")
    orchestrator.archive_cluster(work.id)

    mail_client.archive_emails.assert_called_once()
