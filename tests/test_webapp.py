from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from src.inbox_clusters import categorizer as categorizer_module
from src.inbox_clusters.categorizer import EmailCategorizer, InvalidConfiguration
from src.inbox_clusters.config import Settings
from src.inbox_clusters.email_client import GmailApiNotEnabled, MailboxNotConnected
from src.inbox_clusters.models import Message
from src.inbox_clusters.orchestrator import ClusterNotFound, ClusterOrchestrator
from src.inbox_clusters.templates import DEFAULT_TEMPLATES
from src.inbox_clusters.webapp import create_app, get_orchestrator


def _client(orchestrator) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    return TestClient(app)


def _real_orchestrator(mail_client=None) -> ClusterOrchestrator:
    return ClusterOrchestrator(
        settings=Settings(gmail_access_token="t"),
        mail_client=mail_client or MagicMock(),
    )


def test_health() -> None:
    """Health endpoint returns ok."""

    client = TestClient(create_app())

    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_templates_lists_default_first() -> None:
    """Templates endpoint lists the table in order."""

    client = _client(_real_orchestrator())

    resp = client.get("/api/templates")

    assert resp.status_code == 200
    names = [t["name"] for t in resp.json()]
    assert names == [t.name for t in DEFAULT_TEMPLATES]
    assert "senderPatterns" in resp.json()[0]


def test_categorize_returns_groups_and_results() -> None:
    """Categorize endpoint groups messages without storing them."""

    orchestrator = _real_orchestrator()
    client = _client(orchestrator)

    resp = client.post(
        "/api/categorize",
        json={
            "messages": [
                {
                    "id": "w",
                    "subject": "Q4 Planning Meeting Tomorrow",
                    "sender": "manager@company.com",
                    "snippet": "Please prepare your quarterly reports",
                },
                {"id": "n", "subject": "Hello", "sender": "x@y.z", "snippet": ""},
                {"id": "f", "subject": "Your Credit Card Statement is Ready", "sender": "statements@bank.com"},
            ]
        },
    )

    assert resp.status_code == 200
    payload = resp.json()
    assert list(payload["clusters"]) == [t.name for t in DEFAULT_TEMPLATES]
    assert [m["id"] for m in payload["clusters"]["Work Communications"]] == ["w", "n"]
    assert [m["id"] for m in payload["clusters"]["Financial & Bills"]] == ["f"]
    assert payload["clusters"]["Shopping & Services"] == []
    assert payload["results"][1]["fallback"] is True
    assert payload["results"][1]["score"] == 0
    assert orchestrator.store.emails == {}


def test_categorize_empty_batch() -> None:
    """An empty batch returns every template with no messages."""

    client = _client(_real_orchestrator())

    resp = client.post("/api/categorize", json={"messages": []})

    assert resp.status_code == 200
    assert all(v == [] for v in resp.json()["clusters"].values())


def test_demo_then_clusters_and_stats() -> None:
    """Demo data populates clusters and stats for the user."""

    client = _client(_real_orchestrator())

    resp = client.post("/api/emails/demo/u1")
    assert resp.status_code == 200
    assert resp.json()["email_count"] == 11
    assert resp.json()["message"] == "Demo data loaded successfully"

    clusters = client.get("/api/clusters/u1").json()
    assert clusters
    assert all(len(c["messages"]) <= 3 for c in clusters)

    stats = client.get("/api/stats/u1").json()
    assert stats["total_emails"] == 11
    assert stats["cluster_count"] == len(clusters)


def test_archive_cluster_updates_stats() -> None:
    """Archiving a demo cluster reduces the unarchived count."""

    client = _client(_real_orchestrator())
    demo = client.post("/api/emails/demo/u1").json()
    cluster = demo["clusters"][0]

    resp = client.post(f"/api/clusters/{cluster['id']}/archive")

    assert resp.status_code == 200
    assert resp.json()["archived_count"] == cluster["email_count"]
    assert client.get("/api/stats/u1").json()["total_emails"] == 11 - cluster["email_count"]


def test_archive_unknown_cluster_returns_404() -> None:
    """Archiving an unknown cluster returns 404."""

    orchestrator = MagicMock()
    orchestrator.archive_cluster.side_effect = ClusterNotFound("nope")

    resp = _client(orchestrator).post("/api/clusters/nope/archive")

    assert resp.status_code == 404
    assert resp.json() == {"message": "Cluster not found"}


def test_sync_returns_result() -> None:
    """Sync endpoint returns counts from the orchestrator."""

    mail_client = MagicMock()
    mail_client.get_recent_emails.return_value = [
        Message(id="g1", subject="Your Amazon order has shipped", sender="ship@amazon.com"),
    ]

    resp = _client(_real_orchestrator(mail_client)).post("/api/emails/sync/u1")

    assert resp.status_code == 200
    assert resp.json()["email_count"] == 1
    assert resp.json()["clusters"][0]["name"] == "Shopping & Services"


def test_sync_without_token_returns_401() -> None:
    """Sync without a mailbox connection returns 401."""

    orchestrator = MagicMock()
    orchestrator.sync.side_effect = MailboxNotConnected("no token")

    resp = _client(orchestrator).post("/api/emails/sync/u1")

    assert resp.status_code == 401


def test_sync_api_disabled_returns_403_with_action() -> None:
    """A disabled Gmail API returns a structured 403."""

    orchestrator = MagicMock()
    orchestrator.sync.side_effect = GmailApiNotEnabled("disabled")

    resp = _client(orchestrator).post("/api/emails/sync/u1")

    assert resp.status_code == 403
    payload = resp.json()
    assert payload["action"] == "enable_gmail_api"
    assert "gmail.googleapis.com" in payload["enableUrl"]


def test_sync_unexpected_error_returns_500() -> None:
    """Unexpected sync failures return a generic 500."""

    orchestrator = MagicMock()
    orchestrator.sync.side_effect = RuntimeError("boom")

    resp = _client(orchestrator).post("/api/emails/sync/u1")

    assert resp.status_code == 500
    assert resp.json() == {"message": "Failed to sync emails"}


def test_invalid_configuration_returns_500() -> None:
    """A broken template table surfaces as invalid_configuration."""

    app = create_app()

    def broken() -> ClusterOrchestrator:
        raise InvalidConfiguration("At least one category template is required")

    app.dependency_overrides[get_orchestrator] = broken
    client = TestClient(app)

    resp = client.get("/api/templates")

    assert resp.status_code == 500
    assert resp.json()["error"] == "invalid_configuration"


def test_categorizer_is_shared_between_routes() -> None:
    """The categorize route uses the orchestrator's categorizer."""

    orchestrator = MagicMock()
    orchestrator.categorizer = EmailCategorizer(DEFAULT_TEMPLATES[:1])

    resp = _client(orchestrator).post(
        "/api/categorize", json={"messages": [{"id": "a", "subject": "anything"}]}
    )

    assert list(resp.json()["clusters"]) == ["Work Communications"]


def test_archive_unexpected_error_returns_500() -> None:
    """Unexpected archive failures return a generic 500."""

    orchestrator = MagicMock()
    orchestrator.archive_cluster.side_effect = RuntimeError("boom")

    resp = _client(orchestrator).post("/api/clusters/c1/archive")

    assert resp.status_code == 500
    assert resp.json() == {"message": "Failed to archive cluster"}


def test_categorize_scores_each_message_once() -> None:
    """Groups and per-message results come from a single scoring pass."""

    client = _client(_real_orchestrator())

    with patch(
        "src.inbox_clusters.categorizer.best_match", wraps=categorizer_module.best_match
    ) as spy:
        resp = client.post(
            "/api/categorize",
            json={"messages": [{"id": "a", "subject": "order shipped"}, {"id": "b"}]},
        )

    assert resp.status_code == 200
    assert spy.call_count == 2
    assert [m["id"] for m in resp.json()["clusters"]["Shopping & Services"]] == ["a"]
    assert [m["id"] for m in resp.json()["clusters"]["Work Communications"]] == ["b"]
