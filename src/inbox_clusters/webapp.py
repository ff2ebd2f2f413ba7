"""FastAPI JSON API for Inbox Clusters.

Objective:
    Expose the clustering workflow implemented in
    :mod:`src.inbox_clusters.orchestrator` over HTTP. This module only parses
    requests, maps domain errors to status codes, and serializes results.

High-level call tree:
    - :func:`create_app`:
        - defines routes:
            - ``GET /health`` -> :func:`health`
            - ``GET /api/templates`` -> :func:`list_templates`
            - ``POST /api/categorize`` -> :func:`categorize`
            - ``POST /api/emails/sync/{user_id}`` -> :func:`sync_emails`
            - ``POST /api/emails/demo/{user_id}`` -> :func:`load_demo`
            - ``GET /api/clusters/{user_id}`` -> :func:`list_clusters`
            - ``POST /api/clusters/{cluster_id}/archive`` -> :func:`archive_cluster`
            - ``GET /api/stats/{user_id}`` -> :func:`stats`
    - :func:`get_orchestrator`:
        - returns the process-wide
          :class:`src.inbox_clusters.orchestrator.ClusterOrchestrator`.

Data flow:
    - HTTP request -> parse inputs -> call orchestrator -> JSON response.

Operational notes:
    - The store is in memory, so one orchestrator instance is shared by all
      requests. For tests, :func:`get_orchestrator` is overridden via
      ``app.dependency_overrides``.
    - Run with ``uvicorn src.inbox_clusters.webapp:app``.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .categorizer import InvalidConfiguration
from .email_client import GmailApiNotEnabled, MailboxNotConnected
from .models import Message
from .orchestrator import ClusterNotFound, ClusterOrchestrator

logger = logging.getLogger(__name__)


class CategorizeRequest(BaseModel):
    """Body of ``POST /api/categorize``."""

    messages: list[Message] = Field(default_factory=list)


@lru_cache(maxsize=1)
def get_orchestrator() -> ClusterOrchestrator:
    """Return the shared :class:`ClusterOrchestrator`.

    This function exists primarily to support FastAPI dependency injection and
    testing. Tests can override this dependency with a stub object.

    Returns:
        ClusterOrchestrator: Orchestrator built from environment settings.
    """

    return ClusterOrchestrator()


def _invalid_configuration(e: InvalidConfiguration) -> JSONResponse:
    logger.error("Invalid category template configuration: %s", e)
    return JSONResponse(
        {"error": "invalid_configuration", "message": str(e)},
        status_code=500,
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: FastAPI app.
    """

    app = FastAPI(title="Inbox Clusters")

    @app.exception_handler(InvalidConfiguration)
    def handle_invalid_configuration(_request: Any, e: InvalidConfiguration) -> JSONResponse:
        return _invalid_configuration(e)

    @app.get("/health")
    def health() -> dict[str, str]:
        """Health check endpoint.

        This is intentionally simple and should not perform external calls.

        Returns:
            dict[str, str]: Health payload.
        """

        return {"status": "ok"}

    @app.get("/api/templates")
    def list_templates(
        orchestrator: ClusterOrchestrator = Depends(get_orchestrator),
    ) -> list[dict[str, Any]]:
        """Return the configured category templates, fallback first."""

        return [
            t.model_dump(by_alias=True) for t in orchestrator.categorizer.templates
        ]

    @app.post("/api/categorize")
    def categorize(
        payload: CategorizeRequest,
        orchestrator: ClusterOrchestrator = Depends(get_orchestrator),
    ) -> dict[str, Any]:
        """Categorize messages without storing them.

        Expected request body:
            ``{"messages": [{"subject": "...", "sender": "...", "snippet": "..."}]}``

        Args:
            payload: Messages to categorize.
            orchestrator: Orchestrator dependency.

        Returns:
            dict[str, Any]: Per-template groups and per-message results.
        """

        categorizer = orchestrator.categorizer
        results = [categorizer.categorize(m) for m in payload.messages]

        clusters: dict[str, list[dict[str, Any]]] = {
            t.name: [] for t in categorizer.templates
        }
        for message, result in zip(payload.messages, results):
            clusters[result.category].append(message.model_dump(mode="json"))

        return {
            "clusters": clusters,
            "results": [r.model_dump() for r in results],
        }

    @app.post("/api/emails/sync/{user_id}")
    def sync_emails(
        user_id: str,
        orchestrator: ClusterOrchestrator = Depends(get_orchestrator),
    ) -> Any:
        """Fetch recent Inbox messages and rebuild the user's clusters.

        Args:
            user_id: User to sync.
            orchestrator: Orchestrator dependency.

        Returns:
            Any: Sync result, or a structured error response.
        """

        try:
            result = orchestrator.sync(user_id)
        except MailboxNotConnected:
            return JSONResponse({"message": "User not authenticated"}, status_code=401)
        except GmailApiNotEnabled as e:
            return JSONResponse(
                {
                    "message": "Gmail API not enabled",
                    "details": (
                        "Please enable the Gmail API in Google Cloud Console and try again."
                    ),
                    "action": "enable_gmail_api",
                    "enableUrl": e.enable_url,
                },
                status_code=403,
            )
        except Exception:
            logger.exception("Error syncing emails for user %s", user_id)
            return JSONResponse({"message": "Failed to sync emails"}, status_code=500)

        return result.model_dump(mode="json")

    @app.post("/api/emails/demo/{user_id}")
    def load_demo(
        user_id: str,
        orchestrator: ClusterOrchestrator = Depends(get_orchestrator),
    ) -> dict[str, Any]:
        """Load the sample mailbox for a user and cluster it."""

        result = orchestrator.load_demo(user_id)
        return {
            "message": "Demo data loaded successfully",
            **result.model_dump(mode="json"),
        }

    @app.get("/api/clusters/{user_id}")
    def list_clusters(
        user_id: str,
        orchestrator: ClusterOrchestrator = Depends(get_orchestrator),
    ) -> list[dict[str, Any]]:
        """List a user's clusters with a preview of unarchived messages."""

        return [c.model_dump(mode="json") for c in orchestrator.list_clusters(user_id)]

    @app.post("/api/clusters/{cluster_id}/archive")
    def archive_cluster(
        cluster_id: str,
        orchestrator: ClusterOrchestrator = Depends(get_orchestrator),
    ) -> Any:
        """Archive every unarchived message of a cluster.

        Args:
            cluster_id: Cluster to archive.
            orchestrator: Orchestrator dependency.

        Returns:
            Any: Archive result, or a structured error response.
        """

        try:
            result = orchestrator.archive_cluster(cluster_id)
        except ClusterNotFound:
            return JSONResponse({"message": "Cluster not found"}, status_code=404)
        except MailboxNotConnected:
            return JSONResponse({"message": "User not authenticated"}, status_code=401)
        except Exception:
            logger.exception("Error archiving cluster %s", cluster_id)
            return JSONResponse({"message": "Failed to archive cluster"}, status_code=500)

        return {
            "message": "Cluster archived successfully",
            **result.model_dump(mode="json"),
        }

    @app.get("/api/stats/{user_id}")
    def stats(
        user_id: str,
        orchestrator: ClusterOrchestrator = Depends(get_orchestrator),
    ) -> dict[str, Any]:
        """Return unarchived message and cluster counts for a user."""

        return orchestrator.stats(user_id).model_dump(mode="json")

    return app


app = create_app()
