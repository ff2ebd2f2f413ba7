"""Gmail REST API client for mail operations.

Objective:
    Provide a thin wrapper around the Gmail endpoints used by this project.
    This module centralizes HTTP request construction, authentication headers,
    and normalization of responses into :class:`src.inbox_clusters.models.Message`.

Responsibilities:
    - Issue authenticated HTTP requests to Gmail (via :class:`requests`).
    - Fetch recent Inbox messages with their Subject/From/Date headers.
    - Archive messages by removing the ``INBOX`` label in bulk.

High-level call tree:
    - Public API:
        - :meth:`GmailClient.get_recent_emails` -> returns :class:`Message`
        - :meth:`GmailClient.archive_emails`
    - Internal helpers:
        - :meth:`GmailClient._make_request` (auth + error handling)
        - :meth:`GmailClient._get_message`
        - :func:`message_from_gmail` (payload -> :class:`Message`)

Gmail endpoints used:
    - ``GET /users/me/messages?q=in:inbox``
    - ``GET /users/me/messages/{id}?format=metadata``
    - ``POST /users/me/messages/batchModify``

Error handling:
    - HTTP errors are logged and raised from :meth:`_make_request`.
    - A 403 caused by the Gmail API being disabled for the OAuth project is
      raised as :class:`GmailApiNotEnabled` so entrypoints can tell the user
      how to fix it.
    - Failing to fetch one message is logged and the message is skipped.
"""

import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional, Sequence
from urllib.parse import quote

import requests

from .config import INBOX_LABEL, Settings
from .models import Message
from .sanitizer import clean_snippet

logger = logging.getLogger(__name__)

# Gmail rejects batchModify requests with more ids than this
BATCH_MODIFY_LIMIT = 1000

ENABLE_API_URL = "https://console.developers.google.com/apis/api/gmail.googleapis.com/overview"


class MailboxNotConnected(RuntimeError):
    """Raised when a mailbox operation is attempted without an access token."""


class GmailApiNotEnabled(RuntimeError):
    """Raised when Gmail reports the API is disabled for the OAuth project.

    Args:
        detail: Error text returned by Gmail.
    """

    def __init__(self, detail: str) -> None:
        super().__init__("Gmail API not enabled")
        self.detail = detail

    @property
    def enable_url(self) -> str:
        """Return the console page where the API can be enabled.

        Returns:
            str: Google Cloud console URL.
        """

        return ENABLE_API_URL


def _is_api_disabled_error(response: requests.Response) -> bool:
    text = response.text or ""
    return response.status_code == 403 and (
        "has not been used" in text or "disabled" in text
    )


def _parse_date(value: Optional[str], internal_date: Optional[str]) -> Optional[datetime]:
    if value:
        try:
            return parsedate_to_datetime(value)
        except (TypeError, ValueError):
            logger.debug("Unparseable Date header: %r", value)
    if internal_date:
        try:
            return datetime.fromtimestamp(int(internal_date) / 1000, tz=timezone.utc)
        except (TypeError, ValueError):
            return None
    return None


def message_from_gmail(data: dict[str, Any]) -> Message:
    """Convert a Gmail ``metadata`` message payload into a :class:`Message`.

    Missing headers become ``None`` so that they score nothing.

    Args:
        data: Decoded JSON of ``GET /users/me/messages/{id}``.

    Returns:
        Message: Normalized message.
    """
    headers = {
        str(h.get("name", "")).lower(): h.get("value")
        for h in (data.get("payload") or {}).get("headers", [])
    }

    subject = headers.get("subject")
    snippet = data.get("snippet")

    return Message(
        id=data["id"],
        subject=clean_snippet(subject) if subject else None,
        sender=headers.get("from") or None,
        snippet=clean_snippet(snippet) if snippet else None,
        received_date_time=_parse_date(headers.get("date"), data.get("internalDate")),
    )


class GmailClient:
    """
    Client for interacting with the Gmail REST API.

    The client is state-light: it reads the access token from settings on
    every request and builds URLs relative to ``settings.gmail_api_base_url``.

    Attributes:
        settings: Application settings.
    """

    def __init__(self, settings: Settings) -> None:
        """
        Initialize Gmail client.

        Args:
            settings: Application settings with the Gmail access token.
        """
        self.settings = settings

    def _auth_headers(self) -> dict[str, str]:
        if not self.settings.gmail_access_token:
            raise MailboxNotConnected("No Gmail access token configured")
        return {
            "Authorization": f"Bearer {self.settings.gmail_access_token}",
            "Accept": "application/json",
        }

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_data: Optional[dict] = None,
    ) -> dict:
        """Make an authenticated request to Gmail.

        This helper:
        - Adds auth headers (Bearer token).
        - Applies a default timeout.
        - Raises for non-2xx responses.
        - Returns decoded JSON or ``{}`` for empty responses.

        Args:
            method: HTTP method (GET, POST).
            endpoint: API endpoint path.
            params: Query parameters.
            json_data: JSON body data.

        Returns:
            dict: Response JSON data.

        Raises:
            MailboxNotConnected: If no access token is configured.
            GmailApiNotEnabled: If the Gmail API is disabled for the project.
            requests.HTTPError: If request fails.
        """
        url = f"{self.settings.gmail_api_base_url.rstrip('/')}{endpoint}"
        headers = self._auth_headers()

        response = requests.request(
            method=method,
            url=url,
            headers=headers,
            params=params,
            json=json_data,
            timeout=30,
        )

        if not response.ok:
            if _is_api_disabled_error(response):
                logger.error("Gmail API is not enabled for this project")
                raise GmailApiNotEnabled(response.text)
            logger.error("Gmail API error: %s - %s", response.status_code, response.text)
            response.raise_for_status()

        if response.status_code == 204 or not response.content:
            return {}

        return response.json()

    def _get_message(self, message_id: str) -> Message:
        safe_id = quote(message_id, safe="")
        data = self._make_request(
            "GET",
            f"/users/me/messages/{safe_id}",
            params={
                "format": "metadata",
                "metadataHeaders": ["Subject", "From", "Date"],
            },
        )
        return message_from_gmail(data)

    def get_recent_emails(self, limit: int = 200) -> list[Message]:
        """Fetch the most recent Inbox messages.

        Listing failures propagate; a failure on a single message is logged
        and that message is skipped.

        Args:
            limit: Maximum number of messages to fetch.

        Returns:
            list[Message]: Messages, newest first.
        """
        response = self._make_request(
            "GET",
            "/users/me/messages",
            params={"maxResults": limit, "q": "in:inbox"},
        )

        refs = response.get("messages") or []
        logger.debug("Listed %s inbox messages", len(refs))

        emails = []
        for ref in refs:
            message_id = ref.get("id")
            if not message_id:
                continue
            try:
                emails.append(self._get_message(message_id))
            except requests.RequestException as e:
                logger.warning("Failed to fetch message %s: %s", message_id, e)
                continue

        logger.info("Fetched %s emails from Gmail", len(emails))
        return emails

    def archive_emails(self, message_ids: Sequence[str]) -> int:
        """Archive messages by removing the ``INBOX`` label.

        Ids are sent in chunks of :data:`BATCH_MODIFY_LIMIT`.

        Args:
            message_ids: Gmail message IDs.

        Returns:
            int: Number of messages archived.

        Raises:
            requests.HTTPError: If a batch request fails.
        """
        ids = list(message_ids)
        for start in range(0, len(ids), BATCH_MODIFY_LIMIT):
            chunk = ids[start : start + BATCH_MODIFY_LIMIT]
            self._make_request(
                "POST",
                "/users/me/messages/batchModify",
                json_data={"ids": chunk, "removeLabelIds": [INBOX_LABEL]},
            )
            logger.debug("Archived %s messages", len(chunk))

        return len(ids)
