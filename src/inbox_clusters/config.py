"""Application configuration and settings.

Objective:
    Provide a single source of truth for runtime configuration used across the
    application (Gmail access, template table location, sync behavior and
    logging).

Responsibilities:
    - Load environment-driven settings via :class:`Settings` (Pydantic
      BaseSettings).
    - Expose :func:`get_settings` for production code.

High-level call tree:
    - :func:`get_settings` -> returns :class:`Settings`

Operational notes:
    - ``Settings`` loads from ``.env`` by default via ``pydantic-settings``.
    - Most modules accept a ``Settings`` object explicitly to enable testing;
      the orchestrator falls back to :func:`get_settings` when not provided.
    - Every field has a default so the demo and offline CLI work without any
      environment at all.
"""

from typing import Optional
import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Gmail label removed from messages when a cluster is archived
INBOX_LABEL = "INBOX"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        gmail_access_token: OAuth access token for the Gmail API.
        gmail_api_base_url: Base URL of the Gmail REST API.
        templates_file: Optional JSON file overriding the built-in templates.
        sync_limit: Number of recent inbox messages fetched per sync.
        preview_count: Number of unarchived messages shown per cluster.
        log_level: Logging level.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Gmail Configuration
    gmail_access_token: Optional[str] = Field(
        default=None,
        description=(
            "OAuth access token with gmail.readonly and gmail.modify scopes. "
            "Required for sync and archive; not needed for demo mode."
        ),
    )
    gmail_api_base_url: str = Field(
        default="https://gmail.googleapis.com/gmail/v1",
        description="Gmail REST API base URL",
    )

    # Categorization Settings
    templates_file: Optional[str] = Field(
        default=None,
        description="Path to a JSON category template table. Uses built-in templates if omitted.",
    )

    # Processing Settings
    sync_limit: int = Field(
        default=200, ge=1, le=500, description="Recent inbox messages fetched per sync"
    )
    preview_count: int = Field(
        default=3, ge=0, description="Unarchived messages shown per cluster"
    )
    log_level: str = Field(default="INFO", description="Logging level")


def get_settings() -> Settings:
    """
    Load and return application settings.

    For tests, construct a :class:`Settings` instance directly instead.

    Returns:
        Settings: Application settings instance.

    Raises:
        ValidationError: If an environment variable has an invalid value.
    """
    return Settings()
