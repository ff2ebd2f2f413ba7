"""Category template table and loader.

Objective:
    Supply the ordered list of :class:`src.inbox_clusters.models.ClusterTemplate`
    objects the categorizer works with.

Responsibilities:
    - Define the built-in five-template table (:data:`DEFAULT_TEMPLATES`).
    - Load an alternative table from a JSON file (:func:`load_templates`).
    - Reject tables the categorizer cannot use (empty, duplicate names).

High-level call tree:
    - :func:`get_templates`
        - :func:`load_templates` (when ``Settings.templates_file`` is set)
            - :func:`validate_templates`
        - :data:`DEFAULT_TEMPLATES` otherwise

Operational notes:
    - The first template is the fallback for messages matching nothing, so
      order in the JSON file matters.
    - Accepted JSON shapes: a list of template objects, or an object with a
      ``templates`` list. Both ``sender_patterns`` and ``senderPatterns`` keys
      are accepted.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Union

from pydantic import ValidationError

from .categorizer import InvalidConfiguration, ensure_templates
from .config import Settings
from .models import ClusterTemplate

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES: tuple[ClusterTemplate, ...] = (
    ClusterTemplate(
        name="Work Communications",
        description=(
            "Project updates, meeting invites, and team communications from "
            "colleagues and stakeholders."
        ),
        color="blue-500",
        keywords=(
            "meeting", "project", "deadline", "standup", "review",
            "team", "work", "office", "schedule", "conference",
        ),
        sender_patterns=("@company", ".com", "noreply", "team", "hr", "admin"),
    ),
    ClusterTemplate(
        name="Newsletters & Updates",
        description=(
            "Industry newsletters, product updates, and promotional content "
            "from various subscriptions."
        ),
        color="green-500",
        keywords=(
            "newsletter", "update", "news", "announcement", "feature",
            "release", "blog", "article", "digest",
        ),
        sender_patterns=("newsletter", "news", "updates", "marketing", "blog"),
    ),
    ClusterTemplate(
        name="Financial & Bills",
        description=(
            "Bank statements, credit card bills, invoices, and financial "
            "notifications requiring attention."
        ),
        color="orange-500",
        keywords=(
            "payment", "invoice", "bill", "statement", "due",
            "account", "transaction", "balance", "charge", "receipt",
        ),
        sender_patterns=(
            "bank", "card", "payment", "billing", "invoice",
            "finance", "stripe", "paypal",
        ),
    ),
    ClusterTemplate(
        name="Social & Personal",
        description=(
            "Personal messages, social media notifications, and "
            "communications from friends and family."
        ),
        color="purple-500",
        keywords=(
            "like", "comment", "follow", "connection", "friend",
            "family", "personal", "social",
        ),
        sender_patterns=(
            "facebook", "twitter", "linkedin", "instagram", "social", "personal",
        ),
    ),
    ClusterTemplate(
        name="Shopping & Services",
        description=(
            "Order confirmations, shipping notifications, and service-related "
            "communications from various providers."
        ),
        color="pink-500",
        keywords=(
            "order", "shipping", "delivery", "shipped", "confirmed",
            "receipt", "purchase", "tracking",
        ),
        sender_patterns=(
            "amazon", "ebay", "shop", "store", "order",
            "shipping", "delivery", "uber", "lyft",
        ),
    ),
)


def validate_templates(templates: Iterable[ClusterTemplate]) -> tuple[ClusterTemplate, ...]:
    """Check that a template table is usable for display and clustering.

    On top of the categorizer's own checks, every template needs a
    non-blank name since the name becomes the cluster label.

    Args:
        templates: Ordered templates.

    Returns:
        tuple[ClusterTemplate, ...]: Templates as an immutable tuple.

    Raises:
        InvalidConfiguration: If the table is empty, names repeat, or a name
            is blank.
    """
    table = ensure_templates(templates)
    for position, template in enumerate(table):
        if not template.name.strip():
            raise InvalidConfiguration(f"Category template #{position + 1} has a blank name")
    return table


def load_templates(path: Union[str, Path]) -> tuple[ClusterTemplate, ...]:
    """Load a template table from a JSON file.

    Args:
        path: Path to the JSON file.

    Returns:
        tuple[ClusterTemplate, ...]: Validated, ordered templates.

    Raises:
        InvalidConfiguration: If the file cannot be read, parsed or validated.
    """
    template_path = Path(path)
    try:
        raw = json.loads(template_path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise InvalidConfiguration(f"Template file not found: {template_path}") from e
    except json.JSONDecodeError as e:
        raise InvalidConfiguration(f"Template file is not valid JSON: {template_path}: {e}") from e

    if isinstance(raw, dict):
        raw = raw.get("templates", [])
    if not isinstance(raw, list):
        raise InvalidConfiguration(
            f"Template file must contain a list of templates: {template_path}"
        )

    try:
        templates = [ClusterTemplate.model_validate(item) for item in raw]
    except ValidationError as e:
        raise InvalidConfiguration(f"Invalid template in {template_path}: {e}") from e

    table = validate_templates(templates)
    logger.info("Loaded %s category templates from %s", len(table), template_path)
    return table


def get_templates(settings: Optional[Settings] = None) -> tuple[ClusterTemplate, ...]:
    """Return the template table for this deployment.

    Args:
        settings: Application settings; only ``templates_file`` is read.

    Returns:
        tuple[ClusterTemplate, ...]: Configured templates, or the built-in
        table when no file is configured.
    """
    if settings is not None and settings.templates_file:
        return load_templates(settings.templates_file)
    return DEFAULT_TEMPLATES
