"""Rule-based email categorization.

Objective:
    Partition a batch of :class:`src.inbox_clusters.models.Message` objects
    across an ordered set of :class:`src.inbox_clusters.models.ClusterTemplate`
    objects so that every message lands in exactly one template.

Core strategy:
    1. Score every message against every template independently
       (:func:`score_match`): +2 per keyword found anywhere in the message
       text, +3 per sender pattern found in the sender.
    2. Pick the best template (:func:`best_match`). Only a strictly greater
       score replaces the current best, so ties go to the earliest template.
    3. When nothing scores above zero, fall back to the first template.

High-level call tree:
    - :class:`EmailCategorizer`
        - :meth:`EmailCategorizer.categorize`
            - :func:`best_match`
                - :func:`score_match`
        - :meth:`EmailCategorizer.categorize_batch`
            - :func:`classify`

Operational notes:
    - Everything here is pure and synchronous. The template table is passed
      in explicitly; there is no module-level state.
    - Cost is O(messages x templates x (keywords + patterns)).
"""

import logging
from typing import Iterable, Sequence

from .models import CategorizationResult, ClusterTemplate, Message

logger = logging.getLogger(__name__)

KEYWORD_WEIGHT = 2
SENDER_PATTERN_WEIGHT = 3


class InvalidConfiguration(ValueError):
    """Raised when the template table cannot be used for categorization.

    This is a configuration defect in the caller and must be fixed before
    retrying.
    """


def ensure_templates(templates: Iterable[ClusterTemplate]) -> tuple[ClusterTemplate, ...]:
    """Validate a template table and freeze it into a tuple.

    Args:
        templates: Ordered templates; the first one is the fallback.

    Returns:
        tuple[ClusterTemplate, ...]: The same templates, in order.

    Raises:
        InvalidConfiguration: If the table is empty or names repeat.
    """
    table = tuple(templates)
    if not table:
        raise InvalidConfiguration("At least one category template is required")

    seen: set[str] = set()
    for template in table:
        if template.name in seen:
            raise InvalidConfiguration(f"Duplicate category template name: {template.name!r}")
        seen.add(template.name)
    return table


def score_match(message: Message, template: ClusterTemplate) -> int:
    """
    Score how well one message matches one template.

    Keywords are tested for presence (not count) against
    ``"{subject} {snippet} {sender}"``; sender patterns against the sender
    alone. Matching is case-insensitive.

    Args:
        message: Message to score.
        template: Template to score against.

    Returns:
        int: Non-negative score.
    """
    sender = (message.sender or "").lower()
    text = f"{message.subject or ''} {message.snippet or ''} {message.sender or ''}".lower()

    score = 0
    for keyword in template.keywords:
        if keyword.lower() in text:
            score += KEYWORD_WEIGHT

    for pattern in template.sender_patterns:
        if pattern.lower() in sender:
            score += SENDER_PATTERN_WEIGHT

    return score


def best_match(
    message: Message, templates: Sequence[ClusterTemplate]
) -> tuple[ClusterTemplate, int]:
    """
    Select the template a message belongs to.

    Args:
        message: Message to place.
        templates: Ordered templates; the first one is the fallback.

    Returns:
        tuple[ClusterTemplate, int]: Winning template and its score. The score
        is 0 when the fallback template was used.

    Raises:
        InvalidConfiguration: If ``templates`` is empty.
    """
    if not templates:
        raise InvalidConfiguration("At least one category template is required")

    best = templates[0]
    best_score = 0
    for template in templates:
        score = score_match(message, template)
        # Strictly greater: an equal score never displaces an earlier template.
        if score > best_score:
            best = template
            best_score = score

    if best_score == 0:
        return templates[0], 0
    return best, best_score


def classify(
    messages: Iterable[Message], templates: Iterable[ClusterTemplate]
) -> dict[str, list[Message]]:
    """
    Partition messages across templates.

    Args:
        messages: Messages to place, processed in order.
        templates: Ordered templates; the first one is the fallback.

    Returns:
        dict[str, list[Message]]: Template name -> assigned messages. Every
        template name is present (in template order), possibly with an empty
        list. Each list preserves input order.

    Raises:
        InvalidConfiguration: If the template table is empty or names repeat.
    """
    table = ensure_templates(templates)
    assignment: dict[str, list[Message]] = {template.name: [] for template in table}

    for message in messages:
        template, _ = best_match(message, table)
        assignment[template.name].append(message)

    return assignment


class EmailCategorizer:
    """
    Categorizer bound to one template table.

    The table is injected once (see
    :func:`src.inbox_clusters.templates.get_templates`) and reused for every
    call; the instance carries no other state.

    Attributes:
        templates: Validated, ordered template table.
    """

    def __init__(self, templates: Iterable[ClusterTemplate]) -> None:
        """
        Initialize categorizer with a template table.

        Args:
            templates: Ordered templates; the first one is the fallback.

        Raises:
            InvalidConfiguration: If the table is empty or names repeat.
        """
        self.templates = ensure_templates(templates)

    @property
    def default_template(self) -> ClusterTemplate:
        """Template used when a message matches nothing."""
        return self.templates[0]

    def get_template(self, name: str) -> ClusterTemplate:
        """Look up a template by name.

        Raises:
            KeyError: If no template carries ``name``.
        """
        for template in self.templates:
            if template.name == name:
                return template
        raise KeyError(name)

    def categorize(self, message: Message) -> CategorizationResult:
        """
        Categorize a single message.

        Args:
            message: Message to categorize.

        Returns:
            CategorizationResult: Winning template name and score.
        """
        template, score = best_match(message, self.templates)
        if score == 0:
            logger.debug(
                "No template matched message %s; using default %r",
                message.id,
                template.name,
            )

        return CategorizationResult(
            message_id=message.id,
            subject=message.subject,
            sender=message.sender,
            category=template.name,
            score=score,
            fallback=score == 0,
        )

    def categorize_batch(self, messages: Sequence[Message]) -> dict[str, list[Message]]:
        """
        Partition a batch of messages across the template table.

        Args:
            messages: Messages to categorize.

        Returns:
            dict[str, list[Message]]: Template name -> assigned messages.
        """
        assignment = classify(messages, self.templates)
        logger.info(
            "Categorized %s messages into %s non-empty clusters",
            len(messages),
            sum(1 for items in assignment.values() if items),
        )
        return assignment
