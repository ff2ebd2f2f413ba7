"""Command-line interface (CLI) entrypoint.

Objective:
    Provide a human-friendly CLI around
    :class:`src.inbox_clusters.categorizer.EmailCategorizer`.

Responsibilities:
    - Parse arguments (input source, template file, limit, verbosity).
    - Configure logging.
    - Categorize messages from a JSON file, the demo mailbox, or Gmail, and
      print a readable summary grouped by cluster.

High-level call tree:
    - :func:`main`
        - :func:`setup_logging`
        - :func:`load_messages` (``--input``)
        - :class:`EmailCategorizer` (messages from file, demo or :class:`GmailClient`)
        - :func:`print_results` or :func:`print_templates`

Operational notes:
    - ``--input`` and ``--demo`` need no network access or credentials.
    - ``--sync`` requires ``GMAIL_ACCESS_TOKEN`` in the environment or ``.env``.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .categorizer import EmailCategorizer
from .config import get_settings
from .email_client import GmailClient
from .models import CategorizationResult, ClusterTemplate, Message
from .orchestrator import demo_messages
from .sanitizer import extract_sender_address
from .templates import get_templates


def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


def load_messages(path: Path) -> list[Message]:
    """Read messages from a JSON file.

    The file holds either a list of message objects or ``{"messages": [...]}``.

    Args:
        path: JSON file path.

    Returns:
        list[Message]: Parsed messages.

    Raises:
        ValueError: If the file does not contain a list of messages.
    """
    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("messages", [])
    if not isinstance(raw, list):
        raise ValueError(f"Expected a list of messages in {path}")
    return [Message.model_validate(item) for item in raw]


def print_templates(templates: Sequence[ClusterTemplate]) -> None:
    """Print the template table, marking the fallback."""
    for index, template in enumerate(templates):
        marker = " (default)" if index == 0 else ""
        print(f"\n{template.name}{marker} [{template.color}]")
        print(f"  {template.description}")
        print(f"  keywords: {', '.join(template.keywords)}")
        print(f"  senders:  {', '.join(template.sender_patterns)}")


def print_results(
    results: list[CategorizationResult],
    templates: Sequence[ClusterTemplate],
    verbose: bool = False,
) -> None:
    """
    Print categorization results to console.

    Output format:
        - Group results by cluster, in template order; empty clusters are
          skipped.
        - Show sender and subject per message; with ``verbose=True`` also the
          score (``default`` for fallback assignments).

    Args:
        results: Per-message categorization results.
        templates: Template table used, for ordering.
        verbose: If True, print scores.
    """
    if not results:
        print("\nNo emails categorized.")
        return

    print(f"\n{'='*60}")
    print(f"CLUSTERS: {len(results)} emails")
    print(f"{'='*60}\n")

    by_category: dict[str, list[CategorizationResult]] = {t.name: [] for t in templates}
    for result in results:
        by_category.setdefault(result.category, []).append(result)

    for category, items in by_category.items():
        if not items:
            continue

        print(f"\n📁 {category} ({len(items)} emails)")
        print("-" * 40)

        for item in items:
            subject = item.subject or "(no subject)"
            subject = subject[:50] + "..." if len(subject) > 50 else subject
            address = extract_sender_address(item.sender) or item.sender
            sender = f"{address} " if address else ""

            score = ""
            if verbose:
                score = " [default]" if item.fallback else f" [score {item.score}]"

            print(f"  {sender}{subject}{score}")

    fallbacks = sum(1 for r in results if r.fallback)
    non_empty = sum(1 for items in by_category.values() if items)

    print(f"\n{'='*60}")
    print(f"SUMMARY: {non_empty} clusters, {fallbacks} emails matched no template")
    print(f"{'='*60}\n")


def main(args: Optional[list[str]] = None) -> int:
    """
    Main CLI entry point.

    Pass an explicit ``args`` list instead of relying on ``sys.argv`` to use
    this from tests.

    Args:
        args: Command line arguments (uses sys.argv if None).

    Returns:
        int: Exit code (0 for success, 1 for error).
    """
    parser = argparse.ArgumentParser(
        description="Inbox Clusters - group your inbox into categories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --demo                         Cluster the sample mailbox
  %(prog)s --input messages.json          Cluster messages from a JSON file
  %(prog)s --sync --limit 50              Cluster the 50 newest Inbox emails
  %(prog)s --list-templates               Show the category templates
        """,
    )

    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--input",
        "-i",
        type=Path,
        default=None,
        help="JSON file with messages (subject, sender, snippet)",
    )
    source.add_argument(
        "--demo",
        action="store_true",
        help="Cluster the built-in sample mailbox",
    )
    source.add_argument(
        "--sync",
        action="store_true",
        help="Fetch recent Inbox emails from Gmail",
    )
    source.add_argument(
        "--list-templates",
        action="store_true",
        help="Print the category templates and exit",
    )

    parser.add_argument(
        "--limit",
        "-l",
        type=int,
        default=None,
        help="Maximum number of emails to fetch with --sync",
    )

    parser.add_argument(
        "--templates",
        "-t",
        type=str,
        default=None,
        help="JSON template file (overrides TEMPLATES_FILE)",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (defaults to LOG_LEVEL)",
    )

    parsed_args = parser.parse_args(args)

    logger = logging.getLogger(__name__)

    try:
        settings = get_settings()
        if parsed_args.templates:
            settings.templates_file = parsed_args.templates

        log_level = "DEBUG" if parsed_args.verbose else (parsed_args.log_level or settings.log_level)
        setup_logging(log_level)

        templates = get_templates(settings)

        if parsed_args.list_templates:
            print_templates(templates)
            return 0

        if parsed_args.input:
            messages = load_messages(parsed_args.input)
        elif parsed_args.sync:
            messages = GmailClient(settings).get_recent_emails(
                parsed_args.limit or settings.sync_limit
            )
        else:
            messages = demo_messages()

        categorizer = EmailCategorizer(templates)
        results = [categorizer.categorize(message) for message in messages]

        print_results(results, templates, verbose=parsed_args.verbose)
        return 0

    except Exception as e:
        # No-op when logging was already configured above
        setup_logging(parsed_args.log_level or "INFO")
        logger.exception("Fatal error")
        print(f"\n❌ Error: {e}\n")
        return 1


if __name__ == "__main__":
    sys.exit(main())
