"""Text normalization and sender helpers.

Objective:
    Turn raw provider fields into the plain text the categorizer scores.
    Gmail returns snippets with HTML entities (``&#39;``, ``&amp;``) and
    occasionally stray markup; left as-is these distort substring matching.

Responsibilities:
    - Decode entities and strip tags from snippets and subjects.
    - Normalize and compress whitespace.
    - Provide small utilities for sender address inspection.

High-level call tree:
    - :func:`clean_snippet`
        - :func:`extract_text_from_html`
        - :func:`clean_text`
    - :func:`extract_sender_address`
"""

import re
from email.utils import parseaddr
from typing import Optional

from bs4 import BeautifulSoup


def extract_text_from_html(html_content: str) -> str:
    """Extract visible text from an HTML fragment.

    Entities are decoded by the parser; script and style elements are
    dropped.

    Args:
        html_content: Raw HTML (or entity-encoded text).

    Returns:
        str: Extracted plain text.
    """
    if not html_content:
        return ""

    soup = BeautifulSoup(html_content, "html.parser")
    for element in soup(["script", "style", "head", "meta", "link"]):
        element.decompose()

    return soup.get_text(separator=" ")


def clean_text(text: str) -> str:
    """Compress whitespace and trim.

    Args:
        text: Raw text.

    Returns:
        str: Text on a single line with single spaces.
    """
    if not text:
        return ""

    text = text.replace("\u200c", "").replace("\xa0", " ")
    return re.sub(r"\s+", " ", text).strip()


def clean_snippet(text: Optional[str]) -> str:
    """Normalize a provider snippet or subject for scoring.

    Args:
        text: Raw snippet; may be ``None``.

    Returns:
        str: Plain text, ``""`` for missing input.
    """
    if not text:
        return ""
    return clean_text(extract_text_from_html(text))


def extract_sender_address(sender: Optional[str]) -> str:
    """Extract the bare address from a ``From`` header value.

    ``"Bank <statements@bank.com>"`` becomes ``"statements@bank.com"``.

    Args:
        sender: Header value or bare address.

    Returns:
        str: Lower-cased address, or ``""`` when none can be found.
    """
    if not sender:
        return ""

    _, address = parseaddr(sender)
    return address.strip().lower()

