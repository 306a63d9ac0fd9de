"""Text normalization helpers for slugs and SKUs."""

import random
import re
import unicodedata
import uuid
from typing import Optional

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_DASHES = re.compile(r"-+")


def slugify(value: str) -> str:
    """Build a URL-friendly slug from a display name.

    Accents are folded to ASCII first ("Épices" -> "epices"), anything that
    is not a letter, digit, space or dash is dropped, and runs of whitespace
    or dashes collapse to a single dash.

    Args:
        value: Human readable name

    Returns:
        Lowercase slug, possibly empty if nothing survives normalization
    """
    folded = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    slug = _NON_SLUG_CHARS.sub("", folded.lower())
    slug = _WHITESPACE.sub("-", slug.strip())
    slug = _DASHES.sub("-", slug)
    return slug.strip("-")


def generate_sku(category_id: Optional[uuid.UUID]) -> str:
    """Generate a SKU of the form ``<PREFIX>-<NNNN>``.

    The prefix is the last four hex digits of the category id, or ``PROD``
    for uncategorized products.
    """
    prefix = category_id.hex[-4:].upper() if category_id else "PROD"
    return f"{prefix}-{random.randint(0, 9999):04d}"


def normalize_sku(value: str) -> str:
    return value.strip().upper()
