"""Detect structured postal-code queries (Irish Eircodes) in free text."""

import re
from typing import NamedTuple

from plottr.core.geocoding.constants import STRUCTURED_CODE_PATTERN

_WHITESPACE = re.compile(r"\s+")


class QueryClassification(NamedTuple):
    """Outcome of classifying a raw query string."""

    is_structured_code: bool
    normalized_code: str


def normalize_code(text: str) -> str:
    """Remove all whitespace and upper-case, e.g. ``"e91 vf83"`` -> ``"E91VF83"``."""
    return _WHITESPACE.sub("", text).upper()


def classify_query(text: str) -> QueryClassification:
    """Classify a query as a structured postal code or free text.

    Args:
        text: Raw query string as typed by the user

    Returns:
        Classification with the normalized code; the code is only
        meaningful when ``is_structured_code`` is true.
    """
    code = normalize_code(text or "")
    return QueryClassification(bool(STRUCTURED_CODE_PATTERN.match(code)), code)


def format_code(code: str) -> str:
    """Render a normalized code with its conventional 3 + 4 grouping."""
    return f"{code[:3]} {code[3:]}" if len(code) == 7 else code
