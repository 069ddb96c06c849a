"""Composition and format rules for model codes.

A composed model code is::

    model_type + classification_number? + actual_number + extension?

e.g. ``"SLU-" + "1" + "50" + "B" -> "SLU-150B"``. Everything in this module is
pure; callers supply the configured digit width and extension rules.
"""
import re
from typing import FrozenSet, Iterable, Optional, Tuple

_DIGITS = re.compile(r"[0-9]+")


def compose_model(
    model_type: str,
    classification_number: Optional[int],
    actual_number: str,
    extension: Optional[str] = None,
) -> str:
    """Build the full model code string."""
    number_prefix = "" if classification_number is None else str(classification_number)
    return f"{model_type}{number_prefix}{actual_number}{extension or ''}"


def pad_number(value: int, digits: int) -> str:
    """Zero-pad ``value`` to exactly ``digits`` characters."""
    return str(value).zfill(digits)


def code_range(digits: int) -> range:
    """All actual numbers representable with ``digits`` digits."""
    return range(0, 10 ** digits)


def extract_classification_number(code: Optional[str]) -> Optional[int]:
    """Parse the leading integer of a ``"<int>-<label>"`` classification code.

    Returns None when the leading segment is not a plain decimal number,
    e.g. ``"1-内层" -> 1``, ``"12" -> 12``, ``"A-外层" -> None``.
    """
    if not code:
        return None
    head = code.split("-", 1)[0].strip()
    if not _DIGITS.fullmatch(head):
        return None
    return int(head)


def is_valid_number_part(number_part: Optional[str], digits: int) -> bool:
    """True when ``number_part`` is exactly ``digits`` ASCII digits."""
    return bool(number_part) and len(number_part) == digits and bool(_DIGITS.fullmatch(number_part))


def parse_excluded_chars(raw: Optional[str]) -> FrozenSet[str]:
    """Parse the comma-separated excluded character setting (``"I,O"``)."""
    if not raw:
        return frozenset()
    chars = set()
    for token in raw.split(","):
        token = token.strip()
        chars.update(token)
    return frozenset(chars)


def validate_extension(
    extension: Optional[str],
    max_length: int,
    excluded_chars: Iterable[str],
) -> Tuple[bool, Optional[str]]:
    """
    Validate an extension suffix against the configured rules.

    Args:
        extension: Candidate suffix; empty or None is always valid
        max_length: Maximum number of characters allowed
        excluded_chars: Characters that may not appear in the suffix

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not extension:
        return True, None

    if len(extension) > max_length:
        return False, f"Extension must not exceed {max_length} characters"

    excluded = set(excluded_chars)
    found = sorted({c for c in extension if c in excluded})
    if found:
        return False, f"Extension must not contain: {', '.join(found)}"

    return True, None


def strip_extension(model: str, extension: Optional[str]) -> str:
    """Return the base code of ``model`` with its current extension removed."""
    if extension and model.endswith(extension):
        return model[: -len(extension)]
    return model
