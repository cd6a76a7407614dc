"""Score normalization for model-authored score strings.

Models report scores in many shapes ("420", "0.84", "420/500", "85%",
"about 1/4"). The functions here map them onto canonical ranges. They
never raise: when no confident value can be read they return None,
which is distinct from a genuine score of zero.
"""

import re
from typing import Any, Optional

__all__ = [
    "STA_MAX",
    "normalize_sta_score",
    "normalize_suspicion_percent",
    "format_sta_score",
    "format_suspicion",
]

STA_MAX: int = 500
PERCENT_MAX: float = 100.0

_NUMBER = r"(\d+(?:\.\d+)?)"
_FRACTION_RE = re.compile(_NUMBER + r"\s*/\s*" + _NUMBER)
_NUMBER_RE = re.compile(_NUMBER)
_DENOMINATOR_RE = re.compile(r"/\s*" + _NUMBER)
_NON_NUMERIC_RE = re.compile(r"[^0-9.]")
_WHITESPACE_RE = re.compile(r"\s+")


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def _as_text(raw: Any) -> str:
    if raw is None or isinstance(raw, bool):
        return ""
    return str(raw).strip()


def normalize_sta_score(raw: Any) -> Optional[int]:
    """Normalize an STA score onto the 0-500 range.

    A ``numerator/denominator`` fraction is scaled to 500. Otherwise the
    first number is used: values up to 1 are a fraction of 1, larger
    values are already on the 500 scale and are clamped.

    Args:
        raw: Score as reported by the model

    Returns:
        Integer in [0, 500], or None when no value can be read
    """
    text: str = _as_text(raw)
    if not text:
        return None

    fraction = _FRACTION_RE.search(text)
    if fraction:
        numerator = float(fraction.group(1))
        denominator = float(fraction.group(2))
        if denominator <= 0:
            return None
        return round(_clamp(numerator / denominator * STA_MAX, 0, STA_MAX))

    number = _NUMBER_RE.search(text)
    if not number:
        return None

    value = float(number.group(1))
    if value <= 1:
        value *= STA_MAX
    return round(_clamp(value, 0, STA_MAX))


def normalize_suspicion_percent(raw: Any) -> Optional[float]:
    """Normalize an AI-suspicion score onto the 0-100 range.

    Non-numeric characters are dropped and the first parseable number is
    used. When the raw text holds a ``/`` and that number is at most 1,
    it is read against the denominator after the slash. A bare decimal
    below 2 with neither ``%`` nor ``/`` (``0.85``, ``1.2``) is read as a
    ratio of 1. Anything else is clamped into [0, 100].

    Args:
        raw: Suspicion score as reported by the model

    Returns:
        Percentage in [0, 100], or None when no value can be read
    """
    text: str = _as_text(raw)
    if not text:
        return None

    cleaned: str = _WHITESPACE_RE.sub(" ", _NON_NUMERIC_RE.sub(" ", text)).strip()
    for token in cleaned.split(" "):
        try:
            value = float(token)
        except ValueError:
            continue

        if "/" in text:
            if value <= 1:
                denominator = _DENOMINATOR_RE.search(text)
                if denominator and float(denominator.group(1)) > 0:
                    ratio = value / float(denominator.group(1))
                    return _clamp(ratio * PERCENT_MAX, 0, PERCENT_MAX)
        elif "%" not in text and "." in token and value < 2:
            return _clamp(value * PERCENT_MAX, 0, PERCENT_MAX)

        return _clamp(value, 0, PERCENT_MAX)

    return None


def format_sta_score(raw: Any) -> Optional[str]:
    """Render an STA score for display, e.g. ``"420 / 500"``.

    Falls back to the raw text when it cannot be normalized.
    """
    value = normalize_sta_score(raw)
    if value is not None:
        return f"{value} / {STA_MAX}"
    text = _as_text(raw)
    return text or None


def format_suspicion(raw: Any) -> Optional[str]:
    """Render a suspicion score for display, e.g. ``"85%"``."""
    value = normalize_suspicion_percent(raw)
    if value is not None:
        return f"{value:g}%"
    text = _as_text(raw)
    return text or None
