"""Result parser for model review output.

This module turns the raw text returned by the model into an
AnalysisResult. Model non-compliance (code fences, prose around the
JSON, plain text answers) is expected: the parser strips what it can and
raises ResultUnparseableError when no JSON object can be recovered, so the
caller can fall back to showing the raw text.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..exceptions import ResultUnparseableError
from .score_normalizer import normalize_sta_score, normalize_suspicion_percent

__all__ = ["AnalysisResult", "strip_code_fence", "parse_analysis_result", "parse_authors"]

# Payload key -> attribute. camelCase keys are what the prompt asks for.
_PAYLOAD_KEYS: Dict[str, str] = {
    "title": "title",
    "author": "author",
    "authors": "author",
    "score": "score",
    "scoreUsage": "score_usage",
    "score_usage": "score_usage",
    "aiScore": "ai_score",
    "ai_score": "ai_score",
    "aiReason": "ai_reason",
    "ai_reason": "ai_reason",
    "summary": "summary",
}

_OUTPUT_KEYS: Dict[str, str] = {
    "title": "title",
    "author": "author",
    "score": "score",
    "score_usage": "scoreUsage",
    "ai_score": "aiScore",
    "ai_reason": "aiReason",
    "summary": "summary",
}

_LEADING_FENCE_RE = re.compile(r"^```[\w-]*[ \t]*\n?")
_TRAILING_FENCE_RE = re.compile(r"\n?```\s*$")
_OBJECT_RE = re.compile(r"\{.*\}", re.S)

_AUTHOR_SEPARATOR_RE = re.compile(r"\band\b|[;&\n]", re.I)
_INITIALS_RE = re.compile(r"^(?:(?:[A-Z][a-z]?\.\s*-?\s*)+|[A-Z]{2,3}|Jr\.?|Sr\.?)$")


def _text_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


@dataclass(frozen=True)
class AnalysisResult:
    """Structured review of one paper.

    Raw fields hold what the model returned; missing fields stay None.
    Canonical values are derived on access and are None whenever the raw
    text does not yield a confident number.

    Attributes:
        title: Paper title
        author: Author field, possibly a serialized list or delimited text
        score: STA score as written by the model
        score_usage: Scoring criteria text
        ai_score: AI-authorship suspicion as written by the model
        ai_reason: Rationale for the suspicion score
        summary: Free-text summary
        extra: Unrecognized keys, preserved verbatim
    """
    title: Optional[str] = None
    author: Optional[str] = None
    score: Optional[str] = None
    score_usage: Optional[str] = None
    ai_score: Optional[str] = None
    ai_reason: Optional[str] = None
    summary: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AnalysisResult":
        """Build a result from a decoded JSON object."""
        values: Dict[str, Optional[str]] = {}
        extra: Dict[str, Any] = {}
        for key, value in payload.items():
            attribute = _PAYLOAD_KEYS.get(key)
            if attribute is None or attribute in values:
                extra[key] = value
            else:
                values[attribute] = _text_value(value)
        return cls(extra=extra, **values)

    @property
    def sta_score(self) -> Optional[int]:
        return normalize_sta_score(self.score)

    @property
    def ai_suspicion(self) -> Optional[float]:
        return normalize_suspicion_percent(self.ai_score)

    @property
    def authors(self) -> List[str]:
        return parse_authors(self.author)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the payload key names, dropping absent fields."""
        data: Dict[str, Any] = {}
        for attribute, key in _OUTPUT_KEYS.items():
            value = getattr(self, attribute)
            if value is not None:
                data[key] = value
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data


def strip_code_fence(raw: Optional[str]) -> str:
    """Remove leading and trailing code-fence markers and trim whitespace."""
    text: str = (raw or "").strip()
    text = _LEADING_FENCE_RE.sub("", text, count=1)
    text = _TRAILING_FENCE_RE.sub("", text, count=1)
    return text.strip()


def parse_analysis_result(raw: Optional[str]) -> AnalysisResult:
    """Parse raw model output into an AnalysisResult.

    The fenced body is decoded strictly first; when that fails, the
    outermost ``{...}`` span of the text is tried.

    Args:
        raw: Raw model output

    Returns:
        Parsed AnalysisResult

    Raises:
        ResultUnparseableError: If no JSON object can be decoded
    """
    body: str = strip_code_fence(raw)
    if not body:
        raise ResultUnparseableError("Model returned an empty result", raw or "")

    try:
        payload: Any = json.loads(body)
    except json.JSONDecodeError:
        match = _OBJECT_RE.search(body)
        if not match:
            raise ResultUnparseableError("Model output is not JSON", raw or "")
        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise ResultUnparseableError(f"JSON parsing error in model output: {str(e)}", raw or "")

    if not isinstance(payload, dict):
        raise ResultUnparseableError("Model output is not a JSON object", raw or "")

    return AnalysisResult.from_payload(payload)


def _split_author_segment(segment: str) -> List[str]:
    # "Kim, J." is one author: an initials-only piece belongs to the previous name
    # unless that name already carries initials
    names: List[str] = []
    for piece in (p.strip() for p in segment.split(",")):
        if not piece:
            continue
        if names and "," not in names[-1] and _INITIALS_RE.match(piece):
            names[-1] = f"{names[-1]}, {piece}"
        else:
            names.append(piece)
    return names


def parse_authors(raw: Any) -> List[str]:
    """Split an author field into a list of names.

    Accepts a serialized JSON list, an actual list, or free text separated
    by ``and``, ``,``, ``;``, ``&`` or newlines. Never raises.

    Args:
        raw: Author field as returned by the model

    Returns:
        Trimmed, non-empty author names; empty for ill-formed input
    """
    if raw is None:
        return []

    entries: Any = raw
    text: str = raw if isinstance(raw, str) else ""
    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            entries = json.loads(raw)
        except (ValueError, TypeError):
            entries = None
        if isinstance(entries, str):
            text = entries

    if isinstance(entries, (list, tuple)):
        return [str(entry).strip() for entry in entries
                if entry is not None and str(entry).strip()]

    authors: List[str] = []
    for segment in _AUTHOR_SEPARATOR_RE.split(text):
        authors.extend(_split_author_segment(segment))
    return authors
