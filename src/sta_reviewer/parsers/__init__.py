"""Parsers module for the STA reviewer application.

This module contains the score normalizers and the parser that turns
raw model output into a structured AnalysisResult.
"""

from .score_normalizer import (
    STA_MAX,
    normalize_sta_score,
    normalize_suspicion_percent,
    format_sta_score,
    format_suspicion,
)
from .result_parser import AnalysisResult, strip_code_fence, parse_analysis_result, parse_authors

__all__ = [
    "STA_MAX",
    "normalize_sta_score",
    "normalize_suspicion_percent",
    "format_sta_score",
    "format_suspicion",
    "AnalysisResult",
    "strip_code_fence",
    "parse_analysis_result",
    "parse_authors",
]
