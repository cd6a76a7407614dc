"""Processors module for the STA reviewer application.

This module contains the review orchestrator that ties together
eligibility, text extraction, the model call, parsing, persistence and
credit settlement, plus its Streamlit wrapper.
"""

from .review_processor import (
    ReviewState,
    AnalysisRequest,
    ReviewOutcome,
    StateCallback,
    ChunkCallback,
    ReviewProcessor,
)
from .streamlit_review_processor import StreamlitReviewRunner, STATE_LABELS

__all__ = [
    "ReviewState",
    "AnalysisRequest",
    "ReviewOutcome",
    "StateCallback",
    "ChunkCallback",
    "ReviewProcessor",
    "StreamlitReviewRunner",
    "STATE_LABELS",
]
