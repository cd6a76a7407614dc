"""Streamlit wrapper around the asynchronous review processor.

This module contains the StreamlitReviewRunner class that runs a review
coroutine from synchronous Streamlit code while rendering state changes
and the streamed model answer as they arrive.
"""

import asyncio
import concurrent.futures
from typing import Any, Coroutine, Dict, List

import streamlit as st

from .review_processor import AnalysisRequest, ReviewOutcome, ReviewProcessor, ReviewState

__all__ = ["StreamlitReviewRunner", "STATE_LABELS"]

STATE_LABELS: Dict[ReviewState, str] = {
    ReviewState.IDLE: "Waiting...",
    ReviewState.VALIDATING_ELIGIBILITY: "Checking eligibility...",
    ReviewState.EXTRACTING_TEXT: "Extracting text from PDF...",
    ReviewState.PROMPTING: "Preparing prompt...",
    ReviewState.AWAITING_MODEL: "Waiting for the model...",
    ReviewState.NORMALIZING: "Reading the review...",
    ReviewState.SETTLING: "Updating credits...",
    ReviewState.DONE: "Review complete",
    ReviewState.FAILED: "Review failed",
}


class StreamlitReviewRunner:
    """Runs reviews synchronously for the Streamlit UI.

    Attributes:
        processor: ReviewProcessor that performs the review
    """

    def __init__(self, processor: ReviewProcessor) -> None:
        """Initialize the runner.

        Args:
            processor: ReviewProcessor instance
        """
        self.processor: ReviewProcessor = processor

    @staticmethod
    def _run_coroutine(coroutine: Coroutine[Any, Any, ReviewOutcome]) -> ReviewOutcome:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(coroutine)

        # Already inside an event loop: run on a separate thread with its own loop
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
            return executor.submit(asyncio.run, coroutine).result()

    def run(self, request: AnalysisRequest) -> ReviewOutcome:
        """Run a review, showing progress and the live model answer.

        Args:
            request: The review request

        Returns:
            ReviewOutcome from the processor
        """
        status = st.status(STATE_LABELS[ReviewState.IDLE], expanded=False)
        live_text = st.empty()
        received: List[str] = []

        def on_state(state: ReviewState) -> None:
            if state is ReviewState.DONE:
                status.update(label=STATE_LABELS[state], state="complete")
            elif state is ReviewState.FAILED:
                status.update(label=STATE_LABELS[state], state="error")
            else:
                status.update(label=STATE_LABELS[state], state="running")

        def on_chunk(chunk: str) -> None:
            received.append(chunk)
            live_text.code("".join(received), language="json")

        outcome = self._run_coroutine(self.processor.review(request, on_state, on_chunk))
        live_text.empty()
        return outcome
