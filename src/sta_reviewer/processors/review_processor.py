"""Review processor for the STA reviewer application.

This module contains the ReviewProcessor class that runs one paper
review end to end: eligibility, text extraction, prompting, the model
call, parsing and persistence, and the credit debit.

Failures before the model has answered end the request and are returned
to the caller. Failures after it (unparseable output, history writes,
ledger writes) are logged and absorbed, because the user already has an
answer.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterator, List, Optional, Tuple

from langfuse import observe
from loguru import logger

from ..config import ModelOption, get_model_option
from ..database import HistoryRepository
from ..exceptions import (
    DenialReason,
    EligibilityDeniedError,
    LedgerWriteError,
    NoFileSelectedError,
    PersistenceError,
    ResultUnparseableError,
    ReviewError,
    UnsupportedModelError,
)
from ..extractors import TextExtractor, UploadValidator
from ..ledger import CreditLedger, CreditSnapshot
from ..llm import ModelClient, build_review_prompt
from ..parsers import AnalysisResult, format_suspicion, parse_analysis_result

__all__ = [
    "ReviewState",
    "AnalysisRequest",
    "ReviewOutcome",
    "StateCallback",
    "ChunkCallback",
    "ReviewProcessor",
]

TITLE_MAX_LENGTH: int = 512
SCORE_MAX_LENGTH: int = 64


class ReviewState(Enum):
    """States of a single review request."""
    IDLE = "idle"
    VALIDATING_ELIGIBILITY = "validating_eligibility"
    EXTRACTING_TEXT = "extracting_text"
    PROMPTING = "prompting"
    AWAITING_MODEL = "awaiting_model"
    NORMALIZING = "normalizing"
    SETTLING = "settling"
    DONE = "done"
    FAILED = "failed"


@dataclass
class AnalysisRequest:
    """One user-initiated review.

    Attributes:
        file_bytes: Uploaded PDF content, None when no file was chosen
        model_id: Selected model tier identifier
        filename: Original filename, used for validation and as fallback title
        user_id: Signed-in identity; None restricts the request to free tiers
        submitted_at: Submission time
        stream: Consume the model answer as a token stream
    """
    file_bytes: Optional[bytes]
    model_id: Optional[str]
    filename: Optional[str] = None
    user_id: Optional[str] = None
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    stream: bool = True


@dataclass
class ReviewOutcome:
    """Result of a review request.

    Attributes:
        state: DONE or FAILED
        raw_text: Model output as received, empty when the model was not reached
        result: Parsed analysis, None when the output could not be parsed
        balance: Credit balance after settlement, when a paid tier was used
        history_id: ID of the saved history record, if one was written
        error: The user-facing error when the request failed
        failed_state: State the request was in when it failed
    """
    state: ReviewState
    raw_text: str = ""
    result: Optional[AnalysisResult] = None
    balance: Optional[int] = None
    history_id: Optional[int] = None
    error: Optional[ReviewError] = None
    failed_state: Optional[ReviewState] = None

    @property
    def succeeded(self) -> bool:
        return self.state is ReviewState.DONE


StateCallback = Callable[[ReviewState], None]
ChunkCallback = Callable[[str], None]


def _close_stream(chunks: Iterator[str], finished: Optional[asyncio.Future] = None) -> None:
    if finished is not None and not finished.cancelled():
        finished.exception()
    close = getattr(chunks, "close", None)
    if close is not None:
        close()


class ReviewProcessor:
    """Asynchronous orchestrator for paper reviews.

    Blocking work (PDF parsing, database access, the OpenAI client) runs in
    the default thread pool via ``asyncio.to_thread``. Streamed chunks are
    pulled one at a time, so a cancelled review stops between chunks and
    never reaches settlement.

    Attributes:
        ledger: Monthly credit ledger
        history_repository: Storage for parsed analyses
        model_client: Model provider client
        text_extractor: PDF text extraction service
        validator: Upload validation service
    """

    def __init__(self, ledger: CreditLedger, history_repository: HistoryRepository,
                 model_client: ModelClient) -> None:
        """Initialize the review processor with its collaborators.

        Args:
            ledger: CreditLedger used for eligibility and debits
            history_repository: Repository for persisting analyses
            model_client: Client used to call the model
        """
        self.ledger: CreditLedger = ledger
        self.history_repository: HistoryRepository = history_repository
        self.model_client: ModelClient = model_client
        self.text_extractor: TextExtractor = TextExtractor()
        self.validator: UploadValidator = UploadValidator()

    @observe(name="paper_review", capture_input=False, capture_output=False)
    async def review(self, request: AnalysisRequest,
                     on_state: Optional[StateCallback] = None,
                     on_chunk: Optional[ChunkCallback] = None) -> ReviewOutcome:
        """Run one review request to completion.

        Args:
            request: The review request
            on_state: Optional callback invoked on every state transition
            on_chunk: Optional callback invoked with each streamed chunk

        Returns:
            ReviewOutcome in state DONE, or FAILED with the user-facing error
        """
        state: ReviewState = ReviewState.IDLE
        snapshot: Optional[CreditSnapshot] = None

        def advance(new_state: ReviewState) -> None:
            nonlocal state
            state = new_state
            logger.debug("Review of {} -> {}", request.filename or "upload", new_state.value)
            if on_state:
                on_state(new_state)

        try:
            advance(ReviewState.VALIDATING_ELIGIBILITY)
            option, snapshot = await self._check_eligibility(request)

            advance(ReviewState.EXTRACTING_TEXT)
            text: str = await asyncio.to_thread(self._extract_text, request)

            advance(ReviewState.PROMPTING)
            prompt: str = build_review_prompt(text)

            advance(ReviewState.AWAITING_MODEL)
            raw_text: str = await self._call_model(prompt, option, request.stream, on_chunk)

        except ReviewError as e:
            failed_in = state
            logger.warning("Review failed while {}: {}", failed_in.value, e)
            advance(ReviewState.FAILED)
            return ReviewOutcome(
                state=ReviewState.FAILED,
                balance=snapshot.balance if snapshot else None,
                error=e,
                failed_state=failed_in,
            )

        advance(ReviewState.NORMALIZING)
        result: Optional[AnalysisResult] = None
        history_id: Optional[int] = None
        try:
            result = parse_analysis_result(raw_text)
        except ResultUnparseableError as e:
            logger.warning("Showing raw model output, parsing failed: {}", e)

        if result is not None and request.user_id:
            history_id = await self._save_history(request, result)

        advance(ReviewState.SETTLING)
        balance: Optional[int] = snapshot.balance if snapshot else None
        if option.is_paid and snapshot is not None:
            balance = await self._settle(snapshot, option.cost)

        advance(ReviewState.DONE)
        return ReviewOutcome(
            state=ReviewState.DONE,
            raw_text=raw_text,
            result=result,
            balance=balance,
            history_id=history_id,
        )

    async def _check_eligibility(
        self, request: AnalysisRequest
    ) -> Tuple[ModelOption, Optional[CreditSnapshot]]:
        if not request.file_bytes:
            raise NoFileSelectedError()

        option: Optional[ModelOption] = get_model_option(request.model_id)
        if option is None:
            raise UnsupportedModelError(request.model_id)
        if not option.is_paid:
            return option, None

        snapshot: Optional[CreditSnapshot] = None
        if self.ledger.is_configured and request.user_id:
            try:
                snapshot = await asyncio.to_thread(self.ledger.fetch, request.user_id)
            except PersistenceError as e:
                logger.error("Failed to load credits for {}: {}", request.user_id, e)

        reason: Optional[DenialReason] = self.ledger.denial_reason(option, request.user_id, snapshot)
        if reason is DenialReason.STALE_PERIOD:
            await self._refresh_period(request.user_id)
        if reason is not None:
            raise EligibilityDeniedError(reason)
        return option, snapshot

    async def _refresh_period(self, user_id: str) -> None:
        try:
            await asyncio.to_thread(self.ledger.fetch, user_id)
        except PersistenceError as e:
            logger.error("Failed to refresh credits for {}: {}", user_id, e)

    def _extract_text(self, request: AnalysisRequest) -> str:
        self.validator.validate(request.file_bytes, request.filename)
        return self.text_extractor.extract_text(request.file_bytes)

    async def _call_model(self, prompt: str, option: ModelOption, stream: bool,
                          on_chunk: Optional[ChunkCallback]) -> str:
        if not stream:
            return await asyncio.to_thread(self.model_client.complete, prompt, option.identifier)

        chunks = self.model_client.stream(prompt, option.identifier)
        parts: List[str] = []
        pending: Optional[asyncio.Future] = None
        try:
            while True:
                # Shielded so a cancelled review still knows when the worker thread lets go of the stream
                pending = asyncio.ensure_future(asyncio.to_thread(next, chunks, None))
                chunk: Optional[str] = await asyncio.shield(pending)
                if chunk is None:
                    break
                parts.append(chunk)
                if on_chunk:
                    on_chunk(chunk)
        except asyncio.CancelledError:
            logger.info("Review cancelled after {} chunks, closing model stream", len(parts))
            if pending is None or pending.done():
                _close_stream(chunks)
            else:
                pending.add_done_callback(lambda finished: _close_stream(chunks, finished))
            raise
        return "".join(parts)

    async def _save_history(self, request: AnalysisRequest, result: AnalysisResult) -> Optional[int]:
        sta_score = result.sta_score
        title: str = (result.title or request.filename or "Untitled")[:TITLE_MAX_LENGTH]
        # Stored scores must normalize back to the same value; raw fallbacks are cut to the column size
        score: Optional[str] = str(sta_score) if sta_score is not None else result.score
        ai_score: Optional[str] = format_suspicion(result.ai_score)
        try:
            return await asyncio.to_thread(
                self.history_repository.save_record,
                request.user_id,
                title,
                result.summary,
                score[:SCORE_MAX_LENGTH] if score else None,
                ai_score[:SCORE_MAX_LENGTH] if ai_score else None,
                result.to_dict(),
            )
        except PersistenceError as e:
            logger.error("Failed to save history for {}: {}", request.user_id, e)
            return None

    async def _settle(self, snapshot: CreditSnapshot, cost: int) -> int:
        try:
            return await asyncio.to_thread(self.ledger.debit, snapshot, cost)
        except LedgerWriteError as e:
            logger.error("Credit debit of {} for {} failed: {}", cost, snapshot.user_id, e)

        try:
            reconciled = await asyncio.to_thread(
                self.ledger.reconcile, snapshot.user_id, snapshot.period
            )
            return reconciled.balance
        except PersistenceError as e:
            logger.error("Credit reconciliation for {} failed: {}", snapshot.user_id, e)
            return snapshot.balance
