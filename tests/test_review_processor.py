"""Tests for the asynchronous review processor.

This module contains end-to-end tests of the review state machine with a
real in-memory ledger and history store and mocked extraction and model
collaborators.
"""

import asyncio
import json
import pytest
from datetime import datetime, timezone
from unittest.mock import Mock, patch

from sta_reviewer.database import CreditRepository, DatabaseManager, HistoryRepository
from sta_reviewer.exceptions import (
    DenialReason,
    DocumentUnreadableError,
    EligibilityDeniedError,
    LedgerWriteError,
    ModelCallFailedError,
    NoFileSelectedError,
    PersistenceError,
    UnsupportedModelError,
)
from sta_reviewer.ledger import CreditLedger
from sta_reviewer.llm import ModelClient
from sta_reviewer.parsers import normalize_suspicion_percent
from sta_reviewer.processors import AnalysisRequest, ReviewProcessor, ReviewState

USER = "user-1"
PERIOD = "2025-03"


@pytest.fixture
def model_client(review_json):
    """Mock model client answering with a well-formed review."""
    client = Mock(spec=ModelClient)
    client.complete.return_value = review_json
    client.stream.return_value = iter([review_json[:20], review_json[20:]])
    return client


@pytest.fixture
def processor(ledger, history_repository, model_client):
    """ReviewProcessor with mocked validation and text extraction."""
    review_processor = ReviewProcessor(ledger, history_repository, model_client)
    review_processor.validator = Mock()
    review_processor.text_extractor = Mock()
    review_processor.text_extractor.extract_text.return_value = "Extracted paper text\n"
    return review_processor


def _request(sample_pdf_bytes, model_id="gpt-4o-mini", user_id=None, stream=True):
    return AnalysisRequest(
        file_bytes=sample_pdf_bytes,
        model_id=model_id,
        filename="paper.pdf",
        user_id=user_id,
        stream=stream,
    )


class TestFreeTier:
    """Test cases for reviews on the zero-cost model."""

    @pytest.mark.asyncio
    async def test_unauthenticated_unparseable_output(self, history_repository, model_client,
                                                      sample_pdf_bytes):
        """Test that raw text is returned with no ledger interaction or history write."""
        ledger = Mock(spec=CreditLedger)
        model_client.stream.return_value = iter(["I am unable ", "to score this paper."])
        processor = ReviewProcessor(ledger, history_repository, model_client)
        processor.validator = Mock()
        processor.text_extractor = Mock()
        processor.text_extractor.extract_text.return_value = "text"

        outcome = await processor.review(_request(sample_pdf_bytes))

        assert outcome.state is ReviewState.DONE
        assert outcome.raw_text == "I am unable to score this paper."
        assert outcome.result is None
        assert outcome.history_id is None
        assert outcome.balance is None
        assert ledger.method_calls == []

    @pytest.mark.asyncio
    async def test_state_sequence(self, processor, sample_pdf_bytes):
        """Test that every state is visited in order."""
        states = []

        outcome = await processor.review(_request(sample_pdf_bytes), on_state=states.append)

        assert outcome.succeeded
        assert states == [
            ReviewState.VALIDATING_ELIGIBILITY,
            ReviewState.EXTRACTING_TEXT,
            ReviewState.PROMPTING,
            ReviewState.AWAITING_MODEL,
            ReviewState.NORMALIZING,
            ReviewState.SETTLING,
            ReviewState.DONE,
        ]

    @pytest.mark.asyncio
    async def test_unauthenticated_success_not_saved(self, processor, history_repository,
                                                     sample_pdf_bytes):
        """Test that anonymous results are parsed but not stored."""
        outcome = await processor.review(_request(sample_pdf_bytes))

        assert outcome.result.sta_score == 420
        assert outcome.history_id is None

    @pytest.mark.asyncio
    async def test_authenticated_success_saved(self, processor, history_repository, credit_repository,
                                               sample_pdf_bytes):
        """Test that a free review by a signed-in user is stored without a debit."""
        outcome = await processor.review(_request(sample_pdf_bytes, user_id=USER))

        records = history_repository.list_for_owner(USER)
        assert [record.id for record in records] == [outcome.history_id]
        assert records[0].score == "420"
        assert records[0].ai_score == "85%"
        assert credit_repository.get_balance(USER, PERIOD) is None

    @pytest.mark.asyncio
    async def test_prompt_contains_extracted_text(self, processor, model_client, sample_pdf_bytes):
        """Test that the model is prompted with the extracted text."""
        await processor.review(_request(sample_pdf_bytes))

        prompt, model = model_client.stream.call_args.args
        assert prompt.endswith("Extracted paper text\n")
        assert model == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_stored_suspicion_normalizes_to_same_value(self, processor, model_client,
                                                             history_repository, sample_pdf_bytes):
        """Test that the saved suspicion reads back as the value shown to the user."""
        model_client.stream.return_value = iter(['{"title": "Low", "score": "400", "aiScore": "1.5%"}'])

        outcome = await processor.review(_request(sample_pdf_bytes, user_id=USER))

        record = history_repository.list_for_owner(USER)[0]
        assert record.ai_score == "1.5%"
        assert normalize_suspicion_percent(record.ai_score) == outcome.result.ai_suspicion == 1.5

    @pytest.mark.asyncio
    async def test_unnormalized_scores_fit_their_columns(self, processor, model_client,
                                                         history_repository, sample_pdf_bytes):
        """Test that long raw score text is cut to the column size."""
        rambling = "not sure " * 20
        model_client.stream.return_value = iter([json.dumps(
            {"title": "Vague", "score": rambling, "aiScore": rambling}
        )])

        outcome = await processor.review(_request(sample_pdf_bytes, user_id=USER))

        record = history_repository.list_for_owner(USER)[0]
        assert record.id == outcome.history_id
        assert record.score == rambling[:64]
        assert record.ai_score == rambling.strip()[:64]
        assert json.loads(record.full_result)["score"] == rambling


class TestPaidTier:
    """Test cases for reviews on credit-metered models."""

    @pytest.mark.asyncio
    async def test_success_debits_once(self, processor, history_repository, credit_repository,
                                       sample_pdf_bytes):
        """Test that a paid review debits the option cost exactly once."""
        outcome = await processor.review(_request(sample_pdf_bytes, "gpt-4.1-mini", USER))

        assert outcome.state is ReviewState.DONE
        assert outcome.balance == 50
        assert credit_repository.get_balance(USER, PERIOD) == 50
        assert outcome.history_id is not None

        record = history_repository.list_for_owner(USER)[0]
        assert record.title == "Predictive Sales Modeling for Convenience Stores"
        assert json.loads(record.full_result)["aiScore"] == "85%"

    @pytest.mark.asyncio
    async def test_non_streaming_call(self, processor, model_client, credit_repository, sample_pdf_bytes):
        """Test that a non-streamed request uses a single completion."""
        outcome = await processor.review(_request(sample_pdf_bytes, "gpt-4.1", USER, stream=False))

        model_client.complete.assert_called_once()
        model_client.stream.assert_not_called()
        assert outcome.balance == 0
        assert credit_repository.get_balance(USER, PERIOD) == 0

    @pytest.mark.asyncio
    async def test_unauthenticated_denied(self, processor, model_client, sample_pdf_bytes):
        """Test that paid tiers fail without an identity and without side effects."""
        outcome = await processor.review(_request(sample_pdf_bytes, "gpt-4.1-mini"))

        assert outcome.state is ReviewState.FAILED
        assert outcome.failed_state is ReviewState.VALIDATING_ELIGIBILITY
        assert isinstance(outcome.error, EligibilityDeniedError)
        assert outcome.error.reason is DenialReason.UNAUTHENTICATED
        model_client.stream.assert_not_called()
        processor.text_extractor.extract_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, processor, model_client, credit_repository,
                                        history_repository, sample_pdf_bytes):
        """Test that a balance of 30 refuses a 50-credit model."""
        credit_repository.insert_if_absent(USER, PERIOD, 30)

        outcome = await processor.review(_request(sample_pdf_bytes, "gpt-4.1-mini", USER))

        assert outcome.error.reason is DenialReason.INSUFFICIENT_BALANCE
        assert credit_repository.get_balance(USER, PERIOD) == 30
        assert history_repository.list_for_owner(USER) == []
        model_client.stream.assert_not_called()

    @pytest.mark.asyncio
    async def test_unconfigured(self, credit_repository, history_repository, model_client,
                                fixed_clock, sample_pdf_bytes):
        """Test that paid tiers are refused when no monthly limit is set."""
        ledger = CreditLedger(credit_repository, monthly_limit=0, clock=fixed_clock)
        processor = ReviewProcessor(ledger, history_repository, model_client)

        outcome = await processor.review(_request(sample_pdf_bytes, "gpt-4.1", USER))

        assert outcome.error.reason is DenialReason.UNCONFIGURED
        assert credit_repository.get_balance(USER, PERIOD) is None

    @pytest.mark.asyncio
    async def test_ledger_unavailable_reports_loading(self, processor, sample_pdf_bytes):
        """Test that a failed balance read is reported as still loading."""
        with patch.object(processor.ledger, "fetch", side_effect=PersistenceError("db down")):
            outcome = await processor.review(_request(sample_pdf_bytes, "gpt-4.1", USER))

        assert outcome.error.reason is DenialReason.LOADING

    @pytest.mark.asyncio
    async def test_unparseable_output_still_settles(self, processor, model_client, credit_repository,
                                                    history_repository, sample_pdf_bytes):
        """Test that a paid answer is charged even when it cannot be parsed."""
        model_client.stream.return_value = iter(["not json"])

        outcome = await processor.review(_request(sample_pdf_bytes, "gpt-4.1-mini", USER))

        assert outcome.state is ReviewState.DONE
        assert outcome.result is None
        assert outcome.raw_text == "not json"
        assert outcome.balance == 50
        assert history_repository.list_for_owner(USER) == []

    @pytest.mark.asyncio
    async def test_empty_stream(self, processor, model_client, credit_repository, sample_pdf_bytes):
        """Test that an empty answer is treated as unparseable with empty raw text."""
        model_client.stream.return_value = iter([])

        outcome = await processor.review(_request(sample_pdf_bytes, "gpt-4.1-mini", USER))

        assert outcome.state is ReviewState.DONE
        assert outcome.raw_text == ""
        assert outcome.result is None
        assert credit_repository.get_balance(USER, PERIOD) == 50

    @pytest.mark.asyncio
    async def test_history_failure_absorbed(self, processor, credit_repository, sample_pdf_bytes):
        """Test that a failed history write neither fails the review nor skips the debit."""
        with patch.object(processor.history_repository, "save_record",
                          side_effect=PersistenceError("Database save error: locked")):
            outcome = await processor.review(_request(sample_pdf_bytes, "gpt-4.1-mini", USER))

        assert outcome.state is ReviewState.DONE
        assert outcome.result is not None
        assert outcome.history_id is None
        assert credit_repository.get_balance(USER, PERIOD) == 50

    @pytest.mark.asyncio
    async def test_ledger_write_failure_reconciles(self, processor, credit_repository, sample_pdf_bytes):
        """Test that a failed debit triggers a re-fetch and the review still succeeds."""
        with patch.object(processor.ledger, "debit", side_effect=LedgerWriteError("Credit debit error")), \
                patch.object(processor.ledger, "reconcile", wraps=processor.ledger.reconcile) as reconcile:
            outcome = await processor.review(_request(sample_pdf_bytes, "gpt-4.1-mini", USER))

        assert outcome.state is ReviewState.DONE
        reconcile.assert_called_once_with(USER, PERIOD)
        assert outcome.balance == 100

    @pytest.mark.asyncio
    async def test_concurrent_reviews_never_overdraw(self, tmp_path, model_client, fixed_clock,
                                                     review_json, sample_pdf_bytes):
        """Test that two paid reviews racing on one balance cannot both be charged."""
        db_manager = DatabaseManager(f"sqlite:///{tmp_path / 'reviews.db'}")
        credit_repository = CreditRepository(db_manager)
        credit_repository.insert_if_absent(USER, PERIOD, 100)
        ledger = CreditLedger(credit_repository, monthly_limit=100, clock=fixed_clock)
        processor = ReviewProcessor(ledger, HistoryRepository(db_manager), model_client)
        processor.validator = Mock()
        processor.text_extractor = Mock()
        processor.text_extractor.extract_text.return_value = "text"
        model_client.stream.side_effect = lambda *args, **kwargs: iter([review_json])

        outcomes = await asyncio.gather(
            processor.review(_request(sample_pdf_bytes, "gpt-4.1", USER)),
            processor.review(_request(sample_pdf_bytes, "gpt-4.1", USER)),
        )

        assert all(outcome.state is ReviewState.DONE for outcome in outcomes)
        assert credit_repository.get_balance(USER, PERIOD) == 0

    @pytest.mark.asyncio
    async def test_cancelled_review_not_charged(self, processor, credit_repository, sample_pdf_bytes):
        """Test that cancelling during the stream leaves the balance untouched."""
        def cancel(chunk):
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await processor.review(_request(sample_pdf_bytes, "gpt-4.1-mini", USER), on_chunk=cancel)

        assert credit_repository.get_balance(USER, PERIOD) == 100

    @pytest.mark.asyncio
    async def test_cancelled_review_closes_stream(self, processor, model_client, sample_pdf_bytes):
        """Test that a cancelled review closes the model stream it was reading."""
        closed = []

        def answer():
            try:
                yield '{"title": '
                yield '"Never finished"}'
            finally:
                closed.append(True)

        model_client.stream.return_value = answer()

        def cancel(chunk):
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await processor.review(_request(sample_pdf_bytes, "gpt-4.1-mini", USER), on_chunk=cancel)

        assert closed == [True]

    @pytest.mark.asyncio
    async def test_month_rollover_refreshes_and_rejects(self, credit_repository, history_repository,
                                                        model_client, sample_pdf_bytes):
        """Test that a balance fetched last month is refreshed and the request refused."""
        times = iter([datetime(2025, 3, 31, 23, 59, tzinfo=timezone.utc)])
        ledger = CreditLedger(
            credit_repository,
            monthly_limit=100,
            clock=lambda: next(times, datetime(2025, 4, 1, 0, 1, tzinfo=timezone.utc)),
        )
        credit_repository.insert_if_absent(USER, "2025-03", 60)
        processor = ReviewProcessor(ledger, history_repository, model_client)
        processor.validator = Mock()
        processor.text_extractor = Mock()

        outcome = await processor.review(_request(sample_pdf_bytes, "gpt-4.1-mini", USER))

        assert outcome.state is ReviewState.FAILED
        assert isinstance(outcome.error, EligibilityDeniedError)
        assert outcome.error.reason is DenialReason.STALE_PERIOD
        assert credit_repository.get_balance(USER, "2025-03") == 60
        assert credit_repository.get_balance(USER, "2025-04") == 100
        processor.text_extractor.extract_text.assert_not_called()
        model_client.stream.assert_not_called()
        model_client.complete.assert_not_called()


class TestFailures:
    """Test cases for failures before the model has answered."""

    @pytest.mark.asyncio
    async def test_no_file_selected(self, processor, model_client):
        """Test that a missing file fails without contacting any collaborator."""
        processor.ledger = Mock(spec=CreditLedger)

        outcome = await processor.review(AnalysisRequest(file_bytes=None, model_id="gpt-4.1", user_id=USER))

        assert outcome.state is ReviewState.FAILED
        assert isinstance(outcome.error, NoFileSelectedError)
        assert processor.ledger.method_calls == []
        processor.validator.validate.assert_not_called()
        model_client.stream.assert_not_called()

    @pytest.mark.asyncio
    async def test_unsupported_model(self, processor, sample_pdf_bytes):
        """Test that unknown model identifiers are rejected."""
        outcome = await processor.review(_request(sample_pdf_bytes, "gpt-unknown"))

        assert isinstance(outcome.error, UnsupportedModelError)
        assert outcome.failed_state is ReviewState.VALIDATING_ELIGIBILITY

    @pytest.mark.asyncio
    async def test_document_unreadable(self, processor, model_client, credit_repository, sample_pdf_bytes):
        """Test that extraction failure ends the request before the model call."""
        processor.text_extractor.extract_text.side_effect = DocumentUnreadableError("PDF reading error: broken")

        outcome = await processor.review(_request(sample_pdf_bytes, "gpt-4.1-mini", USER))

        assert outcome.state is ReviewState.FAILED
        assert outcome.failed_state is ReviewState.EXTRACTING_TEXT
        assert str(outcome.error) == "PDF reading error: broken"
        model_client.stream.assert_not_called()
        assert credit_repository.get_balance(USER, PERIOD) == 100

    @pytest.mark.asyncio
    async def test_validation_failure(self, processor, sample_pdf_bytes):
        """Test that upload validation errors fail the extraction step."""
        processor.validator.validate.side_effect = DocumentUnreadableError("File paper.pdf is not a valid PDF file")

        outcome = await processor.review(_request(sample_pdf_bytes))

        assert outcome.failed_state is ReviewState.EXTRACTING_TEXT
        processor.text_extractor.extract_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_model_call_failed(self, processor, model_client, credit_repository,
                                     history_repository, sample_pdf_bytes):
        """Test that provider failures surface their message and charge nothing."""
        model_client.stream.side_effect = ModelCallFailedError("OpenAI API error: Rate limit reached")

        outcome = await processor.review(_request(sample_pdf_bytes, "gpt-4.1-mini", USER))

        assert outcome.state is ReviewState.FAILED
        assert outcome.failed_state is ReviewState.AWAITING_MODEL
        assert str(outcome.error) == "OpenAI API error: Rate limit reached"
        assert outcome.balance == 100
        assert credit_repository.get_balance(USER, PERIOD) == 100
        assert history_repository.list_for_owner(USER) == []

    @pytest.mark.asyncio
    async def test_failure_state_reported(self, processor, model_client, sample_pdf_bytes):
        """Test that FAILED is the last state reported."""
        model_client.stream.side_effect = ModelCallFailedError("timeout")
        states = []

        await processor.review(_request(sample_pdf_bytes), on_state=states.append)

        assert states[-2:] == [ReviewState.AWAITING_MODEL, ReviewState.FAILED]


class TestStreaming:
    """Test cases for streamed model answers."""

    @pytest.mark.asyncio
    async def test_chunks_concatenated_in_order(self, processor, model_client, sample_pdf_bytes):
        """Test that chunks are forwarded and joined in arrival order."""
        chunks = ['{"title": ', '"Streamed"', ', "score": "3/4"', "}"]
        model_client.stream.return_value = iter(chunks)
        received = []

        outcome = await processor.review(_request(sample_pdf_bytes), on_chunk=received.append)

        assert received == chunks
        assert outcome.raw_text == "".join(chunks)
        assert outcome.result.title == "Streamed"
        assert outcome.result.sta_score == 375

    @pytest.mark.asyncio
    async def test_fenced_stream(self, processor, model_client, review_json, sample_pdf_bytes):
        """Test that a fenced streamed answer is parsed."""
        model_client.stream.return_value = iter(["```json\n", review_json, "\n```"])

        outcome = await processor.review(_request(sample_pdf_bytes))

        assert outcome.result.authors == ["Kim, J.", "Lee, S."]
        assert outcome.raw_text.startswith("```json")
