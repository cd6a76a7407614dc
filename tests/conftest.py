"""Pytest configuration and fixtures for the STA reviewer test suite.

This module provides shared fixtures and test configuration for all test modules.
"""

import json
import os
from datetime import datetime, timezone
from typing import Any, Dict
from unittest.mock import Mock

import pytest

from sta_reviewer.config import Config
from sta_reviewer.database import CreditRepository, DatabaseManager, HistoryRepository
from sta_reviewer.ledger import CreditLedger

FIXED_NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)
FIXED_PERIOD = "2025-03"


@pytest.fixture
def db_manager() -> DatabaseManager:
    """Create a DatabaseManager backed by a private in-memory SQLite database."""
    return DatabaseManager(database_url="sqlite://")


@pytest.fixture
def credit_repository(db_manager: DatabaseManager) -> CreditRepository:
    """Create a CreditRepository on the test database."""
    return CreditRepository(db_manager)


@pytest.fixture
def history_repository(db_manager: DatabaseManager) -> HistoryRepository:
    """Create a HistoryRepository on the test database."""
    return HistoryRepository(db_manager)


@pytest.fixture
def fixed_clock():
    """Clock that always reports 2025-03-15 12:00 UTC."""
    return lambda: FIXED_NOW


@pytest.fixture
def ledger(credit_repository: CreditRepository, fixed_clock) -> CreditLedger:
    """Create a CreditLedger with a monthly limit of 100 and a fixed clock."""
    return CreditLedger(credit_repository, monthly_limit=100, clock=fixed_clock)


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """Minimal PDF-looking bytes that pass upload validation."""
    return b"%PDF-1.4\n" + b"0" * Config.MIN_FILE_SIZE + b"\n%%EOF"


@pytest.fixture
def review_payload() -> Dict[str, Any]:
    """A well-formed review as the model is asked to return it."""
    return {
        "title": "Predictive Sales Modeling for Convenience Stores",
        "author": "Kim, J. and Lee, S.",
        "score": "420",
        "scoreUsage": "Originality 80, Methodology 90, Clarity 85, Evidence 80, Contribution 85",
        "aiScore": "85%",
        "aiReason": "Generic phrasing without concrete detail.",
        "summary": "Compares four forecasting models; LSTM performs best.",
    }


@pytest.fixture
def review_json(review_payload: Dict[str, Any]) -> str:
    """The review payload serialized as the model would return it."""
    return json.dumps(review_payload)


@pytest.fixture
def mock_openai_client():
    """Mock OpenAI client returning a single review completion."""
    mock_client = Mock()
    mock_response = Mock()
    mock_choice = Mock()
    mock_message = Mock()
    mock_message.content = '  {"title": "A Paper", "score": "0.84"}  '
    mock_choice.message = mock_message
    mock_response.choices = [mock_choice]
    mock_client.chat.completions.create.return_value = mock_response
    return mock_client


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment variables and restore them afterwards."""
    overrides = {
        "OPENAI_API_KEY": "test-key-123",
        "MONTHLY_CREDIT": "100",
        "LANGFUSE_TRACING_ENABLED": "false",
    }
    removed = ["LANGFUSE_PUBLIC_KEY", "LANGFUSE_SECRET_KEY"]
    original = {key: os.environ.get(key) for key in list(overrides) + removed}

    os.environ.update(overrides)
    for key in removed:
        os.environ.pop(key, None)

    yield

    for key, value in original.items():
        if value is not None:
            os.environ[key] = value
        else:
            os.environ.pop(key, None)
