"""Test package for the STA reviewer application.

This package contains unit tests for all components of the review
pipeline and an end-to-end suite for the review processor.

Test Structure:
- conftest.py: Shared fixtures and test configuration
- test_extractors.py: Tests for upload validation and text extraction
- test_score_normalizer.py: Tests for STA and suspicion normalization
- test_result_parser.py: Tests for model output and author parsing
- test_database.py: Tests for database operations
- test_credit_ledger.py: Tests for the monthly credit ledger
- test_llm.py: Tests for prompt building and the model client
- test_review_processor.py: Tests for the review state machine
- test_session.py: Tests for session providers
- test_ui.py: Tests for Streamlit components
- test_app.py: Tests for the review submission flow

Usage:
    Run all tests: pytest
    Run specific module: pytest tests/test_credit_ledger.py
"""

__version__ = "1.0.0"
