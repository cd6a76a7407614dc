"""STA Reviewer - academic paper review with credit-metered model tiers.

This package extracts the text of an uploaded PDF paper, asks a language
model for a structured review, and reports the paper's STA Score on a
500-point scale together with an AI-authorship suspicion percentage.

The package is organized into the following modules:
- config: Application configuration and model tiers
- exceptions: Custom exception classes and eligibility denial reasons
- models: Database models
- database: Database management and repositories
- extractors: PDF upload validation and text extraction
- parsers: Model output parsing and score normalization
- ledger: Monthly credit ledger
- llm: Prompt construction and the model client
- auth: Session providers
- processors: The review pipeline and its Streamlit wrapper
- ui: Streamlit user interface components
"""

__version__ = "1.0.0"
__author__ = "STA Reviewer Team"
__description__ = "PDF paper reviewer with STA scoring and AI-authorship detection"

from .config import Config, ModelOption, MODEL_OPTIONS, get_model_option
from .exceptions import (
    DenialReason,
    ReviewError,
    NoFileSelectedError,
    UnsupportedModelError,
    DocumentUnreadableError,
    EligibilityDeniedError,
    ModelCallFailedError,
    ResultUnparseableError,
    PersistenceError,
    LedgerWriteError,
    InsufficientCreditsError,
)
from .models import Base, CreditAccount, HistoryRecord
from .database import DatabaseManager, CreditRepository, HistoryRepository
from .extractors import TextExtractor, UploadValidator
from .parsers import (
    AnalysisResult,
    parse_analysis_result,
    parse_authors,
    normalize_sta_score,
    normalize_suspicion_percent,
)
from .ledger import CreditLedger, CreditSnapshot, period_key
from .llm import ModelClient, build_review_prompt
from .auth import InMemorySessionProvider, StreamlitSessionProvider
from .processors import (
    AnalysisRequest,
    ReviewOutcome,
    ReviewProcessor,
    ReviewState,
    StreamlitReviewRunner,
)
from .ui import ModelSelector, UIRenderer

__all__ = [
    # Configuration
    "Config",
    "ModelOption",
    "MODEL_OPTIONS",
    "get_model_option",
    # Exceptions
    "DenialReason",
    "ReviewError",
    "NoFileSelectedError",
    "UnsupportedModelError",
    "DocumentUnreadableError",
    "EligibilityDeniedError",
    "ModelCallFailedError",
    "ResultUnparseableError",
    "PersistenceError",
    "LedgerWriteError",
    "InsufficientCreditsError",
    # Models
    "Base",
    "CreditAccount",
    "HistoryRecord",
    # Database
    "DatabaseManager",
    "CreditRepository",
    "HistoryRepository",
    # Extractors
    "TextExtractor",
    "UploadValidator",
    # Parsers
    "AnalysisResult",
    "parse_analysis_result",
    "parse_authors",
    "normalize_sta_score",
    "normalize_suspicion_percent",
    # Ledger
    "CreditLedger",
    "CreditSnapshot",
    "period_key",
    # LLM
    "ModelClient",
    "build_review_prompt",
    # Auth
    "InMemorySessionProvider",
    "StreamlitSessionProvider",
    # Processors
    "AnalysisRequest",
    "ReviewOutcome",
    "ReviewProcessor",
    "ReviewState",
    "StreamlitReviewRunner",
    # UI
    "ModelSelector",
    "UIRenderer"
]
