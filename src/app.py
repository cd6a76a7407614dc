"""Main application entry point for the STA reviewer Streamlit app.

This module contains the main PaperReviewerApp class and application startup logic.
Run this file with `streamlit run src/app.py` to start the application.
"""

import os
from typing import Any, List, Optional

import streamlit as st
from dotenv import load_dotenv
from loguru import logger

# Load environment variables
load_dotenv()

from sta_reviewer import (
    MODEL_OPTIONS,
    AnalysisRequest,
    CreditLedger,
    CreditRepository,
    CreditSnapshot,
    DatabaseManager,
    HistoryRepository,
    ModelClient,
    PersistenceError,
    ReviewProcessor,
    StreamlitReviewRunner,
    StreamlitSessionProvider,
    UIRenderer,
)

SESSION_KEY: str = "session_provider"
OUTCOME_KEY: str = "last_outcome"
IN_FLIGHT_KEY: str = "review_in_flight"


def _mark_in_flight() -> None:
    st.session_state[IN_FLIGHT_KEY] = True


class PaperReviewerApp:
    """Main Streamlit application class.

    This class wires the review pipeline together and handles the main
    user interaction logic for both the analyzer and the history page.

    Attributes:
        db_manager: DatabaseManager for database operations
        credit_repository: CreditRepository backing the ledger
        history_repository: HistoryRepository for saved analyses
        ledger: CreditLedger for paid-tier eligibility and debits
        processor: ReviewProcessor running the review pipeline
        runner: StreamlitReviewRunner rendering review progress
        session: StreamlitSessionProvider kept across reruns
        ui: UIRenderer for user interface operations
    """

    def __init__(self) -> None:
        """Initialize application with all required components."""
        self.db_manager: DatabaseManager = DatabaseManager()
        self.credit_repository: CreditRepository = CreditRepository(self.db_manager)
        self.history_repository: HistoryRepository = HistoryRepository(self.db_manager)
        self.ledger: CreditLedger = CreditLedger(self.credit_repository)
        self.processor: ReviewProcessor = ReviewProcessor(
            self.ledger, self.history_repository, ModelClient(os.getenv("OPENAI_API_KEY"))
        )
        self.runner: StreamlitReviewRunner = StreamlitReviewRunner(self.processor)
        self.session: StreamlitSessionProvider = self._session_provider()
        self.ui: UIRenderer = UIRenderer()

    @staticmethod
    def _session_provider() -> StreamlitSessionProvider:
        if SESSION_KEY not in st.session_state:
            provider = StreamlitSessionProvider()
            # A different identity must never see the previous user's report
            provider.subscribe(lambda _user: st.session_state.pop(OUTCOME_KEY, None))
            st.session_state[SESSION_KEY] = provider
        return st.session_state[SESSION_KEY]

    def run(self) -> None:
        """Run the main application flow."""
        self.ui.render_header()

        if not os.getenv("OPENAI_API_KEY"):
            st.error("⚠️ Set OPENAI_API_KEY environment variable or add it to .env")
            return

        user_id: Optional[str] = self.session.refresh()
        self.ui.render_session_controls(user_id)
        page: str = self.ui.render_page_selector(signed_in=user_id is not None)

        if page == "History" and user_id:
            self._handle_history(user_id)
        else:
            self._handle_review(user_id)

    def _load_snapshot(self, user_id: Optional[str]) -> Optional[CreditSnapshot]:
        """Fetch the current balance, or None while it cannot be loaded."""
        if not (self.ledger.is_configured and user_id):
            return None
        try:
            return self.ledger.fetch(user_id)
        except PersistenceError as e:
            logger.error("Failed to load credits for {}: {}", user_id, e)
            st.warning(f"⚠️ Could not load credits: {e}")
            return None

    def _handle_review(self, user_id: Optional[str]) -> None:
        """Handle the single-paper review workflow."""
        snapshot: Optional[CreditSnapshot] = self._load_snapshot(user_id)

        selector_column, credits_column = st.columns([3, 1])
        with selector_column:
            option = self.ui.model_selector.render(MODEL_OPTIONS, self.ledger, user_id, snapshot)
        with credits_column:
            self.ui.render_credits_panel(self.ledger, user_id, snapshot)

        uploaded_file: Any = self.ui.render_file_uploader()
        in_flight: bool = st.session_state.get(IN_FLIGHT_KEY, False)

        # The click callback runs before the rerun, so the review happens behind a disabled button
        st.button("Review Paper", type="primary",
                  disabled=in_flight or uploaded_file is None,
                  on_click=_mark_in_flight)

        if in_flight:
            self._run_review(uploaded_file, option.identifier, user_id)
            # Redraw the credits panel and an enabled button from the settled state
            st.rerun()

        last = st.session_state.get(OUTCOME_KEY)
        if last is not None:
            filename, outcome = last
            self.ui.render_outcome(outcome, filename)

    def _run_review(self, uploaded_file: Any, model_id: str, user_id: Optional[str]) -> None:
        """Run the submitted review and keep its outcome for later reruns."""
        try:
            if uploaded_file is None:
                return
            request = AnalysisRequest(
                file_bytes=uploaded_file.getvalue(),
                model_id=model_id,
                filename=uploaded_file.name,
                user_id=user_id,
            )
            st.session_state[OUTCOME_KEY] = (uploaded_file.name, self.runner.run(request))
        finally:
            st.session_state[IN_FLIGHT_KEY] = False

    def _handle_history(self, user_id: str) -> None:
        """Show the signed-in user's saved analyses."""
        try:
            records: List[Any] = self.history_repository.list_for_owner(user_id)
        except PersistenceError as e:
            st.error(f"❌ Could not load history: {e}")
            return
        self.ui.render_history(records)


def main() -> None:
    """Main entry point for the application."""
    app = PaperReviewerApp()
    app.run()


if __name__ == "__main__":
    main()
