"""UI renderer component for the STA reviewer application.

This module contains the UIRenderer class for rendering the main Streamlit
user interface: header, credits panel, PDF upload, the review report and
the history page.
"""

import json
import os
from pathlib import Path
from typing import Any, List, Optional

import streamlit as st

from ..ledger import CreditLedger, CreditSnapshot
from ..models import HistoryRecord
from ..parsers import AnalysisResult, format_sta_score, format_suspicion
from ..processors import ReviewOutcome
from .model_selector import ModelSelector

__all__ = ["UIRenderer"]

NOT_PROVIDED: str = "Not provided"


class UIRenderer:
    """Renders the main Streamlit user interface.

    Attributes:
        model_selector: ModelSelector instance for the tier selection UI
    """

    def __init__(self) -> None:
        """Initialize UI renderer with the model selector component."""
        self.model_selector: ModelSelector = ModelSelector()

    def render_header(self) -> None:
        """Render application header and monitoring status."""
        st.set_page_config(page_title="PDF Paper Reviewer", layout="wide")
        st.title("📄 PDF Paper Reviewer")
        st.caption("STA Score on a 500-point scale · AI-authorship suspicion")

        if not self._check_langfuse_config():
            st.info("📊 Monitoring disabled - add LANGFUSE_PUBLIC_KEY and LANGFUSE_SECRET_KEY")

    def render_page_selector(self, signed_in: bool) -> str:
        """Render page navigation; history is only offered when signed in."""
        pages: List[str] = ["Analyzer", "History"] if signed_in else ["Analyzer"]
        return st.sidebar.radio("Page", pages, key="page_selector")

    def render_session_controls(self, user_id: Optional[str]) -> None:
        """Render log in / log out controls backed by Streamlit's OIDC login."""
        if user_id:
            st.sidebar.write(f"Signed in as **{user_id}**")
            st.sidebar.button("Log out", on_click=st.logout)
        else:
            st.sidebar.button("Log in", on_click=st.login)

    @staticmethod
    def credit_status_text(ledger: CreditLedger, user_id: Optional[str],
                           snapshot: Optional[CreditSnapshot]) -> str:
        """Describe the paid-tier credit balance for the credits panel."""
        if not ledger.is_configured:
            return "Not configured"
        if not user_id:
            return "Login required"
        if snapshot is None:
            return "Loading..."
        return f"{snapshot.balance}/{ledger.monthly_limit}"

    def render_credits_panel(self, ledger: CreditLedger, user_id: Optional[str],
                             snapshot: Optional[CreditSnapshot]) -> None:
        st.metric("Paid Model Credits", self.credit_status_text(ledger, user_id, snapshot))

    def render_file_uploader(self) -> Any:
        """Render the PDF-only file uploader.

        Returns:
            Uploaded file object or None if no file uploaded
        """
        return st.file_uploader("Upload PDF Paper", type="pdf", key="paper_uploader")

    def render_outcome(self, outcome: ReviewOutcome, filename: Optional[str] = None) -> None:
        """Render a review outcome.

        A failed request shows its error. A successful one shows the
        normalized report when the output parsed, or the raw text verbatim.
        """
        if not outcome.succeeded:
            st.error(f"❌ {outcome.error}")
            return

        st.header("Review Result")
        if outcome.result is None:
            st.code(outcome.raw_text or "(empty response)", language=None)
            return

        self.render_report(outcome.result)
        st.download_button(
            "💾 Download JSON",
            json.dumps(outcome.result.to_dict(), ensure_ascii=False, indent=2),
            file_name=f"{Path(filename or 'review').stem}_review.json",
            mime="application/json",
        )

    def render_report(self, result: AnalysisResult) -> None:
        info, score, suspicion = st.columns(3)

        with info:
            st.subheader("Paper")
            st.markdown(f"**Title:** {result.title or NOT_PROVIDED}")
            authors: List[str] = result.authors
            st.markdown("**Authors:**")
            if authors:
                st.markdown("\n".join(f"- {author}" for author in authors))
            else:
                st.caption(NOT_PROVIDED)

        with score:
            st.subheader("STA Score (0~500)")
            st.markdown(f"**Score:** {format_sta_score(result.score) or 'Unknown'}")
            st.markdown(f"**Criteria:** {result.score_usage or 'STA Score (0~500)'}")

        with suspicion:
            st.subheader("AI Suspicion")
            st.markdown(f"**Suspicion:** {format_suspicion(result.ai_score) or 'Unknown'}")
            st.markdown(f"**Rationale:** {result.ai_reason or NOT_PROVIDED}")

        st.subheader("Summary")
        st.write(result.summary or "No summary was provided.")

    def render_history(self, records: List[HistoryRecord]) -> None:
        """Render a user's past analyses, newest first."""
        st.header("Analysis History")
        if not records:
            st.write("No analysis history found.")
            return

        for record in records:
            with st.container(border=True):
                st.subheader(record.title or "Untitled Paper")
                created = record.created_at.strftime("%Y-%m-%d") if record.created_at else ""
                st.caption(f"{created} · Score: {record.score} · AI: {record.ai_score}")
                st.write(record.summary or "")

    def _check_langfuse_config(self) -> bool:
        """Check if Langfuse monitoring is configured."""
        required_keys: List[str] = ["LANGFUSE_PUBLIC_KEY", "LANGFUSE_SECRET_KEY"]
        return all(os.getenv(key) for key in required_keys)
