"""Model selector component for the STA reviewer application.

This module contains the ModelSelector class for rendering the model
tier selection control in the Streamlit application.
"""

from typing import Dict, List, Optional, Sequence

import streamlit as st

from ..config import Config, ModelOption
from ..exceptions import DenialReason
from ..ledger import CreditLedger, CreditSnapshot

__all__ = ["ModelSelector"]


class ModelSelector:
    """UI component for choosing a model tier.

    Every tier is listed with its cost. Tiers the user cannot use right
    now stay visible with the reason they are unavailable.
    """

    @staticmethod
    def option_caption(option: ModelOption, reason: Optional[DenialReason]) -> str:
        """Build the caption shown under a tier."""
        caption: str = option.helper
        if reason is not None:
            caption = f"{caption} · Unavailable: {reason.message}"
        return caption

    @staticmethod
    def option_label(option: ModelOption) -> str:
        if option.is_paid:
            return f"{option.label} ({option.cost} credits)"
        return option.label

    @staticmethod
    def denial_reasons(options: Sequence[ModelOption], ledger: CreditLedger,
                       user_id: Optional[str],
                       snapshot: Optional[CreditSnapshot]) -> Dict[str, Optional[DenialReason]]:
        """Evaluate the eligibility gate for every option."""
        return {
            option.identifier: ledger.denial_reason(option, user_id, snapshot)
            for option in options
        }

    def render(self, options: Sequence[ModelOption], ledger: CreditLedger,
               user_id: Optional[str], snapshot: Optional[CreditSnapshot],
               key: str = "model_selector") -> ModelOption:
        """Render the tier selector and return the selected option.

        Args:
            options: Available model tiers
            ledger: Credit ledger used to evaluate eligibility
            user_id: Current identity
            snapshot: Balance loaded for this run, None while loading
            key: Streamlit widget key

        Returns:
            The selected ModelOption
        """
        reasons = self.denial_reasons(options, ledger, user_id, snapshot)
        identifiers: List[str] = [option.identifier for option in options]
        by_id: Dict[str, ModelOption] = {option.identifier: option for option in options}
        default_index: int = identifiers.index(Config.DEFAULT_MODEL) if Config.DEFAULT_MODEL in identifiers else 0

        selected_id: str = st.radio(
            "Select Model:",
            identifiers,
            index=default_index,
            format_func=lambda identifier: self.option_label(by_id[identifier]),
            captions=[self.option_caption(option, reasons[option.identifier]) for option in options],
            key=key,
        )
        return by_id[selected_id]
