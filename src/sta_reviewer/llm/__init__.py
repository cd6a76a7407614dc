"""LLM module for the STA reviewer application.

This module contains the review prompt builder and the OpenAI model client.
"""

from .prompt_builder import SYSTEM_PROMPT, build_review_prompt
from .model_client import ModelClient

__all__ = ["SYSTEM_PROMPT", "build_review_prompt", "ModelClient"]
