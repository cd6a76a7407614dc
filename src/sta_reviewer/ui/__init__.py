"""UI module for the STA reviewer application.

This module contains user interface components for the Streamlit application
including the model tier selector and the main UI renderer.
"""

from .model_selector import ModelSelector
from .ui_renderer import UIRenderer

__all__ = ["ModelSelector", "UIRenderer"]
