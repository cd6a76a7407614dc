"""Extractors module for the STA reviewer application.

This module contains PDF upload validation and plain-text extraction.
"""

from .text_extractor import TextExtractor, UploadValidator

__all__ = ["TextExtractor", "UploadValidator"]
