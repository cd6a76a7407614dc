"""Text extractor for the STA reviewer application.

This module contains the TextExtractor class for extracting text content
from PDF files using the pdfplumber library, and the UploadValidator that
screens uploads before extraction.
"""

import io
from pathlib import Path
from typing import Any, Dict, List, Optional

import pdfplumber
from loguru import logger

from ..config import Config
from ..exceptions import DocumentUnreadableError, NoFileSelectedError

__all__ = ["TextExtractor", "UploadValidator"]


class TextExtractor:
    """Extracts plain text from PDF files.

    Pages are visited in document order. Each page contributes its words,
    in the order pdfplumber reports them, joined by single spaces and
    followed by a newline. Columns, tables and reading order are not
    reconstructed.
    """

    @staticmethod
    def extract_text(pdf_bytes: bytes) -> str:
        """Extract text content from a PDF file.

        Args:
            pdf_bytes: Raw PDF file content as bytes

        Returns:
            One line per page, in page order

        Raises:
            DocumentUnreadableError: If the bytes cannot be opened as a PDF
        """
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                text_parts: List[str] = []
                for i, page in enumerate(pdf.pages):
                    text_parts.append(TextExtractor._page_text(page, i) + "\n")
                return "".join(text_parts)

        except Exception as e:
            raise DocumentUnreadableError(f"PDF reading error: {str(e)}")

    @staticmethod
    def _page_text(page: Any, index: int) -> str:
        try:
            words: List[Dict[str, Any]] = page.extract_words()
        except Exception as e:
            logger.warning("Failed to read words on page {}: {}", index + 1, e)
            return ""
        return " ".join(word["text"] for word in words if word.get("text"))


class UploadValidator:
    """Screens uploaded files before text extraction.

    Only PDF uploads are accepted. Checks run in order: presence, size,
    PDF magic number, file extension.
    """

    @staticmethod
    def validate(pdf_bytes: Optional[bytes], filename: Optional[str]) -> None:
        """Validate an uploaded PDF.

        Args:
            pdf_bytes: Raw upload content, None when nothing was chosen
            filename: Original filename

        Raises:
            NoFileSelectedError: If no file content was provided
            DocumentUnreadableError: If the upload is not an acceptable PDF
        """
        if not pdf_bytes:
            raise NoFileSelectedError()

        name: str = filename or "upload"
        if len(pdf_bytes) > Config.MAX_FILE_SIZE:
            raise DocumentUnreadableError(
                f"File {name} is too large. Maximum size: {Config.MAX_FILE_SIZE // (1024*1024)}MB"
            )
        if len(pdf_bytes) < Config.MIN_FILE_SIZE:
            raise DocumentUnreadableError(f"File {name} is too small or corrupted")
        if not pdf_bytes.startswith(b'%PDF'):
            raise DocumentUnreadableError(f"File {name} is not a valid PDF file")
        if filename and not filename.lower().endswith('.pdf'):
            raise DocumentUnreadableError(
                f"Invalid file extension. Expected .pdf, got: {Path(filename).suffix}"
            )
