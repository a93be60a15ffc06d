"""PDF text extraction with fallback chain: pdfplumber -> pypdf."""

from __future__ import annotations

import asyncio
import io
from pathlib import Path

import structlog

from cv_screener_core.constants import MIN_PDF_TEXT_CHARS, PDF_SIGNATURE
from cv_screener_core.exceptions import EncryptedPDFError, InvalidFileError, ScannedPDFError

logger = structlog.get_logger()


class PDFParser:
    """Extract text from PDF uploads with multiple fallback strategies."""

    def __init__(self, max_size_mb: float = 10.0, max_chars: int = 100_000) -> None:
        """Initialize with upload size and text length limits."""
        self._max_size_mb = max_size_mb
        self._max_chars = max_chars

    async def extract_text(self, path: Path) -> str:
        """Extract text from a PDF file on disk.

        Raises:
            InvalidFileError: If the file is missing or not a PDF.
            EncryptedPDFError: If the PDF is password-protected.
            ScannedPDFError: If the PDF has no text layer.
        """
        if not path.exists():
            msg = f"File not found: {path}"
            raise InvalidFileError(msg)
        if path.suffix.lower() != ".pdf":
            msg = f"Expected PDF file, got: {path.suffix}"
            raise InvalidFileError(msg)
        data = await asyncio.to_thread(path.read_bytes)
        return await self.extract_bytes(data, path.name)

    async def extract_bytes(self, data: bytes, file_name: str) -> str:
        """Extract text from an in-memory PDF upload.

        Tries pdfplumber first, then pypdf. The result is truncated to
        ``max_chars``.
        """
        self._validate(data, file_name)

        text = await self._try_pdfplumber(data, file_name)
        if text and len(text.strip()) > MIN_PDF_TEXT_CHARS:
            return text[: self._max_chars]

        text = await self._try_pypdf(data, file_name)
        if text and len(text.strip()) > MIN_PDF_TEXT_CHARS:
            return text[: self._max_chars]

        msg = f"PDF appears to be scanned/image-only with no extractable text: {file_name}"
        raise ScannedPDFError(msg)

    def _validate(self, data: bytes, file_name: str) -> None:
        """Check the PDF signature and upload size."""
        if not data.startswith(PDF_SIGNATURE):
            msg = f"Not a valid PDF file: {file_name}"
            raise InvalidFileError(msg)
        size_mb = len(data) / (1024 * 1024)
        if size_mb > self._max_size_mb:
            msg = f"PDF exceeds {self._max_size_mb:g} MB: {file_name} ({size_mb:.1f} MB)"
            raise InvalidFileError(msg)

    async def _try_pdfplumber(self, data: bytes, file_name: str) -> str | None:
        """Try extracting text with pdfplumber."""
        try:
            import pdfplumber

            def _extract() -> str:
                pages_text: list[str] = []
                with pdfplumber.open(io.BytesIO(data)) as pdf:
                    for page in pdf.pages:
                        text = page.extract_text()
                        if text:
                            pages_text.append(text)
                return "\n\n".join(pages_text)

            return await asyncio.to_thread(_extract)
        except Exception as e:
            if "password" in str(e).lower() or "encrypted" in str(e).lower():
                msg = f"PDF is password-protected: {file_name}"
                raise EncryptedPDFError(msg) from e
            logger.debug("pdfplumber_fallback", file_name=file_name, error=str(e))
            return None

    async def _try_pypdf(self, data: bytes, file_name: str) -> str | None:
        """Try extracting text with pypdf (lightweight fallback)."""
        try:
            from pypdf import PdfReader

            def _extract() -> str:
                reader = PdfReader(io.BytesIO(data))
                if reader.is_encrypted:
                    msg = f"PDF is password-protected: {file_name}"
                    raise EncryptedPDFError(msg)
                pages_text: list[str] = []
                for page in reader.pages:
                    text = page.extract_text()
                    if text:
                        pages_text.append(text)
                return "\n\n".join(pages_text)

            return await asyncio.to_thread(_extract)
        except EncryptedPDFError:
            raise
        except Exception as e:
            logger.debug("pypdf_fallback", file_name=file_name, error=str(e))
            return None
