"""
Raw text extraction from statement uploads.

PDF documents are read with pdfplumber; any other payload is treated as
UTF-8 text.
"""
import codecs
import io
from typing import Optional

import pdfplumber
import structlog

from ledgerflow.exceptions import ExtractionFailure

logger = structlog.get_logger(__name__)

PDF_MAGIC = b"%PDF"


class TextExtractor:
    """Turns raw statement bytes into plain text."""

    def extract_text(self, raw: bytes, password: Optional[str] = None) -> str:
        """
        Extract text from a statement payload.

        Args:
            raw: Uploaded bytes.
            password: Password for encrypted PDFs.

        Returns:
            Extracted text, never empty.

        Raises:
            ExtractionFailure: If the payload cannot be read or holds no text.
        """
        if not raw:
            raise ExtractionFailure("Statement payload is empty")

        if raw.startswith(PDF_MAGIC):
            text = self._extract_pdf(raw, password)
        else:
            text = self._decode_text(raw)

        if not text.strip():
            raise ExtractionFailure("No text could be extracted from the statement")
        return text

    def _extract_pdf(self, raw: bytes, password: Optional[str]) -> str:
        try:
            with pdfplumber.open(io.BytesIO(raw), password=password or "") as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except Exception as e:
            logger.error("pdf_text_extraction_failed", error=str(e))
            raise ExtractionFailure(
                f"Failed to read PDF statement: {e}",
                details={"format": "pdf"},
            ) from e

        logger.debug("pdf_text_extracted", page_count=len(pages))
        return "\n".join(pages)

    def _decode_text(self, raw: bytes) -> str:
        if raw.startswith(codecs.BOM_UTF8):
            raw = raw[len(codecs.BOM_UTF8):]
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ExtractionFailure(
                "Statement is neither a PDF nor UTF-8 text",
                details={"format": "text", "position": e.start},
            ) from e
