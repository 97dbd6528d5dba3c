"""PDF text extraction via pypdf."""

from __future__ import annotations

import io
import logging

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from leada.ports.extractor_port import ExtractionError, ExtractionResult, count_words

logger = logging.getLogger(__name__)


class PdfExtractor:
    """Implements TextExtractor for PDF files."""

    def extract(self, data: bytes) -> ExtractionResult:
        try:
            reader = PdfReader(io.BytesIO(data))
            pages = [page.extract_text() or "" for page in reader.pages]
        except (PdfReadError, ValueError, OSError) as exc:
            raise ExtractionError(f"Fehler beim Extrahieren des PDF-Texts: {exc}") from exc

        text = "\n".join(pages).strip()
        logger.debug("Extracted %d pages from PDF", len(pages))
        return ExtractionResult(
            text=text,
            page_count=len(pages),
            word_count=count_words(text),
        )
