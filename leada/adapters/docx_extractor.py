"""Word document text extraction via python-docx."""

from __future__ import annotations

import io
import logging
import zipfile

from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from leada.ports.extractor_port import ExtractionError, ExtractionResult, count_words

logger = logging.getLogger(__name__)


class DocxExtractor:
    """Implements TextExtractor for .docx files.

    Paragraph text first, then table cells row by row (pipe-delimited).
    Legacy binary .doc files are not readable by python-docx and fail with
    an ExtractionError.
    """

    def extract(self, data: bytes) -> ExtractionResult:
        try:
            doc = Document(io.BytesIO(data))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
            raise ExtractionError(f"Fehler beim Extrahieren des DOCX-Texts: {exc}") from exc

        parts = [p.text for p in doc.paragraphs if p.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    parts.append(" | ".join(cells))

        text = "\n".join(parts)
        logger.debug("Extracted %d text blocks from DOCX", len(parts))
        return ExtractionResult(text=text, word_count=count_words(text))
