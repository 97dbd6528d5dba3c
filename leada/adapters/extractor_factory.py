"""Text extractor factory — picks the adapter for a file type.

`extract_text()` is the pure entry point used by document ingestion: it
never raises, failures come back as `ExtractionResult.error`.
"""

from __future__ import annotations

import logging

from leada.ports.extractor_port import ExtractionError, ExtractionResult, TextExtractor

logger = logging.getLogger(__name__)

MIMETYPE_EXTENSIONS: dict[str, str] = {
    "application/pdf": "pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/msword": "doc",
    "text/plain": "txt",
}


def create_extractor(file_type: str) -> TextExtractor:
    """Return the extractor for a file type ("pdf", "docx", "doc", "txt")."""
    normalized = file_type.lower()

    if normalized == "pdf":
        from leada.adapters.pdf_extractor import PdfExtractor

        return PdfExtractor()

    if normalized in ("docx", "doc"):
        from leada.adapters.docx_extractor import DocxExtractor

        return DocxExtractor()

    if normalized == "txt":
        from leada.adapters.txt_extractor import TxtExtractor

        return TxtExtractor()

    raise ValueError(f"Unsupported file type: {file_type!r}")


def extract_text(data: bytes, file_type: str) -> ExtractionResult:
    try:
        extractor = create_extractor(file_type)
    except ValueError:
        return ExtractionResult(text="", error=f"Nicht unterstütztes Dateiformat: {file_type}")

    try:
        return extractor.extract(data)
    except ExtractionError as exc:
        logger.error("Text extraction failed (%s): %s", file_type, exc)
        return ExtractionResult(text="", error=str(exc))


def is_supported_file_type(mimetype: str) -> bool:
    return mimetype in MIMETYPE_EXTENSIONS


def file_extension_for(mimetype: str) -> str:
    """Map a mimetype to its file type, or "unknown"."""
    return MIMETYPE_EXTENSIONS.get(mimetype, "unknown")
