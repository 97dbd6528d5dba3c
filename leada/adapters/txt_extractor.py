"""Plain-text extraction."""

from __future__ import annotations

from leada.ports.extractor_port import ExtractionResult, count_words


class TxtExtractor:
    """Implements TextExtractor for UTF-8 text; undecodable bytes are replaced."""

    def extract(self, data: bytes) -> ExtractionResult:
        text = data.decode("utf-8", errors="replace")
        if text.startswith("\ufeff"):
            text = text[1:]
        return ExtractionResult(text=text, word_count=count_words(text))
