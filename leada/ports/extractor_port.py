"""Text extractor port — abstract interface for turning uploads into text.

Document ingestion depends on this protocol, never on a specific parser
library.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class ExtractionError(Exception):
    """Raised when an extractor cannot read the given bytes."""


@dataclass
class ExtractionResult:
    """Plain text plus counts; `error` is set when extraction failed."""

    text: str
    page_count: int | None = None
    word_count: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def count_words(text: str) -> int:
    return len(text.split())


class TextExtractor(Protocol):
    """Abstract extractor used by the document service."""

    def extract(self, data: bytes) -> ExtractionResult: ...
