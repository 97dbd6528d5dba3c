"""Tests for the text extractor adapters and factory."""

import io

import pytest
from docx import Document
from pypdf import PdfWriter

from leada.adapters.docx_extractor import DocxExtractor
from leada.adapters.extractor_factory import (
    create_extractor,
    extract_text,
    file_extension_for,
    is_supported_file_type,
)
from leada.adapters.pdf_extractor import PdfExtractor
from leada.adapters.txt_extractor import TxtExtractor
from leada.ports.extractor_port import ExtractionError

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _docx_bytes() -> bytes:
    doc = Document()
    doc.add_paragraph("Unsere Führungsleitlinien")
    doc.add_paragraph("   ")
    doc.add_paragraph("Wir geben wöchentlich Feedback.")
    table = doc.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Wert"
    table.rows[0].cells[1].text = "Vertrauen"
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


def _pdf_bytes(pages: int = 2) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


class TestTxtExtractor:
    def test_utf8_with_bom(self):
        result = TxtExtractor().extract(b"\xef\xbb\xbf" + "Hallo Welt, schön!".encode("utf-8"))
        assert result.text == "Hallo Welt, schön!"
        assert result.word_count == 3
        assert result.ok

    def test_invalid_bytes_replaced(self):
        result = TxtExtractor().extract(b"abc \xff def")
        assert result.text.startswith("abc ")
        assert result.word_count == 3


class TestDocxExtractor:
    def test_paragraphs_then_tables(self):
        result = DocxExtractor().extract(_docx_bytes())
        assert result.text == (
            "Unsere Führungsleitlinien\nWir geben wöchentlich Feedback.\nWert | Vertrauen"
        )
        assert result.word_count == 9

    def test_garbage_raises(self):
        with pytest.raises(ExtractionError):
            DocxExtractor().extract(b"not a zip file")


class TestPdfExtractor:
    def test_page_count(self):
        result = PdfExtractor().extract(_pdf_bytes(3))
        assert result.page_count == 3
        assert result.text == ""
        assert result.word_count == 0

    def test_garbage_raises(self):
        with pytest.raises(ExtractionError):
            PdfExtractor().extract(b"%PDF-broken")


class TestFactory:
    @pytest.mark.parametrize("file_type, cls", [
        ("pdf", PdfExtractor), ("DOCX", DocxExtractor), ("doc", DocxExtractor), ("txt", TxtExtractor),
    ])
    def test_create_extractor(self, file_type, cls):
        assert isinstance(create_extractor(file_type), cls)

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            create_extractor("rtf")

    def test_extract_text_never_raises(self):
        assert extract_text(b"x", "rtf").error == "Nicht unterstütztes Dateiformat: rtf"
        result = extract_text(b"not a zip", "docx")
        assert not result.ok
        assert result.text == ""
        assert extract_text(b"Hallo", "txt").text == "Hallo"

    def test_mimetypes(self):
        assert is_supported_file_type(DOCX_MIME)
        assert not is_supported_file_type("image/png")
        assert file_extension_for("application/pdf") == "pdf"
        assert file_extension_for("image/png") == "unknown"
