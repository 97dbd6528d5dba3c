"""Tests for leada.core.document_service."""

import pytest

from leada.core.document_service import DocumentService
from leada.data.errors import NotFoundError
from leada.ports.extractor_port import ExtractionError


@pytest.fixture
def documents(document_db, user_db):
    return DocumentService(document_db, user_db)


class TestIngest:
    def test_personal_text_document(self, documents, user):
        doc = documents.ingest(user.id, "notizen.txt", "text/plain", "Mein Team wächst.".encode(), "personal")
        assert doc.file_type == "txt"
        assert doc.file_size == len("Mein Team wächst.".encode())
        assert doc.extracted_text == "Mein Team wächst."
        assert doc.company_id is None
        assert doc.metadata["original_mimetype"] == "text/plain"
        assert doc.metadata["word_count"] == 3

    def test_company_document_attached_to_company(self, documents, user_db, company_db):
        company = company_db.add_company("Acme")
        user = user_db.add_user("admin@acme.test", company_id=company.id, is_company_admin=True)
        doc = documents.ingest(user.id, "werte.txt", "text/plain", b"Vertrauen", "company")
        assert doc.company_id == company.id

    def test_invalid_category(self, documents, user):
        with pytest.raises(ValueError):
            documents.ingest(user.id, "a.txt", "text/plain", b"x", "secret")

    def test_unsupported_mimetype(self, documents, user):
        with pytest.raises(ValueError):
            documents.ingest(user.id, "a.png", "image/png", b"x", "personal")

    def test_unreadable_file(self, documents, document_db, user):
        with pytest.raises(ExtractionError):
            documents.ingest(user.id, "a.pdf", "application/pdf", b"garbage", "personal")
        assert document_db.list_for_user(user.id) == []

    def test_unknown_user(self, documents):
        with pytest.raises(NotFoundError):
            documents.ingest("missing", "a.txt", "text/plain", b"x", "personal")


class TestListAndDelete:
    def test_list_get_delete(self, documents, user_db, user):
        doc = documents.ingest(user.id, "a.txt", "text/plain", b"x", "personal")
        assert [d.id for d in documents.list_documents(user.id)] == [doc.id]
        assert [d.id for d in documents.list_documents(user.id, "bogus")] == [doc.id]
        assert documents.list_documents(user.id, "company") == []

        other = user_db.add_user("ben@example.com")
        with pytest.raises(NotFoundError):
            documents.get_document(other.id, doc.id)
        with pytest.raises(NotFoundError):
            documents.delete_document(other.id, doc.id)

        documents.delete_document(user.id, doc.id)
        with pytest.raises(NotFoundError):
            documents.get_document(user.id, doc.id)
