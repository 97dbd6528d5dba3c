"""Document ingestion: extract text from an upload and store it."""

from __future__ import annotations

import logging

from leada.adapters.extractor_factory import extract_text, file_extension_for, is_supported_file_type
from leada.data.db import DocumentDB, UserDB
from leada.data.errors import NotFoundError
from leada.data.models import Document, DocumentCategory
from leada.ports.extractor_port import ExtractionError

logger = logging.getLogger(__name__)

CATEGORIES = {c.value for c in DocumentCategory}


class DocumentService:
    def __init__(self, document_db: DocumentDB, user_db: UserDB) -> None:
        self._documents = document_db
        self._users = user_db

    def ingest(
        self,
        user_id: str,
        filename: str,
        mimetype: str,
        data: bytes,
        category: str,
        uploaded_from: str | None = None,
    ) -> Document:
        """Extract the upload's text and store it as a document.

        Company documents are attached to the uploader's company and become
        part of the context of every user in that company.

        Raises:
            ValueError: unknown category or unsupported mimetype.
            NotFoundError: unknown user.
            ExtractionError: the file could not be read.
        """
        if category not in CATEGORIES:
            raise ValueError("Ungültige Kategorie. Erlaubt: personal, company")
        if not is_supported_file_type(mimetype):
            raise ValueError(f"Nicht unterstütztes Dateiformat: {mimetype}")

        user = self._users.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")

        file_type = file_extension_for(mimetype)
        logger.info("Extracting text from %s (%s)", filename, file_type)
        result = extract_text(data, file_type)
        if not result.ok:
            raise ExtractionError(result.error)

        company_id = user.company_id if category == DocumentCategory.COMPANY.value else None
        metadata = {
            "original_mimetype": mimetype,
            "word_count": result.word_count,
            "page_count": result.page_count,
        }
        if uploaded_from:
            metadata["uploaded_from"] = uploaded_from

        return self._documents.add_document(
            user_id,
            filename,
            file_type,
            len(data),
            category,
            result.text,
            metadata=metadata,
            company_id=company_id,
        )

    def list_documents(self, user_id: str, category: str | None = None) -> list[Document]:
        if category is not None and category not in CATEGORIES:
            category = None
        return self._documents.list_for_user(user_id, category)

    def get_document(self, user_id: str, document_id: str) -> Document:
        document = self._documents.get_document(document_id, user_id=user_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    def delete_document(self, user_id: str, document_id: str) -> None:
        if not self._documents.delete_document(document_id, user_id):
            raise NotFoundError(f"Document {document_id} not found")
