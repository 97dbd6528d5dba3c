"""Tests for leada.data.db — DocumentDB and AuditDB."""

from leada.data.models import DocumentCategory


class TestDocumentDB:
    def test_add_and_get(self, document_db, user):
        doc = document_db.add_document(
            user.id, "cv.pdf", "pdf", 1024, DocumentCategory.PERSONAL.value,
            "Lebenslauf", metadata={"page_count": 2},
        )
        fetched = document_db.get_document(doc.id)
        assert fetched.filename == "cv.pdf"
        assert fetched.extracted_text == "Lebenslauf"
        assert fetched.metadata == {"page_count": 2}

    def test_get_scoped_to_owner(self, document_db, user):
        doc = document_db.add_document(user.id, "a.txt", "txt", 3, "personal", "abc")
        assert document_db.get_document(doc.id, user_id="someone-else") is None
        assert document_db.get_document(doc.id, user_id=user.id) is not None

    def test_list_for_user_by_category(self, document_db, user):
        document_db.add_document(user.id, "a.txt", "txt", 3, "personal", "abc")
        document_db.add_document(user.id, "b.txt", "txt", 3, "company", "def", company_id="c1")
        assert len(document_db.list_for_user(user.id)) == 2
        assert [d.filename for d in document_db.list_for_user(user.id, "company")] == ["b.txt"]

    def test_company_documents_only_company_category(self, document_db, user):
        document_db.add_document(user.id, "a.txt", "txt", 3, "personal", "abc", company_id="c1")
        document_db.add_document(user.id, "b.txt", "txt", 3, "company", "def", company_id="c1")
        assert [d.filename for d in document_db.list_company_documents("c1")] == ["b.txt"]

    def test_delete_only_by_owner(self, document_db, user):
        doc = document_db.add_document(user.id, "a.txt", "txt", 3, "personal", "abc")
        assert document_db.delete_document(doc.id, "someone-else") is False
        assert document_db.delete_document(doc.id, user.id) is True
        assert document_db.get_document(doc.id) is None


class TestAuditDB:
    def test_add_and_list(self, audit_db):
        audit_db.add_entry("admin-1", "user_view", target_id="u1", details={"tab": "profile"})
        entries, total = audit_db.list_entries()
        assert total == 1
        assert entries[0].action == "user_view"
        assert entries[0].details == {"tab": "profile"}

    def test_filters_and_pagination(self, audit_db):
        for i in range(5):
            audit_db.add_entry("admin-1", "user_list", details={"i": i})
        audit_db.add_entry("admin-2", "login")

        entries, total = audit_db.list_entries(actor_id="admin-1", limit=2, offset=0)
        assert total == 5
        assert len(entries) == 2
        # newest first
        assert entries[0].details == {"i": 4}

        entries, total = audit_db.list_entries(action="login")
        assert total == 1
        assert entries[0].actor_id == "admin-2"
