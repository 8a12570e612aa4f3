"""Tests for document upload, listing, download and deletion."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from studygroup.db.models import Document
from studygroup.services import documents, enrollments

PDF_BYTES = b"%PDF-1.4 study notes"


async def upload(db, user, cls, storage, notifier, filename="notes.pdf", data=PDF_BYTES, title="Week 1"):
    return await documents.upload_document(
        db,
        user,
        class_id=cls.id if cls is not None else None,
        title=title,
        filename=filename,
        data=data,
        storage=storage,
        notifier=notifier,
    )


async def document_count(db) -> int:
    return await db.scalar(select(func.count()).select_from(Document))


def test_storage_path_layout():
    user_id, class_id = uuid4(), uuid4()

    path = documents.build_storage_path(user_id, class_id, "My Notes (v2).pdf", timestamp_ms=1700000000000)

    assert path == f"{user_id}/{class_id}/1700000000000_My_Notes__v2_.pdf"


@pytest.mark.parametrize(
    "filename, expected",
    [("notes.PDF", "pdf"), ("archive.tar.gz", "gz"), ("README", "")],
)
def test_file_extension(filename, expected):
    assert documents.file_extension(filename) == expected


class TestUpload:
    async def test_upload_stores_then_records(
        self, db_session, professor, make_class, storage, notifier, ai_requests
    ):
        cls = await make_class(professor)

        result = await upload(db_session, professor, cls, storage, notifier)
        await notifier.drain()

        assert result.success is True
        assert result.document.title == "Week 1"
        assert result.document.file_type == "pdf"
        assert result.document.file_size == len(PDF_BYTES)
        assert storage.uploads == [result.document.storage_path]
        assert result.document.storage_path.startswith(f"{professor.id}/{cls.id}/")
        assert await document_count(db_session) == 1
        assert [r.url.path for r in ai_requests] == [f"/invalidate-cache/{cls.id}"]

    async def test_disallowed_extension_never_touches_storage(
        self, db_session, professor, make_class, storage, notifier
    ):
        cls = await make_class(professor)

        result = await upload(db_session, professor, cls, storage, notifier, filename="virus.exe")

        assert result.success is False
        assert result.reason == "invalid"
        assert result.error.startswith("File type .exe not allowed")
        assert storage.uploads == []
        assert await document_count(db_session) == 0

    async def test_missing_class_is_rejected(self, db_session, professor, storage, notifier):
        result = await upload(db_session, professor, None, storage, notifier)

        assert result.success is False
        assert result.error == "Class ID is required"
        assert storage.uploads == []

    async def test_missing_file_is_rejected(self, db_session, professor, make_class, storage, notifier):
        cls = await make_class(professor)

        result = await upload(db_session, professor, cls, storage, notifier, data=b"")

        assert result.error == "No file provided"
        assert storage.uploads == []

    async def test_outsider_cannot_upload(self, db_session, professor, student, make_class, storage, notifier):
        cls = await make_class(professor)

        result = await upload(db_session, student, cls, storage, notifier)

        assert result.success is False
        assert result.reason == "not_found"
        assert storage.uploads == []

    async def test_storage_failure_records_nothing(self, db_session, professor, make_class, storage, notifier):
        cls = await make_class(professor)
        storage.fail_upload = True

        result = await upload(db_session, professor, cls, storage, notifier)

        assert result.success is False
        assert result.reason == "backend"
        assert "simulated storage outage" in result.error
        assert await document_count(db_session) == 0

    async def test_failed_insert_removes_stored_object(
        self, db_session, professor, make_class, storage, notifier, monkeypatch, ai_requests
    ):
        cls = await make_class(professor)
        monkeypatch.setattr(
            db_session,
            "commit",
            AsyncMock(side_effect=OperationalError("INSERT INTO documents", {}, Exception("disk full"))),
        )

        result = await upload(db_session, professor, cls, storage, notifier)

        assert result.success is False
        assert result.reason == "backend"
        assert result.error.startswith("Database error.")
        assert len(storage.uploads) == 1
        assert storage.removed == storage.uploads
        assert storage.objects == {}
        assert notifier.pending == 0
        assert ai_requests == []


class TestListing:
    async def test_search_filters_own_documents(
        self, db_session, professor, make_class, make_document
    ):
        cls = await make_class(professor, name="Biology")
        await make_document(professor, cls, title="Cell structure")
        await make_document(professor, cls, title="Genetics review")

        found = await documents.list_my_documents(db_session, professor, search="gene")

        assert [d.title for d in found] == ["Genetics review"]
        assert found[0].class_name == "Biology"
        assert found[0].owner_name == "Prof. Ada"

    async def test_class_documents(self, db_session, professor, make_class, make_document):
        cls = await make_class(professor)
        other = await make_class(professor, name="Other")
        await make_document(professor, cls)
        await make_document(professor, other)

        found = await documents.list_class_documents(db_session, cls.id)

        assert len(found) == 1
        assert found[0].class_id == cls.id


class TestDownloadAndDelete:
    async def test_enrolled_student_gets_download_url(
        self, db_session, professor, student, make_class, make_document, storage
    ):
        cls = await make_class(professor)
        document = await make_document(professor, cls)
        await enrollments.enroll(db_session, student, cls.id)

        result = await documents.get_download_url(db_session, student, document.id, storage)

        assert result.success is True
        assert document.storage_path in result.url
        assert result.expires_in == 3600

    async def test_outsider_gets_not_found(self, db_session, professor, student, make_class, make_document, storage):
        cls = await make_class(professor)
        document = await make_document(professor, cls)

        result = await documents.get_download_url(db_session, student, document.id, storage)

        assert result.success is False
        assert result.reason == "not_found"

    async def test_only_owner_can_delete(
        self, db_session, professor, student, make_class, make_document, storage, notifier
    ):
        cls = await make_class(professor)
        document = await make_document(professor, cls)

        result = await documents.delete_document(db_session, student, document.id, storage, notifier)

        assert result.success is False
        assert result.reason == "forbidden"
        assert result.error == "Not authorized to delete this document"
        assert storage.removed == []

    async def test_delete_removes_object_row_and_invalidates(
        self, db_session, professor, make_class, make_document, storage, notifier, ai_requests
    ):
        cls = await make_class(professor)
        document = await make_document(professor, cls)
        storage_path = document.storage_path

        result = await documents.delete_document(db_session, professor, document.id, storage, notifier)
        await notifier.drain()

        assert result.success is True
        assert storage.removed == [storage_path]
        assert await document_count(db_session) == 0
        assert [r.url.path for r in ai_requests] == [f"/invalidate-cache/{cls.id}"]

    async def test_storage_failure_still_deletes_row(
        self, db_session, professor, make_class, make_document, storage, notifier, ai_requests
    ):
        cls = await make_class(professor)
        document = await make_document(professor, cls)
        storage_path = document.storage_path
        storage.fail_remove = True

        result = await documents.delete_document(db_session, professor, document.id, storage, notifier)
        await notifier.drain()

        assert result.success is True
        assert storage.removed == [storage_path]
        assert await document_count(db_session) == 0
        assert [r.url.path for r in ai_requests] == [f"/invalidate-cache/{cls.id}"]


class TestDocumentRoutes:
    async def test_multipart_upload(self, client, login, professor, make_class, storage):
        cls = await make_class(professor)
        login(professor)

        response = await client.post(
            "/documents/",
            data={"title": "Syllabus", "class_id": str(cls.id)},
            files={"file": ("syllabus.pdf", PDF_BYTES, "application/pdf")},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["document"]["title"] == "Syllabus"
        assert len(storage.uploads) == 1

    async def test_rejected_upload_is_400(self, client, login, professor, make_class, storage):
        cls = await make_class(professor)
        login(professor)

        response = await client.post(
            "/documents/",
            data={"title": "Setup", "class_id": str(cls.id)},
            files={"file": ("setup.exe", b"MZ", "application/octet-stream")},
        )

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert storage.uploads == []

    async def test_requires_authentication(self, client):
        response = await client.get("/documents/")

        assert response.status_code == 401
