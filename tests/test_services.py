import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from fitscore.models.models import ScoreBreakdown
from fitscore.models.schemas import ScoringResult
from fitscore.services.cleanup import DeferredDeletionQueue
from fitscore.services.document_store import DocumentStore
from fitscore.services.result_store import ProfileStore, ResultStore
from fitscore.utils.exceptions import PersistenceError

from conftest import FakeDocumentStore


def _result(profile_id="user-1", score=70, created_at=None):
    return ScoringResult(
        profile_id=profile_id,
        score=score,
        breakdown=ScoreBreakdown(technical_skills=20),
        suggestions=["a", "b", "c", "d", "e"],
        document_source="profile-resume",
        analysis_type="resume",
        created_at=created_at or datetime.utcnow(),
    )


class TestDocumentStore:

    def test_upload_fetch_delete(self, tmp_path):
        store = DocumentStore(str(tmp_path / "uploads"))

        locator = store.upload("my resume (final).pdf", b"content")

        assert locator.endswith("my_resume_final_.pdf")
        assert store.fetch(locator) == b"content"
        assert store.delete(locator) is True
        assert store.delete(locator) is False
        with pytest.raises(FileNotFoundError):
            store.fetch(locator)

    def test_delete_refuses_paths_outside_upload_dir(self, tmp_path):
        outside = tmp_path / "keep.txt"
        outside.write_text("keep me")
        store = DocumentStore(str(tmp_path / "uploads"))

        assert store.delete(str(outside)) is False
        assert outside.exists()

    def test_fetch_refuses_paths_outside_upload_dir(self, tmp_path):
        secret = tmp_path / "secret.txt"
        secret.write_text("credentials")
        store = DocumentStore(str(tmp_path / "uploads"))

        with pytest.raises(FileNotFoundError):
            store.fetch(str(secret))
        with pytest.raises(FileNotFoundError):
            store.fetch(str(tmp_path / "uploads" / ".." / "secret.txt"))

    def test_delete_refuses_remote(self, tmp_path):
        assert DocumentStore(str(tmp_path)).delete("https://files.example.com/a.pdf") is False

    @patch("fitscore.services.document_store.requests.get")
    def test_fetch_remote_not_found(self, mock_get, tmp_path):
        mock_get.return_value = MagicMock(status_code=404)

        with pytest.raises(FileNotFoundError):
            DocumentStore(str(tmp_path)).fetch("https://files.example.com/a.pdf")

    @patch("fitscore.services.document_store.requests.get")
    def test_fetch_remote(self, mock_get, tmp_path):
        mock_get.return_value = MagicMock(status_code=200, content=b"%PDF-1.7")

        assert DocumentStore(str(tmp_path)).fetch("https://files.example.com/a.pdf") == b"%PDF-1.7"


class TestDeferredDeletionQueue:

    @pytest.mark.asyncio
    async def test_deletes_after_drain(self):
        store = FakeDocumentStore({"mem://a": b"a", "mem://b": b"b"})
        queue = DeferredDeletionQueue(store, delay_seconds=0)

        task = queue.submit(["mem://a", None, "mem://b"])
        assert task is not None
        await queue.drain()

        assert store.deleted == ["mem://a", "mem://b"]
        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_nothing_to_delete(self):
        queue = DeferredDeletionQueue(FakeDocumentStore(), delay_seconds=0)
        assert queue.submit([]) is None
        await queue.drain()

    @pytest.mark.asyncio
    async def test_failures_are_swallowed(self):
        store = FakeDocumentStore({"mem://b": b"b"})
        store.delete = MagicMock(side_effect=[OSError("disk gone"), True])
        queue = DeferredDeletionQueue(store, delay_seconds=0)

        queue.submit(["mem://a", "mem://b"])
        await queue.drain()

        assert store.delete.call_count == 2

    @pytest.mark.asyncio
    async def test_submit_does_not_wait_for_delay(self):
        store = FakeDocumentStore({"mem://a": b"a"})
        queue = DeferredDeletionQueue(store, delay_seconds=60)

        queue.submit(["mem://a"])

        assert queue.pending == 1
        assert store.deleted == []
        for task in list(queue._tasks):
            task.cancel()
        await asyncio.sleep(0)


class TestResultStore:

    @pytest.mark.asyncio
    async def test_insert(self):
        collection = MagicMock()
        collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id="abc"))

        inserted_id = await ResultStore(collection).insert(_result())

        assert inserted_id == "abc"
        doc = collection.insert_one.call_args.args[0]
        assert doc["document_source"] == "profile-resume"
        assert doc["breakdown"]["technical_skills"] == 20

    @pytest.mark.asyncio
    async def test_insert_failure_is_persistence_error(self):
        collection = MagicMock()
        collection.insert_one = AsyncMock(side_effect=RuntimeError("connection refused"))

        with pytest.raises(PersistenceError) as exc_info:
            await ResultStore(collection).insert(_result())

        assert exc_info.value.details["collection"] == "score_analyses"

    @pytest.mark.asyncio
    async def test_find_by_profile(self):
        now = datetime.utcnow()
        docs = [
            {"_id": "1", **_result(score=90, created_at=now).model_dump()},
            {"_id": "2", **_result(score=40, created_at=now - timedelta(days=1)).model_dump()},
        ]
        cursor = MagicMock()
        cursor.sort.return_value = cursor
        cursor.limit.return_value = cursor
        cursor.to_list = AsyncMock(return_value=docs)
        collection = MagicMock()
        collection.find.return_value = cursor

        found = await ResultStore(collection).find_by_profile("user-1", limit=10)

        assert [r.score for r in found] == [90, 40]
        collection.find.assert_called_once_with({"profile_id": "user-1"})
        cursor.sort.assert_called_once_with("created_at", -1)
        cursor.limit.assert_called_once_with(10)

    @pytest.mark.asyncio
    async def test_find_by_profile_invalid_document_is_persistence_error(self):
        bad = {"_id": "1", **_result().model_dump()}
        bad["score"] = 500
        cursor = MagicMock()
        cursor.sort.return_value = cursor
        cursor.limit.return_value = cursor
        cursor.to_list = AsyncMock(return_value=[bad])
        collection = MagicMock()
        collection.find.return_value = cursor

        with pytest.raises(PersistenceError) as exc_info:
            await ResultStore(collection).find_by_profile("user-1")

        assert exc_info.value.details["profile_id"] == "user-1"


class TestProfileStore:

    @pytest.mark.asyncio
    async def test_object_id_lookup(self):
        from bson import ObjectId

        collection = MagicMock()
        collection.find_one = AsyncMock(return_value={"pdf": {}})
        oid = str(ObjectId())

        assert await ProfileStore(collection).get(oid) == {"pdf": {}}
        assert collection.find_one.call_args.args[0] == {"_id": ObjectId(oid)}

    @pytest.mark.asyncio
    async def test_plain_id_lookup(self):
        collection = MagicMock()
        collection.find_one = AsyncMock(return_value=None)

        assert await ProfileStore(collection).get("user-1") is None
        assert collection.find_one.call_args.args[0] == {"_id": "user-1"}
