"""Tests for ContentStore — file-per-record content lifecycle store."""

import asyncio
import json
from pathlib import Path

import pytest

from folio.content.models import ContentStatus
from folio.content.store import ContentStore
from folio.errors import ConflictError, NotFoundError, RecordValidationError, StorageError


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_then_read_returns_data_plus_system_fields(self, store: ContentStore):
        data = {"title": "Hello", "tags": ["a"], "meta": {"views": 3}}
        created = await store.create("posts", data)

        fetched = await store.read("posts", created.id)
        assert fetched is not None
        record = fetched.to_record()
        assert record["title"] == "Hello"
        assert record["tags"] == ["a"]
        assert record["meta"] == {"views": 3}
        assert record["status"] == "draft"
        assert record["createdAt"] == record["updatedAt"]
        assert "publishedAt" not in record

    @pytest.mark.asyncio
    async def test_assigns_uuid_when_id_missing(self, store: ContentStore):
        first = await store.create("posts", {"title": "One"})
        second = await store.create("posts", {"title": "Two"})
        assert first.id
        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_keeps_explicit_id_and_created_at(self, store: ContentStore):
        item = await store.create(
            "posts", {"id": "hello", "title": "Hi", "createdAt": "2020-05-01T00:00:00.000Z"}
        )
        assert item.id == "hello"
        assert item.created_at == "2020-05-01T00:00:00.000Z"

    @pytest.mark.asyncio
    async def test_published_create_stamps_published_at(self, store: ContentStore):
        item = await store.create("posts", {"title": "Live", "status": "published"})
        assert item.status == ContentStatus.PUBLISHED
        assert item.published_at == item.created_at

    @pytest.mark.asyncio
    async def test_explicit_published_at_preserved(self, store: ContentStore):
        item = await store.create(
            "posts",
            {"title": "Live", "status": "published", "publishedAt": "2021-01-01T00:00:00.000Z"},
        )
        assert item.published_at == "2021-01-01T00:00:00.000Z"

    @pytest.mark.asyncio
    async def test_duplicate_id_conflicts(self, store: ContentStore):
        await store.create("posts", {"id": "dup", "title": "First"})
        with pytest.raises(ConflictError, match="dup"):
            await store.create("posts", {"id": "dup", "title": "Second"})

        fetched = await store.read("posts", "dup")
        assert fetched is not None
        assert fetched.get("title") == "First"

    @pytest.mark.asyncio
    async def test_same_id_in_other_type_is_allowed(self, store: ContentStore):
        await store.create("posts", {"id": "shared", "title": "Post"})
        await store.create("pages", {"id": "shared", "title": "Page"})
        assert await store.exists("pages", "shared")

    @pytest.mark.asyncio
    async def test_file_layout_and_format(self, store: ContentStore):
        await store.create("posts", {"id": "hello", "title": "Hello"})

        path = store.content_dir / "posts" / "hello.json"
        assert path.exists()
        text = path.read_text(encoding="utf-8")
        assert text.startswith('{\n  "')
        assert json.loads(text)["title"] == "Hello"
        assert not [p for p in path.parent.iterdir() if p.name.endswith(".tmp")]

    @pytest.mark.asyncio
    async def test_rejects_invalid_status(self, store: ContentStore):
        with pytest.raises(RecordValidationError):
            await store.create("posts", {"title": "Bad", "status": "pending"})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("item_id", ["../escape", "a/b", ".hidden"])
    async def test_rejects_unsafe_ids(self, store: ContentStore, item_id: str):
        with pytest.raises(RecordValidationError):
            await store.create("posts", {"id": item_id, "title": "Nope"})


class TestRead:
    @pytest.mark.asyncio
    async def test_returns_none_for_missing(self, store: ContentStore):
        assert await store.read("posts", "nonexistent") is None

    @pytest.mark.asyncio
    async def test_malformed_file_raises_storage_error(self, store: ContentStore):
        path = store.record_path("posts", "broken")
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StorageError):
            await store.read("posts", "broken")


class TestUpdate:
    @pytest.mark.asyncio
    async def test_missing_record_raises_not_found(self, store: ContentStore):
        with pytest.raises(NotFoundError):
            await store.update("posts", "ghost", {"title": "Boo"})

    @pytest.mark.asyncio
    async def test_merges_fields(self, store: ContentStore):
        await store.create("posts", {"id": "p", "title": "Old", "body": "Keep me"})
        updated = await store.update("posts", "p", {"title": "New"})

        assert updated.get("title") == "New"
        assert updated.get("body") == "Keep me"

    @pytest.mark.asyncio
    async def test_id_and_created_at_are_immutable(self, store: ContentStore):
        created = await store.create("posts", {"id": "p", "title": "Old"})
        updated = await store.update(
            "posts", "p", {"id": "other", "createdAt": "1999-01-01T00:00:00.000Z"}
        )

        assert updated.id == "p"
        assert updated.created_at == created.created_at
        assert not await store.exists("posts", "other")

    @pytest.mark.asyncio
    async def test_updated_at_is_monotonic(self, store: ContentStore):
        created = await store.create("posts", {"id": "p", "title": "Old"})
        previous = created.updated_at
        for n in range(3):
            updated = await store.update("posts", "p", {"n": n})
            assert updated.updated_at >= previous
            previous = updated.updated_at

    @pytest.mark.asyncio
    async def test_updated_at_never_moves_backwards(self, store: ContentStore):
        await store.create("posts", {"id": "p", "title": "Old"})
        path = store.record_path("posts", "p")
        record = json.loads(path.read_text(encoding="utf-8"))
        record["updatedAt"] = "2999-01-01T00:00:00.000Z"
        path.write_text(json.dumps(record), encoding="utf-8")

        updated = await store.update("posts", "p", {"title": "New"})
        assert updated.updated_at == "2999-01-01T00:00:00.000Z"

    @pytest.mark.asyncio
    async def test_publishing_sets_published_at_once(self, store: ContentStore):
        await store.create("posts", {"id": "p", "title": "Draft"})
        published = await store.update("posts", "p", {"status": "published"})
        assert published.published_at is not None

        edited = await store.update("posts", "p", {"title": "Edited"})
        assert edited.published_at == published.published_at

        republished = await store.update("posts", "p", {"status": "published"})
        assert republished.published_at == published.published_at

    @pytest.mark.asyncio
    async def test_explicit_published_at_wins(self, store: ContentStore):
        await store.create("posts", {"id": "p", "title": "Draft", "status": "published"})
        updated = await store.update("posts", "p", {"publishedAt": "2020-01-01T00:00:00.000Z"})
        assert updated.published_at == "2020-01-01T00:00:00.000Z"

    @pytest.mark.asyncio
    async def test_explicit_null_published_at_clears(self, store: ContentStore):
        await store.create("posts", {"id": "p", "title": "Live", "status": "published"})
        updated = await store.update("posts", "p", {"status": "draft", "publishedAt": None})
        assert updated.published_at is None
        assert "publishedAt" not in updated.to_record()

    @pytest.mark.asyncio
    async def test_status_unchanged_when_not_supplied(self, store: ContentStore):
        await store.create("posts", {"id": "p", "title": "A", "status": "archived"})
        updated = await store.update("posts", "p", {"title": "B"})
        assert updated.status == ContentStatus.ARCHIVED

    @pytest.mark.asyncio
    async def test_snapshots_previous_state(self, store: ContentStore):
        await store.create("posts", {"id": "p", "title": "First"})
        await store.update("posts", "p", {"title": "Second"})

        versions = await store.versions.list_versions("posts", "p")
        assert len(versions) == 1
        assert versions[0].get("title") == "First"

    @pytest.mark.asyncio
    async def test_invalid_update_leaves_record_and_history_untouched(self, store: ContentStore):
        await store.create("posts", {"id": "p", "title": "First"})
        with pytest.raises(RecordValidationError):
            await store.update("posts", "p", {"status": "bogus"})

        fetched = await store.read("posts", "p")
        assert fetched is not None
        assert fetched.status == ContentStatus.DRAFT
        assert await store.versions.list_versions("posts", "p") == []

    @pytest.mark.asyncio
    async def test_snapshot_os_error_does_not_abort_update(
        self, store: ContentStore, monkeypatch, caplog
    ):
        await store.create("posts", {"id": "p", "title": "First"})

        async def fail(*args, **kwargs):
            raise PermissionError("versions directory is read-only")

        monkeypatch.setattr(store.versions, "create_version", fail)
        updated = await store.update("posts", "p", {"title": "Second"})

        assert updated.get("title") == "Second"
        fetched = await store.read("posts", "p")
        assert fetched is not None
        assert fetched.get("title") == "Second"
        assert "Could not create version" in caplog.text

    @pytest.mark.asyncio
    async def test_replace_drops_fields_missing_from_data(self, store: ContentStore):
        created = await store.create(
            "posts", {"id": "p", "title": "First", "category": "news", "status": "published"}
        )
        replaced = await store.update(
            "posts", "p", {"title": "Only", "status": "draft"}, replace=True
        )

        record = replaced.to_record()
        assert record["title"] == "Only"
        assert "category" not in record
        assert "publishedAt" not in record
        assert record["createdAt"] == created.created_at
        assert len(await store.versions.list_versions("posts", "p")) == 1

    @pytest.mark.asyncio
    async def test_versioning_disabled_skips_snapshots(self, tmp_path: Path):
        store = ContentStore(tmp_path, versioning_enabled=False)
        await store.create("posts", {"id": "p", "title": "First"})
        await store.update("posts", "p", {"title": "Second"})
        assert await store.versions.list_versions("posts", "p") == []

    @pytest.mark.asyncio
    async def test_concurrent_updates_all_apply(self, store: ContentStore):
        await store.create("posts", {"id": "p", "title": "Start"})
        await asyncio.gather(
            *(store.update("posts", "p", {f"field{n}": n}) for n in range(5))
        )

        fetched = await store.read("posts", "p")
        assert fetched is not None
        record = fetched.to_record()
        assert all(record[f"field{n}"] == n for n in range(5))
        assert len(await store.versions.list_versions("posts", "p")) == 5


class TestDelete:
    @pytest.mark.asyncio
    async def test_missing_record_returns_false(self, store: ContentStore):
        assert await store.delete("posts", "nonexistent") is False

    @pytest.mark.asyncio
    async def test_removes_record_and_versions(self, store: ContentStore):
        await store.create("posts", {"id": "p", "title": "One"})
        await store.update("posts", "p", {"title": "Two"})

        assert await store.delete("posts", "p") is True
        assert await store.read("posts", "p") is None
        assert await store.versions.list_versions("posts", "p") == []
        assert not store.versions.versions_dir("posts", "p").exists()


class TestList:
    @pytest.mark.asyncio
    async def test_empty_for_unknown_type(self, store: ContentStore):
        assert await store.list("nothing") == []

    @pytest.mark.asyncio
    async def test_ordered_by_file_name(self, store: ContentStore):
        for item_id in ("charlie", "alpha", "bravo"):
            await store.create("posts", {"id": item_id, "title": item_id})

        items = await store.list("posts")
        assert [item.id for item in items] == ["alpha", "bravo", "charlie"]

    @pytest.mark.asyncio
    async def test_skips_malformed_files(self, store: ContentStore, caplog):
        await store.create("posts", {"id": "good", "title": "Good"})
        (store.type_dir("posts") / "broken.json").write_text("{oops", encoding="utf-8")
        (store.type_dir("posts") / "invalid.json").write_text(
            json.dumps({"id": "invalid", "status": "weird"}), encoding="utf-8"
        )

        items = await store.list("posts")
        assert [item.id for item in items] == ["good"]
        assert "broken.json" in caplog.text

    @pytest.mark.asyncio
    async def test_ignores_version_directories_and_other_files(self, store: ContentStore):
        await store.create("posts", {"id": "p", "title": "One"})
        await store.update("posts", "p", {"title": "Two"})
        (store.type_dir("posts") / "notes.txt").write_text("hi", encoding="utf-8")

        items = await store.list("posts")
        assert [item.id for item in items] == ["p"]

    @pytest.mark.asyncio
    async def test_custom_extension(self, tmp_path: Path):
        store = ContentStore(tmp_path, extension="data")
        await store.create("posts", {"id": "p", "title": "One"})
        assert (tmp_path / "posts" / "p.data").exists()
        assert [item.id for item in await store.list("posts")] == ["p"]
