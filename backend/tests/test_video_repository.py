"""
Tests for the Motor-backed video repository, against a mocked collection
and a dict-backed one.
"""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from pymongo import DESCENDING, ReturnDocument

from tubely.models.video import VideoRecord
from tubely.services.errors import VideoNotFoundError
from tubely.services.video_repository import VideoRepository

from conftest import InMemoryVideoCollection


class FakeCursor:
    """Chainable stand-in for an AsyncIOMotorCursor."""

    def __init__(self, documents: list[dict[str, Any]]) -> None:
        self.documents = documents
        self.sort_args: tuple = ()
        self.limit_value: int | None = None

    def sort(self, *args: Any) -> "FakeCursor":
        self.sort_args = args
        return self

    def limit(self, value: int) -> "FakeCursor":
        self.limit_value = value
        return self

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for document in self.documents:
            yield document


@pytest.fixture
def collection() -> Mock:
    mock = Mock()
    mock.find_one = AsyncMock(return_value=None)
    mock.insert_one = AsyncMock()
    mock.find_one_and_update = AsyncMock(return_value=None)
    mock.delete_one = AsyncMock(return_value=Mock(deleted_count=1))
    return mock


@pytest.fixture
def repository(collection: Mock) -> VideoRepository:
    return VideoRepository(collection)


class TestVideoRepository:
    @pytest.mark.asyncio
    async def test_get_video_round_trips_document(
        self, repository: VideoRepository, collection: Mock, video_record: VideoRecord
    ) -> None:
        collection.find_one.return_value = video_record.to_document()

        record = await repository.get_video(video_record.id)

        assert record == video_record
        collection.find_one.assert_awaited_once_with({"_id": video_record.id})

    @pytest.mark.asyncio
    async def test_get_missing_video(self, repository: VideoRepository) -> None:
        assert await repository.get_video("missing") is None

    @pytest.mark.asyncio
    async def test_create_stores_id_as_underscore_id(
        self, repository: VideoRepository, collection: Mock, video_record: VideoRecord
    ) -> None:
        await repository.create_video(video_record)

        document = collection.insert_one.await_args.args[0]
        assert document["_id"] == video_record.id
        assert "id" not in document

    @pytest.mark.asyncio
    async def test_update_sets_only_named_fields(
        self, repository: VideoRepository, collection: Mock, video_record: VideoRecord
    ) -> None:
        updated = video_record.with_video_key("landscape/" + "a" * 32 + "-processed.mp4")
        collection.find_one_and_update.return_value = updated.to_document()

        stored = await repository.update_video(updated, fields={"video_url"})

        query, update = collection.find_one_and_update.await_args.args
        assert query == {"_id": video_record.id, "user_id": video_record.user_id}
        assert update == {"$set": {"video_url": updated.video_url, "updated_at": updated.updated_at}}
        assert collection.find_one_and_update.await_args.kwargs["return_document"] == ReturnDocument.AFTER
        assert stored == updated

    @pytest.mark.asyncio
    async def test_update_unmatched_raises(
        self, repository: VideoRepository, collection: Mock, video_record: VideoRecord
    ) -> None:
        collection.find_one_and_update.return_value = None

        with pytest.raises(VideoNotFoundError):
            await repository.update_video(video_record, fields={"thumbnail_url"})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fields", [set(), {"title"}, {"video_url", "user_id"}])
    async def test_update_refuses_non_storage_fields(
        self,
        repository: VideoRepository,
        collection: Mock,
        video_record: VideoRecord,
        fields: set[str],
    ) -> None:
        with pytest.raises(ValueError):
            await repository.update_video(video_record, fields=fields)

        collection.find_one_and_update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_updates_of_different_fields_both_survive(
        self,
        video_collection: InMemoryVideoCollection,
        video_record: VideoRecord,
    ) -> None:
        repository = VideoRepository(video_collection)
        await repository.create_video(video_record)

        # Both copies derive from the same read, as overlapping requests would
        video_key = "landscape/" + "a" * 32 + "-processed.mp4"
        thumbnail_key = f"thumbnails/{video_record.id}-" + "b" * 32 + ".png"
        await repository.update_video(video_record.with_thumbnail_key(thumbnail_key), fields={"thumbnail_url"})
        stored = await repository.update_video(video_record.with_video_key(video_key), fields={"video_url"})

        assert stored.video_url == video_key
        assert stored.thumbnail_url == thumbnail_key
        assert stored.title == video_record.title

    @pytest.mark.asyncio
    async def test_list_videos_newest_first(
        self,
        repository: VideoRepository,
        collection: Mock,
        make_record: Callable[..., VideoRecord],
        user_id: str,
    ) -> None:
        records = [make_record(title="second"), make_record(title="first")]
        cursor = FakeCursor([record.to_document() for record in records])
        collection.find = Mock(return_value=cursor)

        listed = await repository.list_videos(user_id, limit=10)

        assert [record.title for record in listed] == ["second", "first"]
        collection.find.assert_called_once_with({"user_id": user_id})
        assert cursor.sort_args == ("created_at", DESCENDING)
        assert cursor.limit_value == 10

    @pytest.mark.asyncio
    async def test_delete_is_scoped_to_owner(
        self, repository: VideoRepository, collection: Mock, user_id: str
    ) -> None:
        assert await repository.delete_video("video-1", user_id) is True
        collection.delete_one.assert_awaited_once_with({"_id": "video-1", "user_id": user_id})

        collection.delete_one.return_value = Mock(deleted_count=0)
        assert await repository.delete_video("video-1", user_id) is False
