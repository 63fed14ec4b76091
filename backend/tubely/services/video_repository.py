"""
MongoDB persistence for video records.
"""

import logging

from collections.abc import Iterable
from typing import Any

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DESCENDING, ReturnDocument

from tubely.models.video import VideoRecord
from tubely.services.errors import VideoNotFoundError


logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100

# Fields the media pipeline is allowed to change on an existing record
STORAGE_FIELDS = frozenset({"video_url", "thumbnail_url"})


class VideoRepository:
    """
    Reads and writes ``VideoRecord`` documents.

    Writes are scoped by owner as well as id, so a record can only be changed
    by the user who owns it even if a caller skips the ownership check.
    """

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self.collection = collection

    @staticmethod
    def _to_record(document: dict[str, Any]) -> VideoRecord:
        return VideoRecord.model_validate(document)

    async def get_video(self, video_id: str) -> VideoRecord | None:
        document = await self.collection.find_one({"_id": video_id})
        if document is None:
            return None
        return self._to_record(document)

    async def create_video(self, record: VideoRecord) -> VideoRecord:
        await self.collection.insert_one(record.to_document())
        logger.info("Created video %s for user %s", record.id, record.user_id)
        return record

    async def update_video(self, record: VideoRecord, fields: Iterable[str]) -> VideoRecord:
        """
        Persist the named storage-location fields of ``record``.

        Only the fields in ``fields`` and ``updated_at`` are written. Anything
        else a concurrent request stored in the meantime is kept, so a video
        upload and a thumbnail upload for the same record cannot undo each
        other.

        Args:
            record: Copy carrying the new values.
            fields: Subset of ``STORAGE_FIELDS`` to write.

        Returns:
            VideoRecord: The document as stored after the write.

        Raises:
            ValueError: If ``fields`` is empty or names a non-storage field.
            VideoNotFoundError: If no document matches the id and owner.
        """
        names = set(fields)
        if not names or not names <= STORAGE_FIELDS:
            raise ValueError(f"update_video writes only {sorted(STORAGE_FIELDS)}, got {sorted(names)}")

        changes: dict[str, Any] = {name: getattr(record, name) for name in names}
        changes["updated_at"] = record.updated_at

        document = await self.collection.find_one_and_update(
            {"_id": record.id, "user_id": record.user_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if document is None:
            raise VideoNotFoundError(f"Video {record.id} not found")
        return self._to_record(document)

    async def list_videos(self, user_id: str, limit: int = DEFAULT_LIST_LIMIT) -> list[VideoRecord]:
        """Newest first."""
        cursor = self.collection.find({"user_id": user_id}).sort("created_at", DESCENDING).limit(limit)
        return [self._to_record(document) async for document in cursor]

    async def delete_video(self, video_id: str, user_id: str) -> bool:
        result = await self.collection.delete_one({"_id": video_id, "user_id": user_id})
        return result.deleted_count > 0
