"""
Pytest Configuration and Test Fixtures for the Tubely Backend

This module provides:
- Test settings with an isolated staging directory per test
- Local JWT tokens and Authorization headers
- Video record factories
- In-memory upload bodies shaped like ``fastapi.UploadFile``
- Fake remuxer and prober standing in for ffmpeg/ffprobe
- Mocked repository, storage client and storage service
- A dict-backed videos collection for repository-level tests
"""

import asyncio
import copy
import io
import os

from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from pymongo import ReturnDocument

from tubely.config import Settings
from tubely.core.auth import create_local_jwt
from tubely.core.storage import StorageClient
from tubely.models.media import Dimensions
from tubely.models.video import VideoRecord
from tubely.services.probe_service import AspectClassifier
from tubely.services.remux_service import processed_output_path
from tubely.services.staging_service import LocalStager
from tubely.services.storage_service import VideoStorageService
from tubely.services.upload_validator import UploadValidator
from tubely.services.video_repository import VideoRepository
from tubely.services.video_upload_service import VideoUploadService


TEST_USER_ID = "user-owner-123"
OTHER_USER_ID = "user-intruder-456"


# ==============================================================================
# Pytest Configuration
# ==============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """
    Register custom markers for test categorization.

    Markers defined:
    - unit: isolated tests with no external processes or services
    - integration: tests that need ffmpeg/ffprobe on PATH
    - slow: tests that may be skipped in quick runs
    """
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "slow: mark test as slow-running")


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def assets_root(tmp_path: Path) -> Path:
    """Staging directory unique to the test."""
    root = tmp_path / "assets"
    root.mkdir()
    return root


@pytest.fixture
def mock_settings(assets_root: Path) -> Settings:
    """
    Settings for tests.

    Staging happens under the per-test ``assets_root`` and S3 points at a
    local endpoint that is never contacted; every storage call is mocked or
    purely local (presigning).
    """
    return Settings(
        app_env="testing",
        app_name="tubely-test",
        debug=True,
        log_json=False,
        secret_key="test-secret-key-for-jwt-signing-minimum-32-chars",
        mongodb_uri="mongodb://localhost:27017/test_tubely",
        mongodb_db_name="test_tubely",
        s3_endpoint_url="http://localhost:9000",
        s3_access_key_id="test-access-key",
        s3_secret_access_key="test-secret-key",
        s3_bucket_name="test-bucket",
        s3_region="us-east-1",
        presigned_url_expiration_seconds=3600,
        jwt_algorithm="HS256",
        jwt_expiration_hours=24,
        assets_root=str(assets_root),
        upload_chunk_size_bytes=4096,
    )


# ==============================================================================
# Auth Fixtures
# ==============================================================================


@pytest.fixture
def user_id() -> str:
    return TEST_USER_ID


@pytest.fixture
def other_user_id() -> str:
    return OTHER_USER_ID


@pytest.fixture
def auth_token(mock_settings: Settings, user_id: str) -> str:
    """Valid HS256 token whose subject is ``user_id``."""
    return create_local_jwt(user_id, mock_settings, email="owner@example.com")


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth_token}"}


# ==============================================================================
# Data Fixtures
# ==============================================================================


@pytest.fixture
def make_record(user_id: str) -> Callable[..., VideoRecord]:
    """Factory for VideoRecord instances owned by ``user_id`` by default."""

    def _make(**overrides: Any) -> VideoRecord:
        data: dict[str, Any] = {
            "user_id": user_id,
            "title": "Boots on the trail",
            "description": "A short clip",
        }
        data.update(overrides)
        return VideoRecord(**data)

    return _make


@pytest.fixture
def video_record(make_record: Callable[..., VideoRecord]) -> VideoRecord:
    return make_record()


class FakeUpload:
    """
    In-memory stand-in for ``fastapi.UploadFile``.

    ``size`` is the declared size; it defaults to the real body length but
    can be set independently to model a client that lies or omits it.
    """

    _UNSET = object()

    def __init__(
        self,
        content: bytes = b"",
        content_type: str | None = "video/mp4",
        filename: str | None = "clip.mp4",
        size: Any = _UNSET,
    ) -> None:
        self.file = io.BytesIO(content)
        self.content_type = content_type
        self.filename = filename
        self.size = len(content) if size is self._UNSET else size
        self.read_calls = 0
        self.closed = False

    async def read(self, size: int = -1) -> bytes:
        self.read_calls += 1
        return self.file.read(size)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_upload() -> Callable[..., FakeUpload]:
    return FakeUpload


class FakeRemuxer:
    """
    Writes a processed copy next to the input, or fails with ``error``.

    ``delay`` holds the remux open for that many seconds, so overlapping
    uploads really interleave.
    """

    def __init__(self, error: Exception | None = None, delay: float = 0.0) -> None:
        self.error = error
        self.delay = delay
        self.calls: list[str] = []

    async def remux(self, input_path: str) -> str:
        self.calls.append(input_path)
        output_path = processed_output_path(input_path)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        with open(input_path, "rb") as source, open(output_path, "wb") as target:
            target.write(source.read())
        return output_path


class FakeProber:
    """Reports fixed dimensions, or fails with ``error``."""

    def __init__(self, width: int = 1920, height: int = 1080, error: Exception | None = None) -> None:
        self.dimensions = Dimensions(width=width, height=height)
        self.error = error
        self.calls: list[str] = []

    async def probe(self, path: str) -> Dimensions:
        self.calls.append(path)
        if self.error is not None:
            raise self.error
        return self.dimensions


@pytest.fixture
def fake_remuxer() -> FakeRemuxer:
    return FakeRemuxer()


@pytest.fixture
def fake_prober() -> FakeProber:
    return FakeProber()


# ==============================================================================
# Collaborator Mocks
# ==============================================================================


class InMemoryVideoCollection:
    """
    Dict-backed stand-in for the Motor videos collection.

    Supports the calls ``VideoRepository`` makes on single documents, with
    ``$set`` applied field by field the way MongoDB applies it.
    """

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}

    @staticmethod
    def _matches(document: dict[str, Any], query: dict[str, Any]) -> bool:
        return all(document.get(field) == value for field, value in query.items())

    async def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        for document in self.documents.values():
            if self._matches(document, query):
                return copy.deepcopy(document)
        return None

    async def insert_one(self, document: dict[str, Any]) -> Mock:
        self.documents[document["_id"]] = copy.deepcopy(document)
        return Mock(inserted_id=document["_id"])

    async def find_one_and_update(
        self,
        query: dict[str, Any],
        update: dict[str, Any],
        return_document: ReturnDocument = ReturnDocument.BEFORE,
    ) -> dict[str, Any] | None:
        for document in self.documents.values():
            if self._matches(document, query):
                before = copy.deepcopy(document)
                document.update(copy.deepcopy(update["$set"]))
                return copy.deepcopy(document) if return_document == ReturnDocument.AFTER else before
        return None


@pytest.fixture
def video_collection() -> InMemoryVideoCollection:
    return InMemoryVideoCollection()


@pytest.fixture
def mock_repository(video_record: VideoRecord) -> Mock:
    """VideoRepository mock whose ``update_video`` echoes the record it is given."""
    mock = Mock(spec=VideoRepository)
    mock.get_video = AsyncMock(return_value=video_record)
    mock.create_video = AsyncMock(side_effect=lambda record: record)
    mock.update_video = AsyncMock(side_effect=lambda record, fields: record)
    mock.list_videos = AsyncMock(return_value=[video_record])
    mock.delete_video = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def mock_storage_client() -> Mock:
    """
    Synchronous StorageClient mock; uploads record the objects they create.

    ``uploaded`` maps each key to its content type and ``uploaded_bodies``
    to the bytes the local file held when it was sent.
    """
    mock = Mock(spec=StorageClient)
    mock.bucket_name = "test-bucket"
    mock.uploaded = {}
    mock.uploaded_bodies = {}

    def _upload_file(file_path: str, key: str, content_type: str, metadata: Any = None) -> bool:
        assert os.path.exists(file_path), "upload_file called with a missing local file"
        with open(file_path, "rb") as sent:
            mock.uploaded_bodies[key] = sent.read()
        mock.uploaded[key] = content_type
        return True

    mock.upload_file = Mock(side_effect=_upload_file)
    mock.put_bytes = Mock(return_value=True)
    mock.delete_file = Mock(return_value=True)
    mock.generate_presigned_download_url = Mock(
        side_effect=lambda key, expires_in=3600: (
            f"http://localhost:9000/test-bucket/{key}?X-Amz-Expires={expires_in}"
        )
    )
    return mock


@pytest.fixture
def storage_service(mock_storage_client: Mock, mock_settings: Settings) -> VideoStorageService:
    return VideoStorageService(mock_storage_client, mock_settings)


@pytest.fixture
def build_upload_service(
    mock_repository: Mock,
    storage_service: VideoStorageService,
    mock_settings: Settings,
) -> Callable[..., VideoUploadService]:
    """Factory for a pipeline wired with fakes; stages can be swapped per test."""

    def _build(
        remuxer: Any = None,
        prober: Any = None,
        settings: Settings | None = None,
        storage: Any = None,
    ) -> VideoUploadService:
        active_settings = settings or mock_settings
        return VideoUploadService(
            repository=mock_repository,
            storage_service=storage or storage_service,
            classifier=AspectClassifier(prober or FakeProber()),
            remuxer=remuxer or FakeRemuxer(),
            stager=LocalStager(active_settings),
            validator=UploadValidator(active_settings),
            settings=active_settings,
        )

    return _build
