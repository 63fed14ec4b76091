"""
Integration tests against real ffmpeg/ffprobe binaries.

Skipped when either tool is missing from PATH. Clips are synthesized with
ffmpeg's lavfi test source and the built-in mpeg4 encoder, so no fixtures
or optional codecs are needed.
"""

import os
import shutil
import subprocess

from collections.abc import Callable
from pathlib import Path
from unittest.mock import Mock

import pytest

from tubely.config import Settings
from tubely.models.media import Dimensions, OrientationCategory
from tubely.models.video import VideoRecord
from tubely.services.errors import ProbeError, TranscodeError
from tubely.services.probe_service import AspectClassifier, FFprobeProber
from tubely.services.remux_service import FFmpegRemuxer
from tubely.services.staging_service import LocalStager
from tubely.services.storage_service import VideoStorageService
from tubely.services.upload_validator import UploadValidator
from tubely.services.video_upload_service import VideoUploadService


pytestmark = [
    pytest.mark.integration,
    pytest.mark.slow,
    pytest.mark.skipif(
        shutil.which("ffmpeg") is None or shutil.which("ffprobe") is None,
        reason="ffmpeg and ffprobe are required",
    ),
]


def _synthesize(path: Path, width: int, height: int) -> Path:
    subprocess.run(
        [
            "ffmpeg",
            "-y",
            "-v",
            "error",
            "-f",
            "lavfi",
            "-i",
            f"testsrc=size={width}x{height}:rate=10:duration=1",
            "-c:v",
            "mpeg4",
            "-f",
            "mp4",
            str(path),
        ],
        check=True,
        capture_output=True,
    )
    return path


class TestRealTools:
    @pytest.mark.asyncio
    async def test_remux_then_probe_portrait(self, tmp_path: Path) -> None:
        source = _synthesize(tmp_path / "clip.mp4", 720, 1280)

        output = await FFmpegRemuxer().remux(str(source))

        assert output == str(tmp_path / "clip-processed.mp4")
        assert os.path.getsize(output) > 0
        assert await FFprobeProber().probe(output) == Dimensions(width=720, height=1280)
        assert await AspectClassifier(FFprobeProber()).classify(output) == OrientationCategory.PORTRAIT

    @pytest.mark.asyncio
    async def test_faststart_moves_moov_before_mdat(self, tmp_path: Path) -> None:
        source = _synthesize(tmp_path / "clip.mp4", 640, 360)

        data = Path(await FFmpegRemuxer().remux(str(source))).read_bytes()

        assert data.index(b"moov") < data.index(b"mdat")

    @pytest.mark.asyncio
    async def test_garbage_input_fails_remux(self, tmp_path: Path) -> None:
        garbage = tmp_path / "garbage.mp4"
        garbage.write_bytes(b"this is not a video" * 100)

        with pytest.raises(TranscodeError) as exc_info:
            await FFmpegRemuxer().remux(str(garbage))

        assert exc_info.value.exit_code not in (None, 0)
        assert not (tmp_path / "garbage-processed.mp4").exists()

    @pytest.mark.asyncio
    async def test_garbage_input_fails_probe(self, tmp_path: Path) -> None:
        garbage = tmp_path / "garbage.mp4"
        garbage.write_bytes(b"\x00" * 1024)

        with pytest.raises(ProbeError):
            await FFprobeProber().probe(str(garbage))


class TestPipelineWithRealTools:
    @pytest.mark.asyncio
    async def test_landscape_clip_through_pipeline(
        self,
        mock_repository: Mock,
        storage_service: VideoStorageService,
        mock_storage_client: Mock,
        mock_settings: Settings,
        make_upload: Callable,
        video_record: VideoRecord,
        user_id: str,
        assets_root: Path,
        tmp_path: Path,
    ) -> None:
        clip = _synthesize(tmp_path / "landscape.mp4", 1280, 720).read_bytes()
        service = VideoUploadService(
            repository=mock_repository,
            storage_service=storage_service,
            classifier=AspectClassifier(FFprobeProber()),
            remuxer=FFmpegRemuxer(),
            stager=LocalStager(mock_settings),
            validator=UploadValidator(mock_settings),
            settings=mock_settings,
        )

        result = await service.upload_video(user_id, video_record.id, make_upload(clip))

        assert result.orientation == "landscape"
        assert result.storage_key.startswith("landscape/")
        assert list(mock_storage_client.uploaded) == [result.storage_key]
        assert os.listdir(assets_root) == []
