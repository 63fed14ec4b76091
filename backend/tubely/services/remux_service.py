"""
FastStart Remuxer.

Rewrites an MP4 so its ``moov`` index sits ahead of the media data, letting
players start before the whole file has downloaded. Streams are copied, never
re-encoded, and container metadata is carried over from the input.
"""

import asyncio
import logging
import os

from typing import Protocol

from tubely.services.errors import TranscodeError
from tubely.utils.local_files import discard_file


logger = logging.getLogger(__name__)

PROCESSED_SUFFIX = "-processed.mp4"

# Only the end of ffmpeg's stderr is useful in an error report
STDERR_TAIL_CHARS = 2000


class Remuxer(Protocol):
    async def remux(self, input_path: str) -> str: ...


def processed_output_path(input_path: str) -> str:
    """
    Sibling output path for a remux of ``input_path``.

    The name is derived from the input's, so it is as unique as the staged
    file it came from.

    Example:
        >>> processed_output_path("assets/abc.mp4")
        'assets/abc-processed.mp4'
    """
    root, _ = os.path.splitext(input_path)
    return f"{root}{PROCESSED_SUFFIX}"


def build_faststart_command(ffmpeg_path: str, input_path: str, output_path: str) -> list[str]:
    return [
        ffmpeg_path,
        "-y",
        "-i",
        input_path,
        "-movflags",
        "faststart",
        "-map_metadata",
        "0",
        "-codec",
        "copy",
        "-f",
        "mp4",
        output_path,
    ]


def stderr_tail(stderr: bytes | None) -> str:
    text = (stderr or b"").decode("utf-8", errors="replace").strip()
    return text[-STDERR_TAIL_CHARS:]


class FFmpegRemuxer:
    """Runs ffmpeg as a subprocess to produce a fast-start copy of a file."""

    def __init__(self, ffmpeg_path: str = "ffmpeg") -> None:
        self.ffmpeg_path = ffmpeg_path

    async def remux(self, input_path: str) -> str:
        """
        Produce ``<input without extension>-processed.mp4``.

        The input file is left untouched; the caller decides when to delete it.

        Returns:
            str: Path of the processed file.

        Raises:
            TranscodeError: If ffmpeg is missing, exits non-zero, or produces
                no output. Any partial output is removed first.
        """
        output_path = processed_output_path(input_path)
        command = build_faststart_command(self.ffmpeg_path, input_path, output_path)
        logger.debug("Running remux: %s", " ".join(command))

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as error:
            raise TranscodeError(f"ffmpeg executable not found: {self.ffmpeg_path}") from error

        try:
            _, stderr = await process.communicate()
        except asyncio.CancelledError:
            # Deadline or client disconnect; never leave ffmpeg running
            if process.returncode is None:
                process.kill()
                await process.wait()
            discard_file(output_path)
            raise

        if process.returncode != 0:
            discard_file(output_path)
            tail = stderr_tail(stderr)
            logger.error("ffmpeg exited with code %s for %s: %s", process.returncode, input_path, tail)
            raise TranscodeError(
                f"ffmpeg exited with code {process.returncode}",
                exit_code=process.returncode,
                stderr=tail,
            )

        if not os.path.exists(output_path):
            raise TranscodeError(
                "ffmpeg reported success but produced no output",
                exit_code=0,
                stderr=stderr_tail(stderr),
            )

        logger.info("Remuxed %s -> %s", input_path, output_path)
        return output_path
