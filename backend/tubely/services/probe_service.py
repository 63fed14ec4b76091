"""
Aspect Classifier.

Reads the primary video stream's geometry with ffprobe and maps it to an
orientation category. The mapping itself is a pure function so it can be
tested without media files.
"""

import asyncio
import json
import logging

from typing import Protocol

from tubely.models.media import Dimensions, OrientationCategory
from tubely.services.errors import ProbeError
from tubely.services.remux_service import stderr_tail


logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS - Canonical Aspect Ratios
# =============================================================================

RATIO_TOLERANCE = 0.01

# Checked in order; the first ratio within tolerance wins
ASPECT_RATIOS: dict[str, tuple[float, OrientationCategory]] = {
    "16:9": (16 / 9, OrientationCategory.LANDSCAPE),
    "9:16": (9 / 16, OrientationCategory.PORTRAIT),
    "4:3": (4 / 3, OrientationCategory.LANDSCAPE),
    "3:4": (3 / 4, OrientationCategory.PORTRAIT),
    "1:1": (1.0, OrientationCategory.OTHER),
}


class Prober(Protocol):
    async def probe(self, path: str) -> Dimensions: ...


# =============================================================================
# CLASSIFICATION
# =============================================================================


def match_aspect_ratio(width: int, height: int) -> str | None:
    """
    Name of the canonical ratio matching ``width / height``, if any.

    Example:
        >>> match_aspect_ratio(1920, 1080)
        '16:9'
        >>> match_aspect_ratio(1000, 300) is None
        True
    """
    if width <= 0 or height <= 0:
        return None

    ratio = width / height
    for name, (target, _) in ASPECT_RATIOS.items():
        if abs(ratio - target) < RATIO_TOLERANCE:
            return name
    return None


def classify_orientation(width: int, height: int) -> OrientationCategory:
    """
    Map frame geometry to an orientation category.

    Square frames and ratios with no canonical match both land in
    ``OrientationCategory.OTHER``.
    """
    name = match_aspect_ratio(width, height)
    if name is None:
        return OrientationCategory.OTHER
    return ASPECT_RATIOS[name][1]


def parse_probe_output(stdout: bytes | str) -> Dimensions:
    """
    Extract the first stream's width and height from ffprobe JSON output.

    Raises:
        ProbeError: If the output is not JSON, has no streams, or the first
            stream lacks positive integer dimensions.
    """
    try:
        payload = json.loads(stdout)
    except (TypeError, ValueError) as error:
        raise ProbeError(f"Unparseable probe output: {error}") from error

    streams = payload.get("streams") if isinstance(payload, dict) else None
    if not streams or not isinstance(streams, list) or not isinstance(streams[0], dict):
        raise ProbeError("Probe output contains no video stream")

    stream = streams[0]
    width = stream.get("width")
    height = stream.get("height")
    # bool is an int subclass, but never a dimension
    if not all(isinstance(value, int) and not isinstance(value, bool) for value in (width, height)):
        raise ProbeError(f"Probe output has no integer dimensions: width={width!r} height={height!r}")
    if width <= 0 or height <= 0:
        raise ProbeError(f"Probe output has non-positive dimensions: {width}x{height}")

    return Dimensions(width=width, height=height)


# =============================================================================
# FFPROBE
# =============================================================================


def build_probe_command(ffprobe_path: str, path: str) -> list[str]:
    return [
        ffprobe_path,
        "-v",
        "error",
        "-select_streams",
        "v:0",
        "-show_entries",
        "stream=width,height",
        "-of",
        "json",
        path,
    ]


class FFprobeProber:
    """Reads stream geometry by running ffprobe."""

    def __init__(self, ffprobe_path: str = "ffprobe") -> None:
        self.ffprobe_path = ffprobe_path

    async def probe(self, path: str) -> Dimensions:
        """
        Raises:
            ProbeError: If ffprobe is missing, exits non-zero, or prints
                output without usable dimensions.
        """
        command = build_probe_command(self.ffprobe_path, path)
        logger.debug("Running probe: %s", " ".join(command))

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as error:
            raise ProbeError(f"ffprobe executable not found: {self.ffprobe_path}") from error

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        if process.returncode != 0:
            tail = stderr_tail(stderr)
            logger.error("ffprobe exited with code %s for %s: %s", process.returncode, path, tail)
            raise ProbeError(
                f"ffprobe exited with code {process.returncode}",
                exit_code=process.returncode,
                stderr=tail,
            )

        return parse_probe_output(stdout)


class AspectClassifier:
    """Probes a file and classifies its orientation."""

    def __init__(self, prober: Prober) -> None:
        self.prober = prober

    async def classify(self, path: str) -> OrientationCategory:
        dimensions = await self.prober.probe(path)
        orientation = classify_orientation(dimensions.width, dimensions.height)
        logger.info(
            "Classified %s as %s (%dx%d)",
            path,
            orientation.value,
            dimensions.width,
            dimensions.height,
        )
        return orientation
