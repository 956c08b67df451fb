"""Last-frame extraction with ffmpeg.

The last frame of a synced clip seeds the next scene's video generation,
which is what keeps consecutive scenes visually continuous.
"""
from __future__ import annotations

import base64
import logging
import subprocess

from .config import FRAME_EOF_OFFSET, FRAME_TIMEOUT
from .errors import InvalidRequestError, UpstreamError
from .utils.ffprobe import check_ffmpeg, get_video_info

log = logging.getLogger(__name__)


def to_data_url(jpeg_bytes: bytes) -> str:
    return "data:image/jpeg;base64," + base64.b64encode(jpeg_bytes).decode("ascii")


def extract_last_frame(video_url: str, timeout: float = FRAME_TIMEOUT) -> bytes:
    """Seek to the end of *video_url* and return that frame as JPEG bytes."""
    if not video_url:
        raise InvalidRequestError("Video URL is required")
    check_ffmpeg("extract frame")

    try:
        info = get_video_info(video_url, timeout=timeout)
    except RuntimeError as e:
        log.error("Could not probe %s: %s", video_url, e)
        raise UpstreamError("Failed to extract frame") from e

    seek = max(0.0, info.duration_sec - FRAME_EOF_OFFSET)
    cmd = [
        "ffmpeg", "-v", "error",
        "-ss", f"{seek:.3f}",
        "-i", video_url,
        "-frames:v", "1",
        "-q:v", "2",
        "-f", "image2pipe", "-vcodec", "mjpeg",
        "pipe:1",
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        log.error("Frame extraction timed out after %ss for %s", timeout, video_url)
        raise UpstreamError("Failed to extract frame") from e

    if result.returncode != 0 or not result.stdout:
        log.error(
            "ffmpeg frame extraction failed (%d) for %s: %s",
            result.returncode, video_url, result.stderr.decode(errors="replace")[-500:],
        )
        raise UpstreamError("Failed to extract frame")

    log.info("Extracted frame at %.2fs of %s (%dx%d)", seek, video_url, info.width, info.height)
    return result.stdout
