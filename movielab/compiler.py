"""FFmpeg video merging: normalise clips, then concatenate in order."""
from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Callable

import requests

from .config import DOWNLOAD_TIMEOUT, MERGE_FPS, MERGE_HEIGHT, MERGE_TIMEOUT, MERGE_WIDTH
from .errors import InvalidRequestError, UpstreamError
from .utils.fal import download
from .utils.ffprobe import check_ffmpeg, get_video_info

log = logging.getLogger(__name__)


def validate_urls(urls: list[str]) -> None:
    """HEAD every URL so a dead link fails before anything is downloaded."""
    for url in urls:
        try:
            resp = requests.head(url, allow_redirects=True, timeout=DOWNLOAD_TIMEOUT)
        except requests.RequestException as e:
            log.warning("HEAD %s failed: %s", url, e)
            raise InvalidRequestError(f"Invalid video URL: {url}") from e
        if not resp.ok:
            log.warning("HEAD %s returned %d", url, resp.status_code)
            raise InvalidRequestError(f"Failed to access video URL: {url}")
        log.debug(
            "%s: %s, %s bytes",
            url, resp.headers.get("content-type"), resp.headers.get("content-length"),
        )


def _normalise_clip(src: Path, dst: Path) -> Path:
    """Re-encode to a common size, frame rate and audio layout so the
    concat demuxer can join clips without re-encoding again."""
    info = get_video_info(str(src))
    vf = (
        f"scale={MERGE_WIDTH}:{MERGE_HEIGHT}:force_original_aspect_ratio=decrease,"
        f"pad={MERGE_WIDTH}:{MERGE_HEIGHT}:(ow-iw)/2:(oh-ih)/2,"
        f"setsar=1,fps={MERGE_FPS}"
    )
    if info.has_audio:
        audio_in: list[str] = []
        audio_map = ["-map", "0:a:0"]
    else:
        # Silent track keeps every segment's stream layout identical
        audio_in = ["-f", "lavfi", "-i", "anullsrc=channel_layout=stereo:sample_rate=44100"]
        audio_map = ["-map", "1:a:0", "-shortest"]

    cmd = [
        "ffmpeg", "-y",
        "-i", str(src),
        *audio_in,
        "-map", "0:v:0", *audio_map,
        "-vf", vf,
        "-c:v", "libx264", "-preset", "medium", "-crf", "23",
        "-pix_fmt", "yuv420p",
        "-c:a", "aac", "-ar", "44100", "-ac", "2",
        str(dst),
    ]
    log.debug("CMD: %s", " ".join(cmd))
    result = subprocess.run(cmd, capture_output=True, timeout=MERGE_TIMEOUT)
    if result.returncode != 0:
        stderr = result.stderr.decode(errors="replace")[-500:]
        raise RuntimeError(f"ffmpeg normalise failed for {src.name}: {stderr}")
    return dst


def _concat(clips: list[Path], output: Path) -> Path:
    list_file = output.parent / "concat.txt"
    list_file.write_text("".join(f"file '{c.as_posix()}'\n" for c in clips), encoding="utf-8")
    cmd = [
        "ffmpeg", "-y",
        "-f", "concat", "-safe", "0",
        "-i", str(list_file),
        "-c", "copy",
        "-movflags", "+faststart",
        str(output),
    ]
    result = subprocess.run(cmd, capture_output=True, timeout=MERGE_TIMEOUT)
    if result.returncode != 0:
        stderr = result.stderr.decode(errors="replace")[-500:]
        raise RuntimeError(f"ffmpeg concat failed: {stderr}")
    return output


def merge_videos(
    urls: list[str],
    output_dir: Path,
    progress_cb: Callable[[str], None] | None = None,
) -> Path:
    """Concatenate the clips at *urls*, in order, into one MP4.

    Returns the path of the merged file inside *output_dir*.
    """
    if not urls or len(urls) < 2:
        raise InvalidRequestError("At least two video URLs are required for merging")
    check_ffmpeg("merge videos")
    validate_urls(urls)

    tmp = Path(tempfile.mkdtemp(prefix="movielab_merge_"))
    try:
        clips: list[Path] = []
        for i, url in enumerate(urls):
            if progress_cb:
                progress_cb(f"  Preparing clip {i + 1}/{len(urls)}...")
            raw = download(url, tmp / f"raw_{i:03d}.mp4")
            try:
                clips.append(_normalise_clip(raw, tmp / f"clip_{i:03d}.mp4"))
            except (RuntimeError, subprocess.SubprocessError) as e:
                log.error("Could not normalise clip %s: %s", url, e)
                raise UpstreamError("Failed to merge videos") from e

        if progress_cb:
            progress_cb("  Stitching clips...")
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / f"merged_{timestamp}.mp4"
        try:
            _concat(clips, tmp / "merged.mp4")
        except (RuntimeError, subprocess.SubprocessError) as e:
            log.error("Concat failed: %s", e)
            raise UpstreamError("Failed to merge videos") from e
        shutil.copy2(tmp / "merged.mp4", output_path)

        log.info("Merged %d clips into %s", len(clips), output_path)
        return output_path
    finally:
        shutil.rmtree(tmp, ignore_errors=True)
