import json
import logging
import shutil
import subprocess
from dataclasses import dataclass

from ..errors import UpstreamError

log = logging.getLogger(__name__)


@dataclass
class FFprobeInfo:
    width: int
    height: int
    duration_sec: float
    fps: float
    codec: str
    has_audio: bool


def get_video_info(source: str, timeout: float = 30) -> FFprobeInfo:
    """Uses ffprobe to read the streams of a local file or URL."""
    cmd = [
        "ffprobe",
        "-v", "error",
        "-show_entries", "stream=codec_type,width,height,r_frame_rate,codec_name,duration:format=duration",
        "-of", "json",
        source,
    ]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=True, timeout=timeout)
        data = json.loads(result.stdout)

        streams = data.get("streams", [])
        video = [s for s in streams if s.get("codec_type") == "video"]
        if not video:
            raise ValueError("No video stream found.")

        stream = video[0]
        duration = stream.get("duration")
        if duration is None:
            # Fallback to container duration
            duration = data.get("format", {}).get("duration", 0)

        r_fps = stream.get("r_frame_rate", "0/1")
        num, den = map(int, r_fps.split("/"))

        return FFprobeInfo(
            width=int(stream.get("width", 0)),
            height=int(stream.get("height", 0)),
            duration_sec=float(duration),
            fps=num / den if den != 0 else 0,
            codec=stream.get("codec_name", ""),
            has_audio=any(s.get("codec_type") == "audio" for s in streams),
        )
    except (subprocess.SubprocessError, ValueError, KeyError) as e:
        raise RuntimeError(f"Failed to probe video {source}: {e}") from e


def check_ffmpeg(label: str) -> None:
    """Fail the *label* operation up front when ffmpeg is not installed."""
    if not shutil.which("ffmpeg"):
        log.error("ffmpeg not found in PATH. Please install ffmpeg.")
        raise UpstreamError(f"Failed to {label}")
