"""Lip synchronisation with LatentSync on Fal.ai."""
from __future__ import annotations

import base64
import binascii
import logging

from .config import LIPSYNC_ENDPOINT, LIPSYNC_GUIDANCE_SCALE
from .errors import InvalidRequestError, UpstreamError
from .utils.fal import subscribe, upload_bytes

log = logging.getLogger(__name__)


def audio_data_url(audio_b64: str) -> str:
    return f"data:audio/mpeg;base64,{audio_b64}"


def _hosted_audio_url(audio_url: str, fal_key: str) -> str:
    """Data URLs are uploaded to Fal storage; anything else is passed through."""
    if not audio_url.startswith("data:"):
        return audio_url
    header, _, payload = audio_url.partition(",")
    content_type = header[len("data:"):].split(";", 1)[0] or "audio/mpeg"
    try:
        audio = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidRequestError("Audio URL is not valid base64 data") from e
    return upload_bytes(audio, content_type, fal_key, "narration.mp3")


def sync_lip(video_url: str, audio_url: str, fal_key: str) -> str:
    """Align mouth movement in *video_url* to *audio_url*; returns the synced clip URL."""
    if not video_url or not audio_url:
        raise InvalidRequestError("Video URL and Audio URL are required")

    result = subscribe(
        LIPSYNC_ENDPOINT,
        {
            "video_url": video_url,
            "audio_url": _hosted_audio_url(audio_url, fal_key),
            "guidance_scale": LIPSYNC_GUIDANCE_SCALE,
        },
        fal_key,
        label="sync lip movement",
    )

    url = (result.get("video") or {}).get("url")
    if not url:
        log.error("Lip-sync result without a URL: %s", result)
        raise UpstreamError("Failed to sync lip movement")
    log.info("Synced video %s", url)
    return url
