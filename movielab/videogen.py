"""Image-to-video generation with Kling on Fal.ai."""
from __future__ import annotations

import base64
import binascii
import io
import logging

from PIL import Image, UnidentifiedImageError

from .config import (
    DEFAULT_ASPECT_RATIO,
    DEFAULT_DURATION,
    JPEG_QUALITY,
    MAX_IMAGE_BYTES,
    MAX_IMAGE_SIDE,
    VALID_ASPECT_RATIOS,
    VALID_DURATIONS,
    VIDEO_ENDPOINT,
)
from .errors import InvalidRequestError, UpstreamError
from .utils.fal import subscribe, upload_bytes

log = logging.getLogger(__name__)


def decode_image_payload(payload: str) -> bytes:
    """Bytes of a base64 image, with or without a ``data:`` URL prefix."""
    if payload.startswith("data:"):
        payload = payload.split(",", 1)[-1]
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidRequestError("Image is not valid base64 data") from e


def prepare_seed_image(image_bytes: bytes) -> bytes:
    """Normalise an uploaded image to an RGB JPEG no larger than MAX_IMAGE_SIDE."""
    if not image_bytes:
        raise InvalidRequestError("Image is required")
    if len(image_bytes) > MAX_IMAGE_BYTES:
        raise InvalidRequestError("Image exceeds the 10MB upload limit")
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidRequestError("Uploaded file is not a readable image") from e

    img = img.convert("RGB")
    img.thumbnail((MAX_IMAGE_SIDE, MAX_IMAGE_SIDE))
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=JPEG_QUALITY)
    return buf.getvalue()


def generate_video(
    image_bytes: bytes,
    prompt: str,
    fal_key: str,
    duration: str = DEFAULT_DURATION,
    aspect_ratio: str = DEFAULT_ASPECT_RATIO,
) -> str:
    """Animate *image_bytes* following *prompt*; returns the clip URL."""
    if not prompt or not prompt.strip():
        raise InvalidRequestError("Missing required fields")
    if duration not in VALID_DURATIONS:
        raise InvalidRequestError(f"duration must be one of {', '.join(VALID_DURATIONS)}")
    if aspect_ratio not in VALID_ASPECT_RATIOS:
        raise InvalidRequestError(f"aspectRatio must be one of {', '.join(VALID_ASPECT_RATIOS)}")

    image_url = upload_bytes(prepare_seed_image(image_bytes), "image/jpeg", fal_key, "scene.jpg")
    result = subscribe(
        VIDEO_ENDPOINT,
        {
            "prompt": prompt.strip(),
            "image_url": image_url,
            "duration": duration,
            "aspect_ratio": aspect_ratio,
        },
        fal_key,
        label="generate video",
    )

    url = (result.get("video") or {}).get("url")
    if not url:
        log.error("Video result without a URL: %s", result)
        raise UpstreamError("Failed to generate video")
    log.info("Generated video %s", url)
    return url
