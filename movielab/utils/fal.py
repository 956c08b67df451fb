"""Fal.ai client helpers: storage upload, queued calls, downloads."""
from __future__ import annotations

import logging
from pathlib import Path

import fal_client
import requests

from ..config import DOWNLOAD_TIMEOUT
from ..errors import UpstreamError

log = logging.getLogger(__name__)


def _client(fal_key: str) -> fal_client.SyncClient:
    return fal_client.SyncClient(key=fal_key)


def upload_bytes(data: bytes, content_type: str, fal_key: str, file_name: str | None = None) -> str:
    """Upload *data* to Fal storage and return its public URL."""
    try:
        url = _client(fal_key).upload(data, content_type, file_name=file_name)
    except Exception as e:
        log.error("Fal upload failed (%s, %d bytes): %s", content_type, len(data), e)
        raise UpstreamError("Failed to upload media") from e
    log.info("Uploaded %d bytes to %s", len(data), url)
    return url


def subscribe(endpoint: str, arguments: dict, fal_key: str, label: str) -> dict:
    """Run a queued Fal job to completion and return its result payload.

    *label* names the operation in log lines and in the public error message.
    """
    def on_queue_update(update):
        if isinstance(update, fal_client.InProgress):
            for entry in update.logs or []:
                log.info("[%s] %s", endpoint, entry.get("message", entry))

    log.info("Submitting %s job to %s", label, endpoint)
    try:
        result = _client(fal_key).subscribe(
            endpoint,
            arguments=arguments,
            with_logs=True,
            on_queue_update=on_queue_update,
        )
    except Exception as e:
        log.error("Fal %s job failed: %s", endpoint, e)
        raise UpstreamError(f"Failed to {label}") from e
    log.debug("%s result: %s", endpoint, result)
    return result


def download(url: str, output_path: Path) -> Path:
    """Stream *url* into *output_path*."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with requests.get(url, stream=True, timeout=DOWNLOAD_TIMEOUT) as r:
            r.raise_for_status()
            with open(output_path, "wb") as f:
                for chunk in r.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
    except requests.RequestException as e:
        log.error("Download of %s failed: %s", url, e)
        raise UpstreamError(f"Failed to download {url}") from e
    return output_path
