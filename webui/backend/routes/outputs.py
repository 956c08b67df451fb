"""Merged output listing and download routes."""
from __future__ import annotations

from pathlib import Path

from litestar import get
from litestar.exceptions import NotFoundException
from litestar.response import File

from movielab.config import Config
from webui.backend.job_manager import output_url
from webui.backend.models import OutputFile


@get("/api/outputs/{name:str}")
async def download_output(name: str, config: Config) -> File:
    """Stream a merged file by name; only plain .mp4 names are served."""
    if Path(name).name != name or not name.endswith(".mp4"):
        raise NotFoundException(f"File not found: {name}")
    p = Path(config.output_dir) / name
    if not p.is_file():
        raise NotFoundException(f"File not found: {name}")
    return File(path=p, filename=p.name, media_type="video/mp4")


@get("/api/outputs")
async def list_outputs(config: Config) -> list[OutputFile]:
    """List merged MP4 files in the configured output directory, newest first."""
    output_dir = Path(config.output_dir)
    if not output_dir.exists():
        return []

    files = sorted(output_dir.glob("*.mp4"), key=lambda p: p.stat().st_ctime, reverse=True)
    result = []
    for f in files:
        stat = f.stat()
        result.append(OutputFile(
            name=f.name,
            url=output_url(f),
            size_bytes=stat.st_size,
            created_at=stat.st_ctime,
        ))
    return result
