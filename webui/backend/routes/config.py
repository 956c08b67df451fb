"""Read-only config route. Keys are reported masked and never written."""
from __future__ import annotations

from litestar import get

from movielab.config import Config
from webui.backend.models import ConfigStatus


@get("/api/config")
async def get_config(config: Config) -> ConfigStatus:
    return ConfigStatus(
        # Mask secret keys, show only the ends
        openai_api_key=_mask(config.openai_api_key),
        elevenlabs_api_key=_mask(config.elevenlabs_api_key),
        fal_key=_mask(config.fal_key),
        output_dir=str(config.output_dir),
    )


def _mask(value: str) -> str:
    if not value:
        return ""
    return value[:4] + "…" + value[-4:] if len(value) > 8 else "…"
