"""Settings and API key management."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .errors import MissingApiKeyError

CONFIG_DIR = Path.home() / ".movielab"
CONFIG_FILE = CONFIG_DIR / "config.json"

# OpenAI
VISION_MODEL = "gpt-4o-mini"
TRANSLATION_MODEL = "gpt-4o-mini"

# ElevenLabs
TTS_MODEL = "eleven_multilingual_v2"
DEFAULT_VOICE_ID = "JBFqnCBsd6RMkjVDRZzb"
VOICE_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.75,
    "style": 1.0,
    "use_speaker_boost": True,
}

# Fal.ai endpoints
VIDEO_ENDPOINT = "fal-ai/kling-video/v1.6/pro/image-to-video"
LIPSYNC_ENDPOINT = "fal-ai/latentsync"
LIPSYNC_GUIDANCE_SCALE = 1

VALID_DURATIONS = ("5", "10")
VALID_ASPECT_RATIOS = ("16:9", "9:16", "1:1")
DEFAULT_DURATION = "5"
DEFAULT_ASPECT_RATIO = "16:9"

# Seed image preparation (uploads are downscaled before going to Fal)
MAX_IMAGE_SIDE = 1920
MAX_IMAGE_BYTES = 10 * 1024 * 1024
JPEG_QUALITY = 90

# Scene suggestions
MAX_SUGGESTION_ATTEMPTS = 3
MAX_SUBTITLE_WORDS = 20

# Frame extraction / merging
FRAME_TIMEOUT = 30      # seconds
FRAME_EOF_OFFSET = 0.1  # seek this far before the end to land on the last frame
MERGE_TIMEOUT = 300
MERGE_WIDTH = 1280
MERGE_HEIGHT = 720
MERGE_FPS = 30
DOWNLOAD_TIMEOUT = 60

# Translation
TRANSLATE_BATCH_SIZE = 10

# Header names the browser client uses to pass per-user keys
OPENAI_AUTH_HEADER = "authorization"
ELEVENLABS_HEADER = "x-elevenlabs-key"
FAL_HEADER = "x-fal-key"

_KEY_LABELS = {
    "openai": "OpenAI",
    "elevenlabs": "ElevenLabs",
    "fal": "FAL",
}


@dataclass
class Config:
    openai_api_key: str = ""
    elevenlabs_api_key: str = ""
    fal_key: str = ""
    output_dir: Path = field(default_factory=lambda: Path("output"))

    @classmethod
    def load(cls) -> "Config":
        """Load config from env vars then config file."""
        cfg = cls()

        # Env var takes priority
        openai_key = os.environ.get("OPENAI_API_KEY", "")
        elevenlabs_key = os.environ.get("ELEVENLABS_API_KEY", "")
        fal_key = os.environ.get("FAL_KEY", "")

        if CONFIG_FILE.exists():
            try:
                data = json.loads(CONFIG_FILE.read_text(encoding="utf-8-sig"))
                if not openai_key:
                    openai_key = data.get("openai_api_key", "")
                if not elevenlabs_key:
                    elevenlabs_key = data.get("elevenlabs_api_key", "")
                if not fal_key:
                    fal_key = data.get("fal_key", "")
                if out := data.get("output_dir"):
                    cfg.output_dir = Path(out)
            except (json.JSONDecodeError, OSError):
                pass

        if out := os.environ.get("MOVIELAB_OUTPUT_DIR"):
            cfg.output_dir = Path(out)

        cfg.openai_api_key = openai_key
        cfg.elevenlabs_api_key = elevenlabs_key
        cfg.fal_key = fal_key
        return cfg


@dataclass(frozen=True)
class ApiKeys:
    """The three provider keys in effect for one request."""

    openai: str = ""
    elevenlabs: str = ""
    fal: str = ""

    @classmethod
    def from_config(cls, config: Config) -> "ApiKeys":
        return cls(
            openai=config.openai_api_key,
            elevenlabs=config.elevenlabs_api_key,
            fal=config.fal_key,
        )

    @classmethod
    def from_headers(cls, headers: Mapping[str, str], config: Config) -> "ApiKeys":
        """Resolve keys from request headers, falling back to *config*.

        Only non-blank header values override the configured keys.
        """
        lowered = {k.lower(): v for k, v in headers.items()}
        openai_key = config.openai_api_key
        elevenlabs_key = config.elevenlabs_api_key
        fal_key = config.fal_key

        auth = lowered.get(OPENAI_AUTH_HEADER, "")
        if auth.startswith("Bearer ") and auth[len("Bearer "):].strip():
            openai_key = auth[len("Bearer "):].strip()

        if (value := lowered.get(ELEVENLABS_HEADER, "").strip()):
            elevenlabs_key = value
        if (value := lowered.get(FAL_HEADER, "").strip()):
            fal_key = value

        return cls(openai=openai_key, elevenlabs=elevenlabs_key, fal=fal_key)

    def require(self, name: str) -> str:
        """Return the key called *name* or raise MissingApiKeyError if blank."""
        value = getattr(self, name).strip()
        if not value:
            raise MissingApiKeyError(
                f"{_KEY_LABELS[name]} API key is not configured. Please set it in the settings."
            )
        return value
