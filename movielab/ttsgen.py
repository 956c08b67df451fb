"""Narration audio using ElevenLabs neural voices.

When the seed image is available the speaker is classified first (see
``vision.analyze_image``) and a matching voice is picked from the account's
voice list, so the narration sounds like the person on screen.
"""
from __future__ import annotations

import base64
import logging

from .config import DEFAULT_VOICE_ID, TTS_MODEL, VOICE_SETTINGS, ApiKeys
from .errors import InvalidRequestError, MovieLabError, UpstreamError
from .vision import analyze_image
from .voices import VoiceInfo, select_voice

log = logging.getLogger(__name__)


def _client(api_key: str):
    from elevenlabs.client import ElevenLabs

    return ElevenLabs(api_key=api_key)


def list_voices(api_key: str) -> list[VoiceInfo]:
    """Return the voices available to this ElevenLabs account."""
    try:
        response = _client(api_key).voices.get_all()
    except Exception as e:
        log.error("ElevenLabs voice listing failed: %s", e)
        raise UpstreamError("Failed to list voices") from e

    voices = [
        VoiceInfo(
            voice_id=v.voice_id,
            name=v.name or "",
            labels=dict(v.labels or {}),
        )
        for v in response.voices
    ]
    log.debug("Available voices: %s", [(v.name, v.labels) for v in voices])
    return voices


def synthesize(text: str, voice_id: str, api_key: str) -> bytes:
    """Speak *text* with *voice_id*; returns MP3 bytes."""
    from elevenlabs import VoiceSettings

    try:
        chunks = _client(api_key).text_to_speech.convert(
            voice_id=voice_id,
            text=text,
            model_id=TTS_MODEL,
            output_format="mp3_44100_128",
            voice_settings=VoiceSettings(**VOICE_SETTINGS),
        )
        audio = b"".join(chunks)
    except Exception as e:
        log.error("ElevenLabs synthesis failed (voice %s): %s", voice_id, e)
        raise UpstreamError("Failed to generate audio") from e

    if not audio:
        log.error("ElevenLabs returned an empty audio buffer for voice %s", voice_id)
        raise UpstreamError("Failed to generate audio")
    return audio


def choose_voice_id(base64_image: str, keys: ApiKeys) -> str:
    """Voice for the person in the image, or the default voice.

    Classification and listing problems are logged, never raised: narration
    still works with the default voice.
    """
    try:
        analysis = analyze_image(base64_image, keys.require("openai"))
        voice = select_voice(list_voices(keys.elevenlabs), analysis.gender, analysis.age)
    except MovieLabError as e:
        log.warning("Voice selection failed, using default voice: %s", e)
        return DEFAULT_VOICE_ID

    if voice is None:
        log.warning("No voices available, using default voice")
        return DEFAULT_VOICE_ID
    log.info("Selected voice %s (%s)", voice.name, voice.voice_id)
    return voice.voice_id


def generate_narration(text: str, base64_image: str | None, keys: ApiKeys) -> str:
    """Generate narration for *text* and return it base64-encoded."""
    if not text or not text.strip():
        raise InvalidRequestError("Text or prompt is required")
    keys.require("elevenlabs")
    if base64_image:
        keys.require("openai")

    voice_id = choose_voice_id(base64_image, keys) if base64_image else DEFAULT_VOICE_ID
    log.info("Generating narration (%d chars) with voice %s", len(text), voice_id)
    audio = synthesize(text.strip(), voice_id, keys.elevenlabs)
    encoded = base64.b64encode(audio).decode("ascii")
    log.info("Narration ready (%d bytes)", len(audio))
    return encoded
