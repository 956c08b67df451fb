"""Pick a text-to-speech voice for a gender/age classification.

A prioritised rule matcher, first match wins:

  1. gender and age bucket both match the voice labels,
  2. gender matches,
  3. one of the hard-coded default voice names for that gender,
  4. the first voice the provider listed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

# Coarse age bucket → provider age labels
AGE_BUCKETS: dict[str, tuple[str, ...]] = {
    "young":  ("young", "teen", "twenties"),
    "middle": ("adult", "middle-aged", "middle"),
    "old":    ("senior", "elderly", "old"),
}

DEFAULT_VOICES: dict[str, tuple[str, ...]] = {
    "female": ("Rachel", "Bella", "Elli"),
    "male":   ("Josh", "Adam", "Sam"),
}


@dataclass
class VoiceInfo:
    voice_id: str
    name: str
    labels: dict[str, str] = field(default_factory=dict)

    def label(self, key: str) -> str:
        return (self.labels.get(key) or "").lower()


def select_voice(voices: list[VoiceInfo], gender: str, age: str) -> VoiceInfo | None:
    if not voices:
        return None

    gender = gender.lower()
    bucket = AGE_BUCKETS.get(age.lower(), ())

    for voice in voices:
        if voice.label("gender") == gender and voice.label("age") in bucket:
            log.info("Exact voice match for %s/%s: %s", gender, age, voice.name)
            return voice

    for voice in voices:
        if voice.label("gender") == gender:
            log.info("Gender-only voice match for %s: %s", gender, voice.name)
            return voice

    by_name = {v.name: v for v in reversed(voices)}
    for name in DEFAULT_VOICES.get(gender, ()):
        if name in by_name:
            log.info("Using default voice %s", name)
            return by_name[name]

    log.info("Using fallback voice %s", voices[0].name)
    return voices[0]
