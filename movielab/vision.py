"""OpenAI vision helpers: speaker classification, scene suggestions.

Model output is treated as untrusted text. Anything that does not parse into
the expected shape is replaced by a local fallback instead of failing the
request; only provider/network errors surface as ``UpstreamError``.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict, dataclass

from .config import MAX_SUBTITLE_WORDS, MAX_SUGGESTION_ATTEMPTS, VISION_MODEL
from .errors import InvalidRequestError, UpstreamError

log = logging.getLogger(__name__)

GENDERS = ("male", "female")
AGES = ("young", "middle", "old")
SUGGESTION_KINDS = ("both", "description", "subtitles")

FALLBACK_DESCRIPTION = (
    "The camera slowly pushes in on the subject, who looks up and begins to speak, "
    "soft natural light and gentle movement in the background."
)
FALLBACK_SUBTITLE = "Let me tell you what happened next."

_CLASSIFY_PROMPT = (
    "Analyze this image and tell me ONLY two things: 1) the gender (respond with "
    "exactly 'male' or 'female'), and 2) the approximate age category (respond with "
    "exactly 'young', 'middle', or 'old'). Format your response as a valid JSON object "
    'with exactly these two fields: {"gender": "male|female", "age": "young|middle|old"}'
)

_DESCRIBE_PROMPT = (
    "Analyze this image and describe what you see in detail, including: the person's "
    "appearance, clothing, setting, and any notable objects or actions. "
    "Format as a brief paragraph."
)


@dataclass
class VoiceAnalysis:
    gender: str = "female"
    age: str = "young"

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Helpers: OpenAI chat completion
# ---------------------------------------------------------------------------

def _chat(
    messages: list[dict],
    api_key: str,
    label: str = "generate text",
    model: str = VISION_MODEL,
    max_tokens: int = 1000,
    temperature: float = 0.7,
    json_mode: bool = False,
) -> str:
    """One chat completion. *label* names the operation in the public error."""
    from openai import OpenAI, OpenAIError

    client = OpenAI(api_key=api_key)
    kwargs = {}
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}
    try:
        resp = client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            **kwargs,
        )
    except OpenAIError as e:
        log.error("OpenAI %s call failed: %s", model, e)
        raise UpstreamError(f"Failed to {label}") from e
    return (resp.choices[0].message.content or "").strip()


def _image_message(text: str, base64_image: str) -> dict:
    return {
        "role": "user",
        "content": [
            {"type": "text", "text": text},
            {"type": "image_url", "image_url": {"url": _as_data_url(base64_image)}},
        ],
    }


def _as_data_url(base64_image: str) -> str:
    if base64_image.startswith("data:"):
        return base64_image
    return f"data:image/jpeg;base64,{base64_image}"


def _extract_json(text: str) -> dict:
    """Extract the first JSON object from a text response."""
    try:
        data = json.loads(text)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass
    fence = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", text, re.DOTALL)
    if fence:
        try:
            return json.loads(fence.group(1))
        except json.JSONDecodeError:
            pass
    match = re.search(r"\{.*\}", text, re.DOTALL)
    if match:
        try:
            return json.loads(match.group(0))
        except json.JSONDecodeError:
            pass
    raise ValueError(f"No valid JSON found in response:\n{text[:500]}")


# ---------------------------------------------------------------------------
# Speaker classification
# ---------------------------------------------------------------------------

def parse_voice_analysis(text: str) -> VoiceAnalysis:
    """Parse the classifier reply; out-of-vocabulary or non-JSON → fallback."""
    try:
        data = _extract_json(text)
        gender = str(data.get("gender", "")).strip().lower()
        age = str(data.get("age", "")).strip().lower()
        if gender not in GENDERS or age not in AGES:
            raise ValueError(f"Invalid response format: {data}")
        return VoiceAnalysis(gender=gender, age=age)
    except ValueError as e:
        log.warning("Could not parse image analysis, using fallback: %s", e)
        return VoiceAnalysis()


def analyze_image(base64_image: str, api_key: str) -> VoiceAnalysis:
    """Classify the person in the image by gender and coarse age."""
    if not base64_image:
        raise InvalidRequestError("Base64 image data is required")
    content = _chat(
        [_image_message(_CLASSIFY_PROMPT, base64_image)],
        api_key,
        label="analyze image",
        temperature=0,
    )
    log.debug("Vision classification reply: %s", content)
    analysis = parse_voice_analysis(content)
    log.info("Image analysis result: %s", analysis)
    return analysis


def describe_image(base64_image: str, api_key: str, label: str = "describe image") -> str:
    return _chat([_image_message(_DESCRIBE_PROMPT, base64_image)], api_key, label=label)


# ---------------------------------------------------------------------------
# Scene suggestions
# ---------------------------------------------------------------------------

def _system_prompt(kind: str, scene_number: int, total_scenes: int) -> str:
    if kind == "both":
        return (
            "You are a creative video scene planner for a continuous story. "
            f"For scene {scene_number} of {total_scenes}, ensure your scene descriptions and "
            "dialogue flow naturally from the previous scenes. The dialogue MUST be very "
            "concise and take exactly 5 seconds to speak at a natural pace (about 10-15 words "
            "maximum). Format your response as a JSON object with 'sceneDescription' and "
            "'subtitles' fields."
        )
    if kind == "description":
        return (
            f"You are a creative video scene planner. For scene {scene_number} of "
            f"{total_scenes}, ensure your scene description continues naturally from the "
            "previous scene, with smooth camera transitions. Respond with a scene "
            "description as plain text."
        )
    return (
        f"You are a creative video scene planner. For scene {scene_number} of "
        f"{total_scenes}, ensure your dialogue continues naturally from the previous "
        "scene's conversation. The dialogue MUST be very concise and take exactly 5 seconds "
        "to speak at a natural pace (about 10-15 words maximum). Respond with dialogue or "
        "narration as plain text."
    )


def _user_prompt(kind: str, scene_number: int, total_scenes: int, context: str) -> str:
    base = f"Based on this image: {context}\n\n"
    opening = scene_number == 1
    if kind == "description":
        if opening:
            return base + (
                "Generate a compelling opening scene description for a 5-second video clip. "
                "Focus on establishing the setting, movement, emotion, and visual interest."
            )
        return base + (
            "Generate a compelling scene description that continues naturally from the "
            f"previous scene (scene {scene_number} of {total_scenes}). The camera should "
            "start from where the last scene ended, ensuring a smooth 5-second transition. "
            "Focus on continuing the story flow while maintaining visual interest."
        )
    if kind == "subtitles":
        if opening:
            return base + (
                "Generate natural, engaging opening dialogue or narration for a 5-second "
                "video clip. The dialogue should establish the scene's context and feel authentic."
            )
        return base + (
            "Generate natural dialogue or narration that continues directly from the previous "
            f"scene (scene {scene_number} of {total_scenes}). This 5-second clip should flow "
            "seamlessly from the previous conversation or narration, maintaining context and "
            "character voices."
        )
    if opening:
        return base + (
            "Generate both:\n1. A compelling 5-second opening scene description that "
            "establishes the setting and visual interest\n2. Opening dialogue or narration "
            "that sets up the scene naturally\n\nFormat your response as a JSON object with "
            "'sceneDescription' and 'subtitles' fields."
        )
    return base + (
        f"For scene {scene_number} of {total_scenes}, generate both:\n1. A compelling "
        "5-second scene description that continues naturally from the previous scene, "
        "ensuring smooth camera transitions\n2. Dialogue or narration that continues "
        "directly from the previous scene's conversation\n\nEnsure both the visuals and "
        "dialogue flow seamlessly from the previous scene.\n\nFormat your response as a "
        "JSON object with 'sceneDescription' and 'subtitles' fields."
    )


def _clean_subtitle(text: str) -> str:
    return text.strip().strip('"').strip()


def _valid_subtitle(text: str) -> bool:
    return bool(text) and len(text.split()) <= MAX_SUBTITLE_WORDS


def parse_suggestion(kind: str, content: str) -> dict:
    """Turn a model reply into the suggestion payload.

    Raises ``ValueError`` when the reply is unusable so the caller can retry.
    """
    if kind == "description":
        description = content.strip()
        if not description:
            raise ValueError("Empty scene description")
        return {"sceneDescription": description}

    if kind == "subtitles":
        subtitle = _clean_subtitle(content)
        if not _valid_subtitle(subtitle):
            raise ValueError(f"Unusable subtitle: {subtitle[:80]!r}")
        return {"subtitles": subtitle}

    data = _extract_json(content)
    description = str(data.get("sceneDescription") or "").strip()
    subtitle = _clean_subtitle(str(data.get("subtitles") or ""))
    if not description or not _valid_subtitle(subtitle):
        raise ValueError(f"Incomplete suggestion: {data}")
    return {"sceneDescription": description, "subtitles": subtitle}


def _fallback_suggestion(kind: str) -> dict:
    if kind == "description":
        return {"sceneDescription": FALLBACK_DESCRIPTION}
    if kind == "subtitles":
        return {"subtitles": FALLBACK_SUBTITLE}
    return {"sceneDescription": FALLBACK_DESCRIPTION, "subtitles": FALLBACK_SUBTITLE}


def generate_scene_suggestions(
    scene_number: int,
    total_scenes: int,
    base64_image: str,
    kind: str,
    api_key: str,
    max_attempts: int = MAX_SUGGESTION_ATTEMPTS,
) -> dict:
    """Suggest a scene description and/or spoken subtitle for one scene.

    The image is described once; the suggestion call is retried up to
    *max_attempts* times while its output is malformed, then canned text is
    returned.
    """
    if kind not in SUGGESTION_KINDS:
        raise InvalidRequestError(f"type must be one of {', '.join(SUGGESTION_KINDS)}")
    if scene_number < 1 or total_scenes < 1 or not base64_image:
        raise InvalidRequestError("Missing required fields")

    context = describe_image(base64_image, api_key, label="generate scene suggestions")
    log.debug("Image context for scene %d: %s", scene_number, context)

    messages = [
        {"role": "system", "content": _system_prompt(kind, scene_number, total_scenes)},
        {"role": "user", "content": _user_prompt(kind, scene_number, total_scenes, context)},
    ]

    for attempt in range(1, max_attempts + 1):
        content = _chat(messages, api_key, label="generate scene suggestions")
        try:
            suggestion = parse_suggestion(kind, content)
            log.info("Scene %d suggestion (%s) ready on attempt %d", scene_number, kind, attempt)
            return suggestion
        except ValueError as e:
            log.warning(
                "Scene %d suggestion unusable (attempt %d/%d): %s",
                scene_number, attempt, max_attempts, e,
            )

    log.warning("Scene %d: falling back to canned %s suggestion", scene_number, kind)
    return _fallback_suggestion(kind)


def extract_conversation(text: str, api_key: str) -> str:
    """Strip narration and description, keeping only the spoken dialogue."""
    if not text:
        raise InvalidRequestError("Prompt is required")
    return _chat(
        [
            {
                "role": "system",
                "content": (
                    "Extract only the conversation/dialogue from the given text. Return only "
                    "the conversation, without any narration or description."
                ),
            },
            {"role": "user", "content": text},
        ],
        api_key,
        label="extract conversation",
    )
