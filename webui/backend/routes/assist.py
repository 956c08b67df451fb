"""Writing-assist routes: image analysis, scene suggestions, translation."""
from __future__ import annotations

from litestar import post
from litestar.status_codes import HTTP_200_OK

from movielab import translate, vision
from movielab.config import ApiKeys
from webui.backend.models import (
    AnalyzeImageRequest,
    ExtractConversationRequest,
    SceneSuggestionRequest,
    TranslateBatchRequest,
    TranslateChunkRequest,
    TranslateRequest,
)


@post("/api/analyze-image", status_code=HTTP_200_OK, sync_to_thread=True)
def analyze_image(data: AnalyzeImageRequest, keys: ApiKeys) -> dict:
    return vision.analyze_image(data.base64_image, keys.require("openai")).to_dict()


@post("/api/generate-scene-suggestions", status_code=HTTP_200_OK, sync_to_thread=True)
def generate_scene_suggestions(data: SceneSuggestionRequest, keys: ApiKeys) -> dict:
    return vision.generate_scene_suggestions(
        data.scene_number,
        data.total_scenes,
        data.base64_image,
        data.kind,
        keys.require("openai"),
    )


@post("/api/extract-conversation", status_code=HTTP_200_OK, sync_to_thread=True)
def extract_conversation(data: ExtractConversationRequest, keys: ApiKeys) -> dict:
    conversation = vision.extract_conversation(data.prompt, keys.require("openai"))
    return {"conversation": conversation}


@post("/api/translate", status_code=HTTP_200_OK, sync_to_thread=True)
def translate_text(data: TranslateRequest, keys: ApiKeys) -> dict:
    translated = translate.translate_text(data.text, data.target_language, keys.require("openai"))
    return {"translatedText": translated}


@post("/api/translate/chunk", status_code=HTTP_200_OK, sync_to_thread=True)
def translate_chunk(data: TranslateChunkRequest, keys: ApiKeys) -> dict:
    chunk = data.chunk
    translated = translate.translate_text(chunk.text, data.target_language, keys.require("openai"))
    return {"id": chunk.id, "translatedText": translated, "tag": chunk.tag, "html": chunk.html}


@post("/api/translate/batch", status_code=HTTP_200_OK, sync_to_thread=True)
def translate_batch(data: TranslateBatchRequest, keys: ApiKeys) -> dict:
    translations = translate.translate_batch(
        data.texts, data.target_language, keys.require("openai"), batch_size=data.batch_size,
    )
    return {"translations": translations}
