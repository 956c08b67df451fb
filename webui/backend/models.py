"""Pydantic request/response models for the MovieLab Web API.

Request bodies use the camelCase field names the browser client sends;
snake_case names are accepted too.
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerateAudioRequest(ApiModel):
    text: str = ""
    prompt: str = ""            # accepted in place of text
    base64_image: str | None = None

    @property
    def spoken_text(self) -> str:
        return self.text or self.prompt


class SyncLipRequest(ApiModel):
    video_url: str
    audio_url: str


class ExtractFrameRequest(ApiModel):
    video_url: str


class MergeVideosRequest(ApiModel):
    video_urls: list[str] = Field(default_factory=list)


class SceneSuggestionRequest(ApiModel):
    scene_number: int
    total_scenes: int
    base64_image: str
    kind: Literal["both", "description", "subtitles"] = Field(default="both", alias="type")


class AnalyzeImageRequest(ApiModel):
    base64_image: str = ""


class ExtractConversationRequest(ApiModel):
    prompt: str = ""


class TranslateRequest(ApiModel):
    text: str
    target_language: str


class TranslationChunk(ApiModel):
    id: str | int
    text: str
    tag: str = ""
    html: str = ""


class TranslateChunkRequest(ApiModel):
    chunk: TranslationChunk
    target_language: str


class TranslateBatchRequest(ApiModel):
    texts: list[str]
    target_language: str
    batch_size: int = Field(default=10, ge=1, le=50)


class SceneInput(ApiModel):
    prompt: str
    subtitle: str


class JobRequest(ApiModel):
    image: str                  # base64 or data URL of the seed image
    scenes: list[SceneInput] = Field(min_length=1)
    duration: Literal["5", "10"] = "5"
    aspect_ratio: Literal["16:9", "9:16", "1:1"] = "16:9"
    merge: bool = True
    session_id: str | None = None   # reuse narration cached under this session


class JobStatus(BaseModel):
    job_id: str
    state: Literal["queued", "running", "done", "cancelled", "failed"]
    started_at: float | None = None
    finished_at: float | None = None
    progress: float = 0.0
    step: str = ""
    videos: list[dict] = Field(default_factory=list)
    synced_videos: list[str] = Field(default_factory=list)
    merged_video_url: str | None = None
    error: str | None = None


class ConfigStatus(BaseModel):
    openai_api_key: str = ""
    elevenlabs_api_key: str = ""
    fal_key: str = ""
    output_dir: str = "output"


class OutputFile(BaseModel):
    name: str
    url: str
    size_bytes: int
    created_at: float
