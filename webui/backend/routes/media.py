"""Single-step media routes: narration, video, lip-sync, frames, merging.

These mirror the pipeline steps one at a time so a client can drive (or
retry) any step on its own.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Annotated

from litestar import post
from litestar.datastructures import UploadFile
from litestar.enums import RequestEncodingType
from litestar.params import Body
from litestar.status_codes import HTTP_200_OK

from movielab import compiler, frames, lipsync, ttsgen, videogen
from movielab.config import DEFAULT_ASPECT_RATIO, DEFAULT_DURATION, ApiKeys, Config
from movielab.errors import InvalidRequestError
from movielab.scenes import GeneratedVideo
from webui.backend.job_manager import output_url
from webui.backend.models import ExtractFrameRequest, GenerateAudioRequest, MergeVideosRequest, SyncLipRequest

log = logging.getLogger(__name__)


@dataclass
class GenerateVideoForm:
    image: UploadFile
    prompts: str | None = None      # JSON list of prompts
    prompt: str | None = None
    subtitles: str | None = None    # JSON list, or one plain subtitle
    duration: str = DEFAULT_DURATION
    aspectRatio: str = DEFAULT_ASPECT_RATIO  # form field name used by the client


def _json_list(raw: str | None) -> list[str] | None:
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return [raw]
    if isinstance(value, list):
        return [str(v) for v in value]
    return [str(value)]


@post("/api/generate-audio", status_code=HTTP_200_OK, sync_to_thread=True)
def generate_audio(data: GenerateAudioRequest, keys: ApiKeys) -> dict:
    audio = ttsgen.generate_narration(data.spoken_text, data.base64_image, keys)
    return {"audio": audio}


@post("/api/generate-video", status_code=HTTP_200_OK, sync_to_thread=True)
def generate_video(
    data: Annotated[GenerateVideoForm, Body(media_type=RequestEncodingType.MULTI_PART)],
    keys: ApiKeys,
) -> dict:
    prompts = _json_list(data.prompts) or ([data.prompt] if data.prompt else [])
    prompts = [p for p in prompts if p and p.strip()]
    if not prompts:
        raise InvalidRequestError("Missing required fields")
    subtitles = _json_list(data.subtitles) or []

    fal_key = keys.require("fal")
    image_bytes = data.image.file.read()

    videos = []
    for i, prompt in enumerate(prompts):
        url = videogen.generate_video(image_bytes, prompt, fal_key, data.duration, data.aspectRatio)
        videos.append(GeneratedVideo(
            url=url,
            description=f"Scene {i + 1}",
            subtitles=subtitles[i] if i < len(subtitles) else "",
        ).to_dict())
    return {"videos": videos}


@post("/api/sync-lip", status_code=HTTP_200_OK, sync_to_thread=True)
def sync_lip(data: SyncLipRequest, keys: ApiKeys) -> dict:
    url = lipsync.sync_lip(data.video_url, data.audio_url, keys.require("fal"))
    return {"url": url}


@post("/api/extract-frame", status_code=HTTP_200_OK, sync_to_thread=True)
def extract_frame(data: ExtractFrameRequest) -> dict:
    frame = frames.extract_last_frame(data.video_url)
    return {"frame": frames.to_data_url(frame)}


@post("/api/merge-videos", status_code=HTTP_200_OK, sync_to_thread=True)
def merge_videos(data: MergeVideosRequest, config: Config) -> dict:
    path = compiler.merge_videos(data.video_urls, config.output_dir)
    return {"url": output_url(path), "message": "Videos merged successfully"}
