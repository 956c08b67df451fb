"""Orchestrates multi-scene video generation.

Each scene runs four steps strictly in order: narration audio, image-to-video,
lip-sync, and (except for the last scene) last-frame extraction, whose frame
seeds the next scene. Once every scene is done the synced clips are merged.
Any step raising aborts the whole run; nothing is retried.
"""
from __future__ import annotations

import base64
import logging
import threading
from pathlib import Path
from typing import Callable

from . import compiler, frames, lipsync, ttsgen, videogen
from .config import DEFAULT_ASPECT_RATIO, DEFAULT_DURATION, ApiKeys, Config
from .errors import InvalidRequestError, UpstreamError
from .scenes import GeneratedVideo, PipelineResult, Scene

log = logging.getLogger(__name__)

STEPS_PER_SCENE = 4


class PipelineCancelled(Exception):
    pass


class AudioCache:
    """Narration audio per scene index, kept for the length of a session.

    A cached entry only counts as a hit while the scene's subtitle is
    unchanged; editing the line regenerates the audio.
    """

    def __init__(self) -> None:
        self._entries: dict[int, tuple[str, str]] = {}
        self._lock = threading.Lock()

    def get(self, index: int, subtitle: str) -> str | None:
        with self._lock:
            entry = self._entries.get(index)
        if entry and entry[0] == subtitle:
            return entry[1]
        return None

    def put(self, index: int, subtitle: str, audio_b64: str) -> None:
        with self._lock:
            self._entries[index] = (subtitle, audio_b64)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class SceneServices:
    """The provider calls a pipeline run makes, bound to one set of keys.

    *publish* turns a merged file on disk into the URL handed back to the
    caller; by default the local path is returned as-is.
    """

    def __init__(
        self,
        keys: ApiKeys,
        config: Config,
        publish: Callable[[Path], str] | None = None,
    ) -> None:
        self.keys = keys
        self.config = config
        self.publish = publish or str

    def narrate(self, subtitle: str, image_b64: str) -> str:
        return ttsgen.generate_narration(subtitle, image_b64, self.keys)

    def generate_video(
        self,
        image_bytes: bytes,
        prompt: str,
        subtitle: str,
        duration: str,
        aspect_ratio: str,
    ) -> str:
        return videogen.generate_video(
            image_bytes, prompt, self.keys.require("fal"), duration, aspect_ratio,
        )

    def sync_lip(self, video_url: str, audio_url: str) -> str:
        return lipsync.sync_lip(video_url, audio_url, self.keys.require("fal"))

    def extract_frame(self, video_url: str) -> bytes:
        return frames.extract_last_frame(video_url)

    def merge(self, video_urls: list[str]) -> str:
        return self.publish(compiler.merge_videos(video_urls, self.config.output_dir))


class ScenePipeline:
    """Sequential scene pipeline with progress reporting and cancellation."""

    def __init__(
        self,
        services: SceneServices,
        progress_cb: Callable[[str], None] | None = None,
        on_progress: Callable[[float, str], None] | None = None,
        audio_cache: AudioCache | None = None,
    ):
        self.services = services
        self.progress_cb = progress_cb or (lambda msg: None)
        self.on_progress = on_progress or (lambda value, step: None)
        self.audio_cache = audio_cache if audio_cache is not None else AudioCache()
        self._cancelled = threading.Event()
        self._completed = 0
        self._total = 0
        self.progress = 0.0
        self.current_step = ""

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def _check_cancel(self) -> None:
        if self._cancelled.is_set():
            raise PipelineCancelled("Pipeline cancelled by user.")

    def _advance(self, step: str) -> None:
        """Record one completed step and report the new progress value."""
        self._completed += 1
        self.progress = min(100.0, self._completed / self._total * 100)
        self.current_step = step
        self.progress_cb(f"  ✓ {step} ({self.progress:.0f}%)")
        self.on_progress(self.progress, step)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def step_audio(self, scene: Scene, total: int, seed_b64: str) -> str:
        self.progress_cb(f"🎙️ Generating voice-over audio for Scene {scene.index + 1} of {total}...")
        self._check_cancel()

        audio = self.audio_cache.get(scene.index, scene.subtitle)
        if audio is not None:
            self.progress_cb("  Using cached narration")
        else:
            audio = self.services.narrate(scene.subtitle, seed_b64)
            self.audio_cache.put(scene.index, scene.subtitle, audio)

        self._advance(f"Audio ready for Scene {scene.index + 1}")
        return audio

    def step_video(
        self,
        scene: Scene,
        total: int,
        image_bytes: bytes,
        duration: str,
        aspect_ratio: str,
    ) -> str:
        self.progress_cb(f"🎬 Creating AI-generated video for Scene {scene.index + 1} of {total}...")
        self._check_cancel()

        url = self.services.generate_video(
            image_bytes, scene.prompt, scene.subtitle, duration, aspect_ratio,
        )
        if not url:
            raise UpstreamError(f"No valid video URL for scene {scene.index + 1}")

        self._advance(f"Video ready for Scene {scene.index + 1}")
        return url

    def step_sync(self, scene: Scene, total: int, video_url: str, audio_b64: str) -> str:
        self.progress_cb(f"👄 Synchronizing lip movements for Scene {scene.index + 1} of {total}...")
        self._check_cancel()

        url = self.services.sync_lip(video_url, lipsync.audio_data_url(audio_b64))
        if not url:
            raise UpstreamError(f"No synced video URL returned for scene {scene.index + 1}")

        self._advance(f"Lip-sync ready for Scene {scene.index + 1}")
        return url

    def step_frame(self, scene: Scene, synced_url: str) -> bytes:
        self.progress_cb(f"🖼️ Processing transition frame from Scene {scene.index + 1}...")
        self._check_cancel()

        frame = self.services.extract_frame(synced_url)
        self._advance(f"Transition frame ready after Scene {scene.index + 1}")
        return frame

    def step_finish(self, result: PipelineResult, merge: bool) -> None:
        self._check_cancel()
        if merge and len(result.synced_videos) > 1:
            self.progress_cb(f"🎞️ Merging {len(result.synced_videos)} scenes...")
            result.merged_video_url = self.services.merge(list(result.synced_videos))
            self._advance("Scenes merged")
        else:
            self._advance("Video generation complete")

    # ------------------------------------------------------------------

    def run(
        self,
        scenes: list[Scene],
        seed_image: bytes,
        duration: str = DEFAULT_DURATION,
        aspect_ratio: str = DEFAULT_ASPECT_RATIO,
        merge: bool = True,
    ) -> PipelineResult:
        """Run every scene in order and return the synced (and merged) clips."""
        if not scenes:
            raise InvalidRequestError("At least one scene is required")
        if not seed_image:
            raise InvalidRequestError("A seed image is required")

        total = len(scenes)
        self._completed = 0
        self._total = total * STEPS_PER_SCENE
        self.progress = 0.0
        self.on_progress(self.progress, "Starting")

        # Narration always classifies the original upload: the speaker does
        # not change when later scenes are seeded from extracted frames.
        seed_b64 = base64.b64encode(seed_image).decode("ascii")
        current_image = seed_image
        result = PipelineResult()

        try:
            for i, scene in enumerate(scenes):
                audio = self.step_audio(scene, total, seed_b64)
                video_url = self.step_video(scene, total, current_image, duration, aspect_ratio)
                result.generated_videos.append(
                    GeneratedVideo(url=video_url, description=f"Scene {i + 1}", subtitles=scene.subtitle)
                )
                synced_url = self.step_sync(scene, total, video_url, audio)
                result.synced_videos.append(synced_url)

                if i < total - 1:
                    current_image = self.step_frame(scene, synced_url)

            self.step_finish(result, merge)
            self.progress_cb("\n🎉 Video generation complete! Your AI-powered video is ready for preview.")
            return result
        except PipelineCancelled:
            self.progress_cb("\n⛔ Pipeline cancelled.")
            raise
        except Exception as e:
            log.error("Pipeline aborted at step %d/%d: %s", self._completed + 1, self._total, e)
            raise
