"""Job lifecycle management: submit, cancel, poll, SSE streaming."""
from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from pathlib import Path
from typing import AsyncIterator

from movielab.config import ApiKeys, Config
from movielab.pipeline import AudioCache, PipelineCancelled, ScenePipeline, SceneServices
from movielab.scenes import build_scenes
from movielab.videogen import decode_image_payload

from .models import JobRequest, JobStatus

log = logging.getLogger(__name__)


def output_url(path: Path) -> str:
    """Public URL of a file written to the output directory."""
    return f"/api/outputs/{Path(path).name}"


class JobManager:
    def __init__(self) -> None:
        self._jobs: dict[str, dict] = {}
        self._queues: dict[str, asyncio.Queue] = {}
        self._sessions: dict[str, AudioCache] = {}
        self._sessions_lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None

    def set_event_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def session_cache(self, session_id: str | None) -> AudioCache:
        """The narration cache for *session_id*; a throwaway one without an id."""
        if not session_id:
            return AudioCache()
        with self._sessions_lock:
            return self._sessions.setdefault(session_id, AudioCache())

    def end_session(self, session_id: str) -> bool:
        with self._sessions_lock:
            cache = self._sessions.pop(session_id, None)
        if cache is None:
            return False
        cache.clear()
        log.info("Session %s ended", session_id)
        return True

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, request: JobRequest, keys: ApiKeys, config: Config) -> str:
        """Start a job in a background thread. Returns the job_id immediately.

        The request is validated up front so bad input is answered with 400
        instead of surfacing later as a failed job.
        """
        scenes = build_scenes([(s.prompt, s.subtitle) for s in request.scenes])
        seed_image = decode_image_payload(request.image)

        job_id = str(uuid.uuid4())[:8]
        queue: asyncio.Queue = asyncio.Queue()
        self._queues[job_id] = queue
        job = {
            "state": "queued",
            "started_at": None,
            "finished_at": None,
            "progress": 0.0,
            "step": "",
            "result": None,
            "error": None,
        }
        self._jobs[job_id] = job

        loop = self._loop or asyncio.get_event_loop()

        def _push(msg: dict) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, msg)

        def _log(text: str) -> None:
            _push({"type": "log", "text": text, "ts": time.time()})

        def _progress(value: float, step: str) -> None:
            job["progress"] = value
            job["step"] = step
            _push({"type": "progress", "value": value, "step": step})

        pipeline = ScenePipeline(
            SceneServices(keys, config, publish=output_url),
            progress_cb=_log,
            on_progress=_progress,
            audio_cache=self.session_cache(request.session_id),
        )
        job["_pipeline"] = pipeline

        thread = threading.Thread(
            target=self._run_job,
            args=(job_id, pipeline, scenes, seed_image, request, _push),
            daemon=True,
        )
        thread.start()
        return job_id

    def cancel(self, job_id: str) -> bool:
        job = self._jobs.get(job_id)
        if not job:
            return False
        job["_pipeline"].cancel()
        if job["state"] in ("queued", "running"):
            job["state"] = "cancelled"
        return True

    def status(self, job_id: str) -> JobStatus | None:
        job = self._jobs.get(job_id)
        if not job:
            return None
        result = job["result"]
        return JobStatus(
            job_id=job_id,
            state=job["state"],
            started_at=job["started_at"],
            finished_at=job["finished_at"],
            progress=job["progress"],
            step=job["step"],
            videos=[v.to_dict() for v in result.generated_videos] if result else [],
            synced_videos=list(result.synced_videos) if result else [],
            merged_video_url=result.merged_video_url if result else None,
            error=job["error"],
        )

    async def stream(self, job_id: str) -> AsyncIterator[dict]:
        """Async generator; yields SSE message dicts until the job completes."""
        queue = self._queues.get(job_id)
        if queue is None:
            return
        while True:
            msg = await queue.get()
            yield msg
            if msg.get("type") == "status":
                break

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run_job(self, job_id, pipeline, scenes, seed_image, request: JobRequest, push_raw) -> None:
        job = self._jobs[job_id]
        if job["state"] == "queued":
            job["state"] = "running"
        job["started_at"] = time.time()
        try:
            result = pipeline.run(
                scenes,
                seed_image,
                duration=request.duration,
                aspect_ratio=request.aspect_ratio,
                merge=request.merge,
            )
            job["result"] = result
            if pipeline.cancelled:
                # cancel arrived while the last step was still running
                raise PipelineCancelled("Pipeline cancelled by user.")
            job["state"] = "done"
            job["finished_at"] = time.time()
            push_raw({
                "type": "status",
                "state": "done",
                "videos": list(result.synced_videos),
                "merged_video_url": result.merged_video_url,
            })

        except PipelineCancelled:
            log.info("Job %s cancelled", job_id)
            job["state"] = "cancelled"
            job["finished_at"] = time.time()
            push_raw({"type": "status", "state": "cancelled"})

        except Exception as exc:
            log.exception("Job %s failed", job_id)
            job["state"] = "failed"
            job["error"] = str(exc)
            job["finished_at"] = time.time()
            push_raw({"type": "status", "state": "failed", "error": str(exc)})


# Singleton
job_manager = JobManager()
