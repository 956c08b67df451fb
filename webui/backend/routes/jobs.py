"""Job submit / status / cancel routes, plus session eviction."""
from __future__ import annotations

from litestar import delete, get, post
from litestar.exceptions import NotFoundException
from litestar.status_codes import HTTP_200_OK

from movielab.config import ApiKeys, Config
from webui.backend.job_manager import job_manager
from webui.backend.models import JobRequest, JobStatus


@post("/api/jobs")
async def create_job(data: JobRequest, keys: ApiKeys, config: Config) -> dict:
    job_id = job_manager.submit(data, keys, config)
    return {"job_id": job_id}


@get("/api/jobs/{job_id:str}")
async def get_job(job_id: str) -> JobStatus:
    status = job_manager.status(job_id)
    if status is None:
        raise NotFoundException(f"Job {job_id!r} not found")
    return status


@post("/api/jobs/{job_id:str}/cancel")
async def cancel_job(job_id: str) -> dict:
    if not job_manager.cancel(job_id):
        raise NotFoundException(f"Job {job_id!r} not found")
    return {"ok": True, "job_id": job_id}


@delete("/api/sessions/{session_id:str}", status_code=HTTP_200_OK)
async def end_session(session_id: str) -> dict:
    """Drop the narration cached for a session."""
    return {"ok": True, "evicted": job_manager.end_session(session_id)}
