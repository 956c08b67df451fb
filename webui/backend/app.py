"""Litestar ASGI application: MovieLab Web API."""
from __future__ import annotations

import asyncio
import logging

from litestar import Litestar, Request, Response
from litestar.config.cors import CORSConfig
from litestar.di import Provide
from litestar.exceptions import HTTPException
from litestar.logging import LoggingConfig
from litestar.status_codes import HTTP_500_INTERNAL_SERVER_ERROR

from movielab.config import ELEVENLABS_HEADER, FAL_HEADER, ApiKeys, Config
from movielab.errors import MovieLabError
from webui.backend.job_manager import job_manager
from webui.backend.routes.assist import (
    analyze_image,
    extract_conversation,
    generate_scene_suggestions,
    translate_batch,
    translate_chunk,
    translate_text,
)
from webui.backend.routes.config import get_config
from webui.backend.routes.jobs import cancel_job, create_job, end_session, get_job
from webui.backend.routes.media import extract_frame, generate_audio, generate_video, merge_videos, sync_lip
from webui.backend.routes.outputs import download_output, list_outputs
from webui.backend.routes.stream import stream_job

log = logging.getLogger(__name__)


def _on_startup() -> None:
    """Capture the running event loop for thread-safe queue operations."""
    loop = asyncio.get_event_loop()
    job_manager.set_event_loop(loop)


def provide_config() -> Config:
    return Config.load()


def provide_api_keys(request: Request, config: Config) -> ApiKeys:
    """Keys sent by the client take priority over the server's own."""
    return ApiKeys.from_headers(request.headers, config)


def movielab_error_handler(request: Request, exc: MovieLabError) -> Response:
    return Response(content={"error": str(exc)}, status_code=exc.status_code)


def http_error_handler(request: Request, exc: HTTPException) -> Response:
    return Response(content={"error": exc.detail}, status_code=exc.status_code)


def internal_error_handler(request: Request, exc: Exception) -> Response:
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return Response(content={"error": "Internal server error"}, status_code=HTTP_500_INTERNAL_SERVER_ERROR)


app = Litestar(
    route_handlers=[
        generate_audio,
        generate_video,
        sync_lip,
        extract_frame,
        merge_videos,
        analyze_image,
        generate_scene_suggestions,
        extract_conversation,
        translate_text,
        translate_chunk,
        translate_batch,
        create_job,
        get_job,
        cancel_job,
        stream_job,
        end_session,
        list_outputs,
        download_output,
        get_config,
    ],
    dependencies={
        "config": Provide(provide_config, sync_to_thread=False),
        "keys": Provide(provide_api_keys, sync_to_thread=False),
    },
    exception_handlers={
        MovieLabError: movielab_error_handler,
        HTTPException: http_error_handler,
        Exception: internal_error_handler,
    },
    cors_config=CORSConfig(
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", ELEVENLABS_HEADER, FAL_HEADER],
    ),
    on_startup=[_on_startup],
    logging_config=LoggingConfig(
        loggers={
            "movielab": {"level": "INFO", "handlers": ["queue_listener"]},
            "webui": {"level": "INFO", "handlers": ["queue_listener"]},
        }
    ),
)
