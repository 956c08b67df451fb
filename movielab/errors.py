"""Error types shared by the engine and the web layer."""
from __future__ import annotations


class MovieLabError(Exception):
    """Base error; ``status_code`` is what the HTTP layer answers with."""

    status_code = 500


class MissingApiKeyError(MovieLabError):
    status_code = 400


class InvalidRequestError(MovieLabError):
    status_code = 400


class UpstreamError(MovieLabError):
    """A provider call failed. The message is safe to show to clients;
    the provider detail is logged where the error is raised."""

    status_code = 500
