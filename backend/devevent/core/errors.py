"""
errors.py – service-level failures
──────────────────────────────────
Services raise these; routers map them to status codes and the
per-route JSON shape. `message` is always safe to hand to a client.
"""
from enum import Enum


class ErrorCode(Enum):
    VALIDATION_FAILED = "VALIDATION_FAILED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    UPSTREAM_FAILURE = "UPSTREAM_FAILURE"


class DevEventError(Exception):
    code: ErrorCode
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(DevEventError):
    """Client sent missing or malformed input (empty slug, no image …)."""

    code = ErrorCode.VALIDATION_FAILED
    status_code = 400


class NotFoundError(DevEventError):
    code = ErrorCode.NOT_FOUND
    status_code = 404


class ConflictError(DevEventError):
    """A unique index rejected the write (slug taken, double booking)."""

    code = ErrorCode.CONFLICT
    status_code = 409


class UpstreamFailure(DevEventError):
    """
    MongoDB, the asset host or the connection attempt failed or timed out.
    The original exception is chained via `raise … from exc` and logged
    by the router; only `message` ever leaves the process.
    """

    code = ErrorCode.UPSTREAM_FAILURE
    status_code = 500
