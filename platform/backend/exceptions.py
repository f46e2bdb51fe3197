"""Custom exception hierarchy and global error handlers."""

from __future__ import annotations

import logging
from enum import Enum

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        detail: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
    ):
        self.detail = detail
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(detail)


class NotFoundError(AppException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(detail=detail, status_code=404, error_code="NOT_FOUND")


class ValidationError(AppException):
    def __init__(self, detail: str = "Validation failed"):
        super().__init__(detail=detail, status_code=422, error_code="VALIDATION_ERROR")


class NoCredentialError(AppException):
    def __init__(
        self,
        detail: str = "No API key found. Please set your OpenAI API key in the settings.",
    ):
        super().__init__(detail=detail, status_code=401, error_code="NO_CREDENTIAL")


class AgentNotFoundError(NotFoundError):
    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Agent with ID {agent_id} not found")
        self.error_code = "AGENT_NOT_FOUND"


class UpstreamErrorKind(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    UNKNOWN = "unknown"


_REMEDIATION = {
    UpstreamErrorKind.NETWORK: (
        "Network error connecting to the OpenAI API. "
        "Please check your internet connection and firewall settings."
    ),
    UpstreamErrorKind.TIMEOUT: (
        "Request to the OpenAI API timed out. "
        "The service might be experiencing high load."
    ),
    UpstreamErrorKind.UNAUTHORIZED: (
        "Invalid API key. Please check your OpenAI API key in the settings."
    ),
    UpstreamErrorKind.RATE_LIMITED: (
        "Rate limit exceeded. Your OpenAI API key has reached its request limit."
    ),
    UpstreamErrorKind.SERVER_ERROR: "OpenAI API server error. Please try again later.",
}


def remediation_for(kind: UpstreamErrorKind, message: str = "") -> str:
    """User-facing remediation text for an upstream failure kind."""
    if kind in _REMEDIATION:
        return _REMEDIATION[kind]
    return f"Failed to run agent: {message or 'Unknown error'}"


class UpstreamError(AppException):
    """The chat-completion API call failed."""

    def __init__(self, kind: UpstreamErrorKind, message: str = ""):
        self.kind = kind
        self.upstream_message = message
        super().__init__(
            detail=remediation_for(kind, message),
            status_code=502,
            error_code="UPSTREAM_ERROR",
        )


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppException)
    def handle_app_exception(_request: Request, exc: AppException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": {"code": exc.error_code, "message": exc.detail}},
        )

    @app.exception_handler(Exception)
    def handle_generic_exception(_request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception: %s", exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": {"code": "INTERNAL_ERROR", "message": str(exc)}},
        )
