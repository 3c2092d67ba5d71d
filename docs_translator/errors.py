"""Error taxonomy for the translation pipeline.

Every remote failure is re-raised as one of these types, carrying the
operation name, an error code, and any context (file path, status code)
needed to report it. Raw PyGithub and transport exceptions never leave
the VCS layer.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import requests
from github import GithubException


class ErrorCode(str, Enum):
    unauthorized = "unauthorized"
    forbidden = "forbidden"
    not_found = "not_found"
    validation = "validation"
    rate_limited = "rate_limited"
    server_error = "server_error"
    api_error = "api_error"
    initialization = "initialization"
    resource_load = "resource_load"
    translation = "translation"
    chunk_mismatch = "chunk_mismatch"
    circuit_open = "circuit_open"
    unknown = "unknown"


class TranslatorError(Exception):
    """Base error with classification and context."""

    code: ErrorCode = ErrorCode.unknown

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        code: ErrorCode | None = None,
        status_code: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        if code is not None:
            self.code = code
        self.status_code = status_code
        self.metadata = metadata or {}

    @property
    def retryable(self) -> bool:
        return self.code is ErrorCode.rate_limited

    def __str__(self) -> str:
        prefix = f"{self.operation}: " if self.operation else ""
        return f"{prefix}{self.message}"


class InitializationError(TranslatorError):
    """Permission, fork sync or connectivity failure before any file is processed."""

    code = ErrorCode.initialization


class ResourceLoadError(TranslatorError):
    """Repository tree or glossary could not be loaded."""

    code = ErrorCode.resource_load


class VCSError(TranslatorError):
    """A hosting-platform API call failed."""

    code = ErrorCode.api_error


class TranslationError(TranslatorError):
    """The model produced no usable translation."""

    code = ErrorCode.translation


class ChunkCountMismatchError(TranslatorError):
    """Translated chunk count differs from the source chunk count."""

    code = ErrorCode.chunk_mismatch

    def __init__(self, expected: int, actual: int, **kwargs: Any) -> None:
        super().__init__(
            f"expected {expected} translated chunks, got {actual}",
            operation=kwargs.pop("operation", "reassemble"),
            metadata={"expected": expected, "actual": actual, **kwargs.pop("metadata", {})},
            **kwargs,
        )
        self.expected = expected
        self.actual = actual


class CircuitOpenError(TranslatorError):
    """Raised for a file when too many consecutive files have failed."""

    code = ErrorCode.circuit_open

    def __init__(self, failures: int, threshold: int, **kwargs: Any) -> None:
        super().__init__(
            f"circuit open after {failures} consecutive failures (threshold {threshold})",
            operation=kwargs.pop("operation", "process_file"),
            metadata={"failures": failures, "threshold": threshold, **kwargs.pop("metadata", {})},
            **kwargs,
        )


def _classify_status(status: int | None, message: str) -> ErrorCode:
    if status == 401:
        return ErrorCode.unauthorized
    if status == 403:
        if "rate limit" in message.lower():
            return ErrorCode.rate_limited
        return ErrorCode.forbidden
    if status == 404:
        return ErrorCode.not_found
    if status == 422:
        return ErrorCode.validation
    if status == 429:
        return ErrorCode.rate_limited
    if status is not None and status >= 500:
        return ErrorCode.server_error
    return ErrorCode.api_error


def map_github_error(
    error: GithubException, operation: str, **metadata: Any
) -> VCSError:
    """Classify a PyGithub exception into a VCSError."""
    data = error.data if isinstance(error.data, dict) else {}
    message = str(data.get("message") or error)
    code = _classify_status(error.status, message)
    return VCSError(
        message,
        operation=operation,
        code=code,
        status_code=error.status,
        metadata={k: v for k, v in metadata.items() if v is not None},
    )


def map_transport_error(
    error: requests.RequestException, operation: str, **metadata: Any
) -> VCSError:
    """Classify a timeout or connection failure that PyGithub let through."""
    return VCSError(
        str(error) or type(error).__name__,
        operation=operation,
        code=ErrorCode.server_error,
        metadata={k: v for k, v in metadata.items() if v is not None},
    )
