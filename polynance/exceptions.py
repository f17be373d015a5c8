"""Custom exceptions for the Polynance trading client."""

from __future__ import annotations

import json
import secrets
import time
from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Machine-readable error codes carried by every ``PolynanceApiError``."""

    # transport / request
    NETWORK_ERROR = "ERR_NETWORK"
    TIMEOUT_ERROR = "ERR_TIMEOUT"
    API_REQUEST_FAILED = "ERR_API_REQUEST"

    # input / validation
    INVALID_PARAMETER = "ERR_INVALID_PARAM"
    VALIDATION_ERROR = "ERR_VALIDATION"

    # server side
    SERVER_ERROR = "ERR_SERVER"
    NOT_FOUND = "ERR_NOT_FOUND"
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"
    RATE_LIMIT_EXCEEDED = "ERR_RATE_LIMIT"

    # client side
    INTERNAL_SDK_ERROR = "ERR_SDK_INTERNAL"
    ENVIRONMENT_ERROR = "ERR_ENVIRONMENT"
    UNSUPPORTED_PROVIDER = "ERR_UNSUPPORTED_PROVIDER"


class PolynanceError(Exception):
    """Base exception for all Polynance errors."""


class ConfigError(PolynanceError):
    """Missing or invalid configuration."""


class PolynanceApiError(PolynanceError):
    """Structured error surfaced by every public client operation.

    Built once where the failure is first observed. ``context`` is expected to
    be redacted already (see ``polynance.errors.redact_context``); the error
    never masks it a second time.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        *,
        method_name: Optional[str] = None,
        status_code: Optional[int] = None,
        response_data: Any = None,
        context: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        detailed = f"[{code.value}] {message}"
        if method_name:
            detailed += f" (Method: {method_name})"
        if status_code:
            detailed += f" (Status: {status_code})"
        super().__init__(detailed)

        self.code = code
        self.raw_message = message
        self.method_name = method_name
        self.status_code = status_code
        self.response_data = response_data
        self.context = dict(context or {})
        self.error_id = f"pn-err-{int(time.time() * 1000)}-{secrets.token_hex(3)}"
        if cause is not None:
            self.__cause__ = cause

    @property
    def message(self) -> str:
        return str(self)

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__

    @property
    def summary(self) -> str:
        """One-line rendering for log summaries."""
        status = f" (HTTP {self.status_code})" if self.status_code else ""
        return f"[{self.code.value}] {self.raw_message}{status} (ID: {self.error_id})"

    def report(self) -> str:
        """Multi-line, copy-pasteable description of the error."""
        lines = [
            "--- Polynance SDK Error ---",
            f"Error ID: {self.error_id}",
            f"Code: {self.code.value}",
            f"Message: {self.message}",
        ]
        if self.method_name:
            lines.append(f"Method: {self.method_name}")
        if self.status_code:
            lines.append(f"Status Code: {self.status_code}")
        if self.context:
            lines.append(f"Context: {_dump_context(self.context)}")
        if self.response_data is not None:
            lines.append(f"Response Data: {_dump_response(self.response_data)}")
        if self.cause is not None:
            lines.append(f"Original Error: {type(self.cause).__name__}: {self.cause}")
        lines.append("---------------------------")
        return "\n".join(lines) + "\n"


class UnsupportedProviderError(PolynanceApiError):
    """Requested settlement backend has no registered implementation."""

    def __init__(self, provider: str, *, method_name: Optional[str] = None) -> None:
        super().__init__(
            f"Provider '{provider}' is not supported.",
            ErrorCode.UNSUPPORTED_PROVIDER,
            method_name=method_name,
            context={"provider": provider},
        )
        self.provider = provider


_MAX_CONTEXT_VALUE_CHARS = 500
_MAX_RESPONSE_CHARS = 1000


def _dump_context(context: dict[str, Any]) -> str:
    def _shrink(value: Any) -> Any:
        if isinstance(value, (dict, list)):
            if len(json.dumps(value, default=str)) > _MAX_CONTEXT_VALUE_CHARS:
                return "[Object too large]"
        return value

    try:
        return json.dumps({k: _shrink(v) for k, v in context.items()}, indent=2, default=str)
    except (TypeError, ValueError):
        return "[Could not stringify context]"


def _dump_response(data: Any) -> str:
    try:
        text = json.dumps(data, indent=2, default=str)
    except (TypeError, ValueError):
        return "[Could not stringify response data]"
    if len(text) > _MAX_RESPONSE_CHARS:
        return text[:_MAX_RESPONSE_CHARS] + "... [Truncated]"
    return text
