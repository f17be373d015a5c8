"""Translate transport, backend and chain failures into ``PolynanceApiError``.

``classify`` is the single error boundary used by every component: whatever
was raised underneath (``httpx`` for the Polynance API, ``requests`` for the
web3 HTTP provider, ``PolyApiException`` from the CLOB client), callers only
ever see a ``PolynanceApiError`` with a stable ``ErrorCode``.
"""

from __future__ import annotations

import dataclasses
import re
from typing import Any, Optional

import httpx
import requests
import structlog
from py_clob_client.exceptions import PolyApiException

from polynance.exceptions import ErrorCode, PolynanceApiError

logger = structlog.get_logger()

_STATUS_CODES: dict[int, ErrorCode] = {
    400: ErrorCode.INVALID_PARAMETER,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    429: ErrorCode.RATE_LIMIT_EXCEEDED,
}

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_SECRET_KEYS = {"private_key", "key", "secret", "api_secret", "passphrase", "api_passphrase", "signature"}
_ID_KEYS = {
    "market_id_or_slug",
    "market_id",
    "exchange_id",
    "slug",
    "token_id",
    "tokenId",
    "order_id",
    "orderID",
    "maker",
    "signer",
    "taker",
    "wallet",
    "wallet_address",
    "owner",
    "spender",
}
_MAX_ID_CHARS = 12


def status_to_code(status_code: int) -> ErrorCode:
    """Map an HTTP status code onto the error taxonomy."""
    if status_code in _STATUS_CODES:
        return _STATUS_CODES[status_code]
    if 500 <= status_code <= 599:
        return ErrorCode.SERVER_ERROR
    return ErrorCode.API_REQUEST_FAILED


def mask(value: Any) -> Any:
    """Shorten an address or long identifier so it can be logged."""
    if not isinstance(value, str):
        return value
    if _ADDRESS_RE.match(value):
        return f"{value[:6]}...{value[-4:]}"
    if len(value) > _MAX_ID_CHARS:
        return f"{value[:8]}..."
    return value


def redact_context(context: Optional[dict[str, Any]]) -> dict[str, Any]:
    """Return a copy of ``context`` safe to attach to an error or a log line."""
    if not context:
        return {}
    return {key: _redact_value(key, value) for key, value in context.items()}


def _redact_value(key: str, value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)

    if isinstance(value, dict):
        return redact_context(value)
    if isinstance(value, (list, tuple)):
        return [_redact_value(key, item) for item in value]
    if key in _SECRET_KEYS and value:
        return "***"
    if key in _ID_KEYS or (isinstance(value, str) and _ADDRESS_RE.match(value)):
        return mask(value)
    return value


def classify(
    error: BaseException,
    method_name: str,
    context: Optional[dict[str, Any]] = None,
) -> PolynanceApiError:
    """Convert any exception into a ``PolynanceApiError``.

    Already-structured errors pass through unchanged. The result is logged
    once here so callers never need to log it again.
    """
    if isinstance(error, PolynanceApiError):
        logger.debug("error_already_classified", summary=error.summary, method=method_name)
        return error

    safe_context = redact_context(context)

    if isinstance(error, (httpx.HTTPError, httpx.InvalidURL)):
        api_error = _from_httpx(error, method_name, safe_context)
    elif isinstance(error, requests.RequestException):
        api_error = _from_requests(error, method_name, safe_context)
    elif isinstance(error, PolyApiException):
        api_error = _from_clob(error, method_name, safe_context)
    else:
        api_error = PolynanceApiError(
            f"An unexpected internal SDK error occurred. Details: {error}",
            ErrorCode.INTERNAL_SDK_ERROR,
            method_name=method_name,
            context=safe_context,
            cause=error,
        )

    logger.error(
        "polynance_error",
        summary=api_error.summary,
        error_id=api_error.error_id,
        code=api_error.code.value,
        method=method_name,
    )
    return api_error


def _server_detail(data: Any) -> str:
    if isinstance(data, dict):
        if data.get("message"):
            return f" Server message: {data['message']}"
        if data.get("error"):
            return f" Server error: {data['error']}"
    return ""


def _response_body(response: Any) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def _from_status(
    status_code: int,
    response_data: Any,
    error: BaseException,
    method_name: str,
    context: dict[str, Any],
) -> PolynanceApiError:
    message = f"API request failed with status {status_code}." + _server_detail(response_data)
    return PolynanceApiError(
        message,
        status_to_code(status_code),
        method_name=method_name,
        status_code=status_code,
        response_data=response_data,
        context=context,
        cause=error,
    )


def _from_httpx(error: Exception, method_name: str, context: dict[str, Any]) -> PolynanceApiError:
    try:
        request = error.request
    except (RuntimeError, AttributeError):
        request = None
    if request is not None:
        context = {**context, "url": str(request.url).split("?")[0], "request_method": request.method}

    if isinstance(error, httpx.TimeoutException):
        return PolynanceApiError(
            "API request timed out.",
            ErrorCode.TIMEOUT_ERROR,
            method_name=method_name,
            context=context,
            cause=error,
        )
    if isinstance(error, httpx.HTTPStatusError):
        return _from_status(
            error.response.status_code,
            _response_body(error.response),
            error,
            method_name,
            context,
        )
    if isinstance(error, (httpx.UnsupportedProtocol, httpx.DecodingError, httpx.TooManyRedirects)) or request is None:
        return PolynanceApiError(
            f"Failed to set up the API request: {error}",
            ErrorCode.API_REQUEST_FAILED,
            method_name=method_name,
            context=context,
            cause=error,
        )
    return PolynanceApiError(
        "Network error: no response received from the API server.",
        ErrorCode.NETWORK_ERROR,
        method_name=method_name,
        context=context,
        cause=error,
    )


def _from_requests(
    error: requests.RequestException, method_name: str, context: dict[str, Any]
) -> PolynanceApiError:
    if isinstance(error, requests.Timeout):
        return PolynanceApiError(
            "RPC request timed out.",
            ErrorCode.TIMEOUT_ERROR,
            method_name=method_name,
            context=context,
            cause=error,
        )
    if error.response is not None:
        return _from_status(
            error.response.status_code,
            _response_body(error.response),
            error,
            method_name,
            context,
        )
    if isinstance(error, (requests.URLRequired, requests.exceptions.MissingSchema, requests.exceptions.InvalidURL)):
        return PolynanceApiError(
            f"Failed to set up the RPC request: {error}",
            ErrorCode.API_REQUEST_FAILED,
            method_name=method_name,
            context=context,
            cause=error,
        )
    return PolynanceApiError(
        "Network error: no response received from the RPC endpoint.",
        ErrorCode.NETWORK_ERROR,
        method_name=method_name,
        context=context,
        cause=error,
    )


def _from_clob(error: PolyApiException, method_name: str, context: dict[str, Any]) -> PolynanceApiError:
    status_code = getattr(error, "status_code", None)
    error_msg = getattr(error, "error_msg", None)
    if status_code:
        return _from_status(status_code, error_msg, error, method_name, context)
    return PolynanceApiError(
        f"Network error: no response received from the CLOB API. ({error_msg})",
        ErrorCode.NETWORK_ERROR,
        method_name=method_name,
        response_data=error_msg,
        context=context,
        cause=error,
    )
