"""
Chainable wrapper around the outcome of one HTTP exchange.

    projects = (
        client.api_get(["x", "projects"])
        .expect_success()
        .expect_json(list[Project])
    )

Each step is a no-op on an error result, so at most one error comes out of a chain
and it is always the earliest one.
"""
from functools import lru_cache
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from codedx_client.core.logging import get_safe_logger
from codedx_client.services.exceptions import (
    ApiErrorMessage,
    ApiIOError,
    NonSuccessError,
    ProtocolError,
)
from codedx_client.services.result import ApiResult

logger = get_safe_logger(__name__)

T = TypeVar("T")

# Failures while pulling a streamed body off the wire
_BODY_READ_ERRORS = (httpx.HTTPError, httpx.StreamError, OSError)
# Non-2xx bodies must also decode as text in their declared charset
_ERROR_BODY_ERRORS = _BODY_READ_ERRORS + (UnicodeDecodeError, LookupError)


@lru_cache(maxsize=None)
def _adapter_for(type_: Any) -> TypeAdapter:
    return TypeAdapter(type_)


def _read_body(response: httpx.Response) -> bytes:
    try:
        return response.read()
    finally:
        response.close()


def _error_from_response(response: httpx.Response) -> ApiResult[httpx.Response]:
    """Consume a non-2xx response and classify it as NonSuccess (or IO if unreadable or not text)."""
    try:
        body = _read_body(response)
        text = body.decode(response.encoding or "utf-8")
    except _ERROR_BODY_ERRORS as e:
        logger.warning(
            "Failed to read error response body",
            status_code=response.status_code,
            exception_class=e.__class__.__name__,
        )
        return ApiResult.err(ApiIOError(e))

    message = ApiErrorMessage.from_body(text)
    logger.debug(
        "Non-success response",
        status_code=response.status_code,
        message_kind=message.kind.value,
    )
    return ApiResult.err(NonSuccessError(response.status_code, message))


def _check_success(response: httpx.Response) -> ApiResult[httpx.Response]:
    if response.is_success:
        return ApiResult.ok(response)
    return _error_from_response(response)


def _decode_json(response: httpx.Response, type_: Any) -> ApiResult[Any]:
    try:
        body = _read_body(response)
    except _BODY_READ_ERRORS as e:
        return ApiResult.err(ProtocolError(e))

    try:
        return ApiResult.ok(_adapter_for(type_).validate_json(body))
    except ValidationError as e:
        logger.warning(
            "Response body did not match the expected type",
            status_code=response.status_code,
            error_kind="protocol",
        )
        return ApiResult.err(ProtocolError(e))


def _consume(response: httpx.Response) -> ApiResult[httpx.Response]:
    try:
        _read_body(response)
    except _BODY_READ_ERRORS as e:
        return ApiResult.err(ApiIOError(e))
    return ApiResult.ok(response)


class ApiResponse:
    """Wraps ApiResult[httpx.Response]; the body stays unread until a step needs it."""

    def __init__(self, result: ApiResult[httpx.Response]):
        self._result = result

    @classmethod
    def from_result(cls, result: ApiResult[httpx.Response]) -> "ApiResponse":
        return cls(result)

    def get(self) -> ApiResult[httpx.Response]:
        """
        The raw outcome, without any status or shape checks.

        The body is read (and the connection released) before returning.
        """
        return self._result.and_then(_consume)

    def expect_success(self) -> "ApiResponse":
        """Turn any non-2xx response into a NonSuccess error."""
        return ApiResponse(self._result.and_then(_check_success))

    def expect_json(self, type_: type[T]) -> ApiResult[T]:
        """Decode the body as `type_`; a body that doesn't fit is a Protocol error."""
        return self._result.and_then(lambda response: _decode_json(response, type_))
