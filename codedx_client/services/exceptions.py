"""
Error taxonomy for Code Dx API calls.
Credential-safe: messages carry status codes and server error text, never request data.

Errors are plain values inside the response pipeline (see ApiResult); they subclass
Exception only so ApiResult.unwrap() can raise them for callers that want exceptions.
"""
from dataclasses import dataclass
from enum import Enum

from pydantic import ValidationError

from codedx_client.schemas.error import ErrorMessageResponse


class ApiErrorKind(str, Enum):
    """The closed set of failure kinds. Branch on this, never on message text."""
    PROTOCOL = "protocol"
    NON_SUCCESS = "non_success"
    IO = "io"


class MessageKind(str, Enum):
    NICE = "nice"
    RAW = "raw"


@dataclass(frozen=True)
class ApiErrorMessage:
    """
    Message extracted from a non-2xx response body.

    NICE: the body parsed as { "error": "..." } and `text` is that message.
    RAW: the body had any other shape; `text` is the body exactly as received.
    """
    kind: MessageKind
    text: str

    @classmethod
    def nice(cls, text: str) -> "ApiErrorMessage":
        return cls(MessageKind.NICE, text)

    @classmethod
    def raw(cls, text: str) -> "ApiErrorMessage":
        return cls(MessageKind.RAW, text)

    @classmethod
    def from_body(cls, body: str) -> "ApiErrorMessage":
        """Try the structured shape first, fall back to the verbatim body."""
        try:
            parsed = ErrorMessageResponse.model_validate_json(body)
        except ValidationError:
            return cls.raw(body)
        return cls.nice(parsed.error)

    @property
    def is_nice(self) -> bool:
        return self.kind is MessageKind.NICE

    def __str__(self) -> str:
        return self.text


class ApiError(Exception):
    """
    Base class for everything that can go wrong making a request with the API.

    Attributes:
        kind: which of the three failure kinds this is
        message: human readable summary
    """

    kind: ApiErrorKind

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ProtocolError(ApiError):
    """
    Communication failures: connection, TLS (typically cert issues), timeouts, and
    success responses whose body this client can't decode into the expected type.
    """

    kind = ApiErrorKind.PROTOCOL

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Protocol error ({cause.__class__.__name__}): {cause}")


class NonSuccessError(ApiError):
    """
    The server answered with a status outside 2xx.

    `error_message` is NICE for most expected failures and RAW typically for
    5xx internal error responses.
    """

    kind = ApiErrorKind.NON_SUCCESS

    def __init__(self, status_code: int, error_message: ApiErrorMessage):
        self.status_code = status_code
        self.error_message = error_message
        super().__init__(f"HTTP {status_code}: {error_message.text}")


class ApiIOError(ApiError):
    """
    Local I/O failures: reading a response body, or attaching a file to a multipart form.
    """

    kind = ApiErrorKind.IO

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"I/O error ({cause.__class__.__name__}): {cause}")


ERROR_VARIANTS: dict[ApiErrorKind, type[ApiError]] = {
    ApiErrorKind.PROTOCOL: ProtocolError,
    ApiErrorKind.NON_SUCCESS: NonSuccessError,
    ApiErrorKind.IO: ApiIOError,
}
