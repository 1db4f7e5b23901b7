"""
Request bodies the ApiClient knows how to send: nothing, JSON, or a multipart form.

Building a body never touches the network. Multipart forms do open the files they
will upload, so a missing or unreadable file is reported before any request is made.
"""
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Iterable, Union

from pydantic_core import to_jsonable_python

from codedx_client.services.exceptions import ApiIOError
from codedx_client.services.result import ApiResult

DEFAULT_CONTENT_TYPE = "application/octet-stream"

PathLike = Union[str, Path]


@dataclass
class FormPart:
    """One file part of a multipart form."""
    field_name: str
    path: Path
    handle: BinaryIO
    content_type: str

    @property
    def filename(self) -> str:
        return self.path.name


class MultipartForm:
    """
    Ordered file parts for a multipart upload.

    Holds open file handles; use as a context manager (or call close()) once the
    upload is done.
    """

    def __init__(self) -> None:
        self._parts: list[FormPart] = []

    @classmethod
    def from_files(cls, paths: Iterable[PathLike]) -> ApiResult["MultipartForm"]:
        """
        Build a form with one part per file, named file0, file1, ... in input order.

        Stops at the first file that can't be opened, closes whatever was already
        opened and returns an IO error.
        """
        form = cls()
        for index, path in enumerate(paths):
            try:
                form.add_file(f"file{index}", path)
            except OSError as e:
                form.close()
                return ApiResult.err(ApiIOError(e))
        return ApiResult.ok(form)

    def add_file(self, field_name: str, path: PathLike) -> "MultipartForm":
        """Open `path` for reading and append it as a part. Raises OSError."""
        path = Path(path)
        handle = open(path, "rb")
        content_type, _ = mimetypes.guess_type(path.name)
        self._parts.append(FormPart(
            field_name=field_name,
            path=path,
            handle=handle,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
        ))
        return self

    @property
    def parts(self) -> list[FormPart]:
        return list(self._parts)

    @property
    def field_names(self) -> list[str]:
        return [part.field_name for part in self._parts]

    def to_httpx_files(self) -> list[tuple[str, tuple[str, BinaryIO, str]]]:
        """The `files=` argument for httpx, preserving part order."""
        return [
            (part.field_name, (part.filename, part.handle, part.content_type))
            for part in self._parts
        ]

    def close(self) -> None:
        for part in self._parts:
            part.handle.close()

    def __len__(self) -> int:
        return len(self._parts)

    def __enter__(self) -> "MultipartForm":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class ReqBody:
    """Base for the three request body variants."""

    @staticmethod
    def as_json(body: Any) -> "JsonBody":
        """Serialize any pydantic model or plain structure to a JSON body."""
        return JsonBody(to_jsonable_python(body, by_alias=True, exclude_none=True))


@dataclass(frozen=True)
class NoBody(ReqBody):
    pass


@dataclass(frozen=True)
class JsonBody(ReqBody):
    value: Any


@dataclass(frozen=True)
class FormBody(ReqBody):
    # Only ever used for file uploads
    form: MultipartForm


def as_req_body(body: Any) -> ReqBody:
    """
    Implicit conversion used by ApiClient.api_request.

    None -> NoBody, MultipartForm -> FormBody, an existing ReqBody passes through,
    anything else is sent as JSON.
    """
    if body is None:
        return NoBody()
    if isinstance(body, ReqBody):
        return body
    if isinstance(body, MultipartForm):
        return FormBody(body)
    return ReqBody.as_json(body)
