"""
Where requests go and how they authenticate.

ApiClient only knows the ClientConfig protocol; the concrete configs here cover the
two credential styles Code Dx accepts (API key header and HTTP basic auth).
"""
import base64
from abc import ABC, abstractmethod
from typing import Optional, Protocol, Sequence
from urllib.parse import quote

import httpx

from codedx_client.core.config import Settings

API_KEY_HEADER = "API-Key"


class ClientConfig(Protocol):
    def api_url(self, path_segments: Sequence[str]) -> str:
        ...

    def apply_auth(self, request: httpx.Request) -> None:
        ...

    def allows_insecure(self) -> bool:
        ...


class BaseClientConfig(ABC):
    """
    Base URL handling shared by all configs.

    Path segments are percent-escaped here (including "/"), so callers pass raw ids.
    """

    def __init__(self, base_url: str, insecure: bool = False):
        self.base_url = base_url.rstrip("/")
        self.insecure = insecure

    def api_url(self, path_segments: Sequence[str]) -> str:
        escaped = [quote(str(segment), safe="") for segment in path_segments]
        return "/".join([self.base_url, *escaped])

    @abstractmethod
    def apply_auth(self, request: httpx.Request) -> None:
        """Add credentials to an outgoing request."""

    def allows_insecure(self) -> bool:
        return self.insecure

    def __repr__(self) -> str:
        # Never include credentials
        return f"{self.__class__.__name__}(base_url={self.base_url!r}, insecure={self.insecure})"


class BasicAuthConfig(BaseClientConfig):
    def __init__(self, base_url: str, username: str, password: str, insecure: bool = False):
        super().__init__(base_url, insecure)
        self._username = username
        self._password = password

    @property
    def username(self) -> str:
        return self._username

    def apply_auth(self, request: httpx.Request) -> None:
        token = base64.b64encode(f"{self._username}:{self._password}".encode("utf-8"))
        request.headers["Authorization"] = f"Basic {token.decode('ascii')}"


class ApiKeyConfig(BaseClientConfig):
    def __init__(self, base_url: str, api_key: str, insecure: bool = False):
        super().__init__(base_url, insecure)
        self._api_key = api_key

    def apply_auth(self, request: httpx.Request) -> None:
        request.headers[API_KEY_HEADER] = self._api_key


def config_from_settings(
    settings: Settings,
    insecure: Optional[bool] = None,
) -> BaseClientConfig:
    """
    Pick the credential style from settings: API key first, then basic auth.

    Raises:
        ValueError: If neither an API key nor a username/password pair is configured
    """
    allow_insecure = settings.insecure if insecure is None else insecure

    if settings.api_key:
        return ApiKeyConfig(settings.base_url, settings.api_key, insecure=allow_insecure)

    if settings.username and settings.password:
        return BasicAuthConfig(
            settings.base_url,
            settings.username,
            settings.password,
            insecure=allow_insecure,
        )

    raise ValueError(
        "No credentials configured: set CODEDX_API_KEY, "
        "or both CODEDX_USERNAME and CODEDX_PASSWORD"
    )
