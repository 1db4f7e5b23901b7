"""
Main entry point for the Code Dx REST API.

Credential-safe: logs method, path, status and latency only. Never logs headers,
request bodies, response bodies or uploaded file contents.
"""
import ssl
import time
from datetime import timedelta
from typing import Any, Callable, Optional, Sequence, Union

import httpx

from codedx_client.core.client_config import ClientConfig, config_from_settings
from codedx_client.core.config import Settings, get_settings
from codedx_client.core.logging import get_safe_logger
from codedx_client.schemas.job import JobStatus, JobStatusResponse
from codedx_client.schemas.project import AnalysisJobResponse, Project, ProjectFilter
from codedx_client.services.exceptions import ApiIOError, ProtocolError
from codedx_client.services.polling import (
    FixedWait,
    LoggingStrategy,
    StrategyLike,
    poll_until_ready,
)
from codedx_client.services.request_body import (
    FormBody,
    JsonBody,
    MultipartForm,
    PathLike,
    as_req_body,
)
from codedx_client.services.response import ApiResponse
from codedx_client.services.result import ApiResult

logger = get_safe_logger(__name__)

DEFAULT_TIMEOUT_MS = 30000
DEFAULT_POLL_INTERVAL_MS = 2000


def _build_http_client(config: ClientConfig, timeout_ms: int) -> httpx.Client:
    verify: Union[bool, ssl.SSLContext] = True
    # --insecure: keep chain verification, skip only the hostname (CN/SAN) check
    if config.allows_insecure():
        context = ssl.create_default_context()
        context.check_hostname = False
        verify = context
    return httpx.Client(verify=verify, timeout=httpx.Timeout(timeout_ms / 1000.0))


class ApiClient:
    """
    Typed operations over the Code Dx API.

    Every operation returns an ApiResult; nothing here raises for a failed request.
    The config and HTTP client are read-only after construction, so one ApiClient can be
    shared between threads making independent calls.
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: Optional[httpx.Client] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
    ):
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client if http_client is not None else _build_http_client(config, timeout_ms)
        self._poll_interval = timedelta(milliseconds=poll_interval_ms)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        insecure: Optional[bool] = None,
    ) -> "ApiClient":
        settings = settings or get_settings()
        return cls(
            config_from_settings(settings, insecure=insecure),
            timeout_ms=settings.timeout_ms,
            poll_interval_ms=settings.poll_interval_ms,
        )

    def get_config(self) -> ClientConfig:
        return self._config

    def close(self) -> None:
        """Close the underlying HTTP client if this ApiClient created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # --- Jobs -------------------------------------------------------------

    def get_job_status(self, job_id: str) -> ApiResult[JobStatus]:
        return (
            self.api_get(["api", "jobs", job_id])
            .expect_success()
            .expect_json(JobStatusResponse)
            .map(lambda response: response.status)
        )

    def poll_job_completion(
        self,
        job_id: str,
        polling_strategy: Optional[StrategyLike] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> ApiResult[JobStatus]:
        """
        Repeatedly call get_job_status(job_id) until it fails or reports a ready status.

        If the strategy gives up early, the result is the most recent (non-ready)
        status. If a status check fails, polling stops and that error is returned.
        Without a strategy, waits the configured poll interval forever, logging each
        iteration.
        """
        if polling_strategy is None:
            polling_strategy = LoggingStrategy(
                FixedWait(self._poll_interval),
                log=logger.bind(job_id=job_id),
            )
        return poll_until_ready(lambda: self.get_job_status(job_id), polling_strategy, sleep)

    # --- Projects ---------------------------------------------------------

    def get_projects(self) -> ApiResult[list[Project]]:
        return (
            self.api_get(["x", "projects"])
            .expect_success()
            .expect_json(list[Project])
        )

    def query_projects(self, project_filter: ProjectFilter) -> ApiResult[list[Project]]:
        return (
            self.api_post(["x", "projects", "query"], {"filter": project_filter.to_payload()})
            .expect_success()
            .expect_json(list[Project])
        )

    # --- Analyses ---------------------------------------------------------

    def start_analysis(
        self,
        project_id: int,
        files: Sequence[PathLike],
    ) -> ApiResult[AnalysisJobResponse]:
        """
        Upload `files` (as parts file0, file1, ...) and start an analysis.

        If any file can't be opened, returns an IO error without sending anything.
        """
        def upload(form: MultipartForm) -> ApiResult[AnalysisJobResponse]:
            logger.info("Starting analysis", project_id=project_id, file_count=len(form))
            return (
                self.api_post(["api", "projects", str(project_id), "analysis"], form)
                .expect_success()
                .expect_json(AnalysisJobResponse)
            )

        return MultipartForm.from_files(files).and_then(upload)

    def set_analysis_name(self, project_id: int, analysis_id: int, name: str) -> ApiResult[None]:
        return (
            self.api_put(
                ["x", "projects", str(project_id), "analyses", str(analysis_id)],
                {"name": name},
            )
            .expect_success()
            .get()
            .map(lambda _: None)
        )

    # --- Generic requests -------------------------------------------------

    def api_get(self, path_segments: Sequence[str]) -> ApiResponse:
        return self.api_request("GET", path_segments, None)

    def api_post(self, path_segments: Sequence[str], body: Any) -> ApiResponse:
        return self.api_request("POST", path_segments, body)

    def api_put(self, path_segments: Sequence[str], body: Any) -> ApiResponse:
        return self.api_request("PUT", path_segments, body)

    def api_request(self, method: str, path_segments: Sequence[str], body: Any = None) -> ApiResponse:
        """
        Send one request and wrap the outcome.

        The config resolves the URL and adds credentials; `body` may be None, a
        ReqBody, a MultipartForm, or anything JSON-serializable. The response body is
        left unread for the ApiResponse steps to consume.
        """
        req_body = as_req_body(body)
        path = "/".join(str(segment) for segment in path_segments)

        kwargs: dict[str, Any] = {}
        if isinstance(req_body, JsonBody):
            kwargs["json"] = req_body.value
        elif isinstance(req_body, FormBody):
            kwargs["files"] = req_body.form.to_httpx_files()

        start_time = time.perf_counter()
        try:
            request = self._client.build_request(method, self._config.api_url(path_segments), **kwargs)
            self._config.apply_auth(request)
            response = self._client.send(request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(
                "Request failed",
                error_kind="protocol",
                method=method,
                path=path,
                exception_class=e.__class__.__name__,
            )
            return ApiResponse.from_result(ApiResult.err(ProtocolError(e)))
        except OSError as e:
            # An upload file became unreadable mid-request
            logger.error(
                "Request failed",
                error_kind="io",
                method=method,
                path=path,
                exception_class=e.__class__.__name__,
            )
            return ApiResponse.from_result(ApiResult.err(ApiIOError(e)))
        finally:
            if isinstance(req_body, FormBody):
                req_body.form.close()

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        logger.debug(
            "Request completed",
            method=method,
            path=path,
            status_code=response.status_code,
            latency_ms=latency_ms,
        )
        return ApiResponse.from_result(ApiResult.ok(response))
