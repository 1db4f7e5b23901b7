"""
Client library for the Code Dx REST API.
Typed results, a closed error taxonomy, and pluggable job polling.
"""
from codedx_client.core.client_config import (
    ApiKeyConfig,
    BaseClientConfig,
    BasicAuthConfig,
    ClientConfig,
    config_from_settings,
)
from codedx_client.core.config import Settings, get_settings
from codedx_client.schemas.job import JobStatus, JobStatusResponse
from codedx_client.schemas.project import AnalysisJobResponse, Project, ProjectFilter
from codedx_client.services.api_client import ApiClient
from codedx_client.services.exceptions import (
    ApiError,
    ApiErrorKind,
    ApiErrorMessage,
    ApiIOError,
    MessageKind,
    NonSuccessError,
    ProtocolError,
)
from codedx_client.services.polling import (
    Deadline,
    ExponentialBackoff,
    FixedWait,
    LoggingStrategy,
    MaxIterations,
    PollingStrategy,
    PollOutcome,
    PollReport,
    poll_until_ready,
    poll_with_outcome,
)
from codedx_client.services.request_body import (
    FormBody,
    JsonBody,
    MultipartForm,
    NoBody,
    ReqBody,
)
from codedx_client.services.response import ApiResponse
from codedx_client.services.result import ApiResult

__all__ = [
    # Client
    "ApiClient",
    "ApiResponse",
    "ApiResult",
    # Configuration
    "ApiKeyConfig",
    "BaseClientConfig",
    "BasicAuthConfig",
    "ClientConfig",
    "Settings",
    "config_from_settings",
    "get_settings",
    # Errors
    "ApiError",
    "ApiErrorKind",
    "ApiErrorMessage",
    "ApiIOError",
    "MessageKind",
    "NonSuccessError",
    "ProtocolError",
    # Schemas
    "AnalysisJobResponse",
    "JobStatus",
    "JobStatusResponse",
    "Project",
    "ProjectFilter",
    # Request bodies
    "FormBody",
    "JsonBody",
    "MultipartForm",
    "NoBody",
    "ReqBody",
    # Polling
    "Deadline",
    "ExponentialBackoff",
    "FixedWait",
    "LoggingStrategy",
    "MaxIterations",
    "PollingStrategy",
    "PollOutcome",
    "PollReport",
    "poll_until_ready",
    "poll_with_outcome",
]
