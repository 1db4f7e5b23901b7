"""
Credential-safe logging for the Code Dx client.
CRITICAL: Never log API keys, passwords, Authorization headers, request or response
bodies, or the contents of uploaded files.
Only log: method, path, status, latency, ids, polling progress, error kind.
"""
import logging
import sys
from typing import Any, Mapping, Optional, TextIO

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Transport libraries log full URLs at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> None:
    """
    Configure the root logger for command line use.

    Output goes to stderr unless `stream` is given, keeping stdout free for
    machine-readable command output.
    """
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    logging.basicConfig(
        level=resolved,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(stream or sys.stderr)],
        force=True
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class SafeLogger:
    """
    Logger wrapper that renders allow-listed context fields only.

    Context is passed as keyword arguments and rendered as `key=value` pairs after the
    message; anything not in SAFE_FIELDS is silently dropped, so passing a credential
    by mistake never reaches a handler.
    """

    SAFE_FIELDS = frozenset({
        # request
        "method",
        "path",
        "status_code",
        "latency_ms",
        "exception_class",
        # errors
        "error_kind",
        "message_kind",
        # resources
        "job_id",
        "project_id",
        "analysis_id",
        "file_count",
        # polling
        "iteration",
        "status",
        "wait_ms",
        "outcome",
    })

    def __init__(self, name: str, bound: Optional[Mapping[str, Any]] = None):
        self._logger = logging.getLogger(name)
        self._bound = dict(bound or {})

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **context: Any) -> "SafeLogger":
        """A logger for the same name that adds `context` to every line."""
        return SafeLogger(self._logger.name, {**self._bound, **context})

    def render(self, message: str, context: Mapping[str, Any]) -> str:
        merged = {**self._bound, **context}
        pairs = [f"{key}={value}" for key, value in merged.items() if key in self.SAFE_FIELDS]
        if not pairs:
            return message
        return " | ".join([message, *pairs])

    def _emit(self, level: int, message: str, context: Mapping[str, Any]) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, self.render(message, context))

    def debug(self, message: str, **context: Any) -> None:
        self._emit(logging.DEBUG, message, context)

    def info(self, message: str, **context: Any) -> None:
        self._emit(logging.INFO, message, context)

    def warning(self, message: str, **context: Any) -> None:
        self._emit(logging.WARNING, message, context)

    def error(self, message: str, error_kind: Optional[str] = None, **context: Any) -> None:
        """
        Log an error line.
        Pass the exception class name, never str(exc): transport errors can echo the
        request URL.
        """
        if error_kind:
            context["error_kind"] = error_kind
        self._emit(logging.ERROR, message, context)


def get_safe_logger(name: str) -> SafeLogger:
    """Get a credential-safe logger instance."""
    return SafeLogger(name)
