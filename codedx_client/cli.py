"""
codedx-client - command line access to the Code Dx API.

Usage:
    # List all projects
    codedx-client projects

    # Find projects by name and/or metadata
    codedx-client query-projects --name my-app --metadata owner=team-a

    # Upload files, name the analysis, and wait for it to finish
    codedx-client analyze 12 build/app.zip reports/scan.xml --name "nightly"

    # Check on a job
    codedx-client job-status 7f7a9d0e-...

Environment:
    CODEDX_BASE_URL - Server base URL (required)
    CODEDX_API_KEY - API key (or CODEDX_USERNAME + CODEDX_PASSWORD for basic auth)
    CODEDX_INSECURE - Skip the certificate hostname check
    CODEDX_TIMEOUT_MS, CODEDX_POLL_INTERVAL_MS, CODEDX_LOG_LEVEL

Exit codes:
    0 - Success
    1 - Server rejected the request (non-2xx)
    2 - Usage or configuration error
    3 - Protocol error (connection, TLS, timeout, unexpected response)
    4 - Local I/O error (unreadable file or response body)
    5 - Job failed, or polling gave up before the job was ready
"""
import argparse
import json
import sys
from datetime import timedelta
from typing import Any, Callable, Optional, Sequence

from pydantic import ValidationError

from codedx_client.core.config import Settings
from codedx_client.core.logging import setup_logging
from codedx_client.schemas.job import JobStatus
from codedx_client.schemas.project import ProjectFilter
from codedx_client.services.api_client import ApiClient
from codedx_client.services.exceptions import ApiError, ApiErrorKind, NonSuccessError
from codedx_client.services.polling import FixedWait, LoggingStrategy, MaxIterations
from codedx_client.services.result import ApiResult

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_JOB_NOT_SUCCESSFUL = 5

EXIT_CODES: dict[ApiErrorKind, int] = {
    ApiErrorKind.NON_SUCCESS: 1,
    ApiErrorKind.PROTOCOL: 3,
    ApiErrorKind.IO: 4,
}

ClientFactory = Callable[[Settings, bool], ApiClient]


def _default_client_factory(settings: Settings, insecure: bool) -> ApiClient:
    return ApiClient.from_settings(settings, insecure=insecure or None)


def _print_json(value: Any) -> None:
    print(json.dumps(value, indent=2))


def _report_error(error: ApiError) -> int:
    parts = [f"[ERROR] {error.kind.value}"]
    if isinstance(error, NonSuccessError):
        parts.append(f"HTTP {error.status_code}")
        parts.append(error.error_message.text.strip() or "(empty body)")
    else:
        parts.append(error.message)
    print(" | ".join(parts), file=sys.stderr)
    return EXIT_CODES[error.kind]


def _parse_metadata(pairs: Optional[Sequence[str]]) -> Optional[dict[str, str]]:
    if not pairs:
        return None
    metadata: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Metadata must look like KEY=VALUE, got {pair!r}")
        metadata[key] = value
    return metadata


def run_projects(client: ApiClient, args: argparse.Namespace) -> int:
    result = client.get_projects()
    if result.is_err:
        return _report_error(result.error)
    _print_json([p.model_dump(by_alias=True) for p in result.value])
    return EXIT_OK


def run_query_projects(client: ApiClient, args: argparse.Namespace) -> int:
    try:
        metadata = _parse_metadata(args.metadata)
    except ValueError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_USAGE

    result = client.query_projects(ProjectFilter(name=args.name, metadata=metadata))
    if result.is_err:
        return _report_error(result.error)
    _print_json([p.model_dump(by_alias=True) for p in result.value])
    return EXIT_OK


def _report_final_status(result: ApiResult[JobStatus]) -> int:
    if result.is_err:
        return _report_error(result.error)
    status = result.value
    _print_json({"status": status.value, "ready": status.is_ready()})
    return EXIT_OK if status.is_success() else EXIT_JOB_NOT_SUCCESSFUL


def run_analyze(client: ApiClient, args: argparse.Namespace) -> int:
    started = client.start_analysis(args.project_id, args.files)
    if started.is_err:
        return _report_error(started.error)

    job = started.value
    _print_json(job.model_dump(by_alias=True))

    if args.name:
        renamed = client.set_analysis_name(args.project_id, job.analysis_id, args.name)
        if renamed.is_err:
            return _report_error(renamed.error)

    if args.no_wait:
        return EXIT_OK

    strategy = FixedWait(timedelta(milliseconds=args.poll_interval_ms))
    if args.max_polls:
        strategy = MaxIterations(strategy, args.max_polls)
    return _report_final_status(client.poll_job_completion(job.job_id, LoggingStrategy(strategy)))


def run_job_status(client: ApiClient, args: argparse.Namespace) -> int:
    result = client.get_job_status(args.job_id)
    if result.is_err:
        return _report_error(result.error)
    _print_json({"jobId": args.job_id, "status": result.value.value})
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codedx-client",
        description="Command line access to the Code Dx REST API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip the certificate hostname check (overrides CODEDX_INSECURE)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    projects = subparsers.add_parser("projects", help="List all projects")
    projects.set_defaults(handler=run_projects)

    query = subparsers.add_parser("query-projects", help="Find projects by name and metadata")
    query.add_argument("--name", type=str, default=None, help="Project name to match")
    query.add_argument(
        "--metadata",
        nargs="+",
        metavar="KEY=VALUE",
        default=None,
        help="Project metadata to match"
    )
    query.set_defaults(handler=run_query_projects)

    analyze = subparsers.add_parser("analyze", help="Upload files and start an analysis")
    analyze.add_argument("project_id", type=int, help="Project to analyze")
    analyze.add_argument("files", nargs="+", help="Files to upload")
    analyze.add_argument("--name", type=str, default=None, help="Name for the new analysis")
    analyze.add_argument(
        "--no-wait",
        action="store_true",
        help="Return right after the analysis starts instead of waiting for it"
    )
    analyze.add_argument(
        "--poll-interval-ms",
        type=int,
        default=None,
        help="Wait between status checks (default: CODEDX_POLL_INTERVAL_MS)"
    )
    analyze.add_argument(
        "--max-polls",
        type=int,
        default=None,
        help="Give up after this many status checks"
    )
    analyze.set_defaults(handler=run_analyze)

    job_status = subparsers.add_parser("job-status", help="Show the status of a job")
    job_status.add_argument("job_id", type=str, help="Job id")
    job_status.set_defaults(handler=run_job_status)

    return parser


def main(
    argv: Optional[Sequence[str]] = None,
    client_factory: ClientFactory = _default_client_factory,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings()
    except ValidationError as e:
        print(f"[ERROR] Invalid configuration: {e.error_count()} problem(s)", file=sys.stderr)
        for err in e.errors():
            field = ".".join(str(loc) for loc in err["loc"])
            print(f"  CODEDX_{field.upper()}: {err['msg']}", file=sys.stderr)
        return EXIT_USAGE

    setup_logging(settings.log_level)

    if getattr(args, "poll_interval_ms", None) is None and args.command == "analyze":
        args.poll_interval_ms = settings.poll_interval_ms
    if getattr(args, "poll_interval_ms", None) is not None and args.poll_interval_ms < 0:
        print("[ERROR] --poll-interval-ms must not be negative", file=sys.stderr)
        return EXIT_USAGE
    if getattr(args, "max_polls", None) is not None and args.max_polls < 1:
        print("[ERROR] --max-polls must be at least 1", file=sys.stderr)
        return EXIT_USAGE

    try:
        client = client_factory(settings, args.insecure)
    except ValueError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_USAGE

    with client:
        return args.handler(client, args)


if __name__ == "__main__":
    sys.exit(main())
