from enum import Enum

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    """The 5 statuses a Code Dx job may be in."""
    QUEUED = "queued"
    RUNNING = "running"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    FAILED = "failed"

    def is_ready(self) -> bool:
        """Completed or failed: polling any further is pointless."""
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    def is_success(self) -> bool:
        return self is JobStatus.COMPLETED


class JobStatusResponse(BaseModel):
    """Body of GET /api/jobs/{jobId}."""

    # Should match the job id the status was requested for
    job_id: str = Field(..., alias="jobId")
    status: JobStatus

    # The server also sends "progress", "blockedBy" and "reason" depending on the
    # status; they are ignored here.

    class Config:
        populate_by_name = True
