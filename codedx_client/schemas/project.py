"""
Project and analysis schemas for the Code Dx API.
"""
from typing import Any, Optional

from pydantic import BaseModel, Field


class Project(BaseModel):
    """A project as returned by the Code Dx API."""

    id: int = Field(..., description="Project id")
    name: str = Field(..., description="Project name")
    parent_id: Optional[int] = Field(
        default=None,
        alias="parentId",
        description="Id of the parent project, None for top-level projects"
    )

    class Config:
        populate_by_name = True


class ProjectFilter(BaseModel):
    """
    Filter criteria for ApiClient.query_projects.

    Absent criteria are left out of the request entirely instead of being sent as null.
    """

    name: Optional[str] = Field(default=None, description="Project name to match")
    metadata: Optional[dict[str, str]] = Field(
        default=None,
        description="Project metadata field name -> value to match"
    )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class AnalysisJobResponse(BaseModel):
    """
    Response to starting an analysis.

    Joins the analysis (project side) with the job that tracks its completion.
    """

    analysis_id: int = Field(..., alias="analysisId")
    job_id: str = Field(..., alias="jobId")

    class Config:
        populate_by_name = True
