"""Request DTOs for API endpoints."""

from pydantic import BaseModel, Field


class AnalyzeRequest(BaseModel):
    """Request DTO for analyzing a project or solution.

    The handler will convert this to internal calls to the service layer.
    """

    path: str = Field(
        ...,
        description="Absolute path to the .sln or project file, accessible by the server",
        min_length=1,
    )


class SearchRequest(BaseModel):
    """Query parameters for a package search."""

    q: str = Field(..., description="The term to search for", min_length=1)
    prerelease: bool = Field(False, description="Include prerelease packages")
    skip: int = Field(0, description="Number of results to skip", ge=0)
    take: int = Field(20, description="Maximum number of results to return", ge=1, le=1000)
