"""Pydantic models for API I/O."""

from .build import (
    BuildListResponse,
    BuildResponse,
    BuildSummaryResponse,
    ComponentPayload,
    ComponentResponse,
    CreateBuildRequest,
)

__all__ = [
    "BuildListResponse",
    "BuildResponse",
    "BuildSummaryResponse",
    "ComponentPayload",
    "ComponentResponse",
    "CreateBuildRequest",
]
