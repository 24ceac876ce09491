"""Pydantic models for the status API responses."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from hupladder.models.state import LadderState
from hupladder.models.status import LadderStageEnum


class LadderProgressData(BaseModel):
    """Ladder progress nested in response."""

    uuid: str = Field(..., description="Device being laddered")
    stage: LadderStageEnum = Field(..., description="Current ladder stage")
    iteration: int = Field(..., ge=0, description="Outer iterations started")
    fails: int = Field(..., ge=0, description="Failed updates so far")
    max_fails: int = Field(..., ge=1, description="Failure budget")
    local_fails: int = Field(..., ge=0, description="Wait cycles in this iteration")
    current_version: Optional[str] = Field(None, description="Last seen OS version")
    target_version: Optional[str] = Field(None, description="Version being installed")
    error: Optional[str] = Field(None, description="Last error message")
    updated_at: datetime = Field(..., description="Last state change")

    @classmethod
    def from_state(cls, state: LadderState) -> "LadderProgressData":
        return cls(
            uuid=state.uuid,
            stage=state.stage,
            iteration=state.iteration,
            fails=state.fails,
            max_fails=state.max_fails,
            local_fails=state.local_fails,
            current_version=state.current_version,
            target_version=state.target_version,
            error=state.last_error,
            updated_at=state.updated_at,
        )


class ProgressResponse(BaseModel):
    """GET /api/v1.0/progress response.

    Example:
        {
            "code": 200,
            "msg": "success",
            "data": {
                "uuid": "7f3a...",
                "stage": "awaitOnline",
                "iteration": 2,
                "fails": 0,
                "max_fails": 10,
                "local_fails": 1,
                "current_version": "2.88.4",
                "target_version": null,
                "error": null,
                "updated_at": "2026-10-19T14:00:00"
            }
        }
    """

    code: int = Field(..., description="Application status code (200/500/503)")
    msg: str = Field(..., description="Status message")
    data: Optional[LadderProgressData] = Field(None, description="Ladder progress")
