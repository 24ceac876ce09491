"""In-process ladder state and terminal outcomes."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from hupladder.models.status import LadderStageEnum


class LadderOutcome(str, Enum):
    """How a ladder run ended."""

    COMPLETED = "completed"
    WAIT_EXHAUSTED = "waitExhausted"
    EXCEEDED_BUDGET = "exceededBudget"
    AUTH_FAILED = "authFailed"
    CONFIG_ERROR = "configError"
    ERROR = "error"

    @property
    def exit_code(self) -> int:
        """Process exit code: 0 only for a completed ladder."""
        return 0 if self is LadderOutcome.COMPLETED else 1


class LadderState(BaseModel):
    """Ladder progress for one run.

    Lives only in memory and is lost on restart. fails is the overall
    failure counter; local_fails counts idle/online wait cycles and is reset
    at the start of every outer iteration.
    """

    uuid: str = Field(..., description="Device being laddered")
    max_fails: int = Field(..., ge=1, description="Shared failure budget")
    stage: LadderStageEnum = Field(default=LadderStageEnum.INIT)
    iteration: int = Field(default=0, ge=0, description="Outer iterations started")
    fails: int = Field(default=0, ge=0, description="Overall failure counter")
    local_fails: int = Field(default=0, ge=0, description="Wait cycles this iteration")
    device_type: Optional[str] = Field(None)
    current_version: Optional[str] = Field(None)
    target_version: Optional[str] = Field(None)
    last_error: Optional[str] = Field(None)
    updated_at: datetime = Field(default_factory=datetime.now)

    def enter(self, stage: LadderStageEnum) -> None:
        self.stage = stage
        self.updated_at = datetime.now()

    def start_iteration(self) -> None:
        """Begin an outer iteration: reset the local wait counter."""
        self.iteration += 1
        self.local_fails = 0
        self.target_version = None
        self.updated_at = datetime.now()

    @property
    def budget_exceeded(self) -> bool:
        return self.fails >= self.max_fails

    @property
    def wait_exhausted(self) -> bool:
        return self.local_fails >= self.max_fails
