"""Status enums for the HUP ladder."""

from enum import Enum


class HUPStatusEnum(str, Enum):
    """Host OS update status as reported by the actions service."""

    IN_PROGRESS = "in_progress"
    DONE = "done"
    ERROR = "error"


class LadderStageEnum(str, Enum):
    """Conceptual ladder states (never persisted).

    State transitions:
    init → awaitIdle → awaitOnline → computeTarget → triggerUpdate → waitAndVerify
                ↑                          ↓                              │
                └──────────────────────────┼──────────────────────────────┘
                                           ↓
                       completed / waitExhausted / exceededBudget / authFailed
    """

    INIT = "init"
    AWAIT_IDLE = "awaitIdle"
    AWAIT_ONLINE = "awaitOnline"
    COMPUTE_TARGET = "computeTarget"
    TRIGGER_UPDATE = "triggerUpdate"
    WAIT_AND_VERIFY = "waitAndVerify"
    COMPLETED = "completed"
    WAIT_EXHAUSTED = "waitExhausted"
    EXCEEDED_BUDGET = "exceededBudget"
    AUTH_FAILED = "authFailed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STAGES

    @property
    def is_failure(self) -> bool:
        return self in TERMINAL_STAGES and self is not LadderStageEnum.COMPLETED


TERMINAL_STAGES = frozenset(
    {
        LadderStageEnum.COMPLETED,
        LadderStageEnum.WAIT_EXHAUSTED,
        LadderStageEnum.EXCEEDED_BUDGET,
        LadderStageEnum.AUTH_FAILED,
        LadderStageEnum.ERROR,
    }
)
