"""Read-only status routes for a running ladder."""

from fastapi import APIRouter, Request

from hupladder.api.models import LadderProgressData, ProgressResponse

router = APIRouter(prefix="/api/v1.0")


@router.get("/progress", response_model=ProgressResponse)
async def get_progress(request: Request):
    """GET /api/v1.0/progress - Query ladder progress.

    Returns:
        ProgressResponse with code 200 while running or completed, 500 once
        the ladder ended in failure, 503 before a ladder is attached
    """
    state = getattr(request.app.state, "ladder", None)
    if state is None:
        return ProgressResponse(code=503, msg="Ladder not started")

    data = LadderProgressData.from_state(state)
    if state.stage.is_failure:
        msg = f"Ladder failed: {state.stage.value}"
        if state.last_error:
            msg = f"{msg} ({state.last_error})"
        return ProgressResponse(code=500, msg=msg, data=data)
    return ProgressResponse(code=200, msg="success", data=data)
