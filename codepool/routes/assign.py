"""
POST /discount-codes/assign — called by the automation pipeline once per
matched comment.

Idempotent on (automation_id, event_id): redelivering the same comment
returns the same code.
"""

from fastapi import APIRouter, Depends

from codepool.routes.deps import get_coordinator
from codepool.schemas.assignment import AssignCodeRequest, AssignCodeResponse
from codepool.services.assignment import AssignmentCoordinator
from codepool.services.messages import render_discount_message

router = APIRouter(prefix="/discount-codes", tags=["assignments"])


@router.post("/assign", response_model=AssignCodeResponse)
async def assign_code_api(
    data: AssignCodeRequest,
    coordinator: AssignmentCoordinator = Depends(get_coordinator),
):
    result = await coordinator.assign_code(
        automation_id=data.automation_id,
        pool_id=data.pool_id,
        event_id=data.event_id,
        claimant_id=data.claimant_id,
        claimant_name=data.claimant_name,
        first_n_cutoff=data.first_n_cutoff,
    )

    message = None
    if data.message_template is not None:
        message = render_discount_message(result, data.message_template, data.fallback_message)

    return AssignCodeResponse(code=result.code, fallback=result.fallback, message=message)
