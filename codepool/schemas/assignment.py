"""
Schemas for code assignment.

AssignmentResult is what the automation pipeline receives: either a code to
put into its message template, or fallback=True.
"""

from pydantic import BaseModel, Field


class AssignmentResult(BaseModel):
    code: str | None = None
    fallback: bool


class AssignCodeRequest(BaseModel):
    """Body of the internal assign endpoint called by the automation pipeline."""

    automation_id: str = Field(..., min_length=1, max_length=255)
    pool_id: str
    event_id: str = Field(..., min_length=1, max_length=255, examples=["17895695668004550"])
    claimant_id: str = Field(..., min_length=1, max_length=255)
    claimant_name: str | None = Field(None, max_length=255)
    first_n_cutoff: int | None = Field(None, ge=0)
    message_template: str | None = Field(None, examples=["Here is your code: {{CODE}}"])
    fallback_message: str | None = None


class AssignCodeResponse(AssignmentResult):
    message: str | None = None
