"""
Schemas for /discount-codes/pools.

Field-level rules (blank codes, duplicates, lengths) are enforced by the
store and reported as 400 with the failing field.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PoolCreateRequest(BaseModel):
    name: str
    description: str | None = None
    codes: list[str] = Field(..., examples=[["SUMMER-01", "SUMMER-02"]])


class PoolUpdateRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    # Complete replacement list when present
    codes: list[str] | None = None


class PoolResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    name: str
    description: str | None
    total_codes: int
    assigned_codes: int
    created_at: datetime
    updated_at: datetime


class CodeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    is_assigned: bool
    assigned_at: datetime | None
    created_at: datetime


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    automation_id: str
    code_id: int
    pool_id: str
    event_id: str
    claimant_id: str
    claimant_name: str | None
    code: str
    assigned_at: datetime


class PoolEnvelope(BaseModel):
    success: bool = True
    data: PoolResponse


class PoolListEnvelope(BaseModel):
    success: bool = True
    data: list[PoolResponse]
    count: int


class CodeListEnvelope(BaseModel):
    success: bool = True
    data: list[CodeResponse]
    count: int


class AssignmentListEnvelope(BaseModel):
    success: bool = True
    data: list[AssignmentResponse]
    count: int
