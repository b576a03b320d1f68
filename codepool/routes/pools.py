"""
/discount-codes/pools — pool management for the owning account.

Errors from the store (InvalidInput, NotFound, AccessDenied,
ConstraintViolation) are mapped to HTTP responses by the handlers in main.py.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from codepool.routes.deps import get_owner_id, get_session_factory
from codepool.schemas.pools import (
    AssignmentListEnvelope,
    AssignmentResponse,
    CodeListEnvelope,
    CodeResponse,
    PoolCreateRequest,
    PoolEnvelope,
    PoolListEnvelope,
    PoolResponse,
    PoolUpdateRequest,
)
from codepool.services import pools as pool_service

router = APIRouter(prefix="/discount-codes/pools", tags=["pools"])

SessionFactory = async_sessionmaker[AsyncSession]


# ============================================================
# CREATE POOL  POST /discount-codes/pools
# ============================================================

@router.post("", response_model=PoolEnvelope, status_code=201)
async def create_pool_api(
    data: PoolCreateRequest,
    owner_id: str = Depends(get_owner_id),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    pool = await pool_service.create_pool(
        owner_id,
        data.name,
        data.codes,
        data.description,
        session_factory=session_factory,
    )
    return PoolEnvelope(data=PoolResponse.model_validate(pool))


# ============================================================
# LIST POOLS  GET /discount-codes/pools
# ============================================================

@router.get("", response_model=PoolListEnvelope)
async def list_pools_api(
    owner_id: str = Depends(get_owner_id),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    pools = await pool_service.list_pools(owner_id, session_factory=session_factory)
    return PoolListEnvelope(
        data=[PoolResponse.model_validate(p) for p in pools],
        count=len(pools),
    )


# ============================================================
# POOL STATS  GET /discount-codes/pools/{pool_id}
# ============================================================

@router.get("/{pool_id}", response_model=PoolEnvelope)
async def get_pool_api(
    pool_id: str,
    owner_id: str = Depends(get_owner_id),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    pool = await pool_service.get_pool(pool_id, owner_id, session_factory=session_factory)
    return PoolEnvelope(data=PoolResponse.model_validate(pool))


# ============================================================
# UPDATE POOL  PATCH /discount-codes/pools/{pool_id}
# ============================================================

@router.patch("/{pool_id}", response_model=PoolEnvelope)
async def update_pool_api(
    pool_id: str,
    data: PoolUpdateRequest,
    owner_id: str = Depends(get_owner_id),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    """Partial update; ``codes`` replaces the whole code list when present."""
    pool = await pool_service.update_pool(
        pool_id,
        owner_id,
        name=data.name,
        description=data.description,
        codes=data.codes,
        session_factory=session_factory,
    )
    return PoolEnvelope(data=PoolResponse.model_validate(pool))


# ============================================================
# DELETE POOL  DELETE /discount-codes/pools/{pool_id}
# ============================================================

@router.delete("/{pool_id}", status_code=204)
async def delete_pool_api(
    pool_id: str,
    owner_id: str = Depends(get_owner_id),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    await pool_service.delete_pool(pool_id, owner_id, session_factory=session_factory)
    return Response(status_code=204)


# ============================================================
# ASSIGNMENT HISTORY  GET /discount-codes/pools/{pool_id}/assignments
# ============================================================

@router.get("/{pool_id}/assignments", response_model=AssignmentListEnvelope)
async def list_pool_assignments_api(
    pool_id: str,
    owner_id: str = Depends(get_owner_id),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    assignments = await pool_service.list_pool_assignments(
        pool_id, owner_id, session_factory=session_factory
    )
    return AssignmentListEnvelope(
        data=[AssignmentResponse.model_validate(a) for a in assignments],
        count=len(assignments),
    )


# ============================================================
# RAW CODES  GET /discount-codes/pools/{pool_id}/codes
# ============================================================

@router.get("/{pool_id}/codes", response_model=CodeListEnvelope)
async def list_pool_codes_api(
    pool_id: str,
    owner_id: str = Depends(get_owner_id),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    codes = await pool_service.list_pool_codes(pool_id, owner_id, session_factory=session_factory)
    return CodeListEnvelope(
        data=[CodeResponse.model_validate(c) for c in codes],
        count=len(codes),
    )
