from datetime import datetime, timezone
from typing import NamedTuple
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from codepool.db.models import CodeAssignment, CodePool, DiscountCode
from codepool.errors import (
    AccessDenied,
    ConstraintViolation,
    DuplicateAssignment,
    InvalidInput,
    NotFound,
)
from codepool.services.codes import normalize_codes, normalize_name


class ClaimedCode(NamedTuple):
    id: int
    code: str


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _pool_uuid(pool_id: str) -> str:
    """Canonical string form of a pool id; malformed ids cannot exist."""
    try:
        return str(UUID(str(pool_id)))
    except ValueError:
        raise NotFound("Pool not found")


# ======================================================
# POOL CRUD
# ======================================================

async def _get_owned_pool(session: AsyncSession, pool_id: str, owner_id: str) -> CodePool:
    pool = await session.get(CodePool, _pool_uuid(pool_id))
    if pool is None:
        raise NotFound("Pool not found")
    if pool.owner_id != owner_id:
        raise AccessDenied("Access denied")
    return pool


async def create_pool(
    session: AsyncSession,
    owner_id: str,
    name: str,
    codes: list[str],
    description: str | None = None,
) -> CodePool:
    """
    Create a pool with its initial batch of codes.

    Pool and code rows are flushed together; the caller's transaction decides
    whether any of it persists.
    """
    clean_name = normalize_name(name)
    clean_codes = normalize_codes(codes)

    pool = CodePool(
        owner_id=owner_id,
        name=clean_name,
        description=(description or "").strip() or None,
        total_codes=len(clean_codes),
        assigned_codes=0,
    )
    session.add(pool)
    await session.flush()

    # One shared timestamp; the autoincrement id keeps the submitted order.
    created_at = _now_utc()
    session.add_all(
        DiscountCode(pool_id=pool.id, code=code, created_at=created_at) for code in clean_codes
    )
    await session.flush()
    return pool


async def update_pool(
    session: AsyncSession,
    pool_id: str,
    owner_id: str,
    *,
    name: str | None = None,
    description: str | None = None,
    codes: list[str] | None = None,
) -> CodePool:
    """
    Partial update. ``codes``, when given, is the complete new code list:
    new codes are added, missing unassigned codes are removed, and missing
    assigned codes abort the whole update with ConstraintViolation.
    """
    pool = await _get_owned_pool(session, pool_id, owner_id)
    clean_name = normalize_name(name) if name is not None else None

    if codes is not None:
        wanted = normalize_codes(codes, allow_empty=True)

        # Only rows leaving the pool are locked; kept rows stay claimable.
        # Lock order matches claim_unassigned_code: code rows first, then the pool row.
        removed_stmt = (
            select(DiscountCode)
            .where(DiscountCode.pool_id == pool.id)
            .order_by(DiscountCode.created_at.asc(), DiscountCode.id.asc())
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if wanted:
            removed_stmt = removed_stmt.where(DiscountCode.code.not_in(wanted))
        removed = list((await session.execute(removed_stmt)).scalars().all())

        # is_assigned is re-read under the lock, so a claim that committed
        # while we waited is seen here.
        blocked = sorted(c.code for c in removed if c.is_assigned)
        if blocked:
            raise ConstraintViolation(f"Cannot remove assigned codes: {', '.join(blocked)}")
        if not wanted:
            raise InvalidInput("At least one code is required", field="codes")

        pool_res = await session.execute(
            select(CodePool)
            .where(CodePool.id == pool.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        pool = pool_res.scalar_one()

        if removed:
            await session.execute(
                delete(DiscountCode).where(
                    DiscountCode.id.in_([c.id for c in removed]),
                    DiscountCode.is_assigned.is_(False),
                )
            )

        current_res = await session.execute(
            select(DiscountCode.code).where(DiscountCode.pool_id == pool.id)
        )
        current = set(current_res.scalars().all())
        created_at = _now_utc()
        session.add_all(
            DiscountCode(pool_id=pool.id, code=code, created_at=created_at)
            for code in wanted
            if code not in current
        )
        await session.flush()
        pool.total_codes = await session.scalar(
            select(func.count()).select_from(DiscountCode).where(DiscountCode.pool_id == pool.id)
        )

    if clean_name is not None:
        pool.name = clean_name
    if description is not None:
        pool.description = description.strip() or None

    pool.updated_at = _now_utc()
    await session.flush()
    return pool


async def delete_pool(session: AsyncSession, pool_id: str, owner_id: str) -> None:
    """Hard delete a pool and its codes. Pools with assignment history are kept."""
    pool = await _get_owned_pool(session, pool_id, owner_id)

    issued = await session.scalar(
        select(func.count())
        .select_from(CodeAssignment)
        .where(CodeAssignment.pool_id == pool.id)
    )
    if issued:
        raise ConstraintViolation("Cannot delete a pool that has already issued codes")

    try:
        await session.execute(delete(DiscountCode).where(DiscountCode.pool_id == pool.id))
        await session.execute(delete(CodePool).where(CodePool.id == pool.id))
        await session.flush()
    except IntegrityError as e:
        # An assignment landed between the count and the delete
        raise ConstraintViolation("Cannot delete a pool that has already issued codes") from e


# ======================================================
# ATOMIC CLAIM + ASSIGNMENT
# ======================================================

async def claim_unassigned_code(session: AsyncSession, pool_id: str) -> ClaimedCode | None:
    """
    Take the oldest unassigned code in the pool, mark it assigned and bump
    the pool counter. Returns None when the pool is exhausted.

    SKIP LOCKED means concurrent claimers never wait on, or see, a row another
    transaction is in the middle of claiming. Must run inside the same
    transaction as the assignment insert.
    """
    pool_id = _pool_uuid(pool_id)
    stmt = (
        select(DiscountCode.id, DiscountCode.code)
        .where(DiscountCode.pool_id == pool_id, DiscountCode.is_assigned.is_(False))
        .order_by(DiscountCode.created_at.asc(), DiscountCode.id.asc())
        .limit(1)
        .with_for_update(skip_locked=True)
    )
    row = (await session.execute(stmt)).first()
    if row is None:
        return None

    now = _now_utc()
    await session.execute(
        update(DiscountCode)
        .where(DiscountCode.id == row.id)
        .values(is_assigned=True, assigned_at=now)
    )
    await session.execute(
        update(CodePool)
        .where(CodePool.id == pool_id)
        .values(assigned_codes=CodePool.assigned_codes + 1, updated_at=now)
    )
    return ClaimedCode(id=int(row.id), code=str(row.code))


async def record_assignment(
    session: AsyncSession,
    automation_id: str,
    code_id: int,
    pool_id: str,
    event_id: str,
    claimant_id: str,
    claimant_name: str | None,
    code: str,
) -> CodeAssignment:
    """
    Insert the assignment inside a savepoint.

    A collision on (automation_id, event_id) raises DuplicateAssignment and
    leaves the surrounding transaction (and any claim made in it) intact.
    """
    assignment = CodeAssignment(
        automation_id=automation_id,
        code_id=code_id,
        pool_id=_pool_uuid(pool_id),
        event_id=event_id,
        claimant_id=claimant_id,
        claimant_name=claimant_name,
        code=code,
    )
    try:
        async with session.begin_nested():
            session.add(assignment)
    except IntegrityError as e:
        if await get_assignment(session, automation_id, event_id) is None:
            raise
        raise DuplicateAssignment(automation_id, event_id) from e
    return assignment


# ======================================================
# READS
# ======================================================

async def get_assignment(
    session: AsyncSession, automation_id: str, event_id: str
) -> CodeAssignment | None:
    stmt = select(CodeAssignment).where(
        CodeAssignment.automation_id == automation_id,
        CodeAssignment.event_id == event_id,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def count_automation_assignments(session: AsyncSession, automation_id: str) -> int:
    stmt = (
        select(func.count())
        .select_from(CodeAssignment)
        .where(CodeAssignment.automation_id == automation_id)
    )
    result = await session.execute(stmt)
    return result.scalar() or 0


async def get_pool_stats(session: AsyncSession, pool_id: str) -> CodePool | None:
    try:
        pool_id = _pool_uuid(pool_id)
    except NotFound:
        return None
    result = await session.execute(select(CodePool).where(CodePool.id == pool_id))
    return result.scalar_one_or_none()


async def get_user_pools(session: AsyncSession, owner_id: str) -> list[CodePool]:
    stmt = (
        select(CodePool)
        .where(CodePool.owner_id == owner_id)
        .order_by(CodePool.created_at.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_pool_assignments(session: AsyncSession, pool_id: str) -> list[CodeAssignment]:
    stmt = (
        select(CodeAssignment)
        .where(CodeAssignment.pool_id == _pool_uuid(pool_id))
        .order_by(CodeAssignment.assigned_at.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_automation_assignments(
    session: AsyncSession, automation_id: str
) -> list[CodeAssignment]:
    stmt = (
        select(CodeAssignment)
        .where(CodeAssignment.automation_id == automation_id)
        .order_by(CodeAssignment.assigned_at.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_pool_codes(session: AsyncSession, pool_id: str) -> list[DiscountCode]:
    stmt = (
        select(DiscountCode)
        .where(DiscountCode.pool_id == _pool_uuid(pool_id))
        .order_by(DiscountCode.created_at.asc(), DiscountCode.id.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
