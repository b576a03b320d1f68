"""
Pool management used by the account-facing endpoints.

Each call is one unit of work. The store enforces validation and ownership;
this layer owns the transaction boundary and the audit log lines.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from codepool.core.logging import get_logger
from codepool.db import repository
from codepool.db.models import CodeAssignment, CodePool, DiscountCode
from codepool.db.session import session_scope
from codepool.errors import AccessDenied, NotFound

logger = get_logger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]


async def _require_owned(session: AsyncSession, pool_id: str, owner_id: str) -> CodePool:
    pool = await repository.get_pool_stats(session, pool_id)
    if pool is None:
        raise NotFound("Pool not found")
    if pool.owner_id != owner_id:
        raise AccessDenied("Access denied")
    return pool


async def create_pool(
    owner_id: str,
    name: str,
    codes: list[str],
    description: str | None = None,
    *,
    session_factory: SessionFactory | None = None,
) -> CodePool:
    try:
        async with session_scope(session_factory) as session:
            pool = await repository.create_pool(session, owner_id, name, codes, description)
    except Exception as e:
        logger.error(
            "Failed to create discount code pool",
            extra={"extra_data": {"owner_id": owner_id, "name": name, "codes_count": len(codes), "error": str(e)}},
        )
        raise

    logger.info(
        "Discount code pool created",
        extra={"extra_data": {"pool_id": pool.id, "total_codes": pool.total_codes, "owner_id": owner_id}},
    )
    return pool


async def update_pool(
    pool_id: str,
    owner_id: str,
    *,
    name: str | None = None,
    description: str | None = None,
    codes: list[str] | None = None,
    session_factory: SessionFactory | None = None,
) -> CodePool:
    async with session_scope(session_factory) as session:
        pool = await repository.update_pool(
            session, pool_id, owner_id, name=name, description=description, codes=codes
        )

    logger.info(
        "Discount code pool updated",
        extra={
            "extra_data": {
                "pool_id": pool.id,
                "total_codes": pool.total_codes,
                "codes_replaced": codes is not None,
            }
        },
    )
    return pool


async def delete_pool(
    pool_id: str,
    owner_id: str,
    *,
    session_factory: SessionFactory | None = None,
) -> None:
    async with session_scope(session_factory) as session:
        await repository.delete_pool(session, pool_id, owner_id)

    logger.info("Discount code pool deleted", extra={"extra_data": {"pool_id": pool_id}})


async def list_pools(owner_id: str, *, session_factory: SessionFactory | None = None) -> list[CodePool]:
    async with session_scope(session_factory) as session:
        return await repository.get_user_pools(session, owner_id)


async def get_pool(
    pool_id: str, owner_id: str, *, session_factory: SessionFactory | None = None
) -> CodePool:
    async with session_scope(session_factory) as session:
        return await _require_owned(session, pool_id, owner_id)


async def list_pool_assignments(
    pool_id: str, owner_id: str, *, session_factory: SessionFactory | None = None
) -> list[CodeAssignment]:
    async with session_scope(session_factory) as session:
        await _require_owned(session, pool_id, owner_id)
        return await repository.get_pool_assignments(session, pool_id)


async def list_pool_codes(
    pool_id: str, owner_id: str, *, session_factory: SessionFactory | None = None
) -> list[DiscountCode]:
    """Raw code list for the owner's edit form."""
    async with session_scope(session_factory) as session:
        await _require_owned(session, pool_id, owner_id)
        return await repository.get_pool_codes(session, pool_id)
