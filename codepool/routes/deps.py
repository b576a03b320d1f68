"""Shared route dependencies."""

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from codepool.db.session import async_session
from codepool.services.assignment import AssignmentCoordinator


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session


def get_coordinator(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AssignmentCoordinator:
    return AssignmentCoordinator(session_factory)


async def get_owner_id(x_user_id: str | None = Header(None)) -> str:
    """
    Owner identity. Token verification happens upstream; by the time a
    request reaches this service the gateway has set X-User-Id.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_user_id.strip()
