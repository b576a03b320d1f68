"""
Database models for code pools, discount codes and assignments.

A code row is claimed at most once; an assignment row binds one
(automation, event) pair to the code it received.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class CodePool(Base):
    """A named batch of discount codes owned by one account."""

    __tablename__ = "code_pools"
    __table_args__ = (
        CheckConstraint("total_codes > 0", name="code_pools_positive_total_codes"),
        CheckConstraint("assigned_codes >= 0", name="code_pools_non_negative_assigned"),
        CheckConstraint("assigned_codes <= total_codes", name="code_pools_assigned_lte_total"),
    )

    id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_codes: Mapped[int] = mapped_column(Integer, nullable=False)
    assigned_codes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class DiscountCode(Base):
    """One redeemable code string. The integer id preserves insertion order."""

    __tablename__ = "discount_codes"
    __table_args__ = (
        UniqueConstraint("pool_id", "code", name="discount_codes_pool_code_key"),
        Index(
            "idx_discount_codes_unassigned",
            "pool_id",
            "created_at",
            "id",
            postgresql_where=text("is_assigned = false"),
        ),
    )

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    pool_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("code_pools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code: Mapped[str] = mapped_column(String(255), nullable=False)
    is_assigned: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


class CodeAssignment(Base):
    """Append-only record that one triggering event received one code."""

    __tablename__ = "code_assignments"
    __table_args__ = (
        UniqueConstraint("automation_id", "event_id", name="code_assignments_automation_event_key"),
    )

    id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    automation_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    # RESTRICT: a pool with issued codes cannot be deleted out from under its history
    code_id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        ForeignKey("discount_codes.id", ondelete="RESTRICT"),
        nullable=False,
    )
    pool_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("code_pools.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    event_id: Mapped[str] = mapped_column(String(255), nullable=False)
    claimant_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    claimant_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    code: Mapped[str] = mapped_column(String(255), nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
