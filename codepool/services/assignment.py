"""
Discount code assignment for automation-triggered events.

One call per triggering event (e.g. a comment matched by an automation).
Idempotent on (automation_id, event_id): redelivered events get the code
they were already given and never claim a second one.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from codepool.core.logging import get_logger
from codepool.db import repository
from codepool.db.session import async_session, session_scope
from codepool.errors import DuplicateAssignment, Internal, NotFound
from codepool.schemas.assignment import AssignmentResult

logger = get_logger(__name__)


class AssignmentCoordinator:
    """
    Decides, for a single event, whether a code is handed out.

    Steps short-circuit in order: existing assignment, first-N cutoff,
    atomic claim. The first-N check is not atomic with the claim, so under
    concurrency an automation can exceed its cutoff by the number of
    requests in flight at the boundary.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self.session_factory = session_factory or async_session

    async def assign_code(
        self,
        automation_id: str,
        pool_id: str,
        event_id: str,
        claimant_id: str,
        claimant_name: str | None = None,
        first_n_cutoff: int | None = None,
    ) -> AssignmentResult:
        log_ctx = {"automation_id": automation_id, "pool_id": pool_id, "event_id": event_id}

        async with session_scope(self.session_factory) as session:
            # ── 1. Idempotency ───────────────────────────────────────────────
            existing = await repository.get_assignment(session, automation_id, event_id)
            if existing is not None:
                logger.info(
                    "Code already assigned (idempotent)",
                    extra={"extra_data": {**log_ctx, "code": existing.code}},
                )
                return AssignmentResult(code=existing.code, fallback=False)

            # ── 2. First-N cutoff ────────────────────────────────────────────
            if first_n_cutoff is not None and first_n_cutoff > 0:
                count = await repository.count_automation_assignments(session, automation_id)
                if count >= first_n_cutoff:
                    logger.info(
                        "First N limit reached, using fallback",
                        extra={"extra_data": {**log_ctx, "count": count, "limit": first_n_cutoff}},
                    )
                    return AssignmentResult(code=None, fallback=True)

            # ── 3. Atomic claim + assignment record ──────────────────────────
            claimed = await repository.claim_unassigned_code(session, pool_id)
            if claimed is None:
                if await repository.get_pool_stats(session, pool_id) is None:
                    raise NotFound("Pool not found")
                logger.info("Code pool exhausted, using fallback", extra={"extra_data": log_ctx})
                return AssignmentResult(code=None, fallback=True)

            try:
                await repository.record_assignment(
                    session,
                    automation_id=automation_id,
                    code_id=claimed.id,
                    pool_id=pool_id,
                    event_id=event_id,
                    claimant_id=claimant_id,
                    claimant_name=claimant_name,
                    code=claimed.code,
                )
            except DuplicateAssignment:
                # A concurrent delivery of the same event committed first. Its
                # record is authoritative; the code claimed here stays spent.
                winner = await repository.get_assignment(session, automation_id, event_id)
                if winner is None:
                    raise Internal("Duplicate assignment reported but no record found")
                logger.warning(
                    "Lost idempotency race; claimed code orphaned",
                    extra={
                        "extra_data": {
                            **log_ctx,
                            "orphaned_code_id": claimed.id,
                            "code": winner.code,
                        }
                    },
                )
                return AssignmentResult(code=winner.code, fallback=False)

        logger.info(
            "Code assigned successfully",
            extra={"extra_data": {**log_ctx, "claimant_id": claimant_id, "code": claimed.code}},
        )
        return AssignmentResult(code=claimed.code, fallback=False)


coordinator = AssignmentCoordinator()
