"""
Migration: reconcile pool counters with their code rows.

Run this against an existing database after restoring from backup or after
manual edits to discount_codes:
    python migrate.py

It is safe to run multiple times — every statement is idempotent.
"""

import asyncio
import os
from dotenv import load_dotenv  # pip install python-dotenv  (only needed to run this script)

load_dotenv()  # reads your .env file

import asyncpg


async def migrate():
    dsn = os.environ.get("DATABASE_URL")
    if dsn:
        # asyncpg takes a plain libpq URL
        conn = await asyncpg.connect(dsn.replace("postgresql+asyncpg://", "postgresql://", 1))
    else:
        conn = await asyncpg.connect(
            host=os.environ["DB_HOST"],
            port=int(os.environ.get("DB_PORT", 5432)),
            database=os.environ["DB_NAME"],
            user=os.environ["DB_USER"],
            password=os.environ["DB_PASSWORD"],
        )

    print("Connected to database. Running migration...")

    # Partial index used by the claim query (oldest unassigned code first)
    await conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_discount_codes_unassigned
        ON discount_codes (pool_id, created_at, id)
        WHERE is_assigned = false;
    """)
    print("  ✓ Index 'idx_discount_codes_unassigned' ensured.")

    # total_codes / assigned_codes must match the code rows they count
    async with conn.transaction():
        status = await conn.execute("""
            UPDATE code_pools p
            SET total_codes = c.total,
                assigned_codes = c.assigned,
                updated_at = NOW()
            FROM (
                SELECT pool_id,
                       COUNT(*) AS total,
                       COUNT(*) FILTER (WHERE is_assigned) AS assigned
                FROM discount_codes
                GROUP BY pool_id
            ) c
            WHERE c.pool_id = p.id
              AND (p.total_codes <> c.total OR p.assigned_codes <> c.assigned);
        """)
    print(f"  ✓ Pool counters reconciled ({status}).")

    # Codes claimed without an assignment row (lost idempotency races)
    orphans = await conn.fetchval("""
        SELECT COUNT(*)
        FROM discount_codes d
        LEFT JOIN code_assignments a ON a.code_id = d.id
        WHERE d.is_assigned AND a.id IS NULL;
    """)
    print(f"  ✓ Orphaned claimed codes: {orphans} (left assigned).")

    await conn.close()
    print("\nMigration complete. You can now restart your FastAPI server.")


if __name__ == "__main__":
    asyncio.run(migrate())
