"""PostgreSQL account repository backed by the `registrations` and `claim_records` tables."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import datetime

import asyncpg  # type: ignore[import-untyped]

from claim_pipeline.domain.claim_types import ClaimOutcome
from claim_pipeline.domain.entities import Account, ClaimRecord
from claim_pipeline.domain.ports import AccountRepository

_SELECT_COLUMNS = """
    account_id,
    owner_id,
    username,
    is_privileged_owner,
    is_blocked,
    last_claimed_at,
    total_claims
"""

_RECORD_COLUMNS = """
    account_id,
    username,
    process_id,
    status,
    claimed_items,
    error,
    claimed_at
"""


class PostgresAccountRepository(AccountRepository):
    """Account repository backed by PostgreSQL."""

    def __init__(
        self,
        dsn: str,
        min_pool_size: int = 1,
        max_pool_size: int = 10,
    ) -> None:
        self._dsn = dsn
        self._min_pool_size = min_pool_size
        self._max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None
        self._pool_lock = asyncio.Lock()

    async def get_account(self, account_id: str) -> Account | None:
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"SELECT {_SELECT_COLUMNS} FROM registrations WHERE account_id = $1",
            account_id,
        )
        if row is None:
            return None
        return self._to_entity(row)

    async def get_accounts(self, account_ids: Sequence[str]) -> dict[str, Account]:
        """Return accounts keyed by id for the given ids."""

        if not account_ids:
            return {}
        pool = await self._get_pool()
        rows = await pool.fetch(
            f"SELECT {_SELECT_COLUMNS} FROM registrations WHERE account_id = ANY($1::text[])",
            list(account_ids),
        )
        accounts = {row["account_id"]: self._to_entity(row) for row in rows}
        return {
            account_id: accounts[account_id]
            for account_id in account_ids
            if account_id in accounts
        }

    async def list_accounts(self) -> list[Account]:
        """Return all registrations."""

        pool = await self._get_pool()
        rows = await pool.fetch(
            f"SELECT {_SELECT_COLUMNS} FROM registrations ORDER BY created_at ASC, account_id ASC",
        )
        return [self._to_entity(row) for row in rows]

    async def record_successful_claim(self, account_id: str, claimed_at: datetime) -> None:
        """Set last claim time and increment the claim counter atomically."""

        pool = await self._get_pool()
        await pool.execute(
            """
            UPDATE registrations
            SET last_claimed_at = $2,
                total_claims = total_claims + 1,
                updated_at = NOW()
            WHERE account_id = $1
            """,
            account_id,
            claimed_at,
        )

    async def record_claim(self, record: ClaimRecord) -> bool:
        """Insert one attempt unless it repeats today's success for the account."""

        pool = await self._get_pool()
        record_id = await pool.fetchval(
            """
            INSERT INTO claim_records (
                account_id, username, process_id, status, claimed_items, error, claimed_at
            )
            SELECT $1::text, $2::text, $3::text, $4::text, $5::text[], $6::text, $7::timestamptz
            WHERE EXISTS (SELECT 1 FROM registrations WHERE account_id = $1::text)
              AND (
                $4::text <> 'success'
                OR NOT EXISTS (
                    SELECT 1 FROM claim_records
                    WHERE account_id = $1::text
                      AND status = 'success'
                      AND claimed_at >= $8::timestamptz
                )
              )
            RETURNING id
            """,
            record.account_id,
            record.username,
            record.process_id,
            record.status.value,
            list(record.claimed_items),
            record.error,
            record.claimed_at,
            record.utc_day_start,
        )
        return record_id is not None

    async def list_claim_records(
        self,
        account_id: str | None = None,
        limit: int = 50,
    ) -> list[ClaimRecord]:
        """Return stored attempts, newest first."""

        pool = await self._get_pool()
        rows = await pool.fetch(
            f"""
            SELECT {_RECORD_COLUMNS} FROM claim_records
            WHERE $1::text IS NULL OR account_id = $1::text
            ORDER BY claimed_at DESC, id DESC
            LIMIT $2
            """,
            account_id,
            max(limit, 0),
        )
        return [self._to_record(row) for row in rows]

    async def close(self) -> None:
        """Close the pool."""

        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def _get_pool(self) -> asyncpg.Pool:
        if self._pool is not None:
            return self._pool

        async with self._pool_lock:
            if self._pool is None:
                pool = await asyncpg.create_pool(
                    dsn=self._dsn,
                    min_size=self._min_pool_size,
                    max_size=self._max_pool_size,
                )
                await self._ensure_schema(pool)
                self._pool = pool
        assert self._pool is not None
        return self._pool

    async def _ensure_schema(self, pool: asyncpg.Pool) -> None:
        await pool.execute(
            """
            CREATE TABLE IF NOT EXISTS registrations (
                account_id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                username TEXT NOT NULL,
                is_privileged_owner BOOLEAN NOT NULL DEFAULT FALSE,
                is_blocked BOOLEAN NOT NULL DEFAULT FALSE,
                last_claimed_at TIMESTAMPTZ,
                total_claims INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );

            CREATE TABLE IF NOT EXISTS claim_records (
                id BIGSERIAL PRIMARY KEY,
                account_id TEXT NOT NULL,
                username TEXT,
                process_id TEXT,
                status TEXT NOT NULL,
                claimed_items TEXT[] NOT NULL DEFAULT '{}',
                error TEXT,
                claimed_at TIMESTAMPTZ NOT NULL
            );

            CREATE INDEX IF NOT EXISTS claim_records_account_claimed_at_idx
                ON claim_records (account_id, claimed_at DESC);
            """
        )

    def _to_entity(self, row: asyncpg.Record) -> Account:
        return Account(
            account_id=row["account_id"],
            owner_id=row["owner_id"],
            username=row["username"],
            is_privileged_owner=bool(row["is_privileged_owner"]),
            is_blocked=bool(row["is_blocked"]),
            last_claimed_at=row["last_claimed_at"],
            total_claims=int(row["total_claims"]),
        )

    def _to_record(self, row: asyncpg.Record) -> ClaimRecord:
        return ClaimRecord(
            account_id=row["account_id"],
            status=ClaimOutcome(row["status"]),
            process_id=row["process_id"],
            username=row["username"],
            claimed_items=tuple(row["claimed_items"] or ()),
            error=row["error"],
            claimed_at=row["claimed_at"],
        )


__all__ = ["PostgresAccountRepository"]
