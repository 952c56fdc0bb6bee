"""In-memory account repository implementation."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import datetime

from claim_pipeline.domain.claim_types import ClaimOutcome
from claim_pipeline.domain.entities import Account, ClaimRecord
from claim_pipeline.domain.ports import AccountRepository


class InMemoryAccountRepository(AccountRepository):
    """Simple repository for local development and tests.

    Per-account locks are only created for registered accounts, so the lock
    map never outgrows the account set.
    """

    def __init__(self, accounts: Iterable[Account] = ()) -> None:
        self._accounts: dict[str, Account] = {}
        self._claim_records: list[ClaimRecord] = []
        self._lock = asyncio.Lock()
        self._account_locks: dict[str, asyncio.Lock] = {}
        for account in accounts:
            self._accounts[account.account_id] = replace(account)

    async def upsert(self, account: Account) -> None:
        """Register or replace one account."""

        async with self._lock:
            self._accounts[account.account_id] = replace(account)

    async def get_account(self, account_id: str) -> Account | None:
        account = self._accounts.get(account_id)
        return None if account is None else replace(account)

    async def get_accounts(self, account_ids: Sequence[str]) -> dict[str, Account]:
        return {
            account_id: replace(self._accounts[account_id])
            for account_id in account_ids
            if account_id in self._accounts
        }

    async def list_accounts(self) -> list[Account]:
        """Return all accounts in registration order."""

        async with self._lock:
            return [replace(account) for account in self._accounts.values()]

    async def record_successful_claim(self, account_id: str, claimed_at: datetime) -> None:
        """Update claim stats under a per-account lock."""

        lock = self._account_lock(account_id)
        if lock is None:
            return
        async with lock:
            account = self._accounts[account_id]
            account.last_claimed_at = claimed_at
            account.total_claims += 1

    async def record_claim(self, record: ClaimRecord) -> bool:
        """Append one attempt unless it repeats today's success for the account."""

        lock = self._account_lock(record.account_id)
        if lock is None:
            return False
        async with lock:
            if record.status is ClaimOutcome.SUCCESS and self._has_success_since(
                record.account_id,
                record.utc_day_start,
            ):
                return False
            self._claim_records.append(record)
            return True

    async def list_claim_records(
        self,
        account_id: str | None = None,
        limit: int = 50,
    ) -> list[ClaimRecord]:
        records = [
            record
            for record in self._claim_records
            if account_id is None or record.account_id == account_id
        ]
        records.sort(key=lambda record: record.claimed_at, reverse=True)
        return records[: max(limit, 0)]

    def _has_success_since(self, account_id: str, since: datetime) -> bool:
        return any(
            record.account_id == account_id
            and record.status is ClaimOutcome.SUCCESS
            and record.claimed_at >= since
            for record in self._claim_records
        )

    def _account_lock(self, account_id: str) -> asyncio.Lock | None:
        if account_id not in self._accounts:
            return None
        return self._account_locks.setdefault(account_id, asyncio.Lock())


__all__ = ["InMemoryAccountRepository"]
