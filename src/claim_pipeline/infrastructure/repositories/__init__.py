"""Account repository implementations."""

from claim_pipeline.infrastructure.repositories.in_memory_account_repository import (
    InMemoryAccountRepository,
)
from claim_pipeline.infrastructure.repositories.postgres_account_repository import (
    PostgresAccountRepository,
)

__all__ = ["InMemoryAccountRepository", "PostgresAccountRepository"]
