"""Repository adapters - Database and in-memory implementations."""

from .memory import InMemoryCodeRepository, InMemoryIssuanceLog, InMemoryUserRepository
from .postgres import (
    PostgresCodeRepository,
    PostgresIssuanceLog,
    PostgresUserRepository,
    run_migrations,
)

__all__ = [
    "InMemoryCodeRepository",
    "InMemoryIssuanceLog",
    "InMemoryUserRepository",
    "PostgresCodeRepository",
    "PostgresIssuanceLog",
    "PostgresUserRepository",
    "run_migrations",
]
