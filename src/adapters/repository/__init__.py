"""Repository adapters - Database implementations."""

from .dynamodb import DynamoDbAccountRepository
from .postgres import PostgresAccountRepository, run_migrations

__all__ = ["DynamoDbAccountRepository", "PostgresAccountRepository", "run_migrations"]
