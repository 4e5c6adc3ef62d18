"""Report storage — PostgreSQL via asyncpg, or in-memory."""

from driftwatch.storage.base import EntityKind, ReportStore
from driftwatch.storage.memory import MemoryReportStore
from driftwatch.storage.postgres import PostgresReportStore

__all__ = [
    "EntityKind",
    "MemoryReportStore",
    "PostgresReportStore",
    "ReportStore",
]
