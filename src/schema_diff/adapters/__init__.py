"""SQL executors used to apply sync scripts."""

from schema_diff.adapters.base import SqlExecutor
from schema_diff.adapters.engine import AsyncSqlExecutor, create_async_engine_pooled

__all__ = ["SqlExecutor", "AsyncSqlExecutor", "create_async_engine_pooled"]
