"""SQL executor protocol definition.

Defines the ``SqlExecutor`` Protocol used to apply a generated sync script
against a target connection.  The diff engine itself never executes DDL;
execution is a separate, explicit step.

Usage:
    from schema_diff.adapters.base import SqlExecutor

    async def run(executor: SqlExecutor) -> None:
        await executor.execute("ALTER TABLE shop.users ADD COLUMN email TEXT")
        await executor.close()
"""

from typing import Protocol


class SqlExecutor(Protocol):
    """Executes raw SQL statements against one target database.

    All methods are async -- callers must ``await`` every operation.
    """

    async def execute(self, sql: str) -> None:
        """Execute a single SQL statement (DDL or other non-query operation).

        Executors that cannot run DDL should raise ``NotImplementedError``.

        Example:
            await executor.execute("DROP TABLE shop.legacy_logs")
        """
        ...

    async def close(self) -> None:
        """Release connections held by the executor."""
        ...
