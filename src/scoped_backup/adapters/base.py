"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol that the backup engine talks to.
All methods are ``async def`` -- the library is async-first.

Table and column names are passed through verbatim and quoted by the
adapter, so mixed-case identifiers such as ``"User"."createdAt"`` work
without callers adding their own quotes.

Usage:
    from scoped_backup.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        rows = await client.select("User", order_by="uid")
        total = await client.count("Post", filters={"deletedAt": None})
        async with client.transaction() as tx:
            await tx.delete_all("Notice")
            await tx.insert_many("Notice", rows)
            await tx.reset_sequence("Notice", "id")
        await client.close()
"""

from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol


class DatabaseClient(Protocol):
    """Database client interface that all adapters must implement.

    Filter semantics shared by ``select`` and ``count``:

    - scalar value: ``column = value``
    - ``None``: ``column IS NULL``
    - list, tuple or set: ``column IN (...)``; an empty collection
      matches nothing.

    All methods are async -- callers must ``await`` every operation.
    """

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
    ) -> list[dict]:
        """Select rows from table.

        Args:
            table: Table name.
            columns: ``"*"`` or comma-separated column names
                (e.g., ``"uid, username"``).
            filters: Optional dict of field=value filters (all must match via AND).
            order_by: Optional comma-separated column names to sort by
                (ascending).

        Returns:
            List of dicts, one per row.  Empty list if no matches.

        Example:
            rows = await client.select(
                "Comment",
                filters={"deletedAt": None},
                order_by="depth, createdAt",
            )
        """
        ...

    async def count(self, table: str, filters: dict[str, Any] | None = None) -> int:
        """Count rows in table matching all filters.

        Example:
            existing = await client.count("User", {"uid": [1, 2, 3]})
        """
        ...

    async def count_not_null(self, table: str, columns: list[str]) -> int:
        """Count rows where at least one of ``columns`` is not null."""
        ...

    async def insert_many(self, table: str, rows: list[dict]) -> int:
        """Insert many rows with one statement and return the row count.

        Keys absent from a row fall back to the column default.
        """
        ...

    async def delete_all(self, table: str) -> int:
        """Delete every row of table and return the number deleted."""
        ...

    async def replace_links(
        self,
        table: str,
        parent_column: str,
        parent_value: Any,
        child_column: str,
        child_values: list[Any],
    ) -> int:
        """Set the full association list of one parent in a link table.

        Existing links of ``parent_value`` are removed and one link per
        distinct child value is written.

        Returns:
            Number of link rows written.
        """
        ...

    async def reset_sequence(self, table: str, column: str) -> None:
        """Reset the sequence backing ``table.column`` to the column maximum.

        An empty table resets the sequence so the next value is 1.
        Identifiers must match ``^[A-Za-z_][A-Za-z0-9_]*$``.

        Raises:
            ValueError: If an identifier fails validation.
        """
        ...

    async def advisory_lock(self, key: str) -> None:
        """Take a transaction-scoped advisory lock identified by ``key``.

        Only meaningful inside ``transaction()``; the lock is released
        on commit or rollback.
        """
        ...

    def transaction(self) -> AbstractAsyncContextManager["DatabaseClient"]:
        """Open a transaction and yield a client bound to it.

        Every call made through the yielded client runs on the same
        connection.  Leaving the block commits; an exception rolls back
        everything done through the bound client.

        Example:
            async with client.transaction() as tx:
                await tx.delete_all("Tag")
                await tx.insert_many("Tag", rows)
        """
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...
