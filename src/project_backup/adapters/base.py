"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol that the storage repositories
are built on.  All methods are ``async def``.

Usage:
    from project_backup.adapters.base import DatabaseClient

    async def load(client: DatabaseClient) -> None:
        rows = await client.select("diagrams", "*", filters={"project_id": pid})
        nodes = await client.select("nodes", "*", filters={"diagram_id": [d1, d2]})
        await client.insert("notes", {"id": nid, "file_name": "todo.md"})
        await client.close()
"""

from typing import Any, Protocol


class DatabaseClient(Protocol):
    """Database client interface that all adapters must implement.

    All methods are async -- callers must ``await`` every operation.
    """

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
    ) -> list[dict]:
        """Select rows from table.

        Args:
            table: Table name.
            columns: Comma-separated column names, or ``"*"``.
            filters: Optional dict of field=value filters (all must match
                via AND).  A ``list`` value matches any of its elements.
            order_by: Optional column name to sort by.

        Returns:
            List of dicts, one per row.  Empty list if no matches.

        Example:
            rows = await client.select(
                "nodes",
                "*",
                filters={"diagram_id": [diagram_a, diagram_b]},
                order_by="created_at",
            )
        """
        ...

    async def insert(self, table: str, data: dict) -> dict:
        """Insert row into table and return the created row.

        Columns omitted from ``data`` take their database defaults, so a
        missing ``id`` is generated by storage.

        Raises:
            Exception: If duplicate key or constraint violation.
        """
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...
