"""Async Supabase database adapter.

Provides ``AsyncSupabaseAdapter``, an async implementation of the
``DatabaseClient`` protocol using the supabase-py async client.

The client is initialized lazily on first use with an ``asyncio.Lock``
to ensure thread-safe initialization.

Usage:
    from project_backup.adapters.supabase import AsyncSupabaseAdapter

    adapter = AsyncSupabaseAdapter(
        url="https://xyzproject.supabase.co",
        key="eyJ...",
    )

    rows = await adapter.select("notes", "*", filters={"project_id": pid})
    await adapter.close()
"""

import asyncio
from datetime import datetime
from typing import Any
from uuid import UUID

from supabase import AsyncClient, acreate_client


def _to_json_value(value: Any) -> Any:
    """Convert UUID and datetime values for the PostgREST JSON body."""
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, list):
        return [_to_json_value(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_json_value(v) for k, v in value.items()}
    return value


class AsyncSupabaseAdapter:
    """Async Supabase implementation of the ``DatabaseClient`` protocol.

    Args:
        url: Supabase project URL.
        key: Supabase API key (service key for backup/restore).
    """

    def __init__(self, url: str, key: str) -> None:
        self._url: str = url
        self._key: str = key
        self._client: AsyncClient | None = None
        self._lock: asyncio.Lock = asyncio.Lock()

    async def _get_client(self) -> AsyncClient:
        """Get or create the async Supabase client.

        Uses an ``asyncio.Lock`` to ensure the client is created exactly
        once, even under concurrent access.
        """
        if self._client is None:
            async with self._lock:
                # Double-check after acquiring lock
                if self._client is None:
                    self._client = await acreate_client(self._url, self._key)
        return self._client

    # ------------------------------------------------------------------
    # CRUD Methods
    # ------------------------------------------------------------------

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
    ) -> list[dict]:
        """Select rows from table using Supabase query builder.

        List-valued filters use ``in_``.
        """
        client = await self._get_client()
        query = client.table(table).select(columns)

        if filters:
            for key, value in filters.items():
                if isinstance(value, (list, tuple, set, frozenset)):
                    query = query.in_(key, _to_json_value(list(value)))
                else:
                    query = query.eq(key, _to_json_value(value))

        if order_by:
            query = query.order(order_by)

        result = await query.execute()
        return result.data

    async def insert(self, table: str, data: dict) -> dict:
        """Insert row and return created row."""
        client = await self._get_client()
        result = await client.table(table).insert(_to_json_value(data)).execute()
        return result.data[0]

    async def close(self) -> None:
        """Close the Supabase async client.

        If the client was never initialized (no CRUD calls were made),
        this is a no-op.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
