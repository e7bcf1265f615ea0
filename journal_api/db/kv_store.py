"""
Key-value access layer

A single table addressed by (partition key, sort key). Every domain record
lives in one row; the record body is a JSON document.
"""
import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import psycopg
from psycopg import sql
from psycopg.types.json import Jsonb

from journal_api.db.connection import Database
from journal_api.exceptions import (
    ConditionFailedError,
    RecordNotFoundError,
    wrap_store_exception,
)

logger = logging.getLogger(__name__)

Item = dict[str, Any]


class KeyValueStore(ABC):
    """Point / range access to the journal table"""

    @abstractmethod
    async def put(self, pk: str, sk: str, item: Item) -> None:
        """Unconditional upsert of a full record"""

    @abstractmethod
    async def get(self, pk: str, sk: str) -> Optional[Item]:
        """Point lookup; None when absent"""

    @abstractmethod
    async def query(
        self,
        pk: str,
        sk_prefix: Optional[str] = None,
        limit: Optional[int] = None,
        ascending: bool = True,
    ) -> list[Item]:
        """Range scan within a partition, ordered by sort key"""

    @abstractmethod
    async def update(
        self,
        pk: str,
        sk: str,
        attributes: Item,
        condition: Optional[Item] = None,
    ) -> Item:
        """
        Merge attributes into an existing record and return the full record.

        Raises:
            RecordNotFoundError: no record under (pk, sk)
            ConditionFailedError: condition attributes do not match the record
        """

    @abstractmethod
    async def delete(self, pk: str, sk: str) -> bool:
        """Delete a record; returns whether one existed"""

    async def ping(self) -> bool:
        return True


class PostgresKeyValueStore(KeyValueStore):
    """KeyValueStore over a Postgres table (pk, sk, item jsonb)"""

    def __init__(self, database: Database):
        self.db = database
        self._table = sql.Identifier(database.table)

    async def put(self, pk: str, sk: str, item: Item) -> None:
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        sql.SQL(
                            """
                            INSERT INTO {table} (pk, sk, item)
                            VALUES (%s, %s, %s)
                            ON CONFLICT (pk, sk) DO UPDATE SET item = EXCLUDED.item
                            """
                        ).format(table=self._table),
                        (pk, sk, Jsonb(item))
                    )
                await conn.commit()
        except (psycopg.Error, RuntimeError) as e:
            raise wrap_store_exception(e, operation="put", context={"pk": pk, "sk": sk})
        logger.debug(f"put {pk} {sk}")

    async def get(self, pk: str, sk: str) -> Optional[Item]:
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        sql.SQL("SELECT item FROM {table} WHERE pk = %s AND sk = %s").format(
                            table=self._table
                        ),
                        (pk, sk)
                    )
                    row = await cur.fetchone()
        except (psycopg.Error, RuntimeError) as e:
            raise wrap_store_exception(e, operation="get", context={"pk": pk, "sk": sk})
        return row["item"] if row else None

    async def query(
        self,
        pk: str,
        sk_prefix: Optional[str] = None,
        limit: Optional[int] = None,
        ascending: bool = True,
    ) -> list[Item]:
        query = sql.SQL("SELECT item FROM {table} WHERE pk = %s").format(table=self._table)
        params: list[Any] = [pk]
        if sk_prefix:
            query += sql.SQL(" AND starts_with(sk, %s)")
            params.append(sk_prefix)
        query += sql.SQL(" ORDER BY sk ASC") if ascending else sql.SQL(" ORDER BY sk DESC")
        if limit is not None:
            query += sql.SQL(" LIMIT %s")
            params.append(limit)

        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, params)
                    rows = await cur.fetchall()
        except (psycopg.Error, RuntimeError) as e:
            raise wrap_store_exception(e, operation="query", context={"pk": pk, "sk_prefix": sk_prefix})
        return [row["item"] for row in rows]

    async def update(
        self,
        pk: str,
        sk: str,
        attributes: Item,
        condition: Optional[Item] = None,
    ) -> Item:
        query = sql.SQL(
            "UPDATE {table} SET item = item || %s WHERE pk = %s AND sk = %s"
        ).format(table=self._table)
        params: list[Any] = [Jsonb(attributes), pk, sk]
        if condition:
            query += sql.SQL(" AND item @> %s")
            params.append(Jsonb(condition))
        query += sql.SQL(" RETURNING item")

        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, params)
                    row = await cur.fetchone()
                await conn.commit()
        except (psycopg.Error, RuntimeError) as e:
            raise wrap_store_exception(e, operation="update", context={"pk": pk, "sk": sk})

        if row:
            return row["item"]
        if condition and await self.get(pk, sk) is not None:
            raise ConditionFailedError(
                message=f"Condition failed for {pk} {sk}",
                key=(pk, sk),
                condition=condition,
                operation="update"
            )
        raise RecordNotFoundError(
            message=f"No record for {pk} {sk}",
            record_type="item",
            record_id=f"{pk}/{sk}",
            operation="update"
        )

    async def delete(self, pk: str, sk: str) -> bool:
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        sql.SQL("DELETE FROM {table} WHERE pk = %s AND sk = %s RETURNING pk").format(
                            table=self._table
                        ),
                        (pk, sk)
                    )
                    row = await cur.fetchone()
                await conn.commit()
        except (psycopg.Error, RuntimeError) as e:
            raise wrap_store_exception(e, operation="delete", context={"pk": pk, "sk": sk})
        return row is not None

    async def ping(self) -> bool:
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1")
            return True
        except (psycopg.Error, RuntimeError) as e:
            logger.error(f"Store ping failed: {e}")
            return False


class InMemoryKeyValueStore(KeyValueStore):
    """
    Dict-backed store with the same semantics as PostgresKeyValueStore.

    Data is NOT persisted; used for local development (STORE_BACKEND=memory)
    and tests.
    """

    def __init__(self):
        self._items: dict[tuple[str, str], Item] = {}
        logger.warning("InMemoryKeyValueStore initialized - data is NOT persisted")

    async def put(self, pk: str, sk: str, item: Item) -> None:
        self._items[(pk, sk)] = copy.deepcopy(item)
        logger.debug(f"put {pk} {sk} (memory)")

    async def get(self, pk: str, sk: str) -> Optional[Item]:
        item = self._items.get((pk, sk))
        return copy.deepcopy(item) if item is not None else None

    async def query(
        self,
        pk: str,
        sk_prefix: Optional[str] = None,
        limit: Optional[int] = None,
        ascending: bool = True,
    ) -> list[Item]:
        keys = sorted(
            (key for key in self._items if key[0] == pk and key[1].startswith(sk_prefix or "")),
            key=lambda key: key[1],
            reverse=not ascending,
        )
        if limit is not None:
            keys = keys[:limit]
        return [copy.deepcopy(self._items[key]) for key in keys]

    async def update(
        self,
        pk: str,
        sk: str,
        attributes: Item,
        condition: Optional[Item] = None,
    ) -> Item:
        item = self._items.get((pk, sk))
        if item is None:
            raise RecordNotFoundError(
                message=f"No record for {pk} {sk}",
                record_type="item",
                record_id=f"{pk}/{sk}",
                operation="update"
            )
        if condition and any(item.get(attr) != expected for attr, expected in condition.items()):
            raise ConditionFailedError(
                message=f"Condition failed for {pk} {sk}",
                key=(pk, sk),
                condition=condition,
                operation="update"
            )
        item.update(copy.deepcopy(attributes))
        return copy.deepcopy(item)

    async def delete(self, pk: str, sk: str) -> bool:
        return self._items.pop((pk, sk), None) is not None
