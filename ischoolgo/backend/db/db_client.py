import json
import logging
import math
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Type
from uuid import UUID
import asyncpg

from ..errors import ConflictError, NotFoundError, StoreError
from ..models.db_models import Page, User

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


async def init_connection(connection: asyncpg.Connection):
    """Pool `init` hook: JSON columns come back as Python objects, NUMERIC as float."""
    for json_type in ("json", "jsonb"):
        await connection.set_type_codec(
            json_type, encoder=json.dumps, decoder=json.loads, schema="pg_catalog"
        )
    await connection.set_type_codec(
        "numeric", encoder=str, decoder=float, schema="pg_catalog", format="text"
    )


async def create_schema(pool: asyncpg.Pool):
    """Creates the tables from schema.sql if they are missing."""
    async with pool.acquire() as connection:
        await connection.execute(SCHEMA_PATH.read_text())


def page_count(total: int, limit: int) -> int:
    """Number of pages needed for `total` rows at `limit` rows per page."""
    return math.ceil(total / limit) if total else 0


def like_pattern(term: str) -> str:
    """Substring pattern for ILIKE ... ESCAPE '\\' with the wildcards in `term` taken literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class WhereClause:
    """
    Collects AND-ed SQL conditions and their arguments, numbering the asyncpg
    placeholders as it goes. A template refers to its own values as {0}, {1}...
    """
    def __init__(self):
        self.conditions: List[str] = []
        self.args: List[Any] = []

    def add(self, template: str, *values) -> "WhereClause":
        placeholders = []
        for value in values:
            self.args.append(value)
            placeholders.append(f"${len(self.args)}")
        self.conditions.append(template.format(*placeholders))
        return self

    def add_if(self, value, template: str) -> "WhereClause":
        if value is not None and value != "":
            self.add(template, value)
        return self

    def sql(self) -> str:
        return f"WHERE {' AND '.join(self.conditions)}" if self.conditions else ""


class AsyncPostgresClient:
    """
    Base PostgreSQL client: connection handling, driver-error translation and
    the generic insert/update/paginate helpers. User profile queries live here
    too; the entity repositories subclass it.
    """
    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    @asynccontextmanager
    async def _connection(self):
        try:
            async with self._pool.acquire() as connection:
                yield connection
        except asyncpg.UniqueViolationError as e:
            logger.warning(f"Unique constraint '{e.constraint_name}' violated.")
            raise ConflictError(f"A record with the same key already exists ({e.constraint_name}).") from e
        except asyncpg.ForeignKeyViolationError as e:
            logger.warning(f"Foreign key '{e.constraint_name}' violated.")
            raise NotFoundError("A referenced record does not exist.") from e
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error("Database call failed.", exc_info=True)
            raise StoreError("The database is unavailable or rejected the request.") from e

    async def _fetch(self, query: str, *args) -> List[asyncpg.Record]:
        async with self._connection() as connection:
            return await connection.fetch(query, *args)

    async def _fetchrow(self, query: str, *args) -> Optional[asyncpg.Record]:
        async with self._connection() as connection:
            return await connection.fetchrow(query, *args)

    async def _fetchval(self, query: str, *args) -> Any:
        async with self._connection() as connection:
            return await connection.fetchval(query, *args)

    async def _execute(self, query: str, *args) -> str:
        async with self._connection() as connection:
            return await connection.execute(query, *args)

    # ===== Generic helpers =====
    # Table and column names come from internal constants and the pydantic
    # field models, never from request input.

    async def _insert(self, table: str, fields: Dict[str, Any]) -> asyncpg.Record:
        columns = list(fields)
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        query = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) RETURNING *;"
        return await self._fetchrow(query, *fields.values())

    async def _update(self, table: str, record_id: UUID, fields: Dict[str, Any]) -> Optional[asyncpg.Record]:
        """Updates the given columns and always stamps updated_at. Returns None for an unknown id."""
        assignments = [f"{column} = ${i}" for i, column in enumerate(fields, start=2)]
        assignments.append("updated_at = now()")
        query = f"UPDATE {table} SET {', '.join(assignments)} WHERE id = $1 RETURNING *;"
        return await self._fetchrow(query, record_id, *fields.values())

    async def _delete(self, table: str, record_id: UUID) -> int:
        status = await self._execute(f"DELETE FROM {table} WHERE id = $1;", record_id)
        return int(status.split()[-1])

    async def _paginate(
        self,
        model: Type,
        select_sql: str,
        count_sql: str,
        where: WhereClause,
        order_by: str,
        page: int,
        limit: int,
    ) -> Page:
        where_sql = where.sql()
        total = await self._fetchval(f"{count_sql} {where_sql};", *where.args)
        offset = (page - 1) * limit
        next_index = len(where.args) + 1
        query = f"{select_sql} {where_sql} ORDER BY {order_by} LIMIT ${next_index} OFFSET ${next_index + 1};"
        records = await self._fetch(query, *where.args, limit, offset)
        return Page(
            items=[model(**record) for record in records],
            page=page,
            limit=limit,
            total=total,
            page_count=page_count(total, limit),
        )

    # ===== User profiles =====

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        record = await self._fetchrow("SELECT * FROM users WHERE id = $1;", user_id)
        return User(**record) if record else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        record = await self._fetchrow("SELECT * FROM users WHERE lower(email) = lower($1);", email)
        return User(**record) if record else None

    async def add_user(self, user_id: UUID, fields: Dict[str, Any]) -> User:
        record = await self._insert("users", {"id": user_id, **fields})
        return User(**record)

    async def touch_last_login(self, user_id: UUID) -> None:
        await self._execute("UPDATE users SET last_login = now() WHERE id = $1;", user_id)

    async def count_users(self, roles: Iterable[str], status: str = "active") -> int:
        query = "SELECT COUNT(*) FROM users WHERE role = ANY($1::text[]) AND status = $2;"
        return await self._fetchval(query, list(roles), status)
