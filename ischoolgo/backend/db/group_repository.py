from typing import Any, Dict, List, Optional
from uuid import UUID

from .db_client import AsyncPostgresClient, WhereClause, like_pattern
from ..models.db_models import Group, Page

# Teacher name and active-student count are joined onto every group row.
_GROUP_SELECT = """
    SELECT g.*, u.name AS teacher_name,
           (SELECT COUNT(*) FROM students s WHERE s.group_id = g.id AND s.status = 'active') AS student_count
    FROM groups g
    LEFT JOIN users u ON u.id = g.teacher_id
"""


class GroupRepository(AsyncPostgresClient):
    """Queries over the 'groups' table."""

    async def list_groups(
        self,
        page: int,
        limit: int,
        search: Optional[str] = None,
        status: Optional[str] = None,
        teacher_id: Optional[UUID] = None,
    ) -> Page[Group]:
        where = WhereClause()
        if search:
            where.add("(g.name ILIKE {0} ESCAPE '\\' OR g.subject ILIKE {0} ESCAPE '\\')", like_pattern(search))
        where.add_if(status, "g.status = {0}")
        where.add_if(teacher_id, "g.teacher_id = {0}")
        return await self._paginate(
            Group,
            select_sql=_GROUP_SELECT,
            count_sql="SELECT COUNT(*) FROM groups g",
            where=where,
            order_by="g.created_at DESC, g.id",
            page=page,
            limit=limit,
        )

    async def get_group(self, group_id: UUID) -> Optional[Group]:
        record = await self._fetchrow(f"{_GROUP_SELECT} WHERE g.id = $1;", group_id)
        return Group(**record) if record else None

    async def add_group(self, fields: Dict[str, Any]) -> Group:
        record = await self._insert("groups", fields)
        return Group(**record)

    async def update_group(self, group_id: UUID, fields: Dict[str, Any]) -> Optional[Group]:
        record = await self._update("groups", group_id, fields)
        return Group(**record) if record else None

    async def list_active_groups(self) -> List[Group]:
        records = await self._fetch(f"{_GROUP_SELECT} WHERE g.status = 'active' ORDER BY g.name;")
        return [Group(**record) for record in records]

    async def count_groups(self, status: str = "active") -> int:
        return await self._fetchval("SELECT COUNT(*) FROM groups WHERE status = $1;", status)
