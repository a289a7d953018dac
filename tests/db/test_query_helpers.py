import uuid
from unittest.mock import AsyncMock

import pytest

from ischoolgo.backend.db.db_client import WhereClause, like_pattern, page_count
from ischoolgo.backend.db.student_repository import StudentRepository
from ischoolgo.backend.errors import ValidationError
from ischoolgo.backend.services.validation import validate_page


@pytest.mark.parametrize("total, limit, expected", [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (25, 10, 3)])
def test_page_count(total, limit, expected):
    assert page_count(total, limit) == expected


def test_where_clause_numbers_placeholders_in_order():
    group_id = uuid.uuid4()
    where = WhereClause()
    where.add("(s.name ILIKE {0} OR s.email ILIKE {0})", "%ada%")
    where.add_if(group_id, "s.group_id = {0}")
    where.add_if(None, "s.status = {0}")
    where.add_if("", "s.notes = {0}")

    assert where.sql() == "WHERE (s.name ILIKE $1 OR s.email ILIKE $1) AND s.group_id = $2"
    assert where.args == ["%ada%", group_id]


def test_empty_where_clause():
    assert WhereClause().sql() == ""


def test_validate_page_defaults_and_cap():
    assert validate_page() == (1, 10)
    assert validate_page(3, 1000) == (3, 100)


@pytest.mark.parametrize("page, limit", [(0, 10), (1, 0)])
def test_validate_page_rejects_non_positive(page, limit):
    with pytest.raises(ValidationError):
        validate_page(page, limit)


def test_like_pattern_takes_wildcards_literally():
    assert like_pattern("ada") == "%ada%"
    assert like_pattern("50%_off") == "%50\\%\\_off%"
    assert like_pattern("a\\b") == "%a\\\\b%"


# --- Paging arguments, no database needed ---

@pytest.fixture
def student_repository():
    repository = StudentRepository(pool=None)
    repository._fetchval = AsyncMock(return_value=25)
    repository._fetch = AsyncMock(return_value=[])
    return repository


@pytest.mark.asyncio
async def test_second_page_skips_the_first_ten_rows(student_repository):
    page = await student_repository.list_students(page=2, limit=10)

    query, *args = student_repository._fetch.await_args.args
    assert query.rstrip().endswith("LIMIT $1 OFFSET $2;")
    assert args == [10, 10]
    assert (page.page, page.total, page.page_count) == (2, 25, 3)


@pytest.mark.asyncio
async def test_paging_placeholders_follow_filter_arguments(student_repository):
    await student_repository.list_students(page=3, limit=5, search="100%", status="active")

    query, *args = student_repository._fetch.await_args.args
    assert "ESCAPE" in query
    assert query.rstrip().endswith("LIMIT $3 OFFSET $4;")
    assert args == ["%100\\%%", "active", 5, 10]
    _, *count_args = student_repository._fetchval.await_args.args
    assert count_args == ["%100\\%%", "active"]
