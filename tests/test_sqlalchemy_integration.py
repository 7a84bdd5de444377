"""
End-to-end tests of DynamicModel on SQLite through the SQLAlchemy backend.

Covers:
- ``?`` placeholder rewriting
- create / find / update / delete round trips with RETURNING
- pagination, search and operator filters
- batch and join relation loading
- transactions (commit and rollback)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import pytest_asyncio
from sqlalchemy.pool import StaticPool

from dynamic_orm.adapters.memory import InMemoryCacheBackend
from dynamic_orm.adapters.sqlalchemy_backend import (
    SQLAlchemyDatabaseBackend,
    bind_positional,
)
from dynamic_orm.model import DynamicModel
from dynamic_orm.ports import IDatabaseBackend

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

SCHEMA = (
    "CREATE TABLE users ("
    " id TEXT PRIMARY KEY, name TEXT, email TEXT, age INTEGER, role TEXT)",
    "CREATE TABLE posts ("
    " id INTEGER PRIMARY KEY AUTOINCREMENT, user_id TEXT, title TEXT,"
    " published INTEGER DEFAULT 0)",
    "CREATE TABLE profiles (id INTEGER PRIMARY KEY, user_id TEXT, bio TEXT)",
)

POSTS = {"table": "posts", "foreignKey": "user_id", "type": "many"}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def backend() -> AsyncGenerator[SQLAlchemyDatabaseBackend, None]:
    backend = SQLAlchemyDatabaseBackend.from_url(
        "sqlite+aiosqlite:///:memory:", poolclass=StaticPool
    )
    for statement in SCHEMA:
        await backend.execute(statement)
    yield backend
    await backend.dispose()


@pytest_asyncio.fixture
async def users(backend) -> DynamicModel:
    return DynamicModel(
        "users",
        backend,
        InMemoryCacheBackend(),
        use_cache=True,
        searchable_fields=["name", "email"],
    )


@pytest_asyncio.fixture
async def seeded(backend, users) -> DynamicModel:
    people = [
        ("u1", "Ada", "ada@example.com", 36, "admin"),
        ("u2", "Bob", "bob@example.com", 25, "user"),
        ("u3", "Cy", "cy@example.org", 19, "user"),
    ]
    for row in people:
        await backend.execute(
            "INSERT INTO users (id, name, email, age, role) VALUES (?, ?, ?, ?, ?)",
            row,
        )
    for user_id, title, published in [
        ("u1", "first", 1),
        ("u1", "second", 0),
        ("u2", "hello", 1),
    ]:
        await backend.execute(
            "INSERT INTO posts (user_id, title, published) VALUES (?, ?, ?)",
            (user_id, title, published),
        )
    await backend.execute(
        "INSERT INTO profiles (id, user_id, bio) VALUES (?, ?, ?)", (1, "u1", "math")
    )
    return users


# ---------------------------------------------------------------------------
# Placeholder rewriting
# ---------------------------------------------------------------------------


class TestBindPositional:
    def test_rewrites_in_order(self):
        sql, binds = bind_positional(
            "SELECT * FROM t WHERE a = ? AND b IN (?, ?)", [1, 2, 3]
        )
        assert sql == "SELECT * FROM t WHERE a = :p0 AND b IN (:p1, :p2)"
        assert binds == {"p0": 1, "p1": 2, "p2": 3}

    def test_quoted_question_marks_are_literals(self):
        sql, binds = bind_positional(
            """SELECT '?' AS q, t2.x AS "a?.x" FROM t WHERE y = ?""", ["v"]
        )
        assert sql == """SELECT '?' AS q, t2.x AS "a?.x" FROM t WHERE y = :p0"""
        assert binds == {"p0": "v"}

    def test_count_mismatch(self):
        with pytest.raises(ValueError, match="2 placeholders but 1 parameters"):
            bind_positional("SELECT ?, ?", [1])


# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestBackend:
    async def test_satisfies_protocol(self, backend):
        assert isinstance(backend, IDatabaseBackend)

    async def test_statements_without_rows_return_empty_list(self, backend):
        assert await backend.execute("DELETE FROM users WHERE id = ?", ["x"]) == []

    async def test_rows_are_plain_dicts(self, backend):
        rows = await backend.execute("SELECT ? AS a, ? AS b", [1, "x"])
        assert rows == [{"a": 1, "b": "x"}]
        assert type(rows[0]) is dict


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestCrudRoundTrip:
    async def test_create_then_find(self, users):
        created = await users.create({"name": "Dee", "age": 40})

        assert created["name"] == "Dee"
        assert len(created["id"]) == 36
        assert await users.find_by_id(created["id"]) == created

    async def test_update_then_find(self, seeded):
        await seeded.find_by_id("u2")
        updated = await seeded.update("u2", {"name": "Robert"})

        assert updated["name"] == "Robert"
        assert (await seeded.find_by_id("u2"))["name"] == "Robert"

    async def test_delete_then_find(self, seeded):
        deleted = await seeded.delete("u3", return_record=True)

        assert deleted["id"] == "u3"
        assert await seeded.find_by_id("u3") is None

    async def test_update_missing_record(self, seeded):
        assert await seeded.update("nope", {"name": "x"}) is None

    async def test_find_by_field(self, seeded):
        record = await seeded.find_by_field("email", "bob@example.com", "id, name")
        assert record == {"id": "u2", "name": "Bob"}


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestQueries:
    async def test_pagination(self, backend, users):
        for i in range(12):
            await backend.execute(
                "INSERT INTO users (id, name, age) VALUES (?, ?, ?)",
                (f"p{i:02d}", f"n{i}", i),
            )

        result = await users.find_all(
            {"sort": "id", "pagination": {"page": 2, "limit": 5}}
        )

        assert [r["id"] for r in result.data] == ["p05", "p06", "p07", "p08", "p09"]
        assert result.pagination.total == 12
        assert result.pagination.pages == 3
        assert result.pagination.has_next is True

    async def test_legacy_filters(self, seeded):
        result = await seeded.find_all({"role": "user"})
        assert sorted(r["id"] for r in result.data) == ["u2", "u3"]
        assert result.pagination.total == 2
        assert result.pagination.limit == 2

    async def test_operator_filters_and_sort(self, seeded):
        result = await seeded.find_all(
            {"filters": {"age": {"gte": 19, "lt": 36}}, "sort": {"age": "desc"}}
        )
        assert [r["id"] for r in result.data] == ["u2", "u3"]

    async def test_membership_and_empty_membership(self, seeded):
        some = await seeded.find_all({"filters": {"id": ["u1", "u3"]}, "sort": "id"})
        none = await seeded.find_all({"filters": {"id": []}})
        assert [r["id"] for r in some.data] == ["u1", "u3"]
        assert none.data == []

    async def test_search(self, seeded):
        result = await seeded.find_all({"search": "example.org"})
        assert [r["id"] for r in result.data] == ["u3"]

    async def test_count(self, seeded):
        assert await seeded.count({"age": {"gt": 25}}) == 1
        assert await seeded.count() == 3

    async def test_count_on_empty_table(self, users):
        assert await users.count({}) == 0

    async def test_raw_query(self, seeded):
        rows = await seeded.raw_query(
            "SELECT COUNT(*) AS n FROM posts WHERE user_id = ?", ["u1"]
        )
        assert rows == [{"n": 2}]


# ---------------------------------------------------------------------------
# Relations
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestRelations:
    async def test_many_relation_is_always_a_list(self, seeded):
        result = await seeded.find_all(
            {"sort": "id", "relations": [{**POSTS, "select": ["title"]}]}
        )
        posts = {r["id"]: r["posts"] for r in result.data}
        assert sorted(posts["u1"]) == ["first", "second"]
        assert posts["u2"] == ["hello"]
        assert posts["u3"] == []

    async def test_many_relation_with_filters(self, seeded):
        result = await seeded.find_all(
            {
                "filters": {"id": "u1"},
                "relations": [{**POSTS, "filters": {"published": 1}}],
                "pagination": {"page": 1, "limit": 10},
            }
        )
        (user,) = result.data
        assert [p["title"] for p in user["posts"]] == ["first"]
        assert result.pagination.total == 1

    async def test_inner_join_restricts_primary_rows(self, seeded):
        result = await seeded.find_all(
            {
                "relations": [
                    {
                        "table": "profiles",
                        "foreignKey": "user_id",
                        "as": "profile",
                        "type": "inner",
                    }
                ],
                "pagination": {"page": 1},
            }
        )
        assert result.pagination.total == 1
        (user,) = result.data
        assert user["id"] == "u1"
        assert user["profile"] == {"id": 1, "user_id": "u1", "bio": "math"}

    async def test_single_relation_defaults_to_empty_mapping(self, seeded):
        result = await seeded.find_all(
            {
                "sort": "id",
                "relations": [
                    {"table": "profiles", "foreignKey": "user_id", "as": "profile"}
                ],
            }
        )
        assert [r["profile"] for r in result.data] == [
            {"id": 1, "user_id": "u1", "bio": "math"},
            {},
            {},
        ]

    async def test_join_strategy(self, backend, seeded):
        model = DynamicModel("users", backend, relation_strategy="join")
        result = await model.find_all(
            {
                "sort": "id",
                "relations": [
                    {
                        "table": "profiles",
                        "foreignKey": "user_id",
                        "as": "profile",
                        "select": ["bio"],
                    }
                ],
            }
        )
        assert [(r["id"], r["profile"]) for r in result.data] == [
            ("u1", "math"),
            ("u2", {}),
            ("u3", {}),
        ]


# ---------------------------------------------------------------------------
# Caching and transactions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestCachingAndTransactions:
    async def test_writes_invalidate_cached_reads(self, seeded):
        before = await seeded.count({"role": "user"})
        await seeded.create({"name": "Eve", "role": "user"})
        assert await seeded.count({"role": "user"}) == before + 1

    async def test_transaction_commits(self, seeded):
        async def work(tx):
            created = await tx.create({"id": "u9", "name": "Tx"})
            await tx.update("u1", {"role": "owner"})
            return created

        created = await seeded.run_in_transaction(work)

        assert created["id"] == "u9"
        assert (await seeded.find_by_id("u1"))["role"] == "owner"
        assert await seeded.find_by_id("u9") is not None

    async def test_transaction_rolls_back(self, seeded):
        await seeded.find_by_id("u1")

        async def work(tx):
            await tx.delete("u1")
            await tx.create({"id": "u9", "name": "Tx"})
            raise RuntimeError("abort")

        with pytest.raises(RuntimeError, match="abort"):
            await seeded.run_in_transaction(work)

        assert await seeded.raw_query("SELECT id FROM users WHERE id = ?", ["u9"]) == []
        assert (await seeded.find_by_id("u1"))["id"] == "u1"
