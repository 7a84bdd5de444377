"""Tests for the JOIN, SELECT, ORDER BY, pagination and search builders."""

from __future__ import annotations

import pytest

from dynamic_orm.query.clauses import (
    PageWindow,
    build_field_list,
    build_joins,
    build_order_by,
    build_pagination,
    build_search,
    build_select,
    build_select_clause,
)
from dynamic_orm.query.filters import AliasResolver
from dynamic_orm.query.types import PaginationSpec, RelationSpec


def relation(**data) -> RelationSpec:
    return RelationSpec.model_validate(data)


@pytest.fixture
def resolver() -> AliasResolver:
    return AliasResolver("users")


class TestFieldList:
    def test_comma_separated_string(self):
        assert build_field_list("id, name ,email") == ["id", "name", "email"]

    def test_sequence(self):
        assert build_field_list(["id", "name"]) == ["id", "name"]

    @pytest.mark.parametrize("fields", [None, "", []])
    def test_absent_means_all(self, fields):
        assert build_field_list(fields) == []
        assert build_select_clause(fields) == "*"


class TestBuildJoins:
    def test_aliases_and_join_kinds(self, resolver):
        joins = build_joins(
            [
                relation(table="posts", foreignKey="user_id", type="many"),
                relation(
                    table="profiles", foreignKey="user_id", type="INNER", **{"as": "p"}
                ),
                relation(table="teams", foreignKey="id", localKey="team_id"),
            ],
            resolver,
            "id",
        )
        assert [j.sql for j in joins] == [
            "LEFT JOIN posts t2 ON t1.id = t2.user_id",
            "INNER JOIN profiles t3 ON t1.id = t3.user_id",
            "LEFT JOIN teams t4 ON t1.team_id = t4.id",
        ]
        assert [j.alias for j in joins] == ["t2", "t3", "t4"]
        assert joins[2].local_key == "team_id"
        assert resolver.alias_for("p") == "t3"

    def test_right_join(self, resolver):
        (join,) = build_joins(
            [relation(table="posts", foreignKey="user_id", type="right")],
            resolver,
            "id",
        )
        assert join.sql.startswith("RIGHT JOIN posts t2")

    def test_incomplete_relations_are_skipped(self, resolver):
        joins = build_joins(
            [relation(table="posts"), relation(foreignKey="user_id")],
            resolver,
            "id",
        )
        assert joins == []
        assert resolver.alias_for("posts") is None


class TestBuildSelect:
    def test_main_table_only(self):
        assert build_select(None, "t1") == "t1.*"
        assert build_select(["id", "name"], "t1") == "t1.id, t1.name"

    def test_relation_columns_are_prefixed(self, resolver):
        joins = build_joins(
            [
                relation(
                    table="posts",
                    foreignKey="user_id",
                    type="many",
                    select=["id", "title"],
                ),
                relation(table="profiles", foreignKey="user_id", select="*"),
            ],
            resolver,
            "id",
        )
        assert build_select(None, "t1", joins) == (
            't1.*, t2.id AS "posts.id", t2.title AS "posts.title"'
        )
        assert build_select(None, "t1", joins, include_relations=False) == "t1.*"

    def test_relation_prefix_uses_as_name(self, resolver):
        joins = build_joins(
            [
                relation(
                    table="profiles", foreignKey="user_id", select="bio", **{"as": "me"}
                )
            ],
            resolver,
            "id",
        )
        assert build_select(["id"], "t1", joins) == 't1.id, t2.bio AS "me.bio"'


class TestBuildOrderBy:
    def test_single_descending(self, resolver):
        assert build_order_by("-created_at", resolver) == "ORDER BY t1.created_at DESC"

    def test_sequence_preserves_order(self, resolver):
        assert build_order_by(["name", "-age"], resolver) == (
            "ORDER BY t1.name ASC, t1.age DESC"
        )

    def test_mapping_directions(self, resolver):
        assert build_order_by({"name": "DESC", "age": "asc"}, resolver) == (
            "ORDER BY t1.name DESC, t1.age ASC"
        )

    def test_qualified_field(self, resolver):
        resolver.register("posts")
        assert build_order_by("-posts.title", resolver) == "ORDER BY t2.title DESC"

    @pytest.mark.parametrize("sort", [None, "", [], {}])
    def test_no_sort(self, resolver, sort):
        assert build_order_by(sort, resolver) == ""


class TestBuildPagination:
    def test_not_requested(self):
        assert build_pagination(None, 100, 1000) is None

    def test_page_window(self):
        window = build_pagination(PaginationSpec(page=2, limit=5), 100, 1000)
        assert window == PageWindow(page=2, limit=5, offset=5)
        assert window.sql == "LIMIT 5 OFFSET 5"

    @pytest.mark.parametrize(
        ("requested", "expected"),
        [
            ({"page": 0, "limit": 10}, PageWindow(1, 10, 0)),
            ({"page": -4, "limit": 10}, PageWindow(1, 10, 0)),
            ({"page": 3, "limit": 5000}, PageWindow(3, 1000, 2000)),
            ({"page": 1, "limit": -3}, PageWindow(1, 1, 0)),
            ({"page": 2}, PageWindow(2, 100, 100)),
            ({"page": 2, "limit": 0}, PageWindow(2, 100, 100)),
            ({"page": "3", "limit": "20"}, PageWindow(3, 20, 40)),
            ({"page": "abc", "limit": None}, PageWindow(1, 100, 0)),
        ],
    )
    def test_clamping(self, requested, expected):
        window = build_pagination(PaginationSpec.model_validate(requested), 100, 1000)
        assert window == expected


class TestBuildSearch:
    def test_or_group_over_searchable_fields(self, resolver):
        condition, params = build_search("jo", ["name", "email"], resolver)
        assert condition == "(t1.name LIKE ? OR t1.email LIKE ?)"
        assert params == ["%jo%", "%jo%"]

    def test_qualified_searchable_field(self, resolver):
        resolver.register("profiles")
        condition, _ = build_search("x", ["profiles.bio"], resolver)
        assert condition == "(t2.bio LIKE ?)"

    @pytest.mark.parametrize(
        ("term", "fields"), [(None, ["name"]), ("", ["name"]), ("jo", [])]
    )
    def test_nothing_to_search(self, resolver, term, fields):
        assert build_search(term, fields, resolver) == (None, [])
