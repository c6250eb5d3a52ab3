"""Test eager-load planning and SQL rendering."""

import pytest

from relmap import RelationNotFoundError
from relmap.sql.planner import EagerLoadPlanner
from tests.entities import Author, Comment, Post, Profile


@pytest.fixture
def planner(duck):
    return EagerLoadPlanner(Author, duck)


def test_plan_without_relations(planner):
    """Test a plan with no relations selects the main table only."""
    plan = planner.plan([])

    assert plan.joins == []
    assert "JOIN" not in plan.sql
    assert "FROM authors AS main" in plan.sql
    assert plan.sql.endswith("ORDER BY main.id")
    assert plan.params == {}


def test_plan_has_many_join(planner):
    """Test has_many joins the target table on its foreign key."""
    plan = planner.plan(["posts"])

    assert "LEFT JOIN posts AS posts ON main.id = posts.author_id" in plan.sql
    assert "posts.title AS posts__title" in plan.sql
    assert "posts.id AS posts__id" in plan.sql
    assert plan.sql.endswith("ORDER BY main.id, posts.id")


def test_plan_belongs_to_join(duck):
    """Test belongs_to joins the owner table on the local foreign key."""
    plan = EagerLoadPlanner(Post, duck).plan(["author"])

    assert "LEFT JOIN authors AS author ON main.author_id = author.id" in plan.sql
    assert plan.sql.endswith("ORDER BY main.id, author.id")


def test_plan_belongs_to_default_key(duck):
    """Test the belongs_to foreign key defaults to <target>_id."""
    plan = EagerLoadPlanner(Comment, duck).plan(["post"])

    assert "main.post_id = post.id" in plan.sql


def test_plan_selects_every_main_field(planner):
    """Test main fields are selected explicitly from the main alias."""
    plan = planner.plan(["profile"])

    assert plan.main_columns == ["id", "created_at", "updated_at", "name"]
    for column in plan.main_columns:
        assert f"main.{column}" in plan.sql


def test_plan_column_aliases(planner):
    """Test each joined field gets a relation-prefixed alias."""
    plan = planner.plan(["profile"])

    (join,) = plan.joins
    assert join.columns == {
        "id": "profile__id",
        "created_at": "profile__created_at",
        "updated_at": "profile__updated_at",
        "author_id": "profile__author_id",
        "bio": "profile__bio",
    }
    assert not join.many


def test_plan_single_id(planner, duck):
    """Test one id restricts the main table with a bound parameter."""
    plan = planner.plan(["posts"], ids=[7])

    assert f"WHERE main.id = {duck.placeholder('id')}" in plan.sql
    assert plan.params == {"id": 7}


def test_plan_many_ids(planner):
    """Test several ids become an IN list of bound parameters."""
    plan = planner.plan(["posts"], ids=[1, 2, 3])

    assert "WHERE main.id IN ($id_0, $id_1, $id_2)" in plan.sql
    assert plan.params == {"id_0": 1, "id_1": 2, "id_2": 3}


def test_plan_skips_unknown_relation(planner, caplog):
    """Test undeclared relation names are skipped with a warning."""
    with caplog.at_level("WARNING"):
        plan = planner.plan(["followers", "posts"])

    assert [join.name for join in plan.joins] == ["posts"]
    assert plan.skipped == ["followers"]
    assert "followers" in caplog.text


def test_plan_strict_unknown_relation(planner):
    """Test strict planning raises on undeclared relation names."""
    with pytest.raises(RelationNotFoundError, match="followers"):
        planner.plan(["followers"], strict=True)


def test_plan_defers_relation_on_other_store(planner, tmp_path):
    """Test relations whose target is bound elsewhere are not joined."""
    from relmap import JSONFileStore

    Profile.bind(JSONFileStore(tmp_path))

    plan = planner.plan(["posts", "profile"])

    assert [join.name for join in plan.joins] == ["posts"]
    assert plan.deferred == ["profile"]
    assert plan.skipped == []
    assert "Deferred: profile" in str(plan)


def test_plan_str(planner):
    """Test the plan renders a readable explanation."""
    text = str(planner.plan(["posts", "profile"]))

    assert text.startswith("Join Plan")
    assert "Entity: Author (authors AS main)" in text
    assert "posts (has_many Post): LEFT JOIN posts AS posts ON main.id = posts.author_id" in text
    assert "profile (has_one Profile)" in text
    assert "SQL:" in text


def test_plan_runs_on_duckdb(planner, duck):
    """Test the rendered statement executes and yields one row per match."""
    duck.execute("INSERT INTO authors (id, name) VALUES (1, 'Ada')")
    duck.execute("INSERT INTO posts (id, author_id, title) VALUES (10, 1, 'a'), (11, 1, 'b')")

    plan = planner.plan(["posts"], ids=[1])
    rows = duck.select(plan.sql, plan.params)

    assert [(row["id"], row["posts__id"]) for row in rows] == [(1, 10), (1, 11)]


def test_plan_aliases_do_not_collide_with_main_columns(duck):
    """Test joined columns never reuse a main column name."""
    plan = EagerLoadPlanner(Post, duck).plan(["author"])

    (join,) = plan.joins
    assert join.columns["id"] == "author__id"
    assert "main.author_id" in plan.sql
    assert "author.id AS author__id" in plan.sql
    assert not set(join.columns.values()) & set(plan.main_columns)


def test_plan_orders_by_every_joined_id(planner):
    """Test single relations are ordered by target id too."""
    plan = planner.plan(["profile", "posts"])

    assert plan.sql.endswith("ORDER BY main.id, profile.id, posts.id")
