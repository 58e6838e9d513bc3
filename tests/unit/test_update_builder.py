import pytest
from psycopg import sql

from app.db.update_builder import ABSENT, UpdateBuilder


def _leaves(composable):
    if isinstance(composable, sql.Composed):
        for part in composable:
            yield from _leaves(part)
    else:
        yield composable


def _build(builder):
    return builder.build(
        where=sql.SQL("clerk_user_id = %s"),
        where_params=("user_1",),
        returning=sql.SQL("*"),
    )


def test_absent_fields_are_left_out():
    builder = UpdateBuilder("users").set("email", ABSENT).set("display_name", "Ada")
    query, params = _build(builder)

    leaves = list(_leaves(query))
    assert sql.Identifier("display_name") in leaves
    assert sql.Identifier("email") not in leaves
    assert params == ("Ada", "user_1")


def test_explicit_none_is_an_assignment():
    builder = UpdateBuilder("users").set("email", None).set("display_name", ABSENT)
    query, params = _build(builder)

    assert sql.Identifier("email") in list(_leaves(query))
    assert params == (None, "user_1")


def test_updated_at_is_always_touched():
    query, _ = _build(UpdateBuilder("users").set("email", "a@example.com"))
    assert sql.Identifier("updated_at") in list(_leaves(query))


def test_touch_column_can_be_disabled():
    builder = UpdateBuilder("users", touch_column=None).set("email", "a@example.com")
    query, _ = _build(builder)
    assert sql.Identifier("updated_at") not in list(_leaves(query))


def test_assignment_order_follows_calls():
    builder = UpdateBuilder("user_preferences").set("focus_mode", "hard")
    builder.set("focus_duration_minutes", 45)
    assert builder.columns == ["focus_mode", "focus_duration_minutes"]

    _, params = _build(builder)
    assert params == ("hard", 45, "user_1")


def test_noop_builder_refuses_to_build():
    builder = UpdateBuilder("users").set("email", ABSENT)
    assert builder.is_noop
    with pytest.raises(ValueError):
        _build(builder)
