"""Tests for named placeholder compilation."""

from __future__ import annotations

import pytest

from pgbind.placeholders import PlaceholderError, compile_named, normalize_name


def test_compile_rewrites_names_in_order() -> None:
    compiled = compile_named("UPDATE accounts SET name = :val WHERE id = :id")

    assert compiled.sql == "UPDATE accounts SET name = $1 WHERE id = $2"
    assert compiled.names == ("val", "id")
    assert compiled.index_of("id") == 2


def test_repeated_name_reuses_position() -> None:
    compiled = compile_named("SELECT * FROM t WHERE a = :x OR b = :x OR c = :y")

    assert compiled.sql == "SELECT * FROM t WHERE a = $1 OR b = $1 OR c = $2"
    assert compiled.names == ("x", "y")


def test_casts_literals_and_comments_are_untouched() -> None:
    query = (
        "SELECT created_at::date, ':skip' AS label, \"odd:col\"\n"
        "FROM t -- filter on :also_skip\n"
        "WHERE id = :id /* :nope */ AND at > '12:30'::time"
    )

    compiled = compile_named(query)

    assert compiled.names == ("id",)
    assert "created_at::date" in compiled.sql
    assert "':skip'" in compiled.sql
    assert '"odd:col"' in compiled.sql
    assert "-- filter on :also_skip" in compiled.sql
    assert "/* :nope */" in compiled.sql
    assert "WHERE id = $1" in compiled.sql
    assert "'12:30'::time" in compiled.sql


def test_query_without_placeholders_is_unchanged() -> None:
    compiled = compile_named("SELECT 1")

    assert compiled.sql == "SELECT 1"
    assert compiled.names == ()


def test_mixing_styles_is_rejected() -> None:
    with pytest.raises(PlaceholderError):
        compile_named("SELECT * FROM t WHERE a = $1 AND b = :b")


def test_normalize_name_strips_colon() -> None:
    assert normalize_name(":id") == "id"
    assert normalize_name("id") == "id"


def test_dollar_quoted_bodies_are_untouched() -> None:
    query = "DO $$ BEGIN PERFORM :inner; END $$; SELECT $fn$ :x $fn$, :id"

    compiled = compile_named(query)

    assert compiled.names == ("id",)
    assert compiled.sql == "DO $$ BEGIN PERFORM :inner; END $$; SELECT $fn$ :x $fn$, $1"


def test_empty_dollar_quote_has_no_placeholders() -> None:
    assert compile_named("SELECT $$ :y $$").names == ()


def test_escape_strings_with_backslash_quotes_are_untouched() -> None:
    compiled = compile_named(r"SELECT E'it\'s :not' AS label WHERE id = :id")

    assert compiled.names == ("id",)
    assert compiled.sql == r"SELECT E'it\'s :not' AS label WHERE id = $1"
