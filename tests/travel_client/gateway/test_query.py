"""Tests for the filter primitives shared by the gateway and its test double."""

from __future__ import annotations

from travel_client.gateway.query import Eq, ILikeAny, In, Order, row_matches

ROW = {"id": "a1", "name": "Corniche Beach", "category": "Beaches", "subcategory": None}


def test_eq_is_case_sensitive() -> None:
    assert Eq("category", "Beaches").matches(ROW)
    assert not Eq("category", "beaches").matches(ROW)
    assert Eq("category", "Beaches").to_params() == [("category", "eq.Beaches")]


def test_eq_renders_booleans_in_lowercase() -> None:
    assert Eq("is_public", True).to_params() == [("is_public", "eq.true")]


def test_in_filter_quotes_reserved_characters() -> None:
    selector = In("name", ["plain", "with,comma", 'say "hi"'])

    assert selector.values == ("plain", "with,comma", 'say "hi"')
    assert selector.to_params() == [("name", 'in.(plain,"with,comma","say \\"hi\\"")')]
    assert In("id", ["a1", "a2"]).matches(ROW)
    assert not In("id", []).matches(ROW)


def test_ilike_any_matches_any_column_ignoring_case() -> None:
    search = ILikeAny(["name", "subcategory"], "BEACH")

    assert search.matches(ROW)
    assert not ILikeAny(["subcategory"], "beach").matches(ROW)
    assert search.columns == ("name", "subcategory")


def test_order_param() -> None:
    assert Order("created_at").to_param() == ("order", "created_at.desc")
    assert Order("name", ascending=True).to_param() == ("order", "name.asc")


def test_row_matches_combines_with_and() -> None:
    assert row_matches(ROW, [Eq("id", "a1"), ILikeAny(["name"], "corniche")])
    assert not row_matches(ROW, [Eq("id", "a1"), Eq("category", "Shopping")])
    assert row_matches(ROW, [])
