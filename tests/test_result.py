"""Unit tests for the lightweight Result utilities."""

from __future__ import annotations

import pytest

from talkpoints.core.result import Err, Ok, Result, err, ok


def test_ok_map_keeps_value_typed() -> None:
    r: Result[int, str] = ok(10)
    r2 = r.map(lambda x: x + 5)
    assert r2.is_ok() and r2.unwrap() == 15
    assert isinstance(r2, Ok)


def test_err_passes_through_map() -> None:
    r: Result[int, str] = err("boom")
    mapped = r.map(lambda x: x + 1)
    assert mapped.is_err()
    assert isinstance(mapped, Err) and mapped.unwrap_err() == "boom"


def test_unwrap_variants_and_defaults() -> None:
    assert ok("x").unwrap() == "x"
    assert err("e").get_or("fallback") == "fallback"
    assert ok("x").get_or("fallback") == "x"


def test_unwrap_on_wrong_variant_raises() -> None:
    with pytest.raises(RuntimeError):
        err("nope").unwrap()
    with pytest.raises(RuntimeError):
        ok(1).unwrap_err()
