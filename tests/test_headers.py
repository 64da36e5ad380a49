"""Tests for perch.http.headers — immutable, case-insensitive Headers."""

import pytest

from perch.http.headers import Headers


def _h(*pairs: tuple[str, str]) -> Headers:
    """Shorthand: build Headers from string pairs."""
    raw = tuple((k.encode("latin-1"), v.encode("latin-1")) for k, v in pairs)
    return Headers(raw)


class TestHeaders:
    def test_getitem(self) -> None:
        h = _h(("Content-Type", "text/html"))
        assert h["Content-Type"] == "text/html"

    def test_case_insensitive(self) -> None:
        h = _h(("Content-Type", "text/html"))
        assert h["content-type"] == "text/html"
        assert h["CONTENT-TYPE"] == "text/html"

    def test_missing_key_raises(self) -> None:
        h = _h(("Accept", "*/*"))
        with pytest.raises(KeyError):
            h["X-Missing"]

    def test_contains(self) -> None:
        h = _h(("Accept", "*/*"))
        assert "accept" in h
        assert "x-missing" not in h
        assert 42 not in h  # type: ignore[operator]

    def test_len_deduplicates(self) -> None:
        h = _h(("Accept", "text/html"), ("accept", "application/json"))
        assert len(h) == 1

    def test_get_list(self) -> None:
        h = _h(("Set-Cookie", "a=1"), ("Set-Cookie", "b=2"))
        assert h.get_list("set-cookie") == ["a=1", "b=2"]
        assert h["set-cookie"] == "a=1"

    def test_get_with_default(self) -> None:
        h = _h()
        assert h.get("x-missing") is None
        assert h.get("x-missing", "fallback") == "fallback"

    def test_from_pairs(self) -> None:
        h = Headers.from_pairs({"X-Request-Id": "abc"})
        assert h["x-request-id"] == "abc"
        assert h.raw == ((b"x-request-id", b"abc"),)
        assert len(Headers.from_pairs(None)) == 0

    def test_with_header_returns_new(self) -> None:
        h = _h(("Accept", "*/*"))
        h2 = h.with_header("X-User", "alice")
        assert "x-user" in h2
        assert "x-user" not in h

    def test_repr(self) -> None:
        assert repr(_h(("Accept", "*/*"))) == "Headers({'accept': '*/*'})"
