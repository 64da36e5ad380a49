"""Case-insensitive, immutable request headers.

The transport hands over raw ``(name, value)`` byte pairs; ``Headers``
keeps them untouched (for re-emission) and answers lookups by
lower-cased ``str`` name. Repeated headers keep every value.
"""

from collections.abc import Iterator, Mapping


def _key(name: str | bytes) -> str:
    if isinstance(name, bytes):
        name = name.decode("latin-1")
    return name.lower()


class Headers(Mapping[str, str]):
    """Read-only header mapping.

    ``headers[name]`` and ``get`` return the first value; ``get_list``
    returns them all. Iteration yields each lower-cased name once.
    """

    __slots__ = ("_raw",)

    _raw: tuple[tuple[bytes, bytes], ...]

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        object.__setattr__(self, "_raw", tuple(raw))

    @classmethod
    def from_pairs(cls, pairs: Mapping[str, str] | None = None) -> "Headers":
        """Build headers from a ``str -> str`` mapping (names are lower-cased)."""
        return cls(
            tuple(
                (_key(name).encode("latin-1"), value.encode("latin-1"))
                for name, value in (pairs or {}).items()
            )
        )

    def _values(self, key: str) -> Iterator[str]:
        wanted = _key(key)
        return (value.decode("latin-1") for name, value in self._raw if _key(name) == wanted)

    def __getitem__(self, key: str) -> str:
        for value in self._values(key):
            return value
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and next(self._values(key), None) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(dict.fromkeys(_key(name) for name, _ in self._raw))

    def __len__(self) -> int:
        return len(dict.fromkeys(_key(name) for name, _ in self._raw))

    def __repr__(self) -> str:
        return f"Headers({dict(self)!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        return next(self._values(key), default)

    def get_list(self, key: str) -> list[str]:
        return list(self._values(key))

    def with_header(self, name: str, value: str) -> "Headers":
        """Return new headers with *name* appended."""
        return Headers((*self._raw, (_key(name).encode("latin-1"), value.encode("latin-1"))))

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        """The byte pairs as received from the transport."""
        return self._raw
