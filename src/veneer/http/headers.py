"""Request headers as an immutable, case-insensitive mapping.

The ASGI scope delivers headers as byte pairs. They are decoded once,
grouped by lowercased name, and kept alongside the original pairs.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping

type RawHeaders = tuple[tuple[bytes, bytes], ...]


def _index(raw: RawHeaders) -> dict[str, tuple[str, ...]]:
    grouped: dict[str, list[str]] = {}
    for name, value in raw:
        grouped.setdefault(name.decode("latin-1").lower(), []).append(value.decode("latin-1"))
    return {name: tuple(values) for name, values in grouped.items()}


class Headers(Mapping[str, str]):
    """Case-insensitive view over the request's headers.

    Indexing gives the first value sent for a name. ``get_list`` gives all
    of them, which matters for ``Accept`` and ``If-None-Match`` where a
    client may repeat the header.
    """

    __slots__ = ("_index", "_raw")

    def __init__(self, raw: RawHeaders = ()) -> None:
        object.__setattr__(self, "_raw", raw)
        object.__setattr__(self, "_index", _index(raw))

    @classmethod
    def from_pairs(cls, pairs: Mapping[str, str] | tuple[tuple[str, str], ...]) -> Headers:
        """Build headers from ``str`` pairs (tests and the test client)."""
        items = pairs.items() if isinstance(pairs, Mapping) else pairs
        return cls(
            tuple((name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in items)
        )

    def __getitem__(self, key: str) -> str:
        values = self._index.get(key.lower())
        if not values:
            raise KeyError(key)
        return values[0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"Headers({dict(self)!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        values = self._index.get(key.lower())
        return values[0] if values else default

    def get_list(self, key: str) -> list[str]:
        """Every value sent for *key*, in order."""
        return list(self._index.get(key.lower(), ()))

    @property
    def raw(self) -> RawHeaders:
        """The byte pairs exactly as the ASGI scope delivered them."""
        return self._raw
