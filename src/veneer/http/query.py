"""Query string parameters as an immutable multi-value mapping.

The document API reads ``filter``, ``sort``, ``keys``, ``page``,
``pagesize`` and ``id_type`` from here; ``keys`` may repeat.
"""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qsl


class QueryParams(Mapping[str, str]):
    """Parsed query string. Blank values are kept as ``""``.

    Indexing gives the first value for a name, ``get_list`` all of them.
    """

    __slots__ = ("_raw", "_values")

    def __init__(self, query_string: bytes = b"") -> None:
        values: dict[str, list[str]] = {}
        for name, value in parse_qsl(query_string.decode("latin-1"), keep_blank_values=True):
            values.setdefault(name, []).append(value)
        object.__setattr__(self, "_raw", query_string)
        object.__setattr__(self, "_values", values)

    def __getitem__(self, key: str) -> str:
        return self._values[key][0]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"QueryParams({self._raw.decode('latin-1')!r})"

    @property
    def raw(self) -> bytes:
        """The undecoded query string."""
        return self._raw

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        values = self._values.get(key)
        return values[0] if values else default

    def get_list(self, key: str) -> list[str]:
        return list(self._values.get(key, ()))

    def get_int(self, key: str, default: int | None = None) -> int | None:
        """First value as an int; *default* when missing or not a number."""
        value = self.get(key)
        if value is None or not value.strip().lstrip("-").isdigit():
            return default
        return int(value)
