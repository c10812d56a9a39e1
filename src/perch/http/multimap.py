"""Read-only multi-valued string mappings: ``Headers`` and ``QueryParams``.

Both are built once from ordered ``(name, value)`` pairs and indexed by a
normalized key. Indexing returns the first value, ``get_list`` all of
them, and ``raw`` what the embedding server handed over.
"""

from collections.abc import Iterable, Iterator, Mapping
from urllib.parse import parse_qsl


class MultiMap(Mapping[str, str]):
    """Immutable mapping where a key may carry several values.

    Subclasses decide how keys are normalized by overriding ``_fold``.
    """

    __slots__ = ("_index", "_pairs")

    def __init__(self, pairs: Iterable[tuple[str, str]] = ()) -> None:
        index: dict[str, list[str]] = {}
        stored: list[tuple[str, str]] = []
        for name, value in pairs:
            name, value = str(name), str(value)
            stored.append((name, value))
            index.setdefault(self._fold(name), []).append(value)
        object.__setattr__(self, "_pairs", tuple(stored))
        object.__setattr__(self, "_index", index)

    @staticmethod
    def _fold(key: str) -> str:
        return key

    def __getitem__(self, key: str) -> str:
        return self._index[self._fold(key)][0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._fold(key) in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __setattr__(self, name: str, value: object) -> None:
        msg = f"{type(self).__name__} is immutable"
        raise AttributeError(msg)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self)!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """First value for *key*, or *default*."""
        values = self._index.get(self._fold(key))
        return values[0] if values else default

    def get_list(self, key: str) -> list[str]:
        """Every value for *key*, in arrival order."""
        return list(self._index.get(self._fold(key), ()))


class Headers(MultiMap):
    """Case-insensitive HTTP headers.

    Accepts header pairs or a plain mapping. Iteration yields lower-cased
    names once each; ``raw`` keeps the original order and casing.
    """

    __slots__ = ()

    def __init__(self, raw: Iterable[tuple[str, str]] | Mapping[str, str] = ()) -> None:
        super().__init__(raw.items() if isinstance(raw, Mapping) else raw)

    @staticmethod
    def _fold(key: str) -> str:
        return key.lower()

    @property
    def raw(self) -> tuple[tuple[str, str], ...]:
        return self._pairs


class QueryParams(MultiMap):
    """Parsed query string. Blank values are kept (``?flag=`` -> ``""``)."""

    __slots__ = ("_query",)

    def __init__(self, query_string: str = "") -> None:
        super().__init__(parse_qsl(query_string, keep_blank_values=True))
        object.__setattr__(self, "_query", query_string)

    @property
    def raw(self) -> str:
        """The undecoded query string."""
        return self._query
