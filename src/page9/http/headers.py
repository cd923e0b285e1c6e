"""Immutable, case-insensitive HTTP headers.

Implements ``Mapping[str, str]``. Stores raw byte pairs from the ASGI scope;
decodes on access.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping

# Headers that describe one connection hop and must not be forwarded
HOP_BY_HOP = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
    }
)


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive HTTP headers.

    ``__getitem__`` returns the first matching value.
    ``get_list`` returns all values for a header (e.g. multiple ``Set-Cookie``).
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        object.__setattr__(self, "_raw", raw)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, str]]) -> Headers:
        """Build headers from decoded ``(name, value)`` pairs."""
        return cls(
            tuple(
                (name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in pairs
            )
        )

    def __getitem__(self, key: str) -> str:
        key_lower = key.lower().encode("latin-1")
        for name, value in self._raw:
            if name.lower() == key_lower:
                return value.decode("latin-1")
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        key_lower = key.lower().encode("latin-1")
        return any(name.lower() == key_lower for name, _ in self._raw)

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name, _ in self._raw:
            key = name.decode("latin-1").lower()
            if key not in seen:
                seen.add(key)
                yield key

    def __len__(self) -> int:
        return len(set(self))

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"Headers({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key* (e.g. multiple ``Set-Cookie``)."""
        key_lower = key.lower().encode("latin-1")
        return [value.decode("latin-1") for name, value in self._raw if name.lower() == key_lower]

    def items_decoded(self) -> list[tuple[str, str]]:
        """All pairs in order, decoded, including repeated names."""
        return [(name.decode("latin-1"), value.decode("latin-1")) for name, value in self._raw]

    def forwardable(self, *drop: str) -> list[tuple[str, str]]:
        """Decoded pairs minus hop-by-hop headers and any names in *drop*."""
        excluded = HOP_BY_HOP | {name.lower() for name in drop}
        return [(name, value) for name, value in self.items_decoded() if name.lower() not in excluded]

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        """Access raw header byte pairs for ASGI compatibility."""
        return self._raw


def merge_headers(
    base: Iterable[tuple[str, str]],
    overrides: Mapping[str, str] | Iterable[tuple[str, str]],
) -> tuple[tuple[str, str], ...]:
    """Return *base* with every header named in *overrides* replaced.

    Names compare case-insensitively; an override removes all existing
    values of that name before its own value is appended.
    """
    pairs = list(overrides.items()) if isinstance(overrides, Mapping) else list(overrides)
    replaced = {name.lower() for name, _ in pairs}
    kept = [(name, value) for name, value in base if name.lower() not in replaced]
    return (*kept, *pairs)
