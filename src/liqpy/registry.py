"""Name-keyed handler registries for tags and filters."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Generic, TypeVar

H = TypeVar("H")


class Registry(Generic[H]):
    """A mutable mapping from name to handler; the last registration for a name wins.

    Registries carry no locking. The tree builder works on a :meth:`snapshot`,
    so changes made while a build is running are simply not seen by it.
    """

    def __init__(self, kind: str, entries: Mapping[str, H] | None = None) -> None:
        self.kind = kind
        self._entries: dict[str, H] = dict(entries or {})

    def register(self, name: str, handler: H) -> None:
        if not isinstance(name, str) or not name:
            raise ValueError(f"{self.kind} name must be a non-empty string, got {name!r}")
        self._entries[name] = handler

    def resolve(self, name: str) -> H | None:
        return self._entries.get(name)

    def snapshot(self) -> Registry[H]:
        return Registry(self.kind, self._entries)

    def names(self) -> list[str]:
        return sorted(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Registry({self.kind!r}, {len(self._entries)} entries)"
