"""Opaque key/value state stores for browser persistence."""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class StateStore(Protocol):
    """String key/value store owned by the host; browsers only get and set."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStateStore:
    """A :class:`StateStore` kept in a dict."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def __repr__(self) -> str:
        return f"MemoryStateStore(keys={sorted(self._data)!r})"
