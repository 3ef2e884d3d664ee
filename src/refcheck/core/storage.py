from __future__ import annotations

from typing import Protocol


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class InMemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._items)


class NamespacedStorage:
    """Prefixes every key so several wizard sessions can share one backend."""

    def __init__(self, storage: KeyValueStorage, namespace: str):
        self.storage = storage
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}" if self.namespace else key

    def get_item(self, key: str) -> str | None:
        return self.storage.get_item(self._key(key))

    def set_item(self, key: str, value: str) -> None:
        self.storage.set_item(self._key(key), value)

    def remove_item(self, key: str) -> None:
        self.storage.remove_item(self._key(key))
