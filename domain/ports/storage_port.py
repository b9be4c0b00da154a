# domain/ports/storage_port.py

"""Durable key-value storage that survives page reloads."""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStoragePort(Protocol):

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...
