from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple


@dataclass
class ServiceSlots:
    """
    Named places where the hosting page puts the component instances it built.

    The orchestrator auto-registers every filled slot that the component
    manifest names. Slots for features outside this package (job lists,
    chat) go into ``extras``.
    """
    session_manager: Optional[Any] = None
    access_guard: Optional[Any] = None
    demo_login: Optional[Any] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    def _named(self) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(self) if f.name != 'extras')

    def get(self, slot: str) -> Optional[Any]:
        if slot in self._named():
            return getattr(self, slot)
        return self.extras.get(slot)

    def set(self, slot: str, instance: Any) -> None:
        if slot in self._named():
            setattr(self, slot, instance)
        else:
            self.extras[slot] = instance
