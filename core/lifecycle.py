from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

__all__ = ['ComponentRecord', 'ComponentRegistryMissingError', 'normalize_dependencies']
logger = logging.getLogger(__name__)


def normalize_dependencies(dependencies: Optional[Iterable[str]]) -> Tuple[str, ...]:
    """Ordered, de-duplicated tuple of dependency names."""
    if dependencies is None:
        return ()
    if isinstance(dependencies, str):
        raise TypeError('dependencies must be an iterable of names, not a single string')
    seen: Dict[str, None] = {}
    for dep in dependencies:
        if not isinstance(dep, str) or not dep:
            raise TypeError(f'Dependency names must be non-empty strings, got {dep!r}')
        seen.setdefault(dep, None)
    return tuple(seen)


@dataclass
class ComponentRecord:
    name: str
    instance: Any
    dependencies: Tuple[str, ...] = ()
    timeout_seconds: Optional[float] = None
    registered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _ready: bool = field(default=False, repr=False)
    _ready_at: Optional[datetime] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError('ComponentRecord name must be non-empty.')
        self.dependencies = normalize_dependencies(self.dependencies)
        if self.name in self.dependencies:
            raise ValueError(f"Component '{self.name}' cannot depend on itself.")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds for '{self.name}' must be positive, got {self.timeout_seconds}")

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def ready_at(self) -> Optional[datetime]:
        return self._ready_at

    @property
    def has_initializer(self) -> bool:
        return callable(getattr(self.instance, 'initialize', None))

    def mark_ready(self) -> None:
        # ready only ever moves false -> true
        if self._ready:
            logger.debug(f"Component '{self.name}' already marked ready")
            return
        self._ready = True
        self._ready_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'instance_type': type(self.instance).__name__,
            'dependencies': list(self.dependencies),
            'timeout_seconds': self.timeout_seconds,
            'ready': self._ready,
            'registered_at': self.registered_at.isoformat(),
            'ready_at': self._ready_at.isoformat() if self._ready_at else None,
        }

    def __str__(self) -> str:
        deps = ', '.join(self.dependencies) or '-'
        return f"{self.name} ({type(self.instance).__name__}, deps: {deps}, ready={self._ready})"


class ComponentRegistryMissingError(KeyError):
    def __init__(self, component_name: str, message: Optional[str]=None, available_components: Optional[List[str]]=None):
        default_message = f"Component '{component_name}' not found in the registry."
        if available_components:
            sorted_keys = sorted(available_components)
            default_message += f" Available components ({len(sorted_keys)} total): {', '.join(sorted_keys)}"
        final_message = message if message is not None else default_message
        super().__init__(final_message)
        self.component_name = component_name
        self.available_components = available_components or []

    def __str__(self) -> str:
        return self.args[0]
