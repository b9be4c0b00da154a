import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from core.lifecycle import ComponentRecord, ComponentRegistryMissingError
from domain.ports.event_bus_port import EventBusPort
from signals.app_signals import COMPONENT_REGISTERED

logger = logging.getLogger(__name__)

class ComponentRegistry:
    """
    Registry of every component that takes part in the page bootstrap.

    Holds one ComponentRecord per name. A record can be replaced until its
    component has started initializing; after that re-registration is ignored
    with a warning so an in-flight or finished initialization is never lost.
    """

    def __init__(self, event_bus: Optional[EventBusPort] = None):
        self._records: Dict[str, ComponentRecord] = {}
        self._started: Set[str] = set()
        self._event_bus = event_bus
        self._registration_order: List[str] = []
        logger.info("ComponentRegistry initialized")

    def register(
        self,
        name: str,
        instance: Any,
        dependencies: Optional[Iterable[str]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> bool:
        """
        Register (or re-register) a component.

        Returns True when the record was stored, False when the call was a no-op
        because the component has already started or finished initializing.
        """
        existing = self._records.get(name)
        if existing is not None and (existing.ready or self.is_started(name)):
            state = 'ready' if existing.ready else 'initializing'
            logger.warning(f"Ignoring re-registration of '{name}': component is already {state}")
            return False

        record = ComponentRecord(
            name=name,
            instance=instance,
            dependencies=dependencies,
            timeout_seconds=timeout_seconds,
        )
        self._records[name] = record
        if existing is None:
            self._registration_order.append(name)
            logger.info(f"Registered component '{name}' ({type(instance).__name__}), dependencies: {list(record.dependencies)}")
        else:
            logger.info(f"Replaced pending registration for '{name}' ({type(instance).__name__})")

        if self._event_bus:
            try:
                self._event_bus.publish(COMPONENT_REGISTERED, {
                    'name': name,
                    'component_type': type(instance).__name__,
                    'dependencies': list(record.dependencies),
                    'timestamp': datetime.now(timezone.utc).isoformat()
                })
            except Exception as e:
                logger.warning(f"Failed to publish registration event: {e}")
        return True

    def get_record(self, name: str) -> ComponentRecord:
        record = self._records.get(name)
        if record is None:
            raise ComponentRegistryMissingError(name, available_components=list(self._records.keys()))
        return record

    def get(self, name: str, default: Any = None) -> Any:
        """
        Get a component instance by name, or ``default`` when it is not registered.
        """
        record = self._records.get(name)
        if record is None:
            return default
        return record.instance

    def has_component(self, name: str) -> bool:
        return name in self._records

    def is_ready(self, name: str) -> bool:
        record = self._records.get(name)
        return record.ready if record else False

    def is_started(self, name: str) -> bool:
        return name in self._started

    def mark_started(self, name: str) -> None:
        self.get_record(name)
        self._started.add(name)

    def mark_failed(self, name: str) -> None:
        # a failed component may be registered again and retried explicitly
        self._started.discard(name)

    def mark_ready(self, name: str) -> ComponentRecord:
        record = self.get_record(name)
        record.mark_ready()
        return record

    def list_components(self) -> List[str]:
        return list(self._records.keys())

    def list_ready(self) -> List[str]:
        return [name for name, record in self._records.items() if record.ready]

    def get_registration_order(self) -> List[str]:
        return list(self._registration_order)

    def snapshot(self) -> List[Dict[str, Any]]:
        return [self._records[name].to_dict() for name in self._registration_order]

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, name: str) -> bool:
        return self.has_component(name)
