# core/base_component.py
from __future__ import annotations
from abc import ABC
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class BaseComponent(ABC):
    """
    Common lifecycle for feature modules driven by the bootstrap orchestrator.

    Subclasses put their setup in ``_initialize_impl``. ``initialize`` is
    idempotent: once it has succeeded, later calls only log at debug level.
    A failed initialization leaves the component uninitialized and re-raises.
    """

    def __init__(self, component_name: str, config: Optional[Dict[str, Any]] = None):
        if not component_name:
            raise ValueError('component_name must be non-empty')
        self._component_name = component_name
        self._config = config or {}
        self._initialized_properly: bool = False
        self._initializing: bool = False
        self._initialization_timestamp: Optional[datetime] = None
        self._error_count: int = 0
        logger.debug(f"BaseComponent '{self._component_name}' instantiated")

    @property
    def component_name(self) -> str:
        return self._component_name

    @property
    def config(self) -> Dict[str, Any]:
        return self._config

    @property
    def is_initialized(self) -> bool:
        return self._initialized_properly

    @property
    def is_initializing(self) -> bool:
        return self._initializing

    @property
    def error_count(self) -> int:
        return self._error_count

    async def initialize(self) -> None:
        if self._initialized_properly:
            logger.debug(f"Component '{self.component_name}' already initialized")
            return
        logger.info(f'Initializing component: {self.component_name}')
        self._initializing = True
        try:
            await self._initialize_impl()
            self._initialized_properly = True
            self._initialization_timestamp = datetime.now(timezone.utc)
            logger.info(f"Component '{self.component_name}' initialized successfully")
        except Exception as e:
            self._error_count += 1
            logger.error(f"Component '{self.component_name}' initialization failed: {e}")
            self._initialized_properly = False
            raise
        finally:
            self._initializing = False

    async def _initialize_impl(self) -> None:
        pass

    def health(self) -> Dict[str, Any]:
        if self._initialized_properly:
            status = 'HEALTHY' if self._error_count == 0 else 'DEGRADED'
        else:
            status = 'UNINITIALIZED'
        return {
            'component': self.component_name,
            'status': status,
            'error_count': self._error_count,
            'initialized_at': self._initialization_timestamp.isoformat() if self._initialization_timestamp else None,
        }
