# signals/app_signals.py
"""
Event names published on the page event bus and the payload models behind them.

Payloads travel as plain dictionaries (``model_dump()``) so presentation code
can read them without importing these models.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

COMPONENT_REGISTERED = 'component:registered'
COMPONENT_READY = 'component:ready'
APP_READY = 'app:ready'
APP_ERROR = 'app:error'
ROLE_CHANGED = 'roleChanged'
SESSION_CHANGED = 'session:changed'


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def as_event(self) -> Dict[str, Any]:
        # shallow on purpose: instances and exceptions are handed over as-is
        return {name: getattr(self, name) for name in type(self).model_fields}


class ComponentReadyPayload(_Payload):
    name: str
    component: Any = Field(default=None, description='The component instance that became ready.')


class AppErrorPayload(_Payload):
    error: BaseException
    component: Optional[str] = None


class RoleChangedPayload(_Payload):
    role: str
    path: str


class SessionChangedPayload(_Payload):
    user: Any = None
    origin: Optional[str] = None
