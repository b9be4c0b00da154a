from __future__ import annotations

from .app_signals import (
    APP_ERROR, APP_READY, COMPONENT_READY, COMPONENT_REGISTERED, ROLE_CHANGED, SESSION_CHANGED,
    AppErrorPayload, ComponentReadyPayload, RoleChangedPayload, SessionChangedPayload,
)

__all__ = [
    'APP_ERROR', 'APP_READY', 'COMPONENT_READY', 'COMPONENT_REGISTERED', 'ROLE_CHANGED', 'SESSION_CHANGED',
    'AppErrorPayload', 'ComponentReadyPayload', 'RoleChangedPayload', 'SessionChangedPayload',
]
