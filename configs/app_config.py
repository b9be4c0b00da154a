# configs/app_config.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

__all__: Sequence[str] = (
    'AccessConfig', 'AppConfig', 'BootstrapSection', 'DemoAccount', 'DemoConfig',
    'LoggingConfig', 'RoleHint', 'SessionConfig', 'load_app_config',
)
logger = logging.getLogger(__name__)


class SessionConfig(BaseModel):
    model_config = ConfigDict(extra='forbid')

    subscription_timeout_seconds: float = Field(300.0, gt=0, description='How long a subscription waits for the provider before settling logged-out.')
    demo_storage_key: str = Field('demoAuth', min_length=1, description='Durable storage key holding the cached demo session.')
    demo_max_age_hours: float = Field(24.0, gt=0, description='Cached demo sessions older than this are purged on read.')
    allow_dev_sessions: bool = Field(True, description='Honour ?dev=true&role=... when the provider reports no user.')


class BootstrapSection(BaseModel):
    model_config = ConfigDict(extra='forbid')

    component_timeout_seconds: float = Field(120.0, gt=0, description='Default budget for waiting on a dependency.')
    init_order: List[str] = Field(default_factory=lambda: ['session_manager', 'access_guard', 'demo_login'])
    manifest: str = Field('configs/manifests/client_manifest.yaml', description='Component manifest, relative to the package root.')

    @field_validator('init_order')
    @classmethod
    def _unique_order(cls, v: List[str]) -> List[str]:
        if len(set(v)) != len(v):
            raise ValueError(f'init_order contains duplicates: {v}')
        return v


class RoleHint(BaseModel):
    model_config = ConfigDict(extra='forbid', frozen=True)

    contains: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)


class AccessConfig(BaseModel):
    model_config = ConfigDict(extra='forbid')

    root_path: str = '/'
    default_role: str = 'candidate'
    role_routes: Dict[str, List[str]] = Field(default_factory=dict)
    role_aliases: Dict[str, str] = Field(default_factory=dict, description='Legacy role names mapped onto canonical ones.')
    public_paths: List[str] = Field(default_factory=lambda: ['/', '/index.html'])
    dashboard_paths: Dict[str, str] = Field(default_factory=dict, description='Role -> dashboard page name.')
    email_role_hints: List[RoleHint] = Field(default_factory=list)
    anonymous_path_hints: List[RoleHint] = Field(default_factory=list)

    @model_validator(mode='after')
    def _check_roles(self) -> 'AccessConfig':
        if not self.role_routes:
            raise ValueError('access.role_routes must define at least one role')
        known = set(self.role_routes)
        if self.default_role not in known:
            raise ValueError(f"access.default_role '{self.default_role}' is not in role_routes {sorted(known)}")
        referenced = [h.role for h in self.email_role_hints + self.anonymous_path_hints]
        referenced += list(self.role_aliases.values()) + list(self.dashboard_paths)
        unknown = sorted({r for r in referenced if r not in known})
        if unknown:
            raise ValueError(f'access config references unknown roles: {unknown}')
        return self


class DemoAccount(BaseModel):
    model_config = ConfigDict(extra='forbid')

    email: str
    display_name: str


class DemoConfig(BaseModel):
    model_config = ConfigDict(extra='forbid')

    accounts: Dict[str, DemoAccount] = Field(default_factory=dict)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra='forbid')

    level: str = 'INFO'
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    @field_validator('level')
    @classmethod
    def _upper(cls, v: str) -> str:
        level = v.upper()
        if level not in {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}:
            raise ValueError(f'Unknown logging level: {v}')
        return level


class AppConfig(BaseModel):
    model_config = ConfigDict(extra='ignore')

    env: str = 'default'
    session: SessionConfig = Field(default_factory=SessionConfig)
    bootstrap: BootstrapSection = Field(default_factory=BootstrapSection)
    access: AccessConfig
    demo: DemoConfig = Field(default_factory=DemoConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode='after')
    def _demo_roles_known(self) -> 'AppConfig':
        unknown = sorted(r for r in self.demo.accounts if r not in self.access.role_routes)
        if unknown:
            raise ValueError(f'demo.accounts references unknown roles: {unknown}')
        return self


def load_app_config(raw: Mapping[str, Any]) -> AppConfig:
    """Validate a merged configuration dictionary."""
    from bootstrap.exceptions import ConfigurationError
    try:
        return AppConfig.model_validate(dict(raw))
    except ValidationError as e:
        logger.error(f'Invalid application configuration: {e}')
        raise ConfigurationError(f'Invalid application configuration: {e}') from e
