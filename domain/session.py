# domain/session.py
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

DEMO_SESSION_MAX_AGE = timedelta(hours=24)


class SessionOrigin(str, Enum):
    REAL = 'real'
    DEMO_ANONYMOUS = 'demo-anonymous'
    DEMO_CACHED = 'demo-cached'
    DEV_FORCED = 'dev-forced'

    @property
    def is_demo(self) -> bool:
        return self is not SessionOrigin.REAL

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Identity:
    """Opaque user handle handed out by the identity provider."""
    uid: str
    email: Optional[str] = None
    is_anonymous: bool = False
    display_name: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.uid:
            raise ValueError('Identity uid must be non-empty')


@dataclass(frozen=True)
class Session:
    identity: Optional[Identity]
    origin: SessionOrigin
    obtained_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None


def now_ms() -> int:
    return int(time.time() * 1000)


class DemoSessionRecord(BaseModel):
    """Cached demo sign-in, persisted as JSON in durable key-value storage."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    identity_id: str = Field(..., min_length=1, alias='uid')
    email: str
    created_at: int = Field(..., ge=0, alias='timestamp', description='Creation time, epoch milliseconds.')
    role: Optional[str] = None

    @classmethod
    def create(cls, identity: Identity, role: Optional[str] = None, created_at: Optional[int] = None) -> 'DemoSessionRecord':
        return cls(
            identity_id=identity.uid,
            email=identity.email or f'{identity.uid}@demo.local',
            created_at=now_ms() if created_at is None else created_at,
            role=role,
        )

    @classmethod
    def from_json(cls, raw: Any) -> Optional['DemoSessionRecord']:
        """Parse a stored record; anything malformed comes back as None."""
        if raw is None:
            return None
        try:
            data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
            if not isinstance(data, dict):
                return None
            return cls.model_validate(data)
        except (ValueError, TypeError, ValidationError) as e:
            logger.debug(f'Ignoring malformed demo session record: {e}')
            return None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def age_ms(self, now: Optional[int] = None) -> int:
        return (now_ms() if now is None else now) - self.created_at

    def is_expired(self, now: Optional[int] = None, max_age: timedelta = DEMO_SESSION_MAX_AGE) -> bool:
        return self.age_ms(now) > max_age.total_seconds() * 1000

    def to_identity(self) -> Identity:
        return Identity(uid=self.identity_id, email=self.email, is_anonymous=False)
