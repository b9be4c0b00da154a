# components/access_guard/role_resolver.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from configs.app_config import AccessConfig, RoleHint
from domain.page import PageLocation
from domain.session import Identity

from .route_table import RoleRouteTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedRole:
    role: str
    source: str


class RoleResolver:
    """
    Picks the effective role of a visitor. First match wins:

    1. ``role`` stored on the profile document
    2. ``role`` query parameter, when the URL carries ``demo=true`` or ``dev=true``
    3. substrings of the e-mail address
    4. for anonymous identities, the dashboard named by the current path
    5. the configured default role

    Unknown role names at steps 1 and 2 are ignored and the chain continues.
    """

    def __init__(
        self,
        table: RoleRouteTable,
        email_hints: Sequence[RoleHint] = (),
        anonymous_path_hints: Sequence[RoleHint] = (),
        default_role: str = 'candidate',
    ) -> None:
        self.table = table
        self.email_hints: Tuple[RoleHint, ...] = tuple(email_hints)
        self.anonymous_path_hints: Tuple[RoleHint, ...] = tuple(anonymous_path_hints)
        self.default_role = table.require(default_role)

    @classmethod
    def from_config(cls, access: AccessConfig, table: Optional[RoleRouteTable] = None) -> 'RoleResolver':
        return cls(
            table=table or RoleRouteTable.from_config(access),
            email_hints=access.email_role_hints,
            anonymous_path_hints=access.anonymous_path_hints,
            default_role=access.default_role,
        )

    def resolve(self, identity: Optional[Identity], profile: Optional[Dict[str, Any]], location: PageLocation) -> ResolvedRole:
        resolved = self._resolve(identity, profile, location)
        logger.debug(f"Resolved role '{resolved.role}' from {resolved.source} for {identity.uid if identity else 'visitor'}")
        return resolved

    def _resolve(self, identity: Optional[Identity], profile: Optional[Dict[str, Any]], location: PageLocation) -> ResolvedRole:
        stored = (profile or {}).get('role')
        if stored:
            role = self.table.normalize(str(stored))
            if role:
                return ResolvedRole(role, 'profile')
            logger.warning(f"Ignoring unknown profile role {stored!r}")

        forced = self.table.normalize(location.forced_role)
        if forced:
            return ResolvedRole(forced, 'query')

        email = (identity.email or '').lower() if identity else ''
        if email:
            for hint in self.email_hints:
                if hint.contains.lower() in email:
                    return ResolvedRole(self.table.require(hint.role), 'email')

        if identity is not None and identity.is_anonymous:
            for hint in self.anonymous_path_hints:
                if hint.contains in location.path:
                    return ResolvedRole(self.table.require(hint.role), 'path')

        return ResolvedRole(self.default_role, 'default')
