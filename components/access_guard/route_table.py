# -*- coding: utf-8 -*-
"""
Role route table

Immutable mapping of role -> pages the role may open, plus the public pages
and the per-role dashboard entry points. Built once from the ``access``
configuration section.
"""

import functools
import logging
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from configs.app_config import AccessConfig
from domain.page import PageLocation

from .errors import UnknownRoleError

logger = logging.getLogger(__name__)


def _page_name(path: str) -> str:
    return PageLocation(path=path).page_name


class RoleRouteTable:
    """
    Answers "may role R open path P?".

    A path matches a route when its page name (path without leading slash and
    ``.html``) equals the route or continues it with a ``/`` segment, so
    ``/applications.html`` and ``/applications/42`` both match
    ``applications`` while ``/employer-dashboard`` does not match ``dashboard``.
    """

    def __init__(
        self,
        routes: Mapping[str, Iterable[str]],
        public_paths: Iterable[str] = ('/', '/index.html'),
        dashboards: Optional[Mapping[str, str]] = None,
        aliases: Optional[Mapping[str, str]] = None,
        root_path: str = '/',
        cache_size: int = 256,
    ) -> None:
        if not routes:
            raise ValueError('RoleRouteTable needs at least one role')
        self._routes: Mapping[str, Tuple[str, ...]] = MappingProxyType(
            {role.lower(): tuple(r.strip('/') for r in pages) for role, pages in routes.items()}
        )
        self._public: FrozenSet[str] = frozenset(public_paths)
        self._dashboards: Mapping[str, str] = MappingProxyType(dict(dashboards or {}))
        self._aliases: Mapping[str, str] = MappingProxyType({k.lower(): v.lower() for k, v in (aliases or {}).items()})
        self.root_path = root_path
        entry_points = set()
        for page in self._dashboards.values():
            entry_points.update({f'/{page}', f'/{page}.html'})
        self._dashboard_entry_points: FrozenSet[str] = frozenset(entry_points)
        # one entry per (role, path) pair, oldest evicted first
        self._check = functools.lru_cache(maxsize=cache_size)(self._evaluate)
        logger.info(f'RoleRouteTable built: {len(self._routes)} roles, {len(self._public)} public paths')

    @classmethod
    def from_config(cls, access: AccessConfig) -> 'RoleRouteTable':
        return cls(
            routes=access.role_routes,
            public_paths=access.public_paths,
            dashboards=access.dashboard_paths,
            aliases=access.role_aliases,
            root_path=access.root_path,
        )

    @property
    def roles(self) -> Tuple[str, ...]:
        return tuple(self._routes)

    @property
    def dashboard_entry_points(self) -> FrozenSet[str]:
        return self._dashboard_entry_points

    def normalize(self, role: Optional[str]) -> Optional[str]:
        """Canonical role name, or None when ``role`` is not a known role or alias."""
        if not role:
            return None
        key = role.strip().lower()
        key = self._aliases.get(key, key)
        return key if key in self._routes else None

    def require(self, role: Optional[str]) -> str:
        canonical = self.normalize(role)
        if canonical is None:
            raise UnknownRoleError(role, self._routes)
        return canonical

    def pages_for(self, role: str) -> Tuple[str, ...]:
        canonical = self.normalize(role)
        return self._routes[canonical] if canonical else ()

    def is_public(self, path: str) -> bool:
        return path in self._public

    def is_dashboard_entry(self, path: str) -> bool:
        return path in self._dashboard_entry_points

    def is_allowed(self, role: str, path: str) -> bool:
        return self._check(role, path)

    def _evaluate(self, role: str, path: str) -> bool:
        page = _page_name(path)
        result = any(page == route or page.startswith(f'{route}/') for route in self.pages_for(role))
        logger.debug(f"Route check: {role} -> {path} = {'ALLOW' if result else 'DENY'}")
        return result

    def dashboard_for(self, role: str) -> Optional[str]:
        canonical = self.normalize(role)
        page = self._dashboards.get(canonical) if canonical else None
        return f'/{page}' if page else None

    def get_stats(self) -> Dict[str, int]:
        info = self._check.cache_info()
        return {
            'roles': len(self._routes),
            'cache_size': info.currsize,
            'cache_max_size': info.maxsize,
            'cache_hits': info.hits,
            'cache_misses': info.misses,
        }
