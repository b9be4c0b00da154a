# domain/page.py
from __future__ import annotations

from typing import Dict, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

ROOT_PATHS = ('/', '/index.html')


def _flag(value: Optional[str]) -> bool:
    return value == 'true'


class PageLocation(BaseModel):
    """
    The current page address: path plus query-string parameters.

    Only the first value of a repeated query parameter is kept, matching
    URLSearchParams.get in the browser.
    """
    model_config = ConfigDict(frozen=True)

    path: str = Field(default='/')
    query: Dict[str, str] = Field(default_factory=dict)

    @field_validator('path')
    @classmethod
    def _normalize_path(cls, v: str) -> str:
        v = (v or '/').strip()
        return v if v.startswith('/') else f'/{v}'

    @classmethod
    def from_url(cls, url: str) -> 'PageLocation':
        parts = urlsplit(url or '/')
        query: Dict[str, str] = {}
        for key, value in parse_qsl(parts.query, keep_blank_values=True):
            query.setdefault(key, value)
        return cls(path=parts.path or '/', query=query)

    def param(self, name: str) -> Optional[str]:
        return self.query.get(name)

    @property
    def is_demo(self) -> bool:
        return _flag(self.query.get('demo'))

    @property
    def is_dev(self) -> bool:
        return _flag(self.query.get('dev'))

    @property
    def requested_role(self) -> Optional[str]:
        role = self.query.get('role')
        return role or None

    @property
    def forced_role(self) -> Optional[str]:
        """Role named by a demo or dev override, if the URL carries one."""
        if (self.is_demo or self.is_dev) and self.requested_role:
            return self.requested_role
        return None

    @property
    def clear_cache(self) -> bool:
        return _flag(self.query.get('clear-cache'))

    @property
    def is_root(self) -> bool:
        return self.path in ROOT_PATHS

    @property
    def page_name(self) -> str:
        """Path without the leading slash and the ``.html`` suffix, e.g. ``agency-dashboard``."""
        name = self.path.lstrip('/')
        if name.endswith('.html'):
            name = name[:-len('.html')]
        return name.rstrip('/')

    def to_url(self) -> str:
        if not self.query:
            return self.path
        return f'{self.path}?{urlencode(self.query)}'

    def __str__(self) -> str:
        return self.to_url()
