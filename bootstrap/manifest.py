"""
Component manifest
──────────────────
* Declares which service slots the page bootstrap may auto-register
* Carries the conventional dependency list of each component
* Parsed from YAML and validated with pydantic
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from bootstrap.exceptions import ManifestProcessingError
from configs.config_loader import load_yaml

__all__ = ['ComponentManifest', 'ManifestEntry', 'load_manifest']
logger = logging.getLogger(__name__)


class ManifestEntry(BaseModel):
    model_config = ConfigDict(extra='forbid', frozen=True)

    name: str = Field(..., min_length=1)
    slot: Optional[str] = Field(None, description='Service slot holding the instance; defaults to the component name.')
    dependencies: List[str] = Field(default_factory=list)
    timeout_seconds: Optional[float] = Field(None, gt=0)
    enabled: bool = True

    @property
    def slot_name(self) -> str:
        return self.slot or self.name

    @field_validator('dependencies')
    @classmethod
    def _no_duplicates(cls, v: List[str]) -> List[str]:
        if len(set(v)) != len(v):
            raise ValueError(f'duplicate dependencies: {v}')
        return v

    @model_validator(mode='after')
    def _not_self_dependent(self) -> 'ManifestEntry':
        if self.name in self.dependencies:
            raise ValueError(f"component '{self.name}' lists itself as a dependency")
        return self


class ComponentManifest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    version: int = 1
    components: List[ManifestEntry] = Field(default_factory=list)

    @model_validator(mode='after')
    def _unique_names(self) -> 'ComponentManifest':
        names = [c.name for c in self.components]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f'duplicate component names: {dupes}')
        return self

    def enabled_entries(self) -> List[ManifestEntry]:
        return [c for c in self.components if c.enabled]

    def get(self, name: str) -> Optional[ManifestEntry]:
        for entry in self.components:
            if entry.name == name:
                return entry
        return None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], source: Optional[str] = None) -> 'ComponentManifest':
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
            raise ManifestProcessingError('Component manifest failed validation', manifest_path=source, schema_errors=errors) from e


def load_manifest(path: Path) -> ComponentManifest:
    if not path.exists():
        raise ManifestProcessingError('Component manifest not found', manifest_path=str(path))
    data: Dict[str, Any] = load_yaml(path)
    if not data:
        raise ManifestProcessingError('Component manifest is empty or unreadable', manifest_path=str(path))
    manifest = ComponentManifest.from_mapping(data, source=str(path))
    logger.info('Loaded component manifest %s (%d entries)', path, len(manifest.components))
    return manifest
