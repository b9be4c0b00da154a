# bootstrap/__init__.py
from __future__ import annotations

from .exceptions import *
from .bootstrap import ClientRuntime, bootstrap_client, load_config
from .manifest import ComponentManifest, ManifestEntry, load_manifest
from .orchestrator import BootstrapOrchestrator
from .service_slots import ServiceSlots

__version__ = '1.0.0'
__description__ = 'Client bootstrap and access control core'

__all__ = [
    'bootstrap_client', 'load_config', 'ClientRuntime',
    'BootstrapOrchestrator', 'ServiceSlots',
    'ComponentManifest', 'ManifestEntry', 'load_manifest',
    'BootstrapError', 'ComponentTimeoutError', 'ConfigurationError',
    'DependencyCycleError', 'ManifestProcessingError',
    '__version__', '__description__',
]
