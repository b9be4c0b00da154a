from __future__ import annotations
import copy
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Final, Optional, Sequence
import yaml

from configs.config_utils import ConfigMerger, merge_configs

__all__: Sequence[str] = ('ConfigLoader', 'DEFAULT_CONFIG', 'load_yaml')
logger = logging.getLogger(__name__)

_ENV_DEFAULT: Final[str] = 'default'

DEFAULT_CONFIG: Dict[str, Any] = {
    'env': _ENV_DEFAULT,
    'session': {
        'subscription_timeout_seconds': 300,
        'demo_storage_key': 'demoAuth',
        'demo_max_age_hours': 24,
        'allow_dev_sessions': True,
    },
    'bootstrap': {
        'component_timeout_seconds': 120,
        'init_order': ['session_manager', 'access_guard', 'demo_login'],
        'manifest': 'configs/manifests/client_manifest.yaml',
    },
    'access': {
        'root_path': '/',
        'default_role': 'candidate',
        'role_routes': {'candidate': ['dashboard']},
        'public_paths': ['/', '/index.html'],
    },
    'logging': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    },
}

_RE_ENV_DEFAULT: Final[re.Pattern[str]] = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*):?-(.*?)\}')

def _interpolate_env(value: str) -> str:
    if not isinstance(value, str):
        return value

    def _repl(match: re.Match[str]) -> str:
        var, default = (match.group(1), match.group(2))
        return os.getenv(var) or default

    before = value
    value = _RE_ENV_DEFAULT.sub(_repl, value)
    value = os.path.expandvars(value)

    if before != value:
        logger.debug("Env expand: '%s' -> '%s'", before, value)
    elif '${' in before:
        logger.warning("Unresolved env var in '%s'", before)

    return value

def _expand_tree(node: Any) -> Any:
    if isinstance(node, dict):
        return {k: _expand_tree(v) for k, v in node.items()}
    if isinstance(node, list):
        return [_expand_tree(v) for v in node]
    if isinstance(node, str):
        return _interpolate_env(node)
    return node


def load_yaml(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding='utf-8')
        if path.suffix.lower() == '.json':
            return json.loads(text) or {}

        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            logger.warning('%s does not contain a top-level mapping - ignored', path)
            return {}
        return data

    except FileNotFoundError:
        logger.debug('Config file not found: %s', path)
        return {}
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.error('Failed to read %s: %s', path, exc, exc_info=True)
        return {}


class ConfigLoader:
    """
    Layers configuration: built-in defaults, then configs/default/global_app_config.yaml,
    then configs/<env>/global_app_config.yaml, then an explicit override mapping.
    ``${VAR:-default}`` placeholders are expanded after merging.
    """

    def __init__(self, package_root: Optional[Path]=None) -> None:
        self._package_root: Path = package_root if package_root is not None else Path(__file__).resolve().parents[1]

    @property
    def package_root(self) -> Path:
        return self._package_root

    def load_global_config(self, env: Optional[str]=None, overrides: Optional[Dict[str, Any]]=None) -> Dict[str, Any]:
        env = env or _ENV_DEFAULT
        logger.info('Loading global configuration for env=%s', env)
        cfg: Dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        cfg['env'] = env

        cfg = self._load_global_app_configs(cfg, env)
        if overrides:
            cfg = ConfigMerger.merge(cfg, overrides, 'overrides')
            logger.info('Merged provided configuration overrides: %s', sorted(overrides))

        cfg = _expand_tree(cfg)
        self._validate_required_config(cfg, env)

        logger.info("Global configuration loaded for env='%s'", env)
        logger.debug('Resolved global config keys: %s', list(cfg))
        return cfg

    def resolve_path(self, relative: str) -> Path:
        path = Path(relative)
        return path if path.is_absolute() else self._package_root / path

    def _load_global_app_configs(self, cfg: Dict[str, Any], env: str) -> Dict[str, Any]:
        files = [('default', self._package_root / 'configs' / 'default' / 'global_app_config.yaml')]
        if env != _ENV_DEFAULT:
            files.append((env, self._package_root / 'configs' / env / 'global_app_config.yaml'))

        layers = []
        for label, path in files:
            data = load_yaml(path)
            if data:
                layers.append((label, data))
                logger.info('Config layer %s: %s', label, path)
            elif label == env and env != _ENV_DEFAULT:
                logger.warning('No configuration for env=%s at %s', env, path)
        return merge_configs(cfg, layers)

    def _validate_required_config(self, cfg: Dict[str, Any], env: str) -> None:
        from bootstrap.exceptions import ConfigurationError
        access = cfg.get('access')
        if not isinstance(access, dict) or not access.get('role_routes'):
            raise ConfigurationError(f"access.role_routes missing for env='{env}'. Present keys: {list(cfg)}")
        order = cfg.get('bootstrap', {}).get('init_order')
        if not isinstance(order, list):
            raise ConfigurationError(f"bootstrap.init_order must be a list for env='{env}', got {type(order).__name__}")
