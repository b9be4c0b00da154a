import copy
import logging
from typing import Any, Dict, Iterable, Mapping, Tuple

logger = logging.getLogger(__name__)


class ConfigMerger:
    @staticmethod
    def merge(base: Mapping[str, Any], override: Mapping[str, Any], layer: str = 'override') -> Dict[str, Any]:
        """
        Return ``base`` with ``override`` laid on top; neither input is modified.

        Mappings merge key by key. Any other value, lists included, replaces the
        base value outright, and an explicit ``None`` clears it.
        """
        if not isinstance(override, Mapping):
            logger.warning(f"[{layer}] expected a mapping, got {type(override).__name__}; layer ignored")
            return copy.deepcopy(dict(base))

        merged = copy.deepcopy(dict(base))
        for key, value in override.items():
            current = merged.get(key)
            if isinstance(current, Mapping) and isinstance(value, Mapping):
                merged[key] = ConfigMerger.merge(current, value, f'{layer}.{key}')
            elif key not in merged or current != value:
                merged[key] = copy.deepcopy(value)
                logger.debug(f"[{layer}] set '{key}'")
        return merged


def merge_configs(base: Mapping[str, Any], layers: Iterable[Tuple[str, Mapping[str, Any]]]) -> Dict[str, Any]:
    """Apply labelled layers in order; later layers win."""
    result = copy.deepcopy(dict(base))
    for label, data in layers:
        result = ConfigMerger.merge(result, data, label)
    return result
