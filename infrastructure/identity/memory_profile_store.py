# infrastructure/identity/memory_profile_store.py
from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Dict, Optional

from domain.ports.profile_store_port import ProfileStorePort

logger = logging.getLogger(__name__)


class InMemoryProfileStore(ProfileStorePort):
    """Profile documents in a dict. ``fail_with`` makes every read raise, for degraded-network tests."""

    def __init__(self, profiles: Optional[Dict[str, Dict[str, Any]]] = None, latency: float = 0.0,
                 fail_with: Optional[Exception] = None) -> None:
        self._profiles: Dict[str, Dict[str, Any]] = copy.deepcopy(profiles or {})
        self._latency = latency
        self.fail_with = fail_with
        self.read_count = 0

    async def get_profile(self, uid: str) -> Optional[Dict[str, Any]]:
        self.read_count += 1
        await asyncio.sleep(self._latency)
        if self.fail_with is not None:
            raise self.fail_with
        profile = self._profiles.get(uid)
        return copy.deepcopy(profile) if profile is not None else None

    async def set_profile(self, uid: str, data: Dict[str, Any]) -> None:
        await asyncio.sleep(self._latency)
        merged = {**self._profiles.get(uid, {}), **copy.deepcopy(data)}
        self._profiles[uid] = merged
        logger.debug(f"InMemoryProfileStore: stored profile for '{uid}' ({sorted(merged)})")
