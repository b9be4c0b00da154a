# domain/ports/profile_store_port.py

"""User profile documents, keyed by identity id."""

from typing import Any, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class ProfileStorePort(Protocol):

    async def get_profile(self, uid: str) -> Optional[Dict[str, Any]]:
        """Return the stored profile document, or None if there is none."""
        ...

    async def set_profile(self, uid: str, data: Dict[str, Any]) -> None:
        ...
