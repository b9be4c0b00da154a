# components/access_guard/errors.py
from typing import Iterable, Optional

from core.exceptions import ClientCoreError


class AccessGuardError(ClientCoreError):
    def __init__(self, message: str, component_name: Optional[str] = 'access_guard'):
        super().__init__(message, component_name=component_name)


class ProfileFetchError(AccessGuardError):
    """The profile document for an identity could not be read. Logged, never fatal."""

    def __init__(self, uid: str, cause: BaseException):
        super().__init__(f"Could not load profile for '{uid}': {cause}")
        self.uid = uid


class UnknownRoleError(AccessGuardError, ValueError):
    def __init__(self, role: Optional[str], known_roles: Iterable[str], component_name: Optional[str] = 'access_guard'):
        self.role = role
        self.known_roles = sorted(known_roles)
        super().__init__(f"Unknown role {role!r}; expected one of {self.known_roles}", component_name=component_name)
