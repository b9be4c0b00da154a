from .errors import AccessGuardError, ProfileFetchError, UnknownRoleError
from .role_resolver import ResolvedRole, RoleResolver
from .route_table import RoleRouteTable
from .service import AccessDecision, AccessGuard

__all__ = [
    'AccessDecision',
    'AccessGuard',
    'AccessGuardError',
    'ProfileFetchError',
    'ResolvedRole',
    'RoleResolver',
    'RoleRouteTable',
    'UnknownRoleError',
]
