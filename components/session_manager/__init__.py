from .errors import ProviderUnavailableError, SessionNotReadyError, SubscriptionSettledTwiceError
from .service import SessionManager
from .subscription import Subscription, SubscriptionState

__all__ = [
    'ProviderUnavailableError',
    'SessionManager',
    'SessionNotReadyError',
    'Subscription',
    'SubscriptionSettledTwiceError',
    'SubscriptionState',
]
