# components/session_manager/errors.py
from typing import Optional

from core.exceptions import ClientCoreError


class SessionManagerError(ClientCoreError):
    def __init__(self, message: str, component_name: Optional[str] = 'session_manager'):
        super().__init__(message, component_name=component_name)


class ProviderUnavailableError(SessionManagerError):
    """The identity provider was not supplied, so no session can ever be obtained."""
    pass


class SubscriptionSettledTwiceError(SessionManagerError):
    def __init__(self, subscription_id: str, current_state: str, attempted_state: str):
        super().__init__(
            f"Subscription '{subscription_id}' is already {current_state}; refusing to settle it as {attempted_state}"
        )
        self.subscription_id = subscription_id
        self.current_state = current_state
        self.attempted_state = attempted_state


class SessionNotReadyError(SessionManagerError):
    """Raised when session state is requested before ``initialize`` has completed."""
    pass
