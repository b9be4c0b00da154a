# domain/ports/identity_provider_port.py

"""Identity provider interface (session issuance lives outside the client core)."""

from typing import Callable, Optional, Protocol, runtime_checkable

from domain.session import Identity

AuthStateCallback = Callable[[Optional[Identity]], None]


@runtime_checkable
class IdentityProviderPort(Protocol):
    """
    Remote identity service.

    Every call has two observable outcomes: an identity, or a failure/absence.
    """

    @property
    def current_user(self) -> Optional[Identity]:
        """The provider's live view of the signed-in identity."""
        ...

    async def sign_in_anonymously(self) -> Identity:
        """
        Create an anonymous identity and make it current.

        Raises:
            Exception: when the provider refuses or is unreachable.
        """
        ...

    def on_auth_state_changed(self, callback: AuthStateCallback) -> Callable[[], None]:
        """
        Register a state-change callback.

        The provider calls ``callback`` with the current identity (or None)
        soon after registration and again on every change.

        Returns:
            A function that removes the callback.
        """
        ...

    async def sign_out(self) -> None:
        ...
