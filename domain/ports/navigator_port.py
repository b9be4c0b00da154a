# domain/ports/navigator_port.py

from typing import Protocol, runtime_checkable


@runtime_checkable
class NavigatorPort(Protocol):
    """Moves the page to another address (``window.location.href = ...`` in the browser)."""

    def redirect(self, href: str) -> None:
        ...
