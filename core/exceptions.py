# core/exceptions.py
from typing import Optional


class ClientCoreError(RuntimeError):
    """
    Base exception for every error raised by the client core.

    Carries the name of the component involved, if any, so that the page
    bootstrap boundary can report which feature degraded.
    """

    def __init__(self, message: str, component_name: Optional[str] = None):
        super().__init__(message)
        self.component_name = component_name

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.component_name:
            return f"{base_msg} (component={self.component_name})"
        return base_msg
