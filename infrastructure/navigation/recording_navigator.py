# infrastructure/navigation/recording_navigator.py
import logging
from typing import List, Optional

from domain.ports.navigator_port import NavigatorPort

logger = logging.getLogger(__name__)


class RecordingNavigator(NavigatorPort):
    """Records redirects instead of performing them (tests and the command-line runner)."""

    def __init__(self) -> None:
        self.redirects: List[str] = []

    def redirect(self, href: str) -> None:
        logger.info(f'Redirecting to {href}')
        self.redirects.append(href)

    @property
    def last_redirect(self) -> Optional[str]:
        return self.redirects[-1] if self.redirects else None
