# components/demo_login/service.py
import dataclasses
import logging
from typing import Dict, List, Optional

from components.access_guard.errors import UnknownRoleError
from components.access_guard.route_table import RoleRouteTable
from components.session_manager.service import SessionManager
from configs.app_config import DemoAccount
from core.base_component import BaseComponent
from domain.page import PageLocation
from domain.ports.navigator_port import NavigatorPort
from domain.ports.profile_store_port import ProfileStorePort

logger = logging.getLogger(__name__)


class DemoLoginService(BaseComponent):
    """
    One-click demo sign-in for the roles that have a configured demo account.

    Signs in anonymously, stores a demo profile carrying the role, caches the
    demo session and sends the visitor to the role's dashboard with
    ``demo=true&role=<role>``.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        profile_store: ProfileStorePort,
        table: RoleRouteTable,
        accounts: Dict[str, DemoAccount],
        navigator: Optional[NavigatorPort] = None,
    ) -> None:
        super().__init__('demo_login', {'roles': sorted(accounts)})
        self.session_manager = session_manager
        self.profile_store = profile_store
        self.table = table
        self.accounts = {table.require(role): account for role, account in accounts.items()}
        self.navigator = navigator

    async def _initialize_impl(self) -> None:
        missing = [role for role in self.accounts if self.table.dashboard_for(role) is None]
        if missing:
            logger.warning(f'[{self.component_name}] no dashboard configured for demo roles {missing}')
        logger.info(f'[{self.component_name}] demo roles available: {self.available_roles()}')

    def available_roles(self) -> List[str]:
        return [role for role in self.table.roles if role in self.accounts]

    async def handle_demo_login(self, role: str, navigate: bool = True) -> str:
        """Sign in as the demo account for ``role`` and return the dashboard URL."""
        canonical = self.table.normalize(role)
        if canonical is None or canonical not in self.accounts:
            raise UnknownRoleError(role, self.accounts, component_name=self.component_name)
        account = self.accounts[canonical]

        anonymous = await self.session_manager.provider.sign_in_anonymously()
        identity = dataclasses.replace(anonymous, email=account.email, display_name=account.display_name)
        logger.info(f'[{self.component_name}] demo sign-in as {canonical} ({identity.uid})')

        try:
            await self.profile_store.set_profile(identity.uid, {
                'uid': identity.uid,
                'role': canonical,
                'email': account.email,
                'name': account.display_name,
                'is_demo_account': True,
            })
        except Exception as e:
            logger.error(f'[{self.component_name}] could not store demo profile for {identity.uid}: {e}')

        self.session_manager.remember_demo_session(identity, role=canonical)

        dashboard = self.table.dashboard_for(canonical) or self.table.root_path
        url = PageLocation(path=dashboard, query={'demo': 'true', 'role': canonical}).to_url()
        if navigate and self.navigator is not None:
            self.navigator.redirect(url)
        return url
