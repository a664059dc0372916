from typing import Optional

import httpx

from .account import AccountFlows
from .client import CloudClient
from .config import Settings
from .events import Notifier
from .item_tree import ConfirmFn, ItemTree
from .models import Session
from .session_monitor import SessionMonitor
from .session_store import CredentialStore, SessionStore
from .upload import UploadPipeline
from .utils import get_logger
from .view import DashboardView, build_dashboard

logger = get_logger("clouddrive.app")


class DriveApp:
    """
    Wires the client components together.

    The session gates everything else: the item tree is bound on every
    authenticated transition and unbound (with any upload cancelled) on every
    unauthenticated one.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        confirm: Optional[ConfirmFn] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.client = CloudClient(
            base_url=self.settings.base_url,
            timeout=self.settings.timeout,
            transport=transport,
            http_log_path=self.settings.http_log_path,
        )
        self.notifier = Notifier()
        self.credentials = CredentialStore(self.settings.session_path)
        self.session = SessionStore(self.client, self.credentials, self.notifier)
        self.monitor = SessionMonitor(self.client, self.session, interval=self.settings.session_check_interval)
        self.tree = ItemTree(self.client, self.notifier, confirm=confirm)
        self.uploads = UploadPipeline(
            self.client,
            self.tree,
            self.notifier,
            tick_interval=self.settings.upload_tick_interval,
            step=self.settings.upload_step,
            threshold=self.settings.upload_threshold,
            clear_delay=self.settings.upload_clear_delay,
        )
        self.account = AccountFlows(self.client, self.session, self.notifier)
        self._unsubscribe = self.session.subscribe(self._on_session)

    def _on_session(self, session: Session) -> None:
        if session.authenticated:
            identity = session.identity
            logger.debug("Binding item tree to owner %s", identity.id)
            self.tree.open(identity.id, session.credential, identity.root_folder_id)
        else:
            self.uploads.cancel()
            self.tree.close()

    async def start(self) -> Session:
        return await self.session.hydrate()

    async def home(self) -> bool:
        return await self.tree.enter_folder(self.tree.root_folder_id)

    def dashboard(self) -> DashboardView:
        return build_dashboard(self.session.session, self.tree, self.uploads.status())

    async def aclose(self) -> None:
        self._unsubscribe()
        self.monitor.close()
        self.uploads.cancel()
        await self.client.aclose()

    async def __aenter__(self) -> "DriveApp":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
