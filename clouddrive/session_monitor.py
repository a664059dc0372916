import asyncio
from typing import Optional

from . import api
from .client import CloudClient
from .errors import AuthError, CloudDriveError, NetworkError, NotFoundError
from .models import Session
from .session_store import SessionStore
from .utils import get_logger

logger = get_logger("clouddrive.monitor")


class SessionMonitor:
    """
    Periodic whoami check that forces logout once the server stops
    recognising the credential (revoked session, deleted account).

    The recurring task exists only while the session has an identity. It is
    started on every authenticated transition and cancelled on every
    unauthenticated one; starting always cancels the previous task first.
    """

    def __init__(self, client: CloudClient, store: SessionStore, interval: float = 2.0) -> None:
        self._client = client
        self._store = store
        self.interval = interval
        self._task: Optional[asyncio.Task] = None
        self._unsubscribe = store.subscribe(self._on_session)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _on_session(self, session: Session) -> None:
        if session.identity is not None:
            self.start()
        else:
            self.stop()

    def start(self) -> None:
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug("Session monitor started (interval=%.2fs)", self.interval)

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.debug("Session monitor stopped")

    def close(self) -> None:
        self._unsubscribe()
        self.stop()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if self._store.initializing or self._store.session.identity is None:
                return
            await self.check_once()

    async def check_once(self) -> None:
        session = self._store.session
        token = session.credential
        if session.identity is None or not token:
            return
        try:
            await api.whoami(self._client, token)
        except (AuthError, NotFoundError) as exc:
            if self._store.session.credential != token:
                logger.debug("Discarding session check for a replaced credential")
                return
            logger.info("Session invalidated by server: %s", exc)
            self._store.expire()
        except NetworkError as exc:
            # Connectivity blips must not log the user out.
            logger.debug("Session check failed: %s", exc)
        except CloudDriveError as exc:
            logger.debug("Session check returned %s; keeping session", exc)
