import asyncio
import json
import os
from pathlib import Path
from typing import Callable, Optional

from . import api
from .client import CloudClient
from .config import DEFAULT_SESSION_PATH
from .errors import CloudDriveError, InvalidArgumentError, InvalidStateError
from .events import Notifier, Publisher
from .models import Identity, Session
from .utils import get_logger

TOKEN_KEY = "drive_token"

logger = get_logger("clouddrive.session")


class CredentialStore:
    """Durable storage for the bearer credential: one key in a JSON file."""

    def __init__(self, path: str = DEFAULT_SESSION_PATH) -> None:
        self.path = path

    def load(self) -> Optional[str]:
        session_path = Path(self.path)
        if not session_path.exists():
            return None
        try:
            data = json.loads(session_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return None
        if not isinstance(data, dict):
            return None
        token = data.get(TOKEN_KEY)
        return str(token) if token else None

    def save(self, token: str) -> None:
        session_path = Path(self.path)
        session_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {TOKEN_KEY: token}
        session_path.write_text(json.dumps(payload, indent=2, ensure_ascii=True) + "\n", encoding="utf-8")
        os.chmod(session_path, 0o600)

    def clear(self) -> None:
        try:
            Path(self.path).unlink()
        except FileNotFoundError:
            pass


class SessionStore:
    """
    Single owner of "who is logged in, with what credential".

    Readers get immutable ``Session`` snapshots through ``session`` or
    ``subscribe``; only this class (and ``SessionMonitor`` through ``expire``)
    changes the state.
    """

    def __init__(self, client: CloudClient, credentials: CredentialStore, notifier: Notifier) -> None:
        self._client = client
        self._credentials = credentials
        self._notifier = notifier
        self._state = Session(initializing=True)
        self._changes: Publisher[Session] = Publisher()
        self._hydrate_started = False
        self._ready = asyncio.Event()

    @property
    def session(self) -> Session:
        if self._state.initializing:
            raise InvalidStateError("Session is still initializing. Await hydrate() first.")
        return self._state

    @property
    def initializing(self) -> bool:
        return self._state.initializing

    def subscribe(self, fn: Callable[[Session], None]) -> Callable[[], None]:
        return self._changes.subscribe(fn)

    async def wait_ready(self) -> Session:
        await self._ready.wait()
        return self._state

    async def hydrate(self) -> Session:
        """
        Resolve the persisted credential (if any) into an identity.

        Runs once per process. Any failure clears the stored credential and
        leaves the session unauthenticated; nothing is raised or notified.
        """
        if self._hydrate_started:
            raise InvalidStateError("hydrate() already ran for this session store")
        self._hydrate_started = True

        identity: Optional[Identity] = None
        token = self._credentials.load()
        if token:
            try:
                identity = await api.whoami(self._client, token)
            except CloudDriveError as exc:
                logger.info("Stored session rejected: %s", exc)
                self._credentials.clear()
        else:
            self._credentials.clear()

        if identity is not None:
            self._set(Session(identity=identity, credential=token))
        else:
            self._set(Session())
        self._ready.set()
        return self._state

    def login(self, identity: Identity, credential: str) -> None:
        if identity is None or not credential:
            raise InvalidArgumentError("login requires both an identity and a credential")
        self._credentials.save(credential)
        self._set(Session(identity=identity, credential=credential))
        self._notifier.success(f"Welcome back, {identity.first_name or identity.display_name}!")

    async def logout(self) -> None:
        identity = self._state.identity
        if identity is not None:
            try:
                await api.logout(self._client, identity.id)
            except CloudDriveError as exc:
                logger.warning("Logout failed on backend: %s", exc)
        self._credentials.clear()
        self._set(Session())
        self._notifier.success("Logged out successfully")

    def expire(self, message: str = "Session expired or user not found") -> None:
        """Force the session to unauthenticated after the server invalidated it."""
        if self._state.identity is None:
            return
        self._credentials.clear()
        self._set(Session())
        self._notifier.error(message)

    def _set(self, session: Session) -> None:
        previous = self._state
        self._state = session
        if previous != session:
            self._changes.publish(session)
