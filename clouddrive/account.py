from . import api
from .client import CloudClient
from .errors import CloudDriveError, NetworkError, user_message
from .events import Notifier
from .models import StatusMessage
from .session_store import SessionStore
from .utils import get_logger

logger = get_logger("clouddrive.account")


class AccountFlows:
    """Credential-level flows that run before (or outside) a session."""

    def __init__(self, client: CloudClient, store: SessionStore, notifier: Notifier) -> None:
        self._client = client
        self._store = store
        self._notifier = notifier

    def _report(self, result: StatusMessage) -> StatusMessage:
        if result.ok:
            self._notifier.success(result.message)
        else:
            self._notifier.error(result.message)
        return result

    def _failure(self, exc: CloudDriveError, fallback: str, network_fallback: str) -> StatusMessage:
        logger.info("%s: %s", fallback, exc)
        if isinstance(exc, NetworkError):
            return self._report(StatusMessage(False, network_fallback))
        return self._report(StatusMessage(False, user_message(exc, fallback)))

    async def login(self, email: str, password: str) -> StatusMessage:
        try:
            identity, token = await api.login(self._client, email, password)
        except CloudDriveError as exc:
            return self._failure(exc, "Login failed", "Login failed. Is the server running?")
        # SessionStore emits the welcome notification.
        self._store.login(identity, token)
        return StatusMessage(True, f"Logged in as {identity.display_name}")

    async def register(self, first_name: str, last_name: str, email: str, password: str) -> StatusMessage:
        try:
            message = await api.register(self._client, first_name, last_name, email, password)
        except CloudDriveError as exc:
            return self._failure(exc, "Registration failed", "Registration failed")
        return self._report(StatusMessage(True, message or "Check your email to activate your account"))

    async def activate(self, activation_token: str) -> StatusMessage:
        try:
            message = await api.activate_account(self._client, activation_token)
        except CloudDriveError as exc:
            return self._failure(exc, "Activation failed", "Something went wrong. Please try again.")
        return self._report(StatusMessage(True, message or "Account activated"))

    async def forgot_password(self, email: str) -> StatusMessage:
        try:
            message = await api.forgot_password(self._client, email)
        except CloudDriveError as exc:
            return self._failure(exc, "Something went wrong", "Failed to send reset email")
        return self._report(StatusMessage(True, message or "Password reset email sent"))

    async def reset_password(self, reset_token: str, password: str) -> StatusMessage:
        try:
            message = await api.reset_password(self._client, reset_token, password)
        except CloudDriveError as exc:
            return self._failure(exc, "Password reset failed", "Password reset failed")
        return self._report(StatusMessage(True, message or "Password updated"))
