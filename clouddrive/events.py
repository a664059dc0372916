from typing import Any, Callable, Generic, List, TypeVar

from .models import Notification, NotificationLevel
from .utils import get_logger

T = TypeVar("T")

logger = get_logger("clouddrive.events")


class Publisher(Generic[T]):
    """Synchronous fan-out of values to subscribed callables."""

    def __init__(self) -> None:
        self._subscribers: List[Callable[[T], Any]] = []

    def subscribe(self, fn: Callable[[T], Any]) -> Callable[[], None]:
        self._subscribers.append(fn)

        def unsubscribe() -> None:
            if fn in self._subscribers:
                self._subscribers.remove(fn)

        return unsubscribe

    def publish(self, value: T) -> None:
        for fn in list(self._subscribers):
            try:
                fn(value)
            except Exception:
                logger.exception("Subscriber %r failed", fn)


class Notifier(Publisher[Notification]):
    def success(self, message: str) -> None:
        self.publish(Notification(NotificationLevel.SUCCESS, message))

    def error(self, message: str) -> None:
        self.publish(Notification(NotificationLevel.ERROR, message))

    def info(self, message: str) -> None:
        self.publish(Notification(NotificationLevel.INFO, message))
