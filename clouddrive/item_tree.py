"""Folder-scoped client cache of drive items."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from . import api
from .client import CloudClient
from .errors import CloudDriveError, InvalidStateError, user_message
from .events import Notifier, Publisher
from .models import DriveItem
from .utils import get_logger

logger = get_logger("clouddrive.tree")

ConfirmFn = Callable[[str], bool]


class ItemTree:
    """
    Navigable view over one owner's items.

    Only the active folder's listing is resident in ``items()``. Folders seen
    during this session are also kept in a separate index so that the
    breadcrumb trail can still resolve ancestors after the listing cache has
    been replaced by a deeper folder.

    The tree is bound to a session with ``open()`` and unbound with
    ``close()``; the credential handed to ``open()`` is used verbatim on every
    call.
    """

    def __init__(self, client: CloudClient, notifier: Notifier, confirm: Optional[ConfirmFn] = None) -> None:
        self._client = client
        self._notifier = notifier
        self._confirm = confirm
        self._owner_id: Optional[str] = None
        self._credential: Optional[str] = None
        self._root_folder_id: Optional[str] = None
        self._active_folder_id: Optional[str] = None
        self._items: Dict[str, DriveItem] = {}
        self._folders: Dict[str, DriveItem] = {}
        self._generation = 0
        self._changes: Publisher[ItemTree] = Publisher()

    # ----------------------------
    # Session binding
    # ----------------------------
    @property
    def is_open(self) -> bool:
        return self._owner_id is not None

    @property
    def owner_id(self) -> Optional[str]:
        return self._owner_id

    @property
    def credential(self) -> Optional[str]:
        return self._credential

    @property
    def root_folder_id(self) -> Optional[str]:
        return self._root_folder_id

    @property
    def active_folder_id(self) -> Optional[str]:
        return self._active_folder_id

    def open(self, owner_id: str, credential: str, root_folder_id: Optional[str] = None) -> None:
        self._generation += 1
        self._owner_id = owner_id
        self._credential = credential
        self._root_folder_id = root_folder_id
        self._active_folder_id = root_folder_id
        self._items = {}
        self._folders = {}
        self._changes.publish(self)

    def close(self) -> None:
        self._generation += 1
        self._owner_id = None
        self._credential = None
        self._root_folder_id = None
        self._active_folder_id = None
        self._items = {}
        self._folders = {}
        self._changes.publish(self)

    def subscribe(self, fn: Callable[["ItemTree"], None]) -> Callable[[], None]:
        return self._changes.subscribe(fn)

    def _require_open(self) -> None:
        if not self.is_open:
            raise InvalidStateError("Item tree is not bound to a session. Call open() first.")

    # ----------------------------
    # Queries
    # ----------------------------
    def items(self) -> List[DriveItem]:
        return list(self._items.values())

    def get(self, item_id: str) -> Optional[DriveItem]:
        return self._items.get(item_id) or self._folders.get(item_id)

    def current_children(self) -> List[DriveItem]:
        return [item for item in self._items.values() if item.parent_id == self._active_folder_id]

    def breadcrumb_trail(self) -> List[DriveItem]:
        """Folders from the outermost resolvable ancestor down to the active folder."""
        trail: List[DriveItem] = []
        seen = set()
        current = self._active_folder_id
        while current is not None and current not in seen:
            folder = self._items.get(current) or self._folders.get(current)
            if folder is None:
                break
            seen.add(current)
            trail.insert(0, folder)
            current = folder.parent_id
        return trail

    # ----------------------------
    # Mutations
    # ----------------------------
    def append(self, item: DriveItem) -> None:
        self._require_open()
        self._items[item.id] = item
        self._remember(item)
        self._changes.publish(self)

    def _remember(self, item: DriveItem) -> None:
        if item.is_folder:
            self._folders[item.id] = item

    def _forget(self, item_id: str) -> None:
        self._items.pop(item_id, None)
        self._folders.pop(item_id, None)

    async def enter_folder(self, folder_id: Optional[str]) -> bool:
        """
        Move the cursor to ``folder_id`` and replace the cache with its listing.

        The cursor moves immediately. The listing is applied only if no other
        navigation happened while it was in flight; otherwise it is dropped.
        """
        self._require_open()
        self._generation += 1
        generation = self._generation
        self._active_folder_id = folder_id
        self._changes.publish(self)

        try:
            items = await api.list_items(self._client, self._credential, self._owner_id, folder_id)
        except CloudDriveError as exc:
            if generation != self._generation:
                logger.debug("Dropping failed listing for stale folder %s", folder_id)
                return False
            logger.warning("Listing folder %s failed: %s", folder_id, exc)
            self._notifier.error(user_message(exc, "Failed to load files"))
            return False

        if generation != self._generation:
            logger.debug("Dropping stale listing for folder %s", folder_id)
            return False

        self._items = {item.id: item for item in items}
        for item in items:
            self._remember(item)
        self._changes.publish(self)
        return True

    async def refresh(self) -> bool:
        return await self.enter_folder(self._active_folder_id)

    async def create_folder(self, name: Optional[str], parent_id: Optional[str]) -> Optional[DriveItem]:
        self._require_open()
        if not name or not name.strip():
            return None
        try:
            item = await api.create_folder(self._client, self._credential, self._owner_id, name.strip(), parent_id)
        except CloudDriveError as exc:
            logger.warning("Creating folder %r failed: %s", name, exc)
            self._notifier.error(user_message(exc, "Could not create folder"))
            return None
        self.append(item)
        self._notifier.success("Folder created successfully")
        return item

    async def delete_item(self, item_id: str) -> bool:
        """
        Delete one item after explicit confirmation.

        Only the item itself leaves the cache; descendants are left to the
        server.
        """
        self._require_open()
        known = self.get(item_id)
        label = known.name if known is not None else item_id
        if self._confirm is None or not self._confirm(f"Delete {label}?"):
            return False
        try:
            await api.delete_item(self._client, self._credential, item_id)
        except CloudDriveError as exc:
            logger.warning("Deleting %s failed: %s", item_id, exc)
            self._notifier.error(user_message(exc, "Could not delete item"))
            return False
        self._forget(item_id)
        self._changes.publish(self)
        self._notifier.success("Item deleted")
        return True

    async def resolve_view_url(self, item: DriveItem) -> Optional[str]:
        """
        Return a URL the caller can open for ``item``.

        A signed URL is preferred; if the server cannot issue one the raw
        stored locator is returned instead.
        """
        self._require_open()
        if item.is_folder or not item.content_ref:
            self._notifier.error("File URL not available")
            return None
        try:
            return await api.get_view_url(self._client, self._credential, item.id)
        except CloudDriveError as exc:
            logger.warning("Signed URL for %s unavailable, falling back to stored locator: %s", item.id, exc)
            return item.content_ref
