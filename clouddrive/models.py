import mimetypes
import os
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Identity:
    id: str
    display_name: str
    is_active: bool = True
    root_folder_id: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None


@dataclass(frozen=True)
class Session:
    identity: Optional[Identity] = None
    credential: Optional[str] = None
    initializing: bool = False

    @property
    def authenticated(self) -> bool:
        return self.identity is not None and self.credential is not None


class ItemKind(str, Enum):
    FOLDER = "folder"
    IMAGE = "image"
    PDF = "pdf"
    DOC = "doc"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ItemKind":
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class DriveItem:
    id: str
    name: str
    kind: ItemKind
    parent_id: Optional[str]
    owner_id: str
    size: Optional[int] = None
    mime_type: Optional[str] = None
    created_at: Optional[datetime] = None
    content_ref: Optional[str] = None

    @property
    def is_folder(self) -> bool:
        return self.kind is ItemKind.FOLDER


@dataclass(frozen=True)
class UploadPayload:
    name: str
    content: bytes
    mime_type: Optional[str] = None

    @classmethod
    def from_path(cls, path: str, name: Optional[str] = None) -> "UploadPayload":
        filename = name or os.path.basename(path)
        with open(path, "rb") as handle:
            content = handle.read()
        mime_type, _ = mimetypes.guess_type(filename)
        return cls(name=filename, content=content, mime_type=mime_type)

    @property
    def size(self) -> int:
        return len(self.content)


class UploadPhase(str, Enum):
    IDLE = "idle"
    TICKING = "ticking"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class UploadJob:
    payload: UploadPayload
    target_parent_id: Optional[str]
    progress: int = 0
    phase: UploadPhase = UploadPhase.TICKING


@dataclass(frozen=True)
class UploadStatus:
    phase: UploadPhase
    progress: int
    name: Optional[str] = None

    @property
    def visible(self) -> bool:
        return self.phase is not UploadPhase.IDLE or self.progress > 0


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    message: str


@dataclass(frozen=True)
class StatusMessage:
    ok: bool
    message: str
