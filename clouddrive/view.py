from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from .item_tree import ItemTree
from .models import DriveItem, ItemKind, Session, UploadStatus

ROOT_LABEL = "My Drive"


def format_size(num: Optional[int]) -> str:
    if not num:
        return "--"
    kb = num / 1024
    if kb < 1024:
        return f"{kb:.1f} KB"
    return f"{kb / 1024:.1f} MB"


def format_date(ts: Optional[datetime]) -> str:
    if ts is None:
        return "-"
    return ts.strftime("%Y-%m-%d")


@dataclass(frozen=True)
class ItemRow:
    id: str
    name: str
    kind: ItemKind
    size_label: str
    created_label: str

    @property
    def is_folder(self) -> bool:
        return self.kind is ItemKind.FOLDER


@dataclass(frozen=True)
class DashboardView:
    user_label: str
    email: Optional[str]
    breadcrumbs: Tuple[Tuple[Optional[str], str], ...]
    rows: Tuple[ItemRow, ...]
    upload: Optional[UploadStatus] = None

    @property
    def empty(self) -> bool:
        return not self.rows


def item_row(item: DriveItem) -> ItemRow:
    return ItemRow(
        id=item.id,
        name=item.name,
        kind=item.kind,
        size_label="--" if item.is_folder else format_size(item.size),
        created_label=format_date(item.created_at),
    )


def breadcrumb_labels(tree: ItemTree) -> Tuple[Tuple[Optional[str], str], ...]:
    crumbs: List[Tuple[Optional[str], str]] = [(tree.root_folder_id, ROOT_LABEL)]
    for folder in tree.breadcrumb_trail():
        if folder.id == tree.root_folder_id:
            continue
        crumbs.append((folder.id, folder.name))
    return tuple(crumbs)


def build_dashboard(session: Session, tree: ItemTree, upload: Optional[UploadStatus] = None) -> DashboardView:
    identity = session.identity
    return DashboardView(
        user_label=identity.display_name if identity is not None else "",
        email=identity.email if identity is not None else None,
        breadcrumbs=breadcrumb_labels(tree),
        rows=tuple(item_row(item) for item in tree.current_children()),
        upload=upload if upload is not None and upload.visible else None,
    )


def render_rows(view: DashboardView) -> List[str]:
    lines = []
    for row in view.rows:
        marker = "d" if row.is_folder else "-"
        lines.append(f"{marker}\t{row.id}\t{row.size_label}\t{row.created_label}\t{row.name}")
    return lines
