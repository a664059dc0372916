from typing import Any, Dict, List, Optional, Tuple

import httpx

from endpoints import AUTH, DRIVE, NO_PARENT
from .client import CloudClient
from .errors import ApiError
from .models import DriveItem, Identity, ItemKind, UploadPayload
from .utils import parse_timestamp


def _json_or_raise(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError as exc:
        raise ApiError(f"Non-JSON response: {resp.text[:200]}", cause=exc) from exc


def _object_or_raise(resp: httpx.Response) -> Dict[str, Any]:
    payload = _json_or_raise(resp)
    if not isinstance(payload, dict):
        raise ApiError(f"Unexpected response: {payload!r}")
    return payload


def _row_id(row: Dict[str, Any]) -> str:
    value = row.get("id") or row.get("_id")
    if not value:
        raise ApiError(f"Record without id: {row!r}")
    return str(value)


def _optional_id(value: Any) -> Optional[str]:
    if value in (None, "", NO_PARENT):
        return None
    return str(value)


def identity_from_row(row: Dict[str, Any]) -> Identity:
    first = row.get("firstName") or ""
    last = row.get("lastName") or ""
    display_name = f"{first} {last}".strip() or row.get("username") or row.get("email") or ""
    return Identity(
        id=_row_id(row),
        display_name=display_name,
        is_active=bool(row.get("isActive", True)),
        root_folder_id=_optional_id(row.get("parentId")),
        email=row.get("username") or row.get("email"),
        first_name=first or None,
    )


def item_from_row(row: Dict[str, Any]) -> DriveItem:
    if not isinstance(row, dict):
        raise ApiError(f"Unexpected item: {row!r}")
    try:
        size = int(row["size"]) if row.get("size") not in (None, "") else None
    except (TypeError, ValueError):
        size = None
    return DriveItem(
        id=_row_id(row),
        name=row.get("name") or "",
        kind=ItemKind.parse(row.get("type")),
        parent_id=_optional_id(row.get("parentId")),
        owner_id=str(row.get("ownerId") or ""),
        size=size,
        mime_type=row.get("mimeType"),
        created_at=parse_timestamp(row.get("createdAt")),
        content_ref=row.get("s3Url") or None,
    )


async def whoami(client: CloudClient, token: str) -> Identity:
    resp = await client.request(AUTH["me"]["method"], AUTH["me"]["path"], token=token)
    payload = _object_or_raise(resp)
    row = payload.get("result")
    if not isinstance(row, dict):
        raise ApiError("Missing identity in response")
    return identity_from_row(row)


async def login(client: CloudClient, email: str, password: str) -> Tuple[Identity, str]:
    body = {"email": email, "password": password}
    resp = await client.request(AUTH["login"]["method"], AUTH["login"]["path"], json=body)
    payload = _object_or_raise(resp)
    row = payload.get("result")
    token = payload.get("token")
    if not isinstance(row, dict) or not token:
        raise ApiError("Missing identity or token in login response")
    return identity_from_row(row), str(token)


async def register(client: CloudClient, first_name: str, last_name: str, email: str, password: str) -> str:
    body = {"firstName": first_name, "lastName": last_name, "email": email, "password": password}
    resp = await client.request(AUTH["register"]["method"], AUTH["register"]["path"], json=body)
    return _object_or_raise(resp).get("message", "")


async def logout(client: CloudClient, user_id: str) -> None:
    await client.request(AUTH["logout"]["method"], AUTH["logout"]["path"], json={"userId": user_id})


async def activate_account(client: CloudClient, activation_token: str) -> str:
    body = {"token": activation_token}
    resp = await client.request(AUTH["activate"]["method"], AUTH["activate"]["path"], json=body)
    return _object_or_raise(resp).get("message", "")


async def forgot_password(client: CloudClient, email: str) -> str:
    resp = await client.request(
        AUTH["forgot_password"]["method"], AUTH["forgot_password"]["path"], json={"email": email}
    )
    return _object_or_raise(resp).get("message", "")


async def reset_password(client: CloudClient, reset_token: str, password: str) -> str:
    body = {"token": reset_token, "password": password}
    resp = await client.request(AUTH["reset_password"]["method"], AUTH["reset_password"]["path"], json=body)
    return _object_or_raise(resp).get("message", "")


async def list_items(
    client: CloudClient,
    token: str,
    owner_id: str,
    parent_id: Optional[str] = None,
) -> List[DriveItem]:
    params = {"ownerId": owner_id}
    if parent_id:
        params["parentId"] = parent_id
    resp = await client.request(DRIVE["list"]["method"], DRIVE["list"]["path"], token=token, params=params)
    payload = _json_or_raise(resp)
    if isinstance(payload, dict):
        payload = payload.get("result", payload.get("data"))
    if not isinstance(payload, list):
        raise ApiError(f"Unexpected listing: {payload!r}")
    return [item_from_row(row) for row in payload]


async def create_folder(
    client: CloudClient,
    token: str,
    owner_id: str,
    name: str,
    parent_id: Optional[str],
) -> DriveItem:
    body = {"name": name, "parentId": parent_id, "ownerId": owner_id}
    resp = await client.request(
        DRIVE["create_folder"]["method"], DRIVE["create_folder"]["path"], token=token, json=body
    )
    return item_from_row(_object_or_raise(resp))


async def upload_file(
    client: CloudClient,
    token: str,
    owner_id: str,
    payload: UploadPayload,
    parent_id: Optional[str],
) -> DriveItem:
    files = {
        "file": (payload.name, payload.content, payload.mime_type or "application/octet-stream"),
    }
    form = {
        "ownerId": owner_id,
        "parentId": parent_id if parent_id else NO_PARENT,
    }
    resp = await client.request(
        DRIVE["upload"]["method"], DRIVE["upload"]["path"], token=token, data=form, files=files
    )
    return item_from_row(_object_or_raise(resp))


async def delete_item(client: CloudClient, token: str, item_id: str) -> None:
    path = DRIVE["delete"]["path"].format(item_id=item_id)
    await client.request(DRIVE["delete"]["method"], path, token=token)


async def get_view_url(client: CloudClient, token: str, item_id: str) -> str:
    path = DRIVE["view_url"]["path"].format(item_id=item_id)
    resp = await client.request(DRIVE["view_url"]["method"], path, token=token)
    url = _object_or_raise(resp).get("url")
    if not url:
        raise ApiError("Missing url in view response")
    return str(url)
