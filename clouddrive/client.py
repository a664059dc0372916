from typing import Any, Dict, Optional
import json

import httpx

from endpoints import BASE_URL
from .errors import HttpErrorInfo, NetworkError, map_http_error
from .utils import append_log_line, get_logger, redact_payload, redacted_headers, truncate_text


class CloudClient:
    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        http_log_path: Optional[str] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = get_logger('clouddrive.http')
        self.http_log_path = http_log_path
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport,
            headers={"User-Agent": "clouddrive-client/1.0"},
        )

    def _default_headers(self, token: Optional[str]) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _log_line(self, line: str) -> None:
        if self.http_log_path:
            append_log_line(self.http_log_path, line)

    async def request(self, method: str, path: str, token: Optional[str] = None, **kwargs: Any) -> httpx.Response:
        url = path if path.startswith('http') else f"{self.base_url}{path}"
        headers = dict(self._default_headers(token))
        headers.update(kwargs.get('headers', {}) or {})
        kwargs['headers'] = headers
        redacted = redacted_headers(headers)
        payload = None
        if "json" in kwargs:
            payload = redact_payload(kwargs.get("json"))
        elif "data" in kwargs:
            payload = redact_payload(kwargs.get("data"))
        self.logger.debug('HTTP %s %s headers=%s', method, url, redacted)
        if payload is not None:
            self._log_line(f"{method} {url} headers={redacted} payload={payload}")
        else:
            self._log_line(f"{method} {url} headers={redacted}")

        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            # DecodingError and TooManyRedirects are not TransportErrors.
            self.logger.debug('HTTP %s %s request error: %s', method, url, exc)
            self._log_line(f"{method} {url} error={exc!r}")
            raise NetworkError(
                f"Network error during {method} {path}",
                details={"method": method, "path": path},
                cause=exc,
            ) from exc

        response_body: Any = None
        try:
            response_body = redact_payload(resp.json())
        except ValueError:
            response_body = truncate_text(resp.text or "")
        self._log_line(
            f"{method} {url} status={resp.status_code} response={json.dumps(response_body, ensure_ascii=True)}",
        )
        if resp.is_error:
            raise map_http_error(
                HttpErrorInfo(
                    status_code=resp.status_code,
                    message=_server_message(resp),
                    details={"method": method, "path": path},
                )
            )
        return resp

    async def aclose(self) -> None:
        await self._client.aclose()


def _server_message(resp: httpx.Response) -> Optional[str]:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message:
            return message
    return None
