import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter('%(levelname)s %(message)s')
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    if os.getenv("CLOUDDRIVE_DEBUG", "0") in ("1", "true", "TRUE"):
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)
    return logger


def redacted_headers(headers: Dict[str, Any]) -> Dict[str, Any]:
    redacted = {}
    for k, v in headers.items():
        if k.lower() in ('authorization', 'cookie'):
            redacted[k] = '[REDACTED]'
        else:
            redacted[k] = v
    return redacted


def redact_payload(payload: Any) -> Any:
    if not isinstance(payload, (dict, list)):
        return payload
    secret_keys = (
        "token",
        "password",
        "authorization",
        "cookie",
    )
    if isinstance(payload, list):
        return [redact_payload(item) for item in payload]
    redacted: Dict[str, Any] = {}
    for key, value in payload.items():
        key_l = str(key).lower()
        if any(k in key_l for k in secret_keys):
            redacted[key] = "***"
        else:
            redacted[key] = redact_payload(value)
    return redacted


def append_log_line(path: str, line: str) -> None:
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    safe_line = line.rstrip("\n")
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "a", encoding="utf-8") as handle:
        handle.write(f"[{timestamp}] {safe_line}\n")


def truncate_text(text: str, limit: int = 2000) -> str:
    if text is None:
        return ""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}...[truncated {len(text) - limit} chars]"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept ISO-8601 strings (``Z`` suffix included) or epoch seconds/milliseconds."""
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)):
        try:
            ts = float(value)
            # Heuristic: ms vs seconds
            if ts > 10_000_000_000:
                ts = ts / 1000
            return datetime.fromtimestamp(ts, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None
