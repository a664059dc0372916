import os
from dataclasses import dataclass
from typing import Optional

from endpoints import BASE_URL

DEFAULT_SESSION_PATH = ".clouddrive/session.json"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class Settings:
    base_url: str = BASE_URL
    session_path: str = DEFAULT_SESSION_PATH
    timeout: float = 30.0
    session_check_interval: float = 2.0
    upload_tick_interval: float = 0.2
    upload_step: int = 10
    upload_threshold: int = 90
    upload_clear_delay: float = 1.0
    http_log_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            base_url=os.getenv("CLOUDDRIVE_BASE_URL") or BASE_URL,
            session_path=os.getenv("CLOUDDRIVE_SESSION_PATH") or DEFAULT_SESSION_PATH,
            timeout=_env_float("CLOUDDRIVE_TIMEOUT", 30.0),
            session_check_interval=_env_float("CLOUDDRIVE_SESSION_CHECK_INTERVAL", 2.0),
            upload_tick_interval=_env_float("CLOUDDRIVE_UPLOAD_TICK", 0.2),
            upload_step=_env_int("CLOUDDRIVE_UPLOAD_STEP", 10),
            upload_threshold=_env_int("CLOUDDRIVE_UPLOAD_THRESHOLD", 90),
            upload_clear_delay=_env_float("CLOUDDRIVE_UPLOAD_CLEAR_DELAY", 1.0),
            http_log_path=os.getenv("CLOUDDRIVE_HTTP_LOG") or None,
        )
