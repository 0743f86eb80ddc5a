from __future__ import annotations

from dataclasses import dataclass
import os


@dataclass(frozen=True)
class ClientSettings:
    api_url: str = "http://localhost:3001/api"
    token: str = ""
    timeout_s: float = 30.0
    poll_interval_s: float = 30.0
    upload_hold_s: float = 1.5
    download_chunk_bytes: int = 64 * 1024
    log_level: str = "INFO"


def _api_url() -> str:
    return os.getenv("SHORTS_API_URL", ClientSettings.api_url).strip().rstrip("/")


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def load_settings() -> ClientSettings:
    poll_interval_s = _float_env("SHORTS_POLL_INTERVAL_S", ClientSettings.poll_interval_s)
    if poll_interval_s <= 0:
        raise ValueError("SHORTS_POLL_INTERVAL_S must be positive")
    chunk = int(_float_env("SHORTS_DOWNLOAD_CHUNK_BYTES", ClientSettings.download_chunk_bytes))
    return ClientSettings(
        api_url=_api_url(),
        token=os.getenv("SHORTS_API_TOKEN", "").strip(),
        timeout_s=_float_env("SHORTS_API_TIMEOUT_S", ClientSettings.timeout_s),
        poll_interval_s=poll_interval_s,
        upload_hold_s=max(0.0, _float_env("SHORTS_UPLOAD_HOLD_S", ClientSettings.upload_hold_s)),
        download_chunk_bytes=max(1, chunk),
        log_level=os.getenv("SHORTS_LOG_LEVEL", ClientSettings.log_level).strip().upper() or "INFO",
    )
