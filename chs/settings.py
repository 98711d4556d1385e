from __future__ import annotations

import os
from dataclasses import dataclass


class ConfigError(Exception):
    """Raised when required configuration is missing or malformed."""


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _env_required(name: str) -> str:
    raw = os.getenv(name)
    if not raw:
        raise ConfigError(f"{name} environment variable is required")
    return raw


@dataclass(frozen=True)
class ServerSettings:
    handshake_key: str
    host: str = "0.0.0.0"
    port: int = 3030
    dry_run: bool = False
    db_path: str = "/data/chs/private/db.sqlite3"
    handlers_dir: str = "/data/chs/shared/handlers"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ServerSettings":
        return cls(
            handshake_key=_env_required("CHS_HANDSHAKE_KEY"),
            host=os.getenv("CHS_HOST", cls.host),
            port=_env_int("CHS_PORT", cls.port),
            dry_run=_env_bool("CHS_DRY_RUN", False),
            db_path=os.getenv("CHS_DB_PATH", cls.db_path),
            handlers_dir=os.getenv("CHS_HANDLERS_DIR", cls.handlers_dir),
            log_level=os.getenv("CHS_LOG_LEVEL", cls.log_level),
        )


@dataclass(frozen=True)
class WatcherSettings:
    server_url: str
    handshake_key: str = ""
    subdomain_label: str = "app.subdomain"
    # Empty means "<subdomain_label>.port".
    port_label: str = ""
    host_ip: str = "127.0.0.1"
    poll_interval_ms: int = 60_000
    request_timeout_s: int = 10
    dry_run: bool = False
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.port_label:
            object.__setattr__(self, "port_label", f"{self.subdomain_label}.port")
        object.__setattr__(self, "server_url", self.server_url.rstrip("/"))
        if self.poll_interval_ms <= 0:
            raise ConfigError("poll interval must be a positive number of milliseconds")

    @property
    def services_url(self) -> str:
        return f"{self.server_url}/services"

    @classmethod
    def from_env(cls) -> "WatcherSettings":
        return cls(
            server_url=_env_required("CHS_SERVER_URL"),
            handshake_key=os.getenv("CHS_HANDSHAKE_KEY", ""),
            subdomain_label=os.getenv("CHS_SUBDOMAIN_LABEL", cls.subdomain_label),
            port_label=os.getenv("CHS_SUBDOMAIN_LABEL_PORT", ""),
            host_ip=os.getenv("CHS_HOST_IP", cls.host_ip),
            poll_interval_ms=_env_int("CHS_POLL_INTERVAL", cls.poll_interval_ms),
            request_timeout_s=_env_int("CHS_REQUEST_TIMEOUT", cls.request_timeout_s),
            dry_run=_env_bool("CHS_DRY_RUN", False),
            log_level=os.getenv("CHS_LOG_LEVEL", cls.log_level),
        )
