import pytest

from chs.settings import ConfigError, ServerSettings, WatcherSettings

CHS_VARS = [
    "CHS_HANDSHAKE_KEY",
    "CHS_HOST",
    "CHS_PORT",
    "CHS_DRY_RUN",
    "CHS_DB_PATH",
    "CHS_HANDLERS_DIR",
    "CHS_LOG_LEVEL",
    "CHS_SERVER_URL",
    "CHS_SUBDOMAIN_LABEL",
    "CHS_SUBDOMAIN_LABEL_PORT",
    "CHS_HOST_IP",
    "CHS_POLL_INTERVAL",
    "CHS_REQUEST_TIMEOUT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in CHS_VARS:
        monkeypatch.delenv(name, raising=False)


def test_server_requires_handshake_key():
    with pytest.raises(ConfigError, match="CHS_HANDSHAKE_KEY"):
        ServerSettings.from_env()


def test_server_defaults(monkeypatch):
    monkeypatch.setenv("CHS_HANDSHAKE_KEY", "secret")
    s = ServerSettings.from_env()
    assert s.handshake_key == "secret"
    assert s.port == 3030
    assert s.host == "0.0.0.0"
    assert s.dry_run is False
    assert s.db_path == "/data/chs/private/db.sqlite3"
    assert s.handlers_dir == "/data/chs/shared/handlers"


def test_server_overrides(monkeypatch):
    monkeypatch.setenv("CHS_HANDSHAKE_KEY", "secret")
    monkeypatch.setenv("CHS_PORT", "8080")
    monkeypatch.setenv("CHS_DRY_RUN", "true")
    monkeypatch.setenv("CHS_HANDLERS_DIR", "/tmp/handlers")
    s = ServerSettings.from_env()
    assert s.port == 8080
    assert s.dry_run is True
    assert s.handlers_dir == "/tmp/handlers"


def test_server_bad_port(monkeypatch):
    monkeypatch.setenv("CHS_HANDSHAKE_KEY", "secret")
    monkeypatch.setenv("CHS_PORT", "not-a-port")
    with pytest.raises(ConfigError, match="CHS_PORT"):
        ServerSettings.from_env()


def test_settings_are_immutable(monkeypatch):
    monkeypatch.setenv("CHS_HANDSHAKE_KEY", "secret")
    s = ServerSettings.from_env()
    with pytest.raises(AttributeError):
        s.port = 1


def test_watcher_requires_server_url():
    with pytest.raises(ConfigError, match="CHS_SERVER_URL"):
        WatcherSettings.from_env()


def test_watcher_defaults(monkeypatch):
    monkeypatch.setenv("CHS_SERVER_URL", "http://server:3030/")
    s = WatcherSettings.from_env()
    assert s.server_url == "http://server:3030"
    assert s.services_url == "http://server:3030/services"
    assert s.handshake_key == ""
    assert s.subdomain_label == "app.subdomain"
    assert s.port_label == "app.subdomain.port"
    assert s.host_ip == "127.0.0.1"
    assert s.poll_interval_ms == 60_000
    assert s.dry_run is False


def test_watcher_custom_labels(monkeypatch):
    monkeypatch.setenv("CHS_SERVER_URL", "http://server:3030")
    monkeypatch.setenv("CHS_SUBDOMAIN_LABEL", "custom.label")
    s = WatcherSettings.from_env()
    assert s.port_label == "custom.label.port"

    monkeypatch.setenv("CHS_SUBDOMAIN_LABEL_PORT", "custom.port")
    assert WatcherSettings.from_env().port_label == "custom.port"


def test_watcher_overrides(monkeypatch):
    monkeypatch.setenv("CHS_SERVER_URL", "http://server:3030")
    monkeypatch.setenv("CHS_HANDSHAKE_KEY", "k")
    monkeypatch.setenv("CHS_HOST_IP", "10.0.0.7")
    monkeypatch.setenv("CHS_POLL_INTERVAL", "5000")
    monkeypatch.setenv("CHS_DRY_RUN", "1")
    s = WatcherSettings.from_env()
    assert (s.handshake_key, s.host_ip, s.poll_interval_ms, s.dry_run) == ("k", "10.0.0.7", 5000, True)
