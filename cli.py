from __future__ import annotations

import argparse
import json
import os
import sys
from urllib.parse import quote

import requests

from chs.settings import ConfigError


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _serve() -> int:
    import uvicorn

    from chs.logging_config import setup_logging
    from chs.server import create_app
    from chs.settings import ServerSettings

    settings = ServerSettings.from_env()
    setup_logging(settings.log_level)
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0


def _watch() -> int:
    from chs.logging_config import setup_logging
    from chs.settings import WatcherSettings
    from chs.watcher import ContainerWatcher, setup_signal_handlers

    settings = WatcherSettings.from_env()
    setup_logging(settings.log_level)
    watcher = ContainerWatcher(settings)
    setup_signal_handlers(watcher)
    try:
        watcher.run()
    finally:
        watcher.close()
    return 0


def _keygen() -> int:
    from chs.keygen import generate_handshake_key

    print("Store this key in the CHS_HANDSHAKE_KEY environment variable on both client and server machines.")
    print("Handshake Key:", generate_handshake_key())
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Caddy Handler Sync CLI")
    p.add_argument("--api", default=os.getenv("CHS_SERVER_URL", "http://localhost:3030"), help="Server base URL")
    p.add_argument("--key", default=os.getenv("CHS_HANDSHAKE_KEY", ""), help="Handshake key (default: $CHS_HANDSHAKE_KEY)")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("serve", help="Run the API server (configured via CHS_* env vars)")
    sub.add_parser("watch", help="Watch local Docker containers and report them to the server")
    sub.add_parser("keygen", help="Generate a new handshake key")
    sub.add_parser("health", help="Check that the server accepts the handshake key")
    sub.add_parser("services", help="List registered services")

    s_del = sub.add_parser("delete", help="Delete a service by subdomain")
    s_del.add_argument("subdomain")

    args = p.parse_args(argv)

    try:
        if args.cmd == "serve":
            return _serve()
        if args.cmd == "watch":
            return _watch()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if args.cmd == "keygen":
        return _keygen()

    base = args.api.rstrip("/")
    headers = {"X-Handshake-Key": args.key}

    if args.cmd == "health":
        r = requests.get(f"{base}/health-check", headers=headers, timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd == "services":
        r = requests.get(f"{base}/services", headers=headers, timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd == "delete":
        r = requests.delete(f"{base}/services/{quote(args.subdomain, safe='')}", headers=headers, timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
