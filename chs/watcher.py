from __future__ import annotations

import ipaddress
import json
import logging
import signal
from threading import Event, Thread
from typing import Any

import docker
import httpx
from docker.errors import DockerException

from .settings import WatcherSettings

logger = logging.getLogger(__name__)

HANDSHAKE_HEADER = "X-Handshake-Key"
STOP_SIGNALS = ("SIGINT", "SIGTERM", "SIGHUP", "SIGUSR2")


def _is_ipv4(value: Any) -> bool:
    try:
        return isinstance(ipaddress.ip_address(str(value)), ipaddress.IPv4Address)
    except ValueError:
        return False


def published_ipv4_port(ports: list[dict[str, Any]] | None) -> int | None:
    """First public port bound to an IPv4 address, from a container list entry."""
    for p in ports or []:
        if _is_ipv4(p.get("IP")) and p.get("PublicPort"):
            return int(p["PublicPort"])
    return None


class ContainerWatcher:
    """Reports labelled, running containers on this Docker host to the server."""

    def __init__(
        self,
        settings: WatcherSettings,
        docker_client: docker.DockerClient | None = None,
        http: httpx.Client | None = None,
    ):
        self.settings = settings
        self._docker = docker_client
        self._http = http
        self._stop = Event()
        self._thr: Thread | None = None

    @property
    def docker(self) -> docker.DockerClient:
        if self._docker is None:
            self._docker = docker.from_env()
        return self._docker

    @property
    def http(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(timeout=self.settings.request_timeout_s)
        return self._http

    def _service_for(self, attrs: dict[str, Any]) -> dict[str, Any] | None:
        labels = attrs.get("Labels") or {}
        name = ",".join(n.lstrip("/") for n in attrs.get("Names") or []) or attrs.get("Id", "?")[:12]
        subdomain = labels.get(self.settings.subdomain_label)
        if not subdomain:
            logger.warning("Container %s has an empty %s label, skipping", name, self.settings.subdomain_label)
            return None

        raw_port = labels.get(self.settings.port_label)
        if raw_port:
            try:
                port = int(raw_port)
            except ValueError:
                logger.warning("Container %s has a non-numeric %s label %r, skipping", name, self.settings.port_label, raw_port)
                return None
        else:
            port = published_ipv4_port(attrs.get("Ports"))
            if port is None:
                logger.warning("Container %s has no %s label and no IPv4 published port, skipping", name, self.settings.port_label)
                return None

        return {"subdomain": subdomain, "port": port}

    def collect_services(self) -> list[dict[str, Any]]:
        containers = self.docker.containers.list(
            filters={"label": [self.settings.subdomain_label], "status": "running"},
            sparse=True,
        )
        services: list[dict[str, Any]] = []
        for c in containers:
            svc = self._service_for(c.attrs)
            if svc is not None:
                services.append(svc)
        return services

    def build_payload(self) -> dict[str, Any]:
        return {"host_ip": self.settings.host_ip, "services": self.collect_services()}

    def scan_and_send(self) -> bool:
        """One discovery tick. Errors are logged, never raised."""
        try:
            payload = self.build_payload()

            if self.settings.dry_run:
                logger.info("DRY RUN: Would send the following payload to server:\n%s", json.dumps(payload, indent=2))
                logger.info("DRY RUN: Would POST to: %s", self.settings.services_url)
                return True

            resp = self.http.post(
                self.settings.services_url,
                json=payload,
                headers={HANDSHAKE_HEADER: self.settings.handshake_key},
            )
            resp.raise_for_status()
            logger.info("Reported %d service(s) to %s", len(payload["services"]), self.settings.services_url)
            return True
        except httpx.HTTPStatusError as e:
            logger.error("Failed to send payload: HTTP error! status: %s", e.response.status_code)
        except (httpx.HTTPError, DockerException) as e:
            logger.error("Failed to send payload: %s: %s", type(e).__name__, e)
        except Exception:
            logger.exception("Failed to send payload")
        return False

    def run(self) -> None:
        """Scan now, then every poll interval until stop() is called."""
        mode = "DRY RUN MODE" if self.settings.dry_run else "LIVE MODE"
        logger.info("Starting container monitoring in %s...", mode)
        interval_s = self.settings.poll_interval_ms / 1000.0
        while not self._stop.is_set():
            self.scan_and_send()
            self._stop.wait(interval_s)

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop.clear()
        self._thr = Thread(target=self.run, daemon=True)
        self._thr.start()

    def stop(self) -> None:
        if not self._stop.is_set():
            logger.info("Stopping container monitoring...")
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def close(self) -> None:
        self.stop()
        if self._http is not None:
            self._http.close()


def setup_signal_handlers(watcher: ContainerWatcher) -> list[str]:
    """Stop the watcher on the usual termination signals; returns the ones installed."""

    def _handler(signum, _frame) -> None:
        watcher.stop()

    installed: list[str] = []
    for name in STOP_SIGNALS:
        sig = getattr(signal, name, None)
        if sig is None:
            continue
        signal.signal(sig, _handler)
        installed.append(name)
    return installed
