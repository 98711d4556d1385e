from __future__ import annotations

import logging
import os
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable

from .api_models import Service

logger = logging.getLogger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class ServiceRow:
    subdomain: str
    host_ip: str
    port: int
    created_at: str
    updated_at: str


@dataclass
class UpsertResult:
    inserted: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.updated)


def _resolve_db_path(db_path: str) -> str:
    """Return a file path usable by sqlite.

    Docker creates a directory when a bind-mounted file path does not exist
    yet; in that case the database file is placed inside that directory.
    """
    p = os.path.abspath(db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "db.sqlite3")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


class ServiceStore:
    """SQLite-backed table of services keyed by subdomain."""

    def __init__(self, db_path: str):
        self.db_path = _resolve_db_path(db_path)

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create the services table if it does not exist."""
        with self.connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS services (
                  subdomain TEXT NOT NULL PRIMARY KEY,
                  host_ip TEXT NOT NULL,
                  port INTEGER NOT NULL,
                  created_at TEXT NOT NULL,
                  updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_services_host_ip ON services(host_ip);
                """
            )

    def list_services(self) -> list[ServiceRow]:
        with self.connect() as conn:
            rows = conn.execute("SELECT * FROM services ORDER BY host_ip, subdomain").fetchall()
            return [ServiceRow(**dict(r)) for r in rows]

    def get_service(self, subdomain: str) -> ServiceRow | None:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM services WHERE subdomain=?", (subdomain,)).fetchone()
            return ServiceRow(**dict(row)) if row else None

    def upsert_services(self, host_ip: str, services: Iterable[Service]) -> UpsertResult:
        """Insert new subdomains and rewrite changed ones in a single transaction.

        A stored row is rewritten when its port or its host IP differs from the
        request; the write always stamps the request's host IP so the latest
        reporter owns the subdomain. Identical rows are left alone.
        """
        result = UpsertResult()
        with self.connect() as conn:
            for svc in services:
                now = utc_now()
                existing = conn.execute(
                    "SELECT host_ip, port FROM services WHERE subdomain=?", (svc.subdomain,)
                ).fetchone()
                if existing is None:
                    conn.execute(
                        """
                        INSERT INTO services (subdomain, host_ip, port, created_at, updated_at)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        (svc.subdomain, host_ip, svc.port, now, now),
                    )
                    result.inserted.append(svc.subdomain)
                elif existing["port"] != svc.port or existing["host_ip"] != host_ip:
                    conn.execute(
                        "UPDATE services SET host_ip=?, port=?, updated_at=? WHERE subdomain=?",
                        (host_ip, svc.port, now, svc.subdomain),
                    )
                    result.updated.append(svc.subdomain)
                else:
                    result.unchanged.append(svc.subdomain)

        logger.info(
            "Upserted services for %s: %d inserted, %d updated, %d unchanged",
            host_ip,
            len(result.inserted),
            len(result.updated),
            len(result.unchanged),
        )
        return result

    def delete_service(self, subdomain: str) -> bool:
        with self.connect() as conn:
            cur = conn.execute("DELETE FROM services WHERE subdomain=?", (subdomain,))
            deleted = cur.rowcount > 0
        logger.info("Deleting service %s (%s)", subdomain, "removed" if deleted else "not found")
        return deleted


class DryRunStore:
    """Stand-in for ServiceStore that logs every write instead of performing it."""

    db_path = None

    def init_db(self) -> None:
        logger.info("DRY RUN: Database disabled, no tables created")

    def list_services(self) -> list[ServiceRow]:
        return []

    def get_service(self, subdomain: str) -> ServiceRow | None:
        return None

    def upsert_services(self, host_ip: str, services: Iterable[Service]) -> UpsertResult:
        result = UpsertResult()
        logger.info("DRY RUN: Would process the following database operations:")
        for svc in services:
            logger.info(
                "DRY RUN: Would upsert service - subdomain: %s, host_ip: %s, port: %s",
                svc.subdomain,
                host_ip,
                svc.port,
            )
            result.unchanged.append(svc.subdomain)
        return result

    def delete_service(self, subdomain: str) -> bool:
        logger.info("DRY RUN: Would delete service: %s", subdomain)
        return False
