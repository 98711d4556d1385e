from __future__ import annotations

import logging
import os
import re
from collections import defaultdict
from typing import Iterable

from .db import ServiceRow

logger = logging.getLogger(__name__)

HANDLER_FILE_PREFIX = "chs_"

_SEPARATOR_RE = re.compile(r"[\W_]+")

HANDLER_TEMPLATE = """@{matcher} host {subdomain}.{{$INTERNAL_DOMAIN}}
handle @{matcher} {{
  reverse_proxy {host_ip}:{port}
}}"""


def _split_words(chunk: str) -> list[str]:
    """Split on lower->upper, letter<->digit and acronym (HTTP|Server) boundaries."""
    words: list[str] = []
    cur = ""
    for i, c in enumerate(chunk):
        if cur:
            prev = cur[-1]
            nxt = chunk[i + 1] if i + 1 < len(chunk) else ""
            if (
                prev.isdigit() != c.isdigit()
                or (prev.islower() and c.isupper())
                or (prev.isupper() and c.isupper() and nxt.islower())
            ):
                words.append(cur)
                cur = ""
        cur += c
    if cur:
        words.append(cur)
    return words


def camel_case(text: str) -> str:
    """Turn ``test-app`` / ``test_app`` / ``Test App`` into ``testApp``."""
    words: list[str] = []
    for chunk in _SEPARATOR_RE.split(text):
        words.extend(_split_words(chunk))
    if not words:
        return ""
    head, *rest = words
    return head.lower() + "".join(w[:1].upper() + w[1:].lower() for w in rest)


def render_handler(row: ServiceRow) -> str:
    return HANDLER_TEMPLATE.format(
        matcher=camel_case(row.subdomain),
        subdomain=row.subdomain,
        host_ip=row.host_ip,
        port=row.port,
    )


def handler_file_name(host_ip: str) -> str:
    return HANDLER_FILE_PREFIX + re.sub(r"[./\\]", "_", host_ip)


def group_by_host(rows: Iterable[ServiceRow]) -> dict[str, list[ServiceRow]]:
    groups: dict[str, list[ServiceRow]] = defaultdict(list)
    for row in rows:
        groups[row.host_ip].append(row)
    return dict(groups)


def render_host_file(rows: Iterable[ServiceRow]) -> str:
    return "\n\n".join(render_handler(r) for r in rows)


class HandlerWriter:
    """Renders the full service table into one Caddy handler file per host IP.

    Every call overwrites the file of each host that still has services.
    Files of hosts whose last service was removed are not deleted; they keep
    their last contents until that host reports again.
    """

    def __init__(self, handlers_dir: str, store, dry_run: bool = False):
        self.handlers_dir = os.path.abspath(handlers_dir)
        self.store = store
        self.dry_run = dry_run
        if not dry_run:
            os.makedirs(self.handlers_dir, exist_ok=True)

    def path_for(self, host_ip: str) -> str:
        return os.path.join(self.handlers_dir, handler_file_name(host_ip))

    def regenerate(self) -> list[str]:
        """Write the handler files and return their paths."""
        groups = group_by_host(self.store.list_services())
        written: list[str] = []

        if self.dry_run:
            logger.info("DRY RUN: Would write handler files for the following services:")

        for host_ip, rows in groups.items():
            path = self.path_for(host_ip)
            contents = render_host_file(rows)
            if self.dry_run:
                logger.info("DRY RUN: Would write file: %s", path)
                logger.info("DRY RUN: File contents:\n%s", contents)
                continue
            with open(path, "w", encoding="utf-8") as f:
                f.write(contents)
            logger.debug("Wrote %d handler(s) to %s", len(rows), path)
            written.append(path)

        return written
