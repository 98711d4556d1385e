from __future__ import annotations

import secrets

KEY_PREFIX = "chs_"


def _hex_with_capitals(length: int) -> str:
    """Random hex string of ``length`` chars with roughly two thirds of a-f upper-cased."""
    raw = secrets.token_hex(length // 2)
    return "".join(c.upper() if c.isalpha() and secrets.randbelow(3) else c for c in raw)


def generate_handshake_key() -> str:
    return f"{KEY_PREFIX}{_hex_with_capitals(16)}_{_hex_with_capitals(48)}"
