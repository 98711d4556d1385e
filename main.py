"""ASGI entry point: ``uvicorn main:app``.

Configuration comes from CHS_* environment variables (see chs/settings.py);
CHS_HANDSHAKE_KEY is required.
"""

from __future__ import annotations

import uvicorn

from chs.logging_config import setup_logging
from chs.server import create_app
from chs.settings import ServerSettings

settings = ServerSettings.from_env()
setup_logging(settings.log_level)
app = create_app(settings)


if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
