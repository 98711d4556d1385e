from __future__ import annotations

import json
import logging
import secrets
from dataclasses import asdict

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api_models import BodyValidationError, MessageResponse, ServiceOut, ServicesRequest, parse_services_request
from .db import DryRunStore, ServiceStore
from .handlers import HandlerWriter
from .settings import ServerSettings

logger = logging.getLogger(__name__)

HANDSHAKE_HEADER = "X-Handshake-Key"


def create_app(
    settings: ServerSettings,
    store: ServiceStore | DryRunStore | None = None,
    writer: HandlerWriter | None = None,
) -> FastAPI:
    """Build the API around an explicitly constructed store and handler writer.

    When ``store``/``writer`` are omitted they are created from ``settings``;
    dry-run settings get a DryRunStore and a writer that only logs.
    """
    if store is None:
        store = DryRunStore() if settings.dry_run else ServiceStore(settings.db_path)
    if writer is None:
        writer = HandlerWriter(settings.handlers_dir, store, dry_run=settings.dry_run)

    app = FastAPI(title="Caddy Handler Sync")
    app.state.settings = settings
    app.state.store = store
    app.state.writer = writer

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    def require_handshake(request: Request) -> None:
        key = request.headers.get(HANDSHAKE_HEADER)
        if key is None or not secrets.compare_digest(key.encode(), settings.handshake_key.encode()):
            raise HTTPException(status_code=401, detail="Unauthorized")

    def apply_services(payload: ServicesRequest) -> None:
        store.upsert_services(payload.host_ip, payload.services)
        writer.regenerate()

    @app.on_event("startup")
    def startup() -> None:
        store.init_db()
        mode = "DRY RUN MODE" if settings.dry_run else "LIVE MODE"
        logger.info("Server starting in %s (db=%s, handlers=%s)", mode, store.db_path, writer.handlers_dir)

    @app.get("/health-check", response_model=MessageResponse, dependencies=[Depends(require_handshake)])
    def health_check() -> dict[str, str]:
        logger.info("Health check received")
        return {"message": "Health check received"}

    @app.get("/services", response_model=list[ServiceOut], dependencies=[Depends(require_handshake)])
    def list_services() -> list[dict]:
        logger.info("Getting all services from database")
        return [asdict(r) for r in store.list_services()]

    @app.post("/services", response_model=MessageResponse, dependencies=[Depends(require_handshake)])
    async def post_services(request: Request) -> dict[str, str]:
        raw = await request.body()
        try:
            body = json.loads(raw) if raw else None
        except ValueError:
            body = None

        try:
            payload = parse_services_request(body)
        except BodyValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))

        if settings.dry_run:
            logger.info("DRY RUN: Received services request:\n%s", payload.model_dump_json(indent=2))
        else:
            logger.info("Received services request from %s (%d services)", payload.host_ip, len(payload.services))

        await run_in_threadpool(apply_services, payload)
        return {"message": "Success"}

    @app.delete("/services/", response_model=MessageResponse, dependencies=[Depends(require_handshake)])
    def delete_without_subdomain() -> dict[str, str]:
        raise HTTPException(status_code=400, detail="subdomain required")

    @app.delete("/services/{subdomain}", response_model=MessageResponse, dependencies=[Depends(require_handshake)])
    def delete_service(subdomain: str) -> dict[str, str]:
        if not subdomain.strip():
            raise HTTPException(status_code=400, detail="subdomain required")
        store.delete_service(subdomain)
        writer.regenerate()
        return {"message": "Success"}

    return app
