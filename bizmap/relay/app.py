"""
Relay service for bizmap.

Stateless HTTP forwarder between browser clients and the datastore, so the
client never holds datastore credentials:

    GET  /businesses   -> JSON array of records ([] when the store read fails)
    POST /businesses   -> {"data": [record] | null, "error": {code, message} | null}
    GET  /             -> the map page (admin panel with ?admin=true)
    GET  /health       -> liveness and configured store endpoint

CORS is open to every origin. That is a deployment simplification, not a
security control, and so is the admin flag.

Unlike a bare pass-through, POST checks the body against `NewBusinessRecord`
(non-empty name, coordinates in range) before writing. A rejected body is
answered with a `validation_error` in the same envelope the datastore's own
CHECK constraint failures use, so clients handle both the same way.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse

from bizmap.capture.flow import admin_from_url
from bizmap.config import Settings, get_settings
from bizmap.directory.state import DirectoryState
from bizmap.errors import ConfigMissing, StoreError, ValidationError
from bizmap.infrastructure.db_factory import describe_store
from bizmap.infrastructure.record_store import PostgresRecordStore, RecordStore, parse_new_record
from bizmap.mapview.adapter import MapViewAdapter
from bizmap.mapview.engine import GeoJsonEngine
from bizmap.mapview.page import render_map_page
from bizmap.mapview.view import MapOptions, ViewState
from bizmap.utils.logging import get_logger

log = get_logger(__name__)


def _error(code: str, message: str) -> Dict[str, Any]:
    return {"data": None, "error": {"code": code, "message": message}}


def create_app(settings: Optional[Settings] = None, store: Optional[RecordStore] = None) -> FastAPI:
    """
    Build the relay application.

    Raises
    ------
    ConfigMissing
        When no store is injected and the datastore credentials are absent.
    """
    settings = settings or get_settings()
    if store is None:
        settings.require_store()
        store = PostgresRecordStore(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        opener = getattr(store, "open", None)
        if opener is not None:
            await opener()
        log.info("Relay ready", extra={"store": describe_store(settings)})
        try:
            yield
        finally:
            closer = getattr(store, "close", None)
            if closer is not None:
                await closer()

    app = FastAPI(title="bizmap relay", lifespan=lifespan)
    app.state.store = store
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/businesses")
    async def list_businesses() -> List[Dict[str, Any]]:
        try:
            records = await store.fetch_all()
        except StoreError as exc:
            log.warning("Store read failed; returning empty list", extra={"error": str(exc)})
            return []
        return [record.to_wire() for record in records]

    @app.post("/businesses")
    async def create_business(request: Request) -> Dict[str, Any]:
        try:
            payload = await request.json()
        except ValueError:
            return _error(ValidationError.code, "Request body must be a JSON object")
        if not isinstance(payload, dict):
            return _error(ValidationError.code, "Request body must be a JSON object")
        try:
            created = await store.insert(parse_new_record(payload))
        except StoreError as exc:
            log.warning("Store write rejected", extra={"code": exc.code, "error": str(exc)})
            return _error(exc.code, str(exc))
        return {"data": [created.to_wire()], "error": None}

    @app.get("/", response_class=HTMLResponse)
    async def map_page(request: Request) -> HTMLResponse:
        try:
            settings.require_map()
        except ConfigMissing as exc:
            raise HTTPException(status_code=503, detail=str(exc))

        directory = DirectoryState(store)
        await directory.refresh()
        engine = GeoJsonEngine()
        adapter = MapViewAdapter(engine, ViewState.from_settings(settings))
        adapter.mount()
        adapter.render_markers(directory.records)
        html = render_map_page(
            features=engine.feature_collection(),
            categories=directory.distinct_categories(),
            access_token=settings.map_access_token,
            view=adapter.view,
            options=MapOptions.from_settings(settings),
            admin=admin_from_url(str(request.url)),
        )
        adapter.unmount()
        return HTMLResponse(html)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"ok": True, "store": describe_store(settings)}

    return app


__all__ = ["create_app"]
