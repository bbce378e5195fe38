from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import ROOT, configure_logging, load_settings
from .errors import ExtractionError, GraphStoreError
from .live import LiveUpdateHub
from .schemas import AutoBuildRequest
from .service import AutoBuildService, build_service


def create_app(service: Optional[AutoBuildService] = None, hub: Optional[LiveUpdateHub] = None) -> FastAPI:
    hub = hub or LiveUpdateHub()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        active = service
        if active is None:
            load_dotenv(ROOT / ".env")
            settings = load_settings()
            configure_logging(settings.log_level)
            active = build_service(settings, hub)
        app.state.service = active
        active.start()
        try:
            yield
        finally:
            await hub.drain()
            await active.close()

    app = FastAPI(title="AutoRig", lifespan=lifespan)
    app.state.hub = hub
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ExtractionError)
    async def extraction_failed(request: Request, exc: ExtractionError):
        return JSONResponse(status_code=502, content={"error": "extraction_failed", "detail": str(exc)})

    @app.exception_handler(GraphStoreError)
    async def store_unavailable(request: Request, exc: GraphStoreError):
        return JSONResponse(status_code=503, content={"error": "graph_store_unavailable", "detail": str(exc)})

    @app.get("/api/health")
    def health():
        return {"status": "ok", "subscribers": hub.subscriber_count()}

    @app.post("/api/build/auto")
    async def build_auto(payload: AutoBuildRequest, request: Request):
        results = await request.app.state.service.resolve_many(payload.user_input, payload.user_id)
        return {
            strategy.value: [configuration.as_dict() for configuration in configurations]
            for strategy, configurations in results.items()
        }

    @app.post("/api/build/single")
    async def build_single(payload: AutoBuildRequest, request: Request):
        configuration = await request.app.state.service.resolve_one(payload.user_input, payload.user_id)
        return configuration.as_dict()

    @app.websocket("/ws/builds")
    async def builds_feed(websocket: WebSocket, user_id: Optional[str] = Query(default=None)):
        await websocket.accept()
        hub.subscribe(websocket, user_id)
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            hub.unsubscribe(websocket)

    return app


app = create_app()
