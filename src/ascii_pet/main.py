"""
ascii-pet-server Main Application
=================================

FastAPI entry point for the pet server.

Each request is fingerprinted, the visitor's next frame index is taken from
the visitor store, and the corresponding preloaded frame is returned with
its precomputed headers.

Endpoints:
    GET  /         - Next animation frame for this visitor
    GET  /health   - Liveness check
    GET  /ready    - Readiness check (animation loaded?)
    GET  /metrics  - Store and background task metrics
"""

import asyncio
import gzip
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from ascii_pet.config import Settings, settings
from ascii_pet.errors import AssetError
from ascii_pet.frames import AnimationRotator, AnimationSelector, FrameStore
from ascii_pet.visitors import (
    InMemoryKeyValue,
    RemoteVisitorStateStore,
    TTLSweeper,
    VisitorStateStore,
    VisitorStore,
    make_fingerprint,
)


logger = logging.getLogger(__name__)


BASE_HEADERS = {
    "Cache-Control": "max-age=0, no-cache, no-store, must-revalidate",
    "X-Content-Type-Options": "nosniff",
}


# =============================================================================
# Request Helpers
# =============================================================================

def client_address(request: Request, header: str) -> str:
    """
    Resolve the client address.

    Order: configured proxy header, X-Forwarded-For (first hop), socket
    peer, then "unknown".
    """
    for name in (header, "X-Forwarded-For"):
        value = request.headers.get(name)
        if value:
            first = value.split(",")[0].strip()
            if first:
                return first

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


def accepts_gzip(request: Request) -> bool:
    """
    Whether the client's Accept-Encoding allows gzip.

    An explicit ``gzip`` entry takes precedence over ``*``.
    """
    header = request.headers.get("Accept-Encoding", "")
    weights = {}
    for token in header.split(","):
        coding, _, params = token.strip().partition(";")
        coding = coding.strip().lower()
        if coding not in ("gzip", "*"):
            continue
        quality = 1.0
        params = params.replace(" ", "")
        if params.startswith("q="):
            try:
                quality = float(params[2:])
            except ValueError:
                quality = 0.0
        weights[coding] = quality

    if "gzip" in weights:
        return weights["gzip"] > 0
    return weights.get("*", 0.0) > 0


def build_visitor_store(cfg: Settings) -> VisitorStore:
    """Create the configured visitor store backend."""
    visitors = cfg.visitors

    if visitors.backend == "kv":
        logger.info("Using RemoteVisitorStateStore with in-memory KV backend")
        return RemoteVisitorStateStore(
            backend=InMemoryKeyValue(max_items=visitors.max_visitors),
            ttl_seconds=visitors.ttl_seconds,
        )

    logger.info(
        f"Using VisitorStateStore: max_visitors={visitors.max_visitors}, "
        f"ttl={visitors.ttl_seconds}s"
    )
    return VisitorStateStore(
        max_visitors=visitors.max_visitors,
        ttl_seconds=visitors.ttl_seconds,
        sweep_batch_size=visitors.sweep_batch_size,
    )


async def _stop_task(task: Optional[asyncio.Task], timeout: float = 5.0) -> None:
    if task is None:
        return
    try:
        await asyncio.wait_for(task, timeout=timeout)
    except asyncio.TimeoutError:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


# =============================================================================
# Application Factory
# =============================================================================

def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    All state (frame store, visitor store, background tasks) lives on
    ``app.state`` and is created in the lifespan, so every app instance is
    independent.

    Raises (at startup):
        ConfigError: If no animations can be discovered
    """
    cfg = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application lifespan manager with graceful shutdown."""
        app.state.startup_time = time.time()
        logger.info(f"Starting {cfg.service.name} {cfg.service.version}")

        selector = AnimationSelector(cfg.assets.root, offset_days=cfg.assets.day_offset)
        frame_store = FrameStore(cfg.assets.root)
        visitor_store = build_visitor_store(cfg)

        app.state.selector = selector
        app.state.frame_store = frame_store
        app.state.visitor_store = visitor_store

        # ConfigError propagates: no animations means no traffic
        selected = selector.select()
        try:
            await asyncio.to_thread(frame_store.load, selected)
        except AssetError as e:
            logger.error(f"Initial load of animation {selected!r} failed: {e}")

        sweeper = TTLSweeper(visitor_store, interval=cfg.visitors.sweep_interval_seconds)
        sweeper_task = asyncio.create_task(sweeper.run(), name="ttl_sweeper")
        app.state.sweeper = sweeper

        rotator: Optional[AnimationRotator] = None
        rotator_task: Optional[asyncio.Task] = None
        if cfg.assets.rotation_check_interval_seconds > 0:
            rotator = AnimationRotator(
                selector,
                frame_store,
                check_interval=cfg.assets.rotation_check_interval_seconds,
            )
            rotator_task = asyncio.create_task(rotator.run(), name="animation_rotator")
        app.state.rotator = rotator

        logger.info("All components started")

        yield

        logger.info("Shutting down gracefully...")

        await sweeper.stop()
        if rotator:
            await rotator.stop()
        await _stop_task(sweeper_task)
        await _stop_task(rotator_task)

        if isinstance(visitor_store, RemoteVisitorStateStore):
            await visitor_store.flush()

        logger.info("Shutdown complete")

    app = FastAPI(
        title="ascii-pet-server",
        description="Per-visitor looping animation frames",
        version=cfg.service.version,
        lifespan=lifespan,
    )

    # =========================================================================
    # HTTP Endpoints
    # =========================================================================

    @app.get("/")
    async def serve_frame(request: Request) -> Response:
        """Serve this visitor's next animation frame."""
        animation = request.app.state.frame_store.snapshot()
        if animation is None or animation.frame_count == 0:
            return PlainTextResponse("frames-unavailable", status_code=503)

        fingerprint = make_fingerprint(
            client_address(request, cfg.http.client_ip_header),
            request.headers.get("User-Agent", ""),
            query=request.url.query if cfg.visitors.include_query else None,
            max_bytes=cfg.visitors.max_key_bytes,
            hashed=cfg.visitors.hash_keys,
        )

        index = await request.app.state.visitor_store.advance(
            fingerprint, animation.frame_count
        )
        frame = animation.get(index)

        headers = {**BASE_HEADERS, **frame.headers}
        payload = frame.payload

        if frame.is_gzipped:
            # Body depends on Accept-Encoding for precompressed frames
            headers["Vary"] = "Accept-Encoding"
            if not accepts_gzip(request):
                payload = gzip.decompress(payload)
                headers.pop("Content-Encoding")
                headers["Content-Length"] = str(len(payload))

        return Response(content=payload, headers=headers)

    @app.get("/health")
    async def health() -> PlainTextResponse:
        """Liveness check. Always 200 while the process is up."""
        return PlainTextResponse("ok")

    @app.get("/ready")
    async def ready(request: Request) -> JSONResponse:
        """
        Readiness check.

        Returns 200 once an animation is loaded, 503 otherwise.
        """
        frame_store: FrameStore = request.app.state.frame_store
        body = {
            "animation_id": frame_store.animation_id,
            "frame_count": frame_store.frame_count,
        }
        if frame_store.is_loaded:
            return JSONResponse({"status": "ready", **body})
        return JSONResponse({"status": "not_ready", **body}, status_code=503)

    @app.get("/metrics")
    async def metrics(request: Request) -> JSONResponse:
        """Detailed metrics for observability."""
        state = request.app.state
        rotator = state.rotator
        return JSONResponse({
            "uptime_seconds": round(time.time() - state.startup_time, 1),
            "frames": state.frame_store.metrics(),
            "visitors": state.visitor_store.metrics(),
            "sweeper": state.sweeper.metrics(),
            "rotations": rotator.rotations if rotator else 0,
            "rotation_failures": rotator.failures if rotator else 0,
        })

    return app


app = create_app()


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ascii_pet.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )
