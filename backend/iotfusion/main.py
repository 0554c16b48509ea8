import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from iotfusion.cache import TTLCache
from iotfusion.config import API_VERSION, Settings, load_settings
from iotfusion.data_service import DataService
from iotfusion.errors import register_error_handlers
from iotfusion.routers import data, decoder
from iotfusion.sigfox_client import SigfoxClient

logger = logging.getLogger("iotfusion")

LOG_FORMAT = "%(asctime)s %(levelname)-5s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("iotfusion").setLevel(level)


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    client = SigfoxClient(
        settings.sigfox_endpoint,
        timeout=settings.request_timeout,
        retries=settings.retries,
        backoff=settings.retry_backoff,
        transport=transport,
    )
    service = DataService(client, TTLCache(settings.cache_ttl), max_records=settings.max_records)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("IoT Data Fusion Suite API starting (upstream %s)", settings.sigfox_endpoint)
        yield
        logger.info("IoT Data Fusion Suite API shutting down")

    app = FastAPI(
        title="IoT Data Fusion Suite API",
        version=API_VERSION,
        description="API for fetching, decoding and visualizing Sigfox IoT device data",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.data_service = service
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        logger.info("Incoming request: %s %s", request.method, request.url.path)
        response = await call_next(request)
        logger.info(
            "%s %s -> %s (%.0fms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start) * 1000,
        )
        return response

    register_error_handlers(app)

    app.include_router(data.router)
    app.include_router(decoder.router)

    @app.get("/health")
    def health():
        return {
            "success": True,
            "message": "IoT Data Fusion Suite API is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": API_VERSION,
        }

    return app


if __name__ == "__main__":
    import uvicorn

    _settings = load_settings()
    uvicorn.run(
        "iotfusion.main:create_app",
        factory=True,
        host=_settings.host,
        port=_settings.port,
        reload=_settings.reload,
    )
