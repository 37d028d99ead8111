import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import sessionmaker
from starlette.middleware.base import BaseHTTPMiddleware

from .api.admin_tenants import router as admin_tenants_router
from .api.channels import router as channels_router
from .api.health import router as health_router
from .api.history import router as history_router
from .api.ingest import router as ingest_router
from .api.pairing import router as pairing_router
from .api.response_builders import (
    ApiError, build_api_error_response, build_internal_error_response, build_validation_error_response
)
from .api.socket import router as socket_router
from .config import ADMIN_API_KEY, API_PREFIX, API_VERSION, CORS_ORIGINS, SOCKET_SEND_QUEUE_MAX
from .db import SessionLocal, init_db
from .gateway import ConnectionGateway
from .logging_config import setup_logging
from .middleware import TracingMiddleware
from .services.calls import CallService
from .services.channels import ChannelService
from .services.normalizer import issues_from
from .services.pairing import PairingRegistry
from .services.tenants import TenantService

setup_logging()

logger = logging.getLogger("callpanel")


class ApiVersionHeaderMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-API-Version"] = API_VERSION
        return response


def create_app(
    session_factory: Optional[sessionmaker] = None,
    admin_api_key: Optional[str] = None,
    clock: Callable[[], float] = time.monotonic,
) -> FastAPI:
    """Build the application around a session factory.

    Services, the socket gateway and the pairing registry hang off
    `app.state`, so tests can build isolated apps on their own database.
    """
    session_factory = session_factory or SessionLocal

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        logger.info("Call panel starting up", extra={"component": "api", "version": API_VERSION})
        init_db(bind=session_factory.kw.get("bind"))
        application.state.started_at = time.monotonic()
        if not application.state.admin_api_key:
            logger.warning("ADMIN_API_KEY is not set, admin routes will refuse every call", extra={"component": "api"})
        logger.info("Call panel ready", extra={"component": "api"})
        try:
            yield
        finally:
            logger.info("Call panel shutting down", extra={
                "component": "api",
                "sockets": application.state.gateway.client_count,
            })

    app = FastAPI(title="Call Panel API", version=API_VERSION, lifespan=lifespan)

    channel_service = ChannelService(session_factory)

    async def lookup_channel(slug: str):
        return await asyncio.to_thread(channel_service.find_by_slug, slug)

    gateway = ConnectionGateway(lookup_channel, queue_max=SOCKET_SEND_QUEUE_MAX)
    pairing = PairingRegistry(emit=gateway.emit, clock=clock)
    gateway.pairing = pairing

    app.state.channel_service = channel_service
    app.state.tenant_service = TenantService(session_factory)
    app.state.call_service = CallService(session_factory)
    app.state.gateway = gateway
    app.state.pairing = pairing
    app.state.admin_api_key = ADMIN_API_KEY if admin_api_key is None else admin_api_key
    app.state.started_at = time.monotonic()

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return build_api_error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return build_validation_error_response(issues_from(exc), error="Invalid request")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return build_internal_error_response()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials="*" not in CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TracingMiddleware)
    app.add_middleware(ApiVersionHeaderMiddleware)

    app.include_router(health_router)
    app.include_router(socket_router)
    app.include_router(ingest_router, prefix=API_PREFIX)
    app.include_router(pairing_router, prefix=API_PREFIX)
    app.include_router(history_router, prefix=API_PREFIX)
    app.include_router(channels_router, prefix=API_PREFIX)
    app.include_router(admin_tenants_router, prefix=API_PREFIX)

    return app


app = create_app()

# Server startup configuration
if __name__ == "__main__":
    import uvicorn

    from .config import APP_PORT

    logger.info(f"Starting call panel on port {APP_PORT}")
    uvicorn.run(
        "callpanel.main:app",
        host="0.0.0.0",
        port=APP_PORT,
        reload=False,
        access_log=True,
        log_config=None,
    )
