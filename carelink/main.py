from contextlib import asynccontextmanager
from typing import Optional

import socketio
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from carelink.config import settings
from carelink.database import Database
from carelink.features.auth.router import router as auth_router
from carelink.features.caregivers.router import router as caregivers_router
from carelink.features.alerts.router import router as alerts_router
from carelink.features.alerts.service import AlertDispatcher
from carelink.realtime.channel import BroadcastChannel
from carelink.realtime.namespace import CaregiverNamespace
from carelink.shared.schemas import ErrorResponse
from carelink.core.logging import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for FastAPI application."""
    # Startup
    logger.info("Starting CareLink API...")
    await Database.connect_db()
    logger.info("Application started successfully")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await app.state.channel.wait_idle()
    await Database.close_db()
    logger.info("Application shutdown complete")


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors as {"success": false, "message": ...}."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(message=str(exc.detail)).model_dump(),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render request validation errors in the same envelope, keeping 422."""
    errors = jsonable_encoder(exc.errors())
    message = errors[0]["msg"] if errors else "Invalid request"
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(message=message, detail={"errors": errors}).model_dump(),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    """Log unexpected failures; hide their details in production."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")

    message = "Internal server error" if settings.is_production else f"{type(exc).__name__}: {exc}"
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(message=message).model_dump(),
    )


def create_app(sio: Optional[socketio.AsyncServer] = None) -> FastAPI:
    """
    Build the API and its realtime channel.

    The Socket.IO server, the broadcast channel and the alert dispatcher
    are created once here and attached to `app.state`.
    """
    if sio is None:
        sio = socketio.AsyncServer(
            async_mode="asgi",
            cors_allowed_origins=settings.cors_origins,
            logger=False,
            engineio_logger=False,
        )

    channel = BroadcastChannel(
        sio,
        namespace=settings.SOCKETIO_NAMESPACE,
        timeout=settings.BROADCAST_TIMEOUT_SECONDS,
    )
    dispatcher = AlertDispatcher(channel)
    sio.register_namespace(CaregiverNamespace(channel, dispatcher))

    app = FastAPI(
        title=settings.APP_NAME,
        description="Caregiver directory, SOS alerts and realtime caregiver notifications",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.sio = sio
    app.state.channel = channel
    app.state.dispatcher = dispatcher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Register routers
    app.include_router(auth_router, prefix=settings.API_V1_PREFIX)
    app.include_router(caregivers_router, prefix=settings.API_V1_PREFIX)
    app.include_router(alerts_router, prefix=settings.API_V1_PREFIX)

    # Mount Socket.IO application
    app.mount("/socket.io", socketio.ASGIApp(sio))

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "version": "1.0.0",
            "docs": "/docs",
            "socket.io": "/socket.io",
            "namespace": settings.SOCKETIO_NAMESPACE,
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
        }

    return app


app = create_app()
