"""
Form design engine HTTP application.

Wires the design, builder and preview routers onto a FastAPI app and
adds logging setup, CORS, response security headers and the probes
used by the deployment.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from formdesign import __version__
from formdesign.config import get_settings
from formdesign.dependencies import get_remote_client
from formdesign.routers import builder, designs, preview
from formdesign.schemas.api import HealthResponse

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if get_settings().env == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    settings.designs_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Storing designs in {settings.designs_dir.resolve()}")

    yield

    await get_remote_client().close()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Form Design Engine",
        description=(
            "Build multi-page form designs, preview them as paginated "
            "screens, and run their page flow."
        ),
        version=__version__,
        docs_url="/api/docs" if settings.env != "production" else None,
        redoc_url="/api/redoc" if settings.env != "production" else None,
        openapi_url="/api/openapi.json" if settings.env != "production" else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    app.add_middleware(SecurityHeadersMiddleware)

    app.include_router(designs.router)
    app.include_router(builder.router)
    app.include_router(preview.router)

    @app.get("/health", tags=["health"], response_model=HealthResponse)
    async def health_check():
        """Report service status and version."""
        return HealthResponse(status="healthy", version=__version__)

    @app.get("/health/liveness", tags=["health"])
    async def liveness_check():
        """Liveness probe."""
        return {"status": "alive"}

    @app.get("/health/readiness", tags=["health"])
    async def readiness_check():
        """Ready once the design directory exists."""
        if not settings.designs_dir.exists():
            return JSONResponse(
                status_code=503,
                content={"status": "not ready", "reason": "Design storage unavailable"},
            )
        return {"status": "ready"}

    @app.get("/health/startup", tags=["health"])
    async def startup_check():
        """Startup probe."""
        return {"status": "started"}

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        if settings.debug:
            return JSONResponse(
                status_code=500,
                content={"detail": str(exc), "type": type(exc).__name__},
            )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "formdesign.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.env == "development",
        workers=1 if settings.env == "development" else settings.workers,
    )
