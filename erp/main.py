"""FastAPI application entrypoint."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from erp.api.v1 import v1_router
from erp.core.config import get_settings
from erp.core.database import close_db, init_db
from erp.core.errors import AccessDenied, ProvisioningError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    logging.basicConfig(level=get_settings().log_level.upper())
    # Startup: ensure tables exist (use Alembic in production)
    await init_db()
    yield
    await close_db()


app = FastAPI(
    title="Manufacturing ERP",
    version="0.1.0",
    description="Multi-tenant manufacturing ERP: tenant provisioning and access control",
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────
_settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in _settings.allowed_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Error mapping ────────────────────────────────────────────

@app.exception_handler(AccessDenied)
async def access_denied_handler(_request: Request, exc: AccessDenied) -> JSONResponse:
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": type(exc).__name__},
        headers=headers,
    )


@app.exception_handler(ProvisioningError)
async def provisioning_error_handler(_request: Request, exc: ProvisioningError) -> JSONResponse:
    if exc.compensation_failures:
        logger.error(
            "%s left orphaned resources: %s",
            type(exc).__name__,
            ", ".join(f.step for f in exc.compensation_failures),
        )
    content = {"detail": exc.detail, "error": type(exc).__name__}
    kind = getattr(exc, "kind", None)
    if kind is not None:
        content["kind"] = str(kind)
    return JSONResponse(status_code=exc.status_code, content=content)


# ── API routes ───────────────────────────────────────────────
app.include_router(v1_router)


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    return {"status": "ok"}
