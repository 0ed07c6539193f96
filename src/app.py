"""OrderDesk FastAPI application.

Operator console backend for post-sale order reconciliation. Commands are
processed synchronously per request inside the reconciliation domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from reconciliation/domain.toml.
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from reconciliation.domain import reconciliation
from reconciliation.utils.logging import configure_logging

if os.getenv("PROTEAN_ENV") != "test":
    configure_logging()

reconciliation.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="OrderDesk API",
    description="Order reconciliation: cancellations, returns, refunds and operator views",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_DOMAIN_PREFIXES = ("/orders", "/views", "/gateway")


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the reconciliation domain context for domain routes."""
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        with reconciliation.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs, etc.
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from reconciliation.api import (  # noqa: E402
    gateway_router,
    order_router,
    register_error_handlers,
    view_router,
)

register_error_handlers(app)
app.include_router(order_router)
app.include_router(view_router)
app.include_router(gateway_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {"reconciliation": {"name": reconciliation.name}},
        }
    )
