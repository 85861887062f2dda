"""Stallfront ordering FastAPI application.

Processes cart and order commands synchronously over HTTP. Each request
under an ordering prefix is wrapped in the ordering domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from ordering/domain.toml.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from ordering.catalog import get_catalog
from ordering.catalog.memory_adapter import seed_demo_catalog
from ordering.domain import ordering
from ordering.utils.logging import add_context, clear_context, configure_logging
from ordering.utils.settings import get_settings

configure_logging()
ordering.init()

if get_settings().seed_demo_catalog:
    seed_demo_catalog(get_catalog())

_ORDERING_PREFIXES = ("/cart", "/orders", "/maintenance")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Stallfront Ordering API",
    description="Customer carts, checkout and the order lifecycle for a food-stall marketplace",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the ordering domain context and bind request details to the log context."""
    clear_context()
    add_context(method=request.method, path=request.url.path, caller_id=request.headers.get("x-caller-id"))
    if request.url.path.startswith(_ORDERING_PREFIXES):
        with ordering.domain_context():
            response = await call_next(request)
        return response
    # No domain match, pass through (health check, docs)
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers and error handlers
# ---------------------------------------------------------------------------
from ordering.api.errors import register_error_handlers  # noqa: E402
from ordering.api.routes import cart_router, maintenance_router, order_router  # noqa: E402

app.include_router(cart_router)
app.include_router(order_router)
app.include_router(maintenance_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {"ordering": {"name": ordering.name}},
        }
    )
