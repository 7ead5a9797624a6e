"""NearBuy pre-bill FastAPI application.

Serves the customer pre-bill (cart grouped by shop, packing requests) and the
shop-owner side of packing requests. Session state lives in the configured
key-value store; shops and products come from the configured catalog.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from prebill.catalog import get_catalog
from prebill.store import get_store
from prebill.utils.logging import bind_request_context, clear_request_context, configure_logging, get_environment

configure_logging()

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Logging is configured first so the domain keeps our handlers.
from prebill.domain import prebill  # noqa: E402

prebill.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="NearBuy Pre-bill API",
    description="Customer pre-bill and per-shop packing requests",
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
    """Run every request inside the pre-bill domain context, with fresh log context."""
    clear_request_context()
    bind_request_context(method=request.method, path=request.url.path)
    with prebill.domain_context():
        response = await call_next(request)
    return response


from prebill.api.handlers import register_exception_handlers  # noqa: E402

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from prebill.api.routes import packing_router, prebill_router  # noqa: E402

app.include_router(prebill_router)
app.include_router(packing_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domain": prebill.name,
            "environment": get_environment(),
            "store": type(get_store()).__name__,
            "catalog": type(get_catalog()).__name__,
        }
    )
