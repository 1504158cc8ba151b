"""Marketplace FastAPI application.

Processes commands synchronously over HTTP. Every request runs inside the
marketplace domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import DomainContextMiddleware

from marketplace.domain import marketplace
from marketplace.utils.logging import bind_request_context, clear_request_context, configure_logging

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay:
#   - unset/"test" → sync processing, in-memory providers
#   - "production" → async processing, PostgreSQL + Redis via the Engine
configure_logging()
marketplace.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Marketplace API",
    description="B2B marketplace: delivery slots, carts, orders and commissions",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(
    DomainContextMiddleware,
    route_domain_map={
        "/products": marketplace,
        "/delivery-slots": marketplace,
        "/carts": marketplace,
        "/bookings": marketplace,
        "/orders": marketplace,
        "/invoices": marketplace,
        "/producers": marketplace,
    },
)


@app.middleware("http")
async def request_log_context(request: Request, call_next):
    # Every log line written while handling the request carries its id
    clear_request_context()
    request_id = request.headers.get("x-request-id") or uuid4().hex
    bind_request_context(request_id=request_id, method=request.method, path=request.url.path)
    response = await call_next(request)
    response.headers["x-request-id"] = request_id
    return response


# ---------------------------------------------------------------------------
# Routers and error handlers
# ---------------------------------------------------------------------------
from marketplace.api.carts import booking_router, cart_router  # noqa: E402
from marketplace.api.catalog import product_router, slot_router  # noqa: E402
from marketplace.api.orders import invoice_router, order_router, producer_router  # noqa: E402
from marketplace.api.errors import register_exception_handlers  # noqa: E402

register_exception_handlers(app)
for router in (product_router, slot_router, cart_router, booking_router, order_router, invoice_router, producer_router):
    app.include_router(router)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": marketplace.name})
