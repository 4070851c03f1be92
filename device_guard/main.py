"""Main FastAPI application for Device Guard."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from device_guard import db
from device_guard.config import APP_VERSION, CORS_ORIGINS, LOG_LEVEL
from device_guard.errors import BadRequest, StorageError, TagMutationError
from device_guard.rate_limit import limiter
from device_guard.routers import accounts, devices, health, verification
from device_guard.services.accounts import AccountRegistry, DeviceLedger
from device_guard.services.email import CodeMailer
from device_guard.services.gate import DeviceGate
from device_guard.services.otp import OtpManager
from device_guard.services.settings import StorefrontSettings
from device_guard.services.shopify import ShopifyClient

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def build_shopify_client() -> ShopifyClient:
    return ShopifyClient.from_config()


def build_mailer() -> CodeMailer:
    return CodeMailer.from_config()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await db.init_db()

    settings = StorefrontSettings()
    registry = AccountRegistry(settings)
    ledger = DeviceLedger()
    shopify = build_shopify_client()

    app.state.settings = settings
    app.state.registry = registry
    app.state.ledger = ledger
    app.state.gate = DeviceGate(registry, ledger, settings)
    app.state.shopify = shopify
    app.state.otp = OtpManager(shopify)
    app.state.mailer = build_mailer()
    logger.info("[SERVER] Device Guard %s started", APP_VERSION)

    try:
        yield
    finally:
        await shopify.close()
        await db.close_db()


app = FastAPI(
    title="Device Guard API",
    description="Per-account device limits and email verification codes for a storefront",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(devices.router)
app.include_router(verification.router)
app.include_router(accounts.router)


# ── Error mapping ─────────────────────────────────────────────────────────


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message},
    )


@app.exception_handler(BadRequest)
async def bad_request_handler(request: Request, exc: BadRequest) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Malformed request."
    return _error(status.HTTP_400_BAD_REQUEST, message)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.exception(
        "[SERVER ERROR] %s %s: %s", request.method, request.url.path, exc, exc_info=exc
    )
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error.")


@app.exception_handler(TagMutationError)
async def tag_error_handler(request: Request, exc: TagMutationError) -> JSONResponse:
    logger.error("Shopify call failed on %s: %s", request.url.path, exc)
    return _error(status.HTTP_502_BAD_GATEWAY, "Storefront API unavailable.")


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return _error(status.HTTP_429_TOO_MANY_REQUESTS, f"Rate limit exceeded: {exc.detail}")
