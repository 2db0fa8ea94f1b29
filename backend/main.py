import asyncio
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from backend.api import cur_version, version_prefix
from backend.api.routers import admin_routers, public_routers
from backend.common.custom_exceptions import register_all_exceptions
from backend.common.logging_setup import get_logger, setup_logging, shutdown_logging
from backend.config.admin_config import admin_config
from backend.config.settings import config_settings
from backend.db.connection import async_engine, async_session, init_models
from backend.middlewares.auth_middleware import AuthenticationMiddleware
from backend.middlewares.rate_limit_middleware import RateLimitMiddleware
from backend.middlewares.request_id_middleware import RequestIdMiddleware
from backend.middlewares.security_headers_middleware import SecurityHeadersMiddleware
from backend.payments.gateway import build_payment_gateway
from backend.rate_limiting.utils import build_rate_limiter
from backend.realtime.hub import Hub
from backend.realtime.routes import websocket_endpoint
from backend.shipping.gateway import build_shipping_gateway

logger = get_logger("pashmiya.app")


async def _sweep_rate_limits(app: FastAPI, interval: int):
    while True:
        await asyncio.sleep(interval)
        try:
            dropped = await app.state.rate_limiter.sweep()
        except Exception:
            # retried on the next tick
            logger.exception("rate_limit.sweep_failed")
            continue
        if dropped:
            logger.debug("rate_limit.swept", extra={"dropped": dropped})


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    setup_logging()

    if config_settings.DB_AUTO_CREATE:
        await init_models()

    app.state.payment_gateway = build_payment_gateway(config_settings)
    app.state.shipping_gateway = build_shipping_gateway(config_settings)
    app.state.rate_limiter = build_rate_limiter(config_settings)
    app.state.ws_hub = Hub(buffer_size=config_settings.WS_SEND_BUFFER)

    sweeper = asyncio.create_task(_sweep_rate_limits(app, config_settings.RATE_LIMIT_SWEEP_SECONDS))
    logger.info("app.started", extra={"payments_configured": config_settings.razorpay_configured,
                                      "shipping_configured": config_settings.shiprocket_configured,
                                      "rate_limit_backend": config_settings.RATE_LIMIT_BACKEND})

    try:
        yield
    finally:
        # at this point new requests accept has been stopped already before calling shutdown
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass
        await app.state.rate_limiter.close()
        await app.state.ws_hub.close_all()
        await async_engine.dispose()
        logger.info("app.stopped")
        shutdown_logging()


def create_app():
    app = FastAPI(
        title="Pashmiya Store",
        version=cur_version,
        lifespan=app_lifespan)

    app.include_router(public_routers)
    if admin_config.ENABLE_ADMIN:
        app.include_router(admin_routers)      # mounts /api/admin

    app.add_api_websocket_route("/ws", websocket_endpoint)

    # added innermost first , the request id is set before anything else runs
    app.add_middleware(RateLimitMiddleware,
                       limit=config_settings.API_RATE_LIMIT,
                       window=config_settings.RATE_LIMIT_WINDOW,
                       exempt_paths=(f"{version_prefix}/health", f"{version_prefix}/webhooks"))
    app.add_middleware(AuthenticationMiddleware, session_maker=async_session,
                       paths=[f"{version_prefix}/health",
                              f"{version_prefix}/webhooks",
                              "/ws", "/docs", "/openapi.json", "/redoc"],
                       maybe_auth_paths=[f"{version_prefix}/auth/",
                                         f"{version_prefix}/products",
                                         f"{version_prefix}/filters",
                                         f"{version_prefix}/categories",
                                         f"{version_prefix}/catalogues",
                                         f"{version_prefix}/newsletter",
                                         f"{version_prefix}/orders",
                                         f"{version_prefix}/payments",
                                         f"{version_prefix}/shipping",
                                         f"{version_prefix}/coupons"])
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(CORSMiddleware,
                       allow_origins=["*"] if admin_config.ENV == "dev" else config_settings.allowed_origins,
                       allow_credentials=admin_config.ENV != "dev",
                       allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
                       allow_headers=["Authorization", "Content-Type", "X-Request-ID"])
    register_all_exceptions(app)

    return app

app = create_app()
