"""
Azura POS Bridge - point-of-sale sales ingestion for the Azura back office.
Main FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from azura_pos.config import APP_VERSION, get_settings
from azura_pos.api.router import api_router
from azura_pos.database import dispose_engine
from azura_pos.utils.logging import (
    configure_structured_logging,
    generate_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger("azura_pos")

CORS_ALLOW_HEADERS = [
    "authorization", "x-client-info", "apikey", "content-type",
    "x-loyverse-signature", "x-api-key", "x-correlation-id",
]


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Injects a correlation ID into every request context and response header."""

    async def dispatch(self, request: Request, call_next) -> Response:
        cid = request.headers.get("X-Correlation-ID") or generate_correlation_id()
        set_correlation_id(cid)
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = cid
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    settings = get_settings()
    logger.info(
        "Azura POS Bridge starting up (env=%s, sale_processor=%s)",
        settings.app_env, settings.sale_processor,
    )

    if settings.sale_processor not in ("procedure", "orm"):
        logger.warning(
            "Unknown SALE_PROCESSOR=%r - falling back to the process_pos_sale procedure",
            settings.sale_processor,
        )
    if settings.loyverse_enforce_signature and not settings.loyverse_webhook_secret:
        logger.warning(
            "LOYVERSE_ENFORCE_SIGNATURE is set without LOYVERSE_WEBHOOK_SECRET - "
            "Loyverse webhooks will not be verified."
        )

    if settings.sentry_dsn:
        try:
            import sentry_sdk
            sentry_sdk.init(
                dsn=settings.sentry_dsn,
                traces_sample_rate=0.1,
                environment=settings.app_env,
            )
            logger.info("Sentry initialized")
        except Exception as e:
            logger.warning("Sentry initialization failed: %s", str(e))

    yield

    await dispose_engine()
    logger.info("Azura POS Bridge shutdown complete")


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    configure_structured_logging(settings.log_level)

    application = FastAPI(
        title="Azura POS Bridge",
        description="POS sales ingestion: Loyverse webhook and API-key integrations",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins or ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=CORS_ALLOW_HEADERS,
    )

    # Correlation ID middleware (must be added AFTER CORS so it runs on every request)
    application.add_middleware(CorrelationIdMiddleware)

    application.include_router(api_router)

    return application


app = create_app()
