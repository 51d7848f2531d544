# finsage/main.py
from contextlib import asynccontextmanager
import logging
import time
from typing import AsyncGenerator, Awaitable, Callable, Dict

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from .core.broadcast import connect_broadcast, disconnect_broadcast
from .core.config import settings
from .core.constants import BRAND_NAME
from .core.request_context import (
    REQUEST_ID_HEADER,
    attach_request_id_filter,
    new_request_id,
    reset_request_id,
    set_request_id,
)
from .errors import register_error_handlers
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import conversations, credits, inquiries, internal, payments
from .services.template_service import TemplateService

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
attach_request_id_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")

    # Smoke-check: render templates without sending to catch syntax errors early
    try:
        TemplateService().smoke_check()
        logger.info("Template smoke-check passed")
    except Exception as e:
        logger.error(f"Template smoke-check failed: {e}")

    try:
        await connect_broadcast()
        logger.info("[BROADCAST] Change feed initialized")
    except Exception as e:
        logger.error(f"[BROADCAST] Failed to initialize broadcaster: {e}")
        # Don't fail startup; publishing degrades to a logged no-op

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")
    try:
        await disconnect_broadcast()
    except Exception as e:
        logger.error(f"[BROADCAST] Error disconnecting broadcaster: {e}")


app = FastAPI(
    title=f"{BRAND_NAME} API",
    description="Financial-wellness coaching marketplace",
    version="1.0.0",
    lifespan=app_lifespan,
)

register_error_handlers(app)


@app.middleware("http")
async def request_context_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Tag the request with an id for log correlation and record its latency."""
    request_id = new_request_id(request.headers.get(REQUEST_ID_HEADER))
    token = set_request_id(request_id)
    start = time.perf_counter()
    try:
        response = await call_next(request)
    finally:
        reset_request_id(token)
    response.headers[REQUEST_ID_HEADER] = request_id

    route = request.scope.get("route")
    endpoint = getattr(route, "path", None) or "unmatched"
    prometheus_metrics.record_http_request(
        request.method, endpoint, time.perf_counter() - start, response.status_code
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")

api_v1.include_router(conversations.router, prefix="/conversations")
api_v1.include_router(payments.payments_router, prefix="/payments")
api_v1.include_router(payments.bookings_router, prefix="/bookings")
api_v1.include_router(credits.router, prefix="/credits")
api_v1.include_router(inquiries.router, prefix="/inquiries")
api_v1.include_router(internal.router, prefix="/internal")

app.include_router(api_v1)


@app.get("/health", include_in_schema=False)
def health_check() -> Dict[str, str]:
    return {"status": "healthy", "service": f"{BRAND_NAME.lower()}-api"}


@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
