"""
Dropp Gateway - FastAPI Application

Merchant-side Dropp payment integration: checkout creation, wallet callback
reconciliation (own account and sub-merchants), refunds, status polling,
Hedera verification and transaction listing.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from .config import settings
from .exceptions import GatewayError, ValidationError
from .clients.dropp_client import DroppClient
from .clients.mirror_node import MirrorNodeClient
from .clients.record_store import TransactionRecordClient
from .api.payments import router as payments_router
from .api.verification import router as verification_router
from .api.transactions import router as transactions_router
from .api.refunds import router as refunds_router
from .api.debug import router as debug_router


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    - Startup: create one HTTP client per outbound collaborator
    - Shutdown: close them
    """
    logger.info("Starting Dropp gateway...")
    logger.info(f"Dropp environment: {settings.dropp_environment} ({settings.dropp_base_url})")
    logger.info(f"Transaction record store: {settings.transaction_base_url}")
    logger.info(f"Hedera mirror node: {settings.hedera_mirror_node_url}")

    if not settings.dropp_merchant_id:
        logger.warning("DROPP_MERCHANT_ID is not set; checkouts must supply merchantAccount")
    if not settings.dropp_merchant_signing_key:
        logger.warning("DROPP_MERCHANT_SIGNING_KEY is not set; submissions rely on per-transaction keys")

    app.state.record_client = TransactionRecordClient(
        settings.transaction_base_url, settings.http_timeout_seconds
    )
    app.state.dropp_client = DroppClient(
        settings.dropp_base_url,
        settings.http_timeout_seconds,
        portal_url=settings.dropp_portal_url
    )
    app.state.mirror_client = MirrorNodeClient(
        settings.hedera_mirror_node_url, settings.http_timeout_seconds
    )

    logger.info("Server startup complete")

    yield

    logger.info("Shutting down Dropp gateway...")
    for client in (app.state.record_client, app.state.dropp_client, app.state.mirror_client):
        try:
            await client.close()
        except Exception as e:
            logger.error(f"Error closing HTTP client: {e}")


app = FastAPI(
    title="Dropp Gateway API",
    description="Merchant-side Dropp checkout, callback reconciliation and Hedera verification",
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    """
    Render gateway errors as {"success": false, "error", "error_code", "details"}.

    ValidationError is a caller problem and logged at info level.
    """
    if isinstance(exc, ValidationError):
        logger.info(f"Validation error on {request.url.path}: {exc.message}")
    elif exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}", extra={"details": exc.details})
    else:
        logger.warning(f"{exc.error_code} on {request.url.path}: {exc.message}")

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    """
    Catch-all handler for unexpected errors.

    Logs full exception for debugging but returns generic message to client.
    """
    logger.error(f"Unexpected error: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "error_code": "internal_error",
            "details": {}
        }
    )


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring and load balancers."""
    return {
        "status": "healthy",
        "version": "0.1.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.dropp_environment,
    }


app.include_router(payments_router, prefix="/api/payments", tags=["Payments"])
app.include_router(verification_router, prefix="/api/payments", tags=["Verification"])
app.include_router(transactions_router, prefix="/api/payments", tags=["Transactions"])
app.include_router(refunds_router, prefix="/api/payments", tags=["Refunds"])
app.include_router(debug_router, prefix="/api/payments", tags=["Debug"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "dropp_gateway.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower()
    )
