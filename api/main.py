"""
Storefront Checkout API - Main Application.

Wires settings, logging, CORS and the cart / purchase / ticket routers. Domain
errors that escape a route (typically from the principal lookup) are turned
into an ErrorResponse body here.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from api.dependencies import status_for
from api.models import ErrorResponse
from config import get_settings
from domain.errors import CheckoutError
from logging_config import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Storefront Checkout API",
    description="Carts, checkout with partial fulfillment, and purchase tickets",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CheckoutError)
def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("Unhandled domain error", extra={"path": request.url.path, "code": exc.code.value})
    body = ErrorResponse(error=exc.code.value, detail=str(exc), status_code=status_code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Reports the service version; does not touch the database.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "storefront-checkout-api"
    }


@app.get("/", tags=["Root"])
def root():
    return {
        "message": "Storefront Checkout API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


from api.routers import carts, purchases, tickets  # noqa: E402

app.include_router(carts.router, prefix="/api/v1", tags=["Carts"])
app.include_router(purchases.router, prefix="/api/v1", tags=["Purchases"])
app.include_router(tickets.router, prefix="/api/v1", tags=["Tickets"])
