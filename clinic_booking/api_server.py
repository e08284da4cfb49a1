"""FastAPI server for the WhatsApp clinic booking bot.

Features:
- WhatsApp Cloud API webhook (verification handshake + inbound messages)
- Global exception handling
- Health check endpoint
- Structured logging with per-request IDs
- Background sweep of stale sessions and reservations
"""
import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from clinic_booking import __version__
from clinic_booking.api.dependencies import get_controller, get_sweeper
from clinic_booking.api.models import WHATSAPP_OBJECT, ErrorResponse, WebhookPayload
from clinic_booking.booking_flow import BookingFlowController
from clinic_booking.config import Settings, get_settings
from clinic_booking.database import close_database, init_database
from clinic_booking.logging_config import (
    RequestIDMiddleware,
    get_logger,
    setup_structured_logging,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown logic."""
    settings = get_settings()
    setup_structured_logging(settings.log_level)
    logger.info("server_starting", version=__version__)

    try:
        init_database()
    except Exception:
        logger.exception("database_init_failed")
        raise

    sweep_task = asyncio.create_task(get_sweeper().run())
    logger.info("sweeper_started")

    yield

    sweep_task.cancel()
    try:
        await sweep_task
    except asyncio.CancelledError:
        logger.info("sweeper_cancelled")

    close_database()
    logger.info("server_stopped")


app = FastAPI(
    title="Clinic Booking WhatsApp Bot",
    description="Appointment booking over WhatsApp for Orthopedics and ENT",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(RequestIDMiddleware)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors consistently."""
    logger.warning("request_validation_failed", errors=str(exc.errors()))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="Validation Error",
            detail=str(exc.errors()),
            code="VALIDATION_ERROR"
        ).model_dump()
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected exceptions."""
    logger.error("unexpected_error", error=str(exc), exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal Server Error",
            detail="An unexpected error occurred. Please try again later.",
            code="INTERNAL_ERROR"
        ).model_dump()
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for load balancers."""
    return {
        "status": "healthy",
        "service": "clinic-booking-bot",
        "version": __version__
    }


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Clinic Booking WhatsApp Bot",
        "webhook": "/webhook",
        "health": "/health"
    }


@app.get("/webhook", tags=["Webhook"])
async def verify_webhook(
    mode: Optional[str] = Query(None, alias="hub.mode"),
    token: Optional[str] = Query(None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(None, alias="hub.challenge"),
    settings: Settings = Depends(get_settings)
):
    """
    Meta subscription handshake.

    Echoes hub.challenge when hub.mode is "subscribe" and the verify token
    matches WHATSAPP_VERIFY_TOKEN.
    """
    expected = settings.whatsapp_verify_token
    if mode == "subscribe" and expected and token == expected:
        logger.info("webhook_verified")
        return PlainTextResponse(challenge or "")

    logger.warning("webhook_verification_failed", mode=mode)
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content=ErrorResponse(
            error="Forbidden",
            detail="Webhook verification failed",
            code="VERIFICATION_FAILED"
        ).model_dump()
    )


@app.post("/webhook", tags=["Webhook"])
async def receive_webhook(
    payload: WebhookPayload,
    controller: BookingFlowController = Depends(get_controller)
):
    """
    Route inbound text messages to the booking flow, in delivery order.

    Returns:
        200 for any WhatsApp payload, so the platform does not redeliver

    Raises:
        400: Payload is not a WhatsApp Business Account event
        422: Validation error
    """
    if payload.object != WHATSAPP_OBJECT:
        logger.warning("webhook_unexpected_object", object=payload.object)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorResponse(
                error="Bad Request",
                detail=f"Unsupported object: {payload.object}",
                code="UNSUPPORTED_OBJECT"
            ).model_dump()
        )

    messages = payload.text_messages()
    for message in messages:
        await controller.handle_message(message.sender, message.text.body)

    return {"status": "ok", "processed": len(messages)}
