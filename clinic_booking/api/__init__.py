"""API package initialization."""
from clinic_booking.api.models import ErrorResponse, WebhookPayload

__all__ = ["ErrorResponse", "WebhookPayload"]
