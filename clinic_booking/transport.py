"""Outbound WhatsApp Cloud API transport.

send() is fire-and-forget for the booking flow: failures are logged and
reported as False, never raised and never retried inline.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import requests

from clinic_booking.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from clinic_booking.config import Settings, get_settings
from clinic_booking.http_client import create_http_session
from clinic_booking.logging_config import get_logger

logger = get_logger(__name__)


class TransportNotConfiguredError(Exception):
    """Raised when WhatsApp credentials are missing."""
    pass


@dataclass(frozen=True)
class TextContent:
    body: str


@dataclass(frozen=True)
class Action:
    """A reply button. WhatsApp allows up to 3 per message, titles up to 20 chars."""
    id: str
    title: str


@dataclass(frozen=True)
class InteractivePrompt:
    body: str
    actions: List[Action] = field(default_factory=list)


Content = Union[TextContent, InteractivePrompt]


def build_payload(recipient_id: str, content: Content) -> Dict[str, Any]:
    """
    Serialize content into a Cloud API message body.

    Raises:
        ValueError: For an interactive prompt without 1-3 actions
    """
    payload: Dict[str, Any] = {
        "messaging_product": "whatsapp",
        "recipient_type": "individual",
        "to": recipient_id,
    }

    if isinstance(content, TextContent):
        payload["type"] = "text"
        payload["text"] = {"body": content.body}
        return payload

    if not 1 <= len(content.actions) <= 3:
        raise ValueError("Interactive prompts need between 1 and 3 actions")

    payload["type"] = "interactive"
    payload["interactive"] = {
        "type": "button",
        "body": {"text": content.body},
        "action": {
            "buttons": [
                {"type": "reply", "reply": {"id": action.id, "title": action.title[:20]}}
                for action in content.actions
            ]
        },
    }
    return payload


class WhatsAppTransport:
    """Posts messages to the Graph API messages endpoint."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        breaker: Optional[CircuitBreaker] = None
    ):
        self.settings = settings or get_settings()
        self.session = session or create_http_session()
        self.breaker = breaker or CircuitBreaker("whatsapp", failure_threshold=5, reset_timeout=60)

    @property
    def configured(self) -> bool:
        return bool(self.settings.whatsapp_token and self.settings.whatsapp_phone_number_id)

    def _post(self, payload: Dict[str, Any]) -> requests.Response:
        if not self.configured:
            raise TransportNotConfiguredError(
                "WHATSAPP_TOKEN and WHATSAPP_PHONE_NUMBER_ID must be set"
            )

        def make_request():
            response = self.session.post(
                self.settings.whatsapp_messages_url,
                headers={"Authorization": f"Bearer {self.settings.whatsapp_token}"},
                json=payload,
            )
            response.raise_for_status()
            return response

        return self.breaker.call(make_request)

    async def send(self, recipient_id: str, content: Content) -> bool:
        """
        Deliver a message.

        Args:
            recipient_id: WhatsApp user id (phone number)
            content: TextContent or InteractivePrompt

        Returns:
            True if the API accepted the message
        """
        try:
            payload = build_payload(recipient_id, content)
            await asyncio.to_thread(self._post, payload)
        except TransportNotConfiguredError as e:
            logger.error("whatsapp_not_configured", error=str(e))
            return False
        except CircuitBreakerOpen as e:
            logger.warning("whatsapp_circuit_open", recipient=recipient_id, retry_after=e.retry_after)
            return False
        except requests.exceptions.HTTPError as e:
            logger.error("whatsapp_send_rejected", recipient=recipient_id,
                         status=e.response.status_code if e.response is not None else None,
                         body=e.response.text if e.response is not None else None)
            return False
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error("whatsapp_send_failed", recipient=recipient_id, error=str(e))
            return False

        logger.info("whatsapp_message_sent", recipient=recipient_id, type=payload["type"])
        return True
