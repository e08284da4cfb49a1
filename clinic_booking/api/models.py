"""Pydantic models for the WhatsApp webhook."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

WHATSAPP_OBJECT = "whatsapp_business_account"


class TextBody(BaseModel):
    body: str = ""


class InboundMessage(BaseModel):
    """One message inside a webhook change. Only text messages carry `text`."""
    sender: str = Field(..., alias="from", description="Sender WhatsApp id (phone number)")
    id: Optional[str] = None
    timestamp: Optional[str] = None
    type: str = Field(..., description="text, image, interactive, ...")
    text: Optional[TextBody] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ChangeValue(BaseModel):
    messaging_product: Optional[str] = None
    messages: List[InboundMessage] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class Change(BaseModel):
    field: Optional[str] = None
    value: ChangeValue = Field(default_factory=ChangeValue)


class Entry(BaseModel):
    id: Optional[str] = None
    changes: List[Change] = Field(default_factory=list)


class WebhookPayload(BaseModel):
    """Body of POST /webhook as sent by the WhatsApp Cloud API."""
    object: str = Field(..., description="Must be whatsapp_business_account")
    entry: List[Entry] = Field(default_factory=list)

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "object": "whatsapp_business_account",
                "entry": [{
                    "id": "102290129340398",
                    "changes": [{
                        "field": "messages",
                        "value": {
                            "messaging_product": "whatsapp",
                            "messages": [{
                                "from": "919876543210",
                                "id": "wamid.HBgL",
                                "timestamp": "1760000000",
                                "type": "text",
                                "text": {"body": "book"}
                            }]
                        }
                    }]
                }]
            }
        }
    )

    def text_messages(self) -> List[InboundMessage]:
        """Text messages in delivery order; other types are skipped."""
        return [
            message
            for entry in self.entry
            for change in entry.changes
            for message in change.value.messages
            if message.type == "text" and message.text is not None
        ]


class ErrorResponse(BaseModel):
    """Error response schema."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error information")
    code: Optional[str] = Field(None, description="Error code")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Validation Error",
                "detail": "object: field required",
                "code": "VALIDATION_ERROR"
            }
        }
    )
