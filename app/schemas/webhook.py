"""
app/schemas/webhook.py

Purpose: WhatsApp webhook payload schemas and parsers

- Validates incoming Twilio messages
- Normalizes them into InboundMessage
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class InboundMessage(BaseModel):
    """
    Normalized message format for internal processing
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "identity": "+15551234567",
                "text": "Hi",
                "message_id": "SM1234567890",
            }
        }
    )

    identity: str = Field(..., description="Sender identity in E.164 format")
    text: str = Field(default="", description="Message text content")
    message_id: Optional[str] = Field(default=None, description="Twilio MessageSid, used for log correlation")


def parse_twilio_message(
    from_number: str,
    body: Optional[str],
    message_sid: Optional[str] = None
) -> InboundMessage:
    """
    Parses Twilio WhatsApp webhook payload

    Twilio format (form data):
    - From: whatsapp:+15551234567
    - Body: message text
    - MessageSid: SM...
    """
    # Remove 'whatsapp:' prefix if present
    identity = from_number.replace("whatsapp:", "").strip()

    return InboundMessage(
        identity=identity,
        text=body or "",
        message_id=message_sid,
    )
