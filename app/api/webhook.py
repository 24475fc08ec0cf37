"""
app/api/webhook.py

Purpose: WhatsApp webhook endpoint

- Receives incoming messages from Twilio
- Normalizes the payload
- Hands the message to the bot runtime as an independent task
- Returns an empty TwiML response (replies go out via the REST API)
"""

from fastapi import APIRouter, Form, HTTPException, Request
from fastapi.responses import Response
from typing import Optional

from app.core.logging import get_logger
from app.schemas.webhook import parse_twilio_message

logger = get_logger(__name__)
router = APIRouter()

EMPTY_TWIML = "<?xml version=\"1.0\" encoding=\"UTF-8\"?><Response></Response>"


@router.post("/webhook")
async def webhook_handler(
    request: Request,
    From: Optional[str] = Form(None),
    Body: Optional[str] = Form(None),
    MessageSid: Optional[str] = Form(None),
):
    """
    Twilio WhatsApp webhook.

    The message is processed in the background so Twilio gets its
    acknowledgement immediately.
    """
    if not From:
        raise HTTPException(status_code=400, detail="Invalid webhook payload")

    message = parse_twilio_message(
        from_number=From,
        body=Body,
        message_sid=MessageSid
    )

    logger.info(
        f"📱 Twilio webhook received - From: {message.identity}, Message: {message.text[:50]}"
    )

    runtime = request.app.state.runtime
    task = runtime.dispatch(message.identity, message.text, message.message_id)
    if task is None:
        raise HTTPException(status_code=503, detail="Bot is not ready")

    return Response(content=EMPTY_TWIML, media_type="application/xml")


@router.get("/webhook")
async def webhook_verification(request: Request):
    """
    Webhook verification endpoint (for platforms that require GET verification)
    """
    return {"status": "ok", "message": "Webhook endpoint is active"}
