"""
Webhook API Endpoints

Receive transaction status pushes from the backend and forward them to the
sender's chat.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ValidationError

from ..container import Container
from ..errors import WebhookSignatureError
from ..services.auth import number_to_chat_id
from ..services.notifications import format_webhook_update
from ..types import WebhookPayload
from . import get_container

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/webhooks")


class WebhookResponse(BaseModel):
    received: bool = True


@router.post("/transaction-update", response_model=WebhookResponse)
async def transaction_update(
    request: Request,
    container: Container = Depends(get_container),
) -> WebhookResponse:
    """Receive a signed transaction status update."""
    body = await request.body()
    verifier = container.webhook_verifier

    try:
        verifier.require_valid(body, verifier.extract_signature(request.headers))
    except WebhookSignatureError as e:
        logger.warning("Rejected transaction webhook: %s", e.message)
        raise HTTPException(status_code=401, detail=e.message)

    try:
        payload = WebhookPayload.model_validate_json(body)
    except ValidationError as e:
        logger.warning("Invalid transaction webhook payload: %s", e)
        raise HTTPException(status_code=400, detail="Invalid payload")

    logger.info("Webhook received for transaction %s: %s", payload.transaction_id, payload.status)
    chat_id = number_to_chat_id(payload.recipient_phone)
    try:
        await container.messenger.send_message(chat_id, format_webhook_update(payload))
    except Exception as e:  # noqa: BLE001
        logger.error("Error processing webhook for %s: %s", payload.transaction_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")

    return WebhookResponse()
