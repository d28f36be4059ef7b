"""
Meta webhook endpoint.

GET answers the subscription handshake, POST verifies the signature over
the raw body and ingests the delivery. Callers only ever see coarse
success or failure.
"""

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from omnichat.api.dependencies import get_gateway
from omnichat.core.exceptions import SignatureValidationError, WebhookVerificationError
from omnichat.core.logging.logger import get_api_logger
from omnichat.webhooks.gateway import WebhookGateway

logger = get_api_logger(__name__)

router = APIRouter(
    prefix="/webhooks",
    tags=["Webhooks"],
    responses={
        401: {"description": "Unauthorized - Invalid signature"},
        403: {"description": "Forbidden - Webhook verification failed"},
        500: {"description": "Internal Server Error"},
    },
)


@router.get("/meta", response_class=PlainTextResponse)
async def verify_webhook(
    hub_mode: str | None = Query(None, alias="hub.mode"),
    hub_verify_token: str | None = Query(None, alias="hub.verify_token"),
    hub_challenge: str | None = Query(None, alias="hub.challenge"),
    gateway: WebhookGateway = Depends(get_gateway),
):
    """Echo hub.challenge when the mode is subscribe and the verify token matches."""
    try:
        challenge = gateway.challenge(hub_mode, hub_verify_token, hub_challenge)
    except WebhookVerificationError:
        return PlainTextResponse("Forbidden", status_code=403)
    return PlainTextResponse(challenge)


@router.post("/meta")
async def receive_webhook(
    request: Request,
    x_hub_signature_256: str | None = Header(None),
    gateway: WebhookGateway = Depends(get_gateway),
):
    """Verify, dedupe, log and route one webhook delivery."""
    raw_body = await request.body()

    if not gateway.verify(raw_body, x_hub_signature_256):
        logger.warning("🚫 Rejected webhook with invalid signature")
        raise SignatureValidationError()

    try:
        result = await gateway.ingest(raw_body)
    except Exception as e:
        logger.exception(f"❌ Meta webhook ingest error: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})

    return result.model_dump(exclude_none=True)
