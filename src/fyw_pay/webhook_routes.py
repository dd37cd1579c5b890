"""
Gateway webhook receivers
The signature is checked against the raw body before anything else; once it
passes, the gateway always gets a 200 so it stops redelivering.
"""
import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from .dependencies import get_reconciliation_service
from .exceptions import NotFoundError, UnauthorizedError
from .services.reconciliation_service import PaymentReconciliationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])

ACK = {"status": "ok"}


async def _handle_webhook(
    provider: str,
    request: Request,
    reconciliation: PaymentReconciliationService,
) -> dict:
    gateway = request.app.state.gateways.get(provider)
    if gateway is None:
        raise NotFoundError(f"Payment provider {provider} is not configured")

    body = await request.body()
    if not gateway.verify_webhook_signature(body, request.headers):
        logger.warning(f"Invalid {provider} webhook signature received")
        raise UnauthorizedError("Invalid signature")

    try:
        payload = json.loads(body)
    except ValueError:
        logger.warning(f"Signed {provider} webhook body is not valid JSON; ignoring")
        return ACK
    if not isinstance(payload, dict):
        logger.warning(f"Signed {provider} webhook body is not a JSON object; ignoring")
        return ACK

    try:
        outcome = await run_in_threadpool(reconciliation.process_webhook, provider, payload)
        logger.info(f"{provider} webhook {payload.get('event')!r}: {outcome.value}")
    except Exception as e:
        await run_in_threadpool(reconciliation.db.rollback)
        logger.warning(f"{provider} webhook processing failed: {e}", exc_info=True)
    return ACK


@router.post("/paystack")
async def paystack_webhook(
    request: Request,
    reconciliation: PaymentReconciliationService = Depends(get_reconciliation_service),
):
    """Paystack events, signed with HMAC-SHA512 in x-paystack-signature"""
    return await _handle_webhook("paystack", request, reconciliation)


@router.post("/flutterwave")
async def flutterwave_webhook(
    request: Request,
    reconciliation: PaymentReconciliationService = Depends(get_reconciliation_service),
):
    """Flutterwave events, authenticated by the verif-hash header"""
    return await _handle_webhook("flutterwave", request, reconciliation)
