"""
Payment routes: start a hosted checkout and verify the outcome
"""
import logging

from fastapi import APIRouter, Depends, Query

from .dependencies import get_reconciliation_service
from .schemas import CheckoutOut, InitializePaymentRequest, PaymentOut, success_response
from .services.reconciliation_service import PaymentReconciliationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["Payments"])


@router.post("/initialize")
def initialize_payment(
    request: InitializePaymentRequest,
    reconciliation: PaymentReconciliationService = Depends(get_reconciliation_service),
):
    """
    Create a pending payment and return the gateway checkout URL

    Returns 400 when the amount is not positive or the package is already
    fully paid, 404 for an unknown student and 502 when the gateway fails.
    """
    result = reconciliation.initialize_payment(request.student_id, request.amount, request.email)
    return success_response(
        CheckoutOut(**result),
        message="Payment initialized successfully",
    )


@router.get("/verify")
def verify_payment(
    reference: str = Query(..., min_length=1, max_length=64),
    reconciliation: PaymentReconciliationService = Depends(get_reconciliation_service),
):
    """Reconcile a payment with the gateway after the checkout redirect"""
    payment = reconciliation.verify_payment(reference)
    return success_response(
        PaymentOut.model_validate(payment),
        message="Payment verified successfully",
    )
