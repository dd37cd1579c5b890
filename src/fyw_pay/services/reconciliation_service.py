"""
Payment Reconciliation Service
Turns gateway evidence (verify calls and webhooks) into ledger and balance
updates. Both channels settle through the same routine, guarded by a
conditional update on the payment row, so a payment is credited once no
matter how many times or in which order the gateway reports it.
"""
import enum
import logging
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.base import utcnow
from ..db.models.payment import Payment, TransactionStatus
from ..db.models.student import PaymentStatus, Student
from ..db.models.webhook_event import WebhookEvent
from ..exceptions import BadRequestError, ConflictError, NotFoundError, PaymentGatewayError
from ..logging_config import bind_payment_reference
from .balance import MAX_AMOUNT, ZERO, calculate_outstanding, to_decimal
from .invite_service import InviteArtifact
from .payment_gateway import (
    GATEWAY_FAILED,
    GATEWAY_SUCCESS,
    GatewayTransaction,
    PaymentGateway,
)
from .reference import generate_reference
from .student_service import StudentService

logger = logging.getLogger(__name__)


class WebhookOutcome(str, enum.Enum):
    """What process_webhook did with a delivery"""
    IGNORED_MALFORMED = "ignored_malformed"
    DUPLICATE = "duplicate"
    RECORDED = "recorded"
    SETTLED = "settled"
    ALREADY_SETTLED = "already_settled"
    PAYMENT_NOT_FOUND = "payment_not_found"
    NEEDS_REVIEW = "needs_review"


class PaymentReconciliationService:
    """Service for payment initialization, verification and webhook settlement"""

    def __init__(
        self,
        db: Session,
        gateways: Mapping[str, PaymentGateway],
        invite_generator,
        notifier,
        config,
    ):
        """
        Initialize reconciliation service

        Args:
            db: Database session
            gateways: Payment gateways keyed by provider name
            invite_generator: Object with generate(student, package) -> InviteArtifact
            notifier: PaymentNotifier (or anything with the same methods)
            config: Config with PAYMENT_PROVIDER and FRONTEND_URL
        """
        self.db = db
        self.gateways = gateways
        self.invite_generator = invite_generator
        self.notifier = notifier
        self.config = config
        self.students = StudentService(db)

    def _gateway_for(self, provider: str) -> PaymentGateway:
        gateway = self.gateways.get(provider)
        if gateway is None:
            logger.error(f"Payment provider {provider} is not configured")
            raise PaymentGatewayError(f"Payment provider {provider} is not configured")
        return gateway

    def _get_payment(self, reference: str) -> Payment:
        payment = self.db.query(Payment).filter(Payment.reference == reference).first()
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize_payment(self, student_key: str, amount: Any, email: str) -> Dict[str, Optional[str]]:
        """
        Create a pending payment and a hosted checkout for it

        Args:
            student_key: Matric number of the paying student
            amount: Amount in naira the payer wants to pay now
            email: Payer email passed to the gateway

        Returns:
            {"redirect_url", "reference", "access_code"}

        Raises:
            NotFoundError: unknown student
            BadRequestError: non-positive amount or nothing left to pay
            ConflictError: the generated reference already exists
            PaymentGatewayError: the gateway refused or was unreachable
        """
        student = self.students.get_by_matric_number(student_key)
        package = student.package

        try:
            amount = to_decimal(amount)
        except (ArithmeticError, ValueError, TypeError):
            raise BadRequestError("Amount must be a number")
        if not amount.is_finite() or amount <= ZERO:
            raise BadRequestError("Amount must be greater than 0")

        outstanding = calculate_outstanding(package.price, student.total_paid)
        if outstanding <= ZERO:
            raise BadRequestError("Package already fully paid")

        provider = self.config.PAYMENT_PROVIDER
        gateway = self._gateway_for(provider)

        if email and not student.email:
            student.email = email.strip().lower()

        reference = generate_reference()
        payment = Payment(
            student_id=student.id,
            package_id_at_time=package.id,
            amount=amount,
            reference=reference,
            provider=provider,
            status=TransactionStatus.PENDING.value,
        )
        self.db.add(payment)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.error(f"Payment reference collision on {reference}")
            raise ConflictError("Could not allocate a payment reference, please retry")

        with bind_payment_reference(reference):
            logger.info(
                f"Initializing {provider} payment of {amount} for {student.matric_number} "
                f"(outstanding {outstanding})"
            )
            checkout = gateway.initialize_transaction(
                reference=reference,
                amount=amount,
                email=email or student.email,
                metadata={
                    "studentId": student.id,
                    "matricNumber": student.matric_number,
                    "fullName": student.full_name,
                    "packageCode": package.code,
                    "packageName": package.name,
                },
                callback_url=f"{self.config.FRONTEND_URL.rstrip('/')}/payment/verify?reference={reference}",
            )

        return {
            "redirect_url": checkout.redirect_url,
            "reference": reference,
            "access_code": checkout.access_code,
        }

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_payment(self, reference: str) -> Payment:
        """
        Reconcile a payment with the gateway's view of it

        A settled payment returns without a gateway call.

        Raises:
            NotFoundError: unknown reference
            PaymentGatewayError: gateway unreachable
            InviteGenerationError: payment was credited but the invite failed
        """
        payment = self._get_payment(reference)

        with bind_payment_reference(reference):
            if payment.status == TransactionStatus.SUCCESS.value:
                logger.info("Payment already settled")
                self._ensure_invite(payment.student)
                return payment

            transaction = self._gateway_for(payment.provider).verify_transaction(reference)
            logger.info(
                f"Gateway reports {transaction.gateway_status or transaction.status} "
                f"for payment in state {payment.status}"
            )

            if transaction.status == GATEWAY_SUCCESS:
                if payment.status == TransactionStatus.PENDING.value:
                    self.settle(payment, transaction)
                else:
                    logger.error(
                        "Gateway reports success for a payment already marked failed; "
                        "not credited, needs manual review"
                    )
            elif transaction.status == GATEWAY_FAILED:
                self._mark_failed(payment, transaction)

            self.db.refresh(payment)
            return payment

    def _mark_failed(self, payment: Payment, transaction: GatewayTransaction) -> None:
        result = self.db.execute(
            update(Payment)
            .where(Payment.id == payment.id, Payment.status == TransactionStatus.PENDING.value)
            .values(
                status=TransactionStatus.FAILED.value,
                raw_gateway_payload=transaction.raw,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount == 1:
            logger.info("Payment marked failed")
        else:
            logger.info("Payment no longer pending; failure report ignored")

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    def process_webhook(self, provider: str, payload: Dict[str, Any]) -> WebhookOutcome:
        """
        Record a signature-checked webhook delivery and settle on successful charges

        Each (event_id, reference) pair is processed once; redeliveries are
        acknowledged without side effects.
        """
        gateway = self._gateway_for(provider)
        notification = gateway.parse_webhook_event(payload)

        if not notification.reference:
            logger.warning(f"Dropping {provider} webhook {notification.event!r} without a reference")
            return WebhookOutcome.IGNORED_MALFORMED

        with bind_payment_reference(notification.reference):
            existing = (
                self.db.query(WebhookEvent.id)
                .filter(
                    WebhookEvent.event_id == notification.event_id,
                    WebhookEvent.reference == notification.reference,
                )
                .first()
            )
            if existing:
                logger.info(f"Duplicate webhook {notification.event_id}; skipping")
                return WebhookOutcome.DUPLICATE

            self.db.add(
                WebhookEvent(
                    event_id=notification.event_id,
                    reference=notification.reference,
                    provider=provider,
                    event=notification.event,
                    raw_payload=payload,
                )
            )
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.info(f"Webhook {notification.event_id} recorded concurrently; skipping")
                return WebhookOutcome.DUPLICATE

            logger.info(f"Recorded {provider} webhook {notification.event_id}")
            if not notification.is_successful_charge:
                return WebhookOutcome.RECORDED

            payment = self.db.query(Payment).filter(Payment.reference == notification.reference).first()
            if not payment:
                logger.warning("Successful charge for an unknown payment reference")
                return WebhookOutcome.PAYMENT_NOT_FOUND
            if payment.provider != provider:
                logger.error(f"Payment belongs to {payment.provider} but was reported by {provider}")
                return WebhookOutcome.NEEDS_REVIEW
            if payment.status == TransactionStatus.SUCCESS.value:
                logger.info("Payment already settled")
                return WebhookOutcome.ALREADY_SETTLED
            if payment.status == TransactionStatus.FAILED.value:
                logger.error("Successful charge reported for a failed payment; not credited, needs manual review")
                return WebhookOutcome.NEEDS_REVIEW

            if self.settle(payment, notification.transaction):
                return WebhookOutcome.SETTLED
            return WebhookOutcome.ALREADY_SETTLED

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def settle(self, payment: Payment, transaction: GatewayTransaction) -> bool:
        """
        Move a pending payment to success and credit the student, exactly once

        The status flip and the credit share one transaction. Only the caller
        whose conditional update matched the pending row goes on to credit.

        Returns:
            True if this call settled the payment, False if another one had already

        Raises:
            BadRequestError: gateway amount missing, not positive or out of range
            InviteGenerationError: credited, but the invite could not be produced
        """
        amount = transaction.amount
        if (
            not isinstance(amount, Decimal)
            or not amount.is_finite()
            or amount <= ZERO
            or amount > MAX_AMOUNT
        ):
            logger.error(f"Refusing to settle with gateway amount {amount!r}")
            raise BadRequestError("Invalid amount reported by payment gateway")

        result = self.db.execute(
            update(Payment)
            .where(Payment.id == payment.id, Payment.status == TransactionStatus.PENDING.value)
            .values(
                status=TransactionStatus.SUCCESS.value,
                amount_paid=amount,
                paid_at=transaction.paid_at or utcnow(),
                raw_gateway_payload=transaction.raw,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            logger.info("Payment was settled by another request")
            return False

        student, previous_status = self.students.credit_payment(payment.student_id, amount)
        self.db.commit()
        self.db.refresh(payment)
        self.db.refresh(student)
        logger.info(f"Payment of {amount} settled for {student.matric_number}")

        package = student.package
        if student.payment_status == PaymentStatus.FULLY_PAID.value:
            if previous_status != PaymentStatus.FULLY_PAID or not student.has_invite:
                self._issue_invite(student)
            else:
                logger.warning(f"Payment received after {student.matric_number} was already fully paid")
        else:
            self.notifier.send_partial_payment_notice(
                student,
                package,
                amount_paid=amount,
                total_paid=student.total_paid,
                outstanding=calculate_outstanding(package.price, student.total_paid),
            )
        return True

    # ------------------------------------------------------------------
    # Invites
    # ------------------------------------------------------------------

    def _issue_invite(self, student: Student) -> InviteArtifact:
        package = student.package
        artifact = self.invite_generator.generate(student, package)
        student = self.students.update_invite(student.id, artifact.image_url, artifact.generated_at)
        self.notifier.send_completion_notice(student, package, artifact.image_url)
        return artifact

    def _ensure_invite(self, student: Student) -> None:
        # Recovers from an invite failure after the credit was committed
        if student.payment_status == PaymentStatus.FULLY_PAID.value and not student.has_invite:
            logger.warning(f"Fully paid student {student.matric_number} has no invite; generating")
            self._issue_invite(student)

    def regenerate_invite(self, student_id: int) -> InviteArtifact:
        """
        Produce a fresh invite for a fully paid student and email it

        Raises:
            NotFoundError: unknown student
            BadRequestError: student has not fully paid
        """
        student = self.students.get_by_id(student_id)
        if student.payment_status != PaymentStatus.FULLY_PAID.value:
            raise BadRequestError("Invite is only available once the package is fully paid")
        logger.info(f"Regenerating invite for {student.matric_number}")
        return self._issue_invite(student)
