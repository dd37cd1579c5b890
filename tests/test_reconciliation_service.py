"""
Tests for PaymentReconciliationService
Covers initialization, verification, webhook dedup and exactly-once settlement
"""
from decimal import Decimal

import httpx
import pytest

from fyw_pay.db import Payment, PaymentStatus, Student, TransactionStatus, WebhookEvent
from fyw_pay.exceptions import (
    BadRequestError,
    InviteGenerationError,
    NotFoundError,
    PaymentGatewayError,
)
from fyw_pay.services.payment_gateway import GATEWAY_FAILED, GATEWAY_SUCCESS, GatewayTransaction, PaystackGateway
from fyw_pay.services.reconciliation_service import PaymentReconciliationService, WebhookOutcome
from fyw_pay.services.student_service import StudentService

from conftest import MATRIC, PAYSTACK_SECRET, paystack_event


def _start(reconciliation, amount, email="ada@example.com") -> str:
    return reconciliation.initialize_payment(MATRIC, amount, email)["reference"]


def _student(db) -> Student:
    db.expire_all()
    return db.query(Student).filter(Student.matric_number == MATRIC).one()


class TestInitializePayment:
    """Starting a checkout"""

    def test_creates_pending_payment(self, db, student, reconciliation, paystack):
        result = reconciliation.initialize_payment(MATRIC, 10000, "ada@example.com")

        assert result["reference"].startswith("FYW-")
        assert result["redirect_url"] == f"https://checkout.test/{result['reference']}"
        assert result["access_code"] == f"AC-{result['reference']}"

        payment = db.query(Payment).filter(Payment.reference == result["reference"]).one()
        assert payment.status == TransactionStatus.PENDING.value
        assert payment.amount == Decimal("10000")
        assert payment.provider == "paystack"
        assert payment.student_id == student.id

        call = paystack.initialized[0]
        assert call["amount"] == Decimal("10000")
        assert call["metadata"]["matricNumber"] == MATRIC
        assert call["metadata"]["packageCode"] == "A"
        assert call["callback_url"] == f"http://localhost:3000/payment/verify?reference={result['reference']}"

    @pytest.mark.parametrize("amount", [0, -500, "0.00"])
    def test_rejects_non_positive_amount(self, db, student, reconciliation, amount):
        with pytest.raises(BadRequestError, match="greater than 0"):
            reconciliation.initialize_payment(MATRIC, amount, "ada@example.com")
        assert db.query(Payment).count() == 0

    def test_rejects_fully_paid_package(self, db, student, reconciliation):
        StudentService(db).credit_payment(student.id, Decimal("25000"))
        db.commit()
        with pytest.raises(BadRequestError, match="already fully paid"):
            reconciliation.initialize_payment(MATRIC, 1000, "ada@example.com")

    def test_unknown_student(self, db, packages, reconciliation):
        with pytest.raises(NotFoundError):
            reconciliation.initialize_payment("UNKNOWN/1", 1000, "x@example.com")

    def test_gateway_failure_keeps_pending_row(self, db, student, reconciliation, paystack):
        paystack.fail_initialize = True
        with pytest.raises(PaymentGatewayError):
            reconciliation.initialize_payment(MATRIC, 1000, "ada@example.com")
        payment = db.query(Payment).one()
        assert payment.status == TransactionStatus.PENDING.value

    def test_unconfigured_default_provider(self, db, student, invite_generator, notifier, config):
        service = PaymentReconciliationService(db, {}, invite_generator, notifier, config)
        with pytest.raises(PaymentGatewayError):
            service.initialize_payment(MATRIC, 1000, "ada@example.com")


class TestVerifyPayment:
    """Verification after the checkout redirect"""

    def test_partial_payment(self, db, student, reconciliation, paystack, invite_generator, notifier):
        reference = _start(reconciliation, 10000)
        paystack.set_result(reference, GATEWAY_SUCCESS, 10000)

        payment = reconciliation.verify_payment(reference)

        assert payment.status == TransactionStatus.SUCCESS.value
        assert payment.amount_paid == Decimal("10000")
        assert payment.paid_at is not None
        refreshed = _student(db)
        assert refreshed.total_paid == Decimal("10000")
        assert refreshed.payment_status == PaymentStatus.PARTIALLY_PAID.value
        assert invite_generator.generated == []

        notifier.send_partial_payment_notice.assert_called_once()
        kwargs = notifier.send_partial_payment_notice.call_args.kwargs
        assert kwargs["amount_paid"] == Decimal("10000")
        assert kwargs["total_paid"] == Decimal("10000")
        assert kwargs["outstanding"] == Decimal("15000")

    def test_repeat_verification_is_idempotent(self, db, student, reconciliation, paystack):
        reference = _start(reconciliation, 10000)
        paystack.set_result(reference, GATEWAY_SUCCESS, 10000)

        reconciliation.verify_payment(reference)
        reconciliation.verify_payment(reference)
        reconciliation.verify_payment(reference)

        assert _student(db).total_paid == Decimal("10000")
        assert paystack.verify_calls == [reference]

    def test_full_payment_generates_invite_once(self, db, student, reconciliation, paystack, invite_generator, notifier):
        reference = _start(reconciliation, 25000)
        paystack.set_result(reference, GATEWAY_SUCCESS, 25000)

        reconciliation.verify_payment(reference)
        reconciliation.verify_payment(reference)

        refreshed = _student(db)
        assert refreshed.payment_status == PaymentStatus.FULLY_PAID.value
        assert refreshed.invite_image_url.endswith("invite-ENG-2019-001.svg")
        assert refreshed.invite_generated_at is not None
        assert invite_generator.generated == [MATRIC]
        notifier.send_completion_notice.assert_called_once()
        notifier.send_partial_payment_notice.assert_not_called()

    def test_settles_with_gateway_reported_amount(self, db, student, reconciliation, paystack):
        reference = _start(reconciliation, 10000)
        paystack.set_result(reference, GATEWAY_SUCCESS, 8000)

        payment = reconciliation.verify_payment(reference)

        assert payment.amount == Decimal("10000")
        assert payment.amount_paid == Decimal("8000")
        assert _student(db).total_paid == Decimal("8000")

    def test_pending_leaves_payment_untouched(self, db, student, reconciliation):
        reference = _start(reconciliation, 10000)
        payment = reconciliation.verify_payment(reference)
        assert payment.status == TransactionStatus.PENDING.value
        assert _student(db).total_paid == Decimal("0")

    def test_failed_marks_payment_failed(self, db, student, reconciliation, paystack):
        reference = _start(reconciliation, 10000)
        paystack.set_result(reference, GATEWAY_FAILED)

        payment = reconciliation.verify_payment(reference)

        assert payment.status == TransactionStatus.FAILED.value
        assert _student(db).total_paid == Decimal("0")

    def test_failed_payment_is_never_credited(self, db, student, reconciliation, paystack):
        reference = _start(reconciliation, 10000)
        paystack.set_result(reference, GATEWAY_FAILED)
        reconciliation.verify_payment(reference)

        paystack.set_result(reference, GATEWAY_SUCCESS, 10000)
        payment = reconciliation.verify_payment(reference)

        assert payment.status == TransactionStatus.FAILED.value
        assert _student(db).total_paid == Decimal("0")

    def test_unknown_reference(self, db, student, reconciliation):
        with pytest.raises(NotFoundError):
            reconciliation.verify_payment("FYW-0-DEADBEEF")

    def test_missing_gateway_amount_is_rejected(self, db, student, reconciliation, paystack):
        reference = _start(reconciliation, 10000)
        paystack.set_result(reference, GATEWAY_SUCCESS, None)

        with pytest.raises(BadRequestError):
            reconciliation.verify_payment(reference)

        db.expire_all()
        payment = db.query(Payment).filter(Payment.reference == reference).one()
        assert payment.status == TransactionStatus.PENDING.value
        assert _student(db).total_paid == Decimal("0")

    def test_amount_beyond_ledger_range_is_rejected(self, db, student, reconciliation, paystack):
        reference = _start(reconciliation, 10000)
        paystack.set_result(reference, GATEWAY_SUCCESS, "10000000000")

        with pytest.raises(BadRequestError):
            reconciliation.verify_payment(reference)
        assert _student(db).total_paid == Decimal("0")

    def test_overflowing_gateway_amount_is_rejected(self, db, student, invite_generator, notifier, config):
        def handler(request):
            return httpx.Response(200, json={
                "status": True,
                "data": {"reference": request.url.path.rsplit("/", 1)[-1], "status": "success", "amount": 10 ** 40},
            })

        gateway = PaystackGateway(PAYSTACK_SECRET, client=httpx.Client(transport=httpx.MockTransport(handler)))
        service = PaymentReconciliationService(db, {"paystack": gateway}, invite_generator, notifier, config)
        reference = "FYW-1-0VERF10W"
        db.add(Payment(
            student_id=student.id,
            package_id_at_time=student.package_id,
            amount=Decimal("10000"),
            reference=reference,
            provider="paystack",
            status=TransactionStatus.PENDING.value,
        ))
        db.commit()

        with pytest.raises(BadRequestError):
            service.verify_payment(reference)

        db.expire_all()
        payment = db.query(Payment).filter(Payment.reference == reference).one()
        assert payment.status == TransactionStatus.PENDING.value
        assert _student(db).total_paid == Decimal("0")


class TestProcessWebhook:
    """Webhook dedup and settlement"""

    def test_successful_charge_settles(self, db, student, reconciliation):
        reference = _start(reconciliation, 10000)

        outcome = reconciliation.process_webhook("paystack", paystack_event(reference, 10000))

        assert outcome == WebhookOutcome.SETTLED
        assert _student(db).total_paid == Decimal("10000")
        event = db.query(WebhookEvent).one()
        assert event.event_id == "1001-charge.success"
        assert event.reference == reference
        assert event.provider == "paystack"

    def test_duplicate_delivery_is_ignored(self, db, student, reconciliation):
        reference = _start(reconciliation, 10000)
        payload = paystack_event(reference, 10000)

        first = reconciliation.process_webhook("paystack", payload)
        second = reconciliation.process_webhook("paystack", payload)

        assert first == WebhookOutcome.SETTLED
        assert second == WebhookOutcome.DUPLICATE
        assert db.query(WebhookEvent).count() == 1
        assert _student(db).total_paid == Decimal("10000")

    def test_distinct_event_for_settled_payment(self, db, student, reconciliation):
        reference = _start(reconciliation, 10000)
        reconciliation.process_webhook("paystack", paystack_event(reference, 10000, transaction_id=1))

        outcome = reconciliation.process_webhook("paystack", paystack_event(reference, 10000, transaction_id=2))

        assert outcome == WebhookOutcome.ALREADY_SETTLED
        assert db.query(WebhookEvent).count() == 2
        assert _student(db).total_paid == Decimal("10000")

    def test_missing_reference_is_dropped(self, db, student, reconciliation):
        outcome = reconciliation.process_webhook("paystack", paystack_event(None, 10000))
        assert outcome == WebhookOutcome.IGNORED_MALFORMED
        assert db.query(WebhookEvent).count() == 0

    def test_non_charge_event_is_recorded_only(self, db, student, reconciliation):
        reference = _start(reconciliation, 10000)
        outcome = reconciliation.process_webhook(
            "paystack", paystack_event(reference, 10000, event="transfer.success")
        )
        assert outcome == WebhookOutcome.RECORDED
        assert db.query(WebhookEvent).count() == 1
        assert _student(db).total_paid == Decimal("0")

    def test_unknown_payment(self, db, student, reconciliation):
        outcome = reconciliation.process_webhook("paystack", paystack_event("FYW-0-00000000", 10000))
        assert outcome == WebhookOutcome.PAYMENT_NOT_FOUND

    def test_failed_payment_needs_review(self, db, student, reconciliation, paystack):
        reference = _start(reconciliation, 10000)
        paystack.set_result(reference, GATEWAY_FAILED)
        reconciliation.verify_payment(reference)

        outcome = reconciliation.process_webhook("paystack", paystack_event(reference, 10000))

        assert outcome == WebhookOutcome.NEEDS_REVIEW
        assert _student(db).total_paid == Decimal("0")

    def test_wrong_provider_needs_review(self, db, student, reconciliation):
        reference = _start(reconciliation, 10000)
        payload = {
            "event": "charge.completed",
            "data": {"id": 77, "tx_ref": reference, "amount": 10000, "status": "successful"},
        }
        outcome = reconciliation.process_webhook("flutterwave", payload)
        assert outcome == WebhookOutcome.NEEDS_REVIEW
        assert _student(db).total_paid == Decimal("0")


class TestCrossChannelSettlement:
    """Webhook and verify racing for the same payment credit it once"""

    def test_webhook_then_verify(self, db, student, reconciliation, paystack, invite_generator):
        reference = _start(reconciliation, 25000)
        paystack.set_result(reference, GATEWAY_SUCCESS, 25000)

        reconciliation.process_webhook("paystack", paystack_event(reference, 25000))
        payment = reconciliation.verify_payment(reference)

        assert payment.status == TransactionStatus.SUCCESS.value
        assert paystack.verify_calls == []
        assert _student(db).total_paid == Decimal("25000")
        assert invite_generator.generated == [MATRIC]

    def test_verify_then_webhook(self, db, student, reconciliation, paystack, invite_generator):
        reference = _start(reconciliation, 25000)
        paystack.set_result(reference, GATEWAY_SUCCESS, 25000)

        reconciliation.verify_payment(reference)
        outcome = reconciliation.process_webhook("paystack", paystack_event(reference, 25000))

        assert outcome == WebhookOutcome.ALREADY_SETTLED
        assert _student(db).total_paid == Decimal("25000")
        assert invite_generator.generated == [MATRIC]

    def test_stale_settler_loses(self, db, session_factory, student, reconciliation, gateways,
                                 invite_generator, notifier, config):
        reference = _start(reconciliation, 10000)
        stale_payment = db.query(Payment).filter(Payment.reference == reference).one()
        transaction = GatewayTransaction(
            reference=reference, status=GATEWAY_SUCCESS, amount=Decimal("10000"), paid_at=None,
        )

        other_db = session_factory()
        try:
            winner = PaymentReconciliationService(other_db, gateways, invite_generator, notifier, config)
            other_payment = other_db.query(Payment).filter(Payment.reference == reference).one()
            assert winner.settle(other_payment, transaction) is True
        finally:
            other_db.close()

        # This session still holds the payment as pending
        assert stale_payment.status == TransactionStatus.PENDING.value
        assert reconciliation.settle(stale_payment, transaction) is False
        assert _student(db).total_paid == Decimal("10000")


class TestBalanceProgression:
    """Several payments against one package"""

    def test_partials_accumulate_to_full(self, db, student, reconciliation, paystack, invite_generator, notifier):
        first = _start(reconciliation, 10000)
        paystack.set_result(first, GATEWAY_SUCCESS, 10000)
        reconciliation.verify_payment(first)
        assert invite_generator.generated == []

        second = _start(reconciliation, 15000)
        paystack.set_result(second, GATEWAY_SUCCESS, 15000)
        reconciliation.verify_payment(second)

        refreshed = _student(db)
        assert refreshed.total_paid == Decimal("25000")
        assert refreshed.payment_status == PaymentStatus.FULLY_PAID.value
        assert invite_generator.generated == [MATRIC]
        assert notifier.send_partial_payment_notice.call_count == 1
        assert notifier.send_completion_notice.call_count == 1

    def test_overpayment_is_capped(self, db, student, reconciliation, paystack):
        reference = _start(reconciliation, 30000)
        paystack.set_result(reference, GATEWAY_SUCCESS, 30000)

        reconciliation.verify_payment(reference)

        refreshed = _student(db)
        assert refreshed.total_paid == Decimal("25000")
        assert refreshed.payment_status == PaymentStatus.FULLY_PAID.value

    def test_payment_after_fully_paid_does_not_reissue_invite(self, db, student, reconciliation, paystack,
                                                              invite_generator):
        # Both checkouts opened while the balance was still outstanding
        first = _start(reconciliation, 25000)
        second = _start(reconciliation, 20000)
        paystack.set_result(first, GATEWAY_SUCCESS, 25000)
        paystack.set_result(second, GATEWAY_SUCCESS, 20000)

        reconciliation.verify_payment(first)
        payment = reconciliation.verify_payment(second)

        assert payment.status == TransactionStatus.SUCCESS.value
        assert _student(db).total_paid == Decimal("25000")
        assert invite_generator.generated == [MATRIC]

    def test_upgrade_then_complete_issues_new_invite(self, db, student, reconciliation, paystack, invite_generator):
        reference = _start(reconciliation, 25000)
        paystack.set_result(reference, GATEWAY_SUCCESS, 25000)
        reconciliation.verify_payment(reference)

        upgraded = StudentService(db).upgrade_package(MATRIC, "C", ["MONDAY", "FRIDAY"])
        assert upgraded.payment_status == PaymentStatus.PARTIALLY_PAID.value
        assert upgraded.invite_image_url is None

        top_up = _start(reconciliation, 15000)
        paystack.set_result(top_up, GATEWAY_SUCCESS, 15000)
        reconciliation.verify_payment(top_up)

        refreshed = _student(db)
        assert refreshed.total_paid == Decimal("40000")
        assert refreshed.payment_status == PaymentStatus.FULLY_PAID.value
        assert refreshed.invite_image_url is not None
        assert invite_generator.generated == [MATRIC, MATRIC]


class TestInviteRecovery:
    """Invite failures never undo the credit"""

    def test_failure_keeps_credit_and_retries_on_verify(self, db, student, reconciliation, paystack,
                                                       invite_generator, notifier):
        reference = _start(reconciliation, 25000)
        paystack.set_result(reference, GATEWAY_SUCCESS, 25000)
        invite_generator.fail = True

        with pytest.raises(InviteGenerationError):
            reconciliation.verify_payment(reference)

        refreshed = _student(db)
        assert refreshed.total_paid == Decimal("25000")
        assert refreshed.payment_status == PaymentStatus.FULLY_PAID.value
        assert refreshed.invite_image_url is None
        notifier.send_completion_notice.assert_not_called()

        invite_generator.fail = False
        reconciliation.verify_payment(reference)

        refreshed = _student(db)
        assert refreshed.invite_image_url is not None
        assert refreshed.total_paid == Decimal("25000")
        assert invite_generator.generated == [MATRIC]
        assert paystack.verify_calls == [reference]

    def test_regenerate_requires_full_payment(self, db, student, reconciliation):
        with pytest.raises(BadRequestError):
            reconciliation.regenerate_invite(student.id)

    def test_regenerate_for_fully_paid(self, db, student, reconciliation, paystack, invite_generator, notifier):
        reference = _start(reconciliation, 25000)
        paystack.set_result(reference, GATEWAY_SUCCESS, 25000)
        reconciliation.verify_payment(reference)

        artifact = reconciliation.regenerate_invite(student.id)

        assert artifact.image_url.endswith(".svg")
        assert invite_generator.generated == [MATRIC, MATRIC]
        assert notifier.send_completion_notice.call_count == 2
