"""
Payment notifications
Best-effort: failures are logged and never reach the payer or the settlement path.
"""
import logging
from decimal import Decimal
from typing import Optional

from ..db.models.package import Package
from ..db.models.student import Student
from .email_provider import EmailMessage, EmailProvider
from .email_templates import (
    EmailTemplate,
    InviteResendTemplate,
    PartialPaymentTemplate,
    PaymentCompleteTemplate,
)

logger = logging.getLogger(__name__)


class PaymentNotifier:
    """Sends payment and invite emails to students"""

    def __init__(self, email_provider: EmailProvider, from_address: Optional[str] = None):
        self.email_provider = email_provider
        self.from_address = from_address

    def _send(self, student: Student, template: type[EmailTemplate], **context) -> bool:
        if not student.email:
            logger.info(f"No email on file for {student.matric_number}; skipping {template.__name__}")
            return False
        try:
            message = EmailMessage(
                to=student.email,
                subject=template.subject,
                html_body=template.render_html(**context),
                text_body=template.render_plain_text(**context),
                from_address=self.from_address,
            )
            sent = self.email_provider.send(message)
        except Exception as e:
            logger.warning(f"{template.__name__} for {student.matric_number} failed: {e}", exc_info=True)
            return False
        if not sent:
            logger.warning(f"{template.__name__} for {student.matric_number} was not delivered")
        return sent

    def send_partial_payment_notice(
        self,
        student: Student,
        package: Package,
        amount_paid: Decimal,
        total_paid: Decimal,
        outstanding: Decimal,
    ) -> bool:
        return self._send(
            student,
            PartialPaymentTemplate,
            full_name=student.full_name,
            package_name=package.name,
            package_price=package.price,
            amount_paid=amount_paid,
            total_paid=total_paid,
            outstanding=outstanding,
        )

    def send_completion_notice(self, student: Student, package: Package, invite_url: str) -> bool:
        return self._send(
            student,
            PaymentCompleteTemplate,
            full_name=student.full_name,
            package_name=package.name,
            invite_url=invite_url,
        )

    def resend_invite(self, student: Student, package: Package) -> bool:
        return self._send(
            student,
            InviteResendTemplate,
            full_name=student.full_name,
            package_name=package.name,
            invite_url=student.invite_image_url,
        )
