"""
Email templates for payment notifications
Plain text plus a simple HTML version of each message
"""
from decimal import Decimal
from html import escape


def format_naira(amount) -> str:
    """₦12,345.00"""
    return f"₦{Decimal(amount):,.2f}"


def _html_page(title: str, paragraphs, button_url: str = None, button_label: str = None) -> str:
    body = "\n".join(f"            <p>{p}</p>" for p in paragraphs)
    button = ""
    if button_url:
        button = f'\n            <a href="{escape(button_url)}" class="button">{escape(button_label or button_url)}</a>'
    return f"""<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .button {{ display: inline-block; padding: 12px 24px; background-color: #1b5e20;
                   color: white; text-decoration: none; border-radius: 5px; margin: 20px 0; }}
        .footer {{ margin-top: 40px; font-size: 12px; color: #666; }}
    </style>
</head>
<body>
    <div class="container">
        <h2>{escape(title)}</h2>
{body}{button}
        <div class="footer"><p>Final Year Week Committee</p></div>
    </div>
</body>
</html>"""


class EmailTemplate:
    """Base class for email templates"""

    subject = ""

    @staticmethod
    def render_plain_text(**kwargs) -> str:
        raise NotImplementedError

    @staticmethod
    def render_html(**kwargs) -> str:
        raise NotImplementedError


class PartialPaymentTemplate(EmailTemplate):
    """Sent after a payment that leaves a balance"""

    subject = "Payment received - balance outstanding"

    @staticmethod
    def render_plain_text(full_name, package_name, package_price, amount_paid, total_paid, outstanding) -> str:
        return "\n".join([
            f"Hello {full_name},",
            "",
            f"We received your payment of {format_naira(amount_paid)} for the {package_name} package.",
            "",
            f"Package price: {format_naira(package_price)}",
            f"Total paid:    {format_naira(total_paid)}",
            f"Outstanding:   {format_naira(outstanding)}",
            "",
            "Your invitation will be sent once the balance is cleared.",
            "",
            "Final Year Week Committee",
        ])

    @staticmethod
    def render_html(full_name, package_name, package_price, amount_paid, total_paid, outstanding) -> str:
        return _html_page(
            PartialPaymentTemplate.subject,
            [
                f"Hello {escape(full_name)},",
                f"We received your payment of <strong>{format_naira(amount_paid)}</strong> "
                f"for the <strong>{escape(package_name)}</strong> package.",
                f"Package price: {format_naira(package_price)}<br>"
                f"Total paid: {format_naira(total_paid)}<br>"
                f"Outstanding: <strong>{format_naira(outstanding)}</strong>",
                "Your invitation will be sent once the balance is cleared.",
            ],
        )


class PaymentCompleteTemplate(EmailTemplate):
    """Sent when the package is fully paid, with the invite link"""

    subject = "Payment complete - your Final Year Week invitation"

    @staticmethod
    def render_plain_text(full_name, package_name, invite_url) -> str:
        return "\n".join([
            f"Hello {full_name},",
            "",
            f"Your {package_name} package is fully paid. Welcome to Final Year Week!",
            "",
            f"Your invitation: {invite_url}",
            "",
            "Please present it at the entrance.",
            "",
            "Final Year Week Committee",
        ])

    @staticmethod
    def render_html(full_name, package_name, invite_url) -> str:
        return _html_page(
            PaymentCompleteTemplate.subject,
            [
                f"Hello {escape(full_name)},",
                f"Your <strong>{escape(package_name)}</strong> package is fully paid. Welcome to Final Year Week!",
                "Please present your invitation at the entrance.",
            ],
            button_url=invite_url,
            button_label="View invitation",
        )


class InviteResendTemplate(EmailTemplate):
    """Admin-triggered resend of an existing invite"""

    subject = "Your Final Year Week invitation"

    @staticmethod
    def render_plain_text(full_name, package_name, invite_url) -> str:
        return "\n".join([
            f"Hello {full_name},",
            "",
            f"As requested, here is your invitation for the {package_name} package:",
            invite_url,
            "",
            "Final Year Week Committee",
        ])

    @staticmethod
    def render_html(full_name, package_name, invite_url) -> str:
        return _html_page(
            InviteResendTemplate.subject,
            [
                f"Hello {escape(full_name)},",
                f"As requested, here is your invitation for the <strong>{escape(package_name)}</strong> package.",
            ],
            button_url=invite_url,
            button_label="View invitation",
        )
