"""
Email Provider Service
Adapter pattern for sending emails (dev logging vs production SMTP)
"""
import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    """Email message structure"""
    to: str
    subject: str
    html_body: str
    text_body: Optional[str] = None
    from_address: Optional[str] = None


class EmailProvider(ABC):
    """
    Abstract email provider interface

    Implementations:
    - DevEmailProvider: Logs emails (development and tests)
    - SMTPEmailProvider: Sends via SMTP (production)
    """

    @abstractmethod
    def send(self, message: EmailMessage) -> bool:
        """
        Send an email

        Returns:
            True if sent successfully, False otherwise
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """True if the provider is configured and ready to send"""
        pass


class DevEmailProvider(EmailProvider):
    """Development email provider - logs emails instead of sending"""

    def send(self, message: EmailMessage) -> bool:
        logger.info(f"📧 EMAIL (dev, not sent) to={message.to} subject={message.subject!r}")
        if message.text_body:
            logger.debug(f"Text Body:\n{message.text_body}")
        return True

    def is_available(self) -> bool:
        return True


class SMTPEmailProvider(EmailProvider):
    """SMTP email provider for production"""

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        from_address: str,
        use_tls: bool = True,
        timeout: float = 15,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_address = from_address
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, message: EmailMessage) -> bool:
        """Send email via SMTP"""
        msg = MIMEMultipart('alternative')
        msg['Subject'] = message.subject
        msg['From'] = message.from_address or self.from_address
        msg['To'] = message.to
        if message.text_body:
            msg.attach(MIMEText(message.text_body, 'plain', 'utf-8'))
        msg.attach(MIMEText(message.html_body, 'html', 'utf-8'))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {message.to}: {e}", exc_info=True)
            return False

        logger.info(f"✓ Email sent to {message.to}: {message.subject}")
        return True

    def is_available(self) -> bool:
        return all([self.host, self.port, self.user, self.password, self.from_address])


def get_email_provider(config) -> EmailProvider:
    """
    Build the email provider for the configuration

    SMTP when host, user and password are all set, otherwise the logging
    provider.
    """
    if config.SMTP_HOST and config.SMTP_USER and config.SMTP_PASSWORD:
        logger.info(f"✓ Email provider: SMTP ({config.SMTP_HOST}:{config.SMTP_PORT})")
        return SMTPEmailProvider(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            user=config.SMTP_USER,
            password=config.SMTP_PASSWORD,
            from_address=config.EMAIL_FROM,
            use_tls=config.SMTP_USE_TLS,
        )

    missing = [
        name for name in ("SMTP_HOST", "SMTP_USER", "SMTP_PASSWORD")
        if not getattr(config, name)
    ]
    logger.info(f"📧 Email provider: DevEmailProvider (missing {', '.join(missing)})")
    return DevEmailProvider()
