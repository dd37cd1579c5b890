"""
Payment Gateway - interface for hosted-checkout payment providers
Supports Paystack and Flutterwave; both normalize into the same dataclasses
so reconciliation never sees provider-specific field names or units.
"""
import hashlib
import hmac
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

import httpx

from ..exceptions import PaymentGatewayError

logger = logging.getLogger(__name__)

# Normalized transaction states
GATEWAY_SUCCESS = "success"
GATEWAY_FAILED = "failed"
GATEWAY_PENDING = "pending"


@dataclass
class GatewayCheckout:
    """Hosted checkout created by the gateway"""
    redirect_url: str
    reference: str
    access_code: Optional[str] = None


@dataclass
class GatewayTransaction:
    """Gateway view of a transaction, in major currency units"""
    reference: str
    status: str
    amount: Optional[Decimal]
    paid_at: Optional[datetime]
    raw: Dict[str, Any] = field(default_factory=dict)
    gateway_status: str = ""


@dataclass
class WebhookNotification:
    """Parsed webhook delivery"""
    event: str
    event_id: str
    reference: Optional[str]
    is_successful_charge: bool
    transaction: Optional[GatewayTransaction] = None


def parse_amount(value: Any, minor_units: bool = False) -> Optional[Decimal]:
    """Gateway amount to a Decimal in major units, or None when unusable"""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            return None
        if minor_units:
            amount = amount / 100
        return amount.quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        logger.warning(f"Unusable gateway amount: {value!r}")
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """ISO-8601 gateway timestamp to naive UTC"""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable gateway timestamp: {value}")
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _json_number(amount: Decimal):
    return int(amount) if amount == amount.to_integral_value() else float(amount)


class PaymentGateway(ABC):
    """Abstract base class for payment providers"""

    provider: str = ""
    base_url: str = ""

    def __init__(self, secret_key: str, client: Optional[httpx.Client] = None, timeout: float = 10):
        self.secret_key = secret_key
        self.client = client
        self.timeout = timeout

    def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
    ) -> Dict[str, Any]:
        """Make an authenticated HTTP request to the provider API"""
        url = f"{self.base_url}{endpoint}"
        headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

        try:
            if self.client is not None:
                response = self.client.request(
                    method, url, headers=headers, json=data, params=params, timeout=self.timeout
                )
            else:
                response = httpx.request(
                    method, url, headers=headers, json=data, params=params, timeout=self.timeout
                )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"{self.provider} API returned {e.response.status_code} for {endpoint}")
            raise PaymentGatewayError(f"{self.provider} request failed with status {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"{self.provider} API request failed: {e}")
            raise PaymentGatewayError(f"{self.provider} request failed")

    @abstractmethod
    def initialize_transaction(
        self,
        reference: str,
        amount: Decimal,
        email: str,
        metadata: Dict[str, Any],
        callback_url: str,
    ) -> GatewayCheckout:
        """Create a hosted checkout for the amount (major units)"""
        pass

    @abstractmethod
    def verify_transaction(self, reference: str) -> GatewayTransaction:
        """Ask the gateway for the current state of a transaction"""
        pass

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, headers: Mapping[str, str]) -> bool:
        """Check the webhook signature against the raw request body"""
        pass

    @abstractmethod
    def parse_webhook_event(self, payload: Dict[str, Any]) -> WebhookNotification:
        """Parse webhook payload into a normalized notification"""
        pass


class PaystackGateway(PaymentGateway):
    """Paystack payment gateway (amounts travel in kobo)"""

    provider = "paystack"
    base_url = "https://api.paystack.co"

    SUCCESS_EVENT = "charge.success"
    STATUS_MAP = {
        "success": GATEWAY_SUCCESS,
        "failed": GATEWAY_FAILED,
        "reversed": GATEWAY_FAILED,
    }

    def __init__(
        self,
        secret_key: str,
        public_key: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        timeout: float = 10,
    ):
        """
        Initialize Paystack gateway

        Args:
            secret_key: Paystack secret key; also keys the webhook HMAC
            public_key: Paystack public key (only echoed to clients)
            client: Optional shared httpx client
            timeout: Request timeout in seconds
        """
        super().__init__(secret_key, client=client, timeout=timeout)
        self.public_key = public_key

    def _to_transaction(self, data: Dict[str, Any], default_reference: str = "") -> GatewayTransaction:
        gateway_status = str(data.get("status") or "")
        return GatewayTransaction(
            reference=data.get("reference") or default_reference,
            status=self.STATUS_MAP.get(gateway_status, GATEWAY_PENDING),
            amount=parse_amount(data.get("amount"), minor_units=True),
            paid_at=parse_timestamp(data.get("paid_at") or data.get("paidAt")),
            raw=data,
            gateway_status=gateway_status,
        )

    def initialize_transaction(self, reference, amount, email, metadata, callback_url) -> GatewayCheckout:
        """Initialize a Paystack transaction"""
        result = self._make_request(
            "POST",
            "/transaction/initialize",
            {
                "email": email,
                "amount": int((Decimal(amount) * 100).to_integral_value()),
                "reference": reference,
                "metadata": metadata,
                "callback_url": callback_url,
            },
        )
        if not result.get("status"):
            logger.error(f"Paystack initialization rejected for {reference}: {result.get('message')}")
            raise PaymentGatewayError("Failed to initialize payment")

        data = result.get("data") or {}
        return GatewayCheckout(
            redirect_url=data.get("authorization_url", ""),
            reference=data.get("reference") or reference,
            access_code=data.get("access_code"),
        )

    def verify_transaction(self, reference: str) -> GatewayTransaction:
        """Verify a Paystack transaction by reference"""
        result = self._make_request("GET", f"/transaction/verify/{quote(reference, safe='')}")
        if not result.get("status"):
            logger.error(f"Paystack verification rejected for {reference}: {result.get('message')}")
            raise PaymentGatewayError("Payment verification failed")
        return self._to_transaction(result.get("data") or {}, default_reference=reference)

    def verify_webhook_signature(self, payload: bytes, headers: Mapping[str, str]) -> bool:
        """HMAC-SHA512 of the raw body, keyed by the secret key"""
        signature = headers.get("x-paystack-signature")
        if not signature or not self.secret_key:
            return False
        computed_signature = hmac.new(
            self.secret_key.encode(),
            payload,
            hashlib.sha512
        ).hexdigest()
        return hmac.compare_digest(computed_signature, signature)

    def parse_webhook_event(self, payload: Dict[str, Any]) -> WebhookNotification:
        """Parse Paystack webhook event"""
        event = str(payload.get("event") or "")
        data = payload.get("data")
        if not isinstance(data, dict):
            data = {}
        reference = data.get("reference") or None
        transaction_id = data.get("id")
        event_id = f"{transaction_id}-{event}" if transaction_id is not None else f"{reference}-{event}"

        is_success = event == self.SUCCESS_EVENT
        transaction = None
        if reference:
            transaction = self._to_transaction(data)
            if is_success and not data.get("status"):
                transaction.status = GATEWAY_SUCCESS

        return WebhookNotification(
            event=event,
            event_id=event_id,
            reference=reference,
            is_successful_charge=is_success and transaction is not None and transaction.status == GATEWAY_SUCCESS,
            transaction=transaction,
        )


class FlutterwaveGateway(PaymentGateway):
    """Flutterwave v3 payment gateway (amounts travel in naira)"""

    provider = "flutterwave"
    base_url = "https://api.flutterwave.com/v3"

    SUCCESS_EVENT = "charge.completed"
    STATUS_MAP = {
        "successful": GATEWAY_SUCCESS,
        "failed": GATEWAY_FAILED,
        "cancelled": GATEWAY_FAILED,
    }

    def __init__(
        self,
        secret_key: str,
        secret_hash: str,
        public_key: Optional[str] = None,
        currency: str = "NGN",
        client: Optional[httpx.Client] = None,
        timeout: float = 10,
    ):
        """
        Initialize Flutterwave gateway

        Args:
            secret_key: Flutterwave secret key
            secret_hash: Shared secret echoed in the verif-hash webhook header
            public_key: Flutterwave public key
            currency: Checkout currency
            client: Optional shared httpx client
            timeout: Request timeout in seconds
        """
        super().__init__(secret_key, client=client, timeout=timeout)
        self.secret_hash = secret_hash
        self.public_key = public_key
        self.currency = currency

    def _to_transaction(self, data: Dict[str, Any], default_reference: str = "") -> GatewayTransaction:
        gateway_status = str(data.get("status") or "")
        return GatewayTransaction(
            reference=data.get("tx_ref") or default_reference,
            status=self.STATUS_MAP.get(gateway_status, GATEWAY_PENDING),
            amount=parse_amount(data.get("amount")),
            paid_at=parse_timestamp(data.get("created_at")),
            raw=data,
            gateway_status=gateway_status,
        )

    def initialize_transaction(self, reference, amount, email, metadata, callback_url) -> GatewayCheckout:
        """Create a Flutterwave standard checkout link"""
        result = self._make_request(
            "POST",
            "/payments",
            {
                "tx_ref": reference,
                "amount": _json_number(Decimal(amount)),
                "currency": self.currency,
                "redirect_url": callback_url,
                "customer": {"email": email, "name": metadata.get("fullName", "")},
                "meta": metadata,
                "customizations": {"title": "Final Year Week Registration"},
            },
        )
        if result.get("status") != "success":
            logger.error(f"Flutterwave initialization rejected for {reference}: {result.get('message')}")
            raise PaymentGatewayError("Failed to initialize payment")

        data = result.get("data") or {}
        return GatewayCheckout(redirect_url=data.get("link", ""), reference=reference)

    def verify_transaction(self, reference: str) -> GatewayTransaction:
        """Verify a Flutterwave transaction by tx_ref"""
        result = self._make_request(
            "GET", "/transactions/verify_by_reference", params={"tx_ref": reference}
        )
        if result.get("status") != "success":
            logger.error(f"Flutterwave verification rejected for {reference}: {result.get('message')}")
            raise PaymentGatewayError("Payment verification failed")
        return self._to_transaction(result.get("data") or {}, default_reference=reference)

    def verify_webhook_signature(self, payload: bytes, headers: Mapping[str, str]) -> bool:
        """Constant-time comparison of the verif-hash header with the secret hash"""
        signature = headers.get("verif-hash")
        if not signature or not self.secret_hash:
            return False
        return hmac.compare_digest(signature.encode(), self.secret_hash.encode())

    def parse_webhook_event(self, payload: Dict[str, Any]) -> WebhookNotification:
        """Parse Flutterwave webhook event"""
        event = str(payload.get("event") or payload.get("event.type") or "")
        data = payload.get("data")
        if not isinstance(data, dict):
            data = {}
        reference = data.get("tx_ref") or None
        transaction_id = data.get("id")
        event_id = f"{transaction_id}-{event}" if transaction_id is not None else f"{reference}-{event}"

        transaction = self._to_transaction(data) if reference else None
        return WebhookNotification(
            event=event,
            event_id=event_id,
            reference=reference,
            is_successful_charge=(
                event == self.SUCCESS_EVENT
                and transaction is not None
                and transaction.status == GATEWAY_SUCCESS
            ),
            transaction=transaction,
        )


def get_payment_gateway(provider: str, config, client: Optional[httpx.Client] = None) -> PaymentGateway:
    """
    Factory function to get the appropriate payment gateway

    Args:
        provider: 'paystack' or 'flutterwave'
        config: Config object with payment provider settings
        client: Optional httpx client (tests pass one with a MockTransport)

    Returns:
        PaymentGateway instance
    """
    if provider == "paystack":
        if not config.PAYSTACK_SECRET_KEY:
            raise ValueError("Paystack secret key not configured")
        return PaystackGateway(
            config.PAYSTACK_SECRET_KEY,
            config.PAYSTACK_PUBLIC_KEY,
            client=client,
            timeout=config.GATEWAY_TIMEOUT,
        )

    elif provider == "flutterwave":
        if not config.FLUTTERWAVE_SECRET_KEY:
            raise ValueError("Flutterwave secret key not configured")
        if not config.FLUTTERWAVE_SECRET_HASH:
            raise ValueError("Flutterwave webhook secret hash not configured")
        return FlutterwaveGateway(
            config.FLUTTERWAVE_SECRET_KEY,
            config.FLUTTERWAVE_SECRET_HASH,
            public_key=config.FLUTTERWAVE_PUBLIC_KEY,
            client=client,
            timeout=config.GATEWAY_TIMEOUT,
        )

    else:
        raise ValueError(f"Unsupported payment provider: {provider}")


def build_gateways(config, client: Optional[httpx.Client] = None) -> Dict[str, PaymentGateway]:
    """Every gateway that has credentials configured, keyed by provider name"""
    gateways = {}
    for provider in ("paystack", "flutterwave"):
        try:
            gateways[provider] = get_payment_gateway(provider, config, client=client)
        except ValueError as e:
            logger.info(f"Payment provider {provider} disabled: {e}")
    return gateways
