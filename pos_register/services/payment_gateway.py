"""
Payment gateway adapter for card/UPI settlement.

The register talks to the gateway through two calls: ``create_order`` and
``authorize``. Authorization always resolves to one of three result types
(success, cancelled, failed); it never raises.
"""
import enum
import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Protocol, Union

import requests

from pos_register.exceptions import GatewayError
from pos_register.utils.money import money, to_paise, HUNDRED

logger = logging.getLogger(__name__)


class AuthorizationStatus(str, enum.Enum):
    SUCCESS = 'success'
    CANCELLED = 'cancelled'
    FAILED = 'failed'


@dataclass(frozen=True)
class OrderHandle:
    """Gateway order created before the authorization UI is opened."""
    id: str
    amount: Decimal
    currency: str
    receipt: str
    notes: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AuthorizationSuccess:
    payment_id: str
    order_id: Optional[str] = None
    signature: Optional[str] = None
    status: AuthorizationStatus = AuthorizationStatus.SUCCESS


@dataclass(frozen=True)
class AuthorizationCancelled:
    order_id: Optional[str] = None
    status: AuthorizationStatus = AuthorizationStatus.CANCELLED


@dataclass(frozen=True)
class AuthorizationFailed:
    error: str
    order_id: Optional[str] = None
    status: AuthorizationStatus = AuthorizationStatus.FAILED


AuthorizationResult = Union[AuthorizationSuccess, AuthorizationCancelled, AuthorizationFailed]

# The authorization UI: receives the order and display info, returns the
# checkout response dict, or None when the operator/customer closed it.
CheckoutFn = Callable[[OrderHandle, Dict[str, Any]], Optional[Dict[str, Any]]]


class PaymentGateway(Protocol):
    """Contract the register expects from a payment gateway."""

    def create_order(
        self,
        amount: Decimal,
        currency: str,
        receipt: str,
        customer_info: Optional[Dict[str, str]] = None
    ) -> OrderHandle: ...

    def authorize(
        self,
        handle: OrderHandle,
        display_info: Optional[Dict[str, Any]] = None,
        checkout: Optional[CheckoutFn] = None
    ) -> AuthorizationResult: ...


class RazorpayGateway:
    """Razorpay orders API client plus checkout-response verification."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = 'https://api.razorpay.com',
        timeout: int = 10,
        checkout: Optional[CheckoutFn] = None
    ):
        """
        Args:
            key_id: Razorpay key id
            key_secret: Razorpay key secret, also used to verify signatures
            base_url: API base URL
            timeout: HTTP timeout in seconds
            checkout: default authorization UI callable
        """
        if not key_id or not key_secret:
            raise ValueError("RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET are required")

        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.checkout = checkout

    def create_order(
        self,
        amount: Decimal,
        currency: str,
        receipt: str,
        customer_info: Optional[Dict[str, str]] = None
    ) -> OrderHandle:
        """
        Create an order for the amount to be authorized.

        Returns:
            OrderHandle with the gateway's order id

        Raises:
            GatewayError: if the API call fails
        """
        url = f"{self.base_url}/v1/orders"
        notes = {k: str(v) for k, v in (customer_info or {}).items() if v}

        payload = {
            "amount": to_paise(amount),  # minor units
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
        }

        logger.info(f"[GATEWAY] Creating order: receipt={receipt}, amount={amount} {currency}")

        try:
            response = requests.post(
                url,
                json=payload,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.HTTPError as e:
            logger.error(f"[GATEWAY] Error creating order: {e.response.text}")
            raise GatewayError('Could not create payment order', payload={'receipt': receipt})
        except requests.RequestException as e:
            logger.error(f"[GATEWAY] Unexpected error creating order: {str(e)}")
            raise GatewayError('Payment gateway unreachable', payload={'receipt': receipt})

        logger.info(f"[GATEWAY] Order created: {data.get('id')} - status: {data.get('status')}")

        return OrderHandle(
            id=data['id'],
            amount=money(Decimal(data.get('amount', to_paise(amount))) / HUNDRED),
            currency=data.get('currency', currency),
            receipt=data.get('receipt', receipt),
            notes=notes
        )

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Check the checkout signature: HMAC-SHA256 of 'order_id|payment_id'."""
        expected = hmac.new(
            self.key_secret.encode(),
            f"{order_id}|{payment_id}".encode(),
            hashlib.sha256
        ).hexdigest()
        return hmac.compare_digest(expected, signature or '')

    def authorize(
        self,
        handle: OrderHandle,
        display_info: Optional[Dict[str, Any]] = None,
        checkout: Optional[CheckoutFn] = None
    ) -> AuthorizationResult:
        """Run the authorization UI for an order and interpret its response."""
        checkout = checkout or self.checkout
        if checkout is None:
            return AuthorizationFailed('No checkout handler configured', order_id=handle.id)

        try:
            response = checkout(handle, dict(display_info or {}))
        except Exception as e:
            logger.exception(f"[GATEWAY] Checkout error for order {handle.id}")
            return AuthorizationFailed(str(e), order_id=handle.id)

        return self.parse_checkout_response(handle, response)

    def parse_checkout_response(
        self,
        handle: OrderHandle,
        response: Optional[Dict[str, Any]]
    ) -> AuthorizationResult:
        if response is None or response.get('status') == AuthorizationStatus.CANCELLED.value:
            logger.info(f"[GATEWAY] Checkout dismissed for order {handle.id}")
            return AuthorizationCancelled(order_id=handle.id)

        if response.get('error'):
            error = response['error']
            description = error.get('description') if isinstance(error, dict) else str(error)
            logger.warning(f"[GATEWAY] Payment failed for order {handle.id}: {description}")
            return AuthorizationFailed(description or 'Payment failed', order_id=handle.id)

        payment_id = response.get('razorpay_payment_id')
        order_id = response.get('razorpay_order_id', handle.id)
        signature = response.get('razorpay_signature')

        if not payment_id:
            return AuthorizationFailed('Gateway response has no payment id', order_id=handle.id)
        if order_id != handle.id:
            return AuthorizationFailed('Gateway response does not match the order', order_id=handle.id)
        if not self.verify_signature(handle.id, payment_id, signature):
            logger.warning(f"[GATEWAY] Signature mismatch for order {handle.id}, payment {payment_id}")
            return AuthorizationFailed('Payment signature verification failed', order_id=handle.id)

        logger.info(f"[GATEWAY] Payment authorized: {payment_id} for order {handle.id}")
        return AuthorizationSuccess(payment_id=payment_id, order_id=handle.id, signature=signature)


def build_gateway(config) -> Optional[RazorpayGateway]:
    """Gateway from app config; None when keys are not set."""
    key_id = config.get('RAZORPAY_KEY_ID')
    key_secret = config.get('RAZORPAY_KEY_SECRET')
    if not key_id or not key_secret:
        logger.warning("[GATEWAY] Razorpay keys not found in config. Card/UPI settlement disabled.")
        return None
    return RazorpayGateway(
        key_id=key_id,
        key_secret=key_secret,
        base_url=config.get('RAZORPAY_BASE_URL', 'https://api.razorpay.com'),
        timeout=config.get('GATEWAY_TIMEOUT', 10)
    )
