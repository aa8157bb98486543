"""Tender Reconciliation - payment channel amounts, sufficiency and change."""
import logging
from decimal import Decimal
from typing import Optional, Union

from pos_register.exceptions import ValidationError, InsufficientPaymentError
from pos_register.models import CartState, PaymentMethod, TENDER_CHANNELS
from pos_register.utils.money import money, to_decimal

logger = logging.getLogger(__name__)

_AMOUNT_FIELDS = {
    PaymentMethod.CASH: 'cash_amount',
    PaymentMethod.CARD: 'card_amount',
    PaymentMethod.UPI: 'upi_amount',
}


def normalize_payment_method(method: Union[str, PaymentMethod, None]) -> PaymentMethod:
    """Normalize operator input ('CASH', 'cash', PaymentMethod.CASH) to the enum."""
    if isinstance(method, PaymentMethod):
        return method
    value = (method or '').strip().lower()
    try:
        return PaymentMethod(value)
    except ValueError:
        raise ValidationError(f'Invalid payment method: {method}')


def normalize_channel(channel: Union[str, PaymentMethod, None]) -> PaymentMethod:
    """A channel is a payment method that carries an amount (not split)."""
    if isinstance(channel, str) and channel.strip().lower().endswith('_amount'):
        channel = channel.strip().lower()[:-len('_amount')]
    method = normalize_payment_method(channel)
    if method not in TENDER_CHANNELS:
        raise ValidationError(f'Invalid payment channel: {channel}')
    return method


def channel_amount(state: CartState, channel: PaymentMethod) -> Decimal:
    return getattr(state, _AMOUNT_FIELDS[channel])


def set_payment_method(state: CartState, method) -> PaymentMethod:
    """Switch tender mode. Amounts already entered are kept."""
    state.payment_method = normalize_payment_method(method)
    return state.payment_method


def set_payment_amount(state: CartState, channel, amount) -> Decimal:
    """Set the amount entered for one channel; must be >= 0."""
    method = normalize_channel(channel)
    try:
        value = money(to_decimal(amount, 'amount'))
    except ValueError as e:
        raise ValidationError(str(e))
    if value < 0:
        raise ValidationError('Payment amount cannot be negative')
    setattr(state, _AMOUNT_FIELDS[method], value)
    return value


def set_reference(state: CartState, value: Optional[str]) -> None:
    state.reference = (value or '').strip()


def reset_tender(state: CartState) -> None:
    """Back to cash with nothing entered."""
    state.payment_method = PaymentMethod.CASH
    state.cash_amount = Decimal('0')
    state.card_amount = Decimal('0')
    state.upi_amount = Decimal('0')
    state.reference = ''


def amount_paid(state: CartState) -> Decimal:
    """
    Amount counted toward the total.

    Single-channel modes count only their own channel; split sums all three.
    """
    if state.payment_method == PaymentMethod.SPLIT:
        return state.cash_amount + state.card_amount + state.upi_amount
    return channel_amount(state, state.payment_method)


def is_payment_sufficient(state: CartState, total: Decimal) -> bool:
    return amount_paid(state) >= total


def validate_payment(state: CartState, total: Decimal) -> Decimal:
    """
    Check the tendered amount covers the total.

    Raises:
        InsufficientPaymentError: carrying the shortfall. Amounts are never
            adjusted here.
    """
    paid = amount_paid(state)
    if paid < total:
        logger.info(f"[TENDER] Shortfall: method={state.payment_method.value}, paid={paid}, total={total}")
        raise InsufficientPaymentError(paid, total)
    return paid


def calculate_change(state: CartState, total: Decimal) -> Optional[Decimal]:
    """
    Change due in cash.

    Only computed in cash mode, and only once the cash amount covers the
    total; otherwise None.
    """
    if state.payment_method != PaymentMethod.CASH:
        return None
    if state.cash_amount < total:
        return None
    return max(Decimal('0.00'), state.cash_amount - total)


def apply_exact_amount(state: CartState, total: Decimal) -> Decimal:
    """Set the active single channel's amount to the total ("Exact" key)."""
    if state.payment_method == PaymentMethod.SPLIT:
        raise ValidationError('Exact amount is not available for split payments')
    setattr(state, _AMOUNT_FIELDS[state.payment_method], money(total))
    return money(total)
