"""
Unit tests for tender reconciliation.
"""

import pytest
from decimal import Decimal

from pos_register.exceptions import ValidationError, InsufficientPaymentError
from pos_register.models import PaymentMethod
from pos_register.services import tender_service

TOTAL = Decimal('203.40')


class TestPaymentMethod:
    """Tests for payment method and channel amounts."""

    @pytest.mark.parametrize('raw,expected', [
        ('cash', PaymentMethod.CASH),
        ('CARD', PaymentMethod.CARD),
        (' upi ', PaymentMethod.UPI),
        (PaymentMethod.SPLIT, PaymentMethod.SPLIT),
    ])
    def test_set_payment_method(self, state, raw, expected):
        assert tender_service.set_payment_method(state, raw) == expected
        assert state.payment_method == expected

    def test_unknown_method(self, state):
        with pytest.raises(ValidationError):
            tender_service.set_payment_method(state, 'cheque')
        assert state.payment_method == PaymentMethod.CASH

    def test_switching_method_keeps_amounts(self, state):
        tender_service.set_payment_amount(state, 'cash', 100)
        tender_service.set_payment_method(state, 'card')
        assert state.cash_amount == Decimal('100.00')

    def test_amount_is_quantized(self, state):
        assert tender_service.set_payment_amount(state, 'card_amount', '10.005') == Decimal('10.01')

    def test_negative_amount_rejected(self, state):
        with pytest.raises(ValidationError):
            tender_service.set_payment_amount(state, 'cash', -1)
        assert state.cash_amount == Decimal('0')

    def test_split_is_not_a_channel(self, state):
        with pytest.raises(ValidationError):
            tender_service.set_payment_amount(state, 'split', 10)


class TestSufficiency:
    """Tests for amount_paid / validate_payment."""

    def test_single_channel_counts_only_its_amount(self, state):
        tender_service.set_payment_method(state, 'card')
        tender_service.set_payment_amount(state, 'cash', 500)
        tender_service.set_payment_amount(state, 'card', 100)
        assert tender_service.amount_paid(state) == Decimal('100.00')
        assert not tender_service.is_payment_sufficient(state, TOTAL)

    def test_split_sums_channels(self, state):
        tender_service.set_payment_method(state, 'split')
        tender_service.set_payment_amount(state, 'cash', 100)
        tender_service.set_payment_amount(state, 'card', 50)
        tender_service.set_payment_amount(state, 'upi', '53.40')
        assert tender_service.validate_payment(state, TOTAL) == TOTAL

    def test_split_shortfall(self, state):
        tender_service.set_payment_method(state, 'split')
        tender_service.set_payment_amount(state, 'cash', 100)
        tender_service.set_payment_amount(state, 'card', 50)

        with pytest.raises(InsufficientPaymentError) as exc:
            tender_service.validate_payment(state, TOTAL)

        assert exc.value.shortfall == Decimal('53.40')
        assert exc.value.status_code == 402
        assert exc.value.message == 'Payment amount (150.00) is less than the total (203.40)'
        assert exc.value.to_dict()['shortfall'] == '53.40'
        assert state.cash_amount == Decimal('100.00')


class TestChange:
    """Tests for calculate_change and apply_exact_amount."""

    def test_change_in_cash_mode(self, state):
        tender_service.set_payment_amount(state, 'cash', 250)
        assert tender_service.calculate_change(state, TOTAL) == Decimal('46.60')

    def test_no_change_until_covered(self, state):
        tender_service.set_payment_amount(state, 'cash', 200)
        assert tender_service.calculate_change(state, TOTAL) is None

    def test_no_change_outside_cash_mode(self, state):
        tender_service.set_payment_method(state, 'split')
        tender_service.set_payment_amount(state, 'cash', 250)
        assert tender_service.calculate_change(state, TOTAL) is None

    def test_exact_amount(self, state):
        tender_service.set_payment_method(state, 'upi')
        assert tender_service.apply_exact_amount(state, TOTAL) == TOTAL
        assert state.upi_amount == TOTAL

    def test_exact_amount_not_for_split(self, state):
        tender_service.set_payment_method(state, 'split')
        with pytest.raises(ValidationError):
            tender_service.apply_exact_amount(state, TOTAL)

    def test_reset_tender(self, state):
        tender_service.set_payment_method(state, 'upi')
        tender_service.set_payment_amount(state, 'upi', 10)
        tender_service.set_reference(state, '  pay_123 ')
        assert state.reference == 'pay_123'

        tender_service.reset_tender(state)

        assert state.payment_method == PaymentMethod.CASH
        assert state.upi_amount == Decimal('0')
        assert state.reference == ''
