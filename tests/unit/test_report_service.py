"""
Unit tests for the day summary.
"""

from datetime import timedelta
from decimal import Decimal

from pos_register.services import cart_service, sale_service, tender_service
from pos_register.services.report_service import summarize_day, channel_split
from pos_register.models import PaymentMethod


def _sell(state, catalog, product, qty, method, **amounts):
    cart_service.add_to_cart(state, product, qty)
    tender_service.set_payment_method(state, method)
    for channel, amount in amounts.items():
        tender_service.set_payment_amount(state, channel, amount)
    sale, _ = sale_service.complete_sale(state, catalog)
    return sale


class TestDaySummary:
    """Tests for summarize_day."""

    def test_channels_and_totals(self, state, catalog, notebook, pen):
        cash_sale = _sell(state, catalog, notebook, 1, 'cash', cash=200)     # 118.00
        upi_sale = _sell(state, catalog, pen, 2, 'upi', upi='57.12')        # 57.12
        split_sale = _sell(state, catalog, notebook, 2, 'split', cash=100, card=200)  # 236.00

        summary = summarize_day([cash_sale, upi_sale, split_sale], cash_sale.created_at.date())

        assert summary.total_orders == 3
        assert summary.total_items_sold == 5
        assert summary.total_sales == Decimal('411.12')
        assert summary.cash_sales == Decimal('118.00') + Decimal('36.00')
        assert summary.card_sales == Decimal('200.00')
        assert summary.upi_sales == Decimal('57.12')
        assert summary.total_taxes == Decimal('18.00') + Decimal('6.12') + Decimal('36.00')
        assert summary.to_dict()['total_sales'] == '411.12'

    def test_other_days_excluded(self, state, catalog, notebook):
        sale = _sell(state, catalog, notebook, 1, 'cash', cash=118)
        summary = summarize_day([sale], sale.created_at.date() - timedelta(days=1))
        assert summary.total_orders == 0
        assert summary.total_sales == Decimal('0.00')

    def test_split_overpayment_taken_from_cash(self, state, catalog, notebook):
        sale = _sell(state, catalog, notebook, 1, 'split', cash=50, card=100)  # total 118.00
        split = channel_split(sale)
        assert split[PaymentMethod.CASH] == Decimal('18.00')
        assert split[PaymentMethod.CARD] == Decimal('100.00')
        assert split[PaymentMethod.UPI] == Decimal('0')
