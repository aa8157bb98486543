"""Day summary over the register's completed sales."""
import logging
from dataclasses import dataclass, asdict
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, Optional

from pos_register.models import PaymentMethod, Sale

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DaySummary:
    date: date
    total_sales: Decimal
    cash_sales: Decimal
    card_sales: Decimal
    upi_sales: Decimal
    total_items_sold: int
    total_orders: int
    total_discounts: Decimal
    total_taxes: Decimal

    def to_dict(self) -> dict:
        data = {k: str(v) if isinstance(v, Decimal) else v for k, v in asdict(self).items()}
        data['date'] = self.date.isoformat()
        return data


def channel_split(sale: Sale) -> Dict[PaymentMethod, Decimal]:
    """
    Amount each channel contributed to a sale total.

    Single-channel sales count the full total on their channel. Split sales
    count each entered amount, with any overpayment taken back from cash
    first, then card, then UPI.
    """
    tender = sale.tender
    if tender.method != PaymentMethod.SPLIT:
        return {tender.method: sale.total}

    amounts = {
        PaymentMethod.CASH: tender.cash_amount,
        PaymentMethod.CARD: tender.card_amount,
        PaymentMethod.UPI: tender.upi_amount,
    }
    excess = sum(amounts.values(), Decimal('0.00')) - sale.total
    for channel in (PaymentMethod.CASH, PaymentMethod.CARD, PaymentMethod.UPI):
        if excess <= 0:
            break
        taken = min(excess, amounts[channel])
        amounts[channel] -= taken
        excess -= taken
    return amounts


def summarize_day(sales: Iterable[Sale], day: Optional[date] = None) -> DaySummary:
    """Aggregate the sales created on ``day`` (UTC, default today)."""
    day = day or datetime.now(timezone.utc).date()

    total_sales = Decimal('0.00')
    by_channel = {
        PaymentMethod.CASH: Decimal('0.00'),
        PaymentMethod.CARD: Decimal('0.00'),
        PaymentMethod.UPI: Decimal('0.00'),
    }
    items = 0
    orders = 0
    discounts = Decimal('0.00')
    taxes = Decimal('0.00')

    for sale in sales:
        if sale.created_at.date() != day:
            continue
        orders += 1
        total_sales += sale.total
        items += sale.totals.total_items
        discounts += sale.totals.discount_amount
        taxes += sale.totals.tax
        for channel, amount in channel_split(sale).items():
            by_channel[channel] += amount

    logger.debug(f"[REPORT] Day summary {day}: orders={orders}, total={total_sales}")

    return DaySummary(
        date=day,
        total_sales=total_sales,
        cash_sales=by_channel[PaymentMethod.CASH],
        card_sales=by_channel[PaymentMethod.CARD],
        upi_sales=by_channel[PaymentMethod.UPI],
        total_items_sold=items,
        total_orders=orders,
        total_discounts=discounts,
        total_taxes=taxes,
    )
