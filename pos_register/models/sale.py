"""Sale record and derived totals (immutable value objects)."""
import enum
from dataclasses import dataclass, asdict
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from pos_register.models.cart import PaymentMethod


class SaleStatus(str, enum.Enum):
    """Sale status enum."""
    PAID = 'paid'


@dataclass(frozen=True)
class CartTotals:
    """
    Totals derived from a cart state.

    ``subtotal`` is the sum of discounted line totals; ``gross_subtotal`` is the
    pre-discount figure shown to the operator.
    """
    gross_subtotal: Decimal
    line_discount_amount: Decimal
    subtotal: Decimal
    order_discount_amount: Decimal
    tax: Decimal
    total: Decimal
    total_items: int

    @property
    def discount_amount(self) -> Decimal:
        """Line discounts plus the order-level discount."""
        return self.line_discount_amount + self.order_discount_amount

    def to_dict(self) -> dict:
        data = {k: str(v) if isinstance(v, Decimal) else v for k, v in asdict(self).items()}
        data['discount_amount'] = str(self.discount_amount)
        return data


@dataclass(frozen=True)
class SaleLine:
    """Sale Line - snapshot of a cart line at settlement."""
    product_id: str
    name: str
    sku: str
    quantity: int
    unit_price: Decimal
    discount_percent: Decimal
    tax_rate: Decimal
    line_total: Decimal
    tax_amount: Decimal


@dataclass(frozen=True)
class TenderBreakdown:
    """How the sale was paid."""
    method: PaymentMethod
    cash_amount: Decimal
    card_amount: Decimal
    upi_amount: Decimal
    reference: str
    amount_paid: Decimal
    change: Decimal


@dataclass(frozen=True)
class Sale:
    """Sale (finalized, never mutated after creation)."""
    id: str
    sale_number: str
    created_at: datetime
    customer_id: Optional[str]
    customer_name: str
    lines: Tuple[SaleLine, ...]
    totals: CartTotals
    global_discount_percent: Decimal
    tender: TenderBreakdown
    payment_reference: Optional[str] = None
    status: SaleStatus = SaleStatus.PAID

    @property
    def total(self) -> Decimal:
        return self.totals.total

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'sale_number': self.sale_number,
            'created_at': self.created_at.isoformat(),
            'customer_id': self.customer_id,
            'customer_name': self.customer_name,
            'lines': [
                {
                    'product_id': line.product_id,
                    'name': line.name,
                    'sku': line.sku,
                    'quantity': line.quantity,
                    'unit_price': str(line.unit_price),
                    'discount_percent': str(line.discount_percent),
                    'tax_rate': str(line.tax_rate),
                    'line_total': str(line.line_total),
                    'tax_amount': str(line.tax_amount),
                }
                for line in self.lines
            ],
            'totals': self.totals.to_dict(),
            'global_discount_percent': str(self.global_discount_percent),
            'tender': {
                'method': self.tender.method.value,
                'cash_amount': str(self.tender.cash_amount),
                'card_amount': str(self.tender.card_amount),
                'upi_amount': str(self.tender.upi_amount),
                'reference': self.tender.reference,
                'amount_paid': str(self.tender.amount_paid),
                'change': str(self.tender.change),
            },
            'payment_reference': self.payment_reference,
            'status': self.status.value,
        }

    def __repr__(self):
        return f"<Sale(id={self.id}, number={self.sale_number}, total={self.total})>"
