"""In-memory cart state for the active register session."""
import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from pos_register.models.catalog import ProductInfo


class PaymentMethod(str, enum.Enum):
    """Tender mode of the register."""
    CASH = 'cash'
    CARD = 'card'
    UPI = 'upi'
    SPLIT = 'split'


# Channels that carry an amount (split is a combination of these)
TENDER_CHANNELS = (PaymentMethod.CASH, PaymentMethod.CARD, PaymentMethod.UPI)


@dataclass
class Customer:
    """Customer attached to a sale. No customer means walk-in."""
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class CartLine:
    """
    Cart Line - one product in the cart.

    ``unit_price`` is snapshotted from the product when the line is created
    and never changes afterwards.
    """
    product: ProductInfo
    quantity: int
    unit_price: Decimal
    discount_percent: Decimal = Decimal('0')

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def tax_rate(self) -> Decimal:
        return self.product.tax_rate


@dataclass
class CartState:
    """
    Cart State - the single in-progress sale of the register.

    Totals are not stored here; see ``pricing_service.calculate_totals``.
    """
    lines: List[CartLine] = field(default_factory=list)
    global_discount_percent: Decimal = Decimal('0')
    customer: Optional[Customer] = None

    # Tender fields
    payment_method: PaymentMethod = PaymentMethod.CASH
    cash_amount: Decimal = Decimal('0')
    card_amount: Decimal = Decimal('0')
    upi_amount: Decimal = Decimal('0')
    reference: str = ''

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def __repr__(self):
        return (
            f"<CartState(lines={len(self.lines)}, method={self.payment_method.value}, "
            f"global_discount={self.global_discount_percent})>"
        )
