"""
Sale Finalizer - turns the settled cart into an immutable Sale.

Order of effects: build the Sale, ask the catalog to decrement stock for every
line, reset the cart and tender. A stock decrement failure never undoes the
sale; it is returned as a StockWarning for the operator to reconcile.
"""
import logging
import random
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from pos_register.exceptions import ValidationError
from pos_register.models import CartState, CartTotals, Sale, SaleLine, SaleStatus, TenderBreakdown
from pos_register.services import cart_service, tender_service
from pos_register.services.pricing_service import calculate_totals, line_total, line_tax

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockWarning:
    """A line whose stock could not be decremented after the sale."""
    product_id: str
    product_name: str
    quantity: int
    reason: str

    @property
    def message(self) -> str:
        return (
            f"Stock not updated for {self.product_name} (qty {self.quantity}): "
            f"{self.reason}. Please reconcile inventory."
        )


def generate_sale_number(now: Optional[datetime] = None) -> str:
    """INV-<last 6 digits of epoch ms>-<3 random digits>."""
    now = now or datetime.now(timezone.utc)
    timestamp = str(int(now.timestamp() * 1000))[-6:]
    return f"INV-{timestamp}-{random.randint(0, 999):03d}"


def build_sale(
    state: CartState,
    totals: CartTotals,
    walk_in_name: str = 'Walk-in Customer',
    payment_reference: Optional[str] = None
) -> Sale:
    """Snapshot the cart and tender into a Sale record."""
    now = datetime.now(timezone.utc)
    paid = tender_service.amount_paid(state)
    change = tender_service.calculate_change(state, totals.total) or Decimal('0.00')

    lines = tuple(
        SaleLine(
            product_id=line.product_id,
            name=line.product.name,
            sku=line.product.sku,
            quantity=line.quantity,
            unit_price=line.unit_price,
            discount_percent=line.discount_percent,
            tax_rate=line.tax_rate,
            line_total=line_total(line),
            tax_amount=line_tax(line),
        )
        for line in state.lines
    )

    tender = TenderBreakdown(
        method=state.payment_method,
        cash_amount=state.cash_amount,
        card_amount=state.card_amount,
        upi_amount=state.upi_amount,
        reference=state.reference,
        amount_paid=paid,
        change=change,
    )

    return Sale(
        id=f"sale-{uuid.uuid4().hex[:12]}",
        sale_number=generate_sale_number(now),
        created_at=now,
        customer_id=state.customer.id if state.customer else None,
        customer_name=state.customer.name if state.customer else walk_in_name,
        lines=lines,
        totals=totals,
        global_discount_percent=state.global_discount_percent,
        tender=tender,
        payment_reference=payment_reference,
        status=SaleStatus.PAID,
    )


def decrement_stock_for_sale(catalog, sale: Sale) -> List[StockWarning]:
    """Ask the catalog to decrement stock per line; collect failures."""
    warnings = []
    for line in sale.lines:
        try:
            ok = catalog.decrement_stock(line.product_id, line.quantity)
            reason = 'catalog refused the decrement'
        except Exception as e:
            logger.exception(f"[SALE] Stock decrement raised for {line.product_id} on {sale.sale_number}")
            ok = False
            reason = str(e) or e.__class__.__name__

        if not ok:
            warnings.append(StockWarning(
                product_id=line.product_id,
                product_name=line.name,
                quantity=line.quantity,
                reason=reason,
            ))
    return warnings


def complete_sale(
    state: CartState,
    catalog,
    walk_in_name: str = 'Walk-in Customer',
    payment_reference: Optional[str] = None
) -> Tuple[Sale, List[StockWarning]]:
    """
    Finalize the active cart.

    Raises:
        ValidationError: if the cart is empty
        InsufficientPaymentError: if the tender does not cover the total
    """
    if state.is_empty:
        raise ValidationError('Cannot complete an empty cart')

    totals = calculate_totals(state)
    tender_service.validate_payment(state, totals.total)

    # 1. Immutable record
    sale = build_sale(state, totals, walk_in_name, payment_reference)

    # 2. Stock (non-fatal)
    warnings = decrement_stock_for_sale(catalog, sale) if catalog is not None else []
    for warning in warnings:
        logger.warning(f"[SALE] {sale.sale_number}: {warning.message}")

    # 3. Reset
    cart_service.clear_cart(state)
    cart_service.set_customer(state, None)
    tender_service.reset_tender(state)

    logger.info(
        f"[SALE] Completed {sale.sale_number}: total={sale.total}, "
        f"method={sale.tender.method.value}, lines={len(sale.lines)}"
    )
    return sale, warnings
