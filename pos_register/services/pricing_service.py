"""
Pricing Engine - totals derived from the cart state.

Everything here is a pure function of the cart; nothing is cached. The order
of operations is fixed: line discount, then order discount, then tax added
back. Tax is charged on the line-discounted amount.
"""
from decimal import Decimal
from typing import Any, Dict, List

from pos_register.models import CartLine, CartState, CartTotals
from pos_register.utils.money import money, HUNDRED


def gross_line_amount(line: CartLine) -> Decimal:
    """Quantity x unit price, before any discount."""
    return money(line.quantity * line.unit_price)


def line_total(line: CartLine) -> Decimal:
    """quantity x unit_price x (1 - discount/100), to the cent."""
    return money(line.quantity * line.unit_price * (HUNDRED - line.discount_percent) / HUNDRED)


def line_tax(line: CartLine) -> Decimal:
    """Tax on the discounted line amount."""
    return money(line_total(line) * line.tax_rate / HUNDRED)


def calculate_totals(state: CartState) -> CartTotals:
    """Calculate totals for the cart."""
    gross_subtotal = Decimal('0.00')
    subtotal = Decimal('0.00')
    tax = Decimal('0.00')
    total_items = 0

    for line in state.lines:
        gross_subtotal += gross_line_amount(line)
        subtotal += line_total(line)
        tax += line_tax(line)
        total_items += line.quantity

    order_discount_amount = money(subtotal * state.global_discount_percent / HUNDRED)
    total = subtotal - order_discount_amount + tax

    return CartTotals(
        gross_subtotal=gross_subtotal,
        line_discount_amount=gross_subtotal - subtotal,
        subtotal=subtotal,
        order_discount_amount=order_discount_amount,
        tax=tax,
        total=total,
        total_items=total_items
    )


def calculate_line_details(state: CartState) -> List[Dict[str, Any]]:
    """Per-line breakdown for display."""
    lines_details = []
    for line in state.lines:
        lines_details.append({
            'product_id': line.product_id,
            'product_name': line.product.name,
            'sku': line.product.sku,
            'qty': line.quantity,
            'unit_price': line.unit_price,
            'discount_percent': line.discount_percent,
            'tax_rate': line.tax_rate,
            'line_subtotal': gross_line_amount(line),
            'line_total': line_total(line),
            'tax_amount': line_tax(line),
        })
    return lines_details
