"""Cart Ledger - line item operations on the active cart state."""
import logging
from decimal import Decimal
from typing import Optional

from pos_register.exceptions import ValidationError, NotFoundError, InsufficientStockError
from pos_register.models import CartLine, CartState, Customer, ProductInfo
from pos_register.utils.money import clamp_percent

logger = logging.getLogger(__name__)


def _validate_quantity(quantity) -> int:
    """Quantities are whole, positive units."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError('Quantity must be a whole number')
    if quantity <= 0:
        raise ValidationError('Quantity must be greater than 0')
    return quantity


def find_line(state: CartState, product_id: str) -> Optional[CartLine]:
    """Return the cart line for a product, if present."""
    product_id = str(product_id)
    for line in state.lines:
        if line.product_id == product_id:
            return line
    return None


def add_to_cart(state: CartState, product: ProductInfo, quantity: int = 1) -> CartLine:
    """
    Add product to cart or increase its quantity if already present.

    Raises InsufficientStockError before touching the cart when the
    resulting quantity would exceed the product's known stock.
    """
    quantity = _validate_quantity(quantity)

    line = find_line(state, product.id)
    new_qty = (line.quantity if line else 0) + quantity
    if new_qty > product.stock_quantity:
        raise InsufficientStockError(product.name, new_qty, product.stock_quantity)

    if line:
        line.quantity = new_qty
    else:
        line = CartLine(
            product=product,
            quantity=quantity,
            unit_price=product.unit_price,
            discount_percent=Decimal('0')
        )
        state.lines.append(line)

    logger.info(f"[CART] add: product_id={product.id}, qty={quantity}, line_qty={line.quantity}")
    return line


def update_quantity(
    state: CartState,
    product_id: str,
    new_quantity: int,
    stock_quantity: Optional[int] = None
) -> Optional[CartLine]:
    """
    Set a line's quantity.

    A quantity of 0 or less removes the line. ``stock_quantity`` is the stock
    known at call time; when omitted the line's product snapshot is used.
    Returns the updated line, or None when it was removed.
    """
    if isinstance(new_quantity, bool) or not isinstance(new_quantity, int):
        raise ValidationError('Quantity must be a whole number')

    line = find_line(state, product_id)
    if not line:
        raise NotFoundError('Product is not in the cart')

    if new_quantity <= 0:
        remove_from_cart(state, product_id)
        return None

    available = line.product.stock_quantity if stock_quantity is None else stock_quantity
    if new_quantity > available:
        raise InsufficientStockError(line.product.name, new_quantity, available)

    line.quantity = new_quantity
    logger.info(f"[CART] update: product_id={product_id}, qty={new_quantity}")
    return line


def update_discount(state: CartState, product_id: str, percent) -> CartLine:
    """Set a line-level discount, clamped to [0, 100]."""
    line = find_line(state, product_id)
    if not line:
        raise NotFoundError('Product is not in the cart')
    try:
        line.discount_percent = clamp_percent(percent)
    except ValueError as e:
        raise ValidationError(str(e))
    return line


def remove_from_cart(state: CartState, product_id: str) -> None:
    """Remove line from cart."""
    product_id = str(product_id)
    before = len(state.lines)
    state.lines = [line for line in state.lines if line.product_id != product_id]
    if len(state.lines) != before:
        logger.info(f"[CART] remove: product_id={product_id}")


def clear_cart(state: CartState) -> None:
    """Clear all lines and the order discount. Held sales are not affected."""
    state.lines = []
    state.global_discount_percent = Decimal('0')


def set_global_discount(state: CartState, percent) -> Decimal:
    """Set the order-wide discount, clamped to [0, 100]."""
    try:
        state.global_discount_percent = clamp_percent(percent)
    except ValueError as e:
        raise ValidationError(str(e))
    return state.global_discount_percent


def set_customer(state: CartState, customer: Optional[Customer]) -> None:
    state.customer = customer
