"""
Register - the command interface of a single POS register.

Every operator command goes through a ``Register`` method. Services raise
``RegisterError``; the register catches it, sends it to the notifier as a
user-visible message, keeps it in ``last_error`` and leaves the cart as it
was. Nothing here depends on Flask.
"""
import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pos_register.exceptions import (
    RegisterError, ValidationError, NotFoundError, GatewayNotConfiguredError
)
from pos_register.models import CartState, Customer, PaymentMethod, ProductInfo, Sale, CartTotals
from pos_register.services import (
    cart_service, pricing_service, tender_service, held_sale_service, sale_service, report_service
)
from pos_register.services.held_sale_service import HeldSale, MemoryHeldSaleStore
from pos_register.services.notification_service import NotificationLevel, LoggingNotifier
from pos_register.services.payment_gateway import (
    AuthorizationCancelled, AuthorizationFailed, AuthorizationResult, AuthorizationSuccess,
    CheckoutFn, OrderHandle
)

logger = logging.getLogger(__name__)


class Register:
    """One register session: the active cart, held sales and sales history."""

    def __init__(
        self,
        catalog,
        gateway=None,
        notifier=None,
        store=None,
        currency: str = 'INR',
        walk_in_name: str = 'Walk-in Customer',
        business_name: str = 'POS Register'
    ):
        self.catalog = catalog
        self.gateway = gateway
        self.notifier = notifier or LoggingNotifier()
        self.store = store if store is not None else MemoryHeldSaleStore()
        self.currency = currency
        self.walk_in_name = walk_in_name
        self.business_name = business_name

        self.state = CartState()
        self.sales: List[Sale] = []
        self.last_error: Optional[RegisterError] = None
        self.last_sale: Optional[Sale] = None
        self.last_stock_warnings: List[sale_service.StockWarning] = []
        self.pending_order: Optional[Tuple[PaymentMethod, OrderHandle]] = None

        # Drainable queue behind the notifier, when the caller needs one
        self.notifications = None

        # Hooks called after a completed sale / gateway authorization
        self.sale_listeners: List[Callable[[Sale], None]] = []
        self.authorization_listeners: List[Callable[[AuthorizationResult], None]] = []

    # --- Internals ---

    def _notify(self, level: NotificationLevel, message: str) -> None:
        try:
            self.notifier.notify(level, message)
        except Exception:
            logger.exception("[REGISTER] Notifier failed")

    def _fail(self, error: RegisterError) -> None:
        self.last_error = error
        logger.info(f"[REGISTER] Command rejected ({error.status_code}): {error.message}")
        self._notify(NotificationLevel.ERROR, error.message)

    def _run(self, fn, *args, **kwargs):
        """Run a service call; RegisterError becomes a notice and None."""
        self.last_error = None
        try:
            return fn(*args, **kwargs)
        except RegisterError as e:
            self._fail(e)
            return None

    def _emit(self, listeners, value) -> None:
        for listener in listeners:
            try:
                listener(value)
            except Exception as e:
                logger.warning(f"[REGISTER] Listener failed: {e}")

    def _current_stock(self, product_id: str) -> Optional[int]:
        try:
            return self.catalog.get_product(product_id).stock_quantity
        except NotFoundError:
            return None

    # --- Reads ---

    def totals(self) -> CartTotals:
        return pricing_service.calculate_totals(self.state)

    def line_details(self) -> List[Dict[str, Any]]:
        return pricing_service.calculate_line_details(self.state)

    def amount_paid(self) -> Decimal:
        return tender_service.amount_paid(self.state)

    def change_due(self) -> Optional[Decimal]:
        return tender_service.calculate_change(self.state, self.totals().total)

    @property
    def customer_name(self) -> str:
        return self.state.customer.name if self.state.customer else self.walk_in_name

    # --- Cart ---

    def add_to_cart(self, product: Union[ProductInfo, str], quantity: int = 1):
        """Add a product (snapshot or catalog id) to the cart."""
        def _add():
            info = product if isinstance(product, ProductInfo) else self.catalog.get_product(product)
            return cart_service.add_to_cart(self.state, info, quantity)
        return self._run(_add)

    def add_by_search(self, query: str, quantity: int = 1):
        """Look up a product by barcode, name or SKU and add it."""
        def _add():
            info = self.catalog.find_product(query)
            if info is None:
                raise NotFoundError(f'No product found for "{query}"')
            return cart_service.add_to_cart(self.state, info, quantity)
        return self._run(_add)

    def update_quantity(self, product_id: str, quantity: int):
        """Set a line quantity against the catalog's current stock (0 removes the line)."""
        def _update():
            return cart_service.update_quantity(
                self.state, product_id, quantity, stock_quantity=self._current_stock(product_id)
            )
        return self._run(_update)

    def update_discount(self, product_id: str, percent):
        return self._run(cart_service.update_discount, self.state, product_id, percent)

    def remove_from_cart(self, product_id: str) -> None:
        self._run(cart_service.remove_from_cart, self.state, product_id)

    def clear_cart(self) -> None:
        """Drop the current sale: lines, discount, customer and tender."""
        self.last_error = None
        cart_service.clear_cart(self.state)
        cart_service.set_customer(self.state, None)
        tender_service.reset_tender(self.state)
        self.pending_order = None

    def set_global_discount(self, percent) -> Optional[Decimal]:
        return self._run(cart_service.set_global_discount, self.state, percent)

    def set_customer(self, customer: Optional[Customer]) -> None:
        self._run(cart_service.set_customer, self.state, customer)

    # --- Tender ---

    def set_payment_method(self, method) -> Optional[PaymentMethod]:
        return self._run(tender_service.set_payment_method, self.state, method)

    def set_payment_amount(self, channel, amount) -> Optional[Decimal]:
        return self._run(tender_service.set_payment_amount, self.state, channel, amount)

    def set_reference(self, value: Optional[str]) -> None:
        self._run(tender_service.set_reference, self.state, value)

    def apply_exact_amount(self) -> Optional[Decimal]:
        return self._run(tender_service.apply_exact_amount, self.state, self.totals().total)

    # --- Held sales ---

    def hold_sale(self) -> Optional[HeldSale]:
        held = self._run(held_sale_service.hold_sale, self.store, self.state, self.walk_in_name)
        if held is not None:
            self.pending_order = None
            self._notify(NotificationLevel.SUCCESS, 'Sale held successfully')
        return held

    def resume_sale(self, hold_id: str) -> Optional[HeldSale]:
        held = self._run(held_sale_service.resume_sale, self.store, hold_id, self.state)
        if held is not None:
            self.pending_order = None
            self._notify(NotificationLevel.SUCCESS, 'Sale resumed successfully')
        return held

    def discard_held_sale(self, hold_id: str) -> bool:
        self._run(held_sale_service.discard_held_sale, self.store, hold_id)
        return self.last_error is None

    def held_sales(self) -> List[HeldSale]:
        return self.store.list()

    # --- Settlement ---

    def _finalize(self, payment_reference: Optional[str] = None) -> Optional[Sale]:
        result = self._run(
            sale_service.complete_sale,
            self.state,
            self.catalog,
            walk_in_name=self.walk_in_name,
            payment_reference=payment_reference
        )
        if result is None:
            return None

        sale, warnings = result
        self.sales.append(sale)
        self.last_sale = sale
        self.last_stock_warnings = warnings
        self.pending_order = None

        self._notify(NotificationLevel.SUCCESS, f'Sale {sale.sale_number} completed')
        for warning in warnings:
            self._notify(NotificationLevel.WARNING, warning.message)
        self._emit(self.sale_listeners, sale)
        return sale

    def complete_sale(self) -> Optional[Sale]:
        """Settle with the amounts already entered (cash, or externally captured card/UPI)."""
        self.last_stock_warnings = []
        return self._finalize()

    def _check_gateway_settlement(self, channel) -> PaymentMethod:
        method = tender_service.normalize_channel(channel)
        if method == PaymentMethod.CASH:
            raise ValidationError('Cash payments are settled at the register')
        if self.state.is_empty:
            raise ValidationError('Cannot complete an empty cart')
        if self.gateway is None:
            raise GatewayNotConfiguredError()
        return method

    def _customer_info(self) -> Dict[str, str]:
        customer = self.state.customer
        if customer is None:
            return {'name': self.walk_in_name}
        return {'name': customer.name, 'email': customer.email, 'contact': customer.phone}

    def _display_info(self, method: PaymentMethod) -> Dict[str, Any]:
        totals = self.totals()
        return {
            'name': self.business_name,
            'description': f'Sale of {totals.total_items} items',
            'method': method.value,
            'amount': str(totals.total),
            'currency': self.currency,
            'prefill': self._customer_info(),
        }

    def create_gateway_order(self, channel) -> Optional[OrderHandle]:
        """
        Create (or reuse) the gateway order for the current total.

        An order pending for the same channel and amount is reused, so a
        cancelled checkout can be retried on the same order.
        """
        def _create():
            method = self._check_gateway_settlement(channel)
            total = self.totals().total
            if self.pending_order:
                pending_method, handle = self.pending_order
                if pending_method == method and handle.amount == total:
                    return handle
            handle = self.gateway.create_order(
                total,
                self.currency,
                f"rcpt-{uuid.uuid4().hex[:12]}",
                customer_info=self._customer_info()
            )
            self.pending_order = (method, handle)
            return handle
        return self._run(_create)

    def settle_with_gateway(
        self,
        channel,
        display_info: Optional[Dict[str, Any]] = None,
        checkout: Optional[CheckoutFn] = None
    ) -> AuthorizationResult:
        """
        Card/UPI settlement through the payment gateway.

        success: reference and channel amount are set, then the sale is
        finalized. cancelled/failed: the cart and tender stay as they were.
        Order-creation errors resolve to failed.
        """
        handle = self.create_gateway_order(channel)
        if handle is None:
            error = self.last_error.message if self.last_error else 'Payment failed'
            result = AuthorizationFailed(error)
            self._emit(self.authorization_listeners, result)
            return result

        method, _ = self.pending_order
        result = self.gateway.authorize(handle, display_info or self._display_info(method), checkout=checkout)
        self._emit(self.authorization_listeners, result)

        if isinstance(result, AuthorizationSuccess):
            total = self.totals().total
            tender_service.set_reference(self.state, result.payment_id)
            tender_service.set_payment_amount(self.state, method, total)
            if self.state.payment_method != PaymentMethod.SPLIT:
                tender_service.set_payment_method(self.state, method)
            logger.info(f"[TENDER] {method.value} authorized: payment_id={result.payment_id}, amount={total}")
            self.last_stock_warnings = []
            self._finalize(payment_reference=result.payment_id)
        elif isinstance(result, AuthorizationCancelled):
            self.last_error = None
            self._notify(NotificationLevel.INFO, 'Payment cancelled')
        else:
            self.last_error = None
            self._notify(NotificationLevel.ERROR, f'Payment failed: {result.error}')
        return result

    # --- History ---

    def day_summary(self, day: Optional[date] = None) -> report_service.DaySummary:
        return report_service.summarize_day(self.sales, day)
