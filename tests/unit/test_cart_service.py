"""
Unit tests for cart line operations.
"""

import pytest
from decimal import Decimal

from pos_register.exceptions import ValidationError, NotFoundError, InsufficientStockError
from pos_register.models import Customer
from pos_register.services import cart_service


class TestAddToCart:
    """Tests for add_to_cart."""

    def test_new_line_snapshots_price(self, state, notebook):
        line = cart_service.add_to_cart(state, notebook, 2)

        assert len(state.lines) == 1
        assert line.quantity == 2
        assert line.unit_price == Decimal('100.00')
        assert line.discount_percent == Decimal('0')

    def test_re_adding_increments_quantity(self, state, notebook):
        cart_service.add_to_cart(state, notebook, 1)
        cart_service.add_to_cart(state, notebook, 3)

        assert len(state.lines) == 1
        assert state.lines[0].quantity == 4

    def test_rejects_non_positive_quantity(self, state, notebook):
        with pytest.raises(ValidationError):
            cart_service.add_to_cart(state, notebook, 0)
        with pytest.raises(ValidationError):
            cart_service.add_to_cart(state, notebook, -1)
        assert state.is_empty

    def test_rejects_fractional_and_bool_quantity(self, state, notebook):
        with pytest.raises(ValidationError):
            cart_service.add_to_cart(state, notebook, 1.5)
        with pytest.raises(ValidationError):
            cart_service.add_to_cart(state, notebook, True)
        assert state.is_empty

    def test_oversell_rejected_without_mutation(self, state, pen):
        cart_service.add_to_cart(state, pen, 2)

        with pytest.raises(InsufficientStockError) as exc:
            cart_service.add_to_cart(state, pen, 2)

        assert exc.value.available == 3
        assert exc.value.required == 4
        assert 'Cannot add more than available stock (3)' in exc.value.message
        assert state.lines[0].quantity == 2


class TestUpdateQuantity:
    """Tests for update_quantity."""

    def test_update(self, state, notebook):
        cart_service.add_to_cart(state, notebook, 1)
        line = cart_service.update_quantity(state, notebook.id, 5)
        assert line.quantity == 5

    def test_zero_removes_line(self, state, notebook):
        cart_service.add_to_cart(state, notebook, 1)
        assert cart_service.update_quantity(state, notebook.id, 0) is None
        assert state.is_empty

    def test_negative_removes_line(self, state, notebook):
        cart_service.add_to_cart(state, notebook, 1)
        cart_service.update_quantity(state, notebook.id, -3)
        assert state.is_empty

    def test_above_stock_rejected(self, state, pen):
        cart_service.add_to_cart(state, pen, 1)
        with pytest.raises(InsufficientStockError):
            cart_service.update_quantity(state, pen.id, 4)
        assert state.lines[0].quantity == 1

    def test_uses_given_stock(self, state, notebook):
        cart_service.add_to_cart(state, notebook, 1)
        with pytest.raises(InsufficientStockError):
            cart_service.update_quantity(state, notebook.id, 5, stock_quantity=4)

    def test_unknown_product(self, state):
        with pytest.raises(NotFoundError):
            cart_service.update_quantity(state, 'missing', 1)


class TestDiscounts:
    """Tests for line and order discounts."""

    @pytest.mark.parametrize('value,expected', [
        (-5, Decimal('0')),
        (15, Decimal('15')),
        ('12.5', Decimal('12.5')),
        (150, Decimal('100')),
    ])
    def test_line_discount_is_clamped(self, state, notebook, value, expected):
        cart_service.add_to_cart(state, notebook, 1)
        line = cart_service.update_discount(state, notebook.id, value)
        assert line.discount_percent == expected

    def test_global_discount_is_clamped(self, state):
        assert cart_service.set_global_discount(state, 250) == Decimal('100')
        assert cart_service.set_global_discount(state, -1) == Decimal('0')

    def test_invalid_discount(self, state):
        with pytest.raises(ValidationError):
            cart_service.set_global_discount(state, 'abc')
        assert state.global_discount_percent == Decimal('0')


class TestRemoveAndClear:
    """Tests for remove_from_cart and clear_cart."""

    def test_remove(self, state, notebook, pen):
        cart_service.add_to_cart(state, notebook, 1)
        cart_service.add_to_cart(state, pen, 1)
        cart_service.remove_from_cart(state, notebook.id)
        assert [l.product_id for l in state.lines] == [pen.id]

    def test_remove_unknown_is_noop(self, state, notebook):
        cart_service.add_to_cart(state, notebook, 1)
        cart_service.remove_from_cart(state, 'missing')
        assert len(state.lines) == 1

    def test_clear(self, state, notebook):
        cart_service.add_to_cart(state, notebook, 1)
        cart_service.set_global_discount(state, 10)
        cart_service.clear_cart(state)
        assert state.is_empty
        assert state.global_discount_percent == Decimal('0')

    def test_set_customer(self, state):
        customer = Customer(id='c-1', name='Asha Rao', phone='9800000000')
        cart_service.set_customer(state, customer)
        assert state.customer == customer
