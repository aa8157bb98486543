"""
Unit tests for held sales (memory and Redis stores).
"""

import copy
import pytest
from decimal import Decimal
from redis.exceptions import ConnectionError as RedisConnectionError

from pos_register.exceptions import ValidationError, NotFoundError, CartNotEmptyError
from pos_register.models import Customer, PaymentMethod
from pos_register.services import cart_service, held_sale_service, tender_service
from pos_register.services.held_sale_service import (
    MemoryHeldSaleStore, RedisHeldSaleStore, serialize_held_sale, deserialize_held_sale
)


class DictRedis:
    """Minimal key/sorted-set command double for RedisHeldSaleStore."""

    def __init__(self, fail=False, fail_on=()):
        self.values = {}
        self.ttls = {}
        self.zsets = {}
        self.fail = fail
        self.fail_on = set(fail_on)

    def _check(self, command):
        if self.fail or command in self.fail_on:
            raise RedisConnectionError('connection refused')

    def set(self, key, value):
        self._check('set')
        self.values[key] = value
        return True

    def setex(self, key, ttl, value):
        self._check('setex')
        self.values[key] = value
        self.ttls[key] = ttl
        return True

    def get(self, key):
        self._check('get')
        return self.values.get(key)

    def mget(self, keys):
        self._check('mget')
        return [self.values.get(key) for key in keys]

    def delete(self, key):
        self._check('delete')
        return 1 if self.values.pop(key, None) is not None else 0

    def zadd(self, key, mapping):
        self._check('zadd')
        self.zsets.setdefault(key, {}).update(mapping)
        return len(mapping)

    def zrange(self, key, start, end):
        self._check('zrange')
        members = self.zsets.get(key, {})
        return sorted(members, key=members.get)

    def zrem(self, key, *members):
        self._check('zrem')
        zset = self.zsets.get(key, {})
        return sum(1 for m in members if zset.pop(m, None) is not None)

    def expire_now(self, key):
        """Simulate Redis expiring one entry key."""
        self.values.pop(key, None)


@pytest.fixture
def filled_state(state, notebook, pen):
    cart_service.add_to_cart(state, notebook, 2)
    cart_service.add_to_cart(state, pen, 1)
    cart_service.update_discount(state, notebook.id, 10)
    cart_service.set_global_discount(state, 5)
    cart_service.set_customer(state, Customer(id='c-9', name='Ravi Kumar', email='ravi@example.com'))
    tender_service.set_payment_method(state, 'split')
    tender_service.set_payment_amount(state, 'cash', 50)
    tender_service.set_reference(state, 'ref-1')
    return state


class TestHoldResume:
    """Tests for hold_sale / resume_sale / discard_held_sale."""

    def test_hold_empty_cart_rejected(self, store, state):
        with pytest.raises(ValidationError):
            held_sale_service.hold_sale(store, state)
        assert len(store) == 0

    def test_hold_resets_active_cart(self, store, filled_state):
        held = held_sale_service.hold_sale(store, filled_state)

        assert held.id.startswith('hold-')
        assert held.customer_name == 'Ravi Kumar'
        assert held.item_count == 2
        assert len(store) == 1
        assert filled_state.is_empty
        assert filled_state.customer is None
        assert filled_state.global_discount_percent == Decimal('0')
        assert filled_state.payment_method == PaymentMethod.CASH
        assert filled_state.cash_amount == Decimal('0')

    def test_walk_in_name(self, store, state, notebook):
        cart_service.add_to_cart(state, notebook, 1)
        held = held_sale_service.hold_sale(store, state, walk_in_name='Walk-in')
        assert held.customer_name == 'Walk-in'

    def test_round_trip_restores_state(self, store, filled_state):
        before = copy.deepcopy(filled_state)
        held = held_sale_service.hold_sale(store, filled_state)

        held_sale_service.resume_sale(store, held.id, filled_state)

        assert filled_state == before
        assert len(store) == 0

    def test_snapshot_is_isolated(self, store, filled_state, notebook):
        held = held_sale_service.hold_sale(store, filled_state)
        cart_service.add_to_cart(filled_state, notebook, 5)
        assert store.get(held.id).state.lines[0].quantity == 2

    def test_resume_over_non_empty_cart(self, store, filled_state, notebook):
        held = held_sale_service.hold_sale(store, filled_state)
        cart_service.add_to_cart(filled_state, notebook, 1)

        with pytest.raises(CartNotEmptyError):
            held_sale_service.resume_sale(store, held.id, filled_state)
        assert len(store) == 1

    def test_resume_unknown(self, store, state):
        with pytest.raises(NotFoundError):
            held_sale_service.resume_sale(store, 'hold-missing', state)

    def test_discard(self, store, filled_state):
        held = held_sale_service.hold_sale(store, filled_state)
        held_sale_service.discard_held_sale(store, held.id)
        assert len(store) == 0
        with pytest.raises(NotFoundError):
            held_sale_service.discard_held_sale(store, held.id)

    def test_list_in_hold_order(self, store, state, notebook, pen):
        cart_service.add_to_cart(state, notebook, 1)
        first = held_sale_service.hold_sale(store, state)
        cart_service.add_to_cart(state, pen, 1)
        second = held_sale_service.hold_sale(store, state)
        assert [h.id for h in store.list()] == [first.id, second.id]


class TestRedisStore:
    """Tests for the Redis-backed store."""

    def test_serialization_keeps_decimals(self, filled_state):
        held = held_sale_service.hold_sale(MemoryHeldSaleStore(), filled_state)

        restored = deserialize_held_sale(serialize_held_sale(held))

        assert restored == held
        assert isinstance(restored.state.lines[0].unit_price, Decimal)
        assert restored.state.payment_method == PaymentMethod.SPLIT

    def test_hold_and_resume(self, filled_state):
        client = DictRedis()
        store = RedisHeldSaleStore(client, prefix='test', ttl=60)
        before = copy.deepcopy(filled_state)

        held = held_sale_service.hold_sale(store, filled_state)

        assert list(client.values) == [f'test:held_sale:{held.id}']
        assert client.ttls[f'test:held_sale:{held.id}'] == 60
        assert len(store) == 1

        held_sale_service.resume_sale(store, held.id, filled_state)
        assert filled_state == before
        assert len(store) == 0
        assert client.zsets['test:held_sales'] == {}

    def test_entries_expire_independently(self, state, notebook, pen):
        client = DictRedis()
        store = RedisHeldSaleStore(client, prefix='test', ttl=60)
        cart_service.add_to_cart(state, notebook, 1)
        first = held_sale_service.hold_sale(store, state)
        cart_service.add_to_cart(state, pen, 1)
        second = held_sale_service.hold_sale(store, state)

        client.expire_now(f'test:held_sale:{first.id}')

        assert [h.id for h in store.list()] == [second.id]
        assert list(client.zsets['test:held_sales']) == [second.id]

    def test_failed_removal_leaves_cart_and_entry(self, state, notebook):
        client = DictRedis()
        store = RedisHeldSaleStore(client, prefix='test')
        cart_service.add_to_cart(state, notebook, 2)
        held = held_sale_service.hold_sale(store, state)
        client.fail_on.add('delete')

        with pytest.raises(ValidationError) as exc:
            held_sale_service.resume_sale(store, held.id, state)

        assert exc.value.status_code == 503
        assert state.is_empty
        assert store.get(held.id) is not None

    def test_unavailable_redis(self, filled_state):
        store = RedisHeldSaleStore(DictRedis(fail=True))

        with pytest.raises(ValidationError) as exc:
            held_sale_service.hold_sale(store, filled_state)

        assert exc.value.status_code == 503
        assert not filled_state.is_empty
        assert store.list() == []

    def test_build_store(self):
        assert isinstance(held_sale_service.build_store({'HELD_SALES_BACKEND': 'memory'}), MemoryHeldSaleStore)
