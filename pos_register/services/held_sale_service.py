"""
Held-Sale Store - parked carts that can be resumed or discarded.

Held sales are process-local by default (``MemoryHeldSaleStore``). With
``HELD_SALES_BACKEND=redis`` they are kept in Redis instead, so a register
restart does not lose them.
"""
import copy
import json
import logging
import uuid
from collections import OrderedDict
from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import redis
from redis.exceptions import RedisError

from pos_register.exceptions import ValidationError, NotFoundError, CartNotEmptyError
from pos_register.models import CartLine, CartState, Customer, PaymentMethod, ProductInfo
from pos_register.services import cart_service, tender_service
from pos_register.services.pricing_service import calculate_totals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeldSale:
    """Snapshot of a parked cart."""
    id: str
    held_at: datetime
    state: CartState
    customer_name: str
    item_count: int
    total: Decimal

    def to_dict(self) -> Dict[str, Any]:
        """Summary for listing (the snapshot itself is not exposed)."""
        return {
            'id': self.id,
            'held_at': self.held_at.isoformat(),
            'customer_name': self.customer_name,
            'item_count': self.item_count,
            'total': str(self.total),
        }


class MemoryHeldSaleStore:
    """Held sales kept in process memory, in hold order."""

    def __init__(self):
        self._entries: "OrderedDict[str, HeldSale]" = OrderedDict()

    def add(self, held: HeldSale) -> None:
        self._entries[held.id] = held

    def get(self, hold_id: str) -> Optional[HeldSale]:
        return self._entries.get(hold_id)

    def remove(self, hold_id: str) -> bool:
        return self._entries.pop(hold_id, None) is not None

    def list(self) -> List[HeldSale]:
        return list(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


# --- Serialization (Redis backend) ---

def _default_handler(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    elif isinstance(obj, Decimal):
        # Tagged so it comes back as Decimal, not float
        return {"__decimal__": str(obj)}
    elif isinstance(obj, PaymentMethod):
        return obj.value
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def _object_hook(dct: Dict[str, Any]) -> Any:
    if "__decimal__" in dct:
        return Decimal(dct["__decimal__"])
    return dct


def state_to_dict(state: CartState) -> Dict[str, Any]:
    return {
        'lines': [
            {
                'product': asdict(line.product),
                'quantity': line.quantity,
                'unit_price': line.unit_price,
                'discount_percent': line.discount_percent,
            }
            for line in state.lines
        ],
        'global_discount_percent': state.global_discount_percent,
        'customer': asdict(state.customer) if state.customer else None,
        'payment_method': state.payment_method,
        'cash_amount': state.cash_amount,
        'card_amount': state.card_amount,
        'upi_amount': state.upi_amount,
        'reference': state.reference,
    }


def state_from_dict(data: Dict[str, Any]) -> CartState:
    return CartState(
        lines=[
            CartLine(
                product=ProductInfo(**line['product']),
                quantity=line['quantity'],
                unit_price=line['unit_price'],
                discount_percent=line['discount_percent'],
            )
            for line in data['lines']
        ],
        global_discount_percent=data['global_discount_percent'],
        customer=Customer(**data['customer']) if data.get('customer') else None,
        payment_method=PaymentMethod(data['payment_method']),
        cash_amount=data['cash_amount'],
        card_amount=data['card_amount'],
        upi_amount=data['upi_amount'],
        reference=data['reference'],
    )


def serialize_held_sale(held: HeldSale) -> str:
    return json.dumps({
        'id': held.id,
        'held_at': held.held_at,
        'state': state_to_dict(held.state),
        'customer_name': held.customer_name,
        'item_count': held.item_count,
        'total': held.total,
    }, default=_default_handler)


def deserialize_held_sale(value: str) -> HeldSale:
    data = json.loads(value, object_hook=_object_hook)
    return HeldSale(
        id=data['id'],
        held_at=datetime.fromisoformat(data['held_at']),
        state=state_from_dict(data['state']),
        customer_name=data['customer_name'],
        item_count=data['item_count'],
        total=data['total'],
    )


class RedisHeldSaleStore:
    """
    Held sales kept in Redis, one key per held sale.

    Key pattern: {prefix}:held_sale:{hold_id}. Hold order is kept in the
    sorted set {prefix}:held_sales (score = held_at timestamp). With ``ttl``
    each entry expires on its own.
    """

    def __init__(self, client: "redis.Redis", prefix: str = 'pos', ttl: Optional[int] = None):
        self.client = client
        self.prefix = prefix
        self.index_key = f"{prefix}:held_sales"
        self.ttl = ttl

    @classmethod
    def from_url(cls, redis_url: str, prefix: str = 'pos', ttl: Optional[int] = None) -> "RedisHeldSaleStore":
        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=3,
            socket_timeout=3,
            retry_on_timeout=True
        )
        return cls(client, prefix=prefix, ttl=ttl)

    def _key(self, hold_id: str) -> str:
        return f"{self.prefix}:held_sale:{hold_id}"

    def add(self, held: HeldSale) -> None:
        try:
            value = serialize_held_sale(held)
            if self.ttl:
                self.client.setex(self._key(held.id), self.ttl, value)
            else:
                self.client.set(self._key(held.id), value)
            self.client.zadd(self.index_key, {held.id: held.held_at.timestamp()})
        except RedisError as e:
            logger.error(f"[HOLD] Redis write failed for {held.id}: {e}")
            raise ValidationError('Held sales storage is unavailable', status_code=503)

    def get(self, hold_id: str) -> Optional[HeldSale]:
        try:
            value = self.client.get(self._key(hold_id))
        except RedisError as e:
            logger.error(f"[HOLD] Redis read failed for {hold_id}: {e}")
            raise ValidationError('Held sales storage is unavailable', status_code=503)
        return deserialize_held_sale(value) if value is not None else None

    def remove(self, hold_id: str) -> bool:
        try:
            deleted = self.client.delete(self._key(hold_id))
            self.client.zrem(self.index_key, hold_id)
        except RedisError as e:
            logger.error(f"[HOLD] Redis delete failed for {hold_id}: {e}")
            raise ValidationError('Held sales storage is unavailable', status_code=503)
        return bool(deleted)

    def list(self) -> List[HeldSale]:
        try:
            ids = self.client.zrange(self.index_key, 0, -1)
            values = self.client.mget([self._key(hold_id) for hold_id in ids]) if ids else []
        except RedisError as e:
            logger.warning(f"[HOLD] Redis list failed: {e}")
            return []

        held_sales, expired = [], []
        for hold_id, value in zip(ids, values):
            if value is None:
                expired.append(hold_id)
            else:
                held_sales.append(deserialize_held_sale(value))

        if expired:
            # Entry keys expired; drop them from the index too
            try:
                self.client.zrem(self.index_key, *expired)
            except RedisError as e:
                logger.warning(f"[HOLD] Redis index cleanup failed: {e}")
        return held_sales

    def __len__(self) -> int:
        return len(self.list())


def build_store(config):
    """Held-sale store from app config."""
    if config.get('HELD_SALES_BACKEND', 'memory') == 'redis':
        logger.info(f"[HOLD] Using Redis held-sale store: {config.get('REDIS_URL')}")
        return RedisHeldSaleStore.from_url(
            config['REDIS_URL'],
            prefix=config.get('HELD_SALES_KEY_PREFIX', 'pos'),
            ttl=config.get('HELD_SALE_TTL')
        )
    return MemoryHeldSaleStore()


# --- Operations ---

def _restore(state: CartState, snapshot: CartState) -> None:
    for f in fields(CartState):
        setattr(state, f.name, getattr(snapshot, f.name))


def hold_sale(store, state: CartState, walk_in_name: str = 'Walk-in Customer') -> HeldSale:
    """
    Park the active cart and reset it (lines, discount, customer, tender).

    Raises:
        ValidationError: if the cart is empty
    """
    if state.is_empty:
        raise ValidationError('Cannot hold an empty cart')

    totals = calculate_totals(state)
    held = HeldSale(
        id=f"hold-{uuid.uuid4().hex[:12]}",
        held_at=datetime.now(timezone.utc),
        state=copy.deepcopy(state),
        customer_name=state.customer.name if state.customer else walk_in_name,
        item_count=len(state.lines),
        total=totals.total
    )
    store.add(held)

    cart_service.clear_cart(state)
    cart_service.set_customer(state, None)
    tender_service.reset_tender(state)

    logger.info(f"[HOLD] Sale held: {held.id} ({held.item_count} lines, total={held.total})")
    return held


def resume_sale(store, hold_id: str, state: CartState) -> HeldSale:
    """
    Restore a held sale into the active cart and drop it from the store.

    Raises:
        CartNotEmptyError: if the active cart still has lines
        NotFoundError: if the hold id is unknown
    """
    if not state.is_empty:
        raise CartNotEmptyError()

    held = store.get(hold_id)
    if held is None:
        raise NotFoundError('Sale not found')

    # Take it out of the store first; a failed removal leaves the cart untouched
    if not store.remove(hold_id):
        raise NotFoundError('Sale not found')
    _restore(state, copy.deepcopy(held.state))

    logger.info(f"[HOLD] Sale resumed: {hold_id}")
    return held


def discard_held_sale(store, hold_id: str) -> None:
    """Remove a held sale without resuming it."""
    if not store.remove(hold_id):
        raise NotFoundError('Sale not found')
    logger.info(f"[HOLD] Sale discarded: {hold_id}")
