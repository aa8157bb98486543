"""POS blueprint - JSON front end of the register."""
from datetime import date
from functools import wraps
from decimal import Decimal
from typing import Any, Dict

from flask import Blueprint, request, jsonify, current_app
from flask_wtf.csrf import generate_csrf

from pos_register.exceptions import ValidationError
from pos_register.models import Customer
from pos_register.services.payment_gateway import AuthorizationSuccess, AuthorizationFailed

pos_bp = Blueprint('pos', __name__, url_prefix='/pos')


def _register():
    return current_app.extensions['register']


def _locked(f):
    """Run the view with the register lock held (one command and its response at a time)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        with current_app.extensions['register_lock']:
            return f(*args, **kwargs)
    return decorated_function


def _payload() -> Dict[str, Any]:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def _int_field(payload, name: str, default=None) -> int:
    value = payload.get(name, default)
    if value is None or value == '':
        raise ValidationError(f'Missing field: {name}')
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        raise ValidationError(f'{name} must be a whole number')


def _required(payload, name: str):
    value = payload.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f'Missing field: {name}')
    return value


def _str_values(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: str(v) if isinstance(v, Decimal) else v for k, v in data.items()}


def _cart_to_dict(register) -> Dict[str, Any]:
    state = register.state
    change = register.change_due()
    return {
        'lines': [_str_values(line) for line in register.line_details()],
        'global_discount_percent': str(state.global_discount_percent),
        'customer': {
            'id': state.customer.id if state.customer else None,
            'name': register.customer_name,
        },
        'payment': {
            'method': state.payment_method.value,
            'cash_amount': str(state.cash_amount),
            'card_amount': str(state.card_amount),
            'upi_amount': str(state.upi_amount),
            'reference': state.reference,
            'amount_paid': str(register.amount_paid()),
            'change': str(change) if change is not None else None,
        },
        'held_count': len(register.store),
    }


def _respond(**extra):
    """Cart, totals and drained notifications; status from the last command."""
    register = _register()
    error = register.last_error
    notifications = register.notifications.drain() if register.notifications is not None else []

    body = {
        'status': 'error' if error else 'ok',
        'cart': _cart_to_dict(register),
        'totals': register.totals().to_dict(),
        'notifications': [n.to_dict() for n in notifications],
    }
    if error:
        body['error'] = error.to_dict()
    body.update(extra)
    return jsonify(body), (error.status_code if error else 200)


def _authorization_to_dict(result) -> Dict[str, Any]:
    data = {'status': result.status.value, 'order_id': result.order_id}
    if isinstance(result, AuthorizationSuccess):
        data['payment_id'] = result.payment_id
    elif isinstance(result, AuthorizationFailed):
        data['error'] = result.error
    return data


# --- Cart ---

@pos_bp.route('/cart', methods=['GET'])
@_locked
def cart_view():
    """Current cart with derived totals."""
    _register().last_error = None
    return _respond(csrf_token=generate_csrf())


@pos_bp.route('/cart/add', methods=['POST'])
@_locked
def cart_add():
    """Add a product by id, or by barcode/name/SKU search."""
    payload = _payload()
    qty = _int_field(payload, 'qty', 1)
    register = _register()

    current_app.logger.info(f"[cart_add] payload_keys={list(payload.keys())}")

    if payload.get('product_id'):
        register.add_to_cart(str(payload['product_id']), qty)
    elif payload.get('query'):
        register.add_by_search(str(payload['query']), qty)
    else:
        raise ValidationError('Missing product_id or query')
    return _respond()


@pos_bp.route('/cart/update', methods=['POST'])
@_locked
def cart_update():
    payload = _payload()
    product_id = str(_required(payload, 'product_id'))
    _register().update_quantity(product_id, _int_field(payload, 'qty'))
    return _respond()


@pos_bp.route('/cart/discount', methods=['POST'])
@_locked
def cart_discount():
    payload = _payload()
    product_id = str(_required(payload, 'product_id'))
    _register().update_discount(product_id, _required(payload, 'discount_percent'))
    return _respond()


@pos_bp.route('/cart/remove', methods=['POST'])
@_locked
def cart_remove():
    payload = _payload()
    _register().remove_from_cart(str(_required(payload, 'product_id')))
    return _respond()


@pos_bp.route('/cart/clear', methods=['POST'])
@_locked
def cart_clear():
    _register().clear_cart()
    return _respond()


@pos_bp.route('/cart/global-discount', methods=['POST'])
@_locked
def cart_global_discount():
    payload = _payload()
    _register().set_global_discount(_required(payload, 'percent'))
    return _respond()


@pos_bp.route('/cart/customer', methods=['POST'])
@_locked
def cart_customer():
    """Attach a customer; an empty payload returns to the walk-in customer."""
    payload = _payload()
    customer = None
    if payload.get('id') or payload.get('name'):
        customer = Customer(
            id=str(_required(payload, 'id')),
            name=str(_required(payload, 'name')),
            email=payload.get('email') or None,
            phone=payload.get('phone') or None
        )
    _register().set_customer(customer)
    return _respond()


# --- Payment ---

@pos_bp.route('/payment/method', methods=['POST'])
@_locked
def payment_method():
    payload = _payload()
    _register().set_payment_method(_required(payload, 'method'))
    return _respond()


@pos_bp.route('/payment/amount', methods=['POST'])
@_locked
def payment_amount():
    payload = _payload()
    _register().set_payment_amount(_required(payload, 'channel'), _required(payload, 'amount'))
    return _respond()


@pos_bp.route('/payment/reference', methods=['POST'])
@_locked
def payment_reference():
    payload = _payload()
    _register().set_reference(payload.get('reference'))
    return _respond()


@pos_bp.route('/payment/exact', methods=['POST'])
@_locked
def payment_exact():
    _register().apply_exact_amount()
    return _respond()


@pos_bp.route('/payment/change', methods=['GET'])
@_locked
def payment_change():
    register = _register()
    total = register.totals().total
    paid = register.amount_paid()
    change = register.change_due()
    return jsonify({
        'status': 'ok',
        'total': str(total),
        'amount_paid': str(paid),
        'sufficient': paid >= total,
        'shortfall': str(max(Decimal('0.00'), total - paid)),
        'change': str(change) if change is not None else None,
    })


@pos_bp.route('/payment/order', methods=['POST'])
@_locked
def payment_order():
    """Create the gateway order the checkout UI will authorize."""
    payload = _payload()
    handle = _register().create_gateway_order(_required(payload, 'channel'))
    order = None
    if handle is not None:
        order = {
            'id': handle.id,
            'amount': str(handle.amount),
            'currency': handle.currency,
            'receipt': handle.receipt,
        }
    return _respond(order=order)


@pos_bp.route('/payment/authorize', methods=['POST'])
@_locked
def payment_authorize():
    """
    Settle card/UPI with the checkout UI's response.

    ``response`` is what the checkout returned; null/absent means the UI
    was closed (cancelled).
    """
    payload = request.get_json(silent=True) or {}
    register = _register()
    checkout_response = payload.get('response')

    result = register.settle_with_gateway(
        _required(payload, 'channel'),
        checkout=lambda handle, display_info: checkout_response
    )
    sale = register.last_sale.to_dict() if isinstance(result, AuthorizationSuccess) and register.last_sale else None
    return _respond(authorization=_authorization_to_dict(result), sale=sale)


# --- Held sales ---

@pos_bp.route('/hold', methods=['POST'])
@_locked
def hold():
    held = _register().hold_sale()
    return _respond(held=held.to_dict() if held else None)


@pos_bp.route('/held', methods=['GET'])
@_locked
def held_list():
    return jsonify({
        'status': 'ok',
        'held': [held.to_dict() for held in _register().held_sales()],
    })


@pos_bp.route('/held/<hold_id>/resume', methods=['POST'])
@_locked
def held_resume(hold_id):
    _register().resume_sale(hold_id)
    return _respond()


@pos_bp.route('/held/<hold_id>', methods=['DELETE'])
@_locked
def held_discard(hold_id):
    _register().discard_held_sale(hold_id)
    return _respond()


# --- Sales ---

@pos_bp.route('/complete', methods=['POST'])
@_locked
def complete():
    """Finalize the sale with the amounts entered."""
    register = _register()
    sale = register.complete_sale()
    warnings = [w.message for w in register.last_stock_warnings] if sale else []
    return _respond(sale=sale.to_dict() if sale else None, stock_warnings=warnings)


@pos_bp.route('/sales', methods=['GET'])
@_locked
def sales_list():
    return jsonify({
        'status': 'ok',
        'sales': [sale.to_dict() for sale in reversed(_register().sales)],
    })


@pos_bp.route('/summary', methods=['GET'])
@_locked
def summary():
    """Day summary; ?date=YYYY-MM-DD, default today (UTC)."""
    day = None
    raw = request.args.get('date', '').strip()
    if raw:
        try:
            day = date.fromisoformat(raw)
        except ValueError:
            raise ValidationError('date must be YYYY-MM-DD')
    return jsonify({'status': 'ok', 'summary': _register().day_summary(day).to_dict()})
