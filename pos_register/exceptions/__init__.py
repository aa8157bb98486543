"""Custom exceptions for the POS register."""
from decimal import Decimal


class RegisterError(Exception):
    """Base exception for all register errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class ValidationError(RegisterError):
    """Exception raised for invalid operator input or business rule violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class NotFoundError(RegisterError):
    """Exception raised when a product, cart line or held sale is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class InsufficientStockError(ValidationError):
    """Raised when a cart quantity would exceed the available stock."""
    def __init__(self, product_name, required, available):
        message = f"Cannot add more than available stock ({available}) for {product_name}"
        payload = {'product': product_name, 'required': required, 'available': available}
        super().__init__(message, status_code=409, payload=payload)
        self.required = required
        self.available = available


class InsufficientPaymentError(ValidationError):
    """Raised when the tendered amount does not cover the order total."""
    def __init__(self, paid: Decimal, total: Decimal):
        self.paid = paid
        self.total = total
        self.shortfall = total - paid
        message = f"Payment amount ({paid:.2f}) is less than the total ({total:.2f})"
        payload = {'paid': str(paid), 'total': str(total), 'shortfall': str(self.shortfall)}
        super().__init__(message, status_code=402, payload=payload)


class CartNotEmptyError(ValidationError):
    """Raised when resuming a held sale over a non-empty cart."""
    def __init__(self, message="Hold or clear the current sale before resuming another one"):
        super().__init__(message, status_code=409)


class GatewayError(RegisterError):
    """Raised by the payment gateway adapter when the gateway cannot be reached or rejects a call."""
    def __init__(self, message="Payment gateway error", payload=None):
        super().__init__(message, 502, payload)


class GatewayNotConfiguredError(RegisterError):
    """Raised when a non-cash settlement is attempted without a gateway."""
    def __init__(self, message="Payment gateway is not configured"):
        super().__init__(message, 503)
