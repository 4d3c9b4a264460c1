"""Exceptions raised by the data-access and billing layers.

The GUI shows the message of any PosError directly to the user, so
messages are written as full sentences.
"""


class PosError(Exception):
    """Base for every failure the application reports to the user."""
    pass


class ValidationError(PosError):
    pass


class DuplicateProductError(PosError):
    pass


class DuplicateUserError(PosError):
    pass


class ProductNotFoundError(PosError):
    pass


class UserNotFoundError(PosError):
    pass


class BillNotFoundError(PosError):
    pass


class InsufficientStockError(PosError):
    pass


class EmptyBillError(PosError):
    pass


class ReceiptError(PosError):
    """PDF receipt could not be written."""
    pass
