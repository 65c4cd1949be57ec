from .stores import Store
from .auth import User, SessionToken, ROLES
from .security import SecurityEvent
from .inventory import Product
from .customers import Customer
from .compliance import AgeVerificationRecord, ID_TYPES, VERIFICATION_METHODS
from .transactions import Transaction, LineItem, ReceiptSequence, PAYMENT_METHODS

__all__ = [
    'Store',
    'User', 'SessionToken', 'ROLES',
    'SecurityEvent',
    'Product',
    'Customer',
    'AgeVerificationRecord', 'ID_TYPES', 'VERIFICATION_METHODS',
    'Transaction', 'LineItem', 'ReceiptSequence', 'PAYMENT_METHODS',
]
