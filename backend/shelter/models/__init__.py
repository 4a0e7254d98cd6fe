from .auth import Role, RoleName, User, SessionToken
from .animals import Animal, AnimalStatus
from .adoptions import AdoptionRequest, AdoptionStatus
from .billing import Invoice, InvoiceStatus, Payment, PaymentMethod, TransactionType
from .audit import ActivityLog

__all__ = [
    'Role', 'RoleName', 'User', 'SessionToken',
    'Animal', 'AnimalStatus',
    'AdoptionRequest', 'AdoptionStatus',
    'Invoice', 'InvoiceStatus', 'Payment', 'PaymentMethod', 'TransactionType',
    'ActivityLog',
]
