from .tenancy import Business, BusinessUser, BusinessInvitation
from .auth import Profile, SessionToken
from .transactions import Transaction
from .security import SecurityEvent
from .cash import CashEntry

__all__ = [
    'Business', 'BusinessUser', 'BusinessInvitation',
    'Profile', 'SessionToken',
    'Transaction',
    'SecurityEvent',
    'CashEntry',
]
