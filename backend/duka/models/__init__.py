from .tenancy import Organization, Shop
from .auth import User, SessionToken
from .catalog import Product
from .sales import Checkout, Sale
from .payroll import SalaryPayment
from .expenses import ExpenseRequest
from .security import SecurityEvent

__all__ = [
    'Organization', 'Shop',
    'User', 'SessionToken',
    'Product',
    'Checkout', 'Sale',
    'SalaryPayment',
    'ExpenseRequest',
    'SecurityEvent',
]
