from .tenancy import Shop, ShopPayment, OwnerToken, SUBSCRIPTION_CLASSES
from .auth import User
from .staff import Staff, STAFF_ROLES
from .jobs import Job, JobTimelineEntry, JobStatusLog
from .billing import SubscriptionPlan, InvoiceVoucher
from .ledger import Expense
from .suggestions import Suggestion, SUGGESTION_TYPES

__all__ = [
    'Shop', 'ShopPayment', 'OwnerToken', 'SUBSCRIPTION_CLASSES',
    'User',
    'Staff', 'STAFF_ROLES',
    'Job', 'JobTimelineEntry', 'JobStatusLog',
    'SubscriptionPlan', 'InvoiceVoucher',
    'Expense',
    'Suggestion', 'SUGGESTION_TYPES',
]
