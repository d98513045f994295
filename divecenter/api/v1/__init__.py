# API v1 Package
from divecenter.api.v1 import (
    auth, dive_center, customers, bookings, equipment, baskets, invoices, payments, expenses, pricing, files
)

__all__ = [
    'auth',
    'dive_center',
    'customers',
    'bookings',
    'equipment',
    'baskets',
    'invoices',
    'payments',
    'expenses',
    'pricing',
    'files',
]
