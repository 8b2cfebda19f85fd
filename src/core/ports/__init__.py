# Ports (Protocol interfaces) for the mailing list service
# Abstract interfaces for adapters; no implementations here

from src.core.ports.db import (
    StoreError,
    SubscriptionStorePort,
    SubscriptionTransactionPort,
    UniqueViolationError,
)
from src.core.ports.email import (
    EmailPort,
    EmailResult,
    EmailStatus,
)

__all__ = [
    # Store
    "StoreError",
    "SubscriptionStorePort",
    "SubscriptionTransactionPort",
    "UniqueViolationError",
    # Email
    "EmailPort",
    "EmailResult",
    "EmailStatus",
]
