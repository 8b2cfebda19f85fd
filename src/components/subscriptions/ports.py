"""
Subscriptions component ports.

The workflow depends on two collaborators only: the subscription store
and the notification gateway. Both are re-exported from the core ports so
the component can be wired without reaching into src.core directly.
"""

from __future__ import annotations

from src.core.ports.db import (
    StoreError,
    SubscriptionStorePort,
    SubscriptionTransactionPort,
    UniqueViolationError,
)
from src.core.ports.email import EmailPort as NotificationGatewayPort
from src.core.ports.email import EmailResult

__all__ = [
    "EmailResult",
    "NotificationGatewayPort",
    "StoreError",
    "SubscriptionStorePort",
    "SubscriptionTransactionPort",
    "UniqueViolationError",
]
