"""
Subscriptions component.

Double opt-in subscriber lifecycle: subscribe, confirm, revoke.
"""

from src.components.subscriptions.component import (
    SubscriptionWorkflow,
    build_confirmation_url,
    build_revocation_url,
    render_notification,
    run,
)
from src.components.subscriptions.models import (
    ConfirmInput,
    ConfirmOutput,
    ErrorKind,
    NotificationSendError,
    RevokeInput,
    RevokeOutput,
    SubscribeInput,
    SubscribeOutput,
    SubscriptionConfig,
    WorkflowError,
)
from src.components.subscriptions.ports import (
    NotificationGatewayPort,
    StoreError,
    SubscriptionStorePort,
    SubscriptionTransactionPort,
    UniqueViolationError,
)

__all__ = [
    # Component
    "SubscriptionWorkflow",
    "run",
    # Pure functions
    "build_confirmation_url",
    "build_revocation_url",
    "render_notification",
    # Input/Output
    "SubscribeInput",
    "SubscribeOutput",
    "ConfirmInput",
    "ConfirmOutput",
    "RevokeInput",
    "RevokeOutput",
    "SubscriptionConfig",
    # Errors
    "ErrorKind",
    "WorkflowError",
    "NotificationSendError",
    "StoreError",
    "UniqueViolationError",
    # Ports
    "SubscriptionStorePort",
    "SubscriptionTransactionPort",
    "NotificationGatewayPort",
]
