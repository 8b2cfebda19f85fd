"""
Subscriptions component.

Orchestrates the double opt-in lifecycle: subscribe, confirm, revoke.

Key behaviors:
- Validation happens before any store access
- A new subscriber and its token are written in one transaction
- Re-subscribing an email already on record resends the existing token
- A uniqueness conflict from a concurrent subscribe falls back to resend
- Confirm is idempotent; revoke deletes token and subscriber atomically
- The notification is sent after commit; a send failure is reported but
  does not undo the stored subscriber (a retried subscribe resends)

The workflow holds no state between calls and takes no locks: every
operation re-reads the store, and exclusion comes from the store's own
transactions and uniqueness constraints.
"""

from __future__ import annotations

import html
import logging
from uuid import UUID

from src.components.subscriptions.models import (
    ConfirmInput,
    ConfirmOutput,
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
    UniqueViolationError,
)
from src.domain.entities import CONFIRMED, PENDING_CONFIRMATION, SubscriberStatus
from src.domain.errors import DomainValidationError
from src.domain.identity import SubscriberEmail, SubscriberName, parse_email, parse_name
from src.domain.tokens import SubscriptionToken, generate_token, parse_token

UNKNOWN_TOKEN_REASON = "The token received does not correspond to any subscriber"

# --- Pure Functions ---


def build_link(base_url: str, path: str, token: SubscriptionToken) -> str:
    """Build an absolute link carrying the token as subscription_token."""
    return f"{base_url.rstrip('/')}{path}?subscription_token={token}"


def build_confirmation_url(config: SubscriptionConfig, token: SubscriptionToken) -> str:
    return build_link(config.base_url, config.confirm_path, token)


def build_revocation_url(config: SubscriptionConfig, token: SubscriptionToken) -> str:
    return build_link(config.base_url, config.revoke_path, token)


def render_notification(
    config: SubscriptionConfig,
    name: str,
    token: SubscriptionToken,
) -> tuple[str, str, str]:
    """
    Render the confirmation email.

    Returns:
        (subject, html body, text body); both bodies carry the
        confirmation and the revocation link for the same token
    """
    confirm_url = build_confirmation_url(config, token)
    revoke_url = build_revocation_url(config, token)
    safe_name = html.escape(name)

    subject = f"Welcome to {config.site_name}!"
    body_html = (
        f"<p>Hi {safe_name},</p>"
        f"<p>Welcome to {html.escape(config.site_name)}!</p>"
        f'<p>Click <a href="{confirm_url}">here</a> to confirm your subscription.</p>'
        f'<p>You can unsubscribe at any time by clicking <a href="{revoke_url}">here</a>.</p>'
    )
    body_text = (
        f"Hi {name},\n\n"
        f"Welcome to {config.site_name}!\n"
        f"Visit {confirm_url} to confirm your subscription.\n\n"
        f"You can unsubscribe at any time by visiting {revoke_url}\n"
    )
    return subject, body_html, body_text


# --- Workflow ---


class SubscriptionWorkflow:
    """
    Subscriber lifecycle orchestrator.

    Built per request with the store handle, the notification gateway and
    a logger carrying the request context.
    """

    def __init__(
        self,
        store: SubscriptionStorePort,
        gateway: NotificationGatewayPort,
        config: SubscriptionConfig | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.config = config or SubscriptionConfig()
        self.log = logger or logging.getLogger(__name__)

    # --- subscribe ---

    def subscribe(self, inp: SubscribeInput) -> SubscribeOutput:
        try:
            email = parse_email(inp.email)
            name = parse_name(inp.name)
        except DomainValidationError as e:
            self.log.warning("Rejected subscription: %s", e.reason)
            return SubscribeOutput(success=False, error=WorkflowError.validation(e.reason))

        try:
            existing = self.store.find_by_email(email)
            if existing is None:
                try:
                    subscriber_id, token = self._insert_pending(email, name)
                except UniqueViolationError:
                    # Lost the race against a concurrent subscribe for this email.
                    self.log.info("Email inserted concurrently, resending instead")
                    existing = self.store.find_by_email(email)
                    if existing is None:
                        raise
                else:
                    self.log.info("Stored new pending subscriber %s", subscriber_id)
                    return self._notify(
                        subscriber_id, PENDING_CONFIRMATION, str(email), str(name), token,
                        resent=False,
                    )
        except StoreError as e:
            self.log.error("Failed to store subscriber: %s", e, exc_info=True)
            return SubscribeOutput(
                success=False,
                error=WorkflowError.unexpected("Failed to store the new subscriber", e),
            )

        subscriber, token = existing
        self.log.info(
            "Subscriber %s already on record (%s), resending", subscriber.id, subscriber.status
        )
        return self._notify(
            subscriber.id, subscriber.status, subscriber.email, subscriber.name, token,
            resent=True,
        )

    def _insert_pending(
        self, email: SubscriberEmail, name: SubscriberName
    ) -> tuple[UUID, SubscriptionToken]:
        """Insert subscriber and token together; nothing is visible unless both succeed."""
        with self.store.transaction() as tx:
            subscriber_id = tx.insert_subscriber(email, name)
            token = generate_token()
            tx.store_token(subscriber_id, token)
            tx.commit()
        return subscriber_id, token

    def _notify(
        self,
        subscriber_id: UUID,
        status: SubscriberStatus,
        recipient: str,
        name: str,
        token: SubscriptionToken,
        *,
        resent: bool,
    ) -> SubscribeOutput:
        subject, body_html, body_text = render_notification(self.config, name, token)

        try:
            result = self.gateway.send_email(recipient, subject, body_html, body_text)
            if result.is_failure:
                raise NotificationSendError(recipient, result.error)
        except Exception as e:
            # Already committed: the subscriber stays, a retried subscribe resends.
            self.log.error(
                "Failed to send confirmation email for subscriber %s", subscriber_id,
                exc_info=True,
            )
            return SubscribeOutput(
                success=False,
                subscriber_id=subscriber_id,
                status=status,
                resent=resent,
                error=WorkflowError.unexpected("Failed to send a confirmation email", e),
            )

        return SubscribeOutput(
            success=True,
            subscriber_id=subscriber_id,
            status=status,
            resent=resent,
        )

    # --- confirm ---

    def confirm(self, inp: ConfirmInput) -> ConfirmOutput:
        try:
            token = parse_token(inp.token)
        except DomainValidationError as e:
            self.log.warning("Rejected confirmation: %s", e.reason)
            return ConfirmOutput(success=False, error=WorkflowError.validation(e.reason))

        try:
            subscriber_id = self.store.find_subscriber_id_by_token(token)
            if subscriber_id is None:
                self.log.warning("Confirmation with unknown token")
                return ConfirmOutput(
                    success=False, error=WorkflowError.unauthorized(UNKNOWN_TOKEN_REASON)
                )
            if not self.store.update_status(subscriber_id, CONFIRMED):
                # Revoked between the token lookup and the update.
                self.log.warning("Confirmation for a subscriber that no longer exists")
                return ConfirmOutput(
                    success=False, error=WorkflowError.unauthorized(UNKNOWN_TOKEN_REASON)
                )
        except StoreError as e:
            self.log.error("Failed to confirm subscriber: %s", e, exc_info=True)
            return ConfirmOutput(
                success=False,
                error=WorkflowError.unexpected("Failed to confirm the subscriber", e),
            )

        self.log.info("Subscriber %s confirmed", subscriber_id)
        return ConfirmOutput(success=True, subscriber_id=subscriber_id)

    # --- revoke ---

    def revoke(self, inp: RevokeInput) -> RevokeOutput:
        try:
            token = parse_token(inp.token)
        except DomainValidationError as e:
            self.log.warning("Rejected revocation: %s", e.reason)
            return RevokeOutput(success=False, error=WorkflowError.validation(e.reason))

        try:
            subscriber_id = self.store.find_subscriber_id_by_token(token)
            if subscriber_id is None:
                self.log.warning("Revocation with unknown token")
                return RevokeOutput(
                    success=False, error=WorkflowError.unauthorized(UNKNOWN_TOKEN_REASON)
                )
            self.store.delete_subscriber_and_token(subscriber_id)
        except StoreError as e:
            self.log.error("Failed to revoke subscription: %s", e, exc_info=True)
            return RevokeOutput(
                success=False,
                error=WorkflowError.unexpected("Failed to revoke the subscription", e),
            )

        self.log.info("Subscriber %s revoked", subscriber_id)
        return RevokeOutput(success=True, subscriber_id=subscriber_id)


# --- Dispatcher ---


def run(
    inp: SubscribeInput | ConfirmInput | RevokeInput,
    store: SubscriptionStorePort,
    gateway: NotificationGatewayPort,
    *,
    config: SubscriptionConfig | None = None,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
) -> SubscribeOutput | ConfirmOutput | RevokeOutput:
    """Run the workflow operation matching the input type."""
    workflow = SubscriptionWorkflow(store, gateway, config=config, logger=logger)

    if isinstance(inp, SubscribeInput):
        return workflow.subscribe(inp)
    elif isinstance(inp, ConfirmInput):
        return workflow.confirm(inp)
    elif isinstance(inp, RevokeInput):
        return workflow.revoke(inp)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
