import logging
from functools import lru_cache
from uuid import uuid4

from fastapi import Depends, Request

from src.adapters.dev_email import create_dev_email_adapter
from src.adapters.http_email import HttpEmailAdapter
from src.adapters.sqlite_db import SQLiteSubscriptionStore
from src.app_shell.config import Settings, load_settings
from src.app_shell.logging_config import request_logger
from src.components.subscriptions import (
    NotificationGatewayPort,
    SubscriptionConfig,
    SubscriptionStorePort,
    SubscriptionWorkflow,
)
from src.shell.http.health import HealthCheckRegistry

REQUEST_ID_HEADER = "X-Request-ID"


# --- Settings ---
@lru_cache
def get_settings() -> Settings:
    return load_settings()


# --- Store ---
def get_subscription_store(settings: Settings = Depends(get_settings)) -> SubscriptionStorePort:
    """A store handle per request; connections are opened per operation."""
    return SQLiteSubscriptionStore(
        settings.database.path,
        busy_timeout_seconds=settings.database.busy_timeout_seconds,
    )


# --- Notification gateway ---
_gateway_instance: NotificationGatewayPort | None = None


def build_notification_gateway(settings: Settings) -> NotificationGatewayPort:
    """HTTP email API when a base URL is configured, the log-only adapter otherwise."""
    email = settings.email_client
    if not email.base_url:
        return create_dev_email_adapter(log_level=settings.logging.numeric_level())
    return HttpEmailAdapter(
        base_url=email.base_url,
        sender=email.sender(),
        authorization_token=email.authorization_token,
        timeout_seconds=email.timeout(),
    )


def get_notification_gateway(settings: Settings = Depends(get_settings)) -> NotificationGatewayPort:
    """Get notification gateway singleton (one pooled HTTP client per process)."""
    global _gateway_instance
    if _gateway_instance is None:
        _gateway_instance = build_notification_gateway(settings)
    return _gateway_instance


def close_notification_gateway() -> None:
    """Release the gateway singleton; called on application shutdown."""
    global _gateway_instance
    if isinstance(_gateway_instance, HttpEmailAdapter):
        _gateway_instance.close()
    _gateway_instance = None


# --- Workflow ---
def get_subscription_config(settings: Settings = Depends(get_settings)) -> SubscriptionConfig:
    return SubscriptionConfig(
        base_url=settings.application.base_url,
        site_name=settings.application.site_name,
    )


def get_request_logger(request: Request) -> logging.LoggerAdapter:
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
    return request_logger("src.components.subscriptions", request_id)


def get_subscription_workflow(
    store: SubscriptionStorePort = Depends(get_subscription_store),
    gateway: NotificationGatewayPort = Depends(get_notification_gateway),
    config: SubscriptionConfig = Depends(get_subscription_config),
    logger: logging.LoggerAdapter = Depends(get_request_logger),
) -> SubscriptionWorkflow:
    return SubscriptionWorkflow(store, gateway, config=config, logger=logger)


# --- Health ---
_health_registry = HealthCheckRegistry()


def get_health_registry() -> HealthCheckRegistry:
    return _health_registry
