import os
import re

import pytest
from fastapi.testclient import TestClient

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite_db import SQLiteSubscriptionStore
from src.api.deps import get_notification_gateway, get_subscription_config, get_subscription_store
from src.api.main import app
from src.components.subscriptions import SubscriptionConfig

TOKEN_IN_LINK = re.compile(r"subscription_token=([A-Za-z0-9]{25})")


@pytest.fixture
def db_path(tmp_path):
    """
    A freshly migrated SQLite database in a temporary directory.
    """
    path = os.path.join(str(tmp_path), "subscriptions.db")
    SQLiteMigrator(path).run_migrations()
    return path


@pytest.fixture
def store(db_path):
    return SQLiteSubscriptionStore(db_path)


@pytest.fixture
def email_adapter():
    return DevEmailAdapter(log_body=False)


@pytest.fixture
def subscription_config():
    return SubscriptionConfig(base_url="http://testserver", site_name="Test List")


@pytest.fixture
def client(store, email_adapter, subscription_config):
    """
    TestClient wired to the temporary store and the recording email adapter.

    Used without a context manager so the application lifespan (which reads
    configuration/ and migrates the configured database) does not run.
    """
    app.dependency_overrides[get_subscription_store] = lambda: store
    app.dependency_overrides[get_notification_gateway] = lambda: email_adapter
    app.dependency_overrides[get_subscription_config] = lambda: subscription_config
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def extract_token(adapter: DevEmailAdapter) -> str:
    """Token carried by the links of the last email sent."""
    email = adapter.get_last_email()
    assert email is not None, "no email was sent"
    match = TOKEN_IN_LINK.search(email.body_text)
    assert match is not None, "email carries no subscription link"
    return match.group(1)


@pytest.fixture
def last_token(email_adapter):
    """Callable returning the token of the last email sent."""
    return lambda: extract_token(email_adapter)
