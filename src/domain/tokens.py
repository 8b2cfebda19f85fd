"""
Subscription tokens.

Opaque bearer credentials: anyone holding the string can confirm or
revoke the subscription it belongs to.
"""

from __future__ import annotations

import re
import secrets
import string
from dataclasses import dataclass

from src.domain.errors import DomainValidationError

TOKEN_LENGTH = 25
TOKEN_ALPHABET = string.ascii_letters + string.digits

_TOKEN_PATTERN = re.compile(rf"[A-Za-z0-9]{{{TOKEN_LENGTH}}}")


@dataclass(frozen=True)
class SubscriptionToken:
    """Exactly 25 ASCII alphanumeric characters."""

    value: str

    @classmethod
    def parse(cls, raw: str) -> SubscriptionToken:
        return parse_token(raw)

    @classmethod
    def generate(cls) -> SubscriptionToken:
        return generate_token()

    def __str__(self) -> str:
        return self.value


def parse_token(raw: str) -> SubscriptionToken:
    """
    Validate a raw token string.

    The whole string must match; surrounding whitespace is an error.

    Raises:
        DomainValidationError: If the token is malformed
    """
    if not raw or _TOKEN_PATTERN.fullmatch(raw) is None:
        raise DomainValidationError("subscription_token", f"{raw} is not a valid token")
    return SubscriptionToken(raw)


def generate_token() -> SubscriptionToken:
    """Draw a new token uniformly from the alphanumeric alphabet (OS CSPRNG)."""
    token = "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))
    # Goes through the parser so generator and grammar cannot drift apart.
    return parse_token(token)
