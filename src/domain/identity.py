"""
Subscriber identity value types.

Pure, deterministic validators that turn raw form input into
well-formed email and display-name values. No I/O.

Key behaviors:
- Email grammar checked by email-validator (no DNS lookups)
- No normalization: the validated value is the caller's string
- Names are measured in extended grapheme clusters, not code points
"""

from __future__ import annotations

from dataclasses import dataclass

import regex
from email_validator import EmailNotValidError, validate_email

from src.domain.errors import DomainValidationError

MAX_NAME_GRAPHEMES = 256

FORBIDDEN_NAME_CHARACTERS: frozenset[str] = frozenset('/\\()"{}<>')

_GRAPHEME = regex.compile(r"\X")


@dataclass(frozen=True)
class SubscriberEmail:
    """A string that has passed the email grammar check."""

    value: str

    @classmethod
    def parse(cls, raw: str) -> SubscriberEmail:
        return parse_email(raw)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SubscriberName:
    """A display name that is non-blank, short enough and free of markup characters."""

    value: str

    @classmethod
    def parse(cls, raw: str) -> SubscriberName:
        return parse_name(raw)

    def __str__(self) -> str:
        return self.value


def grapheme_count(s: str) -> int:
    """Count user-perceived characters (extended grapheme clusters)."""
    return len(_GRAPHEME.findall(s))


def parse_email(raw: str) -> SubscriberEmail:
    """
    Validate a raw email address.

    Args:
        raw: Email address as submitted

    Returns:
        SubscriberEmail wrapping the unchanged input

    Raises:
        DomainValidationError: If the input is not shaped like an email address
    """
    if not raw:
        raise DomainValidationError("email", "Email address is required")

    try:
        validate_email(raw, check_deliverability=False)
    except EmailNotValidError as e:
        raise DomainValidationError("email", f"{raw} is not a valid email address") from e

    return SubscriberEmail(raw)


def parse_name(raw: str) -> SubscriberName:
    """
    Validate a raw subscriber name.

    Rejected when blank after trimming, longer than 256 graphemes, or
    containing any of / \\ ( ) " { } < >.

    Raises:
        DomainValidationError: If any rule is broken
    """
    if not raw or not raw.strip():
        raise DomainValidationError("name", "Name must not be empty")

    if grapheme_count(raw) > MAX_NAME_GRAPHEMES:
        raise DomainValidationError(
            "name", f"Name must be at most {MAX_NAME_GRAPHEMES} characters long"
        )

    if any(c in FORBIDDEN_NAME_CHARACTERS for c in raw):
        raise DomainValidationError("name", f"{raw} is not a valid subscriber name")

    return SubscriberName(raw)
