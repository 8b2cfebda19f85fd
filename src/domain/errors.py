"""
Domain validation errors.

Raised by the value-type parsers when raw input does not satisfy the
grammar of an email address, a display name or a subscription token.
"""

from __future__ import annotations


class DomainValidationError(ValueError):
    """Raw input rejected by a domain parser."""

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(reason)
