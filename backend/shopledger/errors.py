"""
Error taxonomy for service-layer operations.

Every error aborts the current operation; the transaction wrapper rolls the
session back before the error reaches the caller, so no partial state is
persisted. Messages are human-readable and safe to show to an operator.
"""
from __future__ import annotations


class ShopLedgerError(Exception):
    """Base class for all service errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ShopLedgerError, ValueError):
    """400-level input problem. Caller must correct and resubmit."""


class ConflictError(ShopLedgerError, ValueError):
    """409-level business rule conflict (e.g., duplicate item code)."""


class InvalidArgumentError(ShopLedgerError, ValueError):
    """Unrecognized enum-like value, e.g. an unknown status string."""


class InvalidStateError(ShopLedgerError):
    """Operation not permitted given the entity's current status."""


class NotFoundError(ShopLedgerError):
    """Referenced entity id does not exist."""
