"""Typed ledger failures.

Every error carries a stable ``code`` and an HTTP ``status_code`` so the API
layer can render it without inspecting the message. ``details`` holds the
structured fields a client needs (violated field, current balance, pair).
"""

from decimal import Decimal
from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base class for all ledger failures."""

    code = "ledger_error"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "error": self.code, **self.details}


class InvalidRequest(LedgerError):
    """Malformed request parameters (pagination, empty updates)."""

    code = "invalid_request"


class InvalidTransaction(InvalidRequest):
    """A transaction input broke a validation rule; nothing was written."""

    code = "invalid_transaction"

    def __init__(self, field: str, rule: str):
        super().__init__(f"{field}: {rule}", {"field": field, "rule": rule})
        self.field = field
        self.rule = rule


class NotFound(LedgerError):
    code = "not_found"
    status_code = 404

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            f"{resource} not found",
            {"resource": resource, "resource_id": resource_id},
        )
        self.resource = resource
        self.resource_id = resource_id


class DuplicateFriend(LedgerError):
    code = "duplicate_friend"
    status_code = 409

    def __init__(self, email: str):
        super().__init__(
            f"A friend with email {email} already exists",
            {"email": email},
        )
        self.email = email


class BalanceNotZero(LedgerError):
    """Deletion refused because the pair still carries a balance."""

    code = "balance_not_zero"
    status_code = 409

    def __init__(self, account_id: str, friend_id: str, balance: Decimal):
        super().__init__(
            "Cannot delete friend while a balance is outstanding; settle it first",
            {
                "account_id": account_id,
                "friend_id": friend_id,
                "balance": float(balance),
            },
        )
        self.account_id = account_id
        self.friend_id = friend_id
        self.balance = balance


class StorageError(LedgerError):
    """Persistence failed; the mutation was not applied and may be retried whole."""

    code = "storage_error"
    status_code = 503


class VersionConflict(Exception):
    """A version-guarded write found the pair modified since it was read."""

    def __init__(self, friend_id: str, expected_version: int):
        super().__init__(
            f"Friend {friend_id} changed since version {expected_version}"
        )
        self.friend_id = friend_id
        self.expected_version = expected_version
