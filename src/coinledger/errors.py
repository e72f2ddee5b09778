"""Domain error taxonomy.

Every error carries a stable ``code`` and the HTTP status the API layer
answers with. Storage-level uniqueness violations are raised by the
ledger helpers as ``DuplicateTask``/``DuplicateReferral`` and translated
by the Ledger Engine before they reach a caller.
"""

from __future__ import annotations


class CoinLedgerError(Exception):
    """Base class for all domain errors."""

    code: str = "CoinLedgerError"
    status_code: int = 400
    default_message: str = "Request could not be processed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailure(CoinLedgerError):
    code = "ValidationFailure"
    default_message = "Invalid request"


class DuplicateUsername(CoinLedgerError):
    code = "DuplicateUsername"
    default_message = "Username already exists"


class NotFound(CoinLedgerError):
    code = "NotFound"
    status_code = 404
    default_message = "User not found"


class TaskAlreadyCompleted(CoinLedgerError):
    code = "TaskAlreadyCompleted"
    default_message = "Task already completed"


class ReferralAlreadyRecorded(CoinLedgerError):
    code = "ReferralAlreadyRecorded"
    default_message = "User has already been referred"


class DuplicateTask(CoinLedgerError):
    """Unique (user_id, task_type) violation on the tasks table."""

    code = "DuplicateTask"
    status_code = 409
    default_message = "Task completion already recorded"


class DuplicateReferral(CoinLedgerError):
    """Unique referred_id violation on the referrals table."""

    code = "DuplicateReferral"
    status_code = 409
    default_message = "Referral already recorded"


class InvalidToken(CoinLedgerError):
    code = "InvalidToken"
    status_code = 401
    default_message = "Invalid token"


class ExpiredToken(InvalidToken):
    code = "ExpiredToken"
    default_message = "Token has expired"


class TransientStoreFailure(CoinLedgerError):
    code = "TransientStoreFailure"
    status_code = 503
    default_message = "Store temporarily unavailable"
