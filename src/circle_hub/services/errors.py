"""Exception types shared by the submission sync services."""

from __future__ import annotations


class RemoteStoreError(RuntimeError):
    """Base exception raised for remote submission store failures."""


class SubmissionNotFound(LookupError):
    """Raised when a submission id has no row in the remote store."""

    def __init__(self, submission_id: str) -> None:
        super().__init__(f"Submission not found: {submission_id}")
        self.submission_id = submission_id


class RemoteWriteDenied(RemoteStoreError):
    """Raised when the remote store refuses a status update.

    Row-level security commonly produces this either as an explicit 401/403
    or as an update that silently matches no rows.
    """


class StorageQuotaExceeded(RuntimeError):
    """Raised by a storage tier when a value does not fit its quota."""


class PaymentError(RuntimeError):
    """Base exception for payment gateway failures."""


class PaymentGatewayError(PaymentError):
    """Raised when the payment gateway is unreachable or rejects a call."""


class PaymentVerificationError(PaymentError):
    """Raised when a payment signature does not match."""
