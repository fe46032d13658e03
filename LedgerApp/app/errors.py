# LedgerApp/app/errors.py
"""
Typed failures raised by the ledger services.

Write paths raise these and never leave partial state behind (apart from the
documented compensating-delete window). Read paths catch them and return an
empty, fully-shaped report instead.
"""


class LedgerError(Exception):
    status_code = 500

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(LedgerError):
    """Unbalanced entry, missing description, zero lines, bad account reference."""
    status_code = 400


class NotFoundError(LedgerError):
    status_code = 404


class CycleError(LedgerError):
    """A reparent would make an account its own ancestor."""
    status_code = 409


class ConstraintError(LedgerError):
    """Delete or change blocked by children, postings or dependent accounts."""
    status_code = 409


class StoreError(LedgerError):
    """Underlying persistence failure (wraps SQLAlchemyError)."""
    status_code = 500
