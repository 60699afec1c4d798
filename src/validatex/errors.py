"""Domain errors for ledger, wallet and review flows.

Every error carries a human-readable message that is safe to show to the
caller. The HTTP layer maps each class to a status code in
``validatex.middleware.error_handler``.
"""

from __future__ import annotations

from typing import Any


class ValidateXError(Exception):
    """Base class for expected, structured failures."""

    status_code = 400

    def __init__(self, message: str, **extra: Any) -> None:  # noqa: ANN401
        super().__init__(message)
        self.message = message
        self.extra = extra


class NotFoundError(ValidateXError, LookupError):
    """A referenced user, post, validation or cashout request does not exist."""

    status_code = 404


class PermissionDenied(ValidateXError):
    """The caller is authenticated but may not act on this resource."""

    status_code = 403


class ValidationFailure(ValidateXError, ValueError):
    """A business precondition was not met."""

    status_code = 400


class CooldownActive(ValidationFailure):
    """Cashout requested before the cooldown window has elapsed."""

    def __init__(self, remaining_days: int, next_allowed_at: str) -> None:
        super().__init__(
            f"You can request another cashout in {remaining_days} day{'s' if remaining_days != 1 else ''}",
            remaining_days=remaining_days,
            next_allowed_at=next_allowed_at,
        )
        self.remaining_days = remaining_days


class InsufficientBalance(ValidationFailure):
    """Requested amount exceeds the available balance."""


class PersistenceFailure(ValidateXError):
    """The database rejected or failed a write. Never retried automatically."""

    status_code = 500
