from __future__ import annotations


class FarmError(RuntimeError):
    """Base for every expected failure of a ledger/reward operation.

    `code` is the stable reason string surfaced to the request layer.
    """

    code = "farm_error"
    retryable = False

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class NotFound(FarmError):
    code = "not_found"


class InsufficientFunds(FarmError):
    code = "insufficient_funds"


class InsufficientResources(FarmError):
    code = "insufficient_resources"


class AlreadyClaimed(FarmError):
    code = "already_claimed"


class NoBoxesAvailable(FarmError):
    code = "no_boxes_available"


class NoSpinsAvailable(FarmError):
    code = "no_spins_available"


class InvalidConfiguration(FarmError):
    code = "invalid_configuration"


class Conflict(FarmError):
    code = "conflict"
    retryable = True


class CooldownActive(FarmError):
    code = "cooldown_active"


class DuplicateTransaction(FarmError):
    """transaction_id already used for a different request."""

    code = "duplicate_transaction"


class InvalidTransition(FarmError):
    """Transaction is not in the status the transition requires."""

    code = "invalid_transition"
