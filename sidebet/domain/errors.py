from __future__ import annotations

from typing import Any


class SideBetError(Exception):
    """Base class for every rule violation raised by the engine."""

    code = "side_bet_error"

    def __init__(self, message: str, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFound(SideBetError):
    code = "not_found"


class InvalidState(SideBetError):
    code = "invalid_state"


class InvalidInput(SideBetError):
    code = "invalid_input"


class Unauthorized(SideBetError):
    code = "unauthorized"


class AlreadyDone(SideBetError):
    code = "already_done"


class TransferFailed(SideBetError):
    code = "transfer_failed"


class EventNotFound(NotFound):
    code = "event_not_found"


class EventNotOpen(InvalidState):
    code = "event_not_open"


class NoWinners(InvalidState):
    code = "no_winners"


class InvalidSide(InvalidInput):
    code = "invalid_side"


class ZeroAmount(InvalidInput):
    code = "zero_amount"


class SideMismatch(InvalidInput):
    code = "side_mismatch"


class AlreadyWithdrawn(AlreadyDone):
    code = "already_withdrawn"
