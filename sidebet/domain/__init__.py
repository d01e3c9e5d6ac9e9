from .errors import (
    AlreadyDone,
    AlreadyWithdrawn,
    EventNotFound,
    EventNotOpen,
    InvalidInput,
    InvalidSide,
    InvalidState,
    NoWinners,
    NotFound,
    SideBetError,
    SideMismatch,
    TransferFailed,
    Unauthorized,
    ZeroAmount,
)
from .event import (
    EventStatus,
    SideBetEvent,
    as_utc,
    cancel,
    effective_status,
    end_sale,
    ensure_accepting_deposits,
    new_event,
    refresh_status,
    require_status,
    select_winner,
)
from .ledger import SIDES, DepositEntry, DepositLedger, normalize_address, validate_side
from .pagination import page, page_bounds
from .settlement import (
    SettlementResult,
    compute_settlement,
    largest_remainder_shares,
    owner_cut_of,
    proportional_share,
    settle,
)

__all__ = [
    "AlreadyDone",
    "AlreadyWithdrawn",
    "DepositEntry",
    "DepositLedger",
    "EventNotFound",
    "EventNotOpen",
    "EventStatus",
    "InvalidInput",
    "InvalidSide",
    "InvalidState",
    "NoWinners",
    "NotFound",
    "SIDES",
    "SettlementResult",
    "SideBetError",
    "SideBetEvent",
    "SideMismatch",
    "TransferFailed",
    "Unauthorized",
    "ZeroAmount",
    "as_utc",
    "cancel",
    "compute_settlement",
    "effective_status",
    "end_sale",
    "ensure_accepting_deposits",
    "largest_remainder_shares",
    "new_event",
    "normalize_address",
    "owner_cut_of",
    "page",
    "page_bounds",
    "proportional_share",
    "refresh_status",
    "require_status",
    "select_winner",
    "settle",
    "validate_side",
]
