from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from .errors import (
    AlreadyDone,
    EventNotOpen,
    InvalidInput,
    InvalidState,
    NoWinners,
)
from .ledger import DepositLedger, validate_side


class EventStatus(str, Enum):
    OPEN = "open"
    ENDED = "ended"
    WINNER_SELECTED = "winner_selected"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({EventStatus.WINNER_SELECTED, EventStatus.CANCELLED})


@dataclass
class SideBetEvent:
    event_id: str
    side_names: tuple[str, str]
    asset_ref: str
    deposit_start: datetime
    deposit_end: datetime
    owner_cut_percent: int
    status: EventStatus = EventStatus.OPEN
    winning_side: int | None = None
    owner_cut_withdrawn: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    ledger: DepositLedger = field(default_factory=DepositLedger)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def accepts_deposits_at(self, now: datetime) -> bool:
        return self.status == EventStatus.OPEN and self.deposit_start <= now < self.deposit_end


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_event(
    event_id: str,
    side_names: tuple[str, str] | list[str],
    asset_ref: str,
    deposit_start: datetime,
    deposit_end: datetime,
    owner_cut_percent: int,
    created_at: datetime | None = None,
) -> SideBetEvent:
    event_id = event_id.strip()
    if not event_id:
        raise InvalidInput("event id must be non-empty")
    if len(side_names) != 2:
        raise InvalidInput("exactly two side names are required", {"side_names": list(side_names)})
    names = (side_names[0].strip(), side_names[1].strip())
    if not all(names):
        raise InvalidInput("side names must be non-empty", {"side_names": list(side_names)})
    if not asset_ref or not asset_ref.strip():
        raise InvalidInput("asset reference must be non-empty")
    start, end = as_utc(deposit_start), as_utc(deposit_end)
    if end <= start:
        raise InvalidInput(
            "deposit end must be later than deposit start",
            {"deposit_start": start.isoformat(), "deposit_end": end.isoformat()},
        )
    if not 0 <= owner_cut_percent <= 100:
        raise InvalidInput("owner cut percent must be within 0..100", {"owner_cut_percent": owner_cut_percent})

    return SideBetEvent(
        event_id=event_id,
        side_names=names,
        asset_ref=asset_ref.strip(),
        deposit_start=start,
        deposit_end=end,
        owner_cut_percent=owner_cut_percent,
        created_at=created_at or datetime.now(timezone.utc),
    )


def effective_status(event: SideBetEvent, now: datetime) -> EventStatus:
    """Status as observed at ``now``: an open event past its deadline reads as ended."""
    if event.status == EventStatus.OPEN and now >= event.deposit_end:
        return EventStatus.ENDED
    return event.status


def refresh_status(event: SideBetEvent, now: datetime) -> bool:
    """Materialize the implicit deadline transition. Returns True if the status changed."""
    status = effective_status(event, now)
    if status != event.status:
        event.status = status
        return True
    return False


def ensure_accepting_deposits(event: SideBetEvent, now: datetime) -> None:
    if not event.accepts_deposits_at(now):
        raise EventNotOpen(
            f"event {event.event_id} is not accepting deposits",
            {
                "event_id": event.event_id,
                "status": effective_status(event, now).value,
                "deposit_start": event.deposit_start.isoformat(),
                "deposit_end": event.deposit_end.isoformat(),
            },
        )


def end_sale(event: SideBetEvent, now: datetime) -> None:
    refresh_status(event, now)
    if event.status != EventStatus.OPEN:
        raise InvalidState(
            f"event {event.event_id} is not open",
            {"event_id": event.event_id, "status": event.status.value},
        )
    event.status = EventStatus.ENDED


def select_winner(event: SideBetEvent, side: int, now: datetime) -> None:
    validate_side(side)
    refresh_status(event, now)
    if event.status == EventStatus.WINNER_SELECTED:
        raise AlreadyDone(
            f"winner already selected for {event.event_id}",
            {"event_id": event.event_id, "winning_side": event.winning_side},
        )
    if event.status == EventStatus.CANCELLED:
        raise InvalidState(f"event {event.event_id} is cancelled", {"event_id": event.event_id})
    if event.status != EventStatus.ENDED:
        raise InvalidState(
            f"deposit window of {event.event_id} has not ended yet",
            {"event_id": event.event_id, "status": event.status.value},
        )
    if event.ledger.side_totals[side] == 0:
        raise NoWinners(
            f"side {side} of {event.event_id} has no deposits",
            {"event_id": event.event_id, "side": side},
        )
    event.status = EventStatus.WINNER_SELECTED
    event.winning_side = side


def cancel(event: SideBetEvent, now: datetime) -> None:
    refresh_status(event, now)
    if event.status == EventStatus.CANCELLED:
        raise AlreadyDone(f"event {event.event_id} is already cancelled", {"event_id": event.event_id})
    if event.status == EventStatus.WINNER_SELECTED:
        raise InvalidState(
            f"winner already selected for {event.event_id}",
            {"event_id": event.event_id, "winning_side": event.winning_side},
        )
    event.status = EventStatus.CANCELLED


def require_status(event: SideBetEvent, status: EventStatus, message: str) -> None:
    if event.status != status:
        raise InvalidState(message, {"event_id": event.event_id, "status": event.status.value})
