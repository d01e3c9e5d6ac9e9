"""Side-bet engine: deposits, lifecycle transitions and batched settlement."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sidebet.assets import AssetRegistry, AssetTransfer, TransferReceipt
from sidebet.authority import Authority
from sidebet.core.config import Settings, get_settings
from sidebet.domain import (
    AlreadyDone,
    AlreadyWithdrawn,
    DepositEntry,
    EventNotFound,
    EventStatus,
    InvalidInput,
    InvalidState,
    SideBetEvent,
    TransferFailed,
    Unauthorized,
    cancel,
    compute_settlement,
    effective_status,
    end_sale,
    ensure_accepting_deposits,
    new_event,
    normalize_address,
    page,
    page_bounds,
    refresh_status,
    require_status,
    select_winner,
    settle,
    validate_side,
)
from sidebet.storage import EventRepository

logger = logging.getLogger(__name__)


@dataclass
class BatchReport:
    """Outcome of one distribution or refund call.

    A call succeeds even when some or all transfers failed; ``failed`` lists
    who is still owed, and a later call over the same range retries them.
    """

    event_id: str
    kind: str
    paid: dict[str, int] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def total_paid(self) -> int:
        return sum(self.paid.values())


@dataclass(frozen=True)
class RewardLine:
    address: str
    deposit: int
    reward: int
    claimed: bool


@dataclass(frozen=True)
class SettlementPreview:
    event_id: str
    winning_side: int
    total_deposited: int
    owner_cut: int
    owner_payout: int
    reward_pool: int
    rounding_residual: int
    winners_count: int
    rewards: list[RewardLine]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SideBetService:
    def __init__(
        self,
        repo: EventRepository,
        assets: AssetRegistry,
        authority: Authority,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.repo = repo
        self.assets = assets
        self.authority = authority
        self.settings = settings or get_settings()
        self.clock = clock
        self._lock = threading.RLock()
        self._inbound_transfer: str | None = None

    # administrative operations

    def initialize_event(
        self,
        event_id: str,
        caller: str,
        side_names: Sequence[str],
        asset_ref: str,
        deposit_start: datetime,
        deposit_end: datetime,
    ) -> SideBetEvent:
        with self._lock:
            self._refuse_during_inbound_transfer()
            self._authorize(caller, "initialize events")
            event = new_event(
                event_id=event_id,
                side_names=tuple(side_names),
                asset_ref=asset_ref,
                deposit_start=deposit_start,
                deposit_end=deposit_end,
                owner_cut_percent=self.settings.owner_cut_percent,
                created_at=self.clock(),
            )
            self.assets.resolve(event.asset_ref)
            if self.repo.exists(event.event_id):
                raise AlreadyDone(f"event {event.event_id} is already initialized", {"event_id": event.event_id})

            self.repo.add(event)
            logger.info(
                "Initialized event %s (%s vs %s) on %s, deposits %s..%s",
                event.event_id,
                event.side_names[0],
                event.side_names[1],
                event.asset_ref,
                event.deposit_start.isoformat(),
                event.deposit_end.isoformat(),
            )
            return event

    def end_sale(self, event_id: str, caller: str) -> SideBetEvent:
        with self._lock:
            self._refuse_during_inbound_transfer()
            self._authorize(caller, "end deposit windows")
            event = self._load(event_id)
            end_sale(event, self.clock())
            self.repo.save(event)
            logger.info("Deposit window of %s ended early", event_id)
            return event

    def select_winner(self, event_id: str, caller: str, side: int) -> SideBetEvent:
        with self._lock:
            self._refuse_during_inbound_transfer()
            self._authorize(caller, "select winners")
            event = self._load(event_id)
            select_winner(event, side, self.clock())
            self.repo.save(event)
            logger.info("Side %s (%s) won event %s", side, event.side_names[side], event_id)
            return event

    def cancel_event(self, event_id: str, caller: str) -> SideBetEvent:
        with self._lock:
            self._refuse_during_inbound_transfer()
            self._authorize(caller, "cancel events")
            event = self._load(event_id)
            cancel(event, self.clock())
            self.repo.save(event)
            logger.info("Event %s cancelled", event_id)
            return event

    # participant operations

    def deposit(self, event_id: str, caller: str, side: int, amount: int) -> DepositEntry:
        with self._lock:
            self._refuse_during_inbound_transfer()
            address = normalize_address(caller)
            event = self._load(event_id)
            ensure_accepting_deposits(event, self.clock())
            event.ledger.check_deposit(address, side, amount)

            asset = self.assets.resolve(event.asset_ref)
            before = asset.balance_of(asset.holder)
            with self._inbound(event_id):
                receipt = asset.transfer_in(address, amount)
            # Credit what actually arrived; taxed assets deliver less than requested.
            received = asset.balance_of(asset.holder) - before
            if not receipt.ok or received <= 0:
                raise TransferFailed(
                    f"deposit transfer from {address} failed",
                    {"address": address, "amount": amount, "reason": receipt.reason, "received": max(received, 0)},
                )

            is_new = event.ledger.record(address, side, received)
            new_wallets = [address] if is_new and not self.repo.known_wallets([address]) else []
            self.repo.save(event, new_wallets=new_wallets)
            if received != amount:
                logger.info(
                    "Deposit of %s into %s shrank in transit: requested %s, credited %s",
                    address,
                    event_id,
                    amount,
                    received,
                )
            logger.info("Deposit %s by %s on side %s of %s", received, address, side, event_id)
            return event.ledger.entry(address)

    # settlement

    def distribute_rewards(self, event_id: str, caller: str, offset: int, limit: int) -> BatchReport:
        with self._lock:
            self._refuse_during_inbound_transfer()
            self._authorize(caller, "distribute rewards")
            event = self._load(event_id)
            require_status(event, EventStatus.WINNER_SELECTED, f"winning side of {event_id} not selected")
            settlement = settle(event)
            winners = page(
                event.ledger.participants_on(settlement.winning_side), offset, limit, self.settings.max_batch_size
            )
            report = self._pay_out(event, "reward", winners, settlement.reward_for)
            logger.info(
                "Reward batch for %s [%s, +%s): paid %s (%s units), failed %s, skipped %s",
                event_id,
                offset,
                limit,
                len(report.paid),
                report.total_paid,
                len(report.failed),
                len(report.skipped),
            )
            return report

    def refund_tokens(self, event_id: str, caller: str, offset: int, limit: int) -> BatchReport:
        with self._lock:
            self._refuse_during_inbound_transfer()
            self._authorize(caller, "refund deposits")
            event = self._load(event_id)
            require_status(event, EventStatus.CANCELLED, f"event {event_id} is not cancelled")
            participants = page(event.ledger.participants, offset, limit, self.settings.max_batch_size)
            report = self._pay_out(event, "refund", participants, event.ledger.deposit_of)
            logger.info(
                "Refund batch for %s [%s, +%s): refunded %s (%s units), failed %s, skipped %s",
                event_id,
                offset,
                limit,
                len(report.paid),
                report.total_paid,
                len(report.failed),
                len(report.skipped),
            )
            return report

    def withdraw_owner_cut(self, event_id: str, caller: str) -> int:
        with self._lock:
            self._refuse_during_inbound_transfer()
            self._authorize(caller, "withdraw the owner cut")
            event = self._load(event_id)
            require_status(event, EventStatus.WINNER_SELECTED, f"winning side of {event_id} not selected")
            if event.owner_cut_withdrawn:
                raise AlreadyWithdrawn(f"owner cut of {event_id} already withdrawn", {"event_id": event_id})

            amount = settle(event).owner_payout
            self.repo.set_owner_cut_withdrawn(event_id, True)
            if amount > 0:
                receipt = _attempt(self.assets.resolve(event.asset_ref), caller, amount)
                if not receipt.ok:
                    self.repo.set_owner_cut_withdrawn(event_id, False)
                    raise TransferFailed(
                        f"owner cut transfer to {caller} failed",
                        {"event_id": event_id, "amount": amount, "reason": receipt.reason},
                    )
            logger.info("Owner cut of %s withdrawn by %s: %s", event_id, caller, amount)
            return amount

    # reads

    def get_event(self, event_id: str) -> SideBetEvent:
        event = self._load(event_id)
        event.status = effective_status(event, self.clock())
        return event

    def list_deposits(self, event_id: str, offset: int, limit: int) -> list[DepositEntry]:
        event = self._load(event_id)
        addresses = page(event.ledger.participants, offset, limit, self.settings.max_batch_size)
        return event.ledger.entries(addresses)

    def list_claims(self, event_id: str, offset: int, limit: int, side: int | None = None) -> list[DepositEntry]:
        event = self._load(event_id)
        if side is None:
            candidates = event.ledger.participants
        else:
            candidates = event.ledger.participants_on(validate_side(side))
        return event.ledger.entries(page(candidates, offset, limit, self.settings.max_batch_size))

    def preview_settlement(
        self,
        event_id: str,
        offset: int,
        limit: int,
        winning_side: int | None = None,
    ) -> SettlementPreview:
        event = self._load(event_id)
        refresh_status(event, self.clock())
        if event.status == EventStatus.CANCELLED:
            raise InvalidState(f"event {event_id} is cancelled", {"event_id": event_id})
        if event.winning_side is not None and winning_side is not None and winning_side != event.winning_side:
            raise InvalidInput(
                f"side {event.winning_side} already won {event_id}",
                {"event_id": event_id, "winning_side": event.winning_side, "requested_side": winning_side},
            )
        side = event.winning_side if event.winning_side is not None else winning_side
        if side is None:
            raise InvalidState(
                f"winning side of {event_id} not selected; pass a side to preview",
                {"event_id": event_id, "status": event.status.value},
            )

        settlement = compute_settlement(event, side, event.owner_cut_percent)
        winners = event.ledger.participants_on(side)
        return SettlementPreview(
            event_id=event_id,
            winning_side=side,
            total_deposited=settlement.total_deposited,
            owner_cut=settlement.owner_cut,
            owner_payout=settlement.owner_payout,
            reward_pool=settlement.reward_pool,
            rounding_residual=settlement.rounding_residual,
            winners_count=len(winners),
            rewards=[
                RewardLine(
                    address=address,
                    deposit=event.ledger.deposit_of(address),
                    reward=settlement.reward_for(address),
                    claimed=event.ledger.is_claimed(address),
                )
                for address in page(winners, offset, limit, self.settings.max_batch_size)
            ],
        )

    def list_wallets(self, offset: int, limit: int) -> list[str]:
        start, stop = page_bounds(offset, limit, self.repo.count_wallets(), self.settings.max_batch_size)
        if start == stop:
            return []
        return self.repo.list_wallets(start, stop - start)

    # internals

    def _authorize(self, caller: str, action: str) -> None:
        if not self.authority.is_authorized(caller):
            raise Unauthorized(f"{caller} is not allowed to {action}", {"caller": caller})

    def _load(self, event_id: str) -> SideBetEvent:
        event = self.repo.get(event_id)
        if event is None:
            raise EventNotFound(f"event {event_id} not found", {"event_id": event_id})
        return event

    def _refuse_during_inbound_transfer(self) -> None:
        # The deposit in progress is credited from the holding account's balance delta,
        # so nothing else may move funds until it completes.
        if self._inbound_transfer is not None:
            raise InvalidState(
                f"a deposit into {self._inbound_transfer} is in progress",
                {"event_id": self._inbound_transfer},
            )

    @contextmanager
    def _inbound(self, event_id: str) -> Iterator[None]:
        self._inbound_transfer = event_id
        try:
            yield
        finally:
            self._inbound_transfer = None

    def _pay_out(
        self,
        event: SideBetEvent,
        kind: str,
        addresses: list[str],
        amount_for: Callable[[str], int],
    ) -> BatchReport:
        report = BatchReport(event_id=event.event_id, kind=kind)
        asset = self.assets.resolve(event.asset_ref)

        for address in addresses:
            # Flags are re-read per participant: a transfer may have re-entered and paid others.
            claimed, in_flight = self.repo.get_claim(event.event_id, address)
            if claimed or in_flight:
                report.skipped.append(address)
                continue

            amount = amount_for(address)
            if amount <= 0:
                self.repo.save_claim(event.event_id, address, claimed=True, in_flight=False)
                report.paid[address] = 0
                continue

            self.repo.save_claim(event.event_id, address, claimed=False, in_flight=True)
            receipt = _attempt(asset, address, amount)
            self.repo.save_claim(event.event_id, address, claimed=receipt.ok, in_flight=False)
            if receipt.ok:
                report.paid[address] = amount
            else:
                report.failed[address] = receipt.reason or "transfer rejected"
                logger.warning(
                    "%s of %s to %s for %s failed: %s",
                    kind.capitalize(),
                    amount,
                    address,
                    event.event_id,
                    report.failed[address],
                )
        return report


def _attempt(asset: AssetTransfer, recipient: str, amount: int) -> TransferReceipt:
    try:
        return asset.transfer_out(recipient, amount)
    except Exception as exc:  # noqa: BLE001  any error from the asset counts as a rejected transfer
        logger.exception("Asset raised while paying %s to %s", amount, recipient)
        return TransferReceipt.failure(f"{type(exc).__name__}: {exc}")
