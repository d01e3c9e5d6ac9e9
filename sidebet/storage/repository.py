from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload, sessionmaker

from sidebet.domain import DepositLedger, EventStatus, SideBetEvent, as_utc
from sidebet.storage.models import DepositRecord, SideBetEventRecord, WalletRecord


class EventRepository:
    """Persists events and their ledgers; every public method is one transaction."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def exists(self, event_id: str) -> bool:
        with self._session_factory() as db:
            return db.get(SideBetEventRecord, event_id) is not None

    def add(self, event: SideBetEvent) -> None:
        with self._session_factory() as db:
            db.add(
                SideBetEventRecord(
                    event_id=event.event_id,
                    side_a=event.side_names[0],
                    side_b=event.side_names[1],
                    asset_ref=event.asset_ref,
                    deposit_start=event.deposit_start,
                    deposit_end=event.deposit_end,
                    status=event.status.value,
                    winning_side=event.winning_side,
                    owner_cut_percent=event.owner_cut_percent,
                    owner_cut_withdrawn=event.owner_cut_withdrawn,
                    created_at=event.created_at,
                )
            )
            db.commit()

    def get(self, event_id: str) -> SideBetEvent | None:
        with self._session_factory() as db:
            record = db.scalars(
                select(SideBetEventRecord)
                .options(selectinload(SideBetEventRecord.deposits))
                .where(SideBetEventRecord.event_id == event_id)
            ).one_or_none()
            if record is None:
                return None
            return _to_domain(record)

    def save(self, event: SideBetEvent, *, new_wallets: Iterable[str] = ()) -> None:
        with self._session_factory() as db:
            record = db.scalars(
                select(SideBetEventRecord)
                .options(selectinload(SideBetEventRecord.deposits))
                .where(SideBetEventRecord.event_id == event.event_id)
            ).one()
            record.status = event.status.value
            record.winning_side = event.winning_side
            record.owner_cut_withdrawn = event.owner_cut_withdrawn

            ledger = event.ledger
            existing = {deposit.address: deposit for deposit in record.deposits}
            for position, address in enumerate(ledger.participants):
                deposit = existing.get(address)
                if deposit is None:
                    deposit = DepositRecord(event_id=event.event_id, position=position, address=address)
                    record.deposits.append(deposit)
                deposit.side = ledger.side_of[address]
                deposit.amount = ledger.deposits[address]
                deposit.claimed = address in ledger.claimed
                deposit.in_flight = address in ledger.in_flight

            for address in new_wallets:
                db.add(WalletRecord(address=address, first_event_id=event.event_id))
            db.commit()

    def get_claim(self, event_id: str, address: str) -> tuple[bool, bool]:
        """Current ``(claimed, in_flight)`` flags of one participant."""
        with self._session_factory() as db:
            row = db.execute(
                select(DepositRecord.claimed, DepositRecord.in_flight).where(
                    DepositRecord.event_id == event_id, DepositRecord.address == address
                )
            ).one_or_none()
            if row is None:
                return False, False
            return bool(row.claimed), bool(row.in_flight)

    def set_owner_cut_withdrawn(self, event_id: str, withdrawn: bool) -> None:
        with self._session_factory() as db:
            db.execute(
                update(SideBetEventRecord)
                .where(SideBetEventRecord.event_id == event_id)
                .values(owner_cut_withdrawn=withdrawn)
            )
            db.commit()

    def save_claim(self, event_id: str, address: str, *, claimed: bool, in_flight: bool) -> None:
        """Persist one participant's claim flags without rewriting the whole ledger."""
        with self._session_factory() as db:
            db.execute(
                update(DepositRecord)
                .where(DepositRecord.event_id == event_id, DepositRecord.address == address)
                .values(claimed=claimed, in_flight=in_flight)
            )
            db.commit()

    def known_wallets(self, addresses: Iterable[str]) -> set[str]:
        candidates = set(addresses)
        if not candidates:
            return set()
        with self._session_factory() as db:
            return set(db.scalars(select(WalletRecord.address).where(WalletRecord.address.in_(candidates))).all())

    def list_wallets(self, offset: int, limit: int) -> list[str]:
        with self._session_factory() as db:
            return list(
                db.scalars(select(WalletRecord.address).order_by(WalletRecord.id).offset(offset).limit(limit)).all()
            )

    def count_wallets(self) -> int:
        with self._session_factory() as db:
            return int(db.scalar(select(func.count(WalletRecord.id))) or 0)


def _to_domain(record: SideBetEventRecord) -> SideBetEvent:
    ledger = DepositLedger()
    for deposit in sorted(record.deposits, key=lambda item: item.position):
        ledger.participants.append(deposit.address)
        ledger.side_of[deposit.address] = deposit.side
        ledger.deposits[deposit.address] = deposit.amount
        ledger.side_totals[deposit.side] += deposit.amount
        if deposit.claimed:
            ledger.claimed.add(deposit.address)
        if deposit.in_flight:
            ledger.in_flight.add(deposit.address)

    return SideBetEvent(
        event_id=record.event_id,
        side_names=(record.side_a, record.side_b),
        asset_ref=record.asset_ref,
        deposit_start=as_utc(record.deposit_start),
        deposit_end=as_utc(record.deposit_end),
        owner_cut_percent=record.owner_cut_percent,
        status=EventStatus(record.status),
        winning_side=record.winning_side,
        owner_cut_withdrawn=record.owner_cut_withdrawn,
        created_at=as_utc(record.created_at),
        ledger=ledger,
    )
