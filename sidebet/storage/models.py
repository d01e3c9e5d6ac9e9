from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sidebet.storage.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SideBetEventRecord(Base):
    __tablename__ = "side_bet_events"

    event_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    side_a: Mapped[str] = mapped_column(String(128), nullable=False)
    side_b: Mapped[str] = mapped_column(String(128), nullable=False)
    asset_ref: Mapped[str] = mapped_column(String(128), nullable=False)
    deposit_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    deposit_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="open", index=True)
    winning_side: Mapped[int | None] = mapped_column(Integer, nullable=True)
    owner_cut_percent: Mapped[int] = mapped_column(Integer, nullable=False)
    owner_cut_withdrawn: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    deposits: Mapped[list["DepositRecord"]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="DepositRecord.position",
    )


class DepositRecord(Base):
    __tablename__ = "side_bet_deposits"
    __table_args__ = (
        UniqueConstraint("event_id", "address", name="uq_side_bet_deposits_event_address"),
        UniqueConstraint("event_id", "position", name="uq_side_bet_deposits_event_position"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    event_id: Mapped[str] = mapped_column(ForeignKey("side_bet_events.event_id"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    address: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    side: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    in_flight: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    event: Mapped[SideBetEventRecord] = relationship(back_populates="deposits")


class WalletRecord(Base):
    __tablename__ = "wallets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    address: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    first_event_id: Mapped[str] = mapped_column(String(128), nullable=False)
    first_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
