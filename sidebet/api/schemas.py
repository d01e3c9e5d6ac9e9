from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from sidebet.domain import DepositEntry, SideBetEvent
from sidebet.service import BatchReport, SettlementPreview


class CreateEventRequest(BaseModel):
    event_id: str = Field(..., description="Unique event code", examples=["Man v. Liv"])
    side_names: list[str] = Field(
        ...,
        min_length=2,
        max_length=2,
        description="Labels of side 0 and side 1",
        examples=[["Manchester", "Liverpool"]],
    )
    asset_ref: str = Field(..., description="Registered asset the event settles in", examples=["TEST"])
    deposit_start: datetime
    deposit_end: datetime

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "event_id": "Man v. Liv",
                    "side_names": ["Manchester", "Liverpool"],
                    "asset_ref": "TEST",
                    "deposit_start": "2026-01-01T00:00:00Z",
                    "deposit_end": "2026-01-02T00:00:00Z",
                }
            ]
        }
    }


class EventResponse(BaseModel):
    event_id: str
    side_names: list[str]
    asset_ref: str
    deposit_start: datetime
    deposit_end: datetime
    status: str
    winning_side: int | None = None
    owner_cut_percent: int
    owner_cut_withdrawn: bool
    side_totals: list[int]
    total_deposited: int
    participants_count: int

    @classmethod
    def from_event(cls, event: SideBetEvent) -> "EventResponse":
        return cls(
            event_id=event.event_id,
            side_names=list(event.side_names),
            asset_ref=event.asset_ref,
            deposit_start=event.deposit_start,
            deposit_end=event.deposit_end,
            status=event.status.value,
            winning_side=event.winning_side,
            owner_cut_percent=event.owner_cut_percent,
            owner_cut_withdrawn=event.owner_cut_withdrawn,
            side_totals=list(event.ledger.side_totals),
            total_deposited=event.ledger.total_deposited,
            participants_count=len(event.ledger.participants),
        )


class DepositRequest(BaseModel):
    side: int = Field(..., examples=[0])
    amount: int = Field(..., description="Amount in the asset's smallest unit", examples=[1000])


class WinnerRequest(BaseModel):
    side: int = Field(..., examples=[0])


class BatchRequest(BaseModel):
    offset: int = Field(default=0, examples=[0])
    limit: int = Field(..., examples=[100])


class DepositResponse(BaseModel):
    address: str
    side: int
    amount: int
    claimed: bool

    @classmethod
    def from_entry(cls, entry: DepositEntry) -> "DepositResponse":
        return cls(address=entry.address, side=entry.side, amount=entry.amount, claimed=entry.claimed)


class DepositListResponse(BaseModel):
    event_id: str
    offset: int
    limit: int
    items: list[DepositResponse]


class ClaimStatus(BaseModel):
    address: str
    claimed: bool


class ClaimListResponse(BaseModel):
    event_id: str
    offset: int
    limit: int
    side: int | None = None
    items: list[ClaimStatus]


class BatchReportResponse(BaseModel):
    event_id: str
    kind: str
    paid: dict[str, int]
    failed: dict[str, str]
    skipped: list[str]
    total_paid: int

    @classmethod
    def from_report(cls, report: BatchReport) -> "BatchReportResponse":
        return cls(
            event_id=report.event_id,
            kind=report.kind,
            paid=report.paid,
            failed=report.failed,
            skipped=report.skipped,
            total_paid=report.total_paid,
        )


class OwnerCutResponse(BaseModel):
    event_id: str
    amount: int


class RewardLineResponse(BaseModel):
    address: str
    deposit: int
    reward: int
    claimed: bool


class SettlementPreviewResponse(BaseModel):
    event_id: str
    winning_side: int
    total_deposited: int
    owner_cut: int
    owner_payout: int
    reward_pool: int
    rounding_residual: int
    winners_count: int
    rewards: list[RewardLineResponse]

    @classmethod
    def from_preview(cls, preview: SettlementPreview) -> "SettlementPreviewResponse":
        return cls(
            event_id=preview.event_id,
            winning_side=preview.winning_side,
            total_deposited=preview.total_deposited,
            owner_cut=preview.owner_cut,
            owner_payout=preview.owner_payout,
            reward_pool=preview.reward_pool,
            rounding_residual=preview.rounding_residual,
            winners_count=preview.winners_count,
            rewards=[
                RewardLineResponse(address=line.address, deposit=line.deposit, reward=line.reward, claimed=line.claimed)
                for line in preview.rewards
            ],
        )


class WalletListResponse(BaseModel):
    offset: int
    limit: int
    wallets: list[str]
