from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query, status

from sidebet.api.schemas import (
    BatchReportResponse,
    BatchRequest,
    ClaimListResponse,
    ClaimStatus,
    CreateEventRequest,
    DepositListResponse,
    DepositRequest,
    DepositResponse,
    EventResponse,
    OwnerCutResponse,
    SettlementPreviewResponse,
    WinnerRequest,
)
from sidebet.runtime import get_service
from sidebet.service import SideBetService

router = APIRouter(prefix="/events", tags=["events"])

Caller = Annotated[str, Header(alias="X-Caller", description="Account performing the call")]
Service = Annotated[SideBetService, Depends(get_service)]
Offset = Annotated[int, Query(ge=0)]
Limit = Annotated[int, Query(ge=0)]


@router.post(
    "",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Initialize a two-sided event",
)
def create_event(payload: CreateEventRequest, caller: Caller, service: Service) -> EventResponse:
    event = service.initialize_event(
        event_id=payload.event_id,
        caller=caller,
        side_names=payload.side_names,
        asset_ref=payload.asset_ref,
        deposit_start=payload.deposit_start,
        deposit_end=payload.deposit_end,
    )
    return EventResponse.from_event(event)


@router.get("/{event_id}", response_model=EventResponse, summary="Event metadata and status")
def get_event(event_id: str, service: Service) -> EventResponse:
    return EventResponse.from_event(service.get_event(event_id))


@router.post("/{event_id}/deposits", response_model=DepositResponse, summary="Deposit on one side")
def deposit(event_id: str, payload: DepositRequest, caller: Caller, service: Service) -> DepositResponse:
    entry = service.deposit(event_id, caller, payload.side, payload.amount)
    return DepositResponse.from_entry(entry)


@router.get("/{event_id}/deposits", response_model=DepositListResponse, summary="Paginated deposit ledger")
def list_deposits(event_id: str, service: Service, limit: Limit, offset: Offset = 0) -> DepositListResponse:
    entries = service.list_deposits(event_id, offset, limit)
    return DepositListResponse(
        event_id=event_id,
        offset=offset,
        limit=limit,
        items=[DepositResponse.from_entry(entry) for entry in entries],
    )


@router.get("/{event_id}/claims", response_model=ClaimListResponse, summary="Paginated claimed flags")
def list_claims(
    event_id: str,
    service: Service,
    limit: Limit,
    offset: Offset = 0,
    side: int | None = None,
) -> ClaimListResponse:
    entries = service.list_claims(event_id, offset, limit, side=side)
    return ClaimListResponse(
        event_id=event_id,
        offset=offset,
        limit=limit,
        side=side,
        items=[ClaimStatus(address=entry.address, claimed=entry.claimed) for entry in entries],
    )


@router.get(
    "/{event_id}/settlement",
    response_model=SettlementPreviewResponse,
    summary="Owner cut, reward pool and per-winner rewards",
    description="`side` picks the side to preview before a winner is selected; afterwards it must match the winner.",
)
def preview_settlement(
    event_id: str,
    service: Service,
    limit: Limit,
    offset: Offset = 0,
    side: int | None = None,
) -> SettlementPreviewResponse:
    preview = service.preview_settlement(event_id, offset, limit, winning_side=side)
    return SettlementPreviewResponse.from_preview(preview)


@router.post("/{event_id}/end", response_model=EventResponse, summary="Close the deposit window now")
def end_sale(event_id: str, caller: Caller, service: Service) -> EventResponse:
    return EventResponse.from_event(service.end_sale(event_id, caller))


@router.post("/{event_id}/winner", response_model=EventResponse, summary="Select the winning side")
def select_winner(event_id: str, payload: WinnerRequest, caller: Caller, service: Service) -> EventResponse:
    return EventResponse.from_event(service.select_winner(event_id, caller, payload.side))


@router.post("/{event_id}/cancel", response_model=EventResponse, summary="Cancel the event")
def cancel_event(event_id: str, caller: Caller, service: Service) -> EventResponse:
    return EventResponse.from_event(service.cancel_event(event_id, caller))


@router.post("/{event_id}/distribute", response_model=BatchReportResponse, summary="Pay one batch of winners")
def distribute_rewards(
    event_id: str, payload: BatchRequest, caller: Caller, service: Service
) -> BatchReportResponse:
    report = service.distribute_rewards(event_id, caller, payload.offset, payload.limit)
    return BatchReportResponse.from_report(report)


@router.post("/{event_id}/refund", response_model=BatchReportResponse, summary="Refund one batch of depositors")
def refund_tokens(event_id: str, payload: BatchRequest, caller: Caller, service: Service) -> BatchReportResponse:
    report = service.refund_tokens(event_id, caller, payload.offset, payload.limit)
    return BatchReportResponse.from_report(report)


@router.post("/{event_id}/owner-cut", response_model=OwnerCutResponse, summary="Withdraw the operator cut")
def withdraw_owner_cut(event_id: str, caller: Caller, service: Service) -> OwnerCutResponse:
    amount = service.withdraw_owner_cut(event_id, caller)
    return OwnerCutResponse(event_id=event_id, amount=amount)
