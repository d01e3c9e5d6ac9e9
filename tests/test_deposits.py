from datetime import timedelta

import pytest

from conftest import BALANCE, EVENT_CODE, OWNER, SIDES, START, FakeClock, funded_token, make_service, open_event
from sidebet.assets import InMemoryToken
from sidebet.authority import AllowListAuthority
from sidebet.core.config import Settings
from sidebet.domain import (
    AlreadyDone,
    EventNotFound,
    EventNotOpen,
    EventStatus,
    InvalidInput,
    InvalidSide,
    SideMismatch,
    TransferFailed,
    Unauthorized,
    ZeroAmount,
)
from sidebet.runtime import build_service
from sidebet.service import SideBetService


def test_initialize_event(service: SideBetService) -> None:
    open_event(service)

    event = service.get_event(EVENT_CODE)

    assert event.side_names == SIDES
    assert event.asset_ref == "TEST"
    assert event.status == EventStatus.OPEN
    assert event.owner_cut_percent == 5
    assert event.owner_cut_withdrawn is False
    assert event.deposit_start == START


def test_initialize_requires_authority(service: SideBetService) -> None:
    with pytest.raises(Unauthorized):
        service.initialize_event(EVENT_CODE, "mallory", SIDES, "TEST", START, START + timedelta(seconds=10))

    with pytest.raises(EventNotFound):
        service.get_event(EVENT_CODE)


def test_initialize_twice_is_already_done(service: SideBetService) -> None:
    open_event(service)

    with pytest.raises(AlreadyDone):
        open_event(service)


@pytest.mark.parametrize(
    "side_names, asset_ref, duration",
    [
        (("", ""), "TEST", 10),
        (SIDES, "UNKNOWN", 10),
        (SIDES, "", 10),
        (SIDES, "TEST", 0),
    ],
    ids=["empty_side_names", "unknown_asset", "no_asset", "zero_duration"],
)
def test_initialize_rejects_invalid_input(
    service: SideBetService, side_names: tuple, asset_ref: str, duration: int
) -> None:
    with pytest.raises(InvalidInput):
        service.initialize_event(
            EVENT_CODE, OWNER, side_names, asset_ref, START, START + timedelta(seconds=duration)
        )


def test_deposit_moves_funds_and_updates_ledger(service: SideBetService, token: InMemoryToken) -> None:
    open_event(service)

    entry = service.deposit(EVENT_CODE, "alice", 1, 1000)

    assert (entry.address, entry.side, entry.amount, entry.claimed) == ("alice", 1, 1000, False)
    assert token.balance_of("escrow") == 1000
    assert token.balance_of("alice") == BALANCE - 1000
    event = service.get_event(EVENT_CODE)
    assert event.ledger.participants == ["alice"]
    assert event.ledger.side_totals == [0, 1000]


def test_side_totals_match_accepted_deposits(service: SideBetService, token: InMemoryToken) -> None:
    open_event(service)
    accepted = 0
    for user, side, amount in [
        ("alice", 0, 1000),
        ("bob", 0, 1000),
        ("carol", 1, 2000),
        ("dave", 0, 3000),
        ("erin", 1, 4000),
        ("alice", 0, 250),
    ]:
        service.deposit(EVENT_CODE, user, side, amount)
        accepted += amount

    event = service.get_event(EVENT_CODE)

    assert sum(event.ledger.side_totals) == accepted == token.balance_of("escrow")
    assert event.ledger.side_totals == [5250, 6000]
    assert event.ledger.participants == ["alice", "bob", "carol", "dave", "erin"]


def test_deposit_after_deadline_is_rejected(service: SideBetService, clock: FakeClock) -> None:
    open_event(service)
    clock.now = START + timedelta(seconds=11)

    with pytest.raises(EventNotOpen):
        service.deposit(EVENT_CODE, "alice", 0, 1000)


def test_deposit_before_window_is_rejected(service: SideBetService, clock: FakeClock) -> None:
    open_event(service)
    clock.now = START - timedelta(seconds=1)

    with pytest.raises(EventNotOpen):
        service.deposit(EVENT_CODE, "alice", 0, 1000)


def test_deposit_after_end_sale_is_rejected(service: SideBetService) -> None:
    open_event(service)
    service.end_sale(EVENT_CODE, OWNER)

    with pytest.raises(EventNotOpen):
        service.deposit(EVENT_CODE, "alice", 0, 1000)


@pytest.mark.parametrize(
    "side, amount, error",
    [(0, 0, ZeroAmount), (3, 1000, InvalidSide)],
    ids=["zero_amount", "invalid_side"],
)
def test_invalid_deposit_moves_nothing(
    service: SideBetService, token: InMemoryToken, side: int, amount: int, error: type
) -> None:
    open_event(service)

    with pytest.raises(error):
        service.deposit(EVENT_CODE, "alice", side, amount)

    assert token.balance_of("alice") == BALANCE
    assert service.get_event(EVENT_CODE).ledger.participants == []


def test_deposit_into_unknown_event(service: SideBetService) -> None:
    with pytest.raises(EventNotFound):
        service.deposit("Tot v. Che", "alice", 0, 1000)


def test_switching_sides_is_rejected_before_transfer(service: SideBetService, token: InMemoryToken) -> None:
    open_event(service)
    service.deposit(EVENT_CODE, "alice", 0, 1000)

    with pytest.raises(SideMismatch):
        service.deposit(EVENT_CODE, "alice", 1, 1000)

    assert token.balance_of("alice") == BALANCE - 1000
    assert service.get_event(EVENT_CODE).ledger.side_totals == [1000, 0]


def test_failed_transfer_in_leaves_no_trace(service: SideBetService, token: InMemoryToken) -> None:
    open_event(service)

    with pytest.raises(TransferFailed):
        service.deposit(EVENT_CODE, "alice", 0, BALANCE * 2)

    token.set_denied("bob")
    with pytest.raises(TransferFailed):
        service.deposit(EVENT_CODE, "bob", 0, 1000)

    event = service.get_event(EVENT_CODE)
    assert event.ledger.participants == []
    assert event.ledger.side_totals == [0, 0]
    assert service.list_wallets(0, 100) == []


def test_taxed_asset_credits_received_amount(clock: FakeClock) -> None:
    token = funded_token(fee_bps=100)
    service = make_service(token, clock)
    open_event(service)

    entry = service.deposit(EVENT_CODE, "alice", 0, 1000)

    assert entry.amount == 990
    assert token.balance_of("escrow") == 990
    assert service.get_event(EVENT_CODE).ledger.side_totals == [990, 0]


def test_unique_wallets_are_listed_once_in_first_seen_order(service: SideBetService) -> None:
    open_event(service)
    open_event(service, "Tot v. Che")

    service.deposit(EVENT_CODE, "bob", 0, 10)
    service.deposit("Tot v. Che", "alice", 1, 10)
    service.deposit("Tot v. Che", "bob", 1, 10)
    service.deposit(EVENT_CODE, "alice", 1, 10)

    assert service.list_wallets(0, 100) == ["bob", "alice"]
    assert service.list_wallets(1, 100) == ["alice"]
    assert service.list_wallets(5, 100) == []


def test_list_deposits_is_paginated(service: SideBetService) -> None:
    open_event(service)
    for index, user in enumerate(["alice", "bob", "carol", "dave"]):
        service.deposit(EVENT_CODE, user, index % 2, 100 * (index + 1))

    first = service.list_deposits(EVENT_CODE, 0, 2)
    rest = service.list_deposits(EVENT_CODE, 2, 10)

    assert [(e.address, e.side, e.amount) for e in first] == [("alice", 0, 100), ("bob", 1, 200)]
    assert [(e.address, e.side, e.amount) for e in rest] == [("carol", 0, 300), ("dave", 1, 400)]
    assert service.list_deposits(EVENT_CODE, 10, 10) == []


def test_taxed_asset_burns_the_fee(clock: FakeClock) -> None:
    token = funded_token(fee_bps=100)
    service = make_service(token, clock)
    open_event(service)

    service.deposit(EVENT_CODE, "alice", 0, 1000)

    assert token.total_supply == 5 * BALANCE - 10


def test_allow_listed_operators_share_authority(token: InMemoryToken, clock: FakeClock) -> None:
    service = make_service(token, clock)
    service.authority = AllowListAuthority([OWNER, "operator"])
    open_event(service)

    service.end_sale(EVENT_CODE, "operator")

    assert service.get_event(EVENT_CODE).status == EventStatus.ENDED
    with pytest.raises(Unauthorized):
        service.cancel_event(EVENT_CODE, "alice")


def test_default_runtime_wires_the_configured_asset() -> None:
    settings = Settings(
        _env_file=None,
        database_url="sqlite://",
        default_asset="CHIP",
        owner_account="house",
        initial_balances={"alice": 500},
    )
    service = build_service(settings)
    service.clock = FakeClock(START + timedelta(seconds=1))

    service.initialize_event(EVENT_CODE, "house", SIDES, "CHIP", START, START + timedelta(days=1))
    entry = service.deposit(EVENT_CODE, "alice", 0, 200)

    asset = service.assets.resolve("CHIP")
    assert service.get_event(EVENT_CODE).asset_ref == "CHIP"
    assert entry.amount == 200
    assert asset.balance_of("alice") == 300
    assert asset.balance_of(settings.escrow_account) == 200
    assert service.assets.resolve("CHIP").holder == settings.escrow_account
    with pytest.raises(Unauthorized):
        service.end_sale(EVENT_CODE, OWNER)
