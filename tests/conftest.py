from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from sidebet.assets import AssetRegistry, InMemoryToken
from sidebet.authority import OwnerAuthority
from sidebet.core.config import Settings
from sidebet.service import SideBetService
from sidebet.storage import EventRepository, init_db, make_engine, make_session_factory

START = datetime(2026, 1, 1, tzinfo=timezone.utc)
SALE_DURATION = timedelta(seconds=10)
EVENT_CODE = "Man v. Liv"
SIDES = ("Manchester", "Liverpool")
OWNER = "owner"
BALANCE = 100_000
USERS = ["alice", "bob", "carol", "dave", "erin"]


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_service(
    token: InMemoryToken,
    clock: FakeClock,
    *,
    owner_cut_percent: int = 5,
    max_batch_size: int = 1000,
) -> SideBetService:
    settings = Settings(
        _env_file=None,
        database_url="sqlite://",
        owner_cut_percent=owner_cut_percent,
        max_batch_size=max_batch_size,
    )
    engine = make_engine(settings.database_url)
    init_db(engine)
    repo = EventRepository(make_session_factory(engine))
    return SideBetService(repo, AssetRegistry({"TEST": token}), OwnerAuthority(OWNER), settings, clock=clock)


def open_event(service: SideBetService, event_id: str = EVENT_CODE) -> None:
    service.initialize_event(
        event_id=event_id,
        caller=OWNER,
        side_names=SIDES,
        asset_ref="TEST",
        deposit_start=START,
        deposit_end=START + SALE_DURATION,
    )


def funded_token(accounts: list[str] | None = None, *, fee_bps: int = 0) -> InMemoryToken:
    token = InMemoryToken(holder="escrow", fee_bps=fee_bps)
    for account in accounts or USERS:
        token.mint(account, BALANCE)
    return token


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(START + timedelta(seconds=1))


@pytest.fixture
def token() -> InMemoryToken:
    return funded_token()


@pytest.fixture
def service(token: InMemoryToken, clock: FakeClock) -> SideBetService:
    return make_service(token, clock)
