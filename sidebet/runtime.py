from __future__ import annotations

from functools import lru_cache

from sidebet.assets import AssetRegistry, InMemoryToken
from sidebet.authority import OwnerAuthority
from sidebet.core.config import Settings, get_settings
from sidebet.service import SideBetService
from sidebet.storage import EventRepository, init_db, make_engine, make_session_factory


def build_service(settings: Settings, assets: AssetRegistry | None = None) -> SideBetService:
    engine = make_engine(settings.database_url)
    init_db(engine)
    repo = EventRepository(make_session_factory(engine))
    if assets is None:
        token = InMemoryToken(holder=settings.escrow_account, symbol=settings.default_asset)
        for account, amount in settings.initial_balances.items():
            token.mint(account, amount)
        assets = AssetRegistry()
        assets.register(settings.default_asset, token)
    return SideBetService(repo, assets, OwnerAuthority(settings.owner_account), settings)


@lru_cache
def get_service() -> SideBetService:
    return build_service(get_settings())
