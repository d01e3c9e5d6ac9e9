from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SIDEBET_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./sidebet.db",
        description="SQLAlchemy compatible database URL",
    )
    owner_cut_percent: int = Field(
        default=5,
        ge=0,
        le=100,
        description="Operator share of total deposits, snapshotted on every new event",
    )
    max_batch_size: int = Field(
        default=1000,
        ge=1,
        description="Upper bound on participants processed by one distribution or refund call",
    )
    owner_account: str = Field(default="owner", description="Account allowed to administer events")
    escrow_account: str = Field(default="escrow", description="Account holding deposited funds")
    default_asset: str = Field(default="TEST", description="Asset reference registered at startup")
    initial_balances: dict[str, int] = Field(
        default_factory=dict,
        description='Balances minted into the default in-memory asset, e.g. SIDEBET_INITIAL_BALANCES={"alice": 1000}',
    )
    log_level: str = Field(default="INFO", description="Root log level")


@lru_cache
def get_settings() -> Settings:
    return Settings()
