from __future__ import annotations

from fastapi import FastAPI

from sidebet.api.errors import side_bet_error_handler
from sidebet.api.events import router as events_router
from sidebet.api.wallets import router as wallets_router
from sidebet.core import configure_logging, get_settings
from sidebet.domain import SideBetError

configure_logging(get_settings().log_level)

app = FastAPI(title="SideBet Settlement API")
app.include_router(events_router)
app.include_router(wallets_router)
app.add_exception_handler(SideBetError, side_bet_error_handler)


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
