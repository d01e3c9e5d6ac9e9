from typing import Annotated

from fastapi import APIRouter, Depends, Query

from sidebet.api.schemas import WalletListResponse
from sidebet.runtime import get_service
from sidebet.service import SideBetService

router = APIRouter(prefix="/wallets", tags=["wallets"])


@router.get("", response_model=WalletListResponse, summary="Every wallet that ever deposited, first-seen order")
def list_wallets(
    service: Annotated[SideBetService, Depends(get_service)],
    limit: Annotated[int, Query(ge=0)],
    offset: Annotated[int, Query(ge=0)] = 0,
) -> WalletListResponse:
    return WalletListResponse(offset=offset, limit=limit, wallets=service.list_wallets(offset, limit))
