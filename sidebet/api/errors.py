from __future__ import annotations

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from sidebet.domain import (
    AlreadyDone,
    InvalidInput,
    InvalidState,
    NotFound,
    SideBetError,
    TransferFailed,
    Unauthorized,
)

_STATUS_BY_ERROR: list[tuple[type[SideBetError], int]] = [
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Unauthorized, status.HTTP_403_FORBIDDEN),
    (InvalidInput, status.HTTP_400_BAD_REQUEST),
    (InvalidState, status.HTTP_409_CONFLICT),
    (AlreadyDone, status.HTTP_409_CONFLICT),
    (TransferFailed, status.HTTP_502_BAD_GATEWAY),
]


def from_domain_error(exc: SideBetError) -> HTTPException:
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, mapped in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = mapped
            break
    return HTTPException(
        status_code=status_code,
        detail={"code": exc.code, "message": exc.message, "details": exc.details},
    )


async def side_bet_error_handler(request: Request, exc: SideBetError) -> JSONResponse:
    error = from_domain_error(exc)
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})
