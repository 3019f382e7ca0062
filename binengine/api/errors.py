from __future__ import annotations

from fastapi import HTTPException

from binengine.domain.exceptions import (
    DomainError,
    InvalidParameterError,
    InvalidPoolAccountError,
    InvalidPoolError,
    LookupFailedError,
    PositionNotFoundError,
)


def to_http_exception(exc: DomainError) -> HTTPException:
    # Subclass before base: InvalidPoolAccountError is an InvalidPoolError.
    if isinstance(exc, InvalidPoolAccountError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, (InvalidPoolError, PositionNotFoundError)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidParameterError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, LookupFailedError):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
