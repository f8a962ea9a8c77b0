from typing import NoReturn

from fastapi import HTTPException, status

from src.core.negotiation import (
    NegotiationNotFoundError,
    NegotiationStateConflictError,
    NegotiationValidationError,
)


def raise_negotiation_http_exception(exc: Exception) -> NoReturn:
    if isinstance(exc, NegotiationNotFoundError):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=exc.to_detail()
        ) from exc
    if isinstance(exc, NegotiationStateConflictError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.to_detail()) from exc
    if isinstance(exc, NegotiationValidationError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_detail()
        ) from exc
    raise exc
