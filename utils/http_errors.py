import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from business.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    WishlistError,
)

logger = logging.getLogger(__name__)

# Checked in order; subclasses before their bases
ERROR_STATUS = (
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_409_CONFLICT),
)


def status_for(error: WishlistError) -> int:
    for error_class, status_code in ERROR_STATUS:
        if isinstance(error, error_class):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def to_http_exception(error: WishlistError) -> HTTPException:
    return HTTPException(status_code=status_for(error), detail=str(error))


async def wishlist_error_handler(request: Request, exc: WishlistError) -> JSONResponse:
    http_exc = to_http_exception(exc)
    logger.info(f"{request.method} {request.url.path} failed with {http_exc.status_code}: {exc}")
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})
