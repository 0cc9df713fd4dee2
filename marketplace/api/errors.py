# marketplace/api/errors.py
from fastapi import HTTPException

from marketplace.domain.errors import (
    CheckoutBlocked,
    Conflict,
    CrossVendor,
    Expired,
    IllegalTransition,
    NotFound,
    RateLimited,
    Unavailable,
)

# pierwsze dopasowanie wygrywa
_STATUS_CODES = [
    (NotFound, 404),
    (Expired, 410),
    (Unavailable, 409),
    (CrossVendor, 409),
    (IllegalTransition, 409),
    (Conflict, 409),
    (RateLimited, 429),
    (PermissionError, 403),
    (ValueError, 400),
]


def to_http(exc: Exception) -> HTTPException:
    """Mapuje wyjatek domeny na HTTPException - routery robia `raise to_http(e)`."""
    if isinstance(exc, CheckoutBlocked):
        return HTTPException(
            status_code=422,
            detail={
                "message": str(exc),
                "errors": exc.report.errors,
                "warnings": exc.report.warnings,
            },
        )

    for exc_type, status_code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=str(exc))

    return HTTPException(status_code=500, detail="Internal error")
