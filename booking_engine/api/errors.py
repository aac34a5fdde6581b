from fastapi import HTTPException, status

from booking_engine.domain.exceptions import (
    BookingEngineError,
    ForbiddenError,
    NotFoundError,
    PaymentGatewayConfigError,
    PaymentGatewayError,
    PaymentGatewayTimeoutError,
)


# Checked in order; subclasses before their parents.
_STATUS_BY_ERROR: tuple[tuple[type[BookingEngineError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (PaymentGatewayConfigError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (PaymentGatewayTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (PaymentGatewayError, status.HTTP_502_BAD_GATEWAY),
)


def http_error(exc: BookingEngineError) -> HTTPException:
    """
    Maps a domain error onto the HTTP status the API promises.
    Everything not listed is a rejected request (400).
    """
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
