"""Translate service results into HTTP errors."""
from fastapi import HTTPException, status
from modelcodes.core.results import ErrorKind, ServiceResult

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.SYSTEM: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def unwrap(result: ServiceResult):
    """Return ``result.data`` or raise the HTTPException matching its error kind."""
    if result.success:
        return result.data
    raise HTTPException(
        status_code=STATUS_BY_KIND.get(result.error_kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=result.message,
    )
