"""HTTP error raised by routes for failed use case results"""

from fastapi import status
from libs.result import Error


class ClientError(Exception):
    def __init__(self, error: Error, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(error.message)
        self.error = error
        self.status_code = status_code


STATUS_BY_CODE = {
    "ACCOUNT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "JOB_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ORDER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INSUFFICIENT_BALANCE": status.HTTP_402_PAYMENT_REQUIRED,
    "ORDER_NOT_PENDING": status.HTTP_409_CONFLICT,
    "PROVIDER_ERROR": status.HTTP_502_BAD_GATEWAY,
    "PAYMENT_PROVIDER_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def raise_for_error(error: Error) -> None:
    """Raise ClientError with the status code mapped from the error code"""
    status_code = STATUS_BY_CODE.get(error.code)
    if status_code is None:
        status_code = (
            status.HTTP_500_INTERNAL_SERVER_ERROR
            if error.code.endswith("_FAILED")
            else status.HTTP_400_BAD_REQUEST
        )
    raise ClientError(error, status_code=status_code)
