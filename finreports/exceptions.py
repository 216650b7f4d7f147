"""
finreports/exceptions.py — Application errors and their HTTP rendering.

Every error the service raises on purpose derives from AppException and
carries its own status code; the FastAPI handler registered in main.py turns
it into a {"error": message} body.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class InvalidDateError(AppException):
    """A date query parameter is not a YYYY-MM-DD calendar date."""

    def __init__(self, value: str):
        super().__init__(
            message=f"invalid date {value!r}: expected YYYY-MM-DD",
            error_code="ERR_INVALID_DATE",
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class InvalidRangeError(AppException):
    """start_date falls after end_date."""

    def __init__(self, start, end):
        self.start = start
        self.end = end
        super().__init__(
            message=f"invalid range: start date {start} is after end date {end}",
            error_code="ERR_INVALID_RANGE",
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class AuthenticationError(AppException):
    def __init__(self, message: str = "invalid credentials"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class DataFetchError(AppException):
    """The underlying query or connection failed."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="ERR_DATA_FETCH",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


class ReportFailedError(DataFetchError):
    """One report of a composite request failed; names which one."""

    def __init__(self, report_kind: str, cause: Exception):
        self.report_kind = report_kind
        self.cause = cause
        super().__init__(f"error in {report_kind}: {cause}")


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})
