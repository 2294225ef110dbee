"""
Exceptions raised by the scan pipeline and the HTTP mapping used to report them.
"""
from typing import Tuple


class ScanError(Exception):
    """Base class for errors that end a scan request"""
    status_code = 500
    code = "SCAN_FAILED"


class InvalidRequest(ScanError):
    status_code = 400
    code = "INVALID_REQUEST"


class InvalidImageFormat(InvalidRequest):
    pass


class ImageTooSmall(InvalidRequest):
    pass


class ImageTooLarge(InvalidRequest):
    pass


class InvalidScanToken(ScanError):
    status_code = 401
    code = "INVALID_TOKEN"


class InvalidOrigin(ScanError):
    status_code = 403
    code = "INVALID_ORIGIN"


class BudgetExceeded(ScanError):
    status_code = 402
    code = "BUDGET_EXCEEDED"


class RateLimitExceeded(ScanError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"


class AIResponseNotJSON(ScanError):
    """The model answered without a parseable JSON object"""


def classify_error(error: Exception) -> Tuple[int, str]:
    """Return (status_code, code) for an exception raised while handling a scan"""
    if isinstance(error, ScanError):
        return error.status_code, error.code

    message = str(error)
    lowered = message.lower()
    if "rate limit" in lowered:
        return 429, "RATE_LIMIT_EXCEEDED"
    if "budget" in lowered or getattr(error, "code", None) == "BUDGET_EXCEEDED":
        return 402, "BUDGET_EXCEEDED"
    if "token" in lowered and ("Invalid" in message or "expired" in lowered):
        return 401, "INVALID_TOKEN"
    return 500, "SCAN_FAILED"
