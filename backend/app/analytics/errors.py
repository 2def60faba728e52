from __future__ import annotations

from typing import Literal, Optional

ChartErrorCode = Literal[
    "invalid_resource_type",
    "invalid_aggregation_type",
    "invalid_status",
    "invalid_channel",
    "invalid_date_range",
]


class ChartConfigurationError(ValueError):
    """Resource/aggregation pairing or filter value is not allowed."""

    def __init__(self, message: str, *, code: ChartErrorCode = "invalid_aggregation_type"):
        super().__init__(message)
        self.code = code


class DateRangeError(ValueError):
    def __init__(self, message: str, *, days: Optional[int] = None):
        super().__init__(message)
        self.code: ChartErrorCode = "invalid_date_range"
        self.days = days


class UpstreamError(RuntimeError):
    """The payments API rejected a page request or returned an unusable body."""

    def __init__(
        self,
        message: str,
        *,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code
