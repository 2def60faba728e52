from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol


QueryParams = Mapping[str, Any]


@dataclass(frozen=True)
class PageResponse:
    data: List[Dict[str, Any]]
    meta: Dict[str, Any] = field(default_factory=dict)


class PageFetcher(Protocol):
    """Paginated retrieval against the payments API.

    Implementations raise on any failure; a page shorter than the requested
    ``perPage`` means there is no more data.
    """

    def fetch_page(self, endpoint: str, auth_token: str, params: QueryParams) -> PageResponse:
        ...


def clean_params(params: Optional[QueryParams]) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            cleaned[key] = "true" if value else "false"
        else:
            cleaned[key] = value
    return cleaned
