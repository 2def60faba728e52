from __future__ import annotations

import logging
from typing import Any, Optional

from backend.app.analytics.errors import UpstreamError
from backend.app.api.config import paystack_base_url, paystack_timeout_seconds
from backend.app.integrations.base import PageResponse, QueryParams, clean_params

logger = logging.getLogger(__name__)


def _build_httpx_client(base_url: str, timeout: float):
    import httpx  # local import to avoid hard dependency at import time

    return httpx.Client(base_url=base_url, timeout=timeout)


def _upstream_message(response: Any) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"Upstream request failed with status {response.status_code}"


class PaystackClient:
    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[Any] = None,
    ):
        self.base_url = base_url or paystack_base_url()
        self._client = client or _build_httpx_client(
            self.base_url,
            timeout if timeout is not None else paystack_timeout_seconds(),
        )

    def fetch_page(self, endpoint: str, auth_token: str, params: QueryParams) -> PageResponse:
        import httpx

        headers = {"Authorization": f"Bearer {auth_token}", "Accept": "application/json"}
        try:
            response = self._client.get(endpoint, params=clean_params(params), headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Paystack request to %s failed: %s", endpoint, exc)
            raise UpstreamError(f"Failed to reach payments API: {exc}", endpoint=endpoint) from exc

        if response.status_code >= 400:
            message = _upstream_message(response)
            logger.warning(
                "Paystack request to %s returned %s: %s", endpoint, response.status_code, message
            )
            raise UpstreamError(message, endpoint=endpoint, status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamError("Payments API returned a non-JSON body", endpoint=endpoint) from exc

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list):
            raise UpstreamError("Payments API response is missing a data list", endpoint=endpoint)
        meta = body.get("meta") if isinstance(body.get("meta"), dict) else {}
        return PageResponse(data=data, meta=meta)

    def close(self) -> None:
        self._client.close()


__all__ = ["PaystackClient"]
