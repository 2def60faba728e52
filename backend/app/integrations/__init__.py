from __future__ import annotations

from backend.app.api.config import paystack_use_stub
from backend.app.integrations.base import PageFetcher, PageResponse
from backend.app.integrations.paystack import PaystackClient
from backend.app.integrations.paystack_stub import PaystackStubClient


PAYSTACK_CLIENT: PaystackClient | None = None
PAYSTACK_STUB_CLIENT = PaystackStubClient()


def get_page_fetcher() -> PageFetcher:
    if paystack_use_stub():
        return PAYSTACK_STUB_CLIENT
    global PAYSTACK_CLIENT
    if PAYSTACK_CLIENT is None:
        PAYSTACK_CLIENT = PaystackClient()
    return PAYSTACK_CLIENT


__all__ = [
    "PageFetcher",
    "PageResponse",
    "PaystackClient",
    "PaystackStubClient",
    "get_page_fetcher",
]
