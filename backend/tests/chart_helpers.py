from backend.app.analytics.resources import ChartableRecord
from backend.app.integrations.base import PageResponse


class FakeFetcher:
    """Serves ``records`` in pages; raises ``error`` when ``fail_on_page`` is requested."""

    def __init__(self, records=None, *, fail_on_page=None, error=None):
        self.records = list(records or [])
        self.fail_on_page = fail_on_page
        self.error = error or RuntimeError("upstream exploded")
        self.calls = []

    def fetch_page(self, endpoint, auth_token, params):
        self.calls.append({"endpoint": endpoint, "auth_token": auth_token, "params": dict(params)})
        page = int(params["page"])
        if self.fail_on_page is not None and page == self.fail_on_page:
            raise self.error
        per_page = int(params["perPage"])
        start = (page - 1) * per_page
        return PageResponse(data=self.records[start : start + per_page], meta={"page": page})


def make_transaction(amount, created_at, *, currency="NGN", status="success", channel="card"):
    return {
        "amount": amount,
        "currency": currency,
        "createdAt": created_at,
        "status": status,
        "channel": channel,
    }


def record(amount, created_at, *, currency="NGN", status="success", **extra):
    return ChartableRecord(amount=amount, currency=currency, created_at=created_at, status=status, **extra)
