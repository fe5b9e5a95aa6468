"""
Shared pytest fixtures.

The Square API is replaced by FakeSquare, served through httpx.MockTransport,
so every test runs the real client, pagination and pipeline code without the
network. Store timezone is America/Los_Angeles; 2025-06-10 is PDT (UTC-7).
"""

import json
from datetime import datetime

import httpx
import pytest

from phin_reports.app import create_app
from phin_reports.config import Config
from phin_reports.square import SquareClient

DAY = "2025-06-10"

LOCATIONS = [
    {"id": "L1", "name": "Downtown"},
    {"id": "L2", "name": "Uptown"},
]

PAYMENTS = [
    # 08:30 local
    {"id": "P1", "location_id": "L1", "created_at": "2025-06-10T15:30:00Z", "status": "COMPLETED",
     "amount_money": {"amount": 500, "currency": "USD"}, "order_id": "O1"},
    # 09:10 local
    {"id": "P2", "location_id": "L1", "created_at": "2025-06-10T16:10:00Z", "status": "COMPLETED",
     "amount_money": {"amount": 750, "currency": "USD"}, "receipt_url": "https://squareup.com/r/P2"},
    # 09:40 local, never counted
    {"id": "P3", "location_id": "L1", "created_at": "2025-06-10T16:40:00Z", "status": "FAILED",
     "amount_money": {"amount": 9999, "currency": "USD"}},
    # 16:05 local
    {"id": "P4", "location_id": "L1", "created_at": "2025-06-10T23:05:00Z", "status": "COMPLETED",
     "amount_money": {"amount": 250, "currency": "USD"}},
    # 09:45 local
    {"id": "P5", "location_id": "L2", "created_at": "2025-06-10T16:45:00Z", "status": "COMPLETED",
     "amount_money": {"amount": 1000, "currency": "USD"}},
    # Same weekday one week earlier
    {"id": "P0", "location_id": "L1", "created_at": "2025-06-03T16:00:00Z", "status": "COMPLETED",
     "amount_money": {"amount": 2000, "currency": "USD"}},
]

REFUNDS = [
    {"id": "R1", "location_id": "L1", "payment_id": "P2", "created_at": "2025-06-10T20:00:00Z",
     "status": "COMPLETED", "amount_money": {"amount": 250, "currency": "USD"}, "reason": "Spilled"},
    {"id": "R2", "location_id": "L2", "payment_id": "P5", "created_at": "2025-06-10T21:00:00Z",
     "status": "PENDING", "amount_money": {"amount": 100, "currency": "USD"}},
]

ORDERS = [
    {"id": "O1", "location_id": "L1", "state": "COMPLETED", "created_at": "2025-06-10T15:30:00Z",
     "line_items": [
         {"name": "Egg Coffee (Hot)", "quantity": "2",
          "gross_sales_money": {"amount": 1200, "currency": "USD"}},
         {"name": "Egg Coffee - Large", "quantity": "1",
          "gross_sales_money": {"amount": 700, "currency": "USD"}},
         {"name": "Banh Mi", "quantity": "1",
          "gross_sales_money": {"amount": 900, "currency": "USD"}},
     ]},
    {"id": "O2", "location_id": "L2", "state": "COMPLETED", "created_at": "2025-06-10T16:45:00Z",
     "line_items": [
         {"name": "egg coffee (Iced)", "quantity": "1",
          "total_money": {"amount": 650, "currency": "USD"}},
     ]},
    {"id": "O3", "location_id": "L2", "state": "OPEN", "created_at": "2025-06-10T18:00:00Z",
     "line_items": [
         {"name": "Coconut Coffee", "quantity": "5",
          "gross_sales_money": {"amount": 3000, "currency": "USD"}},
     ]},
]

SHIFTS = [
    # 08:00-12:00 local with a 30 minute break
    {"id": "S1", "location_id": "L1", "team_member_id": "TM1", "status": "CLOSED",
     "start_at": "2025-06-10T15:00:00Z", "end_at": "2025-06-10T19:00:00Z",
     "timezone": "America/Los_Angeles",
     "wage": {"title": "Barista", "hourly_rate": {"amount": 1800, "currency": "USD"}},
     "breaks": [{"start_at": "2025-06-10T17:00:00Z", "end_at": "2025-06-10T17:30:00Z"}]},
]

TEAM_MEMBERS = [
    {"id": "TM1", "given_name": "Linh", "family_name": "Tran", "status": "ACTIVE"},
    {"id": "TM2", "email_address": "minh@example.com", "status": "ACTIVE"},
]


def _ts(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _in_window(value, start, end):
    return _ts(start) <= _ts(value) < _ts(end)


class FakeSquare:
    """In-memory Square API speaking just enough of the REST surface."""

    def __init__(self, page_size=None):
        self.locations = list(LOCATIONS)
        self.payments = list(PAYMENTS)
        self.refunds = list(REFUNDS)
        self.orders = list(ORDERS)
        self.shifts = list(SHIFTS)
        self.team_members = list(TEAM_MEMBERS)
        self.page_size = page_size
        self.fail = None
        self.requests = []

    @property
    def transport(self):
        return httpx.MockTransport(self.handler)

    def calls(self, path):
        return [r for r in self.requests if r.url.path == f"/v2/{path}"]

    def handler(self, request):
        self.requests.append(request)
        if self.fail is not None:
            response = self.fail(request)
            if response is not None:
                return response

        path = request.url.path[len("/v2/"):]
        params = request.url.params
        body = json.loads(request.content) if request.content else {}

        if request.method == "GET" and path == "locations":
            return httpx.Response(200, json={"locations": self.locations})
        if request.method == "GET" and path in ("payments", "refunds"):
            rows = [
                r for r in getattr(self, path)
                if r["location_id"] == params.get("location_id")
                and _in_window(r["created_at"], params["begin_time"], params["end_time"])
            ]
            return self._page(path, rows, params.get("cursor"))
        if request.method == "POST" and path == "orders/search":
            window = body["query"]["filter"]["date_time_filter"]["created_at"]
            rows = [
                o for o in self.orders
                if o["location_id"] in body["location_ids"]
                and _in_window(o["created_at"], window["start_at"], window["end_at"])
            ]
            return self._page("orders", rows, body.get("cursor"))
        if request.method == "POST" and path == "labor/shifts/search":
            flt = body["query"]["filter"]
            rows = [
                s for s in self.shifts
                if s["location_id"] in flt["location_ids"]
                and _in_window(s["start_at"], flt["start"]["start_at"], flt["start"]["end_at"])
            ]
            return self._page("shifts", rows, body.get("cursor"))
        if request.method == "POST" and path == "team-members/search":
            return self._page("team_members", self.team_members, body.get("cursor"))
        return httpx.Response(404, json={"errors": [{"code": "NOT_FOUND", "detail": path}]})

    def _page(self, key, rows, cursor):
        if not self.page_size:
            return httpx.Response(200, json={key: rows})
        offset = int(cursor or 0)
        data = {key: rows[offset:offset + self.page_size]}
        if offset + self.page_size < len(rows):
            data["cursor"] = str(offset + self.page_size)
        return httpx.Response(200, json=data)


def square_error(status=500):
    return httpx.Response(status, json={"errors": [{"category": "API_ERROR", "code": "INTERNAL_SERVER_ERROR"}]})


class FakeInsights:
    def __init__(self, text):
        self.text = text
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        return self.text


@pytest.fixture
def config():
    return Config(
        square_access_token="test-token",
        store_timezone="America/Los_Angeles",
        max_retries=0,
        retry_backoff=0,
    )


@pytest.fixture
def square():
    return FakeSquare()


@pytest.fixture
def square_client(config, square):
    return SquareClient(config, transport=square.transport)


@pytest.fixture
def app(config, square_client):
    """Create test Flask application."""
    app = create_app(config, square_client=square_client)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()
