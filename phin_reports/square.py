"""
Square REST API client with cursor pagination.

Each resource kind is described as data in RESOURCES: which endpoint it lives
on, which key holds the records, and whether Square lets one request filter by
several locations (orders, shifts) or only by one (payments, refunds).
"""

import logging
import time
from dataclasses import dataclass

import httpx

from phin_reports.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}
MAX_LOCATIONS_PER_SEARCH = 10  # Square caps location_ids on search endpoints


@dataclass(frozen=True)
class Resource:
    method: str
    endpoint: str
    items_key: str
    multi_location: bool
    limit: int


RESOURCES = {
    "payments": Resource("GET", "payments", "payments", False, 100),
    "refunds": Resource("GET", "refunds", "refunds", False, 100),
    "orders": Resource("POST", "orders/search", "orders", True, 500),
    "shifts": Resource("POST", "labor/shifts/search", "shifts", True, 200),
}


# ── Request shapes ──────────────────────────────────────────────────────────

def _list_params(resource, time_range, location_id):
    return {
        "begin_time": time_range.begin_iso,
        "end_time": time_range.end_iso,
        "sort_order": "ASC",
        "location_id": location_id,
        "limit": resource.limit,
    }


def _orders_body(resource, time_range, location_ids):
    return {
        "location_ids": list(location_ids),
        "query": {
            "filter": {
                "date_time_filter": {
                    "created_at": {
                        "start_at": time_range.begin_iso,
                        "end_at": time_range.end_iso,
                    }
                },
                "state_filter": {"states": ["COMPLETED"]},
            },
            "sort": {"sort_field": "CREATED_AT", "sort_order": "ASC"},
        },
        "limit": resource.limit,
    }


def _shifts_body(resource, time_range, location_ids):
    return {
        "query": {
            "filter": {
                "location_ids": list(location_ids),
                "start": {
                    "start_at": time_range.begin_iso,
                    "end_at": time_range.end_iso,
                },
            },
            "sort": {"field": "START_AT", "order": "ASC"},
        },
        "limit": resource.limit,
    }


_BODY_BUILDERS = {
    "orders": _orders_body,
    "shifts": _shifts_body,
}


def _chunks(seq, size):
    for i in range(0, len(seq), size):
        yield seq[i:i + size]


def _error_body(resp):
    try:
        return resp.json()
    except ValueError:
        return {"raw": resp.text}


# ── Client ──────────────────────────────────────────────────────────────────

class SquareClient:
    """Thin Square API client. Read-only; every call hits the network."""

    def __init__(self, config, transport=None):
        self.config = config
        self.base_url = config.square_base_url
        self._transport = transport

    def headers(self):
        return {
            "Authorization": f"Bearer {self.config.square_access_token}",
            "Content-Type": "application/json",
            "Square-Version": self.config.square_api_version,
        }

    def request(self, method, endpoint, json_body=None, params=None):
        """Make a request to the Square API, retrying transient failures."""
        url = f"{self.base_url}/{endpoint}"
        attempts = max(0, self.config.max_retries) + 1
        for attempt in range(1, attempts + 1):
            try:
                with httpx.Client(timeout=self.config.request_timeout, transport=self._transport) as client:
                    resp = client.request(
                        method, url, headers=self.headers(), json=json_body, params=params
                    )
            except httpx.HTTPError as e:
                logger.error(f"Square API unreachable: {method} {endpoint} - {e}")
                if attempt < attempts:
                    self._backoff(attempt)
                    continue
                raise UpstreamUnavailable(
                    "Square API unreachable", {"message": str(e)}
                ) from e

            if resp.status_code // 100 == 2:
                return resp.json()

            body = _error_body(resp)
            logger.error(f"Square API error: {resp.status_code} - {body}")
            if resp.status_code in RETRYABLE_STATUS and attempt < attempts:
                self._backoff(attempt)
                continue
            raise UpstreamUnavailable(details=body, upstream_status=resp.status_code)

    def _backoff(self, attempt):
        delay = self.config.retry_backoff * (2 ** (attempt - 1))
        if delay > 0:
            time.sleep(delay)

    # ── Pagination ──────────────────────────────────────────────────────────

    def paginate(self, method, endpoint, items_key, json_body=None, params=None):
        """Yield records page by page, following `cursor` until it runs out."""
        cursor = None
        while True:
            if cursor:
                if method == "GET":
                    params = {**(params or {}), "cursor": cursor}
                else:
                    json_body = {**(json_body or {}), "cursor": cursor}
            data = self.request(method, endpoint, json_body=json_body, params=params)
            for item in data.get(items_key) or []:
                if item:
                    yield item
            cursor = data.get("cursor")
            if not cursor:
                break

    def fetch_all(self, resource_kind, time_range, location_ids):
        """
        Yield every raw record of `resource_kind` inside `time_range`.

        Location-scoped resources are queried once per location id;
        multi-location resources once per chunk of ids.
        """
        resource = RESOURCES[resource_kind]
        location_ids = list(location_ids)
        if not location_ids:
            return

        if resource.multi_location:
            build = _BODY_BUILDERS[resource_kind]
            for chunk in _chunks(location_ids, MAX_LOCATIONS_PER_SEARCH):
                body = build(resource, time_range, chunk)
                yield from self.paginate(resource.method, resource.endpoint, resource.items_key, json_body=body)
        else:
            for location_id in location_ids:
                params = _list_params(resource, time_range, location_id)
                yield from self.paginate(resource.method, resource.endpoint, resource.items_key, params=params)

    # ── Reference data ──────────────────────────────────────────────────────

    def list_locations(self):
        data = self.request("GET", "locations")
        return data.get("locations") or []

    def search_team_members(self):
        """All ACTIVE team members."""
        body = {"query": {"filter": {"status": "ACTIVE"}}, "limit": 200}
        return list(self.paginate("POST", "team-members/search", "team_members", json_body=body))
