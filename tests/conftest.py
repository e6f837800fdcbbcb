"""Shared fixtures: fixed clock, test config and a fake Cloudflare API."""

from __future__ import annotations

from datetime import UTC, datetime
import json
import re
from typing import Any

import httpx
import pytest

from sitepulse.core.client import CloudflareClient
from sitepulse.core.config import SitePulseConfig

NOW = datetime(2026, 10, 18, 14, 37, 12, tzinfo=UTC)

_ALIAS_RE = re.compile(
    r'(paths|countries)_(\d+): httpRequestsAdaptiveGroups\(\s*filter: \{ datetime_geq: "([^"]+)"'
)


def daily_row(date: str, count: int, **extra: Any) -> dict[str, Any]:
    """One httpRequests1dGroups row."""
    sums = {
        "requests": count,
        "pageViews": extra.pop("page_views", 0),
        "bytes": extra.pop("bytes", 0),
        "cachedBytes": extra.pop("cached_bytes", 0),
        "cachedRequests": extra.pop("cached_requests", 0),
        "threats": extra.pop("threats", 0),
        "responseStatusMap": extra.pop("statuses", []),
        "browserMap": extra.pop("browsers", []),
    }
    return {"dimensions": {"date": date}, "sum": sums}


def hourly_row(moment: str, count: int, **extra: Any) -> dict[str, Any]:
    """One httpRequests1hGroups row."""
    row = daily_row("", count, **extra)
    row["dimensions"] = {"datetime": moment}
    return row


class FakeCloudflare:
    """
    In-memory stand-in for the Cloudflare API, served through httpx.MockTransport.

    Breakdown data is keyed by the sub-window start instant that appears in
    the query, so each alias gets the rows for its own window.
    """

    def __init__(self) -> None:
        self.main_rows: list[dict[str, Any]] = []
        self.main_status = 200
        self.main_errors: list[dict[str, Any]] | None = None
        self.paths: dict[str, dict[str, int]] = {}
        self.countries: dict[str, dict[str, int]] = {}
        self.fail_breakdown_on: dict[int, BaseException | str] = {}
        self.zones: list[dict[str, Any]] = [{"id": "zone123", "name": "example.com"}]
        self.deployments: list[dict[str, Any]] = []

        self.graphql_queries: list[str] = []
        self.breakdown_calls = 0
        self.requests: list[httpx.Request] = []

    @property
    def breakdown_queries(self) -> list[str]:
        return [q for q in self.graphql_queries if "series:" not in q]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/graphql"):
            query = json.loads(request.content)["query"]
            self.graphql_queries.append(query)
            if "series:" in query:
                return self._main()
            return self._breakdown(request, query)

        if path.endswith("/zones"):
            return httpx.Response(200, json={"success": True, "result": self.zones})

        if "/pages/projects/" in path:
            return httpx.Response(200, json={"success": True, "result": self.deployments})

        return httpx.Response(404, json={"success": False, "errors": [{"message": "not found"}]})

    def _main(self) -> httpx.Response:
        if self.main_status != 200:
            return httpx.Response(self.main_status, text="upstream exploded")
        if self.main_errors:
            return httpx.Response(200, json={"data": None, "errors": self.main_errors})
        zone = {"series": self.main_rows}
        return httpx.Response(200, json={"data": {"viewer": {"zones": [zone]}}, "errors": None})

    def _breakdown(self, request: httpx.Request, query: str) -> httpx.Response:
        ordinal = self.breakdown_calls
        self.breakdown_calls += 1

        failure = self.fail_breakdown_on.get(ordinal)
        if isinstance(failure, BaseException):
            raise failure
        if failure == "api":
            return httpx.Response(
                200, json={"data": None, "errors": [{"message": "quota exceeded"}]}
            )
        if failure == "garbage":
            return httpx.Response(200, text="<html>not json</html>")
        if failure == "network":
            raise httpx.ConnectError("connection refused", request=request)

        zone: dict[str, Any] = {}
        for kind, index, start in _ALIAS_RE.findall(query):
            if kind == "paths":
                zone[f"paths_{index}"] = [
                    {"count": count, "dimensions": {"clientRequestPath": p}}
                    for p, count in self.paths.get(start, {}).items()
                ]
            else:
                zone[f"countries_{index}"] = [
                    {"count": count, "dimensions": {"clientCountryName": c}}
                    for c, count in self.countries.get(start, {}).items()
                ]
        return httpx.Response(200, json={"data": {"viewer": {"zones": [zone]}}, "errors": None})


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def config() -> SitePulseConfig:
    return SitePulseConfig(
        _env_file=None,
        api_token="test-token",
        zone_id="zone123",
        domain="example.com",
        account_id="acct1",
        project_name="my-site",
        max_retries=0,
    )


@pytest.fixture
def fake() -> FakeCloudflare:
    return FakeCloudflare()


@pytest.fixture
def client(config: SitePulseConfig, fake: FakeCloudflare) -> CloudflareClient:
    return CloudflareClient(config, transport=fake.transport())
