"""Tests for the MCP server: client lifecycle, parameter handling and tools."""

from datetime import UTC, datetime
import sys

import pytest

from sitepulse.core.client import CloudflareClient
from sitepulse.core.config import SitePulseConfig
from sitepulse.core.exceptions import ConfigurationError, ResolutionError
from sitepulse.mcp import server

from conftest import daily_row


def test_normalize_param():
    assert server.normalize_param("example.com") == "example.com"
    assert server.normalize_param(["example.com"]) == "example.com"


def test_get_client_before_startup():
    with pytest.raises(RuntimeError, match="not initialized"):
        server.get_client()


def test_load_config_without_yaml(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SITEPULSE_DOMAIN", "env.example")
    monkeypatch.setattr(SitePulseConfig, "find_config_yaml", classmethod(lambda cls: None))

    assert server.load_config().domain == "env.example"


@pytest.mark.asyncio
async def test_lifespan_opens_and_closes_client(config, monkeypatch):
    monkeypatch.setattr(server, "load_config", lambda: config)

    async with server.lifespan(server.mcp):
        client = server.get_client()
        assert client.config.zone_id == "zone123"

    with pytest.raises(RuntimeError):
        server.get_client()


def tool(name):
    """Underlying coroutine of a registered tool."""
    registered = getattr(server, name)
    return getattr(registered, "fn", registered)


@pytest.fixture
def installed(monkeypatch, config, fake):
    """Install a client on the fake API as the server's shared client."""

    def install(cfg=None):
        client = CloudflareClient(cfg or config, transport=fake.transport())
        monkeypatch.setattr(server, "_client", client)
        return client

    return install


class TestFetchAnalyticsTool:
    @pytest.mark.asyncio
    async def test_returns_report_dict(self, installed, fake):
        installed()
        fake.main_rows = [daily_row(datetime.now(UTC).date().isoformat(), 11)]

        result = await tool("fetch_analytics")(days=7)

        assert result["period"] == "7d"
        assert len(result["time_series"]) == 7
        assert result["total_requests"] == 11
        assert result["is_partial"] is False
        assert result["failed_chunks"] == []

    @pytest.mark.asyncio
    async def test_partial_report_is_flagged(self, installed, fake):
        installed()
        fake.fail_breakdown_on = {0: "network"}

        result = await tool("fetch_analytics")(days=7)

        assert result["is_partial"] is True
        assert [c["error_type"] for c in result["failed_chunks"]] == ["TransportError"]

    @pytest.mark.asyncio
    async def test_missing_token(self, installed, config, fake):
        installed(config.model_copy(update={"api_token": None}))

        with pytest.raises(ConfigurationError):
            await tool("fetch_analytics")(days=7)
        assert fake.requests == []


class TestResolveZoneTool:
    @pytest.mark.asyncio
    async def test_list_param(self, installed):
        installed()

        result = await tool("resolve_zone")(["example.com"])

        assert result == {"domain": "example.com", "zone_id": "zone123"}

    @pytest.mark.asyncio
    async def test_unknown_domain(self, installed, fake):
        installed()
        fake.zones = []

        with pytest.raises(ResolutionError):
            await tool("resolve_zone")("nope.dev")


class TestConnectionTool:
    @pytest.mark.asyncio
    async def test_configured_domain(self, installed, fake):
        installed()

        assert await tool("test_connection")() == {"ok": True, "zone_id": "zone123"}
        assert fake.requests[-1].url.params["name"] == "example.com"

    @pytest.mark.asyncio
    async def test_no_domain(self, installed, config, fake):
        installed(config.model_copy(update={"domain": None}))

        assert await tool("test_connection")() == {"ok": False, "error": "No domain configured"}
        assert fake.requests == []

    @pytest.mark.asyncio
    async def test_no_token(self, installed, config, fake):
        installed(config.model_copy(update={"api_token": None}))

        result = await tool("test_connection")("example.com")

        assert result == {"ok": False, "error": "No API token configured"}
        assert fake.requests == []


class TestLastDeploymentTool:
    @pytest.mark.asyncio
    async def test_returns_deployment(self, installed, fake):
        installed()
        fake.deployments = [
            {
                "latest_stage": {
                    "name": "deploy",
                    "status": "success",
                    "ended_on": "2026-10-18T09:00:00Z",
                },
                "deployment_trigger": {"metadata": {"commit_hash": "abc123"}},
            }
        ]

        result = await tool("last_deployment")()

        assert result["deployed_at"] == "2026-10-18T09:00:00Z"
        assert result["commit_hash"] == "abc123"
        assert result["status"] == "success"

    @pytest.mark.asyncio
    async def test_project_not_configured(self, installed, config, fake):
        installed(config.model_copy(update={"project_name": None}))

        with pytest.raises(ConfigurationError, match="project_name"):
            await tool("last_deployment")()
        assert fake.requests == []


def test_run_server_logs_to_stderr(monkeypatch):
    calls = []
    monkeypatch.setattr(server.logging, "basicConfig", lambda **kw: calls.append(kw))
    monkeypatch.setattr(server.mcp, "run", lambda transport: None)

    server.run_server()

    assert calls and calls[0]["stream"] is sys.stderr
