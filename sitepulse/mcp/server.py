"""
SitePulse MCP Server - site traffic and deploy status for AI assistants.

Tools:
- fetch_analytics: traffic report for the last N days
- resolve_zone: domain -> Cloudflare zone ID
- test_connection: check that the configured token sees the site's zone
- last_deployment: last successful Cloudflare Pages production deploy

Architecture:
    MCP Client (desktop panel, Claude Desktop, Cursor)
        ↓ MCP Protocol (STDIO)
    SitePulse MCP Server
        ↓
    AnalyticsManager / CloudflareClient
        ↓
    Cloudflare API (GraphQL analytics + REST)

Usage in ~/.cursor/mcp.json:
    {
      "mcpServers": {
        "sitepulse": {
          "command": "uv",
          "args": ["run", "python", "-m", "sitepulse.mcp.server"],
          "env": {
            "SITEPULSE_API_TOKEN": "your-token-here",
            "SITEPULSE_DOMAIN": "example.com",
            "SITEPULSE_ACCOUNT_ID": "...",
            "SITEPULSE_PROJECT_NAME": "my-site"
          }
        }
      }
    }
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import sys
from typing import Any

from fastmcp import Context, FastMCP

from sitepulse.analytics.manager import AnalyticsManager
from sitepulse.core.client import CloudflareClient
from sitepulse.core.config import SitePulseConfig
from sitepulse.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


_client: CloudflareClient | None = None


def normalize_param(value: str | list[str]) -> str:
    """
    Normalize MCP parameters that may arrive as lists.

    Some MCP clients send string params as single-element lists.
    """
    if isinstance(value, list):
        return " ".join(str(v) for v in value)
    return str(value)


def load_config() -> SitePulseConfig:
    """YAML config when one exists (env still wins), otherwise env + defaults."""
    try:
        return SitePulseConfig.from_yaml()
    except FileNotFoundError:
        return SitePulseConfig()


def get_client() -> CloudflareClient:
    """Get initialized client or raise error."""
    if _client is None:
        msg = "CloudflareClient not initialized. Server startup failed."
        raise RuntimeError(msg)
    return _client


@asynccontextmanager
async def lifespan(app: FastMCP):
    """Create the shared Cloudflare client on startup and close it on shutdown."""
    global _client

    logger.info("🚀 Initializing SitePulse MCP Server...")

    try:
        config = load_config()
        config.validate_breakdown_budget()

        _client = CloudflareClient(config)

        logger.info("✅ SitePulse MCP Server ready")
        logger.info(f"   🌐 Domain: {config.domain or '-'} (zone: {config.zone_id or 'lookup'})")
        logger.info(f"   🔑 Token: {'set' if config.api_token else 'missing'}")

        yield

    except Exception as e:
        logger.error(f"❌ Failed to initialize server: {e}", exc_info=True)
        raise

    finally:
        if _client:
            logger.info("🔄 Shutting down SitePulse MCP Server...")
            await _client.close()
            logger.info("✅ Server shutdown complete")

        _client = None


mcp = FastMCP(
    name="sitepulse",
    version="0.1.0",
    lifespan=lifespan,
)


@mcp.tool()
async def fetch_analytics(
    days: int = 7,
    engagement: bool = False,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """
    Site traffic report for the last N days.

    Args:
        days: Period length; 1 returns 24 hourly slots, more returns daily slots
        engagement: Count page views of content pages (blog, apps, about, tags)
            instead of every request

    Returns:
        {
            "period": "7d",
            "total_requests": int,
            "time_series": [{"label", "count", "bytes", ...}],
            "top_paths": [...], "top_countries": [...],
            "status_codes": [...], "browsers": [...],
            "failed_chunks": [...], "is_partial": bool
        }
    """
    if ctx:
        await ctx.info(f"📊 Fetching {days}d analytics (engagement={engagement})")

    try:
        client = get_client()
        client.config.require_token()
        report = await AnalyticsManager(client).fetch_report(days, engagement=engagement)

        if ctx and report.is_partial:
            await ctx.warning(
                f"⚠️  {len(report.failed_chunks)} breakdown chunk(s) failed; "
                "paths/countries are incomplete"
            )

        return report.to_dict()

    except Exception as e:
        logger.error(f"Failed to fetch analytics: {e}", exc_info=True)
        if ctx:
            await ctx.error(f"❌ Failed to fetch analytics: {e}")
        raise


@mcp.tool()
async def resolve_zone(domain: str | list[str], ctx: Context | None = None) -> dict[str, Any]:
    """
    Look up the Cloudflare zone ID for a domain.

    Args:
        domain: Site domain (e.g., "example.com")

    Returns:
        {"domain": str, "zone_id": str}
    """
    domain = normalize_param(domain)

    try:
        client = get_client()
        client.config.require_token()
        zone_id = await client.fetch_zone_id(domain)
        return {"domain": domain, "zone_id": zone_id}

    except Exception as e:
        logger.error(f"Failed to resolve zone for {domain}: {e}", exc_info=True)
        if ctx:
            await ctx.error(f"❌ Failed to resolve zone: {e}")
        raise


@mcp.tool()
async def test_connection(domain: str | list[str] | None = None) -> dict[str, Any]:
    """
    Check that the configured token can see the site's zone.

    Args:
        domain: Domain to check (defaults to the configured domain)

    Returns:
        {"ok": True, "zone_id": str} or {"ok": False, "error": str}
    """
    client = get_client()
    target = normalize_param(domain) if domain else client.config.domain
    if not target:
        return {"ok": False, "error": "No domain configured"}
    if not client.config.api_token:
        return {"ok": False, "error": "No API token configured"}
    return await client.test_connection(target)


@mcp.tool()
async def last_deployment(ctx: Context | None = None) -> dict[str, Any]:
    """
    Last successful production deployment of the configured Pages project.

    Returns:
        {"deployed_at", "commit_hash", "commit_message", "status", "url"}
    """
    try:
        client = get_client()
        config = client.config
        config.require_token()
        if not config.account_id or not config.project_name:
            raise ConfigurationError("account_id and project_name must be configured")

        info = await client.fetch_last_deployment(config.account_id, config.project_name)
        return info.model_dump()

    except Exception as e:
        logger.error(f"Failed to fetch last deployment: {e}", exc_info=True)
        if ctx:
            await ctx.error(f"❌ Failed to fetch last deployment: {e}")
        raise


def setup_logging(level: int = logging.INFO) -> None:
    """Send server logs to stderr; stdout carries the MCP STDIO protocol."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def run_server() -> None:
    """Run SitePulse MCP server via STDIO."""
    setup_logging()
    try:
        mcp.run(transport="stdio")
    except KeyboardInterrupt:
        logger.info("Server interrupted by user")
    except Exception as e:
        logger.error(f"Server error: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    run_server()
