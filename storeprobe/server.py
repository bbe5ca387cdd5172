"""
storeprobe - MCP Server Entry Point

Exposes product page validation as a Model Context Protocol (MCP) server so
an agent or backend can trigger executions and read their results.

Tools exposed:
- run_test: Run a full execution for a test configuration
- get_result: Fetch a persisted execution result
- validate_page: Validate a single product page without persisting
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from storeprobe.core.analysis import NarrativeAnalyzer
from storeprobe.core.config import TestConfiguration, TestSettings, load_settings
from storeprobe.core.orchestrator import TestRunOrchestrator
from storeprobe.core.session import BrowserSession, SessionConfig
from storeprobe.core.store import FileResultStore
from storeprobe.core.validator import ProductPageValidator

_settings = load_settings()

logging.basicConfig(
    level=getattr(logging, _settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)]
)
logger = logging.getLogger("storeprobe.server")

# Process-wide browser and orchestrator, created on first tool call
_session: BrowserSession | None = None
_orchestrator: TestRunOrchestrator | None = None


def get_orchestrator() -> TestRunOrchestrator:
    global _session, _orchestrator

    if _orchestrator is None:
        _session = BrowserSession(SessionConfig.from_settings(_settings))
        _orchestrator = TestRunOrchestrator(
            _session,
            store=FileResultStore(_settings.results_dir),
            analyzer=NarrativeAnalyzer.from_settings(_settings),
        )
        logger.info("[Server] Orchestrator initialized")

    return _orchestrator


async def cleanup_session() -> None:
    global _session, _orchestrator

    if _session is not None:
        await _session.close()
        _session = None
        _orchestrator = None
        logger.info("[Server] Browser session closed")


def json_content(payload: Any) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload, indent=2, default=str))]


server = Server("storeprobe")


@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="run_test",
            description="""Run a full validation execution for a store.

Validates every product page in order (title, price, add to cart,
description, variants, availability), audits images, captures script and
network errors, and returns the persisted result with a narrative analysis.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "configuration": {
                        "type": "object",
                        "description": "Test configuration: product_pages, test_settings, test_types, platform",
                    }
                },
                "required": ["configuration"]
            }
        ),
        Tool(
            name="get_result",
            description="Fetch a previously persisted execution result by its execution id.",
            inputSchema={
                "type": "object",
                "properties": {
                    "execution_id": {"type": "string", "description": "Execution identifier"}
                },
                "required": ["execution_id"]
            }
        ),
        Tool(
            name="validate_page",
            description="Validate a single product page and return its element checks without persisting.",
            inputSchema={
                "type": "object",
                "properties": {
                    "url": {"type": "string", "description": "Product page URL"},
                    "timeout_ms": {
                        "type": "integer",
                        "description": "Navigation timeout in milliseconds (default: 30000)",
                        "default": 30000
                    }
                },
                "required": ["url"]
            }
        ),
    ]


async def validate_single_page(url: str, timeout_ms: int) -> dict[str, Any]:
    configuration = TestConfiguration.from_dict(
        {"product_pages": [url], "test_settings": {"timeout_ms": timeout_ms}}
    )
    settings: TestSettings = configuration.test_settings
    get_orchestrator()
    session = _session
    if session is None:
        raise RuntimeError("BROWSER_SESSION_CLOSED")
    async with session.isolated_context(settings.viewport) as context:
        page = await context.new_page()
        result = await ProductPageValidator().validate(page, configuration.urls[0], settings)
    return result.to_dict()


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    logger.info(f"[Server] Tool called: {name}")

    try:
        orchestrator = get_orchestrator()

        if name == "run_test":
            configuration = TestConfiguration.from_dict(arguments["configuration"])
            result = await orchestrator.run(configuration)
            return json_content(result.to_dict())

        elif name == "get_result":
            snapshot = await orchestrator.store.load(arguments["execution_id"])
            if snapshot is None:
                return json_content({"error": f"Unknown execution: {arguments['execution_id']}", "tool": name})
            return json_content(snapshot)

        elif name == "validate_page":
            payload = await validate_single_page(arguments["url"], int(arguments.get("timeout_ms", 30000)))
            return json_content(payload)

        else:
            return json_content({"error": f"Unknown tool: {name}"})

    except Exception as e:
        logger.exception(f"[Server] Error in tool {name}: {e}")
        return json_content({"error": str(e), "tool": name})


async def main() -> None:
    logger.info("[Server] Starting storeprobe MCP Server...")

    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options()
            )
    finally:
        await cleanup_session()


def run() -> None:
    """Synchronous entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
