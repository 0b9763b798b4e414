"""Obreon Chronicle MCP server - Main entry point."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# MCP imports are optional - only needed when running the server
try:
    from mcp.server import Server  # pragma: no cover
    from mcp.server.stdio import stdio_server  # pragma: no cover
    from mcp.types import Tool, TextContent  # pragma: no cover
    HAS_MCP = True  # pragma: no cover
except ImportError:
    HAS_MCP = False
    Server = None  # type: ignore
    Tool = None  # type: ignore
    TextContent = None  # type: ignore

from .config import CampaignConfig, load_config
from .engine import ChronicleEngine
from .tools import execute_tool, make_tools

logger = logging.getLogger(__name__)


def custom_tool_defs(config: CampaignConfig) -> dict[str, dict]:
    """Tool definitions for custom_tool_* functions from a Python config."""
    defs = {}
    for tool_name, tool_func in config.custom_tools.items():
        doc = tool_func.__doc__ or f"Custom tool: {tool_name}"
        defs[tool_name] = {
            "name": tool_name,
            "description": doc.strip().split("\n")[0],
            "inputSchema": {
                "type": "object",
                "properties": {
                    "params": {
                        "type": "object",
                        "description": "Parameters for the custom tool",
                    }
                },
            },
        }
    return defs


async def call_custom_tool(engine: ChronicleEngine, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        result = engine.config.custom_tools[name](engine, arguments.get("params", arguments))
        if asyncio.iscoroutine(result):
            result = await result
        return result
    except Exception as e:
        logger.exception("Custom tool %s failed", name)
        return {
            "success": False,
            "error": str(e),
            "error_type": "custom_tool_error",
        }


def create_server(config: CampaignConfig) -> "Server":
    """Create and configure the MCP server.

    Raises:
        ImportError: If MCP package is not installed
    """
    if not HAS_MCP:
        raise ImportError(
            "MCP package not installed. Install with: pip install obreon-chronicle[mcp]"
        )

    server = Server("obreon-chronicle")
    engine = ChronicleEngine(config)
    tool_defs = {**make_tools(engine), **custom_tool_defs(config)}

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return [
            Tool(
                name=t["name"],
                description=t["description"],
                inputSchema=t["inputSchema"],
            )
            for t in tool_defs.values()
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        if name in config.custom_tools:
            result = await call_custom_tool(engine, name, arguments)
        else:
            result = await execute_tool(engine, name, arguments)
        return [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]

    return server


async def run_server(config: CampaignConfig) -> None:
    """Run the MCP server with stdio transport."""
    if not HAS_MCP:
        raise ImportError(
            "MCP package not installed. Install with: pip install obreon-chronicle[mcp]"
        )

    server = create_server(config)  # pragma: no cover

    async with stdio_server() as (read_stream, write_stream):  # pragma: no cover
        await server.run(  # pragma: no cover
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Obreon Chronicle - campaign journal, calendar and weather for the Obreon setting"
    )
    parser.add_argument(
        "--project-root",
        "-p",
        type=Path,
        default=Path.cwd(),
        help="Campaign root directory (default: current directory)",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        help="Path to config file (default: auto-detect in project root)",
    )
    parser.add_argument(
        "--init",
        action="store_true",
        help="Create the handouts directory and check the climate loads",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for stderr output (default: WARNING)",
    )

    args = parser.parse_args()

    # stdout carries MCP traffic
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        stream=sys.stderr,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    project_root = args.project_root.resolve()

    try:
        config = load_config(project_root, args.config)
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.init:
        try:
            engine = ChronicleEngine(config)
        except Exception as e:
            print(f"Error initialising campaign: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"Initialized chronicle for {config.campaign_name} in {project_root}")
        print(f"  - handouts: {engine.store.root}")
        print(f"  - climate: {engine.climate_model.name}")
        return

    if not HAS_MCP:
        print("Error: MCP package not installed.", file=sys.stderr)
        print("Install with: pip install obreon-chronicle[mcp]", file=sys.stderr)
        print("Note: MCP requires Python 3.10+", file=sys.stderr)
        sys.exit(1)

    asyncio.run(run_server(config))


if __name__ == "__main__":  # pragma: no cover
    main()
