"""Jira MCP Server - Expose Jira issues and guided workflows to AI assistants."""
import sys
import asyncio
import logging
import traceback
from typing import Any

import httpx
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    Tool,
    TextContent,
    ImageContent,
    EmbeddedResource,
)
from pydantic import ValidationError

from jira_core.config import get_settings
from jira_core.jira_client import JiraAPIError, JiraClient
from jira_core.workflow_engine import WorkflowEngine, WorkflowError
from jira_core.workflow_registry import default_registry

from . import tools
from . import handlers


# Configure logging to stderr (stdout carries the MCP stdio transport)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr,
    force=True
)
logger = logging.getLogger("jira-mcp")


# MCP Server instance
app = Server("jira-mcp-server")

# Workflow runs live for the lifetime of this process only
engine = WorkflowEngine(default_registry())


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available MCP tools for Jira access and workflows."""
    return tools.get_tools()


async def dispatch_tool(
    name: str,
    arguments: Any,
    jira: JiraClient,
    workflow_engine: WorkflowEngine,
) -> list[TextContent]:
    """Run the handler for ``name`` and turn any failure into error text."""
    arguments = dict(arguments or {})

    handler = handlers.HANDLERS.get(name)
    if not handler:
        logger.warning(f"Unknown tool requested: {name}")
        return [TextContent(type="text", text=f"Unknown tool: {name}")]

    try:
        return await handler(arguments, jira, workflow_engine)

    except WorkflowError as e:
        logger.warning(f"Workflow error during {name} call: {e}")
        return [TextContent(type="text", text=f"Error: Workflow error: {str(e)}")]

    except handlers.ToolInputError as e:
        logger.warning(f"Invalid {name} call: {e}")
        return [TextContent(type="text", text=f"Error: {str(e)}")]

    except JiraAPIError as e:
        logger.error(f"Jira API error during {name} call:")
        logger.error(f"  Status: {e.status_code}")
        logger.error(f"  Message: {str(e)}")
        return [TextContent(type="text", text=f"Error calling Jira API: {str(e)}")]

    except httpx.HTTPError as e:
        logger.error(f"HTTP error during {name} call:")
        logger.error(f"  Error type: {type(e).__name__}")
        logger.error(f"  Error message: {str(e)}")
        logger.error(f"  Traceback: {traceback.format_exc()}")
        return [TextContent(type="text", text=f"Error: Connection failed - {str(e)}")]

    except Exception as e:
        # Catch-all for unexpected errors
        logger.error(f"Unexpected error during {name} call:")
        logger.error(f"  Error type: {type(e).__name__}")
        logger.error(f"  Error message: {str(e)}")
        logger.error(f"  Arguments: {arguments}")
        logger.error(f"  Traceback:\n{traceback.format_exc()}")
        return [TextContent(type="text", text=f"Error: {type(e).__name__}: {str(e)}")]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent | ImageContent | EmbeddedResource]:
    """Handle MCP tool calls by delegating to the handlers module."""
    logger.info(f"Tool call: {name} with arguments: {arguments}")

    async with JiraClient(get_settings()) as jira:
        return await dispatch_tool(name, arguments, jira, engine)


async def main():
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


def run() -> None:
    """Console entry point: validate configuration, then serve on stdio."""
    try:
        settings = get_settings()
    except ValidationError as e:
        messages = "; ".join(err["msg"].removeprefix("Value error, ") for err in e.errors())
        logger.error(f"Configuration error: {messages}")
        sys.exit(1)

    logging.getLogger().setLevel(settings.log_level)
    logger.info(f"Jira MCP server starting for {settings.jira_domain}")
    asyncio.run(main())
    logger.info("Jira MCP server stopped")


if __name__ == "__main__":
    run()
