#!/usr/bin/env python3
"""
MCP (Model Context Protocol) server for code-merge

Exposes three tools over stdio:
- get_file_tree: ASCII tree of the files that pass the ignore rules
- merge_content: the text of those files merged into one document
- analyze_code: line and function counts
"""

import asyncio
import json
import sys
from typing import Dict, List, Optional

from mcp.server import Server, NotificationOptions
from mcp.server.models import InitializationOptions
import mcp.server.stdio
import mcp.types as types

from codemerge import __version__
from codemerge.core.errors import CodeMergeError
from codemerge.tools import TOOL_HANDLERS, ToolContext
from codemerge.utils import configure_logging, get_logger

logger = get_logger("code-merge-mcp")

SERVER_NAME = "code-merge-mcp"

FILTER_PROPERTIES = {
    "use_gitignore": {
        "type": "boolean",
        "description": "Whether to apply the root .gitignore (default: true)",
        "default": True
    },
    "ignore_git": {
        "type": "boolean",
        "description": "Whether to exclude the .git directory (default: true)",
        "default": True
    },
    "custom_blacklist": {
        "type": "array",
        "items": {"type": "string"},
        "description": "Additional directory or file names to exclude",
    },
}


def tool_definitions() -> List[types.Tool]:
    """Tool schemas advertised to clients"""
    return [
        types.Tool(
            name="get_file_tree",
            description="Get the file tree of a directory, honoring .gitignore and the default blacklist",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": {
                        "type": "string",
                        "description": "Directory to render",
                    },
                    **FILTER_PROPERTIES,
                },
                "required": ["path"],
            },
        ),
        types.Tool(
            name="merge_content",
            description="Merge the content of a file or of every eligible file in a directory",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": {
                        "type": "string",
                        "description": "File or directory to merge",
                    },
                    "compress": {
                        "type": "boolean",
                        "description": "Strip comments and redundant whitespace (default: false)",
                        "default": False
                    },
                    **FILTER_PROPERTIES,
                },
                "required": ["path"],
            },
        ),
        types.Tool(
            name="analyze_code",
            description="Count lines and functions in a file or directory",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": {
                        "type": "string",
                        "description": "File or directory to analyze",
                    },
                    "language": {
                        "type": "string",
                        "description": "Only analyze files of this language (e.g. python, javascript)",
                    },
                    "count_lines": {
                        "type": "boolean",
                        "description": "Count lines (default: true)",
                        "default": True
                    },
                    "count_functions": {
                        "type": "boolean",
                        "description": "Count functions (default: true)",
                        "default": True
                    },
                    **FILTER_PROPERTIES,
                },
                "required": ["path"],
            },
        ),
    ]


class CodeMergeMCPServer:
    """MCP server implementation for code-merge"""

    def __init__(self, contexts: Optional[Dict[str, ToolContext]] = None):
        self.app = Server(SERVER_NAME)
        # One context per tool so caches are never shared between tools
        self.contexts = contexts or {name: ToolContext.from_env() for name in TOOL_HANDLERS}
        self._setup_handlers()

    def _setup_handlers(self):
        """Set up MCP handlers"""

        @self.app.list_tools()
        async def handle_list_tools() -> List[types.Tool]:
            """List available tools"""
            return tool_definitions()

        @self.app.call_tool()
        async def handle_call_tool(name: str, arguments: dict) -> List[types.TextContent]:
            """Handle tool calls"""
            return await self.call_tool(name, arguments)

    async def call_tool(self, name: str, arguments: Optional[dict]) -> List[types.TextContent]:
        """
        Dispatch a tool call.

        Failures inside a tool are returned as a JSON error payload rather
        than raised; unknown tool names raise ValueError.
        """
        handler = TOOL_HANDLERS.get(name)
        if handler is None:
            raise ValueError(f"Unknown tool: {name}")

        arguments = arguments or {}
        logger.info(f"Tool call: {name} path={arguments.get('path')}")

        try:
            result = await handler(arguments, self.contexts.get(name))
        except (CodeMergeError, OSError) as e:
            logger.warning(f"{name} failed: {e}")
            error_result = {"error": str(e), "tool": name}
            return [types.TextContent(type="text", text=json.dumps(error_result, indent=2))]

        return [types.TextContent(type="text", text=json.dumps(result, indent=2, ensure_ascii=False))]

    async def run(self):
        """Run the MCP server"""
        async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
            await self.app.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name=SERVER_NAME,
                    server_version=__version__,
                    capabilities=self.app.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                ),
            )


async def main():
    """Main entry point"""
    configure_logging()
    logger.info(f"Starting code-merge MCP server v{__version__}")

    server = CodeMergeMCPServer()

    try:
        await server.run()
    except KeyboardInterrupt:
        logger.info("MCP server interrupted")
    except Exception as e:
        logger.error(f"MCP server error: {e}", exc_info=True)
        sys.exit(1)


def run():
    """Console script entry point"""
    asyncio.run(main())


if __name__ == '__main__':
    run()
