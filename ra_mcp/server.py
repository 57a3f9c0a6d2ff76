"""A Model Context Protocol server speaking newline-delimited JSON-RPC over stdio."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import shlex
import sys
from typing import Any

from ra_mcp.lsp_client import LspClient, LspError
from ra_mcp.tools import INVALID_PARAMS, ToolError, ToolService

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "ra-mcp"
SERVER_VERSION = "0.1.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601

INSTRUCTIONS = (
    "This server provides rust-analyzer functionality through MCP tools. "
    "Available tools: 'hover' for type information, 'completion' for code "
    "completions, 'diagnostics' for compile errors, 'goto_definition' to find "
    "definitions, 'find_references' to find all references, 'format_document' "
    "to format code, 'rename' to rename symbols across the workspace, "
    "'code_actions' to get quick fixes and refactorings, 'workspace_symbols' to "
    "search symbols across the workspace, 'inlay_hints' to get type and parameter "
    "hints, 'expand_macro' to expand Rust macros, 'document_symbols' for code "
    "structure analysis, 'signature_help' for function parameter assistance, "
    "'document_highlight' for symbol occurrence highlighting, 'selection_range' "
    "for smart selection expansion, 'runnables' to find tests, benchmarks, and "
    "executables, and 'implementations' to find all implementations of a trait."
)


def server_info() -> dict[str, Any]:
    """The result of the initialize request."""
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "capabilities": {"tools": {}},
        "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
        "instructions": INSTRUCTIONS,
    }


def _error(request_id: Any, code: int, message: str) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "error": {"code": code, "message": message},
    }


class McpServer:
    """Reads requests from ``reader`` and writes responses to ``writer``.

    ``reader`` needs an async ``readline()`` returning bytes; ``writer`` needs
    ``write(bytes)`` and may have an async ``drain()``.
    """

    def __init__(self, tools: ToolService, reader: Any, writer: Any) -> None:
        self.tools = tools
        self.reader = reader
        self.writer = writer

    async def handle(self, message: Any) -> dict[str, Any] | None:
        """Answer one decoded message; None for notifications and responses."""
        if not isinstance(message, dict):
            return _error(None, INVALID_REQUEST, "Invalid request")
        method = message.get("method")
        if not isinstance(method, str):
            if "id" in message and ("result" in message or "error" in message):
                return None
            return _error(message.get("id"), INVALID_REQUEST, "Invalid request")
        if "id" not in message:
            logger.debug("Received notification: %s", method)
            return None
        request_id = message["id"]
        try:
            result = await self._dispatch(method, message.get("params"))
        except ToolError as exc:
            return _error(request_id, exc.code, exc.message)
        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    async def _dispatch(self, method: str, params: Any) -> Any:
        if method == "initialize":
            return server_info()
        if method == "ping":
            return {}
        if method == "tools/list":
            return {"tools": [spec.to_dict() for spec in self.tools.list_tools()]}
        if method == "tools/call":
            if not isinstance(params, dict) or not isinstance(params.get("name"), str):
                raise ToolError("tools/call needs a tool name", INVALID_PARAMS)
            text = await self.tools.call_tool(params["name"], params.get("arguments"))
            return {"content": [{"type": "text", "text": text}], "isError": False}
        raise ToolError(f"Method not found: {method}", METHOD_NOT_FOUND)

    async def _send(self, message: dict[str, Any]) -> None:
        data = json.dumps(message, separators=(",", ":"), ensure_ascii=False)
        self.writer.write(data.encode("utf-8") + b"\n")
        drain = getattr(self.writer, "drain", None)
        if drain is not None:
            await drain()

    async def serve(self) -> None:
        """Answer messages until the input ends."""
        while True:
            line = await self.reader.readline()
            if not line:
                break
            line = line.strip()
            if not line:
                continue
            try:
                message = json.loads(line)
            except ValueError as exc:
                await self._send(_error(None, PARSE_ERROR, f"Parse error: {exc}"))
                continue
            response = await self.handle(message)
            if response is not None:
                await self._send(response)


class _StdinReader:
    async def readline(self) -> bytes:
        return await asyncio.to_thread(sys.stdin.buffer.readline)


class _StdoutWriter:
    def write(self, data: bytes) -> None:
        sys.stdout.buffer.write(data)

    async def drain(self) -> None:
        sys.stdout.buffer.flush()


async def _run(workspace: str, command: list[str] | None) -> None:
    logger.info("Initializing rust-analyzer MCP server for workspace: %s", workspace)
    async with LspClient(workspace, command) as client:
        logger.info("rust-analyzer LSP client initialized and ready")
        server = McpServer(ToolService(client), _StdinReader(), _StdoutWriter())
        logger.info("MCP server is running")
        await server.serve()


def main(argv: list[str] | None = None) -> int:
    """Serve MCP tools over stdio for the workspace in the current directory."""
    parser = argparse.ArgumentParser(
        prog="ra-mcp", description="Serve rust-analyzer features as MCP tools."
    )
    parser.add_argument(
        "--workspace", default=None, help="workspace root (default: current directory)"
    )
    parser.add_argument(
        "--command", default=None, help="language server command line to start"
    )
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting rust-analyzer MCP server")
    workspace = args.workspace or os.getcwd()
    command = shlex.split(args.command) if args.command else None
    try:
        asyncio.run(_run(workspace, command))
    except LspError as exc:
        logger.error("serving error: %s", exc)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    sys.exit(main())