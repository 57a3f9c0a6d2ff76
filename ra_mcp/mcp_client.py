"""A Model Context Protocol client that drives an MCP server run as a child process."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import shlex
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
CLIENT_NAME = "ra-mcp-client"
CLIENT_VERSION = "0.1.0"

_METHOD_NOT_FOUND = -32601
_STREAM_LIMIT = 16 * 1024 * 1024
_CLOSE_TIMEOUT = 5.0


class McpClientError(Exception):
    """The server could not be reached or answered a request with an error."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class McpClient:
    """Talks newline-delimited JSON-RPC to an MCP server over its stdio.

    Use as an async context manager, or call start() and close() directly.
    """

    def __init__(self, command: Sequence[str]) -> None:
        self.command: tuple[str, ...] = tuple(command)
        if not self.command:
            raise ValueError("server command must not be empty")
        self.server_info: dict[str, Any] | None = None
        self._process: asyncio.subprocess.Process | None = None
        self._lock = asyncio.Lock()
        self._next_id = 0

    async def start(self) -> None:
        """Launch the server and perform the initialize handshake."""
        if self._process is not None and self._process.returncode is None:
            return
        logger.info("Starting MCP server: %s", " ".join(self.command))
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                limit=_STREAM_LIMIT,
            )
        except OSError as exc:
            raise McpClientError(f"cannot start {self.command[0]}: {exc}") from exc
        try:
            self.server_info = await self._request(
                "initialize",
                {
                    "protocolVersion": PROTOCOL_VERSION,
                    "capabilities": {},
                    "clientInfo": {"name": CLIENT_NAME, "version": CLIENT_VERSION},
                },
            )
            await self._notify("notifications/initialized", {})
        except BaseException:
            await self.close()
            raise

    async def close(self) -> None:
        """Close the server's input and wait for it to exit."""
        process, self._process = self._process, None
        if process is None:
            return
        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()
        try:
            await asyncio.wait_for(process.wait(), _CLOSE_TIMEOUT)
        except asyncio.TimeoutError:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()

    async def __aenter__(self) -> McpClient:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def list_tools(self) -> list[dict[str, Any]]:
        """All tools the server offers, following pagination cursors."""
        tools: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            params = {"cursor": cursor} if cursor is not None else {}
            result = await self._request("tools/list", params)
            tools.extend(result.get("tools") or [])
            cursor = result.get("nextCursor")
            if not cursor:
                return tools

    async def call_tool(
        self, name: str, arguments: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Call a tool and return the server's result object."""
        params: dict[str, Any] = {"name": name}
        if arguments is not None:
            params["arguments"] = arguments
        return await self._request("tools/call", params)

    async def _write(self, message: dict[str, Any]) -> None:
        process = self._process
        if process is None or process.stdin is None:
            raise McpClientError("MCP server is not running")
        data = json.dumps(message, separators=(",", ":"), ensure_ascii=False)
        try:
            process.stdin.write(data.encode("utf-8") + b"\n")
            await process.stdin.drain()
        except (ConnectionError, OSError) as exc:
            raise McpClientError(f"cannot write to MCP server: {exc}") from exc

    async def _notify(self, method: str, params: Any) -> None:
        async with self._lock:
            await self._write({"jsonrpc": "2.0", "method": method, "params": params})

    async def _request(self, method: str, params: Any) -> Any:
        async with self._lock:
            self._next_id += 1
            request_id = self._next_id
            await self._write(
                {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}
            )
            response = await self._read_response(request_id)
        error = response.get("error")
        if error is not None:
            if isinstance(error, dict):
                raise McpClientError(str(error.get("message")), error.get("code"))
            raise McpClientError(str(error))
        if "result" not in response:
            raise McpClientError("Missing result in response")
        return response["result"]

    async def _read_response(self, expected_id: int) -> dict[str, Any]:
        process = self._process
        if process is None or process.stdout is None:
            raise McpClientError("MCP server is not running")
        while True:
            try:
                line = await process.stdout.readline()
            except (ValueError, asyncio.LimitOverrunError) as exc:
                raise McpClientError(f"cannot read from MCP server: {exc}") from exc
            if not line:
                raise McpClientError("MCP server closed the connection")
            line = line.strip()
            if not line:
                continue
            try:
                message = json.loads(line)
            except ValueError:
                logger.warning("Ignoring invalid JSON from server: %r", line)
                continue
            if not isinstance(message, dict):
                continue
            if "method" in message:
                if "id" in message:
                    await self._write(
                        {
                            "jsonrpc": "2.0",
                            "id": message["id"],
                            "error": {
                                "code": _METHOD_NOT_FOUND,
                                "message": f"Method not found: {message['method']}",
                            },
                        }
                    )
                else:
                    logger.debug("Server notification: %s", message["method"])
                continue
            if message.get("id") == expected_id:
                return message


# (title, tool, file, extra arguments); file is "main", "tests" or None.
_DEMO_STEPS: tuple[tuple[str, str, str | None, dict[str, Any]], ...] = (
    ("hover (first call)", "hover", "main", {"line": 50, "column": 8}),
    ("hover (second call, cached document)", "hover", "main", {"line": 100, "column": 10}),
    ("diagnostics", "diagnostics", "main", {}),
    ("completions", "completion", "main", {"line": 60, "column": 10}),
    ("hover on a struct", "hover", "main", {"line": 40, "column": 10}),
    ("goto_definition", "goto_definition", "main", {"line": 90, "column": 15}),
    (
        "find_references",
        "find_references",
        "main",
        {"line": 40, "column": 10, "include_declaration": True},
    ),
    ("format_document", "format_document", "main", {}),
    (
        "rename",
        "rename",
        "main",
        {"line": 73, "column": 12, "new_name": "RustAnalyzerMCPServer"},
    ),
    ("code_actions", "code_actions", "main", {"line": 80, "column": 10}),
    ("workspace_symbols", "workspace_symbols", None, {"query": "Rust"}),
    ("inlay_hints", "inlay_hints", "main", {}),
    ("expand_macro", "expand_macro", "main", {"line": 86, "column": 5}),
    ("runnables on main.rs", "runnables", "main", {}),
    ("runnables on test_file.rs", "runnables", "tests", {}),
    ("implementations on main.rs", "implementations", "main", {"line": 50, "column": 10}),
    (
        "implementations on Greetable trait",
        "implementations",
        "tests",
        {"line": 7, "column": 6},
    ),
)


async def run_demo(
    server_command: Sequence[str], project_dir: str | os.PathLike[str]
) -> list[tuple[str, dict[str, Any]]]:
    """Exercise every tool of a server against a project and return each result."""
    project = Path(project_dir).absolute()
    files = {
        "main": str(project / "src" / "main.rs"),
        "tests": str(project / "examples" / "test_file.rs"),
    }
    results: list[tuple[str, dict[str, Any]]] = []
    async with McpClient(server_command) as client:
        logger.info("Connected to MCP server: %s", client.server_info)
        tools = await client.list_tools()
        logger.info("Available tools:")
        for tool in tools:
            logger.info("  - %s: %s", tool.get("name"), tool.get("description"))
        for title, tool, file_key, extra in _DEMO_STEPS:
            logger.info("=== Testing %s ===", title)
            arguments: dict[str, Any] = {}
            if file_key is not None:
                arguments["file_path"] = files[file_key]
            arguments.update(extra)
            result = await client.call_tool(tool, arguments)
            logger.info("%s result: %s", title, json.dumps(result, indent=2))
            results.append((title, result))
    logger.info("Client example completed successfully!")
    return results


def main(argv: list[str] | None = None) -> int:
    """Run the tool walkthrough against a server for a project directory."""
    parser = argparse.ArgumentParser(
        prog="ra-mcp-client", description="Exercise the tools of an MCP server."
    )
    parser.add_argument(
        "--project", default=None, help="project directory (default: current directory)"
    )
    parser.add_argument(
        "--server", default=None, help="server command line (default: the bundled server)"
    )
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    project = args.project or os.getcwd()
    if args.server:
        command = shlex.split(args.server)
    else:
        command = [sys.executable, "-m", "ra_mcp.server", "--workspace", project]
    try:
        asyncio.run(run_demo(command, project))
    except McpClientError as exc:
        logger.error("client error: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())