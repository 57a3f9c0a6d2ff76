"""Asynchronous client for a rust-analyzer language server running as a child process."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from ra_mcp.framing import FramingError, encode_message, read_message
from ra_mcp.uris import path_to_uri

logger = logging.getLogger(__name__)

DEFAULT_COMMAND: tuple[str, ...] = ("rust-analyzer",)

INITIALIZATION_OPTIONS: dict[str, Any] = {
    "cargo": {
        "runBuildScripts": True,
        "features": "all",
    }
}

# CodeActionTriggerKind.Invoked in the protocol.
_TRIGGER_KIND_INVOKED = 1


class LspError(Exception):
    """The language server could not be reached or answered with an error."""


def _text_document(file_path: str | os.PathLike[str]) -> dict[str, str]:
    try:
        uri = path_to_uri(file_path)
    except ValueError as exc:
        raise LspError(str(exc)) from exc
    return {"uri": uri}


def _position(line: int, character: int) -> dict[str, int]:
    return {"line": line, "character": character}


def _document_position(
    file_path: str | os.PathLike[str], line: int, column: int
) -> dict[str, Any]:
    return {
        "textDocument": _text_document(file_path),
        "position": _position(line, column),
    }


def _split_lines(content: str) -> list[str]:
    """Split text into lines the way a line iterator does: no empty final line."""
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


async def _read_text(file_path: str | os.PathLike[str]) -> str:
    try:
        data = await asyncio.to_thread(Path(file_path).read_bytes)
        return data.decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise LspError(f"cannot read {file_path}: {exc}") from exc


class LspClient:
    """Talks to a language server over its standard input and output.

    Use as an async context manager, or call start() and close() directly.
    Feature methods return the server's JSON result as plain Python data.
    """

    def __init__(
        self,
        workspace_root: str | os.PathLike[str],
        command: Sequence[str] | None = None,
    ) -> None:
        self.workspace_root = Path(workspace_root).absolute()
        self.command: tuple[str, ...] = tuple(command) if command else DEFAULT_COMMAND
        self._process: asyncio.subprocess.Process | None = None
        self._ready = asyncio.Event()
        self._request_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._docs_lock = asyncio.Lock()
        self._request_id = 0
        self._opened_documents: set[str] = set()

    async def start(self) -> None:
        """Launch the server process and perform the initialize handshake."""
        if self._process is not None and self._process.returncode is None:
            return
        logger.info("Starting language server: %s", " ".join(self.command))
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise LspError(f"cannot start {self.command[0]}: {exc}") from exc
        try:
            await self._initialize()
        except BaseException:
            await self.close()
            raise
        self._ready.set()

    async def close(self) -> None:
        """Stop the server process."""
        self._ready.clear()
        process, self._process = self._process, None
        if process is None:
            return
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        if process.stdin is not None:
            process.stdin.close()
        await process.wait()

    async def __aenter__(self) -> LspClient:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def wait_for_ready(self) -> None:
        """Wait until the initialize handshake has completed."""
        await self._ready.wait()

    def is_ready(self) -> bool:
        """Whether the server has been initialized and is running."""
        return self._ready.is_set()

    async def _initialize(self) -> None:
        workspace_folder = {
            "uri": path_to_uri(self.workspace_root),
            "name": self.workspace_root.name or "workspace",
        }
        params = {
            "processId": None,
            "rootUri": None,
            "capabilities": {},
            "initializationOptions": INITIALIZATION_OPTIONS,
            "workspaceFolders": [workspace_folder],
        }
        result = await self.request("initialize", params)
        capabilities = result.get("capabilities") if isinstance(result, dict) else None
        logger.info("LSP initialized with capabilities: %s", capabilities)
        await self.notify("initialized", {})

    async def open_document(self, file_path: str | os.PathLike[str]) -> None:
        """Send didOpen for a file unless it has already been opened."""
        key = str(file_path)
        async with self._docs_lock:
            if key in self._opened_documents:
                logger.debug("Document already opened, using cache: %s", key)
                return
        logger.debug("Opening new document: %s", key)
        content = await _read_text(file_path)
        text_document = _text_document(file_path)
        text_document.update({"languageId": "rust", "version": 1, "text": content})
        await self.notify("textDocument/didOpen", {"textDocument": text_document})
        async with self._docs_lock:
            self._opened_documents.add(key)
            logger.debug(
                "Document opened and cached. Total opened documents: %d",
                len(self._opened_documents),
            )

    async def close_document(self, file_path: str | os.PathLike[str]) -> None:
        """Send didClose for a file if it is open."""
        key = str(file_path)
        async with self._docs_lock:
            if key not in self._opened_documents:
                logger.debug("Document not opened, no need to close: %s", key)
                return
        logger.debug("Closing document: %s", key)
        await self.notify(
            "textDocument/didClose", {"textDocument": _text_document(file_path)}
        )
        async with self._docs_lock:
            self._opened_documents.discard(key)
            logger.debug(
                "Document closed. Total opened documents: %d",
                len(self._opened_documents),
            )

    def opened_documents_count(self) -> int:
        """Number of documents currently open on the server."""
        return len(self._opened_documents)

    async def request(self, method: str, params: Any) -> Any:
        """Send a request and return the result of the matching response."""
        async with self._request_lock:
            self._request_id += 1
            request_id = self._request_id
            await self._send(
                {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}
            )
            response = await self._read_response(request_id)
        if "error" in response:
            raise LspError(f"LSP error: {json.dumps(response['error'])}")
        if "result" not in response:
            raise LspError("Missing result in response")
        return response["result"]

    async def notify(self, method: str, params: Any) -> None:
        """Send a notification, which gets no response."""
        await self._send({"jsonrpc": "2.0", "method": method, "params": params})

    async def _send(self, message: dict[str, Any]) -> None:
        process = self._process
        if process is None or process.stdin is None:
            raise LspError("language server is not running")
        data = encode_message(message)
        async with self._write_lock:
            try:
                process.stdin.write(data)
                await process.stdin.drain()
            except (ConnectionError, OSError) as exc:
                raise LspError(f"cannot write to language server: {exc}") from exc
        logger.debug("Sent LSP message: %s", message)

    async def _read_response(self, expected_id: int) -> dict[str, Any]:
        process = self._process
        if process is None or process.stdout is None:
            raise LspError("language server is not running")
        while True:
            try:
                message = await read_message(process.stdout)
            except FramingError as exc:
                raise LspError(str(exc)) from exc
            if (
                isinstance(message, dict)
                and "method" not in message
                and message.get("id") == expected_id
            ):
                return message

    async def _document_request(
        self, method: str, file_path: str | os.PathLike[str], params: dict[str, Any]
    ) -> Any:
        await self.wait_for_ready()
        await self.open_document(file_path)
        return await self.request(method, params)

    async def hover(self, file_path, line: int, column: int) -> Any:
        """Hover information at a position, or None."""
        return await self._document_request(
            "textDocument/hover", file_path, _document_position(file_path, line, column)
        )

    async def completion(self, file_path, line: int, column: int) -> Any:
        """Completion items or list at a position, or None."""
        return await self._document_request(
            "textDocument/completion",
            file_path,
            _document_position(file_path, line, column),
        )

    async def diagnostics(self, file_path) -> list[dict[str, Any]]:
        """Diagnostics for a file from a pull diagnostic request."""
        report = await self._document_request(
            "textDocument/diagnostic",
            file_path,
            {"textDocument": _text_document(file_path)},
        )
        if not isinstance(report, dict):
            raise LspError(f"unexpected diagnostic report: {json.dumps(report)}")
        if report.get("kind") == "full":
            return list(report.get("items") or [])
        return []

    async def goto_definition(self, file_path, line: int, column: int) -> Any:
        """Definition location(s) of the symbol at a position, or None."""
        return await self._document_request(
            "textDocument/definition",
            file_path,
            _document_position(file_path, line, column),
        )

    async def find_references(
        self, file_path, line: int, column: int, include_declaration: bool = True
    ) -> Any:
        """Reference locations of the symbol at a position, or None."""
        params = _document_position(file_path, line, column)
        params["context"] = {"includeDeclaration": include_declaration}
        return await self._document_request(
            "textDocument/references", file_path, params
        )

    async def format_document(self, file_path) -> Any:
        """Text edits that would format a file, or None."""
        params = {
            "textDocument": _text_document(file_path),
            "options": {"tabSize": 4, "insertSpaces": True},
        }
        return await self._document_request(
            "textDocument/formatting", file_path, params
        )

    async def rename(self, file_path, line: int, column: int, new_name: str) -> Any:
        """Workspace edit renaming the symbol at a position, or None."""
        params = _document_position(file_path, line, column)
        params["newName"] = new_name
        return await self._document_request("textDocument/rename", file_path, params)

    async def code_actions(self, file_path, line: int, column: int) -> Any:
        """Code actions and commands available at a position, or None."""
        position = _position(line, column)
        params = {
            "textDocument": _text_document(file_path),
            "range": {"start": position, "end": dict(position)},
            "context": {"diagnostics": [], "triggerKind": _TRIGGER_KIND_INVOKED},
        }
        return await self._document_request(
            "textDocument/codeAction", file_path, params
        )

    async def workspace_symbols(self, query: str) -> Any:
        """Symbols across the workspace matching a query, or None."""
        await self.wait_for_ready()
        return await self.request("workspace/symbol", {"query": query})

    async def inlay_hints(self, file_path) -> Any:
        """Inlay hints covering the whole file, or None."""
        await self.wait_for_ready()
        await self.open_document(file_path)
        lines = _split_lines(await _read_text(file_path))
        end_line = max(len(lines) - 1, 0)
        end_character = len(lines[-1].encode("utf-8")) if lines else 0
        params = {
            "textDocument": _text_document(file_path),
            "range": {
                "start": _position(0, 0),
                "end": _position(end_line, end_character),
            },
        }
        return await self.request("textDocument/inlayHint", params)

    async def expand_macro(self, file_path, line: int, column: int) -> Any:
        """The rust-analyzer macro expansion at a position, or None."""
        return await self._document_request(
            "rust-analyzer/expandMacro",
            file_path,
            _document_position(file_path, line, column),
        )

    async def document_symbols(self, file_path) -> Any:
        """Flat or nested symbols of a file, or None."""
        return await self._document_request(
            "textDocument/documentSymbol",
            file_path,
            {"textDocument": _text_document(file_path)},
        )

    async def signature_help(self, file_path, line: int, column: int) -> Any:
        """Signature help at a position, or None."""
        return await self._document_request(
            "textDocument/signatureHelp",
            file_path,
            _document_position(file_path, line, column),
        )

    async def document_highlight(self, file_path, line: int, column: int) -> Any:
        """Occurrences of the symbol at a position in the same file, or None."""
        return await self._document_request(
            "textDocument/documentHighlight",
            file_path,
            _document_position(file_path, line, column),
        )

    async def selection_range(
        self, file_path, positions: Iterable[tuple[int, int]]
    ) -> Any:
        """Selection ranges for (line, character) pairs, or None."""
        params = {
            "textDocument": _text_document(file_path),
            "positions": [_position(line, character) for line, character in positions],
        }
        return await self._document_request(
            "textDocument/selectionRange", file_path, params
        )

    async def runnables(self, file_path) -> Any:
        """The rust-analyzer runnables of a file, or None."""
        return await self._document_request(
            "rust-analyzer/runnables",
            file_path,
            {"textDocument": _text_document(file_path)},
        )

    async def implementations(self, file_path, line: int, column: int) -> Any:
        """Implementation locations of the symbol at a position, or None."""
        return await self._document_request(
            "textDocument/implementation",
            file_path,
            _document_position(file_path, line, column),
        )