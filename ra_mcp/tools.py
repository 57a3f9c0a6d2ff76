"""The MCP tools offered by the server, each backed by a language server request."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ra_mcp.lsp_client import LspError
from ra_mcp.render_nav import (
    format_code_actions,
    format_completion,
    format_definition,
    format_diagnostics,
    format_formatting,
    format_hover,
    format_references,
    format_rename,
)
from ra_mcp.render_symbols import (
    format_document_symbols,
    format_highlights,
    format_implementations,
    format_inlay_hints,
    format_macro_expansion,
    format_runnables,
    format_selection_ranges,
    format_signature_help,
    format_workspace_symbols,
)

logger = logging.getLogger(__name__)

INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

_UINT32_MAX = 2**32 - 1
_REQUIRED = object()


class ToolError(Exception):
    """A tool call failed; ``code`` is the JSON-RPC error code to report."""

    def __init__(self, message: str, code: int = INTERNAL_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class _Kind(Enum):
    STRING = "string"
    UINT32 = "uint32"
    BOOLEAN = "boolean"
    POSITIONS = "positions"


_UINT32_SCHEMA = {"type": "integer", "format": "uint32", "minimum": 0}


@dataclass(frozen=True)
class _Field:
    name: str
    kind: _Kind
    default: Any = _REQUIRED

    @property
    def required(self) -> bool:
        return self.default is _REQUIRED

    @property
    def schema(self) -> dict[str, Any]:
        if self.kind is _Kind.STRING:
            schema: dict[str, Any] = {"type": "string"}
        elif self.kind is _Kind.UINT32:
            schema = dict(_UINT32_SCHEMA)
        elif self.kind is _Kind.BOOLEAN:
            schema = {"type": "boolean"}
        else:
            schema = {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "line": dict(_UINT32_SCHEMA),
                        "column": dict(_UINT32_SCHEMA),
                    },
                    "required": ["line", "column"],
                },
            }
        if not self.required:
            schema["default"] = self.default
        return schema


@dataclass(frozen=True)
class ToolSpec:
    """Name, description and parameters of one tool."""

    name: str
    description: str
    fields: tuple[_Field, ...]

    @property
    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the tool's arguments object."""
        return {
            "type": "object",
            "properties": {field.name: field.schema for field in self.fields},
            "required": [field.name for field in self.fields if field.required],
        }

    def to_dict(self) -> dict[str, Any]:
        """The tool as it appears in a tools/list result."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


def _invalid(message: str) -> ToolError:
    return ToolError(message, INVALID_PARAMS)


def _is_uint32(value: Any) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and 0 <= value <= _UINT32_MAX
    )


def _convert(field: _Field, value: Any, where: str) -> Any:
    if field.kind is _Kind.STRING:
        if not isinstance(value, str):
            raise _invalid(f"invalid type for `{where}`: expected a string")
        return value
    if field.kind is _Kind.UINT32:
        if not _is_uint32(value):
            raise _invalid(f"invalid value for `{where}`: expected u32")
        return value
    if field.kind is _Kind.BOOLEAN:
        if not isinstance(value, bool):
            raise _invalid(f"invalid type for `{where}`: expected a boolean")
        return value
    if not isinstance(value, list):
        raise _invalid(f"invalid type for `{where}`: expected a sequence")
    positions = []
    for index, item in enumerate(value):
        if not isinstance(item, Mapping):
            raise _invalid(f"invalid type for `{where}[{index}]`: expected an object")
        coords = []
        for key in ("line", "column"):
            if key not in item:
                raise _invalid(f"missing field `{key}` in `{where}[{index}]`")
            if not _is_uint32(item[key]):
                raise _invalid(
                    f"invalid value for `{where}[{index}].{key}`: expected u32"
                )
            coords.append(item[key])
        positions.append((coords[0], coords[1]))
    return positions


def _parse_arguments(spec: ToolSpec, arguments: Any) -> dict[str, Any]:
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        raise _invalid(f"arguments of `{spec.name}` must be an object")
    values = {}
    for field in spec.fields:
        if field.name in arguments:
            values[field.name] = _convert(field, arguments[field.name], field.name)
        elif field.required:
            raise _invalid(f"missing field `{field.name}`")
        else:
            values[field.name] = field.default
    return values


_Runner = Callable[[Any, dict[str, Any]], Awaitable[str]]


async def _hover(client: Any, a: dict[str, Any]) -> str:
    return format_hover(await client.hover(a["file_path"], a["line"], a["column"]))


async def _completion(client: Any, a: dict[str, Any]) -> str:
    return format_completion(
        await client.completion(a["file_path"], a["line"], a["column"])
    )


async def _diagnostics(client: Any, a: dict[str, Any]) -> str:
    return format_diagnostics(await client.diagnostics(a["file_path"]))


async def _goto_definition(client: Any, a: dict[str, Any]) -> str:
    return format_definition(
        await client.goto_definition(a["file_path"], a["line"], a["column"])
    )


async def _find_references(client: Any, a: dict[str, Any]) -> str:
    return format_references(
        await client.find_references(
            a["file_path"], a["line"], a["column"], a["include_declaration"]
        )
    )


async def _format_document(client: Any, a: dict[str, Any]) -> str:
    return format_formatting(await client.format_document(a["file_path"]))


async def _rename(client: Any, a: dict[str, Any]) -> str:
    edit = await client.rename(a["file_path"], a["line"], a["column"], a["new_name"])
    return format_rename(edit, a["new_name"])


async def _code_actions(client: Any, a: dict[str, Any]) -> str:
    return format_code_actions(
        await client.code_actions(a["file_path"], a["line"], a["column"])
    )


async def _workspace_symbols(client: Any, a: dict[str, Any]) -> str:
    return format_workspace_symbols(await client.workspace_symbols(a["query"]))


async def _inlay_hints(client: Any, a: dict[str, Any]) -> str:
    return format_inlay_hints(await client.inlay_hints(a["file_path"]))


async def _expand_macro(client: Any, a: dict[str, Any]) -> str:
    return format_macro_expansion(
        await client.expand_macro(a["file_path"], a["line"], a["column"])
    )


async def _document_symbols(client: Any, a: dict[str, Any]) -> str:
    return format_document_symbols(await client.document_symbols(a["file_path"]))


async def _signature_help(client: Any, a: dict[str, Any]) -> str:
    return format_signature_help(
        await client.signature_help(a["file_path"], a["line"], a["column"])
    )


async def _document_highlight(client: Any, a: dict[str, Any]) -> str:
    return format_highlights(
        await client.document_highlight(a["file_path"], a["line"], a["column"])
    )


async def _selection_range(client: Any, a: dict[str, Any]) -> str:
    return format_selection_ranges(
        await client.selection_range(a["file_path"], a["positions"])
    )


async def _runnables(client: Any, a: dict[str, Any]) -> str:
    return format_runnables(await client.runnables(a["file_path"]))


async def _implementations(client: Any, a: dict[str, Any]) -> str:
    return format_implementations(
        await client.implementations(a["file_path"], a["line"], a["column"])
    )


_FILE = _Field("file_path", _Kind.STRING)
_FILE_ONLY = (_FILE,)
_AT_POSITION = (_FILE, _Field("line", _Kind.UINT32), _Field("column", _Kind.UINT32))

_TOOLS: tuple[tuple[ToolSpec, _Runner], ...] = (
    (
        ToolSpec(
            "hover",
            "Get type information and documentation at a specific position",
            _AT_POSITION,
        ),
        _hover,
    ),
    (
        ToolSpec(
            "completion", "Get code completions at a specific position", _AT_POSITION
        ),
        _completion,
    ),
    (
        ToolSpec(
            "diagnostics", "Get compile errors and warnings for a file", _FILE_ONLY
        ),
        _diagnostics,
    ),
    (
        ToolSpec(
            "goto_definition", "Find definition of symbol at position", _AT_POSITION
        ),
        _goto_definition,
    ),
    (
        ToolSpec(
            "find_references",
            "Find all references to symbol at position",
            _AT_POSITION + (_Field("include_declaration", _Kind.BOOLEAN, True),),
        ),
        _find_references,
    ),
    (ToolSpec("format_document", "Format Rust code", _FILE_ONLY), _format_document),
    (
        ToolSpec(
            "rename",
            "Rename symbols across the entire workspace safely",
            _AT_POSITION + (_Field("new_name", _Kind.STRING),),
        ),
        _rename,
    ),
    (
        ToolSpec(
            "code_actions", "Get available quick fixes and refactorings", _AT_POSITION
        ),
        _code_actions,
    ),
    (
        ToolSpec(
            "workspace_symbols",
            "Search for symbols across entire workspace",
            (_Field("query", _Kind.STRING),),
        ),
        _workspace_symbols,
    ),
    (ToolSpec("inlay_hints", "Get type and parameter hints", _FILE_ONLY), _inlay_hints),
    (
        ToolSpec(
            "expand_macro", "Expand Rust macros to see generated code", _AT_POSITION
        ),
        _expand_macro,
    ),
    (
        ToolSpec(
            "document_symbols",
            "Get document structure and symbols for code analysis",
            _FILE_ONLY,
        ),
        _document_symbols,
    ),
    (
        ToolSpec(
            "signature_help",
            "Get function signature help for parameter assistance",
            _AT_POSITION,
        ),
        _signature_help,
    ),
    (
        ToolSpec(
            "document_highlight",
            "Highlight all occurrences of symbol at position",
            _AT_POSITION,
        ),
        _document_highlight,
    ),
    (
        ToolSpec(
            "selection_range",
            "Get smart selection ranges for code expansion",
            (_FILE, _Field("positions", _Kind.POSITIONS)),
        ),
        _selection_range,
    ),
    (
        ToolSpec(
            "runnables",
            "Find runnable items (tests, benchmarks, executables) with cargo commands",
            _FILE_ONLY,
        ),
        _runnables,
    ),
    (
        ToolSpec(
            "implementations",
            "Find all implementations of a trait at the given position",
            _AT_POSITION,
        ),
        _implementations,
    ),
)


class ToolService:
    """Dispatches tool calls to a language server client, one call at a time."""

    def __init__(self, client: Any) -> None:
        self.client = client
        self._lock = asyncio.Lock()
        self._tools: dict[str, tuple[ToolSpec, _Runner]] = {
            spec.name: (spec, runner) for spec, runner in _TOOLS
        }

    def list_tools(self) -> list[ToolSpec]:
        """All tools, in the order they are offered."""
        return [spec for spec, _ in self._tools.values()]

    async def call_tool(self, name: str, arguments: Any = None) -> str:
        """Run a tool and return its text result.

        Raises ToolError with INVALID_PARAMS for unknown tools and bad
        arguments, and with INTERNAL_ERROR when the language server fails.
        """
        try:
            spec, runner = self._tools[name]
        except KeyError:
            raise _invalid(f"tool not found: {name}") from None
        values = _parse_arguments(spec, arguments)
        async with self._lock:
            try:
                return await runner(self.client, values)
            except LspError as exc:
                raise ToolError(f"LSP error: {exc}", INTERNAL_ERROR) from exc
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                logger.debug("Malformed response for %s: %r", name, exc)
                raise ToolError(
                    f"LSP error: malformed response: {exc!r}", INTERNAL_ERROR
                ) from exc