# ra-mcp

A Model Context Protocol (MCP) server that makes rust-analyzer's language features available to MCP clients. It starts `rust-analyzer` as a child process, talks to it over the Language Server Protocol, and offers the results as plain-text tools. MCP messages are newline-delimited JSON-RPC on stdin and stdout.

## Requirements

- Python 3.10 or newer
- `rust-analyzer` on your `PATH` (or another command given with `--command`)

## Installation

```sh
pip install .
```

## Running the server

Start it from the root of a Rust workspace. The current directory becomes the workspace root unless `--workspace` is given:

```sh
cd path/to/your/crate
ra-mcp
```

Options:

- `--workspace DIR`: the workspace root to hand to the language server.
- `--command "CMD ARGS"`: the language server command line to start instead of `rust-analyzer`.

The server answers `initialize`, `ping`, `tools/list` and `tools/call`; any other request gets a "method not found" error. Logs go to stderr at INFO level. The language server's own stderr is discarded.

## Tools

| Tool | Arguments | What it returns |
|------|-----------|-----------------|
| `hover` | `file_path`, `line`, `column` | Type information and documentation |
| `completion` | `file_path`, `line`, `column` | The first 10 completions |
| `diagnostics` | `file_path` | Compile errors and warnings |
| `goto_definition` | `file_path`, `line`, `column` | Definition locations |
| `find_references` | `file_path`, `line`, `column`, `include_declaration` (defaults to true) | Reference locations |
| `format_document` | `file_path` | How many formatting edits would apply |
| `rename` | `file_path`, `line`, `column`, `new_name` | A summary of the edits a rename would make |
| `code_actions` | `file_path`, `line`, `column` | Quick fixes and refactorings |
| `workspace_symbols` | `query` | Up to 20 matching symbols |
| `inlay_hints` | `file_path` | Up to 50 type and parameter hints |
| `expand_macro` | `file_path`, `line`, `column` | The macro's expanded code |
| `document_symbols` | `file_path` | The document's symbol structure |
| `signature_help` | `file_path`, `line`, `column` | Function signatures and parameters |
| `document_highlight` | `file_path`, `line`, `column` | Occurrences of the symbol |
| `selection_range` | `file_path`, `positions` (a list of `{line, column}`) | Nested selection ranges |
| `runnables` | `file_path` | Tests, benchmarks and binaries with their cargo commands |
| `implementations` | `file_path`, `line`, `column` | Trait implementations |

`file_path` must be absolute. Lines and columns you pass in are zero-based, as in LSP; `line` and `column` must be non-negative integers that fit in 32 bits. A document is opened on the language server the first time a tool touches it and stays open after that. Tool calls are run one at a time.

Unknown tools and bad arguments are answered with JSON-RPC error `-32602`; failures of the language server, or responses it sends in an unexpected shape, with `-32603`.

## What it does not do

The tools only report. `format_document` counts the edits and `rename` describes them; neither changes any file. The server offers tools only: no resources, prompts or other MCP features.

## Trying it out

`ra-mcp-demo` starts a server as a child process, lists its tools, and calls each one against `src/main.rs` and `examples/test_file.rs` in the project directory, at fixed positions:

```sh
cd path/to/your/crate
ra-mcp-demo
```

Options:

- `--project DIR`: the project directory (default: the current directory).
- `--server "CMD ARGS"`: the server command line (default: this package's server run with the current Python, for the project directory).

Results are written to the log on stderr.

## Using it from Python

```python
import asyncio
from ra_mcp.mcp_client import McpClient

async def show_hover():
    async with McpClient(["ra-mcp"]) as client:
        tools = await client.list_tools()
        print([tool["name"] for tool in tools])
        result = await client.call_tool(
            "hover", {"file_path": "/path/to/src/main.rs", "line": 10, "column": 4}
        )
        print(result["content"][0]["text"])

asyncio.run(show_hover())
```

`McpClient` raises `McpClientError` when the server cannot be reached or answers with an error; the error's `code` holds the JSON-RPC error code.

To work with the language server directly, `ra_mcp.lsp_client.LspClient(workspace_root, command=None)` is an async context manager with one method per request above (`hover`, `completion`, `diagnostics`, `goto_definition`, and so on), plus `open_document`, `close_document`, `request` and `notify`. Its methods return the server's JSON results as plain Python data and raise `LspError` on failure. The functions in `ra_mcp.render_nav` and `ra_mcp.render_symbols` turn those results into the text the tools return.

## Development

```sh
pip install -e ".[test]"
pytest
```