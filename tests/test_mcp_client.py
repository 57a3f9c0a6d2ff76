import json
import shlex
import sys

import pytest

from ra_mcp.mcp_client import McpClient, McpClientError, main, run_demo

FAKE_SERVER = r'''
import json
import sys

seen = []
PAGES = {
    None: {"tools": [{"name": "hover", "description": "h"}], "nextCursor": "2"},
    "2": {"tools": [{"name": "diagnostics", "description": "d"}]},
}


def send(message):
    sys.stdout.write(json.dumps(message) + "\n")
    sys.stdout.flush()


for raw in sys.stdin:
    raw = raw.strip()
    if not raw:
        continue
    msg = json.loads(raw)
    method = msg.get("method")
    seen.append(method)
    if "id" not in msg:
        continue
    params = msg.get("params") or {}
    if method == "initialize":
        result = {
            "protocolVersion": params["protocolVersion"],
            "capabilities": {"tools": {}},
            "serverInfo": {"name": "fake", "version": "0"},
        }
    elif method == "tools/list":
        result = PAGES[params.get("cursor")]
    elif method == "tools/call":
        name = params["name"]
        send({"jsonrpc": "2.0", "method": "notifications/message", "params": {}})
        if name == "fail":
            send({"jsonrpc": "2.0", "id": msg["id"],
                  "error": {"code": -32602, "message": "tool not found: fail"}})
            continue
        if name == "methods":
            text = json.dumps(seen)
        else:
            text = json.dumps({"name": name, "arguments": params.get("arguments")})
        result = {"content": [{"type": "text", "text": text}], "isError": False}
    else:
        send({"jsonrpc": "2.0", "id": msg["id"],
              "error": {"code": -32601, "message": "Method not found"}})
        continue
    send({"jsonrpc": "2.0", "id": msg["id"], "result": result})
'''


@pytest.fixture
def server_command(tmp_path):
    script = tmp_path / "fake_server.py"
    script.write_text(FAKE_SERVER)
    return [sys.executable, str(script)]


def _text(result):
    return json.loads(result["content"][0]["text"])


@pytest.mark.asyncio
async def test_initialize_records_server_info(server_command):
    async with McpClient(server_command) as client:
        assert client.server_info["serverInfo"]["name"] == "fake"
        assert client.server_info["protocolVersion"] == "2024-11-05"


@pytest.mark.asyncio
async def test_list_tools_follows_cursor(server_command):
    async with McpClient(server_command) as client:
        tools = await client.list_tools()
    assert [tool["name"] for tool in tools] == ["hover", "diagnostics"]


@pytest.mark.asyncio
async def test_call_tool_sends_arguments_and_skips_notifications(server_command):
    arguments = {"file_path": "/tmp/x.rs", "line": 3, "column": 4}
    async with McpClient(server_command) as client:
        result = await client.call_tool("hover", arguments)
    assert _text(result) == {"name": "hover", "arguments": arguments}
    assert result["isError"] is False


@pytest.mark.asyncio
async def test_handshake_sends_initialized_notification(server_command):
    async with McpClient(server_command) as client:
        result = await client.call_tool("methods", {})
    assert _text(result) == ["initialize", "notifications/initialized", "tools/call"]


@pytest.mark.asyncio
async def test_error_response_raises_with_code(server_command):
    async with McpClient(server_command) as client:
        with pytest.raises(McpClientError) as info:
            await client.call_tool("fail", {})
        # the connection stays usable after an error
        result = await client.call_tool("hover", {"line": 1})
    assert info.value.code == -32602
    assert "fail" in info.value.message
    assert _text(result)["arguments"] == {"line": 1}


@pytest.mark.asyncio
async def test_call_before_start_raises(server_command):
    client = McpClient(server_command)
    with pytest.raises(McpClientError):
        await client.call_tool("hover", {})


@pytest.mark.asyncio
async def test_server_that_exits_fails_start():
    client = McpClient([sys.executable, "-c", "pass"])
    with pytest.raises(McpClientError):
        await client.start()
    with pytest.raises(McpClientError):
        await client.list_tools()


@pytest.mark.asyncio
async def test_missing_program_fails_start(tmp_path):
    client = McpClient([str(tmp_path / "no-such-server")])
    with pytest.raises(McpClientError):
        await client.start()


def test_empty_command_rejected():
    with pytest.raises(ValueError):
        McpClient([])


@pytest.mark.asyncio
async def test_run_demo_calls_every_step(server_command, tmp_path):
    results = await run_demo(server_command, tmp_path)
    calls = [_text(result) for _, result in results]
    assert len(results) == 17
    main_rs = str(tmp_path / "src" / "main.rs")
    test_rs = str(tmp_path / "examples" / "test_file.rs")
    assert calls[0] == {
        "name": "hover",
        "arguments": {"file_path": main_rs, "line": 50, "column": 8},
    }
    rename = next(call for call in calls if call["name"] == "rename")
    assert rename["arguments"]["new_name"] == "RustAnalyzerMCPServer"
    symbols = next(call for call in calls if call["name"] == "workspace_symbols")
    assert symbols["arguments"] == {"query": "Rust"}
    assert calls[-1]["arguments"] == {"file_path": test_rs, "line": 7, "column": 6}
    refs = next(call for call in calls if call["name"] == "find_references")
    assert refs["arguments"]["include_declaration"] is True


def test_main_succeeds_with_server(server_command, tmp_path):
    server = " ".join(shlex.quote(part) for part in server_command)
    assert main(["--server", server, "--project", str(tmp_path)]) == 0


def test_main_reports_failing_server(tmp_path):
    server = shlex.join([sys.executable, "-c", "pass"])
    assert main(["--server", server, "--project", str(tmp_path)]) == 1