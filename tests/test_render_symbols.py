import json

import pytest

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
from ra_mcp.uris import uri_display_path

URI = "file:///tmp/proj/src/lib.rs"
PATH = uri_display_path(URI)


def _range(sl, sc, el=None, ec=None):
    return {
        "start": {"line": sl, "character": sc},
        "end": {"line": sl if el is None else el, "character": sc if ec is None else ec},
    }


def _location(line, character, uri=URI):
    return {"uri": uri, "range": _range(line, character)}


def _symbol(name, kind=23, line=2, character=4, container=None):
    symbol = {"name": name, "kind": kind, "location": _location(line, character)}
    if container is not None:
        symbol["containerName"] = container
    return symbol


# workspace symbols

@pytest.mark.parametrize("symbols", [None, []])
def test_workspace_symbols_empty(symbols):
    assert format_workspace_symbols(symbols) == "No symbols found matching the query"


def test_workspace_symbols_single_line():
    result = format_workspace_symbols([_symbol("Greeter", container="api")])
    assert result == f"Found symbols:\n• Greeter [STRUCT]: {PATH}:3:5 (in api)"


def test_workspace_symbols_limited_to_twenty():
    symbols = [_symbol(f"sym{i}") for i in range(25)]
    lines = format_workspace_symbols(symbols).split("\n")
    assert len(lines) == 21
    assert "sym19 " in lines[-1]
    assert all("sym20 " not in line for line in lines)


def test_workspace_symbols_without_container():
    result = format_workspace_symbols([_symbol("Greeter")])
    assert "(in" not in result
    assert result.startswith("Found symbols:\n• Greeter ")


# inlay hints

@pytest.mark.parametrize("hints", [None, []])
def test_inlay_hints_empty(hints):
    assert format_inlay_hints(hints) == "No inlay hints available"


def test_inlay_hint_string_label_with_kind():
    hints = [{"position": {"line": 0, "character": 4}, "label": ": i32", "kind": 1}]
    assert format_inlay_hints(hints) == "Inlay hints:\nLine 1:5: : i32 (TYPE)"


def test_inlay_hint_label_parts_are_joined():
    hints = [
        {
            "position": {"line": 3, "character": 1},
            "label": [{"value": ": "}, {"value": "Vec<u8>"}],
        }
    ]
    result = format_inlay_hints(hints)
    assert result.endswith(": Vec<u8>")
    assert result.startswith("Inlay hints:\n")


def test_inlay_hints_limited_to_fifty():
    hints = [
        {"position": {"line": i, "character": 0}, "label": f"h{i}"} for i in range(60)
    ]
    assert len(format_inlay_hints(hints).split("\n")) == 51


# macro expansion

@pytest.mark.parametrize("expansion", [None, "", "   \n", {"expansion": " "}])
def test_macro_expansion_missing(expansion):
    assert (
        format_macro_expansion(expansion)
        == "No macro expansion available at this position"
    )


def test_macro_expansion_string():
    assert (
        format_macro_expansion("fn x() {}")
        == "Macro expansion:\n```rust\nfn x() {}\n```"
    )


def test_macro_expansion_object_field():
    result = format_macro_expansion({"name": "vec", "expansion": "Vec::new()"})
    assert result == "Macro expansion:\n```rust\nVec::new()\n```"


def _payload(result, prefix="Macro expansion:\n```rust\nMacro expansion result: "):
    assert result.startswith(prefix)
    assert result.endswith("\n```")
    return json.loads(result[len(prefix): -len("\n```")])


def test_macro_expansion_object_without_field_round_trips():
    value = {"name": "vec", "other": [1, 2]}
    result = format_macro_expansion(value)
    assert _payload(result) == value
    assert "\n  " in result


def test_macro_expansion_other_value_round_trips():
    value = [1, "two", True]
    result = format_macro_expansion(value)
    assert _payload(result) == value
    assert "\n  " not in result


# document symbols

def test_document_symbols_none():
    assert format_document_symbols(None) == "No symbols found in document"


def test_document_symbols_empty_list():
    assert format_document_symbols([]) == "Document symbols:\n"


def test_document_symbols_flat_matches_workspace_lines():
    symbols = [_symbol("A", container="m"), _symbol("B", kind=12, line=7)]
    flat = format_document_symbols(symbols).split("\n")
    workspace = format_workspace_symbols(symbols).split("\n")
    assert flat[0] == "Document symbols:"
    assert flat[1:] == workspace[1:]


def test_document_symbols_nested_indentation():
    tree = [
        {
            "name": "Outer",
            "kind": 2,
            "range": _range(0, 0, 10, 1),
            "selectionRange": _range(0, 4),
            "children": [
                {
                    "name": "Inner",
                    "kind": 23,
                    "range": _range(1, 4, 5, 5),
                    "selectionRange": _range(1, 11),
                    "children": [
                        {
                            "name": "field",
                            "kind": 8,
                            "range": _range(2, 8),
                            "selectionRange": _range(2, 8),
                            "children": [],
                        }
                    ],
                }
            ],
        }
    ]
    lines = format_document_symbols(tree).split("\n")
    assert lines[1] == "• Outer [MODULE]: line 1:1"
    assert lines[2].startswith("  • Inner ")
    assert lines[3].startswith("    • field ")
    assert len(lines) == 4


# signature help

@pytest.mark.parametrize("help_", [None, {"signatures": []}])
def test_signature_help_empty(help_):
    assert format_signature_help(help_) == "No signature help available"


def test_signature_help_full_example():
    help_ = {
        "signatures": [
            {
                "label": "fn add(a: i32, b: i32)",
                "documentation": {"kind": "markdown", "value": "Adds."},
                "parameters": [
                    {"label": "a: i32"},
                    {"label": [15, 21], "documentation": "second"},
                ],
            }
        ],
        "activeParameter": 1,
    }
    assert format_signature_help(help_) == (
        "Signature help:\n1. fn add(a: i32, b: i32)\n   Adds.\n   Parameters:"
        "\n   a: i32\n → fn add(a: i32, b: i32)[15:21] - second"
    )


def test_signature_help_defaults_to_first_parameter():
    help_ = {"signatures": [{"label": "f(x)", "parameters": [{"label": "x"}]}]}
    lines = format_signature_help(help_).split("\n")
    assert lines[-1] == " → x"


def test_signature_help_without_parameters_and_numbering():
    help_ = {"signatures": [{"label": "f()"}, {"label": "g()"}]}
    result = format_signature_help(help_)
    assert "Parameters:" not in result
    assert result.split("\n\n") == ["Signature help:\n1. f()", "2. g()"]


# highlights

@pytest.mark.parametrize("highlights", [None, []])
def test_highlights_empty(highlights):
    assert format_highlights(highlights) == "No highlights found at this position"


def test_highlights_with_and_without_kind():
    result = format_highlights(
        [{"range": _range(0, 1, 0, 5), "kind": 3}, {"range": _range(4, 0, 4, 2)}]
    )
    lines = result.split("\n")
    assert lines[1] == "Line 1:2-1:6 (WRITE)"
    assert lines[2].startswith("Line ")
    assert not lines[2].endswith(")")


# selection ranges

@pytest.mark.parametrize("ranges", [None, []])
def test_selection_ranges_empty(ranges):
    assert format_selection_ranges(ranges) == "No selection ranges found"


def test_selection_range_parent_chain():
    chain = {
        "range": _range(1, 2, 1, 3),
        "parent": {
            "range": _range(1, 0, 1, 9),
            "parent": {"range": _range(0, 0, 5, 0)},
        },
    }
    lines = format_selection_ranges([chain]).split("\n")
    assert lines[0] == "Selection ranges:"
    assert lines[1] == "Position 1:"
    assert lines[2] == "Level 0: Line 2:3-2:4"
    assert lines[3].startswith("  Level 1: ")
    assert lines[4].startswith("    Level 2: ")
    assert len(lines) == 5


def test_selection_ranges_separate_positions():
    result = format_selection_ranges(
        [{"range": _range(0, 0)}, {"range": _range(1, 0)}]
    )
    blocks = result.split("\n\n")
    assert len(blocks) == 2
    assert blocks[1].startswith("Position 2:")


# runnables

def _runnable(label="test_greet", kind="cargo", line=96, character=4, cargo=None):
    runnable = {
        "label": label,
        "kind": kind,
        "location": {"targetUri": URI, "range": _range(line, character)},
    }
    if cargo is not None:
        runnable["args"] = {"cargoArgs": cargo}
    return runnable


def test_runnables_none_and_empty():
    assert format_runnables(None) == "No runnable items found"
    assert format_runnables([]) == "No runnable items found"


def test_runnables_unexpected_format():
    assert format_runnables({"label": "x"}) == "Unexpected runnables response format"


def test_runnables_all_invalid():
    assert (
        format_runnables([{"label": "x"}, "text", 3]) == "No valid runnable items found"
    )


def test_runnable_with_cargo_command():
    result = format_runnables([_runnable(cargo=["test", "--package", "demo"])])
    assert result == (
        "Runnable items:\n1. test_greet [cargo] at line 97:5 → cargo test --package demo"
    )


def test_runnables_keep_original_numbering():
    result = format_runnables([{"label": "broken"}, _runnable(label="ok")])
    assert result.startswith("Runnable items:\n2. ok ")
    assert "broken" not in result


def test_runnable_non_string_fields_and_empty_cargo():
    result = format_runnables([_runnable(label=5, kind=None, cargo=[1, 2])])
    assert "Unknown [Unknown]" in result
    assert "cargo" not in result


# implementations

@pytest.mark.parametrize("locations", [None, []])
def test_implementations_empty(locations):
    assert format_implementations(locations) == "No implementations found"


def test_implementations_numbered():
    result = format_implementations([_location(30, 0), _location(42, 0)])
    lines = result.split("\n")
    assert lines[0] == "Found implementations:"
    assert lines[1] == f"1. Implementation at: {PATH}:31:1"
    assert lines[2].startswith(f"2. Implementation at: {PATH}:")


def test_implementations_non_file_uri_shown_as_is():
    uri = "untitled:Scratch"
    result = format_implementations([_location(0, 0, uri=uri)])
    assert f"Implementation at: {uri}:" in result