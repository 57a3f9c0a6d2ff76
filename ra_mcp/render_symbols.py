"""Plain-text renderings of symbol, hint, macro, signature, highlight, selection,
runnable and implementation results."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any

from ra_mcp.kinds import highlight_kind_name, inlay_hint_kind_name, symbol_kind_name
from ra_mcp.uris import uri_display_path

MAX_WORKSPACE_SYMBOLS = 20
MAX_INLAY_HINTS = 50

_MISSING = object()


def _text(value: Any) -> str:
    """Text of a Documentation or MarkupContent value."""
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping) and isinstance(value.get("value"), str):
        return value["value"]
    raise ValueError(f"unrecognised documentation: {value!r}")


def _one_based(position: Mapping[str, Any]) -> str:
    return f"{position['line'] + 1}:{position['character'] + 1}"


def _span(range_: Mapping[str, Any]) -> str:
    return f"{_one_based(range_['start'])}-{_one_based(range_['end'])}"


def _symbol_information_line(symbol: Mapping[str, Any]) -> str:
    location = symbol["location"]
    path = uri_display_path(location["uri"])
    kind = symbol_kind_name(symbol["kind"])
    container_name = symbol.get("containerName")
    container = f" (in {container_name})" if container_name is not None else ""
    return (
        f"• {symbol['name']} [{kind}]: {path}:"
        f"{_one_based(location['range']['start'])}{container}"
    )


def format_workspace_symbols(symbols: Iterable[Mapping[str, Any]] | None) -> str:
    """Render up to the first twenty workspace symbols."""
    lines = [
        _symbol_information_line(symbol)
        for symbol in list(symbols or [])[:MAX_WORKSPACE_SYMBOLS]
    ]
    if not lines:
        return "No symbols found matching the query"
    return "Found symbols:\n" + "\n".join(lines)


def _hint_label(label: Any) -> str:
    if isinstance(label, str):
        return label
    return "".join(part["value"] for part in label)


def format_inlay_hints(hints: Iterable[Mapping[str, Any]] | None) -> str:
    """Render up to the first fifty inlay hints."""
    lines = []
    for hint in list(hints or [])[:MAX_INLAY_HINTS]:
        kind = hint.get("kind")
        suffix = f" ({inlay_hint_kind_name(kind)})" if kind is not None else ""
        lines.append(
            f"Line {_one_based(hint['position'])}: {_hint_label(hint['label'])}{suffix}"
        )
    if not lines:
        return "No inlay hints available"
    return "Inlay hints:\n" + "\n".join(lines)


def format_macro_expansion(expansion: Any) -> str:
    """Render a macro expansion result as a fenced code block."""
    no_expansion = "No macro expansion available at this position"
    if expansion is None:
        return no_expansion
    if isinstance(expansion, str):
        text = expansion
    elif isinstance(expansion, Mapping):
        expanded = expansion.get("expansion")
        if isinstance(expanded, str):
            text = expanded
        else:
            pretty = json.dumps(expansion, indent=2, ensure_ascii=False)
            text = f"Macro expansion result: {pretty}"
    else:
        compact = json.dumps(expansion, separators=(",", ":"), ensure_ascii=False)
        text = f"Macro expansion result: {compact}"
    if not text.strip():
        return no_expansion
    return f"Macro expansion:\n```rust\n{text}\n```"


def _nested_symbol_lines(symbols: Iterable[Mapping[str, Any]], depth: int) -> str:
    rendered = []
    indent = "  " * depth
    for symbol in symbols:
        kind = symbol_kind_name(symbol["kind"])
        text = (
            f"{indent}• {symbol['name']} [{kind}]: "
            f"line {_one_based(symbol['range']['start'])}"
        )
        children = symbol.get("children")
        if children:
            text += "\n" + _nested_symbol_lines(children, depth + 1)
        rendered.append(text)
    return "\n".join(rendered)


def format_document_symbols(response: list[Mapping[str, Any]] | None) -> str:
    """Render flat symbol information or a nested symbol tree."""
    if response is None:
        return "No symbols found in document"
    symbols = list(response)
    if not symbols or "location" in symbols[0]:
        text = "\n".join(_symbol_information_line(symbol) for symbol in symbols)
    else:
        text = _nested_symbol_lines(symbols, 0)
    return f"Document symbols:\n{text}"


def _parameter_label(label: Any, signature_label: str) -> str:
    if isinstance(label, str):
        return label
    start, end = label
    return f"{signature_label}[{start}:{end}]"


def _describe_signature(
    index: int, signature: Mapping[str, Any], active_parameter: int
) -> str:
    label = signature["label"]
    text = f"{index}. {label}"
    documentation = signature.get("documentation")
    if documentation is not None:
        doc_text = _text(documentation)
        if doc_text:
            text += f"\n   {doc_text}"
    parameters = signature.get("parameters")
    if parameters is not None:
        text += "\n   Parameters:"
        for position, parameter in enumerate(parameters):
            marker = " → " if position == active_parameter else "   "
            text += f"\n{marker}{_parameter_label(parameter['label'], label)}"
            param_doc = parameter.get("documentation")
            if param_doc is not None:
                param_text = _text(param_doc)
                if param_text:
                    text += f" - {param_text}"
    return text


def format_signature_help(help: Mapping[str, Any] | None) -> str:
    """Render signatures with their parameters, marking the active one."""
    if help is None or not help.get("signatures"):
        return "No signature help available"
    active_parameter = help.get("activeParameter") or 0
    rendered = [
        _describe_signature(index, signature, active_parameter)
        for index, signature in enumerate(help["signatures"], start=1)
    ]
    return "Signature help:\n" + "\n\n".join(rendered)


def format_highlights(highlights: Iterable[Mapping[str, Any]] | None) -> str:
    """Render document highlight ranges."""
    lines = []
    for highlight in highlights or []:
        kind = highlight.get("kind")
        suffix = f" ({highlight_kind_name(kind)})" if kind is not None else ""
        lines.append(f"Line {_span(highlight['range'])}{suffix}")
    if not lines:
        return "No highlights found at this position"
    return "Document highlights:\n" + "\n".join(lines)


def _describe_selection(index: int, selection: Mapping[str, Any]) -> str:
    text = f"Position {index}:"
    level = 0
    current: Mapping[str, Any] | None = selection
    while current is not None:
        indent = "  " * level
        text += f"\n{indent}Level {level}: Line {_span(current['range'])}"
        current = current.get("parent")
        level += 1
    return text


def format_selection_ranges(ranges: Iterable[Mapping[str, Any]] | None) -> str:
    """Render each selection range with its chain of parents."""
    rendered = [
        _describe_selection(index, selection)
        for index, selection in enumerate(ranges or [], start=1)
    ]
    if not rendered:
        return "No selection ranges found"
    return "Selection ranges:\n" + "\n\n".join(rendered)


def _get(value: Any, key: str) -> Any:
    if isinstance(value, Mapping) and key in value:
        return value[key]
    return _MISSING


def _string_or_unknown(value: Any) -> str:
    return value if isinstance(value, str) else "Unknown"


def _count(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return 0


def _cargo_command(runnable: Mapping[str, Any]) -> str:
    cargo_args = _get(_get(runnable, "args"), "cargoArgs")
    if not isinstance(cargo_args, list):
        return ""
    parts = [arg for arg in cargo_args if isinstance(arg, str)]
    return f" → cargo {' '.join(parts)}" if parts else ""


def _describe_runnable(index: int, runnable: Any) -> str | None:
    label = _get(runnable, "label")
    kind = _get(runnable, "kind")
    start = _get(_get(_get(runnable, "location"), "range"), "start")
    line = _get(start, "line")
    character = _get(start, "character")
    if _MISSING in (label, kind, line, character):
        return None
    return (
        f"{index}. {_string_or_unknown(label)} [{_string_or_unknown(kind)}] "
        f"at line {_count(line) + 1}:{_count(character) + 1}{_cargo_command(runnable)}"
    )


def format_runnables(runnables: Any) -> str:
    """Render runnable items with the cargo command that runs each."""
    if runnables is None:
        return "No runnable items found"
    if not isinstance(runnables, list):
        return "Unexpected runnables response format"
    if not runnables:
        return "No runnable items found"
    lines = [
        line
        for index, runnable in enumerate(runnables, start=1)
        if (line := _describe_runnable(index, runnable)) is not None
    ]
    if not lines:
        return "No valid runnable items found"
    return "Runnable items:\n" + "\n".join(lines)


def format_implementations(locations: Iterable[Mapping[str, Any]] | None) -> str:
    """Render numbered implementation locations."""
    lines = [
        f"{index}. Implementation at: {uri_display_path(loc['uri'])}:"
        f"{_one_based(loc['range']['start'])}"
        for index, loc in enumerate(locations or [], start=1)
    ]
    if not lines:
        return "No implementations found"
    return "Found implementations:\n" + "\n".join(lines)