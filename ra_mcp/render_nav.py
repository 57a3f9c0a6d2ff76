"""Plain-text renderings of hover, completion, diagnostic, navigation and edit results."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from ra_mcp.kinds import severity_name
from ra_mcp.uris import uri_display_path, uri_path

MAX_COMPLETIONS = 10


def _marked_text(value: Any) -> str:
    """Text of a MarkedString, MarkupContent or Documentation value."""
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping) and isinstance(value.get("value"), str):
        return value["value"]
    raise ValueError(f"unrecognised marked text: {value!r}")


def _documentation(value: Any) -> str:
    return "" if value is None else _marked_text(value)


def _start(range_: Mapping[str, Any]) -> tuple[int, int]:
    start = range_["start"]
    return start["line"], start["character"]


def _escaped(text: str) -> str:
    return text.rstrip("\n").replace("\n", "\\n")


def format_hover(hover: Mapping[str, Any] | None) -> str:
    """Render a hover result."""
    if hover is None:
        return "No hover information available"
    try:
        contents = hover["contents"]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"hover has no contents: {hover!r}") from exc
    if isinstance(contents, list):
        return "\n\n".join(_marked_text(item) for item in contents)
    return _marked_text(contents)


def format_completion(response: Any) -> str:
    """Render up to the first ten completion items."""
    if response is None:
        return "No completions available"
    if isinstance(response, Mapping):
        items = response.get("items") or []
    else:
        items = response
    lines = []
    for item in list(items)[:MAX_COMPLETIONS]:
        detail = item.get("detail") or ""
        doc = _documentation(item.get("documentation"))
        if doc:
            lines.append(f"- {item['label']}: {detail} - {doc}")
        else:
            lines.append(f"- {item['label']}: {detail}")
    return "Completions:\n" + "\n".join(lines)


def format_diagnostics(diagnostics: Iterable[Mapping[str, Any]]) -> str:
    """Render diagnostics with severity, range, message and source."""
    lines = []
    for diag in diagnostics:
        severity = severity_name(diag.get("severity"))
        start = diag["range"]["start"]
        end = diag["range"]["end"]
        span = f"{start['line']}:{start['character']}-{end['line']}:{end['character']}"
        source = diag.get("source") or ""
        lines.append(f"[{severity}] {span}: {diag['message']} ({source})")
    if not lines:
        return "No diagnostics found"
    return "Diagnostics:\n" + "\n".join(lines)


def _definition_locations(response: Any) -> list[tuple[str, Mapping[str, Any]]]:
    if isinstance(response, Mapping):
        return [(response["uri"], response["range"])]
    locations = []
    for item in response:
        if "targetUri" in item:
            locations.append((item["targetUri"], item["targetSelectionRange"]))
        else:
            locations.append((item["uri"], item["range"]))
    return locations


def format_definition(response: Any) -> str:
    """Render a definition result: a location, locations or location links."""
    if response is None:
        return "No definition found"
    locations = _definition_locations(response)
    if not locations:
        return "No definition found"
    lines = []
    for uri, range_ in locations:
        line, character = _start(range_)
        lines.append(f"Definition at: {uri_display_path(uri)}:{line}:{character}")
    return "Found definitions:\n" + "\n".join(lines)


def format_references(locations: Iterable[Mapping[str, Any]] | None) -> str:
    """Render reference locations."""
    lines = []
    for loc in locations or []:
        line, character = _start(loc["range"])
        lines.append(f"Reference at: {uri_display_path(loc['uri'])}:{line}:{character}")
    if not lines:
        return "No references found"
    return "Found references:\n" + "\n".join(lines)


def format_formatting(edits: list[Any] | None) -> str:
    """Summarise the edits a formatting request would make."""
    if not edits:
        return "No formatting changes needed"
    return f"Formatting would apply {len(edits)} edits to the file"


def _is_text_document_edit(change: Any) -> bool:
    return (
        isinstance(change, Mapping)
        and "textDocument" in change
        and "edits" in change
    )


def _edit_lines(edit: Mapping[str, Any]) -> tuple[int, int]:
    range_ = edit["range"]
    return range_["start"]["line"] + 1, range_["end"]["line"] + 1


def format_rename(workspace_edit: Mapping[str, Any] | None, new_name: str) -> str:
    """Describe the changes a rename would make."""
    if workspace_edit is None:
        return "Cannot rename at this position"
    described: list[str] = []
    for uri, edits in (workspace_edit.get("changes") or {}).items():
        described.append(f"File: {uri_path(uri)}")
        for edit in edits:
            first, last = _edit_lines(edit)
            described.append(
                f"  - Line {first}-{last}: Replace '{_escaped(edit['newText'])}' "
                f"with '{new_name}'"
            )
    for change in workspace_edit.get("documentChanges") or []:
        if _is_text_document_edit(change):
            described.append(f"File: {uri_path(change['textDocument']['uri'])}")
            for edit in change["edits"]:
                first, last = _edit_lines(edit)
                described.append(
                    f"  - Line {first}-{last}: Replace with '{_escaped(edit['newText'])}'"
                )
        else:
            described.append("  - Other document changes (create/rename/delete)")
    if not described:
        return "No changes needed for rename"
    return "Rename operation would make the following changes:\n\n" + "\n".join(
        described
    )


def _describe_code_action(action: Mapping[str, Any]) -> list[str]:
    kind = f" ({action['kind']})" if action.get("kind") is not None else ""
    diagnostics = action.get("diagnostics") or []
    fixes = f" [Fixes {len(diagnostics)} diagnostic(s)]" if diagnostics else ""
    lines = [f"• {action['title']}{kind}{fixes}"]
    edit = action.get("edit")
    if edit:
        for uri, edits in (edit.get("changes") or {}).items():
            if edits:
                lines.append(f"  → Modifies: {uri_path(uri)}")
        document_changes = edit.get("documentChanges")
        if document_changes is not None:
            if all(_is_text_document_edit(change) for change in document_changes):
                lines.extend(
                    f"  → Modifies: {uri_path(change['textDocument']['uri'])}"
                    for change in document_changes
                )
            else:
                lines.append(f"  → {len(document_changes)} workspace operations")
    return lines


def format_code_actions(actions: Iterable[Mapping[str, Any]] | None) -> str:
    """Describe available code actions and commands."""
    described: list[str] = []
    for action in actions or []:
        if isinstance(action.get("command"), str):
            described.append(f"• {action['title']} (command: {action['command']})")
        else:
            described.extend(_describe_code_action(action))
    if not described:
        return "No code actions available at this position"
    return "Available code actions:\n\n" + "\n".join(described)