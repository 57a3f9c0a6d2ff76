"""Display names of numeric protocol enumerations."""

from __future__ import annotations

_SYMBOL_KINDS = {
    1: "FILE",
    2: "MODULE",
    3: "NAMESPACE",
    4: "PACKAGE",
    5: "CLASS",
    6: "METHOD",
    7: "PROPERTY",
    8: "FIELD",
    9: "CONSTRUCTOR",
    10: "ENUM",
    11: "INTERFACE",
    12: "FUNCTION",
    13: "VARIABLE",
    14: "CONSTANT",
    15: "STRING",
    16: "NUMBER",
    17: "BOOLEAN",
    18: "ARRAY",
    19: "OBJECT",
    20: "KEY",
    21: "NULL",
    22: "ENUM_MEMBER",
    23: "STRUCT",
    24: "EVENT",
    25: "OPERATOR",
    26: "TYPE_PARAMETER",
}

_SEVERITIES = {
    1: "ERROR",
    2: "WARNING",
    3: "INFORMATION",
    4: "HINT",
}

_INLAY_HINT_KINDS = {
    1: "TYPE",
    2: "PARAMETER",
}

_HIGHLIGHT_KINDS = {
    1: "TEXT",
    2: "READ",
    3: "WRITE",
}


def _name(table: dict[int, str], type_name: str, value: int) -> str:
    return table.get(value, f"{type_name}({value})")


def symbol_kind_name(kind: int) -> str:
    """Name of a SymbolKind value."""
    return _name(_SYMBOL_KINDS, "SymbolKind", kind)


def severity_name(severity: int | None) -> str:
    """Name of a DiagnosticSeverity value; "Info" when none is given."""
    if severity is None:
        return "Info"
    return _name(_SEVERITIES, "DiagnosticSeverity", severity)


def inlay_hint_kind_name(kind: int) -> str:
    """Name of an InlayHintKind value."""
    return _name(_INLAY_HINT_KINDS, "InlayHintKind", kind)


def highlight_kind_name(kind: int) -> str:
    """Name of a DocumentHighlightKind value."""
    return _name(_HIGHLIGHT_KINDS, "DocumentHighlightKind", kind)