"""``{{path.to.value}}`` placeholder substitution against a context mapping."""

import re
from typing import Any

from markupsafe import Markup, escape

PLACEHOLDER = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")


def resolve_path(data: Any, path: str) -> Any:
    """Dot-path lookup through mappings and sequences; None when unresolved."""
    current = data
    for part in path.split("."):
        if not part:
            return None
        if isinstance(current, dict):
            if part not in current:
                return None
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return None
            current = current[index]
        else:
            return None
    return current


def format_value(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else f"{value:g}"
    return str(value)


def substitute(text: str | None, data: dict[str, Any]) -> str:
    """Replace placeholders with plain-text values; unresolved ones become ''."""
    if not text:
        return ""
    return PLACEHOLDER.sub(lambda m: format_value(resolve_path(data, m.group(1))), text)


def substitute_markup(text: str | None, data: dict[str, Any]) -> Markup:
    """Substitute into author-supplied HTML, escaping only the inserted values."""
    if not text:
        return Markup("")
    return Markup(
        PLACEHOLDER.sub(lambda m: str(escape(format_value(resolve_path(data, m.group(1))))), text)
    )
