"""Output sink: render grouped records as JSON or a JavaScript module and write them atomically."""

import contextlib
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any

import structlog

from flg.errors import OutputError
from flg.models import LinkGroup

logger = structlog.get_logger(__name__)

_JS_IDENTIFIER = re.compile(r"^[a-zA-Z_$][a-zA-Z0-9_$]*$")
_JS_RESERVED = frozenset(
    {
        "class", "const", "let", "var", "function", "return", "if", "else",
        "for", "while", "do", "switch", "case", "default", "break", "continue",
        "try", "catch", "finally", "throw", "new", "this", "super", "extends",
        "import", "export", "from", "as", "async", "await", "yield", "static",
        "public", "private", "protected",
    }
)  # fmt: skip
_JS_ESCAPES = str.maketrans({"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"})


def build_document(groups: list[LinkGroup], keep_extra: bool = True) -> list[dict[str, Any]]:
    """Return the output structure: one object per group with its entries."""
    return [
        {
            "group": group.label,
            "groupName": group.name,
            "groupDesc": group.description,
            "entries": [classified.record.to_entry(keep_extra=keep_extra) for classified in group.entries],
        }
        for group in groups
    ]


def render_json(document: list[dict[str, Any]]) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def _js_string(text: str) -> str:
    return f'"{text.translate(_JS_ESCAPES)}"'


def _js_key(key: str) -> str:
    if _JS_IDENTIFIER.match(key) and key not in _JS_RESERVED:
        return key
    return _js_string(key)


def to_js_literal(value: Any, indent_level: int = 0) -> str:
    """Render a JSON-compatible value as a JavaScript literal, two-space indented."""
    indent = "  " * indent_level
    next_indent = "  " * (indent_level + 1)

    if isinstance(value, dict):
        if not value:
            return "{}"
        items = [f"{next_indent}{_js_key(key)}: {to_js_literal(item, indent_level + 1)}" for key, item in value.items()]
        return "{\n" + ",\n".join(items) + f"\n{indent}}}"
    if isinstance(value, list):
        if not value:
            return "[]"
        items = [f"{next_indent}{to_js_literal(item, indent_level + 1)}" for item in value]
        return "[\n" + ",\n".join(items) + f"\n{indent}]"
    if isinstance(value, str):
        return _js_string(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, int | float):
        return json.dumps(value)
    raise TypeError(f"Cannot render {type(value).__name__} as a JavaScript literal")


def render_js(document: list[dict[str, Any]]) -> str:
    return f"export default {to_js_literal(document)};\n"


def render(document: list[dict[str, Any]], fmt: str) -> str:
    match fmt:
        case "json":
            return render_json(document)
        case "js":
            return render_js(document)
        case _:
            raise OutputError(f"Unknown output format '{fmt}'. Valid: json, js")


def write_output(path: Path, content: str) -> None:
    """Replace path with content; on failure any existing file is left as it was."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    except OSError as exc:
        raise OutputError(f"Could not write {path}: {exc}") from exc

    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as fh:
            fh.write(content)
        os.replace(temp_path, path)
    except OSError as exc:
        with contextlib.suppress(OSError):
            os.unlink(temp_path)
        raise OutputError(f"Could not write {path}: {exc}") from exc

    logger.info("Wrote output file", path=str(path), size=len(content.encode("utf-8")))
