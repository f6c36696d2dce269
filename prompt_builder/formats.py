"""
Output formats for prompt documents.

Each renderer takes the export shape produced by ``to_export_shape`` and
returns text; rendering never fails on missing or blank data, it only leaves
things out. ``import_json`` is the one way back in.
"""

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Union

from .document import PromptDocument, apply_imported_shape, to_export_shape
from .errors import ImportParseError


SCALAR_LABELS = [
    ("role", "Role"),
    ("task", "Task"),
    ("audience", "Audience"),
    ("style", "Style"),
    ("tone", "Tone"),
]

PARAMETER_LABELS = [
    ("temperature", "Temperature"),
    ("top_p", "Top-p"),
    ("max_tokens", "Max tokens"),
    ("presence_penalty", "Presence penalty"),
    ("frequency_penalty", "Frequency penalty"),
]

SMILE_HEADERS = ["title", "role", "task", "audience", "style", "tone"]


def _format_number(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# ============================================================================
# JSON
# ============================================================================


def render_json(shape: Dict[str, Any]) -> str:
    """Render the export shape as indented JSON."""
    return json.dumps(shape, indent=2, ensure_ascii=False)


# ============================================================================
# YAML
# ============================================================================


def _is_compound(value: Any) -> bool:
    return isinstance(value, (dict, list))


def _yaml_scalar(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    return _format_number(value)


def render_yaml(value: Any, indent: int = 0) -> str:
    """
    Render a value as block-style YAML.

    Strings are always double quoted, there are no anchors or flow
    collections except ``[]`` and ``{}`` for empty containers, and every
    nesting level adds exactly two spaces.
    """
    pad = "  " * indent

    if isinstance(value, list):
        if not value:
            return f"{pad}[]"
        lines = []
        for item in value:
            if _is_compound(item) and item:
                lines.append(f"{pad}-")
                lines.append(render_yaml(item, indent + 1))
            else:
                lines.append(f"{pad}- {render_yaml(item).strip()}")
        return "\n".join(lines)

    if isinstance(value, dict):
        if not value:
            return f"{pad}{{}}"
        lines = []
        for key, item in value.items():
            if _is_compound(item) and item:
                lines.append(f"{pad}{key}:")
                lines.append(render_yaml(item, indent + 1))
            else:
                lines.append(f"{pad}{key}: {render_yaml(item).strip()}")
        return "\n".join(lines)

    return f"{pad}{_yaml_scalar(value)}"


# ============================================================================
# Markdown
# ============================================================================


def render_markdown(shape: Dict[str, Any]) -> str:
    """Render the export shape as a Markdown document."""
    blocks: List[str] = []

    if shape.get("title"):
        blocks.append(f"# {shape['title']}")

    for key, label in SCALAR_LABELS:
        if shape.get(key):
            blocks.append(f"**{label}:** {shape[key]}")

    if shape.get("constraints"):
        blocks.append("\n".join(["**Constraints:**"] + [f"- {c}" for c in shape["constraints"]]))

    if shape.get("steps"):
        blocks.append("\n".join(
            ["**Steps:**"] + [f"{i}. {step}" for i, step in enumerate(shape["steps"], 1)]
        ))

    if shape.get("inputs"):
        lines = ["**Inputs:**"]
        for item in shape["inputs"]:
            if item["value"]:
                lines.append(f"- {item['name']}: {item['value']}")
            else:
                lines.append(f"- {item['name']}")
        blocks.append("\n".join(lines))

    if shape.get("examples"):
        blocks.append("\n".join(["**Examples:**"] + [f"- {ex}" for ex in shape["examples"]]))

    params = shape.get("parameters") or {}
    param_lines = [
        f"- {label}: {_format_number(params[key])}"
        for key, label in PARAMETER_LABELS
        if params.get(key) is not None
    ]
    if param_lines:
        blocks.append("\n".join(["**Parameters:**"] + param_lines))

    return "\n\n".join(blocks)


# ============================================================================
# SMILE
# ============================================================================


def render_smile(shape: Dict[str, Any]) -> str:
    """Render the export shape in the compact line-oriented SMILE notation."""
    lines = []

    for key in SMILE_HEADERS:
        lines.append(f"{key.upper()}: {shape.get(key, '')}".rstrip())

    lines.append("CONSTRAINTS:")
    lines.extend(f" - {c}" for c in shape.get("constraints", []))

    lines.append("STEPS:")
    lines.extend(f" {i}. {step}" for i, step in enumerate(shape.get("steps", []), 1))

    lines.append("INPUTS:")
    for item in shape.get("inputs", []):
        if item["value"]:
            lines.append(f" - {item['name']} = {item['value']}")
        else:
            lines.append(f" - {item['name']}")

    lines.append("EXAMPLES:")
    lines.extend(f" - {ex}" for ex in shape.get("examples", []))

    params = shape.get("parameters") or {}
    pairs = [f"{key}={_format_number(value)}" for key, value in params.items() if value is not None]
    lines.append(f"PARAMS: {'; '.join(pairs)}".rstrip())

    return "\n".join(lines)


# ============================================================================
# Registry
# ============================================================================


@dataclass(frozen=True)
class OutputFormat:
    """An export notation together with its artifact naming."""
    key: str
    label: str
    extension: str
    renderer: Callable[[Dict[str, Any]], str]

    @property
    def filename(self) -> str:
        return f"prompt{self.extension}"


FORMATS: Dict[str, OutputFormat] = {
    "markdown": OutputFormat("markdown", "Markdown", ".md", render_markdown),
    "json": OutputFormat("json", "JSON", ".json", render_json),
    "yaml": OutputFormat("yaml", "YAML", ".yaml", render_yaml),
    "smile": OutputFormat("smile", "SMILE", ".txt", render_smile),
}


def get_format(format_key: str) -> OutputFormat:
    """Look up a format by key, raising ValueError for unknown keys."""
    output_format = FORMATS.get(format_key)
    if output_format is None:
        raise ValueError(
            f"Unknown format '{format_key}'. Available formats: {', '.join(FORMATS)}"
        )
    return output_format


def render(format_key: str, document: PromptDocument) -> str:
    """Render a document in the requested format."""
    return get_format(format_key).renderer(to_export_shape(document))


def import_json(text: Union[str, bytes]) -> PromptDocument:
    """
    Parse exported JSON back into a new document.

    Raises:
        ImportParseError: If the text is not valid JSON or not a JSON object
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError, RecursionError) as e:
        raise ImportParseError(f"Invalid JSON file: {e}") from e

    return apply_imported_shape(data)
