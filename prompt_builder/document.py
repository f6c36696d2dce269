"""
Prompt document model.

Holds the canonical editable prompt specification, the list editing
operations used by the form, and the two projections between the editable
document and its exported shape.
"""

import copy
import math
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Mapping, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .errors import ImportParseError


SCALAR_FIELDS = ("title", "role", "task", "audience", "style", "tone")
LIST_FIELDS = ("constraints", "steps", "inputs", "examples")
PARAMETER_FIELDS = ("temperature", "top_p", "max_tokens", "presence_penalty", "frequency_penalty")

DEFAULT_TEMPERATURE = 0.7
DEFAULT_TOP_P = 1.0
DEFAULT_MAX_TOKENS = 1024
DEFAULT_PRESENCE_PENALTY = 0.0
DEFAULT_FREQUENCY_PENALTY = 0.0


class InputPair(NamedTuple):
    """A named input parsed from a `name: value` line."""
    name: str
    value: str


@dataclass
class Parameters:
    """Sampling parameters attached to a prompt.

    The penalties are optional: ``None`` marks a document written against the
    schema without them, and they are then left out of every rendering.
    """
    temperature: float = DEFAULT_TEMPERATURE
    top_p: float = DEFAULT_TOP_P
    max_tokens: int = DEFAULT_MAX_TOKENS
    presence_penalty: Optional[float] = DEFAULT_PRESENCE_PENALTY
    frequency_penalty: Optional[float] = DEFAULT_FREQUENCY_PENALTY

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary, skipping parameters that are not active."""
        return {name: value for name, value in asdict(self).items() if value is not None}


@dataclass
class PromptDocument:
    """Editable structured prompt specification."""
    title: str = ""
    role: str = ""
    task: str = ""
    audience: str = ""
    style: str = ""
    tone: str = ""
    constraints: List[str] = field(default_factory=list)
    steps: List[str] = field(default_factory=list)
    inputs: List[str] = field(default_factory=list)
    examples: List[str] = field(default_factory=list)
    parameters: Parameters = field(default_factory=Parameters)

    def set_field(self, name: str, value: str):
        """Assign one of the scalar text fields."""
        if name not in SCALAR_FIELDS:
            raise KeyError(f"Unknown field: {name}")
        if not isinstance(value, str):
            raise TypeError(f"Field '{name}' expects a string, got {type(value).__name__}")
        setattr(self, name, value)

    def set_parameter(self, name: str, value: Optional[float]):
        """Assign one of the sampling parameters."""
        if name not in PARAMETER_FIELDS:
            raise KeyError(f"Unknown parameter: {name}")
        if value is None and name in ("presence_penalty", "frequency_penalty"):
            setattr(self.parameters, name, None)
            return
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Parameter '{name}' expects a number, got {type(value).__name__}")
        setattr(self.parameters, name, int(value) if name == "max_tokens" else float(value))

    def items(self, name: str) -> List[str]:
        """Return the live list behind a list field."""
        if name not in LIST_FIELDS:
            raise KeyError(f"Unknown list field: {name}")
        return getattr(self, name)

    def add_item(self, name: str, value: str = ""):
        self.items(name).append(value)

    def remove_item(self, name: str, index: int):
        items = self.items(name)
        if 0 <= index < len(items):
            del items[index]

    def set_item(self, name: str, index: int, value: str):
        items = self.items(name)
        if 0 <= index < len(items):
            items[index] = value

    def set_items(self, name: str, values: List[str]):
        self.items(name)[:] = list(values)

    def move_item(self, name: str, index: int, direction: int):
        """Swap the item at ``index`` with its neighbour at ``index + direction``.

        Out-of-range positions leave the list untouched.
        """
        items = self.items(name)
        target = index + direction
        if not (0 <= index < len(items)) or not (0 <= target < len(items)):
            return
        items[index], items[target] = items[target], items[index]

    def to_snapshot(self) -> Dict[str, Any]:
        """Full copy of the editable state, blank entries included."""
        snapshot = asdict(self)
        snapshot["parameters"] = self.parameters.to_dict()
        return snapshot

    def copy(self) -> "PromptDocument":
        return copy.deepcopy(self)


def parse_input_line(line: str) -> InputPair:
    """Split an input line on its first colon into a name and a value."""
    name, sep, value = line.partition(":")
    if not sep:
        return InputPair(line.strip(), "")
    return InputPair(name.strip(), value.strip())


def _is_blank(entry: Any) -> bool:
    return not isinstance(entry, str) or not entry.strip()


def to_export_shape(document: PromptDocument) -> Dict[str, Any]:
    """
    Derive the normalized exported object from a document.

    Scalars are trimmed and left out when empty, blank list entries are
    dropped, and inputs become ``{"name", "value"}`` dictionaries.
    """
    shape: Dict[str, Any] = {}

    for name in SCALAR_FIELDS:
        value = getattr(document, name).strip()
        if value:
            shape[name] = value

    for name in LIST_FIELDS:
        entries = [entry for entry in getattr(document, name) if not _is_blank(entry)]
        if name == "inputs":
            shape[name] = [parse_input_line(entry)._asdict() for entry in entries]
        else:
            shape[name] = entries

    shape["parameters"] = document.parameters.to_dict()
    return shape


class ParameterShape(BaseModel):
    """Imported sampling parameters, with defaults for anything unusable."""

    model_config = ConfigDict(extra="ignore")

    temperature: float = DEFAULT_TEMPERATURE
    top_p: float = DEFAULT_TOP_P
    max_tokens: int = DEFAULT_MAX_TOKENS
    presence_penalty: Optional[float] = DEFAULT_PRESENCE_PENALTY
    frequency_penalty: Optional[float] = DEFAULT_FREQUENCY_PENALTY

    @field_validator("temperature", "top_p", "presence_penalty", "frequency_penalty", mode="before")
    @classmethod
    def _coerce_float(cls, value: Any, info: ValidationInfo) -> Any:
        default = cls.model_fields[info.field_name].default
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return default
        try:
            value = float(value)
        except OverflowError:
            return default
        if not math.isfinite(value):
            return default
        return value

    @field_validator("max_tokens", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return DEFAULT_MAX_TOKENS
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return DEFAULT_MAX_TOKENS


class PromptShape(BaseModel):
    """
    Schema normalisation for imported or loaded prompt objects.

    Every field is optional; unknown keys are ignored and wrong-typed values
    fall back to their defaults instead of failing validation.
    """

    model_config = ConfigDict(extra="ignore")

    title: str = ""
    role: str = ""
    task: str = ""
    audience: str = ""
    style: str = ""
    tone: str = ""
    constraints: List[str] = Field(default_factory=list)
    steps: List[str] = Field(default_factory=list)
    inputs: List[str] = Field(default_factory=list)
    examples: List[str] = Field(default_factory=list)
    parameters: ParameterShape = Field(default_factory=ParameterShape)

    @field_validator(*SCALAR_FIELDS, mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return value if isinstance(value, str) else ""

    @field_validator("constraints", "steps", "examples", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str)]

    @field_validator("inputs", mode="before")
    @classmethod
    def _flatten_inputs(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []

        lines = []
        for item in value:
            if isinstance(item, str):
                lines.append(item)
            elif isinstance(item, Mapping):
                name = item.get("name")
                name = name.strip() if isinstance(name, str) else ""
                raw_value = item.get("value")
                if isinstance(raw_value, (int, float)) and not isinstance(raw_value, bool):
                    raw_value = str(raw_value)
                text = raw_value.strip() if isinstance(raw_value, str) else ""
                if text:
                    lines.append(f"{name}: {text}")
                elif name:
                    lines.append(name)
        return lines

    @field_validator("parameters", mode="before")
    @classmethod
    def _coerce_parameters(cls, value: Any) -> Any:
        return value if isinstance(value, Mapping) else {}

    def to_document(self) -> PromptDocument:
        data = self.model_dump()
        params = data.pop("parameters")
        return PromptDocument(parameters=Parameters(**params), **data)


def apply_imported_shape(partial: Any) -> PromptDocument:
    """
    Rebuild a complete editable document from a possibly partial object.

    Raises:
        ImportParseError: If the payload is not a JSON object
    """
    if not isinstance(partial, Mapping):
        raise ImportParseError(
            f"Expected a JSON object, got {type(partial).__name__}"
        )
    return PromptShape.model_validate(dict(partial)).to_document()

