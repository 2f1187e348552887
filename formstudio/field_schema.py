"""Field schema model shared by the builder, renderer, and validation engine."""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from formstudio.schema_defaults import (
    DEFAULT_FORM_DESCRIPTION,
    DEFAULT_FORM_TITLE,
    DEFAULT_SUBMIT_LABEL,
)


class FieldType(str, Enum):
    """Closed set of supported question types."""

    SHORT_TEXT = "short_text"
    LONG_TEXT = "long_text"
    EMAIL = "email"
    NUMBER = "number"
    DROPDOWN = "dropdown"
    CHECKBOX = "checkbox"
    DATE = "date"


TEXT_TYPES = frozenset({FieldType.SHORT_TEXT, FieldType.LONG_TEXT})
CHOICE_TYPES = frozenset({FieldType.DROPDOWN, FieldType.CHECKBOX})

FIELD_TYPE_LABELS = {
    FieldType.SHORT_TEXT: "Short text",
    FieldType.LONG_TEXT: "Long text",
    FieldType.EMAIL: "Email",
    FieldType.NUMBER: "Number",
    FieldType.DROPDOWN: "Dropdown",
    FieldType.CHECKBOX: "Checkboxes",
    FieldType.DATE: "Date",
}


def new_id() -> str:
    """Return a fresh opaque identifier."""

    return uuid.uuid4().hex


def coerce_field_type(value: Any) -> Optional[FieldType]:
    """Return ``value`` as a :class:`FieldType` or ``None`` when unknown."""

    if isinstance(value, FieldType):
        return value
    try:
        return FieldType(str(value))
    except ValueError:
        return None


@dataclass(frozen=True)
class FieldOption:
    """One selectable choice of a dropdown or checkbox field."""

    id: str
    label: str
    value: str


@dataclass(frozen=True)
class Field:
    """A single question definition."""

    id: str
    type: FieldType
    label: str
    description: Optional[str] = None
    placeholder: Optional[str] = None
    required: bool = False
    options: Optional[Tuple[FieldOption, ...]] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None

    @property
    def is_choice(self) -> bool:
        return self.type in CHOICE_TYPES

    def option_values(self) -> List[str]:
        """Return the canonical wire values of the declared options."""

        return [option.value for option in self.options or ()]


@dataclass(frozen=True)
class FormMeta:
    """Form-level display metadata."""

    title: str = DEFAULT_FORM_TITLE
    description: str = DEFAULT_FORM_DESCRIPTION
    submit_label: str = DEFAULT_SUBMIT_LABEL


@dataclass(frozen=True)
class FormSchema:
    """Ordered fields plus form metadata."""

    meta: FormMeta = field(default_factory=FormMeta)
    fields: Tuple[Field, ...] = ()

    def field_by_id(self, field_id: Optional[str]) -> Optional[Field]:
        return next((item for item in self.fields if item.id == field_id), None)


def make_option(label: str, value: Optional[str] = None) -> FieldOption:
    """Build an option with a fresh id."""

    return FieldOption(id=new_id(), label=label, value=label if value is None else value)


_TEMPLATE_OPTIONS: Dict[FieldType, Tuple[Tuple[str, str], ...]] = {
    FieldType.DROPDOWN: (("Option A", "option-a"), ("Option B", "option-b")),
    FieldType.CHECKBOX: (("Option 1", "option-1"), ("Option 2", "option-2")),
}

_TEMPLATES: Dict[FieldType, Dict[str, Any]] = {
    FieldType.SHORT_TEXT: {"label": "Short text", "placeholder": "Enter text"},
    FieldType.LONG_TEXT: {"label": "Long text", "placeholder": "Write your response"},
    FieldType.EMAIL: {"label": "Email", "placeholder": "email@example.com", "required": True},
    FieldType.NUMBER: {"label": "Number", "placeholder": "0", "step": 1},
    FieldType.DROPDOWN: {"label": "Dropdown"},
    FieldType.CHECKBOX: {"label": "Checkbox"},
    FieldType.DATE: {"label": "Date"},
}


def template_options(field_type: FieldType) -> Optional[Tuple[FieldOption, ...]]:
    """Return fresh default options for a choice type, ``None`` otherwise."""

    pairs = _TEMPLATE_OPTIONS.get(field_type)
    if pairs is None:
        return None
    return tuple(make_option(label, value) for label, value in pairs)


def create_field(field_type: FieldType | str) -> Field:
    """Return a new field populated from the template for ``field_type``."""

    resolved = coerce_field_type(field_type)
    if resolved is None:
        raise ValueError(f"Unknown field type: {field_type}")
    return Field(
        id=new_id(),
        type=resolved,
        options=template_options(resolved),
        **_TEMPLATES[resolved],
    )


def clone_field(source: Field, *, label: Optional[str] = None) -> Field:
    """Copy ``source`` with a fresh id and fresh option ids."""

    options = None
    if source.options is not None:
        options = tuple(replace(option, id=new_id()) for option in source.options)
    return replace(
        source,
        id=new_id(),
        label=source.label if label is None else label,
        options=options,
    )


def add_option(options: Sequence[FieldOption]) -> Tuple[FieldOption, ...]:
    """Append a numbered placeholder option with a value unique in ``options``."""

    used = {option.value for option in options}
    number = len(options) + 1
    while f"option-{number}" in used:
        number += 1
    return (*options, make_option(f"Option {number}", f"option-{number}"))


def rename_option(options: Sequence[FieldOption], option_id: str, text: str) -> Tuple[FieldOption, ...]:
    """Set both label and value of the option ``option_id`` to ``text``."""

    return tuple(
        replace(option, label=text, value=text) if option.id == option_id else option
        for option in options
    )


def remove_option(options: Sequence[FieldOption], option_id: str) -> Tuple[FieldOption, ...]:
    """Return ``options`` without ``option_id``."""

    return tuple(option for option in options if option.id != option_id)


def _ensure_mapping(value: Any) -> Dict[str, Any]:
    """Return ``value`` if it is a mapping, otherwise an empty dict."""

    return dict(value) if isinstance(value, Mapping) else {}


def _ensure_list(value: Any) -> List[Any]:
    """Return ``value`` if it is a list, otherwise an empty list."""

    return list(value) if isinstance(value, (list, tuple)) else []


def as_optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def as_optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool) or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def as_optional_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool) or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def option_to_dict(option: FieldOption) -> Dict[str, Any]:
    return {"id": option.id, "label": option.label, "value": option.value}


def option_from_dict(payload: Mapping[str, Any]) -> FieldOption:
    """Build an option from stored JSON, generating a missing id."""

    label = str(payload.get("label") or payload.get("value") or "")
    value = payload.get("value")
    return FieldOption(
        id=str(payload.get("id") or new_id()),
        label=label,
        value=label if value is None else str(value),
    )


def options_from_rows(rows: Any) -> Optional[Tuple[FieldOption, ...]]:
    """Convert option dicts (or ready-made options) into an options tuple."""

    if rows is None:
        return None
    converted: List[FieldOption] = []
    for row in _ensure_list(rows):
        if isinstance(row, FieldOption):
            converted.append(row)
        elif isinstance(row, Mapping):
            converted.append(option_from_dict(row))
    return tuple(converted)


def field_to_dict(item: Field) -> Dict[str, Any]:
    """Serialise a field to a JSON-compatible mapping."""

    payload: Dict[str, Any] = {
        "id": item.id,
        "type": item.type.value,
        "label": item.label,
        "required": item.required,
    }
    for key in ("description", "placeholder", "min_length", "max_length", "min", "max", "step"):
        value = getattr(item, key)
        if value is not None:
            payload[key] = value
    if item.options is not None:
        payload["options"] = [option_to_dict(option) for option in item.options]
    return payload


def field_from_dict(payload: Mapping[str, Any]) -> Field:
    """Deserialise a field; unknown types raise ``ValueError``."""

    data = _ensure_mapping(payload)
    field_type = coerce_field_type(data.get("type"))
    if field_type is None:
        raise ValueError(f"Unknown field type: {data.get('type')}")
    return Field(
        id=str(data.get("id") or new_id()),
        type=field_type,
        label=str(data.get("label") or ""),
        description=as_optional_text(data.get("description")),
        placeholder=as_optional_text(data.get("placeholder")),
        required=bool(data.get("required", False)),
        options=options_from_rows(data.get("options")),
        min_length=as_optional_int(data.get("min_length")),
        max_length=as_optional_int(data.get("max_length")),
        min=as_optional_number(data.get("min")),
        max=as_optional_number(data.get("max")),
        step=as_optional_number(data.get("step")),
    )


def meta_to_dict(meta: FormMeta) -> Dict[str, Any]:
    return {"title": meta.title, "description": meta.description, "submit_label": meta.submit_label}


def meta_from_dict(payload: Mapping[str, Any]) -> FormMeta:
    data = _ensure_mapping(payload)
    return FormMeta(
        title=str(data.get("title") or ""),
        description=str(data.get("description") or ""),
        submit_label=str(data.get("submit_label") or DEFAULT_SUBMIT_LABEL),
    )


def schema_to_dict(schema: FormSchema) -> Dict[str, Any]:
    """Serialise a form schema to the stored document layout."""

    payload = meta_to_dict(schema.meta)
    payload["fields"] = [field_to_dict(item) for item in schema.fields]
    return payload


def schema_from_dict(payload: Mapping[str, Any]) -> FormSchema:
    """Deserialise a stored form document into a :class:`FormSchema`."""

    data = _ensure_mapping(payload)
    fields = tuple(field_from_dict(item) for item in _ensure_list(data.get("fields")))
    return FormSchema(meta=meta_from_dict(data), fields=fields)


__all__ = [
    "CHOICE_TYPES",
    "FIELD_TYPE_LABELS",
    "Field",
    "FieldOption",
    "FieldType",
    "FormMeta",
    "FormSchema",
    "TEXT_TYPES",
    "add_option",
    "clone_field",
    "coerce_field_type",
    "create_field",
    "field_from_dict",
    "field_to_dict",
    "make_option",
    "new_id",
    "options_from_rows",
    "remove_option",
    "rename_option",
    "schema_from_dict",
    "schema_to_dict",
    "template_options",
]
