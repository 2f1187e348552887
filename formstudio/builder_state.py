"""Pure state machine driving the form builder."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple, Union

from formstudio.field_schema import (
    Field,
    FieldOption,
    FieldType,
    FormMeta,
    FormSchema,
    as_optional_int,
    as_optional_number,
    as_optional_text,
    clone_field,
    coerce_field_type,
    make_option,
    new_id,
    options_from_rows,
    template_options,
)
from formstudio.schema_defaults import (
    DESCRIPTION_MAX_LENGTH,
    STARTER_FORM_DESCRIPTION,
    STARTER_FORM_TITLE,
    STARTER_SUBMIT_LABEL,
    TITLE_MIN_LENGTH,
)
from formstudio.theme import ThemeMode, ThemeState

COPY_SUFFIX = " (copy)"
_DOUBLED_COPY = re.compile(r"\(copy\) \(copy\)$", re.IGNORECASE)

_FIELD_ATTRIBUTES = frozenset(
    {
        "type",
        "label",
        "description",
        "placeholder",
        "required",
        "options",
        "min_length",
        "max_length",
        "min",
        "max",
        "step",
    }
)
_META_ATTRIBUTES = frozenset({"title", "description", "submit_label"})
_NUMERIC_ATTRIBUTES = {
    "min_length": as_optional_int,
    "max_length": as_optional_int,
    "min": as_optional_number,
    "max": as_optional_number,
    "step": as_optional_number,
}


class BuilderMode(str, Enum):
    EDIT = "edit"
    PREVIEW = "preview"


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class BuilderState:
    """Everything the builder page edits during one session."""

    schema: FormSchema = field(default_factory=FormSchema)
    selected_field_id: Optional[str] = None
    mode: BuilderMode = BuilderMode.EDIT
    theme: ThemeState = field(default_factory=ThemeState)
    form_id: Optional[str] = None

    @property
    def fields(self) -> Tuple[Field, ...]:
        return self.schema.fields

    @property
    def meta(self) -> FormMeta:
        return self.schema.meta

    @property
    def selected_field(self) -> Optional[Field]:
        return self.schema.field_by_id(self.selected_field_id)


@dataclass(frozen=True)
class AddField:
    field: Field


@dataclass(frozen=True)
class RemoveField:
    field_id: str


@dataclass(frozen=True)
class DuplicateField:
    field_id: str


@dataclass(frozen=True)
class SelectField:
    field_id: Optional[str]


@dataclass(frozen=True)
class UpdateField:
    field_id: str
    changes: Mapping[str, Any]


@dataclass(frozen=True)
class ReorderField:
    field_id: str
    direction: Direction


@dataclass(frozen=True)
class UpdateFormMeta:
    changes: Mapping[str, Any]


@dataclass(frozen=True)
class SetMode:
    mode: BuilderMode


@dataclass(frozen=True)
class SetThemeMode:
    mode: ThemeMode


@dataclass(frozen=True)
class UpdateThemeToken:
    tag: str
    key: str
    value: Any


@dataclass(frozen=True)
class UpdateThemeSurface:
    key: str
    value: Any


Action = Union[
    AddField,
    RemoveField,
    DuplicateField,
    SelectField,
    UpdateField,
    ReorderField,
    UpdateFormMeta,
    SetMode,
    SetThemeMode,
    UpdateThemeToken,
    UpdateThemeSurface,
]


def copy_label(label: str) -> str:
    """Append the copy marker without ever doubling it."""

    return _DOUBLED_COPY.sub("(copy)", f"{label}{COPY_SUFFIX}").strip()


def _index_of(fields: Tuple[Field, ...], field_id: Optional[str]) -> Optional[int]:
    return next((index for index, item in enumerate(fields) if item.id == field_id), None)


def _with_fields(state: BuilderState, fields: Tuple[Field, ...], **changes: Any) -> BuilderState:
    return replace(state, schema=replace(state.schema, fields=fields), **changes)


def _add_field(state: BuilderState, action: AddField) -> BuilderState:
    if not isinstance(action.field, Field) or _index_of(state.fields, action.field.id) is not None:
        return state
    return _with_fields(
        state, (*state.fields, action.field), selected_field_id=action.field.id
    )


def _remove_field(state: BuilderState, action: RemoveField) -> BuilderState:
    index = _index_of(state.fields, action.field_id)
    if index is None:
        return state
    fields = state.fields[:index] + state.fields[index + 1:]
    selected = None if state.selected_field_id == action.field_id else state.selected_field_id
    return _with_fields(state, fields, selected_field_id=selected)


def _duplicate_field(state: BuilderState, action: DuplicateField) -> BuilderState:
    index = _index_of(state.fields, action.field_id)
    if index is None:
        return state
    source = state.fields[index]
    clone = clone_field(source, label=copy_label(source.label))
    fields = state.fields[: index + 1] + (clone,) + state.fields[index + 1:]
    return _with_fields(state, fields, selected_field_id=clone.id)


def _coerce_changes(current: Field, changes: Mapping[str, Any]) -> Optional[dict]:
    """Filter and normalise a partial field update; ``None`` means reject."""

    cleaned = {key: value for key, value in changes.items() if key in _FIELD_ATTRIBUTES}
    if "type" in cleaned:
        field_type = coerce_field_type(cleaned["type"])
        if field_type is None:
            return None
        cleaned["type"] = field_type
    if "options" in cleaned:
        cleaned["options"] = options_from_rows(cleaned["options"])
    if "required" in cleaned:
        cleaned["required"] = bool(cleaned["required"])
    if "label" in cleaned:
        cleaned["label"] = "" if cleaned["label"] is None else str(cleaned["label"])
    for key in ("description", "placeholder"):
        if key in cleaned:
            cleaned[key] = as_optional_text(cleaned[key])
    for key, convert in _NUMERIC_ATTRIBUTES.items():
        if key not in cleaned:
            continue
        raw = cleaned[key]
        cleaned[key] = convert(raw)
        # unparsable input is dropped, blank input clears the setting
        if cleaned[key] is None and raw is not None and raw != "":
            del cleaned[key]

    target_type = cleaned.get("type", current.type)
    if target_type != current.type:
        if target_type in (FieldType.DROPDOWN, FieldType.CHECKBOX):
            if not cleaned.get("options") and not current.options:
                cleaned["options"] = template_options(target_type)
        else:
            cleaned["options"] = None
    return cleaned


def _update_field(state: BuilderState, action: UpdateField) -> BuilderState:
    index = _index_of(state.fields, action.field_id)
    if index is None or not isinstance(action.changes, Mapping):
        return state
    changes = _coerce_changes(state.fields[index], action.changes)
    if not changes:
        return state
    updated = replace(state.fields[index], **changes)
    fields = state.fields[:index] + (updated,) + state.fields[index + 1:]
    return _with_fields(state, fields)


def _reorder_field(state: BuilderState, action: ReorderField) -> BuilderState:
    index = _index_of(state.fields, action.field_id)
    if index is None:
        return state
    try:
        direction = Direction(action.direction)
    except ValueError:
        return state
    target = index - 1 if direction == Direction.UP else index + 1
    if not 0 <= target < len(state.fields):
        return state
    fields = list(state.fields)
    fields[index], fields[target] = fields[target], fields[index]
    return _with_fields(state, tuple(fields))


def _update_meta(state: BuilderState, action: UpdateFormMeta) -> BuilderState:
    if not isinstance(action.changes, Mapping):
        return state
    changes = {
        key: "" if value is None else str(value)
        for key, value in action.changes.items()
        if key in _META_ATTRIBUTES
    }
    if not changes:
        return state
    return replace(state, schema=replace(state.schema, meta=replace(state.meta, **changes)))


def _set_mode(state: BuilderState, action: SetMode) -> BuilderState:
    try:
        mode = BuilderMode(action.mode)
    except ValueError:
        return state
    return state if mode == state.mode else replace(state, mode=mode)


def _with_theme(state: BuilderState, theme: ThemeState) -> BuilderState:
    return state if theme is state.theme else replace(state, theme=theme)


def reduce(state: BuilderState, action: Any) -> BuilderState:
    """Apply ``action`` to ``state`` and return the resulting state.

    Never mutates ``state`` and never raises: actions that reference missing
    fields, carry invalid values, or are not recognised return ``state``
    itself.
    """

    if isinstance(action, AddField):
        return _add_field(state, action)
    if isinstance(action, RemoveField):
        return _remove_field(state, action)
    if isinstance(action, DuplicateField):
        return _duplicate_field(state, action)
    if isinstance(action, SelectField):
        return replace(state, selected_field_id=action.field_id)
    if isinstance(action, UpdateField):
        return _update_field(state, action)
    if isinstance(action, ReorderField):
        return _reorder_field(state, action)
    if isinstance(action, UpdateFormMeta):
        return _update_meta(state, action)
    if isinstance(action, SetMode):
        return _set_mode(state, action)
    if isinstance(action, SetThemeMode):
        return _with_theme(state, state.theme.with_mode(action.mode))
    if isinstance(action, UpdateThemeToken):
        return _with_theme(state, state.theme.with_token(action.tag, action.key, action.value))
    if isinstance(action, UpdateThemeSurface):
        return _with_theme(state, state.theme.with_surface(action.key, action.value))
    return state


def starter_fields() -> Tuple[Field, ...]:
    """Return the example fields a brand new form starts with."""

    return (
        Field(
            id=new_id(),
            type=FieldType.SHORT_TEXT,
            label="Full name",
            description="We use this to personalise your experience.",
            placeholder="Jane Doe",
            required=True,
            min_length=2,
        ),
        Field(
            id=new_id(),
            type=FieldType.EMAIL,
            label="Work email",
            description="We will never share your email.",
            placeholder="name@company.com",
            required=True,
        ),
        Field(
            id=new_id(),
            type=FieldType.DROPDOWN,
            label="Project type",
            required=True,
            options=(
                make_option("Website redesign", "website"),
                make_option("Mobile app", "mobile"),
                make_option("Design system", "design-system"),
            ),
        ),
    )


def initial_state(
    schema: Optional[FormSchema] = None,
    theme: Optional[ThemeState] = None,
    form_id: Optional[str] = None,
) -> BuilderState:
    """Return a fresh editing session, seeded from ``schema`` when given."""

    if schema is None:
        schema = FormSchema(
            meta=FormMeta(
                title=STARTER_FORM_TITLE,
                description=STARTER_FORM_DESCRIPTION,
                submit_label=STARTER_SUBMIT_LABEL,
            ),
            fields=starter_fields(),
        )
    return BuilderState(
        schema=schema,
        selected_field_id=schema.fields[0].id if schema.fields else None,
        theme=theme or ThemeState(),
        form_id=form_id,
    )


def _options_problem(options: Optional[Tuple[FieldOption, ...]]) -> Optional[str]:
    if not options:
        return "Choice fields need at least one option."
    values = [option.value for option in options]
    if len(set(values)) != len(values):
        return "Option values must be unique within a field."
    return None


def publish_blockers(state: BuilderState) -> List[str]:
    """Return the reasons the form cannot be published yet."""

    problems: List[str] = []
    if len(state.meta.title.strip()) < TITLE_MIN_LENGTH:
        problems.append("Please provide a title of at least 3 characters before publishing.")
    if not state.fields:
        problems.append("Add at least one field before publishing the form.")
    if len(state.meta.description) > DESCRIPTION_MAX_LENGTH:
        problems.append(f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters.")
    if any(not item.label.strip() for item in state.fields):
        problems.append("Field labels cannot be empty.")
    for item in state.fields:
        if not item.is_choice:
            continue
        problem = _options_problem(item.options)
        if problem and problem not in problems:
            problems.append(problem)
    return problems


__all__ = [
    "Action",
    "AddField",
    "BuilderMode",
    "BuilderState",
    "Direction",
    "DuplicateField",
    "RemoveField",
    "ReorderField",
    "SelectField",
    "SetMode",
    "SetThemeMode",
    "UpdateField",
    "UpdateFormMeta",
    "UpdateThemeSurface",
    "UpdateThemeToken",
    "copy_label",
    "initial_state",
    "publish_blockers",
    "reduce",
]
