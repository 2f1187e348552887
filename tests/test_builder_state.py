"""Tests for the builder reducer."""

from __future__ import annotations

import pytest

from formstudio.builder_state import (
    AddField,
    BuilderMode,
    BuilderState,
    Direction,
    DuplicateField,
    RemoveField,
    ReorderField,
    SelectField,
    SetMode,
    SetThemeMode,
    UpdateField,
    UpdateFormMeta,
    UpdateThemeSurface,
    UpdateThemeToken,
    copy_label,
    initial_state,
    publish_blockers,
    reduce,
)
from formstudio.field_schema import Field, FieldOption, FieldType, FormMeta, FormSchema, create_field
from formstudio.theme import ThemeMode, ThemeTag


def _state(*labels: str) -> BuilderState:
    fields = tuple(
        Field(id=f"f{index}", type=FieldType.SHORT_TEXT, label=label)
        for index, label in enumerate(labels, start=1)
    )
    return BuilderState(schema=FormSchema(meta=FormMeta(title="Survey"), fields=fields))


def _ids(state: BuilderState):
    return [item.id for item in state.fields]


@pytest.mark.parametrize(
    "action",
    [
        RemoveField("missing"),
        DuplicateField("missing"),
        UpdateField("missing", {"label": "x"}),
        ReorderField("missing", Direction.UP),
        ReorderField("missing", Direction.DOWN),
    ],
)
def test_actions_on_missing_field_are_no_ops(action) -> None:
    state = _state("A", "B")

    assert reduce(state, action) == state


def test_unknown_action_returns_same_state() -> None:
    state = _state("A")

    assert reduce(state, {"type": "UNKNOWN"}) is state
    assert reduce(state, None) is state


def test_add_field_appends_and_selects() -> None:
    state = _state("A")
    new_field = create_field(FieldType.DATE)

    updated = reduce(state, AddField(new_field))

    assert _ids(updated) == ["f1", new_field.id]
    assert updated.selected_field_id == new_field.id
    assert _ids(state) == ["f1"]


def test_add_field_with_existing_id_is_ignored() -> None:
    state = _state("A")

    assert reduce(state, AddField(state.fields[0])) is state


def test_remove_selected_field_clears_selection() -> None:
    state = reduce(_state("A", "B"), SelectField("f2"))

    updated = reduce(state, RemoveField("f2"))
    assert _ids(updated) == ["f1"]
    assert updated.selected_field_id is None

    kept = reduce(reduce(_state("A", "B"), SelectField("f1")), RemoveField("f2"))
    assert kept.selected_field_id == "f1"


def test_select_field_is_unconditional() -> None:
    state = _state("A")

    assert reduce(state, SelectField("ghost")).selected_field_id == "ghost"
    assert reduce(state, SelectField("ghost")).selected_field is None
    assert reduce(state, SelectField(None)).selected_field_id is None


def test_reorder_boundaries_are_no_ops() -> None:
    state = _state("A", "B", "C")

    assert reduce(state, ReorderField("f1", Direction.UP)) == state
    assert reduce(state, ReorderField("f3", Direction.DOWN)) == state


def test_reorder_interior_field_swaps_with_neighbour() -> None:
    state = _state("A", "B", "C")

    assert _ids(reduce(state, ReorderField("f2", Direction.UP))) == ["f2", "f1", "f3"]
    assert _ids(reduce(state, ReorderField("f2", "down"))) == ["f1", "f3", "f2"]
    assert reduce(state, ReorderField("f2", "sideways")) is state


def test_duplicate_inserts_after_source_and_selects_clone() -> None:
    state = _state("Name", "Other")

    updated = reduce(state, DuplicateField("f1"))

    clone = updated.fields[1]
    assert len(updated.fields) == 3
    assert clone.id not in {"f1", "f2"}
    assert clone.label == "Name (copy)"
    assert updated.selected_field_id == clone.id


def test_duplicate_does_not_double_copy_suffix() -> None:
    state = _state("Name")

    once = reduce(state, DuplicateField("f1"))
    twice = reduce(once, DuplicateField(once.fields[1].id))

    assert twice.fields[2].label == "Name (copy)"
    assert copy_label("Name (copy)") == "Name (copy)"
    assert copy_label("Name") == "Name (copy)"


def test_duplicate_refreshes_option_ids() -> None:
    field = create_field(FieldType.DROPDOWN)
    state = BuilderState(schema=FormSchema(fields=(field,)))

    clone = reduce(state, DuplicateField(field.id)).fields[1]

    assert clone.option_values() == field.option_values()
    assert {option.id for option in clone.options}.isdisjoint(
        option.id for option in field.options
    )


def test_update_field_merges_and_ignores_id() -> None:
    state = _state("A")

    updated = reduce(
        state,
        UpdateField("f1", {"id": "hijack", "label": "Full name", "required": 1, "min_length": "2"}),
    )

    field = updated.fields[0]
    assert field.id == "f1"
    assert field.label == "Full name"
    assert field.required is True
    assert field.min_length == 2
    assert state.fields[0].label == "A"


@pytest.mark.parametrize(
    "changes",
    [
        {"min_length": float("inf")},
        {"max_length": "many"},
        {"min": float("nan")},
        {"step": float("-inf")},
        {"max": 10 ** 400},
    ],
)
def test_update_field_ignores_unusable_numbers(changes) -> None:
    state = _state("A")

    assert reduce(state, UpdateField("f1", changes)) is state


def test_update_field_blank_number_clears_setting() -> None:
    state = reduce(_state("A"), UpdateField("f1", {"min_length": 3}))

    cleared = reduce(state, UpdateField("f1", {"min_length": ""}))

    assert state.fields[0].min_length == 3
    assert cleared.fields[0].min_length is None


def test_update_field_type_change_manages_options() -> None:
    state = _state("A")

    as_dropdown = reduce(state, UpdateField("f1", {"type": "dropdown"}))
    assert as_dropdown.fields[0].type is FieldType.DROPDOWN
    assert as_dropdown.fields[0].option_values() == ["option-a", "option-b"]

    back_to_text = reduce(as_dropdown, UpdateField("f1", {"type": FieldType.LONG_TEXT}))
    assert back_to_text.fields[0].options is None

    assert reduce(state, UpdateField("f1", {"type": "hologram"})) is state


def test_update_form_meta_filters_unknown_keys() -> None:
    state = _state("A")

    updated = reduce(state, UpdateFormMeta({"title": "Feedback", "owner": "me"}))

    assert updated.meta.title == "Feedback"
    assert updated.meta.submit_label == state.meta.submit_label
    assert reduce(state, UpdateFormMeta({"owner": "me"})) is state


def test_update_form_meta_treats_none_as_blank() -> None:
    state = _state("A")

    updated = reduce(state, UpdateFormMeta({"description": None}))

    assert updated.meta.description == ""


def test_set_mode_switches_between_edit_and_preview() -> None:
    state = _state("A")

    preview = reduce(state, SetMode(BuilderMode.PREVIEW))

    assert preview.mode is BuilderMode.PREVIEW
    assert reduce(preview, SetMode("edit")).mode is BuilderMode.EDIT
    assert reduce(state, SetMode("other")) is state


def test_theme_token_updates_only_touch_active_mode() -> None:
    state = _state("A")
    light_label = state.theme.light.tokens[ThemeTag.LABEL]

    dark = reduce(state, SetThemeMode(ThemeMode.DARK))
    assert dark.theme.dark == state.theme.dark

    edited = reduce(dark, UpdateThemeToken("label", "color", "#ff0000"))
    assert edited.theme.dark.tokens[ThemeTag.LABEL].color == "#ff0000"
    assert edited.theme.light.tokens[ThemeTag.LABEL] == light_label

    back = reduce(edited, SetThemeMode(ThemeMode.LIGHT))
    relit = reduce(back, UpdateThemeToken(ThemeTag.LABEL, "font_weight", "700"))
    assert relit.theme.light.tokens[ThemeTag.LABEL].font_weight == 700
    assert relit.theme.dark.tokens[ThemeTag.LABEL].color == "#ff0000"


def test_invalid_theme_updates_leave_state_unchanged() -> None:
    state = _state("A")

    assert reduce(state, UpdateThemeToken("label", "color", "red; display:none")) is state
    assert reduce(state, UpdateThemeToken("footer", "color", "#000")) is state
    assert reduce(state, UpdateThemeToken("label", "font_weight", 50)) is state
    assert reduce(state, UpdateThemeToken("label", "font_weight", float("inf"))) is state
    assert reduce(state, UpdateThemeToken("label", "font_weight", float("nan"))) is state
    assert reduce(state, UpdateThemeSurface("shadow", "#000")) is state

    surfaced = reduce(state, UpdateThemeSurface("card", "#fafafa"))
    assert surfaced.theme.light.card == "#fafafa"
    assert surfaced.theme.dark.card == state.theme.dark.card


def test_initial_state_selects_first_starter_field() -> None:
    state = initial_state()

    assert len(state.fields) == 3
    assert state.selected_field_id == state.fields[0].id
    assert state.mode is BuilderMode.EDIT
    assert publish_blockers(state) == []


def test_initial_state_from_schema_keeps_form_id() -> None:
    schema = FormSchema(meta=FormMeta(title="Stored"), fields=())

    state = initial_state(schema, form_id="abc")

    assert state.form_id == "abc"
    assert state.selected_field_id is None


def test_publish_blockers_report_every_problem() -> None:
    state = BuilderState(
        schema=FormSchema(
            meta=FormMeta(title="  ab ", description="x" * 501),
            fields=(),
        )
    )

    assert publish_blockers(state) == [
        "Please provide a title of at least 3 characters before publishing.",
        "Add at least one field before publishing the form.",
        "Description cannot exceed 500 characters.",
    ]


def test_publish_blockers_check_labels_and_options() -> None:
    duplicate_values = (
        FieldOption(id="o1", label="A", value="same"),
        FieldOption(id="o2", label="B", value="same"),
    )
    state = BuilderState(
        schema=FormSchema(
            meta=FormMeta(title="Survey"),
            fields=(
                Field(id="f1", type=FieldType.SHORT_TEXT, label="  "),
                Field(id="f2", type=FieldType.DROPDOWN, label="Pick", options=()),
                Field(id="f3", type=FieldType.CHECKBOX, label="Many", options=duplicate_values),
            ),
        )
    )

    assert publish_blockers(state) == [
        "Field labels cannot be empty.",
        "Choice fields need at least one option.",
        "Option values must be unique within a field.",
    ]
