"""Tests for the field schema model and its JSON layout."""

from __future__ import annotations

import pytest

from formstudio.field_schema import (
    Field,
    FieldOption,
    FieldType,
    FormSchema,
    add_option,
    clone_field,
    coerce_field_type,
    create_field,
    field_from_dict,
    field_to_dict,
    remove_option,
    rename_option,
    schema_from_dict,
    schema_to_dict,
)


def test_create_field_uses_template_for_each_type() -> None:
    email = create_field(FieldType.EMAIL)
    dropdown = create_field("dropdown")
    number = create_field(FieldType.NUMBER)

    assert email.required is True
    assert email.options is None
    assert [option.value for option in dropdown.options] == ["option-a", "option-b"]
    assert number.step == 1
    assert create_field(FieldType.SHORT_TEXT).id != create_field(FieldType.SHORT_TEXT).id


def test_create_field_rejects_unknown_type() -> None:
    with pytest.raises(ValueError):
        create_field("rating")


def test_coerce_field_type_accepts_values_and_members() -> None:
    assert coerce_field_type("checkbox") is FieldType.CHECKBOX
    assert coerce_field_type(FieldType.DATE) is FieldType.DATE
    assert coerce_field_type("nope") is None
    assert coerce_field_type(None) is None


def test_clone_field_refreshes_field_and_option_ids() -> None:
    source = create_field(FieldType.CHECKBOX)
    clone = clone_field(source, label="Copy")

    assert clone.id != source.id
    assert clone.label == "Copy"
    assert [option.value for option in clone.options] == source.option_values()
    assert {option.id for option in clone.options}.isdisjoint(
        option.id for option in source.options
    )


def test_option_helpers_keep_values_unique() -> None:
    options = (
        FieldOption(id="a", label="Option 1", value="option-1"),
        FieldOption(id="b", label="Option 3", value="option-3"),
    )

    extended = add_option(options)
    assert extended[-1].value == "option-4"

    renamed = rename_option(extended, "a", "Red")
    assert (renamed[0].label, renamed[0].value) == ("Red", "Red")
    assert renamed[1] == options[1]

    trimmed = remove_option(renamed, "b")
    assert [option.id for option in trimmed] == ["a", extended[-1].id]


def test_field_dict_layout_omits_unset_values() -> None:
    item = Field(id="f1", type=FieldType.SHORT_TEXT, label="Name", min_length=2)

    payload = field_to_dict(item)

    assert payload == {
        "id": "f1",
        "type": "short_text",
        "label": "Name",
        "required": False,
        "min_length": 2,
    }
    assert field_from_dict(payload) == item


def test_field_from_dict_normalises_loose_values() -> None:
    item = field_from_dict(
        {
            "id": "n1",
            "type": "number",
            "label": "Age",
            "min": "18",
            "max": "",
            "step": 0.5,
            "description": "   ",
            "options": [{"label": "ignored"}],
        }
    )

    assert item.min == 18
    assert item.max is None
    assert item.step == 0.5
    assert item.description is None
    assert item.options[0].value == "ignored"


def test_field_from_dict_drops_non_finite_numbers() -> None:
    item = field_from_dict(
        {
            "id": "n2",
            "type": "number",
            "label": "Score",
            "min": float("-inf"),
            "max": "nan",
            "step": 10 ** 400,
            "min_length": float("inf"),
        }
    )

    assert (item.min, item.max, item.step, item.min_length) == (None, None, None, None)


def test_field_from_dict_rejects_unknown_type() -> None:
    with pytest.raises(ValueError):
        field_from_dict({"id": "x", "type": "slider", "label": "Slide"})


def test_schema_from_dict_reads_stored_document() -> None:
    schema = schema_from_dict(
        {
            "title": "Survey",
            "description": "",
            "fields": [
                {"id": "q1", "type": "dropdown", "label": "Pick", "options": [
                    {"id": "o1", "label": "Yes", "value": "yes"},
                ]},
                {"id": "q2", "type": "date", "label": "When", "required": True},
            ],
        }
    )

    assert schema.meta.title == "Survey"
    assert schema.meta.submit_label == "Submit"
    assert [item.id for item in schema.fields] == ["q1", "q2"]
    assert schema.field_by_id("q1").option_values() == ["yes"]
    assert schema.field_by_id("missing") is None
    assert schema_to_dict(schema)["fields"][1]["required"] is True


def test_empty_schema_has_default_meta() -> None:
    schema = FormSchema()

    assert schema.fields == ()
    assert schema.meta.title == "Untitled form"
