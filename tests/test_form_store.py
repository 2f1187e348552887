"""Tests for the JSON document store and the form repository."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from formstudio.answer_validation import NormalizedAnswer
from formstudio.field_schema import Field, FieldType, FormMeta, FormSchema
from formstudio.form_store import (
    DocumentNotFound,
    FormRepository,
    LocalDocumentStore,
    PersistenceError,
    parse_timestamp,
)
from formstudio.theme import ThemeMode, ThemeState


def _schema(title: str = "Survey") -> FormSchema:
    return FormSchema(
        meta=FormMeta(title=title),
        fields=(
            Field(id="name", type=FieldType.SHORT_TEXT, label="Name", required=True),
            Field(id="age", type=FieldType.NUMBER, label="Age"),
        ),
    )


@pytest.fixture
def repository(tmp_path) -> FormRepository:
    return FormRepository(store=LocalDocumentStore(root=tmp_path))


def test_local_store_round_trips_documents(tmp_path) -> None:
    store = LocalDocumentStore(root=tmp_path)

    store.write_json("forms/a.json", {"id": "a"}, message="write a")
    store.write_json("forms/b.json", {"id": "b"}, message="write b")
    (tmp_path / "forms" / "notes.txt").write_text("ignored", encoding="utf-8")

    assert store.read_json("forms/a.json") == {"id": "a"}
    assert store.read_json("forms/missing.json") is None
    assert store.list_json("forms") == ["forms/a.json", "forms/b.json"]
    assert store.list_json("nothing") == []
    assert store.delete("forms/a.json", message="remove") is True
    assert store.delete("forms/a.json", message="remove") is False
    assert not list((tmp_path / "forms").glob("*.tmp"))


def test_publish_form_creates_then_updates_in_place(repository) -> None:
    first = datetime(2024, 1, 1, tzinfo=timezone.utc)
    later = datetime(2024, 2, 1, tzinfo=timezone.utc)

    created = repository.publish_form(_schema(), now=first)
    updated = repository.publish_form(
        _schema("Renamed"),
        ThemeState(mode=ThemeMode.DARK),
        form_id=created.id,
        now=later,
    )

    loaded = repository.load_form(created.id)
    assert updated.id == created.id
    assert loaded.title == "Renamed"
    assert loaded.created_at == first.isoformat()
    assert loaded.updated_at == later.isoformat()
    assert loaded.theme.mode is ThemeMode.DARK
    assert repository.load_schema(created.id).fields == _schema().fields


def test_load_missing_form_raises(repository) -> None:
    with pytest.raises(DocumentNotFound):
        repository.load_form("unknown")
    with pytest.raises(DocumentNotFound):
        repository.load_form("../escape")


def test_list_forms_is_newest_first_and_skips_broken_documents(repository, tmp_path, caplog) -> None:
    older = repository.publish_form(_schema("Older"), now=datetime(2024, 1, 1, tzinfo=timezone.utc))
    newer = repository.publish_form(_schema("Newer"), now=datetime(2024, 3, 1, tzinfo=timezone.utc))
    (tmp_path / "forms" / "broken.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "forms" / "bad-type.json").write_text(
        json.dumps({"id": "bad", "fields": [{"id": "x", "type": "hologram"}]}),
        encoding="utf-8",
    )

    forms = repository.list_forms()

    assert [form.id for form in forms] == [newer.id, older.id]
    assert "Skipping" in caplog.text


def test_record_response_writes_one_document(repository) -> None:
    form = repository.publish_form(_schema())
    answers = [
        NormalizedAnswer("name", FieldType.SHORT_TEXT, "Ada"),
        NormalizedAnswer("age", FieldType.NUMBER, 36),
    ]

    document = repository.record_response(
        form.id,
        answers,
        share_token="tok",
        completion_ms=1200,
        metadata={"timezone": "UTC"},
        now=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )

    assert document["form_id"] == form.id
    assert document["answers"] == [
        {"field_id": "name", "field_type": "short_text", "value": "Ada"},
        {"field_id": "age", "field_type": "number", "value": 36},
    ]
    assert repository.get_response(form.id, document["id"]) == document
    assert repository.list_responses(form.id) == [document]


def test_record_response_refuses_unknown_fields_without_writing(repository) -> None:
    form = repository.publish_form(_schema())

    with pytest.raises(PersistenceError):
        repository.record_response(
            form.id,
            [
                NormalizedAnswer("name", FieldType.SHORT_TEXT, "Ada"),
                NormalizedAnswer("ghost", FieldType.SHORT_TEXT, "boo"),
            ],
        )
    with pytest.raises(PersistenceError):
        repository.record_response("missing-form", [])

    assert repository.list_responses(form.id) == []


def test_list_responses_sorted_newest_first(repository) -> None:
    form = repository.publish_form(_schema())
    answers = [NormalizedAnswer("name", FieldType.SHORT_TEXT, "Ada")]
    early = repository.record_response(form.id, answers, now=datetime(2024, 1, 1, tzinfo=timezone.utc))
    late = repository.record_response(form.id, answers, now=datetime(2024, 6, 1, tzinfo=timezone.utc))

    assert [item["id"] for item in repository.list_responses(form.id)] == [late["id"], early["id"]]


def test_delete_form_removes_link_and_responses(repository, tmp_path) -> None:
    form = repository.publish_form(_schema())
    repository.save_share_link({"token": "tok123", "form_id": form.id})
    repository.record_response(form.id, [NormalizedAnswer("name", FieldType.SHORT_TEXT, "Ada")])

    repository.delete_form(form.id)

    assert repository.list_forms() == []
    assert repository.find_share_link("tok123") is None
    assert repository.list_responses(form.id) == []


def test_share_link_lookup(repository) -> None:
    repository.save_share_link({"token": "abc", "form_id": "f1"})

    assert repository.find_share_link("abc")["form_id"] == "f1"
    assert repository.find_share_link("../abc") is None
    assert repository.find_share_link_for_form("f1")["token"] == "abc"
    assert repository.find_share_link_for_form("f2") is None
    assert repository.delete_share_link("abc") is True


def test_parse_timestamp_normalises_zulu_and_naive_values() -> None:
    assert parse_timestamp("2024-01-01T00:00:00Z")[0] == "2024-01-01T00:00:00+00:00"
    assert parse_timestamp("2024-01-01T00:00:00")[1] == parse_timestamp("2024-01-01T00:00:00Z")[1]
    assert parse_timestamp("not a date") == ("not a date", 0.0)
    assert parse_timestamp(None) == ("", 0.0)
