"""Tests for the publish handler on the builder page."""

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
import requests

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

MODULE_PATH = REPO_ROOT / "pages" / "01_Builder.py"
SPEC = importlib.util.spec_from_file_location("builder_module", MODULE_PATH)
if SPEC is None or SPEC.loader is None:  # pragma: no cover - defensive
    raise RuntimeError("Could not load builder module for testing.")
BUILDER = importlib.util.module_from_spec(SPEC)
SPEC.loader.exec_module(BUILDER)

from formstudio.builder_state import BuilderState, UpdateFormMeta, initial_state, reduce  # noqa: E402
from formstudio.field_schema import FormMeta, FormSchema  # noqa: E402
from formstudio.form_store import FormRepository, LocalDocumentStore  # noqa: E402


@pytest.fixture
def messages(monkeypatch) -> Dict[str, List[str]]:
    captured: Dict[str, List[str]] = {"error": [], "success": []}
    monkeypatch.setattr(BUILDER.st, "session_state", {})
    monkeypatch.setattr(BUILDER.st, "error", lambda message: captured["error"].append(message))
    monkeypatch.setattr(BUILDER.st, "success", lambda message: captured["success"].append(message))
    monkeypatch.setattr(BUILDER.st, "cache_data", SimpleNamespace(clear=lambda: None))
    return captured


def test_publish_blocked_by_local_checks(messages, tmp_path) -> None:
    repository = FormRepository(store=LocalDocumentStore(root=tmp_path))
    state = BuilderState(schema=FormSchema(meta=FormMeta(title="No"), fields=()))

    assert BUILDER.handle_publish(state, repository) is None

    assert messages["error"] == [
        "Please provide a title of at least 3 characters before publishing.",
        "Add at least one field before publishing the form.",
    ]
    assert repository.list_forms() == []


def test_publish_stores_form_and_remembers_id(messages, tmp_path) -> None:
    repository = FormRepository(store=LocalDocumentStore(root=tmp_path))
    state = initial_state()

    form_id = BUILDER.handle_publish(state, repository)

    assert form_id is not None
    assert messages["error"] == []
    assert form_id in messages["success"][0]
    assert BUILDER.st.session_state[BUILDER.BUILDER_STATE_KEY].form_id == form_id
    assert repository.load_form(form_id).title == state.meta.title


def test_republish_updates_the_same_form(messages, tmp_path) -> None:
    repository = FormRepository(store=LocalDocumentStore(root=tmp_path))
    first_id = BUILDER.handle_publish(initial_state(), repository)
    edited = reduce(
        BUILDER.st.session_state[BUILDER.BUILDER_STATE_KEY], UpdateFormMeta({"title": "Renamed"})
    )

    second_id = BUILDER.handle_publish(edited, repository)

    assert second_id == first_id
    assert [form.title for form in repository.list_forms()] == ["Renamed"]


def test_publish_reports_storage_failures(messages) -> None:
    class FailingRepository:
        def publish_form(self, *args: Any, **kwargs: Any):
            raise requests.HTTPError("502 Bad Gateway")

    assert BUILDER.handle_publish(initial_state(), FailingRepository()) is None
    assert messages["error"] == ["Could not publish form: 502 Bad Gateway"]
    assert BUILDER.BUILDER_STATE_KEY not in BUILDER.st.session_state


def test_get_state_creates_starter_session(messages) -> None:
    state = BUILDER.get_state()

    assert state is BUILDER.st.session_state[BUILDER.BUILDER_STATE_KEY]
    assert len(state.fields) == 3
    assert BUILDER.get_state() is state
