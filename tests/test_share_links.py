"""Tests for issuing, resolving, and revoking share links."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from formstudio.field_schema import Field, FieldType, FormMeta, FormSchema
from formstudio.form_store import DocumentNotFound, FormRepository, LocalDocumentStore
from formstudio.share_links import (
    InvalidShareSettings,
    ShareLinkExpired,
    ShareLinkNotFound,
    get_share_link,
    issue_share_link,
    resolve_share_link,
    revoke_share_link,
    share_url,
    verify_share_password,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def repository(tmp_path) -> FormRepository:
    return FormRepository(store=LocalDocumentStore(root=tmp_path))


@pytest.fixture
def form_id(repository) -> str:
    schema = FormSchema(
        meta=FormMeta(title="Feedback"),
        fields=(Field(id="comment", type=FieldType.LONG_TEXT, label="Comment"),),
    )
    return repository.publish_form(schema, now=NOW).id


def test_issue_share_link_builds_public_url(repository, form_id) -> None:
    link = issue_share_link(repository, form_id, base_url="https://forms.example/", now=NOW)

    assert len(link.token) == 32
    assert link.url == f"https://forms.example/Share?token={link.token}"
    assert link.requires_password is False
    assert link.created_at == NOW.isoformat()
    assert get_share_link(repository, form_id).token == link.token


def test_reissue_keeps_token_and_replaces_settings(repository, form_id) -> None:
    first = issue_share_link(repository, form_id, password="hunter22", now=NOW)
    second = issue_share_link(
        repository,
        form_id,
        expires_at=NOW + timedelta(days=1),
        now=NOW + timedelta(hours=1),
    )

    assert second.token == first.token
    assert second.created_at == first.created_at
    assert second.requires_password is False
    assert second.expires_at == (NOW + timedelta(days=1)).isoformat()


@pytest.mark.parametrize("password", ["short", "x" * 65])
def test_issue_rejects_bad_password_length(repository, form_id, password) -> None:
    with pytest.raises(InvalidShareSettings) as excinfo:
        issue_share_link(repository, form_id, password=password, now=NOW)

    assert excinfo.value.message == "Password must be between 6 and 64 characters"


def test_issue_rejects_past_expiry_and_unknown_form(repository, form_id) -> None:
    with pytest.raises(InvalidShareSettings):
        issue_share_link(repository, form_id, expires_at=NOW - timedelta(minutes=1), now=NOW)
    with pytest.raises(DocumentNotFound):
        issue_share_link(repository, "nope", now=NOW)


def test_resolve_returns_fields_and_password_flag(repository, form_id) -> None:
    link = issue_share_link(repository, form_id, password="open-sesame", now=NOW)

    view = resolve_share_link(repository, link.token, now=NOW)

    assert view.requires_password is True
    assert [item.id for item in view.fields] == ["comment"]
    assert view.anonymous_submission_allowed is True
    assert verify_share_password(view.link, "open-sesame") is True
    assert verify_share_password(view.link, "wrong-pass") is False
    assert verify_share_password(view.link, None) is False


def test_resolve_unknown_or_expired_tokens(repository, form_id) -> None:
    link = issue_share_link(repository, form_id, expires_at=NOW + timedelta(hours=1), now=NOW)

    with pytest.raises(ShareLinkNotFound):
        resolve_share_link(repository, "missing", now=NOW)
    with pytest.raises(ShareLinkNotFound):
        resolve_share_link(repository, "", now=NOW)
    with pytest.raises(ShareLinkExpired) as excinfo:
        resolve_share_link(repository, link.token, now=NOW + timedelta(hours=2))
    assert excinfo.value.message == "Share link expired"


def test_resolve_link_of_deleted_form_is_not_found(repository, form_id) -> None:
    link = issue_share_link(repository, form_id, now=NOW)
    repository.store.delete(f"forms/{form_id}.json", message="remove")

    with pytest.raises(ShareLinkNotFound):
        resolve_share_link(repository, link.token, now=NOW)


def test_revoke_share_link_reports_status(repository, form_id) -> None:
    link = issue_share_link(repository, form_id, now=NOW)

    assert revoke_share_link(repository, form_id) == {"form_id": form_id, "status": "revoked"}
    assert revoke_share_link(repository, form_id) == {"form_id": form_id, "status": "not_found"}
    assert repository.find_share_link(link.token) is None


def test_share_url_falls_back_to_default_base() -> None:
    assert share_url("", "abc") == "http://localhost:8501/Share?token=abc"
