"""JSON document storage for published forms, responses, and share links."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from formstudio.answer_validation import NormalizedAnswer, normalized_to_dicts
from formstudio.field_schema import FormSchema, new_id, schema_from_dict, schema_to_dict
from formstudio.theme import ThemeState, theme_from_dict, theme_to_dict

logger = logging.getLogger(__name__)

FORMS_DIR = "forms"
RESPONSES_DIR = "responses"
SHARE_LINKS_DIR = "share_links"


class StorageError(Exception):
    """Base class for storage failures."""


class DocumentNotFound(StorageError):
    pass


class PersistenceError(StorageError):
    """Raised when a write is refused; nothing has been written."""


class DocumentStore(Protocol):
    def read_json(self, path: str) -> Optional[Dict[str, Any]]: ...

    def write_json(self, path: str, data: Dict[str, Any], message: str) -> None: ...

    def list_json(self, directory: str) -> List[str]: ...

    def delete(self, path: str, message: str) -> bool: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Tuple[str, float]:
    """Return a normalised timestamp string and sort key."""

    if isinstance(value, str) and value:
        text = value.strip()
        if text:
            try:
                dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return text, 0.0
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt.isoformat(), dt.timestamp()
    return "", 0.0


def _safe_segment(value: str) -> str:
    """Reject identifiers that would escape their directory."""

    text = str(value or "").strip()
    if not text or any(ch in text for ch in "/\\") or text in {".", ".."}:
        raise DocumentNotFound(f"Invalid identifier: {value!r}")
    return text


@dataclass
class LocalDocumentStore:
    """Stores JSON documents below ``root`` on the local filesystem."""

    root: Path

    def _path(self, path: str) -> Path:
        return Path(self.root) / path

    def read_json(self, path: str) -> Optional[Dict[str, Any]]:
        target = self._path(path)
        if not target.exists():
            return None
        with target.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        return payload if isinstance(payload, dict) else None

    def write_json(self, path: str, data: Dict[str, Any], message: str) -> None:
        """Write ``data`` atomically so readers never see a partial document."""

        target = self._path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        handle, temp_name = tempfile.mkstemp(dir=target.parent, suffix=".tmp")
        try:
            with os.fdopen(handle, "w", encoding="utf-8") as temp_file:
                json.dump(data, temp_file, indent=2)
                temp_file.write("\n")
            os.replace(temp_name, target)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise
        logger.debug("%s (%s)", message, target)

    def list_json(self, directory: str) -> List[str]:
        base = self._path(directory)
        if not base.exists():
            return []
        return [f"{directory}/{entry.name}" for entry in sorted(base.glob("*.json"))]

    def delete(self, path: str, message: str) -> bool:
        target = self._path(path)
        if not target.exists():
            return False
        target.unlink()
        logger.debug("%s (%s)", message, target)
        return True


@dataclass(frozen=True)
class StoredForm:
    id: str
    schema: FormSchema
    theme: ThemeState = field(default_factory=ThemeState)
    created_at: str = ""
    updated_at: str = ""

    @property
    def title(self) -> str:
        return self.schema.meta.title


def form_to_document(form: StoredForm) -> Dict[str, Any]:
    payload = {"id": form.id}
    payload.update(schema_to_dict(form.schema))
    payload["theme"] = theme_to_dict(form.theme)
    payload["created_at"] = form.created_at
    payload["updated_at"] = form.updated_at
    return payload


def form_from_document(payload: Mapping[str, Any]) -> StoredForm:
    return StoredForm(
        id=str(payload.get("id", "")),
        schema=schema_from_dict(payload),
        theme=theme_from_dict(payload.get("theme")),
        created_at=str(payload.get("created_at") or ""),
        updated_at=str(payload.get("updated_at") or ""),
    )


@dataclass
class FormRepository:
    """Forms, responses, and share links on top of a document store."""

    store: DocumentStore

    def _form_path(self, form_id: str) -> str:
        return f"{FORMS_DIR}/{_safe_segment(form_id)}.json"

    def _responses_dir(self, form_id: str) -> str:
        return f"{RESPONSES_DIR}/{_safe_segment(form_id)}"

    def _share_link_path(self, token: str) -> str:
        return f"{SHARE_LINKS_DIR}/{_safe_segment(token)}.json"

    # Forms

    def publish_form(
        self,
        schema: FormSchema,
        theme: Optional[ThemeState] = None,
        *,
        form_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> StoredForm:
        """Create a form, or update ``form_id`` in place keeping ``created_at``."""

        timestamp = (now or utc_now()).isoformat()
        created_at = timestamp
        if form_id:
            existing = self.store.read_json(self._form_path(form_id))
            if existing:
                created_at = str(existing.get("created_at") or timestamp)
        form = StoredForm(
            id=form_id or new_id(),
            schema=schema,
            theme=theme or ThemeState(),
            created_at=created_at,
            updated_at=timestamp,
        )
        self.store.write_json(
            self._form_path(form.id),
            form_to_document(form),
            message=f"Publish form {form.id}",
        )
        logger.info("Published form %s (%d fields)", form.id, len(schema.fields))
        return form

    def load_form(self, form_id: str) -> StoredForm:
        payload = self.store.read_json(self._form_path(form_id))
        if not payload:
            raise DocumentNotFound(f"Form {form_id} not found")
        return form_from_document(payload)

    def load_schema(self, form_id: str) -> FormSchema:
        """Return the authoritative field schema for ``form_id``."""

        return self.load_form(form_id).schema

    def list_forms(self) -> List[StoredForm]:
        forms: List[StoredForm] = []
        for path in self.store.list_json(FORMS_DIR):
            try:
                payload = self.store.read_json(path)
            except ValueError as exc:
                logger.warning("Skipping unreadable form document %s: %s", path, exc)
                continue
            if not payload:
                continue
            try:
                forms.append(form_from_document(payload))
            except ValueError as exc:
                logger.warning("Skipping invalid form document %s: %s", path, exc)
        return sorted(forms, key=lambda item: parse_timestamp(item.updated_at)[1], reverse=True)

    def delete_form(self, form_id: str) -> None:
        """Remove a form with its share link and responses."""

        link = self.find_share_link_for_form(form_id)
        if link:
            self.delete_share_link(str(link.get("token")))
        for path in self.store.list_json(self._responses_dir(form_id)):
            self.store.delete(path, message=f"Delete response {path}")
        self.store.delete(self._form_path(form_id), message=f"Delete form {form_id}")
        logger.info("Deleted form %s", form_id)

    # Responses

    def record_response(
        self,
        form_id: str,
        answers: Iterable[NormalizedAnswer],
        *,
        share_token: Optional[str] = None,
        completion_ms: Optional[int] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Persist one response with all its answers as a single document.

        Raises :class:`PersistenceError` without writing anything when an
        answer references a field the stored form does not have.
        """

        answer_list = list(answers)
        try:
            schema = self.load_schema(form_id)
        except DocumentNotFound as exc:
            raise PersistenceError(f"Form {form_id} does not exist") from exc
        known = {item.id for item in schema.fields}
        unknown = [item.field_id for item in answer_list if item.field_id not in known]
        if unknown:
            raise PersistenceError(f"Answers reference unknown fields: {', '.join(unknown)}")

        response_id = new_id()
        document = {
            "id": response_id,
            "form_id": form_id,
            "share_token": share_token,
            "submitted_at": (now or utc_now()).isoformat(),
            "completion_ms": completion_ms,
            "metadata": dict(metadata or {}),
            "answers": normalized_to_dicts(answer_list),
        }
        self.store.write_json(
            f"{self._responses_dir(form_id)}/{response_id}.json",
            document,
            message=f"Add response {response_id} for form {form_id}",
        )
        logger.info("Recorded response %s for form %s", response_id, form_id)
        return document

    def list_responses(self, form_id: str) -> List[Dict[str, Any]]:
        responses: List[Dict[str, Any]] = []
        for path in self.store.list_json(self._responses_dir(form_id)):
            try:
                payload = self.store.read_json(path)
            except ValueError as exc:
                logger.warning("Skipping unreadable response %s: %s", path, exc)
                continue
            if payload:
                responses.append(payload)
        return sorted(
            responses,
            key=lambda item: parse_timestamp(item.get("submitted_at"))[1],
            reverse=True,
        )

    def get_response(self, form_id: str, response_id: str) -> Dict[str, Any]:
        path = f"{self._responses_dir(form_id)}/{_safe_segment(response_id)}.json"
        payload = self.store.read_json(path)
        if not payload:
            raise DocumentNotFound(f"Response {response_id} not found")
        return payload

    # Share links

    def save_share_link(self, link: Mapping[str, Any]) -> None:
        token = str(link.get("token", ""))
        self.store.write_json(
            self._share_link_path(token),
            dict(link),
            message=f"Save share link for form {link.get('form_id')}",
        )

    def find_share_link(self, token: str) -> Optional[Dict[str, Any]]:
        try:
            path = self._share_link_path(token)
        except DocumentNotFound:
            return None
        return self.store.read_json(path)

    def find_share_link_for_form(self, form_id: str) -> Optional[Dict[str, Any]]:
        for path in self.store.list_json(SHARE_LINKS_DIR):
            payload = self.store.read_json(path)
            if payload and payload.get("form_id") == form_id:
                return payload
        return None

    def delete_share_link(self, token: str) -> bool:
        return self.store.delete(self._share_link_path(token), message="Revoke share link")


__all__ = [
    "DocumentNotFound",
    "DocumentStore",
    "FormRepository",
    "LocalDocumentStore",
    "PersistenceError",
    "StorageError",
    "StoredForm",
    "parse_timestamp",
    "utc_now",
]
