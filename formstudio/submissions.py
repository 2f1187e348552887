"""Public submission pipeline: parse, guard, validate, persist."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from formstudio.answer_validation import Answer, ValidationIssue, validate_answers
from formstudio.form_store import FormRepository
from formstudio.schema_defaults import MAX_COMPLETION_MS
from formstudio.share_links import resolve_share_link, verify_share_password

logger = logging.getLogger(__name__)

_META_KEYS = ("fingerprint", "timezone", "userAgent")


@dataclass(frozen=True)
class PayloadIssue:
    path: str
    message: str


class SubmissionError(Exception):
    """Base class for rejected submissions."""


class PayloadError(SubmissionError):
    def __init__(self, issues: List[PayloadIssue]) -> None:
        super().__init__("; ".join(f"{issue.path}: {issue.message}" for issue in issues))
        self.issues = issues


class SubmissionForbidden(SubmissionError):
    """Wrong or missing password, or a tripped honeypot."""


class SubmissionRejected(SubmissionError):
    def __init__(self, issues: Tuple[ValidationIssue, ...]) -> None:
        super().__init__(f"{len(issues)} answer(s) failed validation")
        self.issues = issues


@dataclass(frozen=True)
class SubmissionPayload:
    answers: Tuple[Answer, ...]
    completion_ms: Optional[int] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    honey: str = ""


def _is_answer_value(value: Any) -> bool:
    if value is None or isinstance(value, (str, bool, int, float)):
        return True
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def parse_submission_payload(payload: Any) -> SubmissionPayload:
    """Check the shape of a raw submission body.

    Every problem is collected before raising :class:`PayloadError`.
    """

    if not isinstance(payload, Mapping):
        raise PayloadError([PayloadIssue("", "Submission body must be an object")])

    issues: List[PayloadIssue] = []
    answers: List[Answer] = []

    raw_answers = payload.get("answers")
    if not isinstance(raw_answers, list) or not raw_answers:
        issues.append(PayloadIssue("answers", "At least one answer is required"))
    else:
        for index, item in enumerate(raw_answers):
            if not isinstance(item, Mapping):
                issues.append(PayloadIssue(f"answers.{index}", "Answer must be an object"))
                continue
            field_id = item.get("fieldId")
            if not isinstance(field_id, str) or not field_id.strip():
                issues.append(PayloadIssue(f"answers.{index}.fieldId", "Field ID is required"))
                continue
            value = item.get("value")
            if not _is_answer_value(value):
                issues.append(PayloadIssue(f"answers.{index}.value", "Unsupported answer value"))
                continue
            answers.append(Answer(field_id=field_id.strip(), value=value))

    completion_ms = payload.get("completionMs")
    if completion_ms is not None:
        valid = (
            isinstance(completion_ms, int)
            and not isinstance(completion_ms, bool)
            and 0 < completion_ms <= MAX_COMPLETION_MS
        )
        if not valid:
            issues.append(
                PayloadIssue(
                    "completionMs",
                    "Completion time must be a positive number of milliseconds up to 30 minutes",
                )
            )
            completion_ms = None

    metadata: Dict[str, str] = {}
    raw_meta = payload.get("meta")
    if raw_meta is not None:
        if not isinstance(raw_meta, Mapping):
            issues.append(PayloadIssue("meta", "Metadata must be an object"))
        else:
            for key in _META_KEYS:
                value = raw_meta.get(key)
                if value is None:
                    continue
                if not isinstance(value, str):
                    issues.append(PayloadIssue(f"meta.{key}", "Must be a string"))
                    continue
                metadata[key] = value

    honey = payload.get("honey")
    if honey is not None and not isinstance(honey, str):
        issues.append(PayloadIssue("honey", "Must be a string"))
        honey = ""

    if issues:
        raise PayloadError(issues)
    return SubmissionPayload(
        answers=tuple(answers),
        completion_ms=completion_ms,
        metadata=metadata,
        honey=honey or "",
    )


def submit_response(
    repository: FormRepository,
    token: str,
    payload: Any,
    *,
    password: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Accept a public submission for the form behind ``token``.

    Returns the stored response document. Nothing is written unless every
    answer validates against the stored schema.
    """

    view = resolve_share_link(repository, token, now=now)
    if view.requires_password:
        if not password:
            raise SubmissionForbidden("Password is required")
        if not verify_share_password(view.link, password):
            raise SubmissionForbidden("Incorrect password")

    parsed = parse_submission_payload(payload)
    if parsed.honey.strip():
        logger.warning("Honeypot triggered for share token %s", token)
        raise SubmissionForbidden("Suspicious submission detected")

    result = validate_answers(view.fields, parsed.answers)
    if not result.ok:
        logger.warning(
            "Rejected submission for form %s with %d issue(s)",
            view.form.id,
            len(result.issues),
        )
        raise SubmissionRejected(result.issues)

    return repository.record_response(
        view.form.id,
        result.answers,
        share_token=view.token,
        completion_ms=parsed.completion_ms,
        metadata=parsed.metadata,
        now=now,
    )


__all__ = [
    "PayloadError",
    "PayloadIssue",
    "SubmissionError",
    "SubmissionForbidden",
    "SubmissionPayload",
    "SubmissionRejected",
    "parse_submission_payload",
    "submit_response",
]
