"""Answer validation for submitted and previewed form responses."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from formstudio.field_schema import TEXT_TYPES, Field, FieldType, coerce_field_type

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MISSING_MESSAGE = "Required field is missing"
UNREFERENCED_MESSAGE = "Field does not belong to this form"
UNSUPPORTED_MESSAGE = "Unsupported field type"

AnswerValue = Union[str, List[str], int, float, bool, None]
NormalizedValue = Union[str, List[str], int, float]


@dataclass(frozen=True)
class Answer:
    field_id: str
    value: AnswerValue = None


@dataclass(frozen=True)
class ValidationIssue:
    field_id: str
    message: str


@dataclass(frozen=True)
class NormalizedAnswer:
    """A validated answer whose value type follows ``field_type``.

    Text, email, dropdown and date answers hold a trimmed ``str``, number
    answers an ``int`` or ``float``, and checkbox answers a ``list`` of
    option values.
    """

    field_id: str
    field_type: FieldType
    value: NormalizedValue


@dataclass(frozen=True)
class ValidationResult:
    answers: Tuple[NormalizedAnswer, ...] = ()
    issues: Tuple[ValidationIssue, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.issues


class _Omit:
    """Marker for an optional field left blank."""


OMIT = _Omit()

Outcome = Tuple[Any, Optional[str]]


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def parse_number(value: Any) -> Optional[Union[int, float]]:
    """Parse a finite number from a number or numeric string."""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text or "_" in text:
            return None
        try:
            number = float(text)
        except (OverflowError, ValueError):
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def parse_date(text: str) -> Optional[Union[date, datetime]]:
    """Parse a calendar date or date-time string.

    ISO strings are tried first; anything else goes through the pandas
    parser, so inputs like ``2024/01/15`` or ``Jan 15, 2024`` are accepted.
    """

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    try:
        stamp = pd.to_datetime(text, errors="coerce")
    except (OverflowError, TypeError, ValueError):
        return None
    if pd.isna(stamp):
        return None
    return stamp.to_pydatetime()


def _validate_text(field: Field, value: Any) -> Outcome:
    text = _as_text(value)
    if not text:
        return (OMIT, "Response is required") if field.required else (OMIT, None)
    if field.min_length is not None and len(text) < field.min_length:
        return OMIT, f"Response must be at least {field.min_length} characters"
    if field.max_length is not None and len(text) > field.max_length:
        return OMIT, f"Response cannot exceed {field.max_length} characters"
    return text, None


def _validate_email(field: Field, value: Any) -> Outcome:
    text = _as_text(value)
    if not text:
        return (OMIT, "Email is required") if field.required else (OMIT, None)
    if not EMAIL_PATTERN.match(text):
        return OMIT, "Email format looks invalid"
    return text, None


def _validate_number(field: Field, value: Any) -> Outcome:
    if value is None or (isinstance(value, str) and not value.strip()):
        return (OMIT, "Number is required") if field.required else (OMIT, None)
    number = parse_number(value)
    if number is None:
        if field.required:
            return OMIT, "Number is required"
        return OMIT, "Number could not be parsed"
    return number, None


def _validate_dropdown(field: Field, value: Any) -> Outcome:
    selection = value.strip() if isinstance(value, str) else ""
    if not selection:
        return (OMIT, "Selection is required") if field.required else (OMIT, None)
    if field.options and selection not in field.option_values():
        return OMIT, "Selected option is invalid"
    return selection, None


def _validate_checkbox(field: Field, value: Any) -> Outcome:
    selections = list(value) if isinstance(value, (list, tuple)) else []
    if not selections:
        return (OMIT, "At least one option is required") if field.required else (OMIT, None)
    if any(not isinstance(item, str) for item in selections):
        return OMIT, "One or more options are invalid"
    if field.options:
        allowed = set(field.option_values())
        if any(item not in allowed for item in selections):
            return OMIT, "One or more options are invalid"
    return selections, None


def _validate_date(field: Field, value: Any) -> Outcome:
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        return (OMIT, "Date is required") if field.required else (OMIT, None)
    if parse_date(text) is None:
        return OMIT, "Date could not be parsed"
    return text, None


_VALIDATORS: Dict[FieldType, Callable[[Field, Any], Outcome]] = {
    FieldType.SHORT_TEXT: _validate_text,
    FieldType.LONG_TEXT: _validate_text,
    FieldType.EMAIL: _validate_email,
    FieldType.NUMBER: _validate_number,
    FieldType.DROPDOWN: _validate_dropdown,
    FieldType.CHECKBOX: _validate_checkbox,
    FieldType.DATE: _validate_date,
}


def _validator_for(field_type: Any) -> Optional[Callable[[Field, Any], Outcome]]:
    resolved = coerce_field_type(field_type)
    return _VALIDATORS.get(resolved) if resolved is not None else None


def validate_answers(fields: Sequence[Field], answers: Iterable[Answer]) -> ValidationResult:
    """Validate ``answers`` against ``fields``.

    Fields are processed in order and at most one issue is recorded per
    field, the first one wins. Issues for answers naming unknown fields
    follow the field issues. Any issue means the normalised answers must not
    be persisted.
    """

    submitted = list(answers)
    first_answer: Dict[str, Answer] = {}
    for answer in submitted:
        first_answer.setdefault(answer.field_id, answer)

    field_issues: Dict[str, str] = {}
    normalized: List[NormalizedAnswer] = []

    for field in fields:
        answer = first_answer.get(field.id)
        if answer is None:
            if field.required:
                field_issues.setdefault(field.id, MISSING_MESSAGE)
            continue
        validator = _validator_for(field.type)
        if validator is None:
            field_issues.setdefault(field.id, UNSUPPORTED_MESSAGE)
            continue
        value, message = validator(field, answer.value)
        if message:
            field_issues.setdefault(field.id, message)
        elif value is not OMIT:
            normalized.append(NormalizedAnswer(field.id, FieldType(field.type), value))

    answered = {item.field_id for item in normalized}
    for field in fields:
        if field.required and field.id not in answered:
            field_issues.setdefault(field.id, MISSING_MESSAGE)

    known_ids = {field.id for field in fields}
    issues = [ValidationIssue(field_id, message) for field_id, message in field_issues.items()]
    issues.extend(
        ValidationIssue(answer.field_id, UNREFERENCED_MESSAGE)
        for answer in submitted
        if answer.field_id not in known_ids
    )
    if issues:
        return ValidationResult(answers=(), issues=tuple(issues))
    return ValidationResult(answers=tuple(normalized), issues=())


def _format_number(value: Union[int, float]) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _soft_number(field: Field, value: Any) -> Optional[str]:
    number = parse_number(value)
    if number is None:
        return "Enter a numeric value."
    if field.min is not None and number < field.min:
        return f"Minimum value is {_format_number(field.min)}."
    if field.max is not None and number > field.max:
        return f"Maximum value is {_format_number(field.max)}."
    if field.step:
        base = field.min if field.min is not None else 0
        steps = (number - base) / field.step
        if not math.isclose(steps, round(steps), abs_tol=1e-9):
            return f"Value must be in steps of {_format_number(field.step)}."
    return None


def soft_check(field: Field, value: Any) -> Optional[str]:
    """Return the advisory message for one field, or ``None`` if it looks fine."""

    if field.type == FieldType.CHECKBOX:
        selected = value if isinstance(value, (list, tuple)) else []
        if field.required and not selected:
            return "Please choose at least one option."
        return None
    if _is_blank(value):
        return "This field is required." if field.required else None

    text = value.strip() if isinstance(value, str) else value
    if field.type == FieldType.EMAIL:
        if not EMAIL_PATTERN.match(str(text)):
            return "Enter a valid email address."
    elif field.type == FieldType.NUMBER:
        return _soft_number(field, text)
    elif field.type in TEXT_TYPES:
        length = len(str(text))
        if field.min_length is not None and length < field.min_length:
            return f"Must be at least {field.min_length} characters."
        if field.max_length is not None and length > field.max_length:
            return f"Cannot exceed {field.max_length} characters."
    elif field.type == FieldType.DROPDOWN:
        if field.options and text not in field.option_values():
            return "Select an option."
    elif field.type == FieldType.DATE:
        if parse_date(str(text)) is None:
            return "Enter a valid date."
    return None


def soft_validate(fields: Sequence[Field], values: Mapping[str, Any]) -> Dict[str, str]:
    """Run the advisory checks used by the preview; keyed by field id."""

    errors: Dict[str, str] = {}
    for field in fields:
        message = soft_check(field, values.get(field.id))
        if message:
            errors[field.id] = message
    return errors


def normalized_to_dicts(answers: Iterable[NormalizedAnswer]) -> List[Dict[str, Any]]:
    return [
        {"field_id": item.field_id, "field_type": item.field_type.value, "value": item.value}
        for item in answers
    ]


__all__ = [
    "Answer",
    "EMAIL_PATTERN",
    "MISSING_MESSAGE",
    "NormalizedAnswer",
    "UNREFERENCED_MESSAGE",
    "UNSUPPORTED_MESSAGE",
    "ValidationIssue",
    "ValidationResult",
    "normalized_to_dicts",
    "parse_date",
    "parse_number",
    "soft_check",
    "soft_validate",
    "validate_answers",
]
