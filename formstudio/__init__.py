"""Form builder, answer validation, and submission helpers for Form Studio."""

from .answer_validation import Answer, ValidationIssue, validate_answers  # noqa: F401
from .builder_state import BuilderState, initial_state, reduce  # noqa: F401
from .field_schema import Field, FieldType, FormSchema  # noqa: F401
