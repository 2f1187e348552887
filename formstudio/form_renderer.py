"""Streamlit rendering of a form schema for preview and public filling."""

from __future__ import annotations

from datetime import date, datetime
from html import escape
from typing import Any, Dict, Mapping, Optional, Tuple

import streamlit as st

from formstudio.answer_validation import soft_validate
from formstudio.field_schema import Field, FieldType, FormSchema
from formstudio.schema_defaults import (
    EMPTY_PREVIEW_MESSAGE,
    PREVIEW_SUCCESS_MESSAGE,
    UNSELECTED_LABEL,
)
from formstudio.theme import ThemeSnapshot
from formstudio.ui_theme import form_theme_css


def rerun_app() -> None:
    """Trigger a Streamlit rerun using the available API."""

    if hasattr(st, "rerun"):
        st.rerun()
    elif hasattr(st, "experimental_rerun"):
        st.experimental_rerun()


def widget_key(prefix: str, field: Field) -> str:
    return f"{prefix}_field_{field.id}"


def field_label(field: Field) -> str:
    return f"{field.label} *" if field.required else field.label


def _as_float(value: Optional[float]) -> Optional[float]:
    return None if value is None else float(value)


def normalise_widget_value(field: Field, value: Any) -> Any:
    """Convert a raw widget value into the answer value the validator expects."""

    if field.type == FieldType.DROPDOWN:
        return None if value in (None, UNSELECTED_LABEL) else value
    if field.type == FieldType.CHECKBOX:
        return list(value or [])
    if field.type == FieldType.DATE:
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        return value or ""
    if field.type == FieldType.NUMBER:
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value
    return value if value is not None else ""


def render_field(field: Field, *, key_prefix: str, error: Optional[str] = None) -> Any:
    """Render the widget for ``field`` and return its normalised value."""

    key = widget_key(key_prefix, field)
    label = field_label(field)
    placeholder = field.placeholder or None

    if field.type == FieldType.LONG_TEXT:
        raw = st.text_area(label, key=key, placeholder=placeholder)
    elif field.type in (FieldType.SHORT_TEXT, FieldType.EMAIL):
        raw = st.text_input(label, key=key, placeholder=placeholder)
    elif field.type == FieldType.NUMBER:
        raw = st.number_input(
            label,
            value=None,
            step=_as_float(field.step) or 1.0,
            key=key,
            placeholder=placeholder,
        )
    elif field.type == FieldType.DROPDOWN:
        labels = {option.value: option.label for option in field.options or ()}
        choices = [UNSELECTED_LABEL, *labels.keys()]
        if key in st.session_state and st.session_state[key] not in choices:
            st.session_state.pop(key)
        raw = st.selectbox(
            label,
            options=choices,
            key=key,
            format_func=lambda value: labels.get(value, value),
        )
    elif field.type == FieldType.CHECKBOX:
        labels = {option.value: option.label for option in field.options or ()}
        if key in st.session_state:
            st.session_state[key] = [value for value in st.session_state[key] if value in labels]
        raw = st.multiselect(
            label,
            options=list(labels.keys()),
            key=key,
            format_func=lambda value: labels.get(value, value),
        )
    elif field.type == FieldType.DATE:
        raw = st.date_input(label, value=None, key=key)
    else:
        st.warning(f"Unsupported field type: {field.type}")
        raw = None

    if field.description:
        st.markdown(f"<p class='fs-helper'>{escape(field.description)}</p>", unsafe_allow_html=True)
    if error:
        st.markdown(f"<p class='fs-error'>{escape(error)}</p>", unsafe_allow_html=True)
    return normalise_widget_value(field, raw)


def render_form_heading(schema: FormSchema) -> None:
    meta = schema.meta
    description = (
        f"<p class='fs-form-description'>{escape(meta.description)}</p>" if meta.description else ""
    )
    st.markdown(
        f"<div class='fs-canvas'><h2 class='fs-form-title'>{escape(meta.title)}</h2>{description}</div>",
        unsafe_allow_html=True,
    )


def render_form(
    schema: FormSchema,
    snapshot: ThemeSnapshot,
    *,
    key_prefix: str,
    errors: Optional[Mapping[str, str]] = None,
) -> Tuple[bool, Dict[str, Any]]:
    """Render the themed form and return ``(submitted, values)``."""

    st.markdown(form_theme_css(snapshot), unsafe_allow_html=True)
    render_form_heading(schema)
    if not schema.fields:
        st.info(EMPTY_PREVIEW_MESSAGE)
        return False, {}

    errors = errors or {}
    values: Dict[str, Any] = {}
    with st.form(key=f"{key_prefix}_form"):
        count = len(schema.fields)
        st.markdown(
            f"<p class='fs-section-title'>{count} question{'s' if count != 1 else ''}</p>",
            unsafe_allow_html=True,
        )
        for field in schema.fields:
            values[field.id] = render_field(field, key_prefix=key_prefix, error=errors.get(field.id))
        submitted = st.form_submit_button(schema.meta.submit_label or "Submit")
    return submitted, values


def errors_state_key(key_prefix: str) -> str:
    return f"{key_prefix}_errors"


def success_state_key(key_prefix: str) -> str:
    return f"{key_prefix}_success"


def render_preview(schema: FormSchema, snapshot: ThemeSnapshot, *, key_prefix: str = "preview") -> None:
    """Render a live preview that runs the advisory checks on submit."""

    errors_key = errors_state_key(key_prefix)
    success_key = success_state_key(key_prefix)
    known_ids = {field.id for field in schema.fields}
    errors = {
        field_id: message
        for field_id, message in st.session_state.get(errors_key, {}).items()
        if field_id in known_ids
    }

    submitted, values = render_form(schema, snapshot, key_prefix=key_prefix, errors=errors)
    if submitted:
        new_errors = soft_validate(schema.fields, values)
        st.session_state[errors_key] = new_errors
        st.session_state[success_key] = not new_errors
        rerun_app()

    if st.session_state.get(success_key) and not errors:
        st.success(PREVIEW_SUCCESS_MESSAGE)


__all__ = [
    "errors_state_key",
    "field_label",
    "normalise_widget_value",
    "render_field",
    "render_form",
    "render_preview",
    "rerun_app",
    "success_state_key",
    "widget_key",
]
