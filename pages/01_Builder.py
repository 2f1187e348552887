"""Authenticated builder page for designing, previewing, and publishing forms."""

from __future__ import annotations

import re
import sys
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from formstudio.auth import require_authentication
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
    initial_state,
    publish_blockers,
    reduce,
)
from formstudio.field_schema import (
    FIELD_TYPE_LABELS,
    TEXT_TYPES,
    Field,
    FieldType,
    add_option,
    create_field,
    remove_option,
    rename_option,
    schema_to_dict,
)
from formstudio.form_renderer import render_preview, rerun_app
from formstudio.form_store import FormRepository, StorageError
from formstudio.settings import get_repository
from formstudio.theme import (
    FONT_OPTIONS,
    SURFACE_KEYS,
    THEME_TAG_LABELS,
    ThemeMode,
    ThemeTag,
    theme_to_dict,
)
from formstudio.ui_theme import apply_app_theme, page_header

BUILDER_STATE_KEY = "builder_state"
WIDGET_PREFIX = "builder_"
NEW_FORM_OPTION = "__new__"
_HEX_COLOUR = re.compile(r"^#[0-9a-fA-F]{6}$")
FONT_WEIGHTS = [100, 200, 300, 400, 500, 600, 700, 800, 900]


@contextmanager
def section_card(
    title: Optional[str] = None,
    description: Optional[str] = None,
) -> Any:
    """Render a styled container with optional title and description."""

    container = st.container(border=True)
    with container:
        if title:
            st.markdown(f"<h3>{title}</h3>", unsafe_allow_html=True)
        if description:
            st.markdown(
                f"<p class='app-section-card__description'>{description}</p>",
                unsafe_allow_html=True,
            )
        yield container


def get_state() -> BuilderState:
    """Return the editing session, creating the starter form on first use."""

    state = st.session_state.get(BUILDER_STATE_KEY)
    if not isinstance(state, BuilderState):
        state = initial_state()
        st.session_state[BUILDER_STATE_KEY] = state
    return state


def dispatch(action: Any) -> BuilderState:
    """Apply ``action`` to the session's builder state."""

    state = reduce(get_state(), action)
    st.session_state[BUILDER_STATE_KEY] = state
    return state


def _clear_builder_widgets() -> None:
    for key in list(st.session_state.keys()):
        if isinstance(key, str) and key.startswith(WIDGET_PREFIX):
            del st.session_state[key]


def _widget_key(field: Field, attribute: str) -> str:
    return f"{WIDGET_PREFIX}{field.id}_{attribute}"


def _on_field_change(field_id: str, attribute: str, key: str) -> None:
    dispatch(UpdateField(field_id, {attribute: st.session_state.get(key)}))


def _on_meta_change(attribute: str, key: str) -> None:
    dispatch(UpdateFormMeta({attribute: st.session_state.get(key, "")}))


def load_form_into_builder(repository: FormRepository, form_id: Optional[str]) -> None:
    """Replace the editing session with a stored form or a fresh starter form."""

    if not form_id or form_id == NEW_FORM_OPTION:
        st.session_state[BUILDER_STATE_KEY] = initial_state()
    else:
        try:
            stored = repository.load_form(form_id)
        except (StorageError, requests.RequestException, ValueError) as exc:
            st.error(f"Could not load form: {exc}")
            return
        st.session_state[BUILDER_STATE_KEY] = initial_state(
            stored.schema, stored.theme, form_id=stored.id
        )
    _clear_builder_widgets()


def render_form_picker(repository: FormRepository) -> None:
    try:
        forms = repository.list_forms()
    except (StorageError, requests.RequestException, OSError) as exc:
        st.warning(f"Could not list published forms: {exc}")
        forms = []

    labels: Dict[str, str] = {NEW_FORM_OPTION: "New form"}
    labels.update({form.id: f"{form.title} · {form.id[:8]}" for form in forms})
    current = get_state().form_id or NEW_FORM_OPTION
    options = list(labels.keys())
    picker_col, load_col = st.columns([3, 1])
    with picker_col:
        selected = st.selectbox(
            "Form",
            options=options,
            index=options.index(current) if current in options else 0,
            format_func=lambda key: labels.get(key, key),
            help="Start a new form or continue editing a published one.",
        )
    with load_col:
        st.write("")
        if st.button("Open", use_container_width=True):
            load_form_into_builder(repository, selected)
            rerun_app()


def render_meta_editor(state: BuilderState) -> None:
    with section_card("Form details", "Title, introduction, and the submit button text."):
        title_key = f"{WIDGET_PREFIX}meta_title"
        st.text_input(
            "Title",
            value=state.meta.title,
            key=title_key,
            on_change=_on_meta_change,
            args=("title", title_key),
        )
        description_key = f"{WIDGET_PREFIX}meta_description"
        st.text_area(
            "Description",
            value=state.meta.description,
            key=description_key,
            on_change=_on_meta_change,
            args=("description", description_key),
        )
        submit_key = f"{WIDGET_PREFIX}meta_submit_label"
        st.text_input(
            "Submit button label",
            value=state.meta.submit_label,
            key=submit_key,
            on_change=_on_meta_change,
            args=("submit_label", submit_key),
        )


def render_field_overview(state: BuilderState) -> None:
    """List fields with select, move, duplicate, and delete controls."""

    with section_card("Fields", "Select a field to edit its settings."):
        if not state.fields:
            st.info("No fields yet. Add one below.")
        last_index = len(state.fields) - 1
        for index, field in enumerate(state.fields):
            selected = field.id == state.selected_field_id
            label_col, up_col, down_col, copy_col, delete_col = st.columns([6, 1, 1, 1, 1])
            with label_col:
                st.button(
                    f"{'▶ ' if selected else ''}{field.label or 'Untitled field'}",
                    key=f"{WIDGET_PREFIX}{field.id}_select",
                    on_click=dispatch,
                    args=(SelectField(field.id),),
                    use_container_width=True,
                    type="primary" if selected else "secondary",
                    help=FIELD_TYPE_LABELS.get(field.type, str(field.type)),
                )
            up_col.button(
                "↑",
                key=f"{WIDGET_PREFIX}{field.id}_up",
                on_click=dispatch,
                args=(ReorderField(field.id, Direction.UP),),
                disabled=index == 0,
            )
            down_col.button(
                "↓",
                key=f"{WIDGET_PREFIX}{field.id}_down",
                on_click=dispatch,
                args=(ReorderField(field.id, Direction.DOWN),),
                disabled=index == last_index,
            )
            copy_col.button(
                "⧉",
                key=f"{WIDGET_PREFIX}{field.id}_duplicate",
                on_click=dispatch,
                args=(DuplicateField(field.id),),
                help="Duplicate",
            )
            delete_col.button(
                "✕",
                key=f"{WIDGET_PREFIX}{field.id}_remove",
                on_click=dispatch,
                args=(RemoveField(field.id),),
                help="Remove",
            )

        type_col, add_col = st.columns([3, 1])
        with type_col:
            new_type = st.selectbox(
                "New field type",
                options=list(FieldType),
                format_func=lambda value: FIELD_TYPE_LABELS[value],
                key=f"{WIDGET_PREFIX}new_field_type",
            )
        with add_col:
            st.write("")
            if st.button("Add field", use_container_width=True):
                dispatch(AddField(create_field(new_type)))
                rerun_app()


def _on_option_rename(field_id: str, option_id: str, key: str) -> None:
    field = get_state().schema.field_by_id(field_id)
    if field is None:
        return
    text = str(st.session_state.get(key, "")).strip()
    if not text:
        return
    dispatch(UpdateField(field_id, {"options": rename_option(field.options or (), option_id, text)}))


def _on_option_remove(field_id: str, option_id: str) -> None:
    field = get_state().schema.field_by_id(field_id)
    if field is not None:
        dispatch(UpdateField(field_id, {"options": remove_option(field.options or (), option_id)}))


def _on_option_add(field_id: str) -> None:
    field = get_state().schema.field_by_id(field_id)
    if field is not None:
        dispatch(UpdateField(field_id, {"options": add_option(field.options or ())}))


def render_options_editor(field: Field) -> None:
    """Edit the choices of a dropdown or checkbox field."""

    st.caption("Renaming an option also changes the value stored with responses.")
    for option in field.options or ():
        key = f"{WIDGET_PREFIX}{field.id}_option_{option.id}"
        text_col, remove_col = st.columns([6, 1])
        text_col.text_input(
            "Option",
            value=option.label,
            key=key,
            label_visibility="collapsed",
            on_change=_on_option_rename,
            args=(field.id, option.id, key),
        )
        remove_col.button(
            "✕",
            key=f"{key}_remove",
            on_click=_on_option_remove,
            args=(field.id, option.id),
        )
    if not field.options:
        st.info("Provide at least one option to offer selectable answers.")
    st.button(
        "Add option",
        key=f"{WIDGET_PREFIX}{field.id}_option_add",
        on_click=_on_option_add,
        args=(field.id,),
    )


def _number_setting(field: Field, attribute: str, label: str, *, integer: bool) -> None:
    key = _widget_key(field, attribute)
    current = getattr(field, attribute)
    if integer:
        st.number_input(
            label,
            value=current,
            min_value=0,
            step=1,
            key=key,
            on_change=_on_field_change,
            args=(field.id, attribute, key),
        )
    else:
        st.number_input(
            label,
            value=None if current is None else float(current),
            key=key,
            on_change=_on_field_change,
            args=(field.id, attribute, key),
        )


def render_field_editor(field: Field) -> None:
    """Edit the selected field's settings."""

    with section_card("Field settings"):
        label_key = _widget_key(field, "label")
        st.text_input(
            "Label",
            value=field.label,
            key=label_key,
            on_change=_on_field_change,
            args=(field.id, "label", label_key),
        )
        type_key = _widget_key(field, "type")
        types = list(FieldType)
        st.selectbox(
            "Type",
            options=types,
            index=types.index(field.type),
            format_func=lambda value: FIELD_TYPE_LABELS[value],
            key=type_key,
            on_change=_on_field_change,
            args=(field.id, "type", type_key),
        )
        required_key = _widget_key(field, "required")
        st.checkbox(
            "Required",
            value=field.required,
            key=required_key,
            on_change=_on_field_change,
            args=(field.id, "required", required_key),
        )
        for attribute, label in (("description", "Helper text"), ("placeholder", "Placeholder")):
            key = _widget_key(field, attribute)
            st.text_input(
                label,
                value=getattr(field, attribute) or "",
                key=key,
                on_change=_on_field_change,
                args=(field.id, attribute, key),
            )

        if field.type in TEXT_TYPES:
            min_col, max_col = st.columns(2)
            with min_col:
                _number_setting(field, "min_length", "Minimum length", integer=True)
            with max_col:
                _number_setting(field, "max_length", "Maximum length", integer=True)
        elif field.type == FieldType.NUMBER:
            min_col, max_col, step_col = st.columns(3)
            with min_col:
                _number_setting(field, "min", "Minimum", integer=False)
            with max_col:
                _number_setting(field, "max", "Maximum", integer=False)
            with step_col:
                _number_setting(field, "step", "Step", integer=False)
        elif field.is_choice:
            render_options_editor(field)


def _on_theme_token_change(tag: ThemeTag, attribute: str, key: str) -> None:
    dispatch(UpdateThemeToken(tag.value, attribute, st.session_state.get(key)))


def _on_theme_surface_change(attribute: str, key: str) -> None:
    dispatch(UpdateThemeSurface(attribute, st.session_state.get(key)))


def _on_theme_mode_change(key: str) -> None:
    dispatch(SetThemeMode(ThemeMode(st.session_state.get(key))))


def _colour_input(label: str, value: Optional[str], key: str, on_change: Any, args: tuple) -> None:
    """Colour picker for hex values, free text for anything else."""

    if value and _HEX_COLOUR.match(value):
        st.color_picker(label, value=value, key=key, on_change=on_change, args=args)
    else:
        st.text_input(label, value=value or "", key=key, on_change=on_change, args=args)


def render_theme_panel(state: BuilderState) -> None:
    """Sidebar controls for the active light or dark palette."""

    theme = state.theme
    mode_key = f"{WIDGET_PREFIX}theme_mode"
    st.sidebar.subheader("Theme")
    st.sidebar.radio(
        "Mode",
        options=[mode.value for mode in ThemeMode],
        index=[mode.value for mode in ThemeMode].index(theme.mode.value),
        format_func=str.capitalize,
        horizontal=True,
        key=mode_key,
        on_change=_on_theme_mode_change,
        args=(mode_key,),
    )
    snapshot = theme.active
    prefix = f"{WIDGET_PREFIX}theme_{theme.mode.value}"

    with st.sidebar.expander("Surfaces", expanded=False):
        for attribute in SURFACE_KEYS:
            key = f"{prefix}_surface_{attribute}"
            _colour_input(
                attribute.capitalize(),
                getattr(snapshot, attribute),
                key,
                _on_theme_surface_change,
                (attribute, key),
            )

    with st.sidebar.expander("Typography & components", expanded=True):
        tag = st.selectbox(
            "Element",
            options=list(ThemeTag),
            format_func=lambda value: THEME_TAG_LABELS[value],
            key=f"{WIDGET_PREFIX}theme_tag",
        )
        token = snapshot.tokens[tag]
        token_prefix = f"{prefix}_{tag.value}"
        colour_key = f"{token_prefix}_color"
        _colour_input("Text colour", token.color, colour_key, _on_theme_token_change, (tag, "color", colour_key))
        size_key = f"{token_prefix}_font_size"
        st.text_input(
            "Font size",
            value=token.font_size,
            key=size_key,
            on_change=_on_theme_token_change,
            args=(tag, "font_size", size_key),
        )
        family_key = f"{token_prefix}_font_family"
        families = list(FONT_OPTIONS.values())
        if token.font_family not in families:
            families.append(token.font_family)
        names = {value: name for name, value in FONT_OPTIONS.items()}
        st.selectbox(
            "Font family",
            options=families,
            index=families.index(token.font_family),
            format_func=lambda value: names.get(value, value),
            key=family_key,
            on_change=_on_theme_token_change,
            args=(tag, "font_family", family_key),
        )
        weight_key = f"{token_prefix}_font_weight"
        st.select_slider(
            "Font weight",
            options=FONT_WEIGHTS,
            value=token.font_weight if token.font_weight in FONT_WEIGHTS else 400,
            key=weight_key,
            on_change=_on_theme_token_change,
            args=(tag, "font_weight", weight_key),
        )
        if tag in (ThemeTag.INPUT, ThemeTag.BUTTON):
            background_key = f"{token_prefix}_background"
            _colour_input(
                "Background",
                token.background,
                background_key,
                _on_theme_token_change,
                (tag, "background", background_key),
            )
            border_key = f"{token_prefix}_border_color"
            _colour_input(
                "Border",
                token.border_color,
                border_key,
                _on_theme_token_change,
                (tag, "border_color", border_key),
            )


def handle_publish(state: BuilderState, repository: FormRepository) -> Optional[str]:
    """Publish the form if it passes the local checks; return the form id."""

    blockers = publish_blockers(state)
    if blockers:
        for message in blockers:
            st.error(message)
        return None

    try:
        stored = repository.publish_form(state.schema, state.theme, form_id=state.form_id)
    except (StorageError, requests.RequestException, OSError) as exc:
        st.error(f"Could not publish form: {exc}")
        return None

    st.session_state[BUILDER_STATE_KEY] = replace(state, form_id=stored.id)
    st.cache_data.clear()
    st.success(f"Form published. Share it from the Responses page (form ID {stored.id}).")
    return stored.id


def main() -> None:
    """Render the form builder page."""

    apply_app_theme(page_title="Form builder", page_icon="🧩")
    require_authentication()
    page_header(
        "Form builder",
        "Design the questions, tune the theme, and preview before publishing.",
        icon="🧩",
    )

    repository = get_repository()
    render_form_picker(repository)
    state = get_state()

    mode_key = f"{WIDGET_PREFIX}mode"
    modes: List[str] = [mode.value for mode in BuilderMode]
    selected_mode = st.radio(
        "Mode",
        options=modes,
        index=modes.index(state.mode.value),
        format_func=str.capitalize,
        horizontal=True,
        key=mode_key,
    )
    if selected_mode != state.mode.value:
        state = dispatch(SetMode(BuilderMode(selected_mode)))

    render_theme_panel(state)

    if state.mode == BuilderMode.PREVIEW:
        render_preview(state.schema, state.theme.active, key_prefix=f"{WIDGET_PREFIX}preview")
    else:
        render_meta_editor(state)
        overview_col, editor_col = st.columns([1, 1])
        with overview_col:
            render_field_overview(state)
        with editor_col:
            selected = state.selected_field
            if selected is not None:
                render_field_editor(selected)
            elif state.fields:
                st.info("Select a field from the list to edit its settings.")

    with st.expander("View raw schema"):
        payload = schema_to_dict(state.schema)
        payload["theme"] = theme_to_dict(state.theme)
        st.json(payload)

    st.divider()
    with section_card("Publish", "Save the form so it can be shared and collect responses."):
        if state.form_id:
            st.caption(f"Editing published form {state.form_id}. Publishing updates it in place.")
        if st.button("Publish", type="primary"):
            handle_publish(get_state(), repository)


if __name__ == "__main__":
    main()
