"""Authenticated dashboard for share links and collected responses."""

from __future__ import annotations

import sys
from datetime import datetime, time, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd
import requests
import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from formstudio.auth import require_authentication
from formstudio.form_renderer import rerun_app
from formstudio.form_store import FormRepository, StorageError, StoredForm, parse_timestamp
from formstudio.settings import get_app_url, get_repository
from formstudio.share_links import (
    ShareLinkError,
    get_share_link,
    issue_share_link,
    revoke_share_link,
)
from formstudio.ui_theme import apply_app_theme, page_header

SELECTED_FORM_STATE_KEY = "responses_selected_form"
FORM_ID_PARAM = "form_id"
BASE_COLUMNS = ("Response ID", "Submitted at", "Completion (s)")


def _format_value(value: Any) -> Any:
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    return value


def responses_to_frame(form: StoredForm, responses: Iterable[Dict[str, Any]]) -> pd.DataFrame:
    """Flatten stored responses into one row per response, one column per field."""

    labels: Dict[str, str] = {}
    for field in form.schema.fields:
        label = field.label or field.id
        while label in labels.values() or label in BASE_COLUMNS:
            label = f"{label} ({field.id[:6]})"
        labels[field.id] = label

    rows: List[Dict[str, Any]] = []
    for response in responses:
        timestamp, _ = parse_timestamp(response.get("submitted_at"))
        completion_ms = response.get("completion_ms")
        row: Dict[str, Any] = {
            "Response ID": response.get("id", ""),
            "Submitted at": timestamp,
            "Completion (s)": round(completion_ms / 1000, 1) if isinstance(completion_ms, int) else None,
        }
        for answer in response.get("answers", []) or []:
            if not isinstance(answer, dict):
                continue
            field_id = str(answer.get("field_id", ""))
            column = labels.get(field_id, field_id)
            row[column] = _format_value(answer.get("value"))
        rows.append(row)

    columns = [*BASE_COLUMNS, *labels.values()]
    return pd.DataFrame(rows, columns=columns)


def _expiry_from_inputs(expiry_date: Optional[Any], expiry_time: Optional[time]) -> Optional[datetime]:
    if expiry_date is None:
        return None
    return datetime.combine(expiry_date, expiry_time or time(23, 59), tzinfo=timezone.utc)


def render_share_settings(repository: FormRepository, form: StoredForm) -> None:
    """Show the current share link and forms to issue, update, or revoke it."""

    base_url = get_app_url()
    try:
        link = get_share_link(repository, form.id, base_url)
    except (StorageError, requests.RequestException) as exc:
        st.error(f"Could not load share link: {exc}")
        return

    st.markdown("#### Share link")
    if link is None:
        st.info("This form has no share link yet.")
    else:
        st.code(link.url, language=None)
        details = [
            "Password required" if link.requires_password else "Open to anyone with the link",
            f"Expires {link.expires_at}" if link.expires_at else "Never expires",
            f"Created {parse_timestamp(link.created_at)[0] or link.created_at}",
        ]
        st.caption(" · ".join(details))

    with st.form(key=f"share_settings_{form.id}"):
        password = st.text_input(
            "Password (optional)",
            type="password",
            help="6 to 64 characters. Leave empty to allow anyone with the link.",
        )
        date_col, time_col = st.columns(2)
        expiry_date = date_col.date_input("Expires on (optional)", value=None)
        expiry_time = time_col.time_input("Expiry time (UTC)", value=time(23, 59))
        label = "Update share link" if link else "Create share link"
        save = st.form_submit_button(label, type="primary")

    if save:
        try:
            issued = issue_share_link(
                repository,
                form.id,
                password=password or None,
                expires_at=_expiry_from_inputs(expiry_date, expiry_time),
                base_url=base_url,
            )
        except ShareLinkError as exc:
            st.error(exc.message)
        except (StorageError, requests.RequestException, OSError) as exc:
            st.error(f"Could not save share link: {exc}")
        else:
            st.success(f"Share link ready: {issued.url}")

    if link is not None and st.button("Revoke share link", key=f"revoke_{form.id}"):
        try:
            summary = revoke_share_link(repository, form.id)
        except (StorageError, requests.RequestException, OSError) as exc:
            st.error(f"Could not revoke share link: {exc}")
        else:
            if summary["status"] == "revoked":
                st.success("Share link revoked.")
            rerun_app()


def render_responses(repository: FormRepository, form: StoredForm) -> None:
    try:
        responses = repository.list_responses(form.id)
    except (StorageError, requests.RequestException) as exc:
        st.error(f"Could not load responses: {exc}")
        return

    st.markdown("#### Responses")
    metric_col1, metric_col2, metric_col3 = st.columns(3)
    metric_col1.metric("Responses", len(responses) or "0")
    metric_col2.metric("Fields", len(form.schema.fields) or "0")
    latest = parse_timestamp(responses[0].get("submitted_at"))[0] if responses else ""
    metric_col3.metric("Latest response", latest or "—")

    if not responses:
        st.info("No responses yet. Share the form to start collecting answers.")
        return

    frame = responses_to_frame(form, responses)
    st.dataframe(frame, hide_index=True, use_container_width=True)
    st.download_button(
        "Download CSV",
        data=frame.to_csv(index=False).encode("utf-8"),
        file_name=f"{form.id}-responses.csv",
        mime="text/csv",
    )

    response_ids = [str(item.get("id", "")) for item in responses]
    selected_id = st.selectbox("Inspect a response", options=response_ids)
    if selected_id:
        try:
            st.json(repository.get_response(form.id, selected_id))
        except (StorageError, requests.RequestException) as exc:
            st.error(f"Could not load response: {exc}")


def render_danger_zone(repository: FormRepository, form: StoredForm) -> None:
    with st.expander("Delete form"):
        st.warning("Deleting removes the form, its share link, and every response.")
        confirmed = st.checkbox("I understand", key=f"confirm_delete_{form.id}")
        if st.button("Delete form", disabled=not confirmed, key=f"delete_{form.id}"):
            try:
                repository.delete_form(form.id)
            except (StorageError, requests.RequestException, OSError) as exc:
                st.error(f"Could not delete form: {exc}")
                return
            st.session_state.pop(SELECTED_FORM_STATE_KEY, None)
            st.cache_data.clear()
            rerun_app()


def main() -> None:
    """Render the responses dashboard."""

    apply_app_theme(page_title="Responses", page_icon="📊")
    require_authentication()
    page_header("Responses", "Share published forms and review what came back.", icon="📊")

    repository = get_repository()
    try:
        forms = repository.list_forms()
    except (StorageError, requests.RequestException, OSError) as exc:
        st.error(f"Could not load forms: {exc}")
        return

    if not forms:
        st.info("No published forms yet. Publish one from the builder first.")
        st.page_link("pages/01_Builder.py", label="Open the builder", icon="🧩")
        return

    form_ids = [form.id for form in forms]
    by_id = {form.id: form for form in forms}
    requested = st.query_params.get(FORM_ID_PARAM)
    selected = st.session_state.get(SELECTED_FORM_STATE_KEY, requested)
    if selected not in form_ids:
        selected = form_ids[0]
    selected = st.selectbox(
        "Form",
        options=form_ids,
        index=form_ids.index(selected),
        format_func=lambda key: by_id[key].title or key,
    )
    st.session_state[SELECTED_FORM_STATE_KEY] = selected
    form = by_id[selected]

    render_share_settings(repository, form)
    st.divider()
    render_responses(repository, form)
    st.divider()
    render_danger_zone(repository, form)


if __name__ == "__main__":
    main()
