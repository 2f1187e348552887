"""Public page for filling in a form opened through its share link."""

from __future__ import annotations

import sys
import time
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

import requests
import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from formstudio.field_schema import Field
from formstudio.form_renderer import errors_state_key, render_form, rerun_app
from formstudio.form_store import FormRepository, StorageError
from formstudio.schema_defaults import MAX_COMPLETION_MS, PUBLIC_SUCCESS_MESSAGE
from formstudio.settings import get_repository
from formstudio.share_links import (
    ShareLinkError,
    ShareView,
    resolve_share_link,
    verify_share_password,
)
from formstudio.submissions import (
    PayloadError,
    SubmissionForbidden,
    SubmissionRejected,
    submit_response,
)
from formstudio.ui_theme import apply_app_theme

TOKEN_QUERY_PARAM = "token"
SHARE_PREFIX = "share"
PASSWORDS_STATE_KEY = "share_passwords"
STARTED_STATE_KEY = "share_started_at"
SUBMITTED_STATE_KEY = "share_submitted"
HONEYPOT_KEY = f"{SHARE_PREFIX}_website"

_HONEYPOT_CSS = """
<style>
.st-key-share_website { position: absolute; left: -10000px; height: 0; overflow: hidden; }
</style>
"""


def _get_query_param(name: str) -> Optional[str]:
    """Return the first query parameter value if present."""

    params = st.query_params
    values = params.get(name)
    if not values:
        return None
    if isinstance(values, list):
        return next((str(value) for value in values if value is not None), None)
    return str(values)


def _request_metadata() -> Dict[str, str]:
    """Collect optional client details Streamlit exposes."""

    metadata: Dict[str, str] = {}
    context = getattr(st, "context", None)
    headers = getattr(context, "headers", None) if context is not None else None
    if headers is not None:
        user_agent = headers.get("User-Agent")
        if user_agent:
            metadata["userAgent"] = str(user_agent)
    timezone_name = getattr(context, "timezone", None) if context is not None else None
    if timezone_name:
        metadata["timezone"] = str(timezone_name)
    return metadata


def _completion_ms(token: str) -> Optional[int]:
    started: Dict[str, float] = st.session_state.setdefault(STARTED_STATE_KEY, {})
    start = started.get(token)
    if start is None:
        return None
    elapsed = int((time.monotonic() - start) * 1000)
    return elapsed if 0 < elapsed <= MAX_COMPLETION_MS else None


def build_submission_payload(
    fields: Sequence[Field],
    values: Mapping[str, Any],
    *,
    completion_ms: Optional[int] = None,
    metadata: Optional[Mapping[str, str]] = None,
    honey: str = "",
) -> Dict[str, Any]:
    """Shape rendered widget values like a public submission body."""

    payload: Dict[str, Any] = {
        "answers": [{"fieldId": field.id, "value": values.get(field.id)} for field in fields],
        "honey": honey,
    }
    if completion_ms is not None:
        payload["completionMs"] = completion_ms
    if metadata:
        payload["meta"] = dict(metadata)
    return payload


def handle_submission(
    repository: FormRepository,
    token: str,
    payload: Dict[str, Any],
    password: Optional[str],
) -> bool:
    """Submit ``payload`` and surface any problem; return ``True`` on success."""

    errors_key = errors_state_key(SHARE_PREFIX)
    try:
        response = submit_response(repository, token, payload, password=password)
    except SubmissionRejected as exc:
        field_errors: Dict[str, str] = {}
        for issue in exc.issues:
            field_errors.setdefault(issue.field_id, issue.message)
        st.session_state[errors_key] = field_errors
        st.error("Please fix the highlighted answers and submit again.")
        return False
    except PayloadError as exc:
        for issue in exc.issues:
            st.error(f"{issue.path}: {issue.message}" if issue.path else issue.message)
        return False
    except SubmissionForbidden as exc:
        st.error(str(exc))
        return False
    except ShareLinkError as exc:
        st.error(exc.message)
        return False
    except (StorageError, requests.RequestException, OSError) as exc:
        st.error(f"Could not record your response: {exc}")
        return False

    st.session_state.pop(errors_key, None)
    submitted: Dict[str, str] = st.session_state.setdefault(SUBMITTED_STATE_KEY, {})
    submitted[token] = str(response.get("id", ""))
    return True


def _unlock(view: ShareView) -> Optional[str]:
    """Ask for the link password; return it once it verifies."""

    passwords: Dict[str, str] = st.session_state.setdefault(PASSWORDS_STATE_KEY, {})
    stored = passwords.get(view.token)
    if stored and verify_share_password(view.link, stored):
        return stored

    st.subheader("This form is password protected")
    with st.form(key=f"{SHARE_PREFIX}_password_form"):
        candidate = st.text_input("Password", type="password")
        unlocked = st.form_submit_button("Open form")
    if unlocked:
        if verify_share_password(view.link, candidate):
            passwords[view.token] = candidate
            rerun_app()
        else:
            st.error("Incorrect password.")
    return None


def main() -> None:
    """Render the public form page."""

    apply_app_theme(page_title="Form", page_icon="📝")

    token = _get_query_param(TOKEN_QUERY_PARAM)
    if not token:
        st.info("Open this page through a share link to fill in a form.")
        return

    repository = get_repository()
    try:
        view = resolve_share_link(repository, token)
    except ShareLinkError as exc:
        st.error(exc.message)
        return
    except (StorageError, requests.RequestException, OSError) as exc:
        st.error(f"Could not load this form: {exc}")
        return

    password: Optional[str] = None
    if view.requires_password:
        password = _unlock(view)
        if password is None:
            return

    if st.session_state.get(SUBMITTED_STATE_KEY, {}).get(token):
        st.success(PUBLIC_SUCCESS_MESSAGE)
        return

    st.session_state.setdefault(STARTED_STATE_KEY, {}).setdefault(token, time.monotonic())
    st.markdown(_HONEYPOT_CSS, unsafe_allow_html=True)
    st.text_input("Website", key=HONEYPOT_KEY, label_visibility="collapsed")

    errors = st.session_state.get(errors_state_key(SHARE_PREFIX), {})
    if errors:
        st.error("Please fix the highlighted answers and submit again.")
    submitted, values = render_form(
        view.form.schema,
        view.form.theme.active,
        key_prefix=SHARE_PREFIX,
        errors=errors,
    )
    if not submitted:
        return

    payload = build_submission_payload(
        view.fields,
        values,
        completion_ms=_completion_ms(token),
        metadata=_request_metadata(),
        honey=str(st.session_state.get(HONEYPOT_KEY, "") or ""),
    )
    if handle_submission(repository, token, payload, password):
        rerun_app()
    elif st.session_state.get(errors_state_key(SHARE_PREFIX)) != errors:
        rerun_app()


if __name__ == "__main__":
    main()
