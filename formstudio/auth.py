"""Minimal password gate for the builder and dashboard pages."""

from __future__ import annotations

import hashlib
import hmac

import streamlit as st

from formstudio.settings import get_editor_password_hash

AUTH_STATE_KEY = "auth"


def verify_password(password: str) -> bool:
    """Validate a plaintext password against the configured hash."""

    stored_hash = get_editor_password_hash()
    if not stored_hash:
        return False

    digest = hashlib.sha256(password.encode("utf-8")).hexdigest()
    return hmac.compare_digest(digest, stored_hash)


def require_authentication() -> None:
    """Stop the page until the editor password has been entered."""

    if st.session_state.get(AUTH_STATE_KEY):
        return

    if not get_editor_password_hash():
        st.error("Editor password is not configured.")
        st.stop()

    password = st.text_input("Password", type="password")
    if not password:
        st.stop()

    if verify_password(password):
        st.session_state[AUTH_STATE_KEY] = True
        return

    st.error("Incorrect password.")
    st.stop()
