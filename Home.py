"""Streamlit home screen listing published forms and their responses."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import pandas as pd
import requests
import streamlit as st

from formstudio.form_renderer import rerun_app
from formstudio.form_store import FormRepository, StorageError, parse_timestamp
from formstudio.settings import get_app_url, get_repository
from formstudio.share_links import share_url
from formstudio.ui_theme import apply_app_theme, page_header, render_card

logger = logging.getLogger(__name__)

DEFAULT_TABLE_COLUMNS = ("Form", "Fields", "Responses", "Shared", "Updated at", "Form ID")

_GETTING_STARTED = """
<ol>
    <li>Design a form in the <strong>Builder</strong> and preview it with your theme.</li>
    <li>Publish it, then create a share link on the <strong>Responses</strong> page.</li>
    <li>Send the link. Answers are validated again when they are submitted.</li>
</ol>
"""


def summarise_forms(repository: FormRepository, base_url: str) -> List[Dict[str, Any]]:
    """Return one table row per published form, newest first."""

    rows: List[Dict[str, Any]] = []
    for form in repository.list_forms():
        link = repository.find_share_link_for_form(form.id)
        updated_at, _ = parse_timestamp(form.updated_at)
        rows.append(
            {
                "Form": form.title,
                "Fields": len(form.schema.fields),
                "Responses": len(repository.list_responses(form.id)),
                "Shared": share_url(base_url, str(link.get("token"))) if link else "",
                "Updated at": updated_at,
                "Form ID": form.id,
            }
        )
    return rows


@st.cache_data(show_spinner=False, ttl=60)
def load_form_summaries() -> List[Dict[str, Any]]:
    """Load form summaries from the configured storage backend."""

    return summarise_forms(get_repository(), get_app_url())


def main() -> None:
    """Render the home screen."""

    apply_app_theme(page_title="Form studio", page_icon="🏠")
    page_header(
        "Form studio",
        "Build themed forms, share them with a link, and collect validated responses.",
        icon="🏠",
    )

    try:
        forms = load_form_summaries()
    except (StorageError, requests.RequestException, OSError) as exc:
        logger.exception("Could not load published forms")
        st.error(f"Could not load published forms: {exc}")
        forms = []

    total_responses = sum(int(row.get("Responses", 0)) for row in forms)
    shared = sum(1 for row in forms if row.get("Shared"))
    most_recent = forms[0].get("Updated at") if forms else ""

    metric_col1, metric_col2, metric_col3 = st.columns(3)
    metric_col1.metric("Published forms", len(forms) or "0")
    metric_col2.metric("Responses", total_responses or "0")
    metric_col3.metric("Shared forms", shared or "0")
    if most_recent:
        st.caption(f"Most recent update: {most_recent}")

    st.markdown("---")

    if not forms:
        render_card(_GETTING_STARTED, title="Getting started")
        st.page_link("pages/01_Builder.py", label="Open the builder", icon="🧩")
        return

    table_df = pd.DataFrame(forms, columns=list(DEFAULT_TABLE_COLUMNS))
    st.dataframe(
        table_df,
        hide_index=True,
        use_container_width=True,
        column_config={
            "Shared": st.column_config.LinkColumn(
                "Shared",
                help="Public link for filling in the form.",
                display_text="Open form",
            ),
            "Responses": st.column_config.NumberColumn("Responses", format="%d"),
        },
    )

    if st.button("Refresh"):
        st.cache_data.clear()
        rerun_app()

    st.caption("Edit forms in the builder, or manage links and responses on the dashboard.")
    st.page_link("pages/01_Builder.py", label="Builder", icon="🧩")
    st.page_link("pages/03_Responses.py", label="Responses", icon="📊")


if __name__ == "__main__":
    main()
