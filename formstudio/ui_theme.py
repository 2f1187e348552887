"""Shared page styling plus the themed CSS applied to rendered forms."""

from __future__ import annotations

from html import escape
from typing import Any, Optional

import streamlit as st

from formstudio.theme import ThemeSnapshot, ThemeTag, ThemeToken, with_alpha


_THEME_CSS = """
<style>
:root {
    --app-accent: #2563EB;
    --app-accent-dark: #1D4ED8;
    --app-accent-soft: #E0E7FF;
    --app-surface: rgba(255, 255, 255, 0.94);
    --app-surface-strong: #FFFFFF;
    --app-border: rgba(37, 99, 235, 0.18);
    --app-shadow: 0 18px 40px rgba(15, 23, 42, 0.08);
    --app-text: #0F172A;
    --app-muted: #64748B;
    --app-success: #059669;
    --app-error: #DC2626;
}

html, body {
    font-family: "Inter", "Segoe UI", system-ui, -apple-system, sans-serif;
    color: var(--app-text);
}

[data-testid="stAppViewContainer"] {
    background: linear-gradient(180deg, #F8FAFC 0%, #EEF2FF 100%);
}

[data-testid="stSidebar"] {
    background: rgba(255, 255, 255, 0.9);
    border-right: 1px solid var(--app-border);
}

.block-container {
    padding-top: 2rem;
    padding-bottom: 4rem;
}

.app-header {
    display: flex;
    align-items: center;
    gap: 1.25rem;
    padding: 1.5rem 1.75rem;
    background: var(--app-surface);
    border-radius: 1.25rem;
    border: 1px solid var(--app-border);
    box-shadow: var(--app-shadow);
    margin-bottom: 1.75rem;
}

.app-header__icon {
    font-size: 2.5rem;
    line-height: 1;
}

.app-header__title {
    margin: 0;
    font-size: 2rem;
    font-weight: 700;
}

.app-header__subtitle {
    margin: 0.25rem 0 0 0;
    color: var(--app-muted);
}

.app-card {
    background: var(--app-surface-strong);
    border-radius: 1.25rem;
    border: 1px solid var(--app-border);
    box-shadow: 0 12px 30px rgba(15, 23, 42, 0.06);
    padding: 1.5rem 1.75rem;
    margin-bottom: 1.25rem;
}

.app-card__title {
    margin: 0 0 0.75rem 0;
    font-size: 1.2rem;
    font-weight: 600;
}

.app-section-card__description {
    margin-top: -0.35rem;
    margin-bottom: 1rem;
    color: var(--app-muted);
}

.field-chip {
    display: inline-block;
    padding: 0.1rem 0.6rem;
    border-radius: 999px;
    background: var(--app-accent-soft);
    color: var(--app-accent-dark);
    font-size: 0.75rem;
    font-weight: 600;
    margin-left: 0.4rem;
}

.field-chip--required {
    background: rgba(220, 38, 38, 0.12);
    color: var(--app-error);
}

.stButton>button[kind="primary"] {
    border-radius: 999px !important;
    font-weight: 600 !important;
    background: var(--app-accent) !important;
    border: none !important;
}

.stButton>button[kind="primary"]:hover {
    background: var(--app-accent-dark) !important;
}

.stMetric {
    background: var(--app-surface);
    border-radius: 1rem;
    padding: 1rem 1.25rem;
    border: 1px solid var(--app-border);
}
</style>
"""


def apply_app_theme(page_title: str, page_icon: Optional[str] = None) -> None:
    """Set up consistent page configuration and inject the shared CSS theme."""

    st.set_page_config(
        page_title=page_title,
        page_icon=page_icon,
        layout="wide",
        initial_sidebar_state="expanded",
    )
    st.markdown(_THEME_CSS, unsafe_allow_html=True)


def page_header(
    title: str,
    subtitle: Optional[str] = None,
    icon: Optional[str] = None,
    *,
    container: Optional[Any] = None,
) -> None:
    """Render a hero-style header with a title, subtitle, and optional icon."""

    icon_markup = f"<span class='app-header__icon'>{icon}</span>" if icon else ""
    subtitle_markup = (
        f"<p class='app-header__subtitle'>{escape(subtitle)}</p>" if subtitle else ""
    )
    target = container.markdown if container is not None else st.markdown
    target(
        f"""
        <div class="app-header">
            {icon_markup}
            <div>
                <h1 class="app-header__title">{escape(title)}</h1>
                {subtitle_markup}
            </div>
        </div>
        """,
        unsafe_allow_html=True,
    )


def render_card(content: str, title: Optional[str] = None) -> None:
    """Render pre-formatted HTML content inside a themed surface."""

    heading = f"<h3 class='app-card__title'>{escape(title)}</h3>" if title else ""
    st.markdown(f"<div class='app-card'>{heading}{content}</div>", unsafe_allow_html=True)


def _font_rules(token: ThemeToken) -> str:
    return (
        f"color: {token.color}; font-size: {token.font_size}; "
        f"font-weight: {token.font_weight}; font-family: {token.font_family};"
    )


def form_theme_css(snapshot: ThemeSnapshot) -> str:
    """Return a ``<style>`` block applying ``snapshot`` to the rendered form."""

    tokens = snapshot.tokens
    title = tokens[ThemeTag.FORM_TITLE]
    section = tokens[ThemeTag.SECTION_TITLE]
    label = tokens[ThemeTag.LABEL]
    helper = tokens[ThemeTag.HELPER]
    field_input = tokens[ThemeTag.INPUT]
    button = tokens[ThemeTag.BUTTON]
    input_background = field_input.background or snapshot.card
    input_border = field_input.border_color or snapshot.border
    button_background = button.background or snapshot.text
    button_border = button.border_color or button_background
    return f"""
<style>
.fs-canvas {{
    background: {snapshot.background};
    border: 1px solid {snapshot.border};
    border-radius: 1.25rem;
    padding: 1.5rem 1.75rem;
    margin-bottom: 1rem;
}}
.fs-form-title {{ {_font_rules(title)} margin: 0 0 0.5rem 0; }}
.fs-form-description {{ {_font_rules(helper)} margin: 0; }}
.fs-section-title {{ {_font_rules(section)} margin: 0.75rem 0 0.25rem 0; }}
.fs-helper {{ {_font_rules(helper)} margin: -0.25rem 0 0.5rem 0; }}
.fs-error {{ color: #dc2626; font-size: 0.85rem; margin: -0.25rem 0 0.75rem 0; }}
form[data-testid="stForm"] {{
    background: {snapshot.card};
    border: 1px solid {snapshot.border};
    border-radius: 1.25rem;
    box-shadow: 0 18px 36px {with_alpha(snapshot.text, 0.08)};
}}
form[data-testid="stForm"] [data-testid="stWidgetLabel"] p {{ {_font_rules(label)} }}
form[data-testid="stForm"] input,
form[data-testid="stForm"] textarea,
form[data-testid="stForm"] [data-baseweb="select"] > div {{
    color: {field_input.color};
    font-size: {field_input.font_size};
    font-family: {field_input.font_family};
    background: {input_background} !important;
    border-color: {input_border} !important;
}}
form[data-testid="stForm"] [data-testid="stFormSubmitButton"] button {{
    {_font_rules(button)}
    background: {button_background} !important;
    border: 1px solid {button_border} !important;
    border-radius: 999px;
    box-shadow: 0 10px 24px {with_alpha(button_background, 0.3)};
}}
</style>
"""


__all__ = ["apply_app_theme", "form_theme_css", "page_header", "render_card"]
