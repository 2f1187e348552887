"""Tests for theme tokens and the form stylesheet."""

from __future__ import annotations

from formstudio.theme import (
    ThemeMode,
    ThemeState,
    ThemeTag,
    default_snapshot,
    theme_from_dict,
    theme_to_dict,
    with_alpha,
)
from formstudio.ui_theme import form_theme_css


def test_every_tag_has_a_token_in_both_modes() -> None:
    theme = ThemeState()

    for mode in ThemeMode:
        assert set(theme.snapshot(mode).tokens) == set(ThemeTag)


def test_switching_mode_keeps_token_values() -> None:
    theme = ThemeState()

    dark = theme.with_mode("dark")

    assert dark.mode is ThemeMode.DARK
    assert dark.active == theme.dark
    assert dark.light == theme.light
    assert theme.with_mode("sepia") is theme


def test_clearing_optional_token_attribute() -> None:
    theme = ThemeState()

    cleared = theme.with_token(ThemeTag.BUTTON, "background", "")

    assert cleared.light.tokens[ThemeTag.BUTTON].background is None
    assert theme.with_token(ThemeTag.BUTTON, "color", "") is theme
    assert theme.with_token(ThemeTag.BUTTON, "shadow", "1px") is theme


def test_stored_theme_falls_back_to_defaults() -> None:
    payload = {
        "mode": "dark",
        "light": {
            "card": "#fefefe",
            "tokens": {
                "label": {"color": "#123456", "font_weight": 9000},
                "button": {"font_family": "url(<script>)"},
            },
        },
        "dark": "broken",
    }

    theme = theme_from_dict(payload)
    defaults = default_snapshot(ThemeMode.LIGHT)

    assert theme.mode is ThemeMode.DARK
    assert theme.light.card == "#fefefe"
    assert theme.light.background == defaults.background
    assert theme.light.tokens[ThemeTag.LABEL].color == "#123456"
    assert theme.light.tokens[ThemeTag.LABEL].font_weight == defaults.tokens[ThemeTag.LABEL].font_weight
    assert theme.light.tokens[ThemeTag.BUTTON] == defaults.tokens[ThemeTag.BUTTON]
    assert theme.dark == default_snapshot(ThemeMode.DARK)


def test_theme_dict_layout_restores_the_same_state() -> None:
    theme = ThemeState().with_mode(ThemeMode.DARK).with_token("helper", "font_size", "0.8rem")

    assert theme_from_dict(theme_to_dict(theme)) == theme
    assert theme_to_dict(theme)["dark"]["tokens"]["helper"]["font_size"] == "0.8rem"


def test_with_alpha() -> None:
    assert with_alpha("#0f172a", 0.08) == "rgba(15, 23, 42, 0.08)"
    assert with_alpha("#fff", 2) == "rgba(255, 255, 255, 1)"
    assert with_alpha("tomato", 0.5) == "tomato"


def test_form_theme_css_applies_active_tokens() -> None:
    theme = ThemeState().with_token(ThemeTag.FORM_TITLE, "color", "#abcdef")

    css = form_theme_css(theme.active)

    assert css.strip().startswith("<style>")
    assert ".fs-form-title { color: #abcdef;" in css
    assert theme.light.card in css
