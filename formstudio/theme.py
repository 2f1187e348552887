"""Per-mode design tokens applied to rendered forms."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional

SYSTEM_SANS = 'system-ui, -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif'

FONT_OPTIONS: Dict[str, str] = {
    "System Sans": SYSTEM_SANS,
    "Clean Sans": '"Segoe UI", Roboto, Helvetica, Arial, sans-serif',
    "Serif": 'Georgia, "Times New Roman", serif',
    "Mono": '"SFMono-Regular", Consolas, "Liberation Mono", monospace',
}

_FORBIDDEN_CHARACTERS = frozenset(";{}<>")
_MAX_VALUE_LENGTH = 200


class ThemeMode(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class ThemeTag(str, Enum):
    """Semantic element a token styles."""

    FORM_TITLE = "form_title"
    SECTION_TITLE = "section_title"
    LABEL = "label"
    HELPER = "helper"
    INPUT = "input"
    BUTTON = "button"


THEME_TAG_LABELS = {
    ThemeTag.FORM_TITLE: "Form title",
    ThemeTag.SECTION_TITLE: "Section title",
    ThemeTag.LABEL: "Field label",
    ThemeTag.HELPER: "Helper text",
    ThemeTag.INPUT: "Input",
    ThemeTag.BUTTON: "Button",
}


@dataclass(frozen=True)
class ThemeToken:
    color: str
    font_size: str
    font_weight: int
    font_family: str = SYSTEM_SANS
    background: Optional[str] = None
    border_color: Optional[str] = None


@dataclass(frozen=True)
class ThemeSnapshot:
    """Surface colours plus one token per tag for a single mode."""

    background: str
    panel: str
    card: str
    border: str
    text: str
    muted: str
    tokens: Dict[ThemeTag, ThemeToken] = field(default_factory=dict)


TOKEN_KEYS = tuple(item.name for item in fields(ThemeToken))
SURFACE_KEYS = ("background", "panel", "card", "border", "text", "muted")
_OPTIONAL_TOKEN_KEYS = frozenset({"background", "border_color"})


def _light_snapshot() -> ThemeSnapshot:
    return ThemeSnapshot(
        background="#f1f5f9",
        panel="#ffffff",
        card="#ffffff",
        border="#e2e8f0",
        text="#0f172a",
        muted="#64748b",
        tokens={
            ThemeTag.FORM_TITLE: ThemeToken("#0f172a", "1.875rem", 600),
            ThemeTag.SECTION_TITLE: ThemeToken("#0f172a", "1.25rem", 600),
            ThemeTag.LABEL: ThemeToken("#0f172a", "0.95rem", 500),
            ThemeTag.HELPER: ThemeToken("#64748b", "0.85rem", 400),
            ThemeTag.INPUT: ThemeToken(
                "#0f172a", "1rem", 500, background="#ffffff", border_color="#cbd5f5"
            ),
            ThemeTag.BUTTON: ThemeToken(
                "#ffffff", "1rem", 600, background="#2563eb", border_color="#2563eb"
            ),
        },
    )


def _dark_snapshot() -> ThemeSnapshot:
    return ThemeSnapshot(
        background="#0f172a",
        panel="#111827",
        card="#111827",
        border="#1f2937",
        text="#f8fafc",
        muted="#94a3b8",
        tokens={
            ThemeTag.FORM_TITLE: ThemeToken("#f8fafc", "1.875rem", 600),
            ThemeTag.SECTION_TITLE: ThemeToken("#f1f5f9", "1.25rem", 600),
            ThemeTag.LABEL: ThemeToken("#e2e8f0", "0.95rem", 500),
            ThemeTag.HELPER: ThemeToken("#94a3b8", "0.85rem", 400),
            ThemeTag.INPUT: ThemeToken(
                "#f8fafc", "1rem", 500, background="#1f2937", border_color="#334155"
            ),
            ThemeTag.BUTTON: ThemeToken(
                "#0f172a", "1rem", 600, background="#38bdf8", border_color="#38bdf8"
            ),
        },
    )


def default_snapshot(mode: ThemeMode) -> ThemeSnapshot:
    """Return the stock palette for ``mode``."""

    return _dark_snapshot() if mode == ThemeMode.DARK else _light_snapshot()


def _clean_text(value: Any) -> Optional[str]:
    """Return ``value`` stripped if it is a safe opaque CSS value."""

    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text or len(text) > _MAX_VALUE_LENGTH:
        return None
    if any(character in _FORBIDDEN_CHARACTERS for character in text):
        return None
    return text


def _clean_weight(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            return None
    try:
        weight = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return weight if 100 <= weight <= 900 else None


_CLEAR = object()


def clean_token_value(key: str, value: Any) -> Any:
    """Validate a token attribute.

    Returns the cleaned value, ``_CLEAR`` for an optional attribute being
    reset, or ``None`` when the value must be rejected.
    """

    if key not in TOKEN_KEYS:
        return None
    if key == "font_weight":
        return _clean_weight(value)
    if key in _OPTIONAL_TOKEN_KEYS and (value is None or value == ""):
        return _CLEAR
    return _clean_text(value)


@dataclass(frozen=True)
class ThemeState:
    """Both mode snapshots plus the mode currently being edited."""

    mode: ThemeMode = ThemeMode.LIGHT
    light: ThemeSnapshot = field(default_factory=_light_snapshot)
    dark: ThemeSnapshot = field(default_factory=_dark_snapshot)

    @property
    def active(self) -> ThemeSnapshot:
        return self.snapshot(self.mode)

    def snapshot(self, mode: ThemeMode) -> ThemeSnapshot:
        return self.dark if mode == ThemeMode.DARK else self.light

    def _with_active(self, snapshot: ThemeSnapshot) -> "ThemeState":
        if self.mode == ThemeMode.DARK:
            return replace(self, dark=snapshot)
        return replace(self, light=snapshot)

    def with_mode(self, mode: Any) -> "ThemeState":
        try:
            resolved = ThemeMode(mode)
        except ValueError:
            return self
        return self if resolved == self.mode else replace(self, mode=resolved)

    def with_token(self, tag: Any, key: str, value: Any) -> "ThemeState":
        """Set one attribute of one token in the active mode only."""

        try:
            resolved_tag = ThemeTag(tag)
        except ValueError:
            return self
        cleaned = clean_token_value(key, value)
        if cleaned is None:
            return self
        current = self.active
        token = current.tokens[resolved_tag]
        updated = replace(token, **{key: None if cleaned is _CLEAR else cleaned})
        tokens = dict(current.tokens)
        tokens[resolved_tag] = updated
        return self._with_active(replace(current, tokens=tokens))

    def with_surface(self, key: str, value: Any) -> "ThemeState":
        """Set one surface colour of the active mode."""

        if key not in SURFACE_KEYS:
            return self
        cleaned = _clean_text(value)
        if cleaned is None:
            return self
        return self._with_active(replace(self.active, **{key: cleaned}))


def with_alpha(color: str, alpha: float) -> str:
    """Convert ``#rgb``/``#rrggbb`` to an ``rgba()`` string.

    Non-hex inputs are returned unchanged.
    """

    text = (color or "").strip()
    if not text.startswith("#"):
        return color
    digits = text[1:]
    if len(digits) == 3:
        digits = "".join(character * 2 for character in digits)
    if len(digits) != 6:
        return color
    try:
        red, green, blue = (int(digits[index:index + 2], 16) for index in (0, 2, 4))
    except ValueError:
        return color
    clamped = max(0.0, min(1.0, float(alpha)))
    return f"rgba({red}, {green}, {blue}, {clamped:g})"


def token_to_dict(token: ThemeToken) -> Dict[str, Any]:
    return {key: getattr(token, key) for key in TOKEN_KEYS if getattr(token, key) is not None}


def snapshot_to_dict(snapshot: ThemeSnapshot) -> Dict[str, Any]:
    payload: Dict[str, Any] = {key: getattr(snapshot, key) for key in SURFACE_KEYS}
    payload["tokens"] = {tag.value: token_to_dict(token) for tag, token in snapshot.tokens.items()}
    return payload


def snapshot_from_dict(payload: Any, mode: ThemeMode) -> ThemeSnapshot:
    """Load a snapshot, filling anything missing or invalid from the defaults."""

    base = default_snapshot(mode)
    if not isinstance(payload, Mapping):
        return base
    surfaces = {
        key: _clean_text(payload.get(key)) or getattr(base, key) for key in SURFACE_KEYS
    }
    raw_tokens = payload.get("tokens")
    raw_tokens = raw_tokens if isinstance(raw_tokens, Mapping) else {}
    tokens: Dict[ThemeTag, ThemeToken] = {}
    for tag, default_token in base.tokens.items():
        token = default_token
        stored = raw_tokens.get(tag.value)
        if isinstance(stored, Mapping):
            for key in TOKEN_KEYS:
                if key not in stored:
                    continue
                cleaned = clean_token_value(key, stored[key])
                if cleaned is None:
                    continue
                token = replace(token, **{key: None if cleaned is _CLEAR else cleaned})
        tokens[tag] = token
    return ThemeSnapshot(tokens=tokens, **surfaces)


def theme_to_dict(theme: ThemeState) -> Dict[str, Any]:
    return {
        "mode": theme.mode.value,
        "light": snapshot_to_dict(theme.light),
        "dark": snapshot_to_dict(theme.dark),
    }


def theme_from_dict(payload: Any) -> ThemeState:
    data = payload if isinstance(payload, Mapping) else {}
    try:
        mode = ThemeMode(data.get("mode", ThemeMode.LIGHT.value))
    except ValueError:
        mode = ThemeMode.LIGHT
    return ThemeState(
        mode=mode,
        light=snapshot_from_dict(data.get("light"), ThemeMode.LIGHT),
        dark=snapshot_from_dict(data.get("dark"), ThemeMode.DARK),
    )


__all__ = [
    "FONT_OPTIONS",
    "SURFACE_KEYS",
    "THEME_TAG_LABELS",
    "TOKEN_KEYS",
    "ThemeMode",
    "ThemeSnapshot",
    "ThemeState",
    "ThemeTag",
    "ThemeToken",
    "default_snapshot",
    "theme_from_dict",
    "theme_to_dict",
    "with_alpha",
]
