"""Default copy shared between the builder, preview, and public pages."""

from __future__ import annotations

DEFAULT_FORM_TITLE = "Untitled form"
DEFAULT_FORM_DESCRIPTION = ""
DEFAULT_SUBMIT_LABEL = "Submit"

STARTER_FORM_TITLE = "Project inquiry"
STARTER_FORM_DESCRIPTION = (
    "Tell us about your project. We will get back to you within two working days."
)
STARTER_SUBMIT_LABEL = "Send request"

EMPTY_PREVIEW_MESSAGE = "Your form is empty. Add fields in edit mode and return here to preview."
PREVIEW_SUCCESS_MESSAGE = (
    "Thanks! Your responses look great. Adjust the form in edit mode any time."
)
PUBLIC_SUCCESS_MESSAGE = "Thanks! Your response has been recorded."
UNSELECTED_LABEL = "— Select an option —"

TITLE_MIN_LENGTH = 3
DESCRIPTION_MAX_LENGTH = 500
SHARE_PASSWORD_MIN_LENGTH = 6
SHARE_PASSWORD_MAX_LENGTH = 64
MAX_COMPLETION_MS = 30 * 60 * 1000

DEFAULT_APP_URL = "http://localhost:8501"
DEFAULT_STORAGE_ROOT = "form_data"
