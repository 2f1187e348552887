"""Share tokens that expose a published form for public submissions."""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from formstudio.field_schema import Field
from formstudio.form_store import DocumentNotFound, FormRepository, StoredForm, utc_now
from formstudio.schema_defaults import (
    DEFAULT_APP_URL,
    SHARE_PASSWORD_MAX_LENGTH,
    SHARE_PASSWORD_MIN_LENGTH,
)

logger = logging.getLogger(__name__)


class ShareLinkError(Exception):
    default_message = "Share link error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ShareLinkNotFound(ShareLinkError):
    default_message = "Share link not found"


class ShareLinkExpired(ShareLinkError):
    default_message = "Share link expired"


class InvalidShareSettings(ShareLinkError):
    default_message = "Share link settings are invalid"


@dataclass(frozen=True)
class ShareLink:
    token: str
    form_id: str
    created_at: str
    password_hash: Optional[str] = None
    expires_at: Optional[str] = None
    url: str = ""

    @property
    def requires_password(self) -> bool:
        return bool(self.password_hash)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "form_id": self.form_id,
            "created_at": self.created_at,
            "password_hash": self.password_hash,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], base_url: str = DEFAULT_APP_URL) -> "ShareLink":
        token = str(payload.get("token", ""))
        return cls(
            token=token,
            form_id=str(payload.get("form_id", "")),
            created_at=str(payload.get("created_at") or ""),
            password_hash=payload.get("password_hash") or None,
            expires_at=payload.get("expires_at") or None,
            url=share_url(base_url, token),
        )


@dataclass(frozen=True)
class ShareView:
    """What a public visitor may see: the form's fields, never its owner data."""

    link: ShareLink
    form: StoredForm
    anonymous_submission_allowed: bool = True

    @property
    def token(self) -> str:
        return self.link.token

    @property
    def requires_password(self) -> bool:
        return self.link.requires_password

    @property
    def expires_at(self) -> Optional[str]:
        return self.link.expires_at

    @property
    def fields(self) -> Tuple[Field, ...]:
        return self.form.schema.fields


def share_url(base_url: str, token: str) -> str:
    return f"{(base_url or DEFAULT_APP_URL).rstrip('/')}/Share?token={token}"


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def verify_share_password(link: ShareLink, password: Optional[str]) -> bool:
    """Return ``True`` when ``password`` unlocks ``link``."""

    if not link.requires_password:
        return True
    if not password:
        return False
    return hmac.compare_digest(hash_password(password), str(link.password_hash))


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _parse_expiry(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return _as_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
    except ValueError:
        logger.warning("Ignoring unparsable share link expiry %r", value)
        return None


def issue_share_link(
    repository: FormRepository,
    form_id: str,
    *,
    password: Optional[str] = None,
    expires_at: Optional[datetime] = None,
    base_url: str = DEFAULT_APP_URL,
    now: Optional[datetime] = None,
) -> ShareLink:
    """Create the share link for ``form_id`` or update the existing one.

    Each form has at most one link; re-issuing keeps its token and replaces
    the password and expiry.
    """

    repository.load_form(form_id)
    current = _as_utc(now or utc_now())

    password_hash = None
    if password:
        if not SHARE_PASSWORD_MIN_LENGTH <= len(password) <= SHARE_PASSWORD_MAX_LENGTH:
            raise InvalidShareSettings(
                f"Password must be between {SHARE_PASSWORD_MIN_LENGTH} and "
                f"{SHARE_PASSWORD_MAX_LENGTH} characters"
            )
        password_hash = hash_password(password)

    expiry_text = None
    if expires_at is not None:
        expiry = _as_utc(expires_at)
        if expiry <= current:
            raise InvalidShareSettings("Expiry must be in the future")
        expiry_text = expiry.isoformat()

    existing = repository.find_share_link_for_form(form_id)
    if existing:
        token = str(existing.get("token"))
        created_at = str(existing.get("created_at") or current.isoformat())
    else:
        token = secrets.token_hex(16)
        created_at = current.isoformat()

    link = ShareLink(
        token=token,
        form_id=form_id,
        created_at=created_at,
        password_hash=password_hash,
        expires_at=expiry_text,
        url=share_url(base_url, token),
    )
    repository.save_share_link(link.to_dict())
    logger.info("Issued share link for form %s (password=%s)", form_id, link.requires_password)
    return link


def get_share_link(
    repository: FormRepository, form_id: str, base_url: str = DEFAULT_APP_URL
) -> Optional[ShareLink]:
    payload = repository.find_share_link_for_form(form_id)
    return ShareLink.from_dict(payload, base_url) if payload else None


def resolve_share_link(
    repository: FormRepository,
    token: str,
    *,
    now: Optional[datetime] = None,
) -> ShareView:
    """Look up a live share link.

    Raises :class:`ShareLinkNotFound` for unknown tokens (or links whose form
    is gone) and :class:`ShareLinkExpired` once the expiry has passed.
    """

    payload = repository.find_share_link(token) if token else None
    if not payload:
        raise ShareLinkNotFound()
    link = ShareLink.from_dict(payload)

    expiry = _parse_expiry(link.expires_at)
    if expiry is not None and expiry <= _as_utc(now or utc_now()):
        raise ShareLinkExpired()

    try:
        form = repository.load_form(link.form_id)
    except DocumentNotFound as exc:
        raise ShareLinkNotFound() from exc
    return ShareView(link=link, form=form)


def revoke_share_link(repository: FormRepository, form_id: str) -> Dict[str, str]:
    payload = repository.find_share_link_for_form(form_id)
    if not payload:
        return {"form_id": form_id, "status": "not_found"}
    repository.delete_share_link(str(payload.get("token")))
    logger.info("Revoked share link for form %s", form_id)
    return {"form_id": form_id, "status": "revoked"}


__all__ = [
    "InvalidShareSettings",
    "ShareLink",
    "ShareLinkError",
    "ShareLinkExpired",
    "ShareLinkNotFound",
    "ShareView",
    "get_share_link",
    "hash_password",
    "issue_share_link",
    "resolve_share_link",
    "revoke_share_link",
    "share_url",
    "verify_share_password",
]
