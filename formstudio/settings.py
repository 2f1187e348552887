"""Configuration read from Streamlit secrets."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import streamlit as st

from formstudio.form_store import DocumentStore, FormRepository, LocalDocumentStore
from formstudio.github_backend import GitHubDocumentStore
from formstudio.schema_defaults import DEFAULT_APP_URL, DEFAULT_STORAGE_ROOT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GitHubSettings:
    token: str
    repo: str
    base_path: str = DEFAULT_STORAGE_ROOT
    branch: str = "main"
    api_url: str = "https://api.github.com"


@dataclass(frozen=True)
class StorageSettings:
    root: Path = Path(DEFAULT_STORAGE_ROOT)


def _secret(name: str, default: Any = None) -> Any:
    """Return a top-level secret, tolerating a missing secrets file."""

    try:
        return st.secrets.get(name, default)
    except FileNotFoundError:
        return default


def _secrets_dict(name: str) -> Dict[str, Any]:
    """Return a mapping stored under ``name`` in Streamlit secrets."""

    value = _secret(name, {})
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def get_github_settings() -> Optional[GitHubSettings]:
    """Return GitHub storage settings when a token and repository are configured."""

    secrets = _secrets_dict("github")
    token = secrets.get("token") or _secret("github_token")
    repo = secrets.get("repo") or _secret("github_repo")
    if not (token and repo):
        return None
    return GitHubSettings(
        token=str(token),
        repo=str(repo),
        base_path=str(secrets.get("base_path", DEFAULT_STORAGE_ROOT)),
        branch=str(secrets.get("branch") or _secret("github_branch", "main")),
        api_url=str(secrets.get("api_url") or _secret("github_api_url", "https://api.github.com")),
    )


def get_storage_settings() -> StorageSettings:
    secrets = _secrets_dict("storage")
    return StorageSettings(root=Path(str(secrets.get("root") or DEFAULT_STORAGE_ROOT)))


def get_app_url() -> str:
    return str(_secret("app_url", DEFAULT_APP_URL) or DEFAULT_APP_URL)


def get_editor_password_hash() -> str:
    return str(_secret("editor_password_hash", "") or "")


def get_document_store() -> DocumentStore:
    """Return the GitHub store when configured, the local store otherwise."""

    github = get_github_settings()
    if github is not None:
        return GitHubDocumentStore(
            token=github.token,
            repo=github.repo,
            base_path=github.base_path,
            branch=github.branch,
            api_url=github.api_url,
        )
    storage = get_storage_settings()
    logger.debug("GitHub is not configured; using local storage at %s", storage.root)
    return LocalDocumentStore(root=storage.root)


def get_repository() -> FormRepository:
    return FormRepository(store=get_document_store())


__all__ = [
    "GitHubSettings",
    "StorageSettings",
    "get_app_url",
    "get_document_store",
    "get_editor_password_hash",
    "get_github_settings",
    "get_repository",
    "get_storage_settings",
]
