"""Document store backed by GitHub's Contents API."""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


@dataclass
class GitHubDocumentStore:
    """Reads and writes JSON documents below ``base_path`` in a repository."""

    token: str
    repo: str
    base_path: str = "form_data"
    branch: str = "main"
    api_url: str = "https://api.github.com"

    def _headers(self) -> Dict[str, str]:
        """Build request headers for the GitHub API."""

        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "Content-Type": "application/json",
        }

    def _url(self, path: str) -> str:
        """Construct the contents URL for ``path`` inside ``base_path``."""

        prefix = self.base_path.strip("/")
        full_path = f"{prefix}/{path}" if prefix else path
        return f"{self.api_url.rstrip('/')}/repos/{self.repo}/contents/{full_path}"

    def _get(self, path: str) -> Optional[Any]:
        response = requests.get(
            self._url(path),
            headers=self._headers(),
            params={"ref": self.branch},
            timeout=10,
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    def get_file_sha(self, path: str) -> Optional[str]:
        """Retrieve the SHA of ``path`` if it exists."""

        payload = self._get(path)
        if not isinstance(payload, dict):
            return None
        return payload.get("sha")

    def read_json(self, path: str) -> Optional[Dict[str, Any]]:
        """Read a JSON document, returning ``None`` when it does not exist."""

        payload = self._get(path)
        if not isinstance(payload, dict):
            return None
        content = payload.get("content", "")
        encoding = payload.get("encoding", "base64")
        if encoding != "base64":
            raise ValueError(f"Unsupported encoding: {encoding}")

        decoded = base64.b64decode(content).decode("utf-8")
        data = json.loads(decoded)
        return data if isinstance(data, dict) else None

    def write_json(self, path: str, data: Dict[str, Any], message: str) -> None:
        """Create or replace ``path`` with one commit."""

        payload: Dict[str, Any] = {
            "message": message,
            "branch": self.branch,
            "content": base64.b64encode(json.dumps(data, indent=2).encode("utf-8")).decode("utf-8"),
        }

        sha = self.get_file_sha(path)
        if sha:
            payload["sha"] = sha

        response = requests.put(
            self._url(path),
            headers=self._headers(),
            json=payload,
            timeout=10,
        )
        response.raise_for_status()
        logger.debug("Committed %s to %s@%s", path, self.repo, self.branch)

    def list_json(self, directory: str) -> List[str]:
        """Return the JSON files directly inside ``directory``."""

        entries = self._get(directory)
        if not isinstance(entries, list):
            return []
        names = sorted(
            entry.get("name", "")
            for entry in entries
            if isinstance(entry, dict)
            and entry.get("type") == "file"
            and str(entry.get("name", "")).endswith(".json")
        )
        return [f"{directory}/{name}" for name in names]

    def delete(self, path: str, message: str) -> bool:
        sha = self.get_file_sha(path)
        if not sha:
            return False
        response = requests.delete(
            self._url(path),
            headers=self._headers(),
            json={"message": message, "sha": sha, "branch": self.branch},
            timeout=10,
        )
        response.raise_for_status()
        return True


__all__ = ["GitHubDocumentStore"]
