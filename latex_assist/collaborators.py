"""
Editor collaborators — document persistence and PDF compilation.

The HTTP clients talk to the editor API; ``FileStore`` keeps documents on
local disk. Transport and HTTP errors come back as failed result objects so
an editing session can report them and carry on.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

import requests

logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    success: bool
    document: Optional[dict] = None
    error: Optional[str] = None


@dataclass
class FetchResult:
    success: bool
    content: Optional[str] = None
    error: Optional[str] = None


@dataclass
class CompilationResult:
    success: bool
    pdf_data: Optional[str] = None  # base64 encoded
    error: Optional[str] = None


def _json_body(response) -> dict | None:
    """The response body as a JSON object, or None when it is not one."""
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


class _ApiClient:

    def __init__(self, base_url: str, access_token: str | None = None,
                 timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers


class DocumentStore(_ApiClient):
    """Files of one project, stored behind the editor API."""

    def __init__(self, base_url: str, project_id: str, **kwargs):
        super().__init__(base_url, **kwargs)
        self.project_id = project_id

    def _file_url(self, file_id: str) -> str:
        return f"{self.base_url}/api/projects/{self.project_id}/files/{file_id}"

    def fetch(self, file_id: str) -> FetchResult:
        try:
            response = requests.get(self._file_url(file_id), headers=self._headers(),
                                    timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            logger.error("[Store] Fetch failed for %s: %s", file_id, exc)
            return FetchResult(success=False, error=str(exc))

        if not response.ok:
            return FetchResult(
                success=False,
                error=f"Failed to fetch document with status {response.status_code}",
            )
        data = _json_body(response)
        if data is None:
            return FetchResult(success=False, error="Invalid JSON in fetch response")
        document = data.get("document") or {}
        return FetchResult(success=True, content=document.get("content", ""))

    def save(self, file_id: str, content: str) -> SaveResult:
        try:
            response = requests.put(self._file_url(file_id), headers=self._headers(),
                                    json={"content": content}, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            logger.error("[Store] Save failed for %s: %s", file_id, exc)
            return SaveResult(success=False, error=str(exc))

        if not response.ok:
            logger.warning("[Store] Save for %s returned %d", file_id, response.status_code)
            return SaveResult(
                success=False,
                error=f"Failed to save document with status {response.status_code}",
            )
        data = _json_body(response)
        if data is None:
            logger.warning("[Store] Save for %s returned a non-JSON body", file_id)
            return SaveResult(success=False, error="Invalid JSON in save response")
        logger.debug("[Store] Saved %s (%d chars)", file_id, len(content))
        return SaveResult(success=True, document=data.get("document"))


class CompilerClient(_ApiClient):
    """Sends full LaTeX source to the compile service, gets a PDF back."""

    def compile(self, content: str) -> CompilationResult:
        url = f"{self.base_url}/api/compile-pdf"
        try:
            response = requests.post(url, headers=self._headers(),
                                     json={"content": content}, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            logger.error("[Compile] Request failed: %s", exc)
            return CompilationResult(success=False, error=str(exc))

        if not response.ok:
            return CompilationResult(
                success=False,
                error=f"Compilation failed with status {response.status_code}",
            )
        data = _json_body(response)
        if data is None:
            return CompilationResult(success=False, error="Invalid JSON in compile response")
        if data.get("pdf"):
            return CompilationResult(success=True, pdf_data=data["pdf"])
        return CompilationResult(success=False, error=data.get("error") or "No PDF data received")


class FileStore:
    """Persistence for documents opened from the local filesystem.

    The document id is the file path; writes go through a temp file and
    a rename so a failed save never truncates the original. Line endings
    are read and written untranslated.
    """

    def fetch(self, file_path: str) -> FetchResult:
        try:
            with open(file_path, "r", encoding="utf-8", newline="") as f:
                return FetchResult(success=True, content=f.read())
        except OSError as exc:
            return FetchResult(success=False, error=str(exc))

    def save(self, file_path: str, content: str) -> SaveResult:
        abs_path = os.path.abspath(file_path)
        tmp_path = abs_path + ".latex_assist_tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.replace(tmp_path, abs_path)
        except OSError as exc:
            logger.error("[Store] Write failed for %s: %s", file_path, exc)
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            return SaveResult(success=False, error=str(exc))
        return SaveResult(success=True, document={"path": file_path})
