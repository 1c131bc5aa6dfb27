"""GitHub contents API backend for the versioned spreadsheet files.

The blob SHA returned by GitHub is the version token: PUT with a stale SHA
is rejected (409, or 422 when a SHA was required but not sent).

Blocking `requests` calls run in a worker thread so the event loop keeps
serving while a sync waits on the network.

Security: NEVER log the token or file contents. Only paths, statuses and sizes.
"""

from __future__ import annotations

import asyncio
import base64
import os
from collections.abc import Callable
from typing import Any

import requests

from staybook.infra.remote_store import (
    RemoteUnavailableError,
    StoredBlob,
    UnauthorizedError,
    VersionConflictError,
)
from staybook.infra.settings import GitHubConfig
from staybook.observability.logging import get_logger

logger = get_logger(__name__)

CredentialProvider = Callable[[], str | None]

_CONFLICT_STATUS = 409
# GitHub also answers 422 to a stale or missing sha; other 422s are real errors.
_UNPROCESSABLE_STATUS = 422
_AUTH_STATUSES = (401, 403)


def env_token_provider() -> str | None:
    """Read the write credential from GITHUB_TOKEN (None if unset)."""
    return os.environ.get("GITHUB_TOKEN") or None


class GitHubContentsStore:
    """RemoteStore over `/repos/{owner}/{repo}/contents/{path}`.

    Args:
        config: Repository coordinates.
        credential: Returns the bearer token, or None when not configured.
            Reads still work on public repositories without one.
        timeout: Per-request timeout in seconds.
        session: Optional requests session (tests inject a mock).
    """

    def __init__(
        self,
        config: GitHubConfig,
        credential: CredentialProvider = env_token_provider,
        timeout: int = 30,
        session: requests.Session | None = None,
    ) -> None:
        self._config = config
        self._credential = credential
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def can_write(self) -> bool:
        return bool(self._credential())

    def _url(self, path: str) -> str:
        c = self._config
        return f"{c.api_base}/repos/{c.owner}/{c.repo}/contents/{path}"

    def _headers(self, accept: str = "application/vnd.github.v3+json") -> dict[str, str]:
        headers = {"Accept": accept, "Content-Type": "application/json"}
        token = self._credential()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    # ── GET ───────────────────────────────────────────────

    async def get(self, path: str) -> StoredBlob | None:
        return await asyncio.to_thread(self._get_sync, path)

    def _get_sync(self, path: str) -> StoredBlob | None:
        url = self._url(path)
        params = {"ref": self._config.branch}
        try:
            response = self._session.get(
                url, params=params, headers=self._headers(), timeout=self._timeout
            )
        except requests.RequestException as e:
            logger.error(
                "remote fetch failed",
                extra={"extra_fields": {"path": path, "error_type": type(e).__name__}},
            )
            raise RemoteUnavailableError(path, type(e).__name__) from e

        if response.status_code == 404:
            return None
        self._raise_for_status(path, response.status_code)

        body: dict[str, Any] = response.json()
        sha = body["sha"]
        content = body.get("content") or ""
        if body.get("encoding") == "base64" and content:
            data = base64.b64decode(content.replace("\n", ""))
        else:
            # Files over 1 MB come back without inline content.
            data = self._get_raw(path, params)

        logger.info(
            "remote file fetched",
            extra={"extra_fields": {"path": path, "size": len(data)}},
        )
        return StoredBlob(data=data, version=sha)

    def _get_raw(self, path: str, params: dict[str, str]) -> bytes:
        try:
            response = self._session.get(
                self._url(path),
                params=params,
                headers=self._headers("application/vnd.github.raw"),
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise RemoteUnavailableError(path, type(e).__name__) from e
        self._raise_for_status(path, response.status_code)
        return response.content

    # ── PUT ───────────────────────────────────────────────

    async def put(
        self, path: str, data: bytes, version: str | None, message: str
    ) -> str:
        return await asyncio.to_thread(self._put_sync, path, data, version, message)

    def _put_sync(
        self, path: str, data: bytes, version: str | None, message: str
    ) -> str:
        if not self.can_write:
            raise UnauthorizedError(path, "no_credential")

        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(data).decode("ascii"),
            "branch": self._config.branch,
        }
        if version:
            body["sha"] = version

        try:
            response = self._session.put(
                self._url(path), json=body, headers=self._headers(), timeout=self._timeout
            )
        except requests.RequestException as e:
            logger.error(
                "remote write failed",
                extra={"extra_fields": {"path": path, "error_type": type(e).__name__}},
            )
            raise RemoteUnavailableError(path, type(e).__name__) from e

        if self._is_conflict(response):
            raise VersionConflictError(path, version)
        self._raise_for_status(path, response.status_code)

        new_sha = response.json()["content"]["sha"]
        logger.info(
            "remote file written",
            extra={"extra_fields": {"path": path, "size": len(data)}},
        )
        return new_sha

    @staticmethod
    def _is_conflict(response: requests.Response) -> bool:
        if response.status_code == _CONFLICT_STATUS:
            return True
        return (
            response.status_code == _UNPROCESSABLE_STATUS
            and "sha" in (response.text or "")
        )

    @staticmethod
    def _raise_for_status(path: str, status: int) -> None:
        if status in _AUTH_STATUSES:
            raise UnauthorizedError(path, f"http_{status}")
        if not 200 <= status < 300:
            raise RemoteUnavailableError(path, f"http_{status}")
