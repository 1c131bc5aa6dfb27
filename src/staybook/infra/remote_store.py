"""Versioned remote blob store contract and an in-memory implementation.

Every write must present the version token read by the last get; a stale
token is rejected with VersionConflictError (single-document
compare-and-swap, no cross-document locking).
"""

from __future__ import annotations

import hashlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol


class RemoteUnavailableError(Exception):
    """Remote fetch or write failed (network, server or auth)."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Remote store unavailable for {path}: {reason}")


class UnauthorizedError(RemoteUnavailableError):
    """Credential missing, expired or lacking write scope."""

    def __init__(self, path: str, reason: str = "unauthorized"):
        super().__init__(path, reason)


class VersionConflictError(Exception):
    """Version token presented on write is no longer current."""

    def __init__(self, path: str, version: str | None):
        self.path = path
        self.version = version
        super().__init__(f"Version conflict writing {path} (had {version})")


@dataclass(frozen=True)
class StoredBlob:
    data: bytes
    version: str


class RemoteStore(Protocol):
    """Content-addressed store of whole files."""

    @property
    def can_write(self) -> bool:
        """False when no write credential is available."""
        ...

    async def get(self, path: str) -> StoredBlob | None:
        """Current content and version, or None if the file does not exist.

        Raises:
            RemoteUnavailableError: On network/server/auth failure.
        """
        ...

    async def put(
        self, path: str, data: bytes, version: str | None, message: str
    ) -> str:
        """Replace the file if *version* is still current.

        Args:
            version: Token from the last get, None to create a new file.

        Returns:
            The new version token.

        Raises:
            VersionConflictError: *version* is stale.
            RemoteUnavailableError: On network/server/auth failure.
        """
        ...


BeforePutHook = Callable[[str], Awaitable[None]]


class InMemoryRemoteStore:
    """Process-local store with the same CAS semantics as the real one.

    Used for local dev and tests. `before_put` runs right before the version
    check, so a test can slip in another writer's commit between a sync's
    fetch and its write.
    """

    def __init__(self, writable: bool = True) -> None:
        self._files: dict[str, StoredBlob] = {}
        self._writable = writable
        self.before_put: BeforePutHook | None = None
        self.put_calls = 0
        self.commit_messages: list[str] = []

    @property
    def can_write(self) -> bool:
        return self._writable

    async def get(self, path: str) -> StoredBlob | None:
        return self._files.get(path)

    async def put(
        self, path: str, data: bytes, version: str | None, message: str
    ) -> str:
        self.put_calls += 1
        if self.before_put is not None:
            await self.before_put(path)
        if not self._writable:
            raise UnauthorizedError(path)

        current = self._files.get(path)
        current_version = current.version if current else None
        if current_version != version:
            raise VersionConflictError(path, version)

        new_version = hashlib.sha1(
            (current_version or "").encode() + data
        ).hexdigest()
        self._files[path] = StoredBlob(data=data, version=new_version)
        self.commit_messages.append(message)
        return new_version

    def seed(self, path: str, data: bytes) -> str:
        """Write a file unconditionally (test/dev setup)."""
        version = hashlib.sha1(data).hexdigest()
        self._files[path] = StoredBlob(data=data, version=version)
        return version
