"""Remote sync: Fetch -> Merge -> Write, retried on version conflict.

Each attempt re-reads the remote document, so writers appending different
keys converge to the union of their rows. Writers racing on the same key
converge to whichever wins the final successful write (last-writer-wins
per key).

A failed sync never touches local state: the caller keeps its rows and
may push again later.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from staybook.infra.remote_store import (
    RemoteStore,
    RemoteUnavailableError,
    UnauthorizedError,
    VersionConflictError,
)
from staybook.infra.rows import RowSchema
from staybook.infra.xlsx_codec import CodecError, RowCodec
from staybook.observability.logging import get_logger
from staybook.sync.merge import merge_records

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3

LocalRows = Callable[[], Sequence[T]]
Sleep = Callable[[float], Awaitable[None]]


class VersionConflictExhausted(Exception):
    """Every attempt lost the compare-and-swap race."""

    def __init__(self, path: str, attempts: int):
        self.path = path
        self.attempts = attempts
        super().__init__(f"Gave up writing {path} after {attempts} conflicting attempts")


class SyncStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class RemoteDocument(Generic[T]):
    """Typed content of a remote file plus its version token."""

    rows: list[T] = field(default_factory=list)
    version_token: str | None = None


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one push, recorded on the completion channel."""

    category: str
    status: SyncStatus
    attempts: int = 0
    rows: int = 0
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == SyncStatus.SUCCESS


class DocumentChannel(Generic[T]):
    """One remote file (bookings or availability) seen as typed records."""

    def __init__(
        self,
        store: RemoteStore,
        codec: RowCodec,
        schema: RowSchema[T],
        path: str,
    ) -> None:
        self.store = store
        self.codec = codec
        self.schema = schema
        self.path = path

    @property
    def category(self) -> str:
        return self.schema.name

    async def fetch(self) -> RemoteDocument[T]:
        """Read the file. A missing file is an empty document, not an error."""
        blob = await self.store.get(self.path)
        if blob is None:
            return RemoteDocument(rows=[], version_token=None)
        try:
            raw_rows = self.codec.decode(blob.data)
        except CodecError as e:
            # Never overwrite a file we could not read.
            raise RemoteUnavailableError(self.path, "undecodable") from e
        rows = self.schema.parse_rows(raw_rows)
        return RemoteDocument(rows=rows, version_token=blob.version)

    async def write(
        self, records: Sequence[T], version: str | None, message: str
    ) -> str:
        data = self.codec.encode(
            self.schema.render_rows(records), self.schema.columns, self.schema.name
        )
        return await self.store.put(self.path, data, version, message)


class SyncEngine:
    """Runs fetch-merge-write cycles with a bounded conflict retry.

    Args:
        max_retries: Retries after the first attempt (attempts = retries + 1).
        backoff_seconds: Linear back-off step; attempt n waits n * step.
        sleep: Awaitable sleep (tests pass a no-op).
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_seconds: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    async def push_or_raise(
        self, channel: DocumentChannel[T], local_rows: LocalRows[T]
    ) -> tuple[int, int]:
        """Merge local rows into the remote file.

        *local_rows* is called on every attempt, so rows committed locally
        while a retry is pending are included.

        Returns:
            (attempts, merged row count).

        Raises:
            UnauthorizedError: No write credential (nothing is written).
            RemoteUnavailableError: Fetch or write failed.
            VersionConflictExhausted: Retry bound exceeded.
        """
        if not channel.store.can_write:
            raise UnauthorizedError(channel.path, "no_credential")

        attempts = self.max_retries + 1
        for attempt in range(attempts):
            if attempt > 0 and self.backoff_seconds > 0:
                await self._sleep(self.backoff_seconds * attempt)

            remote = await channel.fetch()
            local = list(local_rows())
            merged = merge_records(remote.rows, local, channel.schema.key)
            message = (
                f"Update {channel.category}: {len(local)} local records "
                f"merged into {len(remote.rows)} remote ({len(merged)} total)"
            )
            try:
                await channel.write(merged, remote.version_token, message)
            except VersionConflictError:
                logger.warning(
                    "remote write conflict, retrying",
                    extra={
                        "extra_fields": {
                            "category": channel.category,
                            "attempt": attempt + 1,
                            "max_attempts": attempts,
                        }
                    },
                )
                continue
            return attempt + 1, len(merged)

        raise VersionConflictExhausted(channel.path, attempts)

    async def push(
        self, channel: DocumentChannel[T], local_rows: LocalRows[T]
    ) -> SyncResult:
        """push_or_raise, with every remote failure folded into a SyncResult."""
        category = channel.category
        try:
            attempts, count = await self.push_or_raise(channel, local_rows)
        except VersionConflictExhausted as e:
            logger.error(
                "remote sync gave up after conflicts",
                extra={"extra_fields": {"category": category, "attempts": e.attempts}},
            )
            return SyncResult(
                category, SyncStatus.FAILED, attempts=e.attempts, reason="conflict_exhausted"
            )
        except RemoteUnavailableError as e:
            logger.error(
                "remote sync failed",
                extra={"extra_fields": {"category": category, "reason": e.reason}},
            )
            return SyncResult(category, SyncStatus.FAILED, reason=e.reason)

        logger.info(
            "remote sync succeeded",
            extra={
                "extra_fields": {"category": category, "attempts": attempts, "rows": count}
            },
        )
        return SyncResult(category, SyncStatus.SUCCESS, attempts=attempts, rows=count)
