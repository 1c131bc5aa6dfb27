"""Booking engine service - owns the state the guest flow runs against.

Rules:
- Overrides and cached bookings live on the engine instance; guest
  selections live on GuestSession objects it hands out. No module globals.
- Everything here except the remote calls is synchronous, so availability
  reads, selection changes and booking commits never interleave inside
  one process.
- A committed booking is final locally. Remote sync runs detached and its
  failure only marks the engine as having a pending sync, retried on the
  next refresh.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable, Iterable
from datetime import date, datetime

from staybook.domain.availability import (
    DayAvailability,
    build_calendar,
    day_status,
    is_selectable,
    remaining_capacity,
)
from staybook.domain.booking import BookingRequest, BookingResult, commit_booking
from staybook.domain.capacity import index_overrides
from staybook.domain.models import (
    DEFAULT_PLANS,
    AvailabilityOverride,
    Booking,
    DayStatus,
    Plan,
    SelectionChanged,
)
from staybook.domain.pricing import PriceBreakdown, quote
from staybook.domain.selection import Selection
from staybook.infra.github_store import GitHubContentsStore
from staybook.infra.remote_store import (
    InMemoryRemoteStore,
    RemoteStore,
    RemoteUnavailableError,
)
from staybook.infra.rows import AVAILABILITY_SCHEMA, BOOKINGS_SCHEMA
from staybook.infra.settings import Settings
from staybook.infra.time import local_today, utc_now
from staybook.infra.xlsx_codec import RowCodec, XlsxCodec
from staybook.observability.logging import get_logger
from staybook.observability.redaction import hash_identifier
from staybook.sync.engine import DocumentChannel, SyncEngine, SyncResult
from staybook.sync.merge import merge_records
from staybook.tasks.client import TasksClient

logger = get_logger(__name__)


# ── Exceptions ───────────────────────────────────────────


class UnknownSessionError(Exception):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Unknown session: {session_id}")


class UnknownPlanError(Exception):
    def __init__(self, plan_id: str):
        self.plan_id = plan_id
        super().__init__(f"Unknown plan: {plan_id}")


# ── Guest session ────────────────────────────────────────


class GuestSession:
    """One guest's in-progress selection and plan choice."""

    def __init__(self, engine: BookingEngine, session_id: str) -> None:
        self.session_id = session_id
        self._engine = engine
        self.selection = Selection(engine.is_selectable)
        self.plan: Plan | None = None
        self.last_event = SelectionChanged()
        self.touched_at = engine.now()
        self.selection.subscribe(self._remember)

    def _remember(self, event: SelectionChanged) -> None:
        self.last_event = event

    def choose_plan(self, plan_id: str) -> Plan:
        self.plan = self._engine.get_plan(plan_id)
        return self.plan

    @property
    def price_per_night(self) -> int:
        if self.plan is not None:
            return self.plan.price
        return self._engine.settings.default_price

    def quote(self) -> PriceBreakdown:
        return quote(
            len(self.selection),
            self.price_per_night,
            self._engine.settings.service_charge,
        )

    def effective_plan(self) -> Plan:
        """Chosen plan, or a nameless plan at the default price."""
        if self.plan is not None:
            return self.plan
        return Plan(plan_id="", name="", price=self._engine.settings.default_price)


# ── Engine ───────────────────────────────────────────────


class BookingEngine:
    """Availability, selection and booking over a synced local cache.

    Args:
        settings: Engine settings.
        store: Remote versioned store holding both spreadsheets.
        codec: Row codec for the spreadsheet bytes.
        tasks: Background tasks client running detached syncs.
        plans: Bookable plans.
        today: Returns the local calendar date (injectable for tests).
        now: Returns the creation timestamp for new rows.
        sync_sleep: Sleep used between sync retries.
    """

    def __init__(
        self,
        settings: Settings,
        store: RemoteStore,
        codec: RowCodec | None = None,
        tasks: TasksClient | None = None,
        plans: Iterable[Plan] = DEFAULT_PLANS,
        today: Callable[[], date] | None = None,
        now: Callable[[], datetime] = utc_now,
        sync_sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.tasks = tasks or TasksClient()
        self._plans = {p.plan_id: p for p in plans}
        self._today = today or (lambda: local_today(settings.timezone))
        self._now = now

        codec = codec or XlsxCodec()
        self.bookings_channel = DocumentChannel(
            store, codec, BOOKINGS_SCHEMA, settings.bookings_path
        )
        self.availability_channel = DocumentChannel(
            store, codec, AVAILABILITY_SCHEMA, settings.availability_path
        )
        sync_kwargs = {"sleep": sync_sleep} if sync_sleep is not None else {}
        self.sync = SyncEngine(
            max_retries=settings.sync_max_retries,
            backoff_seconds=settings.sync_backoff_seconds,
            **sync_kwargs,
        )

        self._overrides: dict[date, AvailabilityOverride] = {}
        self._bookings: list[Booking] = []
        self._sessions: dict[str, GuestSession] = {}
        self.sync_pending = False
        self._refreshing = False
        self._refresh_task: asyncio.Task[None] | None = None

    # ── State ────────────────────────────────────────────

    @property
    def overrides(self) -> dict[date, AvailabilityOverride]:
        return dict(self._overrides)

    @property
    def bookings(self) -> list[Booking]:
        return list(self._bookings)

    def load(
        self,
        overrides: Iterable[AvailabilityOverride] = (),
        bookings: Iterable[Booking] = (),
    ) -> None:
        """Replace local state (startup seed and tests)."""
        self._overrides = index_overrides(overrides)
        self._bookings = list(bookings)

    def today(self) -> date:
        return self._today()

    @property
    def plans(self) -> list[Plan]:
        return list(self._plans.values())

    def get_plan(self, plan_id: str) -> Plan:
        plan = self._plans.get(plan_id)
        if plan is None:
            raise UnknownPlanError(plan_id)
        return plan

    # ── Availability ─────────────────────────────────────

    def status(self, day: date) -> DayStatus:
        return day_status(
            day,
            self._overrides,
            self._bookings,
            today=self.today(),
            default_capacity=self.settings.default_capacity,
        )

    def is_selectable(self, day: date) -> bool:
        return is_selectable(self.status(day))

    def remaining(self, day: date) -> int:
        return remaining_capacity(
            day, self._overrides, self._bookings, self.settings.default_capacity
        )

    def calendar(self, start: date, end: date) -> list[DayAvailability]:
        return build_calendar(
            start,
            end,
            self._overrides,
            self._bookings,
            today=self.today(),
            default_capacity=self.settings.default_capacity,
        )

    # ── Sessions ─────────────────────────────────────────

    def now(self) -> datetime:
        return self._now()

    def new_session(self) -> GuestSession:
        """Open a guest session, evicting idle or surplus sessions first."""
        self._evict_sessions()
        session = GuestSession(self, uuid.uuid4().hex)
        self._sessions[session.session_id] = session
        return session

    def get_session(self, session_id: str) -> GuestSession:
        session = self._sessions.get(session_id)
        if session is None or self._session_expired(session):
            self._sessions.pop(session_id, None)
            raise UnknownSessionError(session_id)
        # Reinsert so dict order stays least-recently-used first.
        del self._sessions[session_id]
        session.touched_at = self._now()
        self._sessions[session_id] = session
        return session

    def close_session(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def _session_expired(self, session: GuestSession) -> bool:
        idle = (self._now() - session.touched_at).total_seconds()
        return idle > self.settings.session_ttl_seconds

    def _evict_sessions(self) -> None:
        expired = [
            sid for sid, s in self._sessions.items() if self._session_expired(s)
        ]
        for sid in expired:
            del self._sessions[sid]
        while self._sessions and len(self._sessions) >= self.settings.max_sessions:
            del self._sessions[next(iter(self._sessions))]
        if expired:
            logger.info(
                "sessions evicted",
                extra={"extra_fields": {"expired": len(expired)}},
            )

    # ── Booking ──────────────────────────────────────────

    def submit_booking(
        self, session: GuestSession, request: BookingRequest
    ) -> BookingResult:
        """Commit the session's selection as a booking.

        On success the rows are in local state, the session is closed
        and a detached remote sync is spawned. On failure nothing changes
        and the selection is kept.

        Raises:
            ValidationError: Empty selection or missing customer fields.
            CapacityConflictError: A selected date filled up or closed.
        """
        rows = commit_booking(
            request,
            session.selection.dates,
            session.effective_plan(),
            self._overrides,
            self._bookings,
            today=self.today(),
            now=self._now(),
            default_capacity=self.settings.default_capacity,
            booking_prefix=self.settings.booking_prefix,
        )
        booking_id = rows[0].booking_id
        self._bookings.extend(rows)
        session.selection.clear()
        self.close_session(session.session_id)

        logger.info(
            "booking confirmed",
            extra={
                "extra_fields": {
                    "booking_id": booking_id,
                    "nights": len(rows),
                    "plan_id": rows[0].plan_id,
                    "customer_hash": hash_identifier(request.email),
                }
            },
        )

        self.tasks.spawn(f"sync:bookings:{booking_id}", self.sync_bookings)
        return BookingResult(success=True, booking_id=booking_id)

    # ── Remote sync ──────────────────────────────────────

    async def sync_bookings(self) -> SyncResult:
        """Push all local bookings through fetch-merge-write."""
        result = await self.sync.push(self.bookings_channel, lambda: self._bookings)
        self.sync_pending = not result.ok
        return result

    async def push_overrides(
        self, overrides: Iterable[AvailabilityOverride]
    ) -> SyncResult:
        """Merge operator overrides into the remote availability file.

        Local overrides are updated only after the remote write succeeds.
        """
        pushed = list(overrides)
        result = await self.sync.push(self.availability_channel, lambda: pushed)
        if result.ok:
            self._overrides.update(index_overrides(pushed))
        return result

    async def refresh(self) -> bool:
        """Re-read both remote files into local state.

        Overrides are replaced. Remote booking rows win over local rows of
        the same key; local rows not yet synced survive. A sync that failed earlier
        is retried afterwards.

        Returns:
            False if skipped because a refresh was already in flight.

        Raises:
            RemoteUnavailableError: If either fetch fails (state untouched).
        """
        if self._refreshing:
            logger.info("refresh skipped, already in flight")
            return False

        self._refreshing = True
        try:
            availability = await self.availability_channel.fetch()
            bookings = await self.bookings_channel.fetch()

            self._overrides = index_overrides(availability.rows)
            self._bookings = merge_records(
                self._bookings, bookings.rows, self.bookings_channel.schema.key
            )
            logger.info(
                "refresh completed",
                extra={
                    "extra_fields": {
                        "overrides": len(self._overrides),
                        "bookings": len(self._bookings),
                    }
                },
            )
        finally:
            self._refreshing = False

        if self.sync_pending:
            await self.sync_bookings()
        return True

    async def run_refresh_loop(self) -> None:
        """Refresh every settings.refresh_seconds until cancelled."""
        while True:
            await asyncio.sleep(self.settings.refresh_seconds)
            try:
                await self.refresh()
            except RemoteUnavailableError as e:
                logger.warning(
                    "periodic refresh failed",
                    extra={"extra_fields": {"reason": e.reason}},
                )
            except Exception:
                # The loop outlives any single bad refresh.
                logger.exception("periodic refresh crashed")

    def start_refresh_loop(self) -> asyncio.Task[None]:
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.get_running_loop().create_task(
                self.run_refresh_loop()
            )
        return self._refresh_task

    async def stop_refresh_loop(self) -> None:
        task, self._refresh_task = self._refresh_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


# ── Wiring ───────────────────────────────────────────────


def build_store(settings: Settings) -> RemoteStore:
    """Remote store selected by STAYBOOK_STORE."""
    if settings.store == "github":
        return GitHubContentsStore(settings.github, timeout=settings.http_timeout)
    return InMemoryRemoteStore()


def create_engine(settings: Settings | None = None) -> BookingEngine:
    settings = settings or Settings.from_env()
    return BookingEngine(settings, build_store(settings))
