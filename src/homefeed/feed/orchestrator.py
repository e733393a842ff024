"""Home feed orchestration.

A load cycle ("session") runs in two phases:

1. Phase one fetches continue-watching / next-up and the library list, then
   publishes the watching rows together with ``Loading`` placeholders for the
   sports row and every latest row. The feed counts as usable from here on.
2. Phase two resolves the hero carousel, the sports row and each latest row
   as independent tasks. Each one publishes its own slot when it finishes;
   there is no barrier between them and one failing source never touches its
   siblings.

Every session gets an increasing id. Phase one only publishes for the newest
session. Phase-two slots belong to the session whose phase one published them
last; results from any other session are dropped. A refresh that fails before
publishing therefore leaves the previous session free to finish its rows.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
import random
from typing import Callable, Coroutine, List, Optional, Set

from ..core.config import FeedConfig
from ..core.events import EventBus, PHASE1_PUBLISHED, SESSION_FAILED, SESSION_STARTED, USER_ACTION
from ..core.services import FeedServices
from .catalog import CatalogClient
from .dedupe import distinct_by_id
from .hero import HeroSelector
from .libraries import LatestRequest, build_latest_requests, visible_libraries
from .models import (
    Error,
    LoadSession,
    Loading,
    Pending,
    Row,
    Success,
    UserAction,
    can_transition,
)
from .snapshot import FeedSnapshot
from .sports import SPORTS_ON_NOW_TITLE, fetch_sports_on_now
from .telemetry import timed_fetch
from .watching import Combiner, build_watching_rows, fetch_watching

ClearBackdropCB = Callable[[], None]


class HomeFeedOrchestrator:
    """Build the home feed into a :class:`FeedSnapshot`."""

    def __init__(
        self,
        catalog: CatalogClient,
        snapshot: Optional[FeedSnapshot] = None,
        *,
        services: Optional[FeedServices] = None,
        clear_backdrop: Optional[ClearBackdropCB] = None,
        combiner: Optional[Combiner] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._catalog = catalog
        self.snapshot = snapshot or FeedSnapshot()
        self._services = services
        if services is not None:
            self._log = services.get_logger("Orchestrator")
            self._events = services.event_bus
        else:
            self._log = logging.getLogger("HomeFeed.Orchestrator")
            self._events = EventBus()
        self._clear_backdrop = clear_backdrop
        self._combiner = combiner
        self._rng = rng or random.Random()
        self._session_ids = itertools.count(1)
        self._current_session_id = 0
        self._published_session_id = 0
        self._config: Optional[FeedConfig] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def current_session_id(self) -> int:
        return self._current_session_id

    # ------------- Entry points -------------
    def start_or_refresh(self, config: Optional[FeedConfig] = None) -> asyncio.Task:
        """Start a new load cycle and return a task that finishes with phase one.

        Must be called from a running event loop. A session still in flight is
        superseded; its late results are discarded.
        """
        loop = asyncio.get_running_loop()
        if config is None:
            config = self._config or (self._services.load_feed_config() if self._services else FeedConfig())
        self._config = config
        session_id = next(self._session_ids)
        self._current_session_id = session_id

        cold_start = not isinstance(self.snapshot.overall_state, Success)
        if cold_start:
            self.snapshot.set_overall_state(Loading())
            self._clear_stale_backdrop()
        self.snapshot.set_refresh_state(Loading())
        self._log.debug("Starting home feed session %d (cold_start=%s)", session_id, cold_start)
        self._events.emit(SESSION_STARTED, {"session_id": session_id, "cold_start": cold_start})

        task = loop.create_task(self._run_phase_one(session_id, config, cold_start))
        self._track(task)
        return task

    async def record_user_action(self, item_id: str, action: UserAction) -> Optional[asyncio.Task]:
        """Write a watched/favorite change, then reload the whole feed.

        Returns the phase-one task of the new session, or None when the write
        failed (the failure is reported as a notification).
        """
        if self._config is None:
            raise RuntimeError("start_or_refresh() must run before user actions are recorded")
        try:
            if action in (UserAction.MARK_WATCHED, UserAction.MARK_UNWATCHED):
                await self._catalog.set_watched(item_id, action is UserAction.MARK_WATCHED)
            else:
                await self._catalog.set_favorite(item_id, action is UserAction.ADD_FAVORITE)
        except Exception as exc:
            self._log.exception("Failed to apply %s to %s", action.value, item_id)
            self._notify(f"Could not update item: {exc}", "error")
            return None
        self._events.emit(USER_ACTION, {"item_id": item_id, "action": action.value})
        return self.start_or_refresh(self._config)

    async def set_watched(self, item_id: str, played: bool) -> Optional[asyncio.Task]:
        action = UserAction.MARK_WATCHED if played else UserAction.MARK_UNWATCHED
        return await self.record_user_action(item_id, action)

    async def set_favorite(self, item_id: str, favorite: bool) -> Optional[asyncio.Task]:
        action = UserAction.ADD_FAVORITE if favorite else UserAction.REMOVE_FAVORITE
        return await self.record_user_action(item_id, action)

    async def wait_idle(self) -> None:
        """Wait until every phase-one and phase-two task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------- Phase one -------------
    async def _run_phase_one(self, session_id: int, config: FeedConfig, cold_start: bool) -> None:
        limit = config.max_items_per_row
        try:
            with timed_fetch("phase1") as sample:
                user = await self._catalog.current_user()
                if user is None:
                    self._log.info("No current user, home feed not loaded")
                    if self._is_current(session_id):
                        if cold_start:
                            self.snapshot.set_overall_state(Pending())
                        self.snapshot.set_refresh_state(Pending())
                    return
                libraries = visible_libraries(
                    await self._catalog.list_libraries(user.id), config.hidden_library_ids
                )
                resume, next_up = await fetch_watching(
                    self._catalog, user.id, limit, config.enable_rewatching_next_up
                )
                sample.count = len(resume) + len(next_up)
            watching = build_watching_rows(
                resume,
                next_up,
                combine=config.combine_continue_next,
                limit=limit,
                combiner=self._combiner,
                session_id=session_id,
            )
            latest_requests = build_latest_requests(libraries, limit)
        except Exception as exc:
            self._fail_session(session_id, cold_start, exc)
            return

        if not self._is_current(session_id):
            self._log.debug("Dropping phase one of superseded session %d", session_id)
            return

        session = LoadSession(
            session_id=session_id,
            user_id=user.id,
            limit=limit,
            library_ids=tuple(lib.id for lib in libraries),
            config=config,
        )
        self._published_session_id = session_id
        self.snapshot.set_watching_rows(watching)
        if cold_start:
            self.snapshot.set_hero_items(())
        self.snapshot.set_sports_rows([Row(Loading(SPORTS_ON_NOW_TITLE), session_id)])
        self.snapshot.set_latest_rows(Row(Loading(req.title), session_id) for req in latest_requests)
        self.snapshot.set_overall_state(Success())
        self.snapshot.set_refresh_state(Success())
        self._events.emit(
            PHASE1_PUBLISHED,
            {
                "session_id": session_id,
                "watching_rows": len(watching),
                "latest_rows": len(latest_requests),
            },
        )
        self._start_phase_two(session, latest_requests)

    def _fail_session(self, session_id: int, cold_start: bool, exc: Exception) -> None:
        if not self._is_current(session_id):
            self._log.debug("Ignoring failure of superseded session %d: %s", session_id, exc)
            return
        message = f"Error loading home page: {exc}"
        self._log.error("%s", message, exc_info=(type(exc), exc, exc.__traceback__))
        if cold_start:
            self.snapshot.set_overall_state(Error(message=message))
        else:
            # Stale rows are still on screen; a notice is enough
            self._notify(f"Home refresh error: {exc}", "warning")
        self.snapshot.set_refresh_state(Error(message=message))
        self._events.emit(
            SESSION_FAILED,
            {"session_id": session_id, "message": message, "cold_start": cold_start},
        )

    # ------------- Phase two -------------
    def _start_phase_two(self, session: LoadSession, latest_requests: List[LatestRequest]) -> None:
        self._spawn(self._load_hero(session))
        self._spawn(self._load_sports(session))
        for index, request in enumerate(latest_requests):
            self._spawn(self._load_latest(session, index, request))

    async def _load_hero(self, session: LoadSession) -> None:
        selector = HeroSelector(
            self._catalog,
            session.config.hero_limit,
            rng=self._rng,
            logger=self._log.getChild("Hero"),
        )
        try:
            with timed_fetch("hero") as sample:
                items = await selector.select(session.user_id, session.library_ids)
                sample.count = len(items)
        except Exception:
            self._log.exception("Error loading hero items")
            items = []
        if self._owns_slots(session.session_id):
            self.snapshot.set_hero_items(items)
        else:
            self._log.debug("Dropping hero items of superseded session %d", session.session_id)

    async def _load_sports(self, session: LoadSession) -> None:
        try:
            with timed_fetch("sports") as sample:
                programs = await fetch_sports_on_now(
                    self._catalog, session.user_id, session.limit, logger=self._log
                )
                sample.count = len(programs)
        except Exception:
            self._log.exception("Error loading sports programs on now")
            programs = []
        if not self._owns_slots(session.session_id):
            self._log.debug("Dropping sports row of superseded session %d", session.session_id)
            return
        self.snapshot.set_sports_rows(
            [Row(Success(SPORTS_ON_NOW_TITLE, tuple(programs)), session.session_id)]
        )

    async def _load_latest(self, session: LoadSession, index: int, request: LatestRequest) -> None:
        try:
            with timed_fetch(f"latest:{request.library_id}") as sample:
                items = await self._catalog.get_latest(session.user_id, request.library_id, request.limit)
                items = distinct_by_id(items)[: request.limit]
                sample.count = len(items)
            row = Row(Success(request.title, tuple(items)), session.session_id)
        except Exception as exc:
            self._log.exception("Error loading %s", request.title)
            row = Row(Error(request.title, str(exc) or type(exc).__name__), session.session_id)
        self._publish_latest_row(session.session_id, index, row)

    def _publish_latest_row(self, session_id: int, index: int, row: Row) -> None:
        if not self._owns_slots(session_id):
            self._log.debug("Dropping %r of superseded session %d", row.title, session_id)
            return
        rows = self.snapshot.latest_rows
        if index >= len(rows) or rows[index].session_id != session_id:
            self._log.debug("Latest row slot %d no longer belongs to session %d", index, session_id)
            return
        if not can_transition(rows[index].state, row.state):
            self._log.debug("Refusing to regress latest row %r", row.title)
            return
        self.snapshot.replace_latest_row(index, row)

    # ------------- Helpers -------------
    def _is_current(self, session_id: int) -> bool:
        return session_id == self._current_session_id

    def _owns_slots(self, session_id: int) -> bool:
        return session_id == self._published_session_id

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._track(task)
        return task

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _clear_stale_backdrop(self) -> None:
        if self._clear_backdrop is None:
            return
        try:
            self._clear_backdrop()
        except Exception:
            self._log.exception("Failed to clear backdrop")

    def _notify(self, message: str, level: str) -> None:
        if self._services is not None:
            self._services.send_notification(message, level, source="home_feed")
        else:
            getattr(self._log, level, self._log.info)("%s", message)


__all__ = ["HomeFeedOrchestrator"]
