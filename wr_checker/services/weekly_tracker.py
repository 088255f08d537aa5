"""
Weekly Challenge Tracker

Detects weekly challenge rollover by comparing the backend's current
challenge end date against the persisted cursor, then:
1. Fetches the previous challenge's final best score per level
2. Announces the new challenge and advances the cursor (only after the
   announcement, so a crash in between repeats the announcement instead of
   silently skipping it)
3. Sends a recap of world records set within the trailing window

The recap does not depend on steps 1 and 2 succeeding.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional, Tuple

from wr_checker.constants import WeeklyConstants
from wr_checker.data_models.score import RecapEntry, Score
from wr_checker.data_models.weekly import ChallengeDescriptor, NameLang
from wr_checker.services.backend_client import BackendClient
from wr_checker.services.level_catalog import LevelCatalog
from wr_checker.services.notifier import Notifier
from wr_checker.services.score_store import ScoreStore
from wr_checker.utils.exceptions import FetchError, PersistenceError

logger = logging.getLogger(__name__)


class WeeklyState(Enum):
    STABLE = "stable"
    ROLLED_OVER = "rolled_over"


@dataclass
class WeeklyTickResult:
    """Outcome of one tracker run."""
    state: Optional[WeeklyState] = None
    descriptor: Optional[ChallengeDescriptor] = None
    previous_scores: Optional[List[Score]] = None
    cursor_advanced: bool = False
    recap: List[RecapEntry] = field(default_factory=list)


def decide_state(current_end: datetime, persisted_end: Optional[datetime]) -> WeeklyState:
    """A missing cursor (fresh database) counts as a rollover."""
    if persisted_end is None or current_end != persisted_end:
        return WeeklyState.ROLLED_OVER
    return WeeklyState.STABLE


def build_recap_entry(level_title: str, history: List[Score],
                      window_start: datetime) -> Optional[RecapEntry]:
    """
    Summarize the records a level gained since ``window_start``.
    
    ``history`` must be ordered best time first. The scan stops at the first
    row older than the window; the improvement is measured from that row to
    the current record. A level whose best row is already older than the
    window contributes nothing, and so does a level with no row older than the
    window.
    """
    if not history:
        return None

    if len(history) == 1:
        only = history[0]
        if only.updated_at > window_start:
            return RecapEntry(level_title=level_title, scores=[only], improvement=0.0)
        return None

    new_scores: List[Score] = []
    for score in history:
        if score.updated_at < window_start:
            if not new_scores:
                return None
            improvement = score.time - new_scores[0].time
            return RecapEntry(level_title=level_title, scores=new_scores,
                              improvement=max(0.0, improvement))
        new_scores.append(score)

    # No older row to measure against
    return None


class WeeklyChallengeTracker:
    """Runs the weekly challenge rollover check once per iteration."""

    def __init__(self, backend: BackendClient, store: ScoreStore, notifier: Notifier,
                 catalog: LevelCatalog, recap_window: timedelta = WeeklyConstants.RECAP_WINDOW):
        self.backend = backend
        self.store = store
        self.notifier = notifier
        self.catalog = catalog
        self.recap_window = recap_window

    async def check(self) -> Tuple[WeeklyState, ChallengeDescriptor]:
        """
        Fetch the challenge descriptor and compare it with the cursor.
        
        Raises:
            FetchError: The descriptor could not be fetched
            PersistenceError: The cursor could not be read
        """
        descriptor = await self.backend.fetch_challenge()
        persisted_end = await self.store.get_cursor()
        return decide_state(descriptor.current.end_date, persisted_end), descriptor

    async def fetch_previous_scores(self, descriptor: ChallengeDescriptor) -> List[Score]:
        """
        Fetch the final best score of every level in the previous challenge.
        
        Weekly levels are looked up by their positional id and relabelled with
        the level name before being returned.
        
        Raises:
            FetchError: At least one level failed
        """
        previous = descriptor.previous
        results = await asyncio.gather(
            *(
                self.backend.fetch_weekly_best(previous.lookup_id(index), previous.start_date, previous.end_date)
                for index in range(len(previous.levels))
            ),
            return_exceptions=True
        )

        scores: List[Score] = []
        failures: List[str] = []
        for index, (level, result) in enumerate(zip(previous.levels, results)):
            if isinstance(result, FetchError):
                failures.append(f"{previous.lookup_id(index)} ({level.name}): {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            scores.append(result.with_level(level.name))

        if failures:
            raise FetchError("Failed to fetch previous weekly scores", "; ".join(failures))
        return scores

    async def compute_recap(self, now: Optional[datetime] = None) -> List[RecapEntry]:
        """Build recap entries for every tracked level with new records in the window."""
        now = now or datetime.now(timezone.utc)
        window_start = now - self.recap_window

        entries: List[RecapEntry] = []
        for level_id in self.catalog.level_ids:
            history = await self.store.get_history(level_id)
            entry = build_recap_entry(self.catalog.title_for(level_id), history, window_start)
            if entry is not None:
                entries.append(entry)
        return entries

    async def run(self, now: Optional[datetime] = None) -> WeeklyTickResult:
        """Perform the weekly challenge part of an iteration."""
        result = WeeklyTickResult()
        now = now or datetime.now(timezone.utc)

        try:
            result.state, result.descriptor = await self.check()
        except (FetchError, PersistenceError) as e:
            logger.warning(f"Skipping weekly challenge check: {e}")
            return result

        if result.state is WeeklyState.STABLE:
            return result

        descriptor = result.descriptor
        logger.info(f"Weekly challenge rollover detected, current ends {descriptor.current.end_date.isoformat()}")

        try:
            result.previous_scores = await self.fetch_previous_scores(descriptor)
        except FetchError as e:
            logger.error(f"Not announcing weekly challenge: {e}")

        if result.previous_scores is not None:
            await self._announce(descriptor, result.previous_scores)
            result.cursor_advanced = await self._advance_cursor(descriptor)
            await self._archive(descriptor, result.previous_scores)

        try:
            result.recap = await self.compute_recap(now)
        except PersistenceError as e:
            logger.error(f"Failed to compute weekly recap: {e}")
            return result

        if result.recap:
            await self.notifier.send_weekly_recap(result.recap, now - self.recap_window, now)
        else:
            logger.info("No new world records this week, skipping recap")

        return result

    async def _announce(self, descriptor: ChallengeDescriptor, previous_scores: List[Score]) -> None:
        await self.notifier.send_weekly_started(descriptor, previous_scores)
        logger.info(f"New Weekly Challenge Posted! [{descriptor.current.get_name(NameLang.EN)}]")

    async def _archive(self, descriptor: ChallengeDescriptor, previous_scores: List[Score]) -> None:
        try:
            await self.store.archive_weekly(descriptor.previous, previous_scores)
        except PersistenceError as e:
            logger.error(f"Failed to archive previous weekly challenge: {e}")

    async def _advance_cursor(self, descriptor: ChallengeDescriptor) -> bool:
        try:
            await self.store.set_cursor(descriptor.current.end_date)
            return True
        except PersistenceError as e:
            logger.error(f"Failed to persist weekly challenge end date: {e}")
            return False
