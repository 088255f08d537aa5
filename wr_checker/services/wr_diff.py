"""
World record diff engine.

Compares freshly fetched level bests against the confirmed world records,
updates the confirmed map in place and persists every new record as a
history row. Only a strictly lower time is a new record.
"""

import logging
from typing import Dict, List, Optional, Tuple

from wr_checker.data_models.score import Score
from wr_checker.services.backend_client import BackendClient
from wr_checker.services.replay_archive import ReplayArchive
from wr_checker.services.score_store import ScoreStore
from wr_checker.utils.exceptions import DataInconsistencyError, FetchError, PersistenceError

logger = logging.getLogger(__name__)

# Level id -> current best known score, owned by the control loop
ConfirmedBestMap = Dict[str, Score]

# (new record, previous record)
RecordPair = Tuple[Score, Score]


def confirmed_record(confirmed: ConfirmedBestMap, level_id: str) -> Score:
    """
    Raises:
        DataInconsistencyError: The level was never seeded
    """
    previous = confirmed.get(level_id)
    if previous is None:
        raise DataInconsistencyError(level_id)
    return previous


def diff_scores(confirmed: ConfirmedBestMap, fetched: List[Score]) -> List[RecordPair]:
    """
    Find new world records and update ``confirmed`` in place.
    
    Scores for levels missing from ``confirmed`` are logged and skipped.
    
    Returns:
        (new, previous) pairs in discovery order
    """
    announcements: List[RecordPair] = []

    for score in fetched:
        try:
            previous = confirmed_record(confirmed, score.level_id)
        except DataInconsistencyError as e:
            logger.error(f"Skipping fetched score: {e}")
            continue

        if score.time >= previous.time:
            continue

        announcements.append((score, previous))
        confirmed[score.level_id] = score
        logger.info(
            f"New World Record For {score.level_id}: "
            f"{score.time} by {score.username} ({score.platform}), previous {previous.time}"
        )

    return announcements


class WRDiffEngine:
    """Applies fetched scores to the confirmed records and records new ones."""

    def __init__(self, store: ScoreStore, backend: Optional[BackendClient] = None,
                 replay_archive: Optional[ReplayArchive] = None):
        self.store = store
        self.backend = backend
        self.replay_archive = replay_archive

    async def apply(self, confirmed: ConfirmedBestMap, fetched: List[Score]) -> List[RecordPair]:
        """
        Diff a fetched batch and persist each new record.
        
        A failed write or replay download is logged; the in-memory update
        and the announcement stand regardless.
        """
        announcements = diff_scores(confirmed, fetched)

        for new, _previous in announcements:
            try:
                await self.store.append_score(new)
            except PersistenceError as e:
                logger.error(f"Failed to store new world record for {new.level_id}: {e}")

            await self._archive_replay(new)

        return announcements

    async def _archive_replay(self, score: Score) -> None:
        if self.backend is None or self.replay_archive is None:
            return

        try:
            data = await self.backend.download_replay(score)
            self.replay_archive.save(score, data)
            logger.info(f"Downloaded replay for [{score.level_id}] {score.username}, {score.time}")
        except (FetchError, OSError) as e:
            logger.warning(f"Failed to archive replay for {score.level_id}: {e}")
