"""
Score store for world record history and checker state.

All world records live in a single append-only ``scores`` table keyed by
level id. The weekly challenge cursor is a single row in ``metadata``.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple, Iterable

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError

from wr_checker.constants import StoreConstants
from wr_checker.data_models.score import Score, parse_timestamp
from wr_checker.data_models.weekly import ChallengeBucket, NameLang, describe_physics_mod
from wr_checker.database.models import ScoreRecord, Metadata, WeeklyHistory
from wr_checker.services.base import BaseService
from wr_checker.utils.exceptions import PersistenceError, ScoreNotFoundError

logger = logging.getLogger(__name__)


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _record_to_score(record: ScoreRecord) -> Score:
    return Score(
        level_id=record.level_id,
        time=record.time,
        username=record.username,
        user_id=record.user_id,
        platform=record.platform,
        skin_used=record.skin_used,
        replay_version=record.replay_version,
        created_at=parse_timestamp(record.created_at),
        updated_at=parse_timestamp(record.updated_at),
    )


class ScoreStore(BaseService):
    """Persists world record history per level and the weekly cursor."""

    async def get_best(self, level_id: str) -> Score:
        """
        Get the stored world record for a level.
        
        Raises:
            ScoreNotFoundError: The level has no stored rows
            PersistenceError: The query failed
        """
        try:
            async with self.get_session() as session:
                result = await session.execute(
                    select(ScoreRecord)
                    .where(ScoreRecord.level_id == level_id)
                    .order_by(ScoreRecord.time.asc(), ScoreRecord.updated_at.asc())
                    .limit(1)
                )
                record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(f"get_best({level_id})", str(e)) from e

        if record is None:
            raise ScoreNotFoundError(level_id)
        return _record_to_score(record)

    async def get_all_best(self, level_ids: Iterable[str]) -> Tuple[Dict[str, Score], List[str]]:
        """
        Get the stored world record of every level.
        
        Returns:
            Tuple of (level id -> best score, level ids with no stored rows)
        """
        best: Dict[str, Score] = {}
        missing: List[str] = []
        for level_id in level_ids:
            try:
                best[level_id] = await self.get_best(level_id)
            except ScoreNotFoundError:
                missing.append(level_id)
        return best, missing

    async def append_score(self, score: Score) -> None:
        """
        Insert a score as a new history row. Existing rows are never touched.
        
        Raises:
            PersistenceError: The insert failed after retries
        """
        async def _insert():
            async with self.get_session() as session:
                session.add(ScoreRecord(
                    level_id=score.level_id,
                    time=score.time,
                    username=score.username,
                    user_id=score.user_id,
                    skin_used=score.skin_used,
                    replay_version=score.replay_version,
                    platform=score.platform,
                    created_at=_to_naive_utc(score.created_at),
                    updated_at=_to_naive_utc(score.updated_at),
                ))

        try:
            await self.execute_with_retry(_insert, f"append_score({score.level_id})")
        except SQLAlchemyError as e:
            raise PersistenceError(f"append_score({score.level_id})", str(e)) from e

    async def get_history(self, level_id: str) -> List[Score]:
        """Get every stored score of a level, best time first."""
        try:
            async with self.get_session() as session:
                result = await session.execute(
                    select(ScoreRecord)
                    .where(ScoreRecord.level_id == level_id)
                    .order_by(ScoreRecord.time.asc(), ScoreRecord.updated_at.asc())
                )
                return [_record_to_score(record) for record in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"get_history({level_id})", str(e)) from e

    async def count_history(self, level_id: str) -> int:
        try:
            async with self.get_session() as session:
                result = await session.execute(
                    select(func.count(ScoreRecord.id)).where(ScoreRecord.level_id == level_id)
                )
                return result.scalar() or 0
        except SQLAlchemyError as e:
            raise PersistenceError(f"count_history({level_id})", str(e)) from e

    async def get_cursor(self) -> Optional[datetime]:
        """Get the last seen weekly challenge end date, None on a fresh database."""
        try:
            async with self.get_session() as session:
                entry = await session.get(Metadata, StoreConstants.WEEKLY_END_KEY)
        except SQLAlchemyError as e:
            raise PersistenceError("get_cursor", str(e)) from e

        if entry is None:
            return None
        return parse_timestamp(entry.value)

    async def set_cursor(self, end_date: datetime) -> None:
        """Upsert the weekly challenge end date."""
        value = parse_timestamp(end_date).isoformat()
        try:
            async with self.get_session() as session:
                entry = await session.get(Metadata, StoreConstants.WEEKLY_END_KEY)
                if entry:
                    entry.value = value
                else:
                    session.add(Metadata(key=StoreConstants.WEEKLY_END_KEY, value=value))
        except SQLAlchemyError as e:
            raise PersistenceError("set_cursor", str(e)) from e

    async def archive_weekly(self, bucket: ChallengeBucket, final_scores: List[Score]) -> bool:
        """
        Record a finished weekly challenge and its winning scores.
        
        Returns:
            False if the challenge was already archived
        """
        start_date = _to_naive_utc(bucket.start_date)
        try:
            async with self.get_session() as session:
                if await session.get(WeeklyHistory, start_date):
                    return False

                session.add(WeeklyHistory(
                    start_date=start_date,
                    end_date=_to_naive_utc(bucket.end_date),
                    challenge_id=bucket.challenge_id,
                    name=bucket.get_name(NameLang.EN),
                    physics_mods=json.dumps([describe_physics_mod(m) for m in bucket.physics_modifiers]),
                    scores=json.dumps([score.to_dict() for score in final_scores]),
                ))
        except SQLAlchemyError as e:
            raise PersistenceError(f"archive_weekly({bucket.challenge_id})", str(e)) from e

        logger.info(f"Archived weekly challenge {bucket.challenge_id}")
        return True
