"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import pytest
import pytest_asyncio

from wr_checker.data_models.score import Replay, Score
from wr_checker.data_models.weekly import ChallengeDescriptor
from wr_checker.database.database import Database
from wr_checker.services.level_catalog import LevelCatalog
from wr_checker.services.score_store import ScoreStore

NOW = datetime(2024, 1, 10, 18, 0, tzinfo=timezone.utc)


def make_score(level_id: str = "SP_1", time: float = 32.5, username: str = "Racer",
               updated_at: Optional[datetime] = None, replay: bool = False) -> Score:
    """Build a score with sensible defaults."""
    updated_at = updated_at or NOW
    return Score(
        level_id=level_id,
        time=time,
        username=username,
        user_id=f"{username}-id",
        platform="PC",
        skin_used="swirl",
        replay_version=5,
        created_at=updated_at,
        updated_at=updated_at,
        object_id=None,
        replay=Replay(name=f"REPLAY_{username}.replay") if replay else None,
    )


def make_bucket_dict(chapter_set: str, challenge_id: str, name: str,
                     start: str, end: str, level_names=("Alpha", "Beta")) -> Dict[str, Any]:
    return {
        "chapterSet": chapter_set,
        "challengeID": challenge_id,
        "levels": [
            {"name": level_name, "id": f"SP_{index + 1}", "physicsmod": {"gravity": 0.5, "canblast": True}}
            for index, level_name in enumerate(level_names)
        ],
        "name": {"en": name, "fr": f"{name} (fr)"},
        "startDate": start,
        "endDate": end,
    }


def make_descriptor(current_end: str = "2024-01-10T17:00:00.000Z") -> ChallengeDescriptor:
    """Build a descriptor whose current bucket ends at ``current_end``."""
    end = datetime.fromisoformat(current_end.replace("Z", "+00:00"))
    start = end - timedelta(days=7)
    previous_start = start - timedelta(days=7)
    return ChallengeDescriptor.from_score_buckets({
        "current": make_bucket_dict("B", "week-2", "Low Gravity Week",
                                    start.isoformat(), end.isoformat(), ("Gamma", "Delta")),
        "previous": make_bucket_dict("A", "week-1", "Bouncy Week",
                                     previous_start.isoformat(), start.isoformat()),
        "sheetID": 3,
        "curID": 7,
    })


@pytest.fixture
def score_factory():
    return make_score


@pytest.fixture
def descriptor_factory():
    return make_descriptor


@pytest.fixture
def catalog() -> LevelCatalog:
    return LevelCatalog(["1", "2", "SP_3"], {"1": "Learning to Roll", "SP_2": "Gem Collection"})


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.initialize()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def store(database) -> ScoreStore:
    return ScoreStore(database.session_factory)
