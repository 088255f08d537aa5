"""
Score data models.

Provides the score record shared by the standard and weekly leaderboards,
plus the per-level aggregation used by the weekly recap.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from wr_checker.utils.time_format import format_score_time


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a backend or database timestamp into an aware UTC datetime.
    
    Accepts ISO strings (with a trailing ``Z`` or an offset), Parse date
    objects (``{"__type": "Date", "iso": ...}``) and datetimes. Naive values
    are treated as UTC.
    """
    if isinstance(value, dict):
        value = value.get('iso')
    if isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        value = datetime.fromisoformat(text)
    if not isinstance(value, datetime):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Replay:
    """Pointer to a downloadable replay file."""
    name: str
    url: Optional[str] = None
    type: str = "File"


@dataclass(frozen=True)
class Score:
    """One leaderboard performance. Lower time is better."""
    level_id: str
    time: float
    username: str
    user_id: str
    platform: str
    skin_used: str
    replay_version: int
    created_at: datetime
    updated_at: datetime
    object_id: Optional[str] = None
    replay: Optional[Replay] = None

    def __post_init__(self):
        if not self.time > 0:
            raise ValueError(f"Score time must be positive, got {self.time}")

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Score":
        """Build a score from a Parse leaderboard row."""
        replay_data = data.get('replay')
        replay = None
        if isinstance(replay_data, dict) and replay_data.get('name'):
            replay = Replay(
                name=replay_data['name'],
                url=replay_data.get('url'),
                type=replay_data.get('__type', 'File'),
            )

        return cls(
            level_id=data['mapID'],
            time=float(data['time']),
            username=data['username'],
            user_id=data['userID'],
            platform=data['platform'],
            skin_used=data.get('skinUsed', ''),
            replay_version=int(data.get('replayVersion', 0)),
            created_at=parse_timestamp(data['createdAt']),
            updated_at=parse_timestamp(data['updatedAt']),
            object_id=data.get('objectId'),
            replay=replay,
        )

    def with_level(self, level_id: str) -> "Score":
        """Return a copy labelled with another level id or title."""
        return replace(self, level_id=level_id)

    @property
    def formatted_time(self) -> str:
        return format_score_time(self.time)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON storage."""
        return {
            'level_id': self.level_id,
            'time': self.time,
            'username': self.username,
            'user_id': self.user_id,
            'platform': self.platform,
            'skin_used': self.skin_used,
            'replay_version': self.replay_version,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }


@dataclass
class RecapEntry:
    """Records set on one level within the recap window, newest first."""
    level_title: str
    scores: List[Score] = field(default_factory=list)
    improvement: float = 0.0
