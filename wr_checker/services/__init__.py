"""
Services package for the WR checker.
"""

from .base import BaseService
from .backend_client import BackendClient
from .level_catalog import LevelCatalog
from .notifier import Notifier
from .replay_archive import ReplayArchive
from .score_store import ScoreStore
from .weekly_tracker import WeeklyChallengeTracker, WeeklyState
from .wr_diff import WRDiffEngine, diff_scores

__all__ = [
    'BaseService', 'BackendClient', 'LevelCatalog', 'Notifier', 'ReplayArchive',
    'ScoreStore', 'WeeklyChallengeTracker', 'WeeklyState', 'WRDiffEngine', 'diff_scores',
]
