"""
Replay archive for new world records.

Saves replays to ``{root}/{level_id}/{n}_{username}_{time}.replay`` where
``n`` counts the replays already saved for the level.
"""

import logging
import re
from pathlib import Path
from typing import Union

from wr_checker.data_models.score import Score

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[^\w.\- ]')


class ReplayArchive:
    """Writes downloaded replay files to disk."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def level_dir(self, level_id: str) -> Path:
        return self.root / _UNSAFE_CHARS.sub('_', level_id)

    def save(self, score: Score, data: bytes) -> Path:
        """
        Save replay bytes for a score.
        
        Returns:
            Path of the written file
        """
        directory = self.level_dir(score.level_id)
        directory.mkdir(parents=True, exist_ok=True)

        file_count = sum(1 for _ in directory.iterdir())
        username = _UNSAFE_CHARS.sub('_', score.username)
        path = directory / f"{file_count}_{username}_{score.time}.replay"
        path.write_bytes(data)

        logger.debug(f"Saved replay to {path}")
        return path
