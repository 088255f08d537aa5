"""
Level catalog.

Static list of tracked level ids and their display titles, loaded once at
startup from two JSON files: a list of level ids and an id -> title map.
Ids may be given with or without the ``SP_`` prefix.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from wr_checker.constants import ParseConstants
from wr_checker.utils.exceptions import SetupError

logger = logging.getLogger(__name__)


def normalize_level_id(level_id: Union[str, int]) -> str:
    """Return the ``SP_<n>`` form of a level id."""
    level_id = str(level_id).strip()
    if level_id.startswith(ParseConstants.LEVEL_PREFIX):
        return level_id
    return f"{ParseConstants.LEVEL_PREFIX}{level_id}"


class LevelCatalog:
    """Maps level ids to display titles."""

    def __init__(self, level_ids: Iterable[Union[str, int]], titles: Optional[Dict[str, str]] = None):
        self.level_ids: List[str] = []
        for level_id in level_ids:
            normalized = normalize_level_id(level_id)
            if normalized not in self.level_ids:
                self.level_ids.append(normalized)

        self._titles: Dict[str, str] = {
            normalize_level_id(key): title for key, title in (titles or {}).items()
        }
        self._reported_missing = set()

    @classmethod
    def load(cls, ids_path: Union[str, Path], titles_path: Union[str, Path]) -> "LevelCatalog":
        """
        Load the catalog from disk.
        
        Raises:
            SetupError: A file is missing or malformed
        """
        try:
            level_ids = json.loads(Path(ids_path).read_text(encoding='utf-8'))
            titles = json.loads(Path(titles_path).read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            raise SetupError("Failed to load level catalog", str(e)) from e

        if not isinstance(level_ids, list) or not isinstance(titles, dict):
            raise SetupError("Level catalog files must hold a list of ids and an id -> title object")

        catalog = cls(level_ids, titles)
        logger.info(f"Loaded {len(catalog.level_ids)} levels")
        return catalog

    def title_for(self, level_id: str) -> str:
        """Display title of a level, falling back to the raw id."""
        title = self._titles.get(normalize_level_id(level_id))
        if title is not None:
            return title

        if level_id not in self._reported_missing:
            logger.warning(f"No title for level {level_id}, using the raw id")
            self._reported_missing.add(level_id)
        return level_id

    def __len__(self) -> int:
        return len(self.level_ids)

    def __contains__(self, level_id: str) -> bool:
        return normalize_level_id(level_id) in self.level_ids
