"""
Backend client for the Parse leaderboard server.

Every request carries the application id header and a bounded timeout.
Network, timeout and payload problems surface as FetchError so callers can
skip the affected level or iteration.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import aiohttp

from wr_checker import __version__
from wr_checker.constants import ParseConstants
from wr_checker.data_models.score import Score
from wr_checker.data_models.weekly import ChallengeDescriptor
from wr_checker.utils.exceptions import FetchError, MalformedResponseError

logger = logging.getLogger(__name__)

USER_AGENT = f"MIUWRChecker/{__version__}"


def parse_date(value: datetime) -> Dict[str, str]:
    """Encode a datetime as a Parse ``Date`` object."""
    utc = value.astimezone(timezone.utc)
    return {"__type": "Date", "iso": utc.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'}


class BackendClient:
    """Reads scores and weekly challenge data from the Parse backend."""

    def __init__(self, session: aiohttp.ClientSession, domain: str, app_id: str,
                 class_name: str, weekly_class_name: str, weekly_stats_class_name: str,
                 timeout_seconds: float = 15.0):
        """
        Initialize the client.
        
        Args:
            session: Shared aiohttp session, owned by the caller
            domain: Backend host name, without scheme
            app_id: Parse application id sent with every request
            class_name: Class holding the standard leaderboards
            weekly_class_name: Class holding the weekly challenge leaderboards
            weekly_stats_class_name: Class holding the weekly challenge descriptor
            timeout_seconds: Total timeout for each request
        """
        self.session = session
        self.domain = domain
        self.app_id = app_id
        self.class_name = class_name
        self.weekly_class_name = weekly_class_name
        self.weekly_stats_class_name = weekly_stats_class_name
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    def _headers(self) -> Dict[str, str]:
        return {
            ParseConstants.APPLICATION_ID_HEADER: self.app_id,
            "User-Agent": USER_AGENT,
        }

    def _class_url(self, class_name: str) -> str:
        return f"https://{self.domain}{ParseConstants.CLASSES_PATH}{class_name}"

    async def _get_json(self, url: str, params: Dict[str, str]) -> Dict[str, Any]:
        try:
            async with self.session.get(url, params=params, headers=self._headers(),
                                        timeout=self.timeout) as resp:
                try:
                    payload = await resp.json(content_type=None)
                except ValueError as e:
                    raise MalformedResponseError("Response is not valid JSON", str(e)) from e

                if isinstance(payload, dict) and payload.get('error') is not None:
                    raise MalformedResponseError(
                        f"Parse Error: [{payload.get('code')}] {payload['error']}"
                    )
                if resp.status >= 400:
                    raise FetchError(f"Request failed with HTTP {resp.status}")
                if not isinstance(payload, dict):
                    raise MalformedResponseError("Response is not a JSON object")
                return payload
        except asyncio.TimeoutError as e:
            raise FetchError(f"Request timed out: {url}") from e
        except aiohttp.ClientError as e:
            raise FetchError(f"Request error: {url}", str(e)) from e

    async def query(self, class_name: str, where: Dict[str, Any],
                    order: Optional[str] = None, limit: Optional[int] = None) -> List[Score]:
        """
        Query a leaderboard class.
        
        Args:
            class_name: Parse class to query
            where: Parse constraint object, JSON encoded into the request
            order: Parse ordering, e.g. ``time,updatedAt``
            limit: Maximum number of rows
            
        Returns:
            Scores in backend order
        """
        params = {"where": json.dumps(where)}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)

        payload = await self._get_json(self._class_url(class_name), params)
        results = payload.get('results')
        if results is None:
            raise MalformedResponseError("Response has no results")

        try:
            return [Score.from_api(row) for row in results]
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError("Invalid score in response", str(e)) from e

    async def fetch_level_best(self, level_id: str) -> Score:
        """Fetch the current world record of a standard level."""
        scores = await self.query(
            self.class_name,
            {"mapID": level_id},
            order=ParseConstants.WR_ORDER,
            limit=1,
        )
        if not scores:
            raise FetchError(f"Empty scores returned for {level_id}")
        return scores[0]

    async def fetch_world_records(self, level_ids: Sequence[str]) -> List[Score]:
        """
        Fetch the world record of every level concurrently.
        
        A failed level is logged and left out; the remaining levels are
        returned in the given order.
        """
        results = await asyncio.gather(
            *(self.fetch_level_best(level_id) for level_id in level_ids),
            return_exceptions=True
        )

        scores: List[Score] = []
        for level_id, result in zip(level_ids, results):
            if isinstance(result, FetchError):
                logger.warning(f"[{level_id}] Failed to fetch world record: {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            scores.append(result)
        return scores

    async def fetch_weekly_best(self, lookup_id: str, start: datetime, end: datetime) -> Score:
        """Fetch the best weekly challenge score set within ``[start, end)``."""
        scores = await self.query(
            self.weekly_class_name,
            {
                "mapID": lookup_id,
                "updatedAt": {"$gte": parse_date(start), "$lt": parse_date(end)},
            },
            order=ParseConstants.WEEKLY_ORDER,
            limit=1,
        )
        if not scores:
            raise FetchError(f"No weekly scores for {lookup_id}")
        return scores[0]

    async def fetch_challenge(self) -> ChallengeDescriptor:
        """Fetch and decode the weekly challenge descriptor."""
        payload = await self._get_json(
            self._class_url(self.weekly_stats_class_name),
            {"where": json.dumps({"LevelID": ParseConstants.CHALLENGE_DATA_LEVEL_ID})},
        )
        results = payload.get('results')
        if not results:
            raise MalformedResponseError("Weekly challenge data is empty")

        row = results[0]
        try:
            return ChallengeDescriptor.from_score_buckets(row['ScoreBuckets'], row.get('objectId'))
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError("Failed to parse weekly challenge data", str(e)) from e

    async def download_replay(self, score: Score) -> bytes:
        """Download the replay file attached to a score."""
        if score.replay is None:
            raise FetchError(f"Score on {score.level_id} has no replay")

        url = f"https://{self.domain}{ParseConstants.FILES_PATH}{self.app_id}/{score.replay.name}"
        try:
            async with self.session.get(url, headers=self._headers(), timeout=self.timeout) as resp:
                if resp.status >= 400:
                    raise FetchError(f"Replay download failed with HTTP {resp.status}")
                return await resp.read()
        except asyncio.TimeoutError as e:
            raise FetchError(f"Replay download timed out: {url}") from e
        except aiohttp.ClientError as e:
            raise FetchError(f"Replay download error: {url}", str(e)) from e

    async def ping(self, url: str) -> None:
        """Send an uptime heartbeat."""
        try:
            async with self.session.get(url, timeout=self.timeout) as resp:
                if resp.status >= 400:
                    raise FetchError(f"Heartbeat failed with HTTP {resp.status}")
        except asyncio.TimeoutError as e:
            raise FetchError(f"Heartbeat timed out: {url}") from e
        except aiohttp.ClientError as e:
            raise FetchError(f"Heartbeat error: {url}", str(e)) from e
