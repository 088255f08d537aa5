"""Tests for the Parse backend client."""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp
import pytest

from wr_checker.services.backend_client import BackendClient, parse_date
from wr_checker.utils.exceptions import FetchError, MalformedResponseError

from conftest import make_bucket_dict


def api_row(level_id: str = "SP_1", time: float = 30.0, username: str = "Racer") -> Dict[str, Any]:
    return {
        "objectId": f"{level_id}-{username}",
        "mapID": level_id,
        "time": time,
        "username": username,
        "userID": f"{username}-id",
        "platform": "PC",
        "skinUsed": "swirl",
        "replayVersion": 5,
        "createdAt": "2024-01-05T10:00:00.000Z",
        "updatedAt": "2024-01-06T12:30:00.000Z",
        "replay": {"__type": "File", "name": f"{username}.replay", "url": "https://files.example/r"},
    }


class FakeResponse:
    def __init__(self, payload: Any = None, status: int = 200, body: bytes = b"", error: Exception = None):
        self.payload = payload
        self.status = status
        self.body = body
        self.error = error

    async def json(self, content_type=None):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload

    async def read(self) -> bytes:
        return self.body

    async def __aenter__(self):
        if self.error is not None:
            raise self.error
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Records requests and answers them from a per-map or default response."""

    def __init__(self, default: Optional[FakeResponse] = None, by_map: Optional[Dict[str, FakeResponse]] = None):
        self.default = default
        self.by_map = by_map or {}
        self.calls: List[Dict[str, Any]] = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers})
        if params and "where" in params:
            map_id = json.loads(params["where"]).get("mapID")
            if map_id in self.by_map:
                return self.by_map[map_id]
        return self.default


def make_client(session: FakeSession) -> BackendClient:
    return BackendClient(
        session,
        domain="parse.example.com",
        app_id="app-123",
        class_name="ScoreLeaderboard",
        weekly_class_name="ChallengeLeaderboard",
        weekly_stats_class_name="ChallengeStats",
        timeout_seconds=5,
    )


def test_parse_date() -> None:
    assert parse_date(datetime(2024, 1, 3, 17, 0, 0, 123456, tzinfo=timezone.utc)) == {
        "__type": "Date", "iso": "2024-01-03T17:00:00.123Z"
    }


class TestQuery:

    @pytest.mark.asyncio
    async def test_level_best_request_shape(self) -> None:
        session = FakeSession(FakeResponse({"results": [api_row("SP_4", 28.0)]}))

        score = await make_client(session).fetch_level_best("SP_4")

        assert score.time == 28.0
        call = session.calls[0]
        assert call["url"] == "https://parse.example.com/parse/classes/ScoreLeaderboard"
        assert call["headers"]["X-Parse-Application-Id"] == "app-123"
        assert json.loads(call["params"]["where"]) == {"mapID": "SP_4"}
        assert call["params"]["order"] == "time,updatedAt"
        assert call["params"]["limit"] == "1"

    @pytest.mark.asyncio
    async def test_empty_results_is_a_fetch_error(self) -> None:
        session = FakeSession(FakeResponse({"results": []}))

        with pytest.raises(FetchError):
            await make_client(session).fetch_level_best("SP_4")

    @pytest.mark.asyncio
    async def test_parse_error_payload(self) -> None:
        session = FakeSession(FakeResponse({"code": 101, "error": "Object not found."}, status=400))

        with pytest.raises(MalformedResponseError, match=r"\[101\] Object not found"):
            await make_client(session).fetch_level_best("SP_4")

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        session = FakeSession(FakeResponse({}, status=503))

        with pytest.raises(FetchError, match="503"):
            await make_client(session).query("ScoreLeaderboard", {"mapID": "SP_1"})

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        session = FakeSession(FakeResponse(ValueError("Expecting value")))

        with pytest.raises(MalformedResponseError):
            await make_client(session).query("ScoreLeaderboard", {"mapID": "SP_1"})

    @pytest.mark.asyncio
    async def test_missing_results(self) -> None:
        session = FakeSession(FakeResponse({"count": 0}))

        with pytest.raises(MalformedResponseError):
            await make_client(session).query("ScoreLeaderboard", {"mapID": "SP_1"})

    @pytest.mark.asyncio
    async def test_invalid_score_row(self) -> None:
        row = api_row()
        del row["username"]
        session = FakeSession(FakeResponse({"results": [row]}))

        with pytest.raises(MalformedResponseError):
            await make_client(session).query("ScoreLeaderboard", {"mapID": "SP_1"})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [asyncio.TimeoutError(), aiohttp.ClientConnectionError("refused")])
    async def test_transport_errors(self, error) -> None:
        session = FakeSession(FakeResponse(error=error))

        with pytest.raises(FetchError):
            await make_client(session).query("ScoreLeaderboard", {"mapID": "SP_1"})


class TestWorldRecords:

    @pytest.mark.asyncio
    async def test_failed_levels_are_skipped(self) -> None:
        session = FakeSession(by_map={
            "SP_1": FakeResponse({"results": [api_row("SP_1", 30.0)]}),
            "SP_2": FakeResponse(error=asyncio.TimeoutError()),
            "SP_3": FakeResponse({"results": [api_row("SP_3", 12.0)]}),
        })

        scores = await make_client(session).fetch_world_records(["SP_1", "SP_2", "SP_3"])

        assert [score.level_id for score in scores] == ["SP_1", "SP_3"]


class TestWeekly:

    @pytest.mark.asyncio
    async def test_weekly_best_filters_by_period(self) -> None:
        session = FakeSession(FakeResponse({"results": [api_row("A0", 19.0)]}))
        start = datetime(2024, 1, 3, 17, 0, tzinfo=timezone.utc)
        end = datetime(2024, 1, 10, 17, 0, tzinfo=timezone.utc)

        score = await make_client(session).fetch_weekly_best("A0", start, end)

        assert score.time == 19.0
        call = session.calls[0]
        assert call["url"].endswith("/parse/classes/ChallengeLeaderboard")
        assert call["params"]["order"] == "time"
        assert json.loads(call["params"]["where"]) == {
            "mapID": "A0",
            "updatedAt": {
                "$gte": {"__type": "Date", "iso": "2024-01-03T17:00:00.000Z"},
                "$lt": {"__type": "Date", "iso": "2024-01-10T17:00:00.000Z"},
            },
        }

    @pytest.mark.asyncio
    async def test_weekly_best_without_scores(self) -> None:
        session = FakeSession(FakeResponse({"results": []}))
        now = datetime(2024, 1, 10, tzinfo=timezone.utc)

        with pytest.raises(FetchError):
            await make_client(session).fetch_weekly_best("A0", now, now)

    @pytest.mark.asyncio
    async def test_fetch_challenge_decodes_score_buckets(self) -> None:
        buckets = {
            "current": make_bucket_dict("B", "week-2", "Now", "2024-01-10T17:00:00.000Z", "2024-01-17T17:00:00.000Z"),
            "previous": make_bucket_dict("A", "week-1", "Then", "2024-01-03T17:00:00.000Z", "2024-01-10T17:00:00.000Z"),
        }
        row = {"objectId": "stats-1", "LevelID": "CHALLENGE_DATA", "ScoreBuckets": json.dumps(buckets)}
        session = FakeSession(FakeResponse({"results": [row]}))

        descriptor = await make_client(session).fetch_challenge()

        assert descriptor.current.end_date == datetime(2024, 1, 17, 17, 0, tzinfo=timezone.utc)
        assert descriptor.object_id == "stats-1"
        assert session.calls[0]["url"].endswith("/parse/classes/ChallengeStats")
        assert json.loads(session.calls[0]["params"]["where"]) == {"LevelID": "CHALLENGE_DATA"}

    @pytest.mark.asyncio
    async def test_fetch_challenge_with_bad_buckets(self) -> None:
        row = {"objectId": "stats-1", "ScoreBuckets": "{broken"}
        session = FakeSession(FakeResponse({"results": [row]}))

        with pytest.raises(MalformedResponseError):
            await make_client(session).fetch_challenge()

    @pytest.mark.asyncio
    async def test_fetch_challenge_without_rows(self) -> None:
        session = FakeSession(FakeResponse({"results": []}))

        with pytest.raises(MalformedResponseError):
            await make_client(session).fetch_challenge()


class TestFiles:

    @pytest.mark.asyncio
    async def test_download_replay(self) -> None:
        session = FakeSession(FakeResponse(body=b"replay-bytes"))
        client = make_client(session)
        score = (await make_client(FakeSession(FakeResponse({"results": [api_row()]}))).fetch_level_best("SP_1"))

        data = await client.download_replay(score)

        assert data == b"replay-bytes"
        assert session.calls[0]["url"] == "https://parse.example.com/parse/files/app-123/Racer.replay"

    @pytest.mark.asyncio
    async def test_ping_failure(self) -> None:
        session = FakeSession(FakeResponse(status=500))

        with pytest.raises(FetchError):
            await make_client(session).ping("https://kuma.example/api/push/abc")
