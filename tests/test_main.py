"""Tests for the checker control loop."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from wr_checker.config import Config
from wr_checker.main import WRChecker
from wr_checker.services.wr_diff import WRDiffEngine
from wr_checker.utils.exceptions import FetchError

from conftest import make_score


class StubConfig(Config):
    KUMA_PUSH_URL = "https://kuma.example/api/push/abc"
    SEED_FROM_BACKEND = True
    LOOP_WAIT_SECONDS = 0


@pytest.fixture
def checker(monkeypatch, tmp_path, store, catalog) -> WRChecker:
    monkeypatch.chdir(tmp_path)
    checker = WRChecker(config=StubConfig)
    checker.store = store
    checker.catalog = catalog
    checker.backend = MagicMock()
    checker.backend.ping = AsyncMock()
    checker.notifier = MagicMock()
    checker.notifier.send_new_records = AsyncMock(return_value=1)
    checker.weekly_tracker = MagicMock()
    checker.weekly_tracker.run = AsyncMock()
    checker.diff_engine = WRDiffEngine(store)
    return checker


class TestSeeding:

    @pytest.mark.asyncio
    async def test_stored_records_and_backend_bootstrap(self, checker, store) -> None:
        await store.append_score(make_score(level_id="SP_1", time=30.0))

        async def fetch_level_best(level_id):
            if level_id == "SP_3":
                raise FetchError("Empty scores returned for SP_3")
            return make_score(level_id=level_id, time=45.0, username="Seed")

        checker.backend.fetch_level_best = AsyncMock(side_effect=fetch_level_best)

        await checker.seed_confirmed_records()

        assert set(checker.confirmed) == {"SP_1", "SP_2"}
        assert checker.confirmed["SP_1"].time == 30.0
        assert (await store.get_best("SP_2")).username == "Seed"
        assert await store.count_history("SP_3") == 0

    @pytest.mark.asyncio
    async def test_history_depth_is_logged_for_stored_levels(self, checker, store, caplog) -> None:
        await store.append_score(make_score(level_id="SP_1", time=31.0))
        await store.append_score(make_score(level_id="SP_1", time=30.0))
        checker.backend.fetch_level_best = AsyncMock(side_effect=FetchError("offline"))

        with caplog.at_level(logging.DEBUG, logger="wr_checker"):
            await checker.seed_confirmed_records()

        assert "[SP_1] Stored record 30.0 by Racer, 2 in history" in caplog.text

    @pytest.mark.asyncio
    async def test_bootstrap_disabled(self, checker, store, monkeypatch) -> None:
        monkeypatch.setattr(StubConfig, "SEED_FROM_BACKEND", False)
        await store.append_score(make_score(level_id="SP_1", time=30.0))
        checker.backend.fetch_level_best = AsyncMock()

        await checker.seed_confirmed_records()

        assert list(checker.confirmed) == ["SP_1"]
        checker.backend.fetch_level_best.assert_not_called()


class TestIteration:

    @pytest.mark.asyncio
    async def test_new_record_is_stored_and_announced(self, checker, store) -> None:
        previous = make_score(level_id="SP_1", time=30.0, username="Racer")
        new = make_score(level_id="SP_1", time=29.0, username="Speedy")
        checker.confirmed = {"SP_1": previous, "SP_2": make_score(level_id="SP_2", time=40.0)}
        checker.backend.fetch_world_records = AsyncMock(
            return_value=[new, make_score(level_id="SP_2", time=40.0)]
        )

        await checker.run_iteration()

        checker.notifier.send_new_records.assert_awaited_once_with([(new, previous, "Learning to Roll")])
        assert checker.confirmed["SP_1"] is new
        assert (await store.get_best("SP_1")).time == 29.0
        checker.weekly_tracker.run.assert_awaited_once()
        checker.backend.ping.assert_awaited_once_with(StubConfig.KUMA_PUSH_URL)
        assert checker.iteration == 1

    @pytest.mark.asyncio
    async def test_quiet_iteration(self, checker) -> None:
        checker.confirmed = {"SP_1": make_score(level_id="SP_1", time=30.0)}
        checker.backend.fetch_world_records = AsyncMock(return_value=[make_score(level_id="SP_1", time=30.0)])

        await checker.run_iteration()

        checker.notifier.send_new_records.assert_not_called()
        checker.weekly_tracker.run.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_heartbeat_failure_does_not_fail_iteration(self, checker) -> None:
        checker.backend.fetch_world_records = AsyncMock(return_value=[])
        checker.backend.ping = AsyncMock(side_effect=FetchError("Heartbeat failed with HTTP 500"))

        await checker.run_iteration()

        assert checker.iteration == 1

    @pytest.mark.asyncio
    async def test_loop_survives_iteration_errors(self, checker) -> None:
        checker.run_iteration = AsyncMock(side_effect=[RuntimeError("boom"), None, asyncio.CancelledError()])

        with pytest.raises(asyncio.CancelledError):
            await checker.run_forever()

        assert checker.run_iteration.await_count == 3
