import asyncio
import logging
import sys
import time
from typing import Optional

import aiohttp

from wr_checker.config import Config
from wr_checker.database.database import Database
from wr_checker.services.backend_client import BackendClient
from wr_checker.services.level_catalog import LevelCatalog
from wr_checker.services.notifier import Notifier
from wr_checker.services.replay_archive import ReplayArchive
from wr_checker.services.score_store import ScoreStore
from wr_checker.services.weekly_tracker import WeeklyChallengeTracker
from wr_checker.services.wr_diff import ConfirmedBestMap, WRDiffEngine
from wr_checker.utils.exceptions import FetchError, PersistenceError, SetupError
from wr_checker.utils.logger import setup_logger

class WRChecker:
    """Owns the confirmed world records and runs the polling loop."""
    
    def __init__(self, config=Config):
        self.config = config
        self.logger = setup_logger('wr_checker', config.LOG_DIR, config.DEBUG)
        
        self.db: Optional[Database] = None
        self.http_session: Optional[aiohttp.ClientSession] = None
        self.catalog: Optional[LevelCatalog] = None
        self.backend: Optional[BackendClient] = None
        self.store: Optional[ScoreStore] = None
        self.notifier: Optional[Notifier] = None
        self.diff_engine: Optional[WRDiffEngine] = None
        self.weekly_tracker: Optional[WeeklyChallengeTracker] = None
        
        self.confirmed: ConfirmedBestMap = {}
        self.iteration = 0
        
    async def setup(self):
        """
        Open the store, load the catalog and seed the confirmed records.
        
        Raises:
            SetupError: The checker cannot run
        """
        self.logger.info("Starting MIU WR Checker...")
        config = self.config
        
        self.db = Database(config.get_async_database_url(), echo=config.DEBUG)
        await self.db.initialize()
        
        self.catalog = LevelCatalog.load(config.LEVEL_IDS_FILE, config.LEVEL_TITLES_FILE)
        
        self.http_session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=config.REQUEST_TIMEOUT_SECONDS)
        )
        self.backend = BackendClient(
            self.http_session,
            domain=config.PARSE_DOMAIN,
            app_id=config.PARSE_APP_ID,
            class_name=config.PARSE_CLASS_NAME,
            weekly_class_name=config.PARSE_WEEKLY_CLASS_NAME,
            weekly_stats_class_name=config.PARSE_WEEKLY_STATS_CLASS_NAME,
            timeout_seconds=config.REQUEST_TIMEOUT_SECONDS
        )
        self.store = ScoreStore(self.db.session_factory)
        self.notifier = Notifier(self.http_session, config.get_webhooks(), config.get_weekly_webhooks())
        self.diff_engine = WRDiffEngine(self.store, self.backend, ReplayArchive(config.REPLAY_DIR))
        self.weekly_tracker = WeeklyChallengeTracker(self.backend, self.store, self.notifier, self.catalog)
        
        await self.seed_confirmed_records()
        self.logger.info("Init sequence finished")
        
    async def seed_confirmed_records(self):
        """
        Seed the confirmed records from the store.
        
        Levels with no stored rows are bootstrapped from the backend's current
        best when enabled. A level that cannot be bootstrapped stays unseeded
        and is reported on every iteration.
        """
        try:
            confirmed, missing = await self.store.get_all_best(self.catalog.level_ids)
            for level_id, score in confirmed.items():
                history_size = await self.store.count_history(level_id)
                self.logger.debug(f"[{level_id}] Stored record {score.time} by {score.username}, {history_size} in history")
        except PersistenceError as e:
            raise SetupError("Failed to load stored world records", str(e)) from e
        
        for level_id in missing:
            if not self.config.SEED_FROM_BACKEND:
                self.logger.error(f"No stored world record for {level_id} and backend seeding is disabled")
                continue
            
            try:
                score = await self.backend.fetch_level_best(level_id)
            except FetchError as e:
                self.logger.error(f"Failed to seed {level_id} from the backend: {e}")
                continue
            
            try:
                await self.store.append_score(score)
            except PersistenceError as e:
                raise SetupError(f"Failed to store seed record for {level_id}", str(e)) from e
            
            confirmed[level_id] = score
            self.logger.info(f"Seeded {level_id} with {score.time} by {score.username}")
        
        self.confirmed = confirmed
        self.logger.info(f"Loaded {len(self.confirmed)}/{len(self.catalog)} confirmed world records")
        
    async def run_iteration(self):
        """Run one polling iteration: world records, weekly challenge, heartbeat."""
        start = time.monotonic()
        
        fetched = await self.backend.fetch_world_records(self.catalog.level_ids)
        new_records = await self.diff_engine.apply(self.confirmed, fetched)
        
        if new_records:
            await self.notifier.send_new_records([
                (new, previous, self.catalog.title_for(new.level_id))
                for new, previous in new_records
            ])
        
        await self.weekly_tracker.run()
        
        if self.config.KUMA_PUSH_URL:
            try:
                await self.backend.ping(self.config.KUMA_PUSH_URL)
                self.logger.debug("Sent uptime heartbeat")
            except FetchError as e:
                self.logger.warning(f"Failed to send uptime heartbeat: {e}")
        
        elapsed = time.monotonic() - start
        self.logger.info(f"[{elapsed:.3f}s] {self.iteration:03d} - Finished WR checking iteration")
        self.iteration += 1
        
    async def run_forever(self):
        """Run iterations back to back, waiting the configured delay after each."""
        while True:
            try:
                await self.run_iteration()
            except Exception as e:
                self.logger.error(f"Error in WR checking iteration: {e}", exc_info=True)
            
            await asyncio.sleep(self.config.LOOP_WAIT_SECONDS)
        
    async def close(self):
        """Cleanup when the checker is shutting down"""
        self.logger.info("Shutting down WR Checker...")
        
        if self.http_session:
            await self.http_session.close()
        
        if self.db:
            await self.db.close()

async def main():
    """Main entry point"""
    Config.validate()
    
    checker = WRChecker()
    
    try:
        await checker.setup()
        await checker.run_forever()
    finally:
        await checker.close()

def run():
    """Console script entry point"""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    except (SetupError, ValueError) as e:
        logging.getLogger('wr_checker').critical(f"Fatal error: {e}")
        sys.exit(1)

if __name__ == "__main__":
    run()
