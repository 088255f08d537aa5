import os
from dotenv import load_dotenv

load_dotenv()


def _split_list(value: str):
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    """Checker configuration settings"""

    # Database settings
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///wr_checker.db')

    # Loop settings
    LOOP_WAIT_SECONDS = int(os.getenv('LOOP_WAIT_SECONDS', 60))
    REQUEST_TIMEOUT_SECONDS = float(os.getenv('REQUEST_TIMEOUT_SECONDS', 15))
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'

    # Parse backend settings
    PARSE_DOMAIN = os.getenv('PARSE_DOMAIN', '')
    PARSE_APP_ID = os.getenv('PARSE_APP_ID', '')
    PARSE_CLASS_NAME = os.getenv('PARSE_CLASS_NAME', 'ScoreLeaderboard')
    PARSE_WEEKLY_CLASS_NAME = os.getenv('PARSE_WEEKLY_CLASS_NAME', 'ChallengeLeaderboard')
    PARSE_WEEKLY_STATS_CLASS_NAME = os.getenv('PARSE_WEEKLY_STATS_CLASS_NAME', 'ChallengeStats')

    # Discord settings
    DISCORD_WEBHOOKS = os.getenv('DISCORD_WEBHOOKS', '')  # Comma-separated, WRs and recaps
    DISCORD_WEEKLY_WEBHOOKS = os.getenv('DISCORD_WEEKLY_WEBHOOKS', '')  # Comma-separated, challenge posts

    # Uptime heartbeat, pinged after every iteration when set
    KUMA_PUSH_URL = os.getenv('KUMA_PUSH_URL') or None

    # Level catalog and replay storage
    LEVEL_IDS_FILE = os.getenv('LEVEL_IDS_FILE', 'level_ids.json')
    LEVEL_TITLES_FILE = os.getenv('LEVEL_TITLES_FILE', 'level_titles.json')
    REPLAY_DIR = os.getenv('REPLAY_DIR', 'replays')
    LOG_DIR = os.getenv('LOG_DIR', 'logs')

    # Seed empty levels from the backend's current best on first run
    SEED_FROM_BACKEND = os.getenv('SEED_FROM_BACKEND', 'True').lower() == 'true'

    @classmethod
    def get_webhooks(cls):
        """Get list of webhook urls for world record and recap posts"""
        return _split_list(cls.DISCORD_WEBHOOKS)

    @classmethod
    def get_weekly_webhooks(cls):
        """Get list of webhook urls for weekly challenge posts"""
        return _split_list(cls.DISCORD_WEEKLY_WEBHOOKS)

    @classmethod
    def get_async_database_url(cls) -> str:
        """Convert a plain sqlite URL to its aiosqlite form"""
        if cls.DATABASE_URL.startswith('sqlite:///'):
            return cls.DATABASE_URL.replace('sqlite:///', 'sqlite+aiosqlite:///', 1)
        return cls.DATABASE_URL

    @classmethod
    def validate(cls):
        """Validate that required configuration is present"""
        if not cls.PARSE_DOMAIN:
            raise ValueError("PARSE_DOMAIN is required")
        if not cls.PARSE_APP_ID:
            raise ValueError("PARSE_APP_ID is required")
        if cls.LOOP_WAIT_SECONDS <= 0:
            raise ValueError("LOOP_WAIT_SECONDS must be positive")
        if cls.REQUEST_TIMEOUT_SECONDS <= 0:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be positive")
        if not cls.get_webhooks() and not cls.get_weekly_webhooks():
            raise ValueError("At least one of DISCORD_WEBHOOKS or DISCORD_WEEKLY_WEBHOOKS is required")
