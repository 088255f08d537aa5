"""
Checker-wide constants.

This module contains the magic numbers, URLs and keys used throughout the
codebase.
"""

from datetime import timedelta


class ParseConstants:
    """Constants for the Parse backend."""

    APPLICATION_ID_HEADER = "X-Parse-Application-Id"
    CLASSES_PATH = "/parse/classes/"
    FILES_PATH = "/parse/files/"

    # Standard levels are stored under this prefix, e.g. SP_12
    LEVEL_PREFIX = "SP_"

    # Tie-break equal times by the earliest achiever
    WR_ORDER = "time,updatedAt"
    WEEKLY_ORDER = "time"

    # Row holding the weekly challenge descriptor
    CHALLENGE_DATA_LEVEL_ID = "CHALLENGE_DATA"


class StoreConstants:
    """Constants for the score store."""

    # Metadata key of the persisted weekly challenge end date
    WEEKLY_END_KEY = "curr_week_end"


class WeeklyConstants:
    """Constants for weekly challenge tracking."""

    RECAP_WINDOW = timedelta(days=7)


class UIConstants:
    """Constants for Discord embeds."""

    # Discord accepts at most 10 embeds per message and 25 fields per embed
    MAX_EMBEDS_PER_MESSAGE = 10
    MAX_FIELDS_PER_EMBED = 25

    # Embed colors
    WORLD_RECORD_COLOR = 0xF1C40F  # Gold
    WEEKLY_CHALLENGE_COLOR = 0x57F287  # Green
    WEEKLY_RECAP_COLOR = 0x3498DB  # Blue

    FOOTER_TEXT = "MIUU WR Checker"
    WORLD_RECORD_THUMBNAIL = "https://cdn.discordapp.com/emojis/592218899441909760.webp?size=96&quality=lossless"
    WEEKLY_CHALLENGE_IMAGE = "http://blueteak.io/img/portfolio/MIU_ChallengeSmall.png"
    WEEKLY_RECAP_THUMBNAIL = "https://cdn.discordapp.com/emojis/500104801691107328.webp?size=96&quality=lossless"

    RECAP_DATE_FORMAT = "%Y-%m-%d"
