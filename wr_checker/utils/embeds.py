"""
Embed builders for the checker's Discord announcements.

Provides the world record, weekly challenge and weekly recap embeds so the
notifier only deals with delivery.
"""

from datetime import datetime, timezone
from typing import List, Optional

import discord

from wr_checker import __version__
from wr_checker.constants import UIConstants
from wr_checker.data_models.score import RecapEntry, Score
from wr_checker.data_models.weekly import ChallengeBucket, ChallengeDescriptor, NameLang, describe_physics_mod
from wr_checker.utils.time_format import format_improvement

# Discord field value limit
MAX_FIELD_LENGTH = 1024


def _truncate(text: str, limit: int = MAX_FIELD_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[:limit - 1] + "…"


def _set_footer(embed: discord.Embed) -> None:
    embed.set_footer(text=f"{UIConstants.FOOTER_TEXT} v{__version__}")


def _modifier_lines(bucket: ChallengeBucket) -> str:
    lines = [describe_physics_mod(mod) for mod in bucket.physics_modifiers]
    return "\n".join(lines) if lines else "None"


def _score_summary(score: Score) -> str:
    return f"{score.formatted_time}\n{score.username}\n{score.platform}"


def build_world_record_embed(new: Score, previous: Score, level_title: str) -> discord.Embed:
    """Build the announcement embed for a single new world record."""
    embed = discord.Embed(
        title="***New Ultra World Record!***",
        description=(
            f"Level: **{level_title}**\n"
            f"Improvement: **{format_improvement(previous.time - new.time)}**"
        ),
        color=UIConstants.WORLD_RECORD_COLOR,
        timestamp=new.updated_at
    )
    embed.set_thumbnail(url=UIConstants.WORLD_RECORD_THUMBNAIL)
    embed.add_field(name="New:", value=_score_summary(new), inline=True)
    embed.add_field(name="Old:", value=_score_summary(previous), inline=True)
    _set_footer(embed)
    return embed


def build_weekly_challenge_embed(descriptor: ChallengeDescriptor, previous_scores: List[Score],
                                 now: Optional[datetime] = None) -> discord.Embed:
    """
    Build the announcement embed for a new weekly challenge.
    
    Args:
        descriptor: Current and previous challenge
        previous_scores: Final best score per previous level, labelled with
            the level name
        now: Embed timestamp, defaults to the current time
        
    Returns:
        Formatted Discord embed ready for delivery
    """
    current = descriptor.current
    previous = descriptor.previous

    embed = discord.Embed(
        title="***New Ultra Weekly Challenge Starts Now!***",
        description=f"**Current Challenge:**\n{current.get_name(NameLang.EN)}",
        color=UIConstants.WEEKLY_CHALLENGE_COLOR,
        timestamp=now or datetime.now(timezone.utc)
    )
    embed.set_image(url=UIConstants.WEEKLY_CHALLENGE_IMAGE)

    level_names = "\n".join(level.name for level in current.levels) or "None"
    embed.add_field(name="Current Modifiers:", value=_truncate(_modifier_lines(current)), inline=True)
    embed.add_field(name="Current Levels:", value=_truncate(level_names), inline=True)
    embed.add_field(name="Previous Challenge:", value=previous.get_name(NameLang.EN), inline=False)
    embed.add_field(name="Previous Modifiers:", value=_truncate(_modifier_lines(previous)), inline=False)

    for score in previous_scores:
        embed.add_field(
            name=score.level_id,
            value=f"*{score.platform}: {score.username} - {score.formatted_time}*",
            inline=True
        )

    _set_footer(embed)
    return embed


def build_weekly_recap_embeds(entries: List[RecapEntry], window_start: datetime,
                              window_end: datetime) -> List[discord.Embed]:
    """
    Build the recap embeds listing the world records of the past week.
    
    Levels are spread over several embeds when they exceed the field limit;
    the totals always cover every level.
    """
    total_records = sum(len(entry.scores) for entry in entries)
    total_improvement = sum(entry.improvement for entry in entries)
    date_format = UIConstants.RECAP_DATE_FORMAT

    description = (
        f"*Date: {window_start.strftime(date_format)}  >  {window_end.strftime(date_format)}*\n"
        f"Total New World Records: **{total_records}**\n"
        f"Total Improvement: **{format_improvement(total_improvement)}**"
    )

    embeds: List[discord.Embed] = []
    step = UIConstants.MAX_FIELDS_PER_EMBED
    for offset in range(0, max(len(entries), 1), step):
        embed = discord.Embed(
            title="***New Weekly Ultra WR Recap!***",
            description=description,
            color=UIConstants.WEEKLY_RECAP_COLOR,
            timestamp=window_end
        )
        embed.set_thumbnail(url=UIConstants.WEEKLY_RECAP_THUMBNAIL)

        for entry in entries[offset:offset + step]:
            lines = [f"- {score.username}: **{score.formatted_time}**" for score in entry.scores]
            improvement_line = f"\n*Improvement:* ***{format_improvement(entry.improvement)}***"
            value = _truncate("\n".join(lines), MAX_FIELD_LENGTH - len(improvement_line)) + improvement_line
            embed.add_field(name=entry.level_title, value=value, inline=False)

        _set_footer(embed)
        embeds.append(embed)

    return embeds
