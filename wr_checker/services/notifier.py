"""
Discord webhook notifier.

Delivers world record, weekly challenge and recap announcements. Delivery
is fire-and-forget: a failing webhook is logged and never raises into the
caller.
"""

import asyncio
import logging
from typing import List, Sequence, Tuple

import aiohttp
import discord

from wr_checker.constants import UIConstants
from wr_checker.data_models.score import RecapEntry, Score
from wr_checker.data_models.weekly import ChallengeDescriptor
from wr_checker.utils.embeds import (
    build_world_record_embed, build_weekly_challenge_embed, build_weekly_recap_embeds
)
from wr_checker.utils.exceptions import SetupError

logger = logging.getLogger(__name__)

# (new record, previous record, level title)
RecordAnnouncement = Tuple[Score, Score, str]


def _chunks(items: Sequence, size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


class Notifier:
    """Sends announcement embeds to the configured Discord webhooks."""

    def __init__(self, session: aiohttp.ClientSession, webhook_urls: Sequence[str],
                 weekly_webhook_urls: Sequence[str]):
        """
        Initialize the notifier.
        
        Args:
            session: Shared aiohttp session, owned by the caller
            webhook_urls: Webhooks for world records and recaps
            weekly_webhook_urls: Webhooks for weekly challenge announcements
            
        Raises:
            SetupError: A webhook url is invalid
        """
        try:
            self.webhooks = [discord.Webhook.from_url(url, session=session) for url in webhook_urls]
            self.weekly_webhooks = [discord.Webhook.from_url(url, session=session) for url in weekly_webhook_urls]
        except ValueError as e:
            raise SetupError("Invalid Discord webhook url", str(e)) from e

    async def _deliver(self, webhooks: List[discord.Webhook], embeds: List[discord.Embed],
                       kind: str) -> int:
        delivered = 0
        for webhook in webhooks:
            try:
                await webhook.send(embeds=embeds, wait=True)
                delivered += 1
            except (discord.HTTPException, aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.error(f"Failed to send {kind} webhook {webhook.id}: {e}")
        return delivered

    async def send_new_records(self, records: Sequence[RecordAnnouncement]) -> int:
        """
        Announce new world records, batched by Discord's embed limit.
        
        Returns:
            Number of successful webhook deliveries
        """
        delivered = 0
        for chunk in _chunks(list(records), UIConstants.MAX_EMBEDS_PER_MESSAGE):
            embeds = [build_world_record_embed(new, previous, title) for new, previous, title in chunk]
            delivered += await self._deliver(self.webhooks, embeds, "world record")
        return delivered

    async def send_weekly_started(self, descriptor: ChallengeDescriptor,
                                  previous_scores: Sequence[Score]) -> int:
        """Announce a new weekly challenge with the previous challenge's results."""
        embed = build_weekly_challenge_embed(descriptor, list(previous_scores))
        return await self._deliver(self.weekly_webhooks, [embed], "weekly challenge")

    async def send_weekly_recap(self, entries: Sequence[RecapEntry], window_start, window_end) -> int:
        """Send the weekly world record recap."""
        delivered = 0
        embeds = build_weekly_recap_embeds(list(entries), window_start, window_end)
        for chunk in _chunks(embeds, UIConstants.MAX_EMBEDS_PER_MESSAGE):
            delivered += await self._deliver(self.webhooks, chunk, "weekly recap")
        return delivered
