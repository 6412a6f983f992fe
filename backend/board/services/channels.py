"""Lookup of the Slack channels that opportunities are posted in."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, Protocol

import redis.asyncio as redis

from board.config import get_settings


class OpportunityChannels(Protocol):
    async def contains(self, channel_id: str) -> bool: ...


class RedisOpportunityChannels:
    """Channel ids kept in a Redis set (maintained by the Slack module)."""

    def __init__(self, client: redis.Redis, key: str):
        self.client = client
        self.key = key

    async def contains(self, channel_id: str) -> bool:
        return bool(await self.client.sismember(self.key, channel_id))


class StaticOpportunityChannels:
    """Fixed set of channel ids."""

    def __init__(self, channel_ids: Iterable[str] = ()):
        self.channel_ids = set(channel_ids)

    async def contains(self, channel_id: str) -> bool:
        return channel_id in self.channel_ids


@asynccontextmanager
async def opportunity_channels() -> AsyncIterator[OpportunityChannels]:
    """Redis-backed channel lookup; the connection is closed on exit."""
    settings = get_settings()
    client = redis.from_url(settings.redis_url, socket_timeout=5)
    try:
        yield RedisOpportunityChannels(client, key=settings.opportunity_channels_key)
    finally:
        await client.aclose()
