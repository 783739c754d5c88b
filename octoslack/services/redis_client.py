"""
Redis client wrapper for event subscription and Slack record emission.

This service provides Redis operations for:
- Subscribing to the inbound GitHub and poppit channels
- Appending Slack messages and reactions to their delivery lists
- Publishing deletion requests to the timebomb channel

Emission is one operation per record with no batching and no retries; a
failure surfaces as RedisConnectionError for the caller to log.
"""

from contextlib import asynccontextmanager
from typing import Optional

import redis.asyncio as redis
from redis.asyncio.client import PubSub
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from octoslack.models.slack import SlackMessage, SlackReaction, TimeBombMessage
from octoslack.utils.logging import get_logger

logger = get_logger(__name__)


class RedisConnectionError(Exception):
    """Raised when a Redis connection or operation fails."""
    pass


class RedisClient:
    """
    Redis client wrapper with connection pooling.

    Provides methods for:
    - Channel subscription (pub/sub)
    - Slack message and reaction queues (list push)
    - Timebomb deletion requests (publish)
    """

    def __init__(
        self,
        redis_url: str,
        password: Optional[str] = None,
        message_list: str = "slack_messages",
        reactions_list: str = "slack_reactions",
        timebomb_channel: str = "timebomb-messages",
        connection_timeout: int = 5
    ):
        """
        Initialize Redis client.

        Args:
            redis_url: Redis connection URL
            password: Redis password, if the server requires one
            message_list: List the Slack delivery worker reads messages from
            reactions_list: List the Slack delivery worker reads reactions from
            timebomb_channel: Channel the deletion worker subscribes to
            connection_timeout: Connection timeout in seconds
        """
        self._redis_url = redis_url
        self._password = password
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None
        self._connection_timeout = connection_timeout
        self.message_list = message_list
        self.reactions_list = reactions_list
        self.timebomb_channel = timebomb_channel

    async def initialize(self) -> None:
        """
        Initialize Redis connection pool and verify connectivity.

        Should be called during application startup.

        Raises:
            RedisConnectionError: If Redis cannot be reached
        """
        try:
            self._pool = ConnectionPool.from_url(
                self._redis_url,
                password=self._password,
                max_connections=10,
                decode_responses=True,
                socket_connect_timeout=self._connection_timeout
            )

            self._client = redis.Redis(connection_pool=self._pool)

            await self._client.ping()

            logger.info("Connected to Redis successfully")

        except (RedisError, OSError) as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise RedisConnectionError(f"Failed to connect to Redis: {e}") from e

    async def close(self) -> None:
        """
        Close Redis connection pool.

        Should be called during application shutdown.
        """
        if self._client:
            await self._client.aclose()
            self._client = None

        if self._pool:
            await self._pool.disconnect()
            self._pool = None

        logger.info("Redis connection pool closed")

    @asynccontextmanager
    async def _get_client(self):
        """
        Get Redis client with connection check.

        Yields:
            redis.Redis: Redis client instance

        Raises:
            RuntimeError: If client not initialized
        """
        if not self._client:
            raise RuntimeError("Redis client not initialized. Call initialize() first.")

        yield self._client

    # ========== Subscription ==========

    async def subscribe(self, *channels: str) -> PubSub:
        """
        Subscribe to the given channels.

        Returns:
            PubSub handle; the caller owns it and must close it
        """
        async with self._get_client() as client:
            pubsub = client.pubsub()
            await pubsub.subscribe(*channels)
            logger.info(f"Subscribed to Redis channels: {', '.join(channels)}")
            return pubsub

    # ========== Emission ==========

    async def _rpush(self, key: str, payload: str) -> None:
        async with self._get_client() as client:
            try:
                await client.rpush(key, payload)
            except RedisError as e:
                raise RedisConnectionError(f"Failed to push to Redis list '{key}': {e}") from e

    async def push_slack_message(self, message: SlackMessage) -> None:
        """
        Append a message to the Slack message list.

        Raises:
            RedisConnectionError: If the push fails
        """
        await self._rpush(self.message_list, message.to_json())
        logger.info(f"Successfully pushed message to Redis list '{self.message_list}'")

    async def push_reaction(self, reaction: SlackReaction) -> None:
        """
        Append a reaction to the Slack reactions list.

        Raises:
            RedisConnectionError: If the push fails
        """
        await self._rpush(self.reactions_list, reaction.to_json())
        logger.info(
            f"Successfully pushed '{reaction.reaction}' reaction to Redis list "
            f"'{self.reactions_list}' for ts: {reaction.ts}"
        )

    async def publish_timebomb(self, message: TimeBombMessage) -> int:
        """
        Publish a deletion request to the timebomb channel.

        Returns:
            Number of subscribers that received the request

        Raises:
            RedisConnectionError: If the publish fails
        """
        async with self._get_client() as client:
            try:
                receivers = await client.publish(self.timebomb_channel, message.to_json())
            except RedisError as e:
                logger.error(
                    f"Failed to publish timebomb message to Redis channel '{self.timebomb_channel}': {e}"
                )
                raise RedisConnectionError(f"Failed to publish timebomb message to Redis: {e}") from e

        logger.info(f"Successfully scheduled message deletion for ts: {message.ts} (TTL: {message.ttl}s)")
        return receivers

    # ========== Utility Methods ==========

    async def ping(self) -> bool:
        """
        Test Redis connection.

        Returns:
            True if connection is healthy
        """
        async with self._get_client() as client:
            return await client.ping()
