"""
Slack history lookups.

Finds the Slack message a later event refers to by scanning the most recent
channel history for message metadata written by this service. No index is
kept; each lookup is a bounded linear scan over ``search_limit`` messages.

Every Slack round-trip is bounded by ``request_timeout``. A timeout is
reported and treated as "no match", never as an error.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

import aiohttp
from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.web.async_client import AsyncWebClient

from octoslack.models.slack import SlackHistoryMessage
from octoslack.utils.logging import get_logger, log_api_call

logger = get_logger(__name__)


class SlackHistoryError(Exception):
    """Raised when the Slack channel history cannot be read."""
    pass


class _LookupTimeout(Exception):
    pass


class SlackHistory:
    """Correlates events with earlier messages in one Slack channel."""

    def __init__(
        self,
        client: AsyncWebClient,
        channel_id: str,
        search_limit: int = 100,
        request_timeout: float = 10.0
    ):
        """
        Args:
            client: Slack Web API client authorised for the channel
            channel_id: Channel the notifications are delivered to
            search_limit: Maximum number of history entries (and replies) scanned
            request_timeout: Seconds to wait for each Slack call
        """
        self._client = client
        self.channel_id = channel_id
        self.search_limit = search_limit
        self.request_timeout = request_timeout

    async def close(self) -> None:
        """Close the underlying HTTP session, if the client owns one."""
        session = getattr(self._client, "session", None)
        if session is not None and not session.closed:
            await session.close()

    async def _call(self, method: str, **params: Any) -> List[Dict[str, Any]]:
        """
        Call a conversations.* method and return its ``messages``.

        Raises:
            _LookupTimeout: If the call exceeds the request timeout
            SlackHistoryError: If Slack rejects the call
        """
        endpoint = f"conversations.{method}"
        api_method = getattr(self._client, f"conversations_{method}")
        started = time.monotonic()
        try:
            response = await asyncio.wait_for(
                api_method(
                    channel=self.channel_id,
                    limit=self.search_limit,
                    include_all_metadata=True,
                    **params
                ),
                timeout=self.request_timeout
            )
        except asyncio.TimeoutError as e:
            log_api_call(logger, "slack", endpoint, error=f"timed out after {self.request_timeout}s")
            raise _LookupTimeout(endpoint) from e
        except (SlackApiError, SlackClientError, aiohttp.ClientError) as e:
            log_api_call(logger, "slack", endpoint, error=str(e))
            raise SlackHistoryError(f"Failed to call {endpoint}: {e}") from e

        messages = response.get("messages") or []
        log_api_call(
            logger,
            "slack",
            endpoint,
            duration_ms=(time.monotonic() - started) * 1000,
            result_count=len(messages)
        )
        return messages

    async def fetch_history(self) -> List[SlackHistoryMessage]:
        """Fetch the latest ``search_limit`` top-level messages, newest first."""
        messages = await self._call("history")
        return [SlackHistoryMessage.from_api(m) for m in messages]

    async def fetch_replies(self, ts: str) -> List[SlackHistoryMessage]:
        """Fetch up to ``search_limit`` messages of the thread rooted at ``ts``."""
        messages = await self._call("replies", ts=ts)
        return [SlackHistoryMessage.from_api(m) for m in messages]

    async def find_message_by_metadata(self, key: str, value: str) -> Optional[SlackHistoryMessage]:
        """
        Find the newest message whose metadata payload has ``key == value``.

        Only messages carrying an event type are considered.

        Returns:
            Matching message, or None if nothing matched or the lookup timed out

        Raises:
            SlackHistoryError: If the history cannot be read
        """
        try:
            history = await self.fetch_history()
        except _LookupTimeout:
            logger.warning(f"Slack history lookup timed out searching for {key}={value}")
            return None

        for message in history:
            if not message.event_type:
                continue
            if message.payload_value(key) == value:
                return message

        return None

    async def find_message_by_merge_commit_sha(self, merge_commit_sha: str) -> Optional[SlackHistoryMessage]:
        """
        Find the notification whose thread announced the given merge commit.

        Scans ``review_requested`` notifications and their thread replies for
        a ``closed`` reply carrying ``merge_commit_sha``, and returns the
        parent notification (not the reply). Replies that cannot be fetched
        are skipped.

        Raises:
            SlackHistoryError: If the channel history cannot be read
        """
        try:
            history = await self.fetch_history()
        except _LookupTimeout:
            logger.warning(f"Slack history lookup timed out searching for commit {merge_commit_sha}")
            return None

        for message in history:
            if message.event_type != "review_requested":
                continue

            try:
                replies = await self.fetch_replies(message.ts)
            except (_LookupTimeout, SlackHistoryError) as e:
                logger.warning(f"Failed to get replies for message {message.ts}: {e}")
                continue

            for reply in replies:
                if reply.event_type != "closed":
                    continue
                if reply.payload_value("merge_commit_sha") == merge_commit_sha:
                    return message

        return None
