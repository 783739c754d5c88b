"""
Event handlers.

Turns one inbound Redis message into at most a couple of outbound Slack
records. Each handler runs to completion for a single event: it decodes,
decides, looks up the related Slack message when needed, and emits.
Nothing is retried; errors propagate to the worker, which logs them and
moves on to the next event.
"""

from typing import Optional

from pydantic import ValidationError

from octoslack.config import FilterConfig, Settings
from octoslack.models.pr_event import PoppitCommandOutput, PullRequestEvent
from octoslack.services.classifier import EventDecision, classify_pull_request_event
from octoslack.services.notifications import (
    DEPLOYED_REACTION,
    REJECTED_REACTION,
    build_merged_reply,
    build_pr_notification,
    build_reaction,
    build_timebomb,
)
from octoslack.services.redis_client import RedisClient
from octoslack.services.slack_history import SlackHistory
from octoslack.utils.logging import ContextLoggerAdapter, get_logger, log_pr_event

POPPIT_EVENT_TYPE = "github-dispatcher"
POPPIT_DEPLOY_COMMAND = "docker compose up -d"


class EventDecodeError(Exception):
    """Raised when an inbound payload is not a valid event."""
    pass


class EventHandler:
    """Handles pull request and poppit events for one Slack channel."""

    def __init__(
        self,
        redis_client: RedisClient,
        history: SlackHistory,
        settings: Settings,
        filters: FilterConfig,
        logger: Optional[ContextLoggerAdapter] = None
    ):
        self.redis_client = redis_client
        self.history = history
        self.channel_id = settings.slack_channel_id
        self.timebomb_ttl = settings.timebomb_ttl_seconds
        self.filters = filters
        self.logger = logger or get_logger(__name__)

    # ========== Pull Request Events ==========

    async def handle_pull_request_event(self, payload: str) -> EventDecision:
        """
        Process a GitHub pull request event.

        Args:
            payload: Raw JSON payload from the GitHub events channel

        Returns:
            The classification the event was handled under

        Raises:
            EventDecodeError: If the payload is not a pull request event
        """
        try:
            event = PullRequestEvent.model_validate_json(payload)
        except ValidationError as e:
            raise EventDecodeError(f"failed to unmarshal event: {e}") from e

        logger = self.logger.with_context(
            pr_number=event.number,
            repository=event.repository,
            event_action=event.action,
        )
        log_pr_event(logger, event.number, event.repository, event.action)

        decision = classify_pull_request_event(event, self.filters, logger)

        if decision is EventDecision.NOTIFY:
            await self.handle_pr_notification(event, logger)
        elif decision is EventDecision.MERGED_REPLY:
            await self.handle_pr_merged(event, logger)
        elif decision is EventDecision.REJECTED:
            await self.handle_pr_closed(event, logger)

        return decision

    async def handle_pr_notification(self, event: PullRequestEvent, logger: ContextLoggerAdapter) -> None:
        """Queue the top-level notification for a new or review-requested PR."""
        logger.info(f"Processing {event.action} event for PR #{event.number}")

        message = build_pr_notification(event, self.channel_id)
        await self.redis_client.push_slack_message(message)

    async def handle_pr_merged(self, event: PullRequestEvent, logger: ContextLoggerAdapter) -> None:
        """Reply in the notification's thread with the merge commit."""
        pr = event.pull_request
        logger.info(
            f"Processing closed (merged) event for PR #{pr.number} "
            f"with merge commit {pr.merge_commit_sha}"
        )

        matched = await self.history.find_message_by_metadata("pr_url", pr.html_url)
        if matched is None:
            logger.warning(f"No matching Slack message found for PR URL: {pr.html_url}")
            return

        logger.debug(f"Found matching message with ts: {matched.ts}")

        reply = build_merged_reply(event, self.channel_id, matched.ts)
        await self.redis_client.push_slack_message(reply)

    async def handle_pr_closed(self, event: PullRequestEvent, logger: ContextLoggerAdapter) -> None:
        """Mark a rejected PR's notification and schedule it for deletion."""
        pr = event.pull_request
        logger.info(f"Processing closed (rejected) event for PR #{pr.number}")

        matched = await self.history.find_message_by_metadata("pr_url", pr.html_url)
        if matched is None:
            logger.warning(f"No matching Slack message found for PR URL: {pr.html_url}")
            return

        logger.debug(f"Found matching message with ts: {matched.ts}")

        await self.redis_client.push_reaction(
            build_reaction(REJECTED_REACTION, self.channel_id, matched.ts)
        )
        await self.redis_client.publish_timebomb(
            build_timebomb(self.channel_id, matched.ts, self.timebomb_ttl)
        )

    # ========== Poppit Events ==========

    async def handle_poppit_command_output(self, payload: str) -> bool:
        """
        Process a poppit command output event.

        A ``docker compose up -d`` run dispatched for a merge commit marks
        that commit as deployed: the PR notification it belongs to gets a
        :package: reaction.

        Returns:
            True if a reaction was queued

        Raises:
            EventDecodeError: If the payload is not a poppit event
        """
        try:
            event = PoppitCommandOutput.model_validate_json(payload)
        except ValidationError as e:
            raise EventDecodeError(f"failed to unmarshal poppit event: {e}") from e

        if event.type != POPPIT_EVENT_TYPE:
            self.logger.debug(f"Ignoring poppit event with type: {event.type}")
            return False

        if event.command != POPPIT_DEPLOY_COMMAND:
            self.logger.debug(f"Ignoring poppit command: {event.command}")
            return False

        sha = event.git_commit_sha
        if sha is None:
            self.logger.debug("Poppit event missing git_commit_sha in metadata")
            return False

        logger = self.logger.with_context(commit=sha)
        logger.info(f"Processing poppit command output for commit: {sha}")

        matched = await self.history.find_message_by_merge_commit_sha(sha)
        if matched is None:
            logger.warning(f"No matching Slack message found for commit SHA: {sha}")
            return False

        logger.debug(f"Found matching parent message with ts: {matched.ts}")

        await self.redis_client.push_reaction(
            build_reaction(DEPLOYED_REACTION, self.channel_id, matched.ts)
        )
        return True
