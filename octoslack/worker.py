"""
Worker process for the GitHub-to-Slack relay.

Subscribes to the GitHub events channel and the poppit command-output
channel and handles one message at a time, to completion, before reading
the next. A failing event is logged and dropped. SIGTERM and SIGINT stop
the loop between events.
"""

import asyncio
import os
import signal
import sys
from typing import Optional

from redis.asyncio.client import PubSub
from slack_sdk.web.async_client import AsyncWebClient

from octoslack.config import ConfigurationError, Settings, build_filter_config, load_settings
from octoslack.services.handlers import EventHandler
from octoslack.services.redis_client import RedisClient, RedisConnectionError
from octoslack.services.slack_history import SlackHistory
from octoslack.utils.logging import (
    ContextLoggerAdapter,
    get_logger,
    log_error_with_context,
    setup_logging,
)

logger = get_logger(__name__)

# Seconds to wait for a message before re-checking the running flag
POLL_TIMEOUT = 1.0


class Worker:
    """Worker process that relays Redis events to the Slack queues."""

    def __init__(
        self,
        settings: Settings,
        redis_client: Optional[RedisClient] = None,
        history: Optional[SlackHistory] = None,
        logger: Optional[ContextLoggerAdapter] = None
    ):
        """
        Initialize the worker.

        Collaborators are built from ``settings`` unless supplied.
        """
        self.settings = settings
        self.logger = logger or get_logger(__name__)
        self.filters = build_filter_config(settings)
        self.redis_client = redis_client or RedisClient(
            settings.redis_url,
            password=settings.redis_password,
            message_list=settings.slack_redis_list,
            reactions_list=settings.slack_reactions_list,
            timebomb_channel=settings.timebomb_channel,
        )
        self.history = history or SlackHistory(
            AsyncWebClient(token=settings.slack_bot_token),
            settings.slack_channel_id,
            search_limit=settings.slack_search_limit,
            request_timeout=settings.slack_request_timeout,
        )
        self.handler = EventHandler(
            self.redis_client,
            self.history,
            settings,
            self.filters,
            logger=self.logger,
        )
        self.running = False
        self._pubsub: Optional[PubSub] = None

    async def start(self) -> None:
        """
        Start the worker process.

        Connects to Redis, subscribes to both inbound channels and runs the
        receive loop until a shutdown signal arrives.

        Raises:
            RedisConnectionError: If Redis cannot be reached at startup
        """
        self.logger.info("Starting worker process...")

        await self.redis_client.initialize()

        self._pubsub = await self.redis_client.subscribe(
            self.settings.redis_channel,
            self.settings.poppit_channel,
        )

        self.running = True
        self._register_signal_handlers()

        self.logger.info("Waiting for pull request notifications and command output...")
        await self._process_events()

    async def stop(self) -> None:
        """Release the subscription and client connections."""
        self.running = False

        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None

        await self.redis_client.close()
        await self.history.close()

        self.logger.info("Worker process stopped")

    async def _process_events(self) -> None:
        """
        Main receive loop.

        Each message is handled to completion before the next is read.
        """
        while self.running:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=POLL_TIMEOUT
                )
                if message is None:
                    continue

                await self.dispatch(message["channel"], message["data"])

            except asyncio.CancelledError:
                self.logger.info("Event processing cancelled")
                break

            except Exception as e:
                self.logger.error(f"Error receiving from Redis: {e}", exc_info=True)
                await asyncio.sleep(1)

        self.logger.info("Event processing loop stopped")

    async def dispatch(self, channel: str, payload: str) -> None:
        """
        Route one message to its handler by channel.

        Handler failures are logged and the event is dropped.
        """
        try:
            if channel == self.settings.redis_channel:
                await self.handler.handle_pull_request_event(payload)
            elif channel == self.settings.poppit_channel:
                await self.handler.handle_poppit_command_output(payload)
            else:
                self.logger.debug(f"Ignoring message from unexpected channel: {channel}")
        except Exception as e:
            log_error_with_context(
                self.logger,
                f"Error handling event from channel '{channel}'",
                e,
                channel=channel,
            )

    def _register_signal_handlers(self) -> None:
        """Register signal handlers for graceful shutdown."""

        def signal_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            self.logger.info(f"Received signal {signal_name}, shutting down gracefully...")
            self.running = False

        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)

        self.logger.info("Signal handlers registered (SIGTERM, SIGINT)")


async def main() -> int:
    """Main entry point for worker process."""
    # Log configuration problems as JSON before the configured level is known
    setup_logging(os.environ.get("LOG_LEVEL") or "INFO")

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.critical(f"Invalid configuration: {e}")
        return 1

    setup_logging(settings.log_level)

    worker = Worker(settings)

    try:
        await worker.start()
    except RedisConnectionError as e:
        logger.critical(f"Failed to connect to Redis: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        await worker.stop()

    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
