"""Business logic services package."""

from octoslack.services.classifier import (
    EventDecision,
    classify_pull_request_event,
    should_blacklist_pr,
    should_notify_draft_pr,
)
from octoslack.services.handlers import (
    EventDecodeError,
    EventHandler,
)
from octoslack.services.redis_client import (
    RedisClient,
    RedisConnectionError,
)
from octoslack.services.slack_history import (
    SlackHistory,
    SlackHistoryError,
)

__all__ = [
    'EventDecision',
    'classify_pull_request_event',
    'should_blacklist_pr',
    'should_notify_draft_pr',
    'EventDecodeError',
    'EventHandler',
    'RedisClient',
    'RedisConnectionError',
    'SlackHistory',
    'SlackHistoryError',
]
