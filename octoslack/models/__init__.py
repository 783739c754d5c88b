"""Data models for the OctoSlack relay."""

from .pr_event import (
    BaseRef,
    BranchRef,
    GitHubUser,
    PoppitCommandOutput,
    PullRequest,
    PullRequestEvent,
    Repository,
)
from .slack import (
    SlackHistoryMessage,
    SlackMessage,
    SlackReaction,
    TimeBombMessage,
)

__all__ = [
    # Inbound event models
    "PullRequestEvent",
    "PullRequest",
    "GitHubUser",
    "BranchRef",
    "BaseRef",
    "Repository",
    "PoppitCommandOutput",
    # Slack models
    "SlackMessage",
    "SlackReaction",
    "TimeBombMessage",
    "SlackHistoryMessage",
]
