"""
Pull request event classification.

Decides what, if anything, a pull request event should produce. The rules
are checked in order and the first match wins:

- ``review_requested`` and non-draft ``opened`` notify unless the branch is
  blacklisted
- draft ``opened`` notifies only when the branch is not blacklisted and the
  draft filter matches
- ``closed`` replies in thread when merged, reacts and schedules deletion
  when not
- everything else is ignored
"""

import logging
from enum import Enum
from typing import Optional

from octoslack.config import FilterConfig
from octoslack.models.pr_event import PullRequestEvent
from octoslack.utils.logging import get_logger

_default_logger = get_logger(__name__)


class EventDecision(str, Enum):
    """Outcome of classifying a pull request event."""
    NOTIFY = "notify"
    MERGED_REPLY = "merged_reply"
    REJECTED = "rejected"
    IGNORE = "ignore"


def should_notify_draft_pr(
    event: PullRequestEvent,
    filters: FilterConfig,
    logger: Optional[logging.LoggerAdapter] = None
) -> bool:
    """
    Check whether a draft PR passes the draft notification filter.

    Both the repository allow-list and the branch prefix allow-list must be
    configured; the PR's repository must be listed and its branch must start
    with one of the prefixes.
    """
    logger = logger or _default_logger

    if not filters.enabled_repo_names or not filters.allowed_branch_prefixes:
        return False

    if event.repository not in filters.enabled_repo_names:
        return False

    for prefix in filters.allowed_branch_prefixes:
        if event.branch.startswith(prefix):
            logger.info(
                f"Draft PR #{event.number} matches filter: repo={event.repository}, "
                f"branch={event.branch} (prefix={prefix})"
            )
            return True

    return False


def should_blacklist_pr(
    event: PullRequestEvent,
    filters: FilterConfig,
    logger: Optional[logging.LoggerAdapter] = None
) -> bool:
    """
    Check whether the PR's branch matches any blacklist pattern.

    Patterns match anywhere in the branch name unless anchored.
    """
    logger = logger or _default_logger

    for pattern in filters.branch_blacklist:
        if pattern.search(event.branch):
            logger.info(
                f"PR #{event.number} blacklisted: branch '{event.branch}' "
                f"matches pattern '{pattern.pattern}'"
            )
            return True

    return False


def classify_pull_request_event(
    event: PullRequestEvent,
    filters: FilterConfig,
    logger: Optional[logging.LoggerAdapter] = None
) -> EventDecision:
    """
    Classify a pull request event.

    Args:
        event: Decoded pull request event
        filters: Draft and blacklist filters
        logger: Logger to report filter decisions on

    Returns:
        The action to take for the event
    """
    logger = logger or _default_logger
    pr = event.pull_request

    if event.action == "review_requested" or (event.action == "opened" and not pr.draft):
        if should_blacklist_pr(event, filters, logger):
            logger.debug(f"PR #{event.number} ignored - branch blacklisted")
            return EventDecision.IGNORE
        return EventDecision.NOTIFY

    if event.action == "opened":
        if should_blacklist_pr(event, filters, logger):
            logger.debug(f"Draft PR #{event.number} ignored - branch blacklisted")
            return EventDecision.IGNORE
        if should_notify_draft_pr(event, filters, logger):
            return EventDecision.NOTIFY
        logger.debug(f"Draft PR #{event.number} ignored - does not match filter criteria")
        return EventDecision.IGNORE

    if event.action == "closed":
        if pr.merged:
            return EventDecision.MERGED_REPLY
        return EventDecision.REJECTED

    logger.debug(
        f"Ignoring event with action: {event.action} "
        f"(merged: {pr.merged}, draft: {pr.draft})"
    )
    return EventDecision.IGNORE
