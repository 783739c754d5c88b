"""Builders for the Slack records emitted for pull request events."""

from octoslack.models.pr_event import PullRequestEvent
from octoslack.models.slack import SlackMessage, SlackReaction, TimeBombMessage

REVIEW_REQUESTED_HEADER = "👀 Review Requested for Pull Request!"
OPENED_HEADER = "🚀 New Pull Request Opened!"
FALLBACK_HEADER = "📢 Pull Request Notification"

REJECTED_REACTION = "x"
DEPLOYED_REACTION = "package"

SHORT_SHA_LENGTH = 7


def notification_header(action: str) -> str:
    if action == "review_requested":
        return REVIEW_REQUESTED_HEADER
    if action == "opened":
        return OPENED_HEADER
    return FALLBACK_HEADER


def build_pr_notification(event: PullRequestEvent, channel: str) -> SlackMessage:
    """
    Build the top-level notification for a new or review-requested PR.

    The metadata carries the PR URL so that later close and merge events
    can find this message again.
    """
    pr = event.pull_request
    text = (
        f"{notification_header(event.action)}\n\n"
        f"*Repository:* {event.repository}\n"
        f"*PR #{pr.number}:* {pr.title}\n"
        f"*Author:* {event.author}\n"
        f"*Branch:* {event.branch}\n"
        f"*Link:* <{pr.html_url}|View PR>"
    )
    return SlackMessage(
        channel=channel,
        text=text,
        metadata={
            "event_type": event.action,
            "event_payload": {
                "pr_number": pr.number,
                "repository": event.repository,
                "pr_url": pr.html_url,
                "author": event.author,
                "branch": event.branch,
            },
        },
    )


def short_sha(sha: str) -> str:
    return sha[:SHORT_SHA_LENGTH]


def build_merged_reply(event: PullRequestEvent, channel: str, thread_ts: str) -> SlackMessage:
    """Build the thread reply announcing a merge."""
    sha = event.pull_request.merge_commit_sha or ""
    return SlackMessage(
        channel=channel,
        text=f"✅ Pull Request merged! Commit: {short_sha(sha)}",
        thread_ts=thread_ts,
        metadata={
            "event_type": "closed",
            "event_payload": {
                "merge_commit_sha": sha,
            },
        },
    )


def build_reaction(reaction: str, channel: str, ts: str) -> SlackReaction:
    return SlackReaction(reaction=reaction, channel=channel, ts=ts)


def build_timebomb(channel: str, ts: str, ttl: int) -> TimeBombMessage:
    return TimeBombMessage(channel=channel, ts=ts, ttl=ttl)
