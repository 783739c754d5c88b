"""Slack-bound record models.

These are the JSON documents this service places on Redis for the Slack
delivery and deletion workers, plus the read-only view of Slack history
used for correlation lookups.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class SlackMessage(BaseModel):
    """Message (or thread reply) to be posted by the Slack delivery worker."""

    model_config = ConfigDict(frozen=True)

    channel: str
    text: str
    thread_ts: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_json(self) -> str:
        """Serialize, omitting unset optional fields."""
        return self.model_dump_json(exclude_none=True)


class SlackReaction(BaseModel):
    """Emoji reaction to add to an existing message."""

    model_config = ConfigDict(frozen=True)

    reaction: str
    channel: str
    ts: str

    def to_json(self) -> str:
        return self.model_dump_json()


class TimeBombMessage(BaseModel):
    """Request to delete a message once ``ttl`` seconds have passed."""

    model_config = ConfigDict(frozen=True)

    channel: str
    ts: str
    ttl: int

    def to_json(self) -> str:
        return self.model_dump_json()


class SlackHistoryMessage(BaseModel):
    """Projection of a Slack history entry used for correlation."""

    model_config = ConfigDict(frozen=True)

    ts: str
    thread_ts: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_api(cls, message: Dict[str, Any]) -> "SlackHistoryMessage":
        """Build from a raw ``conversations.history``/``replies`` entry."""
        return cls(
            ts=message.get("ts", ""),
            thread_ts=message.get("thread_ts"),
            metadata=message.get("metadata"),
        )

    @property
    def event_type(self) -> str:
        if not self.metadata:
            return ""
        return self.metadata.get("event_type") or ""

    def payload_value(self, key: str) -> Optional[str]:
        """
        Return a string field of the metadata event payload.

        Non-string values are treated as absent so that lookups compare
        strings only.
        """
        if not self.metadata:
            return None
        payload = self.metadata.get("event_payload")
        if not isinstance(payload, dict):
            return None
        value = payload.get(key)
        return value if isinstance(value, str) else None
