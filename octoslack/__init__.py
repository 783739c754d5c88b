"""OctoSlack: relays GitHub pull request events to Slack via Redis."""

__version__ = "0.1.0"
