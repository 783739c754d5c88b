"""
Application configuration management.

Settings are resolved once at startup with the following precedence, highest
first:

1. keyword arguments passed to ``Settings(...)``
2. environment variables (empty values count as unset)
3. the ``.env`` file
4. the YAML config file (``config.yaml``, or ``$OCTOSLACK_CONFIG_FILE``)
5. field defaults

List-valued settings given through the environment are comma separated and
replace the YAML list rather than extending it.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any, Dict, FrozenSet, List, Optional, Tuple, Type

import yaml
from pydantic import ValidationError, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from octoslack.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = "config.yaml"
CONFIG_FILE_ENV = "OCTOSLACK_CONFIG_FILE"

# Settings field -> (section, key) in the YAML file. Credentials are
# environment-only and have no entry here.
YAML_FIELD_MAP: Dict[str, Tuple[str, str]] = {
    "redis_host": ("redis", "host"),
    "redis_port": ("redis", "port"),
    "redis_channel": ("redis", "channel"),
    "slack_channel_id": ("slack", "channel_id"),
    "slack_redis_list": ("slack", "redis_list"),
    "slack_reactions_list": ("slack", "reactions_list"),
    "slack_search_limit": ("slack", "search_limit"),
    "slack_request_timeout": ("slack", "request_timeout"),
    "poppit_channel": ("poppit", "channel"),
    "timebomb_channel": ("timebomb", "channel"),
    "timebomb_ttl_seconds": ("timebomb", "ttl_seconds"),
    "log_level": ("logging", "level"),
    "draft_notify_repos": ("draft_pr_filter", "enabled_repos"),
    "draft_notify_branch_prefixes": ("draft_pr_filter", "allowed_branch_prefixes"),
    "branch_blacklist_patterns": ("branch_blacklist", "patterns"),
}


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def split_and_trim(csv_input: str) -> List[str]:
    """
    Split a comma separated list, trimming whitespace and dropping blanks.

    Example:
        split_and_trim("repo1, ,repo2") -> ["repo1", "repo2"]
    """
    if not csv_input:
        return []
    return [item.strip() for item in csv_input.split(",") if item.strip()]


def load_yaml_config(path: Path) -> Dict[str, Any]:
    """
    Read the YAML config file.

    The file is optional: a missing file yields an empty mapping, and a
    malformed one is reported and ignored.
    """
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to parse config file {path}: {e}. Using defaults.")
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Config file {path} is not a mapping. Using defaults.")
        return {}

    logger.info(f"Loaded configuration from {path}")
    return data


class YamlFileSettingsSource(PydanticBaseSettingsSource):
    """Settings source mapping the nested YAML layout onto flat fields."""

    def __init__(self, settings_cls: Type[BaseSettings], yaml_file: Path):
        super().__init__(settings_cls)
        self._values = self._flatten(load_yaml_config(yaml_file))

    @staticmethod
    def _flatten(data: Dict[str, Any]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for field_name, (section, key) in YAML_FIELD_MAP.items():
            block = data.get(section)
            if not isinstance(block, dict):
                continue
            value = block.get(key)
            # Zero values mean "not set" and fall through to the defaults
            if value is None or value == "" or value == 0 or value == []:
                continue
            values[field_name] = value
        return values

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        return self._values.get(field_name), field_name, False

    def __call__(self) -> Dict[str, Any]:
        return dict(self._values)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and YAML."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_channel: str = "github-events"
    redis_password: Optional[str] = None

    # Slack
    slack_channel_id: str
    slack_bot_token: str
    slack_redis_list: str = "slack_messages"
    slack_reactions_list: str = "slack_reactions"
    slack_search_limit: int = 100
    slack_request_timeout: float = 10.0

    # Poppit / TimeBomb
    poppit_channel: str = "poppit:command-output"
    timebomb_channel: str = "timebomb-messages"
    timebomb_ttl_seconds: int = 3600

    # Filters
    draft_notify_repos: Annotated[List[str], NoDecode] = []
    draft_notify_branch_prefixes: Annotated[List[str], NoDecode] = []
    branch_blacklist_patterns: Annotated[List[str], NoDecode] = []

    # Application
    log_level: str = "INFO"

    @field_validator(
        "draft_notify_repos",
        "draft_notify_branch_prefixes",
        "branch_blacklist_patterns",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value: Any) -> Any:
        if isinstance(value, str):
            return split_and_trim(value)
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def redis_url(self) -> str:
        return f"redis://{self.redis_host}:{self.redis_port}/0"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        yaml_file = Path(os.environ.get(CONFIG_FILE_ENV) or DEFAULT_CONFIG_FILE)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlFileSettingsSource(settings_cls, yaml_file),
        )


@dataclass(frozen=True)
class FilterConfig:
    """Read-only PR filters built once from settings."""

    enabled_repo_names: FrozenSet[str] = frozenset()
    allowed_branch_prefixes: Tuple[str, ...] = ()
    branch_blacklist: Tuple[re.Pattern, ...] = field(default_factory=tuple)


def compile_blacklist(patterns: List[str]) -> Tuple[re.Pattern, ...]:
    """Compile blacklist patterns, skipping (and reporting) invalid ones."""
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            logger.warning(f"Invalid regex pattern '{pattern}': {e} (skipping)")
            continue
        logger.debug(f"Compiled branch blacklist pattern: {pattern}")
    return tuple(compiled)


def build_filter_config(settings: Settings) -> FilterConfig:
    """Build the draft and blacklist filters from settings."""
    return FilterConfig(
        enabled_repo_names=frozenset(settings.draft_notify_repos),
        allowed_branch_prefixes=tuple(settings.draft_notify_branch_prefixes),
        branch_blacklist=compile_blacklist(settings.branch_blacklist_patterns),
    )


def load_settings(**overrides: Any) -> Settings:
    """
    Resolve settings from all sources.

    Raises:
        ConfigurationError: If a required value is missing or a value is invalid
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as e:
        problems = []
        for error in e.errors():
            name = ".".join(str(part) for part in error["loc"])
            if error["type"] == "missing":
                problems.append(f"{name.upper()} must be set via config file or environment variable")
            else:
                problems.append(f"{name.upper()}: {error['msg']}")
        raise ConfigurationError("; ".join(problems)) from e

    logger.info(
        f"Configuration loaded: Redis={settings.redis_host}:{settings.redis_port}, "
        f"Channel={settings.redis_channel}, SlackList={settings.slack_redis_list}"
    )
    return settings
