"""
Unit tests for configuration management.
"""

import os
from unittest.mock import patch

import pytest

from octoslack.config import (
    CONFIG_FILE_ENV,
    ConfigurationError,
    FilterConfig,
    Settings,
    build_filter_config,
    load_settings,
    split_and_trim,
)

REQUIRED_ENV = {
    'SLACK_CHANNEL_ID': 'C0123456789',
    'SLACK_BOT_TOKEN': 'xoxb-test',
}

YAML_CONFIG = """
redis:
  host: redis.internal
  port: "6380"
  channel: yaml-events
slack:
  channel_id: CYAML
  redis_list: yaml_messages
  search_limit: 25
poppit:
  channel: yaml-poppit
timebomb:
  channel: yaml-timebomb
logging:
  level: debug
draft_pr_filter:
  enabled_repos:
    - owner/repo
  allowed_branch_prefixes:
    - feature/
    - release/
branch_blacklist:
  patterns:
    - "^dependabot/"
"""


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Run each test in an empty directory with a clean environment."""
    monkeypatch.chdir(tmp_path)
    with patch.dict(os.environ, {CONFIG_FILE_ENV: str(tmp_path / "config.yaml")}, clear=True):
        yield tmp_path


@pytest.fixture
def yaml_file(isolated_environment):
    path = isolated_environment / "config.yaml"
    path.write_text(YAML_CONFIG)
    return path


class TestSplitAndTrim:

    def test_trims_and_drops_empty_segments(self):
        assert split_and_trim("repo1, ,repo2") == ["repo1", "repo2"]

    def test_empty_input(self):
        assert split_and_trim("") == []

    def test_only_separators(self):
        assert split_and_trim(" , ,, ") == []

    def test_single_value(self):
        assert split_and_trim("  feature/  ") == ["feature/"]


def test_settings_has_default_values():
    """Test that settings have appropriate default values."""
    with patch.dict(os.environ, REQUIRED_ENV):
        settings = Settings()

    assert settings.redis_host == 'localhost'
    assert settings.redis_port == 6379
    assert settings.redis_channel == 'github-events'
    assert settings.redis_password is None
    assert settings.slack_redis_list == 'slack_messages'
    assert settings.slack_reactions_list == 'slack_reactions'
    assert settings.slack_search_limit == 100
    assert settings.poppit_channel == 'poppit:command-output'
    assert settings.timebomb_channel == 'timebomb-messages'
    assert settings.timebomb_ttl_seconds == 3600
    assert settings.log_level == 'INFO'
    assert settings.draft_notify_repos == []
    assert settings.draft_notify_branch_prefixes == []
    assert settings.branch_blacklist_patterns == []
    assert settings.redis_url == 'redis://localhost:6379/0'


def test_settings_loads_from_environment():
    """Test that settings can be loaded from environment variables."""
    with patch.dict(os.environ, {
        **REQUIRED_ENV,
        'REDIS_HOST': 'redis.example',
        'REDIS_PORT': '6390',
        'REDIS_PASSWORD': 'secret',
        'SLACK_SEARCH_LIMIT': '50',
        'LOG_LEVEL': 'debug',
        'DRAFT_NOTIFY_REPOS': 'owner/a, owner/b',
        'DRAFT_NOTIFY_BRANCH_PREFIXES': 'feature/,,',
        'BRANCH_BLACKLIST_PATTERNS': '^dependabot/, ^renovate/',
    }):
        settings = Settings()

    assert settings.redis_host == 'redis.example'
    assert settings.redis_port == 6390
    assert settings.redis_password == 'secret'
    assert settings.slack_search_limit == 50
    assert settings.log_level == 'DEBUG'
    assert settings.draft_notify_repos == ['owner/a', 'owner/b']
    assert settings.draft_notify_branch_prefixes == ['feature/']
    assert settings.branch_blacklist_patterns == ['^dependabot/', '^renovate/']


def test_yaml_values_are_used_as_defaults(yaml_file):
    with patch.dict(os.environ, {'SLACK_BOT_TOKEN': 'xoxb-test'}):
        settings = Settings()

    assert settings.redis_host == 'redis.internal'
    assert settings.redis_port == 6380
    assert settings.redis_channel == 'yaml-events'
    assert settings.slack_channel_id == 'CYAML'
    assert settings.slack_redis_list == 'yaml_messages'
    assert settings.slack_search_limit == 25
    assert settings.poppit_channel == 'yaml-poppit'
    assert settings.timebomb_channel == 'yaml-timebomb'
    assert settings.log_level == 'DEBUG'
    assert settings.draft_notify_repos == ['owner/repo']
    assert settings.draft_notify_branch_prefixes == ['feature/', 'release/']
    assert settings.branch_blacklist_patterns == ['^dependabot/']
    # Not present in the file
    assert settings.slack_reactions_list == 'slack_reactions'


def test_environment_overrides_yaml(yaml_file):
    with patch.dict(os.environ, {
        **REQUIRED_ENV,
        'REDIS_HOST': 'env-host',
        'SLACK_SEARCH_LIMIT': '7',
        'DRAFT_NOTIFY_REPOS': 'other/repo',
    }):
        settings = Settings()

    assert settings.redis_host == 'env-host'
    assert settings.slack_channel_id == 'C0123456789'
    assert settings.slack_search_limit == 7
    # Environment lists replace the YAML list
    assert settings.draft_notify_repos == ['other/repo']
    assert settings.draft_notify_branch_prefixes == ['feature/', 'release/']


def test_empty_environment_value_falls_back_to_yaml(yaml_file):
    with patch.dict(os.environ, {**REQUIRED_ENV, 'REDIS_HOST': '', 'DRAFT_NOTIFY_REPOS': ''}):
        settings = Settings()

    assert settings.redis_host == 'redis.internal'
    assert settings.draft_notify_repos == ['owner/repo']


def test_zero_yaml_values_fall_back_to_defaults(isolated_environment):
    (isolated_environment / "config.yaml").write_text("slack:\n  search_limit: 0\n  redis_list: ''\n")

    with patch.dict(os.environ, REQUIRED_ENV):
        settings = Settings()

    assert settings.slack_search_limit == 100
    assert settings.slack_redis_list == 'slack_messages'


def test_malformed_yaml_is_ignored(isolated_environment):
    (isolated_environment / "config.yaml").write_text("redis: [unterminated\n")

    with patch.dict(os.environ, REQUIRED_ENV):
        settings = Settings()

    assert settings.redis_host == 'localhost'


def test_credentials_are_not_read_from_yaml(isolated_environment):
    (isolated_environment / "config.yaml").write_text(
        "slack:\n  channel_id: CYAML\n  bot_token: xoxb-from-file\n"
    )

    with pytest.raises(ConfigurationError) as exc_info:
        load_settings()

    assert 'SLACK_BOT_TOKEN' in str(exc_info.value)


def test_missing_required_settings_is_fatal():
    with pytest.raises(ConfigurationError) as exc_info:
        load_settings()

    message = str(exc_info.value)
    assert 'SLACK_CHANNEL_ID' in message
    assert 'SLACK_BOT_TOKEN' in message


def test_invalid_integer_is_fatal():
    with patch.dict(os.environ, {**REQUIRED_ENV, 'SLACK_SEARCH_LIMIT': 'lots'}):
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()

    assert 'SLACK_SEARCH_LIMIT' in str(exc_info.value)


def test_settings_are_immutable():
    settings = load_settings(**{'slack_channel_id': 'C1', 'slack_bot_token': 'xoxb'})

    with pytest.raises(Exception):
        settings.slack_channel_id = 'C2'


class TestFilterConfig:

    def test_build_filter_config(self):
        settings = Settings(
            slack_channel_id='C1',
            slack_bot_token='xoxb',
            draft_notify_repos=['owner/repo'],
            draft_notify_branch_prefixes=['feature/'],
            branch_blacklist_patterns=['^dependabot/', '(?i)^wip-'],
        )

        filters = build_filter_config(settings)

        assert isinstance(filters, FilterConfig)
        assert filters.enabled_repo_names == frozenset({'owner/repo'})
        assert filters.allowed_branch_prefixes == ('feature/',)
        assert [p.pattern for p in filters.branch_blacklist] == ['^dependabot/', '(?i)^wip-']

    def test_invalid_patterns_are_skipped(self, caplog):
        settings = Settings(
            slack_channel_id='C1',
            slack_bot_token='xoxb',
            branch_blacklist_patterns=['^valid/', '[unclosed'],
        )

        filters = build_filter_config(settings)

        assert [p.pattern for p in filters.branch_blacklist] == ['^valid/']
        assert "Invalid regex pattern '[unclosed'" in caplog.text
