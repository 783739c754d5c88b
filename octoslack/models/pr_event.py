"""Pull request event data models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GitHubUser(BaseModel):
    """GitHub account reference."""

    model_config = ConfigDict(frozen=True)

    login: str = ""


class BranchRef(BaseModel):
    """Head branch of a pull request."""

    model_config = ConfigDict(frozen=True)

    ref: str = ""


class Repository(BaseModel):
    """Repository reference carried on the PR base."""

    model_config = ConfigDict(frozen=True)

    full_name: str = ""


class BaseRef(BaseModel):
    """Target side of a pull request."""

    model_config = ConfigDict(frozen=True)

    repo: Repository = Field(default_factory=Repository)

    @field_validator("repo", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        return {} if value is None else value


class PullRequest(BaseModel):
    """Subset of the GitHub pull request object used for routing."""

    model_config = ConfigDict(frozen=True)

    number: int = 0
    title: str = ""
    html_url: str = ""
    merged: bool = False
    merge_commit_sha: Optional[str] = None  # null until GitHub computes it
    draft: bool = False
    user: GitHubUser = Field(default_factory=GitHubUser)
    head: BranchRef = Field(default_factory=BranchRef)
    base: BaseRef = Field(default_factory=BaseRef)

    @field_validator("user", "head", "base", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        return {} if value is None else value

    @field_validator("title", "html_url", mode="before")
    @classmethod
    def _null_as_empty_string(cls, value):
        return "" if value is None else value

    @field_validator("number", mode="before")
    @classmethod
    def _null_as_zero(cls, value):
        return 0 if value is None else value

    @field_validator("merged", "draft", mode="before")
    @classmethod
    def _null_as_false(cls, value):
        return False if value is None else value


class PullRequestEvent(BaseModel):
    """GitHub ``pull_request`` webhook event as relayed over Redis."""

    model_config = ConfigDict(frozen=True)

    action: str = ""  # 'opened', 'closed', 'review_requested', ...
    pull_request: PullRequest = Field(default_factory=PullRequest)

    @property
    def number(self) -> int:
        return self.pull_request.number

    @property
    def repository(self) -> str:
        return self.pull_request.base.repo.full_name

    @property
    def branch(self) -> str:
        return self.pull_request.head.ref

    @property
    def author(self) -> str:
        return self.pull_request.user.login


class PoppitCommandOutput(BaseModel):
    """Command output event published by poppit after running a command."""

    model_config = ConfigDict(frozen=True)

    type: str = ""
    command: str = ""
    output: str = ""
    metadata: Optional[dict] = None

    @property
    def git_commit_sha(self) -> Optional[str]:
        """Commit the command ran for, when poppit recorded one."""
        if not self.metadata:
            return None
        sha = self.metadata.get("git_commit_sha")
        if isinstance(sha, str) and sha:
            return sha
        return None
