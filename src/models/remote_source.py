"""Models for remote sources declared in index document front matter"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RemoteSource(BaseModel):
    """One fetchable unit: a branch of a remote repository, optionally sparse"""

    model_config = ConfigDict(frozen=True)

    url: str = Field(min_length=1, description="Remote repository URL")
    branch: str = Field(min_length=1, description="Branch to check out")
    subtrees: tuple[str, ...] = Field(
        default=(), description="Paths the checkout is restricted to (empty = whole tree)"
    )


class RepoLocation(BaseModel):
    """git_repo_* fields shared by project, docs and spec declarations"""

    model_config = ConfigDict(extra="allow")

    git_repo_url: str | None = Field(default=None, description="Repository URL")
    git_repo_branch: str | None = Field(default=None, description="Repository branch")
    git_repo_subtree: str | None = Field(default=None, description="Subtree within the repo")


class SpecBuild(BaseModel):
    """How a spec is turned into pages"""

    engine: str = Field(min_length=1, description="Name of the spec build engine")
    options: dict[str, Any] = Field(default_factory=dict, description="Engine options")


class SpecSource(RepoLocation):
    """spec_source block of a spec index document"""

    git_repo_url: str = Field(min_length=1, description="Repository holding the spec")
    build: SpecBuild = Field(description="Spec build descriptor")
