"""Models for the site configuration (_config.yml)"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RefreshMode(str, Enum):
    """When remote data is fetched before use"""

    ALWAYS = "always"
    LAST_RESORT = "last-resort"
    SKIP = "skip"


class ParentHub(BaseModel):
    """Hub a single project site borrows its branding from"""

    git_repo_url: str | None = Field(default=None, description="Hub site repository URL")
    git_repo_branch: str | None = Field(default=None, description="Hub site repository branch")


class SiteConfig(BaseModel):
    """The subset of the site configuration consumed by the sync engine"""

    model_config = ConfigDict(extra="allow")

    title: str | None = Field(default=None, description="Site title")
    is_hub: bool = Field(default=False, description="Whether the site aggregates projects")
    refresh_remote_data: RefreshMode = Field(
        default=RefreshMode.LAST_RESORT, description="When to fetch remote repositories"
    )
    parent_hub: ParentHub | None = Field(
        default=None, description="Parent hub for single project sites"
    )
    collections: list[str] = Field(
        default_factory=lambda: ["projects", "software", "specs"],
        description="Collection labels read from _<label> directories",
    )

    @field_validator("collections", mode="before")
    @classmethod
    def collection_labels(cls, v: Any) -> Any:
        """Accept Jekyll's mapping form ({label: options}) as well as a list"""
        if isinstance(v, dict):
            return list(v.keys())
        return v
