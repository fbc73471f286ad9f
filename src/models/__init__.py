"""Data models for the hub sync engine"""

from src.models.document import Document, DocumentPath, Page, StaticFile
from src.models.fetch_result import FetchOutcome, FetchResult
from src.models.remote_source import RemoteSource, RepoLocation, SpecBuild, SpecSource
from src.models.site import Collection, Site
from src.models.site_config import ParentHub, RefreshMode, SiteConfig

__all__ = [
    "Collection",
    "Document",
    "DocumentPath",
    "FetchOutcome",
    "FetchResult",
    "Page",
    "ParentHub",
    "RefreshMode",
    "RemoteSource",
    "RepoLocation",
    "Site",
    "SiteConfig",
    "SpecBuild",
    "SpecSource",
    "StaticFile",
]
