"""Content documents, static files and pages of a site"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from pathlib import Path, PurePosixPath
from typing import Any

POST_FILENAME_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})-")

# Number of identity segments of an addressable document:
# /<kind>/<project-or-collection>/<item>/<name>
ADDRESSABLE_DEPTH = 4


@dataclass(frozen=True)
class DocumentPath:
    """Normalized, non-empty segments of a document identity"""

    segments: tuple[str, ...]

    @classmethod
    def parse(cls, identity: str) -> "DocumentPath":
        return cls(tuple(piece for piece in identity.split("/") if piece))

    @property
    def depth(self) -> int:
        return len(self.segments)

    @property
    def kind(self) -> str | None:
        return self.segments[0] if self.segments else None

    @property
    def name(self) -> str | None:
        return self.segments[-1] if self.segments else None

    def is_addressable(self) -> bool:
        return self.depth == ADDRESSABLE_DEPTH

    def contains(self, segment: str) -> bool:
        return segment in self.segments

    def __str__(self) -> str:
        return "/" + "/".join(self.segments)


@dataclass
class Document:
    """A unit of content read from a collection directory"""

    path: Path
    collection: str
    relative_path: PurePosixPath  # relative to the collection directory
    data: dict[str, Any] = field(default_factory=dict)
    content: str = ""
    # Name of the owning project, resolved through Site.published["projects_by_name"]
    parent_project: str | None = None

    @property
    def id(self) -> str:
        return f"/{self.collection}/{self.relative_path.with_suffix('').as_posix()}"

    @property
    def url_path(self) -> DocumentPath:
        return DocumentPath.parse(self.id)

    @property
    def name(self) -> str:
        return self.relative_path.stem

    @property
    def directory(self) -> Path:
        return self.path.parent

    @property
    def date(self) -> datetime | None:
        """Publication date from front matter, falling back to the filename prefix"""
        value = self.data.get("date")
        if isinstance(value, datetime):
            return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        if isinstance(value, date):
            return datetime.combine(value, time.min, tzinfo=timezone.utc)
        if isinstance(value, str):
            try:
                parsed = datetime.fromisoformat(value)
            except ValueError:
                parsed = None
            if parsed is not None:
                return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

        match = POST_FILENAME_DATE.match(self.name)
        if match:
            year, month, day = (int(part) for part in match.groups())
            return datetime(year, month, day, tzinfo=timezone.utc)
        return None

    def merge_data(self, updates: dict[str, Any]) -> None:
        """Merge keys into the front matter, keeping keys not being updated"""
        self.data.update(updates)


@dataclass
class StaticFile:
    """An opaque asset attached to a collection"""

    path: Path
    collection: str
    relative_path: PurePosixPath  # relative to the site source


@dataclass
class Page:
    """A renderable page produced by a page builder"""

    url: str
    path: Path | None = None
    data: dict[str, Any] = field(default_factory=dict)
    content: str = ""
