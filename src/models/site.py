"""In-memory site: collections, pages and published build state"""

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from src.models.document import Document, Page, StaticFile
from src.models.site_config import SiteConfig


@dataclass
class Collection:
    """Named, ordered documents plus static files of one content kind"""

    label: str
    directory: Path
    docs: list[Document] = field(default_factory=list)
    files: list[StaticFile] = field(default_factory=list)

    def add_document(self, doc: Document) -> None:
        """Register a document, replacing an earlier one with the same identity"""
        for i, existing in enumerate(self.docs):
            if existing.id == doc.id:
                self.docs[i] = doc
                return
        self.docs.append(doc)

    def add_file(self, static_file: StaticFile) -> None:
        if any(f.relative_path == static_file.relative_path for f in self.files):
            return
        self.files.append(static_file)

    def find(self, identity: str) -> Document | None:
        return next((doc for doc in self.docs if doc.id == identity), None)


class Site:
    """A site source tree and everything read from it"""

    def __init__(self, source: Path | str, config: SiteConfig):
        self.source = Path(source).resolve()
        self.config = config
        self.collections: dict[str, Collection] = {}
        self.pages: list[Page] = []
        self._published: dict[str, Any] = {}

    @property
    def is_hub(self) -> bool:
        return self.config.is_hub

    @property
    def posts(self) -> Collection:
        return self.collection("posts")

    @property
    def published(self) -> Mapping[str, Any]:
        """Build-wide values for the templating stage (read-only view)"""
        return MappingProxyType(self._published)

    def collection(self, label: str) -> Collection:
        """Get a collection, creating an empty one rooted at _<label>"""
        if label not in self.collections:
            self.collections[label] = Collection(label=label, directory=self.source / f"_{label}")
        return self.collections[label]

    def publish(self, key: str, value: Any) -> None:
        self._published[key] = value
