"""Read checked-out directory trees into site collections"""

import logging
from pathlib import Path, PurePosixPath

from src.models.document import Document, StaticFile
from src.models.site import Collection, Site
from src.services.front_matter import FrontMatterParser

logger = logging.getLogger(__name__)

DOCUMENT_EXTENSIONS = frozenset({".adoc", ".md", ".markdown"})


class DocumentTreeReader:
    """Walk a directory tree and register its documents and static files"""

    def __init__(self, site: Site, parser: FrontMatterParser | None = None):
        self.site = site
        self.parser = parser or FrontMatterParser()

    def read(self, root_dir: Path | str, collection: Collection, nested: bool = False) -> None:
        """
        Read a directory tree into a collection

        Top-level index files are container markers and are skipped; index files
        found in subdirectories are read like any other document.

        Args:
            root_dir: Directory to walk (inside the collection directory)
            collection: Target collection
            nested: Whether root_dir is a subdirectory of the tree being read
        """
        root_dir = Path(root_dir)
        if not root_dir.is_dir() or root_dir.is_symlink():
            return

        for entry in sorted(root_dir.iterdir()):
            if entry.name.startswith("."):
                continue

            if entry.is_dir():
                if entry.is_symlink():
                    logger.debug(f"Skipping symlinked directory {entry}")
                    continue
                self.read(entry, collection, nested=True)

            elif nested or entry.stem != "index":
                if entry.suffix in DOCUMENT_EXTENSIONS:
                    self._register_document(entry, collection)
                else:
                    collection.add_file(
                        StaticFile(
                            path=entry,
                            collection=collection.label,
                            relative_path=PurePosixPath(
                                entry.relative_to(self.site.source).as_posix()
                            ),
                        )
                    )

    def _register_document(self, path: Path, collection: Collection) -> None:
        try:
            relative_path = PurePosixPath(path.relative_to(collection.directory).as_posix())
        except ValueError:
            logger.warning(f"{path} is outside the {collection.label} collection, skipped")
            return

        doc = Document(path=path, collection=collection.label, relative_path=relative_path)

        # Nested material such as READMEs is not an item of its own
        if not doc.url_path.is_addressable():
            logger.debug(f"Not registering {doc.id}: not a top-level item")
            return

        parsed = self.parser.parse(path)
        doc.data = parsed.data
        doc.content = parsed.content
        collection.add_document(doc)
