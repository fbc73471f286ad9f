"""Initial read of a site's own collections, before any remote data is fetched"""

import logging
from pathlib import Path, PurePosixPath

from src.models.document import Document, StaticFile
from src.models.site import Collection, Site
from src.models.site_config import SiteConfig
from src.services.document_reader import DOCUMENT_EXTENSIONS
from src.services.front_matter import FrontMatterParser
from src.services.git_checkout import is_cache_entry

logger = logging.getLogger(__name__)


class SiteLoader:
    """Read the documents and static files authored in the site source"""

    def __init__(self, parser: FrontMatterParser | None = None):
        self.parser = parser or FrontMatterParser()

    def load(self, source: Path | str, site_config: SiteConfig) -> Site:
        """
        Create a site and read its posts and configured collections

        Directories that are checkouts of remote sources only contribute their
        index documents; the rest of a checkout is read after it is synchronized.

        Args:
            source: Site source directory
            site_config: Validated site configuration

        Returns:
            Site with its local collections read
        """
        site = Site(source, site_config)

        for label in ["posts", *site_config.collections]:
            collection = site.collection(label)
            if collection.directory.is_dir():
                self._read_directory(site, collection, collection.directory)
            logger.debug(f"Collection {label}: {len(collection.docs)} document(s)")

        return site

    def _read_directory(self, site: Site, collection: Collection, directory: Path) -> None:
        inside_checkout = is_cache_entry(directory)

        for entry in sorted(directory.iterdir()):
            if entry.name.startswith(".") or (entry.is_symlink() and entry.is_dir()):
                continue

            if entry.is_dir():
                if not inside_checkout:
                    self._read_directory(site, collection, entry)
            elif inside_checkout and entry.stem != "index":
                continue
            elif entry.suffix in DOCUMENT_EXTENSIONS:
                parsed = self.parser.parse(entry)
                collection.add_document(
                    Document(
                        path=entry,
                        collection=collection.label,
                        relative_path=PurePosixPath(
                            entry.relative_to(collection.directory).as_posix()
                        ),
                        data=parsed.data,
                        content=parsed.content,
                    )
                )
            else:
                collection.add_file(
                    StaticFile(
                        path=entry,
                        collection=collection.label,
                        relative_path=PurePosixPath(entry.relative_to(site.source).as_posix()),
                    )
                )
