"""Fetch each project's, software item's and spec's data and read it into the site"""

import logging
import time
from pathlib import Path

from pydantic import ValidationError

from src.models.document import Document
from src.models.fetch_result import FetchResult
from src.models.remote_source import RemoteSource, RepoLocation, SpecBuild, SpecSource
from src.models.site import Collection, Site
from src.services.document_reader import DocumentTreeReader
from src.services.git_checkout import CheckoutEngine, CheckoutError
from src.services.item_index import ItemKind, is_project_index
from src.services.spec_builder import SpecBuildError, SpecBuilder
from src.services.telemetry import TelemetryService, get_telemetry_service

logger = logging.getLogger(__name__)

DEFAULT_REPO_BRANCH = "master"
DEFAULT_DOCS_SUBTREE = "docs"

# Parts of a project site a hub needs
PROJECT_SUBTREES = ("assets", "_posts", "_software", "_specs")
# Branding a project site borrows from its hub
PARENT_HUB_SUBTREES = ("assets", "title.html")


class ProjectDataReader:
    """Resolve the remote sources declared in a site and merge their content"""

    def __init__(
        self,
        site: Site,
        engine: CheckoutEngine,
        reader: DocumentTreeReader | None = None,
        spec_builder: SpecBuilder | None = None,
        telemetry: TelemetryService | None = None,
        default_branch: str = DEFAULT_REPO_BRANCH,
        docs_subtree: str = DEFAULT_DOCS_SUBTREE,
    ):
        """
        Initialize project data reader

        Args:
            site: Site whose collections are read and updated
            engine: Checkout engine configured with the site's refresh mode
            reader: Document tree reader (optional, creates new if None)
            spec_builder: Builds spec pages (optional, spec pages are skipped if None)
            telemetry: Telemetry service (optional, uses the global one if None)
            default_branch: Branch for sources that declare none
            docs_subtree: Software documentation subtree when none is declared
        """
        self.site = site
        self.engine = engine
        self.reader = reader or DocumentTreeReader(site)
        self.spec_builder = spec_builder
        self.telemetry = telemetry or get_telemetry_service()
        self.default_branch = default_branch
        self.docs_subtree = docs_subtree

    def read(self) -> None:
        """Synchronize every declared source, sequentially"""
        if self.site.is_hub:
            self.fetch_and_read_projects()
        else:
            self.fetch_and_read_software("software")
            self.fetch_and_read_specs("specs", build_pages=True)
            self.fetch_hub_logo()

    def fetch_hub_logo(self) -> None:
        """Check out the parent hub's assets and title template"""
        parent_hub = self.site.config.parent_hub
        if parent_hub is None or not parent_hub.git_repo_url:
            return

        source = RemoteSource(
            url=parent_hub.git_repo_url,
            branch=parent_hub.git_repo_branch or self.default_branch,
            subtrees=PARENT_HUB_SUBTREES,
        )
        self._sync("parent_hub", "parent-hub", self.site.source / "parent-hub", source)

    def project_indexes(self) -> list[Document]:
        projects = self.site.collections.get("projects")
        if projects is None:
            return []
        return [doc for doc in projects.docs if is_project_index(doc.url_path)]

    def fetch_and_read_projects(self) -> None:
        """Check out every hub project and resolve the software and specs it declares"""
        projects = self.site.collections.get("projects")
        if projects is None:
            return

        indexes = self.project_indexes()
        logger.info(f"Reading {len(indexes)} project(s)")

        for project in indexes:
            try:
                self._resolve_project(projects, project)
            except (OSError, UnicodeError) as e:
                logger.error(f"✗ Failed to read project {project.url_path.segments[1]}: {e}")

    def _resolve_project(self, projects: Collection, project: Document) -> None:
        project_name = project.url_path.segments[1]
        project_path = project.directory

        try:
            location = RepoLocation.model_validate(project.data.get("site") or {})
        except ValidationError as e:
            logger.warning(f"✗ Project {project_name}: invalid site block: {e}")
            return
        if not location.git_repo_url:
            logger.warning(f"✗ Project {project_name}: no site.git_repo_url, skipped")
            return

        source = RemoteSource(
            url=location.git_repo_url,
            branch=location.git_repo_branch or self.default_branch,
            subtrees=PROJECT_SUBTREES,
        )
        result = self._sync("project", project_name, project_path, source)
        if result is None or not result.success:
            return

        self.reader.read(project_path, projects)

        self.fetch_and_read_software("projects", within=project_path)
        self.fetch_and_read_specs("projects", within=project_path)

    def fetch_and_read_software(self, collection_name: str, within: Path | None = None) -> None:
        """
        Check out documentation of software items and record their freshness

        Args:
            collection_name: software, or projects on a hub
            within: Only resolve items located under this directory
        """
        collection = self.site.collections.get(collection_name)
        if collection is None:
            return

        for index_doc in self._entry_points(collection, ItemKind.SOFTWARE, within):
            try:
                self._resolve_software(collection, index_doc)
            except ValidationError as e:
                logger.warning(f"✗ Software {index_doc.id}: invalid docs block: {e}")
            except (OSError, UnicodeError) as e:
                logger.error(f"✗ Failed to read software {index_doc.id}: {e}")

    def fetch_and_read_specs(
        self, collection_name: str, build_pages: bool = False, within: Path | None = None
    ) -> None:
        """
        Check out specs, optionally build their pages, and record their freshness

        Args:
            collection_name: specs, or projects on a hub
            build_pages: Whether to build spec pages and read the spec tree
            within: Only resolve items located under this directory
        """
        collection = self.site.collections.get(collection_name)
        if collection is None:
            return

        for index_doc in self._entry_points(collection, ItemKind.SPECS, within):
            try:
                self._resolve_spec(collection, index_doc, build_pages)
            except ValidationError as e:
                logger.warning(f"✗ Spec {index_doc.id}: invalid spec_source: {e}")
            except (OSError, UnicodeError) as e:
                logger.error(f"✗ Failed to read spec {index_doc.id}: {e}")

    def _entry_points(
        self, collection: Collection, kind: ItemKind, within: Path | None
    ) -> list[Document]:
        # Snapshot: reading checkouts adds documents to the collection
        return [
            doc
            for doc in list(collection.docs)
            if kind.declares_source(doc) and (within is None or doc.path.is_relative_to(within))
        ]

    def _resolve_software(self, collection: Collection, index_doc: Document) -> None:
        item_name = index_doc.url_path.name
        main_repo = index_doc.data["repo_url"]
        docs = RepoLocation.model_validate(index_doc.data.get("docs") or {})

        docs_source = RemoteSource(
            url=docs.git_repo_url or main_repo,
            branch=docs.git_repo_branch or self.default_branch,
            subtrees=(docs.git_repo_subtree or self.docs_subtree,),
        )
        docs_path = index_doc.directory / item_name

        docs_result = self._sync("software", item_name, docs_path, docs_source)
        docs_checked_out = docs_result is not None and docs_result.success
        if docs_checked_out:
            self.reader.read(docs_path, collection)

        # The docs checkout tells the repository's freshness only if it is the main repo
        if docs_checked_out and docs_source.url == main_repo:
            modified_at = docs_result.modified_at
        else:
            repo_result = self._sync(
                "software_repo",
                item_name,
                index_doc.directory / f"_{item_name}_repo",
                RemoteSource(url=main_repo, branch=self.default_branch),
                timestamp_only=True,
            )
            modified_at = repo_result.modified_at if repo_result else None

        if modified_at is not None:
            index_doc.merge_data({"last_update": modified_at})

    def _resolve_spec(self, collection: Collection, index_doc: Document, build_pages: bool) -> None:
        item_name = index_doc.url_path.name
        spec_source = SpecSource.model_validate(index_doc.data["spec_source"])
        subtree = spec_source.git_repo_subtree

        checkout_path = index_doc.directory / item_name
        spec_root = checkout_path / subtree if subtree else checkout_path

        source = RemoteSource(
            url=spec_source.git_repo_url,
            branch=spec_source.git_repo_branch or self.default_branch,
            subtrees=(subtree,) if subtree else (),
        )
        result = self._sync("spec", item_name, checkout_path, source)
        if result is None or not result.success:
            return

        if build_pages:
            self._build_spec_pages(index_doc, spec_root, item_name, spec_source.build)
            self.reader.read(checkout_path, collection)

        index_doc.merge_data({"last_update": result.modified_at})

    def _build_spec_pages(
        self, index_doc: Document, spec_root: Path, item_name: str, build: SpecBuild
    ) -> None:
        if self.spec_builder is None:
            logger.warning(f"No spec builder configured, pages of spec {item_name} not built")
            return

        try:
            pages = self.spec_builder.build(
                self.site, index_doc, spec_root, f"specs/{item_name}", build.engine, build.options
            )
        except SpecBuildError as e:
            logger.error(f"✗ Failed to build spec {item_name}: {e}")
            return

        self.site.pages.extend(pages)
        logger.info(f"✓ Built {len(pages)} page(s) for spec {item_name}")

    def _sync(
        self,
        kind: str,
        name: str,
        path: Path,
        source: RemoteSource,
        timestamp_only: bool = False,
    ) -> FetchResult | None:
        """Sync one source; failures are logged and contained to that source"""
        start = time.perf_counter()
        attributes = {"sync.kind": kind, "sync.name": name}

        with self.telemetry.span("sync_source", attributes):
            try:
                result = self.engine.sync(path, source, timestamp_only=timestamp_only)
            except CheckoutError as e:
                duration_ms = (time.perf_counter() - start) * 1000
                logger.warning(f"✗ Failed to sync {kind} {name} from {source.url}: {e}")
                self.telemetry.log_sync(kind, name, source.url, error=e, duration_ms=duration_ms)
                return None

        duration_ms = (time.perf_counter() - start) * 1000
        if result.success:
            logger.info(f"✓ Synced {kind} {name} ({result.modified_at}) in {duration_ms:.0f}ms")
        else:
            logger.info(f"Synced {kind} {name}: {result.reason.value}, no content")
        self.telemetry.log_sync(kind, name, source.url, result=result, duration_ms=duration_ms)
        return result
