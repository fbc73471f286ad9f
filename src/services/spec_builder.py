"""Interface to the engines that turn checked-out specs into pages"""

import logging
from pathlib import Path
from typing import Any, Callable, Protocol

from src.models.document import Document, Page
from src.models.site import Site

logger = logging.getLogger(__name__)


class SpecBuildError(Exception):
    """Raised when a spec cannot be built into pages"""

    pass


class SpecBuilder(Protocol):
    """Builds renderable pages from a spec checkout"""

    def build(
        self,
        site: Site,
        index_doc: Document,
        spec_root: Path,
        destination: str,
        engine: str,
        options: dict[str, Any],
    ) -> list[Page]: ...


EngineFn = Callable[[Site, Document, Path, str, dict[str, Any]], list[Page]]


class SpecBuilderRegistry:
    """SpecBuilder dispatching to engines registered by name"""

    def __init__(self):
        self._engines: dict[str, EngineFn] = {}

    def register(self, engine: str, build_fn: EngineFn) -> None:
        self._engines[engine] = build_fn

    @property
    def engines(self) -> list[str]:
        return sorted(self._engines)

    def build(
        self,
        site: Site,
        index_doc: Document,
        spec_root: Path,
        destination: str,
        engine: str,
        options: dict[str, Any],
    ) -> list[Page]:
        """
        Build pages for a spec with the named engine

        Args:
            site: Site being built
            index_doc: Spec index document declaring the spec_source
            spec_root: Checked-out spec directory
            destination: URL prefix of the built pages (specs/<item>)
            engine: Engine name from spec_source.build.engine
            options: Engine options from spec_source.build.options

        Returns:
            Built pages

        Raises:
            SpecBuildError: If the engine is unknown or fails
        """
        build_fn = self._engines.get(engine)
        if build_fn is None:
            raise SpecBuildError(f"Unknown spec build engine: {engine}")

        try:
            pages = build_fn(site, index_doc, spec_root, destination, options)
        except SpecBuildError:
            raise
        except Exception as e:
            raise SpecBuildError(f"Engine {engine} failed for {spec_root}: {e}") from e

        logger.debug(f"Engine {engine} built {len(pages)} pages under /{destination}")
        return pages
