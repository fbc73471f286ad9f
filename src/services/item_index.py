"""Software and spec item selection for index pages"""

from enum import Enum

from src.models.document import Document, DocumentPath
from src.models.site import Site


def is_project_index(path: DocumentPath) -> bool:
    """Whether path identifies a hub project's index document (/projects/<name>/index)"""
    return path.depth == 3 and path.kind == "projects" and path.name == "index"


class ItemKind(Enum):
    """Kinds of items gathered into hub and project indexes"""

    SOFTWARE = ("software", "_software", "repo_url")
    SPECS = ("specs", "_specs", "spec_source")

    def __init__(self, index_name: str, segment: str, source_key: str):
        self.index_name = index_name
        self.segment = segment
        # Front matter key of the remote source an item index declares
        self.source_key = source_key

    def is_item(self, path: DocumentPath) -> bool:
        """Whether path is an item of this kind inside a hub project (not its docs)"""
        return path.contains(self.segment) and not path.contains("docs")

    def declares_source(self, doc: Document) -> bool:
        return bool(doc.data.get(self.source_key))


def collect_items(site: Site, kind: ItemKind) -> list[Document]:
    """Items of one kind: from projects on a hub, from the kind's collection otherwise"""
    if site.is_hub:
        projects = site.collections.get("projects")
        if projects is None:
            return []
        return [doc for doc in projects.docs if kind.is_item(doc.url_path)]

    collection = site.collections.get(kind.index_name)
    if collection is None:
        return []
    return [doc for doc in collection.docs if not doc.url_path.contains("docs")]


def build_item_indexes(site: Site) -> None:
    """Publish items_software and items_specs for the index pages"""
    for kind in ItemKind:
        site.publish(f"items_{kind.index_name}", collect_items(site, kind))
