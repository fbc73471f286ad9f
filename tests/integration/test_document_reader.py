"""Integration tests for reading directory trees into collections"""

import os
from pathlib import PurePosixPath

import pytest

from src.models.site import Site
from src.models.site_config import SiteConfig
from src.services.document_reader import DocumentTreeReader
from tests.helpers import write_document


@pytest.fixture
def site(tmp_path):
    source = tmp_path / "site"
    source.mkdir()
    return Site(source, SiteConfig())


class TestDocumentTreeReader:
    """Test document classification and admission rules"""

    def test_index_files_and_assets(self, site):
        """Test the top-level index rule, nested index files and static assets"""
        collection = site.collection("x")
        root = collection.directory / "a"
        write_document(root / "index.md", "title: Container")
        write_document(root / "b" / "index.md", "title: Nested index")
        write_document(root / "b" / "c.md", "title: Page C")
        (root / "readme.txt").write_text("plain text\n", encoding="utf-8")

        DocumentTreeReader(site).read(root, collection)

        assert sorted(doc.id for doc in collection.docs) == ["/x/a/b/c", "/x/a/b/index"]
        assert [f.relative_path for f in collection.files] == [
            PurePosixPath("_x/a/readme.txt")
        ]
        page_c = collection.find("/x/a/b/c")
        assert page_c.data == {"title": "Page C"}
        assert page_c.content == "Body\n"

    def test_only_four_segment_documents_are_admitted(self, site):
        """Test that shallower and deeper documents are not registered"""
        collection = site.collection("software")
        root = collection.directory / "tool"
        write_document(root / "docs" / "intro.md", "title: Intro")
        write_document(root / "docs" / "guides" / "setup.md", "title: Setup")
        write_document(collection.directory / "top.md", "title: Top")

        DocumentTreeReader(site).read(collection.directory, collection)

        assert [doc.id for doc in collection.docs] == ["/software/tool/docs/intro"]

    def test_top_level_index_asset_is_skipped(self, site):
        """Test that any file named index at the top level is a container marker"""
        collection = site.collection("projects")
        root = collection.directory / "demo"
        (root / "assets").mkdir(parents=True)
        (root / "index.html").write_text("<html></html>", encoding="utf-8")
        (root / "assets" / "index.svg").write_text("<svg/>", encoding="utf-8")

        DocumentTreeReader(site).read(root, collection)

        assert [f.relative_path.as_posix() for f in collection.files] == [
            "_projects/demo/assets/index.svg"
        ]

    def test_hidden_entries_are_skipped(self, site):
        """Test that .git and other hidden entries are never read"""
        collection = site.collection("software")
        root = collection.directory / "tool"
        write_document(root / ".git" / "info" / "notes.md", "title: Hidden")
        (root / ".gitignore").write_text("*.tmp\n", encoding="utf-8")
        write_document(root / "docs" / "intro.md", "title: Intro")

        DocumentTreeReader(site).read(root, collection)

        assert [doc.id for doc in collection.docs] == ["/software/tool/docs/intro"]
        assert collection.files == []

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
    def test_symlinked_directories_are_not_traversed(self, site, tmp_path):
        """Test that symlinked directories are skipped to avoid cycles"""
        collection = site.collection("software")
        root = collection.directory / "tool"
        write_document(root / "docs" / "intro.md", "title: Intro")
        outside = tmp_path / "outside"
        write_document(outside / "leak.md", "title: Leak")
        (root / "docs" / "linked").symlink_to(outside, target_is_directory=True)
        (root / "docs" / "loop").symlink_to(root, target_is_directory=True)

        DocumentTreeReader(site).read(root, collection)

        assert [doc.id for doc in collection.docs] == ["/software/tool/docs/intro"]

    def test_rereading_replaces_documents(self, site):
        """Test that reading a tree twice does not duplicate documents"""
        collection = site.collection("software")
        root = collection.directory / "tool"
        write_document(root / "docs" / "intro.md", "title: Old")

        reader = DocumentTreeReader(site)
        reader.read(root, collection)
        write_document(root / "docs" / "intro.md", "title: New")
        reader.read(root, collection)

        assert len(collection.docs) == 1
        assert collection.docs[0].data["title"] == "New"

    def test_missing_directory_is_ignored(self, site):
        """Test that reading a directory that does not exist is a no-op"""
        collection = site.collection("software")

        DocumentTreeReader(site).read(collection.directory / "nope", collection)

        assert collection.docs == []
        assert collection.files == []
