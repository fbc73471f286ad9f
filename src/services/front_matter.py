"""YAML front matter reader for content documents"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from markdown_it import MarkdownIt
from mdit_py_plugins.front_matter import front_matter_plugin

logger = logging.getLogger(__name__)


@dataclass
class ParsedDocument:
    """Front matter and body of a content file"""

    data: dict[str, Any] = field(default_factory=dict)
    content: str = ""


class FrontMatterParser:
    """Split a document into its YAML front matter and body"""

    def __init__(self):
        # Only the block-level front matter rule is needed
        self.md = MarkdownIt("commonmark")
        self.md.use(front_matter_plugin)

    def parse(self, file_path: Path | str) -> ParsedDocument:
        """
        Parse a document file or document text

        Args:
            file_path: Path to the document or its text

        Returns:
            ParsedDocument: front matter mapping (empty if absent) and body
        """
        text = self._read_content(file_path)
        lines = text.splitlines(keepends=True)

        for token in self.md.parse(text):
            if token.type != "front_matter":
                continue
            data = self._load_yaml(token.content, file_path)
            body_start = token.map[1] if token.map else 0
            return ParsedDocument(data=data, content="".join(lines[body_start:]))

        return ParsedDocument(data={}, content=text)

    def _read_content(self, file_path: Path | str) -> str:
        """Read content from file path or return string directly"""
        if not isinstance(file_path, Path):
            return file_path
        try:
            return file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            # Remote repositories may hold files in other encodings
            logger.warning(f"{file_path} is not valid UTF-8, undecodable bytes replaced: {e}")
            return file_path.read_text(encoding="utf-8", errors="replace")

    def _load_yaml(self, content: str, origin: Path | str) -> dict[str, Any]:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            logger.warning(f"Invalid front matter in {self._describe(origin)}: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return data

    def _describe(self, origin: Path | str) -> str:
        return str(origin) if isinstance(origin, Path) else "document text"
