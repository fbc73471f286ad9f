"""Helpers for building local git repositories and site trees in tests"""

import os
import subprocess
from pathlib import Path

DEFAULT_COMMIT_DATE = "2024-01-01T00:00:00+00:00"


def git(cwd: Path, *args: str, env: dict[str, str] | None = None) -> str:
    """Run git for test setup with signing and user config pinned"""
    result = subprocess.run(
        [
            "git",
            "-c",
            "user.name=Test",
            "-c",
            "user.email=test@example.com",
            "-c",
            "commit.gpgsign=false",
            "-C",
            str(cwd),
            *args,
        ],
        capture_output=True,
        text=True,
        check=True,
        env={**os.environ, **(env or {})},
    )
    return result.stdout.strip()


class RemoteRepo:
    """A local repository standing in for a remote"""

    def __init__(self, path: Path):
        self.path = path

    @property
    def url(self) -> str:
        return self.path.as_uri()

    def commit(
        self,
        files: dict[str, str],
        date: str = DEFAULT_COMMIT_DATE,
        message: str = "update",
        remove: tuple[str, ...] = (),
    ) -> None:
        for relative, content in files.items():
            target = self.path / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        for relative in remove:
            (self.path / relative).unlink()
        git(self.path, "add", "-A")
        git(
            self.path,
            "commit",
            "--quiet",
            "--allow-empty",
            "-m",
            message,
            env={"GIT_AUTHOR_DATE": date, "GIT_COMMITTER_DATE": date},
        )


def write_document(path: Path, front_matter: str = "", body: str = "Body\n") -> Path:
    """Write a document with optional YAML front matter"""
    path.parent.mkdir(parents=True, exist_ok=True)
    if front_matter:
        path.write_text(f"---\n{front_matter.strip()}\n---\n{body}", encoding="utf-8")
    else:
        path.write_text(body, encoding="utf-8")
    return path


def checked_out_files(path: Path) -> set[str]:
    """Files of a working tree, relative to it, excluding .git"""
    return {
        p.relative_to(path).as_posix()
        for p in path.rglob("*")
        if p.is_file() and ".git" not in p.relative_to(path).parts
    }
