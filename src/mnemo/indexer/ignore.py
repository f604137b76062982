"""Gitignore-style exclusion rules for the project indexer."""

from __future__ import annotations

import logging
from pathlib import Path

from pathspec import GitIgnoreSpec

from mnemo.errors import IndexPrecondition

log = logging.getLogger(__name__)

GIT_DIR = ".git"
IGNORE_FILE = ".gitignore"


class IgnoreRules:
    """Patterns from the project root's ``.gitignore``.

    Paths are matched relative to the root. The ``.git`` directory and
    everything beneath it is always ignored, whatever the patterns say.
    """

    def __init__(self, root: Path, spec: GitIgnoreSpec) -> None:
        self.root = root
        self._spec = spec

    @classmethod
    def load(cls, root: Path) -> IgnoreRules:
        """Compile ``<root>/.gitignore``; a missing file means no patterns.

        Raises:
            IndexPrecondition: If the file exists but cannot be read or holds
                an invalid pattern.
        """
        path = root / IGNORE_FILE
        lines: list[str] = []
        if path.exists():
            try:
                lines = path.read_text(encoding="utf-8").splitlines()
            except (OSError, UnicodeDecodeError) as exc:
                raise IndexPrecondition(f"Cannot read {path}: {exc}") from exc
        try:
            spec = GitIgnoreSpec.from_lines(lines)
        except ValueError as exc:
            raise IndexPrecondition(f"Invalid pattern in {path}: {exc}") from exc
        log.debug("Loaded %d ignore pattern(s) from %s", len(spec.patterns), path)
        return cls(root, spec)

    def is_ignored(self, path: Path, is_dir: bool = False) -> bool:
        """True if *path* must not be indexed.

        Paths outside the root are treated as ignored.
        """
        try:
            rel = path.relative_to(self.root)
        except ValueError:
            return True
        if GIT_DIR in rel.parts:
            return True
        if not rel.parts:
            return False
        candidate = rel.as_posix() + ("/" if is_dir else "")
        return self._spec.match_file(candidate)
