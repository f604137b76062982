"""Crash-safe file replacement with a single-generation backup.

Every flat file the ledger owns (index, embedding record, transcript) is
written through :class:`DurableWriter`:

  1. write the new content to a temp file in the target's directory,
  2. flush + fsync the temp file,
  3. keep the current file as ``<name>.bak`` (hard link, replacing any older
     backup),
  4. atomically ``os.replace`` the temp file into place,
  5. fsync the directory so the rename survives a crash.

A reader therefore always sees either the previous or the new file, never a
partial write, and the previous generation stays available as ``.bak``.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

BACKUP_SUFFIX = ".bak"


def backup_path(path: Path) -> Path:
    return path.with_name(path.name + BACKUP_SUFFIX)


class DurableWriter:
    """Write-temp, fsync, rotate-backup, atomic-rename."""

    def __init__(self, dir_mode: int = 0o700, file_mode: int = 0o600) -> None:
        self.dir_mode = dir_mode
        self.file_mode = file_mode

    def write_text(self, path: Path | str, text: str) -> None:
        self.write(path, text.encode("utf-8"))

    def write(self, path: Path | str, data: bytes) -> None:
        """Replace *path* with *data*, keeping the previous version as ``.bak``.

        Raises:
            OSError: If any filesystem step fails. The temp file is removed
                and the original file is left untouched.
        """
        target = Path(path)
        target.parent.mkdir(mode=self.dir_mode, parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}-", suffix=".tmp", dir=target.parent
        )
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.chmod(tmp, self.file_mode)

            if target.exists():
                _rotate_backup(target)
            os.replace(tmp, target)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

        _fsync_dir(target.parent)


def _rotate_backup(target: Path) -> None:
    """Make `<target>.bak` a copy of *target* without ever removing *target*."""
    backup = backup_path(target)
    backup.unlink(missing_ok=True)
    try:
        os.link(target, backup)
    except OSError:
        # No hard links on this filesystem.
        shutil.copy2(target, backup)


def _fsync_dir(directory: Path) -> None:
    # Directory fsync is unsupported on some platforms (e.g. Windows).
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)
