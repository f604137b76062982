"""Binary detection by file-type signature."""

from __future__ import annotations

from pathlib import Path

import filetype

SNIFF_BYTES = 512


def is_binary(path: Path) -> bool:
    """True if the first bytes of *path* match a known file-type signature.

    Anything ``filetype`` recognizes (images, archives, executables, media,
    fonts, documents) counts as binary; unrecognized content is treated as
    text.

    Raises:
        OSError: If the file cannot be read.
    """
    with open(path, "rb") as fh:
        head = fh.read(SNIFF_BYTES)
    return filetype.guess(head) is not None
