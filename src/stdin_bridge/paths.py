"""Random temporary path generation."""

import os
import secrets
import sys
from pathlib import Path

PATH_CHARS = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

# First characters that cannot start a reserved Windows device name (AUX, CON, NUL, PRN, COM1, LPT1)
WINDOWS_SAFE_FIRST_CHARS = "BDEFGHIJKMOQRSTUVWXYZbdefghijkmoqrstuvwxyz0123456789"


def random_path(parent: str | os.PathLike[str] | None = None, prefix: str | None = None, random_length: int = 8) -> Path:
    """Build a random file path.

    Args:
        parent: Directory to place the name in (relative name if None)
        prefix: Optional prefix, joined to the random part with "-"
        random_length: Number of random characters

    Returns:
        Path of the form ``parent/prefix-XXX``. No existence check is made.
    """
    suffix_chars: list[str] = []
    for i in range(random_length):
        if i == 0 and sys.platform == "win32" and not prefix and random_length in (3, 4):
            chars = WINDOWS_SAFE_FIRST_CHARS
        else:
            chars = PATH_CHARS
        suffix_chars.append(secrets.choice(chars))

    suffix = "".join(suffix_chars)
    name = f"{prefix}-{suffix}" if prefix else suffix
    if parent:
        return Path(parent) / name
    return Path(name)
