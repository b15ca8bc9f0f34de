"""Bridge piped standard input into a temporary file.

When a program is started with redirected stdin (``cat notes.txt | stdin-bridge -``)
the input is drained into a UTF-8 file that an editor can open like any other
file argument. The bytes are decoded with the terminal's encoding while they
stream, so the input never has to fit in memory.
"""

import asyncio
import contextlib
import logging
import os
import sys
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import TextIO

from .decoder import UTF8, encoding_exists, get_decoder
from .exceptions import StdinReadError
from .paths import random_path
from .source import StdinSource
from .terminal_encoding import resolve_terminal_encoding

logger = logging.getLogger(__name__)

STDIN_FILE_PREFIX = "stdin-bridge"
STDIN_FILE_RANDOM_LENGTH = 3

EncodingResolver = Callable[[bool], str]

_default_source: StdinSource | None = None


def get_stdin_source() -> StdinSource:
    """Return the process-wide source for ``sys.stdin``.

    Sharing one source lets an idle-wait and a later drain see the same
    pending chunk.
    """
    global _default_source
    if _default_source is None:
        _default_source = StdinSource()
    return _default_source


def has_stdin_without_tty(stream: TextIO | None = None) -> bool:
    """Check whether stdin is redirected from a file or pipe.

    Any failure while querying the stream counts as an interactive terminal.
    """
    try:
        target = sys.stdin if stream is None else stream
        return not target.isatty()
    except Exception as e:
        # Some Windows consoles raise instead of answering
        logger.debug(f"Could not determine whether stdin is a TTY: {e}")
        return False


async def stdin_data_listener(timeout: float, source: StdinSource | None = None) -> bool:
    """Wait up to ``timeout`` seconds for the first chunk of piped input.

    Returns:
        True as soon as data is available, False if none arrived in time
    """
    source = source or get_stdin_source()
    received = await source.wait_for_data(timeout)
    logger.debug(f"stdin data within {timeout}s: {received}")
    return received


def get_stdin_file_path(temp_dir: str | os.PathLike[str] | None = None) -> Path:
    """Generate a fresh path for the stdin file in the temp directory."""
    return random_path(temp_dir or tempfile.gettempdir(), STDIN_FILE_PREFIX, STDIN_FILE_RANDOM_LENGTH)


async def read_from_stdin(
    target_path: str | os.PathLike[str],
    verbose: bool = False,
    source: StdinSource | None = None,
    *,
    resolve_encoding: EncodingResolver = resolve_terminal_encoding,
) -> None:
    """Drain stdin into ``target_path`` as UTF-8 text.

    The input is decoded with the terminal encoding; an encoding the decoder
    does not know is reported once and replaced by UTF-8. Returns after the
    file has been written and closed.

    Args:
        target_path: File to create or truncate
        verbose: Print encoding detection details
        source: Byte source (default: the shared stdin source)
        resolve_encoding: Callable returning the terminal encoding label

    Raises:
        StdinReadError: Reading the input or writing the file failed
    """
    source = source or get_stdin_source()
    path = Path(target_path)

    try:
        output = open(path, "w", encoding="utf-8", errors="replace", newline="")
    except OSError as e:
        raise StdinReadError(f"Could not open {path} for writing: {e}") from e

    try:
        encoding = await asyncio.to_thread(resolve_encoding, verbose)
        if not encoding_exists(encoding):
            print(f"Unsupported terminal encoding: {encoding}, falling back to UTF-8.")
            encoding = UTF8

        decoder = get_decoder(encoding)
        logger.debug(f"Reading stdin into {path} using {encoding}")

        total = 0
        while True:
            chunk = await source.read()
            if not chunk:
                break
            total += len(chunk)
            output.write(decoder.write(chunk))

        tail = decoder.end()
        if isinstance(tail, str):
            output.write(tail)
        output.close()
        logger.debug(f"Read {total} bytes from stdin into {path}")
    except (OSError, ValueError) as e:
        raise StdinReadError(f"Failed reading stdin into {path}: {e}") from e
    finally:
        # No-op after a successful close
        with contextlib.suppress(OSError):
            output.close()
