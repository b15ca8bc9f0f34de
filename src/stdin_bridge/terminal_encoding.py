"""Terminal encoding detection.

The terminal encoding is what programs writing into a pipe most likely used
for their output. An explicit override wins; otherwise Windows is asked for
its console code page (``chcp``) and other platforms for the locale charmap
(``locale charmap``). Anything that cannot be determined is treated as UTF-8.
"""

import logging
import os
import re
import subprocess
import sys
from collections.abc import Mapping
from typing import Any

from .decoder import UTF8

logger = logging.getLogger(__name__)

ENCODING_ENV_VAR = "STDIN_BRIDGE_ENCODING"

PROBE_TIMEOUT = 5.0

WINDOWS_TERMINAL_ENCODINGS = {
    437: "cp437",  # United States
    850: "cp850",  # Multilingual (Latin I)
    852: "cp852",  # Slavic (Latin II)
    855: "cp855",  # Cyrillic (Russian)
    857: "cp857",  # Turkish
    860: "cp860",  # Portuguese
    861: "cp861",  # Icelandic
    863: "cp863",  # Canadian - French
    865: "cp865",  # Nordic
    866: "cp866",  # Russian
    869: "cp869",  # Modern Greek
    936: "cp936",  # Simplified Chinese
    1252: "cp1252",  # West European Latin
    65001: UTF8,
}

ENCODING_ALIASES = {
    "ibm866": "cp866",
    "big5": "cp950",
}

_CODE_PAGE_RE = re.compile(r"(\d+)")


def _exec(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
    """Run a probe command and capture its text output."""
    return subprocess.run(cmd, capture_output=True, text=True, timeout=PROBE_TIMEOUT, check=False, **kwargs)  # type: ignore[misc]


def _verbose(verbose: bool, message: str) -> None:
    logger.debug(message)
    if verbose:
        print(message)


def parse_chcp_output(output: str) -> str | None:
    """Map ``chcp`` output (e.g. "Active code page: 850") to an encoding label."""
    for match in _CODE_PAGE_RE.finditer(output):
        encoding = WINDOWS_TERMINAL_ENCODINGS.get(int(match.group(1)))
        if encoding:
            return encoding
    return None


def normalize_encoding(raw_encoding: str | None) -> str:
    """Turn a raw encoding name reported by the platform into a decoder label."""
    if not raw_encoding:
        return UTF8

    name = raw_encoding.strip().lower()
    if not name or name in ("utf-8", UTF8):
        return UTF8

    return ENCODING_ALIASES.get(name, name)


def _windows_encoding(verbose: bool) -> str | None:
    _verbose(verbose, 'Running "chcp" to detect terminal encoding...')
    try:
        result = _exec(["chcp"], shell=True)
    except (subprocess.SubprocessError, OSError) as e:
        logger.warning(f"Could not run chcp: {e}")
        return None

    if not result.stdout:
        return None

    _verbose(verbose, f'Output from "chcp" command is: {result.stdout.strip()}')
    return parse_chcp_output(result.stdout)


def _unix_encoding(verbose: bool) -> str | None:
    _verbose(verbose, 'Running "locale charmap" to detect terminal encoding...')
    try:
        result = _exec(["locale", "charmap"])
    except (subprocess.SubprocessError, OSError) as e:
        logger.warning(f"Could not run locale charmap: {e}")
        return None

    return result.stdout or None


def resolve_terminal_encoding(verbose: bool = False, override: str | None = None, environ: Mapping[str, str] | None = None) -> str:
    """Resolve the encoding of the terminal feeding stdin.

    Args:
        verbose: Print each detection step to stdout
        override: Explicit encoding (e.g. from configuration), wins over detection
        environ: Environment to read the override variable from (default: os.environ)

    Returns:
        Encoding label, "utf8" when nothing better is known
    """
    env = os.environ if environ is None else environ
    env_encoding = env.get(ENCODING_ENV_VAR)

    if env_encoding:
        _verbose(verbose, f"Found {ENCODING_ENV_VAR} variable: {env_encoding}")
        raw_encoding: str | None = env_encoding
    elif override:
        _verbose(verbose, f"Using configured terminal encoding: {override}")
        raw_encoding = override
    elif sys.platform == "win32":
        raw_encoding = _windows_encoding(verbose)
    else:
        raw_encoding = _unix_encoding(verbose)

    _verbose(verbose, f"Detected raw terminal encoding: {raw_encoding.strip() if raw_encoding else raw_encoding}")
    return normalize_encoding(raw_encoding)
