"""Hand the drained stdin file to a text editor."""

import logging
import os
import platform
import shlex
import shutil
import subprocess
import sys
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

MACOS_EDITORS = ["code", "subl", "nano", "vim", "vi"]
LINUX_EDITORS = ["code", "subl", "gedit", "kate", "nano", "vim", "vi"]
WINDOWS_EDITORS = ["code", "subl", "notepad++"]

# Windows process creation flags
DETACHED_PROCESS = 0x00000008
CREATE_NEW_PROCESS_GROUP = 0x00000200


def find_editor(preferred: str | None = None) -> list[str] | None:
    """Find an editor command.

    Order: ``preferred``, $VISUAL, $EDITOR, then well-known editors on PATH.
    Windows always ends with notepad.

    Returns:
        Command prefix (editor plus its own arguments) or None
    """
    for configured in (preferred, os.environ.get("VISUAL"), os.environ.get("EDITOR")):
        if configured and configured.strip():
            return shlex.split(configured, posix=sys.platform != "win32")

    system = platform.system()
    if system == "Windows":
        candidates = WINDOWS_EDITORS
    elif system == "Darwin":
        candidates = MACOS_EDITORS
    else:
        candidates = LINUX_EDITORS

    for candidate in candidates:
        found = shutil.which(candidate)
        if found:
            return [found]

    if system == "Windows":
        return ["notepad.exe"]
    return None


def launch_detached(command: Sequence[str | Path]) -> subprocess.Popen[bytes]:
    """Start ``command`` without tying it to this terminal.

    The child gets its own session (POSIX) or a detached process group
    (Windows) and no stdio, so it outlives this process.
    """
    cmd = [str(arg) for arg in command]
    if sys.platform == "win32":
        return subprocess.Popen(
            cmd,
            creationflags=DETACHED_PROCESS | CREATE_NEW_PROCESS_GROUP,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    return subprocess.Popen(
        cmd,
        start_new_session=True,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )


def open_in_editor(file_path: Path, wait: bool = False, editor: str | None = None) -> bool:
    """Open a file in a text editor.

    Args:
        file_path: File to open
        wait: Run the editor in the foreground and return once it exits
        editor: Editor command overriding detection

    Returns:
        True if the editor was launched (and, with ``wait``, exited cleanly)
    """
    command = find_editor(editor)
    if not command:
        print("Error: No suitable text editor found on this system.", file=sys.stderr)
        return False

    cmd = [*command, str(file_path)]
    logger.debug(f"Launching editor: {cmd}")
    try:
        if wait:
            result = subprocess.run(cmd, check=False)
            return result.returncode == 0
        launch_detached(cmd)
        return True
    except OSError as e:
        print(f"Error opening editor: {e}", file=sys.stderr)
        return False
