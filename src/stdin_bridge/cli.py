"""Command-line entry point for stdin-bridge."""

import argparse
import asyncio
import contextlib
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from .config import BridgeConfig, load_bridge_config
from .editor import open_in_editor
from .exceptions import ConfigError, StdinBridgeError
from .source import StdinSource
from .stdin import get_stdin_file_path, get_stdin_source, has_stdin_without_tty, read_from_stdin, stdin_data_listener
from .terminal_encoding import resolve_terminal_encoding

logger = logging.getLogger(__name__)

APPLICATION_NAME = "stdin-bridge"

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [stdin-bridge] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


@dataclass
class Args:
    """Parsed command-line arguments."""

    read_stdin: bool = False
    verbose: bool = False
    output: str | None = None
    open: bool = False
    wait: bool = False
    idle_timeout: float | None = None
    config: str | None = None


def parse_args(args: list[str] | None = None) -> Args:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog=APPLICATION_NAME,
        description="Drain piped stdin into a UTF-8 temp file that an editor can open.",
        epilog=f"Example:\n  ps aux | grep python | {APPLICATION_NAME} - --open",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "stdin_marker",
        nargs="?",
        choices=["-"],
        help="Read from stdin into a temp file",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Print encoding detection and debug logging")
    parser.add_argument("-o", "--output", help="Write to this file instead of a generated temp path")
    parser.add_argument("--open", action="store_true", help="Open the file in an editor once stdin is drained")
    parser.add_argument("--wait", action="store_true", help="With --open, wait for the editor and delete the temp file")
    parser.add_argument("--idle-timeout", type=float, help="Seconds to wait for piped data before giving up (default: 1.0)")
    parser.add_argument("--config", help="Path to a .stdin-bridge configuration file")

    parsed = parser.parse_args(args)
    return Args(
        read_stdin=parsed.stdin_marker == "-",
        verbose=parsed.verbose,
        output=parsed.output,
        open=parsed.open,
        wait=parsed.wait,
        idle_timeout=parsed.idle_timeout,
        config=parsed.config,
    )


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )


def _stdin_hint() -> str:
    if sys.platform == "win32":
        return f"Run with '{APPLICATION_NAME} -' to read output from another program (e.g. 'echo Hello World | {APPLICATION_NAME} -')."
    return f"Run with '{APPLICATION_NAME} -' to read from stdin (e.g. 'ps aux | grep python | {APPLICATION_NAME} -')."


async def _drain(args: Args, config: BridgeConfig, source: StdinSource) -> int:
    target = Path(args.output) if args.output else get_stdin_file_path(config.temp_dir or None)
    print(f"Reading from stdin via: {target}")

    def resolve(verbose: bool) -> str:
        return resolve_terminal_encoding(verbose, override=config.encoding or None)

    try:
        await read_from_stdin(target, args.verbose, source, resolve_encoding=resolve)
    except StdinBridgeError as e:
        print(f"Failed to create file to read via stdin: {e}", file=sys.stderr)
        return 1

    if not args.open:
        return 0

    opened = open_in_editor(target, wait=args.wait, editor=config.editor or None)
    if args.wait and not args.output:
        with contextlib.suppress(OSError):
            target.unlink()
    return 0 if opened else 1


async def _run(args: Args, config: BridgeConfig) -> int:
    piped = has_stdin_without_tty()

    if args.read_stdin:
        if not piped:
            print(f"Error: '{APPLICATION_NAME} -' expects piped input, but stdin is a terminal.", file=sys.stderr)
            print(_stdin_hint(), file=sys.stderr)
            return 1
        source = get_stdin_source()
        source.chunk_size = config.chunk_size
        return await _drain(args, config, source)

    if piped:
        # Data piped in without "-": point the user at the right invocation
        timeout = args.idle_timeout if args.idle_timeout is not None else config.idle_timeout
        if await stdin_data_listener(timeout):
            print(_stdin_hint())
    return 0


def main(args: list[str] | None = None) -> int:
    """Run the stdin-bridge CLI and return the exit code."""
    parsed = parse_args(args)
    _setup_logging(parsed.verbose)

    config = load_bridge_config(parsed.config)
    if parsed.idle_timeout is not None:
        config.idle_timeout = parsed.idle_timeout

    try:
        config.require_valid()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        return asyncio.run(_run(parsed, config))
    except KeyboardInterrupt:
        print("\nOperation cancelled.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
