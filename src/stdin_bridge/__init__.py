"""Read piped standard input into a temporary UTF-8 file."""

from .decoder import encoding_exists, get_decoder
from .exceptions import ConfigError, StdinBridgeError, StdinReadError, StdinUnavailableError, UnsupportedEncodingError
from .paths import random_path
from .source import StdinSource
from .stdin import get_stdin_file_path, has_stdin_without_tty, read_from_stdin, stdin_data_listener
from .terminal_encoding import resolve_terminal_encoding

__all__ = [
    "ConfigError",
    "StdinBridgeError",
    "StdinReadError",
    "StdinSource",
    "StdinUnavailableError",
    "UnsupportedEncodingError",
    "encoding_exists",
    "get_decoder",
    "get_stdin_file_path",
    "has_stdin_without_tty",
    "random_path",
    "read_from_stdin",
    "resolve_terminal_encoding",
    "stdin_data_listener",
]
