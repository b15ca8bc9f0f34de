"""Unit tests for bridging piped stdin into a file."""
# pyright: reportUnknownParameterType=false, reportMissingParameterType=false

import asyncio
import errno
import io
import os
import tempfile
import time
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import Mock, patch

from stdin_bridge.exceptions import StdinReadError
from stdin_bridge.source import StdinSource
from stdin_bridge.stdin import (
    STDIN_FILE_PREFIX,
    get_stdin_file_path,
    has_stdin_without_tty,
    read_from_stdin,
    stdin_data_listener,
)

FALLBACK_MESSAGE = "Unsupported terminal encoding: {}, falling back to UTF-8."


def _encoding(label):
    """Build a resolver that always reports ``label``."""
    return lambda verbose: label


class _BrokenStream(io.RawIOBase):
    """Stream that yields one chunk and then fails."""

    def __init__(self, first: bytes) -> None:
        self._first: bytes | None = first

    def readable(self) -> bool:
        return True

    def read1(self, size: int = -1) -> bytes:
        if self._first is not None:
            data, self._first = self._first, None
            return data
        raise OSError("input/output error")


class TestHasStdinWithoutTty(unittest.TestCase):
    """Test TTY detection."""

    def test_pipe_is_not_tty(self):
        """A redirected stream is reported as piped input."""
        stream = Mock()
        stream.isatty.return_value = False
        self.assertTrue(has_stdin_without_tty(stream))

    def test_terminal_is_tty(self):
        """An interactive terminal is not piped input."""
        stream = Mock()
        stream.isatty.return_value = True
        self.assertFalse(has_stdin_without_tty(stream))

    def test_query_failure_counts_as_tty(self):
        """Any exception from the query yields False."""
        for error in (OSError("bad handle"), ValueError("I/O operation on closed file"), RuntimeError("boom")):
            stream = Mock()
            stream.isatty.side_effect = error
            self.assertFalse(has_stdin_without_tty(stream))

    def test_missing_stdin(self):
        """No stdin at all (GUI interpreters) yields False."""
        with patch("sys.stdin", None):
            self.assertFalse(has_stdin_without_tty())


class TestStdinDataListener(unittest.IsolatedAsyncioTestCase):
    """Test the idle-wait gate."""

    async def test_data_available(self):
        """Resolves True when data is already waiting."""
        source = StdinSource(io.BytesIO(b"hello"))
        self.assertTrue(await stdin_data_listener(1.0, source))

    async def test_resolves_early_on_data(self):
        """Resolves as soon as data arrives instead of waiting for the timeout."""
        read_fd, write_fd = os.pipe()
        with os.fdopen(read_fd, "rb") as reader:
            source = StdinSource(reader)
            loop = asyncio.get_running_loop()
            loop.call_later(0.05, os.write, write_fd, b"late data")

            start = time.monotonic()
            result = await stdin_data_listener(5.0, source)
            elapsed = time.monotonic() - start
            os.close(write_fd)

        self.assertTrue(result)
        self.assertLess(elapsed, 4.0)

    async def test_timeout_without_data(self):
        """Resolves False when nothing arrives in time."""
        read_fd, write_fd = os.pipe()
        with os.fdopen(read_fd, "rb") as reader:
            source = StdinSource(reader)
            try:
                result = await stdin_data_listener(0.05, source)
            finally:
                os.close(write_fd)
            # Let the blocked reader see end of input before the pipe is closed
            self.assertEqual(await source.read(), b"")

        self.assertFalse(result)

    async def test_timeout_keeps_late_data(self):
        """Data that arrives after a timed out wait is still read by the drain."""
        read_fd, write_fd = os.pipe()
        with os.fdopen(read_fd, "rb") as reader:
            source = StdinSource(reader)
            self.assertFalse(await stdin_data_listener(0.05, source))

            os.write(write_fd, "late héllo\n".encode("utf-8"))
            os.close(write_fd)

            with tempfile.TemporaryDirectory() as tmp:
                target = Path(tmp) / "out.txt"
                await read_from_stdin(target, False, source, resolve_encoding=_encoding("utf8"))
                self.assertEqual(target.read_text(encoding="utf-8"), "late héllo\n")

    async def test_empty_input(self):
        """End of input without data resolves False."""
        source = StdinSource(io.BytesIO(b""))
        self.assertFalse(await stdin_data_listener(1.0, source))

    async def test_detected_chunk_is_not_consumed(self):
        """The chunk seen by the listener is still delivered to the drain."""
        source = StdinSource(io.BytesIO(b"first"))
        self.assertTrue(await stdin_data_listener(1.0, source))
        self.assertEqual(await source.read(), b"first")
        self.assertEqual(await source.read(), b"")


class TestGetStdinFilePath(unittest.TestCase):
    """Test stdin file path generation."""

    def test_path_in_temp_dir(self):
        """Paths live in the system temp dir with the fixed prefix."""
        path = get_stdin_file_path()
        self.assertEqual(path.parent, Path(tempfile.gettempdir()))
        self.assertTrue(path.name.startswith(f"{STDIN_FILE_PREFIX}-"))
        self.assertEqual(len(path.name), len(STDIN_FILE_PREFIX) + 1 + 3)

    def test_custom_temp_dir(self):
        """A configured temp dir replaces the system one."""
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(get_stdin_file_path(tmp).parent, Path(tmp))

    def test_paths_differ(self):
        """Two calls produce different paths."""
        self.assertNotEqual(get_stdin_file_path(), get_stdin_file_path())


class TestReadFromStdin(unittest.IsolatedAsyncioTestCase):
    """Test draining stdin into a file."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.target = Path(self._tmp.name) / "stdin.txt"

    def tearDown(self):
        self._tmp.cleanup()

    async def _drain(self, data: bytes, label: str, chunk_size: int | None = None) -> str:
        source = StdinSource(io.BytesIO(data), chunk_size=chunk_size)
        await read_from_stdin(self.target, False, source, resolve_encoding=_encoding(label))
        return self.target.read_bytes().decode("utf-8")

    async def test_utf8_round_trip(self):
        """UTF-8 input with the utf8 label is written unchanged."""
        text = await self._drain("héllo\n".encode("utf-8"), "utf8")
        self.assertEqual(text, "héllo\n")

    async def test_split_multibyte_character(self):
        """A character split across chunks decodes like a single chunk."""
        data = "é".encode("utf-8")
        self.assertEqual(len(data), 2)
        split = await self._drain(data, "utf8", chunk_size=1)
        whole = await self._drain(data, "utf8")
        self.assertEqual(split, whole)
        self.assertEqual(split, "é")

    async def test_chunking_does_not_change_output(self):
        """Every supported encoding decodes the same regardless of chunk size."""
        samples = {
            "utf8": "naïve café ☕ 日本語\r\n",
            "cp1252": "naïve café\n",
            "cp866": "Привет, мир\n",
            "cp936": "中文文本\n",
            "utf-16": "wide ☃ text\n",
            "latin-1": "Ünïcödé\n",
        }
        for label, sample in samples.items():
            data = sample.encode(label)
            for chunk_size in (1, 2, 3, 7):
                with self.subTest(label=label, chunk_size=chunk_size):
                    self.assertEqual(await self._drain(data, label, chunk_size=chunk_size), sample)

    async def test_newlines_preserved(self):
        """Line endings are written without translation."""
        text = await self._drain(b"a\r\nb\rc\n", "utf8")
        self.assertEqual(text, "a\r\nb\rc\n")

    async def test_terminal_encoding_converted_to_utf8(self):
        """Output is always UTF-8 whatever the input encoding."""
        await self._drain("Grüße".encode("cp850"), "cp850")
        self.assertEqual(self.target.read_bytes(), "Grüße".encode("utf-8"))

    async def test_unsupported_encoding_falls_back(self):
        """An unknown label prints one warning and decodes as UTF-8."""
        out = io.StringIO()
        with redirect_stdout(out):
            text = await self._drain("héllo\n".encode("utf-8"), "klingon-8")

        self.assertEqual(text, "héllo\n")
        lines = out.getvalue().splitlines()
        self.assertEqual(lines, [FALLBACK_MESSAGE.format("klingon-8")])

    async def test_supported_encoding_prints_nothing(self):
        """No diagnostic line for a known encoding."""
        out = io.StringIO()
        with redirect_stdout(out):
            await self._drain(b"plain", "utf8")
        self.assertEqual(out.getvalue(), "")

    async def test_invalid_bytes_replaced(self):
        """Undecodable bytes become replacement characters."""
        text = await self._drain(b"ok\xff\xfeok", "utf8")
        self.assertEqual(text, "ok\ufffd\ufffdok")

    async def test_truncated_sequence_at_end(self):
        """A dangling partial sequence is flushed as a replacement character."""
        text = await self._drain("é".encode("utf-8")[:1], "utf8")
        self.assertEqual(text, "\ufffd")

    async def test_bom_stripped(self):
        """A UTF-8 byte-order mark is not copied into the file."""
        text = await self._drain(b"\xef\xbb\xbfdata", "utf8", chunk_size=1)
        self.assertEqual(text, "data")

    async def test_empty_input_creates_empty_file(self):
        """Empty input still creates the target file."""
        text = await self._drain(b"", "utf8")
        self.assertEqual(text, "")
        self.assertTrue(self.target.exists())

    async def test_truncates_existing_file(self):
        """Existing content is replaced."""
        self.target.write_text("old content that is longer", encoding="utf-8")
        text = await self._drain(b"new", "utf8")
        self.assertEqual(text, "new")

    async def test_read_error_raises_and_closes(self):
        """A failing stream surfaces as StdinReadError and the file is closed."""
        source = StdinSource(_BrokenStream(b"partial "))
        opened = []
        real_open = open

        def tracking_open(*args, **kwargs):
            handle = real_open(*args, **kwargs)
            if args and args[0] == self.target:
                opened.append(handle)
            return handle

        with patch("builtins.open", side_effect=tracking_open):
            with self.assertRaises(StdinReadError) as ctx:
                await read_from_stdin(self.target, False, source, resolve_encoding=_encoding("utf8"))

        self.assertIsInstance(ctx.exception.__cause__, OSError)
        self.assertEqual(len(opened), 1)
        self.assertTrue(opened[0].closed)
        self.assertEqual(self.target.read_text(encoding="utf-8"), "partial ")

    async def test_unwritable_target(self):
        """A target that cannot be opened raises StdinReadError."""
        source = StdinSource(io.BytesIO(b"data"))
        missing = Path(self._tmp.name) / "missing" / "stdin.txt"
        with self.assertRaises(StdinReadError):
            await read_from_stdin(missing, False, source, resolve_encoding=_encoding("utf8"))

    async def test_write_error_raises_and_closes(self):
        """A failing write (disk full) surfaces as StdinReadError and the file is closed."""
        output = Mock()
        output.write.side_effect = OSError(errno.ENOSPC, "No space left on device")
        source = StdinSource(io.BytesIO(b"data"))

        with patch("stdin_bridge.stdin.open", create=True, return_value=output):
            with self.assertRaises(StdinReadError) as ctx:
                await read_from_stdin(self.target, False, source, resolve_encoding=_encoding("utf8"))

        self.assertEqual(ctx.exception.__cause__.errno, errno.ENOSPC)
        output.close.assert_called()  # type: ignore[misc]

    async def test_closed_stream_raises_read_error(self):
        """Reading a closed stream surfaces as StdinReadError."""
        stream = io.BytesIO(b"data")
        stream.close()
        source = StdinSource(stream)

        with self.assertRaises(StdinReadError) as ctx:
            await read_from_stdin(self.target, False, source, resolve_encoding=_encoding("utf8"))

        self.assertIsInstance(ctx.exception.__cause__, ValueError)

    async def test_decoder_error_raises_read_error(self):
        """Unicode errors from decoding surface as StdinReadError."""
        decoder = Mock()
        decoder.write.side_effect = UnicodeError("undefined encoding")
        source = StdinSource(io.BytesIO(b"data"))

        with patch("stdin_bridge.stdin.get_decoder", return_value=decoder):
            with self.assertRaises(StdinReadError) as ctx:
                await read_from_stdin(self.target, False, source, resolve_encoding=_encoding("utf8"))

        self.assertIsInstance(ctx.exception.__cause__, UnicodeError)

    async def test_unusable_codec_falls_back(self):
        """Codecs that cannot produce UTF-8 text fall back like unknown ones."""
        for label in ("undefined", "unicode_escape", "utf_7"):
            with self.subTest(label=label):
                out = io.StringIO()
                with redirect_stdout(out):
                    text = await self._drain(b"\\ud800 +2D8-", label)
                self.assertEqual(text, "\\ud800 +2D8-")
                self.assertEqual(out.getvalue().splitlines(), [FALLBACK_MESSAGE.format(label)])

    async def test_lone_surrogates_replaced_in_output(self):
        """Decoded text the UTF-8 file cannot hold is written with replacements."""
        decoder = Mock()
        decoder.write.return_value = "a\ud800b"
        decoder.end.return_value = None
        source = StdinSource(io.BytesIO(b"data"))

        with patch("stdin_bridge.stdin.get_decoder", return_value=decoder):
            await read_from_stdin(self.target, False, source, resolve_encoding=_encoding("utf8"))

        self.assertEqual(self.target.read_bytes(), b"a?b")

    async def test_verbose_passed_to_resolver(self):
        """The verbose flag reaches the encoding resolver."""
        resolver = Mock(return_value="utf8")
        source = StdinSource(io.BytesIO(b"x"))
        await read_from_stdin(self.target, True, source, resolve_encoding=resolver)
        resolver.assert_called_once_with(True)  # type: ignore[misc]


if __name__ == "__main__":
    unittest.main()
