"""Streaming text decoding on top of codecs incremental decoders."""

import codecs
import logging

from .exceptions import UnsupportedEncodingError

logger = logging.getLogger(__name__)

UTF8 = "utf8"
BOM = "\ufeff"

# Codecs that always fail or can emit lone surrogates the UTF-8 output cannot hold
UNUSABLE_CODECS = frozenset({"undefined", "unicode-escape", "raw-unicode-escape", "utf-7"})


def _lookup(label: str) -> codecs.CodecInfo | None:
    try:
        info = codecs.lookup(label)
    except (LookupError, TypeError, ValueError):
        return None
    # bytes-to-bytes codecs (base64, zlib, hex...) are not text encodings
    if not getattr(info, "_is_text_encoding", True):
        return None
    if info.name.replace("_", "-") in UNUSABLE_CODECS:
        return None
    return info


def encoding_exists(label: str) -> bool:
    """Check whether a label names a text encoding the decoder supports."""
    if not label or not label.strip():
        return False
    return _lookup(label.strip()) is not None


class StreamDecoder:
    """Incremental bytes-to-text decoder.

    Multi-byte sequences split across ``write`` calls are buffered until
    complete, so decoding a stream chunk by chunk yields the same text as
    decoding it in one call. Undecodable bytes become U+FFFD and a leading
    byte-order mark is dropped.
    """

    def __init__(self, label: str, errors: str = "replace", strip_bom: bool = True) -> None:
        info = _lookup(label.strip()) if label else None
        if info is None:
            raise UnsupportedEncodingError(label)
        self.label = label
        self.encoding = info.name
        self._decoder = info.incrementaldecoder(errors)
        self._strip_bom = strip_bom
        self._started = False

    def write(self, chunk: bytes) -> str:
        """Decode a chunk, holding back any incomplete trailing sequence."""
        return self._emit(self._decoder.decode(chunk, False))

    def end(self) -> str | None:
        """Flush buffered bytes. Returns None when nothing was pending."""
        text = self._emit(self._decoder.decode(b"", True))
        self._decoder.reset()
        return text or None

    def _emit(self, text: str) -> str:
        if not self._started and text:
            self._started = True
            if self._strip_bom and text.startswith(BOM):
                text = text[1:]
        return text


def get_decoder(label: str) -> StreamDecoder:
    """Create a streaming decoder for ``label``.

    Raises:
        UnsupportedEncodingError: If the label is not a known text encoding
    """
    decoder = StreamDecoder(label)
    logger.debug("Created %s decoder for label %r", decoder.encoding, label)
    return decoder
