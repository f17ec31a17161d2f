"""
Listen Analytics ETL - Delimiter Rewriter
Streaming replacement of the multi-character field sentinel with the
single-character delimiter declared to COPY.

The substitution is blind: no quoting or escaping is applied, so field values
must never contain the replacement delimiter. Choose a sentinel that cannot
appear in field content.
"""

import logging
from typing import IO, Iterable, Iterator

from ..config import (
    DEFAULT_SENTINEL, DEFAULT_REPLACEMENT, DEFAULT_CHUNK_SIZE, validate_rewrite_tokens
)

logger = logging.getLogger(__name__)


def rewrite_chunks(
    chunks: Iterable[str],
    sentinel: str = DEFAULT_SENTINEL,
    replacement: str = DEFAULT_REPLACEMENT
) -> Iterator[str]:
    """
    Lazily replace every non-overlapping sentinel with the replacement

    Matches are found left to right. A sentinel split across two chunks is
    still replaced: up to ``len(sentinel) - 1`` trailing characters that could
    begin a match are held back and prefixed to the next chunk.

    Args:
        chunks: Text chunks in stream order
        sentinel: Token to replace
        replacement: Token to insert

    Yields:
        Rewritten text; empty chunks are never yielded
    """
    validate_rewrite_tokens(sentinel, replacement)
    keep = len(sentinel) - 1
    pending = ''

    for chunk in chunks:
        if not chunk:
            continue
        buffer = pending + chunk
        pieces = []
        pos = 0
        while True:
            idx = buffer.find(sentinel, pos)
            if idx == -1:
                break
            pieces.append(buffer[pos:idx])
            pieces.append(replacement)
            pos = idx + len(sentinel)

        # Only unmatched input after the last match may begin a split sentinel;
        # hold back its longest suffix that is a proper prefix of the sentinel
        tail = buffer[pos:]
        hold = 0
        for size in range(min(keep, len(tail)), 0, -1):
            if sentinel.startswith(tail[-size:]):
                hold = size
                break

        pieces.append(tail[:len(tail) - hold])
        pending = tail[len(tail) - hold:]

        out = ''.join(pieces)
        if out:
            yield out

    if pending:
        yield pending


def _read_chunks(source: IO[str], chunk_size: int) -> Iterator[str]:
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            return
        yield chunk


class DelimiterRewriter:
    """
    Readable file-like view of a text stream with the sentinel rewritten

    psycopg2's ``copy_expert`` pulls data with ``read(size)`` until it gets an
    empty string; this class serves rewritten text on demand, so a file of any
    size passes through with memory bounded by ``chunk_size``.

    Each instance wraps one source and is consumed once. Exceptions raised by
    the source's ``read`` propagate from ``read`` unchanged.
    """

    def __init__(
        self,
        source: IO[str],
        sentinel: str = DEFAULT_SENTINEL,
        replacement: str = DEFAULT_REPLACEMENT,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        validate_rewrite_tokens(sentinel, replacement)
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.source = source
        self.sentinel = sentinel
        self.replacement = replacement
        self._chunks = rewrite_chunks(_read_chunks(source, chunk_size), sentinel, replacement)
        self._buffer = ''
        self._exhausted = False
        self.chars_out = 0

    def _fill(self, size: int) -> None:
        """Pull rewritten chunks until the buffer holds ``size`` chars or EOF"""
        while not self._exhausted and (size < 0 or len(self._buffer) < size):
            try:
                self._buffer += next(self._chunks)
            except StopIteration:
                self._exhausted = True

    def read(self, size: int = -1) -> str:
        if size is None:
            size = -1
        self._fill(size)
        if size < 0:
            data, self._buffer = self._buffer, ''
        else:
            data, self._buffer = self._buffer[:size], self._buffer[size:]
        self.chars_out += len(data)
        return data

    def readline(self, size: int = -1) -> str:
        while '\n' not in self._buffer and not self._exhausted:
            self._fill(len(self._buffer) + 1)
        end = self._buffer.find('\n')
        end = len(self._buffer) if end == -1 else end + 1
        if size is not None and size >= 0:
            end = min(end, size)
        line, self._buffer = self._buffer[:end], self._buffer[end:]
        self.chars_out += len(line)
        return line

    def __iter__(self):
        return self

    def __next__(self) -> str:
        line = self.readline()
        if not line:
            raise StopIteration
        return line

    def readable(self) -> bool:
        return True
