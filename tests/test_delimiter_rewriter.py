"""
Delimiter Rewriter Tests
========================
Streaming replacement of the field sentinel.
"""

import io

import pytest

from listen_etl.ingestion.delimiter_rewriter import DelimiterRewriter, rewrite_chunks


def chunked(text, size):
    return [text[i:i + size] for i in range(0, len(text), size)]


SAMPLE = (
    "TRMMMYQ128F932D901<SEP>SOQMMHC12AB0180CB8<SEP>Faster Pussy cat<SEP>Silent Night\n"
    "TRMMMKD128F425225D<SEP>SOVFVAK12A8C1350D9<SEP>Karkkiautomaatti<SEP>Tanssi vaan\n"
    "no separators here\n"
)


# ============================================================================
# rewrite_chunks
# ============================================================================

def test_rewrite_matches_whole_string_replace_for_every_chunk_size():
    """Chunk boundaries never change the output."""
    expected = SAMPLE.replace('<SEP>', ',')
    for size in range(1, len(SAMPLE) + 1):
        out = ''.join(rewrite_chunks(chunked(SAMPLE, size), '<SEP>', ','))
        assert out == expected, f"chunk size {size} produced a different result"
    print("✓ rewrite is independent of chunking")


def test_rewrite_leaves_no_sentinel_and_preserves_other_text():
    out = ''.join(rewrite_chunks(chunked(SAMPLE, 7)))
    assert '<SEP>' not in out
    # Without separators on either side the text is identical
    assert out.replace(',', '') == SAMPLE.replace('<SEP>', '')
    assert len(out) == len(SAMPLE) - SAMPLE.count('<SEP>') * (len('<SEP>') - 1)


def test_empty_stream_yields_nothing():
    assert list(rewrite_chunks([])) == []
    assert list(rewrite_chunks(['', ''])) == []


def test_partial_sentinel_at_end_is_flushed():
    out = ''.join(rewrite_chunks(['abc<S', 'E']))
    assert out == 'abc<SE'


def test_adjacent_sentinels_are_each_replaced():
    out = ''.join(rewrite_chunks(chunked('a<SEP><SEP>b', 3)))
    assert out == 'a,,b'


def test_overlapping_candidates_resolve_left_to_right():
    """'aaa' with sentinel 'aa' replaces the first pair only."""
    for size in (1, 2, 3):
        assert ''.join(rewrite_chunks(chunked('aaa', size), 'aa', '|')) == '|a'


def test_replacement_sharing_no_characters_with_sentinel():
    for size in range(1, 6):
        out = ''.join(rewrite_chunks(chunked('xaabab', size), 'ab', '|'))
        assert out == 'xa||'


def test_rewrite_is_lazy():
    """Only as much input is consumed as output is requested."""
    consumed = []

    def source():
        for part in ['x<SEP>y\n', 'z<SEP>w\n', 'never']:
            consumed.append(part)
            yield part

    gen = rewrite_chunks(source())
    assert next(gen) == 'x,y\n'
    assert consumed == ['x<SEP>y\n']


@pytest.mark.parametrize('sentinel,replacement', [
    ('', ','),
    (',', ','),
    ('ab', 'a'),
    ('<SEP>', 'E'),
    ('<,>', ','),
])
def test_invalid_tokens_rejected(sentinel, replacement):
    with pytest.raises(ValueError):
        list(rewrite_chunks(['a'], sentinel, replacement))


# ============================================================================
# DelimiterRewriter (file-like)
# ============================================================================

def test_read_with_small_sizes_reassembles_output():
    rewriter = DelimiterRewriter(io.StringIO(SAMPLE), chunk_size=4)
    parts = []
    while True:
        data = rewriter.read(3)
        if not data:
            break
        assert len(data) <= 3
        parts.append(data)
    assert ''.join(parts) == SAMPLE.replace('<SEP>', ',')
    assert rewriter.chars_out == len(''.join(parts))


def test_read_all_and_readline():
    rewriter = DelimiterRewriter(io.StringIO("a<SEP>b\nc<SEP>d\n"), chunk_size=2)
    assert rewriter.readline() == 'a,b\n'
    assert rewriter.read() == 'c,d\n'
    assert rewriter.read() == ''


def test_iterates_lines():
    rewriter = DelimiterRewriter(io.StringIO("1<SEP>2\n3<SEP>4"), chunk_size=3)
    assert list(rewriter) == ['1,2\n', '3,4']


def test_empty_source():
    rewriter = DelimiterRewriter(io.StringIO(''))
    assert rewriter.read(10) == ''
    assert rewriter.readline() == ''


def test_upstream_error_propagates():
    class BrokenStream:
        def __init__(self):
            self.calls = 0

        def read(self, size):
            self.calls += 1
            if self.calls == 1:
                return 'ok<SEP>row\n'
            raise OSError("disk went away")

    rewriter = DelimiterRewriter(BrokenStream(), chunk_size=64)
    with pytest.raises(OSError, match="disk went away"):
        while rewriter.read(64):
            pass
    print("✓ upstream read errors reach the consumer")


def test_invalid_chunk_size():
    with pytest.raises(ValueError):
        DelimiterRewriter(io.StringIO('x'), chunk_size=0)
