import io

import pytest

from pnglevel.exceptions import TruncatedException
from pnglevel.streams import Stream


def test_bytes_stream():
    stream = Stream(b'\x01\x02\x03\x04\x05')

    assert stream.read(1) == b'\x01'
    assert stream.read_exactly(3) == b'\x02\x03\x04'
    assert stream.position == 4


def test_partial_reads(trickle):
    """A stream returning less than asked must be read until the end"""
    data = bytes(range(20))
    stream = Stream(trickle(data, step=3))

    assert stream.read_exactly(10) == data[:10]
    assert stream.read_or_eof(10) == data[10:]
    assert stream.read_or_eof(10) is None
    assert stream.position == 20


def test_truncated():
    stream = Stream(b'\x01\x02\x03')

    with pytest.raises(TruncatedException) as excinfo:
        stream.read_exactly(4, what='chunk header')

    assert excinfo.value.offset == 3
    assert 'chunk header' in str(excinfo.value)


def test_read_or_eof_truncated():
    """EOF is legit only if nothing is read"""
    stream = Stream(b'\x01\x02')

    with pytest.raises(TruncatedException):
        stream.read_or_eof(8)


def test_file_stream(tmp_path):
    data = b'\x01\x02\x03\x04\x05'
    path_data = tmp_path / 'auaua'

    with Stream(str(path_data), flags='w') as stream:
        stream.write(data)
        assert stream.position == 5

    with Stream(path_data) as stream:
        assert stream.read_exactly(5) == data
        assert stream.read_or_eof(1) is None

    assert stream.obj.closed


def test_file_object_not_closed():
    output = io.BytesIO()

    with Stream(output, flags='w') as stream:
        stream.write(b'kebab')

    assert not output.closed
    assert output.getvalue() == b'kebab'


def test_wrong_object():
    with pytest.raises(ValueError):
        Stream(42)
