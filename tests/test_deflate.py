import zlib

import pytest

from pnglevel.compression.deflate import (
    Deflater,
    Inflater,
    ZlibCompressionLevel,
    ZlibCompressionMethod,
    parse_zlib_header,
)
from pnglevel.exceptions import CorruptImageStreamException
from pnglevel.streams import Stream


def test_zlib_header():
    header = parse_zlib_header(zlib.compress(b'kebab', 9))

    assert header.method == ZlibCompressionMethod.DEFLATE
    assert header.level == ZlibCompressionLevel.MAXIMUM
    assert header.window_size == 32768
    assert not header.dictionary

    assert parse_zlib_header(zlib.compress(b'kebab')).level == ZlibCompressionLevel.DEFAULT
    assert parse_zlib_header(zlib.compress(b'kebab', 1)).level == ZlibCompressionLevel.FASTEST


def test_zlib_header_invalid():
    with pytest.raises(CorruptImageStreamException):
        parse_zlib_header(b'\x78\x9d')  # wrong check

    with pytest.raises(CorruptImageStreamException):
        parse_zlib_header(b'\x79\x18')  # method 9 with correct check

    with pytest.raises(CorruptImageStreamException):
        parse_zlib_header(b'\x78')


def test_inflater(trickle, image_data):
    """The compressed data can arrive a few bytes at a time"""
    inflater = Inflater(Stream(trickle(zlib.compress(image_data), step=5)), buffer_size=100)

    blocks = list(inflater)

    assert b''.join(blocks) == image_data
    assert max(len(_) for _ in blocks) <= 100
    assert inflater.eof
    assert inflater.header.method == ZlibCompressionMethod.DEFLATE
    assert inflater.total_out == len(image_data)


def test_inflater_unused_data():
    inflater = Inflater(Stream(zlib.compress(b'kebab') + b'extra'))

    assert inflater.read() == b'kebab'
    assert inflater.read() == b''
    assert inflater.unused_data == b'extra'


def test_inflater_truncated(image_data):
    compressed = zlib.compress(image_data)

    with pytest.raises(CorruptImageStreamException):
        list(Inflater(Stream(compressed[:len(compressed) // 2])))


def test_inflater_garbage():
    with pytest.raises(CorruptImageStreamException):
        list(Inflater(Stream(b'\x78\x9c' + b'\xff' * 32)))


def test_deflater(image_data):
    deflater = Deflater(9)

    pieces = []
    for idx in range(0, len(image_data), 1000):
        output = deflater.compress(image_data[idx:idx + 1000])
        # the sync flush ends with an empty stored block
        assert output.endswith(b'\x00\x00\xff\xff')
        pieces.append(output)
    pieces.append(deflater.finish())

    assert zlib.decompress(b''.join(pieces)) == image_data
    assert deflater.total_in == len(image_data)
    assert deflater.total_out == sum(len(_) for _ in pieces)


@pytest.mark.parametrize('level', [-2, 10])
def test_deflater_wrong_level(level):
    with pytest.raises(ValueError):
        Deflater(level)
