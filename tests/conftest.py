import io
import struct
import zlib
from pathlib import Path

import pytest
from PIL import Image


SIGNATURE = b'\x89PNG\r\n\x1a\n'

WIDTH = 32
HEIGHT = 32


@pytest.fixture
def test_root_dir():
    return Path(__file__).parent


@pytest.fixture
def make_chunk():
    def _make_chunk(type, data, crc=None):
        crc = zlib.crc32(type + data) if crc is None else crc
        return struct.pack('>I', len(data)) + type + data + struct.pack('>I', crc)

    return _make_chunk


@pytest.fixture
def make_ihdr(make_chunk):
    def _make_ihdr(width=WIDTH, height=HEIGHT, depth=8, color=2, compression=0, filter=0, interlace=0):
        return make_chunk(b'IHDR', struct.pack('>IIBBBBB', width, height, depth, color, compression, filter, interlace))

    return _make_ihdr


@pytest.fixture
def image_data():
    '''Scanlines of a RGB image, each with filter type NONE'''
    row_length = WIDTH * 3
    rows = []
    for y in range(HEIGHT):
        row = bytes((x * 7 + y * 13 + (x * y) % 5) % 256 for x in range(row_length))
        rows.append(b'\x00' + row)

    return b''.join(rows)


@pytest.fixture
def make_png(make_chunk, make_ihdr):
    '''Build a PNG with the compressed data split in "n_idat" chunks,
    "before" and "after" are lists of chunks to put around the IDAT run.'''
    def _make_png(data, level=6, n_idat=1, before=(), after=None, ihdr=None):
        compressed = zlib.compress(data, level)
        size = -(-len(compressed) // n_idat)
        idats = [make_chunk(b'IDAT', compressed[idx:idx + size]) for idx in range(0, len(compressed), size)]

        after = [make_chunk(b'IEND', b'')] if after is None else after

        return SIGNATURE + (ihdr or make_ihdr()) + b''.join(before) + b''.join(idats) + b''.join(after)

    return _make_png


@pytest.fixture
def simple_png(make_png, image_data):
    return make_png(image_data)


@pytest.fixture
def pil_png():
    image = Image.new('RGB', (64, 48))
    image.putdata([((x * 4) % 256, (y * 5) % 256, (x ^ y) % 256) for y in range(48) for x in range(64)])

    output = io.BytesIO()
    image.save(output, format='PNG', compress_level=0)

    return output.getvalue()


class TrickleReader(object):
    '''Returns at most "step" bytes for each read, like a pipe could do.'''

    def __init__(self, data, step=3):
        self._stream = io.BytesIO(data)
        self._step = step

    def read(self, n=-1):
        n = self._step if n < 0 else min(n, self._step)
        return self._stream.read(n)


@pytest.fixture
def trickle():
    return TrickleReader
