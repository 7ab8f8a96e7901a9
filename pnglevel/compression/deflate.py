'''
# zlib/deflate streams

The image data of a PNG file is a zlib datastream (RFC 1950) wrapping
deflate compressed data (RFC 1951). The zlib header is two bytes

    .-----------------.-----------------------------.
    | CMF             | FLG                         |
    | CINFO:4 | CM:4  | FLEVEL:2 | FDICT:1 | FCHECK:5 |
    '-----------------'-----------------------------'

where CM=8 is deflate, CINFO is log2(window size) - 8 and FLEVEL is only an
hint about the level used by the compressor. The header interpreted as a
big-endian 16 bits integer must be a multiple of 31.

Here we only wrap the stdlib zlib objects so that they can be used as
streams: the Inflater pulls compressed data from any object having a read()
method and the Deflater returns the compressed data after a sync flush so
that each piece can be written out independently.
'''
import logging
import zlib
from enum import Enum

from bitstring import BitArray

from ..exceptions import CorruptImageStreamException


logger = logging.getLogger(__name__)

# the size of the decompressed data processed each cycle: we want to write
# approximate 64K IDAT chunks when level is 0.
BUFFER_SIZE = (1 << 16) - 10  # zlib header + adler checksum

LEVELS = range(-1, 10)


class ZlibCompressionMethod(Enum):
    DEFLATE = 8


class ZlibCompressionLevel(Enum):
    '''Values of FLEVEL'''
    FASTEST = 0
    FAST    = 1
    DEFAULT = 2
    MAXIMUM = 3


class ZlibHeader(object):

    def __init__(self, cinfo, method, level, dictionary, check):
        self.cinfo = cinfo
        self.method = method
        self.level = level
        self.dictionary = dictionary
        self.check = check

    @property
    def window_size(self):
        return 1 << (self.cinfo + 8)

    def __repr__(self):
        return f'<{self.__class__.__name__}(method={self.method!r}, level={self.level!r}, window={self.window_size})>'


def parse_zlib_header(data: bytes) -> ZlibHeader:
    if len(data) < 2:
        raise CorruptImageStreamException(f'zlib header needs 2 bytes, got {len(data)}')

    if int.from_bytes(data[:2], 'big') % 31 != 0:
        raise CorruptImageStreamException('zlib header check failed')

    bits = BitArray(data[:2])

    cm = bits[4:8].uint
    try:
        method = ZlibCompressionMethod(cm)
    except ValueError:
        raise CorruptImageStreamException(f'zlib compression method {cm} not supported')

    return ZlibHeader(
        cinfo=bits[0:4].uint,
        method=method,
        level=ZlibCompressionLevel(bits[8:10].uint),
        dictionary=bits[10],
        check=bits[11:16].uint,
    )


def check_level(level):
    if level not in LEVELS:
        raise ValueError(f'compression level must be between {LEVELS.start} and {LEVELS.stop - 1}, got {level}')


class Inflater(object):
    '''Decompress the zlib stream read from "reader".

    read() returns at most "n" bytes of decompressed data, and an empty
    bytes when the zlib stream is finished. If the reader ends before the
    zlib stream does, it's corrupted.'''

    def __init__(self, reader, buffer_size=BUFFER_SIZE):
        self._reader = reader
        self._buffer_size = buffer_size
        self._decompressor = zlib.decompressobj()
        self.header = None
        self.total_in = 0
        self.total_out = 0

    @property
    def eof(self):
        return self._decompressor.eof

    @property
    def unused_data(self):
        '''Data found after the end of the zlib stream.'''
        return self._decompressor.unused_data

    def _feed(self):
        tail = self._decompressor.unconsumed_tail
        if tail:
            return tail

        data = self._reader.read(self._buffer_size)
        if not data:
            raise CorruptImageStreamException(
                f'compressed stream ended prematurely after {self.total_in} bytes')

        if self.header is None and self.total_in == 0 and len(data) >= 2:
            self.header = parse_zlib_header(data)
            logger.debug(f'zlib header: {self.header!r}')

        self.total_in += len(data)

        return data

    def read(self, n=BUFFER_SIZE):
        data = b''
        while not data and not self._decompressor.eof:
            try:
                data = self._decompressor.decompress(self._feed(), n)
            except zlib.error as e:
                raise CorruptImageStreamException(f'decompression failed: {e}') from e

        self.total_out += len(data)

        return data

    def __iter__(self):
        while True:
            data = self.read(self._buffer_size)
            if not data:
                break
            yield data


class Deflater(object):
    '''Compress data at the given level; each call to compress() returns
    everything the compressor produced up to that point, flushed so
    that it ends at a byte boundary.'''

    def __init__(self, level=zlib.Z_DEFAULT_COMPRESSION):
        check_level(level)
        self.level = level
        self._compressor = zlib.compressobj(level)
        self.total_in = 0
        self.total_out = 0

    def compress(self, data: bytes) -> bytes:
        self.total_in += len(data)
        output = self._compressor.compress(data) + self._compressor.flush(zlib.Z_SYNC_FLUSH)
        self.total_out += len(output)
        return output

    def finish(self) -> bytes:
        output = self._compressor.flush(zlib.Z_FINISH)
        self.total_out += len(output)
        return output
