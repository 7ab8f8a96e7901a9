'''
# Portable Network Graphics

Format created to replace patent-emcumbered GIF files.

The specification is at <http://www.libpng.org/pub/png/spec/1.2/PNG-Contents.html> and
is available a full test-suite with a lot of PNG images covering all
the possible cases at <http://www.schaik.com/pngsuite/>.

A PNG file is the signature followed by a sequence of chunks

    .--------.------.------------------.-----.
    | length | type | data             | crc |
    '--------'------'------------------'-----'
      4 bytes 4 bytes   length bytes    4 bytes

all the integers are big-endian.
'''
import logging
import struct
from enum import Enum

from ...common.crc import CRC32, chunk_crc
from ...exceptions import (
    ChunkTooLargeException,
    CompressionMethodException,
    HeaderLengthException,
)


logger = logging.getLogger(__name__)

SIGNATURE = b'\x89\x50\x4e\x47\x0d\x0a\x1a\x0a'

# the length is an unsigned integer but it's limited to 2^31 - 1 bytes
MAX_CHUNK_LENGTH = 0x7fffffff

IHDR = b'IHDR'
PLTE = b'PLTE'
IDAT = b'IDAT'
IEND = b'IEND'

IHDR_LENGTH = 13


class PNGColorType(Enum):
    '''The color type definition of the PNG is a little tricky and doesn't seem
    to follow a bit-mask. We are going to list all the valid cases.'''
    GRAYSCALE = 0x00
    RGB       = 0x02
    RGB_PALETTE = 0x03
    GS_ALPHA    = 0x04
    RGBA        = 0x06


class PNGCompressionType(Enum):
    '''There is only one method of compression'''
    DEFLATE = 0x00


class PNGFilterType(Enum):
    '''This indicates the preprocessing method applied to the image data before compression. At present, only filter method 0 is defined'''
    ADAPTIVE = 0x00


class PNGInterlaceType(Enum):
    NONE  = 0x00
    ADAM7 = 0x01


class PNGChunkHeader(object):
    '''The first 8 bytes of a chunk: the length of the data and the type.

    A chunk is defined as critical or ancillary depending on the case of the
    starting letter of the type field.

    # Critical chunks

     1. IHDR: contains image's width, height, bit depth, color type, compression method, filter method and interlace method
     2. PLTE: contains the palette data
     3. IDAT: contains the actual image data (compressed)
     4. IEND: is the terminator chunk
    '''
    format = '>I4s'
    size = struct.calcsize(format)

    def __init__(self, length, type):
        self.length = length
        self.type = type

    def __repr__(self):
        return '<%s(%s, length=%d)>' % (self.__class__.__name__, self.name, self.length)

    def __eq__(self, other):
        return isinstance(other, PNGChunkHeader) and \
            (self.length, self.type) == (other.length, other.type)

    @property
    def name(self):
        return self.type.decode('latin1')

    @classmethod
    def unpack(cls, raw, offset=None):
        length, type = struct.unpack(cls.format, raw)
        if length > MAX_CHUNK_LENGTH:
            raise ChunkTooLargeException(
                f'chunk declares length 0x{length:08x} (max is 0x{MAX_CHUNK_LENGTH:08x})',
                chain=[type.decode('latin1')],
                offset=offset)

        return cls(length, type)

    @property
    def raw(self) -> bytes:
        return struct.pack(self.format, self.length, self.type)

    def isCritical(self):
        return chr(self.type[0]).isupper()


class PNGChunk(object):
    '''A complete chunk: the crc is the one read from the stream, it's not
    recalculated.'''

    def __init__(self, header, data, crc):
        self.header = header
        self.data = data
        self.crc = crc

    @classmethod
    def create(cls, type, data):
        '''Build a new chunk calculating length and crc.'''
        return cls(PNGChunkHeader(len(data), type), data, chunk_crc(type, data).value)

    @property
    def type(self):
        return self.header.type

    @property
    def length(self):
        return self.header.length

    def __repr__(self):
        return '<%s(%s, length=%d, crc=0x%08x)>' % (
            self.__class__.__name__,
            self.header.name,
            self.length,
            self.crc,
        )

    def calculate(self) -> CRC32:
        return chunk_crc(self.type, self.data)

    def is_valid(self):
        return self.calculate() == self.crc

    @property
    def raw(self) -> bytes:
        return self.header.raw + self.data + struct.pack('>I', self.crc)

    def isCritical(self):
        return self.header.isCritical()


class IHDRData(object):
    '''
    Width and height give the image dimensions in pixels.
    Bit depth is a single-byte integer giving the number of bits per sample or per palette index (not per pixel).
    Color type is a single-byte integer that describes the interpretation of the image data.
    '''
    format = '>IIBBBBB'

    def __init__(self, width, height, depth, color, compression, filter, interlace):
        self.width = width
        self.height = height
        self.depth = depth
        self.color = color
        self.compression = compression
        self.filter = filter
        self.interlace = interlace

    def __str__(self):
        return '%dx%dx%d' % (
            self.width,
            self.height,
            self.depth,
        )

    def __repr__(self):
        return f'<{self.__class__.__name__}({self} color={self.color!r} interlace={self.interlace!r})>'

    @classmethod
    def unpack(cls, raw):
        '''Only the compression method is enforced: the other fields are
        kept as integers if they don't correspond to a known value since
        we don't care about the pixels.'''
        if len(raw) != IHDR_LENGTH:
            raise HeaderLengthException(
                f'IHDR must be {IHDR_LENGTH} bytes, got {len(raw)}', chain=['IHDR'])

        width, height, depth, color, compression, filter, interlace = struct.unpack(cls.format, raw)

        try:
            compression = PNGCompressionType(compression)
        except ValueError:
            raise CompressionMethodException(
                f'compression method {compression} not supported', chain=['IHDR'])

        return cls(
            width,
            height,
            depth,
            _to_enum(PNGColorType, color),
            compression,
            _to_enum(PNGFilterType, filter),
            _to_enum(PNGInterlaceType, interlace),
        )


def _to_enum(enum, value):
    try:
        return enum(value)
    except ValueError:
        logger.warning(f'enum {enum!r} doesn\'t have element with value 0x{value:x} in it')
        return value
