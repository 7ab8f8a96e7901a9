r"""
Change the zlib compression level of the image data of a PNG file.

The file is traversed one chunk at a time: every chunk is copied as is
after its crc is verified, with the exception of the run of IDAT chunks
that is decompressed and compressed again, possibly with different
boundaries between the chunks.

    signature | IHDR | ... | IDAT | IDAT | ... | IDAT | ... | IEND
                              \____________________/
                                 one zlib stream

Only a chunk's data and one cycle of the codec are kept in memory, so
the size of the file doesn't matter.
"""
import logging
import zlib

from .common.crc import CRC32
from .compression.deflate import (
    BUFFER_SIZE,
    Deflater,
    Inflater,
    check_level,
)
from .exceptions import (
    CorruptImageStreamException,
    ImageDataOrderException,
)
from .images.png import (
    IDAT,
    IEND,
    IHDR_LENGTH,
    MAX_CHUNK_LENGTH,
    IHDRData,
    PNGChunkHeader,
)
from .images.png.utils import (
    check_crc,
    check_ihdr,
    read_chunk_header,
    read_signature,
)
from .streams import Stream


logger = logging.getLogger(__name__)

# maximum size of the data of the IDAT chunks we write
DEFAULT_CHUNK_SIZE = 1 << 16


class ChunkCursor(object):
    '''Position into the chunk the Repacker is traversing.

    It's created by the Repacker when the first IDAT is found and handed
    to the IDATReader that moves it from chunk to chunk; when the run ends
    the header of the chunk that follows has been already read from the
    stream and it's left here as "pending" for the Repacker.'''

    def __init__(self, header):
        self.header = header
        self.remaining = header.length
        self.pending = None

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.header!r}, remaining={self.remaining}, pending={self.pending!r})>'

    def take_pending(self):
        header, self.pending = self.pending, None
        return header


class IDATReader(object):
    '''File-like object returning the data of consecutive IDAT chunks as
    a single stream.

    The data of each chunk is read completely and its crc verified
    before any byte of it is returned, so the decompressor never sees
    unverified data. read() returns an empty bytes when a chunk of
    another type (or the end of the stream) is found.'''

    def __init__(self, stream, cursor, buffer_size=BUFFER_SIZE):
        self._stream = stream
        self._buffer_size = buffer_size
        self._crc = CRC32()
        self._data = b''
        self.cursor = cursor
        self.eof = False
        self.chunks = 0
        self.total = 0

        self._load()

    def _load(self):
        header = self.cursor.header
        self._crc.reset().update(header.type)

        pieces = []
        missing = header.length
        while missing > 0:
            data = self._stream.read_exactly(min(missing, self._buffer_size), what='IDAT data')
            self._crc.update(data)
            pieces.append(data)
            missing -= len(data)

        check_crc(self._stream, self._crc, header)

        self._data = b''.join(pieces)
        self.cursor.remaining = header.length
        self.chunks += 1
        self.total += header.length

    def _next_chunk(self):
        header = read_chunk_header(self._stream)

        if header is None:
            logger.warning('stream ended right after the IDAT chunks')
            self.eof = True
            return

        if header.type != IDAT:
            logger.debug(f'end of IDAT run after {self.chunks} chunks ({self.total} bytes)')
            self.cursor.pending = header
            self.eof = True
            return

        self.cursor.header = header
        self._load()

    def read(self, n=-1):
        while self.cursor.remaining == 0:
            if self.eof:
                return b''
            self._next_chunk()

        remaining = self.cursor.remaining
        size = remaining if n < 0 else min(n, remaining)
        start = len(self._data) - remaining

        self.cursor.remaining -= size

        return self._data[start:start + size]

    def skip(self):
        '''Consume what remains of the run, returning the number of bytes skipped.'''
        skipped = 0
        while True:
            data = self.read(self._buffer_size)
            if not data:
                break
            skipped += len(data)

        return skipped


class IDATWriter(object):
    '''Write the data passed in as a sequence of IDAT chunks of "chunk_size"
    bytes; the last one is written by close() with what remains.'''

    def __init__(self, stream, chunk_size=DEFAULT_CHUNK_SIZE):
        self._stream = stream
        self._crc = CRC32()
        self._buffer = bytearray()
        self.chunk_size = chunk_size
        self.chunks = 0
        self.total = 0

    def _emit(self, data):
        self._crc.reset().update(IDAT).update(data)

        header = PNGChunkHeader(len(data), IDAT)
        self._stream.write(header.raw)
        self._stream.write(data)
        self._stream.write(self._crc.raw)

        logger.debug(f'written {header!r} crc=0x{self._crc.value:08x}')

        self.chunks += 1
        self.total += len(data)

    def write(self, data):
        self._buffer += data

        while len(self._buffer) >= self.chunk_size:
            self._emit(bytes(self._buffer[:self.chunk_size]))
            del self._buffer[:self.chunk_size]

    def close(self):
        if self._buffer:
            self._emit(bytes(self._buffer))
            self._buffer.clear()


class RepackStats(object):

    def __init__(self):
        self.chunks = 0
        self.idat_chunks_in = 0
        self.idat_chunks_out = 0
        self.compressed_in = 0
        self.compressed_out = 0
        self.decompressed = 0

    def __repr__(self):
        return '<%s(chunks=%d, IDAT %d -> %d chunks, %d -> %d bytes, decompressed=%d)>' % (
            self.__class__.__name__,
            self.chunks,
            self.idat_chunks_in,
            self.idat_chunks_out,
            self.compressed_in,
            self.compressed_out,
            self.decompressed,
        )

    @property
    def ratio(self):
        return self.compressed_out / self.compressed_in if self.compressed_in else 0.0


class Repacker(object):
    '''Walk the chunks of the PNG read from "r" writing them to "w".

    Nothing is written for a chunk before its crc is verified; if an
    exception is raised what has been written is garbage.'''

    def __init__(self, w, r, level=zlib.Z_DEFAULT_COMPRESSION, chunk_size=DEFAULT_CHUNK_SIZE, buffer_size=BUFFER_SIZE):
        check_level(level)
        if not 0 < chunk_size <= MAX_CHUNK_LENGTH:
            raise ValueError(f'chunk size must be between 1 and {MAX_CHUNK_LENGTH}, got {chunk_size}')
        if buffer_size <= 0:
            raise ValueError(f'buffer size must be positive, got {buffer_size}')

        self.reader = r if isinstance(r, Stream) else Stream(r)
        self.writer = w if isinstance(w, Stream) else Stream(w, flags='w')
        self.level = level
        self.chunk_size = chunk_size
        self.buffer_size = buffer_size
        self.crc = CRC32()
        self.cursor = None
        self.have_IDAT = False
        self.have_IEND = False
        self.ihdr = None
        self.stats = RepackStats()

    def header(self):
        self.writer.write(read_signature(self.reader))

        header = read_chunk_header(self.reader)
        check_ihdr(header)

        data = self.reader.read_exactly(IHDR_LENGTH, what='IHDR data')
        self.ihdr = IHDRData.unpack(data)

        self.crc.reset().update(header.type).update(data)
        raw_crc = check_crc(self.reader, self.crc, header)

        logger.debug(f'image {self.ihdr!r}')

        self.writer.write(header.raw)
        self.writer.write(data)
        self.writer.write(raw_crc)
        self.stats.chunks += 1

    def next_chunk_header(self):
        if self.cursor and self.cursor.pending:
            return self.cursor.take_pending()

        return read_chunk_header(self.reader)

    def read_chunk_data(self, header):
        '''Returns the data as a list of pieces and the raw crc, verified.'''
        self.crc.reset().update(header.type)

        pieces = []
        missing = header.length
        while missing > 0:
            data = self.reader.read_exactly(min(missing, self.buffer_size), what=f'{header.name} data')
            self.crc.update(data)
            pieces.append(data)
            missing -= len(data)

        return pieces, check_crc(self.reader, self.crc, header)

    def find_IDAT(self):
        '''Look for another IDAT into the rest of the stream.'''
        while True:
            header = self.next_chunk_header()
            if header is None:
                return None
            if header.type == IDAT:
                return header
            self.read_chunk_data(header)

    def copy_chunk(self, header):
        if self.have_IEND:
            logger.warning(f'chunk {header.name} found after IEND')

        pieces, raw_crc = self.read_chunk_data(header)

        self.writer.write(header.raw)
        for data in pieces:
            self.writer.write(data)
        self.writer.write(raw_crc)

        self.stats.chunks += 1

        if header.type == IEND:
            self.have_IEND = True

    def handle_IDAT(self, header):
        self.cursor = ChunkCursor(header)

        idat_reader = IDATReader(self.reader, self.cursor, self.buffer_size)
        idat_writer = IDATWriter(self.writer, self.chunk_size)
        inflater = Inflater(idat_reader, self.buffer_size)
        deflater = Deflater(self.level)

        try:
            for data in inflater:
                idat_writer.write(deflater.compress(data))
                logger.debug(f'cycle: {inflater.total_in} bytes in, {deflater.total_in} decompressed, {deflater.total_out} out')
        except CorruptImageStreamException as e:
            # the compressed stream could continue into a second run of IDAT
            if not idat_reader.eof or self.cursor.pending is None:
                raise
            following = self.find_IDAT()
            if following is None:
                raise
            raise ImageDataOrderException(
                'IDAT chunks must be consecutive',
                chain=[following.name],
                offset=self.reader.position - PNGChunkHeader.size) from e

        idat_writer.write(deflater.finish())
        idat_writer.close()

        extra = len(inflater.unused_data) + idat_reader.skip()
        if extra:
            logger.warning(f'ignored {extra} bytes after the end of the compressed stream')

        self.stats.idat_chunks_in = idat_reader.chunks
        self.stats.idat_chunks_out = idat_writer.chunks
        self.stats.compressed_in = idat_reader.total
        self.stats.compressed_out = idat_writer.total
        self.stats.decompressed = deflater.total_in

        logger.info(f'IDAT: {idat_reader.chunks} chunks/{idat_reader.total} bytes -> '
                    f'{idat_writer.chunks} chunks/{idat_writer.total} bytes at level {self.level}')

    def repack(self):
        self.header()

        while True:
            header = self.next_chunk_header()
            if header is None:
                break

            if header.type == IDAT:
                if self.have_IDAT:
                    raise ImageDataOrderException(
                        'IDAT chunks must be consecutive',
                        chain=[header.name],
                        offset=self.reader.position - PNGChunkHeader.size)
                self.handle_IDAT(header)
                self.have_IDAT = True
                continue

            self.copy_chunk(header)

        if not self.have_IDAT:
            logger.warning('no IDAT chunk found')
        if not self.have_IEND:
            logger.warning('no IEND chunk found')

        return self.stats


def repack(w, r, level=zlib.Z_DEFAULT_COMPRESSION, **kwargs):
    '''Reads a PNG file from "r" and writes it to "w" with the image
    data recompressed with the given level.'''
    return Repacker(w, r, level=level, **kwargs).repack()


def repack_file(src, dst, level=zlib.Z_DEFAULT_COMPRESSION, **kwargs):
    with Stream(src) as r, Stream(dst, flags='w') as w:
        return repack(w, r, level=level, **kwargs)
