import logging
import zlib

from . import (
    SIGNATURE,
    IDAT,
    IHDR,
    IHDR_LENGTH,
    PNGChunk,
    PNGChunkHeader,
    IHDRData,
)
from ...exceptions import (
    ContainerCRCException,
    CorruptImageStreamException,
    HeaderLengthException,
    ImageDataCRCException,
    MissingHeaderException,
    NotAPNGException,
)
from ...streams import Stream


logger = logging.getLogger(__name__)


def read_signature(stream):
    signature = stream.read_or_eof(len(SIGNATURE), what='signature')
    if signature != SIGNATURE:
        raise NotAPNGException(f'wrong signature {signature!r}', offset=0)

    return signature


def read_chunk_header(stream):
    '''Returns None if the stream is finished exactly at a chunk boundary.'''
    offset = stream.position
    raw = stream.read_or_eof(PNGChunkHeader.size, what='chunk header')
    if raw is None:
        return None

    header = PNGChunkHeader.unpack(raw, offset=offset)
    logger.debug(f'chunk {header!r} at offset 0x{offset:x}')

    return header


def check_crc(stream, crc, header):
    '''Read the crc field and compare it with the calculated one.'''
    offset = stream.position
    raw = stream.read_exactly(4, what=f'{header.name} crc')
    if not crc.matches(raw):
        exc = ImageDataCRCException if header.type == IDAT else ContainerCRCException
        raise exc(
            f'invalid checksum 0x{raw.hex()} (calculated {crc.value:08x})',
            expected=int.from_bytes(raw, 'big'),
            calculated=crc.value,
            chain=[header.name],
            offset=offset)

    return raw


def check_ihdr(header):
    if header is None or header.type != IHDR:
        raise MissingHeaderException(
            f'first chunk must be IHDR, found {header!r}',
            chain=[header.name] if header else [])
    if header.length != IHDR_LENGTH:
        raise HeaderLengthException(
            f'IHDR must be {IHDR_LENGTH} bytes, declared {header.length}', chain=['IHDR'])


def iter_chunks(path_or_stream):
    '''Yield all the chunks of a PNG file checking their CRC.

    The first one must be the IHDR.'''
    stream = path_or_stream if isinstance(path_or_stream, Stream) else Stream(path_or_stream)

    with stream:
        read_signature(stream)

        index = 0
        while True:
            header = read_chunk_header(stream)
            if index == 0:
                check_ihdr(header)
            if header is None:
                break

            data = stream.read_exactly(header.length, what=f'{header.name} data')
            chunk = PNGChunk(header, data, 0)
            raw_crc = check_crc(stream, chunk.calculate(), header)
            chunk.crc = int.from_bytes(raw_crc, 'big')

            yield chunk

            index += 1


def get_chunk_by_name(chunks, name):
    chunk = list(filter(lambda x: x.type.decode() == name, chunks))

    if len(chunk) == 0:
        raise ValueError(f'no chunk with name {name}')

    return chunk if len(chunk) > 1 else chunk[0]


def get_header(chunks) -> IHDRData:
    return IHDRData.unpack(get_chunk_by_name(chunks, 'IHDR').data)


def get_IDAT_chunks(chunks):
    return list(filter(lambda x: x.type == IDAT, chunks))


def get_IDAT_data(chunks):
    '''In a PNG file, the concatenation of the contents of all the IDAT chunks makes up a zlib datastream,
    the boundaries between IDAT chunks are arbitrary and can fall anywhere in the zlib datastream.
    '''
    data = b''.join(chunk.data for chunk in get_IDAT_chunks(chunks))

    try:
        return zlib.decompress(data)
    except zlib.error as e:
        raise CorruptImageStreamException(f'decompression failed: {e}') from e
