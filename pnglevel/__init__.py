"""
# pnglevel: change the compression level of PNG files.

The pixels of a PNG image are stored as a zlib stream split between one
or more IDAT chunks; all the other chunks carry metadata. Recompressing
the zlib stream with a different level changes the size of the file
without touching the pixels or any other chunk.

The operation works on streams, so that it's possible to use files,
pipes or bytes

    >>> from pnglevel import repack_file
    >>> repack_file('input.png', 'output.png', level=9)

every chunk is read, its crc verified and then written to the output;
the IDAT chunks are decompressed and compressed again chunk by chunk
so that the memory used doesn't depend on the size of the image.

Any error found in the file raises an exception derived from
PNGLevelException and the operation is aborted.
"""
from .exceptions import PNGLevelException
from .repack import (
    DEFAULT_CHUNK_SIZE,
    Repacker,
    RepackStats,
    repack,
    repack_file,
)
