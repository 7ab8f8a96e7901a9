#!/usr/bin/env python3
'''
List the chunks of a PNG file verifying their crc.

 $ pnginfo.py image.png
'''
import logging
import os
import sys

from pnglevel.compression.deflate import parse_zlib_header
from pnglevel.exceptions import PNGLevelException
from pnglevel.images.png.utils import (
    iter_chunks,
    get_header,
    get_IDAT_chunks,
    get_IDAT_data,
)


logging.basicConfig(level=logging.DEBUG if 'DEBUG' in os.environ else logging.INFO)
logger = logging.getLogger(__name__)


def usage(progname):
    print(f'usage: {progname} <png file path>')
    sys.exit(1)


if __name__ == '__main__':
    if len(sys.argv) < 2:
        usage(sys.argv[0])

    filepath = sys.argv[1]

    try:
        chunks = list(iter_chunks(filepath))

        for idx, chunk in enumerate(chunks):
            print(f'[{idx:02d}] {chunk!r} {"critical" if chunk.isCritical() else "ancillary"}')

        print(f'image: {get_header(chunks)!r}')

        idats = get_IDAT_chunks(chunks)
        if idats:
            print(f'zlib:  {parse_zlib_header(idats[0].data)!r}')
            print(f'IDAT:  {len(idats)} chunks, {sum(_.length for _ in idats)} bytes compressed, '
                  f'{len(get_IDAT_data(chunks))} bytes decompressed')
    except PNGLevelException as e:
        logger.error(f'\'{filepath}\' is not valid: {e}')
        sys.exit(1)
