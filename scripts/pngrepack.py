#!/usr/bin/env python3
'''
Change the compression level of the image data of a PNG file.

 $ pngrepack.py 9 input.png output.png

use "-" as path for stdin/stdout.
'''
import logging
import os
import sys

import numpy as np
from PIL import Image

from pnglevel import repack
from pnglevel.exceptions import PNGLevelException
from pnglevel.streams import Stream


logging.basicConfig(level=logging.DEBUG if 'DEBUG' in os.environ else logging.INFO)
logger = logging.getLogger(__name__)


def usage(progname):
    print(f'''usage: {progname} [--verify] <level> <input png> <output png>

The level goes from 0 (no compression) to 9 (best compression), -1 is
the zlib default. With --verify the two images are decoded and the pixels
compared.''')
    sys.exit(1)


def open_path(path, flags):
    if path == '-':
        return Stream(sys.stdout.buffer if 'w' in flags else sys.stdin.buffer, flags=flags)

    return Stream(path, flags=flags)


def verify(src, dst):
    with Image.open(src) as original, Image.open(dst) as recompressed:
        if original.size != recompressed.size or original.mode != recompressed.mode:
            return False

        return np.array_equal(np.asarray(original), np.asarray(recompressed))


if __name__ == '__main__':
    args = sys.argv[1:]

    do_verify = '--verify' in args
    if do_verify:
        args.remove('--verify')

    if len(args) != 3:
        usage(sys.argv[0])

    try:
        level = int(args[0])
    except ValueError:
        usage(sys.argv[0])

    src, dst = args[1:]

    try:
        with open_path(src, 'r') as r, open_path(dst, 'w') as w:
            stats = repack(w, r, level=level)
    except (PNGLevelException, ValueError) as e:
        logger.error(f'failed to repack \'{src}\': {e}')
        if dst != '-' and os.path.exists(dst):
            os.remove(dst)
        sys.exit(1)

    logger.info(f'{src}: {stats!r} ratio {stats.ratio:.3f}')

    if do_verify:
        if '-' in (src, dst):
            logger.error('cannot verify when using stdin/stdout')
            sys.exit(1)
        if not verify(src, dst):
            logger.error('the pixels are different!')
            sys.exit(1)
        logger.info('pixels are identical')
