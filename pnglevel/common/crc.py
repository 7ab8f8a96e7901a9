'''
CRC calculation for the chunks of the PNG container.
'''
import struct
from zlib import crc32


class CRC32(object):
    """standard CRC methods with pre and post conditioning, as defined by ISO 3309 [ISO-3309]
    or ITU-T V.42 [ITU-V42]. The CRC polynomial employed is

      x^32+x^26+x^23+x^22+x^16+x^12+x^11+x^10+x^8+x^7+x^5+x^4+x^2+x+1

    The 32-bit CRC register is initialized to all 1's, and then the data from each byte is processed
    from the least significant bit (1) to the most significant bit (128). After all the data bytes are processed,
    the CRC register is inverted (its ones complement is taken). This value is transmitted (stored in the file)
    MSB first.

    See <https://www.w3.org/TR/PNG-Structure.html#CRC-algorithm>.

    The accumulator is just an integer: reset() brings it back to the initial
    state so that the same instance can be reused chunk after chunk without
    anything leaking from the previous one.
    """

    def __init__(self, data=b''):
        self.value = 0
        if data:
            self.update(data)

    def __repr__(self):
        return '<%s(0x%08x)>' % (self.__class__.__name__, self.value)

    def __eq__(self, other):
        if isinstance(other, CRC32):
            return self.value == other.value
        return self.value == other

    def reset(self):
        self.value = 0
        return self

    def update(self, data):
        self.value = crc32(data, self.value)
        return self

    @property
    def raw(self) -> bytes:
        '''network byte order'''
        return struct.pack('>I', self.value)

    def matches(self, raw: bytes) -> bool:
        return struct.unpack('>I', raw)[0] == self.value


def chunk_crc(type: bytes, data: bytes) -> CRC32:
    '''The crc is computed over the chunk type and chunk data, but not the length.'''
    return CRC32(type).update(data)
