import zlib

from pnglevel.common.crc import CRC32, chunk_crc


def test_crc_known_value():
    """The IEND chunk has always the same crc"""
    assert CRC32(b'IEND').value == 0xae426082
    assert CRC32(b'IEND').raw == b'\xae\x42\x60\x82'


def test_crc_incremental():
    crc = CRC32()
    crc.update(b'IDAT').update(b'\x78\x9c').update(b'kebab')

    assert crc == zlib.crc32(b'IDAT\x78\x9ckebab')
    assert crc == CRC32(b'IDAT\x78\x9ckebab')


def test_crc_reset_does_not_leak():
    """Check that after reset() nothing of the previous chunk is left"""
    crc = CRC32()
    crc.update(b'tEXt').update(b'Comment\x00whatever')

    crc.reset()
    assert crc.value == 0

    crc.update(b'IEND')
    assert crc == CRC32(b'IEND')


def test_crc_matches():
    crc = chunk_crc(b'IDAT', b'\x01\x02\x03')

    assert crc.matches(crc.raw)
    assert not crc.matches(b'\x00\x00\x00\x00')
    assert crc.value == zlib.crc32(b'IDAT\x01\x02\x03')
