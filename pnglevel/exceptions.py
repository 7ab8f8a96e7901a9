class PNGLevelException(Exception):
    '''Base class to extend in order to throw exception in pnglevel.

    It takes the message and optionally the chain of chunk types that
    lead to the failure (innermost last) and the offset into the source
    stream where the problem was detected.
    '''

    def __init__(self, message='', chain=None, offset=None):
        self.chain = chain if chain is not None else []
        self.offset = offset
        super().__init__(message)

    def __str__(self):
        msg = super().__str__()
        if self.chain:
            msg = '%s (chunk %s)' % (msg, '/'.join(self.chain))
        if self.offset is not None:
            msg = '%s at offset 0x%x' % (msg, self.offset)
        return msg


class NotAPNGException(PNGLevelException):
    '''The signature doesn't correspond to the PNG one.'''
    pass


class HeaderException(PNGLevelException):
    pass


class MissingHeaderException(HeaderException):
    pass


class HeaderLengthException(HeaderException):
    pass


class CompressionMethodException(HeaderException):
    pass


class ChunkTooLargeException(PNGLevelException):
    pass


class CRCException(PNGLevelException):
    '''The checksum stored into the file doesn't match the calculated one.'''

    def __init__(self, message='', expected=None, calculated=None, **kwargs):
        self.expected = expected
        self.calculated = calculated
        super().__init__(message, **kwargs)


class ContainerCRCException(CRCException):
    pass


class ImageDataCRCException(CRCException):
    pass


class ImageDataOrderException(PNGLevelException):
    '''A second run of IDAT chunks was found.'''
    pass


class CorruptImageStreamException(PNGLevelException):
    pass


class TruncatedException(PNGLevelException):
    '''This is raised when the stream ends in the middle of something.'''
    pass
