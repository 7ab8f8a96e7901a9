import io
import logging

from .exceptions import TruncatedException


logger = logging.getLogger(__name__)


class Stream(object):
    '''This is a simple wrapper around bytes/path/file objects to
    uniform their properties: mainly we need a read() that doesn't
    return less than asked, since pipes and sockets are allowed to
    return partial reads, and a way to know where we are in the stream
    without relying on tell().'''
    def __init__(self, obj, flags='r'):
        '''Here we normalize the object in order to be accessed as a normal file object'''
        self._type = type(obj)
        self.flags = flags
        self.obj = obj
        self.position = 0
        self._owned = False

        init_method_name = 'init_%s' % self.obj.__class__.__name__

        init_method = getattr(self, init_method_name, self.init_file)

        init_method()

    def __getattr__(self, name):
        return getattr(self.obj, name)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        '''Close the underlying object only if we opened it.'''
        if self._owned:
            self.obj.close()

    def _open(self, path):
        mode = 'wb' if 'w' in self.flags else 'rb'
        logger.debug('opening path \'%s\' with mode %s' % (path, mode))
        self.obj = open(path, mode)
        self._owned = True

    def init_str(self):
        '''We think this is a path'''
        self._open(self.obj)

    def init_PosixPath(self):
        self._open(self.obj)

    init_WindowsPath = init_PosixPath

    def init_bytes(self):
        '''We think these are raw bytes'''
        self.obj = io.BytesIO(self.obj)

    def init_file(self):
        '''Any other object must already behave like a file.'''
        method = 'write' if 'w' in self.flags else 'read'
        if not hasattr(self.obj, method):
            raise ValueError('\'%s\' is the wrong kind of object to use as a stream' % self._type.__name__)

    def read(self, n):
        '''Single read, it can return less than n bytes.'''
        data = self.obj.read(n)
        self.position += len(data)
        return data

    def read_exactly(self, n, what='data'):
        '''Read exactly n bytes otherwise raise TruncatedException.'''
        chunks = []
        missing = n
        while missing > 0:
            data = self.read(missing)
            if not data:
                raise TruncatedException(
                    f'stream ended while reading {what}: missing {missing} of {n} bytes',
                    offset=self.position)
            chunks.append(data)
            missing -= len(data)

        return b''.join(chunks)

    def read_or_eof(self, n, what='data'):
        '''Like read_exactly() but returns None if the stream is already
        at its end: this is the only place where an EOF is legit.'''
        data = self.read(n)
        if not data:
            return None

        if len(data) < n:
            data += self.read_exactly(n - len(data), what=what)

        return data

    def write(self, data):
        self.obj.write(data)
        self.position += len(data)
        return len(data)
