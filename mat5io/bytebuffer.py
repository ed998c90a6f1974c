"""byte cursor used for reading and writing MAT-file data

Copyright (c) 2011-2023 Nephics AB
The MIT License (MIT)
"""

__all__ = ['ByteBuffer']


import struct
import sys

from .errors import OutOfBoundsError


NATIVE = '<' if sys.byteorder == 'little' else '>'


class ByteBuffer(object):
    """A growable byte buffer with an explicit position.

    All multi-byte values are read and written in the byte order given
    by ``endian``, which is a ``struct`` prefix (``'<'`` or ``'>'``).
    Reading beyond the end raises ``OutOfBoundsError``. Writing beyond
    the end grows the buffer.
    """

    def __init__(self, data=b'', endian=NATIVE):
        if endian not in ('<', '>'):
            raise ValueError('Invalid byte order {!r}'.format(endian))
        self._data = bytearray(data)
        self._pos = 0
        self.endian = endian

    def __len__(self):
        return len(self._data)

    def tell(self):
        return self._pos

    def seek(self, pos):
        if pos < 0 or pos > len(self._data):
            raise OutOfBoundsError(
                'Position {} outside buffer of {} bytes'.format(
                    pos, len(self._data)))
        self._pos = pos

    def rewind(self):
        self._pos = 0

    def remaining(self):
        return len(self._data) - self._pos

    def getvalue(self):
        return bytes(self._data)

    #
    # Raw bytes
    #

    def get_bytes(self, num_bytes):
        if num_bytes < 0 or num_bytes > self.remaining():
            raise OutOfBoundsError(
                'Cannot read {} bytes at position {}, {} remaining'.format(
                    num_bytes, self._pos, self.remaining()))
        data = bytes(self._data[self._pos:self._pos + num_bytes])
        self._pos += num_bytes
        return data

    def put_bytes(self, data):
        end = self._pos + len(data)
        self._data[self._pos:end] = data
        self._pos = end

    def skip(self, num_bytes):
        self.seek(self._pos + num_bytes)

    def pad(self, boundary):
        """Write zero bytes up to the next multiple of boundary."""
        mod = self._pos % boundary
        if mod:
            self.put_bytes(b'\0' * (boundary - mod))

    def slice(self, num_bytes):
        """Return a new buffer over the next num_bytes bytes, and
        advance past them."""
        return ByteBuffer(self.get_bytes(num_bytes), self.endian)

    #
    # Values
    #

    def get(self, fmt):
        return self.get_array(fmt, 1)[0]

    def put(self, fmt, value):
        self.put_array(fmt, (value,))

    def get_array(self, fmt, count):
        fmt = '{}{}{}'.format(self.endian, count, fmt)
        return list(struct.unpack(fmt, self.get_bytes(struct.calcsize(fmt))))

    def put_array(self, fmt, values):
        values = list(values)
        self.put_bytes(struct.pack(
            '{}{}{}'.format(self.endian, len(values), fmt), *values))

    def get_uint8(self):
        return self.get('B')

    def get_uint16(self):
        return self.get('H')

    def get_uint32(self):
        return self.get('I')

    def get_uint64(self):
        return self.get('Q')

    def get_int8(self):
        return self.get('b')

    def get_int16(self):
        return self.get('h')

    def get_int32(self):
        return self.get('i')

    def get_int64(self):
        return self.get('q')

    def get_float32(self):
        return self.get('f')

    def get_float64(self):
        return self.get('d')

    def put_uint8(self, value):
        self.put('B', value)

    def put_uint16(self, value):
        self.put('H', value)

    def put_uint32(self, value):
        self.put('I', value)

    def put_uint64(self, value):
        self.put('Q', value)

    def put_int8(self, value):
        self.put('b', value)

    def put_int16(self, value):
        self.put('h', value)

    def put_int32(self, value):
        self.put('i', value)

    def put_int64(self, value):
        self.put('q', value)

    def put_float32(self, value):
        self.put('f', value)

    def put_float64(self, value):
        self.put('d', value)
