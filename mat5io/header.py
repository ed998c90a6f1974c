"""level 5 MAT-file header

Copyright (c) 2011-2023 Nephics AB
The MIT License (MIT)
"""

__all__ = ['MatFileHeader']


import platform
import struct
import time

from .bytebuffer import NATIVE
from .errors import CorruptDataError
from .tags import asstr


HEADER_SIZE = 128
DESCRIPTION_SIZE = 116
SUBSYS_SIZE = 8

# level 5 MAT-file format version
VERSION = 0x0100

# endian indicator as read from the file, mapped to struct byte order
endian_indicators = {
    b'IM': '<',
    b'MI': '>'
}


class MatFileHeader(object):
    """The 128 byte header of a level 5 MAT-file."""

    def __init__(self, description, version=VERSION, endian_indicator=b'IM',
                 subsystem_offset=b' ' * SUBSYS_SIZE):
        if endian_indicator not in endian_indicators:
            raise ValueError('Invalid endian indicator {!r}'.format(
                endian_indicator))
        self.description = description
        self.version = version
        self.endian_indicator = endian_indicator
        self.subsystem_offset = subsystem_offset

    @classmethod
    def create(cls, description=None, endian=None):
        """Return the default header for a new MAT-file."""
        if description is None:
            description = (
                'MATLAB 5.0 MAT-file, Platform: {}, Created on: {}'.format(
                    platform.system() or 'unknown',
                    time.strftime('%a %b %d %H:%M:%S %Y', time.localtime())))
        endian = endian or NATIVE
        if endian not in ('<', '>'):
            raise ValueError('Invalid byte order {!r}'.format(endian))
        indicator = b'IM' if endian == '<' else b'MI'
        return cls(description, VERSION, indicator)

    @property
    def byteorder(self):
        """The struct byte order prefix of the file data."""
        return endian_indicators[self.endian_indicator]

    def to_bytes(self):
        desc = self.description.encode('latin1', 'replace')
        desc = desc[:DESCRIPTION_SIZE].ljust(DESCRIPTION_SIZE, b' ')
        subsys = bytes(self.subsystem_offset[:SUBSYS_SIZE]).ljust(
            SUBSYS_SIZE, b' ')
        return b''.join([
            desc,
            subsys,
            struct.pack(self.byteorder + 'H', self.version),
            self.endian_indicator])

    @classmethod
    def parse(cls, data):
        """Parse and validate the first 128 bytes of a MAT-file."""
        if len(data) < HEADER_SIZE:
            raise CorruptDataError(
                'File is too short for a MAT-file header ({} bytes)'.format(
                    len(data)))
        indicator = bytes(data[126:128])
        if indicator not in endian_indicators:
            raise CorruptDataError(
                'Invalid endian indicator {!r}, not a level 5 '
                'MAT-file'.format(indicator))
        endian = endian_indicators[indicator]
        version = struct.unpack(endian + 'H', bytes(data[124:126]))[0]
        if version != VERSION:
            raise CorruptDataError(
                'Can only read from Matlab level 5 MAT-files '
                '(version 0x{:04x})'.format(version))
        description = bytes(data[:DESCRIPTION_SIZE]).decode('latin1')
        return cls(description.rstrip(' \0'), version, indicator,
                   bytes(data[DESCRIPTION_SIZE:DESCRIPTION_SIZE + SUBSYS_SIZE]))

    @property
    def version_string(self):
        return '%d.%d' % (self.version >> 8, self.version & 0xFF)

    def __str__(self):
        return ('desc: {}, version: {}, endianIndicator: {}'.format(
            self.description, self.version_string,
            asstr(self.endian_indicator)))

    def __repr__(self):
        return 'MatFileHeader({!r}, 0x{:04x}, {!r})'.format(
            self.description, self.version, self.endian_indicator)
