"""mat5io exceptions

Copyright (c) 2011-2023 Nephics AB
The MIT License (MIT)
"""

__all__ = ['MatFileError', 'ParseError', 'CorruptDataError',
           'OutOfBoundsError', 'DimensionMismatchError',
           'UnsupportedArrayTypeError']


class MatFileError(IOError):
    """Base class of all errors raised when reading or writing MAT-files."""
    pass


class ParseError(MatFileError):
    pass


class CorruptDataError(ParseError):
    """Malformed header, bad tag, or a compressed block that does not
    inflate or does not match its checksum."""
    pass


class OutOfBoundsError(CorruptDataError, IndexError):
    pass


class DimensionMismatchError(ParseError):
    """Data length inconsistent with the declared array dimensions."""
    pass


class UnsupportedArrayTypeError(MatFileError, ValueError):
    pass
