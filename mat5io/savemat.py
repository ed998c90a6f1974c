"""savemat - save data in the Matlab (TM) MAT-file format

Copyright (c) 2011-2023 Nephics AB
The MIT License (MIT)
"""

__all__ = ['savemat']


import logging
import os
import struct
import zlib

from .arrays import (MLArray, MLCell, MLChar, MLNumericArray, MLSparse,
                     MLStructure)
from .bytebuffer import ByteBuffer
from .errors import DimensionMismatchError, UnsupportedArrayTypeError
from .header import MatFileHeader
from .tags import asbytes, write_element, write_record, write_values


logger = logging.getLogger(__name__)

# zlib stream header: deflate, 32K window, default compression
ZLIB_HEADER = b'\x78\x9c'


#
# Utility functions
#

def write_var_header(fd, array):
    """Write array flags, dimensions and name"""
    nzmax = array.nzmax if array.is_sparse else 0
    write_values(fd, 'miUINT32', [array.flags, nzmax])
    write_values(fd, 'miINT32', array.dims)
    write_element(fd, 'miINT8', asbytes(array.name))


def write_numeric_array(fd, array):
    """Write the real, and if complex the imaginary, part of a numeric
    array"""
    if len(array.real) != array.size:
        raise DimensionMismatchError(
            'Array "{}" has {} elements, dimensions {} require {}'.format(
                array.name, len(array.real), array.dims_string(),
                array.size))
    parts = [array.real]
    if array.is_complex:
        if len(array.imaginary) != len(array.real):
            raise DimensionMismatchError(
                'Array "{}" has {} real and {} imaginary elements'.format(
                    array.name, len(array.real), len(array.imaginary)))
        parts.append(array.imaginary)
    for part in parts:
        try:
            write_values(fd, array.etype, part)
        except struct.error as e:
            raise ValueError('Cannot write values of "{}" as {}: {}'.format(
                array.name, array.etype, e))


def write_char_array(fd, array):
    units = array.code_units
    if len(units) != array.size:
        raise DimensionMismatchError(
            'Char array "{}" has {} characters, dimensions {} require '
            '{}'.format(array.name, len(units), array.dims_string(),
                        array.size))
    write_values(fd, 'miUINT16', units)


def write_cell_array(fd, array):
    for cell in array.cells:
        write_var_array(fd, cell)


def write_struct_array(fd, array):
    # write field name length (the longest name + a null byte)
    write_values(fd, 'miINT32', [array.max_field_length])

    # write fieldnames
    write_element(fd, 'miINT8', array.keyset_bytes())

    # write the fields of each element
    for field in array.all_fields:
        write_var_array(fd, field)


def write_sparse_array(fd, array):
    write_values(fd, 'miINT32', array.ir)
    write_values(fd, 'miINT32', array.jc)
    write_values(fd, 'miDOUBLE', array.export_real())
    if array.is_complex:
        write_values(fd, 'miDOUBLE', array.export_imaginary())


def write_var_array(fd, array):
    """Write variable array (of any supported type) as a miMATRIX data
    element"""
    if not isinstance(array, MLArray):
        raise UnsupportedArrayTypeError(
            'Cannot write {} to a MAT-file'.format(type(array).__name__))

    # make a memory file for writing array data
    bd = ByteBuffer(endian=fd.endian)

    # write matrix header to memory file
    write_var_header(bd, array)

    if isinstance(array, MLNumericArray):
        write_numeric_array(bd, array)
    elif isinstance(array, MLChar):
        write_char_array(bd, array)
    elif isinstance(array, MLCell):
        write_cell_array(bd, array)
    elif isinstance(array, MLStructure):
        write_struct_array(bd, array)
    elif isinstance(array, MLSparse):
        write_sparse_array(bd, array)
    else:
        raise UnsupportedArrayTypeError(
            'Cannot write matrix of type: {}'.format(array.class_name))

    write_record(fd, 'miMATRIX', bd.getvalue())


def write_compressed_var_array(fd, array):
    """Write variable array as a miCOMPRESSED data element"""
    bd = ByteBuffer(endian=fd.endian)
    write_var_array(bd, array)
    data = bd.getvalue()

    cobj = zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED,
                            -zlib.MAX_WBITS)
    deflated = cobj.compress(data) + cobj.flush()
    # zlib trailer: Adler-32 of the uncompressed data, most significant
    # byte first
    checksum = struct.pack('>I', zlib.adler32(data) & 0xFFFFFFFF)

    write_record(fd, 'miCOMPRESSED', ZLIB_HEADER + deflated + checksum)


#
# Write to MAT file
#


def savemat(filename, arrays, compress=True, endian=None, description=None):
    """Save arrays to MAT-file:

    savemat(filename, arrays, compress=True)

    The filename argument is either a string with the filename, or
    a file like object.

    The parameter ``arrays`` shall be a sequence of ``MLArray`` objects,
    which are written in order. With compress=True each array is stored
    in a zlib compressed data element.

    The data is written in native byte order unless endian is given
    ('<' or '>'). The header description defaults to a text with the
    platform and the current time.

    An ``UnsupportedArrayTypeError`` is raised if an array cannot be
    written to a MAT-file, and a ``DimensionMismatchError`` if array data
    does not match the array dimensions. A file opened by ``savemat`` is
    closed also when an error is raised.
    """

    if isinstance(arrays, MLArray):
        raise ValueError('Arrays should be a sequence of MLArray objects')

    header = MatFileHeader.create(description, endian)

    if isinstance(filename, (str, bytes, os.PathLike)):
        fd = open(filename, 'wb')
        owned = True
    else:
        fd = filename
        owned = False

    try:
        fd.write(header.to_bytes())

        # write variables
        for array in arrays:
            bd = ByteBuffer(endian=header.byteorder)
            if compress:
                write_compressed_var_array(bd, array)
            else:
                write_var_array(bd, array)
            logger.debug('Writing %s (%d bytes)', array, len(bd))
            fd.write(bd.getvalue())
    finally:
        if owned:
            fd.close()
        else:
            fd.flush()
