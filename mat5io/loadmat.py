"""load data in the Matlab (TM) MAT-file format

Copyright (c) 2011-2023 Nephics AB
The MIT License (MIT)
"""

__all__ = ['loadmat']


import logging
import os
import struct
import zlib

from .arrays import (MLCell, MLChar, MLEmptyArray, MLSparse, MLStructure,
                     code_units, is_valid_name, numeric_array_types,
                     product)
from .bytebuffer import ByteBuffer
from .errors import (CorruptDataError, DimensionMismatchError,
                     UnsupportedArrayTypeError)
from .header import HEADER_SIZE, MatFileHeader
from .tags import (CLASS_MASK, FLAG_COMPLEX, FLAG_GLOBAL, FLAG_LOGICAL,
                   asstr, etypes, inv_etypes, inv_mclasses, mclasses,
                   numeric_class_etypes, numeric_etypes, read_element,
                   read_values)


logger = logging.getLogger(__name__)

# data types that may hold character data
char_etypes = ['miUINT16', 'miUTF16', 'miUTF8', 'miUINT8', 'miINT8']


#
# Compressed data
#

def inflate(data, strict=True):
    """Inflate the data of a miCOMPRESSED element.

    The data is a zlib stream: a two byte header, deflated data and an
    Adler-32 checksum of the uncompressed data. A checksum mismatch
    raises ``CorruptDataError``, or is logged as a warning if strict is
    False.
    """
    if len(data) < 6:
        raise CorruptDataError('Compressed data element is too short.')
    cmf, flg = data[0], data[1]
    if cmf & 0x0F != zlib.DEFLATED or (cmf << 8 | flg) % 31 or flg & 0x20:
        raise CorruptDataError('Invalid zlib header in compressed data.')
    dcor = zlib.decompressobj(-zlib.MAX_WBITS)
    try:
        uncompressed = dcor.decompress(data[2:])
    except zlib.error as e:
        raise CorruptDataError('Error in compressed data: {}'.format(e))
    # Check the stream is not so broken as to end early or leave cruft
    if not dcor.eof or len(dcor.unused_data) != 4:
        raise CorruptDataError('Error in compressed data.')
    checksum = zlib.adler32(uncompressed) & 0xFFFFFFFF
    stored = dcor.unused_data
    # older writers stored the checksum in file byte order
    if checksum not in (struct.unpack('>I', stored)[0],
                        struct.unpack('<I', stored)[0]):
        msg = ('Adler-32 checksum mismatch in compressed data: '
               'computed {:08x}, stored {}'.format(checksum, stored.hex()))
        if strict:
            raise CorruptDataError(msg)
        logger.warning(msg)
    return uncompressed


#
# Matrix headers
#

def read_var_header(fd, strict=True):
    """Read a top-level data element.

    Return a buffer for reading the uncompressed miMATRIX element data.
    """
    mtpn = fd.get_uint32()
    num_bytes = fd.get_uint32()
    data = fd.get_bytes(num_bytes)

    if mtpn == etypes['miCOMPRESSED']['n']:
        logger.debug('Inflating compressed element of %d bytes', num_bytes)
        fd_var = ByteBuffer(inflate(data, strict), fd.endian)
        # read full tag from the uncompressed data
        mtpn = fd_var.get_uint32()
        num_bytes = fd_var.get_uint32()
        data = fd_var.get_bytes(num_bytes)

    if mtpn != etypes['miMATRIX']['n']:
        raise CorruptDataError('Expecting miMATRIX type number {}, '
                               'got {}'.format(etypes['miMATRIX']['n'], mtpn))
    return ByteBuffer(data, fd.endian)


def read_header(fd):
    """Read and return the matrix header."""
    values = read_values(fd, ['miUINT32'])
    if len(values) != 2:
        raise CorruptDataError('Array flags should be 2 values, got {}'
                               .format(len(values)))
    flag_class, nzmax = values
    header = {
        'mclass': flag_class & CLASS_MASK,
        'attributes': flag_class & (FLAG_GLOBAL | FLAG_LOGICAL),
        'is_complex': (flag_class & FLAG_COMPLEX) != 0,
        'nzmax': nzmax
    }
    header['dims'] = read_values(fd, ['miINT32'])
    if len(header['dims']) < 2 or min(header['dims']) < 0:
        raise CorruptDataError('Invalid array dimensions {}'.format(
            header['dims']))
    name = read_element(fd, ['miINT8'])[1]
    header['name'] = asstr(name.rstrip(b'\0'))
    if not is_valid_name(header['name']):
        raise CorruptDataError('Invalid array name {!r}'.format(
            header['name']))
    return header


def read_var_element(fd):
    """Read a miMATRIX data element nested in a cell or struct array."""
    data = read_element(fd, ['miMATRIX'])[1]
    if not data:
        # empty arrays may be stored without a header
        return MLEmptyArray()
    fd_var = ByteBuffer(data, fd.endian)
    return read_var_array(fd_var, read_header(fd_var))


#
# Arrays
#

def read_numeric_data(fd, header):
    """Read the real or imaginary part of a numeric array. The data
    may be stored with a narrower data type than the array class."""
    values = read_values(fd, numeric_etypes)
    count = product(header['dims'])
    if len(values) != count:
        raise DimensionMismatchError(
            'Array "{}" has {} elements, dimensions {} require {}'.format(
                header['name'], len(values),
                'x'.join(str(d) for d in header['dims']), count))
    return values


def read_numeric_array(fd, header):
    """Read a numeric matrix."""
    mclass = header['mclass']
    real = read_numeric_data(fd, header)
    imaginary = None
    if header['is_complex']:
        imaginary = read_numeric_data(fd, header)
    if numeric_class_etypes[inv_mclasses[mclass]] in ('miDOUBLE',
                                                     'miSINGLE'):
        real = [float(v) for v in real]
        if imaginary is not None:
            imaginary = [float(v) for v in imaginary]
    if (tuple(header['dims']) == (0, 0) and imaginary is None and
            mclass == mclasses['mxDOUBLE_CLASS'] and
            not header['attributes']):
        return MLEmptyArray(header['name'])
    return numeric_array_types[mclass](
        header['name'], header['dims'], real, imaginary,
        header['attributes'])


def read_char_array(fd, header):
    mtpn, data = read_element(fd, char_etypes)
    mtp = inv_etypes[mtpn]
    if mtp in ('miUINT16', 'miUTF16'):
        if len(data) % 2:
            raise DimensionMismatchError(
                'Odd number of bytes in UTF-16 data of "{}"'.format(
                    header['name']))
        units = struct.unpack('{}{}H'.format(fd.endian, len(data) // 2),
                              data)
    elif mtp == 'miUTF8':
        try:
            units = code_units(data.decode('utf-8'))
        except UnicodeDecodeError as e:
            raise CorruptDataError('Invalid UTF-8 data in "{}": {}'.format(
                header['name'], e))
    else:
        units = bytearray(data)
    return MLChar.from_code_units(header['name'], header['dims'], units,
                                  header['attributes'])


def check_children(fd, header, count):
    """Raise CorruptDataError if fd is too short to hold count nested
    miMATRIX elements, each at least a tag of 8 bytes."""
    if count > fd.remaining() // 8:
        raise CorruptDataError(
            'Array "{}" of size {} needs {} elements, only {} bytes '
            'left'.format(header['name'],
                          'x'.join(str(d) for d in header['dims']), count,
                          fd.remaining()))


def read_cell_array(fd, header):
    """Read a cell array. Cells are stored in column-major order."""
    check_children(fd, header, product(header['dims']))
    array = MLCell(header['name'], header['dims'], header['attributes'])
    for i in range(array.size):
        array[i] = read_var_element(fd)
    return array


def read_struct_array(fd, header):
    """Read a struct array.

    For each element (in column-major order) the fields are stored in
    the order of the field names.
    """
    # read field name length
    values = read_values(fd, ['miINT32'])
    if len(values) != 1 or values[0] < 1:
        raise CorruptDataError('Unexpected field name length: {}'.format(
                               values))
    field_name_length = values[0]

    # read field names
    data = read_element(fd, ['miINT8'])[1]
    if len(data) % field_name_length:
        raise CorruptDataError('Field names of "{}" are not a multiple of '
                               'the field name length'.format(header['name']))
    fields = [asstr(data[i:i + field_name_length].split(b'\0', 1)[0])
              for i in range(0, len(data), field_name_length)]
    if (not all(fields) or not all(is_valid_name(f) for f in fields) or
            len(set(fields)) != len(fields)):
        raise CorruptDataError('Invalid field names {} in "{}"'.format(
            fields, header['name']))

    array = MLStructure(header['name'], header['dims'], header['attributes'])
    for field in fields:
        array.add_field(field)
    if fields:
        check_children(fd, header, array.size * len(fields))
        for i in range(array.size):
            for field in fields:
                array.set_field(field, read_var_element(fd), i)
    return array


def read_sparse_array(fd, header):
    """Read a sparse array: row indices, column pointers and values."""
    if len(header['dims']) != 2:
        raise CorruptDataError('Sparse array "{}" is not two '
                               'dimensional'.format(header['name']))
    ir = read_values(fd, ['miINT32', 'miUINT32'])
    jc = read_values(fd, ['miINT32', 'miUINT32'])
    # row indices and values may be stored with nzmax entries
    nnz = jc[-1] if jc else 0
    real = [float(v) for v in read_values(fd, numeric_etypes)[:nnz]]
    imaginary = None
    if header['is_complex']:
        imaginary = [float(v) for v in read_values(fd, numeric_etypes)[:nnz]]
    return MLSparse.from_csc(header['name'], header['dims'], ir[:nnz], jc,
                             real, imaginary, header['nzmax'],
                             header['attributes'])


def read_var_array(fd, header):
    """Read variable array (of any supported type)."""
    mc = inv_mclasses.get(header['mclass'])

    if mc in numeric_class_etypes:
        return read_numeric_array(fd, header)
    elif mc == 'mxSPARSE_CLASS':
        return read_sparse_array(fd, header)
    elif mc == 'mxCHAR_CLASS':
        return read_char_array(fd, header)
    elif mc == 'mxCELL_CLASS':
        return read_cell_array(fd, header)
    elif mc == 'mxSTRUCT_CLASS':
        return read_struct_array(fd, header)
    elif mc == 'mxOBJECT_CLASS':
        raise UnsupportedArrayTypeError('Object classes not supported')
    elif mc == 'mxFUNCTION_CLASS':
        raise UnsupportedArrayTypeError('Function classes not supported')
    elif mc == 'mxOPAQUE_CLASS':
        raise UnsupportedArrayTypeError(
            'Anonymous function classes not supported')
    raise UnsupportedArrayTypeError('Unknown array class {}'.format(
        header['mclass']))


#
# Read from MAT file
#


def loadmat(filename, strict=True):
    """Load data from MAT-file:

    header, arrays = loadmat(filename, strict=True)

    The filename argument is either a string with the filename, or
    a file like object.

    Returns the ``MatFileHeader`` and a list with the arrays found in
    the MAT-file, in file order.

    A ``CorruptDataError`` is raised if the file is not a level 5 MAT-file,
    or if the data is corrupt. When strict is False, a checksum mismatch in
    compressed data is logged as a warning instead. A
    ``DimensionMismatchError`` is raised if array data does not match the
    array dimensions, and an ``UnsupportedArrayTypeError`` if the file
    contains an array type that cannot be parsed.
    """

    if isinstance(filename, (str, bytes, os.PathLike)):
        with open(filename, 'rb') as fd:
            data = fd.read()
    else:
        data = filename.read()

    header = MatFileHeader.parse(data[:HEADER_SIZE])
    fd = ByteBuffer(data, header.byteorder)
    fd.seek(HEADER_SIZE)

    # read data elements
    arrays = []
    while fd.remaining():
        fd_var = read_var_header(fd, strict)
        array = read_var_array(fd_var, read_header(fd_var))
        logger.debug('Read %s', array)
        arrays.append(array)
    return header, arrays
