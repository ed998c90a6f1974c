"""data element types, array classes and the data element tag codec

Copyright (c) 2011-2023 Nephics AB
The MIT License (MIT)
"""

import struct

from .errors import CorruptDataError, DimensionMismatchError


# encode a string to bytes and vice versa
asbytes = lambda s: s.encode('latin1')
asstr = lambda b: b.decode('latin1')

# array element data types
etypes = {
    'miINT8': {'n': 1, 'fmt': 'b'},
    'miUINT8': {'n': 2, 'fmt': 'B'},
    'miINT16': {'n': 3, 'fmt': 'h'},
    'miUINT16': {'n': 4, 'fmt': 'H'},
    'miINT32': {'n': 5, 'fmt': 'i'},
    'miUINT32': {'n': 6, 'fmt': 'I'},
    'miSINGLE': {'n': 7, 'fmt': 'f'},
    'miDOUBLE': {'n': 9, 'fmt': 'd'},
    'miINT64': {'n': 12, 'fmt': 'q'},
    'miUINT64': {'n': 13, 'fmt': 'Q'},
    'miMATRIX': {'n': 14},
    'miCOMPRESSED': {'n': 15},
    'miUTF8': {'n': 16, 'fmt': 's'},
    'miUTF16': {'n': 17, 'fmt': 's'},
    'miUTF32': {'n': 18, 'fmt': 's'}
}

# inverse mapping of etypes
inv_etypes = dict((v['n'], k) for k, v in etypes.items())

# data types holding numbers
numeric_etypes = ['miINT8', 'miUINT8', 'miINT16', 'miUINT16', 'miINT32',
                  'miUINT32', 'miSINGLE', 'miDOUBLE', 'miINT64', 'miUINT64']

# matrix array classes
mclasses = {
    'mxCELL_CLASS': 1,
    'mxSTRUCT_CLASS': 2,
    'mxOBJECT_CLASS': 3,
    'mxCHAR_CLASS': 4,
    'mxSPARSE_CLASS': 5,
    'mxDOUBLE_CLASS': 6,
    'mxSINGLE_CLASS': 7,
    'mxINT8_CLASS': 8,
    'mxUINT8_CLASS': 9,
    'mxINT16_CLASS': 10,
    'mxUINT16_CLASS': 11,
    'mxINT32_CLASS': 12,
    'mxUINT32_CLASS': 13,
    'mxINT64_CLASS': 14,
    'mxUINT64_CLASS': 15,
    'mxFUNCTION_CLASS': 16,
    'mxOPAQUE_CLASS': 17,
    'mxOBJECT_CLASS_FROM_MATRIX_H': 18
}

inv_mclasses = dict((v, k) for k, v in mclasses.items())

# map of numeric array classes to data types
numeric_class_etypes = {
    'mxDOUBLE_CLASS': 'miDOUBLE',
    'mxSINGLE_CLASS': 'miSINGLE',
    'mxINT8_CLASS': 'miINT8',
    'mxUINT8_CLASS': 'miUINT8',
    'mxINT16_CLASS': 'miINT16',
    'mxUINT16_CLASS': 'miUINT16',
    'mxINT32_CLASS': 'miINT32',
    'mxUINT32_CLASS': 'miUINT32',
    'mxINT64_CLASS': 'miINT64',
    'mxUINT64_CLASS': 'miUINT64'
}

# array flags
FLAG_LOGICAL = 0x0200
FLAG_GLOBAL = 0x0400
FLAG_COMPLEX = 0x0800
CLASS_MASK = 0x00FF


def etype_width(mtp):
    """Number of bytes of one element of the data type mtp."""
    return struct.calcsize(etypes[mtp]['fmt'])


def mtype_name(mtpn):
    return inv_etypes.get(mtpn, 'unknown type {}'.format(mtpn))


#
# Writing data elements
#

def write_element(buf, mtp, data):
    """Write data element tag and data.

    The tag contains the data type and the number of bytes the data
    occupies. Data of 1 to 4 bytes is written as a Small Data Element
    (SDE), where the tag is a single 32-bit word and the data is padded
    to 4 bytes. Otherwise the tag is two 32-bit words and the data is
    padded to a 64-bit boundary.
    """
    mtpn = etypes[mtp]['n']
    num_bytes = len(data)
    if 1 <= num_bytes <= 4:
        # write SDE
        buf.put_uint32(num_bytes << 16 | mtpn)
        buf.put_bytes(data)
        buf.put_bytes(b'\0' * (4 - num_bytes))
        return
    # write tag: element type and number of bytes
    buf.put_uint32(mtpn)
    buf.put_uint32(num_bytes)
    buf.put_bytes(data)
    mod8 = num_bytes % 8
    if mod8:
        buf.put_bytes(b'\0' * (8 - mod8))


def write_values(buf, mtp, values):
    """Pack numeric values as the data type mtp and write them as a
    data element."""
    values = list(values)
    data = struct.pack('{}{}{}'.format(buf.endian, len(values),
                                       etypes[mtp]['fmt']), *values)
    write_element(buf, mtp, data)


def write_record(buf, mtp, data):
    """Write a top-level miMATRIX or miCOMPRESSED record. These always
    use the full tag and are never padded."""
    buf.put_uint32(etypes[mtp]['n'])
    buf.put_uint32(len(data))
    buf.put_bytes(data)


#
# Reading data elements
#

def read_element_tag(buf):
    """Read data element tag: type and number of bytes.

    If the tag is of the Small Data Element (SDE) type the element data
    is also returned, otherwise data is None.
    """
    mtpn = buf.get_uint32()
    # The most significant two bytes of mtpn will always be 0,
    # if they are not, this must be SDE format
    num_bytes = mtpn >> 16
    if num_bytes > 0:
        # small data element format
        mtpn = mtpn & 0xFFFF
        if num_bytes > 4:
            raise CorruptDataError('Error parsing Small Data Element (SDE) '
                                   'formatted data')
        data = buf.get_bytes(4)[:num_bytes]
    else:
        # regular element
        num_bytes = buf.get_uint32()
        data = None
    return (mtpn, num_bytes, data)


def read_element(buf, mtps=None):
    """Read a data element, returning its type number and raw data.

    If list of possible data types mtps is provided, the data type
    of the element is verified.
    """
    mtpn, num_bytes, data = read_element_tag(buf)
    if mtps and mtpn not in [etypes[mtp]['n'] for mtp in mtps]:
        raise CorruptDataError('Got type {}, expected {}'.format(
            mtpn, ' / '.join('{} ({})'.format(
                etypes[mtp]['n'], mtp) for mtp in mtps)))
    if data is None:
        # full format, read data
        data = buf.get_bytes(num_bytes)
        # Seek to next 64-bit boundary
        mod8 = num_bytes % 8
        if mod8:
            buf.skip(min(8 - mod8, buf.remaining()))
    return mtpn, data


def unpack(endian, mtpn, data):
    """Unpack the raw data of a numeric data element to a list of
    values."""
    mtp = inv_etypes.get(mtpn)
    if mtp not in numeric_etypes:
        raise CorruptDataError('Expected numeric data, got {}'.format(
            mtype_name(mtpn)))
    width = etype_width(mtp)
    if len(data) % width:
        raise DimensionMismatchError(
            '{} bytes is not a whole number of {} elements'.format(
                len(data), mtp))
    return list(struct.unpack(
        '{}{}{}'.format(endian, len(data) // width, etypes[mtp]['fmt']),
        data))


def read_values(buf, mtps=None):
    """Read a numeric data element and return the values as a list."""
    mtpn, data = read_element(buf, mtps)
    return unpack(buf.endian, mtpn, data)
