"""Sample arrays of every supported type.

Copyright (c) 2011-2023 Nephics AB
The MIT License (MIT)

Used by ``python -m mat5io.cmd demo`` to write an example MAT-file.
"""

import random
import struct
from collections import OrderedDict

from .arrays import (MLCell, MLChar, MLDouble, MLInt8, MLInt16, MLInt32,
                     MLInt64, MLSingle, MLSparse, MLStructure, MLUInt8,
                     MLUInt16, MLUInt32, MLUInt64)

FLOAT_MAX = struct.unpack('<f', b'\xff\xff\x7f\x7f')[0]
DOUBLE_MAX = 1.7976931348623157e308


def create_cell_array():
    names = ['Hello', 'World', 'I am', 'a', 'MAT-file']
    cell = MLCell('Names', (len(names), 1))
    for i, name in enumerate(names):
        cell[i] = MLChar('', name)
    return cell


def create_struct_array():
    structure = MLStructure('X', (1, 1))
    structure['w', 0] = MLUInt8('', (1, 1), [1])
    structure['y', 0] = MLUInt8('', (1, 1), [2])
    structure['z', 0] = MLUInt8('', (1, 1), [3])
    return structure


def create_char_array():
    return MLChar('AName', 'Hello World v4.0!')


def create_sparse_array():
    sparse = MLSparse('S', (3, 3), nzmax=3)
    sparse.set_real(1.5, 0, 0)
    sparse.set_real(2.5, 1, 1)
    sparse.set_real(3.5, 2, 2)
    return sparse


def create_double_array():
    return MLDouble('Double', (2, 1), [DOUBLE_MAX, -DOUBLE_MAX])


def create_single_array():
    return MLSingle('Single', (2, 1), [-FLOAT_MAX, FLOAT_MAX])


def create_int8_array():
    return MLInt8('Int8', (2, 1), [-2 ** 7, 2 ** 7 - 1])


def create_uint8_array():
    return MLUInt8('UInt8', (2, 1), [0, 2 ** 8 - 1])


def create_int16_array():
    return MLInt16('Int16', (2, 1), [-2 ** 15, 2 ** 15 - 1])


def create_uint16_array():
    return MLUInt16('UInt16', (2, 1), [0, 2 ** 16 - 1])


def create_int32_array():
    return MLInt32('Int32', (2, 1), [-2 ** 31, 2 ** 31 - 1])


def create_uint32_array():
    return MLUInt32('UInt32', (2, 1), [0, 2 ** 32 - 1])


def create_int64_array():
    return MLInt64('Int64', (2, 1), [-2 ** 63, 2 ** 63 - 1])


def create_uint64_array():
    return MLUInt64('UInt64', (2, 1), [0, 2 ** 64 - 1])


def create_imaginary_array(rng=None, count=2000):
    """A complex int64 array with 5 rows of random values."""
    rng = rng or random.Random(0)
    real = [rng.randint(-2 ** 31, 2 ** 31 - 1) for i in range(count)]
    imaginary = [rng.randint(-2 ** 31, 2 ** 31 - 1) for i in range(count)]
    return MLInt64.from_values('IA', real, 5, imaginary)


SAMPLES = OrderedDict([
    ('cell', create_cell_array),
    ('struct', create_struct_array),
    ('char', create_char_array),
    ('sparse', create_sparse_array),
    ('double', create_double_array),
    ('single', create_single_array),
    ('int8', create_int8_array),
    ('uint8', create_uint8_array),
    ('int16', create_int16_array),
    ('uint16', create_uint16_array),
    ('int32', create_int32_array),
    ('uint32', create_uint32_array),
    ('int64', create_int64_array),
    ('uint64', create_uint64_array),
    ('imaginary', create_imaginary_array),
])


def create_samples(kinds=None, seed=0):
    """Return a list of sample arrays, all kinds unless given."""
    kinds = list(SAMPLES) if not kinds else kinds
    unknown = [k for k in kinds if k not in SAMPLES]
    if unknown:
        raise ValueError('Unknown sample kinds: {}'.format(
            ', '.join(unknown)))
    arrays = []
    for kind in kinds:
        if kind == 'imaginary':
            arrays.append(create_imaginary_array(random.Random(seed)))
        else:
            arrays.append(SAMPLES[kind]())
    return arrays
