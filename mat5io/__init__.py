"""mat5io - read and write arrays in the Matlab (TM) level 5 MAT-file format

This module provides the following two functions for loading and saving
data in Matlab (TM) MAT-file format:

    header, arrays = loadmat(filename, strict=True)

    savemat(filename, arrays, compress=True)

The function ``loadmat`` reads the file header and all arrays stored in
the MAT-file. Each array is an instance of one of the array types in
``mat5io.arrays``, holding the name, dimensions, flags and the data of
the array, exactly as stored in the file.

The function ``savemat`` writes a sequence of such arrays to a MAT-file,
optionally compressing each array. Arrays read with ``loadmat`` can be
written again with ``savemat``, and read back unchanged.

The following Matlab array types are supported:

* Numeric arrays of all classes (double, single, int8 to uint64),
  real or complex, with any number of dimensions
* Character arrays
* Cell arrays
* Struct arrays
* Sparse arrays (double, real or complex)

The following Matlab data structures/types are not supported:

* Function arrays
* Object classes
* Anonymous function classes
* MAT-files of version 4 and 7.3 (HDF5 format)
"""
from .arrays import (MLArray, MLCell, MLChar, MLDouble, MLEmptyArray,
                     MLInt8, MLInt16, MLInt32, MLInt64, MLNumericArray,
                     MLSingle, MLSparse, MLStructure, MLUInt8, MLUInt16,
                     MLUInt32, MLUInt64)
from .errors import (CorruptDataError, DimensionMismatchError, MatFileError,
                     OutOfBoundsError, ParseError, UnsupportedArrayTypeError)
from .header import MatFileHeader
from .loadmat import loadmat
from .savemat import savemat

__version__ = '0.7.0'
__all__ = ['loadmat', 'savemat', 'MatFileHeader',
           'MLArray', 'MLNumericArray', 'MLDouble', 'MLSingle', 'MLInt8',
           'MLUInt8', 'MLInt16', 'MLUInt16', 'MLInt32', 'MLUInt32',
           'MLInt64', 'MLUInt64', 'MLEmptyArray', 'MLChar', 'MLCell',
           'MLStructure', 'MLSparse',
           'MatFileError', 'ParseError', 'CorruptDataError',
           'OutOfBoundsError', 'DimensionMismatchError',
           'UnsupportedArrayTypeError']
__license__ = """The MIT License (MIT), Copyright (c) 2011-2023 Nephics AB"""
