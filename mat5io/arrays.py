"""MAT-file array types

Copyright (c) 2011-2023 Nephics AB
The MIT License (MIT)

Every array stored in a MAT-file is represented by an instance of one of
the classes in this module:

    MLDouble, MLSingle, MLInt8, MLUInt8, MLInt16, MLUInt16,
    MLInt32, MLUInt32, MLInt64, MLUInt64  -- numeric arrays
    MLEmptyArray                          -- the 0x0 double array
    MLChar                                -- character arrays
    MLCell                                -- cell arrays
    MLStructure                           -- struct arrays
    MLSparse                              -- sparse double arrays

Element data is stored column-major, as in the file. The classes only
hold data; all knowledge of the file format lives in ``loadmat`` and
``savemat``.
"""

__all__ = ['MLArray', 'MLNumericArray', 'MLDouble', 'MLSingle', 'MLInt8',
           'MLUInt8', 'MLInt16', 'MLUInt16', 'MLInt32', 'MLUInt32',
           'MLInt64', 'MLUInt64', 'MLEmptyArray', 'MLChar', 'MLCell',
           'MLStructure', 'MLSparse']


import struct
from functools import reduce
from operator import mul

from .errors import DimensionMismatchError
from .tags import (CLASS_MASK, FLAG_COMPLEX, FLAG_GLOBAL, FLAG_LOGICAL,
                   asbytes, etypes, inv_mclasses, mclasses,
                   numeric_class_etypes)


# longest allowed variable and field name
NAME_LENGTH_MAX = 63

# numeric arrays with more elements are not listed by content_to_string
DISPLAY_MAX = 1000


def product(dims):
    return reduce(mul, dims, 1)


def is_valid_name(name):
    """Names are ASCII, at most NAME_LENGTH_MAX characters long."""
    return len(name) <= NAME_LENGTH_MAX and all(ord(c) < 128 for c in name)


def code_units(s):
    """Split a string into UTF-16 code units."""
    data = s.encode('utf-16-le', 'surrogatepass')
    return list(struct.unpack('<{}H'.format(len(data) // 2), data))


def from_code_units(units):
    data = struct.pack('<{}H'.format(len(units)), *units)
    return data.decode('utf-16-le', 'surrogatepass')


class MLArray(object):
    """Base of all MAT-file arrays: name, dimensions, class and flags."""

    def __init__(self, name, dims, mclass, attributes=0):
        name = name or ''
        if not is_valid_name(name):
            raise ValueError(
                'Invalid name "{}" (max. {} ASCII characters allowed)'.format(
                    name, NAME_LENGTH_MAX))
        dims = tuple(int(d) for d in dims)
        if len(dims) < 2:
            raise ValueError('Arrays must have at least two dimensions')
        if any(d < 0 for d in dims):
            raise ValueError('Negative dimension in {}'.format(dims))
        self._name = name
        self._dims = dims
        self.mclass = mclass & CLASS_MASK
        self.attributes = attributes & (FLAG_GLOBAL | FLAG_LOGICAL)

    @property
    def name(self):
        return self._name

    @property
    def dims(self):
        return self._dims

    @property
    def m(self):
        """Number of rows."""
        return self._dims[0]

    @property
    def n(self):
        """Number of columns (all trailing dimensions flattened)."""
        return product(self._dims[1:])

    @property
    def size(self):
        """Number of elements."""
        return product(self._dims)

    @property
    def is_empty(self):
        return self.size == 0

    @property
    def is_complex(self):
        return False

    @property
    def is_global(self):
        return bool(self.attributes & FLAG_GLOBAL)

    @property
    def is_logical(self):
        return bool(self.attributes & FLAG_LOGICAL)

    @property
    def is_sparse(self):
        return self.mclass == mclasses['mxSPARSE_CLASS']

    @property
    def flags(self):
        """The array flags word: class, complex, global and logical
        bits."""
        flags = self.mclass | self.attributes
        if self.is_complex:
            flags |= FLAG_COMPLEX
        return flags

    @property
    def class_name(self):
        return inv_mclasses.get(self.mclass, 'unknown')

    def index(self, m, n):
        """Column-major index of element (m, n)."""
        if not (0 <= m < self.m and 0 <= n < self.n):
            raise IndexError('Index ({}, {}) out of range for {}'.format(
                m, n, self.dims_string()))
        return m + n * self.m

    def dims_string(self):
        return 'x'.join(str(d) for d in self._dims)

    def content_to_string(self):
        return '{} = <{}>'.format(self.name, self.class_name)

    def __str__(self):
        desc = self.class_name[2:-6].lower()
        if self.is_logical:
            desc = 'sparse logical' if self.is_sparse else 'logical'
        if self.is_complex:
            desc += ' (complex)'
        return '{}: [{}  {} array]'.format(
            self.name, self.dims_string(), desc)

    def __repr__(self):
        return '<{} {}>'.format(type(self).__name__, self)


#
# Numeric arrays
#

class MLNumericArray(MLArray):
    """Numeric array with a real part and an optional imaginary part.

    Subclasses fix the array class, e.g. ``MLDouble(name, dims, real)``.
    Values are given in column-major order.
    """

    class_name_default = None

    def __init__(self, name, dims, real=None, imaginary=None, attributes=0,
                 mclass=None):
        if mclass is None:
            mclass = mclasses[self.class_name_default]
        super().__init__(name, dims, mclass, attributes)
        if self.class_name not in numeric_class_etypes:
            raise ValueError('{} is not a numeric class'.format(
                self.class_name))
        self._real = self._check_buffer(real, 'real')
        self._imaginary = None
        if imaginary is not None:
            self._imaginary = self._check_buffer(imaginary, 'imaginary')

    @classmethod
    def from_values(cls, name, values, m, imaginary=None, attributes=0):
        """Create an array with m rows from column-major values."""
        values = list(values)
        if m and len(values) % m:
            raise DimensionMismatchError(
                '{} values do not fill {} rows'.format(len(values), m))
        dims = (m, len(values) // m) if m else (0, 0)
        return cls(name, dims, values, imaginary, attributes)

    def _zero(self):
        return 0.0 if self.etype in ('miDOUBLE', 'miSINGLE') else 0

    def _check_buffer(self, values, part):
        if values is None:
            return [self._zero()] * self.size
        values = list(values)
        if len(values) != self.size:
            raise DimensionMismatchError(
                '{} part has {} elements, dimensions {} require {}'.format(
                    part, len(values), self.dims_string(), self.size))
        return values

    @property
    def etype(self):
        """Data type used for storing the elements."""
        return numeric_class_etypes[self.class_name]

    @property
    def is_complex(self):
        return self._imaginary is not None

    @property
    def real(self):
        return self._real

    @property
    def imaginary(self):
        return self._imaginary

    def _element(self, m, n):
        if n is None:
            if not 0 <= m < self.size:
                raise IndexError('Index {} out of range'.format(m))
            return m
        return self.index(m, n)

    def get_real(self, m, n=None):
        return self._real[self._element(m, n)]

    def set_real(self, value, m, n=None):
        self._real[self._element(m, n)] = value

    def get_imaginary(self, m, n=None):
        if self._imaginary is None:
            return self._zero()
        return self._imaginary[self._element(m, n)]

    def set_imaginary(self, value, m, n=None):
        if self._imaginary is None:
            self._imaginary = [self._zero()] * self.size
        self._imaginary[self._element(m, n)] = value

    def _pack(self, values, endian):
        return struct.pack('{}{}{}'.format(
            endian, len(values), etypes[self.etype]['fmt']), *values)

    def real_bytes(self, endian='<'):
        return self._pack(self._real, endian)

    def imaginary_bytes(self, endian='<'):
        if self._imaginary is None:
            return b''
        return self._pack(self._imaginary, endian)

    def content_to_string(self):
        lines = [self.name + ' = ']
        if self.size > DISPLAY_MAX:
            lines.append('\tarray too large ({})'.format(self.dims_string()))
            return '\n'.join(lines) + '\n'
        for m in range(self.m):
            row = []
            for n in range(self.n):
                value = str(self.get_real(m, n))
                if self.is_complex:
                    value += '{:+}i'.format(self.get_imaginary(m, n))
                row.append(value)
            lines.append('\t' + '\t'.join(row))
        return '\n'.join(lines) + '\n'


class MLDouble(MLNumericArray):
    class_name_default = 'mxDOUBLE_CLASS'


class MLSingle(MLNumericArray):
    class_name_default = 'mxSINGLE_CLASS'


class MLInt8(MLNumericArray):
    class_name_default = 'mxINT8_CLASS'


class MLUInt8(MLNumericArray):
    class_name_default = 'mxUINT8_CLASS'


class MLInt16(MLNumericArray):
    class_name_default = 'mxINT16_CLASS'


class MLUInt16(MLNumericArray):
    class_name_default = 'mxUINT16_CLASS'


class MLInt32(MLNumericArray):
    class_name_default = 'mxINT32_CLASS'


class MLUInt32(MLNumericArray):
    class_name_default = 'mxUINT32_CLASS'


class MLInt64(MLNumericArray):
    class_name_default = 'mxINT64_CLASS'


class MLUInt64(MLNumericArray):
    class_name_default = 'mxUINT64_CLASS'


# map of numeric array class numbers to array types
numeric_array_types = dict(
    (mclasses[cls.class_name_default], cls) for cls in (
        MLDouble, MLSingle, MLInt8, MLUInt8, MLInt16, MLUInt16,
        MLInt32, MLUInt32, MLInt64, MLUInt64))


class MLEmptyArray(MLDouble):
    """The empty (0x0) double array. Placeholder for cells and struct
    fields that have not been assigned."""

    def __init__(self, name=''):
        super().__init__(name, (0, 0))

    def content_to_string(self):
        return self.name + ' = []\n'


#
# Character arrays
#

class MLChar(MLArray):
    """Character array.

    ``MLChar(name, 'text')`` creates a single row. A list of strings
    creates a character matrix with one row per string, the rows padded
    with spaces to equal length. Characters are stored as UTF-16 code
    units.
    """

    def __init__(self, name, value='', attributes=0):
        if isinstance(value, str):
            rows = [code_units(value)]
        else:
            rows = [code_units(s) for s in value]
        ncols = max([len(r) for r in rows] or [0])
        if len(rows) == 1 and ncols == 0:
            dims = (0, 0)
        else:
            dims = (len(rows), ncols)
        super().__init__(name, dims, mclasses['mxCHAR_CLASS'], attributes)
        space = ord(' ')
        rows = [r + [space] * (ncols - len(r)) for r in rows]
        self._units = [rows[m][n] for n in range(self.n)
                       for m in range(self.m)]

    @classmethod
    def from_code_units(cls, name, dims, units, attributes=0):
        """Create a character array from column-major code units."""
        array = cls.__new__(cls)
        MLArray.__init__(array, name, dims, mclasses['mxCHAR_CLASS'],
                         attributes)
        units = list(units)
        if len(units) != array.size:
            raise DimensionMismatchError(
                '{} characters, dimensions {} require {}'.format(
                    len(units), array.dims_string(), array.size))
        array._units = units
        return array

    @property
    def code_units(self):
        return self._units

    def get_char(self, m, n):
        return chr(self._units[self.index(m, n)])

    def set_char(self, ch, m, n):
        unit = ord(ch)
        if unit > 0xFFFF:
            raise ValueError('{!r} does not fit in one code unit'.format(ch))
        self._units[self.index(m, n)] = unit

    def get_string(self, m):
        if not 0 <= m < self.m:
            raise IndexError('Row {} out of range'.format(m))
        return from_code_units(self._units[m::self.m])

    @property
    def strings(self):
        return [self.get_string(m) for m in range(self.m)]

    @property
    def value(self):
        return '\n'.join(self.strings)

    def content_to_string(self):
        lines = [self.name + ' = ']
        lines.extend("\t'{}'".format(s) for s in self.strings)
        return '\n'.join(lines) + '\n'


#
# Cell arrays
#

class MLCell(MLArray):
    """Cell array. Cells are addressed by column-major index or by
    (row, column), and hold an ``MLEmptyArray`` until assigned."""

    def __init__(self, name, dims, attributes=0):
        super().__init__(name, dims, mclasses['mxCELL_CLASS'], attributes)
        self._cells = [MLEmptyArray() for i in range(self.size)]

    def _cell_index(self, key):
        if isinstance(key, tuple):
            return self.index(*key)
        if not 0 <= key < self.size:
            raise IndexError('Cell index {} out of range'.format(key))
        return key

    def __getitem__(self, key):
        return self._cells[self._cell_index(key)]

    def __setitem__(self, key, value):
        if not isinstance(value, MLArray):
            raise TypeError('Cells can only hold MLArray values')
        self._cells[self._cell_index(key)] = value

    @property
    def cells(self):
        return list(self._cells)

    def content_to_string(self):
        lines = [self.name + ' = ']
        for m in range(self.m):
            lines.append('\t' + '\t'.join(
                self[m, n].content_to_string().strip()
                for n in range(self.n)))
        return '\n'.join(lines) + '\n'


#
# Struct arrays
#

class MLStructure(MLArray):
    """Struct array.

    All elements share the same ordered set of field names:

        s = MLStructure('X', (1, 2))
        s['w', 0] = MLDouble('', (1, 1), [1.0])
        s['w', 1] = MLDouble('', (1, 1), [2.0])

    Adding a field to one element adds it, holding an ``MLEmptyArray``,
    to all others.
    """

    def __init__(self, name, dims, attributes=0):
        super().__init__(name, dims, mclasses['mxSTRUCT_CLASS'], attributes)
        self._fields = []
        # element index -> {field: value}, filled in on first access
        self._elements = {}

    def _element_index(self, m, n=None):
        if n is not None:
            return self.index(m, n)
        if not 0 <= m < self.size:
            raise IndexError('Struct index {} out of range'.format(m))
        return m

    def add_field(self, field):
        """Add a field to all elements of the struct array."""
        if field in self._fields:
            return
        if not field or not is_valid_name(field):
            raise ValueError('Invalid field name "{}"'.format(field))
        self._fields.append(field)

    def set_field(self, field, value, m=0, n=None):
        if not isinstance(value, MLArray):
            raise TypeError('Struct fields can only hold MLArray values')
        index = self._element_index(m, n)
        self.add_field(field)
        self._elements.setdefault(index, {})[field] = value

    def get_field(self, field, m=0, n=None):
        if field not in self._fields:
            raise KeyError(field)
        element = self._elements.setdefault(self._element_index(m, n), {})
        return element.setdefault(field, MLEmptyArray())

    def _key(self, key):
        if isinstance(key, tuple):
            return key[0], key[1:]
        return key, ()

    def __getitem__(self, key):
        field, index = self._key(key)
        return self.get_field(field, *index)

    def __setitem__(self, key, value):
        field, index = self._key(key)
        self.set_field(field, value, *index)

    @property
    def field_names(self):
        return list(self._fields)

    @property
    def max_field_length(self):
        """Length of the longest field name, including a null byte."""
        return max([len(asbytes(f)) for f in self._fields] or [0]) + 1

    def keyset_bytes(self):
        """Field names, null padded to max_field_length and
        concatenated."""
        length = self.max_field_length
        return b''.join(asbytes(f).ljust(length, b'\0')
                        for f in self._fields)

    @property
    def all_fields(self):
        """All field values, element by element, in field order."""
        if not self._fields:
            return []
        return [self.get_field(field, i) for i in range(self.size)
                for field in self._fields]

    def content_to_string(self):
        lines = [self.name + ' = ']
        if self.size == 1:
            for field in self._fields:
                lines.append('\t{} : {}'.format(field, self.get_field(field)))
        else:
            lines.append('\t{} struct array with fields:'.format(
                self.dims_string()))
            lines.extend('\t\t' + field for field in self._fields)
        return '\n'.join(lines) + '\n'


#
# Sparse arrays
#

class MLSparse(MLArray):
    """Two dimensional sparse double array, in column-compressed storage.

    Entries are set one at a time with ``set_real(value, m, n)`` and
    ``set_imaginary(value, m, n)``. The properties ``ir`` and ``jc`` and
    ``export_real()`` give the row indices, column pointers and values
    with entries ordered by column, then row.
    """

    def __init__(self, name, dims, nzmax=0, is_complex=False, attributes=0):
        super().__init__(name, dims, mclasses['mxSPARSE_CLASS'], attributes)
        if len(self.dims) != 2:
            raise ValueError('Sparse arrays must be two dimensional')
        self._nzmax = nzmax
        self._real = {}
        self._imaginary = {} if is_complex else None

    @classmethod
    def from_csc(cls, name, dims, ir, jc, real, imaginary=None, nzmax=0,
                 attributes=0):
        """Create a sparse array from row indices, column pointers and
        values."""
        array = cls(name, dims, nzmax, imaginary is not None, attributes)
        ir, jc, real = list(ir), list(jc), list(real)
        if len(jc) != array.n + 1:
            raise DimensionMismatchError(
                'Expected {} column pointers, got {}'.format(
                    array.n + 1, len(jc)))
        if jc[0] != 0 or any(a > b for a, b in zip(jc, jc[1:])):
            raise DimensionMismatchError(
                'Column pointers must start at 0 and be non-decreasing')
        nnz = jc[-1]
        if len(ir) != nnz or len(real) != nnz or (
                imaginary is not None and len(imaginary) != nnz):
            raise DimensionMismatchError(
                'Sparse array with {} non-zeros has {} row indices and '
                '{} values'.format(nnz, len(ir), len(real)))
        for n in range(array.n):
            for k in range(jc[n], jc[n + 1]):
                if not 0 <= ir[k] < array.m:
                    raise DimensionMismatchError(
                        'Row index {} out of range'.format(ir[k]))
                if k > jc[n] and ir[k] <= ir[k - 1]:
                    raise DimensionMismatchError(
                        'Row indices of column {} are not strictly '
                        'increasing'.format(n))
                array._real[ir[k], n] = real[k]
                if imaginary is not None:
                    array._imaginary[ir[k], n] = imaginary[k]
        return array

    @property
    def is_complex(self):
        return self._imaginary is not None

    def set_real(self, value, m, n):
        self.index(m, n)
        self._real[m, n] = value

    def get_real(self, m, n):
        self.index(m, n)
        return self._real.get((m, n), 0.0)

    def set_imaginary(self, value, m, n):
        self.index(m, n)
        if self._imaginary is None:
            self._imaginary = {}
        self._imaginary[m, n] = value

    def get_imaginary(self, m, n):
        self.index(m, n)
        if self._imaginary is None:
            return 0.0
        return self._imaginary.get((m, n), 0.0)

    def _keys(self):
        keys = set(self._real)
        if self._imaginary is not None:
            keys.update(self._imaginary)
        return sorted(keys, key=lambda k: (k[1], k[0]))

    @property
    def nnz(self):
        return len(self._keys())

    @property
    def nzmax(self):
        return max(self._nzmax, self.nnz)

    @property
    def ir(self):
        return [m for m, n in self._keys()]

    @property
    def jc(self):
        jc = [0] * (self.n + 1)
        for m, n in self._keys():
            jc[n + 1] += 1
        for i in range(self.n):
            jc[i + 1] += jc[i]
        return jc

    def export_real(self):
        return [self._real.get(k, 0.0) for k in self._keys()]

    def export_imaginary(self):
        if self._imaginary is None:
            return []
        return [self._imaginary.get(k, 0.0) for k in self._keys()]

    def content_to_string(self):
        lines = [self.name + ' = ']
        for m, n in self._keys():
            value = str(self._real.get((m, n), 0.0))
            if self.is_complex:
                value += '{:+}i'.format(self._imaginary.get((m, n), 0.0))
            lines.append('\t({},{})\t{}'.format(m + 1, n + 1, value))
        return '\n'.join(lines) + '\n'
