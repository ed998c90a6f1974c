import unittest
import contextlib
import io
import os
import struct
import tempfile
import zlib

import mat5io
from mat5io import (CorruptDataError, DimensionMismatchError, MatFileHeader,
                    MLArray, MLCell, MLChar, MLDouble, MLEmptyArray, MLInt8,
                    MLInt16, MLInt32, MLInt64, MLNumericArray, MLSingle,
                    MLSparse, MLStructure, MLUInt8, MLUInt16, MLUInt32,
                    MLUInt64, OutOfBoundsError, UnsupportedArrayTypeError,
                    loadmat, savemat)
from mat5io import cmd, demo
from mat5io.bytebuffer import ByteBuffer
from mat5io.tags import (FLAG_GLOBAL, FLAG_LOGICAL, mclasses, read_element,
                         read_element_tag, unpack, write_element,
                         write_record)


#
# Helpers for building MAT-file data by hand
#

def element(endian, mtpn, payload):
    """A data element, in small or full format."""
    n = len(payload)
    if 1 <= n <= 4:
        return (struct.pack(endian + 'I', n << 16 | mtpn) +
                payload.ljust(4, b'\0'))
    return (struct.pack(endian + 'II', mtpn, n) + payload +
            b'\0' * ((8 - n % 8) % 8))


def matrix(endian, mclass, dims, name, *elements, flags=0, nzmax=0):
    """A miMATRIX data element."""
    payload = element(endian, 6, struct.pack(endian + 'II', mclass | flags,
                                             nzmax))
    payload += element(endian, 5, struct.pack(
        endian + '{}i'.format(len(dims)), *dims))
    payload += element(endian, 1, name.encode('latin1'))
    payload += b''.join(elements)
    return struct.pack(endian + 'II', 14, len(payload)) + payload


def mat_file(endian, *records):
    indicator = b'IM' if endian == '<' else b'MI'
    return (b'hand made'.ljust(116) + b' ' * 8 +
            struct.pack(endian + 'H', 0x0100) + indicator + b''.join(records))


def write(arrays, compress=False, endian='<', description='test'):
    fd = io.BytesIO()
    savemat(fd, arrays, compress=compress, endian=endian,
            description=description)
    return fd.getvalue()


def read(data, strict=True):
    return loadmat(io.BytesIO(data), strict=strict)


class ArrayAssertions(object):

    def assertArrayEqual(self, a, b):
        self.assertEqual(a.name, b.name)
        self.assertEqual(a.dims, b.dims)
        self.assertEqual(a.mclass, b.mclass)
        self.assertEqual(a.flags, b.flags)
        if isinstance(a, MLNumericArray):
            self.assertIsInstance(b, MLNumericArray)
            self.assertEqual(a.real, b.real)
            self.assertEqual(a.imaginary, b.imaginary)
        elif isinstance(a, MLChar):
            self.assertEqual(a.code_units, b.code_units)
        elif isinstance(a, MLCell):
            for x, y in zip(a.cells, b.cells):
                self.assertArrayEqual(x, y)
        elif isinstance(a, MLStructure):
            self.assertEqual(a.field_names, b.field_names)
            self.assertEqual(len(a.all_fields), len(b.all_fields))
            for x, y in zip(a.all_fields, b.all_fields):
                self.assertArrayEqual(x, y)
        elif isinstance(a, MLSparse):
            self.assertEqual(a.ir, b.ir)
            self.assertEqual(a.jc, b.jc)
            self.assertEqual(a.export_real(), b.export_real())
            self.assertEqual(a.export_imaginary(), b.export_imaginary())
            self.assertEqual(a.nzmax, b.nzmax)
        else:
            self.fail('Unexpected array {!r}'.format(a))


class TestByteBuffer(unittest.TestCase):

    values = [
        ('uint8', 255), ('int8', -128), ('uint16', 65535),
        ('int16', -32768), ('uint32', 2 ** 32 - 1), ('int32', -2 ** 31),
        ('uint64', 2 ** 64 - 1), ('int64', -2 ** 63), ('float32', 1.5),
        ('float64', -2.25)
    ]

    def test_put_get(self):
        """Test writing and reading back every value type"""
        for endian in ('<', '>'):
            with self.subTest(endian=endian):
                buf = ByteBuffer(endian=endian)
                for kind, value in self.values:
                    getattr(buf, 'put_' + kind)(value)
                self.assertEqual(len(buf), 42)
                self.assertEqual(buf.remaining(), 0)
                buf.rewind()
                for kind, value in self.values:
                    self.assertEqual(getattr(buf, 'get_' + kind)(), value)
                self.assertEqual(buf.remaining(), 0)

    def test_byte_order(self):
        buf = ByteBuffer(endian='>')
        buf.put_uint32(1)
        self.assertEqual(buf.getvalue(), b'\0\0\0\1')
        buf = ByteBuffer(endian='<')
        buf.put_uint32(1)
        self.assertEqual(buf.getvalue(), b'\1\0\0\0')
        with self.assertRaises(ValueError):
            ByteBuffer(endian='=')

    def test_out_of_bounds(self):
        buf = ByteBuffer(b'\x01\x02', '<')
        with self.assertRaises(OutOfBoundsError):
            buf.get_uint32()
        # failed reads do not move the position
        self.assertEqual(buf.get_uint16(), 0x0201)
        with self.assertRaises(CorruptDataError):
            buf.get_bytes(1)
        with self.assertRaises(IndexError):
            buf.seek(3)

    def test_pad_and_slice(self):
        buf = ByteBuffer(endian='<')
        buf.put_bytes(b'abc')
        buf.pad(8)
        self.assertEqual(buf.getvalue(), b'abc\0\0\0\0\0')
        buf.rewind()
        part = buf.slice(3)
        self.assertEqual(part.getvalue(), b'abc')
        self.assertEqual(part.endian, '<')
        self.assertEqual(buf.tell(), 3)
        self.assertEqual(buf.remaining(), 5)

    def test_bulk_values(self):
        buf = ByteBuffer(endian='>')
        buf.put_array('h', [1, -2, 3])
        buf.rewind()
        self.assertEqual(buf.get_array('h', 3), [1, -2, 3])


class TestTags(unittest.TestCase):

    def test_small_data_element(self):
        """Test that 1 to 4 bytes of data use the small element format"""
        for n in range(1, 5):
            with self.subTest(num_bytes=n):
                buf = ByteBuffer(endian='<')
                write_element(buf, 'miINT8', b'x' * n)
                data = buf.getvalue()
                self.assertEqual(len(data), 8)
                self.assertEqual(struct.unpack('<I', data[:4])[0],
                                 n << 16 | 1)
                self.assertEqual(data[4:], (b'x' * n).ljust(4, b'\0'))

    def test_full_data_element(self):
        """Test that 0 or more than 4 bytes use the full format"""
        for n in (0, 5, 7, 8, 9, 16, 17):
            with self.subTest(num_bytes=n):
                buf = ByteBuffer(endian='>')
                write_element(buf, 'miUINT8', b'y' * n)
                data = buf.getvalue()
                self.assertEqual(struct.unpack('>II', data[:8]), (2, n))
                self.assertEqual(len(data) % 8, 0)
                self.assertEqual(len(data), 8 + n + (8 - n % 8) % 8)
                self.assertEqual(data[8 + n:], b'\0' * (len(data) - 8 - n))

    def test_read_element(self):
        for endian in ('<', '>'):
            for n in range(12):
                with self.subTest(endian=endian, num_bytes=n):
                    buf = ByteBuffer(endian=endian)
                    write_element(buf, 'miINT8', bytes(range(1, n + 1)))
                    buf.put_uint32(0xDEAD)
                    buf.rewind()
                    mtpn, data = read_element(buf, ['miINT8'])
                    self.assertEqual(mtpn, 1)
                    self.assertEqual(data, bytes(range(1, n + 1)))
                    # cursor is left after the padding
                    self.assertEqual(buf.get_uint32(), 0xDEAD)

    def test_small_element_size_too_large(self):
        buf = ByteBuffer(struct.pack('<I', 5 << 16 | 1) + b'\0' * 4, '<')
        with self.assertRaises(CorruptDataError):
            read_element_tag(buf)

    def test_unexpected_type(self):
        buf = ByteBuffer(endian='<')
        write_element(buf, 'miINT8', b'abc')
        buf.rewind()
        with self.assertRaises(CorruptDataError):
            read_element(buf, ['miUINT32'])

    def test_unpack(self):
        data = struct.pack('>2d', 1.5, -3.0)
        self.assertEqual(unpack('>', 9, data), [1.5, -3.0])
        with self.assertRaises(DimensionMismatchError):
            unpack('<', 9, b'\0' * 12)
        with self.assertRaises(CorruptDataError):
            unpack('<', 14, b'\0' * 8)

    def test_record_is_not_padded(self):
        buf = ByteBuffer(endian='<')
        write_record(buf, 'miMATRIX', b'abc')
        self.assertEqual(buf.getvalue(), struct.pack('<II', 14, 3) + b'abc')


class TestHeader(unittest.TestCase):

    def test_header_size(self):
        self.assertEqual(len(MatFileHeader.create().to_bytes()), 128)
        data = MatFileHeader.create('x' * 200).to_bytes()
        self.assertEqual(len(data), 128)
        self.assertEqual(data[:116], b'x' * 116)
        data = MatFileHeader.create('abc').to_bytes()
        self.assertEqual(data[:116], b'abc'.ljust(116))
        self.assertEqual(data[116:124], b' ' * 8)

    def test_default_description(self):
        header = MatFileHeader.create()
        self.assertTrue(header.description.startswith('MATLAB 5.0 MAT-file'))

    def test_endian_indicator(self):
        data = MatFileHeader.create('a', '<').to_bytes()
        self.assertEqual(data[124:], b'\x00\x01IM')
        data = MatFileHeader.create('a', '>').to_bytes()
        self.assertEqual(data[124:], b'\x01\x00MI')

    def test_parse(self):
        for endian in ('<', '>'):
            with self.subTest(endian=endian):
                header = MatFileHeader.parse(
                    MatFileHeader.create('some text', endian).to_bytes())
                self.assertEqual(header.description, 'some text')
                self.assertEqual(header.byteorder, endian)
                self.assertEqual(header.version, 0x0100)
                self.assertEqual(header.version_string, '1.0')
                self.assertIn('some text', str(header))

    def test_parse_invalid(self):
        valid = MatFileHeader.create('a', '<').to_bytes()
        with self.assertRaises(CorruptDataError):
            MatFileHeader.parse(valid[:100])
        with self.assertRaises(CorruptDataError):
            MatFileHeader.parse(valid[:126] + b'XX')
        with self.assertRaises(CorruptDataError):
            MatFileHeader.parse(valid[:124] + b'\x00\x02IM')

    def test_not_a_mat_file(self):
        with self.assertRaises(CorruptDataError):
            read(b'not a MAT-file')
        with self.assertRaises(IOError):
            read(b'\0' * 200)

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(IOError):
                loadmat(os.path.join(tmp, 'missing.mat'))


class TestArrays(unittest.TestCase):

    def test_numeric_array(self):
        a = MLDouble('a', (2, 3))
        self.assertEqual(a.size, 6)
        self.assertEqual(a.real, [0.0] * 6)
        self.assertFalse(a.is_complex)
        self.assertIsNone(a.imaginary)
        a.set_real(5.0, 1, 2)
        self.assertEqual(a.real[5], 5.0)
        self.assertEqual(a.get_real(5), 5.0)
        self.assertEqual(a.get_real(1, 2), 5.0)
        self.assertEqual(a.flags, 6)
        a.set_imaginary(1.0, 0, 0)
        self.assertTrue(a.is_complex)
        self.assertEqual(a.flags, 6 | 0x0800)
        self.assertEqual(len(a.real_bytes()), 48)
        self.assertEqual(len(a.imaginary_bytes()), 48)
        with self.assertRaises(IndexError):
            a.get_real(2, 0)

    def test_buffer_sizes(self):
        self.assertEqual(len(MLInt16('a', (2, 2)).real_bytes()), 8)
        self.assertEqual(len(MLUInt64('a', (3, 1)).real_bytes()), 24)
        self.assertEqual(MLInt32('a', (1, 1)).imaginary_bytes(), b'')

    def test_from_values(self):
        a = MLDouble.from_values('a', [1.0, 2.0, 3.0, 4.0, 5.0, 6.0], 3)
        self.assertEqual(a.dims, (3, 2))
        self.assertEqual(a.get_real(0, 1), 4.0)
        a = MLInt64.from_values('IA', [1, 2], 1, [3, 4])
        self.assertEqual(a.dims, (1, 2))
        self.assertTrue(a.is_complex)
        with self.assertRaises(DimensionMismatchError):
            MLDouble.from_values('a', [1.0, 2.0, 3.0], 2)

    def test_invalid_arrays(self):
        with self.assertRaises(DimensionMismatchError):
            MLDouble('a', (2, 2), [1.0])
        with self.assertRaises(DimensionMismatchError):
            MLDouble('a', (1, 2), [1.0, 2.0], [1.0])
        with self.assertRaises(ValueError):
            MLDouble('a' * 64, (1, 1))
        with self.assertRaises(ValueError):
            MLDouble('α', (1, 1))
        with self.assertRaises(ValueError):
            MLChar('caf\xe9', 'x')
        with self.assertRaises(ValueError):
            MLDouble('a', (3,))
        with self.assertRaises(ValueError):
            MLDouble('a', (1, -1))
        with self.assertRaises(ValueError):
            MLNumericArray('a', (1, 1), mclass=mclasses['mxCELL_CLASS'])

    def test_flags(self):
        a = MLUInt8('b', (1, 2), [1, 0], attributes=FLAG_LOGICAL)
        self.assertTrue(a.is_logical)
        self.assertFalse(a.is_global)
        self.assertEqual(a.flags, 9 | 0x0200)
        a = MLDouble('g', (1, 1), [1.0], attributes=FLAG_GLOBAL)
        self.assertTrue(a.is_global)
        self.assertEqual(a.flags, 6 | 0x0400)
        self.assertFalse(a.is_sparse)
        self.assertTrue(MLSparse('s', (1, 1)).is_sparse)

    def test_char_array(self):
        c = MLChar('AName', 'Hello')
        self.assertEqual(c.dims, (1, 5))
        self.assertEqual(c.value, 'Hello')
        self.assertEqual(c.get_char(0, 1), 'e')
        c = MLChar('c', ['ab', 'cde'])
        self.assertEqual(c.dims, (2, 3))
        self.assertEqual(c.strings, ['ab ', 'cde'])
        self.assertEqual(c.get_char(0, 1), 'b')
        # column-major code units
        self.assertEqual(c.code_units, [ord(x) for x in 'acbd e'])
        c.set_char('x', 0, 2)
        self.assertEqual(c.get_string(0), 'abx')
        self.assertEqual(MLChar('', '').dims, (0, 0))
        with self.assertRaises(DimensionMismatchError):
            MLChar.from_code_units('c', (1, 3), [65, 66])

    def test_cell_array(self):
        cell = MLCell('c', (2, 2))
        self.assertTrue(all(isinstance(x, MLEmptyArray) for x in cell.cells))
        x = MLChar('', 'x')
        cell[1, 0] = x
        self.assertIs(cell[1], x)
        y = MLChar('', 'y')
        cell[0, 1] = y
        self.assertIs(cell[2], y)
        with self.assertRaises(IndexError):
            cell[4]
        with self.assertRaises(IndexError):
            cell[2, 0]
        with self.assertRaises(TypeError):
            cell[0] = 'not an array'

    def test_struct_array(self):
        s = MLStructure('s', (1, 2))
        x = MLDouble('', (1, 1), [1.0])
        s['a', 1] = x
        self.assertEqual(s.field_names, ['a'])
        self.assertIs(s['a', 1], x)
        self.assertIsInstance(s['a', 0], MLEmptyArray)
        y = MLDouble('', (1, 1), [2.0])
        s['b'] = y
        self.assertIs(s.get_field('b', 0), y)
        self.assertIs(s['b', 0, 0], y)
        self.assertEqual(s.field_names, ['a', 'b'])
        fields = s.all_fields
        self.assertEqual(len(fields), 4)
        self.assertIs(fields[1], y)
        self.assertIs(fields[2], x)
        self.assertEqual(s.max_field_length, 2)
        self.assertEqual(s.keyset_bytes(), b'a\0b\0')
        with self.assertRaises(KeyError):
            s['c']
        with self.assertRaises(ValueError):
            s.add_field('')
        with self.assertRaises(ValueError):
            s.add_field('f' * 64)
        with self.assertRaises(ValueError):
            s['β'] = y
        self.assertEqual(s.field_names, ['a', 'b'])

    def test_struct_field_consistency(self):
        """Test that all elements have the same fields, in order"""
        s = MLStructure('s', (2, 2))
        s.set_field('one', MLChar('', 'a'), 3)
        s.set_field('two', MLChar('', 'b'), 0)
        s.set_field('three', MLChar('', 'c'), 1, 1)
        for i in range(4):
            self.assertEqual(
                [f for f in s.field_names if s.get_field(f, i) is not None],
                ['one', 'two', 'three'])
        self.assertEqual(len(s.all_fields), 12)

    def test_sparse_array(self):
        s = demo.create_sparse_array()
        self.assertEqual(s.ir, [0, 1, 2])
        self.assertEqual(s.jc, [0, 1, 2, 3])
        self.assertEqual(s.export_real(), [1.5, 2.5, 3.5])
        self.assertEqual(s.nnz, 3)
        self.assertEqual(s.get_real(1, 1), 2.5)
        self.assertEqual(s.get_real(0, 1), 0.0)

        s = MLSparse('s', (3, 4), nzmax=10)
        s.set_real(4.0, 2, 3)
        s.set_real(2.0, 2, 0)
        s.set_real(1.0, 0, 0)
        s.set_imaginary(3.0, 1, 2)
        self.assertTrue(s.is_complex)
        self.assertEqual(s.ir, [0, 2, 1, 2])
        self.assertEqual(s.jc, [0, 2, 2, 3, 4])
        self.assertEqual(s.export_real(), [1.0, 2.0, 0.0, 4.0])
        self.assertEqual(s.export_imaginary(), [0.0, 0.0, 3.0, 0.0])
        self.assertEqual(s.nzmax, 10)
        with self.assertRaises(IndexError):
            s.set_real(1.0, 3, 0)
        with self.assertRaises(ValueError):
            MLSparse('s', (2, 2, 2))

    def test_sparse_invariants(self):
        """Test the column-compressed storage of sparse arrays"""
        s = MLSparse('s', (5, 4))
        for m, n in [(4, 3), (0, 0), (2, 0), (3, 2), (1, 3)]:
            s.set_real(float(m + n), m, n)
        jc = s.jc
        self.assertEqual(len(jc), s.n + 1)
        self.assertEqual(jc[0], 0)
        self.assertEqual(jc[-1], s.nnz)
        self.assertTrue(all(a <= b for a, b in zip(jc, jc[1:])))
        for n in range(s.n):
            for k in range(jc[n], jc[n + 1]):
                self.assertTrue(0 <= s.ir[k] < s.m)
                self.assertEqual(s.export_real()[k], float(s.ir[k] + n))

    def test_from_csc(self):
        s = MLSparse.from_csc('s', (3, 2), [0, 2, 1], [0, 2, 3],
                              [1.0, 2.0, 3.0])
        self.assertEqual(s.get_real(2, 0), 2.0)
        self.assertEqual(s.get_real(1, 1), 3.0)
        invalid = [
            ([0], [0, 1], [1.0]),           # too few column pointers
            ([0], [1, 1, 1], [1.0]),        # not starting at 0
            ([0, 1], [0, 2, 1], [1.0, 2.0]),  # decreasing
            ([0, 3], [0, 1, 2], [1.0, 2.0]),  # row out of range
            ([0, 1], [0, 1, 2], [1.0]),     # missing value
            ([1, 1], [0, 2, 2], [1.0, 2.0]),  # repeated row
            ([2, 0], [0, 2, 2], [1.0, 2.0]),  # rows not increasing
        ]
        for ir, jc, real in invalid:
            with self.subTest(ir=ir, jc=jc):
                with self.assertRaises(DimensionMismatchError):
                    MLSparse.from_csc('s', (3, 2), ir, jc, real)

    def test_content_to_string(self):
        for array in demo.create_samples():
            with self.subTest(name=array.name):
                text = array.content_to_string()
                self.assertTrue(text.startswith(array.name + ' = '))
                self.assertIn(array.name, str(array))
        self.assertIn('Hello', demo.create_cell_array().content_to_string())
        self.assertIn('(3,3)\t3.5',
                      demo.create_sparse_array().content_to_string())
        self.assertIn('[3x3  sparse array]', str(demo.create_sparse_array()))


class TestRoundTrip(ArrayAssertions, unittest.TestCase):

    def test_samples(self):
        """Test writing all sample arrays, and reading them again"""
        arrays = demo.create_samples()
        for compress in (False, True):
            for endian in ('<', '>'):
                with self.subTest(compress=compress, endian=endian):
                    header, result = read(write(arrays, compress, endian))
                    self.assertEqual(header.byteorder, endian)
                    self.assertEqual(header.description, 'test')
                    self.assertEqual(len(result), len(arrays))
                    for a, b in zip(arrays, result):
                        self.assertArrayEqual(a, b)

    def test_double_array(self):
        data = write([demo.create_double_array()])
        header, arrays = read(data)
        self.assertEqual(len(arrays), 1)
        a = arrays[0]
        self.assertIsInstance(a, MLDouble)
        self.assertEqual(a.name, 'Double')
        self.assertEqual(a.dims, (2, 1))
        self.assertEqual(a.real, [1.7976931348623157e308,
                                  -1.7976931348623157e308])

    def test_cell_of_strings(self):
        words = ['Hello', 'World', 'I am', 'a', 'MAT-file']
        for compress in (False, True):
            with self.subTest(compress=compress):
                header, arrays = read(write([demo.create_cell_array()],
                                            compress))
                cell = arrays[0]
                self.assertIsInstance(cell, MLCell)
                self.assertEqual(cell.dims, (5, 1))
                self.assertEqual([c.value for c in cell.cells], words)

    def test_sparse_diagonal(self):
        for compress in (False, True):
            with self.subTest(compress=compress):
                header, arrays = read(write([demo.create_sparse_array()],
                                            compress))
                s = arrays[0]
                self.assertIsInstance(s, MLSparse)
                self.assertEqual(s.ir, [0, 1, 2])
                self.assertEqual(s.jc, [0, 1, 2, 3])
                self.assertEqual(s.export_real(), [1.5, 2.5, 3.5])
                self.assertEqual(s.nnz, 3)
                self.assertEqual(s.nzmax, 3)

    def test_complex_arrays(self):
        arrays = [
            MLDouble('d', (1, 2), [1.5, -2.5], [0.25, 4.0]),
            MLSingle('s', (2, 1), [1.5, -2.5], [0.25, 4.0]),
            MLInt8('i8', (1, 3), [1, -2, 3], [4, 5, -6]),
            MLUInt8('u8', (1, 3), [1, 2, 3], [4, 5, 6]),
            MLInt16('i16', (1, 1), [-300], [300]),
            MLUInt16('u16', (1, 1), [60000], [1]),
            MLInt32('i32', (1, 2), [-70000, 1], [70000, 2]),
            MLUInt32('u32', (1, 2), [1, 2], [3, 4]),
            MLInt64('i64', (2, 2), [1, 2, 3, 4], [5, 6, 7, 8]),
            MLUInt64('u64', (1, 1), [2 ** 64 - 1], [0]),
            MLSparse.from_csc('sp', (2, 2), [1], [0, 0, 1], [1.0], [-1.0]),
        ]
        for compress in (False, True):
            with self.subTest(compress=compress):
                header, result = read(write(arrays, compress, '>'))
                for a, b in zip(arrays, result):
                    self.assertTrue(b.is_complex)
                    self.assertArrayEqual(a, b)

    def test_multi_dimensional(self):
        arrays = [MLDouble('nd', (2, 2, 2), [float(i) for i in range(8)]),
                  MLCell('c3', (1, 2, 2))]
        header, result = read(write(arrays))
        for a, b in zip(arrays, result):
            self.assertArrayEqual(a, b)

    def test_nested_arrays(self):
        inner = MLStructure('', (1, 1))
        inner['value'] = MLInt32('', (1, 1), [42])
        cell = MLCell('', (1, 2))
        cell[0] = inner
        cell[1] = MLChar('', ['row one', 'row 2'])
        s = MLStructure('outer', (2, 1))
        for i in range(2):
            s['zeta', i] = MLDouble('', (1, 1), [float(i)])
            s['alpha', i] = cell
            s['mid', i] = MLChar('', 'element {}'.format(i))
        for compress in (False, True):
            with self.subTest(compress=compress):
                header, result = read(write([s], compress))
                self.assertEqual(result[0].field_names,
                                 ['zeta', 'alpha', 'mid'])
                self.assertEqual(result[0]['mid', 1].value, 'element 1')
                self.assertEqual(
                    result[0]['alpha', 0][0]['value'].real, [42])
                self.assertArrayEqual(s, result[0])

    def test_empty_arrays(self):
        s = MLStructure('s', (0, 0))
        s.add_field('a')
        arrays = [MLEmptyArray('e'), MLCell('c', (1, 2)), MLChar('ch', ''),
                  s, MLSparse('sp', (2, 2)), MLInt8('i', (0, 3))]
        header, result = read(write(arrays))
        self.assertIsInstance(result[0], MLEmptyArray)
        self.assertIsInstance(result[1][1], MLEmptyArray)
        self.assertEqual(result[3].field_names, ['a'])
        for a, b in zip(arrays, result):
            self.assertArrayEqual(a, b)

    def test_flags(self):
        arrays = [
            MLUInt8('logical', (1, 2), [1, 0], attributes=FLAG_LOGICAL),
            MLDouble('global', (1, 1), [3.0], attributes=FLAG_GLOBAL)
        ]
        header, result = read(write(arrays, True))
        self.assertTrue(result[0].is_logical)
        self.assertTrue(result[1].is_global)
        for a, b in zip(arrays, result):
            self.assertArrayEqual(a, b)

    def test_compression_equivalence(self):
        arrays = demo.create_samples()
        plain = write(arrays, False)
        compressed = write(arrays, True)
        self.assertNotEqual(plain, compressed)
        plain_arrays = read(plain)[1]
        compressed_arrays = read(compressed)[1]
        for a, b in zip(plain_arrays, compressed_arrays):
            self.assertArrayEqual(a, b)

    def test_uncompressed_layout(self):
        """Test the exact bytes written for a small array"""
        data = write([MLDouble('x', (1, 1), [1.0])], False, '<')
        expected = matrix('<', 6, (1, 1), 'x',
                          element('<', 9, struct.pack('<d', 1.0)))
        self.assertEqual(data[128:], expected)

        s = MLStructure('s', (1, 1))
        s['a'] = MLEmptyArray()
        data = write([s], False, '>')
        expected = matrix(
            '>', 2, (1, 1), 's',
            element('>', 5, struct.pack('>i', 2)),
            element('>', 1, b'a\0'),
            matrix('>', 6, (0, 0), '', element('>', 9, b'')))
        self.assertEqual(data[128:], expected)

    def test_compressed_layout(self):
        """Test that compressed elements are standard zlib streams"""
        array = demo.create_cell_array()
        for endian in ('<', '>'):
            with self.subTest(endian=endian):
                plain = write([array], False, endian)
                data = write([array], True, endian)
                mtpn, size = struct.unpack(endian + 'II', data[128:136])
                self.assertEqual(mtpn, 15)
                self.assertEqual(len(data), 136 + size)
                payload = data[136:]
                self.assertEqual(payload[:2], b'\x78\x9c')
                self.assertEqual(zlib.decompress(payload), plain[128:])
                self.assertEqual(
                    struct.unpack('>I', payload[-4:])[0],
                    zlib.adler32(plain[128:]) & 0xFFFFFFFF)

    def test_rewrite(self):
        """Test that read arrays are written to identical bytes"""
        for compress in (False, True):
            with self.subTest(compress=compress):
                data = write(demo.create_samples(), compress)
                self.assertEqual(write(read(data)[1], compress), data)

    def test_files(self):
        """Test writing and reading files by name and by file object"""
        arrays = demo.create_samples(['char', 'struct'])
        with tempfile.TemporaryDirectory() as tmp:
            filename = os.path.join(tmp, 'test.mat')
            savemat(filename, arrays)
            header, result = loadmat(filename)
            self.assertEqual([a.name for a in result], ['AName', 'X'])
            with open(filename, 'wb') as fileobj:
                savemat(fileobj, arrays, compress=False)
                self.assertFalse(fileobj.closed)
            with open(filename, 'rb') as fileobj:
                header, result = loadmat(fileobj)
            for a, b in zip(arrays, result):
                self.assertArrayEqual(a, b)


class TestCorruptData(ArrayAssertions, unittest.TestCase):

    def test_flipped_payload_byte(self):
        """Test that a damaged compressed element is not silently read"""
        data = write([demo.create_cell_array()], True)
        size = struct.unpack('<I', data[132:136])[0]
        for offset in range(2, size - 5, 7):
            with self.subTest(offset=offset):
                damaged = bytearray(data)
                damaged[136 + offset] ^= 0xFF
                with self.assertRaises(CorruptDataError):
                    read(bytes(damaged))

    def test_checksum_mismatch(self):
        array = demo.create_char_array()
        damaged = bytearray(write([array], True))
        damaged[-1] ^= 0xFF
        with self.assertRaises(CorruptDataError):
            read(bytes(damaged))
        with self.assertLogs('mat5io.loadmat', level='WARNING') as logs:
            header, arrays = read(bytes(damaged), strict=False)
        self.assertIn('checksum mismatch', logs.output[0])
        self.assertArrayEqual(array, arrays[0])

    def test_little_endian_checksum(self):
        """Test reading a checksum stored in little endian byte order"""
        plain = write([demo.create_char_array()], False)
        deflated = zlib.compress(plain[128:])
        payload = deflated[:-4] + struct.pack(
            '<I', zlib.adler32(plain[128:]) & 0xFFFFFFFF)
        data = plain[:128] + struct.pack('<II', 15, len(payload)) + payload
        header, arrays = read(data)
        self.assertEqual(arrays[0].value, 'Hello World v4.0!')

    def test_invalid_compressed_data(self):
        plain = write([demo.create_char_array()], False)
        deflated = zlib.compress(plain[128:])
        cases = [
            b'\x78\x9d' + deflated[2:],     # invalid header check
            deflated[:-6],                  # truncated stream
            deflated + b'\0',               # data after checksum
            b'\x78',                        # too short
        ]
        for payload in cases:
            with self.subTest(payload=payload[:4]):
                data = (plain[:128] + struct.pack('<II', 15, len(payload)) +
                        payload)
                with self.assertRaises(CorruptDataError):
                    read(data, strict=False)

    def test_compressed_non_matrix(self):
        payload = zlib.compress(struct.pack('<II', 9, 8) + b'\0' * 8)
        data = mat_file('<', struct.pack('<II', 15, len(payload)) + payload)
        with self.assertRaises(CorruptDataError):
            read(data)

    def test_truncated_file(self):
        data = write(demo.create_samples(['double', 'char']), False)
        for end in (len(data) - 3, len(data) - 60, 131):
            with self.subTest(end=end):
                with self.assertRaises(CorruptDataError):
                    read(data[:end])

    def test_dimension_mismatch(self):
        """Test reading data that does not match the dimensions"""
        data = mat_file('<', matrix(
            '<', 6, (3, 1), 'x',
            element('<', 9, struct.pack('<2d', 1.0, 2.0))))
        with self.assertRaises(DimensionMismatchError):
            read(data)
        # complex array with a short imaginary part
        data = mat_file('>', matrix(
            '>', 12, (1, 2), 'y',
            element('>', 5, struct.pack('>2i', 1, 2)),
            element('>', 5, struct.pack('>i', 3)), flags=0x0800))
        with self.assertRaises(DimensionMismatchError):
            read(data)
        data = mat_file('<', matrix(
            '<', 4, (1, 3), 'c', element('<', 4, 'ab'.encode('utf-16-le'))))
        with self.assertRaises(DimensionMismatchError):
            read(data)

    def test_write_dimension_mismatch(self):
        a = MLDouble('a', (1, 2), [1.0, 2.0], [3.0, 4.0])
        a.imaginary.pop()
        with self.assertRaises(DimensionMismatchError):
            write([a])
        b = MLInt8('b', (1, 2), [1, 2])
        b.real.append(3)
        with self.assertRaises(DimensionMismatchError):
            write([b], True)

    def test_value_out_of_range(self):
        with self.assertRaises(ValueError):
            write([MLUInt8('u', (1, 1), [256])])


class TestUnsupported(unittest.TestCase):

    def test_write_unsupported(self):
        unsupported = [
            MLArray('obj', (1, 1), mclasses['mxOBJECT_CLASS']),
            MLArray('fn', (1, 1), mclasses['mxFUNCTION_CLASS']),
            MLArray('dbl', (1, 1), mclasses['mxDOUBLE_CLASS']),
            42,
        ]
        for array in unsupported:
            with self.subTest(array=array):
                with self.assertRaises(UnsupportedArrayTypeError):
                    write([demo.create_char_array(), array])
        cell = MLCell('c', (1, 1))
        cell[0] = unsupported[0]
        with self.assertRaises(UnsupportedArrayTypeError):
            write([cell], True)
        with self.assertRaises(ValueError):
            write(demo.create_char_array())

    def test_write_failure_releases_file(self):
        class Sink(io.BytesIO):
            flushed = False

            def flush(self):
                self.flushed = True
                super().flush()

        sink = Sink()
        with self.assertRaises(UnsupportedArrayTypeError):
            savemat(sink, [MLArray('obj', (1, 1), 3)])
        self.assertTrue(sink.flushed)
        self.assertFalse(sink.closed)

        with tempfile.TemporaryDirectory() as tmp:
            filename = os.path.join(tmp, 'bad.mat')
            with self.assertRaises(UnsupportedArrayTypeError):
                savemat(filename, [MLArray('obj', (1, 1), 3)],
                        description='bad')
            # the header was written and the file closed
            with open(filename, 'rb') as fileobj:
                self.assertEqual(len(fileobj.read()), 128)

    def test_read_unsupported(self):
        for mclass in (3, 16, 17, 99):
            with self.subTest(mclass=mclass):
                data = mat_file('<', matrix('<', mclass, (1, 1), 'x'))
                with self.assertRaises(UnsupportedArrayTypeError):
                    read(data)


class TestHandMadeFiles(unittest.TestCase):
    """Read files built byte by byte, independent of the writer"""

    def test_big_endian_file(self):
        data = mat_file(
            '>',
            matrix('>', 10, (1, 2), 'ab',
                   element('>', 3, struct.pack('>2h', 1, -1))),
            matrix('>', 4, (1, 2), 'c', element('>', 16, b'hi')),
            # double array stored as uint8
            matrix('>', 6, (1, 3), 'd', element('>', 2, b'\x01\x02\x03')),
            # cell with an empty element stored without array header
            matrix('>', 1, (1, 1), 'e', struct.pack('>II', 14, 0)))
        header, arrays = read(data)
        self.assertEqual(header.byteorder, '>')
        self.assertEqual(header.description, 'hand made')
        self.assertEqual([a.name for a in arrays], ['ab', 'c', 'd', 'e'])
        self.assertIsInstance(arrays[0], MLInt16)
        self.assertEqual(arrays[0].real, [1, -1])
        self.assertEqual(arrays[1].value, 'hi')
        self.assertIsInstance(arrays[2], MLDouble)
        self.assertEqual(arrays[2].real, [1.0, 2.0, 3.0])
        self.assertIsInstance(arrays[3][0], MLEmptyArray)

    def test_sparse_with_nzmax_entries(self):
        """Test a sparse array with row indices and values stored for
        nzmax elements"""
        data = mat_file('<', matrix(
            '<', 5, (2, 2), 's',
            element('<', 5, struct.pack('<4i', 1, 0, 0, 0)),
            element('<', 5, struct.pack('<3i', 0, 1, 2)),
            element('<', 9, struct.pack('<4d', 7.0, 8.0, 0.0, 0.0)),
            nzmax=4))
        header, arrays = read(data)
        s = arrays[0]
        self.assertEqual(s.ir, [1, 0])
        self.assertEqual(s.jc, [0, 1, 2])
        self.assertEqual(s.export_real(), [7.0, 8.0])
        self.assertEqual(s.nzmax, 4)

    def test_struct_field_names(self):
        names = b'first'.ljust(32, b'\0') + b'second'.ljust(32, b'\0')
        data = mat_file('<', matrix(
            '<', 2, (1, 1), 'st',
            element('<', 5, struct.pack('<i', 32)),
            element('<', 1, names),
            matrix('<', 6, (1, 1), '', element('<', 9, struct.pack('<d', 1))),
            matrix('<', 4, (1, 1), '', element('<', 4, b'z\0'))))
        header, arrays = read(data)
        s = arrays[0]
        self.assertEqual(s.field_names, ['first', 'second'])
        self.assertEqual(s['first'].real, [1.0])
        self.assertEqual(s['second'].value, 'z')

    def test_invalid_struct(self):
        data = mat_file('<', matrix(
            '<', 2, (1, 1), 'st',
            element('<', 5, struct.pack('<i', 4)),
            element('<', 1, b'abcdef')))
        with self.assertRaises(CorruptDataError):
            read(data)

    def test_oversized_containers(self):
        """Test cell and struct arrays with dimensions that the stored
        data cannot fill"""
        dims = (60000, 60000)
        cell = mat_file('<', matrix('<', 1, dims, 'c'))
        field = mat_file('<', matrix(
            '<', 2, dims, 's',
            element('<', 5, struct.pack('<i', 2)),
            element('<', 1, b'a\0'),
            matrix('<', 6, (0, 0), '', element('<', 9, b''))))
        for data in (cell, field):
            with self.assertRaises(CorruptDataError):
                read(data)

        # without fields there is nothing to store
        header, arrays = read(mat_file('<', matrix(
            '<', 2, dims, 's',
            element('<', 5, struct.pack('<i', 1)),
            element('<', 1, b''))))
        self.assertEqual(arrays[0].size, 60000 * 60000)
        self.assertEqual(arrays[0].field_names, [])
        self.assertEqual(arrays[0].all_fields, [])

    def test_invalid_names(self):
        long_field = mat_file('<', matrix(
            '<', 2, (1, 1), 's',
            element('<', 5, struct.pack('<i', 72)),
            element('<', 1, b'f' * 71 + b'\0'),
            matrix('<', 6, (0, 0), '', element('<', 9, b''))))
        long_name = mat_file('<', matrix(
            '<', 6, (1, 1), 'a' * 64, element('<', 9, struct.pack('<d', 1))))
        latin1_name = mat_file('<', matrix(
            '<', 6, (1, 1), 'caf\xe9', element('<', 9, struct.pack('<d', 1))))
        for data in (long_field, long_name, latin1_name):
            with self.assertRaises(CorruptDataError):
                read(data)

    def test_sparse_repeated_row(self):
        for rows in ((1, 1), (1, 0)):
            with self.subTest(rows=rows):
                data = mat_file('<', matrix(
                    '<', 5, (2, 1), 's',
                    element('<', 5, struct.pack('<2i', *rows)),
                    element('<', 5, struct.pack('<2i', 0, 2)),
                    element('<', 9, struct.pack('<2d', 7.0, 8.0)),
                    nzmax=2))
                with self.assertRaises(DimensionMismatchError):
                    read(data)


class TestCommandLine(unittest.TestCase):

    def run_cmd(self, *argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            cmd.main(list(argv))
        return out.getvalue()

    def test_demo_and_show(self):
        with tempfile.TemporaryDirectory() as tmp:
            filename = os.path.join(tmp, 'demo.mat')
            output = self.run_cmd('demo', filename)
            self.assertIn('Names', output)
            output = self.run_cmd('show', filename)
            self.assertIn('MATLAB 5.0 MAT-file', output)
            self.assertIn('Hello', output)
            self.assertIn('(2,2)\t2.5', output)
            header, arrays = loadmat(filename)
            self.assertEqual(len(arrays), len(demo.SAMPLES))

            # existing files are not overwritten
            with self.assertRaises(SystemExit) as cm:
                self.run_cmd('demo', filename)
            self.assertEqual(cm.exception.code, 1)

            self.run_cmd('demo', filename, '-f', '--no-compress',
                         '-k', 'sparse', '-k', 'imaginary', '--seed', '3')
            header, arrays = loadmat(filename)
            self.assertEqual([a.name for a in arrays], ['S', 'IA'])
            self.assertEqual(arrays[1].dims, (5, 400))
            self.assertEqual(
                arrays[1].real,
                demo.create_samples(['imaginary'], 3)[0].real)

    def test_show_invalid_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            filename = os.path.join(tmp, 'bad.mat')
            with open(filename, 'wb') as fileobj:
                fileobj.write(b'garbage')
            with self.assertRaises(SystemExit) as cm:
                self.run_cmd('show', filename)
            self.assertEqual(cm.exception.code, 1)


class TestPackage(unittest.TestCase):

    def test_exports(self):
        for name in mat5io.__all__:
            self.assertTrue(hasattr(mat5io, name), name)
        self.assertTrue(issubclass(mat5io.CorruptDataError, IOError))
        self.assertTrue(issubclass(UnsupportedArrayTypeError, ValueError))


if __name__ == '__main__':
    unittest.main()
