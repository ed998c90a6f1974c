"""Command line utility for mat5io.

Provides routines for listing the contents of MAT-files, and for writing
a MAT-file with sample arrays of every supported type.

Call

    python -m mat5io.cmd -h

to get help with command line usage.
"""

import argparse
import logging
import os
import sys

from mat5io import loadmat, savemat
from mat5io.demo import SAMPLES, create_samples


def show(args):
    for path in args.file:
        print("Reading the file '{}'...".format(path))
        try:
            header, arrays = loadmat(path, strict=not args.lenient)
        except IOError as e:
            print('Error: {}'.format(e))
            sys.exit(1)
        print('MAT-file contains the following:')
        print(header)
        for array in arrays:
            print(array.content_to_string())


def demo(args):
    try:
        if os.path.exists(args.file) and not args.force:
            raise Exception('File {} already exists.'.format(args.file))
        arrays = create_samples(args.kind, args.seed)
        savemat(args.file, arrays, compress=not args.no_compress)
    except Exception as e:
        print('Error: {}'.format(e))
        sys.exit(1)
    print("Created the MAT-file '{}' with the following data:".format(
        args.file))
    for array in arrays:
        print(array)


def main(argv=None):
    #
    # get arguments and invoke the command
    #

    parser = argparse.ArgumentParser(
        description='List the contents of level 5 MAT-files, or create '
        'a MAT-file with sample arrays.')
    parser.add_argument(
        '-v', '--verbose', action='store_const', const=True,
        default=False, help='log each array read or written')
    subparsers = parser.add_subparsers(dest='command')
    subparsers.required = True

    show_parser = subparsers.add_parser(
        'show', help='print the header and arrays of MAT-files')
    show_parser.add_argument(
        'file', nargs='+', help='path to a Matlab MAT-file')
    show_parser.add_argument(
        '--lenient', action='store_const', const=True, default=False,
        help='warn about checksum errors in compressed data instead '
        'of failing')
    show_parser.set_defaults(func=show)

    demo_parser = subparsers.add_parser(
        'demo', help='write a MAT-file with sample arrays')
    demo_parser.add_argument('file', help='path of the MAT-file to create')
    demo_parser.add_argument(
        '-k', '--kind', action='append', choices=list(SAMPLES),
        help='sample array to include (repeatable, default: all)')
    demo_parser.add_argument(
        '--no-compress', action='store_const', const=True, default=False,
        help='store arrays without compression')
    demo_parser.add_argument(
        '--seed', type=int, default=0,
        help='seed for the random values of the imaginary sample')
    demo_parser.add_argument(
        '-f', '--force', action='store_const', const=True,
        default=False, help='overwrite an existing file')
    demo_parser.set_defaults(func=demo)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s')
    args.func(args)


if __name__ == '__main__':
    main()
