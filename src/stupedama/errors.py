# Copyright (c) 2013-2025, Andrea Zoppi
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# 1. Redistributions of source code must retain the above copyright notice,
#    this list of conditions and the following disclaimer.
#
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.

r"""Error types.

Every error raised for a bad input file or an impossible conversion derives
from :class:`StupedamaError`, which carries the process exit code used by the
command line app, as well as optional location information about the
offending file.
"""

from typing import Optional
from typing import Sequence
from typing import Tuple


class StupedamaError(Exception):
    r"""Base error.

    Args:
        message (str):
            Human readable description of the error.

        path (str):
            Path of the offending file, if known.

        line (int):
            1-based line number within the offending file, if known.

    Examples:
        >>> from stupedama.errors import MalformedRecordError
        >>> str(MalformedRecordError('missing start marker', path='a.hex', line=3))
        'a.hex:3: missing start marker'
    """

    exit_code: int = 1
    r"""Process exit code reported by the command line app."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        line: Optional[int] = None,
    ):

        super().__init__(message)
        self.message: str = message
        self.path: Optional[str] = path
        self.line: Optional[int] = line

    def __str__(self) -> str:

        location = []
        if self.path is not None:
            location.append(str(self.path))
        if self.line is not None:
            location.append(str(self.line))
        if location:
            return f'{":".join(location)}: {self.message}'
        return self.message


class IoError(StupedamaError):
    r"""File cannot be read or written."""

    exit_code = 3


class MalformedRecordError(StupedamaError, ValueError):
    r"""Structural violation within a record or a record sequence."""

    exit_code = 4


class ChecksumError(MalformedRecordError):
    r"""Record checksum mismatch.

    Args:
        expected (int):
            Checksum computed from the record content.

        actual (int):
            Checksum stated by the record itself.

        address (int):
            Address field of the offending record.
    """

    exit_code = 5

    def __init__(
        self,
        expected: int,
        actual: int,
        address: int,
        path: Optional[str] = None,
        line: Optional[int] = None,
    ):

        message = (f'checksum mismatch at address 0x{address:04X}: '
                   f'expected 0x{expected:02X}, got 0x{actual:02X}')
        super().__init__(message, path=path, line=line)
        self.expected: int = expected
        self.actual: int = actual
        self.address: int = address


class OverlapError(StupedamaError, ValueError):
    r"""Two memory ranges collide.

    Args:
        inserted (int couple):
            ``(start, endex)`` of the range being inserted.

        existing (int couple):
            ``(start, endex)`` of the range already mapped.
    """

    exit_code = 6

    def __init__(
        self,
        inserted: Tuple[int, int],
        existing: Tuple[int, int],
        path: Optional[str] = None,
        line: Optional[int] = None,
    ):

        message = (f'range [0x{inserted[0]:08X}, 0x{inserted[1]:08X}) overlaps '
                   f'range [0x{existing[0]:08X}, 0x{existing[1]:08X})')
        super().__init__(message, path=path, line=line)
        self.inserted: Tuple[int, int] = inserted
        self.existing: Tuple[int, int] = existing


class UnsupportedExtensionError(StupedamaError, ValueError):
    r"""File name extension not mapped to any format.

    Args:
        extension (str):
            Rejected extension, including the leading dot.

        supported (str list):
            Supported extensions.
    """

    exit_code = 7

    def __init__(
        self,
        extension: str,
        supported: Sequence[str],
        path: Optional[str] = None,
    ):

        listing = ', '.join(supported)
        message = f'unsupported file extension {extension!r} (supported: {listing})'
        super().__init__(message, path=path)
        self.extension: str = extension
        self.supported: Sequence[str] = list(supported)


class AddressOverflowError(StupedamaError, ValueError):
    r"""Address not representable by the target format."""

    exit_code = 8
