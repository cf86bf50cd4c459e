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

r"""Verilog VHX memory layout format.

A VHX file is a plain text memory layout, as loaded by hardware simulation
test benches (e.g. via ``$readmemh``).
Each line is a *chunk* of 64 or 128 bits, written as hexadecimal digits.
A chunk holds 32-bit words, written from the highest address to the lowest,
so that the whole line reads as a single wide number.

There are no addresses within the file: the first line maps to the *load
address* provided by the caller, and each following line maps to the next
chunk.

Examples:
    >>> from stupedama import VhxFile
    >>> file = VhxFile.from_bytes(bytes(range(8)), chunksize=64)
    >>> file.to_bytes()
    b'0706050403020100\n'
    >>> file.byteorder = 'big'
    >>> file.to_bytes()
    b'0405060700010203\n'
"""

import enum
import logging
import re
from typing import Any
from typing import IO
from typing import Optional
from typing import Sequence
from typing import Type
from typing import TypeVar
from typing import Union

from ..base import AnyBytes
from ..base import BaseFile
from ..base import BaseRecord
from ..base import BaseTag
from ..base import ByteOrder
from ..base import TypeAlias
from ..errors import MalformedRecordError
from ..errors import StupedamaError
from ..utils import hexlify
from ..utils import reverse_words
from ..utils import unhexlify

try:
    from typing import Self
except ImportError:  # pragma: no cover
    Self: TypeAlias = Any  # Python < 3.11
__TYPING_HAS_SELF = Self is not Any

_logger = logging.getLogger(__name__)

CHUNK_SIZES: Sequence[int] = (64, 128)
r"""Supported chunk sizes, in bits."""

WORD_SIZE: int = 4
r"""Word size, in bytes."""


def swap_chunk(data: AnyBytes, byteorder: ByteOrder = 'little') -> bytes:
    r"""Swaps between memory byte order and text digit order.

    Words are reversed in order; with ``'little'`` byte order, the bytes of
    each word are reversed too.
    The operation is its own inverse.

    Args:
        data (bytes):
            Chunk bytes; the length must be a multiple of :data:`WORD_SIZE`.

        byteorder (str):
            Word byte order, either ``'little'`` or ``'big'``.

    Returns:
        bytes: Swapped chunk bytes.

    Examples:
        >>> from stupedama.formats.vhx import swap_chunk
        >>> swap_chunk(b'ABCDEFGH', 'little')
        b'HGFEDCBA'
        >>> swap_chunk(b'ABCDEFGH', 'big')
        b'EFGHABCD'
    """

    reversed_data = bytes(data[::-1])
    if byteorder == 'little':
        return reversed_data
    elif byteorder == 'big':
        return reverse_words(reversed_data, WORD_SIZE)
    else:
        raise ValueError(f'invalid byte order: {byteorder!r}')


class VhxTag(BaseTag, enum.IntEnum):
    r"""VHX tag."""

    DATA = 0
    r"""Memory chunk."""

    def is_data(self) -> bool:

        return self == self.DATA


if not __TYPING_HAS_SELF:  # pragma: no cover
    del Self
    Self = TypeVar('Self', bound='VhxRecord')


class VhxRecord(BaseRecord):
    r"""VHX record object.

    Each record is a line holding a whole chunk.
    The :attr:`data` holds the chunk bytes in memory order, while
    :attr:`byteorder` tells how they are arranged into words when serialized.

    Attributes:
        byteorder (str):
            Word byte order, either ``'little'`` or ``'big'``.

    Args:
        byteorder (str):
            See :attr:`byteorder` attribute.
    """

    META_KEYS: Sequence[str] = [
        'address',
        'byteorder',
        'checksum',
        'coords',
        'count',
        'data',
        'tag',
    ]

    Tag: Type[VhxTag] = VhxTag

    HEX_REGEX = re.compile(b'^[0-9A-Fa-f]*$')
    r"""Hexadecimal digits matcher."""

    def __init__(
        self,
        tag: VhxTag,
        address: int = 0,
        data: AnyBytes = b'',
        byteorder: ByteOrder = 'little',
        **kwargs,
    ):

        self.byteorder: ByteOrder = byteorder
        super().__init__(tag, address=address, data=data, **kwargs)

    @classmethod
    def create_data(
        cls,
        address: int,
        data: AnyBytes,
        byteorder: ByteOrder = 'little',
    ) -> Self:
        r"""Creates a data record.

        Args:
            address (int):
                Record address.

            data (bytes):
                Chunk bytes, in memory order.

            byteorder (str):
                Word byte order.

        Returns:
            :class:`VhxRecord`: Data record object.

        Examples:
            >>> from stupedama import VhxFile
            >>> record = VhxFile.Record.create_data(0, b'\x00\x01\x02\x03\xAA\xBB\xCC\xDD')
            >>> str(record)
            'ddccbbaa03020100\n'
        """

        record = cls(cls.Tag.DATA, address=address, data=bytes(data), byteorder=byteorder)
        return record

    @classmethod
    def parse(
        cls,
        line: AnyBytes,
        address: int = 0,
        chunksize: int = 128,
        byteorder: ByteOrder = 'little',
        validate: bool = True,
    ) -> Self:
        r"""Parses a record from bytes.

        Leading and trailing whitespace is ignored.

        Args:
            line (bytes):
                String of bytes to parse.

            address (int):
                Address of the chunk.

            chunksize (int):
                Chunk size, in bits.

            byteorder (str):
                Word byte order.

            validate (bool):
                Perform validation checks.

        Returns:
            :class:`VhxRecord`: Parsed record.

        Raises:
            :class:`MalformedRecordError`: Syntax error.

        Examples:
            >>> from stupedama import VhxFile
            >>> record = VhxFile.Record.parse(b'ddccbbaa03020100\n', chunksize=64)
            >>> record.data
            b'\x00\x01\x02\x03\xaa\xbb\xcc\xdd'
            >>> VhxFile.Record.parse(b'ddccbbaa030201', chunksize=64)
            Traceback (most recent call last):
                ...
            stupedama.errors.MalformedRecordError: expected 16 hexadecimal digits, found 14
        """

        line = bytes(line).strip()
        digits = chunksize // 4

        if not cls.HEX_REGEX.match(line):
            raise MalformedRecordError('invalid hexadecimal digit')

        if len(line) != digits:
            raise MalformedRecordError(f'expected {digits} hexadecimal digits, '
                                       f'found {len(line)}')

        data = swap_chunk(unhexlify(line), byteorder)
        record = cls(cls.Tag.DATA,
                     address=address,
                     data=data,
                     byteorder=byteorder,
                     count=None,
                     checksum=None,
                     validate=validate)
        return record

    def to_bytestr(self, end: AnyBytes = b'\n') -> bytes:

        self.validate()
        return hexlify(swap_chunk(self.data, self.byteorder), upper=False) + end

    def validate(
        self,
        checksum: bool = True,
        count: bool = True,
    ) -> Self:

        super().validate(checksum=checksum, count=count)

        if self.byteorder not in ('little', 'big'):
            raise MalformedRecordError(f'invalid byte order: {self.byteorder!r}')

        if len(self.data) * 8 not in CHUNK_SIZES:
            raise MalformedRecordError(f'invalid chunk size: {len(self.data) * 8} bits')

        return self


if not __TYPING_HAS_SELF:  # pragma: no cover
    del Self
    Self = TypeVar('Self', bound='VhxFile')


class VhxFile(BaseFile):
    r"""VHX file object.

    Examples:
        >>> from stupedama import VhxFile
        >>> data = b'0f0e0d0c0b0a09080706050403020100\n'
        >>> image = VhxFile.decode(data, offset=0x100)
        >>> image.to_blocks()
        [[256, b'\x00\x01\x02\x03\x04\x05\x06\x07\x08\t\n\x0b\x0c\r\x0e\x0f']]
    """

    DEFAULT_BYTEORDER: ByteOrder = 'little'
    r"""Default word byte order."""

    DEFAULT_CHUNKSIZE: int = 128
    r"""Default chunk size, in bits."""

    DEFAULT_FILL: int = 0xFF
    r"""Default byte value for unmapped addresses."""

    FILE_EXT: Sequence[str] = ['.vhx', '.vhx128']

    META_KEYS: Sequence[str] = [
        'byteorder',
        'chunksize',
        'fill',
    ]

    Record: Type[VhxRecord] = VhxRecord

    def __init__(self):

        super().__init__()

        self._byteorder: ByteOrder = self.DEFAULT_BYTEORDER
        self._chunksize: int = self.DEFAULT_CHUNKSIZE
        self._fill: int = self.DEFAULT_FILL

    @property
    def byteorder(self) -> ByteOrder:
        r"""str: Word byte order.

        Either ``'little'`` (the default) or ``'big'``.

        Setting a different value triggers :meth:`discard_records`.
        """

        return self._byteorder

    @byteorder.setter
    def byteorder(self, byteorder: ByteOrder) -> None:

        if byteorder not in ('little', 'big'):
            raise ValueError(f'invalid byte order: {byteorder!r}')

        if byteorder != self._byteorder:
            self.discard_records()
        self._byteorder = byteorder

    @property
    def chunk_length(self) -> int:
        r"""int: Chunk size, in bytes."""

        return self._chunksize // 8

    @property
    def chunksize(self) -> int:
        r"""int: Chunk size, in bits.

        Either 64 or 128 (the default).

        Setting a different value triggers :meth:`discard_records`.

        Examples:
            >>> from stupedama import VhxFile
            >>> file = VhxFile.from_bytes(b'\xAA' * 16)
            >>> file.to_bytes()
            b'aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa\n'
            >>> file.chunksize = 64
            >>> file.to_bytes()
            b'aaaaaaaaaaaaaaaa\naaaaaaaaaaaaaaaa\n'
        """

        return self._chunksize

    @chunksize.setter
    def chunksize(self, chunksize: int) -> None:

        chunksize = chunksize.__index__()
        if chunksize not in CHUNK_SIZES:
            raise ValueError(f'invalid chunk size: {chunksize}')

        if chunksize != self._chunksize:
            self.discard_records()
        self._chunksize = chunksize

    @property
    def fill(self) -> int:
        r"""int: Byte value for unmapped addresses.

        Setting a different value triggers :meth:`discard_records`.
        """

        return self._fill

    @fill.setter
    def fill(self, fill: int) -> None:

        fill = fill.__index__()
        if not 0 <= fill <= 0xFF:
            raise ValueError(f'invalid fill byte: {fill}')

        if fill != self._fill:
            self.discard_records()
        self._fill = fill

    @classmethod
    def parse(
        cls,
        stream: Union[AnyBytes, IO],
        offset: int = 0,
        chunksize: Optional[int] = None,
        byteorder: Optional[ByteOrder] = None,
        ignore_errors: bool = False,
    ) -> Self:
        r"""Parses records from a byte stream.

        Each non-empty line is a chunk, mapped at `offset` plus the chunk
        index times the chunk length.

        Args:
            stream (bytes IO or buffer):
                Stream or byte buffer to parse records from.

            offset (int):
                Load address of the first chunk.

            chunksize (int):
                Chunk size, in bits.
                If ``None``, :attr:`DEFAULT_CHUNKSIZE` is used.

            byteorder (str):
                Word byte order.
                If ``None``, :attr:`DEFAULT_BYTEORDER` is used.

            ignore_errors (bool):
                Skip invalid lines, still counting them as chunks.

        Returns:
            :class:`VhxFile`: Parsed file object, in *records role*.

        Raises:
            :class:`MalformedRecordError`: Invalid record; the error holds the
            offending line number.

        Examples:
            >>> from stupedama import VhxFile
            >>> data = b'0706050403020100\n\n0f0e0d0c0b0a0908\n'
            >>> file = VhxFile.parse(data, offset=0x10, chunksize=64)
            >>> [record.address for record in file.records]
            [16, 24]
            >>> VhxFile.parse(b'0706050403020100\nxx\n', chunksize=64)
            Traceback (most recent call last):
                ...
            stupedama.errors.MalformedRecordError: 2: invalid hexadecimal digit
        """

        if isinstance(stream, (bytes, bytearray, memoryview)):
            stream = bytes(stream).splitlines(keepends=True)

        if chunksize is None:
            chunksize = cls.DEFAULT_CHUNKSIZE
        if chunksize not in CHUNK_SIZES:
            raise ValueError(f'invalid chunk size: {chunksize}')

        if byteorder is None:
            byteorder = cls.DEFAULT_BYTEORDER

        offset = offset.__index__()
        if offset < 0:
            raise ValueError('negative offset')

        Record = cls.Record
        chunk_length = chunksize // 8
        records = []
        row = 0
        index = 0

        for line in stream:
            row += 1

            if cls._is_line_empty(line):
                continue

            address = offset + (index * chunk_length)
            index += 1
            try:
                record = Record.parse(line, address=address,
                                      chunksize=chunksize, byteorder=byteorder)
            except StupedamaError as exc:
                if ignore_errors:
                    _logger.warning('skipping line %d: %s', row, exc)
                    continue
                exc.line = row
                raise

            record.coords = (row, 0)
            records.append(record)

        _logger.debug('parsed %d chunks of %d bits', len(records), chunksize)
        file = cls.from_records(records, chunksize=chunksize, byteorder=byteorder)
        return file

    def update_records(self) -> Self:
        r"""Applies memory and meta to records.

        The whole :attr:`memory` span is covered, from its start address to
        its end address, padded up to a whole chunk.
        Holes and padding are filled with :attr:`fill`.

        Returns:
            :class:`VhxFile`: *self*.

        Raises:
            ValueError: :attr:`memory` attribute not populated.

        Examples:
            >>> from stupedama import VhxFile
            >>> blocks = [[0x1000, b'\x11\x22'], [0x1006, b'\x33']]
            >>> file = VhxFile.from_blocks(blocks, chunksize=64, fill=0)
            >>> file.to_bytes()
            b'0033000000002211\n'
        """

        memory = self._memory
        if memory is None:
            raise ValueError('memory instance required')

        records = []
        Record = self.Record
        byteorder = self._byteorder
        chunk_length = self.chunk_length
        fill = self._fill

        if memory:
            start = memory.start
            size = memory.endex - start
            padding = -size % chunk_length
            endex = start + size + padding

            for hole_start, hole_endex in memory.holes():
                _logger.info('filling hole [0x%08X, 0x%08X) with 0x%02X', hole_start, hole_endex, fill)
            if padding:
                _logger.info('padding %d bytes after 0x%08X with 0x%02X', padding, start + size, fill)

            data = memory.extract(start, endex, fill=fill)
            for offset in range(0, len(data), chunk_length):
                chunk = data[offset:(offset + chunk_length)]
                record = Record.create_data(start + offset, chunk, byteorder=byteorder)
                records.append(record)

        _logger.debug('generated %d chunks of %d bits', len(records), self._chunksize)
        self.discard_records()
        self._records = records
        return self

    def validate_records(self) -> Self:
        r"""Validates records.

        All the records must have the same chunk size, and map consecutive
        chunks.

        Returns:
            :class:`VhxFile`: *self*.

        Raises:
            :class:`MalformedRecordError`: Invalid record sequence.
        """

        records = self._records
        if records is None:
            raise ValueError('records required')

        chunk_length = self.chunk_length
        last_endex = None

        for record in records:
            record.validate()
            line = record.coords[0] if record.coords[0] > 0 else None

            if len(record.data) != chunk_length:
                raise MalformedRecordError(f'chunk of {len(record.data) * 8} bits '
                                           f'within a {self._chunksize}-bit layout', line=line)

            if last_endex is not None and record.address != last_endex:
                raise MalformedRecordError('non-consecutive chunk', line=line)
            last_endex = record.address + chunk_length

        return self


if not __TYPING_HAS_SELF:  # pragma: no cover
    del Self
