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

r"""Sparse memory image.

The :class:`MemoryImage` is the representation shared by all the record
formats: a sorted collection of disjoint address ranges, each holding some
byte data.
Addresses between ranges are *holes*: unmapped memory without any defined
value.

The actual storage is delegated to :class:`bytesparse.Memory`, from the
`bytesparse Python package <https://pypi.org/project/bytesparse/>`_, which
also merges touching ranges into a single block.
"""

from typing import Iterator
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Sequence
from typing import Tuple
from typing import Union

from bytesparse import Memory

from .errors import OverlapError

AnyBytes = Union[bytes, bytearray, memoryview]


class Range(NamedTuple):
    r"""Contiguous run of mapped addresses."""

    start: int
    r"""Inclusive start address."""

    data: bytes
    r"""Byte data mapped from :attr:`start` onwards."""

    @property
    def endex(self) -> int:
        r"""int: Exclusive end address."""

        return self.start + len(self.data)


class MemoryImage:
    r"""Sparse, address-keyed memory image.

    Ranges are kept sorted and non-overlapping: :meth:`insert` refuses to map
    an address twice.
    Touching ranges are merged, so that two images with the same mapped
    content always have the same ranges.

    Examples:
        >>> from stupedama.image import MemoryImage
        >>> image = MemoryImage()
        >>> image.insert(0x30, b'\x02\x33\x7A')
        >>> image.insert(0x40, b'xyz')
        >>> image.to_blocks()
        [[48, b'\x023z'], [64, b'xyz']]
        >>> image.get_word(0x31, 2)
        b'3z'
        >>> image.get_word(0x33) is None
        True
    """

    def __init__(self, memory: Optional[Memory] = None):

        if memory is None:
            memory = Memory()
        self._memory: Memory = memory

    def __bool__(self) -> bool:

        return bool(self._memory)

    def __eq__(self, other: object) -> bool:

        if not isinstance(other, MemoryImage):
            return NotImplemented
        return self.to_blocks() == other.to_blocks()

    def __len__(self) -> int:
        r"""Number of mapped bytes."""

        return self.content_size

    def __repr__(self) -> str:

        spans = ', '.join(f'[0x{start:X}, 0x{endex:X})' for start, endex in self.spans())
        return f'<{type(self).__name__} {spans}>'

    def chop(
        self,
        width: int,
        boundary: Optional[int] = None,
    ) -> Iterator[Range]:
        r"""Splits ranges into chunks.

        Each range is split into chunks of up to `width` bytes, in ascending
        address order.
        Each chunk is as long as possible, but never crosses a multiple of
        `boundary`.

        Args:
            width (int):
                Maximum chunk size.

            boundary (int):
                Address alignment that chunks must not cross.
                If ``None``, no boundary applies.

        Yields:
            :class:`Range`: Chunk.

        Raises:
            ValueError: Invalid `width` or `boundary`.

        Examples:
            >>> from stupedama.image import MemoryImage
            >>> image = MemoryImage.from_bytes(b'ABCDEFG', offset=0xFFFC)
            >>> [(hex(r.start), r.data) for r in image.chop(2, boundary=0x10000)]
            [('0xfffc', b'AB'), ('0xfffe', b'CD'), ('0x10000', b'EF'), ('0x10002', b'G')]
            >>> [(hex(r.start), r.data) for r in image.chop(3, boundary=0x10000)]
            [('0xfffc', b'ABC'), ('0xffff', b'D'), ('0x10000', b'EFG')]
        """

        width = width.__index__()
        if width < 1:
            raise ValueError('invalid width')

        if boundary is not None:
            boundary = boundary.__index__()
            if boundary < 1:
                raise ValueError('invalid boundary')

        for start, data in self.iter_ranges():
            offset = 0
            size = len(data)

            while offset < size:
                address = start + offset
                length = min(width, size - offset)

                if boundary is not None:
                    limit = boundary - (address % boundary)
                    length = min(length, limit)

                yield Range(address, data[offset:(offset + length)])
                offset += length

    @property
    def content_size(self) -> int:
        r"""int: Number of mapped bytes."""

        return self._memory.content_size

    def copy(self) -> 'MemoryImage':

        return type(self).from_blocks(self.to_blocks())

    @property
    def endex(self) -> int:
        r"""int: Exclusive end address of the last range; :attr:`start` if empty."""

        return self._memory.endex

    def extract(
        self,
        start: Optional[int] = None,
        endex: Optional[int] = None,
        fill: int = 0xFF,
    ) -> bytes:
        r"""Extracts a contiguous byte string.

        Holes within the address range are replaced by the `fill` byte.

        Args:
            start (int):
                Inclusive start address; :attr:`start` if ``None``.

            endex (int):
                Exclusive end address; :attr:`endex` if ``None``.

            fill (int):
                Byte value for unmapped addresses.

        Returns:
            bytes: Extracted byte string.

        Examples:
            >>> from stupedama.image import MemoryImage
            >>> image = MemoryImage.from_blocks([[2, b'ab'], [6, b'c']])
            >>> image.extract(fill=0x2E)
            b'ab..c'
            >>> image.extract(0, 8, fill=0x2E)
            b'..ab..c.'
        """

        if start is None:
            start = self.start
        if endex is None:
            endex = self.endex
        if endex < start:
            endex = start

        buffer = bytearray([fill]) * (endex - start)
        if not buffer:
            return b''

        for block_start, block_view in self._memory.blocks(start=start, endex=endex):
            offset = block_start - start
            buffer[offset:(offset + len(block_view))] = block_view
        return bytes(buffer)

    @classmethod
    def from_blocks(cls, blocks: Sequence[Tuple[int, AnyBytes]]) -> 'MemoryImage':
        r"""Creates an image from ``(start, data)`` couples.

        Each block is inserted via :meth:`insert`.

        Raises:
            :class:`OverlapError`: Overlapping blocks.
        """

        image = cls()
        for start, data in blocks:
            image.insert(start, data)
        return image

    @classmethod
    def from_bytes(cls, data: AnyBytes, offset: int = 0) -> 'MemoryImage':

        image = cls()
        image.insert(offset, data)
        return image

    def get_word(self, address: int, size: int = 1) -> Optional[bytes]:
        r"""Gets a word.

        Args:
            address (int):
                Address of the first byte of the word.

            size (int):
                Word size, in bytes.

        Returns:
            bytes: The word bytes, in address order, or ``None`` (the *gap*
            sentinel) if any of them is unmapped.
        """

        endex = address + size
        for start, stop in self._memory.intervals(start=address, endex=endex):
            if start == address and stop == endex:
                return bytes(self._memory.view(start=address, endex=endex))
        return None

    def holes(self) -> List[Tuple[int, int]]:
        r"""List of ``(start, endex)`` holes between ranges."""

        memory = self._memory
        if not memory:
            return []
        return list(memory.gaps(memory.start, memory.endex))

    def insert(self, start: int, data: AnyBytes) -> None:
        r"""Maps a new range.

        Args:
            start (int):
                Start address of the range.

            data (bytes):
                Byte data of the range. Empty data maps nothing.

        Raises:
            ValueError: Negative address.

            :class:`OverlapError`: Some addresses of the range are already
            mapped.
        """

        start = start.__index__()
        if start < 0:
            raise ValueError('negative address')

        size = len(data)
        if not size:
            return
        endex = start + size

        memory = self._memory
        for _ in memory.intervals(start=start, endex=endex):
            for existing in memory.intervals():
                if existing[0] < endex and start < existing[1]:
                    raise OverlapError((start, endex), existing)

        memory.write(start, data)

    def iter_ranges(self) -> Iterator[Range]:
        r"""Iterates over the mapped ranges, by ascending address.

        Each call returns a new iterator.

        Yields:
            :class:`Range`: Mapped range.
        """

        for start, view in self._memory.blocks():
            yield Range(start, bytes(view))

    @property
    def memory(self) -> Memory:
        r""":class:`bytesparse.Memory`: Underlying storage."""

        return self._memory

    def peek(self, address: int) -> Optional[int]:
        r"""Byte value at `address`, or ``None`` if unmapped."""

        return self._memory.peek(address)

    def shift(self, offset: int) -> None:
        r"""Moves all the ranges by `offset` addresses.

        Raises:
            ValueError: Negative resulting address.
        """

        if self._memory and self.start + offset < 0:
            raise ValueError('negative address')
        self._memory.shift(offset)

    def spans(self) -> List[Tuple[int, int]]:
        r"""List of ``(start, endex)`` spans of the mapped ranges."""

        return list(self._memory.intervals())

    @property
    def start(self) -> int:
        r"""int: Start address of the first range; zero if empty."""

        return self._memory.start

    def to_blocks(self) -> List[List[Union[int, bytes]]]:
        r"""List of ``[start, data]`` blocks, by ascending address."""

        return [[start, data] for start, data in self.iter_ranges()]
