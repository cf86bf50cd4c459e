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

r"""Intel HEX (``.hex``) memory images.

Record types 00 to 05 are understood; anything else is rejected as
malformed. Output lines are uppercase and end with a bare ``\n``.
"""

import enum
import logging
import re
from typing import Any
from typing import MutableSequence
from typing import Optional
from typing import Sequence
from typing import Type
from typing import TypeVar
from typing import cast as _cast

from ..base import AnyBytes
from ..base import BaseFile
from ..base import BaseRecord
from ..base import BaseTag
from ..base import TypeAlias
from ..errors import AddressOverflowError
from ..errors import MalformedRecordError
from ..image import MemoryImage
from ..utils import hexlify
from ..utils import unhexlify

try:
    from typing import Self
except ImportError:  # pragma: no cover
    Self: TypeAlias = Any  # Python < 3.11
__TYPING_HAS_SELF = Self is not Any

_logger = logging.getLogger(__name__)


class IhexTag(BaseTag, enum.IntEnum):
    r"""Record type field."""

    DATA = 0

    END_OF_FILE = 1

    EXTENDED_SEGMENT_ADDRESS = 2
    r"""Sets address bits 19:4 for the following data records."""

    START_SEGMENT_ADDRESS = 3
    r"""``CS:IP`` entry point."""

    EXTENDED_LINEAR_ADDRESS = 4
    r"""Sets address bits 31:16 for the following data records."""

    START_LINEAR_ADDRESS = 5
    r"""32-bit entry point."""

    def is_data(self) -> bool:

        return self == self.DATA

    def is_eof(self) -> bool:
        r"""End of file record; ends parsing.

        Examples:
            >>> from stupedama import IhexFile
            >>> IhexTag = IhexFile.Record.Tag
            >>> IhexTag.END_OF_FILE.is_eof()
            True
            >>> IhexTag.DATA.is_eof()
            False
        """

        return self == self.END_OF_FILE

    def is_extension(self) -> bool:
        r"""Either kind of address extension record.

        Examples:
            >>> from stupedama import IhexFile
            >>> [tag.name for tag in IhexFile.Record.Tag if tag.is_extension()]
            ['EXTENDED_SEGMENT_ADDRESS', 'EXTENDED_LINEAR_ADDRESS']
        """

        return self in (self.EXTENDED_SEGMENT_ADDRESS, self.EXTENDED_LINEAR_ADDRESS)

    def is_file_termination(self) -> bool:

        return self.is_eof()

    def is_start(self) -> bool:
        r"""Either kind of entry point record.

        Examples:
            >>> from stupedama import IhexFile
            >>> [tag.name for tag in IhexFile.Record.Tag if tag.is_start()]
            ['START_SEGMENT_ADDRESS', 'START_LINEAR_ADDRESS']
        """

        return self in (self.START_SEGMENT_ADDRESS, self.START_LINEAR_ADDRESS)


if not __TYPING_HAS_SELF:  # pragma: no cover
    del Self
    Self = TypeVar('Self', bound='IhexRecord')


class IhexRecord(BaseRecord):
    r"""Intel HEX line: ``:CCAAAATT[DD...]SS``.

    Byte count, 16-bit address, type, payload and checksum, as pairs of
    hexadecimal digits.
    """

    Tag: Type[IhexTag] = IhexTag

    HEX_REGEX = re.compile(b'^[0-9A-Fa-f]*$')

    def compute_checksum(self) -> int:
        r"""Negated low byte of the sum of every byte before the checksum.

        Examples:
            >>> from stupedama import IhexFile
            >>> record = IhexFile.Record.create_data(0x0030, b'\x02\x33\x7A')
            >>> hex(record.compute_checksum())
            '0x1e'
        """

        if self.count is None:
            raise ValueError('missing count')

        address = self.address & 0xFFFF
        total = (self.count & 0xFF) + (address >> 8) + (address & 0xFF)
        total += _cast(IhexTag, self.tag) & 0xFF
        total += sum(self.data)
        return -total & 0xFF

    def compute_count(self) -> int:

        return len(self.data)

    @classmethod
    def create_data(
        cls,
        address: int,
        data: AnyBytes,
    ) -> Self:

        address = address.__index__()
        if not 0 <= address <= 0xFFFF:
            raise AddressOverflowError('address overflow')

        size = len(data)
        if size > 0xFF:
            raise ValueError('data size overflow')

        record = cls(cls.Tag.DATA, address=address, data=data)
        return record

    @classmethod
    def create_end_of_file(cls) -> Self:
        r"""Bare ``:00000001FF`` terminator.

        Examples:
            >>> from stupedama import IhexFile
            >>> record = IhexFile.Record.create_end_of_file()
            >>> str(record)
            ':00000001FF\n'
        """

        record = cls(cls.Tag.END_OF_FILE)
        return record

    @classmethod
    def create_extended_linear_address(cls, extension: int) -> Self:
        r"""Record setting address bits 31:16 to `extension`.

        Examples:
            >>> from stupedama import IhexFile
            >>> record = IhexFile.Record.create_extended_linear_address(0x1234)
            >>> str(record)
            ':020000041234B4\n'
        """

        extension = extension.__index__()
        if not 0 <= extension <= 0xFFFF:
            raise AddressOverflowError('extension overflow')

        data = extension.to_bytes(2, byteorder='big')
        record = cls(cls.Tag.EXTENDED_LINEAR_ADDRESS, data=data)
        return record

    @classmethod
    def create_extended_segment_address(cls, extension: int) -> Self:
        r"""Record adding ``extension << 4`` to the following addresses.

        Examples:
            >>> from stupedama import IhexFile
            >>> record = IhexFile.Record.create_extended_segment_address(0x1234)
            >>> str(record)
            ':020000021234B6\n'
        """

        extension = extension.__index__()
        if not 0 <= extension <= 0xFFFF:
            raise AddressOverflowError('extension overflow')

        data = extension.to_bytes(2, byteorder='big')
        record = cls(cls.Tag.EXTENDED_SEGMENT_ADDRESS, data=data)
        return record

    @classmethod
    def create_start_linear_address(cls, address: int) -> Self:
        r"""32-bit entry point record.

        Examples:
            >>> from stupedama import IhexFile
            >>> record = IhexFile.Record.create_start_linear_address(0x12345678)
            >>> str(record)
            ':0400000512345678E3\n'
        """

        address = address.__index__()
        if not 0 <= address <= 0xFFFFFFFF:
            raise AddressOverflowError('address overflow')

        data = address.to_bytes(4, byteorder='big')
        record = cls(cls.Tag.START_LINEAR_ADDRESS, data=data)
        return record

    @classmethod
    def create_start_segment_address(cls, address: int) -> Self:
        r"""Entry point record; `address` packs ``CS`` into the upper half
        and ``IP`` into the lower one.

        Examples:
            >>> from stupedama import IhexFile
            >>> record = IhexFile.Record.create_start_segment_address(0x12345678)
            >>> str(record)
            ':0400000312345678E5\n'
        """

        address = address.__index__()
        if not 0 <= address <= 0xFFFFFFFF:
            raise AddressOverflowError('address overflow')

        data = address.to_bytes(4, byteorder='big')
        record = cls(cls.Tag.START_SEGMENT_ADDRESS, data=data)
        return record

    @classmethod
    def parse(
        cls,
        line: AnyBytes,
        validate: bool = True,
    ) -> Self:
        r"""Parses a line; surrounding whitespace and either line ending are
        accepted.

        Examples:
            >>> from stupedama import IhexFile
            >>> record = IhexFile.Record.parse(b':0300300002337A1E\r\n')
            >>> record.tag, record.address, record.data
            (<IhexTag.DATA: 0>, 48, b'\x023z')
            >>> IhexFile.Record.parse(b'0300300002337A1E')
            Traceback (most recent call last):
                ...
            stupedama.errors.MalformedRecordError: missing start marker
            >>> IhexFile.Record.parse(b':0300300002337A1F')
            Traceback (most recent call last):
                ...
            stupedama.errors.ChecksumError: checksum mismatch at address 0x0030: expected 0x1E, got 0x1F
        """

        line = bytes(line).strip()
        if not line.startswith(b':'):
            raise MalformedRecordError('missing start marker')

        digits = line[1:]
        if len(digits) & 1:
            raise MalformedRecordError('odd number of hexadecimal digits')

        if not cls.HEX_REGEX.match(digits):
            raise MalformedRecordError('invalid hexadecimal digit')

        if len(digits) < 10:
            raise MalformedRecordError('record too short')

        count = int(digits[0:2], 16)
        address = int(digits[2:6], 16)
        tag_value = int(digits[6:8], 16)
        data = unhexlify(digits[8:-2])
        checksum = int(digits[-2:], 16)

        try:
            tag = cls.Tag(tag_value)
        except ValueError:
            raise MalformedRecordError(f'unknown record type 0x{tag_value:02X}') from None

        record = cls(tag,
                     address=address,
                     data=data,
                     count=count,
                     checksum=checksum,
                     validate=validate)
        return record

    def to_bytestr(self, end: AnyBytes = b'\n') -> bytes:

        self.validate(checksum=False, count=False)

        bytestr = b':%02X%04X%02X%s%02X%s' % (
            (self.count or 0) & 0xFF,
            self.address & 0xFFFF,
            _cast(IhexTag, self.tag) & 0xFF,
            hexlify(self.data),
            (self.checksum or 0) & 0xFF,
            end,
        )
        return bytestr

    def validate(
        self,
        checksum: bool = True,
        count: bool = True,
    ) -> Self:

        super().validate(checksum=checksum, count=count)

        if self.checksum is not None:
            if not 0 <= self.checksum <= 0xFF:
                raise MalformedRecordError('checksum overflow')

        if self.count is not None:
            if not 0 <= self.count <= 0xFF:
                raise MalformedRecordError('count overflow')

        data_size = len(self.data)
        if data_size > 0xFF:
            raise MalformedRecordError('data size overflow')

        if not 0 <= self.address <= 0xFFFF:
            raise AddressOverflowError('address overflow')

        tag = _cast(IhexTag, self.tag)

        if tag.is_data():
            pass

        elif tag.is_start():
            if data_size != 4:
                raise MalformedRecordError(f'start address record with {data_size} data bytes')

        elif tag.is_extension():
            if data_size != 2:
                raise MalformedRecordError(f'extension record with {data_size} data bytes')

        else:  # elif tag.is_eof():
            if data_size:
                raise MalformedRecordError('end of file record with data')

        return self


if not __TYPING_HAS_SELF:  # pragma: no cover
    del Self
    Self = TypeVar('Self', bound='IhexFile')


class IhexFile(BaseFile):
    r"""Intel HEX file.

    *Meta* values: :attr:`linear`, :attr:`maxdatalen`, :attr:`startaddr`.

    Examples:
        >>> from stupedama import IhexFile
        >>> file = IhexFile.parse(b':0300300002337A1E\n:00000001FF\n')
        >>> file.memory.to_blocks()
        [[48, b'\x023z']]
        >>> file.get_meta()
        {'linear': True, 'maxdatalen': 3, 'startaddr': None}
    """

    DEFAULT_DATALEN: int = 255

    FILE_EXT: Sequence[str] = ['.hex']

    META_KEYS: Sequence[str] = [
        'linear',
        'maxdatalen',
        'startaddr',
    ]

    Record: Type[IhexRecord] = IhexRecord

    def __init__(self):

        super().__init__()

        self._linear: bool = True
        self._maxdatalen: int = self.DEFAULT_DATALEN
        self._startaddr: Optional[int] = None

    def apply_records(self) -> Self:
        r"""Decodes records, tracking the current address extension.

        A data record lands at its own address plus the value of the latest
        extension record, shifted left by 16 (linear) or 4 (segment).
        Entry point records end up in :attr:`startaddr`; the addressing mode
        is linear unless only segment extensions were seen.

        Raises:
            :class:`AddressOverflowError`: Data that the addressing mode
            could not encode back (past 4 GiB, or past 1 MiB in segment
            mode).

        Examples:
            >>> from stupedama import IhexFile
            >>> data = (b':020000040001F9\n'
            ...         b':0200100041426B\n'
            ...         b':0400000500010010E6\n'
            ...         b':00000001FF\n')
            >>> file = IhexFile.parse(data)
            >>> file.memory.to_blocks()
            [[65552, b'AB']]
            >>> hex(file.startaddr)
            '0x10010'
        """

        if self._records is None:
            raise ValueError('records required')

        tag_type = _cast(IhexTag, self.Record.Tag)
        data_tag = tag_type.DATA
        ela_tag = tag_type.EXTENDED_LINEAR_ADDRESS
        esa_tag = tag_type.EXTENDED_SEGMENT_ADDRESS
        memory = MemoryImage()
        extension = 0
        startaddr = None
        has_ela = False
        has_esa = False
        beyond_segment = None

        for record in self._records:
            tag = _cast(IhexTag, record.tag)

            if tag == data_tag:
                address = record.address + extension
                endex = address + len(record.data)
                if endex > 0x100000000:
                    raise self._overflow_error(address, '32-bit linear', record)
                if endex > 0x100000 and beyond_segment is None:
                    beyond_segment = (address, record)
                self._insert_record(memory, address, record)

            elif tag == ela_tag:
                has_ela = True
                extension = record.data_to_int() << 16

            elif tag == esa_tag:
                has_esa = True
                extension = record.data_to_int() << 4

            elif tag.is_start():
                startaddr = record.data_to_int()

        linear = has_ela or not has_esa
        if not linear and beyond_segment is not None:
            address, record = beyond_segment
            raise self._overflow_error(address, '20-bit segment', record)

        _logger.debug('applied %d records, %d bytes mapped', len(self._records), len(memory))
        self.discard_memory()
        self._memory = memory
        self._startaddr = startaddr
        self._linear = linear
        return self

    @staticmethod
    def _overflow_error(
        address: int,
        mode: str,
        record: IhexRecord,
    ) -> AddressOverflowError:

        line = record.coords[0]
        return AddressOverflowError(f'address 0x{address:X} beyond {mode} addressing',
                                    line=line if line > 0 else None)

    @classmethod
    def from_records(
        cls,
        records: MutableSequence[IhexRecord],
        maxdatalen: Optional[int] = None,
        **meta,
    ) -> Self:
        r"""Like :meth:`BaseFile.from_records`, guessing :attr:`maxdatalen`
        from the longest data record when not given."""

        if maxdatalen is None:
            sizes = [len(record.data) for record in records if record.tag.is_data()]
            maxdatalen = max(sizes, default=0) or cls.DEFAULT_DATALEN

        file = super().from_records(records, maxdatalen=maxdatalen, **meta)
        return file

    @property
    def linear(self) -> bool:
        r"""bool: Addressing mode used for encoding.

        Linear mode (the default) reaches 4 GiB through Extended Linear
        Address records. Segment mode only reaches 1 MiB, through Extended
        Segment Address records.

        Examples:
            >>> from stupedama import IhexFile
            >>> blocks = [[0x1234, b'abc'], [0x000F4321, b'xyz']]
            >>> file = IhexFile.from_blocks(blocks)
            >>> file.linear
            True
            >>> print(file.to_bytes().decode(), end='')
            :0312340061626391
            :02000004000FEB
            :0343210078797A2E
            :00000001FF
            >>> file.linear = False
            >>> print(file.to_bytes().decode(), end='')
            :0312340061626391
            :02000002F0000C
            :0343210078797A2E
            :00000001FF
        """

        if self._memory is None:
            self.apply_records()
        return self._linear

    @linear.setter
    def linear(self, linear: bool) -> None:

        linear = bool(linear)
        if linear != self._linear:
            self.discard_records()
        self._linear = linear

    @property
    def maxdatalen(self) -> int:
        r"""int: Longest payload of an encoded data record, 1 to 255.

        Examples:
            >>> from stupedama import IhexFile
            >>> file = IhexFile.from_bytes(b'abcdef', maxdatalen=4)
            >>> print(file.to_bytes().decode(), end='')
            :040000006162636472
            :0200040065662F
            :00000001FF
        """

        return self._maxdatalen

    @maxdatalen.setter
    def maxdatalen(self, maxdatalen: int) -> None:

        maxdatalen = maxdatalen.__index__()
        if not 1 <= maxdatalen <= 0xFF:
            raise ValueError('invalid maximum data length')

        if maxdatalen != self._maxdatalen:
            self.discard_records()
        self._maxdatalen = maxdatalen

    @property
    def startaddr(self) -> Optional[int]:
        r"""int: Program entry point, or ``None`` for none.

        It is encoded as a start record matching :attr:`linear`.

        Examples:
            >>> from stupedama import IhexFile
            >>> file = IhexFile()
            >>> file.startaddr is None
            True
            >>> file.to_bytes()
            b':00000001FF\n'
            >>> file.startaddr = 0x87654321
            >>> file.to_bytes()
            b':0400000587654321A7\n:00000001FF\n'
        """

        if self._memory is None:
            self.apply_records()
        return self._startaddr

    @startaddr.setter
    def startaddr(self, address: Optional[int]) -> None:

        if address is not None:
            address = address.__index__()
            if not 0 <= address <= 0xFFFFFFFF:
                raise AddressOverflowError('invalid start address')

        if self._startaddr != address:
            self.discard_records()
        self._startaddr = address

    def update_records(self, start: bool = True) -> Self:
        r"""Encodes memory into records.

        Data records hold at most :attr:`maxdatalen` bytes and stay within a
        64 KiB page. An extension record precedes the first data record of
        each page other than page zero. With `start`, :attr:`startaddr` gets
        its own record before the final End Of File.

        Raises:
            :class:`AddressOverflowError`: Mapped bytes beyond 4 GiB, or
            beyond 1 MiB in segment mode.

        Examples:
            >>> from stupedama import IhexFile
            >>> blocks = [[0xFFFE, b'abcd']]
            >>> file = IhexFile.from_blocks(blocks, startaddr=0xFFFE)
            >>> _ = file.update_records()
            >>> len(file.records)
            5
            >>> print(file.to_bytes().decode(), end='')
            :02FFFE0061623E
            :020000040001F9
            :02000000636437
            :040000050000FFFEFA
            :00000001FF
        """

        memory = self._memory
        if memory is None:
            raise ValueError('memory instance required')

        records = []
        Record = self.Record
        last_start = 0
        linear = self.linear

        for chunk_start, chunk_data in memory.chop(self.maxdatalen, boundary=0x10000):
            if linear:
                if chunk_start + len(chunk_data) > 0x100000000:
                    raise AddressOverflowError(f'address 0x{chunk_start:X} beyond 32-bit '
                                               f'linear addressing')

                if (chunk_start ^ last_start) & 0xFFFF0000:
                    extension = chunk_start >> 16
                    record = Record.create_extended_linear_address(extension)
                    records.append(record)
            else:
                if chunk_start + len(chunk_data) > 0x100000:
                    raise AddressOverflowError(f'address 0x{chunk_start:X} beyond 20-bit '
                                               f'segment addressing')

                if (chunk_start ^ last_start) & 0x000F0000:
                    extension = (chunk_start & 0x000F0000) >> 4
                    record = Record.create_extended_segment_address(extension)
                    records.append(record)

            address = chunk_start & 0xFFFF
            record = Record.create_data(address, chunk_data)
            records.append(record)
            last_start = chunk_start

        startaddr = self._startaddr
        if start and startaddr is not None:
            if linear:
                record = Record.create_start_linear_address(startaddr)
            else:
                record = Record.create_start_segment_address(startaddr)
            records.append(record)

        record = Record.create_end_of_file()
        records.append(record)

        _logger.debug('generated %d records', len(records))
        self.discard_records()
        self._records = records
        return self

    def validate_records(
        self,
        data_ordering: bool = False,
        start_required: bool = False,
        start_penultimate: bool = True,
        start_within_data: bool = False,
    ) -> Self:
        r"""Checks each record, then the file layout.

        The End Of File record must be present and last. Optional checks:

        Args:
            data_ordering (bool):
                Data records go by ascending address, without overlaps.

            start_required (bool):
                An entry point record exists.

            start_penultimate (bool):
                The entry point record sits just before End Of File.

            start_within_data (bool):
                The entry point address is mapped.

        Examples:
            >>> from stupedama import IhexFile
            >>> records = [IhexFile.Record.create_data(123, b'abc')]
            >>> file = IhexFile.from_records(records)
            >>> _ = file.validate_records()
            Traceback (most recent call last):
                ...
            stupedama.errors.MalformedRecordError: missing end of file record
        """

        records = self._records
        if records is None:
            raise ValueError('records required')

        start_record = None
        eof_record = None
        last_data_endex = 0
        extension = 0

        for index, record in enumerate(records):
            record.validate()
            tag = _cast(IhexTag, record.tag)

            if data_ordering:
                if tag == tag.DATA:
                    extended_address = record.address + extension
                    if extended_address < last_data_endex:
                        raise MalformedRecordError('unordered data record', line=record.coords[0])
                    last_data_endex = extended_address + len(record.data)

                elif tag == tag.EXTENDED_LINEAR_ADDRESS:
                    extension = record.data_to_int() << 16

                elif tag == tag.EXTENDED_SEGMENT_ADDRESS:
                    extension = record.data_to_int() << 4

            if tag == tag.END_OF_FILE:
                if index != len(records) - 1:
                    raise MalformedRecordError('end of file record not last')
                eof_record = record

            if tag.is_start():
                if start_penultimate:
                    if index != len(records) - 2:
                        raise MalformedRecordError('start record not penultimate')
                start_record = record

        if eof_record is None:
            raise MalformedRecordError('missing end of file record')

        if start_required:
            if start_record is None:
                raise MalformedRecordError('missing start record')

        if start_within_data:
            if start_record is not None:
                startaddr = start_record.data_to_int()
                start_datum = self.memory.peek(startaddr)
                if start_datum is None:
                    raise MalformedRecordError('no data at start address')

        return self


if not __TYPING_HAS_SELF:  # pragma: no cover
    del Self
