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

r"""Record framework shared by the memory image formats.

A format plugs in by subclassing :class:`BaseTag`, :class:`BaseRecord` and
:class:`BaseFile`, then registering its file class into :data:`file_types`.
"""

import abc
import io
import logging
import os
import sys
from typing import IO
from typing import Any
from typing import List
from typing import Mapping
from typing import MutableMapping
from typing import MutableSequence
from typing import Optional
from typing import Sequence
from typing import Tuple
from typing import Type
from typing import TypeVar
from typing import Union
from typing import cast as _cast


from .errors import ChecksumError
from .errors import IoError
from .errors import MalformedRecordError
from .errors import StupedamaError
from .errors import UnsupportedExtensionError
from .image import AnyBytes
from .image import MemoryImage

try:
    from typing import TypeAlias
except ImportError:  # pragma: no cover
    TypeAlias = Any  # Python < 3.10

try:
    from typing import Literal
    ByteOrder: TypeAlias = Literal['big', 'little']
except ImportError:  # pragma: no cover
    Literal: TypeAlias = str  # Python < 3.8
    ByteOrder: TypeAlias = Literal

try:
    from typing import Self
except ImportError:  # pragma: no cover
    Self: TypeAlias = Any  # Python < 3.11
__TYPING_HAS_SELF = Self is not Any

AnyPath: TypeAlias = Union[bytes, bytearray, str, os.PathLike]
EllipsisType: TypeAlias = Type['Ellipsis']

_logger = logging.getLogger(__name__)

file_types: MutableMapping[str, Type['BaseFile']] = {}
r"""Format name to file class; earlier entries win extension lookups."""


def convert(
    in_path: AnyPath,
    out_path: AnyPath,
    in_format: Optional[str] = None,
    out_format: Optional[str] = None,
    load_kwargs: Optional[Mapping[str, Any]] = None,
    save_meta: Optional[Mapping[str, Any]] = None,
) -> Tuple['BaseFile', 'BaseFile']:
    r"""Converts a memory image file between formats.

    The output format is resolved first, so an unknown output extension
    fails before the input is even opened.
    Nothing is written unless the input decodes and the output serializes.

    Args:
        in_path (str):
            Source path.

        out_path (str):
            Destination path.

        in_format (str):
            Key of :data:`file_types`; guessed from `in_path` if ``None``.

        out_format (str):
            Key of :data:`file_types`; guessed from `out_path` if ``None``.

        load_kwargs (dict):
            Extra arguments for the source :meth:`BaseFile.load`.

        save_meta (dict):
            *Meta* values for the destination file object.

    Returns:
        (in_file, out_file): Both file objects.

    Raises:
        :class:`UnsupportedExtensionError`: Unknown file extension.
    """

    if out_format is None:
        out_format = guess_format_name(out_path)
    out_type = file_types[out_format]
    in_file = load(in_path, in_format=in_format, **(load_kwargs or {}))
    out_file = out_type.convert(in_file)
    if save_meta:
        out_file.set_meta(save_meta)
    out_file.save(out_path)
    return in_file, out_file


def guess_format_name(file_path: AnyPath) -> str:
    r"""Maps a file name extension to a format name.

    The lookup is case insensitive.

    Raises:
        :class:`UnsupportedExtensionError`: No registered format claims the
        extension.

    Examples:
        >>> from stupedama import guess_format_name
        >>> guess_format_name('firmware.hex')
        'ihex'
        >>> guess_format_name('firmware.vhx')
        'vhx'
        >>> guess_format_name('firmware.bin')
        Traceback (most recent call last):
            ...
        stupedama.errors.UnsupportedExtensionError: firmware.bin: unsupported file extension '.bin' (supported: .hex, .vhx, .vhx128)
    """

    file_path = os.fsdecode(file_path)
    file_ext = os.path.splitext(file_path)[1]

    for name, file_type in file_types.items():
        if file_ext.lower() in file_type.FILE_EXT:
            return name

    raise UnsupportedExtensionError(file_ext, supported_extensions(), path=file_path)


def guess_format_type(file_path: AnyPath) -> Type['BaseFile']:
    r"""Like :func:`guess_format_name`, but returns the file class.

    Examples:
        >>> from stupedama import guess_format_type
        >>> guess_format_type('firmware.hex')
        <class 'stupedama.formats.ihex.IhexFile'>
        >>> guess_format_type('firmware.vhx128')
        <class 'stupedama.formats.vhx.VhxFile'>
    """

    name = guess_format_name(file_path)
    return file_types[name]


def load(
    in_path_or_stream: Optional[Union[AnyPath, IO]],
    *load_args: Any,
    in_format: Optional[str] = None,
    **load_kwargs: Any,
) -> 'BaseFile':
    r"""Loads a memory image file of any registered format.

    Streams carry no extension, so they need an explicit `in_format`;
    ``None`` stands for standard input.
    Remaining arguments go to :meth:`BaseFile.load`.

    Raises:
        ValueError: Stream without `in_format`.

        :class:`UnsupportedExtensionError`: Unknown file extension.
    """

    if in_format is None:
        if in_path_or_stream is None or isinstance(in_path_or_stream, io.IOBase):
            raise ValueError('stream requires input format')
        file_type = guess_format_type(in_path_or_stream)
    else:
        file_type = file_types[in_format]

    return file_type.load(in_path_or_stream, *load_args, **load_kwargs)


def supported_extensions() -> List[str]:
    r"""List of the file name extensions of all the registered formats.

    Examples:
        >>> from stupedama.base import supported_extensions
        >>> supported_extensions()
        ['.hex', '.vhx', '.vhx128']
    """

    extensions = []
    for file_type in file_types.values():
        for extension in file_type.FILE_EXT:
            if extension not in extensions:
                extensions.append(extension)
    return extensions


class BaseTag:
    r"""Kind of a record; formats enumerate theirs via :class:`enum.IntEnum`."""

    @abc.abstractmethod
    def is_data(self) -> bool:
        r"""Records with this tag carry memory bytes.

        Examples:
            >>> from stupedama import IhexFile
            >>> record = IhexFile.Record.create_data(123, b'abc')
            >>> record.tag.is_data()
            True
            >>> record = IhexFile.Record.create_end_of_file()
            >>> record.tag.is_data()
            False
        """
        ...

    # noinspection PyMethodMayBeStatic
    def is_file_termination(self) -> bool:
        r"""Nothing after a record with this tag belongs to the file."""

        return False


if not __TYPING_HAS_SELF:  # pragma: no cover
    del Self
    Self = TypeVar('Self', bound='BaseRecord')


class BaseRecord(abc.ABC):
    r"""One line of a memory image file.

    Attributes:
        tag (:class:`BaseTag`):
            Record kind.

        address (int):
            Memory address of the first :attr:`data` byte. Records that are
            not data records may ignore it.

        data (bytes):
            Memory bytes, or the payload of a control record.

        count (int):
            Byte count field as stated in the line; ``None`` for formats
            without one.

        checksum (int):
            Checksum field as stated in the line; ``None`` for formats
            without one.

        coords (int couple):
            ``(line, column)`` where the record was parsed; negative when
            the record was built in memory.

    Args:
        count (int):
            ``Ellipsis`` computes it via :meth:`compute_count`; ``None``
            leaves it unset and unchecked.

        checksum (int):
            ``Ellipsis`` computes it via :meth:`compute_checksum`; ``None``
            leaves it unset and unchecked.

        validate (bool):
            Run :meth:`validate` before returning.
    """

    EQUALITY_KEYS: Sequence[str] = [
        'address',
        'checksum',
        'count',
        'data',
        'tag',
    ]
    r"""Attributes compared by ``==``; :attr:`coords` is left out."""

    META_KEYS: Sequence[str] = [
        'address',
        'checksum',
        'coords',
        'count',
        'data',
        'tag',
    ]
    r"""Attributes reported by :meth:`get_meta`."""

    Tag: Type[BaseTag] = None  # override

    def __bytes__(self) -> bytes:

        return self.to_bytestr()

    def __eq__(self, other: 'BaseRecord') -> bool:

        return not self != other

    def __init__(
        self,
        tag: BaseTag,
        address: int = 0,
        data: AnyBytes = b'',
        count: Optional[Union[int, EllipsisType]] = Ellipsis,
        checksum: Optional[Union[int, EllipsisType]] = Ellipsis,
        coords: Tuple[int, int] = (-1, -1),
        validate: bool = True,
    ):

        self.address: int = address.__index__()
        self.checksum: Optional[int] = None
        self.coords: Tuple[int, int] = coords
        self.count: Optional[int] = None
        self.data: AnyBytes = data
        self.tag: BaseTag = tag

        if count is Ellipsis:
            self.update_count()
        elif count is not None:
            self.count = count.__index__()

        if checksum is Ellipsis:
            self.update_checksum()
        elif checksum is not None:
            self.checksum = checksum.__index__()

        if validate:
            _count = count is not None
            _checksum = checksum is not None and _count
            self.validate(checksum=_checksum, count=_count)

    def __ne__(self, other: 'BaseRecord') -> bool:

        for key in self.EQUALITY_KEYS:
            if not hasattr(other, key):
                return True
            self_value = getattr(self, key)
            other_value = getattr(other, key)
            if self_value != other_value:
                return True

        return False

    def __repr__(self) -> str:

        meta = self.get_meta()
        text = f'<{self.__class__!s} @0x{id(self):08X} '
        text += ' '.join(f'{key!s}:={value!r}' for key, value in meta.items())
        text += '>'
        return text

    def __str__(self) -> str:

        return self.to_bytestr().decode()

    def compute_checksum(self) -> Optional[int]:
        r"""Expected checksum; ``None`` for formats without checksums."""

        return None

    def compute_count(self) -> Optional[int]:
        r"""Expected byte count; ``None`` for formats without counts."""

        return None

    def copy(self, validate: bool = True) -> Self:  # shallow

        meta = self.get_meta()
        tag = meta.pop('tag')
        cls = type(self)
        return cls(tag, validate=validate, **meta)

    @classmethod
    @abc.abstractmethod
    def create_data(cls, address: int, data: AnyBytes) -> Self:
        r"""Builds a record mapping `data` at `address`."""
        ...

    def data_to_int(
        self,
        byteorder: ByteOrder = 'big',
        signed: bool = False,
    ) -> int:
        r"""Payload as an unsigned integer, big-endian by default.

        Examples:
            >>> from stupedama import IhexFile
            >>> record = IhexFile.Record.create_extended_linear_address(0xABCD)
            >>> hex(record.data_to_int())
            '0xabcd'
        """

        value = int.from_bytes(self.data, byteorder=byteorder, signed=signed)
        return value

    def get_meta(self) -> MutableMapping[str, Any]:

        meta = {key: getattr(self, key) for key in self.META_KEYS}
        return meta

    @classmethod
    @abc.abstractmethod
    def parse(
        cls,
        line: AnyBytes,
        validate: bool = True,
    ) -> Self:
        r"""Parses one line, trailing whitespace included.

        Args:
            line (bytes):
                Raw line.

            validate (bool):
                Check the count and checksum fields against the payload.

        Returns:
            :class:`BaseRecord`: Parsed record.

        Raises:
            :class:`MalformedRecordError`: Syntax error.

            :class:`ChecksumError`: Checksum mismatch.
        """
        ...

    def serialize(self, stream: IO, *args, **kwargs) -> Self:

        stream.write(self.to_bytestr(*args, **kwargs))
        return self

    @abc.abstractmethod
    def to_bytestr(self, *args, **kwargs) -> bytes:
        r"""Serialized line, terminator included."""
        ...

    def update_checksum(self) -> Self:

        self.checksum = self.compute_checksum()
        return self

    def update_count(self) -> Self:

        self.count = self.compute_count()
        return self

    def validate(
        self,
        checksum: bool = True,
        count: bool = True,
    ) -> Self:
        r"""Checks the record fields.

        Negative fields and unknown tags are always rejected; the stated
        count and checksum are compared against the payload only on request.

        Returns:
            :class:`BaseRecord`: *self*.

        Raises:
            :class:`MalformedRecordError`: Bad field.

            :class:`ChecksumError`: Stated checksum differs from the
            computed one.

        Examples:
            >>> from stupedama import IhexFile
            >>> record = IhexFile.Record.create_end_of_file()
            >>> _ = record.validate()
            >>> record.checksum = 0
            >>> _ = record.validate()
            Traceback (most recent call last):
                ...
            stupedama.errors.ChecksumError: checksum mismatch at address 0x0000: expected 0xFF, got 0x00
        """

        if self.address < 0:
            raise MalformedRecordError('address overflow')

        if self.count is not None:
            if self.count < 0:
                raise MalformedRecordError('count overflow')

            if count:
                expected = self.compute_count()
                if self.count != expected:
                    raise MalformedRecordError(f'wrong count: stated {self.count}, '
                                               f'found {expected}')

        if self.checksum is not None:
            if self.checksum < 0:
                raise MalformedRecordError('checksum overflow')

            if checksum:
                expected = self.compute_checksum()
                if self.checksum != expected:
                    raise ChecksumError(expected, self.checksum, self.address)

        TagType = _cast(Any, self.Tag)
        try:
            TagType(self.tag)
        except ValueError:
            raise MalformedRecordError(f'invalid tag: {self.tag!r}') from None

        return self


if not __TYPING_HAS_SELF:  # pragma: no cover
    del Self
    Self = TypeVar('Self', bound='BaseFile')


class BaseFile(abc.ABC):
    r"""Memory image file.

    The same file object can hold its content in two shapes: the parsed
    or serializable :attr:`records`, and the decoded :attr:`memory` plus the
    *meta* values of :attr:`META_KEYS` (load address, chunk size and so on).

    Either shape is rebuilt from the other on first access:
    :meth:`apply_records` decodes records into memory, while
    :meth:`update_records` encodes memory into records.
    Changing memory or *meta* drops the stale records.

    :meth:`decode` and :meth:`encode` wrap the whole round in a single call.
    """

    FILE_EXT: Sequence[str] = []
    r"""Lowercase file name extensions claimed by the format."""

    META_KEYS: Sequence[str] = []

    Record: Type[BaseRecord] = None  # override

    def __eq__(self, other: 'BaseFile') -> bool:

        if not isinstance(other, BaseFile):
            return NotImplemented

        if self.get_meta() != other.get_meta():
            return False

        if self._memory is not None and other._memory is not None:
            return self._memory == other._memory

        if self._records is not None and other._records is not None:
            return self._records == other._records

        return self.memory == other.memory

    def __init__(self):

        self._records: Optional[MutableSequence[BaseRecord]] = None
        self._memory: Optional[MemoryImage] = MemoryImage()

    def apply_records(self) -> Self:
        r"""Decodes :attr:`records` into :attr:`memory`.

        The file object is left untouched if decoding fails.

        Raises:
            ValueError: No records to apply.

            :class:`OverlapError`: An address is mapped twice.
        """

        if self._records is None:
            raise ValueError('records required')

        memory = MemoryImage()

        for record in self._records:
            if record.tag.is_data():
                self._insert_record(memory, record.address, record)

        self.discard_memory()
        self._memory = memory
        return self

    @classmethod
    def convert(
        cls,
        source: 'BaseFile',
        meta: bool = True,
    ) -> Self:
        r"""Builds a file of this format holding a copy of `source` memory.

        With `meta`, the *meta* keys known to both formats are carried over.

        Examples:
            >>> from stupedama import IhexFile, VhxFile
            >>> source = VhxFile.from_bytes(b'abcd', offset=0x1000)
            >>> target = IhexFile.convert(source)
            >>> target.memory.to_blocks()
            [[4096, b'abcd']]
        """

        memory = source.memory.copy()
        values = {}
        if meta:
            source_meta = source.get_meta()
            values = {key: source_meta[key] for key in cls.META_KEYS if key in source_meta}
        return cls.from_memory(memory, **values)

    def copy(self, meta: bool = True) -> Self:

        return self.convert(self, meta=meta)

    @classmethod
    def decode(
        cls,
        data: Union[AnyBytes, IO],
        *args,
        **kwargs,
    ) -> MemoryImage:
        r"""Parses and decodes file content in one go.

        Extra arguments go to :meth:`parse`.

        Raises:
            :class:`MalformedRecordError`: Invalid record.

            :class:`ChecksumError`: Record checksum mismatch.

            :class:`OverlapError`: Records mapping the same address.

        Examples:
            >>> from stupedama import IhexFile
            >>> image = IhexFile.decode(b':0300300002337A1E\n:00000001FF\n')
            >>> image.to_blocks()
            [[48, b'\x023z']]
        """

        file = cls.parse(data, *args, **kwargs)
        file.apply_records()
        return file.memory

    def discard_records(self) -> Self:
        r"""Drops the records, keeping at least an empty memory image."""

        self._records = None
        if self._memory is None:
            self._memory = MemoryImage()
        return self

    def discard_memory(self) -> Self:
        r"""Drops the memory image, unless there are no records to rebuild
        it from."""

        self._memory = None
        if self._records is None:
            self._memory = MemoryImage()
        return self

    @classmethod
    def encode(
        cls,
        image: MemoryImage,
        **meta: Any,
    ) -> bytes:
        r"""Serializes a memory image in one go.

        Keyword arguments set *meta* values, as for :meth:`from_memory`.

        Raises:
            :class:`AddressOverflowError`: Some address does not fit the
            format.

        Examples:
            >>> from stupedama import IhexFile
            >>> from stupedama.image import MemoryImage
            >>> image = MemoryImage.from_bytes(b'\x02\x33\x7A', offset=0x30)
            >>> IhexFile.encode(image)
            b':0300300002337A1E\n:00000001FF\n'
        """

        file = cls.from_memory(image, **meta)
        return file.to_bytes()

    @classmethod
    def from_blocks(cls, blocks: Sequence[Tuple[int, AnyBytes]], **meta) -> Self:
        r"""Shortcut for :meth:`MemoryImage.from_blocks` then
        :meth:`from_memory`."""

        memory = MemoryImage.from_blocks(blocks)
        file = cls.from_memory(memory, **meta)
        return file

    @classmethod
    def from_bytes(cls, data: AnyBytes, offset: int = 0, **meta) -> Self:
        r"""Wraps a single byte string mapped at `offset`."""

        memory = MemoryImage.from_bytes(data, offset=offset)
        file = cls.from_memory(memory, **meta)
        return file

    @classmethod
    def from_memory(cls, memory: Optional[MemoryImage] = None, **meta) -> Self:
        r"""Wraps a memory image, taken by reference.

        Args:
            memory (:class:`MemoryImage`):
                Content; ``None`` starts from an empty image.

            meta:
                Values for the keys in :attr:`META_KEYS`.

        Raises:
            KeyError: Unknown *meta* key.
        """

        file = cls()

        if memory is not None:
            file._memory = memory

        for key, value in meta.items():
            if key in cls.META_KEYS:
                setattr(file, key, value)
            else:
                raise KeyError(f'invalid meta: {key}')

        return file

    @classmethod
    def from_records(
        cls,
        records: MutableSequence[BaseRecord],
        **meta,
    ) -> Self:
        r"""Wraps a record list, taken by reference; memory is decoded lazily."""

        file = cls.from_memory(None, **meta)
        file._records = records
        file._memory = None
        return file

    def get_meta(self) -> Mapping[str, Any]:
        r"""dict: Current values of :attr:`META_KEYS`."""

        meta = {key: getattr(self, key) for key in self.META_KEYS}
        return meta

    @classmethod
    def _insert_record(
        cls,
        memory: MemoryImage,
        address: int,
        record: BaseRecord,
    ) -> None:

        try:
            memory.insert(address, record.data)
        except StupedamaError as exc:
            if exc.line is None and record.coords[0] > 0:
                exc.line = record.coords[0]
            raise

    @classmethod
    def _is_line_empty(cls, line: AnyBytes) -> bool:
        r"""Tells whether a line is empty or whitespace only."""

        return not line or line.isspace()

    @classmethod
    def load(
        cls,
        in_path_or_stream: Optional[Union[AnyPath, IO]],
        *args,
        **kwargs,
    ) -> Self:
        r"""Reads, parses and decodes a whole file.

        Records are decoded right away, so that overlaps surface here rather
        than on first :attr:`memory` access. Errors raised while decoding a
        named file get its path attached.

        Args:
            in_path_or_stream (str or bytes IO):
                File path or binary stream; ``None`` reads standard input.

            args:
                Forwarded to :meth:`parse`.

            kwargs:
                Forwarded to :meth:`parse`.

        Raises:
            :class:`IoError`: Unreadable file.

            :class:`MalformedRecordError`: Bad line.
        """

        if in_path_or_stream is None:
            in_path_or_stream = sys.stdin.buffer

        if isinstance(in_path_or_stream, io.IOBase):
            file = cls.parse(in_path_or_stream, *args, **kwargs)
            file.apply_records()
            return file

        path = os.fsdecode(in_path_or_stream)
        try:
            with open(path, 'rb') as stream:
                data = stream.read()
        except OSError as exc:
            raise IoError(f'cannot read file: {exc.strerror or exc}', path=path) from exc

        _logger.debug('loaded %d bytes from %s', len(data), path)
        try:
            file = cls.parse(data, *args, **kwargs)
            file.apply_records()
        except StupedamaError as exc:
            if exc.path is None:
                exc.path = path
            raise
        return file

    @property
    def memory(self) -> MemoryImage:
        r""":class:`MemoryImage`: Decoded content, built from :attr:`records`
        on demand."""

        if self._memory is None:
            self.apply_records()
        return self._memory

    @classmethod
    def parse(
        cls,
        stream: Union[AnyBytes, IO],
        ignore_errors: bool = False,
        ignore_after_termination: bool = True,
    ) -> Self:
        r"""Splits content into lines and parses each into a record.

        Blank lines are skipped but still counted, so that reported line
        numbers match what an editor shows.

        Args:
            stream (bytes IO or buffer):
                Content to parse.

            ignore_errors (bool):
                Log and skip bad lines instead of raising.

            ignore_after_termination (bool):
                Stop at the first file termination record.

        Returns:
            :class:`BaseFile`: File object holding the parsed records.

        Raises:
            :class:`MalformedRecordError`: Bad line; :attr:`line` tells which.
        """

        if isinstance(stream, (bytes, bytearray, memoryview)):
            stream = io.BytesIO(stream)

        Record = cls.Record
        records = []
        row = 0

        for line in stream:
            row += 1

            if cls._is_line_empty(line):
                continue

            try:
                record = Record.parse(line)
            except StupedamaError as exc:
                if ignore_errors:
                    _logger.warning('skipping line %d: %s', row, exc)
                    continue
                exc.line = row
                raise

            record.coords = (row, 0)
            records.append(record)

            if ignore_after_termination:
                if record.tag.is_file_termination():
                    break

        _logger.debug('parsed %d records', len(records))
        file = cls.from_records(records)
        return file

    @property
    def records(self) -> MutableSequence[BaseRecord]:
        r"""list of :class:`BaseRecord`: Serializable records, built from
        :attr:`memory` on demand."""

        if self._records is None:
            self.update_records()
        return self._records

    def save(
        self,
        out_path_or_stream: Optional[Union[AnyPath, IO]],
        *args,
        **kwargs,
    ) -> Self:
        r"""Writes the serialized records.

        The whole content is built before the destination is opened, and a
        destination left half written is removed.

        Args:
            out_path_or_stream (str or bytes IO):
                File path or binary stream; ``None`` writes standard output.

        Raises:
            :class:`IoError`: Unwritable file.
        """

        data = self.to_bytes(*args, **kwargs)

        if out_path_or_stream is None:
            out_path_or_stream = sys.stdout.buffer

        if isinstance(out_path_or_stream, io.IOBase):
            out_path_or_stream.write(data)
            return self

        path = os.fsdecode(out_path_or_stream)
        try:
            with open(path, 'wb') as stream:
                stream.write(data)
        except OSError as exc:
            if os.path.isfile(path):
                os.remove(path)
            raise IoError(f'cannot write file: {exc.strerror or exc}', path=path) from exc

        _logger.debug('saved %d bytes to %s', len(data), path)
        return self

    def set_meta(
        self,
        meta: Mapping[str, Any],
        strict: bool = True,
    ) -> Self:
        r"""Assigns *meta* values, then drops the stale records.

        Unknown keys raise :exc:`KeyError` if `strict`, else they are
        ignored.
        """

        for key, value in meta.items():
            if key in self.META_KEYS:
                setattr(self, key, value)
            elif strict:
                raise KeyError(f'unknown meta: {key!r}')
        self.discard_records()
        return self

    def serialize(self, stream: IO, *args, **kwargs) -> Self:
        r"""Writes each record onto `stream`, in order."""

        for record in self.records:
            record.serialize(stream, *args, **kwargs)
        return self

    def to_bytes(self, *args, **kwargs) -> bytes:

        with io.BytesIO() as stream:
            self.serialize(stream, *args, **kwargs)
            return stream.getvalue()

    @abc.abstractmethod
    def update_records(self) -> Self:
        r"""Encodes :attr:`memory` and *meta* into :attr:`records`.

        The file object is left untouched if encoding fails.

        Raises:
            ValueError: No memory to encode.
        """
        ...

    @abc.abstractmethod
    def validate_records(self) -> Self:
        r"""Checks that the record sequence makes a well formed file.

        Raises:
            :class:`MalformedRecordError`: Bad sequence.
        """
        ...


if not __TYPING_HAS_SELF:  # pragma: no cover
    del Self
