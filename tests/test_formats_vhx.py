import io
import logging
from pathlib import Path

import pytest
from test_base import BaseTestFile
from test_base import BaseTestRecord
from test_base import BaseTestTag

from stupedama.base import guess_format_name
from stupedama.errors import MalformedRecordError
from stupedama.formats.vhx import CHUNK_SIZES
from stupedama.formats.vhx import VhxFile
from stupedama.formats.vhx import VhxRecord
from stupedama.formats.vhx import VhxTag
from stupedama.formats.vhx import swap_chunk
from stupedama.image import MemoryImage

LITTLE_128 = b'0f0e0d0c0b0a09080706050403020100\n'
BIG_128 = b'0c0d0e0f08090a0b0405060700010203\n'


@pytest.fixture
def tmppath(tmpdir):  # pragma: no cover
    return Path(str(tmpdir))


def test_chunk_sizes():
    assert tuple(CHUNK_SIZES) == (64, 128)


def test_swap_chunk():
    assert swap_chunk(b'ABCDEFGH', 'little') == b'HGFEDCBA'
    assert swap_chunk(b'ABCDEFGH', 'big') == b'EFGHABCD'
    assert swap_chunk(b'', 'big') == b''


def test_swap_chunk_involution():
    data = bytes(range(16))
    for byteorder in ('little', 'big'):
        assert swap_chunk(swap_chunk(data, byteorder), byteorder) == data


def test_swap_chunk_raises_byteorder():
    with pytest.raises(ValueError, match='invalid byte order'):
        swap_chunk(b'ABCD', 'middle')


class TestVhxTag(BaseTestTag):

    Tag = VhxTag

    def test_enum(self):
        assert VhxTag.DATA == 0
        assert list(VhxTag) == [VhxTag.DATA]

    def test_is_file_termination(self):
        assert VhxTag.DATA.is_file_termination() is False


class TestVhxRecord(BaseTestRecord):

    Record = VhxRecord

    DATA = bytes(range(8))

    def test___init__(self):
        record = VhxRecord(VhxTag.DATA, data=bytes(8))
        assert record.byteorder == 'little'
        assert record.count is None
        assert record.checksum is None

    def test_create_data(self):
        record = VhxRecord.create_data(0x10, bytes(range(16)))
        assert record.tag == VhxTag.DATA
        assert record.address == 0x10
        assert record.to_bytestr() == LITTLE_128

        record = VhxRecord.create_data(0x10, bytes(range(16)), byteorder='big')
        assert record.to_bytestr() == BIG_128

    def test_parse(self):
        record = VhxRecord.parse(LITTLE_128, address=0x20)
        assert record.address == 0x20
        assert record.data == bytes(range(16))
        assert record.byteorder == 'little'

        record = VhxRecord.parse(BIG_128, byteorder='big')
        assert record.data == bytes(range(16))

    def test_parse_64(self):
        record = VhxRecord.parse(b'ddccbbaa03020100', chunksize=64)
        assert record.data == b'\x00\x01\x02\x03\xAA\xBB\xCC\xDD'

        record = VhxRecord.parse(b'aabbccdd00010203', chunksize=64, byteorder='big')
        assert record.data == b'\x00\x01\x02\x03\xAA\xBB\xCC\xDD'

    def test_parse_uppercase(self):
        record = VhxRecord.parse(b'DDCCBBAA03020100\r\n', chunksize=64)
        assert record.data == b'\x00\x01\x02\x03\xAA\xBB\xCC\xDD'
        assert record.to_bytestr() == b'ddccbbaa03020100\n'

    def test_parse_raises_digit(self):
        with pytest.raises(MalformedRecordError, match='invalid hexadecimal digit'):
            VhxRecord.parse(b'ddccbbaa0302010g', chunksize=64)
        with pytest.raises(MalformedRecordError, match='invalid hexadecimal digit'):
            VhxRecord.parse(b':00000001FF', chunksize=64)

    def test_parse_raises_length(self):
        with pytest.raises(MalformedRecordError, match='expected 16 hexadecimal digits, found 15'):
            VhxRecord.parse(b'dccbbaa03020100', chunksize=64)
        with pytest.raises(MalformedRecordError, match='expected 32 hexadecimal digits, found 16'):
            VhxRecord.parse(b'ddccbbaa03020100')

    def test_validate_raises_byteorder(self):
        record = VhxRecord.create_data(0, bytes(8))
        record.byteorder = 'middle'
        with pytest.raises(MalformedRecordError, match='invalid byte order'):
            record.validate()

    def test_validate_raises_chunk(self):
        record = VhxRecord.create_data(0, bytes(8))
        record.data = bytes(4)
        with pytest.raises(MalformedRecordError, match='invalid chunk size: 32 bits'):
            record.validate()


class TestVhxFile(BaseTestFile):

    File = VhxFile

    BLOCKS = [[0x10, bytes(range(32))]]

    def test___init__(self):
        file = VhxFile()
        assert file.byteorder == 'little'
        assert file.chunksize == 128
        assert file.chunk_length == 16
        assert file.fill == 0xFF
        assert not file.memory

    def test_decode(self):
        image = VhxFile.decode(LITTLE_128 + LITTLE_128)
        assert image.to_blocks() == [[0, bytes(range(16)) * 2]]

    def test_decode_offset(self):
        data = b'0706050403020100\n0f0e0d0c0b0a0908\n'
        image = VhxFile.decode(data, offset=0x8000, chunksize=64)
        assert image.to_blocks() == [[0x8000, bytes(range(16))]]

    def test_decode_big(self):
        image = VhxFile.decode(BIG_128, offset=0x100, byteorder='big')
        assert image.to_blocks() == [[0x100, bytes(range(16))]]

    def test_decode_blank_lines(self):
        data = b'\n0706050403020100\r\n\n   \n0f0e0d0c0b0a0908\n'
        file = VhxFile.parse(data, chunksize=64)
        assert [record.address for record in file.records] == [0, 8]
        assert [record.coords for record in file.records] == [(2, 0), (5, 0)]

    def test_decode_empty(self):
        image = VhxFile.decode(b'')
        assert not image

    def test_decode_raises_line(self):
        data = b'0706050403020100\n\nzz\n'
        with pytest.raises(MalformedRecordError, match='invalid hexadecimal digit') as exc_info:
            VhxFile.decode(data, chunksize=64)
        assert exc_info.value.line == 3

    def test_decode_raises_length(self):
        data = LITTLE_128 + b'0706050403020100\n'
        with pytest.raises(MalformedRecordError) as exc_info:
            VhxFile.decode(data)
        assert exc_info.value.line == 2
        assert str(exc_info.value) == '2: expected 32 hexadecimal digits, found 16'

    def test_encode(self):
        image = MemoryImage.from_bytes(bytes(range(16)))
        assert VhxFile.encode(image) == LITTLE_128
        assert VhxFile.encode(image, byteorder='big') == BIG_128
        assert VhxFile.encode(image, chunksize=64) == b'0706050403020100\n0f0e0d0c0b0a0908\n'

    def test_encode_empty(self):
        assert VhxFile.encode(MemoryImage()) == b''

    def test_encode_fill_holes(self):
        image = MemoryImage.from_blocks([[0x00, b'\x00\x01\x02\x03'], [0x0C, b'\xAA\xBB\xCC\xDD']])
        assert VhxFile.encode(image) == b'ddccbbaaffffffffffffffff03020100\n'
        assert VhxFile.encode(image, byteorder='big') == b'aabbccddffffffffffffffff00010203\n'
        assert VhxFile.encode(image, fill=0) == b'ddccbbaa000000000000000003020100\n'

    def test_encode_padding(self):
        image = MemoryImage.from_bytes(b'\x01\x02\x03\x04\x05')
        assert VhxFile.encode(image, chunksize=64) == b'ffffff0504030201\n'

    def test_encode_logs_fill(self, caplog):
        image = MemoryImage.from_blocks([[0x00, b'\x00\x01\x02\x03'], [0x0C, b'\xAA']])
        with caplog.at_level(logging.INFO, logger='stupedama'):
            VhxFile.encode(image)
        messages = [record.getMessage() for record in caplog.records]
        assert 'filling hole [0x00000004, 0x0000000C) with 0xFF' in messages
        assert 'padding 3 bytes after 0x0000000D with 0xFF' in messages

    def test_parse_ignore_errors(self):
        data = b'0706050403020100\nxx\n0f0e0d0c0b0a0908\n'
        file = VhxFile.parse(data, chunksize=64, ignore_errors=True)
        assert file.memory.to_blocks() == [[0, bytes(range(8))], [16, bytes(range(8, 16))]]

    def test_parse_meta(self):
        file = VhxFile.parse(BIG_128, byteorder='big')
        assert file.byteorder == 'big'
        assert file.chunksize == 128

        file = VhxFile.parse(b'0706050403020100\n', chunksize=64)
        assert file.chunksize == 64

    def test_parse_raises_chunksize(self):
        with pytest.raises(ValueError, match='invalid chunk size'):
            VhxFile.parse(LITTLE_128, chunksize=32)

    def test_parse_raises_offset(self):
        with pytest.raises(ValueError, match='negative offset'):
            VhxFile.parse(LITTLE_128, offset=-1)

    def test_parse_stream(self):
        file = VhxFile.parse(io.BytesIO(LITTLE_128), offset=0x10)
        assert file.memory.to_blocks() == [[0x10, bytes(range(16))]]

    def test_roundtrip(self):
        blocks_samples = [
            [[0x0000, bytes(range(16))]],
            [[0x0100, bytes(range(256))]],
            [[0x8000, bytes(range(64))]],
        ]
        for blocks in blocks_samples:
            image = MemoryImage.from_blocks(blocks)
            for chunksize in CHUNK_SIZES:
                for byteorder in ('little', 'big'):
                    data = VhxFile.encode(image, chunksize=chunksize, byteorder=byteorder)
                    decoded = VhxFile.decode(data, offset=image.start,
                                             chunksize=chunksize, byteorder=byteorder)
                    assert decoded == image

    def test_roundtrip_filled(self):
        image = MemoryImage.from_blocks([[0x10, b'abc'], [0x20, b'xyz']])
        data = VhxFile.encode(image)
        decoded = VhxFile.decode(data, offset=0x10)
        expected = b'abc' + b'\xFF' * 13 + b'xyz' + b'\xFF' * 13
        assert decoded.to_blocks() == [[0x10, expected]]

    def test_setters(self):
        file = VhxFile.from_blocks(self.BLOCKS)
        _ = file.records
        file.byteorder = 'little'
        file.chunksize = 128
        file.fill = 0xFF
        assert file._records is not None

        file.byteorder = 'big'
        assert file._records is None
        _ = file.records
        file.chunksize = 64
        assert file._records is None
        _ = file.records
        file.fill = 0
        assert file._records is None

    def test_setters_raise(self):
        file = VhxFile()
        with pytest.raises(ValueError, match='invalid byte order'):
            file.byteorder = 'middle'
        with pytest.raises(ValueError, match='invalid chunk size'):
            file.chunksize = 32
        with pytest.raises(ValueError, match='invalid fill byte'):
            file.fill = 0x100

    def test_file_ext(self):
        assert guess_format_name('image.vhx') == 'vhx'
        assert guess_format_name('image.vhx128') == 'vhx'

    def test_validate_records(self):
        file = VhxFile.from_blocks(self.BLOCKS, chunksize=64)
        _ = file.records
        assert file.validate_records() is file

    def test_validate_records_raises_records(self):
        file = VhxFile()
        with pytest.raises(ValueError, match='records required'):
            file.validate_records()

    def test_validate_records_raises_chunk(self):
        records = [VhxRecord.create_data(0, bytes(16))]
        file = VhxFile.from_records(records, chunksize=64)
        with pytest.raises(MalformedRecordError, match='chunk of 128 bits within a 64-bit layout'):
            file.validate_records()

    def test_validate_records_raises_consecutive(self):
        records = [VhxRecord.create_data(0, bytes(8)),
                   VhxRecord.create_data(16, bytes(8))]
        file = VhxFile.from_records(records, chunksize=64)
        with pytest.raises(MalformedRecordError, match='non-consecutive chunk'):
            file.validate_records()
