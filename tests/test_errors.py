import pytest

from stupedama.errors import AddressOverflowError
from stupedama.errors import ChecksumError
from stupedama.errors import IoError
from stupedama.errors import MalformedRecordError
from stupedama.errors import OverlapError
from stupedama.errors import StupedamaError
from stupedama.errors import UnsupportedExtensionError


def test_exit_codes():
    assert IoError.exit_code == 3
    assert MalformedRecordError.exit_code == 4
    assert ChecksumError.exit_code == 5
    assert OverlapError.exit_code == 6
    assert UnsupportedExtensionError.exit_code == 7
    assert AddressOverflowError.exit_code == 8


def test_exit_codes_distinct():
    classes = [IoError, MalformedRecordError, ChecksumError, OverlapError,
               UnsupportedExtensionError, AddressOverflowError]
    codes = [cls.exit_code for cls in classes]
    assert len(set(codes)) == len(codes)
    assert all(code not in (0, 1, 2) for code in codes)


def test_hierarchy():
    assert issubclass(ChecksumError, MalformedRecordError)
    for cls in (MalformedRecordError, OverlapError,
                UnsupportedExtensionError, AddressOverflowError):
        assert issubclass(cls, StupedamaError)
        assert issubclass(cls, ValueError)
    assert issubclass(IoError, StupedamaError)
    assert not issubclass(IoError, ValueError)


def test_str_location():
    error = MalformedRecordError('record too short')
    assert str(error) == 'record too short'
    assert error.path is None
    assert error.line is None

    error = MalformedRecordError('record too short', line=7)
    assert str(error) == '7: record too short'

    error = MalformedRecordError('record too short', path='data.hex', line=7)
    assert str(error) == 'data.hex:7: record too short'

    error = IoError('cannot read file: No such file or directory', path='missing.vhx')
    assert str(error) == 'missing.vhx: cannot read file: No such file or directory'


def test_str_location_updated():
    error = MalformedRecordError('record too short')
    error.path = 'a.hex'
    error.line = 2
    assert str(error) == 'a.hex:2: record too short'
    assert error.message == 'record too short'


def test_checksum_error():
    error = ChecksumError(0x1E, 0x1F, 0x0030)
    assert error.expected == 0x1E
    assert error.actual == 0x1F
    assert error.address == 0x0030
    assert str(error) == 'checksum mismatch at address 0x0030: expected 0x1E, got 0x1F'

    with pytest.raises(MalformedRecordError):
        raise error


def test_overlap_error():
    error = OverlapError((0x31, 0x33), (0x30, 0x33), line=2)
    assert error.inserted == (0x31, 0x33)
    assert error.existing == (0x30, 0x33)
    assert str(error) == ('2: range [0x00000031, 0x00000033) '
                          'overlaps range [0x00000030, 0x00000033)')


def test_unsupported_extension_error():
    error = UnsupportedExtensionError('.bin', ['.hex', '.vhx'], path='out.bin')
    assert error.extension == '.bin'
    assert error.supported == ['.hex', '.vhx']
    assert str(error) == "out.bin: unsupported file extension '.bin' (supported: .hex, .vhx)"
