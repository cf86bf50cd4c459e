import binascii
from typing import Any
from typing import Mapping
from typing import Type

import pytest

from stupedama.utils import DEFAULT_DELETE
from stupedama.utils import chop
from stupedama.utils import hexlify
from stupedama.utils import parse_int
from stupedama.utils import reverse_words
from stupedama.utils import unhexlify

PARSE_INT_PASS: Mapping[Any, int] = {
    None: None,

    '123': 123,
    ' 123 ': 123,
    '\t123\t': 123,
    '+123': 123,
    '-123': -123,
    ' + 123 ': 123,
    ' - 123 ': -123,

    '0': 0,
    '0xFF': 0xFF,
    '0x8000': 0x8000,
    '0XDEADBEEF': 0xDEADBEEF,
    '8000h': 0x8000,
    'DEADBEEFH': 0xDEADBEEF,

    '0b101100111000': 0b101100111000,

    '01234567': 0o1234567,
    '0o1234567': 0o1234567,

    '1k': 2**10,
    '1M': 2**20,
    '1 G': 2**30,

    '1KiB': 2**10,
    '1 mib': 2**20,

    '1 KB': 10**3,
    '1MB': 10**6,

    b'456': 456,
    123: 123,
    135.7: 135,
}

PARSE_INT_FAIL: Mapping[Any, Type[BaseException]] = {
    Ellipsis: TypeError,
    '': ValueError,
    'x': ValueError,
    '0xZZ': ValueError,
    '0b1h': ValueError,
    '0o1h': ValueError,
    '12 parsecs': ValueError,
    (1,): TypeError,
}


def test_chop():
    assert list(chop(b'ABCDEFG', 2)) == [b'AB', b'CD', b'EF', b'G']
    assert b':'.join(chop(b'ABCDEFG', 2)) == b'AB:CD:EF:G'
    assert list(chop(b'ABC', 8)) == [b'ABC']
    assert list(chop(b'', 2)) == []


def test_chop_raises():
    with pytest.raises(ValueError, match='non-positive window'):
        next(chop(b'ABDEFG', -1))
    with pytest.raises(ValueError, match='non-positive window'):
        next(chop(b'ABDEFG', 0))


def test_hexlify():
    assert hexlify(b'\xAA\xBB\xCC') == b'AABBCC'
    assert hexlify(b'\xAA\xBB\xCC', sep=b' ') == b'AA BB CC'
    assert hexlify(b'\xAA\xBB\xCC', sep=b'-') == b'AA-BB-CC'
    assert hexlify(b'\xAA\xBB\xCC', upper=False) == b'aabbcc'
    assert hexlify(b'') == b''


def test_parse_int_doctest():
    assert parse_int('-0xABk') == -175104
    assert parse_int(None) is None
    assert parse_int(123) == 123
    assert parse_int(135.7) == 135


def test_parse_int_fail():
    for value_in, raised_exception in PARSE_INT_FAIL.items():
        with pytest.raises(raised_exception):
            parse_int(value_in)


def test_parse_int_pass():
    for value_in, value_out in PARSE_INT_PASS.items():
        assert parse_int(value_in) == value_out


def test_reverse_words():
    assert reverse_words(b'ABCDEFGH', 4) == b'DCBAHGFE'
    assert reverse_words(b'ABCDEFGH', 2) == b'BADCFEHG'
    assert reverse_words(b'ABCDEFGH', 1) == b'ABCDEFGH'
    assert reverse_words(b'', 4) == b''


def test_reverse_words_involution():
    data = bytes(range(32))
    for size in (1, 2, 4, 8, 16):
        assert reverse_words(reverse_words(data, size), size) == data


def test_reverse_words_raises():
    with pytest.raises(ValueError, match='partial word'):
        reverse_words(b'ABCDEF', 4)


def test_unhexlify():
    assert unhexlify(b'AABBCC') == b'\xaa\xbb\xcc'
    assert unhexlify(b'aabbcc') == b'\xaa\xbb\xcc'
    assert unhexlify(b'AA BB CC', delete=...) == b'\xaa\xbb\xcc'
    assert unhexlify(b'AA_BB_CC\r\n', delete=...) == b'\xaa\xbb\xcc'
    assert unhexlify(b'AA/BB/CC', delete=b'/') == b'\xaa\xbb\xcc'
    assert unhexlify(b'') == b''


def test_unhexlify_default_delete():
    assert DEFAULT_DELETE == b' \t_\r\n'


def test_unhexlify_raises():
    with pytest.raises(binascii.Error):
        unhexlify(b'ABC')
    with pytest.raises(binascii.Error):
        unhexlify(b'GG')
