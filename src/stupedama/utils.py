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


r"""Small helpers shared by the formats and the command line."""

import binascii
import re
from typing import Any
from typing import Iterator
from typing import Mapping
from typing import Optional
from typing import Union

from .base import AnyBytes
from .base import EllipsisType

SUFFIX_SCALE: Mapping[str, int] = {
    'k': 2**10,
    'm': 2**20,
    'g': 2**30,

    'kib': 2**10,
    'mib': 2**20,
    'gib': 2**30,

    'kb': 10**3,
    'mb': 10**6,
    'gb': 10**9,
}
r"""Size suffixes accepted by :func:`parse_int`."""

INT_REGEX = re.compile(r'^\s*(?P<sign>[+-]?)\s*'
                       r'(?P<prefix>(0x|0b|0o|0)?)'
                       r'(?P<value>[a-f0-9]+)'
                       r'(?P<suffix>h?)'
                       r'\s*(?P<scale>('
                       r'k|m|g|'
                       r'kib|mib|gib|'
                       r'kb|mb|gb'
                       r')?)\s*$')

_PREFIX_BASE: Mapping[str, int] = {
    '': 10,
    '0': 8,
    '0b': 2,
    '0o': 8,
    '0x': 16,
}

DEFAULT_DELETE: bytes = b' \t_\r\n'
r"""Separators stripped by ``unhexlify(..., delete=...)``."""


def chop(
    vector: AnyBytes,
    window: int,
) -> Iterator[AnyBytes]:
    r"""Slices `vector` into consecutive pieces of `window` items; the last
    one may be shorter.

    Examples:
        >>> from stupedama.utils import chop
        >>> list(chop(b'ABCDEFG', 2))
        [b'AB', b'CD', b'EF', b'G']
    """

    window = int(window)
    if window <= 0:
        raise ValueError('non-positive window')

    for offset in range(0, len(vector), window):
        yield vector[offset:(offset + window)]


def hexlify(
    bytestr: AnyBytes,
    sep: Optional[Union[bytes, bytearray]] = None,
    upper: bool = True,
) -> bytes:
    r"""Hexadecimal digits of `bytestr`, two per byte.

    Examples:
        >>> from stupedama.utils import hexlify
        >>> hexlify(b'\x02\x33\x7A')
        b'02337A'
        >>> hexlify(b'\x02\x33\x7A', sep=b' ')
        b'02 33 7A'
        >>> hexlify(b'\x02\x33\x7A', upper=False)
        b'02337a'
    """

    hexstr = binascii.hexlify(bytestr, sep) if sep else binascii.hexlify(bytestr)
    return hexstr.upper() if upper else hexstr


def parse_int(
    value: Union[str, Any],
) -> Optional[int]:
    r"""Converts a command line number into an integer.

    Strings are case insensitive. The radix follows the C prefixes (``0x``,
    ``0b``, ``0o`` and a bare leading ``0`` for octal) or a trailing ``h``
    for hexadecimal, and an optional :data:`SUFFIX_SCALE` unit multiplies
    the result. ``None`` passes through; other objects go through
    :func:`int`.

    Raises:
        ValueError: Not a number.

    Examples:
        >>> from stupedama.utils import parse_int
        >>> parse_int('0x1000')
        4096
        >>> parse_int('8000h')
        32768
        >>> parse_int('64k')
        65536
        >>> parse_int('123')
        123
    """

    if value is None:
        return None

    if not isinstance(value, str):
        return int(value)

    text = value.lower()
    match = INT_REGEX.match(text)
    if not match:
        raise ValueError(f'invalid syntax: {text!r}')

    prefix = match.group('prefix')
    hex_suffix = match.group('suffix') == 'h'
    if hex_suffix:
        if prefix in ('0b', '0o'):
            raise ValueError(f'invalid syntax: {text!r}')
        base = 16
    else:
        base = _PREFIX_BASE[prefix]

    number = int(match.group('value'), base)
    number *= SUFFIX_SCALE.get(match.group('scale'), 1)
    return -number if match.group('sign') == '-' else number


def reverse_words(
    bytestr: AnyBytes,
    size: int,
) -> bytes:
    r"""Swaps the byte order of each `size` bytes word.

    Raises:
        ValueError: `bytestr` does not hold whole words.

    Examples:
        >>> from stupedama.utils import reverse_words
        >>> reverse_words(b'ABCDEFGH', 4)
        b'DCBAHGFE'
    """

    if len(bytestr) % size:
        raise ValueError('partial word')

    return b''.join(bytes(word[::-1]) for word in chop(bytestr, size))


def unhexlify(
    hexstr: Union[bytes, bytearray],
    delete: Optional[Union[bytes, bytearray, EllipsisType]] = None,
) -> bytes:
    r"""Bytes encoded by hexadecimal digits.

    Args:
        hexstr (bytes):
            Digits, either case.

        delete (bytes):
            Byte values dropped from `hexstr` first; ``Ellipsis`` selects
            :data:`DEFAULT_DELETE`.

    Raises:
        binascii.Error: Odd digit count, or a non-hexadecimal digit.

    Examples:
        >>> from stupedama.utils import unhexlify
        >>> unhexlify(b'02337a')
        b'\x023z'
        >>> unhexlify(b'0233_7a', delete=...)
        b'\x023z'
    """

    if delete is Ellipsis:
        delete = DEFAULT_DELETE
    if delete:
        hexstr = hexstr.translate(None, delete)

    return binascii.unhexlify(hexstr)
