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

r"""Memory image inspection.

Renders a :class:`MemoryImage` as an address-annotated word dump, similar to
the output of the ``hexdump`` utility:

.. code-block:: none

    00000030: --7a3302 -------- -------- --------

Each line starts with the 8-digit address of its first byte, followed by the
words of the line.
Unmapped bytes are rendered as ``--``.
"""

import logging
from typing import Iterator
from typing import List
from typing import Mapping
from typing import Optional

import colorama

from .base import ByteOrder
from .image import MemoryImage

_logger = logging.getLogger(__name__)

TOKEN_COLOR_CODES: Mapping[str, bytes] = {
    'address': colorama.Fore.RED.encode(),
    'data': colorama.Fore.CYAN.encode(),
    'end': colorama.Style.RESET_ALL.encode(),
    'gap': colorama.Style.DIM.encode(),
}
r"""ANSI escape sequences of the dump tokens."""

GAP_TOKEN: str = '--'
r"""Placeholder of an unmapped byte."""

SQUEEZE_TOKEN: str = '*'
r"""Placeholder of repeated lines."""


def _format_word(
    image: MemoryImage,
    address: int,
    word_size: int,
    byteorder: ByteOrder,
) -> List[str]:

    word = image.get_word(address, word_size)
    if word is not None:
        value = int.from_bytes(word, byteorder=byteorder)
        return [f'{value:0{word_size * 2}x}']

    # Partially mapped: one token per byte, most significant first
    addresses = range(address, address + word_size)
    if byteorder == 'little':
        addresses = reversed(addresses)

    tokens = []
    for byte_address in addresses:
        value = image.peek(byte_address)
        tokens.append(GAP_TOKEN if value is None else f'{value:02x}')
    return tokens


def _colorize(text: str, key: str) -> str:

    code = TOKEN_COLOR_CODES[key].decode()
    reset = TOKEN_COLOR_CODES['end'].decode()
    return f'{code}{text}{reset}'


def iter_dump_lines(
    image: MemoryImage,
    word_size: int = 4,
    words_per_line: int = 4,
    byteorder: ByteOrder = 'little',
    start: Optional[int] = None,
    endex: Optional[int] = None,
    squeeze: bool = False,
    color: bool = False,
) -> Iterator[str]:
    r"""Iterates over the lines of a memory dump.

    See :func:`dump` for the description of the arguments.

    Yields:
        str: Dump line, without line terminator.

    Examples:
        >>> from stupedama.image import MemoryImage
        >>> from stupedama.inspector import iter_dump_lines
        >>> image = MemoryImage.from_bytes(b'\x11\x22\x33\x44', offset=0x104)
        >>> list(iter_dump_lines(image))
        ['00000100: -------- 44332211 -------- --------']
        >>> list(iter_dump_lines(image, byteorder='big'))
        ['00000100: -------- 11223344 -------- --------']
    """

    word_size = word_size.__index__()
    if word_size < 1:
        raise ValueError('invalid word size')

    words_per_line = words_per_line.__index__()
    if words_per_line < 1:
        raise ValueError('invalid words per line')

    if byteorder not in ('little', 'big'):
        raise ValueError(f'invalid byte order: {byteorder!r}')

    if start is None:
        start = image.start
    if endex is None:
        endex = image.endex
    if endex <= start:
        return

    line_length = word_size * words_per_line
    address = start - (start % line_length)
    last_tokens = None
    squeezing = False
    count = 0

    while address < endex:
        words = []
        for offset in range(0, line_length, word_size):
            word_address = address + offset
            word_endex = word_address + word_size

            if word_endex <= start or endex <= word_address:
                words.append([GAP_TOKEN] * word_size)
            else:
                words.append(_format_word(image, word_address, word_size, byteorder))

        tokens = [''.join(word) for word in words]

        if squeeze and tokens == last_tokens:
            if not squeezing:
                squeezing = True
                yield SQUEEZE_TOKEN
        else:
            squeezing = False
            if color:
                items = [_colorize(f'{address:08x}', 'address') + ':']
                for word in words:
                    items.append(''.join(_colorize(token, 'gap' if token == GAP_TOKEN else 'data')
                                         for token in word))
            else:
                items = [f'{address:08x}:']
                items.extend(tokens)
            yield ' '.join(items)

        last_tokens = tokens
        address += line_length
        count += 1

    _logger.debug('dumped %d lines', count)


def dump(
    image: MemoryImage,
    word_size: int = 4,
    words_per_line: int = 4,
    byteorder: ByteOrder = 'little',
    start: Optional[int] = None,
    endex: Optional[int] = None,
    squeeze: bool = False,
    color: bool = False,
    linesep: str = '\n',
) -> str:
    r"""Dumps a memory image as text.

    Lines cover aligned groups of ``word_size * words_per_line`` bytes, from
    the line holding the first address to the line holding the last one.
    Lines of unmapped addresses are rendered too, unless `squeeze` is true.

    Args:
        image (:class:`MemoryImage`):
            Memory image to dump.

        word_size (int):
            Word size, in bytes.

        words_per_line (int):
            Number of words per line.

        byteorder (str):
            Byte order used to read each word, either ``'little'`` or
            ``'big'``.

        start (int):
            Inclusive start address of the dumped window.
            If ``None``, :attr:`MemoryImage.start` is used.

        endex (int):
            Exclusive end address of the dumped window.
            If ``None``, :attr:`MemoryImage.endex` is used.

        squeeze (bool):
            Replaces consecutive identical lines (except for their address)
            with a single ``*`` line, like the ``hexdump`` utility.

        color (bool):
            Colorizes tokens with ANSI color codes.

        linesep (str):
            Line terminator.

    Returns:
        str: Dump text; empty for an empty window.

    Raises:
        ValueError: Invalid argument.

    Examples:
        >>> from stupedama.image import MemoryImage
        >>> from stupedama.inspector import dump
        >>> image = MemoryImage.from_blocks([[0x00, b'\x00\x01\x02\x03'],
        ...                                  [0x24, b'\xAA\xBB\xCC\xDD']])
        >>> print(dump(image), end='')
        00000000: 03020100 -------- -------- --------
        00000010: -------- -------- -------- --------
        00000020: -------- ddccbbaa -------- --------
        >>> print(dump(image, squeeze=True, start=0x10), end='')
        00000010: -------- -------- -------- --------
        00000020: -------- ddccbbaa -------- --------
    """

    return ''.join(line + linesep for line in iter_dump_lines(
        image,
        word_size=word_size,
        words_per_line=words_per_line,
        byteorder=byteorder,
        start=start,
        endex=endex,
        squeeze=squeeze,
        color=color,
    ))
