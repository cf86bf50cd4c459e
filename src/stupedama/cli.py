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

"""
Module that contains the command line app.

Why does this file exist, and why not put this in __main__?

  You might be tempted to import things from __main__ later, but that will cause
  problems: the code will get executed twice:

  - When you run `python -m stupedama` python will execute
    ``__main__.py`` as a script. That means there won't be any
    ``stupedama.__main__`` in ``sys.modules``.
  - When you import __main__ it will get executed again (as a module) because
    there's no ``stupedama.__main__`` in ``sys.modules``.

  Also see (1) from https://click.palletsprojects.com/en/stable/setuptools/#setuptools-integration
"""

import logging
from typing import Any
from typing import Dict
from typing import Optional

import click

from . import __version__
from .base import guess_format_type
from .errors import StupedamaError
from .formats.ihex import IhexFile
from .formats.vhx import CHUNK_SIZES
from .formats.vhx import VhxFile
from .inspector import dump
from .utils import parse_int

_logger = logging.getLogger(__name__)

LOG_FORMAT: str = '%(levelname)s: %(name)s: %(message)s'
r"""Log record format of the command line app."""


class BasedIntParamType(click.ParamType):
    name = 'integer'

    def convert(self, value, param, ctx):
        try:
            return parse_int(value)
        except ValueError:
            self.fail(f'invalid integer: {value!r}', param, ctx)


class ByteIntParamType(click.ParamType):
    name = 'byte'

    def convert(self, value, param, ctx):
        try:
            b = parse_int(value)
            if not 0 <= b <= 255:
                raise ValueError()
            return b
        except ValueError:
            self.fail(f'invalid byte: {value!r}', param, ctx)


class StupedamaClickException(click.ClickException):
    r"""Reports a :class:`StupedamaError` with its own exit code."""

    def __init__(self, error: StupedamaError):

        super().__init__(str(error))
        self.exit_code = error.exit_code
        self.error = error


BASED_INT = BasedIntParamType()
BYTE_INT = ByteIntParamType()

FILE_PATH_IN = click.Path(dir_okay=False)
FILE_PATH_OUT = click.Path(dir_okay=False, writable=True)

CHUNK_SIZE_CHOICE = click.Choice([str(size) for size in CHUNK_SIZES])
ENDIANNESS_CHOICE = click.Choice(['little', 'big'])


# ----------------------------------------------------------------------------

def print_version(ctx, _, value):

    if not value or ctx.resilient_parsing:
        return

    click.echo(str(__version__))
    ctx.exit()


def setup_logging(verbose: int) -> None:
    r"""Configures logging onto the standard error.

    Args:
        verbose (int):
            Verbosity level: warnings only if zero, informational messages if
            one, debug messages if two or more.
    """

    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger(__package__).setLevel(level)


def build_load_kwargs(
    input_type: type,
    start_address: Optional[int],
    chunk_size: int,
    endianness: str,
) -> Dict[str, Any]:
    r"""Builds the keyword arguments for loading an input file.

    Only the VHX format takes the load address and layout options, as its
    lines carry no addresses; they are ignored for other formats.
    """

    if issubclass(input_type, VhxFile):
        return dict(
            offset=0 if start_address is None else start_address,
            chunksize=chunk_size,
            byteorder=endianness,
        )

    if start_address is not None:
        _logger.warning('start address ignored for %s input: records carry their own addresses',
                        input_type.__name__)
    return {}


def build_save_meta(
    output_type: type,
    chunk_size: int,
    endianness: str,
    fill: int,
    width: Optional[int],
) -> Dict[str, Any]:
    r"""Builds the *meta* values of the output file."""

    if issubclass(output_type, VhxFile):
        return dict(chunksize=chunk_size, byteorder=endianness, fill=fill)

    if issubclass(output_type, IhexFile) and width is not None:
        return dict(maxdatalen=width)

    return {}


# ============================================================================

@click.command(context_settings=dict(help_option_names=['-h', '--help'],
                                     auto_envvar_prefix='STUPEDAMA'))
@click.option('-s', '--start-address', type=BASED_INT, help="""
    Load address of a VHX input file, i.e. the address of its first line.
    Ignored for Intel HEX input, whose records carry their own addresses.
    Defaults to zero.
""")
@click.option('-c', '--chunk-size', type=CHUNK_SIZE_CHOICE, default='128', show_default=True, help="""
    VHX line size, in bits.
""")
@click.option('-e', '--endianness', type=ENDIANNESS_CHOICE, default='little', show_default=True, help="""
    Byte order of 32-bit words, for both VHX files and the memory dump.
""")
@click.option('-f', '--fill', type=BYTE_INT, default='0xFF', show_default=True, help="""
    Byte value filling the unmapped addresses of a VHX output file.
""")
@click.option('-w', '--width', type=BASED_INT, help="""
    Sets the length of the Intel HEX record data field, in bytes.
    By default it is that of the input file, or 255.
""")
@click.option('--squeeze', is_flag=True, help="""
    Replaces repeated memory dump lines with a single asterisk.
""")
@click.option('--color', is_flag=True, help="""
    Colorizes the memory dump with ANSI codes.
""")
@click.option('-v', '--verbose', count=True, help="""
    Increases the logging verbosity; repeat for debug messages.
""")
@click.option('-V', '--version', is_flag=True, is_eager=True,
              expose_value=False, callback=print_version, help="""
    Print version and exit.
""")
@click.argument('infile', type=FILE_PATH_IN)
@click.argument('outfile', type=FILE_PATH_OUT, required=False)
def main(
    start_address: Optional[int],
    chunk_size: str,
    endianness: str,
    fill: int,
    width: Optional[int],
    squeeze: bool,
    color: bool,
    verbose: int,
    infile: str,
    outfile: Optional[str],
) -> None:
    r"""Converts between Intel HEX and VHX memory images.

    ``INFILE`` is the path of the input file, either Intel HEX (``.hex``) or
    VHX (``.vhx``, ``.vhx128``), as told by its extension.

    ``OUTFILE`` is the path of the output file, whose format is told by its
    extension too.
    Leave empty to print the memory dump of ``INFILE`` to standard output.
    """

    setup_logging(verbose)

    if start_address is not None and start_address < 0:
        raise click.BadParameter('negative address', param_hint="'-s' / '--start-address'")

    if width is not None and not 1 <= width <= 255:
        raise click.BadParameter('must be within 1 and 255', param_hint="'-w' / '--width'")

    try:
        input_type = guess_format_type(infile)
        output_type = None if outfile is None else guess_format_type(outfile)

        load_kwargs = build_load_kwargs(input_type, start_address, int(chunk_size), endianness)
        input_file = input_type.load(infile, **load_kwargs)
        _logger.info('loaded %s: %d bytes mapped', infile, len(input_file.memory))

        if output_type is None:
            text = dump(input_file.memory, byteorder=endianness, squeeze=squeeze, color=color)
            click.echo(text, nl=False, color=color or None)
        else:
            output_file = output_type.convert(input_file)
            output_file.set_meta(build_save_meta(output_type, int(chunk_size), endianness,
                                                 fill, width))
            output_file.save(outfile)
            _logger.info('saved %s', outfile)

    except StupedamaError as exc:
        raise StupedamaClickException(exc) from exc
