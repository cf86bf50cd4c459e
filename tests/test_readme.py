# isort: skip_file
from pathlib import Path

import pytest
from click.testing import CliRunner
from test_base import replace_stdout


@pytest.fixture
def tmppath(tmpdir):
    return Path(str(tmpdir))


def _read(path) -> bytes:
    with open(str(path), 'rb') as stream:
        return stream.read()


def _write(path, data: bytes) -> None:
    with open(str(path), 'wb') as stream:
        stream.write(data)


def test_command_line_dump(tmppath):
    from stupedama.cli import main

    path = tmppath / 'firmware.hex'
    _write(path, b':0300300002337A1E\n:00000001FF\n')
    runner = CliRunner()
    result = runner.invoke(main, [str(path)])
    assert result.exit_code == 0
    assert result.output == '00000030: --7a3302 -------- -------- --------\n'


def test_command_line_convert(tmppath):
    from stupedama.cli import main

    path_hex = tmppath / 'firmware.hex'
    path_vhx = tmppath / 'firmware.vhx'
    path_out = tmppath / 'firmware_out.hex'
    _write(path_hex, b':0300300002337A1E\n:00000001FF\n')
    runner = CliRunner()

    result = runner.invoke(main, ['-c', '64', str(path_hex), str(path_vhx)])
    assert result.exit_code == 0
    assert _read(path_vhx) == b'ffffffffff7a3302\n'

    result = runner.invoke(main, ['-s', '0x08000000', '-c', '64', str(path_vhx), str(path_out)])
    assert result.exit_code == 0
    assert _read(path_out) == (b':020000040800F2\n'
                               b':0800000002337AFFFFFFFFFF4E\n'
                               b':00000001FF\n')


def test_library():
    from stupedama import IhexFile, VhxFile, dump

    image = IhexFile.decode(b':0300300002337A1E\n:00000001FF\n')
    assert image.to_blocks() == [[48, b'\x023z']]
    assert VhxFile.encode(image, chunksize=64) == b'ffffffffff7a3302\n'

    with replace_stdout() as stdout:
        print(dump(image), end='')
    assert stdout.buffer.getvalue() == '00000030: --7a3302 -------- -------- --------\n'
