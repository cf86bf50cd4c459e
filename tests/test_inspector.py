import pytest

from stupedama.image import MemoryImage
from stupedama.inspector import GAP_TOKEN
from stupedama.inspector import SQUEEZE_TOKEN
from stupedama.inspector import TOKEN_COLOR_CODES
from stupedama.inspector import dump
from stupedama.inspector import iter_dump_lines


@pytest.fixture
def gapped_image():
    return MemoryImage.from_blocks([[0x00, b'\x00\x01\x02\x03'],
                                    [0x24, b'\xAA\xBB\xCC\xDD']])


def test_tokens():
    assert GAP_TOKEN == '--'
    assert SQUEEZE_TOKEN == '*'


def test_dump_gap_line(gapped_image):
    lines = dump(gapped_image).splitlines()
    assert lines == [
        '00000000: 03020100 -------- -------- --------',
        '00000010: -------- -------- -------- --------',
        '00000020: -------- ddccbbaa -------- --------',
    ]


def test_dump_partial_word():
    image = MemoryImage.from_bytes(b'\x02\x33\x7A', offset=0x30)
    assert dump(image) == '00000030: --7a3302 -------- -------- --------\n'
    assert dump(image, byteorder='big') == '00000030: 02337a-- -------- -------- --------\n'


def test_dump_big(gapped_image):
    lines = dump(gapped_image, byteorder='big').splitlines()
    assert lines[0] == '00000000: 00010203 -------- -------- --------'
    assert lines[2] == '00000020: -------- aabbccdd -------- --------'


def test_dump_empty():
    assert dump(MemoryImage()) == ''


def test_dump_linesep(gapped_image):
    text = dump(gapped_image, linesep='\r\n')
    assert text.count('\r\n') == 3
    assert text.endswith('--------\r\n')


def test_dump_squeeze():
    image = MemoryImage.from_bytes(bytes(64))
    lines = dump(image, squeeze=True).splitlines()
    assert lines == [
        '00000000: 00000000 00000000 00000000 00000000',
        SQUEEZE_TOKEN,
    ]


def test_dump_squeeze_resume():
    image = MemoryImage.from_bytes(bytes(48) + b'\x01\x02\x03\x04')
    lines = dump(image, squeeze=True).splitlines()
    assert lines == [
        '00000000: 00000000 00000000 00000000 00000000',
        SQUEEZE_TOKEN,
        '00000030: 04030201 -------- -------- --------',
    ]


def test_dump_squeeze_gaps(gapped_image):
    lines = dump(gapped_image, squeeze=True).splitlines()
    assert len(lines) == 3


def test_dump_window(gapped_image):
    text = dump(gapped_image, start=0x20, endex=0x28)
    assert text == '00000020: -------- ddccbbaa -------- --------\n'

    assert dump(gapped_image, start=0x28, endex=0x20) == ''


def test_dump_window_excludes_words():
    image = MemoryImage.from_bytes(bytes(range(16)))
    text = dump(image, start=4, endex=8)
    assert text == '00000000: -------- 07060504 -------- --------\n'


def test_dump_word_size():
    image = MemoryImage.from_bytes(b'\x01\x02\x03\x04')
    text = dump(image, word_size=2, words_per_line=8)
    assert text == '00000000: 0201 0403 ---- ---- ---- ---- ---- ----\n'

    text = dump(image, word_size=1, words_per_line=4)
    assert text == '00000000: 01 02 03 04\n'


def test_dump_color(gapped_image):
    text = dump(gapped_image, color=True)
    address_code = TOKEN_COLOR_CODES['address'].decode()
    data_code = TOKEN_COLOR_CODES['data'].decode()
    gap_code = TOKEN_COLOR_CODES['gap'].decode()
    assert text.startswith(address_code + '00000000')
    assert data_code + '03020100' in text
    assert gap_code + '--' in text
    assert text.count('\n') == 3


def test_dump_raises():
    image = MemoryImage.from_bytes(b'abcd')
    with pytest.raises(ValueError, match='invalid word size'):
        dump(image, word_size=0)
    with pytest.raises(ValueError, match='invalid words per line'):
        dump(image, words_per_line=0)
    with pytest.raises(ValueError, match='invalid byte order'):
        dump(image, byteorder='middle')


def test_iter_dump_lines(gapped_image):
    lines = iter_dump_lines(gapped_image)
    assert next(lines) == '00000000: 03020100 -------- -------- --------'
    assert len(list(lines)) == 2
