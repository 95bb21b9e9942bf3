import struct

import pytest

from shared.exceptions import InvalidMagicError, MalformedHeaderError
from shared.models import ResampleTarget
from transfer_tool.wav import (
    WavHeader,
    build_header,
    rewrite,
    rewrite_for_data_size,
    rewrite_for_format,
)


def test_parse_reads_named_fields():
    header = WavHeader.parse(build_header(1000, 44100, 2, 16).to_bytes())
    assert header.channels == 2
    assert header.sample_rate == 44100
    assert header.bits_per_sample == 16
    assert header.byte_rate == 44100 * 2 * 2
    assert header.block_align == 4
    assert header.data_size == 1000
    assert header.riff_size == 1036


def test_parse_rejects_short_header():
    with pytest.raises(MalformedHeaderError):
        WavHeader.parse(b"RIFF" + b"\x00" * 20)


def test_parse_rejects_missing_riff_tag():
    raw = bytearray(build_header(10).to_bytes())
    raw[0:4] = b"RIFX"
    with pytest.raises(InvalidMagicError):
        WavHeader.parse(bytes(raw))


def test_parse_rejects_missing_wave_tag():
    raw = bytearray(build_header(10).to_bytes())
    raw[8:12] = b"AVI "
    with pytest.raises(InvalidMagicError):
        WavHeader.parse(bytes(raw))


def test_resize_then_reparse():
    original = build_header(5000, 16000, 1, 16)
    resized = WavHeader.parse(rewrite_for_data_size(original, 1234).to_bytes())
    assert resized.data_size == 1234
    assert resized.riff_size == 1234 + 36


def test_resize_leaves_format_fields_untouched():
    original = build_header(5000, 22050, 2, 8)
    resized = rewrite_for_data_size(original, 300)
    before, after = original.to_bytes(), resized.to_bytes()
    assert before[8:40] == after[8:40]
    assert before[0:4] == after[0:4]


def test_resample_stereo_44k_to_mono_16k():
    original = build_header(1000, 44100, 2, 16)
    target = ResampleTarget(sample_rate_hz=16000, channels=1, bits_per_sample=16)
    rewritten = rewrite_for_format(original, target, total_file_size=1044)
    assert rewritten.channels == 1
    assert rewritten.sample_rate == 16000
    assert rewritten.byte_rate == 32000
    assert rewritten.block_align == 2
    assert rewritten.riff_size == rewritten.data_size + 36


def test_resample_preserves_unrelated_bytes():
    raw = bytearray(build_header(1000, 44100, 2, 16).to_bytes())
    # non-standard values in fields a resample must not touch
    struct.pack_into('<I', raw, 16, 18)
    struct.pack_into('<H', raw, 20, 3)
    raw[36:40] = b"dat!"
    original = WavHeader.parse(bytes(raw))

    rewritten = rewrite_for_format(original, ResampleTarget(), total_file_size=1044).to_bytes()

    assert rewritten[0:4] == b"RIFF"
    assert rewritten[8:22] == bytes(raw[8:22])
    assert rewritten[36:44] == bytes(raw[36:44])


def test_rewrite_dispatches_on_target_type():
    original = build_header(1000)
    assert rewrite(original, 10).data_size == 10
    assert rewrite(original, ResampleTarget(8000, 1, 16), total_file_size=1044).sample_rate == 8000
    with pytest.raises(ValueError):
        rewrite(original, ResampleTarget())


def test_resize_rejects_sizes_beyond_u32():
    with pytest.raises(ValueError):
        rewrite_for_data_size(build_header(10), 0xFFFFFFFF)
    with pytest.raises(ValueError):
        rewrite_for_data_size(build_header(10), -1)


def test_has_valid_magic():
    assert WavHeader.has_valid_magic(build_header(1).to_bytes())
    assert not WavHeader.has_valid_magic(b"ID3\x04" + b"\x00" * 40)
    assert not WavHeader.has_valid_magic(b"RIFF")
