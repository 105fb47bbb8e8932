"""
Raster decoder tests - LMP, TGA, MDL skins, preview dispatch.

Can be run standalone: python test_raster.py
Or via main runner: python tests.py --raster
"""

import struct
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from pak_builders import TestResults, lmp, mdl, run_module_tests, tga_header

from pakscape.config import CodecSettings, LmpLayout
from pakscape.formats.raster import (
    PALETTE_RGBA, QUAKE_PALETTE_RGB, DecodedRaster, decode_palettized,
    decode_preview, decode_skin, decode_truecolor, is_previewable,
)


def _rgb(index):
    return tuple(QUAKE_PALETTE_RGB[index])


# ═══════════════════════════════════════════════════════════════════════════════
# PALETTE
# ═══════════════════════════════════════════════════════════════════════════════

def test_palette_shape_and_known_colors():
    assert len(QUAKE_PALETTE_RGB) == 256
    assert PALETTE_RGBA.shape == (256, 4)
    assert _rgb(0) == (0, 0, 0)
    assert _rgb(15) == (235, 235, 235)
    assert _rgb(254) == (255, 255, 255)
    assert _rgb(255) == (159, 91, 83)
    assert not PALETTE_RGBA.flags.writeable


# ═══════════════════════════════════════════════════════════════════════════════
# LMP
# ═══════════════════════════════════════════════════════════════════════════════

def test_lmp_swatch_for_768_bytes():
    data = bytes(range(256)) * 3
    raster = decode_palettized("unknown.bin", data)
    assert raster is not None
    assert raster.size == (16, 16)
    assert raster.is_opaque
    assert raster.pixel(0, 0) == (0, 1, 2, 255)
    assert raster.pixel(1, 0) == (3, 4, 5, 255)


def test_lmp_swatch_without_name():
    raster = decode_palettized(None, bytes(768))
    assert raster is not None and raster.size == (16, 16)


def test_lmp_with_header_and_transparency():
    raster = decode_palettized("gfx/qplaque.lmp", lmp(2, 2, bytes([0, 15, 255, 254])))
    assert raster.size == (2, 2)
    assert raster.pixel(0, 0) == _rgb(0) + (255,)
    assert raster.pixel(1, 0) == _rgb(15) + (255,)
    assert raster.pixel(0, 1) == (0, 0, 0, 0)
    assert raster.pixel(1, 1) == _rgb(254) + (255,)


def test_lmp_transparency_can_be_disabled():
    settings = CodecSettings(default_transparent_index=None)
    raster = decode_palettized("x.lmp", lmp(1, 1, b"\xff"), settings)
    assert raster.pixel(0, 0) == _rgb(255) + (255,)


def test_lmp_known_headerless_layouts():
    colormap = bytes(256 * 64) + b"\x20"
    raster = decode_palettized("gfx/COLORMAP.LMP", colormap)
    assert raster.size == (256, 64)
    assert raster.is_opaque

    conchars = bytes([0, 1]) * (128 * 64)
    raster = decode_palettized("conchars", conchars)
    assert raster.size == (128, 128)
    assert raster.pixel(0, 0) == (0, 0, 0, 0)
    assert raster.pixel(1, 0) == _rgb(1) + (255,)


def test_lmp_custom_layout_from_settings():
    settings = CodecSettings()
    settings.lmp_layouts["tiny.lmp"] = LmpLayout(2, 1, transparent_index=None)
    raster = decode_palettized("tiny.lmp", b"\x01\x02", settings)
    assert raster.size == (2, 1)


def test_lmp_truncated_or_bogus_yields_none():
    assert decode_palettized("x.lmp", b"") is None
    assert decode_palettized("x.lmp", b"\x04\x00\x00") is None
    assert decode_palettized("x.lmp", lmp(4, 4, bytes(15))) is None
    assert decode_palettized("x.lmp", lmp(0, 4, b"")) is None
    assert decode_palettized("x.lmp", lmp(-3, 4, bytes(64))) is None
    assert decode_palettized("pop.lmp", bytes(10)) is None


def test_lmp_overflowing_dimensions_yield_none():
    data = struct.pack("<ii", 0x7FFFFFFF, 0x7FFFFFFF) + bytes(16)
    assert decode_palettized("huge.lmp", data) is None
    data = struct.pack("<ii", 40000, 40000) + bytes(16)
    assert decode_palettized("big.lmp", data) is None


# ═══════════════════════════════════════════════════════════════════════════════
# TGA
# ═══════════════════════════════════════════════════════════════════════════════

def test_tga_raw_24bit_bottom_up_is_flipped():
    # rows stored bottom-up: first row in file is the bottom row
    pixels = bytes([0, 0, 255,  0, 255, 0,     # bottom: red, green (BGR)
                    255, 0, 0,  255, 255, 255])  # top: blue, white
    raster = decode_truecolor("a.tga", tga_header(2, 2, 2, 24) + pixels)
    assert raster.pixel(0, 0) == (0, 0, 255, 255)
    assert raster.pixel(1, 0) == (255, 255, 255, 255)
    assert raster.pixel(0, 1) == (255, 0, 0, 255)
    assert raster.pixel(1, 1) == (0, 255, 0, 255)


def test_tga_raw_32bit_top_down_right_to_left():
    pixels = bytes([1, 2, 3, 4,  5, 6, 7, 8])
    raster = decode_truecolor("a.tga", tga_header(2, 2, 1, 32, descriptor=0x38) + pixels)
    assert raster.pixel(0, 0) == (7, 6, 5, 8)
    assert raster.pixel(1, 0) == (3, 2, 1, 4)


def test_tga_id_field_is_skipped():
    header = tga_header(2, 1, 1, 24, descriptor=0x20, id_length=3)
    raster = decode_truecolor("a.tga", header + b"abc" + bytes([10, 20, 30]))
    assert raster.pixel(0, 0) == (30, 20, 10, 255)


def test_tga_grayscale_8_and_16():
    raster = decode_truecolor("g.tga", tga_header(3, 1, 1, 8) + b"\x80")
    assert raster.pixel(0, 0) == (128, 128, 128, 255)
    raster = decode_truecolor("g.tga", tga_header(3, 1, 1, 16) + b"\x40\x11")
    assert raster.pixel(0, 0) == (64, 64, 64, 17)


def test_tga_16bit_with_and_without_alpha_bit():
    value = (31 << 10) | (0 << 5) | 16  # red full, green 0, blue 16, alpha bit clear
    data = struct.pack("<H", value)
    raster = decode_truecolor("c.tga", tga_header(2, 1, 1, 16) + data)
    assert raster.pixel(0, 0) == (255, 0, 132, 255)

    raster = decode_truecolor("c.tga", tga_header(2, 1, 1, 16, descriptor=0x01) + data)
    assert raster.pixel(0, 0)[3] == 0
    data = struct.pack("<H", value | 0x8000)
    raster = decode_truecolor("c.tga", tga_header(2, 1, 1, 16, descriptor=0x01) + data)
    assert raster.pixel(0, 0)[3] == 255


def test_tga_rle_mixed_packets():
    # 4x1 top-down: run of 3 red, then 1 raw blue
    body = bytes([0x82, 0, 0, 255,  0x00, 255, 0, 0])
    raster = decode_truecolor("r.tga", tga_header(10, 4, 1, 24, descriptor=0x20) + body)
    assert raster is not None
    assert [raster.pixel(x, 0) for x in range(4)] == [(255, 0, 0, 255)] * 3 + [(0, 0, 255, 255)]


def test_tga_rle_grayscale():
    body = bytes([0x81, 200])
    raster = decode_truecolor("r.tga", tga_header(11, 2, 1, 8) + body)
    assert raster.pixel(1, 0) == (200, 200, 200, 255)


def test_tga_rle_underfill_yields_none():
    body = bytes([0x81, 0, 0, 255])  # only 2 of 4 pixels
    assert decode_truecolor("r.tga", tga_header(10, 4, 1, 24) + body) is None


def test_tga_rle_overrun_yields_none():
    body = bytes([0x85, 0, 0, 255])  # 6 pixels into a 4-pixel image
    assert decode_truecolor("r.tga", tga_header(10, 4, 1, 24) + body) is None


def test_tga_rle_truncated_literal_yields_none():
    body = bytes([0x03, 1, 2, 3])
    assert decode_truecolor("r.tga", tga_header(10, 4, 1, 24) + body) is None


def test_tga_unsupported_variants_yield_none():
    assert decode_truecolor("a.tga", tga_header(1, 1, 1, 8) + b"\x00") is None
    assert decode_truecolor("a.tga", tga_header(2, 1, 1, 24, colormap_type=1) + bytes(3)) is None
    assert decode_truecolor("a.tga", tga_header(2, 1, 1, 8) + bytes(1)) is None
    assert decode_truecolor("a.tga", tga_header(3, 1, 1, 24) + bytes(3)) is None
    assert decode_truecolor("a.tga", tga_header(2, 0, 1, 24)) is None


def test_tga_truncated_yields_none():
    assert decode_truecolor("a.tga", b"") is None
    assert decode_truecolor("a.tga", tga_header(2, 2, 2, 24)[:10]) is None
    assert decode_truecolor("a.tga", tga_header(2, 2, 2, 24) + bytes(11)) is None


# ═══════════════════════════════════════════════════════════════════════════════
# MDL SKINS
# ═══════════════════════════════════════════════════════════════════════════════

def test_mdl_single_skin():
    skin = bytes([0, 15, 255, 1])
    raster = decode_skin("progs/player.mdl", mdl(2, 2, skin))
    assert raster.size == (2, 2)
    assert raster.pixel(0, 1) == _rgb(255) + (255,)
    assert raster.is_opaque


def test_mdl_group_uses_first_frame():
    frames = [bytes([15] * 4), bytes([0] * 4)]
    raster = decode_skin("m.mdl", mdl(2, 2, b"", group_frames=frames))
    assert raster.pixel(0, 0) == _rgb(15) + (255,)


def test_mdl_rejects_bad_headers():
    assert decode_skin("m.mdl", mdl(2, 2, bytes(4), num_skins=0)) is None
    assert decode_skin("m.mdl", mdl(0, 2, b"")) is None
    assert decode_skin("m.mdl", mdl(2, -1, b"")) is None
    assert decode_skin("m.mdl", bytes(40)) is None


def test_mdl_truncated_or_unknown_group_yields_none():
    assert decode_skin("m.mdl", mdl(4, 4, bytes(15))) is None
    data = bytearray(mdl(1, 1, b"\x00"))
    struct.pack_into("<i", data, 84, 7)
    assert decode_skin("m.mdl", bytes(data)) is None
    assert decode_skin("m.mdl", mdl(2, 2, b"", group_frames=[])) is None


def test_mdl_overflowing_skin_yields_none():
    assert decode_skin("m.mdl", mdl(0x7FFFFFFF, 0x7FFFFFFF, b"")) is None


# ═══════════════════════════════════════════════════════════════════════════════
# PREVIEW / RASTER
# ═══════════════════════════════════════════════════════════════════════════════

def test_preview_dispatch_by_extension():
    assert decode_preview("gfx/p.LMP", lmp(1, 1, b"\x05")).size == (1, 1)
    assert decode_preview("skin.tga", tga_header(3, 1, 1, 8) + b"\x01").size == (1, 1)
    assert decode_preview("progs/m.mdl", mdl(1, 1, b"\x01")).size == (1, 1)
    assert decode_preview("readme.txt", b"hello") is None
    assert is_previewable("conchars")
    assert not is_previewable("maps/e1m1.bsp")


def test_decoders_never_raise_on_garbage():
    garbage = [b"", b"\xff", bytes(17), bytes(18), b"\xff" * 100, bytes(84), bytes(200)]
    for blob in garbage:
        for decode in (decode_palettized, decode_truecolor, decode_skin):
            result = decode("x", blob)
            assert result is None or isinstance(result, DecodedRaster)


def test_raster_validates_shape():
    try:
        DecodedRaster(2, 2, bytes(15))
    except ValueError:
        pass
    else:
        raise AssertionError("short pixel buffer accepted")


def test_raster_to_pil_image():
    raster = decode_palettized("x.lmp", lmp(2, 1, bytes([15, 255])))
    image = raster.to_image()
    assert image.mode == "RGBA"
    assert image.size == (2, 1)
    assert image.getpixel((0, 0)) == _rgb(15) + (255,)
    assert image.getpixel((1, 0)) == (0, 0, 0, 0)


def run_all_tests(results: TestResults = None):
    results = results or TestResults()
    print("\n" + "="*60)
    print("RASTER DECODERS")
    print("="*60)
    run_module_tests(globals(), results)
    return results.passed, results.failed, results.skipped


if __name__ == "__main__":
    r = TestResults()
    run_all_tests(r)
    sys.exit(0 if r.summary("RASTER DECODERS SUMMARY") else 1)
