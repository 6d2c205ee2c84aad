import numpy as np
import pytest

from mrc_tools import Mode

MODES = [
    # code, mode, byte width, complex, integer, float
    (0,   Mode.INT8,            1, False, True,  False),
    (1,   Mode.INT16,           2, False, True,  False),
    (2,   Mode.FLOAT32,         4, False, False, True),
    (3,   Mode.INT16_COMPLEX,   4, True,  True,  False),
    (4,   Mode.FLOAT32_COMPLEX, 8, True,  False, True),
    (6,   Mode.UINT16,          2, False, True,  False),
    (12,  Mode.FLOAT16,         2, False, False, True),
    (101, Mode.PACKED4BIT,      1, False, True,  False),
]


@pytest.mark.parametrize("code, mode, width, is_complex, is_integer, is_float", MODES)
def test_registry(code, mode, width, is_complex, is_integer, is_float):
    assert Mode.from_code(code) is mode
    assert mode.byte_width == width
    assert mode.is_complex == is_complex
    assert mode.is_integer == is_integer
    assert mode.is_float == is_float


@pytest.mark.parametrize("code", [5, 7, -1, 100, 2**31 - 1])
def test_unregistered_codes(code):
    assert Mode.from_code(code) is None


def test_from_code_never_raises_on_junk():
    assert Mode.from_code(None) is None
    assert Mode.from_code("two") is None


@pytest.mark.parametrize("code", [2.0, 2.7, "2", b"\x02"])
def test_from_code_needs_an_integer(code):
    assert Mode.from_code(code) is None


def test_from_code_accepts_numpy_integers():
    assert Mode.from_code(np.int32(2)) is Mode.FLOAT32
    assert Mode.from_code(Mode.INT16) is Mode.INT16


@pytest.mark.parametrize("mode", [m for _, m, *_ in MODES if m is not Mode.PACKED4BIT])
def test_data_size_scales_with_width(mode):
    assert mode.data_size(10 * 20 * 30) == 10 * 20 * 30 * mode.byte_width


@pytest.mark.parametrize("count, expected", [(0, 0), (1, 1), (2, 1), (5, 3), (6, 3), (27, 14)])
def test_packed_data_size_rounds_up(count, expected):
    assert Mode.PACKED4BIT.data_size(count) == expected


def test_native_dtypes():
    assert Mode.FLOAT16.native_dtype == np.float16
    assert Mode.FLOAT32_COMPLEX.native_dtype == np.complex64
    assert Mode.INT16_COMPLEX.native_dtype == np.int16
    assert Mode.INT16_COMPLEX.scalars_per_voxel == 2
    assert Mode.PACKED4BIT.native_dtype == np.uint8
