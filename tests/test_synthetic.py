import os

import numpy as np
import pytest

from mrc_tools import FileEndian, Mode, open_file, read_mrc, generate_ball_files
from mrc_tools.configs import BALL_MODES, NVERSION_MRC2014
from mrc_tools.io.synthetic import ball_profile, ball_values, write_ball_file

SHAPE = (8, 8, 8)
DIAMETER = 6.0


def test_ball_profile():
    profile = ball_profile(8, 8, 8, DIAMETER)

    assert profile.shape == (8, 8, 8)
    assert profile[4, 4, 4] == 1.0
    assert profile[0, 0, 0] == 0.0
    assert profile.min() >= 0.0


@pytest.mark.parametrize("mode, peak", [
    (Mode.INT8, 127),
    (Mode.INT16, 32767),
    (Mode.UINT16, 65535),
    (Mode.FLOAT16, 1.0),
    (Mode.FLOAT32, 1.0),
])
def test_ball_values_peak(mode, peak):
    values = ball_values(mode, *SHAPE, diameter=DIAMETER)

    assert values.dtype == mode.native_dtype
    assert values.max() == peak
    assert values.reshape(8, 8, 8)[4, 4, 4] == peak


def test_ball_values_complex():
    pairs = ball_values(Mode.INT16_COMPLEX, *SHAPE, diameter=DIAMETER)
    assert pairs.shape == (512, 2)
    assert not pairs[:, 1].any()

    values = ball_values(Mode.FLOAT32_COMPLEX, *SHAPE, diameter=DIAMETER)
    assert values.dtype == np.complex64
    assert values.imag.max() == 0.0


def test_ball_values_rejects_packed():
    with pytest.raises(ValueError, match="No ball volume"):
        ball_values(Mode.PACKED4BIT, *SHAPE)


def test_write_ball_file(tmp_path, endian):
    fn = tmp_path / "ball.mrc"
    header = write_ball_file(fn, Mode.FLOAT32, SHAPE, DIAMETER, endian)

    assert header.dmax == 1.0
    assert header.dmin == 0.0
    assert 0.0 < header.dmean < 1.0
    assert header.labels() == ["ball diameter=6 mode=FLOAT32"]

    header_, volume = read_mrc(fn)
    assert header_ == header
    assert header_.file_endian is endian
    assert header_.exttyp_str == "MRCO"
    assert header_.nversion == NVERSION_MRC2014
    assert (header_.alpha, header_.beta, header_.gamma) == (90.0, 90.0, 90.0)
    assert volume[4, 4, 4] == 1.0


@pytest.mark.parametrize("show_progress", [False, True])
def test_generate_ball_files(tmp_path, show_progress):
    fdn = tmp_path / "balls"
    fns = generate_ball_files(str(fdn), shape=SHAPE, diameter=DIAMETER, show_progress=show_progress)

    assert len(fns) == len(BALL_MODES)
    for mode, fn in zip(BALL_MODES, fns):
        assert os.path.basename(fn) == f"ball_mode_{mode}.mrc"
        with open_file(fn) as f:
            view = f.read_view()
            assert view.mode == mode
            assert view.dimensions == SHAPE
            assert view.header.dmax > 0


def test_generate_int16_complex_ball(tmp_path):
    fns = generate_ball_files(str(tmp_path), modes=[Mode.INT16_COMPLEX], shape=SHAPE, diameter=DIAMETER)

    _, volume = read_mrc(fns[0])
    assert volume.shape == (8, 8, 8, 2)
    assert volume[4, 4, 4].tolist() == [32767, 0]
