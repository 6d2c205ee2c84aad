import numpy as np
import pytest

from mrc_tools import MrcView, MrcViewMut, FileEndian, Header, Mode, \
    InvalidHeaderError, InvalidDimensionsError, TypeMismatchError
from conftest import make_header


def f32_image(endian: FileEndian, values, nsymbt=0):
    header = make_header(2, 2, 2, Mode.FLOAT32, nsymbt=nsymbt, endian=endian)
    data = np.asarray(values, dtype=endian.dtype("f4")).tobytes()
    return header, bytes(nsymbt), data


def test_view_reads_values(endian):
    values = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0]
    header, ext, data = f32_image(endian, values)

    view = MrcView.from_parts(header, ext, data)

    assert view.mode is Mode.FLOAT32
    assert view.file_endian is endian
    assert view.dimensions == (2, 2, 2)
    assert view.data.to_f32().tolist() == values
    assert view.to_array().tolist() == values


@pytest.mark.parametrize("ext_len, data_len", [(1, 32), (0, 31), (0, 33)])
def test_view_rejects_wrong_lengths(ext_len, data_len):
    header = make_header(2, 2, 2, Mode.FLOAT32)
    with pytest.raises(InvalidDimensionsError, match="size mismatch"):
        MrcView.from_parts(header, bytes(ext_len), bytes(data_len))


def test_view_checks_ext_header_before_data():
    header = make_header(2, 2, 2, Mode.FLOAT32, nsymbt=4)
    with pytest.raises(InvalidDimensionsError, match="Extended header"):
        MrcView.from_parts(header, bytes(3), bytes(31))


def test_view_rejects_invalid_header():
    header = make_header(2, 2, 2, Mode.FLOAT32)
    header.map = b"XXXX"
    with pytest.raises(InvalidHeaderError):
        MrcView.from_parts(header, b"", bytes(32))


def test_view_rejects_unregistered_mode():
    header = make_header(2, 2, 2, Mode.FLOAT32)
    header.mode = 5
    assert not header.validate()
    with pytest.raises(InvalidHeaderError, match="mode=5"):
        MrcView.from_parts(header, b"", b"")


def test_header_is_a_copy():
    header, ext, data = f32_image(FileEndian.LITTLE, range(8))
    view = MrcView.from_parts(header, ext, data)

    header.nx = 99
    copy = view.header
    copy.ny = 99

    assert view.dimensions == (2, 2, 2)
    assert view.header.ny == 2


def test_mutable_view_writes_through(endian):
    header, ext, data = f32_image(endian, [0.0] * 8)
    data = bytearray(data)
    view = MrcViewMut.from_parts(header, bytearray(ext), data)

    view.data.put_f32(3, 42.0)
    assert view.data.get_f32(3) == 42.0
    assert bytes(data[12:16]) == np.array([42.0], dtype=endian.dtype("f4")).tobytes()

    view.data_mut[0:4] = np.array([1.5], dtype=endian.dtype("f4")).tobytes()
    assert view.data.get_f32(0) == 1.5


def test_mutable_header_is_live():
    header, ext, data = f32_image(FileEndian.LITTLE, range(8))
    view = MrcViewMut.from_parts(header, bytearray(ext), bytearray(data))

    view.header_mut.dmax = 7.0
    view.header_mut.add_label("edited")

    assert view.header.dmax == 7.0
    assert Header.decode(view.encode_header()).labels() == ["edited"]


def test_mutable_ext_header():
    header, ext, data = f32_image(FileEndian.LITTLE, range(8), nsymbt=4)
    ext = bytearray(ext)
    view = MrcViewMut.from_parts(header, ext, bytearray(data))

    view.ext_header_mut[:] = b"abcd"
    assert bytes(ext) == b"abcd"
    assert bytes(view.ext_header) == b"abcd"


def test_mutable_view_needs_writable_buffers():
    header, ext, data = f32_image(FileEndian.LITTLE, range(8))
    with pytest.raises(TypeMismatchError):
        MrcViewMut.from_parts(header, bytearray(ext), data)


def test_from_buffer_splits_at_nsymbt():
    header, _, data = f32_image(FileEndian.BIG, range(8), nsymbt=3)
    view = MrcView.from_buffer(header, b"xyz" + data)

    assert bytes(view.ext_header) == b"xyz"
    assert view.to_array().tolist() == list(range(8))

    with pytest.raises(InvalidDimensionsError):
        MrcView.from_buffer(header, b"xy")


def test_to_bytes_and_back(endian):
    header, _, data = f32_image(endian, range(8), nsymbt=5)
    view = MrcView.from_buffer(header, b"hello" + data)

    raw = view.to_bytes()
    assert len(raw) == 1024 + 5 + 32

    again = MrcView.from_bytes(raw)
    assert again.header == view.header
    assert again.file_endian is endian
    assert bytes(again.ext_header) == b"hello"
    assert again.to_array().tolist() == list(range(8))


def test_from_bytes_short_image():
    with pytest.raises(InvalidHeaderError):
        MrcView.from_bytes(bytes(100))


def test_volume_is_x_fastest():
    header = make_header(4, 3, 2, Mode.INT16)
    data = np.arange(24, dtype="<i2").tobytes()
    view = MrcView.from_parts(header, b"", data)

    volume = view.volume()
    assert volume.shape == (2, 3, 4)
    # voxel (x=1, y=2, z=1)
    assert volume[1, 2, 1] == 1 + 4 * 2 + 12 * 1


def test_volume_complex_int16():
    header = make_header(2, 1, 1, Mode.INT16_COMPLEX)
    data = np.array([1, -1, 2, -2], dtype="<i2").tobytes()
    view = MrcView.from_parts(header, b"", data)

    assert view.volume().shape == (1, 1, 2, 2)
    assert view.volume()[0, 0, 1].tolist() == [2, -2]


@pytest.mark.parametrize("mode", list(Mode))
def test_every_mode_builds_a_view(mode, endian):
    header = make_header(3, 3, 3, mode, endian=endian)
    data = bytearray(header.data_size())
    view = MrcViewMut.from_parts(header, bytearray(), data)

    assert view.mode is mode
    assert len(view.data) == 27
    assert view.volume().shape[:3] == (3, 3, 3)


def test_update_statistics():
    header, ext, data = f32_image(FileEndian.LITTLE, [1.0, 1.0, 1.0, 1.0, 3.0, 3.0, 3.0, 3.0])
    view = MrcViewMut.from_parts(header, bytearray(ext), bytearray(data))
    view.update_statistics()

    assert view.header.dmin == 1.0
    assert view.header.dmax == 3.0
    assert view.header.dmean == 2.0
    assert view.header.rms == pytest.approx(1.0)


def test_update_statistics_complex_uses_magnitude():
    header = make_header(2, 1, 1, Mode.INT16_COMPLEX)
    data = bytearray(np.array([3, 4, 0, 0], dtype="<i2").tobytes())
    view = MrcViewMut.from_parts(header, bytearray(), data)
    view.update_statistics()

    assert view.header.dmax == 5.0
    assert view.header.dmin == 0.0
    assert view.header.dmean == 2.5


def test_statistics_survive_encoding(endian):
    header, ext, data = f32_image(endian, [0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8])
    view = MrcViewMut.from_parts(header, bytearray(ext), bytearray(data))
    view.update_statistics()

    assert view.header.dmean == pytest.approx(0.45)
    assert Header.decode(view.encode_header()) == view.header
