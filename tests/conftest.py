"""
Shared fixtures: small valid headers and their file images.
"""
import numpy as np
import pytest

from mrc_tools import FileEndian, Header, Mode


def make_header(nx=2, ny=2, nz=2, mode=Mode.FLOAT32, nsymbt=0, endian=FileEndian.LITTLE) -> Header:
    header = Header(nx=nx, ny=ny, nz=nz, mode=int(mode), nsymbt=nsymbt)
    header.set_file_endian(endian)
    return header


@pytest.fixture(params=[FileEndian.LITTLE, FileEndian.BIG], ids=["little", "big"])
def endian(request) -> FileEndian:
    return request.param


@pytest.fixture
def header_factory():
    return make_header


@pytest.fixture
def f32_file(tmp_path, endian):
    """A 4x3x2 FLOAT32 file with a 16-byte extended header, voxel i holds float(i)."""
    header = make_header(4, 3, 2, Mode.FLOAT32, nsymbt=16, endian=endian)
    values = np.arange(24, dtype=np.float32)
    fn = tmp_path / f"f32_{endian.name.lower()}.mrc"
    fn.write_bytes(header.encode() + bytes(range(16)) + values.astype(endian.dtype("f4")).tobytes())
    return fn, header, values
