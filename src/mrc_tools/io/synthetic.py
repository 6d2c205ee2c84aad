"""
Synthetic ball volumes, one file per mode, for exercising readers.
"""
import os
import logging

import numpy as np
from tqdm import tqdm

from .mrc_file import MrcFile
from ..core import FileEndian, Header, Mode
from ..configs import BALL_SHAPE, BALL_DIAMETER, BALL_MODES, BALL_FILENAME, NVERSION_MRC2014

logger = logging.getLogger(__name__)

# peak value of the ball for each mode
_BALL_PEAKS = {
    Mode.INT8: 127.0,
    Mode.INT16: 32767.0,
    Mode.UINT16: 65535.0,
    Mode.INT16_COMPLEX: 32767.0,
    Mode.FLOAT32: 1.0,
    Mode.FLOAT16: 1.0,
    Mode.FLOAT32_COMPLEX: 1.0,
}


def ball_profile(nx: int, ny: int, nz: int, diameter: float) -> np.ndarray:
    """1 at the centre falling linearly to 0 at the ball surface, shape (nz, ny, nx)."""
    z, y, x = np.meshgrid(
        np.arange(nz, dtype=np.float32) - nz / 2.0,
        np.arange(ny, dtype=np.float32) - ny / 2.0,
        np.arange(nx, dtype=np.float32) - nx / 2.0,
        indexing="ij",
    )
    radius = diameter / 2.0
    distance = np.sqrt(x * x + y * y + z * z)
    return np.where(distance <= radius, 1.0 - distance / radius, 0.0).astype(np.float32)


def ball_values(mode: Mode, nx: int, ny: int, nz: int, diameter: float = BALL_DIAMETER) -> np.ndarray:
    """
    Native-endian ball values in the layout expected by DataBlockMut.set().

    Integer modes truncate towards zero; complex modes carry the ball in
    the real part and zero in the imaginary part.
    """
    mode = Mode(mode)
    if mode not in _BALL_PEAKS:
        raise ValueError(f"No ball volume for mode {mode.name}")

    values = (_BALL_PEAKS[mode] * ball_profile(nx, ny, nz, diameter)).reshape(-1)
    if mode is Mode.INT16_COMPLEX:
        pairs = np.zeros((values.size, 2), dtype=np.int16)
        pairs[:, 0] = values.astype(np.int16)
        return pairs
    if mode is Mode.FLOAT32_COMPLEX:
        return values.astype(np.complex64)
    return values.astype(mode.native_dtype)


def make_ball_header(mode: Mode, nx: int, ny: int, nz: int,
                     endian: FileEndian = FileEndian.LITTLE) -> Header:
    header = Header(nx=nx, ny=ny, nz=nz, mode=int(mode), mx=nx, my=ny, mz=nz)
    header.xlen, header.ylen, header.zlen = float(nx), float(ny), float(nz)
    header.alpha = header.beta = header.gamma = 90.0
    header.set_exttyp_str("MRCO")
    header.set_nversion(NVERSION_MRC2014)
    header.set_file_endian(endian)
    return header


def write_ball_file(fn, mode: Mode, shape: tuple[int, int, int] = BALL_SHAPE,
                    diameter: float = BALL_DIAMETER,
                    endian: FileEndian = FileEndian.LITTLE) -> Header:
    """Write a ball volume to `fn` and return its header, statistics filled in."""
    nx, ny, nz = shape
    header = make_ball_header(mode, nx, ny, nz, endian)

    with MrcFile.create(fn, header) as f:
        view = f.read_view_mut()
        view.data.set(ball_values(mode, nx, ny, nz, diameter))
        view.update_statistics()
        view.header_mut.add_label(f"ball diameter={diameter:g} mode={Mode(mode).name}")
        f.write_view(view)
        header = f.header

    logger.debug("wrote %s: mode=%s, dimensions=%dx%dx%d", fn, Mode(mode).name, nx, ny, nz)
    return header


def generate_ball_files(
    fdn: str,
    modes=BALL_MODES,
    shape: tuple[int, int, int] = BALL_SHAPE,
    diameter: float = BALL_DIAMETER,
    show_progress: bool = False,
) -> list[str]:
    """
    Write one ball volume per mode under a folder named fdn.

    Parameters
    ----------
    fdn : str
        Output folder, created if missing.
    modes : iterable of int, default=BALL_MODES
        Mode codes to generate, one file `ball_mode_{mode}.mrc` each.
    shape : (nx, ny, nz), default=BALL_SHAPE
    diameter : float, default=BALL_DIAMETER
    show_progress : bool, default=False
        If True, display progress bar

    Returns
    -------
    list of the written file paths
    """
    os.makedirs(fdn, exist_ok=True)

    iterable = list(modes)
    if show_progress:
        iterable = tqdm(iterable, desc=f"Writing ball volumes under {fdn}", unit="file")

    fns = []
    for mode in iterable:
        fn = os.path.join(fdn, BALL_FILENAME.format(mode=int(mode)))
        write_ball_file(fn, Mode(mode), shape, diameter)
        fns.append(fn)

    return fns
