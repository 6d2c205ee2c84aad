import os
import logging

import numpy as np
import psutil

from .exceptions import InvalidHeaderError, InvalidDimensionsError, TypeMismatchError
from ..core import Header, Mode, MrcView, MrcViewMut
from ..configs import HEADER_SIZE

logger = logging.getLogger(__name__)


def _format_bytes(n: int) -> str:
    units = ["B", "KB", "MB", "GB", "TB"]
    f = float(n)
    i = 0
    while f >= 1024 and i < len(units) - 1:
        f /= 1024.0
        i += 1
    return f"{f:.2f} {units[i]}"


def _check_memory(needed: int, fn: str) -> None:
    total_ram = psutil.virtual_memory().total
    if needed > total_ram:
        raise MemoryError(
            f"{fn} needs {_format_bytes(needed)} but system RAM is "
            f"{_format_bytes(int(total_ram))}."
        )


def _check_nsymbt(header: Header, fn: str) -> None:
    if header.nsymbt < 0:
        raise InvalidDimensionsError(
            f"Negative extended header size nsymbt={header.nsymbt}", fn
        )


def _read_header(f, fn: str) -> Header:
    raw = f.read(HEADER_SIZE)
    if len(raw) != HEADER_SIZE:
        raise InvalidHeaderError(
            f"File is {len(raw)} bytes, shorter than the {HEADER_SIZE}-byte header", fn
        )

    header = Header.decode(raw)
    if not header.validate():
        raise InvalidHeaderError(
            f"Invalid MRC header. dimensions={header.dimensions}, mode={header.mode}, "
            f"map={bytes(header.map)!r}",
            fn,
        )
    _check_nsymbt(header, fn)
    return header


class MrcFile:
    """
    Buffered MRC file.

    The extended header and the voxel data are read into one bytearray
    (extended header first) and views borrow that buffer. Writes go to
    the file and to the buffer.
    """

    def __init__(self, fn, f, header: Header, buffer: bytearray):
        self.fn = os.fspath(fn)
        self._file = f
        self._header = header
        self._buffer = buffer

    @classmethod
    def open(cls, fn, writable: bool = False) -> "MrcFile":
        f = open(fn, "r+b" if writable else "rb")
        try:
            header = _read_header(f, os.fspath(fn))

            ext_size = header.nsymbt
            data_size = header.data_size()
            _check_memory(ext_size + data_size, os.fspath(fn))

            buffer = bytearray(ext_size + data_size)
            f.seek(HEADER_SIZE)
            n_read = f.readinto(buffer)
            if n_read != len(buffer):
                raise InvalidDimensionsError(
                    f"Expected {ext_size} extended header bytes and {data_size} data bytes, "
                    f"but only {n_read} bytes follow the header",
                    os.fspath(fn),
                )
        except BaseException:
            f.close()
            raise

        logger.debug("opened %s: %s voxels, mode %d, %s endian",
                     fn, header.dimensions, header.mode, header.file_endian.name.lower())
        return cls(fn, f, header, buffer)

    @classmethod
    def create(cls, fn, header: Header) -> "MrcFile":
        """Create (or truncate) `fn` with `header`, a zeroed extended header and zeroed data."""
        if not header.validate():
            raise InvalidHeaderError(
                f"Invalid MRC header. dimensions={header.dimensions}, mode={header.mode}",
                os.fspath(fn),
            )
        _check_nsymbt(header, os.fspath(fn))

        header = header.copy()
        buffer = bytearray(header.nsymbt + header.data_size())

        f = open(fn, "w+b")
        try:
            f.write(header.encode())
            f.write(buffer)
            f.flush()
        except BaseException:
            f.close()
            raise

        logger.debug("created %s: %s voxels, mode %d", fn, header.dimensions, header.mode)
        return cls(fn, f, header, buffer)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        self._file.close()

    @property
    def header(self) -> Header:
        return self._header

    @property
    def header_mut(self) -> Header:
        """Live header; call write_header() to persist edits."""
        return self._header

    def _ext_slice(self) -> memoryview:
        return memoryview(self._buffer)[:self._header.nsymbt]

    def _data_slice(self) -> memoryview:
        return memoryview(self._buffer)[self._header.nsymbt:]

    def read_view(self) -> MrcView:
        return MrcView.from_parts(self._header, self._ext_slice(), self._data_slice())

    def read_view_mut(self) -> MrcViewMut:
        """Mutable view over the in-memory buffer; persist it with write_view()."""
        return MrcViewMut.from_parts(self._header, self._ext_slice(), self._data_slice())

    def read_ext_header(self) -> memoryview:
        return self._ext_slice().toreadonly()

    def read_data(self) -> memoryview:
        return self._data_slice().toreadonly()

    def write_header(self) -> None:
        self._file.seek(0)
        self._file.write(self._header.encode())
        self._file.flush()

    def write_ext_header(self, data) -> None:
        data = memoryview(data).cast("B")
        if len(data) != self._header.nsymbt:
            raise InvalidDimensionsError(
                f"Extended header must be {self._header.nsymbt} bytes, got {len(data)}", self.fn
            )
        self._file.seek(HEADER_SIZE)
        self._file.write(data)
        self._file.flush()
        self._ext_slice()[:] = data

    def write_data(self, data) -> None:
        data = memoryview(data).cast("B")
        if len(data) != self._header.data_size():
            raise InvalidDimensionsError(
                f"Data must be {self._header.data_size()} bytes, got {len(data)}", self.fn
            )
        self._file.seek(self._header.data_offset())
        self._file.write(data)
        self._file.flush()
        self._data_slice()[:] = data

    def write_view(self, view: MrcView) -> None:
        """Write the header, extended header and data of `view` to the file."""
        self._header = view.header
        if len(view.ext_header) != self._header.nsymbt or \
                view.data.nbytes != len(self._buffer) - self._header.nsymbt:
            self._buffer = bytearray(self._header.nsymbt + self._header.data_size())

        self.write_header()
        ext_header = view.ext_header.tobytes()
        data = view.data.as_bytes().tobytes()
        self.write_ext_header(ext_header)
        self.write_data(data)
        self._file.truncate(self._header.data_offset() + self._header.data_size())
        logger.debug("wrote view to %s", self.fn)


class MrcMmap:
    """
    Memory-mapped MRC file.

    Views borrow the mapping directly, nothing is copied. Mode "r" maps
    read-only; "r+" allows mutable views whose writes land in the file.
    """

    def __init__(self, fn, mm: np.memmap, header: Header):
        self.fn = os.fspath(fn)
        self._mm = mm
        self._header = header

    @classmethod
    def open(cls, fn, mode: str = "r") -> "MrcMmap":
        if mode not in ("r", "r+"):
            raise ValueError(f"Unsupported mmap mode: {mode!r}. Must be 'r' or 'r+'.")

        mm = np.memmap(fn, mode=mode, dtype=np.uint8)
        if mm.size < HEADER_SIZE:
            raise InvalidHeaderError(
                f"File is {mm.size} bytes, shorter than the {HEADER_SIZE}-byte header", os.fspath(fn)
            )

        header = Header.decode(mm[:HEADER_SIZE])
        if not header.validate():
            raise InvalidHeaderError(
                f"Invalid MRC header. dimensions={header.dimensions}, mode={header.mode}, "
                f"map={bytes(header.map)!r}",
                os.fspath(fn),
            )
        _check_nsymbt(header, os.fspath(fn))

        end = header.data_offset() + header.data_size()
        if mm.size < end:
            raise InvalidDimensionsError(
                f"File is {mm.size} bytes, header describes {end}", os.fspath(fn)
            )

        logger.debug("mapped %s (%s): %s voxels, mode %d", fn, mode, header.dimensions, header.mode)
        return cls(fn, mm, header)

    @property
    def header(self) -> Header:
        return self._header

    @property
    def writable(self) -> bool:
        return self._mm.flags.writeable

    def ext_header(self) -> np.ndarray:
        return self._mm[HEADER_SIZE:HEADER_SIZE + self._header.nsymbt]

    def data(self) -> np.ndarray:
        offset = self._header.data_offset()
        return self._mm[offset:offset + self._header.data_size()]

    def read_view(self) -> MrcView:
        return MrcView.from_parts(self._header, self.ext_header(), self.data())

    def read_view_mut(self) -> MrcViewMut:
        if not self.writable:
            raise TypeMismatchError("Mapping is read-only, open with mode='r+'", self.fn)
        return MrcViewMut.from_parts(self._header, self.ext_header(), self.data())

    def write_header(self, header: Header | None = None) -> None:
        """Encode `header` (or the current one) into the mapping."""
        if not self.writable:
            raise TypeMismatchError("Mapping is read-only, open with mode='r+'", self.fn)
        if header is not None:
            if header.nsymbt != self._header.nsymbt or header.data_size() != self._header.data_size():
                raise InvalidDimensionsError(
                    "Header changes the extended header or data size of a mapped file", self.fn
                )
            self._header = header.copy()
        self._header.encode_into(self._mm[:HEADER_SIZE])

    def flush(self) -> None:
        self._mm.flush()


def open_file(fn, writable: bool = False) -> MrcFile:
    return MrcFile.open(fn, writable=writable)


def open_mmap(fn, mode: str = "r") -> MrcMmap:
    return MrcMmap.open(fn, mode=mode)


def save_file(fn, header: Header, data, ext_header=b"") -> None:
    """Write a complete MRC file in one go."""
    with MrcFile.create(fn, header) as f:
        if header.nsymbt:
            f.write_ext_header(ext_header)
        f.write_data(data)


def read_mrc(fn) -> tuple[Header, np.ndarray]:
    """
    Read an MRC2014 file.

    Parameters
    ----------
    fn : str
        Path to the MRC file.

    Returns
    -------
    header, volume

    header : Header
        Decoded header, native values.
    volume : np.ndarray
        Voxels with shape (nz, ny, nx), x fastest as stored in the file.

    Notes
    -----
    - For INT8, INT16, FLOAT32, FLOAT32_COMPLEX, UINT16 and FLOAT16 a
      read-only memmap (a subclass of np.ndarray) is returned, in the file
      byte order; numpy converts on access (efficient)
    - INT16_COMPLEX is returned as (nz, ny, nx, 2) and PACKED4BIT as one
      uint8 per voxel; both require decoding the full data block
    """
    fn = os.fspath(fn)
    with open(fn, "rb") as f:
        header = _read_header(f, fn)

    nx, ny, nz = header.dimensions
    mode = Mode(header.mode)

    file_size = os.path.getsize(fn)
    end = header.data_offset() + header.data_size()
    if file_size < end:
        raise InvalidDimensionsError(f"File is {file_size} bytes, header describes {end}", fn)

    if mode in (Mode.INT16_COMPLEX, Mode.PACKED4BIT):
        mmap = MrcMmap.open(fn)
        return header, mmap.read_view().volume()

    dtype = header.file_endian.dtype(mode.scalar_code)
    volume = np.memmap(fn, mode="r", dtype=dtype, offset=header.data_offset(), shape=(nz, ny, nx))
    return header, volume
