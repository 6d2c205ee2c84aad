"""
Views bind a validated header to its extended header and voxel bytes.

    File layout:  | 1024 bytes | nsymbt bytes | data_size bytes |
                  | Header     | ExtHeader    | voxel data      |
    In memory:    | decoded    | raw bytes    | raw bytes       |

A view borrows the buffers it is built from and never copies them. Any
inconsistency is rejected at construction; a view that exists is valid.
"""
import numpy as np

from .data_block import DataBlock, DataBlockMut
from .endian import FileEndian
from .ext_header import ExtHeader, ExtHeaderMut
from .header import Header
from .mode import Mode
from ..io.exceptions import InvalidHeaderError, InvalidModeError, InvalidDimensionsError
from ..configs import HEADER_SIZE


def _check_parts(header: Header, ext_header: memoryview, data: memoryview) -> Mode:
    if not header.validate():
        raise InvalidHeaderError(
            f"Invalid header: dimensions={header.dimensions}, mode={header.mode}, "
            f"map={bytes(header.map)!r}, axes=({header.mapc}, {header.mapr}, {header.maps}), "
            f"ispg={header.ispg}"
        )

    if len(ext_header) != header.nsymbt:
        raise InvalidDimensionsError(
            f"Extended header size mismatch. Expected nsymbt={header.nsymbt} bytes, "
            f"got {len(ext_header)}"
        )

    expected = header.data_size()
    if len(data) != expected:
        raise InvalidDimensionsError(
            f"Data size mismatch. Expected {expected} bytes for {header.dimensions} "
            f"voxels of mode {header.mode}, got {len(data)}"
        )

    mode = Mode.from_code(header.mode)
    if mode is None:
        raise InvalidModeError(f"Unsupported mode {header.mode}")

    return mode


def _split(header: Header, buffer) -> tuple[memoryview, memoryview]:
    """Split a contiguous ext header + data buffer at nsymbt."""
    buffer = memoryview(buffer).cast("B")
    if header.nsymbt < 0 or header.nsymbt > len(buffer):
        raise InvalidDimensionsError(
            f"Buffer of {len(buffer)} bytes cannot hold an extended header of {header.nsymbt} bytes"
        )
    return buffer[:header.nsymbt], buffer[header.nsymbt:]


class MrcView:
    """Read-only view over the three parts of an MRC file."""

    _ext_header_cls = ExtHeader
    _data_block_cls = DataBlock

    def __init__(self, header: Header, ext_header: ExtHeader, data: DataBlock):
        # use from_parts(); this only assembles already checked parts
        self._header = header
        self._ext_header = ext_header
        self._data = data

    @classmethod
    def from_parts(cls, header: Header, ext_header, data):
        """
        Build a view from a decoded header, the extended header bytes and the
        voxel bytes.

        Raises
        ------
        InvalidHeaderError
            `header.validate()` is false.
        InvalidDimensionsError
            `ext_header` is not nsymbt bytes, or `data` is not data_size() bytes.
        InvalidModeError
            the header mode is not registered.
        """
        ext_header = memoryview(ext_header).cast("B")
        data = memoryview(data).cast("B")
        mode = _check_parts(header, ext_header, data)

        # byte order is fixed once, here, for the lifetime of the view
        file_endian = header.file_endian
        return cls(
            header.copy(),
            cls._ext_header_cls(ext_header),
            cls._data_block_cls(data, mode, file_endian, header.voxel_count()),
        )

    @classmethod
    def from_buffer(cls, header: Header, buffer):
        """Build a view from a buffer holding the extended header followed by the data."""
        ext_header, data = _split(header, buffer)
        return cls.from_parts(header, ext_header, data)

    @classmethod
    def from_bytes(cls, raw):
        """Build a view from a whole file image (header, extended header, data)."""
        raw = memoryview(raw).cast("B")
        if len(raw) < HEADER_SIZE:
            raise InvalidHeaderError(f"File image of {len(raw)} bytes is shorter than the header")
        header = Header.decode(raw[:HEADER_SIZE])
        return cls.from_buffer(header, raw[HEADER_SIZE:HEADER_SIZE + header.nsymbt + header.data_size()])

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(dimensions={self.dimensions}, mode={self.mode.name}, "
                f"endian={self.file_endian.name}, ext_header={len(self._ext_header)} bytes)")

    @property
    def header(self) -> Header:
        """A copy of the header; edits do not reach the view."""
        return self._header.copy()

    @property
    def mode(self) -> Mode:
        return self._data.mode

    @property
    def file_endian(self) -> FileEndian:
        return self._data.file_endian

    @property
    def dimensions(self) -> tuple[int, int, int]:
        return self._header.nx, self._header.ny, self._header.nz

    @property
    def ext_header(self) -> memoryview:
        return self._ext_header.as_bytes()

    @property
    def data(self) -> DataBlock:
        return self._data

    def to_array(self) -> np.ndarray:
        return self._data.to_array()

    def volume(self) -> np.ndarray:
        """
        Voxels as a native-endian array of shape (nz, ny, nx).

        MRC increments x fastest, then y, then z. INT16_COMPLEX gets a
        trailing (real, imag) axis.
        """
        nx, ny, nz = self.dimensions
        values = self._data.to_array()
        if self.mode is Mode.INT16_COMPLEX:
            return values.reshape(nz, ny, nx, 2)
        return values.reshape(nz, ny, nx)

    def slice_bytes(self, start: int, stop: int) -> memoryview:
        return self._data.slice_bytes(start, stop)

    def encode_header(self) -> bytes:
        return self._header.encode()

    def to_bytes(self) -> bytes:
        """The whole file image: header, extended header and data."""
        return b"".join([
            self.encode_header(),
            bytes(self._ext_header),
            self._data.as_bytes().tobytes(),
        ])


class MrcViewMut(MrcView):
    """
    Mutable view over the three parts of an MRC file.

    `header_mut` hands out the live header. Changing mode or dimensions
    through it desynchronises the header from the already sized data block;
    keeping them consistent is up to the caller.
    """

    _ext_header_cls = ExtHeaderMut
    _data_block_cls = DataBlockMut

    @property
    def header_mut(self) -> Header:
        return self._header

    @property
    def ext_header_mut(self) -> memoryview:
        return self._ext_header.as_bytes_mut()

    @property
    def data(self) -> DataBlockMut:
        return self._data

    @property
    def data_mut(self) -> memoryview:
        """Raw writable voxel bytes, in file byte order."""
        return self._data.as_bytes_mut()

    def update_statistics(self) -> None:
        """Recompute dmin, dmax, dmean and rms from the data (magnitude for complex modes)."""
        values = self._data.to_array()
        if self.mode is Mode.INT16_COMPLEX:
            values = np.hypot(values[:, 0].astype(np.float64), values[:, 1].astype(np.float64))
        elif self.mode.is_complex:
            values = np.abs(values).astype(np.float64)
        else:
            values = values.astype(np.float64)

        mean = values.mean()
        self._header.dmin = float(values.min())
        self._header.dmax = float(values.max())
        self._header.dmean = float(mean)
        self._header.rms = float(np.sqrt(max(np.mean(values * values) - mean * mean, 0.0)))
